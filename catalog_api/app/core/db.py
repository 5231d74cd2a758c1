"""
SQLite document store and simple migration system.

Users and products are kept in an SQLite database.  Products carry
arbitrary client-supplied fields, so each row stores the document body
as JSON text next to the indexed ``owner_id`` column used for tenant
filtering.  Identifiers are 24-character hex strings assigned by the
store.

``Database`` is the store handle.  One instance is created per
application and injected into the services; nothing in this module
holds a global connection.  Every call opens its own connection in a
worker thread (``asyncio.to_thread``) so that request handlers never
block the event loop.  Driver errors surface as ``PersistenceError``.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import asyncio
import logging
import os
import re
import secrets
import sqlite3
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent.parent

MIGRATIONS: List[Tuple[int, str]] = [
    # Migration 1: credential and product stores
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            name TEXT,
            email TEXT,
            password TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS products (
            id TEXT PRIMARY KEY,
            owner_id TEXT NOT NULL,
            document TEXT NOT NULL DEFAULT '{}',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """,
    ),
    # Migration 2: lookups by email and by owner
    (
        2,
        """
        -- email is intentionally not UNIQUE: duplicate registrations are allowed.
        CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
        CREATE INDEX IF NOT EXISTS idx_products_owner_id ON products(owner_id);
        """,
    ),
]


def new_object_id() -> str:
    """Return a fresh 24-hex-digit identifier."""
    return secrets.token_hex(12)


def resolve_database_path(database_url: str) -> str:
    """Compute the path to the SQLite database file.

    Accepts a plain path or a ``sqlite:///`` URL.  Relative paths are
    resolved against the project root.
    """
    if database_url.startswith("sqlite:///"):
        database_url = database_url[len("sqlite:///"):]
    if os.path.isabs(database_url):
        return database_url
    return str((PROJECT_ROOT / database_url).resolve())


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> "re.Pattern[str]":
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error:
        # Not a usable regular expression: match it as literal text.
        return re.compile(re.escape(pattern), re.IGNORECASE)


def _regexp(pattern: str, value: Any) -> bool:
    """Implementation of the SQL ``REGEXP`` operator (case-insensitive search)."""
    if pattern is None or not isinstance(value, str):
        return False
    return _compile_pattern(pattern).search(value) is not None


class Database:
    """Handle on the SQLite store shared by the services of one application."""

    def __init__(self, database_url: str):
        self.path = resolve_database_path(database_url)

    def connect(self) -> sqlite3.Connection:
        """Open a connection with dict-like rows and the ``REGEXP`` operator."""
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        conn.create_function("regexp", 2, _regexp, deterministic=True)
        return conn

    @contextmanager
    def cursor(self) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor, commit on success, roll back and close on failure."""
        conn = None
        try:
            conn = self.connect()
            yield conn.cursor()
            conn.commit()
        except sqlite3.Error as exc:
            if conn is not None:
                conn.rollback()
            raise PersistenceError() from exc
        finally:
            if conn is not None:
                conn.close()

    def init_db(self) -> None:
        """Create the database file if needed and apply pending migrations."""
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        with self.cursor() as cursor:
            cursor.execute(
                "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
            )
            cursor.execute("SELECT MAX(version) AS version FROM migrations")
            row = cursor.fetchone()
            current_version = row["version"] if row and row["version"] is not None else 0

            for version, sql in MIGRATIONS:
                if version > current_version:
                    cursor.executescript(sql)
                    cursor.execute("INSERT INTO migrations (version) VALUES (?)", (version,))
                    logger.info("Applied migration %s to %s", version, self.path)
                    current_version = version

    # -----------------------------------------------------------------
    # Async helpers used by the services
    # -----------------------------------------------------------------

    def _fetch_one(self, sql: str, params: Sequence[Any]) -> Optional[sqlite3.Row]:
        with self.cursor() as cursor:
            return cursor.execute(sql, tuple(params)).fetchone()

    def _fetch_all(self, sql: str, params: Sequence[Any]) -> List[sqlite3.Row]:
        with self.cursor() as cursor:
            return cursor.execute(sql, tuple(params)).fetchall()

    def _execute(self, sql: str, params: Sequence[Any]) -> int:
        with self.cursor() as cursor:
            cursor.execute(sql, tuple(params))
            return cursor.rowcount

    def _transaction(self, func: Callable[..., Any], *args: Any) -> Any:
        with self.cursor() as cursor:
            cursor.execute("BEGIN IMMEDIATE")
            return func(cursor, *args)

    async def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        return await asyncio.to_thread(self._fetch_one, sql, params)

    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        return await asyncio.to_thread(self._fetch_all, sql, params)

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a single write statement and return the affected row count."""
        return await asyncio.to_thread(self._execute, sql, params)

    async def run_in_transaction(self, func: Callable[..., Any], *args: Any) -> Any:
        """Call ``func(cursor, *args)`` inside one write transaction."""
        return await asyncio.to_thread(self._transaction, func, *args)
