"""
Business logic for products.

Every query issued here is scoped to the caller's ``owner_id``; the
only operation that does not filter on it is creation, which stamps
it.  A product owned by someone else is indistinguishable from one
that does not exist: reads return nothing and writes report zero
matches.

Product bodies are free-form JSON documents.  ``_id`` and ``ownerID``
are controlled by the store and are stripped from client payloads.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from ..core.db import Database, new_object_id
from ..core.exceptions import InvalidProduct
from ..schemas.product import RESERVED_FIELDS, DeleteResult, UpdateResult

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("name", "company", "category")


def _client_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in fields.items() if key not in RESERVED_FIELDS}


def _encode(document: Dict[str, Any]) -> str:
    """Serialise a product body; NaN and Infinity are not valid JSON."""
    try:
        return json.dumps(document, allow_nan=False)
    except ValueError as exc:
        raise InvalidProduct() from exc


def _row_to_product(row: sqlite3.Row) -> Dict[str, Any]:
    """Assemble the wire document from a ``products`` row."""
    product = {"_id": row["id"]}
    product.update(json.loads(row["document"]))
    product["ownerID"] = row["owner_id"]
    return product


def _merge_fields(cursor: sqlite3.Cursor, owner_id: str, product_id: str,
                  fields: Dict[str, Any]) -> UpdateResult:
    row = cursor.execute(
        "SELECT document FROM products WHERE id = ? AND owner_id = ?",
        (product_id, owner_id),
    ).fetchone()
    if row is None:
        return UpdateResult(matchedCount=0, modifiedCount=0)
    current = json.loads(row["document"])
    merged = dict(current)
    merged.update(fields)
    # Compare the stored text: 1, 1.0 and true are distinct JSON values.
    encoded = _encode(merged)
    if encoded == _encode(current):
        return UpdateResult(matchedCount=1, modifiedCount=0)
    cursor.execute(
        "UPDATE products SET document = ?, updated_at = CURRENT_TIMESTAMP "
        "WHERE id = ? AND owner_id = ?",
        (encoded, product_id, owner_id),
    )
    return UpdateResult(matchedCount=1, modifiedCount=1)


class ProductService:
    """Owner-scoped CRUD and search over the product store."""

    def __init__(self, db: Database):
        self.db = db

    async def create_product(self, owner_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Store ``fields`` as a new product owned by ``owner_id``."""
        product_id = new_object_id()
        document = _client_fields(fields)
        encoded = _encode(document)
        await self.db.execute(
            "INSERT INTO products (id, owner_id, document) VALUES (?, ?, ?)",
            (product_id, owner_id, encoded),
        )
        logger.info("User %s created product %s", owner_id, product_id)
        product = {"_id": product_id}
        product.update(document)
        product["ownerID"] = owner_id
        return product

    async def list_products(self, owner_id: str) -> List[Dict[str, Any]]:
        rows = await self.db.fetch_all(
            "SELECT id, owner_id, document FROM products WHERE owner_id = ? ORDER BY rowid",
            (owner_id,),
        )
        return [_row_to_product(row) for row in rows]

    async def get_product(self, owner_id: str, product_id: str) -> Optional[Dict[str, Any]]:
        row = await self.db.fetch_one(
            "SELECT id, owner_id, document FROM products WHERE id = ? AND owner_id = ?",
            (product_id, owner_id),
        )
        return _row_to_product(row) if row is not None else None

    async def update_product(self, owner_id: str, product_id: str,
                             fields: Dict[str, Any]) -> UpdateResult:
        """Merge ``fields`` into the product, top-level keys replacing old values."""
        fields = _client_fields(fields)
        _encode(fields)
        result = await self.db.run_in_transaction(_merge_fields, owner_id, product_id, fields)
        if result.modifiedCount:
            logger.info("User %s updated product %s", owner_id, product_id)
        return result

    async def delete_product(self, owner_id: str, product_id: str) -> DeleteResult:
        deleted = await self.db.execute(
            "DELETE FROM products WHERE id = ? AND owner_id = ?",
            (product_id, owner_id),
        )
        if deleted:
            logger.info("User %s deleted product %s", owner_id, product_id)
        return DeleteResult(deletedCount=deleted)

    async def search_products(self, owner_id: str, key: str) -> List[Dict[str, Any]]:
        """Products whose name, company or category matches ``key``.

        ``key`` is a case-insensitive regular expression; plain text
        therefore matches as a substring.
        """
        conditions = " OR ".join(
            f"json_extract(document, '$.{name}') REGEXP ?" for name in SEARCH_FIELDS
        )
        rows = await self.db.fetch_all(
            "SELECT id, owner_id, document FROM products "
            f"WHERE owner_id = ? AND ({conditions}) ORDER BY rowid",
            (owner_id, *([key] * len(SEARCH_FIELDS))),
        )
        return [_row_to_product(row) for row in rows]
