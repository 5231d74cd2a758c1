"""
Business logic for accounts: registration and login.

Passwords are stored and compared in plain text, and login looks a
user up by an exact match on every submitted user field, password
included.  Both behaviours are kept for compatibility with existing
clients and data; neither is a recommendation.

Email addresses are not unique: registering twice with the same email
creates two independent accounts.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..core.db import Database, new_object_id
from ..core.exceptions import (
    GENERIC_FAILURE,
    NotFound,
    PersistenceError,
    SigningError,
    ValidationError,
)
from ..core.security import TokenService
from ..schemas.user import USER_FIELDS, UserCreate, UserRead

logger = logging.getLogger(__name__)


def _as_filter_value(value: Any) -> Optional[str]:
    """Coerce a submitted value to the text stored in the users table.

    Scalars are cast the way a string-typed document field would be;
    objects and arrays become their JSON text and so never match a
    stored value.
    """
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


def build_user_filter(body: Dict[str, Any]) -> Tuple[str, List[Optional[str]]]:
    """Turn a submitted body into a WHERE clause over the known user fields.

    Unknown keys are ignored.  ``IS`` is used so that an explicit
    ``null`` matches a missing value.
    """
    clauses = []
    params: List[Optional[str]] = []
    for key in USER_FIELDS:
        if key in body:
            clauses.append(f"{key} IS ?")
            params.append(_as_filter_value(body[key]))
    where = " AND ".join(clauses) if clauses else "1 = 1"
    return where, params


class UserService:
    """Registration and login against the credential store."""

    def __init__(self, db: Database, tokens: TokenService):
        self.db = db
        self.tokens = tokens

    async def create_user(self, data: UserCreate) -> UserRead:
        """Persist a new user and return its password-free view."""
        user_id = new_object_id()
        await self.db.execute(
            "INSERT INTO users (id, name, email, password) VALUES (?, ?, ?, ?)",
            (user_id, data.name, data.email, data.password),
        )
        logger.info("Registered user %s", user_id)
        return UserRead(id=user_id, name=data.name, email=data.email)

    async def find_user(self, body: Dict[str, Any]) -> Optional[UserRead]:
        """Return the first user whose fields equal those in ``body``."""
        where, params = build_user_filter(body)
        row = await self.db.fetch_one(
            f"SELECT id, name, email FROM users WHERE {where} ORDER BY rowid LIMIT 1",
            params,
        )
        if row is None:
            return None
        return UserRead(id=row["id"], name=row["name"], email=row["email"])

    def issue_token(self, user: UserRead) -> str:
        return self.tokens.issue({"sub": user.id, "user": user.public_dict()})

    async def register(self, data: UserCreate) -> Dict[str, Any]:
        """Create an account and return ``{"result": user, "auth": token}``.

        Store and signing failures are reported as a soft
        ``{"result": <retry message>}`` body rather than an error status.
        """
        try:
            user = await self.create_user(data)
            token = self.issue_token(user)
        except (PersistenceError, SigningError) as exc:
            logger.error("Registration failed: %s", exc.__class__.__name__)
            return {"result": GENERIC_FAILURE}
        return {"result": user.public_dict(), "auth": token}

    async def login(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Return ``{"user": user, "auth": token}`` for matching credentials.

        Raises ``ValidationError`` when email or password is missing and
        ``NotFound`` when no stored user matches the submitted fields.
        """
        if not body.get("email") or not body.get("password"):
            raise ValidationError()
        user = await self.find_user(body)
        if user is None:
            logger.info("Login failed: no matching user")
            raise NotFound()
        token = self.issue_token(user)
        logger.info("User %s logged in", user.id)
        return {"user": user.public_dict(), "auth": token}
