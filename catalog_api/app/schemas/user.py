"""
Pydantic models for user data.

``UserCreate`` is the registration payload.  No field is mandatory:
registration only persists what it is given.  ``UserRead`` is the
public view returned to clients and embedded in tokens; it never
carries the password.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

USER_FIELDS = ("name", "email", "password")


class UserCreate(BaseModel):
    """Schema for registering a user.

    Numbers are accepted for the text fields and stored as their string
    form, matching how string-typed documents cast them.
    """

    name: Optional[str] = Field(None, examples=["Jane Doe"])
    email: Optional[str] = Field(None, examples=["jane@example.com"])
    password: Optional[str] = Field(None, examples=["secret"])

    model_config = {
        "coerce_numbers_to_str": True,
    }


class UserRead(BaseModel):
    """Password-free view of a stored user."""

    id: str = Field(..., alias="_id")
    name: Optional[str] = None
    email: Optional[str] = None

    model_config = {
        "populate_by_name": True,
    }

    def public_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
