"""
Account endpoints: registration and login.

Neither route requires authentication; both return a bearer token for
use on the product routes.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from catalog_api.app.api.dependencies import get_user_service
from catalog_api.app.schemas.user import UserCreate
from catalog_api.app.services.user_service import UserService

router = APIRouter()


@router.post("/register")
async def register_user(
    user: UserCreate,
    service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    """Create an account and return it with a token.

    A storage or signing failure still answers 200, with a retry
    message in ``result`` and no token.
    """
    return await service.register(user)


@router.post("/login")
async def login_user(
    body: Optional[Dict[str, Any]] = Body(None),
    service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    """Exchange email and password for a token.

    400 when either field is missing, 404 when no user matches.
    """
    return await service.login(body or {})
