"""
FastAPI dependencies that hand each request its services.

The store handle and token service live on ``app.state`` (set up by
``create_app``); services are built around them per request.
"""

from fastapi import Depends, Request

from catalog_api.app.core.db import Database
from catalog_api.app.core.security import TokenService, get_token_service
from catalog_api.app.services.product_service import ProductService
from catalog_api.app.services.user_service import UserService


def get_database(request: Request) -> Database:
    return request.app.state.db


def get_user_service(
    db: Database = Depends(get_database),
    tokens: TokenService = Depends(get_token_service),
) -> UserService:
    return UserService(db, tokens)


def get_product_service(db: Database = Depends(get_database)) -> ProductService:
    return ProductService(db)
