"""
Top-level router.

Aggregates the domain routers.  Routes are served from the root path
(``/register``, ``/products`` ...) because existing clients call them
there, so no prefix is applied.
"""

from fastapi import APIRouter

from .endpoints import products, root, users

router = APIRouter()

router.include_router(root.router, tags=["status"])
router.include_router(users.router, tags=["accounts"])
router.include_router(products.router, tags=["products"])
