"""
Product endpoints.

All routes depend on ``get_current_user``; the owner of every query
comes from the verified token, never from the request body or path.
Absent results are answered with 200 and a ``{"result": ...}``
sentinel rather than 404.
"""

from typing import Any, Dict, List, Union

from fastapi import APIRouter, Body, Depends

from catalog_api.app.api.dependencies import get_product_service
from catalog_api.app.core.security import CallerIdentity, get_current_user
from catalog_api.app.schemas.product import NO_PRODUCTS, NO_RECORD, DeleteResult, UpdateResult
from catalog_api.app.services.product_service import ProductService

router = APIRouter()

ProductBody = Dict[str, Any]


@router.post("/add-product")
async def add_product(
    fields: ProductBody = Body(...),
    caller: CallerIdentity = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> ProductBody:
    """Store a product with whatever fields the client sends."""
    return await service.create_product(caller.user_id, fields)


@router.get("/products")
async def list_products(
    caller: CallerIdentity = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> Union[List[ProductBody], Dict[str, str]]:
    products = await service.list_products(caller.user_id)
    if products:
        return products
    return NO_PRODUCTS


@router.get("/product/{product_id}")
async def get_product(
    product_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> ProductBody:
    product = await service.get_product(caller.user_id, product_id)
    if product is None:
        return NO_RECORD
    return product


@router.put("/product/{product_id}", response_model=UpdateResult)
async def update_product(
    product_id: str,
    fields: ProductBody = Body(...),
    caller: CallerIdentity = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> UpdateResult:
    """Replace the given top-level fields; other fields are kept."""
    return await service.update_product(caller.user_id, product_id, fields)


@router.delete("/product/{product_id}", response_model=DeleteResult)
async def delete_product(
    product_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> DeleteResult:
    return await service.delete_product(caller.user_id, product_id)


@router.get("/search/{key}")
async def search_products(
    key: str,
    caller: CallerIdentity = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> List[ProductBody]:
    """Case-insensitive match of ``key`` against name, company and category."""
    return await service.search_products(caller.user_id, key)
