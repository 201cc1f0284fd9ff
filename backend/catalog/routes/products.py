"""
Product Catalog Backend — Product Route Handlers
==================================================

What:  CRUD over /api/products.
How:   Extract path/body, delegate to ProductService, wrap the result in
       {"success": true, ...}. Failures raise CatalogError subclasses and
       are rendered by the error terminator as {"error": "..."}.

Route Inventory:
    GET    /api/products            list, newest first
    GET    /api/products/{id}       one product
    POST   /api/products            create (name, price, image required)
    PUT    /api/products/{id}       partial update
    DELETE /api/products/{id}       delete
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.database import get_db_session
from catalog.schemas.product import (
    ErrorResponse,
    MessageEnvelope,
    ProductCreate,
    ProductEnvelope,
    ProductListEnvelope,
    ProductUpdate,
)
from catalog.services.product_service import product_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["Products"])

_NOT_FOUND = {404: {"description": "Product not found", "model": ErrorResponse}}


@router.get("", response_model=ProductListEnvelope, summary="List products")
async def list_products(db: AsyncSession = Depends(get_db_session)) -> ProductListEnvelope:
    products = await product_service.list_products(db)
    return ProductListEnvelope(data=products)


@router.get(
    "/{product_id}",
    response_model=ProductEnvelope,
    responses=_NOT_FOUND,
    summary="Get a product",
)
async def get_product(
    product_id: str, db: AsyncSession = Depends(get_db_session)
) -> ProductEnvelope:
    product = await product_service.get_product(db, product_id)
    return ProductEnvelope(data=product)


@router.post(
    "",
    response_model=ProductEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Missing fields", "model": ErrorResponse}},
    summary="Create a product",
)
async def create_product(
    payload: ProductCreate, db: AsyncSession = Depends(get_db_session)
) -> ProductEnvelope:
    product = await product_service.create_product(db, payload)
    return ProductEnvelope(data=product)


@router.put(
    "/{product_id}",
    response_model=ProductEnvelope,
    responses=_NOT_FOUND,
    summary="Update a product",
)
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ProductEnvelope:
    product = await product_service.update_product(db, product_id, payload)
    return ProductEnvelope(data=product)


@router.delete(
    "/{product_id}",
    response_model=MessageEnvelope,
    responses=_NOT_FOUND,
    summary="Delete a product",
)
async def delete_product(
    product_id: str, db: AsyncSession = Depends(get_db_session)
) -> MessageEnvelope:
    await product_service.delete_product(db, product_id)
    return MessageEnvelope(message="Product deleted")
