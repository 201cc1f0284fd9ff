"""
Product Catalog Backend — Product Service
===========================================

What:  CRUD business logic for products.
Who:   Called by the /api/products route handlers with a request-scoped
       session; routes stay thin and only shape the HTTP response.

Error Handling Strategy:
    - Missing fields on create         → ValidationError (400)
    - Unknown or malformed product id  → NotFoundError (404)
    - SQLAlchemy failures              → DatabaseError (500, generic message)
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.exceptions import DatabaseError, NotFoundError, ValidationError
from catalog.models.product import Product
from catalog.schemas.product import ProductCreate, ProductResponse, ProductUpdate

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "price", "image")


def _parse_id(product_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(product_id))
    except ValueError:
        raise NotFoundError("Product", resource_id=str(product_id))


def _is_missing(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ProductService:
    """
    Business logic layer for product operations.

    Each method receives the session from the `get_db_session` dependency,
    which commits on success and rolls back if anything here raises.
    """

    async def list_products(self, db: AsyncSession) -> List[ProductResponse]:
        try:
            result = await db.execute(
                select(Product).order_by(Product.created_at.desc())
            )
        except SQLAlchemyError as e:
            raise DatabaseError(context={"operation": "list_products", "error": str(e)})
        return [ProductResponse.model_validate(p) for p in result.scalars().all()]

    async def get_product(self, db: AsyncSession, product_id: str) -> ProductResponse:
        product = await self._load(db, product_id)
        return ProductResponse.model_validate(product)

    async def create_product(self, db: AsyncSession, payload: ProductCreate) -> ProductResponse:
        missing = [f for f in REQUIRED_FIELDS if _is_missing(getattr(payload, f))]
        if missing:
            raise ValidationError(
                "Please provide all fields",
                context={"missing": missing},
            )

        product = Product(
            name=payload.name.strip(),
            price=payload.price,
            image=payload.image.strip(),
        )
        try:
            db.add(product)
            await db.flush()
            await db.refresh(product)
        except SQLAlchemyError as e:
            raise DatabaseError(context={"operation": "create_product", "error": str(e)})

        logger.info("Product created: %s", product.id)
        return ProductResponse.model_validate(product)

    async def update_product(
        self, db: AsyncSession, product_id: str, payload: ProductUpdate
    ) -> ProductResponse:
        product = await self._load(db, product_id)

        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in changes.items():
            setattr(product, field, value)

        try:
            await db.flush()
            await db.refresh(product)
        except SQLAlchemyError as e:
            raise DatabaseError(context={"operation": "update_product", "error": str(e)})

        logger.info("Product updated: %s (%s)", product.id, ", ".join(sorted(changes)) or "no changes")
        return ProductResponse.model_validate(product)

    async def delete_product(self, db: AsyncSession, product_id: str) -> None:
        product = await self._load(db, product_id)
        try:
            await db.delete(product)
            await db.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(context={"operation": "delete_product", "error": str(e)})
        logger.info("Product deleted: %s", product_id)

    async def _load(self, db: AsyncSession, product_id: str) -> Product:
        pk = _parse_id(product_id)
        try:
            product: Optional[Product] = await db.get(Product, pk)
        except SQLAlchemyError as e:
            raise DatabaseError(context={"operation": "get_product", "error": str(e)})
        if product is None:
            raise NotFoundError("Product", resource_id=str(product_id))
        return product


product_service = ProductService()
