"""
Product Catalog Backend — Product SQLAlchemy Model
====================================================

What:  ORM model representing the `products` table.
Who:   Used by ProductService for CRUD operations; created on connect by
       `Database` when DB_CREATE_TABLES is on.

Table Design:
    - UUID primary key generated in Python (portable across PostgreSQL
      and SQLite)
    - name / price / image: the three fields the create form submits
    - created_at / updated_at: UTC with timezone
    - Index on created_at DESC for the "newest first" listing
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from catalog.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(Base):
    """A catalog product."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    price: Mapped[float] = mapped_column(Float, nullable=False)

    # What: Image URL shown on the product card
    image: Mapped[str] = mapped_column(String(2048), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("idx_products_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}', price={self.price})>"
