"""
Product Catalog Backend — Pydantic Request/Response Schemas
=============================================================

What:  The API contract for the product resource and the status endpoint.
Why:   Schemas are separate from SQLAlchemy models so the API controls
       exactly which fields are exposed.

Envelope:
    Successful product responses are wrapped as
    {"success": true, "data": ...}; errors never use these models, they
    go through the error terminator as {"error": "..."}.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ProductCreate(BaseModel):
    """
    Body of POST /api/products.

    Fields are optional at the schema level so that a missing field yields
    the catalog's own 400 message instead of a schema validation error.
    """
    name: Optional[str] = None
    price: Optional[float] = None
    image: Optional[str] = None


class ProductUpdate(BaseModel):
    """Body of PUT /api/products/{id}; only the supplied fields change."""
    name: Optional[str] = None
    price: Optional[float] = None
    image: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ProductResponse(BaseModel):
    id: uuid.UUID
    name: str
    price: float
    image: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProductEnvelope(BaseModel):
    success: bool = True
    data: ProductResponse


class ProductListEnvelope(BaseModel):
    success: bool = True
    data: List[ProductResponse]


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Every client-visible failure (except the plain-text health check)."""
    error: str = Field(description="Human-readable error message")


class StatusResponse(BaseModel):
    """
    What:  Quick status for humans and monitors (GET /api/status).

    db is one of disconnected | connected | connecting | disconnecting | unknown.
    """
    name: str
    version: str
    python: str = Field(description="Python runtime version")
    env: str
    port: int
    db: str
    uptime_seconds: int
    time: str = Field(description="Current time, ISO-8601 UTC")
