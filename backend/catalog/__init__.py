"""
Product Catalog Backend — Application Package
===============================================

What: The `catalog` package: a product-catalog REST API plus the request
      pipeline and lifecycle that wrap it.
Who:  Imported by uvicorn (`catalog.main:app`), by `python -m catalog`,
      and by the test suite.

Architecture Note:

    ┌─────────────────────────────────────┐
    │   Lifecycle (connect → listen →     │  ← process entry, signals
    │   drain → close)                    │
    ├─────────────────────────────────────┤
    │   Middleware pipeline               │  ← security, CORS, logging,
    │                                     │    metrics, rate limiting
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy engine
    └─────────────────────────────────────┘
"""

import time

__title__ = "product-catalog"
__version__ = "1.0.0"

# Uptime origin for /api/status. The package is the first thing imported by
# every entry point (`python -m catalog`, `uvicorn catalog.main:app`).
PROCESS_STARTED_AT = time.monotonic()
