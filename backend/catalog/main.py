"""
Product Catalog Backend — FastAPI Application Factory
=======================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes middleware ordering, route mounting, and error envelopes
       in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
       The metrics registry, rate limiter and database are constructed by
       the caller (or defaulted here) and injected, so tests get isolated
       instances.
Who:   `catalog.__main__` (via the lifecycle coordinator), uvicorn
       (`uvicorn catalog.main:app`), and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware Chain (request direction):                   │
    │  Security → GZip → CORS → AccessLog → JSONBody →         │
    │  Preflight → Metrics → RateLimit(/api) → Errors          │
    │                                                          │
    │  Routes:                                                 │
    │  GET /health  GET /metrics  GET /api/status              │
    │  /api/products CRUD         [SPA fallback]               │
    │                                                          │
    │  Terminators:                                            │
    │  unmatched → 404 {"error": "Not found"}                  │
    │  raised    → status|500 {"error": message}               │
    └──────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog import __title__, __version__
from catalog.config import Settings, settings as default_settings
from catalog.database import Database, DatabaseState
from catalog.metrics import HttpMetrics
from catalog.middleware.body_parser import JSONBodyMiddleware
from catalog.middleware.cors import CORSDecisionMiddleware
from catalog.middleware.errors import ErrorHandlerMiddleware, error_response
from catalog.middleware.logging import RequestLoggingMiddleware
from catalog.middleware.metrics import MetricsMiddleware
from catalog.middleware.preflight import PreflightMiddleware
from catalog.middleware.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware
from catalog.middleware.security_headers import SecurityHeadersMiddleware
from catalog.routes import health, metrics, products
from catalog.routes.client import build_client_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
NOT_FOUND_MESSAGE = "Not found"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """
    Configure logging for the entire process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s

    uvicorn's access log is silenced; `catalog.access` replaces it.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    if settings.log_level != "DEBUG":
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup/shutdown hooks for the ASGI server.

    Under the lifecycle coordinator logging is already configured and the
    database is already connected when this runs; the coordinator closes it
    after the listener stops. When the app is served by a bare
    `uvicorn catalog.main:app`, the lifespan does both itself.
    """
    settings: Settings = app.state.settings
    database: Database = app.state.database

    owns_database = database.state is DatabaseState.DISCONNECTED
    if owns_database:
        setup_logging(settings)
        await database.connect()

    logger.info("%s %s ready (env=%s)", __title__, __version__, settings.app_env)

    yield

    if owns_database:
        await database.close()
    logger.info("Application shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map FastAPI's own exceptions onto the `{"error": ...}` envelope.

    Everything else (CatalogError subclasses, unexpected exceptions) is
    handled by ErrorHandlerMiddleware.

        router miss (404 / 405)   → 404 {"error": "Not found"}
        other HTTPException       → status {"error": detail}
        RequestValidationError    → 400 {"error": "<field>: <problem>"}
    """

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code in (404, 405):
            return error_response(404, NOT_FOUND_MESSAGE)
        return error_response(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        if not errors:
            return error_response(400, "Invalid request")
        first = errors[0]
        loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        return error_response(400, f"{loc}: {message}" if loc else message)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    *,
    database: Optional[Database] = None,
    metrics_registry: Optional[HttpMetrics] = None,
    limiter: Optional[FixedWindowRateLimiter] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:          configuration (defaults to the process singleton)
        database:          Database to read status from and open sessions on
        metrics_registry:  HttpMetrics the instrumentation writes to
        limiter:           rate-limit window table for /api
    """
    settings = settings or default_settings
    database = database or Database.from_settings(settings)
    metrics_registry = metrics_registry or HttpMetrics()
    limiter = limiter or FixedWindowRateLimiter(
        max_requests=settings.rate_limit_max,
        window_seconds=settings.rate_limit_window_seconds,
    )

    app = FastAPI(
        title="Product Catalog API",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.metrics = metrics_registry
    app.state.limiter = limiter

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute, so this list reads bottom-up.
    app.add_middleware(ErrorHandlerMiddleware, production=settings.is_production)
    app.add_middleware(RateLimitMiddleware, limiter=limiter, prefix=API_PREFIX)
    app.add_middleware(MetricsMiddleware, metrics=metrics_registry)
    app.add_middleware(PreflightMiddleware)
    app.add_middleware(JSONBodyMiddleware, limit=settings.json_body_limit)
    app.add_middleware(RequestLoggingMiddleware, production=settings.is_production)
    app.add_middleware(CORSDecisionMiddleware, allowed_origins=settings.cors_allowed_origins)
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(SecurityHeadersMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(metrics.router)
    app.include_router(health.router)
    app.include_router(products.router)

    if settings.serve_client:
        client_router = build_client_router(settings.client_dist)
        if client_router is not None:
            app.include_router(client_router)

    return app


# uvicorn expects `catalog.main:app` to be importable
app = create_app()
