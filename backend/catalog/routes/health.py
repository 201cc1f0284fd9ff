"""
Product Catalog Backend — Health & Status Routes
==================================================

GET /health      Liveness probe for the Docker healthcheck. Plain text
                 "ok", no dependency checks, not rate-limited, not logged.
GET /api/status  Quick status for humans and monitors: build info, runtime,
                 environment, database connection state, uptime.
"""

import logging
import platform
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

import catalog
from catalog import __title__, __version__
from catalog.database import describe_state
from catalog.schemas.product import StatusResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


def uptime_seconds() -> int:
    """Whole seconds since the process started (see `catalog.PROCESS_STARTED_AT`)."""
    return int(time.monotonic() - catalog.PROCESS_STARTED_AT)


def utc_timestamp() -> str:
    """Current time as ISO-8601 UTC with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@router.get("/health", response_class=PlainTextResponse, summary="Liveness probe")
async def health_check() -> str:
    return "ok"


@router.get("/api/status", response_model=StatusResponse, summary="Service status")
async def service_status(request: Request) -> StatusResponse:
    settings = request.app.state.settings
    database = request.app.state.database

    return StatusResponse(
        name=__title__,
        version=__version__,
        python=platform.python_version(),
        env=settings.app_env,
        port=settings.port,
        db=describe_state(database.state),
        uptime_seconds=uptime_seconds(),
        time=utc_timestamp(),
    )
