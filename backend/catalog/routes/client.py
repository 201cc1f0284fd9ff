"""
Product Catalog Backend — Built Frontend Serving
==================================================

What:  Serves the built single-page frontend from CLIENT_DIST.
When:  Only if SERVE_CLIENT=true AND CLIENT_DIST/index.html exists; in the
       usual deployment nginx serves the bundle and this router is absent.

Behavior:
    GET /<file>      the file, if it exists inside the bundle
    GET /<anything>  index.html (client-side routing fallback)
    GET /api/...     never served from here; falls through to the JSON 404

Paths are resolved and checked against the bundle root, so `..` segments
can't escape it.
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import FileResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


def build_client_router(dist: Path) -> Optional[APIRouter]:
    """Return the SPA router, or None when there is no built bundle."""
    root = Path(dist).resolve()
    index = root / "index.html"
    if not index.is_file():
        logger.warning("SERVE_CLIENT is on but %s was not found; not serving the client", index)
        return None

    router = APIRouter(include_in_schema=False)

    @router.get("/{full_path:path}")
    async def serve_client(full_path: str) -> FileResponse:
        if full_path == "api" or full_path.startswith("api/"):
            raise HTTPException(status_code=404)

        if full_path:
            candidate = (root / full_path).resolve()
            if candidate.is_relative_to(root) and candidate.is_file():
                return FileResponse(candidate)

        return FileResponse(index)

    logger.info("Serving client bundle from %s", root)
    return router
