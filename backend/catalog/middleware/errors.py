"""
Product Catalog Backend — Error Terminator
============================================

What:  Turns any exception raised by a route, dependency or service into
       the JSON error envelope `{"error": message}`.
How:   Innermost middleware (added first), so its responses still travel
       back out through metrics, CORS, compression and security headers.
       FastAPI's own HTTPException / RequestValidationError handlers are
       registered in `catalog.main` and reuse `error_response()`.

Status resolution:
    exc.status       (CatalogError and anything else that sets it)
    exc.status_code  (Starlette/FastAPI HTTPException style)
    500              otherwise

Logging:
    Outside production the full traceback is logged; in production only
    5xx errors are logged, as a single line without the traceback. The
    response body always carries the message.

If the response has already started when the exception arrives, nothing
can be sent any more and the exception propagates to the server.
"""

import logging
from typing import Optional

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from catalog.exceptions import CatalogError

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Internal server error"


def error_response(status: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message}, headers=headers)


def resolve_status(exc: BaseException) -> int:
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and 400 <= value <= 599:
            return value
    return 500


def resolve_message(exc: BaseException) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return message or DEFAULT_MESSAGE


class ErrorHandlerMiddleware:
    """Catches everything the route layer raises; never lets it crash the server."""

    def __init__(self, app: ASGIApp, production: bool = False):
        self.app = app
        self.production = production

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                raise
            response = self._handle(scope, exc)
            await response(scope, receive, send)

    def _handle(self, scope: Scope, exc: Exception) -> JSONResponse:
        status = resolve_status(exc)
        message = resolve_message(exc)
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")

        if not self.production:
            context = exc.context if isinstance(exc, CatalogError) else {}
            logger.error(
                "Error: %s %s → %d %s | Context: %s",
                method,
                path,
                status,
                message,
                context,
                exc_info=exc,
            )
        elif status >= 500:
            logger.error("%s %s → %d %s", method, path, status, message)

        return error_response(status, message)
