"""
Product Catalog Backend — Access Logging Middleware
=====================================================

What:  One log line per HTTP request on the `catalog.access` logger.
Why:   uvicorn's own access log is silenced in `setup_logging()` so that the
       skip list and the production/development formats apply uniformly.

Formats:
    production (terse):   GET /api/products 200 512 - 3.127 ms
    development (verbose): GET /api/products 200 3.127 ms - 512 from 10.0.0.7

Skipped paths:
    /health and /metrics are polled by Docker and Prometheus every few
    seconds; logging them would drown everything else.
"""

import logging
import time
from typing import Iterable

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("catalog.access")

DEFAULT_SKIP_PATHS = frozenset({"/health", "/metrics"})


def _client_ip(scope: Scope) -> str:
    client = scope.get("client")
    return client[0] if client else "unknown"


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware:
    """
    Logs method, URL, status, response length and duration.

    Log level follows the status class: 5xx → ERROR, 4xx → WARNING,
    everything else → INFO. A request whose app raised before responding
    is logged as 500.
    """

    def __init__(
        self,
        app: ASGIApp,
        production: bool = False,
        skip_paths: Iterable[str] = DEFAULT_SKIP_PATHS,
    ):
        self.app = app
        self.production = production
        self.skip_paths = frozenset(skip_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] in self.skip_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        status = 500
        length = "-"

        async def send_wrapper(message: Message) -> None:
            nonlocal status, length
            if message["type"] == "http.response.start":
                status = message["status"]
                length = Headers(raw=message.get("headers", [])).get("content-length", "-")
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._log(scope, status, length, duration_ms)

    def _log(self, scope: Scope, status: int, length: str, duration_ms: float) -> None:
        method = scope["method"]
        url = scope["path"]
        query = scope.get("query_string", b"").decode("latin-1")
        if query:
            url = f"{url}?{query}"
        client_ip = _client_ip(scope)
        extra = {
            "method": method,
            "path": scope["path"],
            "status": status,
            "duration_ms": round(duration_ms, 3),
            "client_ip": client_ip,
        }

        if self.production:
            logger.log(
                _level_for(status),
                "%s %s %d %s - %.3f ms",
                method, url, status, length, duration_ms,
                extra=extra,
            )
        else:
            logger.log(
                _level_for(status),
                "%s %s %d %.3f ms - %s from %s",
                method, url, status, duration_ms, length, client_ip,
                extra=extra,
            )
