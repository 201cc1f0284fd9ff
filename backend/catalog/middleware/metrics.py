"""
Product Catalog Backend — Metrics Instrumentation Middleware
==============================================================

What:  Times every request and records it in `HttpMetrics`.
How:   Plain ASGI middleware (not BaseHTTPMiddleware) so it can watch the
       outgoing `send` messages: the completion callback fires exactly once,
       when the final `http.response.body` message has been handed to the
       server, i.e. after headers and body are sent.

Labels:
    method       request method
    route        matched route template with parameters collapsed
                 (`scope["route"]` is filled in by the router as the request
                 passes through, and read back here on completion), else
                 the raw path, else "unknown"
    status_code  status from `http.response.start`; 500 if the app raised
                 before starting a response

Excluded paths (default `/metrics`) are passed straight through, so a
scrape never records itself.
"""

import time
from typing import Callable, Iterable, Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from catalog.metrics import HttpMetrics, route_template


class MetricsMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        metrics: HttpMetrics,
        exclude_paths: Iterable[str] = ("/metrics",),
    ):
        self.app = app
        self.metrics = metrics
        self.exclude_paths = frozenset(exclude_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_code: Optional[int] = None
        on_complete = self._completion_callback(scope, start)

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                on_complete(status_code or 500)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            # Raised before/while responding, or the client went away mid-stream
            on_complete(status_code or 500)

    def _completion_callback(self, scope: Scope, start: float) -> Callable[[int], None]:
        fired = False

        def on_complete(status_code: int) -> None:
            nonlocal fired
            if fired:
                return
            fired = True
            route = getattr(scope.get("route"), "path", None)
            self.metrics.observe(
                method=scope.get("method", "UNKNOWN"),
                route=route_template(route, scope.get("path")),
                status_code=status_code,
                duration=time.perf_counter() - start,
            )

        return on_complete
