"""
Product Catalog Backend — CORS Decision Middleware
====================================================

What:  Decides, per request, whether to attach credentialed CORS headers.
Why:   Starlette's CORSMiddleware answers disallowed preflights with a
       400 "Disallowed CORS origin" body, which tells a caller which
       origins are not valid. Unknown origins here are rejected by omission:
       the request proceeds, no CORS headers are attached, and the
       browser's same-origin policy blocks the response.

Decision (tri-state, not a boolean):
    no Origin header       → NOT_APPLICABLE  (same-origin / non-browser)
    Origin in allow-set    → REFLECT         (echo origin, credentials on)
    Origin not in set      → OMIT            (no headers, no error)
"""

import enum
from typing import AbstractSet, Iterable, Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

ALLOW_METHODS = "GET,HEAD,PUT,PATCH,POST,DELETE"


class CorsDecision(enum.Enum):
    NOT_APPLICABLE = "n/a"
    REFLECT = "reflect"
    OMIT = "omit"


def decide(origin: Optional[str], allowed: AbstractSet[str]) -> CorsDecision:
    if not origin:
        return CorsDecision.NOT_APPLICABLE
    if origin in allowed:
        return CorsDecision.REFLECT
    return CorsDecision.OMIT


class CORSDecisionMiddleware:
    """
    Applies `decide()` to every request.

    Only decorates responses; it never short-circuits. Preflight requests
    are answered by PreflightMiddleware further down the chain, and pick up
    the reflected headers on the way back out.
    """

    def __init__(self, app: ASGIApp, allowed_origins: Iterable[str]):
        self.app = app
        self.allowed_origins = frozenset(allowed_origins)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_headers = Headers(scope=scope)
        origin = request_headers.get("origin")
        decision = decide(origin, self.allowed_origins)
        if decision is CorsDecision.NOT_APPLICABLE:
            await self.app(scope, receive, send)
            return

        is_preflight = scope["method"] == "OPTIONS"
        requested_headers = request_headers.get("access-control-request-headers")

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                if decision is CorsDecision.REFLECT:
                    headers["Access-Control-Allow-Origin"] = origin
                    headers["Access-Control-Allow-Credentials"] = "true"
                    if is_preflight:
                        headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
                        if requested_headers:
                            headers["Access-Control-Allow-Headers"] = requested_headers
                            headers.add_vary_header("Access-Control-Request-Headers")
                # Response depends on Origin whenever one was sent
                headers.add_vary_header("Origin")
            await send(message)

        await self.app(scope, receive, send_wrapper)
