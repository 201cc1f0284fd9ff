"""
Product Catalog Backend — Preflight Short-Circuit
===================================================

Every OPTIONS request is answered with an empty 204 right here. Metrics,
rate limiting and routing sit below this stage, so browser preflight
traffic is never counted against a client's quota.
"""

from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send


class PreflightMiddleware:
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] == "OPTIONS":
            await Response(status_code=204)(scope, receive, send)
            return
        await self.app(scope, receive, send)
