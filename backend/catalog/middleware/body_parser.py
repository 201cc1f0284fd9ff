"""
Product Catalog Backend — JSON Body Parsing Middleware
========================================================

What:  Admits only JSON request bodies, up to a size limit.
When:  After access logging, before the preflight short-circuit, so
       rejected bodies still show up in the access log.

Rules for requests that carry a body:
    Content-Length above the limit        → 413 {"error": "Request entity too large"}
    Content-Type not JSON                 → 400 {"error": "Request body must be JSON"}
    Body is not valid JSON                → 400 {"error": "Invalid JSON body"}
Requests without a body pass through untouched.

The body is read here in full (stopping as soon as it exceeds the limit)
and replayed to the app as a single `http.request` message, so handlers
parse it again through FastAPI's normal Pydantic binding.
"""

import json
import logging

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from catalog.exceptions import PayloadTooLargeError, ValidationError
from catalog.middleware.errors import error_response

logger = logging.getLogger(__name__)


def is_json_content_type(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def _replay(body: bytes, receive: Receive) -> Receive:
    """A receive channel that yields `body` once, then defers to the real one."""
    delivered = False

    async def replay() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class JSONBodyMiddleware:
    def __init__(self, app: ASGIApp, limit: int = 100 * 1024):
        self.app = app
        self.limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        if not self._has_body(headers):
            await self.app(scope, receive, send)
            return

        try:
            body = await self._read(headers, receive)
        except (ValidationError, PayloadTooLargeError) as exc:
            logger.debug("Rejected body on %s %s: %s", scope["method"], scope["path"], exc.message)
            await error_response(exc.status, exc.message)(scope, receive, send)
            return

        await self.app(scope, _replay(body, receive), send)

    @staticmethod
    def _has_body(headers: Headers) -> bool:
        if "transfer-encoding" in headers:
            return True
        length = headers.get("content-length")
        return bool(length) and length.strip() != "0"

    async def _read(self, headers: Headers, receive: Receive) -> bytes:
        declared = headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.limit:
            raise PayloadTooLargeError(self.limit)

        if not is_json_content_type(headers.get("content-type", "")):
            raise ValidationError("Request body must be JSON")

        chunks = []
        size = 0
        while True:
            message = await receive()
            if message["type"] != "http.request":
                # Client went away; the app will see the disconnect itself
                break
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.limit:
                raise PayloadTooLargeError(self.limit)
            chunks.append(chunk)
            if not message.get("more_body", False):
                break
        body = b"".join(chunks)

        if body.strip():
            try:
                json.loads(body)
            except ValueError:
                raise ValidationError("Invalid JSON body")
        return body
