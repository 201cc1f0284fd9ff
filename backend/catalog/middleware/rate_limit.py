"""
Product Catalog Backend — Rate Limiting Middleware
====================================================

What:  Per-client fixed-window rate limiter for the /api prefix.
Why:   Protects the API from abuse without requiring authentication.
How:   `FixedWindowRateLimiter` keeps one (count, reset_at) window per
       client address; `RateLimitMiddleware` consults it for requests under
       the configured prefix and attaches the standard RateLimit headers.

Algorithm: Fixed Window Counter
    1. First request from a key opens a window ending `window_seconds` later
    2. Every request in the window (admitted or rejected) increments the count
    3. count > max_requests → 429
    4. A request at or after reset_at opens a fresh window

    Trade-off vs sliding window: a client can burst up to 2 × max across a
    window boundary, in exchange for O(1) state per client.

Not gated:
    - anything outside the prefix (/health, /metrics, static assets)
    - OPTIONS (normally already answered by PreflightMiddleware)

Headers on every gated response (IETF draft "RateLimit header fields"):
    RateLimit-Policy: 100;w=900
    RateLimit-Limit: 100
    RateLimit-Remaining: 42
    RateLimit-Reset: 317          (seconds until the window resets)
Legacy X-RateLimit-* headers are never sent.

Multi-worker note:
    State is per process. With several uvicorn workers each keeps its own
    windows; a shared store (Redis INCR + EXPIRE) would be needed for a
    global limit.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from catalog.middleware.errors import error_response

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."

# Prune expired windows every N hits
_CLEANUP_INTERVAL = 1000


@dataclass
class _Window:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_after: float  # seconds until the current window resets


class FixedWindowRateLimiter:
    """
    Thread-safe fixed-window counter table.

    The lock makes `hit()` atomic even under a threaded server; under the
    asyncio event loop it is uncontended since `hit()` never awaits.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 900,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._hits = 0

    @property
    def policy(self) -> str:
        return f"{self.max_requests};w={int(self.window_seconds)}"

    def hit(self, key: str) -> RateLimitResult:
        """Count one request for `key` and report whether it is admitted."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                window = _Window(count=0, reset_at=now + self.window_seconds)
                self._windows[key] = window
            window.count += 1

            self._hits += 1
            if self._hits % _CLEANUP_INTERVAL == 0:
                self._cleanup_expired(now)

            return RateLimitResult(
                allowed=window.count <= self.max_requests,
                limit=self.max_requests,
                remaining=max(0, self.max_requests - window.count),
                # reset_at - now can land a hair above the window in float math
                reset_after=min(float(self.window_seconds), max(0.0, window.reset_at - now)),
            )

    def reset(self, key: Optional[str] = None) -> None:
        """Forget one key's window, or every window."""
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def __len__(self) -> int:
        return len(self._windows)

    def _cleanup_expired(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now >= w.reset_at]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug("Cleaned up %d expired rate-limit windows", len(expired))


def _client_ip(scope: Scope) -> str:
    client = scope.get("client")
    return client[0] if client else "unknown"


def _whole_seconds(seconds: float) -> int:
    """Round up to whole seconds, ignoring float noise below a microsecond."""
    return math.ceil(round(seconds, 6))


class RateLimitMiddleware:
    """Applies a FixedWindowRateLimiter to requests under `prefix`."""

    def __init__(
        self,
        app: ASGIApp,
        limiter: FixedWindowRateLimiter,
        prefix: str = "/api",
    ):
        self.app = app
        self.limiter = limiter
        self.prefix = prefix.rstrip("/")

    def _is_gated(self, scope: Scope) -> bool:
        if scope["type"] != "http" or scope["method"] == "OPTIONS":
            return False
        path = scope["path"]
        return path == self.prefix or path.startswith(self.prefix + "/")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if not self._is_gated(scope):
            await self.app(scope, receive, send)
            return

        client_ip = _client_ip(scope)
        result = self.limiter.hit(client_ip)

        if not result.allowed:
            logger.warning(
                "Rate limit exceeded for %s on %s %s",
                client_ip,
                scope["method"],
                scope["path"],
            )
            response = error_response(429, RATE_LIMIT_MESSAGE)
            response.headers["Retry-After"] = str(_whole_seconds(result.reset_after))
            self._apply_headers(response.headers, result)
            await response(scope, receive, send)
            return

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                self._apply_headers(MutableHeaders(scope=message), result)
            await send(message)

        await self.app(scope, receive, send_wrapper)

    def _apply_headers(self, headers: MutableHeaders, result: RateLimitResult) -> None:
        headers["RateLimit-Policy"] = self.limiter.policy
        headers["RateLimit-Limit"] = str(result.limit)
        headers["RateLimit-Remaining"] = str(result.remaining)
        headers["RateLimit-Reset"] = str(_whole_seconds(result.reset_after))
