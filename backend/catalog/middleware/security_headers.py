"""
Product Catalog Backend — Security Headers Middleware
=======================================================

What:  Sets a fixed set of hardening headers on every response.
When:  Outermost stage of the pipeline, so even 404s, 429s, preflight 204s
       and error envelopes carry them.

Headers (the usual hardened-web-server defaults):
    Content-Security-Policy            same-origin resources only
    Cross-Origin-Opener-Policy         same-origin
    Cross-Origin-Resource-Policy       same-origin
    Origin-Agent-Cluster               ?1
    Referrer-Policy                    no-referrer
    Strict-Transport-Security          one year, include subdomains
    X-Content-Type-Options             nosniff
    X-DNS-Prefetch-Control             off
    X-Download-Options                 noopen
    X-Frame-Options                    SAMEORIGIN
    X-Permitted-Cross-Domain-Policies  none
    X-XSS-Protection                   0 (legacy auditor disabled)
"""

from typing import Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

CONTENT_SECURITY_POLICY = "; ".join(
    [
        "default-src 'self'",
        "base-uri 'self'",
        "font-src 'self' https: data:",
        "form-action 'self'",
        "frame-ancestors 'self'",
        "img-src 'self' data: https:",
        "object-src 'none'",
        "script-src 'self'",
        "script-src-attr 'none'",
        "style-src 'self' https: 'unsafe-inline'",
        "upgrade-insecure-requests",
    ]
)

SECURITY_HEADERS: Dict[str, str] = {
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds SECURITY_HEADERS to every response without overriding route-set values."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response
