"""
Product Catalog Backend — Middleware Package
==============================================

What:  The request pipeline every request passes through.

Pipeline (request direction; responses travel back in reverse):

    1. SecurityHeadersMiddleware   hardening headers on every response
    2. GZipMiddleware              response compression (Starlette)
    3. CORSDecisionMiddleware      reflect / omit / n/a on Origin
    4. RequestLoggingMiddleware    access log, skips /health and /metrics
    5. JSONBodyMiddleware          JSON-only bodies, size limit
    6. PreflightMiddleware         OPTIONS → 204, nothing below sees it
    7. MetricsMiddleware           duration histogram + request counter
    8. (GET /metrics lives outside the limiter's prefix)
    9. RateLimitMiddleware         fixed window, /api only
   10. Router
   11. Not-found handler           {"error": "Not found"}
   12. ErrorHandlerMiddleware      {"error": message}, status or 500

Starlette runs the LAST added middleware FIRST, so `create_app()` adds
them bottom-up (12 → 1).

Everything below GZip is plain ASGI middleware, never BaseHTTPMiddleware:
`call_next` re-streams the body in `more_body` chunks, which GZip treats as
a stream and compresses regardless of its size threshold.
"""
