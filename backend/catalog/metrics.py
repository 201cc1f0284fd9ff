"""
Product Catalog Backend — Prometheus Metrics Registry
=======================================================

What:  The process's HTTP metrics: a request-duration histogram and a
       request counter, both labelled (method, route, status_code).
Why:   Owned by an explicitly constructed `HttpMetrics` object with its own
       CollectorRegistry instead of prometheus_client's global REGISTRY,
       so each app (and each test) gets isolated series.
How:   The metrics middleware calls `observe()` once per completed request;
       GET /metrics renders the registry in the text exposition format.

Label cardinality:
    Route labels are route *templates* with every path parameter collapsed
    to `:param`, so /api/products/1 and /api/products/2 share one series.
"""

import re
from typing import Optional, Sequence

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

DURATION_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5)
LABEL_NAMES = ("method", "route", "status_code")
PARAM_PLACEHOLDER = ":param"

# {product_id}, {full_path:path}, and Express-style :id segments
_PARAM_RE = re.compile(r"\{[^}]+\}|:[^/]+")


def route_template(route_path: Optional[str], raw_path: Optional[str] = None) -> str:
    """
    Label value for a request's route.

    Matched route template (parameters collapsed) if there is one, else the
    raw request path, else "unknown".
    """
    path = route_path or raw_path
    if not path:
        return "unknown"
    return _PARAM_RE.sub(PARAM_PLACEHOLDER, path)


class HttpMetrics:
    """Per-app Prometheus registry holding the HTTP request series."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        buckets: Sequence[float] = DURATION_BUCKETS,
        process_metrics: bool = True,
    ):
        self.registry = registry or CollectorRegistry()

        if process_metrics:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            LABEL_NAMES,
            buckets=tuple(buckets),
            registry=self.registry,
        )
        self.requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            LABEL_NAMES,
            registry=self.registry,
        )

    def observe(self, method: str, route: str, status_code: int, duration: float) -> None:
        """Record one completed request."""
        labels = (method, route, str(status_code))
        self.request_duration.labels(*labels).observe(duration)
        self.requests_total.labels(*labels).inc()

    def render(self) -> bytes:
        return generate_latest(self.registry)
