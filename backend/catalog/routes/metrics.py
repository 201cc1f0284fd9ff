"""
Product Catalog Backend — Prometheus Scrape Endpoint
======================================================

GET /metrics renders the app's HttpMetrics registry. It sits outside the
/api prefix (never rate-limited) and is excluded from both the access log
and the metrics middleware, so a scrape only ever reflects prior traffic.
"""

from fastapi import APIRouter, Request, Response

router = APIRouter(tags=["Metrics"])


@router.get("/metrics", summary="Prometheus metrics", include_in_schema=False)
async def scrape_metrics(request: Request) -> Response:
    metrics = request.app.state.metrics
    return Response(content=metrics.render(), media_type=metrics.content_type)
