"""
Product Catalog Backend — Metrics Tests
=========================================

What we test:
    ✅ Route templates collapse path parameters to :param
    ✅ /api/products/1, /2, /3 share ONE series
    ✅ Scraping /metrics never records itself
    ✅ Histogram bucket boundaries
    ✅ Unmatched routes fall back to the raw path
    ✅ Preflights are answered before instrumentation
"""

import pytest

from catalog.metrics import DURATION_BUCKETS, HttpMetrics, route_template


def _requests(metrics: HttpMetrics, method: str, route: str, status: int):
    return metrics.registry.get_sample_value(
        "http_requests_total",
        {"method": method, "route": route, "status_code": str(status)},
    )


class TestRouteTemplate:
    @pytest.mark.parametrize(
        "route_path, expected",
        [
            ("/api/products/{product_id}", "/api/products/:param"),
            ("/api/products/:id", "/api/products/:param"),
            ("/{full_path:path}", "/:param"),
            ("/api/products", "/api/products"),
        ],
    )
    def test_parameters_collapse(self, route_path, expected):
        assert route_template(route_path) == expected

    def test_falls_back_to_raw_path(self):
        assert route_template(None, "/api/nonexistent") == "/api/nonexistent"

    def test_unknown_when_nothing_is_known(self):
        assert route_template(None, None) == "unknown"
        assert route_template("", "") == "unknown"


class TestHttpMetrics:
    def test_observe_records_counter_and_histogram(self):
        metrics = HttpMetrics(process_metrics=False)
        metrics.observe("GET", "/health", 200, 0.003)
        metrics.observe("GET", "/health", 200, 0.2)

        labels = {"method": "GET", "route": "/health", "status_code": "200"}
        assert metrics.registry.get_sample_value("http_requests_total", labels) == 2
        assert metrics.registry.get_sample_value("http_request_duration_seconds_count", labels) == 2
        assert metrics.registry.get_sample_value(
            "http_request_duration_seconds_bucket", {**labels, "le": "0.01"}
        ) == 1

    def test_registries_are_isolated(self):
        first = HttpMetrics(process_metrics=False)
        second = HttpMetrics(process_metrics=False)
        first.observe("GET", "/health", 200, 0.001)

        assert _requests(first, "GET", "/health", 200) == 1
        assert _requests(second, "GET", "/health", 200) is None

    def test_process_metrics_are_optional(self):
        with_process = HttpMetrics().render().decode()
        without = HttpMetrics(process_metrics=False).render().decode()

        assert "python_info" in with_process
        assert "python_info" not in without


class TestMetricsMiddleware:
    @pytest.mark.asyncio
    async def test_path_parameters_share_one_series(self, test_client, metrics_registry):
        for product_id in ("1", "2", "3"):
            response = await test_client.get(f"/api/products/{product_id}")
            assert response.status_code == 404

        assert _requests(metrics_registry, "GET", "/api/products/:param", 404) == 3

        exposition = metrics_registry.render().decode()
        for product_id in ("1", "2", "3"):
            assert f'route="/api/products/{product_id}"' not in exposition

    @pytest.mark.asyncio
    async def test_scrape_does_not_record_itself(self, test_client, metrics_registry):
        await test_client.get("/health")

        first = await test_client.get("/metrics")
        second = await test_client.get("/metrics")

        assert first.status_code == 200
        assert first.headers["content-type"].startswith("text/plain")
        assert 'route="/metrics"' not in second.text
        assert _requests(metrics_registry, "GET", "/health", 200) == 1
        assert 'http_requests_total{method="GET",route="/health",status_code="200"} 1.0' in second.text

    @pytest.mark.asyncio
    async def test_histogram_exposes_fixed_buckets(self, test_client):
        await test_client.get("/health")
        text = (await test_client.get("/metrics")).text

        for bound in DURATION_BUCKETS:
            assert f'le="{float(bound)}"' in text
        assert 'le="+Inf"' in text

    @pytest.mark.asyncio
    async def test_unmatched_route_uses_raw_path(self, test_client, metrics_registry):
        response = await test_client.get("/api/nonexistent")

        assert response.status_code == 404
        assert _requests(metrics_registry, "GET", "/api/nonexistent", 404) == 1

    @pytest.mark.asyncio
    async def test_created_status_is_labelled(self, test_client, metrics_registry):
        response = await test_client.post(
            "/api/products",
            json={"name": "Lamp", "price": 19.5, "image": "https://img.example/lamp.png"},
        )

        assert response.status_code == 201
        assert _requests(metrics_registry, "POST", "/api/products", 201) == 1

    @pytest.mark.asyncio
    async def test_preflight_is_not_instrumented(self, test_client, metrics_registry):
        await test_client.options("/api/products")

        assert _requests(metrics_registry, "OPTIONS", "/api/products", 204) is None

    @pytest.mark.asyncio
    async def test_rate_limited_requests_are_counted(self, test_client, metrics_registry, limiter):
        for _ in range(101):
            await test_client.get("/api/status")

        assert _requests(metrics_registry, "GET", "/api/status", 200) == 100
        assert _requests(metrics_registry, "GET", "/api/status", 429) == 1
