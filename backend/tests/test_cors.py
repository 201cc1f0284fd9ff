"""
Product Catalog Backend — CORS Decision Tests
===============================================

What we test:
    ✅ Tri-state decision for absent / allowed / unknown origins
    ✅ Allowed origins get credentialed headers reflecting the origin
    ✅ Unknown origins get NO CORS headers and no error
    ✅ Preflight from an allowed origin is a 204 carrying allow-methods
"""

import pytest

from catalog.config import DEV_CLIENT_ORIGIN
from catalog.middleware.cors import CorsDecision, decide

from conftest import ALLOWED_ORIGIN

ALLOWED = frozenset({ALLOWED_ORIGIN, DEV_CLIENT_ORIGIN})


class TestDecide:
    def test_missing_origin_is_not_applicable(self):
        assert decide(None, ALLOWED) is CorsDecision.NOT_APPLICABLE
        assert decide("", ALLOWED) is CorsDecision.NOT_APPLICABLE

    def test_allowed_origin_is_reflected(self):
        assert decide(ALLOWED_ORIGIN, ALLOWED) is CorsDecision.REFLECT
        assert decide(DEV_CLIENT_ORIGIN, ALLOWED) is CorsDecision.REFLECT

    def test_unknown_origin_is_omitted(self):
        assert decide("https://evil.example", ALLOWED) is CorsDecision.OMIT

    def test_origin_match_is_exact(self):
        """No prefix or case-insensitive matching."""
        assert decide(ALLOWED_ORIGIN + "/", ALLOWED) is CorsDecision.OMIT
        assert decide("http://localhost:30000", ALLOWED) is CorsDecision.OMIT


class TestCorsMiddleware:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("origin", [ALLOWED_ORIGIN, DEV_CLIENT_ORIGIN])
    async def test_allowed_origin_gets_credentialed_headers(self, test_client, origin):
        response = await test_client.get("/api/status", headers={"Origin": origin})

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == origin
        assert response.headers["access-control-allow-credentials"] == "true"
        assert "Origin" in response.headers["vary"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("origin", ["https://evil.example", "null", "http://localhost:8080"])
    async def test_unknown_origin_is_silently_omitted(self, test_client, origin):
        response = await test_client.get("/api/status", headers={"Origin": origin})

        assert response.status_code == 200
        assert "access-control-allow-origin" not in response.headers
        assert "access-control-allow-credentials" not in response.headers
        assert "error" not in response.json()

    @pytest.mark.asyncio
    async def test_no_origin_no_cors_headers(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        assert "access-control-allow-origin" not in response.headers

    @pytest.mark.asyncio
    async def test_preflight_from_allowed_origin(self, test_client):
        response = await test_client.options(
            "/api/products",
            headers={
                "Origin": ALLOWED_ORIGIN,
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type",
            },
        )

        assert response.status_code == 204
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
        assert "POST" in response.headers["access-control-allow-methods"]
        assert response.headers["access-control-allow-headers"] == "content-type"

    @pytest.mark.asyncio
    async def test_preflight_from_unknown_origin_does_not_disclose(self, test_client):
        response = await test_client.options(
            "/api/products",
            headers={"Origin": "https://evil.example", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 204
        assert response.content == b""
        assert "access-control-allow-origin" not in response.headers
        assert "access-control-allow-methods" not in response.headers
