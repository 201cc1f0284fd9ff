"""
Product Catalog Backend — Test Configuration (conftest.py)
============================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own Settings, SQLite database file, metrics
       registry and rate limiter, injected into a fresh app through
       create_app(). Nothing touches the process-wide singletons.

Fixture Hierarchy (all function-scoped):
    test_settings ─┬─ database (connected, aiosqlite in tmp_path)
                   ├─ metrics_registry (no process collectors)
                   ├─ limiter (100 / 900 s)
                   └─ app ── test_client (httpx AsyncClient over ASGITransport)
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from catalog.config import Settings
from catalog.database import Database
from catalog.main import create_app
from catalog.metrics import HttpMetrics
from catalog.middleware.rate_limit import FixedWindowRateLimiter

ALLOWED_ORIGIN = "http://localhost:3000"


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        db_connect_attempts=1,
        db_connect_min_wait=0,
        db_connect_max_wait=0,
        app_env="test",
        log_level="WARNING",
        client_origin=ALLOWED_ORIGIN,
        port=5000,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest_asyncio.fixture
async def database(test_settings) -> AsyncGenerator[Database, None]:
    """A connected database with the products table created."""
    db = Database.from_settings(test_settings)
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def metrics_registry() -> HttpMetrics:
    return HttpMetrics(process_metrics=False)


@pytest.fixture
def limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(max_requests=100, window_seconds=900)


@pytest.fixture
def app(test_settings, database, metrics_registry, limiter):
    return create_app(
        test_settings,
        database=database,
        metrics_registry=metrics_registry,
        limiter=limiter,
    )


@pytest_asyncio.fixture
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the app in-process.

    ASGITransport reports every request as coming from 127.0.0.1, so all
    requests from one client share a rate-limit window.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
