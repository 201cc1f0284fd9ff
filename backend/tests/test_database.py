"""
Product Catalog Backend — Database Tests
==========================================

What we test:
    ✅ connect() → connected, close() → disconnected
    ✅ Unreachable database → DatabaseError after the retry budget
    ✅ Sessions commit on success and roll back on error
    ✅ Status names for connection states
    ✅ Connect backoff: exponential, capped, jittered by at most one second
"""

import warnings
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from catalog.database import Database, DatabaseState, describe_state
from catalog.exceptions import DatabaseError
from catalog.models.product import Product


class TestDescribeState:
    @pytest.mark.parametrize("state", list(DatabaseState))
    def test_known_states(self, state):
        assert describe_state(state) == state.value

    def test_unknown_state(self):
        assert describe_state(99) == "unknown"
        assert describe_state(None) == "unknown"


class TestConnection:
    @pytest.mark.asyncio
    async def test_connect_and_close(self, test_settings):
        database = Database.from_settings(test_settings)
        assert database.state is DatabaseState.DISCONNECTED

        await database.connect()
        assert database.state is DatabaseState.CONNECTED
        assert database.engine is not None

        await database.close()
        assert database.state is DatabaseState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_engine_unavailable_when_disconnected(self, test_settings):
        database = Database.from_settings(test_settings)

        with pytest.raises(DatabaseError):
            database.engine

    @pytest.mark.asyncio
    async def test_close_without_connect_is_harmless(self, test_settings):
        database = Database.from_settings(test_settings)

        await database.close()

        assert database.state is DatabaseState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_unreachable_database_fails_after_retries(self, tmp_path):
        database = Database(
            f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nested' / 'db.sqlite'}",
            connect_attempts=2,
            connect_min_wait=0,
            connect_max_wait=0,
        )

        with pytest.raises(DatabaseError) as exc_info:
            await database.connect()

        assert exc_info.value.context == {"attempts": 2}
        assert database.state is DatabaseState.DISCONNECTED


class TestSession:
    @pytest.mark.asyncio
    async def test_commit_on_success(self, database):
        async with database.session() as session:
            session.add(Product(name="Lamp", price=10, image="lamp.png"))

        async with database.session() as session:
            count = await session.scalar(select(func.count()).select_from(Product))
        assert count == 1

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, database):
        with pytest.raises(RuntimeError):
            async with database.session() as session:
                session.add(Product(name="Lamp", price=10, image="lamp.png"))
                await session.flush()
                raise RuntimeError("handler failed")

        async with database.session() as session:
            count = await session.scalar(select(func.count()).select_from(Product))
        assert count == 0

    @pytest.mark.asyncio
    async def test_session_requires_connection(self, test_settings):
        database = Database.from_settings(test_settings)

        with pytest.raises(DatabaseError):
            async with database.session():
                pass


class TestRetryWait:
    @staticmethod
    def _state(attempt):
        return SimpleNamespace(attempt_number=attempt)

    def test_exponential_backoff_with_bounded_jitter(self):
        wait = Database("sqlite+aiosqlite://", connect_min_wait=1, connect_max_wait=10).retry_wait()

        for _ in range(20):
            assert 1 <= wait(self._state(1)) <= 2
            assert 4 <= wait(self._state(3)) <= 5
            assert 10 <= wait(self._state(10)) <= 11

    def test_zero_waits_never_sleep(self):
        wait = Database("sqlite+aiosqlite://", connect_min_wait=0, connect_max_wait=0).retry_wait()

        assert wait(self._state(1)) == 0
        assert wait(self._state(5)) == 0

    def test_building_the_wait_emits_no_deprecation_warning(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            Database("sqlite+aiosqlite://").retry_wait()

        assert not [w for w in caught if issubclass(w.category, DeprecationWarning)]
