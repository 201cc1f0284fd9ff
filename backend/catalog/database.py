"""
Product Catalog Backend — Database Connection Management
==========================================================

What:  A `Database` object owning the async SQLAlchemy engine, its
       connection state, and the per-request session dependency.
Why:   The lifecycle coordinator sequences startup and shutdown around
       `connect()` and `close()`, and `/api/status` reports `state`. Keeping
       the engine inside an explicitly constructed object (instead of a
       module-level engine) lets tests create isolated databases.
How:   `connect()` builds the engine and probes it with `SELECT 1`, retrying
       with exponential backoff (tenacity). `close()` disposes the pool
       without forcing in-flight sessions.

Connection States:
    disconnected → connecting → connected → disconnecting → disconnected
    A failed connect falls back to `disconnected`.
"""

import enum
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)
from tenacity.wait import wait_base

from catalog.config import Settings
from catalog.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


class DatabaseState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CONNECTING = "connecting"
    DISCONNECTING = "disconnecting"


def describe_state(state: object) -> str:
    """Status-report name for a connection state; anything unrecognized is 'unknown'."""
    if isinstance(state, DatabaseState):
        return state.value
    return "unknown"


class Database:
    """
    Owns the async engine and tracks connection state.

    Usage:
        database = Database.from_settings(settings)
        await database.connect()
        async with database.session() as session:
            ...
        await database.close()
    """

    def __init__(
        self,
        url: str,
        *,
        connect_attempts: int = 5,
        connect_min_wait: float = 1.0,
        connect_max_wait: float = 10.0,
        create_tables: bool = True,
        pool_pre_ping: bool = True,
        echo: bool = False,
    ):
        self.url = url
        self.connect_attempts = connect_attempts
        self.connect_min_wait = connect_min_wait
        self.connect_max_wait = connect_max_wait
        self.create_tables = create_tables
        self.pool_pre_ping = pool_pre_ping
        self.echo = echo
        self.state = DatabaseState.DISCONNECTED
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            connect_attempts=settings.db_connect_attempts,
            connect_min_wait=settings.db_connect_min_wait,
            connect_max_wait=settings.db_connect_max_wait,
            create_tables=settings.db_create_tables,
            pool_pre_ping=settings.db_pool_pre_ping,
            # SQL logging is noisy; only useful during development
            echo=settings.log_level == "DEBUG",
        )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None or self.state is not DatabaseState.CONNECTED:
            raise DatabaseError(
                "Database is not connected",
                context={"state": describe_state(self.state)},
            )
        return self._engine

    def retry_wait(self) -> wait_base:
        """
        Backoff between connect attempts.

        min_wait * 2^(attempt - 1), capped at max_wait, plus up to one second
        of random jitter (never more than max_wait).
        """
        return wait_exponential(
            multiplier=self.connect_min_wait,
            max=self.connect_max_wait,
        ) + wait_random(0, min(1.0, self.connect_max_wait))

    async def connect(self) -> None:
        """
        Create the engine and verify it can execute a query.

        Raises:
            DatabaseError: every attempt failed. The engine is disposed and
                the state returns to `disconnected`.
        """
        if self.state is DatabaseState.CONNECTED:
            return

        self.state = DatabaseState.CONNECTING
        engine = create_async_engine(
            self.url,
            pool_pre_ping=self.pool_pre_ping,
            echo=self.echo,
        )

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.connect_attempts),
                wait=self.retry_wait(),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    await self._probe(engine)
        except Exception as exc:
            await engine.dispose()
            self.state = DatabaseState.DISCONNECTED
            raise DatabaseError(
                f"Could not connect to database: {exc}",
                context={"attempts": self.connect_attempts},
            ) from exc

        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self.state = DatabaseState.CONNECTED
        logger.info("Database connected (%s)", engine.url.render_as_string(hide_password=True))

    async def _probe(self, engine: AsyncEngine) -> None:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            if self.create_tables:
                # Import registers the model on Base.metadata
                from catalog.models import product  # noqa: F401

                await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose the connection pool. Checked-out connections are not forced closed."""
        if self._engine is None:
            self.state = DatabaseState.DISCONNECTED
            return

        self.state = DatabaseState.DISCONNECTING
        try:
            await self._engine.dispose()
        except Exception:
            self.state = DatabaseState.CONNECTED
            raise
        self._engine = None
        self._session_factory = None
        self.state = DatabaseState.DISCONNECTED
        logger.info("Database connection closed.")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Yield a session that commits on success and rolls back on any error.

        The connection is returned to the pool even if the caller raises.
        """
        if self._session_factory is None:
            raise DatabaseError(
                "Database is not connected",
                context={"state": describe_state(self.state)},
            )
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Example usage in a route:
        @router.get("/products")
        async def list_products(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
