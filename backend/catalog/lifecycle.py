"""
Product Catalog Backend — Lifecycle Coordinator
=================================================

What:  Sequences process startup and graceful shutdown around the HTTP
       listener and the database connection.
Why:   The listener must never be bound without a working database, and the
       database must not be closed while requests are still in flight.
How:   `LifecycleCoordinator.run()` drives a small state machine and
       returns a `LifecycleResult`; only the process entry point turns that
       into an exit code, so the coordinator is testable in-process.

State Machine:

    starting ──connect ok──▶ listening ──SIGINT/SIGTERM──▶ shutting-down ──▶ stopped
        │                                                       │
        └──connect failed / bind failed──▶ failed               └─ close failed → stopped (ok=False)

Startup:
    1. Connect the database (retries are the Database's own policy)
    2. Only then build the uvicorn server on HOST:PORT; `listening` once
       its sockets are bound

Shutdown:
    1. First SIGINT/SIGTERM → `shutting-down`, server.should_exit = True.
       uvicorn stops accepting, lets in-flight requests finish, runs the
       ASGI lifespan shutdown, and returns from serve().
    2. Close the database (pool disposed, nothing forced)
    3. `stopped`; result ok unless the close raised

    Any further signal while shutting down is logged and ignored; it does
    not force-exit or restart the sequence.
"""

import asyncio
import enum
import logging
import signal
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

import uvicorn
from fastapi import FastAPI

from catalog.config import Settings
from catalog.database import Database

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ServerState(str, enum.Enum):
    STARTING = "starting"
    LISTENING = "listening"
    SHUTTING_DOWN = "shutting-down"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class LifecycleResult:
    """Outcome of a full run; the entry point maps it to the exit status."""
    ok: bool
    state: ServerState
    error: Optional[BaseException] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


class ServerLike(Protocol):
    should_exit: bool
    started: bool

    async def serve(self) -> Any: ...


ServerFactory = Callable[[uvicorn.Config, "LifecycleCoordinator"], ServerLike]


class CoordinatedServer(uvicorn.Server):
    """
    uvicorn server that reports to a LifecycleCoordinator.

    - `startup()` marks the coordinator as listening once sockets are bound.
    - `handle_exit()` (uvicorn's signal handler) is routed to
      `coordinator.request_shutdown()`. Because the signal is not recorded
      as captured, uvicorn doesn't re-raise it after serve() returns, which
      would otherwise kill the process before the database is closed.
    """

    def __init__(self, config: uvicorn.Config, coordinator: "LifecycleCoordinator"):
        super().__init__(config)
        self.coordinator = coordinator

    async def startup(self, sockets=None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            self.coordinator.mark_listening()

    def handle_exit(self, sig: int, frame) -> None:
        self.coordinator.request_shutdown(signal.Signals(sig).name)


class LifecycleCoordinator:
    def __init__(
        self,
        app: FastAPI,
        settings: Settings,
        database: Database,
        server_factory: ServerFactory = CoordinatedServer,
    ):
        self.app = app
        self.settings = settings
        self.database = database
        self._server_factory = server_factory
        self._server: Optional[ServerLike] = None
        self.state = ServerState.STARTING

    # ── Public API ────────────────────────────────────────────────────────

    async def run(self) -> LifecycleResult:
        """Connect, serve until a shutdown is requested, then close the database."""
        self.state = ServerState.STARTING
        installed = self._install_signal_handlers()
        try:
            return await self._run()
        finally:
            self._remove_signal_handlers(installed)

    def request_shutdown(self, reason: str = "shutdown") -> None:
        """
        Begin graceful shutdown. Idempotent: only the first call has effect.

        Safe to call from a signal handler; it only flips flags.
        """
        if self.state in (ServerState.SHUTTING_DOWN, ServerState.STOPPED, ServerState.FAILED):
            logger.info("%s received while %s; ignoring", reason, self.state.value)
            return

        logger.info("%s received. Closing...", reason)
        self.state = ServerState.SHUTTING_DOWN
        if self._server is not None:
            self._server.should_exit = True

    def mark_listening(self) -> None:
        if self.state is ServerState.STARTING:
            self.state = ServerState.LISTENING
            logger.info("Server running at http://localhost:%d", self.settings.port)

    # ── Internals ─────────────────────────────────────────────────────────

    async def _run(self) -> LifecycleResult:
        try:
            await self.database.connect()
        except Exception as exc:
            logger.error("Failed to start server: %s", exc)
            self.state = ServerState.FAILED
            return LifecycleResult(ok=False, state=self.state, error=exc)

        if self.state is ServerState.SHUTTING_DOWN:
            # Signalled while the database was still connecting
            return await self._close_database()

        self._server = self._server_factory(self._build_config(), self)
        bind_error: Optional[BaseException] = None
        try:
            await self._server.serve()
        except SystemExit as exc:
            # uvicorn calls sys.exit(1) when it cannot bind the socket
            bind_error = exc

        if not self._server.started and self.state is not ServerState.SHUTTING_DOWN:
            logger.error(
                "Failed to start server: could not listen on %s:%d",
                self.settings.host,
                self.settings.port,
            )
            await self._close_database()
            self.state = ServerState.FAILED
            return LifecycleResult(
                ok=False,
                state=self.state,
                error=bind_error or RuntimeError("server did not start"),
            )

        return await self._close_database()

    async def _close_database(self) -> LifecycleResult:
        self.state = ServerState.SHUTTING_DOWN
        try:
            await self.database.close()
        except Exception as exc:
            logger.error("Shutdown error: %s", exc, exc_info=True)
            self.state = ServerState.STOPPED
            return LifecycleResult(ok=False, state=self.state, error=exc)

        self.state = ServerState.STOPPED
        return LifecycleResult(ok=True, state=self.state)

    def _build_config(self) -> uvicorn.Config:
        return uvicorn.Config(
            self.app,
            host=self.settings.host,
            port=self.settings.port,
            lifespan="on",
            log_config=None,  # setup_logging() owns logging
            access_log=False,  # catalog.access replaces it
            server_header=False,
            proxy_headers=self.settings.trust_proxy,
            # X-Forwarded-For is only read from these peers (the reverse proxy)
            forwarded_allow_ips=(
                self.settings.forwarded_allow_ips if self.settings.trust_proxy else None
            ),
        )

    def _install_signal_handlers(self) -> bool:
        """
        Cover the connect phase, before uvicorn installs its own handlers.

        While serving, uvicorn's handlers take over and call handle_exit;
        they restore these when serve() returns.
        """
        loop = asyncio.get_running_loop()
        try:
            for sig in HANDLED_SIGNALS:
                loop.add_signal_handler(sig, self.request_shutdown, sig.name)
        except (NotImplementedError, RuntimeError):
            # Windows, or not on the main thread
            return False
        return True

    def _remove_signal_handlers(self, installed: bool) -> None:
        if not installed:
            return
        loop = asyncio.get_running_loop()
        for sig in HANDLED_SIGNALS:
            loop.remove_signal_handler(sig)
