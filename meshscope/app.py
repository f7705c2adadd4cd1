"""Application bootstrap for meshscope.

Wires the service in dependency order and manages the asyncio lifecycle.
Startup order: config -> logging -> REST

The analysis engine itself is stateless, so the only long-lived component
is the uvicorn server. Shutdown asks it to exit and waits for the serve
task to drain, bounded by a grace period.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from meshscope.config import load_config
from meshscope.errors import ConfigurationError
from meshscope.models.config import MeshScopeConfig
from meshscope.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog
    import uvicorn

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class MeshScopeApp:
    """Application root. Owns the REST server and coordinates its lifecycle.

    ``stop()`` is safe to call on an app that was never started or has
    already stopped.
    """

    def __init__(self, config: MeshScopeConfig | None = None) -> None:
        self.config: MeshScopeConfig | None = config
        self._rest_server: uvicorn.Server | None = None
        self._background_tasks: list[asyncio.Task[None]] = []
        self._running = False
        self._stopped = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            try:
                self.config = load_config()
            except ConfigurationError as exc:
                raise _ComponentError("config", exc) from exc

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("meshscope starting", version=_meshscope_version())

        # --- 3. REST API ------------------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info("meshscope started", port=self.config.api.port)

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn

            from meshscope.api import create_app

            fastapi_app = create_app(analysis_config=self.config.analysis)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host=self.config.api.host,
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", host=self.config.api.host, port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def serve_until(self, shutdown: asyncio.Event) -> None:
        """Block until *shutdown* is set or the REST server exits on its own."""
        waiter = asyncio.create_task(shutdown.wait(), name="shutdown-signal")
        try:
            await asyncio.wait([waiter, *self._background_tasks], return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Ask the REST server to exit, then wait for it to drain.

        The drain is bounded by ``_SHUTDOWN_GRACE_SECONDS``; a server still
        running after that is cancelled.
        """
        if self._log is None or self._stopped:
            return
        self._stopped = True

        log = self._log
        log.info("meshscope shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True

        if self._background_tasks:
            done, pending = await asyncio.wait(self._background_tasks, timeout=_SHUTDOWN_GRACE_SECONDS)
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    log.error("rest server failed", error=str(task.exception()))
            if pending:
                log.warning("rest server stop timed out", timeout=_SHUTDOWN_GRACE_SECONDS)
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
        self._background_tasks.clear()
        self._rest_server = None

        log.info("meshscope stopped")


def _meshscope_version() -> str:
    from meshscope import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------

_SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


async def main(config: MeshScopeConfig | None = None) -> None:
    """Serve until SIGTERM or SIGINT, then drain within the grace period.

    ``stop()`` runs in this coroutine rather than in a task spawned by the
    signal handler, so ``asyncio.run`` cannot cancel a drain in progress.
    """
    app = MeshScopeApp(config)
    loop = asyncio.get_running_loop()
    shutdown = asyncio.Event()
    for sig in _SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, shutdown.set)

    try:
        try:
            await app.start()
        except _ComponentError as exc:
            get_logger("app").critical("fatal startup error", component=exc.component, error=str(exc.cause))
            await app.stop()
            raise SystemExit(1) from exc

        try:
            await app.serve_until(shutdown)
        finally:
            await app.stop()
    finally:
        for sig in _SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)
