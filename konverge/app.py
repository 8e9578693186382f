"""Application bootstrap for Konverge.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config -> logging -> K8s client -> reconcile loop -> REST

Shutdown is graceful: the loop finishes any pass in flight, then components
are stopped in reverse startup order.  Each component's stop error is caught
and logged independently.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from konverge.config import load_config
from konverge.models.config import KonvergeConfig
from konverge.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from konverge.cluster.base import ClusterAPI
    from konverge.reconcile.scheduler import ReconcileLoop

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KonvergeApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already stopped)
    is safe.
    """

    def __init__(self) -> None:
        self.config: KonvergeConfig | None = None

        self._cluster: ClusterAPI | None = None
        self._loop: ReconcileLoop | None = None
        self._rest_server: object | None = None

        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
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
        try:
            self.config = load_config()
        except ValueError as exc:
            raise _ComponentError("config", exc) from exc

        # --- 2. Logging -------------------------------------------------
        setup_logging(
            self.config.log.level,
            directory=self.config.reconcile.directory,
            apply_mode=self.config.reconcile.apply_mode.value,
        )
        self._log = get_logger("app")
        self._log.info(
            "konverge starting",
            version=_konverge_version(),
        )

        # --- 3. Kubernetes client ----------------------------------------
        await self._start_cluster()

        # --- 4. Reconcile loop -------------------------------------------
        await self._start_reconcile_loop()

        # --- 5. REST API -------------------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info("konverge started")

    async def _start_cluster(self) -> None:
        """Connect to the cluster from in-cluster config or kubeconfig."""
        assert self._log is not None
        self._log.debug("starting k8s client")
        try:
            from konverge.cluster.kubernetes import KubernetesCluster

            self._cluster = await KubernetesCluster.connect()
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def _start_reconcile_loop(self) -> None:
        assert self._log is not None
        assert self.config is not None
        assert self._cluster is not None
        self._log.debug("starting reconcile loop")
        try:
            from konverge.reconcile.scheduler import ReconcileLoop

            cfg = self.config.reconcile
            loop = ReconcileLoop(
                cluster=self._cluster,
                directory=cfg.directory,
                interval=cfg.interval_seconds,
                retry_delay=cfg.retry_delay_seconds,
                mode=cfg.apply_mode,
            )
            task = asyncio.create_task(loop.run(), name="reconcile-loop")
            self._background_tasks.append(task)
            self._loop = loop
        except Exception as exc:
            raise _ComponentError("reconcile_loop", exc) from exc

    async def _start_rest(self) -> None:
        """Start the uvicorn status server if enabled."""
        assert self._log is not None
        assert self.config is not None
        if not self.config.api.enabled:
            self._log.info("rest api disabled (api.enabled=false)")
            return

        self._log.debug("starting rest api")
        try:
            import uvicorn

            from konverge.api import create_app

            uv_config = uvicorn.Config(
                app=create_app(loop=self._loop),
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            # The status API is optional; reconciliation keeps running without it
            self._log.warning("rest api failed to start", error=str(exc))
            self._rest_server = None

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("konverge shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True  # type: ignore[attr-defined]
        if self._loop is not None:
            self._loop.stop()

        if self._background_tasks:
            _done, pending = await asyncio.wait(self._background_tasks, timeout=_SHUTDOWN_GRACE_SECONDS)
            for task in pending:
                log.warning("task did not stop in time; cancelling", task=task.get_name())
                task.cancel()
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        await self._stop_cluster()
        log.info("konverge stopped")

    async def _stop_cluster(self) -> None:
        """Close the kubernetes-asyncio connection pool."""
        if self._cluster is None:
            return
        log = self._log or get_logger("app")
        try:
            await self._cluster.close()
        except Exception as exc:
            log.debug("k8s client close raised (non-fatal)", error=str(exc))
        self._cluster = None


def _konverge_version() -> str:
    from konverge import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = KonvergeApp()
    loop = asyncio.get_running_loop()
    shutdown = asyncio.Event()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.set)

    try:
        await app.start()
        await shutdown.wait()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app.running:
            await app.stop()
