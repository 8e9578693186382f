"""Reconcile loop driver.

Runs enumerate -> load -> apply sequentially, then waits a fixed interval.
A pass that cannot start (discovery or manifest root failure) is logged and
retried after ``retry_delay`` seconds; the loop itself only ends on stop().
Each pass is stateless: both maps are rebuilt from scratch and discarded.
"""

from __future__ import annotations

import asyncio
import os

from konverge.cluster.base import ClusterAPI
from konverge.errors import KonvergeError
from konverge.models.config import ApplyMode
from konverge.models.results import PassResult
from konverge.observability.logging import get_logger, pass_context
from konverge.observability.metrics import (
    desired_objects,
    live_objects,
    pass_duration_seconds,
    passes_total,
)
from konverge.reconcile.engine import Reconciler
from konverge.state.live import collect_live_state
from konverge.state.manifests import load_manifests

_log = get_logger("reconcile.scheduler")


class ReconcileLoop:
    """Owns the interval, the stop token and the status of the latest pass."""

    def __init__(
        self,
        cluster: ClusterAPI,
        directory: str | os.PathLike[str],
        interval: float = 10,
        retry_delay: float = 10,
        mode: ApplyMode = ApplyMode.ALWAYS_UPDATE,
    ) -> None:
        self._cluster = cluster
        self._directory = directory
        self._interval = interval
        self._retry_delay = retry_delay
        self._reconciler = Reconciler(cluster, mode=mode)
        self._stop_event = asyncio.Event()

        self.running = False
        self.passes_started = 0
        self.passes_completed = 0
        self.last_result: PassResult | None = None
        self.last_error: str | None = None

    @property
    def directory(self) -> str:
        return str(self._directory)

    @property
    def mode(self) -> ApplyMode:
        return self._reconciler.mode

    async def run_once(self) -> PassResult:
        """Run a single full pass.

        Raises:
            DiscoveryError:    the discovery catalog could not be obtained.
            ManifestRootError: the manifest root is missing or unreadable.
        """
        self.passes_started += 1
        with pass_context(self.passes_started):
            result = PassResult()
            live = await collect_live_state(self._cluster)
            desired = await asyncio.to_thread(load_manifests, self._directory)
            live_objects.set(len(live.resources))
            desired_objects.set(len(desired))

            await self._reconciler.apply(live.resources, desired, live.kind_index, result)
        result.finish()
        pass_duration_seconds.observe(result.duration_seconds)
        passes_total.labels(outcome="ok" if result.ok else "partial").inc()
        return result

    async def run(self) -> None:
        """Run passes until stop() is called."""
        self._stop_event.clear()
        self.running = True
        _log.info(
            "reconcile loop started",
            directory=self.directory,
            interval=self._interval,
            mode=self.mode.value,
        )
        try:
            while not self._stop_event.is_set():
                delay = self._interval
                try:
                    result = await self.run_once()
                except KonvergeError as exc:
                    passes_total.labels(outcome="fatal").inc()
                    self.last_error = str(exc)
                    delay = self._retry_delay
                    _log.error("reconcile pass aborted", error=str(exc), retry_in=delay)
                except Exception as exc:
                    passes_total.labels(outcome="fatal").inc()
                    self.last_error = str(exc)
                    delay = self._retry_delay
                    _log.exception("reconcile pass raised unexpectedly", error=str(exc), retry_in=delay)
                else:
                    self.last_result = result
                    self.last_error = None
                    self.passes_completed += 1
                    _log.info(
                        "reconcile pass complete",
                        duration_seconds=round(result.duration_seconds, 3),
                        live=result.live_count,
                        desired=result.desired_count,
                        failures=len(result.failures),
                    )
                await self._wait(delay)
        finally:
            self.running = False
            _log.info("reconcile loop stopped", passes=self.passes_completed)

    def stop(self) -> None:
        """Request the loop to stop.  A pass in flight runs to completion."""
        self._stop_event.set()

    async def _wait(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except TimeoutError:
            pass
