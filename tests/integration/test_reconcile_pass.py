"""Integration tests for full enumerate -> load -> apply passes.

Runs ReconcileLoop against the in-memory FakeCluster and a real manifest
directory on disk.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from konverge.errors import ClusterAPIError, DiscoveryError, ManifestRootError
from konverge.models.config import ApplyMode
from konverge.models.results import Operation
from konverge.reconcile.scheduler import ReconcileLoop

from .conftest import Call, FakeCluster, configmap_obj, configmap_yaml


async def _wait_for(predicate, timeout: float = 5.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout=timeout)


# ---------------------------------------------------------------------------
# Single passes
# ---------------------------------------------------------------------------


class TestSinglePass:
    async def test_creates_configmap_into_empty_cluster(self, cluster: FakeCluster, manifest_dir: Path) -> None:
        """Empty live state plus one namespaced ConfigMap manifest -> exactly one create."""
        (manifest_dir / "cfg.yaml").write_text(configmap_yaml("cfg", namespace="ns"))

        result = await ReconcileLoop(cluster, manifest_dir).run_once()

        assert cluster.calls == [Call("create", "configmaps", "ns", "cfg")]
        assert cluster.calls_of("delete") == []
        assert cluster.get("", "v1", "configmaps", "ns", "cfg") is not None
        assert result.ok is True
        assert result.finished_at is not None

    async def test_existing_object_is_updated_not_recreated(self, cluster: FakeCluster, manifest_dir: Path) -> None:
        cluster.seed("", "v1", "configmaps", configmap_obj("cfg", value="old"))
        (manifest_dir / "cfg.yaml").write_text(configmap_yaml("cfg", value="new"))

        result = await ReconcileLoop(cluster, manifest_dir).run_once()

        assert cluster.calls == [Call("replace", "configmaps", "ns", "cfg")]
        assert cluster.get("", "v1", "configmaps", "ns", "cfg")["data"] == {"key": "new"}
        assert result.count(Operation.UPDATE) == 1

    async def test_prunes_objects_without_manifest(self, cluster: FakeCluster, manifest_dir: Path) -> None:
        cluster.seed("", "v1", "configmaps", configmap_obj("keep"))
        cluster.seed("", "v1", "configmaps", configmap_obj("stale"))
        cluster.seed("", "v1", "namespaces", {"metadata": {"name": "old-team"}})
        (manifest_dir / "keep.yaml").write_text(configmap_yaml("keep"))

        await ReconcileLoop(cluster, manifest_dir).run_once()

        assert sorted(cluster.calls_of("delete"), key=lambda c: c.name) == [
            Call("delete", "namespaces", "", "old-team"),
            Call("delete", "configmaps", "ns", "stale"),
        ]
        assert cluster.get("", "v1", "configmaps", "ns", "keep") is not None

    async def test_custom_kind_uses_discovered_plural(self, cluster: FakeCluster, manifest_dir: Path) -> None:
        (manifest_dir / "policy.yaml").write_text(
            "apiVersion: example.io/v1\nkind: Policy\nmetadata:\n  name: strict\n  namespace: ns\n"
        )

        await ReconcileLoop(cluster, manifest_dir).run_once()

        assert cluster.calls == [Call("create", "policies", "ns", "strict")]

    async def test_namespaced_manifest_without_namespace_is_not_applied(
        self, cluster: FakeCluster, manifest_dir: Path
    ) -> None:
        (manifest_dir / "cfg.yaml").write_text(
            "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: loose\n---\n" + configmap_yaml("cfg")
        )

        result = await ReconcileLoop(cluster, manifest_dir).run_once()

        assert cluster.calls == [Call("create", "configmaps", "ns", "cfg")]
        assert result.ok is True

    async def test_failed_call_does_not_block_others(self, cluster: FakeCluster, manifest_dir: Path) -> None:
        cluster.fail_names = {"bad"}
        cluster.seed("", "v1", "configmaps", configmap_obj("stale"))
        (manifest_dir / "all.yaml").write_text(
            configmap_yaml("bad") + "---\n" + configmap_yaml("good-1") + "---\n" + configmap_yaml("good-2")
        )

        result = await ReconcileLoop(cluster, manifest_dir).run_once()

        assert {c.name for c in cluster.calls_of("create")} == {"bad", "good-1", "good-2"}
        assert [c.name for c in cluster.calls_of("delete")] == ["stale"]
        assert [f.identity.name for f in result.failures] == ["bad"]

    async def test_list_failure_hides_type_from_prune(self, cluster: FakeCluster, manifest_dir: Path) -> None:
        cluster.seed("", "v1", "secrets", {"metadata": {"name": "token", "namespace": "ns"}})
        cluster.list_errors["secrets"] = ClusterAPIError("forbidden", status=403)

        await ReconcileLoop(cluster, manifest_dir).run_once()

        assert cluster.calls_of("delete") == []
        assert cluster.get("", "v1", "secrets", "ns", "token") is not None

    async def test_discovery_failure_aborts_pass(self, cluster: FakeCluster, manifest_dir: Path) -> None:
        cluster.fail_discovery()
        (manifest_dir / "cfg.yaml").write_text(configmap_yaml("cfg"))

        with pytest.raises(DiscoveryError):
            await ReconcileLoop(cluster, manifest_dir).run_once()
        assert cluster.calls == []

    async def test_missing_manifest_root_aborts_pass(self, cluster: FakeCluster, tmp_path: Path) -> None:
        cluster.seed("", "v1", "configmaps", configmap_obj("cfg"))

        with pytest.raises(ManifestRootError):
            await ReconcileLoop(cluster, tmp_path / "missing").run_once()
        # An unreadable root must never be mistaken for "nothing desired"
        assert cluster.calls == []


# ---------------------------------------------------------------------------
# Repeated passes
# ---------------------------------------------------------------------------


class TestRepeatedPasses:
    async def test_update_every_pass(self, cluster: FakeCluster, manifest_dir: Path) -> None:
        (manifest_dir / "cfg.yaml").write_text(configmap_yaml("cfg"))
        loop = ReconcileLoop(cluster, manifest_dir)

        await loop.run_once()
        await loop.run_once()
        await loop.run_once()

        assert [c.operation for c in cluster.calls] == ["create", "replace", "replace"]
        assert loop.passes_started == 3

    async def test_skip_unchanged_mode_is_quiet_after_convergence(
        self, cluster: FakeCluster, manifest_dir: Path
    ) -> None:
        (manifest_dir / "cfg.yaml").write_text(configmap_yaml("cfg"))
        loop = ReconcileLoop(cluster, manifest_dir, mode=ApplyMode.SKIP_UNCHANGED)

        await loop.run_once()
        second = await loop.run_once()

        assert [c.operation for c in cluster.calls] == ["create"]
        assert second.count(Operation.SKIP) == 1

    async def test_skip_unchanged_mode_updates_after_edit(self, cluster: FakeCluster, manifest_dir: Path) -> None:
        path = manifest_dir / "cfg.yaml"
        path.write_text(configmap_yaml("cfg", value="1"))
        loop = ReconcileLoop(cluster, manifest_dir, mode=ApplyMode.SKIP_UNCHANGED)

        await loop.run_once()
        path.write_text(configmap_yaml("cfg", value="2"))
        await loop.run_once()

        assert [c.operation for c in cluster.calls] == ["create", "replace"]
        assert cluster.get("", "v1", "configmaps", "ns", "cfg")["data"] == {"key": "2"}

    async def test_removed_manifest_is_pruned_next_pass(self, cluster: FakeCluster, manifest_dir: Path) -> None:
        path = manifest_dir / "cfg.yaml"
        path.write_text(configmap_yaml("cfg"))
        loop = ReconcileLoop(cluster, manifest_dir)

        await loop.run_once()
        path.unlink()
        await loop.run_once()

        assert cluster.calls_of("delete") == [Call("delete", "configmaps", "ns", "cfg")]
        assert cluster.objects == {}


# ---------------------------------------------------------------------------
# Loop driver
# ---------------------------------------------------------------------------


class TestReconcileLoop:
    async def test_retries_after_fatal_error(self, cluster: FakeCluster, manifest_dir: Path) -> None:
        cluster.fail_discovery()
        (manifest_dir / "cfg.yaml").write_text(configmap_yaml("cfg"))
        loop = ReconcileLoop(cluster, manifest_dir, interval=0.01, retry_delay=0.01)
        task = asyncio.create_task(loop.run())
        try:
            await _wait_for(lambda: loop.last_error is not None)
            assert loop.passes_completed == 0

            cluster.discovery_error = None
            await _wait_for(lambda: loop.passes_completed >= 1)
            assert loop.last_result is not None
            assert loop.last_error is None
            assert cluster.get("", "v1", "configmaps", "ns", "cfg") is not None
        finally:
            loop.stop()
            await asyncio.wait_for(task, timeout=5.0)
        assert loop.running is False

    async def test_stop_interrupts_interval_wait(self, cluster: FakeCluster, manifest_dir: Path) -> None:
        loop = ReconcileLoop(cluster, manifest_dir, interval=3600)
        task = asyncio.create_task(loop.run())
        await _wait_for(lambda: loop.passes_completed == 1)

        loop.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert task.done()
        assert loop.passes_completed == 1
