"""Shared fixtures for Konverge integration tests.

Provides an in-memory ClusterAPI that behaves like a small API server
(discovery, resourceVersion bookkeeping, 404/409 semantics) and records
every mutating call, so full passes can be exercised without a real cluster.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from konverge.cluster.base import ClusterAPI
from konverge.errors import ClusterAPIError, DiscoveryError
from konverge.models.resources import APIResourceType, ResourceTarget

_VERBS = frozenset({"create", "delete", "get", "list", "update"})

DEFAULT_TYPES = [
    APIResourceType("", "v1", "configmaps", "ConfigMap", True, _VERBS),
    APIResourceType("", "v1", "secrets", "Secret", True, _VERBS),
    APIResourceType("", "v1", "namespaces", "Namespace", False, _VERBS),
    APIResourceType("", "v1", "pods/log", "Pod", True, frozenset({"get"})),
    APIResourceType("apps", "v1", "deployments", "Deployment", True, _VERBS),
    APIResourceType("example.io", "v1", "policies", "Policy", True, _VERBS),
]


@dataclass(frozen=True)
class Call:
    """A mutating call observed by FakeCluster."""

    operation: str  # create | replace | delete
    plural: str
    namespace: str
    name: str


class FakeCluster(ClusterAPI):
    """In-memory API server keyed by (group, version, plural, namespace, name)."""

    def __init__(self, types: list[APIResourceType] | None = None) -> None:
        self.types = list(types if types is not None else DEFAULT_TYPES)
        self.objects: dict[tuple[str, str, str, str, str], dict[str, Any]] = {}
        self.calls: list[Call] = []
        self.discovery_error: Exception | None = None
        self.list_errors: dict[str, Exception] = {}
        self.fail_names: set[str] = set()
        self._rv = 100

    # -- helpers -------------------------------------------------------

    def _next_rv(self) -> str:
        self._rv += 1
        return str(self._rv)

    def seed(self, group: str, version: str, plural: str, obj: dict[str, Any]) -> dict[str, Any]:
        """Insert a pre-existing object, as if created before the pass."""
        stored = copy.deepcopy(obj)
        metadata = stored.setdefault("metadata", {})
        metadata["resourceVersion"] = self._next_rv()
        key = (group, version, plural, metadata.get("namespace", ""), metadata["name"])
        self.objects[key] = stored
        return stored

    def get(self, group: str, version: str, plural: str, namespace: str, name: str) -> dict[str, Any] | None:
        return self.objects.get((group, version, plural, namespace, name))

    def calls_of(self, operation: str) -> list[Call]:
        return [c for c in self.calls if c.operation == operation]

    def _key(self, target: ResourceTarget, name: str) -> tuple[str, str, str, str, str]:
        return (target.group, target.version, target.plural, target.namespace, name)

    def _check_failure(self, name: str) -> None:
        if name in self.fail_names:
            raise ClusterAPIError(f"injected failure for {name}", status=500)

    # -- ClusterAPI ----------------------------------------------------

    async def discover(self) -> list[APIResourceType]:
        if self.discovery_error is not None:
            raise self.discovery_error
        return list(self.types)

    async def list(self, resource_type: APIResourceType) -> list[dict[str, Any]]:
        if resource_type.name in self.list_errors:
            raise self.list_errors[resource_type.name]
        items = []
        for (group, version, plural, _ns, _name), obj in self.objects.items():
            if (group, version, plural) == (resource_type.group, resource_type.version, resource_type.name):
                item = copy.deepcopy(obj)
                # Real list responses carry no per-item type meta
                item.pop("apiVersion", None)
                item.pop("kind", None)
                items.append(item)
        return items

    async def create(self, target: ResourceTarget, body: dict[str, Any]) -> dict[str, Any]:
        name = body["metadata"]["name"]
        self.calls.append(Call("create", target.plural, target.namespace, name))
        self._check_failure(name)
        key = self._key(target, name)
        if key in self.objects:
            raise ClusterAPIError("already exists", status=409, reason="AlreadyExists")
        stored = copy.deepcopy(body)
        stored["metadata"]["resourceVersion"] = self._next_rv()
        self.objects[key] = stored
        return stored

    async def replace(self, target: ResourceTarget, name: str, body: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(Call("replace", target.plural, target.namespace, name))
        self._check_failure(name)
        key = self._key(target, name)
        current = self.objects.get(key)
        if current is None:
            raise ClusterAPIError("not found", status=404, reason="NotFound")
        if body.get("metadata", {}).get("resourceVersion") != current["metadata"]["resourceVersion"]:
            raise ClusterAPIError("the object has been modified", status=409, reason="Conflict")
        stored = copy.deepcopy(body)
        stored["metadata"]["resourceVersion"] = self._next_rv()
        self.objects[key] = stored
        return stored

    async def delete(self, target: ResourceTarget, name: str) -> None:
        self.calls.append(Call("delete", target.plural, target.namespace, name))
        self._check_failure(name)
        key = self._key(target, name)
        if key not in self.objects:
            raise ClusterAPIError("not found", status=404, reason="NotFound")
        del self.objects[key]

    def fail_discovery(self, message: str = "apiserver unavailable") -> None:
        self.discovery_error = DiscoveryError(message)


# ---------------------------------------------------------------------------
# Manifest helpers
# ---------------------------------------------------------------------------


def configmap_yaml(name: str, namespace: str = "ns", value: str = "1") -> str:
    return f"""apiVersion: v1
kind: ConfigMap
metadata:
  name: {name}
  namespace: {namespace}
data:
  key: "{value}"
"""


def configmap_obj(name: str, namespace: str = "ns", value: str = "1") -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": name, "namespace": namespace},
        "data": {"key": value},
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def manifest_dir(tmp_path: Path) -> Path:
    root = tmp_path / "manifests"
    root.mkdir()
    return root
