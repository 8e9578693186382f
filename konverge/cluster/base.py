"""Abstract cluster capabilities consumed by the reconcile core.

ClusterAPI -- discovery, list, and per-identity create/replace/delete.
The engine never talks to Kubernetes directly; it only sees this interface,
so tests substitute an in-memory implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from konverge.models.resources import APIResourceType, ResourceTarget


class ClusterAPI(ABC):
    """Capabilities the reconcile core needs from a cluster.

    Every mutating call raises ``ClusterAPIError`` on failure; ``discover``
    raises ``DiscoveryError``.
    """

    @abstractmethod
    async def discover(self) -> list[APIResourceType]:
        """Return the server's preferred resource types, one group/version per type."""

    @abstractmethod
    async def list(self, resource_type: APIResourceType) -> list[dict[str, Any]]:
        """List every object of *resource_type* (cluster-wide / all namespaces)."""

    @abstractmethod
    async def create(self, target: ResourceTarget, body: dict[str, Any]) -> dict[str, Any]:
        """Create *body* in the collection addressed by *target*."""

    @abstractmethod
    async def replace(self, target: ResourceTarget, name: str, body: dict[str, Any]) -> dict[str, Any]:
        """Fully replace object *name*; *body* must carry the current resourceVersion."""

    @abstractmethod
    async def delete(self, target: ResourceTarget, name: str) -> None:
        """Delete object *name* from the collection addressed by *target*."""

    async def close(self) -> None:  # noqa: B027
        """Release connections.  Optional for implementations."""
