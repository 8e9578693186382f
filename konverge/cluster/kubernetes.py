"""ClusterAPI backed by kubernetes-asyncio.

Discovery reads ``/api/v1`` and the preferred version of every group listed
under ``/apis``.  All calls go through ``DynamicClient.request`` against
REST paths computed from group/version/plural/namespace, so no typed API
classes are needed for arbitrary (including custom) resource types.
"""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]
from kubernetes_asyncio.client import ApiClient  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]
from kubernetes_asyncio.dynamic import DynamicClient  # type: ignore[import-untyped]
from kubernetes_asyncio.dynamic.exceptions import DynamicApiError  # type: ignore[import-untyped]

from konverge.cluster.base import ClusterAPI
from konverge.errors import ClusterAPIError, DiscoveryError
from konverge.models.resources import APIResourceType, ResourceTarget
from konverge.observability.logging import get_logger

_log = get_logger("cluster.kubernetes")


def collection_path(target: ResourceTarget) -> str:
    """REST path of the collection addressed by *target*.

    An empty namespace yields the cluster-wide path, which for namespaced
    types lists across all namespaces.
    """
    if target.group:
        base = f"/apis/{target.group}/{target.version}"
    else:
        base = f"/api/{target.version}"
    if target.namespace:
        base = f"{base}/namespaces/{target.namespace}"
    return f"{base}/{target.plural}"


def object_path(target: ResourceTarget, name: str) -> str:
    return f"{collection_path(target)}/{name}"


def parse_resource_list(listing: dict[str, Any], group: str, version: str) -> list[APIResourceType]:
    """Convert an APIResourceList document into APIResourceType entries."""
    types: list[APIResourceType] = []
    for entry in listing.get("resources") or []:
        name = entry.get("name", "")
        kind = entry.get("kind", "")
        if not name or not kind:
            continue
        types.append(
            APIResourceType(
                group=group,
                version=version,
                name=name,
                kind=kind,
                namespaced=bool(entry.get("namespaced", False)),
                verbs=frozenset(entry.get("verbs") or ()),
            )
        )
    return types


def preferred_group_versions(group_list: dict[str, Any]) -> list[tuple[str, str]]:
    """Return ``(group, version)`` for the preferred version of each APIGroup."""
    result: list[tuple[str, str]] = []
    for group in group_list.get("groups") or []:
        name = group.get("name", "")
        preferred = group.get("preferredVersion")
        if not preferred:
            versions = group.get("versions") or []
            if not versions:
                continue
            preferred = versions[0]
        version = preferred.get("version", "")
        if name and version:
            result.append((name, version))
    return result


def _to_dict(result: Any) -> dict[str, Any]:
    if result is None:
        return {}
    if isinstance(result, dict):
        return result
    to_dict = getattr(result, "to_dict", None)
    if to_dict is not None:
        return to_dict()  # type: ignore[no-any-return]
    raise TypeError(f"Unexpected API response type: {type(result).__name__}")


class KubernetesCluster(ClusterAPI):
    """ClusterAPI over a kubernetes-asyncio DynamicClient."""

    def __init__(self, api_client: ApiClient, dynamic: DynamicClient) -> None:
        self._api_client = api_client
        self._dynamic = dynamic

    @classmethod
    async def connect(cls) -> KubernetesCluster:
        """Load credentials (in-cluster first, kubeconfig second) and build the client."""
        try:
            # load_incluster_config() is synchronous in kubernetes-asyncio
            k8s_config.load_incluster_config()
            _log.info("k8s client configured from in-cluster service account")
        except k8s_config.ConfigException:
            await k8s_config.load_kube_config()
            _log.info("k8s client configured from kubeconfig")

        api_client = ApiClient()
        dynamic = await DynamicClient(api_client)
        return cls(api_client, dynamic)

    async def close(self) -> None:
        await self._api_client.close()

    async def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            result = await self._dynamic.request(method, path, body=body)
        except DynamicApiError as exc:
            raise ClusterAPIError(
                f"{method.upper()} {path} failed: {exc.status} {exc.reason}",
                status=exc.status,
                reason=str(exc.reason or ""),
            ) from exc
        except ApiException as exc:
            raise ClusterAPIError(
                f"{method.upper()} {path} failed: {exc.status} {exc.reason}",
                status=exc.status,
                reason=str(exc.reason or ""),
            ) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ClusterAPIError(f"{method.upper()} {path} failed: {type(exc).__name__}: {exc}") from exc
        try:
            return _to_dict(result)
        except TypeError as exc:
            raise ClusterAPIError(f"{method.upper()} {path} returned {exc}") from exc

    async def discover(self) -> list[APIResourceType]:
        try:
            core = await self._request("get", "/api/v1")
            groups = await self._request("get", "/apis")
            types = parse_resource_list(core, "", "v1")
            for group, version in preferred_group_versions(groups):
                listing = await self._request("get", f"/apis/{group}/{version}")
                types.extend(parse_resource_list(listing, group, version))
        except ClusterAPIError as exc:
            raise DiscoveryError(f"API discovery failed: {exc}") from exc
        _log.debug("discovery complete", resource_types=len(types))
        return types

    async def list(self, resource_type: APIResourceType) -> list[dict[str, Any]]:
        target = ResourceTarget(
            group=resource_type.group,
            version=resource_type.version,
            plural=resource_type.name,
        )
        data = await self._request("get", collection_path(target))
        return list(data.get("items") or [])

    async def create(self, target: ResourceTarget, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("post", collection_path(target), body=body)

    async def replace(self, target: ResourceTarget, name: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("put", object_path(target, name), body=body)

    async def delete(self, target: ResourceTarget, name: str) -> None:
        await self._request("delete", object_path(target, name))
