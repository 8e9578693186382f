"""Kind -> API collection name mapping.

``resource_name_for_kind`` is the lexical mapper: a table of well-known kinds
with a lower-case-plus-``s`` fallback.  The fallback mis-pluralizes irregular
kinds ("Policy" -> "policys"); ``KindIndex`` resolves those correctly from
the discovery catalog gathered during enumeration.
"""

from __future__ import annotations

from collections.abc import Iterable

from konverge.models.resources import APIResourceType, ResourceIdentity

_KIND_TO_RESOURCE: dict[str, str] = {
    "Pod": "pods",
    "Deployment": "deployments",
    "ReplicaSet": "replicasets",
    "Service": "services",
    "ConfigMap": "configmaps",
    "Secret": "secrets",
    "DaemonSet": "daemonsets",
    "StatefulSet": "statefulsets",
    "Ingress": "ingresses",
    "Job": "jobs",
    "CronJob": "cronjobs",
    "Namespace": "namespaces",
    "Node": "nodes",
    "ServiceAccount": "serviceaccounts",
    "PersistentVolume": "persistentvolumes",
    "PersistentVolumeClaim": "persistentvolumeclaims",
    "Endpoints": "endpoints",
    "NetworkPolicy": "networkpolicies",
    "StorageClass": "storageclasses",
    "Role": "roles",
    "RoleBinding": "rolebindings",
    "ClusterRole": "clusterroles",
    "ClusterRoleBinding": "clusterrolebindings",
    "HorizontalPodAutoscaler": "horizontalpodautoscalers",
    "PodDisruptionBudget": "poddisruptionbudgets",
    "ResourceQuota": "resourcequotas",
    "LimitRange": "limitranges",
    "CustomResourceDefinition": "customresourcedefinitions",
    "PriorityClass": "priorityclasses",
}


def resource_name_for_kind(kind: str) -> str:
    """Return the lower-case plural collection name for *kind*."""
    resource = _KIND_TO_RESOURCE.get(kind)
    if resource is not None:
        return resource

    lower = kind.lower()
    if not lower.endswith("s"):
        return lower + "s"
    return lower


class KindIndex:
    """(group, version, kind) -> plural and scope, built from the discovery catalog."""

    def __init__(self, resource_types: Iterable[APIResourceType] = ()) -> None:
        self._plurals: dict[tuple[str, str, str], str] = {}
        self._namespaced: dict[tuple[str, str, str], bool] = {}
        for rt in resource_types:
            self.add(rt)

    def add(self, resource_type: APIResourceType) -> None:
        if "/" in resource_type.name:
            return
        key = (resource_type.group, resource_type.version, resource_type.kind)
        if key in self._plurals:
            return
        self._plurals[key] = resource_type.name
        self._namespaced[key] = resource_type.namespaced

    def __len__(self) -> int:
        return len(self._plurals)

    def lookup(self, group: str, version: str, kind: str) -> str | None:
        return self._plurals.get((group, version, kind))

    def namespaced(self, group: str, version: str, kind: str) -> bool | None:
        """Scope advertised by discovery; None when the kind is unknown."""
        return self._namespaced.get((group, version, kind))

    def resource_name(self, identity: ResourceIdentity) -> str:
        """Plural for *identity*: discovery first, lexical mapper as fallback."""
        plural = self.lookup(identity.group, identity.version, identity.kind)
        if plural is not None:
            return plural
        return resource_name_for_kind(identity.kind)
