"""Live-state enumeration.

Discovers every listable resource type and materializes every live object
into an identity-keyed map.  Read-only.  A list failure for one type is
logged and that type skipped; a discovery failure is fatal to the pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from konverge.cluster.base import ClusterAPI
from konverge.errors import UnidentifiableObjectError
from konverge.models.resources import (
    APIResourceType,
    LiveMap,
    LiveResource,
    identity_from_object,
)
from konverge.observability.logging import get_logger
from konverge.observability.metrics import list_failures_total
from konverge.reconcile.plurals import KindIndex

_log = get_logger("state.live")


@dataclass
class LiveState:
    """Result of one enumeration: live objects plus the discovery-backed kind index."""

    resources: LiveMap = field(default_factory=dict)
    kind_index: KindIndex = field(default_factory=KindIndex)
    skipped_types: list[str] = field(default_factory=list)


def is_listable(resource_type: APIResourceType) -> bool:
    """True for top-level resource types whose verbs include ``list``."""
    return "list" in resource_type.verbs and "/" not in resource_type.name


async def collect_live_state(cluster: ClusterAPI) -> LiveState:
    """Enumerate every object the caller may list, across every advertised type.

    Raises:
        DiscoveryError: the discovery catalog could not be obtained.
    """
    resource_types = await cluster.discover()
    state = LiveState(kind_index=KindIndex(resource_types))

    for rt in resource_types:
        if not is_listable(rt):
            continue

        try:
            items = await cluster.list(rt)
        except Exception as exc:
            list_failures_total.inc()
            state.skipped_types.append(str(rt))
            _log.warning(
                "list failed; skipping resource type",
                group=rt.group,
                version=rt.version,
                resource=rt.name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            continue

        for item in items:
            # List responses omit per-item type meta; restore it from discovery
            item.setdefault("apiVersion", rt.group_version)
            item.setdefault("kind", rt.kind)
            try:
                identity = identity_from_object(item, group=rt.group, version=rt.version, kind=rt.kind)
            except UnidentifiableObjectError as exc:
                _log.warning("live object without identity", resource=str(rt), error=str(exc))
                continue
            state.resources[identity] = LiveResource(identity=identity, obj=item)

    _log.info(
        "live state collected",
        resource_types=len(resource_types),
        objects=len(state.resources),
        skipped_types=len(state.skipped_types),
    )
    return state
