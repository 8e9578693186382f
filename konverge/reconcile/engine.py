"""Reconciliation engine: diff live against desired state and converge.

For each desired identity:
    absent from live  -> create
    present in live   -> full replace carrying the live resourceVersion
                         (every pass in ALWAYS_UPDATE mode; skipped when the
                         live object already contains the manifest in
                         SKIP_UNCHANGED mode)
Every live identity not matched by a desired identity is deleted (pruned).

Each call is independent: a failure is logged, recorded in the PassResult
and never stops the remaining calls.  Version conflicts are not retried
within a pass; the next pass re-reads the live object.  There is no
ordering between resources and no rollback.
"""

from __future__ import annotations

import copy
from typing import Any

from konverge.cluster.base import ClusterAPI
from konverge.models.config import ApplyMode
from konverge.models.resources import (
    DesiredMap,
    LiveMap,
    ResourceIdentity,
    ResourceTarget,
)
from konverge.models.results import Operation, PassResult, PlannedAction
from konverge.observability.logging import get_logger
from konverge.observability.metrics import apply_operations_total, manifest_errors_total
from konverge.reconcile.plurals import KindIndex

_log = get_logger("reconcile.engine")

# Server-managed metadata ignored when deciding whether a live object
# already matches its manifest.
_IGNORED_METADATA_FIELDS = frozenset({"resourceVersion"})


def is_subset(desired: Any, live: Any) -> bool:
    """True when every field set in *desired* has the same value in *live*."""
    if isinstance(desired, dict):
        if not isinstance(live, dict):
            return False
        return all(key in live and is_subset(value, live[key]) for key, value in desired.items())
    if isinstance(desired, list):
        if not isinstance(live, list) or len(desired) != len(live):
            return False
        return all(is_subset(want, have) for want, have in zip(desired, live, strict=True))
    return bool(desired == live)


def manifest_matches_live(desired: dict[str, Any], live: dict[str, Any]) -> bool:
    metadata = desired.get("metadata")
    if isinstance(metadata, dict) and _IGNORED_METADATA_FIELDS & metadata.keys():
        desired = dict(desired)
        desired["metadata"] = {k: v for k, v in metadata.items() if k not in _IGNORED_METADATA_FIELDS}
    return is_subset(desired, live)


def target_for(identity: ResourceIdentity, plural: str) -> ResourceTarget:
    """Collection address for *identity*; namespaced when it has a namespace."""
    return ResourceTarget(
        group=identity.group,
        version=identity.version,
        plural=plural,
        namespace=identity.namespace,
    )


class Reconciler:
    """Applies the diff between a live map and a desired map.

    Args:
        cluster: ClusterAPI used for create/replace/delete.
        mode:    ApplyMode.ALWAYS_UPDATE (default) issues an update for every
                 identity present on both sides; SKIP_UNCHANGED short-circuits
                 identities whose live object already matches the manifest.
    """

    def __init__(self, cluster: ClusterAPI, mode: ApplyMode = ApplyMode.ALWAYS_UPDATE) -> None:
        self._cluster = cluster
        self._mode = mode

    @property
    def mode(self) -> ApplyMode:
        return self._mode

    def plan(
        self,
        live: LiveMap,
        desired: DesiredMap,
        kind_index: KindIndex | None = None,
    ) -> list[PlannedAction]:
        """Compute the create/update/delete actions without issuing any call.

        A manifest of a kind discovery reports as namespaced but which carries
        no metadata.namespace cannot be addressed; it is logged and left out
        of the plan.
        """
        index = kind_index if kind_index is not None else KindIndex()
        actions: list[PlannedAction] = []
        processed: set[ResourceIdentity] = set()

        for identity, manifest in desired.items():
            if not identity.namespace and index.namespaced(identity.group, identity.version, identity.kind):
                manifest_errors_total.labels(reason="missing-namespace").inc()
                _log.warning(
                    "namespaced manifest has no metadata.namespace; skipping",
                    kind=identity.kind,
                    name=identity.name,
                    file=manifest.source,
                )
                continue
            processed.add(identity)
            plural = index.resource_name(identity)
            current = live.get(identity)
            if current is None:
                operation = Operation.CREATE
            elif self._mode is ApplyMode.SKIP_UNCHANGED and manifest_matches_live(manifest.obj, current.obj):
                operation = Operation.SKIP
            else:
                operation = Operation.UPDATE
            actions.append(PlannedAction(operation=operation, identity=identity, plural=plural))

        for identity in live:
            if identity not in processed:
                actions.append(
                    PlannedAction(
                        operation=Operation.DELETE,
                        identity=identity,
                        plural=index.resource_name(identity),
                    )
                )
        return actions

    async def apply(
        self,
        live: LiveMap,
        desired: DesiredMap,
        kind_index: KindIndex | None = None,
        result: PassResult | None = None,
    ) -> PassResult:
        """Converge the cluster to *desired*.  Never raises for a single failed call."""
        result = result if result is not None else PassResult()
        result.live_count = len(live)
        result.desired_count = len(desired)

        for action in self.plan(live, desired, kind_index):
            await self._execute(action, live, desired, result)

        _log.info(
            "reconcile applied",
            created=result.count(Operation.CREATE),
            updated=result.count(Operation.UPDATE),
            deleted=result.count(Operation.DELETE),
            unchanged=result.count(Operation.SKIP),
            failed=len(result.failures),
        )
        return result

    async def _execute(
        self,
        action: PlannedAction,
        live: LiveMap,
        desired: DesiredMap,
        result: PassResult,
    ) -> None:
        identity = action.identity
        if action.operation is Operation.SKIP:
            _log.debug(
                "unchanged; skipping update",
                kind=identity.kind,
                namespace=identity.namespace,
                name=identity.name,
            )
            result.record_success(Operation.SKIP, identity)
            return

        target = target_for(identity, action.plural)
        _log.info(
            f"{action.operation.value} issued",
            operation=action.operation.value,
            kind=identity.kind,
            namespace=identity.namespace,
            name=identity.name,
            resource=action.plural,
        )
        try:
            if action.operation is Operation.CREATE:
                await self._cluster.create(target, desired[identity].obj)
            elif action.operation is Operation.UPDATE:
                body = copy.deepcopy(desired[identity].obj)
                body.setdefault("metadata", {})["resourceVersion"] = live[identity].resource_version
                await self._cluster.replace(target, identity.name, body)
            else:
                await self._cluster.delete(target, identity.name)
        except Exception as exc:
            status = getattr(exc, "status", None)
            apply_operations_total.labels(operation=action.operation.value, result="failure").inc()
            result.record_failure(action.operation, identity, exc, status=status)
            _log.error(
                f"{action.operation.value} failed",
                operation=action.operation.value,
                kind=identity.kind,
                namespace=identity.namespace,
                name=identity.name,
                status=status,
                conflict=status == 409,
                error=str(exc),
            )
            return

        apply_operations_total.labels(operation=action.operation.value, result="success").inc()
        result.record_success(action.operation, identity)
