"""Plan and pass-result data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from konverge.models.resources import ResourceIdentity


class Operation(StrEnum):
    """Kind of call the engine issues for an identity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SKIP = "skip"


@dataclass(frozen=True)
class PlannedAction:
    """A single create/update/delete decided by the diff."""

    operation: Operation
    identity: ResourceIdentity
    plural: str


@dataclass(frozen=True)
class ApplyFailure:
    """An apply call that raised."""

    operation: Operation
    identity: ResourceIdentity
    error: str
    status: int | None = None


@dataclass
class PassResult:
    """Outcome of one enumerate -> load -> apply pass."""

    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    finished_at: datetime | None = None
    live_count: int = 0
    desired_count: int = 0
    succeeded: dict[Operation, list[ResourceIdentity]] = field(
        default_factory=lambda: {op: [] for op in Operation}
    )
    failures: list[ApplyFailure] = field(default_factory=list)

    def record_success(self, operation: Operation, identity: ResourceIdentity) -> None:
        self.succeeded[operation].append(identity)

    def record_failure(
        self,
        operation: Operation,
        identity: ResourceIdentity,
        error: Exception,
        status: int | None = None,
    ) -> None:
        self.failures.append(ApplyFailure(operation=operation, identity=identity, error=str(error), status=status))

    def count(self, operation: Operation) -> int:
        return len(self.succeeded[operation])

    def failed(self, operation: Operation) -> int:
        return sum(1 for f in self.failures if f.operation == operation)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def finish(self) -> None:
        self.finished_at = datetime.now(tz=UTC)
