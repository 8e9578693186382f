"""Core data structures for Konverge."""

from konverge.models.config import ApplyMode, KonvergeConfig
from konverge.models.resources import (
    APIResourceType,
    DesiredMap,
    LiveMap,
    LiveResource,
    ManifestResource,
    ResourceIdentity,
    ResourceTarget,
    identity_from_object,
)
from konverge.models.results import ApplyFailure, Operation, PassResult, PlannedAction

__all__ = [
    "APIResourceType",
    "ApplyFailure",
    "ApplyMode",
    "DesiredMap",
    "KonvergeConfig",
    "LiveMap",
    "LiveResource",
    "ManifestResource",
    "Operation",
    "PassResult",
    "PlannedAction",
    "ResourceIdentity",
    "ResourceTarget",
    "identity_from_object",
]
