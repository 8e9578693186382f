"""Resource identity and snapshot data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from konverge.errors import UnidentifiableObjectError


@dataclass(frozen=True)
class ResourceIdentity:
    """Correlation key between a live object and its manifest counterpart.

    Two objects are the same resource iff every field compares equal as an
    exact string.  ``namespace == ""`` denotes a cluster-scoped resource.
    """

    group: str
    version: str
    kind: str
    namespace: str
    name: str

    @property
    def api_version(self) -> str:
        """Return the ``apiVersion`` string (``v1`` for the core group)."""
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def is_namespaced(self) -> bool:
        return self.namespace != ""

    def __str__(self) -> str:
        return f"{self.kind} {self.namespace}/{self.name}"


def split_api_version(api_version: str) -> tuple[str, str]:
    """Split ``apps/v1`` into ``("apps", "v1")`` and ``v1`` into ``("", "v1")``."""
    if "/" in api_version:
        group, _, version = api_version.rpartition("/")
        return group, version
    return "", api_version


def identity_from_object(
    obj: dict[str, Any],
    group: str | None = None,
    version: str | None = None,
    kind: str | None = None,
) -> ResourceIdentity:
    """Build the identity of *obj* from its own apiVersion/kind/metadata.

    Explicit *group*, *version* and *kind* override the object's fields; the
    live-state enumerator uses them because list items carry no type meta.

    Raises:
        UnidentifiableObjectError: when apiVersion, kind or metadata.name
            cannot be determined.
    """
    metadata = obj.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}

    if group is None or version is None:
        api_version = obj.get("apiVersion")
        if not isinstance(api_version, str) or not api_version:
            raise UnidentifiableObjectError("object has no apiVersion")
        parsed_group, parsed_version = split_api_version(api_version)
        group = parsed_group if group is None else group
        version = parsed_version if version is None else version

    if kind is None:
        kind = obj.get("kind")
    if not isinstance(kind, str) or not kind:
        raise UnidentifiableObjectError("object has no kind")

    name = metadata.get("name")
    if not isinstance(name, str) or not name:
        raise UnidentifiableObjectError(f"{kind} has no metadata.name")

    namespace = metadata.get("namespace") or ""
    return ResourceIdentity(
        group=group,
        version=version,
        kind=kind,
        namespace=str(namespace),
        name=name,
    )


@dataclass(frozen=True)
class LiveResource:
    """Snapshot of an object currently existing in the cluster.

    Produced fresh by every enumeration pass and discarded at its end.
    """

    identity: ResourceIdentity
    obj: dict[str, Any]

    @property
    def resource_version(self) -> str:
        metadata = self.obj.get("metadata") or {}
        return str(metadata.get("resourceVersion") or "")


@dataclass
class ManifestResource:
    """A desired-state object as decoded from disk."""

    identity: ResourceIdentity
    obj: dict[str, Any]
    source: str = ""


@dataclass(frozen=True)
class APIResourceType:
    """One listable resource type advertised by API discovery."""

    group: str
    version: str
    name: str  # plural, e.g. "deployments"
    kind: str
    namespaced: bool
    verbs: frozenset[str] = field(default_factory=frozenset)

    @property
    def group_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def __str__(self) -> str:
        return f"{self.name}.{self.group_version}" if self.group else f"{self.name}.{self.version}"


@dataclass(frozen=True)
class ResourceTarget:
    """Address of an API collection: group/version/plural, optionally namespaced."""

    group: str
    version: str
    plural: str
    namespace: str = ""


LiveMap = dict[ResourceIdentity, LiveResource]
DesiredMap = dict[ResourceIdentity, ManifestResource]
