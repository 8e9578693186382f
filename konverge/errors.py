"""Exception hierarchy for Konverge."""

from __future__ import annotations


class KonvergeError(Exception):
    """Base class for every error raised by Konverge."""


class DiscoveryError(KonvergeError):
    """The discovery catalog could not be obtained.  Fatal to the pass."""


class ManifestRootError(KonvergeError):
    """The manifest root directory is missing or unreadable.  Fatal to the pass."""


class UnidentifiableObjectError(KonvergeError):
    """An object lacks the fields needed to compute its identity."""


class ClusterAPIError(KonvergeError):
    """A call against the Kubernetes API failed.

    ``status`` carries the HTTP status code when one is known (409 means the
    version token was stale).
    """

    def __init__(self, message: str, status: int | None = None, reason: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason

    @property
    def is_conflict(self) -> bool:
        return self.status == 409

    @property
    def is_not_found(self) -> bool:
        return self.status == 404
