"""Desired-state loading from a directory of YAML manifests.

Walks the manifest root recursively (sorted, so "last wins" is
deterministic), decodes every document of every ``.yaml``/``.yml`` file and
builds an identity-keyed map.

Failure handling:
    * missing/unreadable root   -> ManifestRootError (fatal to the pass)
    * unreadable file           -> logged, file skipped, walk continues
    * malformed document        -> logged, next document in the file decoded
    * empty document            -> dropped silently
    * duplicate identity        -> later document overwrites the earlier one
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from konverge.errors import ManifestRootError, UnidentifiableObjectError
from konverge.models.resources import DesiredMap, ManifestResource, identity_from_object
from konverge.observability.logging import get_logger
from konverge.observability.metrics import manifest_errors_total

_log = get_logger("state.manifests")

MANIFEST_EXTENSIONS = frozenset({".yaml", ".yml"})

# A document starts at a "---" in column 0 followed by whitespace or end of
# line.  The marker stays with its chunk so content written on the marker line
# (inline mapping, tag, comment) is decoded with the document it opens.
_DOCUMENT_START = re.compile(r"^(?=---(?:[ \t]|$))", re.MULTILINE)


def split_documents(text: str) -> list[str]:
    """Split a multi-document YAML stream into per-document source chunks."""
    return [chunk for chunk in _DOCUMENT_START.split(text) if chunk]


def decode_documents(text: str, source: str = "<string>") -> Iterator[dict[str, Any]]:
    """Yield every non-empty mapping document in *text*.

    Each document is decoded on its own so a malformed one is logged and
    skipped without losing the documents that follow it.
    """
    for index, chunk in enumerate(split_documents(text)):
        try:
            doc = yaml.safe_load(chunk)
        except yaml.YAMLError as exc:
            manifest_errors_total.labels(reason="decode").inc()
            _log.warning("manifest document decode failed", file=source, document=index, error=str(exc))
            continue

        if doc is None or doc == {}:
            continue
        if not isinstance(doc, dict):
            manifest_errors_total.labels(reason="unidentifiable").inc()
            _log.warning(
                "manifest document is not a mapping",
                file=source,
                document=index,
                type=type(doc).__name__,
            )
            continue
        yield doc


def iter_manifest_files(directory: str | os.PathLike[str]) -> Iterator[Path]:
    """Yield manifest files under *directory* in sorted walk order."""

    def _on_error(exc: OSError) -> None:
        manifest_errors_total.labels(reason="read").inc()
        _log.warning("manifest directory unreadable; skipping", path=exc.filename, error=str(exc))

    for dirpath, dirnames, filenames in os.walk(directory, onerror=_on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if path.suffix in MANIFEST_EXTENSIONS and path.is_file():
                yield path


def load_manifests(directory: str | os.PathLike[str]) -> DesiredMap:
    """Load every manifest document under *directory* into an identity map.

    Raises:
        ManifestRootError: *directory* does not exist or is not a readable directory.
    """
    root = Path(directory)
    if not root.is_dir():
        raise ManifestRootError(f"Manifest root {root} is not a directory")
    try:
        os.scandir(root).close()
    except OSError as exc:
        raise ManifestRootError(f"Manifest root {root} is unreadable: {exc}") from exc

    desired: DesiredMap = {}
    files = 0
    for path in iter_manifest_files(root):
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            manifest_errors_total.labels(reason="read").inc()
            _log.warning("manifest file unreadable; skipping", file=str(path), error=str(exc))
            continue
        files += 1

        for doc in decode_documents(text, source=str(path)):
            try:
                identity = identity_from_object(doc)
            except UnidentifiableObjectError as exc:
                manifest_errors_total.labels(reason="unidentifiable").inc()
                _log.warning("manifest document has no identity; skipping", file=str(path), error=str(exc))
                continue

            previous = desired.get(identity)
            if previous is not None:
                _log.debug(
                    "duplicate manifest identity; later document wins",
                    resource=str(identity),
                    previous=previous.source,
                    current=str(path),
                )
            desired[identity] = ManifestResource(identity=identity, obj=doc, source=str(path))

    _log.info("manifests loaded", directory=str(root), files=files, objects=len(desired))
    return desired
