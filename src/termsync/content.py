"""Seam between import strategies and the storage that serves imported content."""

from __future__ import annotations

import json
import logging
import re
import shutil
from pathlib import Path
from typing import Protocol

from .models import TerminologyPackage

_LOGGER = logging.getLogger(__name__)
_SEGMENT_SANITISER = re.compile(r"[^A-Za-z0-9_.-]+")
MANIFEST_NAME = "package.json"


class ContentStore(Protocol):
    """Storage engine that persists imported terminology content."""

    def create_or_replace(self, package: TerminologyPackage) -> Path:
        """Store ``package``, replacing content previously stored for the same version."""
        ...

    def delete(self, handle: Path) -> None:
        ...


def _safe_segment(value: str) -> str:
    return _SEGMENT_SANITISER.sub("_", value).strip("._") or "unversioned"


class FileSystemContentStore:
    """Publish packages under ``<root>/<terminology>/<version>/`` for the terminology server to load."""

    def __init__(self, root: Path) -> None:
        self._root = root.expanduser().resolve()

    def version_directory(self, terminology: str, version: str) -> Path:
        return self._root / _safe_segment(terminology) / _safe_segment(version)

    def create_or_replace(self, package: TerminologyPackage) -> Path:
        if not package.path.is_file():
            raise FileNotFoundError(f"Terminology package is missing: {package.path}")
        target = self.version_directory(package.terminology, package.version)
        if target.exists():
            _LOGGER.info("Replacing stored %s content for version %s", package.terminology, package.version)
            shutil.rmtree(target)
        target.mkdir(parents=True)
        shutil.copy2(package.path, target / package.path.name)
        manifest = {
            "terminology": package.terminology,
            "version": package.version,
            "file": package.path.name,
            "metadata": package.metadata,
        }
        (target / MANIFEST_NAME).write_text(json.dumps(manifest, indent=2, sort_keys=True), encoding="utf-8")
        _LOGGER.info("Stored %s (%s) at %s", package.terminology, package.version, target)
        return target

    def delete(self, handle: Path) -> None:
        if handle.exists():
            shutil.rmtree(handle)
            _LOGGER.info("Deleted stored content %s", handle)


__all__ = ["MANIFEST_NAME", "ContentStore", "FileSystemContentStore"]
