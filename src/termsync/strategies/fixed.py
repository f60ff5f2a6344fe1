"""Small code systems that exist in exactly one version (UCUM, BCP-13, BCP-47, ISO 3166, M49)."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Sequence

from ..config import SyndicationSettings
from ..content import ContentStore
from ..errors import NotFoundError, ServiceError
from ..files import find_file, stage_copy
from ..models import ImportParams, Terminology, TerminologyPackage
from .base import store_packages
from .local import STAGING_DIRECTORY

_LOGGER = logging.getLogger(__name__)

FIXED_VERSIONS = {
    "ucum": "2.2",
    "bcp13": "1.0.0",
    "bcp47": "1.0.0",
    "iso3166": "2020",
    "m49": "1.0.0",
}


class FixedVersionImportStrategy:
    """Import a code system whose version is defined here rather than by a release feed.

    When the catalog entry requires files, ``<name>-<version>.<ext>`` must sit in
    the working directory. Otherwise the content is generated and a package
    descriptor is written instead.
    """

    def __init__(self, settings: SyndicationSettings, content_store: ContentStore, terminology: Terminology) -> None:
        self._terminology = terminology
        self._content_store = content_store
        self._version = FIXED_VERSIONS[terminology.name]
        self._working_directory = settings.working_directory(terminology.name)
        self._release_file = re.compile(rf"^{re.escape(terminology.name)}-(.+?)\.[A-Za-z]+$")

    def fetch_packages(self, params: ImportParams) -> List[Path]:
        if not (params.is_local or params.is_latest) and params.version != self._version:
            raise NotFoundError(f"{self._terminology.name} is only available in version {self._version}")
        if not self._terminology.requires_files:
            return [self._generated_descriptor(keep=params.is_local)]

        package = find_file(self._working_directory, f"{self._terminology.name}-{self._version}.*")
        if package is None:
            raise ServiceError(
                f"{self._terminology.name} package for version {self._version} not found in {self._working_directory}"
            )
        if params.is_local:
            return [package]
        return [stage_copy(package, self._working_directory / STAGING_DIRECTORY)]

    def import_packages(self, params: ImportParams, files: Sequence[Path]) -> None:
        store_packages(
            self._content_store,
            [
                TerminologyPackage(
                    terminology=self._terminology.name,
                    version=self._version,
                    path=path,
                    metadata={"generated": not self._terminology.requires_files},
                )
                for path in files
            ],
        )

    def discover_latest_version(self, version_hint: str) -> str:
        return self._version

    def parse_version(self, file_name: str) -> str:
        match = self._release_file.match(file_name)
        return match.group(1) if match else file_name

    def _generated_descriptor(self, *, keep: bool) -> Path:
        directory = self._working_directory if keep else self._working_directory / STAGING_DIRECTORY
        path = directory / f"{self._terminology.name}-{self._version}.json"
        if keep and path.exists():
            return path
        directory.mkdir(parents=True, exist_ok=True)
        descriptor = {
            "terminology": self._terminology.name,
            "version": self._version,
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }
        path.write_text(json.dumps(descriptor, indent=2, sort_keys=True), encoding="utf-8")
        _LOGGER.info("Generated %s package descriptor %s", self._terminology.name, path)
        return path


__all__ = ["FIXED_VERSIONS", "FixedVersionImportStrategy"]
