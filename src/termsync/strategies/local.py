"""Terminologies whose releases are dropped into the working directory by operators."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Sequence

from ..config import SyndicationSettings
from ..content import ContentStore
from ..errors import NotFoundError
from ..files import find_files, sort_by_version, stage_copy
from ..models import ImportParams, TerminologyPackage
from .base import store_packages

_LOGGER = logging.getLogger(__name__)

STAGING_DIRECTORY = ".staging"


class LocalReleaseImportStrategy:
    """Import ``<terminology>-<version>.<ext>`` release files (ICD-10, ICPC-2, ATC).

    Nothing is downloaded. Non-local imports work on a staged copy, so the
    operator's file survives the post-import clean-up.
    """

    def __init__(self, settings: SyndicationSettings, content_store: ContentStore, terminology: str) -> None:
        self._terminology = terminology
        self._content_store = content_store
        self._working_directory = settings.working_directory(terminology)
        self._pattern = settings.local_file_patterns.get(terminology, f"{terminology}-[0-9]*")
        self._release_file = re.compile(rf"^{re.escape(terminology)}-(\d.*?)\.[A-Za-z]+$")

    def fetch_packages(self, params: ImportParams) -> List[Path]:
        releases = self._releases()
        if params.is_local:
            return [releases[-1]]
        if params.is_latest:
            selected = releases[-1]
        else:
            matching = [path for path in releases if self.parse_version(path.name) == params.version]
            if not matching:
                raise NotFoundError(f"No {self._terminology} release file for version {params.version}")
            selected = matching[-1]
        _LOGGER.info("Staging %s release %s", self._terminology, selected.name)
        return [stage_copy(selected, self._working_directory / STAGING_DIRECTORY)]

    def import_packages(self, params: ImportParams, files: Sequence[Path]) -> None:
        store_packages(
            self._content_store,
            [
                TerminologyPackage(terminology=self._terminology, version=self.parse_version(path.name), path=path)
                for path in files
            ],
        )

    def discover_latest_version(self, version_hint: str) -> str:
        return self.parse_version(self._releases()[-1].name)

    def parse_version(self, file_name: str) -> str:
        match = self._release_file.match(file_name)
        return match.group(1) if match else file_name

    def _releases(self) -> List[Path]:
        """Release files ordered by version, newest last."""

        files = find_files(self._working_directory, self._pattern)
        if not files:
            raise NotFoundError(f"No {self._terminology} release files found in {self._working_directory}")
        return sort_by_version(files, self.parse_version)


__all__ = ["LocalReleaseImportStrategy", "STAGING_DIRECTORY"]
