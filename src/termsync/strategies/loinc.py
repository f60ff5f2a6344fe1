"""LOINC releases, downloaded and uploaded through external tools."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence

import httpx

from ..catalog import LOINC
from ..client import build_http_client, get_text
from ..commands import run_command
from ..config import SyndicationSettings
from ..errors import ServiceError
from ..files import find_files, sort_by_version
from ..models import LATEST_VERSION, ImportParams

_LOGGER = logging.getLogger(__name__)
_RELEASE_FILE = re.compile(r"^Loinc_(\d+\.\d+)(?:-[^.]+)?\.zip$")
_ADVERTISED_VERSION = re.compile(r"Loinc[_-](\d+\.\d+)")
LOINC_SYSTEM_URL = "http://loinc.org"


class LoincImportStrategy:
    """Import LOINC with the download script and the HAPI FHIR CLI found in the working directory."""

    def __init__(self, settings: SyndicationSettings, *, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._settings = settings
        self._working_directory = settings.working_directory(LOINC)
        self._transport = transport

    def fetch_packages(self, params: ImportParams) -> List[Path]:
        if not params.is_local:
            self._download(params.version)
        package = self._select_package(None if params.is_local or params.is_latest else params.version)
        if package is None:
            raise ServiceError("Loinc terminology file not found, cannot be imported")
        _LOGGER.info("Using LOINC package %s", package)
        return [package]

    def import_packages(self, params: ImportParams, files: Sequence[Path]) -> None:
        run_command(
            [
                self._settings.hapi_cli_command,
                "upload-terminology",
                "-d",
                files[0].name,
                "-v",
                "r4",
                "-t",
                self._settings.fhir_server_url,
                "-u",
                LOINC_SYSTEM_URL,
            ],
            description="Import LOINC terminology",
            cwd=self._working_directory,
            timeout=self._settings.command_timeout_seconds,
        )

    def discover_latest_version(self, version_hint: str) -> str:
        with build_http_client(self._settings, transport=self._transport) as client:
            page = get_text(client, self._settings.loinc_downloads_url)
        match = _ADVERTISED_VERSION.search(page)
        if not match:
            raise ServiceError(f"No LOINC release advertised on {self._settings.loinc_downloads_url}")
        return match.group(1)

    def parse_version(self, file_name: str) -> str:
        match = _RELEASE_FILE.match(file_name)
        return match.group(1) if match else file_name

    def _download(self, version: str) -> None:
        self._working_directory.mkdir(parents=True, exist_ok=True)
        run_command(
            ["node", self._settings.loinc_download_script, "" if version == LATEST_VERSION else version],
            description="Download LOINC terminology",
            cwd=self._working_directory,
            timeout=self._settings.command_timeout_seconds,
        )

    def _select_package(self, version: Optional[str]) -> Optional[Path]:
        candidates = sort_by_version(
            find_files(self._working_directory, self._settings.loinc_file_pattern), self.parse_version
        )
        if version is not None:
            candidates = [path for path in candidates if self.parse_version(path.name) == version]
        return candidates[-1] if candidates else None


__all__ = ["LOINC_SYSTEM_URL", "LoincImportStrategy"]
