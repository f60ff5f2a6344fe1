"""HL7 terminology (THO) published as a FHIR NPM package."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence

import httpx

from ..catalog import HL7
from ..client import build_http_client, download, get_json
from ..config import SyndicationSettings
from ..content import ContentStore
from ..errors import ServiceError
from ..files import find_files, sort_by_version
from ..models import ImportParams, TerminologyPackage
from .base import store_packages
from .loinc import LOINC_SYSTEM_URL

_LOGGER = logging.getLogger(__name__)


class Hl7ImportStrategy:
    """Fetch ``hl7.terminology`` from the package registry and publish it to the content store."""

    def __init__(
        self,
        settings: SyndicationSettings,
        content_store: ContentStore,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._content_store = content_store
        self._transport = transport
        self._working_directory = settings.working_directory(HL7)
        self._package_name = settings.hl7_package_name
        self._release_file = re.compile(rf"^{re.escape(self._package_name)}-(.+)\.tgz$")

    def fetch_packages(self, params: ImportParams) -> List[Path]:
        if params.is_local:
            packages = sort_by_version(
                find_files(self._working_directory, f"{self._package_name}-*.tgz"), self.parse_version
            )
            if not packages:
                raise ServiceError(f"No {self._package_name} package found in {self._working_directory}")
            return [packages[-1]]

        version = self.discover_latest_version(params.version) if params.is_latest else params.version
        _LOGGER.info("Fetching %s version %s", self._package_name, version)
        url = f"{self._settings.hl7_package_registry}/{self._package_name}/{version}"
        destination = self._working_directory / f"{self._package_name}-{version}.tgz"
        with build_http_client(self._settings, transport=self._transport) as client:
            download(client, url, destination, chunk_size=self._settings.download_chunk_size_bytes)
        return [destination]

    def import_packages(self, params: ImportParams, files: Sequence[Path]) -> None:
        metadata: dict = {"package": self._package_name, "resources": ["CodeSystem", "ValueSet"]}
        if params.loinc_already_present:
            # LOINC is served from its own import; keep the package's LOINC stub out.
            metadata["skip_code_systems"] = [LOINC_SYSTEM_URL]
        packages = [
            TerminologyPackage(terminology=HL7, version=self.parse_version(path.name), path=path, metadata=metadata)
            for path in files
        ]
        store_packages(self._content_store, packages)

    def discover_latest_version(self, version_hint: str) -> str:
        url = f"{self._settings.hl7_package_registry}/{self._package_name}"
        with build_http_client(self._settings, transport=self._transport) as client:
            payload = get_json(client, url)
        latest = (payload.get("dist-tags") or {}).get("latest")
        if not latest:
            raise ServiceError(f"Package registry did not report a latest version for {self._package_name}")
        return latest

    def parse_version(self, file_name: str) -> str:
        match = self._release_file.match(file_name)
        return match.group(1) if match else file_name


__all__ = ["Hl7ImportStrategy"]
