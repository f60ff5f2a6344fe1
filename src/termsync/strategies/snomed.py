"""SNOMED CT editions delivered through the release syndication feed.

Versions are edition URIs. ``http://snomed.info/sct/<module>`` asks for the
newest release of an edition, ``http://snomed.info/sct/<module>/version/<yyyymmdd>``
for one specific release. An extension package is always imported together
with the International edition release it depends on, International first.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ElementTree
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence
from urllib.parse import urlparse

import httpx

from ..catalog import SNOMED
from ..client import build_http_client, download, get_text
from ..config import SyndicationSettings
from ..content import ContentStore
from ..errors import NotFoundError, ServiceError
from ..files import find_files, remove_downloaded_files
from ..models import LATEST_VERSION, ImportParams, TerminologyPackage
from .base import store_packages

_LOGGER = logging.getLogger(__name__)

SNOMED_URI = "http://snomed.info/sct"
_EDITION_URI = re.compile(r"^http://snomed\.info/sct/(\d+)(?:/version/(\d{8}))?/?$")
_RELEASE_DATE = re.compile(r"_(\d{8})T\d{6}Z")
_EFFECTIVE_DATE = re.compile(r"^\d{8}$")
_PACKAGE_CATEGORIES = ("SCT_RF2_SNAPSHOT", "SCT_RF2_ALL")


@dataclass(frozen=True, slots=True)
class SnomedEdition:
    code: str
    module_id: str
    file_marker: str

    @property
    def uri(self) -> str:
        return f"{SNOMED_URI}/{self.module_id}"

    def version_uri(self, effective_date: str) -> str:
        return f"{self.uri}/version/{effective_date}"


INTERNATIONAL = SnomedEdition("INT", "900000000000207008", "International")

EDITIONS: Dict[str, SnomedEdition] = {
    edition.code: edition
    for edition in (
        INTERNATIONAL,
        SnomedEdition("BE", "11000172109", "Belgian"),
        SnomedEdition("NL", "11000146104", "Netherlands"),
        SnomedEdition("SE", "45991000052106", "Swedish"),
        SnomedEdition("DK", "554471000005108", "Danish"),
        SnomedEdition("NO", "51000202101", "Norwegian"),
    )
}


@dataclass(frozen=True, slots=True)
class FeedEntry:
    """A downloadable release advertised by the syndication feed."""

    identifier: str
    version_uri: str
    url: str
    category: str
    dependency: Optional[str] = None

    @property
    def effective_date(self) -> str:
        match = _EDITION_URI.match(self.version_uri)
        return (match.group(2) or "") if match else ""

    @property
    def file_name(self) -> str:
        return Path(urlparse(self.url).path).name


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_feed(document: str) -> List[FeedEntry]:
    """Extract RF2 package entries from an Atom syndication feed."""

    try:
        root = ElementTree.fromstring(document)
    except ElementTree.ParseError as exc:
        raise ServiceError(f"SNOMED CT syndication feed is not valid XML: {exc}") from exc

    entries: List[FeedEntry] = []
    for element in root:
        if _local_name(element.tag) != "entry":
            continue
        fields: Dict[str, str] = {}
        for child in element.iter():
            name = _local_name(child.tag)
            if name == "category" and child.get("term") in _PACKAGE_CATEGORIES:
                fields["category"] = child.get("term", "")
            elif name == "link" and child.get("rel", "alternate") == "alternate" and child.get("href"):
                fields.setdefault("url", child.get("href", ""))
            elif name in {"contentItemIdentifier", "contentItemVersion", "editionDependency"} and child.text:
                fields.setdefault(name, child.text.strip().rstrip("/"))
        if not {"category", "url", "contentItemIdentifier", "contentItemVersion"} <= fields.keys():
            continue
        entries.append(
            FeedEntry(
                identifier=fields["contentItemIdentifier"],
                version_uri=fields["contentItemVersion"],
                url=fields["url"],
                category=fields["category"],
                dependency=fields.get("editionDependency"),
            )
        )
    return entries


class SnomedImportStrategy:
    """Import SNOMED CT RF2 releases for the International edition or a national extension."""

    def __init__(
        self,
        settings: SyndicationSettings,
        content_store: ContentStore,
        *,
        default_extension: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._content_store = content_store
        self._default_extension = default_extension
        self._transport = transport
        self._working_directory = settings.working_directory(SNOMED)

    def fetch_packages(self, params: ImportParams) -> List[Path]:
        edition = self._edition(params.version, params.extension_name)
        if params.is_local:
            return self._local_packages(edition)

        entries = self._read_feed()
        target = self._requested_version_uri(params.version, edition)
        if target is None:
            target = self._latest_entry(entries, edition).version_uri
        entry = self._entry_for_version(entries, target)

        selected = [entry]
        if edition is not INTERNATIONAL and entry.dependency:
            selected.insert(0, self._entry_for_version(entries, entry.dependency))
        _LOGGER.info("Selected SNOMED CT packages: %s", ", ".join(item.version_uri for item in selected))

        files: List[Path] = []
        try:
            with self._http_client() as client:
                for item in selected:
                    destination = self._working_directory / item.file_name
                    download(client, item.url, destination, chunk_size=self._settings.download_chunk_size_bytes)
                    files.append(destination)
        except Exception:
            remove_downloaded_files(files)
            raise
        return files

    def import_packages(self, params: ImportParams, files: Sequence[Path]) -> None:
        packages = [
            TerminologyPackage(
                terminology=SNOMED,
                version=self.parse_version(path.name),
                path=path,
                metadata={"format": "RF2", "extension": params.extension_name},
            )
            for path in files
        ]
        store_packages(self._content_store, packages)

    def discover_latest_version(self, version_hint: str) -> str:
        edition = self._edition(version_hint, None)
        return self._latest_entry(self._read_feed(), edition).version_uri

    def parse_version(self, file_name: str) -> str:
        date = _RELEASE_DATE.search(file_name)
        edition = self._edition_from_file(file_name)
        if not date or edition is None:
            return file_name
        return edition.version_uri(date.group(1))

    def _edition(self, version: str, extension_name: Optional[str]) -> SnomedEdition:
        match = _EDITION_URI.match(version.rstrip("/"))
        if match:
            for edition in EDITIONS.values():
                if edition.module_id == match.group(1):
                    return edition
            raise ServiceError(f"Unsupported SNOMED CT edition: {version}")
        code = (extension_name or self._default_extension or INTERNATIONAL.code).upper()
        if code not in EDITIONS:
            raise ServiceError(f"Unsupported SNOMED CT extension: {code}")
        return EDITIONS[code]

    @staticmethod
    def _requested_version_uri(version: str, edition: SnomedEdition) -> Optional[str]:
        """Return the versioned URI asked for, or ``None`` when the newest release is wanted."""

        if version == LATEST_VERSION:
            return None
        match = _EDITION_URI.match(version.rstrip("/"))
        if match:
            return version.rstrip("/") if match.group(2) else None
        if _EFFECTIVE_DATE.match(version):
            return edition.version_uri(version)
        raise ServiceError(f"Unsupported SNOMED CT version: {version}")

    @staticmethod
    def _edition_from_file(file_name: str) -> Optional[SnomedEdition]:
        for edition in EDITIONS.values():
            if edition.file_marker in file_name:
                return edition
        return None

    def _local_packages(self, edition: SnomedEdition) -> List[Path]:
        """Newest local release of ``edition``, preceded by the newest International release for extensions."""

        files = find_files(self._working_directory, self._settings.snomed_file_pattern)
        release = self._newest_local_release(files, edition)
        if release is None:
            raise ServiceError(f"No local SNOMED CT package for edition {edition.code} in {self._working_directory}")
        if edition is INTERNATIONAL:
            return [release]
        international = self._newest_local_release(files, INTERNATIONAL)
        return [release] if international is None else [international, release]

    def _newest_local_release(self, files: Sequence[Path], edition: SnomedEdition) -> Optional[Path]:
        candidates = [path for path in files if self._edition_from_file(path.name) is edition]
        if not candidates:
            return None

        def release_date(path: Path) -> str:
            match = _RELEASE_DATE.search(path.name)
            return match.group(1) if match else ""

        return max(candidates, key=lambda path: (release_date(path), path.name))

    def _http_client(self) -> httpx.Client:
        auth = None
        if self._settings.snomed_feed_username:
            auth = httpx.BasicAuth(self._settings.snomed_feed_username, self._settings.snomed_feed_password or "")
        return build_http_client(self._settings, auth=auth, transport=self._transport)

    def _read_feed(self) -> List[FeedEntry]:
        with self._http_client() as client:
            return parse_feed(get_text(client, self._settings.snomed_feed_url))

    @staticmethod
    def _latest_entry(entries: Sequence[FeedEntry], edition: SnomedEdition) -> FeedEntry:
        candidates = [entry for entry in entries if entry.identifier == edition.uri and entry.effective_date]
        if not candidates:
            raise NotFoundError(f"No SNOMED CT release published for edition {edition.uri}")
        return max(candidates, key=lambda entry: (entry.effective_date, entry.category == "SCT_RF2_SNAPSHOT"))

    @staticmethod
    def _entry_for_version(entries: Sequence[FeedEntry], version_uri: str) -> FeedEntry:
        matches = [entry for entry in entries if entry.version_uri == version_uri]
        if not matches:
            raise NotFoundError(f"No SNOMED CT package found for version {version_uri}")
        return max(matches, key=lambda entry: entry.category == "SCT_RF2_SNAPSHOT")


__all__ = ["EDITIONS", "FeedEntry", "SnomedEdition", "SnomedImportStrategy", "parse_feed"]
