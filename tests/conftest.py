from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

import pytest

from termsync.config import SyndicationSettings
from termsync.content import FileSystemContentStore
from termsync.models import ImportParams, ImportStatus
from termsync.status import InMemoryImportStatusStore


class RecordingStatusStore(InMemoryImportStatusStore):
    """In-memory store that also keeps every saved status in order."""

    def __init__(self, statuses: Optional[Sequence[ImportStatus]] = None) -> None:
        super().__init__(statuses)
        self.saved: List[ImportStatus] = []

    def save(self, status: ImportStatus) -> None:
        self.saved.append(status)
        super().save(status)


class StubStrategy:
    """Strategy double whose packages are ``<name>-<version>.zip`` files."""

    def __init__(
        self,
        files: Sequence[Path] = (),
        *,
        latest: str = "1.0",
        fetch_error: Optional[Exception] = None,
        import_error: Optional[Exception] = None,
        latest_error: Optional[Exception] = None,
    ) -> None:
        self.files = list(files)
        self.latest = latest
        self.fetch_error = fetch_error
        self.import_error = import_error
        self.latest_error = latest_error
        self.fetch_calls = 0
        self.latest_calls = 0
        self.imported: List[List[Path]] = []
        self.params: List[ImportParams] = []

    def fetch_packages(self, params: ImportParams) -> List[Path]:
        self.fetch_calls += 1
        self.params.append(params)
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.files)

    def import_packages(self, params: ImportParams, files: Sequence[Path]) -> None:
        if self.import_error is not None:
            raise self.import_error
        self.imported.append(list(files))

    def discover_latest_version(self, version_hint: str) -> str:
        self.latest_calls += 1
        if self.latest_error is not None:
            raise self.latest_error
        return self.latest

    def parse_version(self, file_name: str) -> str:
        return Path(file_name).stem.rsplit("-", 1)[-1]


@pytest.fixture
def settings(tmp_path: Path) -> SyndicationSettings:
    return SyndicationSettings(
        _env_file=None,
        working_root=tmp_path / "work",
        content_root=tmp_path / "content",
    )


@pytest.fixture
def content_store(settings: SyndicationSettings) -> FileSystemContentStore:
    return FileSystemContentStore(settings.content_root)


@pytest.fixture
def status_store() -> RecordingStatusStore:
    return RecordingStatusStore()


@pytest.fixture
def stub_strategy_cls():
    return StubStrategy


@pytest.fixture
def make_package(tmp_path: Path):
    """Create a package file and return its path."""

    def factory(name: str, content: str = "payload", directory: Optional[Path] = None) -> Path:
        target_dir = directory or tmp_path / "packages"
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / name
        path.write_text(content, encoding="utf-8")
        return path

    return factory
