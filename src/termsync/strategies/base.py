"""Import strategy interface and the lifecycle shared by every terminology."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from ..content import ContentStore
from ..errors import ServiceError
from ..files import package_fingerprint, remove_downloaded_files
from ..models import ImportParams, ImportState, ImportStatus, TerminologyPackage
from ..status import ImportStatusStore

_LOGGER = logging.getLogger(__name__)


class ImportStrategy(Protocol):
    """Terminology-specific capabilities driven by :func:`run_import_attempt`."""

    def fetch_packages(self, params: ImportParams) -> List[Path]:
        """Return the package files to import, ordered; the last one identifies the version."""
        ...

    def import_packages(self, params: ImportParams, files: Sequence[Path]) -> None:
        ...

    def discover_latest_version(self, version_hint: str) -> str:
        ...

    def parse_version(self, file_name: str) -> str:
        ...


def local_package_fingerprint(files: Sequence[Path]) -> Optional[str]:
    if not files:
        return None
    return package_fingerprint(files[-1])


def _save_status(
    store: ImportStatusStore,
    params: ImportParams,
    state: ImportState,
    actual_version: Optional[str],
    error_message: Optional[str] = None,
) -> None:
    _LOGGER.info(
        "Saving syndication import status: terminology=%s, requested version=%s, actual version=%s, status=%s",
        params.terminology.name,
        params.version,
        actual_version,
        state.value,
    )
    store.save(
        ImportStatus(
            terminology=params.terminology.name,
            requested_version=params.version,
            actual_version=actual_version,
            status=state,
            error_message=error_message,
        )
    )


def run_import_attempt(strategy: ImportStrategy, params: ImportParams, store: ImportStatusStore) -> str:
    """Fetch and import one terminology, recording every transition in ``store``.

    Returns the imported version. Any failure is recorded as ``FAILED`` and
    re-raised to the caller.
    """

    prior = store.get(params.terminology.name)
    previous_version = prior.actual_version if prior else None
    _save_status(store, params, ImportState.RUNNING, previous_version)
    files: List[Path] = []
    try:
        files = strategy.fetch_packages(params)
        if not files:
            raise ServiceError(f"No terminology packages found for version {params.version}")
        strategy.import_packages(params, files)
        if params.is_local:
            imported_version = local_package_fingerprint(files)
        else:
            imported_version = strategy.parse_version(files[-1].name)
        if not imported_version:
            raise ServiceError(f"Could not determine the imported version from {files[-1].name}")
    except Exception as exc:
        # Logged by the caller; only the status is recorded here.
        _save_status(store, params, ImportState.FAILED, previous_version, str(exc))
        raise
    else:
        _save_status(store, params, ImportState.COMPLETED, imported_version)
    finally:
        # Fetched packages never outlive their attempt.
        if not params.is_local:
            remove_downloaded_files(files)
    return imported_version


def already_imported(strategy: ImportStrategy, params: ImportParams, prior: Optional[ImportStatus]) -> bool:
    """Decide whether ``params`` is already satisfied by the recorded ``prior`` status."""

    name = params.terminology.name
    if prior is not None and prior.status is ImportState.COMPLETED and prior.actual_version:
        if prior.actual_version == params.version:
            return True
        if params.is_local:
            try:
                local_files = strategy.fetch_packages(params)
            except Exception:
                # The scheduled attempt records the same failure as FAILED.
                _LOGGER.error("Failed to locate local packages for terminology: %s", name, exc_info=True)
                return False
            return prior.actual_version == local_package_fingerprint(local_files)
        if params.is_latest or params.version in prior.actual_version:
            _LOGGER.info("Fetching latest version number for terminology: %s", name)
            try:
                latest_version = strategy.discover_latest_version(params.version)
            except Exception:
                _LOGGER.error("Failed to fetch latest version number for terminology: %s", name, exc_info=True)
            else:
                _LOGGER.info("Latest %s version: %s", name, latest_version)
                return prior.actual_version == latest_version
    _LOGGER.info("Terminology %s has not yet been imported in version %s", name, params.version)
    return False


def store_packages(content_store: ContentStore, packages: Sequence[TerminologyPackage]) -> List[Path]:
    """Store ``packages`` in order, deleting the ones already stored if a later one fails."""

    handles: List[Path] = []
    try:
        for package in packages:
            handles.append(content_store.create_or_replace(package))
    except Exception:
        for handle in reversed(handles):
            content_store.delete(handle)
        raise
    return handles


__all__ = [
    "ImportStrategy",
    "already_imported",
    "local_package_fingerprint",
    "run_import_attempt",
    "store_packages",
]
