"""Entry point deciding whether a terminology needs importing and scheduling the attempt."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from . import catalog
from .config import SyndicationSettings, get_settings
from .content import FileSystemContentStore
from .errors import ServiceError
from .models import LATEST_VERSION, ImportParams, ImportRequest, ImportState, ImportStatus
from .status import ImportStatusStore, InMemoryImportStatusStore, PostgresImportStatusStore
from .strategies import ImportStrategy, already_imported, build_strategies, run_import_attempt
from .worker import ImportWorkerPool

_LOGGER = logging.getLogger(__name__)


class ImportOrchestrator:
    """Bring terminologies up to date in the background.

    ``update_terminology`` only resolves the terminology, reads its status and
    decides whether an import is needed; the import itself runs on the worker
    pool. The status read and the background ``RUNNING`` write are not atomic,
    so two near-simultaneous requests for one terminology can both schedule.
    """

    def __init__(
        self,
        status_store: ImportStatusStore,
        strategies: Mapping[str, ImportStrategy],
        worker_pool: ImportWorkerPool,
    ) -> None:
        self._status_store = status_store
        self._strategies = dict(strategies)
        self._worker_pool = worker_pool

    @property
    def worker_pool(self) -> ImportWorkerPool:
        return self._worker_pool

    def update_terminology(self, request: ImportRequest) -> bool:
        """Return ``True`` when the requested version is already imported, ``False`` when an import was scheduled.

        Raises ``UnknownTerminologyError`` for names missing from the catalog.
        Every other failure is recorded on the terminology's status row.
        """

        terminology = catalog.resolve(request.terminology_name)
        version = request.version if request.version and request.version.strip() else LATEST_VERSION
        params = ImportParams(
            terminology=terminology,
            version=version,
            extension_name=request.extension_name,
            loinc_already_present=self.is_loinc_present(),
        )
        _LOGGER.info(
            "Update terminology using the following syndication parameters: terminology=%s, version=%s, extension=%s",
            terminology.name,
            version,
            request.extension_name,
        )
        status = self._status_store.get(terminology.name)
        strategy = self._strategies.get(terminology.name)
        if strategy is None:
            raise ServiceError(f"No import strategy configured for terminology {terminology.name}")

        if not terminology.always_reimport and already_imported(strategy, params, status):
            _LOGGER.info("Terminology %s already imported in version %s", terminology.name, version)
            return True

        _LOGGER.info("Scheduling import of terminology %s version %s", terminology.name, version)
        self._worker_pool.submit(
            terminology.name,
            version,
            lambda: run_import_attempt(strategy, params, self._status_store),
        )
        return False

    def import_default_terminologies(self) -> Dict[str, bool]:
        """Request the latest version of every terminology imported by default."""

        results: Dict[str, bool] = {}
        for terminology in catalog.default_terminologies():
            try:
                results[terminology.name] = self.update_terminology(
                    ImportRequest(terminology_name=terminology.name, version=LATEST_VERSION)
                )
            except (ServiceError, ValueError) as exc:
                _LOGGER.error("Skipping default import of %s: %s", terminology.name, exc)
        return results

    def get_import_status(self, terminology: str) -> Optional[ImportStatus]:
        return self._status_store.get(terminology)

    def get_all_import_statuses(self) -> List[ImportStatus]:
        return self._status_store.get_all()

    def is_import_running(self) -> bool:
        return any(status.status is ImportState.RUNNING for status in self._status_store.get_all())

    def is_loinc_present(self) -> bool:
        status = self._status_store.get(catalog.LOINC)
        return status is not None and status.status is ImportState.COMPLETED

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        return self._worker_pool.wait_idle(timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._worker_pool.shutdown(wait=wait)


def build_orchestrator(settings: Optional[SyndicationSettings] = None) -> ImportOrchestrator:
    """Wire stores, strategies and the worker pool from ``settings``."""

    settings = settings or get_settings()
    if settings.dsn:
        store = PostgresImportStatusStore(
            str(settings.dsn),
            schema=settings.db_schema,
            table=settings.status_table,
        )
        store.ensure_schema()
        status_store: ImportStatusStore = store
    else:
        _LOGGER.warning("TERMSYNC_DSN is not set; import statuses are kept in memory")
        status_store = InMemoryImportStatusStore()
    content_store = FileSystemContentStore(settings.content_root)
    return ImportOrchestrator(
        status_store,
        build_strategies(settings, content_store),
        ImportWorkerPool(settings.max_import_workers),
    )


__all__ = ["ImportOrchestrator", "build_orchestrator"]
