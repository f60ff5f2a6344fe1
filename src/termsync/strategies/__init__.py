"""Import strategies, one per catalog terminology, selected by name."""

from __future__ import annotations

from typing import Dict, Optional

import httpx

from .. import catalog
from ..config import SyndicationSettings
from ..content import ContentStore
from .base import ImportStrategy, already_imported, local_package_fingerprint, run_import_attempt
from .fixed import FIXED_VERSIONS, FixedVersionImportStrategy
from .hl7 import Hl7ImportStrategy
from .local import LocalReleaseImportStrategy
from .loinc import LoincImportStrategy
from .snomed import SnomedImportStrategy


def build_strategies(
    settings: SyndicationSettings,
    content_store: ContentStore,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> Dict[str, ImportStrategy]:
    """Return the name-keyed strategy table covering every catalog terminology."""

    strategies: Dict[str, ImportStrategy] = {
        catalog.LOINC: LoincImportStrategy(settings, transport=transport),
        catalog.HL7: Hl7ImportStrategy(settings, content_store, transport=transport),
        catalog.SNOMED: SnomedImportStrategy(
            settings,
            content_store,
            default_extension=settings.snomed_default_extension,
            transport=transport,
        ),
    }
    for name in (catalog.ICD10, catalog.ICD10_BE, catalog.ICPC2, catalog.ATC):
        strategies[name] = LocalReleaseImportStrategy(settings, content_store, name)
    for name in FIXED_VERSIONS:
        strategies[name] = FixedVersionImportStrategy(settings, content_store, catalog.resolve(name))
    return strategies


__all__ = [
    "ImportStrategy",
    "already_imported",
    "build_strategies",
    "local_package_fingerprint",
    "run_import_attempt",
]
