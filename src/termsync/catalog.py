"""Static catalog of terminologies the importer can syndicate."""

from __future__ import annotations

from types import MappingProxyType
from typing import List, Mapping

from .errors import UnknownTerminologyError
from .models import Terminology

ICPC2 = "icpc2"
ICD10 = "icd10"
ICD10_BE = "icd10-be"
LOINC = "loinc"
HL7 = "hl7"
SNOMED = "snomed"
ATC = "atc"
UCUM = "ucum"
BCP13 = "bcp13"
BCP47 = "bcp47"
ISO3166 = "iso3166"
M49 = "m49"


def _entry(name: str, *, import_by_default: bool, requires_files: bool, always_reimport: bool) -> Terminology:
    return Terminology(
        name=name,
        import_by_default=import_by_default,
        requires_files=requires_files,
        always_reimport=always_reimport,
    )


# Insertion order is the catalog order reported to operators.
TERMINOLOGIES: Mapping[str, Terminology] = MappingProxyType(
    {
        entry.name: entry
        for entry in (
            _entry(ICPC2, import_by_default=False, requires_files=True, always_reimport=False),
            _entry(ICD10, import_by_default=False, requires_files=True, always_reimport=False),
            _entry(ICD10_BE, import_by_default=False, requires_files=True, always_reimport=False),
            _entry(LOINC, import_by_default=False, requires_files=True, always_reimport=False),
            _entry(HL7, import_by_default=False, requires_files=True, always_reimport=False),
            _entry(SNOMED, import_by_default=False, requires_files=True, always_reimport=False),
            _entry(ATC, import_by_default=False, requires_files=True, always_reimport=False),
            _entry(UCUM, import_by_default=True, requires_files=True, always_reimport=True),
            _entry(BCP13, import_by_default=True, requires_files=True, always_reimport=False),
            _entry(BCP47, import_by_default=True, requires_files=True, always_reimport=False),
            _entry(ISO3166, import_by_default=True, requires_files=True, always_reimport=False),
            _entry(M49, import_by_default=True, requires_files=False, always_reimport=False),
        )
    }
)


def resolve(name: str) -> Terminology:
    """Return the catalog entry whose name matches ``name`` ignoring case."""

    if name:
        for terminology in TERMINOLOGIES.values():
            if terminology.name.lower() == name.lower():
                return terminology
    raise UnknownTerminologyError(name)


def all_terminologies() -> List[Terminology]:
    return list(TERMINOLOGIES.values())


def default_terminologies() -> List[Terminology]:
    """Terminologies eligible for unattended import at startup."""

    return [terminology for terminology in TERMINOLOGIES.values() if terminology.import_by_default]


__all__ = [
    "TERMINOLOGIES",
    "all_terminologies",
    "default_terminologies",
    "resolve",
]
