from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

LATEST_VERSION = "latest"
LOCAL_VERSION = "local"


class ImportState(str, Enum):
    """Lifecycle state recorded for a terminology import."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass(frozen=True, slots=True)
class Terminology:
    """Catalog entry describing a supported terminology and its import policy."""

    name: str
    import_by_default: bool
    requires_files: bool
    always_reimport: bool


@dataclass(slots=True)
class ImportRequest:
    """Caller-supplied request to bring a terminology up to date."""

    terminology_name: str
    version: Optional[str] = None
    extension_name: Optional[str] = None
    syndication_secret: Optional[str] = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class ImportParams:
    """Resolved parameters handed unchanged to an import strategy."""

    terminology: Terminology
    version: str
    extension_name: Optional[str] = None
    loinc_already_present: bool = False

    @property
    def is_local(self) -> bool:
        return self.version == LOCAL_VERSION

    @property
    def is_latest(self) -> bool:
        return self.version == LATEST_VERSION


@dataclass(frozen=True, slots=True)
class ImportStatus:
    """Current import status of one terminology; one row per terminology."""

    terminology: str
    requested_version: Optional[str]
    actual_version: Optional[str]
    status: ImportState
    error_message: Optional[str] = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> dict:
        return {
            "terminology": self.terminology,
            "requested_version": self.requested_version,
            "actual_version": self.actual_version,
            "status": self.status.value,
            "error_message": self.error_message,
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class TerminologyPackage:
    """A fetched package handed to a content store."""

    terminology: str
    version: str
    path: Path
    metadata: Dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class AttemptOutcome:
    """Completion event published by the worker pool after each import attempt."""

    terminology: str
    version: str
    succeeded: bool
    error: Optional[BaseException] = None
    duration_seconds: float = 0.0


__all__ = [
    "AttemptOutcome",
    "ImportParams",
    "ImportRequest",
    "ImportState",
    "ImportStatus",
    "LATEST_VERSION",
    "LOCAL_VERSION",
    "Terminology",
    "TerminologyPackage",
]
