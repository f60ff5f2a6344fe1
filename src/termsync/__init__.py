"""Keep terminology server content in line with upstream terminology releases."""

from .catalog import all_terminologies, default_terminologies, resolve
from .config import SyndicationSettings, get_settings
from .errors import CommandError, NotFoundError, ServiceError, UnknownTerminologyError
from .models import ImportRequest, ImportState, ImportStatus, Terminology
from .orchestrator import ImportOrchestrator, build_orchestrator

__all__ = [
    "CommandError",
    "ImportOrchestrator",
    "ImportRequest",
    "ImportState",
    "ImportStatus",
    "NotFoundError",
    "ServiceError",
    "SyndicationSettings",
    "Terminology",
    "UnknownTerminologyError",
    "all_terminologies",
    "build_orchestrator",
    "default_terminologies",
    "get_settings",
    "resolve",
]
