"""Configuration utilities for the terminology syndication importer."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from pydantic import Field, PositiveFloat, PositiveInt, PostgresDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyndicationSettings(BaseSettings):
    """Settings model driven by environment variables.

    Environment variables are prefixed with ``TERMSYNC_``. For example, set
    ``TERMSYNC_WORKING_ROOT=/var/lib/termsync`` to move the per-terminology
    working directories.
    """

    model_config = SettingsConfigDict(
        env_prefix="TERMSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    dsn: Optional[PostgresDsn] = Field(
        default=None,
        description="PostgreSQL connection string for the import status table. Unset keeps statuses in memory.",
    )
    db_schema: str = Field(
        default="syndication",
        description="Database schema that stores the import status table.",
        min_length=1,
    )
    status_table: str = Field(
        default="syndication_import",
        description="Table holding one import status row per terminology.",
        min_length=1,
    )
    max_import_workers: PositiveInt = Field(
        default=4,
        description="Number of terminology imports that may run concurrently.",
    )
    working_root: Path = Field(
        default_factory=lambda: Path("data") / "syndication",
        description="Root directory; each terminology gets its own working directory below it.",
    )
    content_root: Path = Field(
        default_factory=lambda: Path("data") / "content",
        description="Directory where imported packages are published for the terminology server.",
    )
    command_timeout_seconds: PositiveFloat = Field(
        default=7200.0,
        description="Upper bound for external download/import commands.",
    )
    http_timeout_seconds: PositiveFloat = Field(
        default=60.0,
        description="Timeout applied to metadata lookups and package downloads.",
    )
    download_chunk_size_bytes: PositiveInt = Field(
        default=2_097_152,
        description="Chunk size (bytes) used when streaming package downloads.",
    )
    fhir_server_url: str = Field(
        default="http://localhost:8080/fhir",
        description="FHIR endpoint receiving uploads from the HAPI FHIR CLI.",
    )
    hapi_cli_command: str = Field(
        default="./hapi-fhir-cli",
        description="HAPI FHIR CLI executable, resolved relative to the LOINC working directory.",
    )
    loinc_file_pattern: str = Field(
        default="Loinc_*.zip",
        description="Glob matching LOINC release archives in the working directory.",
    )
    loinc_download_script: str = Field(
        default="./download_loinc.mjs",
        description="Node script that downloads a LOINC release into the working directory.",
    )
    loinc_downloads_url: str = Field(
        default="https://loinc.org/downloads/",
        description="Page advertising the current LOINC release.",
    )
    hl7_package_registry: str = Field(
        default="https://packages.fhir.org",
        description="FHIR NPM package registry serving HL7 terminology packages.",
    )
    hl7_package_name: str = Field(
        default="hl7.terminology.r4",
        description="Name of the HL7 terminology package.",
    )
    snomed_feed_url: str = Field(
        default="https://mlds.ihtsdotools.org/api/feed",
        description="SNOMED CT release syndication (Atom) feed.",
    )
    snomed_feed_username: Optional[str] = Field(
        default=None,
        description="Username for the SNOMED CT syndication feed, when it requires basic auth.",
    )
    snomed_feed_password: Optional[str] = Field(
        default=None,
        description="Password for the SNOMED CT syndication feed.",
    )
    snomed_default_extension: Optional[str] = Field(
        default=None,
        description="Extension code (for example BE) used when a request names no SNOMED CT extension.",
    )
    snomed_file_pattern: str = Field(
        default="SnomedCT_*.zip",
        description="Glob matching RF2 release archives in the SNOMED working directory.",
    )
    local_file_patterns: Dict[str, str] = Field(
        default_factory=lambda: {
            "icd10": "icd10-[0-9]*",
            "icd10-be": "icd10-be-[0-9]*",
            "icpc2": "icpc2-[0-9]*",
            "atc": "atc-[0-9]*",
        },
        description="Glob per operator-supplied terminology, matched inside its working directory.",
    )

    @field_validator("hl7_package_registry", "snomed_feed_url", "fhir_server_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = (value or "").strip().rstrip("/")
        if not value:
            raise ValueError("URL settings must not be empty")
        return value

    @field_validator("local_file_patterns")
    @classmethod
    def _normalise_pattern_keys(cls, value: Dict[str, str]) -> Dict[str, str]:
        return {key.strip().lower(): pattern for key, pattern in value.items()}

    def working_directory(self, terminology: str) -> Path:
        """Return the resolved working directory for ``terminology``."""

        return (self.working_root.expanduser() / terminology.lower()).resolve()

    def ensure_directories(self) -> None:
        """Create the working and content roots."""

        for path in (self.working_root, self.content_root):
            path.expanduser().resolve().mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> SyndicationSettings:
    """Return a cached ``SyndicationSettings`` instance."""

    settings = SyndicationSettings()
    settings.ensure_directories()
    return settings


__all__ = ["SyndicationSettings", "get_settings"]
