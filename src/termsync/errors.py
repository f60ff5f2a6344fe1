"""Exception types raised by the syndication importer."""

from __future__ import annotations

from typing import Optional


class UnknownTerminologyError(ValueError):
    """Raised when a request names a terminology missing from the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown syndication terminology: {name}")
        self.name = name


class ServiceError(RuntimeError):
    """Raised when a terminology package cannot be fetched or imported."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class NotFoundError(ServiceError):
    """Raised when no package exists for the requested terminology version."""


class CommandError(OSError):
    """Raised when an external download or import command exits unsuccessfully."""

    def __init__(self, description: str, returncode: int, output: str = "") -> None:
        super().__init__(f"{description} failed with exit code {returncode}")
        self.description = description
        self.returncode = returncode
        self.output = output


__all__ = ["CommandError", "NotFoundError", "ServiceError", "UnknownTerminologyError"]
