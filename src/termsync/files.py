"""Filesystem helpers for locating and cleaning up terminology packages."""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

_LOGGER = logging.getLogger(__name__)


def find_files(directory: Path, pattern: str) -> List[Path]:
    """Return regular files in ``directory`` matching ``pattern``, sorted by name."""

    if not directory.is_dir():
        return []
    return sorted(path for path in directory.glob(pattern) if path.is_file())


def find_file(directory: Path, pattern: str) -> Optional[Path]:
    """Return the last file (by name) in ``directory`` matching ``pattern``."""

    matches = find_files(directory, pattern)
    return matches[-1] if matches else None


def remove_downloaded_files(files: Iterable[Path]) -> None:
    for path in files:
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        _LOGGER.info("Removed downloaded package %s", path)


def stage_copy(path: Path, staging_directory: Path) -> Path:
    """Copy an operator-supplied package into ``staging_directory`` so it can be cleaned up after import."""

    staging_directory.mkdir(parents=True, exist_ok=True)
    target = staging_directory / path.name
    shutil.copy2(path, target)
    return target


def version_sort_key(version: str) -> Tuple[Tuple[int, object], ...]:
    """Order version strings numerically where they are numeric (``2.10`` after ``2.9``)."""

    return tuple((0, int(part)) if part.isdigit() else (1, part) for part in re.split(r"[.\-_]", version))


def sort_by_version(paths: Iterable[Path], parse_version: Callable[[str], str]) -> List[Path]:
    """Order package files by the version parsed from their names, newest last."""

    return sorted(paths, key=lambda path: version_sort_key(parse_version(path.name)))


def package_fingerprint(path: Path) -> str:
    """Identity of a local package: name, size in bytes and mtime in milliseconds."""

    stat = path.stat()
    return f"{path.name}-{stat.st_size}-{stat.st_mtime_ns // 1_000_000}"


__all__ = [
    "find_file",
    "find_files",
    "package_fingerprint",
    "remove_downloaded_files",
    "sort_by_version",
    "stage_copy",
    "version_sort_key",
]
