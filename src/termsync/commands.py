"""Wrappers around the external download and upload tools used by some strategies."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from .errors import CommandError

_LOGGER = logging.getLogger(__name__)


def run_command(
    args: Sequence[str],
    *,
    description: str,
    cwd: Optional[Path] = None,
    timeout: Optional[float] = None,
) -> str:
    """Run ``args`` to completion and return its standard output.

    A missing executable surfaces as ``FileNotFoundError``, a non-zero exit as
    ``CommandError`` and an expired ``timeout`` as ``InterruptedError``.
    """

    _LOGGER.info("%s: running %s", description, " ".join(args))
    try:
        completed = subprocess.run(
            list(args),
            cwd=cwd,
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise InterruptedError(f"{description} did not finish within {timeout} seconds") from exc
    if completed.returncode != 0:
        _LOGGER.warning("%s exited with %s: %s", description, completed.returncode, completed.stderr.strip()[-500:])
        raise CommandError(description, completed.returncode, completed.stderr)
    _LOGGER.info("%s finished", description)
    return completed.stdout


__all__ = ["run_command"]
