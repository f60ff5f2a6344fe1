"""CLI entrypoint for requesting terminology imports and inspecting their status."""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from .errors import UnknownTerminologyError
from .models import ImportRequest, ImportState, ImportStatus
from .orchestrator import ImportOrchestrator, build_orchestrator

console = Console()

_STATE_STYLES = {
    ImportState.RUNNING: "yellow",
    ImportState.COMPLETED: "green",
    ImportState.FAILED: "bold red",
}


def _configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    )


def display_statuses(statuses: Sequence[ImportStatus]) -> None:
    if not statuses:
        console.print("No terminology imports recorded yet.")
        return
    table = Table(title="Terminology imports")
    table.add_column("Terminology", style="bold")
    table.add_column("Requested")
    table.add_column("Actual")
    table.add_column("Status", justify="center")
    table.add_column("Error")
    for status in statuses:
        style = _STATE_STYLES.get(status.status, "")
        table.add_row(
            status.terminology,
            status.requested_version or "",
            status.actual_version or "",
            f"[{style}]{status.status.value}[/{style}]" if style else status.status.value,
            status.error_message or "",
        )
    console.print(table)


def _finish(orchestrator: ImportOrchestrator, wait: bool) -> None:
    if wait:
        orchestrator.wait_idle()
        display_statuses(orchestrator.get_all_import_statuses())
    orchestrator.shutdown(wait=True)


def _update(orchestrator: ImportOrchestrator, args: argparse.Namespace) -> None:
    request = ImportRequest(
        terminology_name=args.terminology,
        version=args.version,
        extension_name=args.extension,
    )
    if orchestrator.update_terminology(request):
        console.print(f"{args.terminology} is already up to date.")
    else:
        console.print(f"Import of {args.terminology} scheduled.")
    _finish(orchestrator, args.wait)


def _startup(orchestrator: ImportOrchestrator, args: argparse.Namespace) -> None:
    results = orchestrator.import_default_terminologies()
    for name, up_to_date in results.items():
        console.print(f"{name}: {'up to date' if up_to_date else 'scheduled'}")
    _finish(orchestrator, args.wait)


def _status(orchestrator: ImportOrchestrator, args: argparse.Namespace) -> None:
    display_statuses(orchestrator.get_all_import_statuses())
    orchestrator.shutdown(wait=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Terminology syndication importer")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    update_parser = subparsers.add_parser("update", help="Import a terminology unless it is already up to date")
    update_parser.add_argument("terminology", help="Terminology name, for example loinc or snomed")
    update_parser.add_argument("--version", default=None, help="Version to import: latest (default), local or exact")
    update_parser.add_argument("--extension", default=None, help="Extension name, for example BE for SNOMED CT")
    update_parser.add_argument("--wait", action="store_true", help="Wait for the import and print the statuses")

    startup_parser = subparsers.add_parser("startup", help="Import the latest version of every default terminology")
    startup_parser.add_argument("--wait", action="store_true", help="Wait for the imports and print the statuses")

    subparsers.add_parser(
        "status",
        help="Show the import status of every terminology",
        description=(
            "Show the import status of every terminology. Statuses are read from the "
            "PostgreSQL table named by TERMSYNC_DSN; without it they are kept in memory, "
            "so only imports run by this same process are listed."
        ),
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Console script entry point."""

    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return

    handlers = {"update": _update, "startup": _startup, "status": _status}
    orchestrator = build_orchestrator()
    try:
        handlers[args.command](orchestrator, args)
    except UnknownTerminologyError as exc:
        orchestrator.shutdown(wait=False)
        parser.error(str(exc))


if __name__ == "__main__":  # pragma: no cover
    main()
