from __future__ import annotations

import pytest

from termsync import cli
from termsync.models import ImportState, ImportStatus
from termsync.orchestrator import ImportOrchestrator
from termsync.status import InMemoryImportStatusStore
from termsync.worker import ImportWorkerPool


@pytest.fixture
def orchestrator(monkeypatch: pytest.MonkeyPatch, stub_strategy_cls, make_package) -> ImportOrchestrator:
    status_store = InMemoryImportStatusStore(
        [
            ImportStatus(
                terminology="atc",
                requested_version="local",
                actual_version="2024",
                status=ImportState.FAILED,
                error_message="no release",
            )
        ]
    )
    strategies = {
        "loinc": stub_strategy_cls([make_package("Loinc-2.80.zip")]),
        "ucum": stub_strategy_cls([make_package("ucum-2.2.xml")]),
    }
    instance = ImportOrchestrator(status_store, strategies, ImportWorkerPool(max_workers=1))
    monkeypatch.setattr(cli, "build_orchestrator", lambda: instance)
    return instance


def test_update_waits_and_prints_statuses(orchestrator: ImportOrchestrator, capsys: pytest.CaptureFixture) -> None:
    cli.main(["update", "loinc", "--wait"])

    output = capsys.readouterr().out
    assert "Import of loinc scheduled." in output
    assert "COMPLETED" in output
    assert orchestrator.get_import_status("loinc").actual_version == "2.80"


def test_update_reports_up_to_date(orchestrator: ImportOrchestrator, capsys: pytest.CaptureFixture) -> None:
    cli.main(["update", "loinc", "--wait"])
    capsys.readouterr()

    cli.main(["update", "loinc", "--version", "2.80"])

    assert "loinc is already up to date." in capsys.readouterr().out


def test_unknown_terminology_exits_with_usage_error(orchestrator: ImportOrchestrator, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["update", "rxnorm"])

    assert excinfo.value.code == 2
    assert "Unknown syndication terminology: rxnorm" in capsys.readouterr().err


def test_status_lists_recorded_imports(orchestrator: ImportOrchestrator, capsys: pytest.CaptureFixture) -> None:
    cli.main(["status"])

    output = capsys.readouterr().out
    assert "atc" in output
    assert "FAILED" in output


def test_startup_imports_default_terminologies(orchestrator: ImportOrchestrator, capsys: pytest.CaptureFixture) -> None:
    cli.main(["startup", "--wait"])

    output = capsys.readouterr().out
    assert "ucum: scheduled" in output
    assert orchestrator.get_import_status("ucum").status is ImportState.COMPLETED


def test_no_command_prints_help(capsys: pytest.CaptureFixture) -> None:
    cli.main([])

    assert "Terminology syndication importer" in capsys.readouterr().out


def test_status_help_explains_in_memory_statuses(capsys: pytest.CaptureFixture) -> None:
    with pytest.raises(SystemExit) as exit_info:
        cli.main(["status", "--help"])

    assert exit_info.value.code == 0
    output = " ".join(capsys.readouterr().out.split())
    assert "TERMSYNC_DSN" in output
    assert "kept in memory" in output
