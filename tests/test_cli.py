import json
from datetime import date
from pathlib import Path

import pytest

from conftest import make_account, make_rates

from mailbox_pricing.cli import main
from mailbox_pricing.infrastructure.parsing.workbook import write_workbook
from mailbox_pricing.infrastructure.repositories.excel_repositories import WorkbookStore


@pytest.fixture
def workbook(tmp_path: Path) -> Path:
    path = tmp_path / "accounts.xlsx"
    write_workbook(
        [make_rates()],
        [make_account("ok", mailbox_number=1), make_account("under", mailbox_number=2, current_rate="40")],
        path,
    )
    return path


def test_audit_command_writes_reports_and_archive(workbook: Path, tmp_path: Path, capsys):
    csv_path = tmp_path / "results.csv"
    archive = tmp_path / "runs"

    code = main(
        [
            "audit", str(workbook), "--as-of", "2026-06-01",
            "--csv", str(csv_path), "--write-back", "--archive-dir", str(archive),
        ]
    )

    assert code == 0
    out = capsys.readouterr().out
    assert "Flagged: 1" in out
    assert "#2" in out and "[UNDERCHARGED]" in out
    assert csv_path.read_text(encoding="utf-8").count("\n") == 3
    assert WorkbookStore(workbook).accounts.get_account("under").audit_flag
    [run_dir] = list(archive.iterdir())
    assert (run_dir / "manifest.json").is_file()


def test_quote_command_prints_breakdown(workbook: Path, capsys):
    code = main(["quote", str(workbook), "--period", "three_month", "--adults", "1", "--as-of", "2026-06-01"])

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["totalForPeriod"] == 153.0


def test_validation_errors_exit_with_one(workbook: Path, capsys):
    code = main(["quote", str(workbook), "--period", "SIX_MONTH", "--adults", "0"])

    assert code == 1
    assert "Adult count" in capsys.readouterr().err


def test_unknown_account_exits_with_one(workbook: Path, capsys):
    code = main(
        ["renewal", str(workbook), "--account", "nope", "--period", "SIX_MONTH", "--start", date(2026, 1, 15).isoformat()]
    )

    assert code == 1
    assert "Account not found: nope" in capsys.readouterr().err


def test_rates_command_lists_versions(workbook: Path, capsys):
    assert main(["rates", str(workbook)]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["total"] == 1
    assert data["data"][0]["baseRate3mo"] == 153.0
