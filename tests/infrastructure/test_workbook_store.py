from datetime import date
from decimal import Decimal
from pathlib import Path

import pandas as pd
import pytest

from conftest import AS_OF, AUDITED_AT, adult, business, make_account, make_rates, minor

from mailbox_pricing.application.use_cases import AuditReconciler
from mailbox_pricing.domain.errors import RepositoryUnavailableError
from mailbox_pricing.domain.models import AuditFlagType, RecipientType, RenewalPeriod
from mailbox_pricing.domain.rates import RateTable
from mailbox_pricing.infrastructure.parsing.workbook import rates_to_frame, write_workbook
from mailbox_pricing.infrastructure.repositories.excel_repositories import WorkbookStore


@pytest.fixture
def workbook(tmp_path: Path) -> Path:
    path = tmp_path / "accounts.xlsx"
    accounts = [
        make_account(
            "acct-1",
            mailbox_number=101,
            current_rate="52",
            recipients=(adult("r1", name="Pat Owner", primary=True), minor("r2", date(2012, 4, 1))),
        ),
        make_account(
            "acct-2",
            mailbox_number=102,
            current_rate="40",
            period=RenewalPeriod.TWELVE_MONTH,
            recipients=(business("r3", name="Acme LLC", primary=True),),
            last_renewal_date=date(2026, 2, 1),
        ),
    ]
    versions = [
        make_rates("v1", start=date(2025, 1, 1), end=date(2025, 12, 31), monthly="49"),
        make_rates("v2", start=date(2026, 1, 1)),
    ]
    write_workbook(versions, accounts, path)
    return path


def test_round_trip_preserves_rates_and_accounts(workbook: Path):
    store = WorkbookStore(workbook)

    versions = store.rates.list_versions()
    assert [v.id for v in versions] == ["v1", "v2"]
    assert versions[0].end_date == date(2025, 12, 31)
    assert versions[1].end_date is None
    assert versions[1].base_rate_3mo == Decimal("153")
    assert [t.monthly_rate for t in versions[1].additional_adult_tiers] == [
        Decimal("2"), Decimal("3"), Decimal("4"), Decimal("5"),
    ]

    first = store.accounts.get_account("acct-1")
    assert first.mailbox_number == 101
    assert first.renewal_period is RenewalPeriod.THREE_MONTH
    assert first.account_name == "Pat Owner"
    assert [r.birthdate for r in first.recipients] == [date(1980, 5, 1), date(2012, 4, 1)]

    second = store.accounts.get_account("acct-2")
    assert second.rate_date == date(2026, 2, 1)
    assert second.recipients[0].recipient_type is RecipientType.BUSINESS
    assert second.account_name == "Acme LLC"


def test_audit_flags_survive_save(workbook: Path, tmp_path: Path):
    store = WorkbookStore(workbook)
    AuditReconciler(store.accounts, RateTable(store.rates), clock=lambda: AUDITED_AT).run_audit(as_of=AS_OF)
    target = tmp_path / "audited.xlsx"

    store.save(target)
    reloaded = WorkbookStore(target)

    flagged = reloaded.accounts.get_account("acct-2")
    assert flagged.audit_flag
    assert flagged.audit_flag_type is AuditFlagType.UNDERCHARGED
    assert flagged.audited_at == AUDITED_AT
    assert not reloaded.accounts.get_account("acct-1").audit_flag


def test_store_accepts_bytes(workbook: Path):
    store = WorkbookStore(workbook.read_bytes())

    assert store.raw == workbook.read_bytes()
    assert WorkbookStore(store.to_bytes()).accounts.get_account("acct-1") is not None


def test_unreadable_workbook_raises_repository_error(tmp_path: Path):
    with pytest.raises(RepositoryUnavailableError):
        WorkbookStore(b"not a workbook")
    with pytest.raises(RepositoryUnavailableError):
        WorkbookStore(tmp_path / "missing.xlsx")


def test_missing_sheet_raises_repository_error(tmp_path: Path):
    path = tmp_path / "rates_only.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        rates_to_frame([make_rates()]).to_excel(writer, sheet_name="Rates", index=False)

    with pytest.raises(RepositoryUnavailableError, match="Accounts"):
        WorkbookStore(path)


def test_headers_are_matched_loosely(tmp_path: Path):
    path = tmp_path / "loose.xlsx"
    rates = pd.DataFrame(
        {
            "Start Date": ["2026-01-01"],
            "Base Rate 3mo": ["$153.00"],
            "Base Rate 6mo": ["306"],
            "Base Rate 12mo": ["612"],
            "Rate 4th Adult": ["2"],
        }
    )
    accounts = pd.DataFrame(
        {
            "ID": ["a1"],
            "Mailbox Number": ["7"],
            "Renewal Period": ["six_month"],
            "Current Rate": ["51"],
            "Start Date": ["2026-01-01"],
        }
    )
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        rates.to_excel(writer, sheet_name="rates", index=False)
        accounts.to_excel(writer, sheet_name="ACCOUNTS", index=False)

    store = WorkbookStore(path)

    [version] = store.rates.list_versions()
    assert version.base_rate_3mo == Decimal("153.00")
    assert version.tier_rate(0) == Decimal("2")
    assert version.tier_rate(1) == Decimal("0")
    account = store.accounts.get_account("a1")
    assert account.renewal_period is RenewalPeriod.SIX_MONTH
    assert account.recipients == ()
    assert account.account_name == "Unknown"


def test_override_details_survive_save(workbook: Path, tmp_path: Path):
    store = WorkbookStore(workbook)
    reconciler = AuditReconciler(store.accounts, RateTable(store.rates), clock=lambda: AUDITED_AT)
    reconciler.set_override("acct-2", "Grandfathered rate", approved_by="manager")
    target = tmp_path / "overridden.xlsx"

    store.save(target)
    reloaded = WorkbookStore(target).accounts.get_account("acct-2")

    assert reloaded.rate_override
    assert reloaded.rate_override_reason == "Grandfathered rate"
    assert reloaded.rate_override_by == "manager"
    assert reloaded.rate_override_at == AUDITED_AT
