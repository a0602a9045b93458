"""Workbook reader and writer for rates, accounts and recipients.

The workbook carries three sheets: ``Rates``, ``Accounts`` and ``Recipients``.
Column headers are matched case-insensitively with spaces treated as
underscores, so ``Start Date`` and ``start_date`` are equivalent.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Sequence

import pandas as pd

from mailbox_pricing.config import SETTINGS
from mailbox_pricing.domain.models import (
    Account,
    AccountStatus,
    AdditionalAdultTier,
    AuditFlagType,
    RateVersion,
    Recipient,
    RecipientType,
    RenewalPeriod,
)
from mailbox_pricing.infrastructure.parsing.utils import (
    clean_text,
    parse_bool,
    parse_date,
    parse_decimal,
    parse_int,
)

RATES_SHEET = "Rates"
ACCOUNTS_SHEET = "Accounts"
RECIPIENTS_SHEET = "Recipients"

TIER_COLUMNS = ("rate_4th_adult", "rate_5th_adult", "rate_6th_adult", "rate_7th_adult")
RATE_COLUMNS = (
    "id",
    "start_date",
    "end_date",
    "base_rate_3mo",
    "base_rate_6mo",
    "base_rate_12mo",
    *TIER_COLUMNS,
    "business_account_fee",
    "minor_recipient_fee",
    "key_deposit",
    "notes",
)
ACCOUNT_COLUMNS = (
    "id",
    "mailbox_number",
    "status",
    "renewal_period",
    "current_rate",
    "start_date",
    "last_renewal_date",
    "audit_flag",
    "audit_flag_type",
    "audit_note",
    "audited_at",
    "rate_override",
    "rate_override_reason",
    "rate_override_by",
    "rate_override_at",
)
RECIPIENT_COLUMNS = ("id", "account_id", "recipient_type", "name", "birthdate", "is_primary", "removed_date")


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    work = df.copy()
    work.columns = [str(c).strip().lower().replace(" ", "_") for c in work.columns]
    return work.dropna(how="all")


def _pick_sheet(sheets: dict[str, pd.DataFrame], preferred: str) -> pd.DataFrame:
    if preferred in sheets:
        return sheets[preferred]
    lower_map = {name.lower(): name for name in sheets}
    if preferred.lower() in lower_map:
        return sheets[lower_map[preferred.lower()]]
    raise ValueError(f"Workbook has no '{preferred}' sheet")


def read_workbook(source: BytesIO | Path) -> dict[str, pd.DataFrame]:
    sheets = pd.read_excel(source, sheet_name=None, engine="openpyxl", dtype=str)
    if not sheets:
        raise ValueError("Workbook has no sheets")
    return {name: _normalize_columns(frame) for name, frame in sheets.items()}


def _require_columns(df: pd.DataFrame, sheet: str, required: Sequence[str]) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Sheet '{sheet}' is missing columns: {', '.join(missing)}")


def rates_from_frame(df: pd.DataFrame) -> list[RateVersion]:
    _require_columns(df, RATES_SHEET, ("start_date", "base_rate_3mo", "base_rate_6mo", "base_rate_12mo"))
    first_position = SETTINGS.included_recipients + 1
    versions: list[RateVersion] = []
    for idx, row in df.iterrows():
        tiers = tuple(
            AdditionalAdultTier(position=first_position + i, monthly_rate=parse_decimal(row.get(column)))
            for i, column in enumerate(TIER_COLUMNS)
        )
        start_date = parse_date(row.get("start_date"))
        if start_date is None:
            raise ValueError(f"Rates row {idx} has no start date")
        versions.append(
            RateVersion(
                id=clean_text(row.get("id")) or f"rate-{start_date.isoformat()}",
                start_date=start_date,
                end_date=parse_date(row.get("end_date")),
                base_rate_3mo=parse_decimal(row.get("base_rate_3mo")),
                base_rate_6mo=parse_decimal(row.get("base_rate_6mo")),
                base_rate_12mo=parse_decimal(row.get("base_rate_12mo")),
                additional_adult_tiers=tiers,
                business_account_fee=parse_decimal(row.get("business_account_fee")),
                minor_recipient_fee=parse_decimal(row.get("minor_recipient_fee")),
                key_deposit=parse_decimal(row.get("key_deposit")),
                notes=clean_text(row.get("notes")),
            )
        )
    return versions


def recipients_from_frame(df: pd.DataFrame) -> dict[str, list[Recipient]]:
    _require_columns(df, RECIPIENTS_SHEET, ("account_id", "recipient_type"))
    by_account: dict[str, list[Recipient]] = defaultdict(list)
    for idx, row in df.iterrows():
        account_id = clean_text(row.get("account_id"))
        if not account_id:
            continue
        kind = (clean_text(row.get("recipient_type")) or "").upper()
        try:
            recipient_type = RecipientType(kind)
        except ValueError:
            raise ValueError(f"Recipients row {idx} has unknown type {kind!r}") from None
        by_account[account_id].append(
            Recipient(
                id=clean_text(row.get("id")) or f"{account_id}-r{idx}",
                recipient_type=recipient_type,
                name=clean_text(row.get("name")) or "",
                birthdate=parse_date(row.get("birthdate")),
                is_primary=parse_bool(row.get("is_primary")),
                removed_date=parse_date(row.get("removed_date")),
            )
        )
    return by_account


def _parse_timestamp(value: object) -> datetime | None:
    text = clean_text(value)
    return pd.Timestamp(text).to_pydatetime() if text else None


def accounts_from_frames(accounts_df: pd.DataFrame, recipients_df: pd.DataFrame | None) -> list[Account]:
    _require_columns(
        accounts_df,
        ACCOUNTS_SHEET,
        ("id", "mailbox_number", "renewal_period", "current_rate", "start_date"),
    )
    recipients = recipients_from_frame(recipients_df) if recipients_df is not None else {}
    accounts: list[Account] = []
    for idx, row in accounts_df.iterrows():
        account_id = clean_text(row.get("id"))
        if not account_id:
            continue
        start_date = parse_date(row.get("start_date"))
        if start_date is None:
            raise ValueError(f"Account {account_id} has no start date")
        flag_type = clean_text(row.get("audit_flag_type"))
        accounts.append(
            Account(
                id=account_id,
                mailbox_number=parse_int(row.get("mailbox_number")),
                status=AccountStatus((clean_text(row.get("status")) or "ACTIVE").upper()),
                renewal_period=RenewalPeriod.parse(row.get("renewal_period")),
                current_rate=parse_decimal(row.get("current_rate")),
                start_date=start_date,
                last_renewal_date=parse_date(row.get("last_renewal_date")),
                recipients=tuple(recipients.get(account_id, ())),
                audit_flag=parse_bool(row.get("audit_flag")),
                audit_flag_type=AuditFlagType(flag_type.upper()) if flag_type else None,
                audit_note=clean_text(row.get("audit_note")),
                audited_at=_parse_timestamp(row.get("audited_at")),
                rate_override=parse_bool(row.get("rate_override")),
                rate_override_reason=clean_text(row.get("rate_override_reason")),
                rate_override_by=clean_text(row.get("rate_override_by")),
                rate_override_at=_parse_timestamp(row.get("rate_override_at")),
            )
        )
    return accounts


def load_workbook(source: BytesIO | Path) -> tuple[list[RateVersion], list[Account]]:
    sheets = read_workbook(source)
    rates = rates_from_frame(_pick_sheet(sheets, RATES_SHEET))
    lower_names = {name.lower() for name in sheets}
    recipients_df = _pick_sheet(sheets, RECIPIENTS_SHEET) if RECIPIENTS_SHEET.lower() in lower_names else None
    accounts = accounts_from_frames(_pick_sheet(sheets, ACCOUNTS_SHEET), recipients_df)
    return rates, accounts


def rates_to_frame(versions: Sequence[RateVersion]) -> pd.DataFrame:
    rows = []
    for v in versions:
        row: dict[str, object] = {
            "id": v.id,
            "start_date": v.start_date.isoformat(),
            "end_date": v.end_date.isoformat() if v.end_date else "",
            "base_rate_3mo": str(v.base_rate_3mo),
            "base_rate_6mo": str(v.base_rate_6mo),
            "base_rate_12mo": str(v.base_rate_12mo),
        }
        for index, column in enumerate(TIER_COLUMNS):
            row[column] = str(v.tier_rate(index))
        row.update(
            {
                "business_account_fee": str(v.business_account_fee),
                "minor_recipient_fee": str(v.minor_recipient_fee),
                "key_deposit": str(v.key_deposit),
                "notes": v.notes or "",
            }
        )
        rows.append(row)
    return pd.DataFrame(rows, columns=list(RATE_COLUMNS))


def accounts_to_frames(accounts: Sequence[Account]) -> tuple[pd.DataFrame, pd.DataFrame]:
    account_rows = []
    recipient_rows = []
    for a in accounts:
        account_rows.append(
            {
                "id": a.id,
                "mailbox_number": a.mailbox_number,
                "status": a.status.value,
                "renewal_period": a.renewal_period.value,
                "current_rate": str(a.current_rate),
                "start_date": a.start_date.isoformat(),
                "last_renewal_date": a.last_renewal_date.isoformat() if a.last_renewal_date else "",
                "audit_flag": a.audit_flag,
                "audit_flag_type": a.audit_flag_type.value if a.audit_flag_type else "",
                "audit_note": a.audit_note or "",
                "audited_at": a.audited_at.isoformat() if a.audited_at else "",
                "rate_override": a.rate_override,
                "rate_override_reason": a.rate_override_reason or "",
                "rate_override_by": a.rate_override_by or "",
                "rate_override_at": a.rate_override_at.isoformat() if a.rate_override_at else "",
            }
        )
        for r in a.recipients:
            recipient_rows.append(
                {
                    "id": r.id,
                    "account_id": a.id,
                    "recipient_type": r.recipient_type.value,
                    "name": r.name,
                    "birthdate": r.birthdate.isoformat() if r.birthdate else "",
                    "is_primary": r.is_primary,
                    "removed_date": r.removed_date.isoformat() if r.removed_date else "",
                }
            )
    return (
        pd.DataFrame(account_rows, columns=list(ACCOUNT_COLUMNS)),
        pd.DataFrame(recipient_rows, columns=list(RECIPIENT_COLUMNS)),
    )


def write_workbook(versions: Sequence[RateVersion], accounts: Sequence[Account], target: Path | BytesIO) -> None:
    accounts_df, recipients_df = accounts_to_frames(accounts)
    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        rates_to_frame(versions).to_excel(writer, sheet_name=RATES_SHEET, index=False)
        accounts_df.to_excel(writer, sheet_name=ACCOUNTS_SHEET, index=False)
        recipients_df.to_excel(writer, sheet_name=RECIPIENTS_SHEET, index=False)
