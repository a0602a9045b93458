"""Central configuration for the mailbox pricing package."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timezone, tzinfo
from decimal import Context, Decimal, ROUND_HALF_UP
from pathlib import Path

INCLUDED_RECIPIENTS = 3
MAX_RECIPIENTS = 7
ADULT_AGE = 18
DAYS_PER_MONTH = 30

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"
ARCHIVE_DIR = DATA_DIR / "audit_runs"


@dataclass(slots=True, frozen=True)
class Settings:
    decimal_context: Context
    tolerance_abs: Decimal
    timezone: tzinfo
    included_recipients: int
    max_recipients: int
    adult_age: int
    days_per_month: int
    audit_statuses: tuple[str, ...]
    audit_workers: int
    log_level: str
    max_rate: Decimal
    max_note_length: int
    data_dir: Path
    archive_dir: Path


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


SETTINGS = Settings(
    decimal_context=Context(prec=28, rounding=ROUND_HALF_UP),
    tolerance_abs=Decimal("0.01"),
    timezone=timezone.utc,
    included_recipients=INCLUDED_RECIPIENTS,
    max_recipients=MAX_RECIPIENTS,
    adult_age=ADULT_AGE,
    days_per_month=DAYS_PER_MONTH,
    audit_statuses=("ACTIVE", "HOLD"),
    audit_workers=_env_int("MAILBOX_PRICING_AUDIT_WORKERS", 4),
    log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    max_rate=Decimal("999.99"),
    max_note_length=500,
    data_dir=DATA_DIR,
    archive_dir=ARCHIVE_DIR,
)
