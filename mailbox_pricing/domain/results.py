"""Domain-level results for rate audits."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Sequence

from .models import AuditFlagType


class AuditOutcome(str, Enum):
    OK = "OK"
    FLAGGED = "FLAGGED"
    OVERRIDE_ACCEPTED = "OVERRIDE_ACCEPTED"
    NO_RATES = "NO_RATES"


@dataclass(frozen=True)
class PersonRecipientView:
    name: str
    age: int | None
    is_minor: bool


@dataclass(frozen=True)
class AuditResult:
    account_id: str
    mailbox_number: int
    account_name: str
    current_rate: Decimal
    expected_rate: Decimal
    discrepancy: Decimal
    has_override: bool
    audit_flag: bool
    audit_flag_type: AuditFlagType | None
    audit_note: str | None
    adult_count: int
    outcome: AuditOutcome
    person_recipients: tuple[PersonRecipientView, ...] = ()
    business_recipients: tuple[str, ...] = ()


@dataclass(frozen=True)
class AuditSummary:
    total_accounts: int
    accounts_audited: int
    accounts_flagged: int
    accounts_with_override: int
    accounts_ok: int
    generated_at: datetime
    results: Sequence[AuditResult] = field(default_factory=tuple)

    def has_issues(self) -> bool:
        return self.accounts_flagged > 0

    def iter_flagged(self) -> Iterable[AuditResult]:
        for result in self.results:
            if result.audit_flag:
                yield result

    def count_by_flag_type(self) -> dict[AuditFlagType, int]:
        return dict(Counter(r.audit_flag_type for r in self.iter_flagged() if r.audit_flag_type))


@dataclass(frozen=True)
class StoredAuditSummary:
    """Counts read back from the audit fields persisted on accounts."""

    total_accounts: int
    accounts_audited: int
    accounts_flagged: int
    accounts_with_override: int
    accounts_ok: int
    last_audited_at: datetime | None


@dataclass(frozen=True)
class RateUpdate:
    account_id: str
    mailbox_number: int
    account_name: str
    old_rate: Decimal
    new_rate: Decimal
    reason: str


@dataclass(frozen=True)
class RecalculationResult:
    accounts_checked: int
    accounts_updated: int
    updates: Sequence[RateUpdate] = field(default_factory=tuple)

    @property
    def accounts_needing_update(self) -> int:
        return len(self.updates)
