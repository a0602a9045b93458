"""Domain models for the pricing and audit pipeline.

These dataclasses capture the canonical schema for rate versions, recipients,
accounts and the derived price breakdowns produced by the calculators.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Sequence

from mailbox_pricing.config import SETTINGS

from .errors import InvalidPeriodError

ZERO = Decimal("0")


class RenewalPeriod(str, Enum):
    THREE_MONTH = "THREE_MONTH"
    SIX_MONTH = "SIX_MONTH"
    TWELVE_MONTH = "TWELVE_MONTH"

    @classmethod
    def parse(cls, value: object) -> "RenewalPeriod":
        if isinstance(value, cls):
            return value
        text = "" if value is None else str(value).strip().upper()
        try:
            return cls(text)
        except ValueError:
            raise InvalidPeriodError(value) from None

    @property
    def period_months(self) -> int:
        """Months used for rate compounding; the 12-month plan carries a bonus month."""
        return _PERIOD_MONTHS[self]

    @property
    def billed_months(self) -> int:
        return _BILLED_MONTHS[self]


_PERIOD_MONTHS = {
    RenewalPeriod.THREE_MONTH: 3,
    RenewalPeriod.SIX_MONTH: 6,
    RenewalPeriod.TWELVE_MONTH: 13,
}

_BILLED_MONTHS = {
    RenewalPeriod.THREE_MONTH: 3,
    RenewalPeriod.SIX_MONTH: 6,
    RenewalPeriod.TWELVE_MONTH: 12,
}


class RecipientType(str, Enum):
    PERSON = "PERSON"
    BUSINESS = "BUSINESS"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    HOLD = "HOLD"
    CLOSED = "CLOSED"


class AuditFlagType(str, Enum):
    UNDERCHARGED = "UNDERCHARGED"
    OVERCHARGED = "OVERCHARGED"
    RECIPIENT_OVERFLOW = "RECIPIENT_OVERFLOW"


@dataclass(frozen=True)
class AdditionalAdultTier:
    """Monthly surcharge for the adult at ``position`` (4th through 7th)."""

    position: int
    monthly_rate: Decimal


@dataclass(frozen=True)
class RateVersion:
    """One effective-dated pricing configuration.

    Base rates are whole-term figures; every other fee is monthly.
    ``end_date`` of ``None`` marks the open, current version.
    """

    id: str
    start_date: date
    end_date: date | None
    base_rate_3mo: Decimal
    base_rate_6mo: Decimal
    base_rate_12mo: Decimal
    additional_adult_tiers: tuple[AdditionalAdultTier, ...]
    business_account_fee: Decimal
    minor_recipient_fee: Decimal
    key_deposit: Decimal
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError(
                f"Rate version {self.id} ends ({self.end_date}) before it starts ({self.start_date})"
            )
        first = SETTINGS.included_recipients + 1
        positions = [tier.position for tier in self.additional_adult_tiers]
        if positions != list(range(first, first + len(positions))):
            raise ValueError(
                f"Additional adult tiers must run contiguously from position {first}, got {positions}"
            )

    @property
    def is_open(self) -> bool:
        return self.end_date is None

    @property
    def max_adults(self) -> int:
        """Highest adult count the tier table prices; more is a recipient overflow."""
        if self.additional_adult_tiers:
            return self.additional_adult_tiers[-1].position
        return SETTINGS.included_recipients

    def covers(self, day: date) -> bool:
        return self.start_date <= day and (self.end_date is None or day <= self.end_date)

    def base_rate_for(self, period: RenewalPeriod | str) -> Decimal:
        period = RenewalPeriod.parse(period)
        if period is RenewalPeriod.THREE_MONTH:
            return self.base_rate_3mo
        if period is RenewalPeriod.SIX_MONTH:
            return self.base_rate_6mo
        return self.base_rate_12mo

    def tier_rate(self, index: int) -> Decimal:
        """Monthly rate for the ``index``-th additional adult (0 = 4th adult); zero past the table."""
        if 0 <= index < len(self.additional_adult_tiers):
            return self.additional_adult_tiers[index].monthly_rate
        return ZERO


@dataclass(frozen=True)
class Recipient:
    id: str
    recipient_type: RecipientType
    name: str = ""
    birthdate: date | None = None
    is_primary: bool = False
    removed_date: date | None = None

    @property
    def is_active(self) -> bool:
        return self.removed_date is None

    @property
    def is_business(self) -> bool:
        return self.recipient_type is RecipientType.BUSINESS


@dataclass(frozen=True)
class RecipientClassification:
    adult_count: int
    minor_count: int
    has_business_recipient: bool
    total_count: int


@dataclass(frozen=True)
class PriceBreakdown:
    base_rate: Decimal
    business_fee: Decimal
    additional_recipient_fees: Decimal
    minor_fees: Decimal
    total_for_period: Decimal
    total_monthly: Decimal
    period_months: int


@dataclass(frozen=True)
class MinorTransition:
    """A minor reaching 18 inside a renewal term."""

    recipient_id: str
    recipient_name: str
    turns_adult_date: date
    months_as_minor: int
    months_as_adult: int
    additional_adult_fee: Decimal = ZERO


@dataclass(frozen=True)
class RenewalPriceBreakdown(PriceBreakdown):
    minor_transitions: tuple[MinorTransition, ...] = ()
    transition_fees: Decimal = ZERO
    adjusted_total_for_period: Decimal = ZERO


@dataclass(frozen=True)
class Account:
    """Account record as read from the external account store."""

    id: str
    mailbox_number: int
    status: AccountStatus
    renewal_period: RenewalPeriod
    current_rate: Decimal
    start_date: date
    last_renewal_date: date | None = None
    recipients: Sequence[Recipient] = field(default_factory=tuple)
    audit_flag: bool = False
    audit_flag_type: AuditFlagType | None = None
    audit_note: str | None = None
    audited_at: datetime | None = None
    rate_override: bool = False
    rate_override_reason: str | None = None
    rate_override_by: str | None = None
    rate_override_at: datetime | None = None

    @property
    def rate_date(self) -> date:
        return self.last_renewal_date or self.start_date

    @property
    def active_recipients(self) -> tuple[Recipient, ...]:
        return tuple(r for r in self.recipients if r.is_active)

    @property
    def account_name(self) -> str:
        active = self.active_recipients
        primary = next((r for r in active if r.is_primary), active[0] if active else None)
        if primary is None:
            return "Unknown"
        if primary.is_business:
            return primary.name or "Unknown Business"
        return primary.name or "Unknown"
