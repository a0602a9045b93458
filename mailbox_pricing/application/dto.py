"""Application-level DTOs for pricing and audit requests."""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from mailbox_pricing.config import SETTINGS
from mailbox_pricing.domain.errors import ValidationError
from mailbox_pricing.domain.models import AdditionalAdultTier, RateVersion, RenewalPeriod


def _check_amount(name: str, value: Decimal) -> None:
    if value < 0:
        raise ValidationError(f"{name} must be non-negative", field=name)
    if value > SETTINGS.max_rate:
        raise ValidationError(f"{name} cannot exceed {SETTINGS.max_rate}", field=name)


@dataclass(slots=True, frozen=True)
class RateVersionInput:
    """Administrative input for a new rate version; base rates derive from the monthly rate."""

    start_date: date
    base_monthly_rate: Decimal
    rate_4th_adult: Decimal
    rate_5th_adult: Decimal
    rate_6th_adult: Decimal
    rate_7th_adult: Decimal
    business_account_fee: Decimal
    minor_recipient_fee: Decimal
    key_deposit: Decimal
    notes: str | None = None
    created_by: str | None = None

    def validate(self) -> None:
        for name in (
            "base_monthly_rate",
            "rate_4th_adult",
            "rate_5th_adult",
            "rate_6th_adult",
            "rate_7th_adult",
            "business_account_fee",
            "minor_recipient_fee",
            "key_deposit",
        ):
            _check_amount(name, getattr(self, name))
        if self.notes is not None and len(self.notes) > SETTINGS.max_note_length:
            raise ValidationError(
                f"Notes cannot exceed {SETTINGS.max_note_length} characters", field="notes"
            )

    def tiers(self) -> tuple[AdditionalAdultTier, ...]:
        rates = (self.rate_4th_adult, self.rate_5th_adult, self.rate_6th_adult, self.rate_7th_adult)
        first = SETTINGS.included_recipients + 1
        return tuple(AdditionalAdultTier(position=first + i, monthly_rate=rate) for i, rate in enumerate(rates))

    def to_version(self, version_id: str | None = None, created_at: datetime | None = None) -> RateVersion:
        self.validate()
        monthly = self.base_monthly_rate
        return RateVersion(
            id=version_id or uuid.uuid4().hex,
            start_date=self.start_date,
            end_date=None,
            base_rate_3mo=monthly * RenewalPeriod.THREE_MONTH.billed_months,
            base_rate_6mo=monthly * RenewalPeriod.SIX_MONTH.billed_months,
            base_rate_12mo=monthly * RenewalPeriod.TWELVE_MONTH.billed_months,
            additional_adult_tiers=self.tiers(),
            business_account_fee=self.business_account_fee,
            minor_recipient_fee=self.minor_recipient_fee,
            key_deposit=self.key_deposit,
            notes=self.notes,
            created_by=self.created_by,
            created_at=created_at or datetime.now(SETTINGS.timezone),
        )


@dataclass(slots=True, frozen=True)
class PriceQuoteRequest:
    renewal_period: RenewalPeriod
    adult_count: int
    minor_count: int = 0
    has_business_recipient: bool = False

    def validate(self) -> None:
        limit = SETTINGS.max_recipients
        if not 1 <= self.adult_count <= limit:
            raise ValidationError(f"Adult count must be between 1 and {limit}", field="adult_count")
        if not 0 <= self.minor_count <= limit:
            raise ValidationError(f"Minor count must be between 0 and {limit}", field="minor_count")
        if self.adult_count + self.minor_count > limit:
            raise ValidationError(f"Total recipients cannot exceed {limit}", field="minor_count")


@dataclass(slots=True, frozen=True)
class RenewalQuoteRequest:
    account_id: str
    renewal_period: RenewalPeriod
    renewal_start_date: date | None = None


@dataclass(slots=True, frozen=True)
class OverrideRequest:
    account_id: str
    reason: str
    approved_by: str | None = None

    def validate(self) -> None:
        reason = (self.reason or "").strip()
        if not reason:
            raise ValidationError("Reason is required", field="reason")
        if len(reason) > SETTINGS.max_note_length:
            raise ValidationError(
                f"Reason cannot exceed {SETTINGS.max_note_length} characters", field="reason"
            )
