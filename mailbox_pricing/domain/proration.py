"""Short-window proration for fees added partway through a term.

This path approximates remaining months as ``days remaining / 30``. It is
intentionally separate from renewal proration, which counts calendar months.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Iterable, Sequence

from mailbox_pricing.config import SETTINGS

from .models import ZERO

TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class AddedFee:
    line_type: str
    description: str
    monthly_rate: Decimal


@dataclass(frozen=True)
class ProratedLineItem:
    line_type: str
    description: str
    unit_price: Decimal
    months: Decimal
    amount: Decimal
    sort_order: int


@dataclass(frozen=True)
class ProrationQuote:
    period_start: date
    period_end: date
    days_remaining: int
    prorated_months: Decimal
    line_items: Sequence[ProratedLineItem]

    @property
    def total(self) -> Decimal:
        return sum((item.amount for item in self.line_items), ZERO)

    @property
    def note(self) -> str:
        return f"Prorated charges for {self.days_remaining} days remaining in term"


def days_remaining(period_end: date | datetime, as_of: datetime) -> int:
    if not isinstance(period_end, datetime):
        period_end = datetime.combine(period_end, datetime.min.time(), tzinfo=as_of.tzinfo)
    seconds = (period_end - as_of).total_seconds()
    return max(0, math.ceil(seconds / 86400))


def prorated_months(days: int) -> Decimal:
    with localcontext(SETTINGS.decimal_context):
        return (Decimal(days) / SETTINGS.days_per_month).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def prorate_added_fees(
    period_end: date | datetime,
    added_fees: Iterable[AddedFee],
    as_of: datetime | None = None,
) -> ProrationQuote:
    now = as_of or datetime.now(SETTINGS.timezone)
    days = days_remaining(period_end, now)
    months = prorated_months(days)
    items: list[ProratedLineItem] = []
    with localcontext(SETTINGS.decimal_context):
        for index, fee in enumerate(added_fees):
            items.append(
                ProratedLineItem(
                    line_type=fee.line_type,
                    description=f"{fee.description} (Prorated)",
                    unit_price=fee.monthly_rate,
                    months=months,
                    amount=(fee.monthly_rate * months).quantize(TWO_PLACES, rounding=ROUND_HALF_UP),
                    sort_order=index,
                )
            )
    end_day = period_end.date() if isinstance(period_end, datetime) else period_end
    return ProrationQuote(
        period_start=now.date(),
        period_end=end_day,
        days_remaining=days,
        prorated_months=months,
        line_items=tuple(items),
    )
