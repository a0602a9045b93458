from datetime import date, datetime, timezone
from decimal import Decimal

from mailbox_pricing.domain.proration import (
    AddedFee,
    days_remaining,
    prorate_added_fees,
    prorated_months,
)

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def test_prorated_months_round_to_two_places():
    assert prorated_months(30) == Decimal("1.00")
    assert prorated_months(45) == Decimal("1.50")
    assert prorated_months(10) == Decimal("0.33")


def test_partial_days_round_up():
    assert days_remaining(date(2026, 7, 1), datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)) == 30


def test_past_period_end_has_no_days_left():
    assert days_remaining(date(2026, 5, 1), NOW) == 0


def test_prorated_line_items():
    fees = [
        AddedFee(line_type="ADDITIONAL_RECIPIENT", description="4th adult", monthly_rate=Decimal("2")),
        AddedFee(line_type="BUSINESS_FEE", description="Business account", monthly_rate=Decimal("5")),
    ]

    quote = prorate_added_fees(date(2026, 7, 16), fees, as_of=NOW)

    assert quote.days_remaining == 45
    assert quote.prorated_months == Decimal("1.50")
    assert [item.description for item in quote.line_items] == [
        "4th adult (Prorated)",
        "Business account (Prorated)",
    ]
    assert [item.amount for item in quote.line_items] == [Decimal("3.00"), Decimal("7.50")]
    assert [item.sort_order for item in quote.line_items] == [0, 1]
    assert quote.total == Decimal("10.50")
    assert quote.note == "Prorated charges for 45 days remaining in term"
    assert quote.period_start == date(2026, 6, 1)
