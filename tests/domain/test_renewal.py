from datetime import date
from decimal import Decimal

from conftest import adult, minor

from mailbox_pricing.domain.models import RenewalPeriod
from mailbox_pricing.domain.renewal import RenewalProrationCalculator

START = date(2026, 1, 15)


def three_adults():
    return (adult("a1", primary=True), adult("a2"), adult("a3"))


def test_minor_turning_18_mid_term_pays_fourth_adult_tier(rates):
    recipients = three_adults() + (minor("k1", date(2008, 3, 15), name="Kid One"),)

    breakdown = RenewalProrationCalculator().prorate(rates, RenewalPeriod.SIX_MONTH, recipients, START)

    [transition] = breakdown.minor_transitions
    assert transition.recipient_name == "Kid One"
    assert transition.turns_adult_date == date(2026, 3, 15)
    assert transition.months_as_minor == 2
    assert transition.months_as_adult == 4
    assert transition.additional_adult_fee == Decimal("8")
    assert breakdown.minor_fees == Decimal("2")
    assert breakdown.total_for_period == Decimal("308")
    assert breakdown.transition_fees == Decimal("8")
    assert breakdown.adjusted_total_for_period == Decimal("316")
    assert breakdown.total_monthly == Decimal("316") / 6


def test_transitions_take_tiers_in_birthday_order(rates):
    later = minor("late", date(2008, 5, 15))
    earlier = minor("early", date(2008, 2, 15))
    recipients = three_adults() + (later, earlier)

    breakdown = RenewalProrationCalculator().prorate(rates, RenewalPeriod.SIX_MONTH, recipients, START)

    ids = [t.recipient_id for t in breakdown.minor_transitions]
    assert ids == ["early", "late"]
    first, second = breakdown.minor_transitions
    assert (first.months_as_adult, first.additional_adult_fee) == (5, Decimal("10"))
    assert (second.months_as_adult, second.additional_adult_fee) == (2, Decimal("6"))
    assert breakdown.transition_fees == Decimal("16")


def test_transition_within_included_recipients_is_free(rates):
    recipients = (adult("a1", primary=True), minor("k1", date(2008, 3, 15)))

    breakdown = RenewalProrationCalculator().prorate(rates, RenewalPeriod.SIX_MONTH, recipients, START)

    [transition] = breakdown.minor_transitions
    assert transition.additional_adult_fee == Decimal("0")
    assert breakdown.transition_fees == Decimal("0")
    assert breakdown.adjusted_total_for_period == breakdown.total_for_period


def test_minor_staying_minor_pays_full_term(rates):
    recipients = (adult("a1", primary=True), minor("k1", date(2015, 7, 1)))

    breakdown = RenewalProrationCalculator().prorate(rates, RenewalPeriod.TWELVE_MONTH, recipients, START)

    assert breakdown.minor_transitions == ()
    assert breakdown.minor_fees == Decimal("13")
    assert breakdown.period_months == 13


def test_birthday_after_term_end_is_not_a_transition(rates):
    recipients = three_adults() + (minor("k1", date(2008, 7, 15)),)

    breakdown = RenewalProrationCalculator().prorate(rates, RenewalPeriod.THREE_MONTH, recipients, START)

    assert breakdown.minor_transitions == ()
    assert breakdown.minor_fees == Decimal("3")


def test_swapping_birthdates_swaps_the_tier_each_minor_pays(rates):
    calc = RenewalProrationCalculator()
    early, late = date(2008, 2, 15), date(2008, 5, 15)

    def fees(birth_x, birth_y):
        recipients = three_adults() + (minor("x", birth_x), minor("y", birth_y))
        breakdown = calc.prorate(rates, RenewalPeriod.SIX_MONTH, recipients, START)
        return {t.recipient_id: t.additional_adult_fee for t in breakdown.minor_transitions}

    assert fees(early, late) == {"x": Decimal("10"), "y": Decimal("6")}
    assert fees(late, early) == {"x": Decimal("6"), "y": Decimal("10")}
