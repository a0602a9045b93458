"""Renewal pricing for terms in which minors turn 18."""
from __future__ import annotations

import dataclasses
from datetime import date, datetime
from decimal import localcontext
from typing import Iterable

from mailbox_pricing.config import SETTINGS

from .classifier import RecipientClassifier
from .dates import as_date, eighteenth_birthday, months_until_18
from .models import ZERO, MinorTransition, RateVersion, Recipient, RenewalPeriod, RenewalPriceBreakdown
from .pricing import additional_adult_monthly_fees


class RenewalProrationCalculator:
    """Splits a renewal term at each minor's 18th birthday.

    Transitions are priced in order of the birthday, so the earliest new adult
    takes the lowest free additional-adult tier. Months are whole calendar
    months counted from the renewal start.
    """

    def __init__(
        self,
        classifier: RecipientClassifier | None = None,
        included_recipients: int | None = None,
    ) -> None:
        self._classifier = classifier or RecipientClassifier()
        if included_recipients is None:
            included_recipients = SETTINGS.included_recipients
        self._included = included_recipients

    def prorate(
        self,
        rates: RateVersion,
        renewal_period: RenewalPeriod | str,
        recipients: Iterable[Recipient],
        renewal_start_date: date | datetime | None = None,
    ) -> RenewalPriceBreakdown:
        period = RenewalPeriod.parse(renewal_period)
        months = period.period_months
        start = as_date(renewal_start_date)
        parts = self._classifier.partition(recipients, as_of=start)

        transitions = sorted(
            self._find_transitions(parts.minors, start, months),
            key=lambda t: t.turns_adult_date,
        )
        starting_adults = len(parts.adults)

        with localcontext(SETTINGS.decimal_context):
            priced: list[MinorTransition] = []
            transition_fees = ZERO
            for index, transition in enumerate(transitions):
                adults_after = starting_adults + index + 1
                if adults_after > self._included:
                    monthly = rates.tier_rate(adults_after - self._included - 1)
                    fee = monthly * transition.months_as_adult
                    transition = dataclasses.replace(transition, additional_adult_fee=fee)
                    transition_fees += fee
                priced.append(transition)

            base_rate = rates.base_rate_for(period)
            business_fee = rates.business_account_fee * months if parts.has_business_recipient else ZERO
            additional_adults = max(0, starting_adults - self._included)
            additional_recipient_fees = additional_adult_monthly_fees(rates, additional_adults) * months

            minor_months = {t.recipient_id: t.months_as_minor for t in priced}
            minor_fees = ZERO
            for minor in parts.minors:
                minor_fees += rates.minor_recipient_fee * minor_months.get(minor.id, months)

            total_for_period = base_rate + business_fee + additional_recipient_fees + minor_fees
            adjusted_total = total_for_period + transition_fees
            total_monthly = adjusted_total / months

        return RenewalPriceBreakdown(
            base_rate=base_rate,
            business_fee=business_fee,
            additional_recipient_fees=additional_recipient_fees,
            minor_fees=minor_fees,
            total_for_period=total_for_period,
            total_monthly=total_monthly,
            period_months=months,
            minor_transitions=tuple(priced),
            transition_fees=transition_fees,
            adjusted_total_for_period=adjusted_total,
        )

    @staticmethod
    def _find_transitions(minors: Iterable[Recipient], start: date, months: int) -> list[MinorTransition]:
        found: list[MinorTransition] = []
        for minor in minors:
            if minor.birthdate is None:
                continue
            remaining = months_until_18(minor.birthdate, start)
            if remaining is None or remaining >= months:
                continue
            found.append(
                MinorTransition(
                    recipient_id=minor.id,
                    recipient_name=minor.name,
                    turns_adult_date=eighteenth_birthday(minor.birthdate),
                    months_as_minor=remaining,
                    months_as_adult=months - remaining,
                )
            )
        return found
