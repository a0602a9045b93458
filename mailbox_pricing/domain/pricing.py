"""Per-term price calculation."""
from __future__ import annotations

from decimal import Decimal, localcontext

from mailbox_pricing.config import SETTINGS

from .models import ZERO, PriceBreakdown, RateVersion, RecipientClassification, RenewalPeriod


def additional_adult_monthly_fees(rates: RateVersion, additional_adults: int) -> Decimal:
    """Monthly surcharge for adults beyond the included count, capped at the tier table."""
    if additional_adults <= 0:
        return ZERO
    count = min(additional_adults, len(rates.additional_adult_tiers))
    return sum((rates.tier_rate(index) for index in range(count)), ZERO)


class PriceCalculator:
    """Prices one full billing term from a rate version and recipient counts.

    Adults past the last tier are not priced here; the audit reports them as a
    recipient overflow instead.
    """

    def __init__(self, included_recipients: int | None = None) -> None:
        if included_recipients is None:
            included_recipients = SETTINGS.included_recipients
        self._included = included_recipients

    @property
    def included_recipients(self) -> int:
        return self._included

    def breakdown(
        self,
        rates: RateVersion,
        classification: RecipientClassification,
        renewal_period: RenewalPeriod | str,
    ) -> PriceBreakdown:
        return self.quote(
            rates,
            adult_count=classification.adult_count,
            minor_count=classification.minor_count,
            has_business_recipient=classification.has_business_recipient,
            renewal_period=renewal_period,
        )

    def quote(
        self,
        rates: RateVersion,
        adult_count: int,
        minor_count: int,
        has_business_recipient: bool,
        renewal_period: RenewalPeriod | str,
    ) -> PriceBreakdown:
        period = RenewalPeriod.parse(renewal_period)
        months = period.period_months
        with localcontext(SETTINGS.decimal_context):
            base_rate = rates.base_rate_for(period)
            business_fee = rates.business_account_fee * months if has_business_recipient else ZERO
            additional_adults = max(0, adult_count - self._included)
            additional_recipient_fees = additional_adult_monthly_fees(rates, additional_adults) * months
            minor_fees = rates.minor_recipient_fee * minor_count * months
            total_for_period = base_rate + business_fee + additional_recipient_fees + minor_fees
            total_monthly = total_for_period / months
        return PriceBreakdown(
            base_rate=base_rate,
            business_fee=business_fee,
            additional_recipient_fees=additional_recipient_fees,
            minor_fees=minor_fees,
            total_for_period=total_for_period,
            total_monthly=total_monthly,
            period_months=months,
        )
