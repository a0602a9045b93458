"""Domain service implementing the per-account rate audit rules."""
from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from mailbox_pricing.config import SETTINGS

from .classifier import RecipientClassifier
from .dates import calculate_age, is_minor
from .models import ZERO, Account, AuditFlagType, RateVersion
from .pricing import PriceCalculator
from .results import AuditOutcome, AuditResult, PersonRecipientView

CENTS = Decimal("0.01")


def format_money(value: Decimal) -> str:
    return f"${value.quantize(CENTS, rounding=ROUND_HALF_UP)}"


def recipient_lists(
    account: Account, as_of: date | datetime
) -> tuple[tuple[PersonRecipientView, ...], tuple[str, ...]]:
    """Active recipients split into persons (with age) and business names, for display."""
    persons: list[PersonRecipientView] = []
    businesses: list[str] = []
    for recipient in account.active_recipients:
        if recipient.is_business:
            businesses.append(recipient.name or "Unknown Business")
            continue
        birthdate = recipient.birthdate
        persons.append(
            PersonRecipientView(
                name=recipient.name or "Unknown",
                age=calculate_age(birthdate, as_of) if birthdate else None,
                is_minor=is_minor(birthdate, as_of) if birthdate else False,
            )
        )
    return tuple(persons), tuple(businesses)


class AccountReconciler:
    """Compares an account's stored monthly rate against the recomputed rate.

    Recipient overflow outranks any rate discrepancy and is flagged even when a
    manager override is in place. The overflow limit is the last position in
    the rate version's tier table unless one is passed explicitly.
    Discrepancies within the tolerance are OK.
    """

    def __init__(
        self,
        classifier: RecipientClassifier | None = None,
        calculator: PriceCalculator | None = None,
        tolerance: Decimal | None = None,
        max_recipients: int | None = None,
    ) -> None:
        self._classifier = classifier or RecipientClassifier()
        self._calculator = calculator or PriceCalculator()
        self._tolerance = SETTINGS.tolerance_abs if tolerance is None else tolerance
        self._max_recipients = max_recipients

    def adult_count(self, account: Account, as_of: date | datetime) -> int:
        return self._classifier.classify(account.active_recipients, as_of).adult_count

    def expected_rate(self, account: Account, rates: RateVersion, as_of: date | datetime) -> tuple[Decimal, int]:
        classification = self._classifier.classify(account.active_recipients, as_of)
        breakdown = self._calculator.breakdown(rates, classification, account.renewal_period)
        return breakdown.total_monthly, classification.adult_count

    def reconcile(self, account: Account, rates: RateVersion | None, as_of: date | datetime) -> AuditResult:
        current = account.current_rate
        if rates is None:
            return self._result(
                account,
                as_of,
                expected=ZERO,
                adult_count=self.adult_count(account, as_of),
                flag_type=AuditFlagType.UNDERCHARGED,
                note=f"No pricing data found for rate date {account.rate_date.isoformat()}",
                outcome=AuditOutcome.NO_RATES,
            )

        expected, adult_count = self.expected_rate(account, rates, as_of)
        discrepancy = abs(current - expected)
        amounts = f"Expected: {format_money(expected)}, Current: {format_money(current)}"
        limit = rates.max_adults if self._max_recipients is None else self._max_recipients

        if adult_count > limit:
            return self._result(
                account,
                as_of,
                expected=expected,
                adult_count=adult_count,
                flag_type=AuditFlagType.RECIPIENT_OVERFLOW,
                note=f"Account has {adult_count} adult recipients (max {limit}). {amounts}",
                outcome=AuditOutcome.FLAGGED,
            )

        if discrepancy <= self._tolerance:
            return self._result(account, as_of, expected=expected, adult_count=adult_count, outcome=AuditOutcome.OK)

        if account.rate_override:
            approver = account.rate_override_by or "unknown"
            return self._result(
                account,
                as_of,
                expected=expected,
                adult_count=adult_count,
                note=f"Rate overridden by {approver}. {amounts}",
                outcome=AuditOutcome.OVERRIDE_ACCEPTED,
            )

        flag_type = AuditFlagType.UNDERCHARGED if current < expected else AuditFlagType.OVERCHARGED
        return self._result(
            account,
            as_of,
            expected=expected,
            adult_count=adult_count,
            flag_type=flag_type,
            note=f"{amounts}. Difference: {format_money(discrepancy)}",
            outcome=AuditOutcome.FLAGGED,
        )

    @staticmethod
    def _result(
        account: Account,
        as_of: date | datetime,
        expected: Decimal,
        adult_count: int,
        outcome: AuditOutcome,
        flag_type: AuditFlagType | None = None,
        note: str | None = None,
    ) -> AuditResult:
        persons, businesses = recipient_lists(account, as_of)
        return AuditResult(
            account_id=account.id,
            mailbox_number=account.mailbox_number,
            account_name=account.account_name,
            current_rate=account.current_rate,
            expected_rate=expected,
            discrepancy=abs(account.current_rate - expected),
            has_override=account.rate_override,
            audit_flag=flag_type is not None,
            audit_flag_type=flag_type,
            audit_note=note,
            adult_count=adult_count,
            outcome=outcome,
            person_recipients=persons,
            business_recipients=businesses,
        )
