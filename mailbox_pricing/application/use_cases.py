"""Application services orchestrating pricing quotes, rate administration and audits."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP
from typing import Callable, Iterable, Sequence

from mailbox_pricing.config import SETTINGS
from mailbox_pricing.domain.audit import CENTS, AccountReconciler, format_money, recipient_lists
from mailbox_pricing.domain.classifier import RecipientClassifier
from mailbox_pricing.domain.dates import as_date
from mailbox_pricing.domain.errors import AccountNotFoundError, RateNotFoundError
from mailbox_pricing.domain.models import ZERO, Account, AccountStatus, PriceBreakdown, RateVersion, RenewalPriceBreakdown
from mailbox_pricing.domain.pricing import PriceCalculator
from mailbox_pricing.domain.rates import RateTable
from mailbox_pricing.domain.renewal import RenewalProrationCalculator
from mailbox_pricing.domain.repositories import AccountRepository
from mailbox_pricing.domain.results import (
    AuditOutcome,
    AuditResult,
    AuditSummary,
    RateUpdate,
    RecalculationResult,
    StoredAuditSummary,
)

from .dto import OverrideRequest, PriceQuoteRequest, RateVersionInput, RenewalQuoteRequest

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(SETTINGS.timezone)


def default_statuses() -> tuple[AccountStatus, ...]:
    return tuple(AccountStatus(status) for status in SETTINGS.audit_statuses)


@dataclass(slots=True)
class PricingContext:
    rate_table: RateTable
    account_repository: AccountRepository
    classifier: RecipientClassifier = field(default_factory=RecipientClassifier)
    calculator: PriceCalculator = field(default_factory=PriceCalculator)
    renewal_calculator: RenewalProrationCalculator | None = None

    def __post_init__(self) -> None:
        if self.renewal_calculator is None:
            self.renewal_calculator = RenewalProrationCalculator(classifier=self.classifier)


class QuotePriceUseCase:
    def __init__(self, context: PricingContext) -> None:
        self._context = context

    def execute(self, request: PriceQuoteRequest, as_of: date | None = None) -> PriceBreakdown:
        request.validate()
        rates = self._context.rate_table.current_rates(as_of)
        if rates is None:
            raise RateNotFoundError("No pricing configuration found")
        return self._context.calculator.quote(
            rates,
            adult_count=request.adult_count,
            minor_count=request.minor_count,
            has_business_recipient=request.has_business_recipient,
            renewal_period=request.renewal_period,
        )


class QuoteRenewalUseCase:
    def __init__(self, context: PricingContext) -> None:
        self._context = context

    def execute(self, request: RenewalQuoteRequest, as_of: date | None = None) -> RenewalPriceBreakdown:
        account = self._context.account_repository.get_account(request.account_id)
        if account is None:
            raise AccountNotFoundError(request.account_id)
        rates = self._context.rate_table.current_rates(as_of)
        if rates is None:
            raise RateNotFoundError("No pricing configuration found")
        start = request.renewal_start_date or as_date(as_of)
        return self._context.renewal_calculator.prorate(
            rates,
            request.renewal_period,
            account.active_recipients,
            start,
        )


class CreateRateVersionUseCase:
    def __init__(self, context: PricingContext) -> None:
        self._context = context

    def execute(self, request: RateVersionInput, as_of: date | None = None) -> RateVersion:
        version = request.to_version()
        return self._context.rate_table.create_version(version, as_of=as_of)


class AuditReconciler:
    """Runs the rate audit across accounts and manages manager overrides.

    Each account is reconciled independently on a bounded worker pool. A
    repository failure aborts the whole run; a missing rate version only flags
    the affected account.
    """

    def __init__(
        self,
        account_repository: AccountRepository,
        rate_table: RateTable,
        reconciler: AccountReconciler | None = None,
        max_workers: int | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._accounts = account_repository
        self._rates = rate_table
        self._reconciler = reconciler or AccountReconciler()
        self._max_workers = max_workers or SETTINGS.audit_workers
        self._clock = clock

    def run_audit(
        self,
        accounts: Sequence[Account] | None = None,
        statuses: Iterable[AccountStatus] | None = None,
        as_of: date | datetime | None = None,
    ) -> AuditSummary:
        audited_at = self._clock()
        on = as_date(as_of if as_of is not None else audited_at)
        if accounts is None:
            accounts = self._accounts.list_accounts(tuple(statuses) if statuses else default_statuses())
        ordered = sorted(accounts, key=lambda a: a.mailbox_number)

        def audit_one(account: Account) -> AuditResult:
            rates = self._rates.rates_effective_on(account.rate_date)
            if rates is None:
                logger.warning("No rate version covers %s for account %s", account.rate_date, account.id)
            result = self._reconciler.reconcile(account, rates, on)
            self._accounts.update_audit(
                account.id,
                audit_flag=result.audit_flag,
                audit_flag_type=result.audit_flag_type,
                audit_note=result.audit_note,
                audited_at=audited_at,
            )
            return result

        results: list[AuditResult] = []
        if ordered:
            workers = max(1, min(self._max_workers, len(ordered)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="rate-audit") as pool:
                futures = [pool.submit(audit_one, account) for account in ordered]
                try:
                    results = [future.result() for future in futures]
                except Exception:
                    for future in futures:
                        future.cancel()
                    logger.error("Rate audit aborted; no summary produced")
                    raise

        summary = AuditSummary(
            total_accounts=len(ordered),
            accounts_audited=len(results),
            accounts_flagged=sum(1 for r in results if r.audit_flag),
            accounts_with_override=sum(1 for r in results if r.outcome is AuditOutcome.OVERRIDE_ACCEPTED),
            accounts_ok=sum(1 for r in results if r.outcome is AuditOutcome.OK),
            generated_at=audited_at,
            results=tuple(results),
        )
        logger.info(
            "Audited %d accounts: %d flagged, %d overridden, %d ok",
            summary.accounts_audited,
            summary.accounts_flagged,
            summary.accounts_with_override,
            summary.accounts_ok,
        )
        return summary

    def set_override(self, account_id: str, reason: str, approved_by: str | None = None) -> None:
        request = OverrideRequest(account_id=account_id, reason=reason, approved_by=approved_by)
        request.validate()
        self._require_account(account_id)
        self._accounts.update_overrides(
            account_id,
            rate_override=True,
            rate_override_reason=request.reason.strip(),
            rate_override_by=approved_by,
            rate_override_at=self._clock(),
            audit_flag=False,
            audit_flag_type=None,
            audit_note=None,
        )
        logger.info("Rate override set on account %s by %s", account_id, approved_by or "unknown")

    def clear_override(self, account_id: str) -> None:
        self._require_account(account_id)
        self._accounts.update_overrides(
            account_id,
            rate_override=False,
            rate_override_reason=None,
            rate_override_by=None,
            rate_override_at=None,
        )
        logger.info("Rate override cleared on account %s", account_id)

    def clear_audit_flag(self, account_id: str) -> None:
        self._require_account(account_id)
        self._accounts.update_audit(account_id, audit_flag=False, audit_flag_type=None, audit_note=None)

    def clear_all_audit_data(self) -> int:
        count = self._accounts.clear_all_audit_data()
        logger.info("Cleared audit data on %d accounts", count)
        return count

    def stored_summary(self) -> StoredAuditSummary:
        everything = self._accounts.list_accounts(None)
        auditable = set(default_statuses())
        in_scope = [a for a in everything if a.status in auditable]
        flagged = sum(1 for a in everything if a.audit_flag)
        overridden = sum(1 for a in in_scope if a.rate_override)
        stamps = [a.audited_at for a in everything if a.audited_at is not None]
        last_audited = max(stamps) if stamps else None
        audited = len(in_scope) if last_audited else 0
        return StoredAuditSummary(
            total_accounts=len(in_scope),
            accounts_audited=audited,
            accounts_flagged=flagged,
            accounts_with_override=overridden,
            accounts_ok=audited - flagged - overridden if last_audited else 0,
            last_audited_at=last_audited,
        )

    def flagged_accounts(self, as_of: date | None = None) -> list[AuditResult]:
        accounts = [a for a in self._accounts.list_accounts(None) if a.audit_flag]
        return [self._stored_result(a, as_of, a.audit_note) for a in sorted(accounts, key=lambda a: a.mailbox_number)]

    def accounts_with_override(self, as_of: date | None = None) -> list[AuditResult]:
        accounts = [a for a in self._accounts.list_accounts(default_statuses()) if a.rate_override]
        results = []
        for account in sorted(accounts, key=lambda a: a.mailbox_number):
            note = account.rate_override_reason or f"Override approved by {account.rate_override_by or 'unknown'}"
            results.append(self._stored_result(account, as_of, note))
        return results

    def recalculate_account_rates(self, auto_update: bool = False, as_of: date | None = None) -> RecalculationResult:
        """Compare non-overridden accounts to the current rates and optionally apply the new rate."""
        on = as_date(as_of)
        accounts = [a for a in self._accounts.list_accounts(default_statuses()) if not a.rate_override]
        rates = self._rates.current_rates(on)
        if rates is None:
            logger.warning("No current rates; skipping rate recalculation")
            return RecalculationResult(accounts_checked=0, accounts_updated=0)

        updates: list[RateUpdate] = []
        updated = 0
        for account in sorted(accounts, key=lambda a: a.mailbox_number):
            expected, _ = self._reconciler.expected_rate(account, rates, on)
            if abs(account.current_rate - expected) <= SETTINGS.tolerance_abs:
                continue
            if account.current_rate < expected:
                reason = "Rate increase due to recipient changes (minor turned 18 or recipient added)"
            else:
                reason = "Rate decrease due to recipient changes"
            new_rate = expected.quantize(CENTS, rounding=ROUND_HALF_UP)
            updates.append(
                RateUpdate(
                    account_id=account.id,
                    mailbox_number=account.mailbox_number,
                    account_name=account.account_name,
                    old_rate=account.current_rate,
                    new_rate=new_rate,
                    reason=reason,
                )
            )
            if auto_update:
                note = f"Rate auto-updated from {format_money(account.current_rate)} to {format_money(new_rate)}: {reason}"
                self._accounts.update_rate(account.id, new_rate, note, self._clock())
                updated += 1

        return RecalculationResult(accounts_checked=len(accounts), accounts_updated=updated, updates=tuple(updates))

    def _require_account(self, account_id: str) -> Account:
        account = self._accounts.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def _stored_result(self, account: Account, as_of: date | None, note: str | None) -> AuditResult:
        on = as_date(as_of)
        rates = self._rates.rates_effective_on(account.rate_date)
        expected, discrepancy = ZERO, ZERO
        if rates is not None:
            expected, adult_count = self._reconciler.expected_rate(account, rates, on)
            discrepancy = abs(account.current_rate - expected)
        else:
            adult_count = self._reconciler.adult_count(account, on)
        persons, businesses = recipient_lists(account, on)
        if account.audit_flag:
            outcome = AuditOutcome.FLAGGED
        elif account.rate_override:
            outcome = AuditOutcome.OVERRIDE_ACCEPTED
        else:
            outcome = AuditOutcome.OK
        return AuditResult(
            account_id=account.id,
            mailbox_number=account.mailbox_number,
            account_name=account.account_name,
            current_rate=account.current_rate,
            expected_rate=expected,
            discrepancy=discrepancy,
            has_override=account.rate_override,
            audit_flag=account.audit_flag,
            audit_flag_type=account.audit_flag_type,
            audit_note=note,
            adult_count=adult_count,
            outcome=outcome,
            person_recipients=persons,
            business_recipients=businesses,
        )
