"""JSON-ready serialisation of rates, breakdowns and audit summaries."""
from __future__ import annotations

from decimal import Decimal
from typing import Any

from mailbox_pricing.domain.models import PriceBreakdown, RateVersion, RenewalPriceBreakdown
from mailbox_pricing.domain.proration import ProrationQuote
from mailbox_pricing.domain.results import AuditResult, AuditSummary


def _money(value: Decimal) -> float:
    return float(value)


def serialize_rate_version(version: RateVersion) -> dict[str, Any]:
    return {
        "id": version.id,
        "startDate": version.start_date.isoformat(),
        "endDate": version.end_date.isoformat() if version.end_date else None,
        "baseRate3mo": _money(version.base_rate_3mo),
        "baseRate6mo": _money(version.base_rate_6mo),
        "baseRate12mo": _money(version.base_rate_12mo),
        "additionalAdultTiers": [
            {"position": tier.position, "monthlyRate": _money(tier.monthly_rate)}
            for tier in version.additional_adult_tiers
        ],
        "businessAccountFee": _money(version.business_account_fee),
        "minorRecipientFee": _money(version.minor_recipient_fee),
        "keyDeposit": _money(version.key_deposit),
        "createdBy": version.created_by,
        "notes": version.notes,
        "createdAt": version.created_at.isoformat() if version.created_at else None,
    }


def serialize_breakdown(breakdown: PriceBreakdown) -> dict[str, Any]:
    data: dict[str, Any] = {
        "baseRate": _money(breakdown.base_rate),
        "businessFee": _money(breakdown.business_fee),
        "additionalRecipientFees": _money(breakdown.additional_recipient_fees),
        "minorFees": _money(breakdown.minor_fees),
        "totalForPeriod": _money(breakdown.total_for_period),
        "totalMonthly": _money(breakdown.total_monthly),
        "periodMonths": breakdown.period_months,
    }
    if isinstance(breakdown, RenewalPriceBreakdown):
        data["transitionFees"] = _money(breakdown.transition_fees)
        data["adjustedTotalForPeriod"] = _money(breakdown.adjusted_total_for_period)
        data["minorTransitions"] = [
            {
                "recipientId": t.recipient_id,
                "recipientName": t.recipient_name,
                "turnsAdultDate": t.turns_adult_date.isoformat(),
                "monthsAsMinor": t.months_as_minor,
                "monthsAsAdult": t.months_as_adult,
                "additionalAdultFee": _money(t.additional_adult_fee),
            }
            for t in breakdown.minor_transitions
        ]
    return data


def serialize_proration(quote: ProrationQuote) -> dict[str, Any]:
    return {
        "periodStart": quote.period_start.isoformat(),
        "periodEnd": quote.period_end.isoformat(),
        "daysRemaining": quote.days_remaining,
        "proratedMonths": _money(quote.prorated_months),
        "total": _money(quote.total),
        "notes": quote.note,
        "lineItems": [
            {
                "lineType": item.line_type,
                "description": item.description,
                "unitPrice": _money(item.unit_price),
                "months": _money(item.months),
                "amount": _money(item.amount),
                "sortOrder": item.sort_order,
            }
            for item in quote.line_items
        ],
    }


def serialize_audit_result(result: AuditResult) -> dict[str, Any]:
    return {
        "accountId": result.account_id,
        "mailboxNumber": result.mailbox_number,
        "accountName": result.account_name,
        "currentRate": _money(result.current_rate),
        "expectedRate": _money(result.expected_rate),
        "discrepancy": _money(result.discrepancy),
        "hasOverride": result.has_override,
        "auditFlag": result.audit_flag,
        "auditFlagType": result.audit_flag_type.value if result.audit_flag_type else None,
        "auditNote": result.audit_note,
        "recipientCount": result.adult_count,
        "personRecipients": [
            {"name": p.name, "age": p.age, "isMinor": p.is_minor} for p in result.person_recipients
        ],
        "businessRecipients": [{"name": name} for name in result.business_recipients],
        "outcome": result.outcome.value,
    }


def serialize_audit_summary(summary: AuditSummary, include_results: bool = True) -> dict[str, Any]:
    data: dict[str, Any] = {
        "totalAccounts": summary.total_accounts,
        "accountsAudited": summary.accounts_audited,
        "accountsFlagged": summary.accounts_flagged,
        "accountsWithOverride": summary.accounts_with_override,
        "accountsOk": summary.accounts_ok,
        "generatedAt": summary.generated_at.isoformat(),
    }
    if include_results:
        data["results"] = [serialize_audit_result(r) for r in summary.results]
    return data
