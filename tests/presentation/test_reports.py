import csv
import io
from decimal import Decimal

from conftest import AUDITED_AT

from mailbox_pricing.domain.models import AuditFlagType, PriceBreakdown
from mailbox_pricing.domain.results import AuditOutcome, AuditResult, AuditSummary, PersonRecipientView
from mailbox_pricing.presentation.audit_report import render_csv, render_html, results_to_dataframe
from mailbox_pricing.presentation.serializers import serialize_audit_summary, serialize_breakdown


def make_result(name: str = "Pat", flagged: bool = True) -> AuditResult:
    return AuditResult(
        account_id="a1",
        mailbox_number=101,
        account_name=name,
        current_rate=Decimal("45"),
        expected_rate=Decimal("51"),
        discrepancy=Decimal("6"),
        has_override=False,
        audit_flag=flagged,
        audit_flag_type=AuditFlagType.UNDERCHARGED if flagged else None,
        audit_note="Expected: $51.00, Current: $45.00. Difference: $6.00" if flagged else None,
        adult_count=1,
        outcome=AuditOutcome.FLAGGED if flagged else AuditOutcome.OK,
        person_recipients=(
            PersonRecipientView(name=name, age=46, is_minor=False),
            PersonRecipientView(name="Kit", age=14, is_minor=True),
        ),
        business_recipients=("Acme LLC",),
    )


def make_summary(*results: AuditResult) -> AuditSummary:
    flagged = sum(1 for r in results if r.audit_flag)
    return AuditSummary(
        total_accounts=len(results),
        accounts_audited=len(results),
        accounts_flagged=flagged,
        accounts_with_override=0,
        accounts_ok=len(results) - flagged,
        generated_at=AUDITED_AT,
        results=results,
    )


def test_csv_has_header_even_without_results():
    text = render_csv([]).decode("utf-8")

    assert text.splitlines() == [
        "mailbox_number,account_name,outcome,audit_flag_type,current_rate,expected_rate,"
        "discrepancy,adult_count,recipients,has_override,audit_note"
    ]


def test_csv_rows_use_cents():
    rows = list(csv.DictReader(io.StringIO(render_csv([make_result()]).decode("utf-8"))))

    assert rows[0]["current_rate"] == "45.00"
    assert rows[0]["audit_flag_type"] == "UNDERCHARGED"
    assert rows[0]["has_override"] == "no"
    assert rows[0]["recipients"] == "Pat (46); Kit (14, minor); Acme LLC (business)"


def test_dataframe_columns_are_numeric():
    frame = results_to_dataframe([make_result()])

    assert frame.loc[0, "discrepancy"] == 6.0
    assert frame.loc[0, "mailbox_number"] == 101


def test_html_escapes_names_and_lists_only_flagged():
    html_text = render_html(make_summary(make_result("<Acme & Co>"), make_result("Quiet", flagged=False)))

    assert "&lt;Acme &amp; Co&gt;" in html_text
    assert "Quiet" not in html_text
    assert "1 flagged" in html_text


def test_html_without_flags():
    html_text = render_html(make_summary(make_result(flagged=False)))

    assert "No flagged accounts." in html_text


def test_serializers_use_camel_case():
    breakdown = PriceBreakdown(
        base_rate=Decimal("153"),
        business_fee=Decimal("0"),
        additional_recipient_fees=Decimal("0"),
        minor_fees=Decimal("0"),
        total_for_period=Decimal("153"),
        total_monthly=Decimal("51"),
        period_months=3,
    )

    data = serialize_breakdown(breakdown)
    assert data["totalForPeriod"] == 153.0
    assert data["totalMonthly"] == 51.0
    assert "minorTransitions" not in data

    summary = serialize_audit_summary(make_summary(make_result()))
    assert summary["accountsFlagged"] == 1
    assert summary["results"][0]["auditFlagType"] == "UNDERCHARGED"
    assert summary["results"][0]["recipientCount"] == 1
    assert summary["results"][0]["personRecipients"][1] == {"name": "Kit", "age": 14, "isMinor": True}
    assert summary["results"][0]["businessRecipients"] == [{"name": "Acme LLC"}]
