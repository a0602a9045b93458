"""Report generators for audit results."""
from __future__ import annotations

import csv
import html
import io
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

import pandas as pd

from mailbox_pricing.domain.audit import CENTS
from mailbox_pricing.domain.results import AuditResult, AuditSummary

COLUMNS = [
    "mailbox_number",
    "account_name",
    "outcome",
    "audit_flag_type",
    "current_rate",
    "expected_rate",
    "discrepancy",
    "adult_count",
    "recipients",
    "has_override",
    "audit_note",
]


def _cents(value: Decimal) -> str:
    return str(value.quantize(CENTS, rounding=ROUND_HALF_UP))


def describe_recipients(result: AuditResult) -> str:
    parts = []
    for person in result.person_recipients:
        if person.age is None:
            parts.append(person.name)
        else:
            parts.append(f"{person.name} ({person.age}{', minor' if person.is_minor else ''})")
    parts.extend(f"{name} (business)" for name in result.business_recipients)
    return "; ".join(parts)


def results_to_rows(results: Sequence[AuditResult]) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for item in results:
        rows.append(
            {
                "mailbox_number": str(item.mailbox_number),
                "account_name": item.account_name,
                "outcome": item.outcome.value,
                "audit_flag_type": item.audit_flag_type.value if item.audit_flag_type else "",
                "current_rate": _cents(item.current_rate),
                "expected_rate": _cents(item.expected_rate),
                "discrepancy": _cents(item.discrepancy),
                "adult_count": str(item.adult_count),
                "recipients": describe_recipients(item),
                "has_override": "yes" if item.has_override else "no",
                "audit_note": item.audit_note or "",
            }
        )
    return rows


def results_to_dataframe(results: Sequence[AuditResult]) -> pd.DataFrame:
    frame = pd.DataFrame(results_to_rows(results), columns=COLUMNS)
    for column in ("current_rate", "expected_rate", "discrepancy"):
        frame[column] = pd.to_numeric(frame[column])
    frame["mailbox_number"] = pd.to_numeric(frame["mailbox_number"])
    frame["adult_count"] = pd.to_numeric(frame["adult_count"])
    return frame


def render_csv(results: Sequence[AuditResult]) -> bytes:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=COLUMNS)
    writer.writeheader()
    writer.writerows(results_to_rows(results))
    return buffer.getvalue().encode("utf-8")


def render_html(summary: AuditSummary, flagged_only: bool = True) -> str:
    results = tuple(summary.iter_flagged()) if flagged_only else tuple(summary.results)
    counts = (
        f"<p>Audited {summary.accounts_audited} of {summary.total_accounts} accounts: "
        f"{summary.accounts_flagged} flagged, {summary.accounts_with_override} overridden, "
        f"{summary.accounts_ok} ok.</p>"
    )
    rows = results_to_rows(results)
    if not rows:
        return counts + "<p>No flagged accounts.</p>"
    header = "".join(f"<th>{col}</th>" for col in COLUMNS)
    body = "".join(
        "<tr>" + "".join(f"<td>{html.escape(row[col])}</td>" for col in COLUMNS) + "</tr>" for row in rows
    )
    return f"{counts}<table><thead><tr>{header}</tr></thead><tbody>{body}</tbody></table>"
