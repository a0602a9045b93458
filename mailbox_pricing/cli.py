"""Command-line entrypoint for rate audits and price quotes."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from mailbox_pricing.application.archive.use_cases import ArchiveAuditRunUseCase
from mailbox_pricing.application.dto import PriceQuoteRequest, RenewalQuoteRequest
from mailbox_pricing.application.use_cases import (
    AuditReconciler,
    PricingContext,
    QuotePriceUseCase,
    QuoteRenewalUseCase,
)
from mailbox_pricing.config import SETTINGS
from mailbox_pricing.domain.archive.entities import ArchiveFile
from mailbox_pricing.domain.errors import PricingError
from mailbox_pricing.domain.models import AccountStatus, RenewalPeriod
from mailbox_pricing.domain.proration import AddedFee, prorate_added_fees
from mailbox_pricing.domain.rates import RateTable
from mailbox_pricing.infrastructure.archive.file_repository import FileSystemArchiveRepository
from mailbox_pricing.infrastructure.repositories.excel_repositories import WorkbookStore
from mailbox_pricing.presentation.audit_report import render_csv, render_html
from mailbox_pricing.presentation.serializers import (
    serialize_breakdown,
    serialize_proration,
    serialize_rate_version,
)

logger = logging.getLogger(__name__)


def _fee(value: str) -> AddedFee:
    parts = value.split(":")
    if len(parts) != 3:
        raise argparse.ArgumentTypeError("Fee must look like LINE_TYPE:description:monthly_rate")
    return AddedFee(line_type=parts[0].strip().upper(), description=parts[1].strip(), monthly_rate=Decimal(parts[2]))


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mailbox rate audit and pricing tools")
    sub = parser.add_subparsers(dest="command", required=True)

    audit = sub.add_parser("audit", help="Audit stored account rates against the rate table")
    audit.add_argument("workbook", type=Path, help="Path to the rates/accounts workbook (.xlsx)")
    audit.add_argument("--as-of", type=date.fromisoformat, help="Audit date (YYYY-MM-DD)")
    audit.add_argument(
        "--status",
        action="append",
        choices=[s.value for s in AccountStatus],
        help="Account status to audit (repeatable; default ACTIVE and HOLD)",
    )
    audit.add_argument("--csv", type=Path, help="Write all results as CSV")
    audit.add_argument("--html", type=Path, help="Write flagged accounts as an HTML table")
    audit.add_argument("--write-back", action="store_true", help="Save audit flags into the workbook")
    audit.add_argument("--archive-dir", type=Path, help="Archive inputs and outputs of this run")

    quote = sub.add_parser("quote", help="Price a term from recipient counts")
    quote.add_argument("workbook", type=Path)
    quote.add_argument("--period", type=RenewalPeriod.parse, required=True)
    quote.add_argument("--adults", type=int, required=True)
    quote.add_argument("--minors", type=int, default=0)
    quote.add_argument("--business", action="store_true")
    quote.add_argument("--as-of", type=date.fromisoformat)

    renewal = sub.add_parser("renewal", help="Price an account's renewal including minors turning 18")
    renewal.add_argument("workbook", type=Path)
    renewal.add_argument("--account", required=True)
    renewal.add_argument("--period", type=RenewalPeriod.parse, required=True)
    renewal.add_argument("--start", type=date.fromisoformat, help="Renewal start date (default today)")

    prorate = sub.add_parser("prorate", help="Prorate fees added partway through a term")
    prorate.add_argument("--period-end", type=date.fromisoformat, required=True)
    prorate.add_argument("--fee", type=_fee, action="append", required=True)

    rates = sub.add_parser("rates", help="List rate versions, newest first")
    rates.add_argument("workbook", type=Path)
    return parser.parse_args(argv)


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2))


def run_audit(args: argparse.Namespace) -> int:
    store = WorkbookStore(args.workbook)
    reconciler = AuditReconciler(store.accounts, RateTable(store.rates))
    statuses = [AccountStatus(s) for s in args.status] if args.status else None
    summary = reconciler.run_audit(statuses=statuses, as_of=args.as_of)

    print("Audit Summary")
    print("=============")
    print(f"Accounts audited: {summary.accounts_audited}")
    print(f"Flagged: {summary.accounts_flagged}")
    print(f"Accepted by override: {summary.accounts_with_override}")
    print(f"OK: {summary.accounts_ok}")

    if summary.has_issues():
        print("\nFlagged accounts:")
        for result in summary.iter_flagged():
            print(f"- #{result.mailbox_number} {result.account_name} [{result.audit_flag_type.value}]: {result.audit_note}")
    else:
        print("\nNo flagged accounts.")

    csv_bytes = render_csv(summary.results)
    html_text = render_html(summary)
    if args.csv:
        args.csv.write_bytes(csv_bytes)
    if args.html:
        args.html.write_text(html_text, encoding="utf-8")
    if args.write_back:
        store.save(args.workbook)
    if args.archive_dir:
        receipt = ArchiveAuditRunUseCase(FileSystemArchiveRepository(args.archive_dir)).execute(
            summary,
            inputs=[ArchiveFile(name=args.workbook.name, content=store.raw)],
            outputs=[
                ArchiveFile(name="audit_results.csv", content=csv_bytes),
                ArchiveFile(name="audit_flagged.html", content=html_text.encode("utf-8")),
            ],
        )
        print(f"\nArchived run {receipt.run_id} at {receipt.location}")
    return 0


def run_quote(args: argparse.Namespace) -> int:
    store = WorkbookStore(args.workbook)
    context = PricingContext(rate_table=RateTable(store.rates), account_repository=store.accounts)
    request = PriceQuoteRequest(
        renewal_period=args.period,
        adult_count=args.adults,
        minor_count=args.minors,
        has_business_recipient=args.business,
    )
    _print_json(serialize_breakdown(QuotePriceUseCase(context).execute(request, as_of=args.as_of)))
    return 0


def run_renewal(args: argparse.Namespace) -> int:
    store = WorkbookStore(args.workbook)
    context = PricingContext(rate_table=RateTable(store.rates), account_repository=store.accounts)
    request = RenewalQuoteRequest(account_id=args.account, renewal_period=args.period, renewal_start_date=args.start)
    _print_json(serialize_breakdown(QuoteRenewalUseCase(context).execute(request)))
    return 0


def run_prorate(args: argparse.Namespace) -> int:
    quote = prorate_added_fees(args.period_end, args.fee, as_of=datetime.now(SETTINGS.timezone))
    _print_json(serialize_proration(quote))
    return 0


def run_rates(args: argparse.Namespace) -> int:
    store = WorkbookStore(args.workbook)
    versions, total = RateTable(store.rates).history(limit=1000)
    _print_json({"total": total, "data": [serialize_rate_version(v) for v in versions]})
    return 0


COMMANDS = {
    "audit": run_audit,
    "quote": run_quote,
    "renewal": run_renewal,
    "prorate": run_prorate,
    "rates": run_rates,
}


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=SETTINGS.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return COMMANDS[args.command](args)
    except PricingError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except Exception:
        logger.exception("Unexpected failure running %s", args.command)
        print("Error: unexpected failure; see log for details", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
