"""Streamlit front-end for the mailbox rate audit."""
from __future__ import annotations

from datetime import date

import pandas as pd
import streamlit as st

from mailbox_pricing import AuditReconciler, PricingContext, QuoteRenewalUseCase, RateTable, WorkbookStore
from mailbox_pricing.application.dto import RenewalQuoteRequest
from mailbox_pricing.domain.errors import PricingError
from mailbox_pricing.domain.models import RenewalPeriod
from mailbox_pricing.domain.results import AuditSummary
from mailbox_pricing.presentation.audit_report import render_csv, render_html, results_to_dataframe
from mailbox_pricing.presentation.serializers import serialize_breakdown, serialize_rate_version


st.set_page_config(page_title="Mailbox Rate Audit", layout="wide")
st.title("Mailbox Rate Audit")

if "store" not in st.session_state:
    st.session_state["store"] = None
if "summary" not in st.session_state:
    st.session_state["summary"] = None


workbook = st.file_uploader("Upload rates/accounts workbook", type=["xlsx"])
if workbook is not None and st.session_state.get("workbook_key") != (workbook.name, workbook.size):
    st.session_state["workbook_key"] = (workbook.name, workbook.size)
    st.session_state["summary"] = None
    try:
        st.session_state["store"] = WorkbookStore(workbook.getvalue())
    except PricingError as exc:
        st.error(str(exc))
        st.session_state["store"] = None

store: WorkbookStore | None = st.session_state["store"]
if store is None:
    st.info("Upload a workbook with Rates, Accounts and Recipients sheets to begin.")
    st.stop()

rate_table = RateTable(store.rates)
audit_tab, renewal_tab, rates_tab = st.tabs(["Audit", "Renewal quote", "Rate history"])

with audit_tab:
    as_of = st.date_input("Audit as of", value=date.today())
    if st.button("Run audit"):
        with st.spinner("Auditing accounts..."):
            st.session_state["summary"] = AuditReconciler(store.accounts, rate_table).run_audit(as_of=as_of)

    summary: AuditSummary | None = st.session_state["summary"]
    if summary is not None:
        cols = st.columns(4)
        cols[0].metric("Audited", summary.accounts_audited)
        cols[1].metric("Flagged", summary.accounts_flagged)
        cols[2].metric("Override accepted", summary.accounts_with_override)
        cols[3].metric("OK", summary.accounts_ok)

        flagged_df = results_to_dataframe(tuple(summary.iter_flagged()))
        st.subheader("Flagged accounts")
        st.dataframe(flagged_df, use_container_width=True)
        with st.expander("All results"):
            st.dataframe(results_to_dataframe(summary.results), use_container_width=True)

        st.download_button(
            "Download results CSV",
            data=render_csv(summary.results),
            file_name="audit_results.csv",
            mime="text/csv",
        )
        st.download_button(
            "Download flagged HTML",
            data=render_html(summary).encode("utf-8"),
            file_name="audit_flagged.html",
            mime="text/html",
        )
        st.download_button(
            "Download workbook with audit flags",
            data=store.to_bytes(),
            file_name="accounts_audited.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )

with renewal_tab:
    accounts = store.accounts.list_accounts()
    labels = {f"#{a.mailbox_number} {a.account_name}": a.id for a in accounts}
    if not labels:
        st.info("The workbook has no accounts.")
    else:
        choice = st.selectbox("Account", list(labels))
        period = st.selectbox("Renewal period", [p.value for p in RenewalPeriod])
        start = st.date_input("Renewal start", value=date.today(), key="renewal_start")
        if st.button("Quote renewal"):
            context = PricingContext(rate_table=rate_table, account_repository=store.accounts)
            request = RenewalQuoteRequest(
                account_id=labels[choice],
                renewal_period=RenewalPeriod(period),
                renewal_start_date=start,
            )
            try:
                breakdown = QuoteRenewalUseCase(context).execute(request)
            except PricingError as exc:
                st.error(str(exc))
            else:
                data = serialize_breakdown(breakdown)
                transitions = data.pop("minorTransitions", [])
                st.json(data)
                if transitions:
                    st.subheader("Minors turning 18 this term")
                    st.dataframe(pd.DataFrame(transitions), use_container_width=True)

with rates_tab:
    versions, total = rate_table.history(limit=100)
    st.caption(f"{total} rate versions")
    st.dataframe(pd.DataFrame([serialize_rate_version(v) for v in versions]), use_container_width=True)
