"""Money board dashboard: log income, allocate it and watch buckets fill.

This file is the Streamlit entry point. Pages in the pages/ directory
appear in the sidebar automatically.
"""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import streamlit as st

# Add project root to path for imports
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from money_board.formatting import bucket_summary, escape_dollar_for_markdown, format_currency
from money_board.ledger import MoneyLedger
from money_board.models import Bucket
from money_board.session import get_ledger, render_totals, rerun


def main() -> None:
    st.set_page_config(page_title="Money Control Board", page_icon="💵", layout="wide")
    ledger = get_ledger()

    st.title("💵 Money Control Board")
    st.caption("Stop reacting. Start assigning. Built for daily pay + real life.")
    render_totals(ledger)

    col_income, col_alloc = st.columns(2)
    with col_income:
        _render_income_form(ledger)
    with col_alloc:
        _render_allocate_form(ledger)

    st.subheader("🎯 Focus")
    _render_bucket_cards(ledger.focus_buckets())
    with st.expander("Everything else"):
        _render_bucket_cards([b for b in ledger.buckets if not b.focus])


def _render_income_form(ledger: MoneyLedger) -> None:
    st.subheader("Log Income")
    with st.form("log_income", clear_on_submit=True):
        when = st.date_input("Date", value=date.today())
        source = st.selectbox("Source", options=list(ledger.sources))
        amount = st.number_input("Amount", min_value=0.0, step=1.0, format="%.2f")
        note = st.text_input("Note (optional)")
        submitted = st.form_submit_button("Add")
    if submitted:
        message = submit_income(ledger, when.isoformat(), source, amount, note)
        st.toast(message)
        rerun()


def _render_allocate_form(ledger: MoneyLedger) -> None:
    st.subheader("Allocate Unassigned")
    options = bucket_options(ledger)
    if not options:
        st.info("Add a bucket first.")
        return
    with st.form("allocate", clear_on_submit=True):
        key = st.selectbox("Bucket", options=list(options), format_func=options.get)
        amount = st.number_input("Amount", min_value=0.0, step=1.0, format="%.2f")
        submitted = st.form_submit_button("Allocate")
    if submitted:
        st.toast(submit_allocation(ledger, key, amount))
        rerun()
    if st.button("⚡ Auto-Fund Essentials"):
        funded = ledger.auto_fund_essentials()
        st.toast("Funded essentials." if funded else "Nothing to fund.")
        rerun()


def _render_bucket_cards(buckets: list[Bucket]) -> None:
    if not buckets:
        st.caption("No buckets here.")
        return
    cols = st.columns(2)
    for i, bucket in enumerate(buckets):
        with cols[i % 2].container(border=True):
            st.markdown(f"**{bucket.name}**")
            st.caption(bucket_summary(bucket))
            if bucket.target > 0:
                st.progress(
                    bucket.progress_pct / 100,
                    text=f"{escape_dollar_for_markdown(bucket.saved)} / {escape_dollar_for_markdown(bucket.target)}",
                )
                st.caption(f"Remaining: {format_currency(bucket.remaining)}")
            else:
                st.caption(f"Rolling bucket (no fixed target) · saved {format_currency(bucket.saved)}")
            if bucket.balance is not None:
                st.caption(f"Balance: {format_currency(bucket.balance)}")


def bucket_options(ledger: MoneyLedger) -> dict[str, str]:
    return {b.key: b.name for b in ledger.buckets}


def submit_income(ledger: MoneyLedger, when: str, source: str, amount: float, note: str = '') -> str:
    if ledger.add_income(when, source, amount, note):
        return f"Logged {format_currency(amount)}."
    return "Enter an amount above zero."


def submit_allocation(ledger: MoneyLedger, key: str, amount: float) -> str:
    unassigned = ledger.totals().unassigned
    if ledger.allocate(key, amount):
        return f"Allocated {format_currency(amount)}."
    if amount > unassigned:
        return f"Only {format_currency(unassigned)} is unassigned."
    return "Nothing allocated."


if __name__ == "__main__":
    main()
