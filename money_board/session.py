"""Shared Streamlit session helpers for the multi-page board.

Every page gets the same :class:`MoneyLedger` from ``st.session_state``. The
ledger is loaded from disk once per session, and the monthly recurrence pass
is ticked on every rerun so a session left open across a month boundary
still rolls over.
"""

from __future__ import annotations

from typing import Optional

import streamlit as st

from .config import configure_logging
from .formatting import format_currency
from .ledger import MoneyLedger
from .ledger_storage import LedgerStorage

LEDGER_STATE_KEY = 'money_ledger'


def get_ledger(storage: Optional[LedgerStorage] = None) -> MoneyLedger:
    """Return the session's ledger, loading it on first use."""
    ledger = st.session_state.get(LEDGER_STATE_KEY)
    if ledger is None:
        configure_logging()
        ledger = MoneyLedger.load(storage or LedgerStorage())
        st.session_state[LEDGER_STATE_KEY] = ledger
    else:
        ledger.tick()
    return ledger


def render_totals(ledger: MoneyLedger) -> None:
    """Income / allocated / unassigned summary row."""
    totals = ledger.totals()
    col_income, col_alloc, col_free = st.columns(3)
    col_income.metric("Income Logged", format_currency(totals.income))
    col_alloc.metric("Allocated", format_currency(totals.allocated))
    col_free.metric("Unassigned", format_currency(totals.unassigned), help="What you can allocate next.")


def rerun() -> None:
    if hasattr(st, 'rerun'):
        st.rerun()
    elif hasattr(st, 'experimental_rerun'):
        st.experimental_rerun()
