"""Top‑level package for the Money Control Board.

A personal budgeting ledger: log income as it arrives, allocate it to
bill, card and loan "buckets", and see what is still needed week by week.
The primary modules are:

* ``ledger`` – the allocation ledger (``MoneyLedger``) that owns all state
* ``recurrence`` – monthly rollover of repeating bills
* ``planner`` – weekly need, carryover forecast, daily pace, side income
* ``ledger_storage`` – JSON persistence, import and export

To run the dashboard from the command line you can execute:

```bash
python run_money_board.py
```
"""

from . import ledger  # noqa: F401  # re-exported for convenience
from . import planner  # noqa: F401  # re-exported for convenience
from . import recurrence  # noqa: F401  # re-exported for convenience
from .ledger import MoneyLedger, Totals
from .ledger_storage import LedgerStorage
from .models import Bucket, Entry, LedgerState

__all__ = [
    "ledger",
    "planner",
    "recurrence",
    "MoneyLedger",
    "Totals",
    "LedgerStorage",
    "Bucket",
    "Entry",
    "LedgerState",
]
