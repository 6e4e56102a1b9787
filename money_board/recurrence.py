"""Monthly recurrence for repeating bills and minimum payments.

A monthly bucket carries ``monthly_target`` and ``due_day``. Once per
calendar month its ``target`` is reinstated from ``monthly_target`` and its
``due_date`` moves to the next occurrence of ``due_day``. Progress
(``saved``) is never touched here.

Both outputs are deterministic functions of "today" and the bucket's own
fields, so applying the pass twice in the same month is a no-op. The ledger
additionally records the month key so the scheduled pass only runs once.
"""

from __future__ import annotations

import calendar
from datetime import date
from typing import Iterable, List

from .models import Bucket
from .money_utils import clamp_day_of_month, clamp_money, month_key, parse_iso


def next_due_date(today: str | date, due_day: int) -> str:
    """Return the next occurrence of ``due_day`` on or after ``today``.

    The occurrence falls in the current month when today's day of month is
    not past ``due_day``, otherwise in the following month. Days beyond the
    end of the target month clamp to its last day, so ``due_day=31`` lands
    on Feb 28 (or 29) instead of spilling into March.

    Example:
        >>> next_due_date('2026-02-10', 18)
        '2026-02-18'
        >>> next_due_date('2026-02-20', 18)
        '2026-03-18'
        >>> next_due_date('2026-02-10', 31)
        '2026-02-28'
    """
    now = parse_iso(today) or date.today()
    day = clamp_day_of_month(due_day)
    year, month = now.year, now.month
    if now.day > day:
        month += 1
        if month > 12:
            year, month = year + 1, 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day)).isoformat()


def roll_bucket(today: str | date, bucket: Bucket) -> Bucket:
    """Snap one bucket to its current period; non-monthly buckets are returned as is."""
    if not bucket.is_monthly:
        return bucket
    base = bucket.monthly_target if bucket.monthly_target is not None else bucket.target
    due_day = clamp_day_of_month(bucket.due_day if bucket.due_day is not None else 1)
    return bucket.copy(
        target=clamp_money(base),
        due_date=next_due_date(today, due_day),
        due_day=due_day,
    )


def apply_monthly_recurrence(today: str | date, buckets: Iterable[Bucket]) -> List[Bucket]:
    """Return a new bucket list with every monthly bucket rolled to ``today``."""
    return [roll_bucket(today, bucket) for bucket in buckets]


def needs_monthly_pass(today: str | date, last_applied: str) -> bool:
    """True when the recurrence pass has not yet run in ``today``'s month."""
    now = parse_iso(today) or date.today()
    return (last_applied or '')[:7] != month_key(now)
