"""Cash-need forecasting from bucket remaining amounts and due dates.

Two weekly models are provided and kept separate on purpose:

* :func:`weekly_need` sums, for each Monday-start week, the remaining amount
  of the buckets due in that week. Weeks are independent.
* :func:`carryover_forecast` chains the weeks: each week's need is the bills
  due, a fixed living baseline and whatever the previous week left unmet,
  minus the income actually logged in that week.

:func:`daily_need` turns the next few days of due dates into a per-day
savings pace, and :func:`gap_coverage` sizes side income against the first
week's shortfall. All money outputs are clamped to cents.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .models import Bucket, Entry
from .money_utils import (
    add_days,
    clamp_money,
    days_between,
    end_of_week,
    in_range,
    month_key,
    parse_iso,
    quarter_key,
    start_of_week,
    sum_money,
)


def remaining_for(bucket: Bucket) -> float:
    """What is still needed to fully fund ``bucket`` this period."""
    if (bucket.target or 0) <= 0:
        return 0.0
    return clamp_money(max(0.0, bucket.target - (bucket.saved or 0)))


def _due_iso(bucket: Bucket) -> Optional[str]:
    parsed = parse_iso(bucket.due_date)
    return parsed.isoformat() if parsed else None


def week_windows(today: str, weeks: int) -> List[tuple]:
    """Consecutive ``(start, end)`` Monday–Sunday windows from today's week."""
    first = start_of_week(today)
    windows = []
    for i in range(max(0, int(weeks))):
        start = add_days(first, i * 7)
        windows.append((start, end_of_week(start)))
    return windows


# ---------------------------------------------------------------------------
# Independent weekly need
# ---------------------------------------------------------------------------

@dataclass
class NeedItem:
    key: str
    name: str
    due_date: str
    remaining: float


@dataclass
class WeekNeed:
    index: int
    start: str
    end: str
    total: float = 0.0
    items: List[NeedItem] = field(default_factory=list)

    @property
    def label(self) -> str:
        return f"Week {self.index + 1} ({self.start} → {self.end})"

    @property
    def daily_pace(self) -> float:
        return clamp_money(self.total / 7)


@dataclass
class WeeklyNeed:
    weeks: List[WeekNeed]
    unscheduled: List[NeedItem] = field(default_factory=list)
    later: List[NeedItem] = field(default_factory=list)
    overdue: List[NeedItem] = field(default_factory=list)

    @property
    def total(self) -> float:
        return sum_money(week.total for week in self.weeks)

    def to_frame(self) -> pd.DataFrame:
        rows = [
            {
                'Week': week.label,
                'Start': week.start,
                'End': week.end,
                'Due (remaining)': week.total,
                'Daily Pace': week.daily_pace,
                'Buckets': ', '.join(item.name for item in week.items),
            }
            for week in self.weeks
        ]
        return pd.DataFrame(rows, columns=['Week', 'Start', 'End', 'Due (remaining)', 'Daily Pace', 'Buckets'])


def weekly_need(buckets: Iterable[Bucket], today: str, weeks: int = 4) -> WeeklyNeed:
    """Partition bucket remaining amounts into the next ``weeks`` weeks.

    Buckets without a usable due date are ``unscheduled``, buckets due after
    the last window are ``later`` and buckets due before the first window are
    ``overdue``. Fully funded buckets are left out.
    """
    result = WeeklyNeed(weeks=[WeekNeed(i, start, end) for i, (start, end) in enumerate(week_windows(today, weeks))])
    for bucket in buckets:
        remaining = remaining_for(bucket)
        if remaining <= 0:
            continue
        due = _due_iso(bucket)
        item = NeedItem(bucket.key, bucket.name, due or '', remaining)
        if due is None:
            result.unscheduled.append(item)
            continue
        if not result.weeks or due > result.weeks[-1].end:
            result.later.append(item)
            continue
        if due < result.weeks[0].start:
            result.overdue.append(item)
            continue
        for week in result.weeks:
            if in_range(due, week.start, week.end):
                week.items.append(item)
                break
    for week in result.weeks:
        week.items.sort(key=lambda item: item.due_date)
        week.total = sum_money(item.remaining for item in week.items)
    return result


# ---------------------------------------------------------------------------
# Chained carryover forecast
# ---------------------------------------------------------------------------

@dataclass
class CarryoverWeek:
    index: int
    start: str
    end: str
    bills: float
    income: float
    baseline: float
    carry_in: float
    need_total: float
    still_need: float

    @property
    def label(self) -> str:
        return f"Week {self.index + 1} ({self.start} → {self.end})"


@dataclass
class CarryoverForecast:
    rows: List[CarryoverWeek]
    month_key: str
    quarter_key: str
    month_total_need: float
    quarter_total_need: float

    @property
    def week1_gap(self) -> float:
        return self.rows[0].still_need if self.rows else 0.0

    def to_frame(self) -> pd.DataFrame:
        columns = ['Week', 'Start', 'End', 'Bills Due', 'Baseline', 'Carry In', 'Income', 'Total Need', 'Still Need']
        rows = [
            {
                'Week': row.label,
                'Start': row.start,
                'End': row.end,
                'Bills Due': row.bills,
                'Baseline': row.baseline,
                'Carry In': row.carry_in,
                'Income': row.income,
                'Total Need': row.need_total,
                'Still Need': row.still_need,
            }
            for row in self.rows
        ]
        return pd.DataFrame(rows, columns=columns)


def bills_due_in(buckets: Iterable[Bucket], start: str, end: str) -> float:
    return sum_money(
        remaining_for(bucket)
        for bucket in buckets
        if _due_iso(bucket) and in_range(_due_iso(bucket), start, end)
    )


def income_in(entries: Iterable[Entry], start: str, end: str) -> float:
    return sum_money(entry.amount for entry in entries if in_range(entry.date, start, end))


def carryover_forecast(
    buckets: Sequence[Bucket],
    entries: Sequence[Entry],
    today: str,
    weeks: int = 13,
    weekly_baseline: float = 350.0,
) -> CarryoverForecast:
    """Chain weekly need forward, carrying each week's shortfall into the next.

    For every week: ``need_total = bills + baseline + carry_in`` and
    ``still_need = max(0, need_total - income logged that week)``; the week's
    ``still_need`` is the next week's ``carry_in``. Month and quarter totals
    add up ``still_need`` for the weeks that start in today's month/quarter.
    """
    baseline = clamp_money(weekly_baseline)
    carry = 0.0
    rows: List[CarryoverWeek] = []
    for i, (start, end) in enumerate(week_windows(today, weeks)):
        bills = bills_due_in(buckets, start, end)
        income = income_in(entries, start, end)
        need_total = clamp_money(bills + baseline + carry)
        still_need = clamp_money(max(0.0, need_total - income))
        rows.append(CarryoverWeek(
            index=i,
            start=start,
            end=end,
            bills=bills,
            income=income,
            baseline=baseline,
            carry_in=clamp_money(carry),
            need_total=need_total,
            still_need=still_need,
        ))
        carry = still_need

    this_month = month_key(today)
    this_quarter = quarter_key(today)
    return CarryoverForecast(
        rows=rows,
        month_key=this_month,
        quarter_key=this_quarter,
        month_total_need=sum_money(r.still_need for r in rows if month_key(r.start) == this_month),
        quarter_total_need=sum_money(r.still_need for r in rows if quarter_key(r.start) == this_quarter),
    )


# ---------------------------------------------------------------------------
# Daily pace
# ---------------------------------------------------------------------------

@dataclass
class DailyNeed:
    key: str
    name: str
    due_date: str
    remaining: float
    days_left: int
    per_day: float


def daily_need(buckets: Iterable[Bucket], today: str, days: int = 7) -> List[DailyNeed]:
    """Per-day savings pace for buckets due within the next ``days`` days.

    ``days_left`` is floored at 0 (overdue and due-today buckets), and the
    remaining amount is divided by ``max(1, days_left)``, so something due
    today needs its whole remaining amount today.
    """
    horizon = add_days(today, days)
    needs: List[DailyNeed] = []
    for bucket in buckets:
        due = _due_iso(bucket)
        remaining = remaining_for(bucket)
        if not due or remaining <= 0 or due > horizon:
            continue
        days_left = max(0, days_between(today, due))
        needs.append(DailyNeed(
            key=bucket.key,
            name=bucket.name,
            due_date=due,
            remaining=remaining,
            days_left=days_left,
            per_day=clamp_money(remaining / max(1, days_left)),
        ))
    needs.sort(key=lambda need: need.due_date)
    return needs


# ---------------------------------------------------------------------------
# Side income gap coverage
# ---------------------------------------------------------------------------

@dataclass
class SideIncomeStream:
    name: str
    per_unit: float
    units_per_week: float
    unit_label: str = 'units'

    @property
    def weekly(self) -> float:
        return clamp_money(clamp_money(self.per_unit) * max(0.0, float(self.units_per_week or 0)))


@dataclass
class GapCoverage:
    week1_gap: float
    weekly_by_stream: Dict[str, float]
    hustle_weekly: float
    remaining_after_hustle: float
    more_units_needed: Dict[str, int]


def units_to_cover(gap: float, per_unit: float) -> int:
    """Whole extra units of ``per_unit`` earnings needed to close ``gap``."""
    rate = clamp_money(per_unit)
    if rate <= 0 or gap <= 0:
        return 0
    return int(math.ceil(round(gap / rate, 9)))


def gap_coverage(week1_gap: float, streams: Sequence[SideIncomeStream]) -> GapCoverage:
    """Size side income against the first week's still-needed amount.

    Every stream's weekly earnings are combined and subtracted from the gap;
    for each stream the result reports how many more units of that stream
    alone would cover what is left.
    """
    gap = clamp_money(week1_gap)
    weekly = {stream.name: stream.weekly for stream in streams}
    hustle = sum_money(weekly.values())
    remaining = clamp_money(max(0.0, gap - hustle))
    return GapCoverage(
        week1_gap=gap,
        weekly_by_stream=weekly,
        hustle_weekly=hustle,
        remaining_after_hustle=remaining,
        more_units_needed={stream.name: units_to_cover(remaining, stream.per_unit) for stream in streams},
    )


def streams_from_config(rows: Iterable[dict]) -> List[SideIncomeStream]:
    return [
        SideIncomeStream(
            name=str(row.get('name', 'Side income')),
            per_unit=clamp_money(row.get('per_unit')),
            units_per_week=clamp_money(row.get('units_per_week')),
            unit_label=str(row.get('unit_label', 'units')),
        )
        for row in rows
        if isinstance(row, dict)
    ]
