"""Allocation ledger: the single owner of buckets, income entries and derived totals.

The ledger follows a small, closed command surface:

* ``add_income`` logs an income event,
* ``allocate`` moves unassigned money into a bucket,
* ``auto_fund_essentials`` greedily funds focus and high priority buckets,
* ``add_bucket`` / ``update_bucket`` / ``remove_bucket`` edit buckets,
* ``reset_all`` wipes entries and restores the default buckets.

Invalid requests are silent policy rejections: the command returns ``False``
(or ``None``) and the state is left exactly as it was. Every successful
command recomputes bucket ``saved`` values from the entries and saves the
state through the configured storage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from . import planner
from .models import (
    Bucket,
    Entry,
    INCOME_SOURCES,
    LedgerState,
    coerce_source,
    normalize_bucket_fields,
)
from .money_utils import (
    clamp_day_of_month,
    clamp_money,
    month_key,
    new_entry_id,
    parse_iso,
    sum_money,
    unique_key,
)
from .recurrence import apply_monthly_recurrence, needs_monthly_pass, roll_bucket
from .settings import get_money_config

logger = logging.getLogger(__name__)

_RECURRENCE_FIELDS = {"is_monthly", "monthly_target", "due_day"}


@dataclass(frozen=True)
class Totals:
    income: float
    allocated: float
    unassigned: float


def compute_totals(entries: Iterable[Entry]) -> Totals:
    """Income, allocated and unassigned money across ``entries``.

    Allocations count whether or not their bucket still exists, so deleting
    a bucket never frees its money back into ``unassigned``.
    """
    entries = list(entries)
    income = sum_money(entry.amount for entry in entries)
    allocated = sum_money(value for entry in entries for value in entry.allocations.values())
    return Totals(income=income, allocated=allocated, unassigned=clamp_money(income - allocated))


def recompute_saved(entries: Iterable[Entry]) -> Dict[str, float]:
    """Sum every entry's allocation map into a ``bucket key -> saved`` map."""
    sums: Dict[str, List[float]] = {}
    for entry in entries:
        for key, value in entry.allocations.items():
            sums.setdefault(key, []).append(value)
    return {key: sum_money(values) for key, values in sums.items()}


def distribute_allocation(entries: Sequence[Entry], key: str, amount: float) -> Optional[List[Entry]]:
    """Spread ``amount`` for bucket ``key`` over the free room of ``entries``.

    Entries are filled in list order (newest first). The input is never
    modified; a new entry list is returned only when the whole amount could
    be placed, otherwise ``None``.
    """
    working = [entry.copy() for entry in entries]
    remaining = clamp_money(amount)
    for entry in working:
        if remaining <= 0:
            break
        room = entry.room
        if room <= 0:
            continue
        take = clamp_money(min(room, remaining))
        entry.allocations[key] = clamp_money(entry.allocations.get(key, 0.0) + take)
        remaining = clamp_money(remaining - take)
    if remaining > 0:
        return None
    return working


def with_saved(buckets: Iterable[Bucket], entries: Iterable[Entry]) -> List[Bucket]:
    saved = recompute_saved(entries)
    return [bucket.copy(saved=saved.get(bucket.key, 0.0)) for bucket in buckets]


def default_buckets(today: str | date) -> List[Bucket]:
    """Configured starter buckets, rolled to ``today`` and with nothing saved."""
    rows = get_money_config().get('default_buckets', [])
    buckets = [Bucket.from_dict(row) for row in rows if isinstance(row, Mapping)]
    return [bucket.copy(saved=0.0) for bucket in apply_monthly_recurrence(today, buckets)]


def default_state(today: str | date) -> LedgerState:
    now = parse_iso(today) or date.today()
    return LedgerState(buckets=default_buckets(now), entries=[], last_monthly_applied=month_key(now))


class MoneyLedger:
    """Owned store object for the budgeting board.

    Args:
        state: Initial state; defaults to the configured starter buckets
        storage: Optional object with ``save(payload)``, called after every
            successful command
        clock: Callable returning "today" as a :class:`datetime.date`
        sources: Allowed income sources (defaults from settings)
    """

    def __init__(
        self,
        state: Optional[LedgerState] = None,
        storage: Any = None,
        clock: Optional[Callable[[], date]] = None,
        sources: Optional[Sequence[str]] = None,
    ):
        self._clock = clock or date.today
        self._storage = storage
        self._sources = tuple(sources or get_money_config().get('income_sources') or INCOME_SOURCES)
        state = state.copy() if state is not None else default_state(self.today)
        state.buckets = with_saved(state.buckets, state.entries)
        self._state = state

    # ------------------------------------------------------------------
    # Construction from persisted data
    # ------------------------------------------------------------------
    @classmethod
    def from_payload(
        cls,
        raw: Any,
        storage: Any = None,
        clock: Optional[Callable[[], date]] = None,
        sources: Optional[Sequence[str]] = None,
    ) -> "MoneyLedger":
        """Build a ledger from a raw persisted document.

        ``None`` or anything that is not ledger data falls back to the
        default state. The monthly recurrence pass runs (and is saved) before
        the ledger is handed back.
        """
        ledger = cls(storage=storage, clock=clock, sources=sources)
        if raw is not None:
            try:
                state = LedgerState.from_dict(raw, ledger.sources)
            except ValueError as exc:
                logger.warning("Ignoring stored ledger data: %s", exc)
            else:
                state.buckets = with_saved(state.buckets, state.entries)
                ledger._state = state
        if not ledger.tick() and raw is None:
            ledger._persist()
        return ledger

    @classmethod
    def load(cls, storage: Any, clock: Optional[Callable[[], date]] = None) -> "MoneyLedger":
        """Load a ledger from ``storage`` (anything with ``load()`` and ``save()``)."""
        return cls.from_payload(storage.load(), storage=storage, clock=clock)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def today(self) -> str:
        return self._clock().isoformat()

    @property
    def sources(self) -> tuple:
        return self._sources

    @property
    def buckets(self) -> List[Bucket]:
        return [bucket.copy() for bucket in self._state.buckets]

    @property
    def entries(self) -> List[Entry]:
        return [entry.copy() for entry in self._state.entries]

    @property
    def last_monthly_applied(self) -> str:
        return self._state.last_monthly_applied

    @property
    def state(self) -> LedgerState:
        return self._state.copy()

    def bucket(self, key: str) -> Optional[Bucket]:
        for bucket in self._state.buckets:
            if bucket.key == key:
                return bucket.copy()
        return None

    def focus_buckets(self) -> List[Bucket]:
        """Buckets flagged for the urgent view, most important first."""
        return sorted((b for b in self.buckets if b.focus), key=lambda b: b.priority)

    def totals(self) -> Totals:
        return compute_totals(self._state.entries)

    def to_dict(self) -> Dict[str, Any]:
        return self._state.to_dict()

    def weekly_need(self, weeks: Optional[int] = None) -> planner.WeeklyNeed:
        if weeks is None:
            weeks = get_money_config()['forecast']['plan_weeks']
        return planner.weekly_need(self._state.buckets, self.today, weeks=weeks)

    def carryover_forecast(
        self,
        weeks: Optional[int] = None,
        weekly_baseline: Optional[float] = None,
    ) -> planner.CarryoverForecast:
        settings = get_money_config()['forecast']
        return planner.carryover_forecast(
            self._state.buckets,
            self._state.entries,
            self.today,
            weeks=settings['forecast_weeks'] if weeks is None else weeks,
            weekly_baseline=settings['weekly_baseline'] if weekly_baseline is None else weekly_baseline,
        )

    def daily_need(self, days: Optional[int] = None) -> List[planner.DailyNeed]:
        if days is None:
            days = get_money_config()['forecast']['daily_window_days']
        return planner.daily_need(self._state.buckets, self.today, days=days)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def add_income(self, date_iso: Any, source: Any, amount: Any, note: Optional[str] = None) -> bool:
        """Log an income event; amounts that clamp to zero are ignored."""
        amt = clamp_money(amount)
        if amt <= 0:
            logger.debug("Rejected income of %r: amount must be positive", amount)
            return False
        parsed = parse_iso(date_iso)
        entry = Entry(
            id=new_entry_id(),
            date=parsed.isoformat() if parsed else self.today,
            source=coerce_source(source, self._sources),
            amount=amt,
            note=(note or '').strip() or None,
            allocations={},
        )
        # reverse=True keeps the stable order, so the new entry leads its date
        entries = sorted([entry] + self._state.entries, key=lambda e: e.date, reverse=True)
        self._commit(LedgerState(self._state.buckets, entries, self._state.last_monthly_applied))
        logger.info("Logged %.2f income from %s on %s", amt, entry.source, entry.date)
        return True

    def allocate(self, key: str, amount: Any) -> bool:
        """Assign ``amount`` of unassigned money to bucket ``key``, all or nothing."""
        if not self._allocate(key, amount):
            return False
        self._persist()
        return True

    def auto_fund_essentials(self) -> bool:
        """Fund focus buckets first, then by priority, until nothing is unassigned."""
        funded = False
        order = sorted(self._state.buckets, key=lambda b: (not b.focus, b.priority))
        for candidate in order:
            unassigned = self.totals().unassigned
            if unassigned <= 0:
                break
            current = self.bucket(candidate.key)
            take = clamp_money(min(unassigned, current.remaining))
            if take > 0 and self._allocate(current.key, take):
                funded = True
        if funded:
            self._persist()
        return funded

    def add_bucket(self, name: str, **fields: Any) -> Optional[str]:
        """Create a bucket and return its key (``None`` for a blank name).

        Keys still referenced by historical allocations are never reused, so
        a new bucket always starts with nothing saved.
        """
        name = (name or '').strip()
        if not name:
            logger.debug("Rejected bucket without a name")
            return None
        values = normalize_bucket_fields({k: v for k, v in fields.items() if v is not None})
        values.pop('key', None)
        values.pop('saved', None)
        values.pop('name', None)
        taken = {b.key for b in self._state.buckets}
        taken.update(k for entry in self._state.entries for k in entry.allocations)
        bucket = Bucket(key=unique_key(name, taken), name=name, **values)
        if bucket.is_monthly:
            bucket = self._prepare_monthly(bucket)
        buckets = with_saved([bucket] + self._state.buckets, self._state.entries)
        self._commit(LedgerState(buckets, self._state.entries, self._state.last_monthly_applied))
        logger.info("Added bucket %s", bucket.key)
        return bucket.key

    def update_bucket(self, key: str, patch: Mapping[str, Any]) -> bool:
        """Patch bucket fields; ``saved`` and ``key`` cannot be patched.

        ``None`` values in ``patch`` leave the current value in place.
        Turning a bucket monthly, or changing its monthly target or due day,
        snaps its target and due date immediately.
        """
        current = self.bucket(key)
        if current is None:
            logger.debug("Rejected update of unknown bucket %s", key)
            return False
        values = normalize_bucket_fields({k: v for k, v in patch.items() if v is not None})
        values.pop('key', None)
        values.pop('saved', None)
        if 'name' in values and not values['name']:
            values.pop('name')
        updated = current.copy(**values)
        if updated.is_monthly and _RECURRENCE_FIELDS & values.keys():
            updated = self._prepare_monthly(updated)
        if updated == current:
            return False
        buckets = [updated if b.key == key else b for b in self._state.buckets]
        self._commit(LedgerState(buckets, self._state.entries, self._state.last_monthly_applied))
        logger.info("Updated bucket %s (%s)", key, ', '.join(sorted(values)))
        return True

    def remove_bucket(self, key: str) -> bool:
        """Delete a bucket; its historical allocations stay on the entries."""
        buckets = [b for b in self._state.buckets if b.key != key]
        if len(buckets) == len(self._state.buckets):
            return False
        self._commit(LedgerState(buckets, self._state.entries, self._state.last_monthly_applied))
        logger.info("Removed bucket %s", key)
        return True

    def reset_all(self, keep_buckets: bool = False) -> None:
        """Clear every entry and zero all progress.

        By default the configured starter buckets are restored; with
        ``keep_buckets=True`` the current buckets stay, with ``saved`` zeroed.
        Monthly buckets are rolled to today either way.
        """
        if keep_buckets:
            buckets = [b.copy(saved=0.0) for b in apply_monthly_recurrence(self.today, self._state.buckets)]
        else:
            buckets = default_buckets(self.today)
        self._commit(LedgerState(buckets, [], month_key(self.today)))
        logger.info("Ledger reset with %d buckets", len(buckets))

    def import_state(self, state: LedgerState) -> None:
        """Replace the whole ledger with an imported (already clamped) state."""
        self._commit(state.copy())
        logger.info("Imported %d buckets and %d entries", len(state.buckets), len(state.entries))
        self.tick()

    def apply_recurrence(self) -> None:
        """Snap every monthly bucket to today without touching the month key."""
        buckets = apply_monthly_recurrence(self.today, self._state.buckets)
        self._commit(LedgerState(buckets, self._state.entries, self._state.last_monthly_applied))
        logger.info("Snapped monthly buckets to %s", self.today)

    def tick(self) -> bool:
        """Run the scheduled monthly pass if it has not run this month yet."""
        if not needs_monthly_pass(self.today, self._state.last_monthly_applied):
            return False
        buckets = apply_monthly_recurrence(self.today, self._state.buckets)
        self._commit(LedgerState(buckets, self._state.entries, month_key(self.today)))
        logger.info("Applied monthly recurrence for %s", month_key(self.today))
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _allocate(self, key: str, amount: Any) -> bool:
        amt = clamp_money(amount)
        if amt <= 0:
            logger.debug("Rejected allocation of %r to %s: amount must be positive", amount, key)
            return False
        target = self.bucket(key)
        if target is None:
            logger.debug("Rejected allocation to unknown bucket %s", key)
            return False
        if amt > self.totals().unassigned:
            logger.debug("Rejected allocation of %.2f to %s: exceeds unassigned", amt, key)
            return False
        entries = distribute_allocation(self._state.entries, key, amt)
        if entries is None:
            logger.debug("Rejected allocation of %.2f to %s: entries have no room", amt, key)
            return False

        buckets = with_saved(self._state.buckets, entries)
        if target.is_debt and target.balance is not None:
            balance = clamp_money(max(0.0, target.balance - amt))
            buckets = [b.copy(balance=balance) if b.key == key else b for b in buckets]
        self._state = LedgerState(buckets, entries, self._state.last_monthly_applied)
        logger.info("Allocated %.2f to %s", amt, key)
        return True

    def _prepare_monthly(self, bucket: Bucket) -> Bucket:
        if bucket.monthly_target is None:
            bucket = bucket.copy(monthly_target=bucket.target)
        if bucket.due_day is None:
            bucket = bucket.copy(due_day=clamp_day_of_month(1))
        return roll_bucket(self.today, bucket)

    def _commit(self, state: LedgerState) -> None:
        state.buckets = with_saved(state.buckets, state.entries)
        self._state = state
        self._persist()

    def _persist(self) -> None:
        if self._storage is None:
            return
        try:
            self._storage.save(self.to_dict())
        except OSError as exc:
            logger.warning("Could not save ledger: %s", exc)
