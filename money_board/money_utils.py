"""Money, date and key helpers shared by the ledger and the planner.

Everything in this module is a pure function. Invalid numeric input never
raises; it degrades to a safe default (``0`` for money, ``1`` for a day of
the month) so callers can feed raw form or file values straight in.

Dates travel through the ledger as ISO ``YYYY-MM-DD`` strings, which is
also how they are persisted. Calendar arithmetic is done on naive
:class:`datetime.date` objects, so there is no timezone drift.
"""

from __future__ import annotations

import math
import uuid
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Context, Decimal, localcontext
from typing import Any, Iterable, Optional

_CENT = Decimal('0.01')
# Wide enough to hold any finite float to the cent (max float has 309 digits).
_MONEY_CONTEXT = Context(prec=340, rounding=ROUND_HALF_UP)


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _round_cents(number: float) -> float:
    with localcontext(_MONEY_CONTEXT):
        return float(Decimal(repr(number)).quantize(_CENT))


def clamp_money(value: Any) -> float:
    """Round a money value to cents and floor it at zero.

    Args:
        value: Any number-like value (int, float, numeric string)

    Returns:
        Non-negative float with at most two decimals; ``0.0`` for
        non-numeric input and for values that are not finite as a float
        (NaN, infinities, integers too large for a float)

    Example:
        >>> clamp_money(12.345)
        12.35
        >>> clamp_money(-5)
        0.0
        >>> clamp_money(float('nan'))
        0.0
    """
    number = _to_float(value)
    if number is None:
        return 0.0
    return max(0.0, _round_cents(number))


def clamp_percent(value: Any) -> float:
    """Clamp an APR style percentage (same rounding rule as money)."""
    return clamp_money(value)


def clamp_day_of_month(value: Any) -> int:
    """Floor a day-of-month value into the ``[1, 31]`` range.

    Example:
        >>> clamp_day_of_month(18.9)
        18
        >>> clamp_day_of_month(45)
        31
        >>> clamp_day_of_month(None)
        1
    """
    number = _to_float(value)
    if number is None:
        return 1
    return min(31, max(1, math.floor(number)))


def clamp_priority(value: Any, default: int = 2) -> int:
    """Coerce a priority rank into ``{1, 2, 3}`` (1 = must, 3 = later)."""
    number = _to_float(value)
    if number is None:
        return default
    return min(3, max(1, math.floor(number)))


def sum_money(values: Iterable[Any]) -> float:
    """Sum money values exactly in cents and return a clamped total."""
    with localcontext(_MONEY_CONTEXT):
        total = sum((Decimal(repr(clamp_money(value))) for value in values), Decimal('0'))
    return clamp_money(float(total))


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def parse_iso(value: Any) -> Optional[date]:
    """Parse an ISO ``YYYY-MM-DD`` string (or a ``date``) leniently.

    Returns ``None`` for empty or unparseable values instead of raising.
    """
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()[:10]
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def to_iso(value: date) -> str:
    return value.isoformat()


def today_iso() -> str:
    return date.today().isoformat()


def month_key(iso: str | date) -> str:
    """Return the ``YYYY-MM`` key for an ISO date."""
    if isinstance(iso, date):
        return iso.strftime('%Y-%m')
    return str(iso)[:7]


def quarter_key(iso: str | date) -> str:
    """Return the ``YYYY-Qn`` key for an ISO date.

    Example:
        >>> quarter_key('2026-05-14')
        '2026-Q2'
    """
    parsed = parse_iso(iso)
    if parsed is None:
        return ''
    return f"{parsed.year}-Q{(parsed.month - 1) // 3 + 1}"


def _anchor(iso: Any) -> date:
    # Unparseable dates anchor on today rather than raising.
    return parse_iso(iso) or date.today()


def add_days(iso: str, days: int) -> str:
    return to_iso(_anchor(iso) + timedelta(days=days))


def start_of_week(iso: str) -> str:
    """Return the Monday that starts the week containing ``iso``."""
    day = _anchor(iso)
    return to_iso(day - timedelta(days=day.weekday()))


def end_of_week(iso: str) -> str:
    """Return the Sunday that ends the week containing ``iso``."""
    return add_days(start_of_week(iso), 6)


def days_between(start_iso: str, end_iso: str) -> int:
    """Whole days from ``start_iso`` to ``end_iso`` (negative when end is earlier)."""
    return (_anchor(end_iso) - _anchor(start_iso)).days


def in_range(iso: str, start: str, end: str) -> bool:
    """Inclusive ISO range check; ISO strings compare lexicographically."""
    return start <= iso <= end


# ---------------------------------------------------------------------------
# Keys and ids
# ---------------------------------------------------------------------------

def slug_key(name: str, default: str = 'bucket') -> str:
    """Build a slug-style bucket key from a display name.

    Lower-cases the name, drops quotes and joins runs of ``[a-z0-9]`` with
    single hyphens.

    Example:
        >>> slug_key("Card 0928 (Min Payment)")
        'card-0928-min-payment'
        >>> slug_key("Mom's Rent")
        'moms-rent'
        >>> slug_key("!!!")
        'bucket'
    """
    if not name:
        return default
    text = str(name).lower().strip().replace("'", '').replace('"', '')
    cleaned = ''.join(c if ('a' <= c <= 'z' or '0' <= c <= '9') else '-' for c in text)
    while '--' in cleaned:
        cleaned = cleaned.replace('--', '-')
    cleaned = cleaned.strip('-')
    return cleaned or default


def unique_key(name: str, taken: Iterable[str]) -> str:
    """Slug ``name`` and append ``-2``, ``-3``, ... until it is not in ``taken``."""
    used = set(taken)
    base = slug_key(name)
    if base not in used:
        return base
    suffix = 2
    while f"{base}-{suffix}" in used:
        suffix += 1
    return f"{base}-{suffix}"


def new_entry_id() -> str:
    return uuid.uuid4().hex
