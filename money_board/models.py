"""Record shapes for the money board ledger.

The persisted document uses camelCase field names (``dateISO``,
``dueDate``, ``isMonthly`` ...), so backups exported by the browser version
of the board load unchanged. ``from_dict`` is the single place where
raw data is clamped and defaulted; every loader (file, import, default
settings) goes through it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence

from .money_utils import (
    clamp_day_of_month,
    clamp_money,
    clamp_percent,
    clamp_priority,
    new_entry_id,
    parse_iso,
    slug_key,
    sum_money,
    today_iso,
)

BucketKind = Literal["bill", "credit", "loan"]
BUCKET_KINDS = ("bill", "credit", "loan")
DEBT_KINDS = {"credit", "loan"}

IncomeSource = Literal["Salon", "DoorDash", "Other"]
INCOME_SOURCES = ("Salon", "DoorDash", "Other")
DEFAULT_SOURCE = "Other"

# Money fields of a bucket that are optional (``None`` means "not tracked").
OPTIONAL_MONEY_FIELDS = ("balance", "min_payment", "credit_limit", "monthly_target")

_BUCKET_FIELD_NAMES = {
    "key": "key",
    "name": "name",
    "target": "target",
    "saved": "saved",
    "due": "due",
    "dueDate": "due_date",
    "priority": "priority",
    "focus": "focus",
    "kind": "kind",
    "balance": "balance",
    "apr": "apr",
    "minPayment": "min_payment",
    "creditLimit": "credit_limit",
    "isMonthly": "is_monthly",
    "monthlyTarget": "monthly_target",
    "dueDay": "due_day",
}


def coerce_kind(value: Any) -> str:
    text = str(value or '').strip().lower()
    return text if text in BUCKET_KINDS else "bill"


def coerce_source(value: Any, sources: Sequence[str] = INCOME_SOURCES) -> str:
    text = str(value or '').strip()
    for source in sources:
        if source.lower() == text.lower():
            return source
    return DEFAULT_SOURCE if DEFAULT_SOURCE in sources else sources[-1]


def coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(value)


def clean_text(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip()


def clean_due_date(value: Any) -> str:
    """Normalise an optional due date to ISO or ``''`` (no due date)."""
    parsed = parse_iso(value)
    return parsed.isoformat() if parsed else ''


def _optional_money(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    return clamp_money(value)


def normalize_bucket_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Map persisted (camelCase) or attribute (snake_case) names and clamp values.

    Only the fields present in ``raw`` are returned, which makes this usable
    both for full records and for partial edit patches. Unknown keys are
    dropped.
    """
    fields: Dict[str, Any] = {}
    for name, value in raw.items():
        attr = _BUCKET_FIELD_NAMES.get(name, name if name in _BUCKET_FIELD_NAMES.values() else None)
        if attr is None:
            continue
        if attr in ("target", "saved"):
            fields[attr] = clamp_money(value)
        elif attr in OPTIONAL_MONEY_FIELDS:
            fields[attr] = _optional_money(value)
        elif attr == "apr":
            fields[attr] = None if value is None or value == '' else clamp_percent(value)
        elif attr == "due_day":
            fields[attr] = None if value is None or value == '' else clamp_day_of_month(value)
        elif attr == "priority":
            fields[attr] = clamp_priority(value)
        elif attr in ("focus", "is_monthly"):
            fields[attr] = coerce_bool(value)
        elif attr == "kind":
            fields[attr] = coerce_kind(value)
        elif attr == "due_date":
            fields[attr] = clean_due_date(value)
        else:
            fields[attr] = clean_text(value)
    return fields


@dataclass
class Bucket:
    """A funding target: a bill, a credit account, a loan or a rolling goal.

    ``saved`` is derived from entry allocations by the ledger and must not
    be edited directly.
    """

    key: str
    name: str
    target: float = 0.0
    saved: float = 0.0
    due: str = ''
    due_date: str = ''
    priority: int = 2
    focus: bool = False
    kind: BucketKind = "bill"
    balance: Optional[float] = None
    apr: Optional[float] = None
    min_payment: Optional[float] = None
    credit_limit: Optional[float] = None
    is_monthly: bool = False
    monthly_target: Optional[float] = None
    due_day: Optional[int] = None

    @property
    def remaining(self) -> float:
        if self.target <= 0:
            return 0.0
        return clamp_money(max(0.0, self.target - self.saved))

    @property
    def is_debt(self) -> bool:
        return self.kind in DEBT_KINDS

    @property
    def progress_pct(self) -> int:
        if self.target <= 0:
            return 0
        return min(100, round(self.saved / self.target * 100))

    def copy(self, **changes: Any) -> "Bucket":
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Bucket":
        fields = normalize_bucket_fields(raw)
        name = fields.get("name") or fields.get("key") or "Bucket"
        fields["name"] = name
        fields["key"] = fields.get("key") or slug_key(name)
        return cls(**fields)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for persisted, attr in _BUCKET_FIELD_NAMES.items():
            value = getattr(self, attr)
            if value is None:
                continue
            payload[persisted] = value
        return payload


@dataclass
class Entry:
    """One logged income event and the part of it assigned to each bucket."""

    id: str
    date: str
    source: str
    amount: float
    note: Optional[str] = None
    allocations: Dict[str, float] = field(default_factory=dict)

    @property
    def allocated(self) -> float:
        return sum_money(self.allocations.values())

    @property
    def room(self) -> float:
        return clamp_money(self.amount - self.allocated)

    def copy(self) -> "Entry":
        return replace(self, allocations=dict(self.allocations))

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], sources: Sequence[str] = INCOME_SOURCES) -> "Entry":
        amount = clamp_money(raw.get("amount"))
        allocations: Dict[str, float] = {}
        room = amount
        raw_allocations = raw.get("allocations")
        if isinstance(raw_allocations, Mapping):
            for key, value in raw_allocations.items():
                take = min(clamp_money(value), room)
                if take <= 0:
                    continue
                allocations[str(key)] = clamp_money(take)
                room = clamp_money(room - take)
        parsed = parse_iso(raw.get("dateISO", raw.get("date")))
        note = clean_text(raw.get("note")) or None
        return cls(
            id=clean_text(raw.get("id")) or new_entry_id(),
            date=parsed.isoformat() if parsed else today_iso(),
            source=coerce_source(raw.get("source"), sources),
            amount=amount,
            note=note,
            allocations=allocations,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "dateISO": self.date,
            "source": self.source,
            "amount": self.amount,
            "allocations": dict(self.allocations),
        }
        if self.note:
            payload["note"] = self.note
        return payload


@dataclass
class LedgerState:
    """Everything the ledger persists: buckets, entries and the recurrence month key."""

    buckets: List[Bucket] = field(default_factory=list)
    entries: List[Entry] = field(default_factory=list)
    last_monthly_applied: str = ''

    @classmethod
    def from_dict(cls, raw: Any, sources: Sequence[str] = INCOME_SOURCES) -> "LedgerState":
        """Build a clamped state from a persisted document.

        Raises:
            ValueError: If ``raw`` does not look like ledger data at all
        """
        if not isinstance(raw, Mapping):
            raise ValueError("Ledger data must be a JSON object")
        raw_buckets = raw.get("buckets")
        raw_entries = raw.get("entries")
        if not isinstance(raw_buckets, list) or not isinstance(raw_entries, list):
            raise ValueError("Ledger data needs 'buckets' and 'entries' lists")

        buckets: List[Bucket] = []
        seen = set()
        for row in raw_buckets:
            if not isinstance(row, Mapping):
                continue
            bucket = Bucket.from_dict(row)
            if bucket.key in seen:
                continue
            seen.add(bucket.key)
            buckets.append(bucket)

        entries = [Entry.from_dict(row, sources) for row in raw_entries if isinstance(row, Mapping)]
        meta = raw.get("meta")
        last = meta.get("lastMonthlyApplied") if isinstance(meta, Mapping) else None
        return cls(buckets=buckets, entries=entries, last_monthly_applied=clean_text(last)[:7])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "buckets": [bucket.to_dict() for bucket in self.buckets],
            "entries": [entry.to_dict() for entry in self.entries],
            "meta": {"lastMonthlyApplied": self.last_monthly_applied},
        }

    def copy(self) -> "LedgerState":
        return LedgerState(
            buckets=[bucket.copy() for bucket in self.buckets],
            entries=[entry.copy() for entry in self.entries],
            last_monthly_applied=self.last_monthly_applied,
        )
