#!/usr/bin/env python3
"""Lightweight validator for a saved money board ledger file."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from money_board.config import STORE_PATH
from money_board.ledger import recompute_saved
from money_board.models import LedgerState
from money_board.money_utils import clamp_money


def _not_numeric(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        float(value)
    except (TypeError, ValueError, OverflowError):
        return True
    return False


def validate_store(path: Path) -> List[str]:
    """Return a list of problems found in the ledger file at ``path``."""
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)

    errors = []
    try:
        state = LedgerState.from_dict(data)
    except ValueError as exc:
        return [str(exc)]

    raw_buckets = [b for b in data["buckets"] if isinstance(b, dict)]
    if len(raw_buckets) != len(state.buckets):
        errors.append("duplicate or unnamed bucket keys")
    saved = recompute_saved(state.entries)
    for raw in raw_buckets:
        key = raw.get("key")
        stored = raw.get("saved", 0)
        if _not_numeric(stored):
            errors.append(f"bucket {key}: saved {stored!r} is not a number")
        if key and abs(clamp_money(stored) - saved.get(key, 0.0)) >= 0.01:
            errors.append(f"bucket {key}: saved {stored} but allocations sum to {saved.get(key, 0.0)}")
    for raw in data["entries"]:
        if not isinstance(raw, dict):
            errors.append("entry is not an object")
            continue
        if _not_numeric(raw.get("amount")):
            errors.append(f"entry {raw.get('id')}: amount {raw.get('amount')!r} is not a number")
        allocs = raw.get("allocations") or {}
        if not isinstance(allocs, dict):
            errors.append(f"entry {raw.get('id')}: allocations is not an object")
        elif sum(clamp_money(v) for v in allocs.values()) - clamp_money(raw.get("amount")) >= 0.01:
            errors.append(f"entry {raw.get('id')}: allocations exceed amount")
    return errors


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", nargs="?", type=Path, default=STORE_PATH)
    args = parser.parse_args(argv)

    if not args.path.exists():
        print(f"Ledger file not found: {args.path}")
        return 1
    try:
        issues = validate_store(args.path)
    except (json.JSONDecodeError, OSError) as exc:
        print(f"Could not read {args.path}: {exc}")
        return 1

    if issues:
        print("Ledger validation failed:")
        for message in issues:
            print(f"  - {message}")
        return 1

    print("Ledger validated successfully.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
