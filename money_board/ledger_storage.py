"""Ledger storage, import and export.

The ledger is persisted as one JSON document holding buckets, entries and
the recurrence month key. Reading never raises for a missing or corrupted
file; the ledger then starts from its default state. Import runs the same
clamping as load.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .config import STORE_PATH, ensure_data_directories
from .models import INCOME_SOURCES, LedgerState

logger = logging.getLogger(__name__)


class LedgerStorage:
    """Handles the ledger file on disk."""

    def __init__(self, path: Optional[Path] = None):
        """Initialize ledger storage.

        Args:
            path: Optional custom file for the ledger.
                  Defaults to STORE_PATH from config.
        """
        self.path = Path(path) if path is not None else STORE_PATH
        if path is None:
            ensure_data_directories()

    def load(self) -> Optional[Dict[str, Any]]:
        """Read the stored document.

        Returns:
            The parsed JSON object, or ``None`` when the file is missing,
            unreadable or not a JSON object
        """
        if not self.path.exists():
            return None
        try:
            with self.path.open('r', encoding='utf-8') as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read ledger file %s: %s", self.path, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Ledger file %s does not hold a JSON object", self.path)
            return None
        return data

    def save(self, payload: Dict[str, Any]) -> None:
        """Write the ledger document.

        Args:
            payload: Serializable ledger state (see ``LedgerState.to_dict``)

        Raises:
            OSError: If the file cannot be written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self.path.open('w', encoding='utf-8') as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
        except OSError as e:
            raise OSError(f"Failed to save ledger to {self.path}: {e}") from e

    def clear(self) -> None:
        """Delete the ledger file (silently ignores a missing file)."""
        if not self.path.exists():
            return
        try:
            self.path.unlink()
        except OSError as e:
            raise OSError(f"Failed to delete ledger file {self.path}: {e}") from e


def export_json(payload: Dict[str, Any]) -> str:
    """Serialize a ledger payload for download."""
    return json.dumps(payload, indent=2)


def import_json(text: str, sources: Sequence[str] = INCOME_SOURCES) -> Optional[LedgerState]:
    """Parse an exported document back into a clamped ledger state.

    Returns:
        The state, or ``None`` when ``text`` is not valid JSON or does not
        look like money board data
    """
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("Import failed: invalid JSON (%s)", e)
        return None
    try:
        return LedgerState.from_dict(raw, sources)
    except ValueError as e:
        logger.warning("Import failed: %s", e)
        return None
