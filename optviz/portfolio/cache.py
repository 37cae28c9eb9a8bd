"""
Local portfolio cache.

A small JSON key-value file standing in for browser local storage. The
portfolio lives under the single well-known key ``"options"`` and is always
written wholesale.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Sequence
import json
import logging

from optviz.models.option_record import OptionRecord

logger = logging.getLogger(__name__)

STORAGE_KEY = "options"
DEFAULT_CACHE_PATH = "data_cache/portfolio.json"


class PortfolioCache:
    """Persists the option list between sessions."""

    def __init__(self, path: str = DEFAULT_CACHE_PATH, key: str = STORAGE_KEY):
        """
        Args:
            path: JSON file holding the key-value slots
            key: Slot name used for the option list
        """
        self._path = Path(path)
        self._key = key

    @property
    def path(self) -> Path:
        return self._path

    def _read_slots(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    def _write_slots(self, slots: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a temporary file first, then swap it in
        temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(slots, f, indent=2)
        temp_path.replace(self._path)

    def _slots_for_write(self) -> Dict[str, Any]:
        try:
            return self._read_slots()
        except (OSError, ValueError) as e:
            logger.warning(f"Portfolio cache {self._path} unreadable, rewriting it: {e}")
            return {}

    def load(self) -> List[OptionRecord]:
        """
        Load the cached portfolio.

        Returns:
            The cached records, or [] when the file or key is missing or the
            stored value cannot be parsed
        """
        try:
            raw = self._read_slots().get(self._key)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read portfolio cache {self._path}: {e}")
            return []

        if raw is None:
            return []

        try:
            if not isinstance(raw, list):
                raise ValueError(f"'{self._key}' must be a list")
            records = [OptionRecord.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to parse cached options from {self._path}: {e}")
            return []

        logger.debug(f"Loaded {len(records)} options from {self._path}")
        return records

    def save(self, records: Sequence[OptionRecord]) -> None:
        """Overwrite the cached portfolio with ``records``."""
        slots = self._slots_for_write()
        slots[self._key] = [record.to_dict() for record in records]
        self._write_slots(slots)

    def clear(self) -> None:
        """Remove the portfolio slot, keeping any other keys."""
        if not self._path.exists():
            return
        slots = self._slots_for_write()
        slots.pop(self._key, None)
        self._write_slots(slots)
