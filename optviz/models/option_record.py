"""
Option record domain model.

An option record is a user-supplied annotation (kind, strike, expiry, size)
that gets drawn on top of the price chart. Records are append/delete only:
once created, the id and creation timestamp never change.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional
import math
import re

from optviz.utils.error_handling import OptionValidationError

# Exact date-only pattern accepted on the wire (no time component)
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

REQUIRED_FIELDS = ("option_type", "strike_price", "expiry_date", "size")


class OptionKind(str, Enum):
    CALL = "call"
    PUT = "put"


@dataclass(frozen=True)
class OptionDraft:
    """A validated option that has not been assigned an id yet."""
    kind: OptionKind
    strike_price: float
    expiry_date: date
    size: float

    def to_payload(self) -> Dict[str, Any]:
        """Request body for ``POST /api/options``."""
        return {
            "option_type": self.kind.value,
            "strike_price": self.strike_price,
            "expiry_date": self.expiry_date.isoformat(),
            "size": self.size,
        }


@dataclass(frozen=True)
class OptionRecord:
    id: int
    kind: OptionKind
    strike_price: float
    expiry_date: date
    size: float
    created_at: datetime

    @classmethod
    def from_draft(cls, draft: OptionDraft, record_id: int, created_at: datetime) -> "OptionRecord":
        return cls(
            id=record_id,
            kind=draft.kind,
            strike_price=draft.strike_price,
            expiry_date=draft.expiry_date,
            size=draft.size,
            created_at=created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the same keys as the HTTP API."""
        return {
            "id": self.id,
            "option_type": self.kind.value,
            "strike_price": self.strike_price,
            "expiry_date": self.expiry_date.isoformat(),
            "size": self.size,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OptionRecord":
        """
        Rebuild a record from its serialized form.

        Raises:
            KeyError, ValueError, TypeError: if the mapping is malformed
        """
        created_raw = data["created_at"]
        if isinstance(created_raw, datetime):
            created_at = created_raw
        else:
            # SQLite's CURRENT_TIMESTAMP uses a space separator
            created_at = datetime.fromisoformat(str(created_raw).replace(" ", "T"))
        expiry_raw = data["expiry_date"]
        expiry = expiry_raw if isinstance(expiry_raw, date) else date.fromisoformat(str(expiry_raw))
        return cls(
            id=int(data["id"]),
            kind=OptionKind(str(data["option_type"]).lower()),
            strike_price=float(data["strike_price"]),
            expiry_date=expiry,
            size=float(data["size"]),
            created_at=created_at,
        )


def _is_json_number(value: Any) -> bool:
    # bool is an int subclass but is not a number on the wire
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float)) and math.isfinite(value)


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse a strict ``YYYY-MM-DD`` string, returning None when it is not a real date."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def validate_option_payload(payload: Mapping[str, Any]) -> OptionDraft:
    """
    Validate an untrusted option payload (HTTP body or store input).

    Checks run in a fixed order and the first failure wins, so the caller
    always gets a single machine-readable code.

    Args:
        payload: Mapping with option_type, strike_price, expiry_date and size

    Returns:
        OptionDraft built from the payload

    Raises:
        OptionValidationError: if any rule is violated
    """
    # Falsy values (0, "", None) count as missing
    missing = [name for name in REQUIRED_FIELDS if not payload.get(name)]
    if missing:
        raise OptionValidationError(
            "Missing required fields",
            "option_type, strike_price, expiry_date, and size are required",
            field=missing[0],
        )

    option_type = payload["option_type"]
    if option_type not in (OptionKind.CALL.value, OptionKind.PUT.value):
        raise OptionValidationError(
            "Invalid option type",
            'option_type must be either "call" or "put"',
            field="option_type",
        )

    strike_price = payload["strike_price"]
    if not _is_json_number(strike_price) or strike_price <= 0:
        raise OptionValidationError(
            "Invalid strike price",
            "strike_price must be a positive number",
            field="strike_price",
        )

    size = payload["size"]
    if not _is_json_number(size) or size <= 0:
        raise OptionValidationError(
            "Invalid size",
            "size must be a positive number",
            field="size",
        )

    expiry = parse_iso_date(payload["expiry_date"])
    if expiry is None:
        raise OptionValidationError(
            "Invalid date format",
            "expiry_date must be in YYYY-MM-DD format",
            field="expiry_date",
        )

    return OptionDraft(
        kind=OptionKind(option_type),
        strike_price=float(strike_price),
        expiry_date=expiry,
        size=float(size),
    )
