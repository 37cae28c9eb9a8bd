"""
Portfolio form.

Client-side entry point for new option records. The rules here are checked
independently of the store's own validation; the two layers are equally
strict but phrase their messages differently.
"""

from __future__ import annotations
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
import logging
import math

from optviz.models.option_record import OptionDraft, OptionKind, parse_iso_date

logger = logging.getLogger(__name__)

FORM_FIELDS = ("option_type", "strike_price", "expiry_date", "size")

MSG_KIND_REQUIRED = "Option type is required"
MSG_KIND_INVALID = "Option type must be call or put"
MSG_STRIKE = "Valid strike price is required"
MSG_EXPIRY_REQUIRED = "Expiry date is required"
MSG_EXPIRY_INVALID = "Expiry date must be a valid date"
MSG_EXPIRY_PAST = "Expiry date must be in the future"
MSG_SIZE = "Valid size is required"


def _positive_number(value: Any) -> Optional[float]:
    """Coerce form input to a finite positive float, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _expiry(value: Any) -> Tuple[Optional[date], Optional[str]]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None, MSG_EXPIRY_REQUIRED
    if isinstance(value, datetime):
        return value.date(), None
    if isinstance(value, date):
        return value, None
    parsed = parse_iso_date(value.strip()) if isinstance(value, str) else None
    if parsed is None:
        return None, MSG_EXPIRY_INVALID
    return parsed, None


def validate_form_values(values: Mapping[str, Any], today: date) -> Tuple[Optional[OptionDraft], Dict[str, str]]:
    """
    Check raw form values against the entry rules.

    Args:
        values: Mapping of form field name to raw value (strings or numbers)
        today: Current date; expiry must be strictly later

    Returns:
        (draft, {}) when every rule holds, otherwise (None, errors) with one
        message per offending field
    """
    errors: Dict[str, str] = {}

    kind_raw = values.get("option_type")
    if isinstance(kind_raw, OptionKind):
        kind_raw = kind_raw.value
    kind = None
    if not kind_raw:
        errors["option_type"] = MSG_KIND_REQUIRED
    elif kind_raw not in (OptionKind.CALL.value, OptionKind.PUT.value):
        errors["option_type"] = MSG_KIND_INVALID
    else:
        kind = OptionKind(kind_raw)

    strike = _positive_number(values.get("strike_price"))
    if strike is None:
        errors["strike_price"] = MSG_STRIKE

    expiry, expiry_error = _expiry(values.get("expiry_date"))
    if expiry_error:
        errors["expiry_date"] = expiry_error
    elif expiry <= today:
        errors["expiry_date"] = MSG_EXPIRY_PAST

    size = _positive_number(values.get("size"))
    if size is None:
        errors["size"] = MSG_SIZE

    if errors:
        return None, errors
    return OptionDraft(kind=kind, strike_price=strike, expiry_date=expiry, size=size), {}


class PortfolioForm:
    """
    Stateful add-option form.

    Holds the raw field values and per-field error messages. ``submit``
    either emits a draft (and closes) or records errors (and stays open).
    """

    def __init__(
        self,
        today_provider: Callable[[], date] = date.today,
        on_submit: Optional[Callable[[OptionDraft], Any]] = None,
    ):
        self.today_provider = today_provider
        self.on_submit = on_submit
        self.values: Dict[str, Any] = {name: "" for name in FORM_FIELDS}
        self.errors: Dict[str, str] = {}
        self.is_open = False

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def reset(self) -> None:
        self.values = {name: "" for name in FORM_FIELDS}
        self.errors = {}

    def set_field(self, name: str, value: Any) -> None:
        """Update a field and clear only that field's error."""
        if name not in FORM_FIELDS:
            raise KeyError(f"Unknown form field: {name}")
        self.values[name] = value
        self.errors.pop(name, None)

    def fill(self, values: Mapping[str, Any]) -> None:
        for name, value in values.items():
            if name in FORM_FIELDS:
                self.set_field(name, value)

    def validate(self) -> Dict[str, str]:
        _, errors = validate_form_values(self.values, self.today_provider())
        return errors

    def submit(self) -> Optional[OptionDraft]:
        draft, errors = validate_form_values(self.values, self.today_provider())
        self.errors = errors
        if draft is None:
            logger.debug(f"Form rejected: {errors}")
            return None

        if self.on_submit is not None:
            self.on_submit(draft)
        self.reset()
        self.close()
        return draft
