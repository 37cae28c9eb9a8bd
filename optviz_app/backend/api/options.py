"""
Option record endpoints.

GET/POST /api/options and DELETE /api/options/{id}.
"""

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session
from typing import Any, Dict, List
import logging
import re

from optviz.utils.error_handling import OptionValidationError, StorageError
from optviz_app.backend.backend_core.database import get_db
from optviz_app.backend.backend_core.errors import ApiError
from optviz_app.backend.backend_core.store import OptionRecordStore

router = APIRouter()
logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^-?\d+$")
# SQLite INTEGER is a signed 64-bit value
_MAX_ID = 2 ** 63 - 1


def get_store(db: Session = Depends(get_db)) -> OptionRecordStore:
    return OptionRecordStore(db)


def parse_option_id(raw: str) -> int:
    """Parse a path id, raising a 400 ApiError when it is not an integer."""
    if not _ID_PATTERN.match(raw.strip()):
        raise ApiError(400, "Invalid option ID", "Option ID must be a valid number")
    return int(raw)


@router.get("")
def list_options(store: OptionRecordStore = Depends(get_store)) -> List[Dict[str, Any]]:
    """All stored options, newest first."""
    try:
        records = store.list()
    except StorageError as e:
        raise ApiError.from_storage(e)
    return [record.to_dict() for record in records]


@router.post("", status_code=201)
def add_option(
    payload: Dict[str, Any] = Body(...),
    store: OptionRecordStore = Depends(get_store),
):
    """Validate and store a new option."""
    try:
        option_id = store.add(payload)
    except OptionValidationError as e:
        logger.info(f"Rejected option: {e.code} ({e.field})")
        raise ApiError.from_validation(e)
    except StorageError as e:
        raise ApiError.from_storage(e)
    return {"id": option_id, "message": "Option added successfully"}


@router.delete("/{option_id}")
def delete_option(option_id: str, store: OptionRecordStore = Depends(get_store)):
    """Delete an option by id."""
    parsed = parse_option_id(option_id)

    removed = False
    if 0 < parsed <= _MAX_ID:
        try:
            removed = store.delete(parsed)
        except StorageError as e:
            raise ApiError.from_storage(e)

    if not removed:
        raise ApiError(404, "Option not found", f"No option found with ID {parsed}")
    return {"message": "Option deleted successfully"}
