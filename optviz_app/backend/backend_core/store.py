"""
Option record store.

CRUD over the ``options`` table. Input is re-validated here regardless of
what the caller already checked; storage failures are logged with their
driver detail and surfaced as ``StorageError`` without it.
"""

from datetime import date
from typing import Any, List, Mapping, Optional, Union
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from optviz.models.option_record import OptionDraft, OptionKind, OptionRecord, validate_option_payload
from optviz.utils.error_handling import StorageError
from optviz_app.backend.backend_core.models import OptionRow

logger = logging.getLogger(__name__)


def row_to_record(row: OptionRow) -> OptionRecord:
    return OptionRecord(
        id=row.id,
        kind=OptionKind(row.option_type),
        strike_price=row.strike_price,
        expiry_date=date.fromisoformat(row.expiry_date),
        size=row.size,
        created_at=row.created_at,
    )


class OptionRecordStore:
    """Persistent option records backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, draft: Union[OptionDraft, Mapping[str, Any]]) -> int:
        """
        Insert a new option.

        Args:
            draft: OptionDraft or raw payload mapping

        Returns:
            The newly assigned id

        Raises:
            OptionValidationError: if the input breaks a field rule
            StorageError: if the insert fails
        """
        payload = draft.to_payload() if isinstance(draft, OptionDraft) else draft
        checked = validate_option_payload(payload)

        row = OptionRow(
            option_type=checked.kind.value,
            strike_price=checked.strike_price,
            expiry_date=checked.expiry_date.isoformat(),
            size=checked.size,
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database insertion error: {e}", exc_info=True)
            raise StorageError("add option") from e

        logger.info(f"Stored option {row.id} ({row.option_type} @ {row.strike_price})")
        return row.id

    def list(self) -> List[OptionRecord]:
        """All options, newest first (ties broken by id, descending)."""
        try:
            rows = (
                self.db.query(OptionRow)
                .order_by(OptionRow.created_at.desc(), OptionRow.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database query error: {e}", exc_info=True)
            raise StorageError("retrieve options") from e
        return [row_to_record(row) for row in rows]

    def get(self, option_id: int) -> Optional[OptionRecord]:
        try:
            row = self.db.get(OptionRow, option_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database query error: {e}", exc_info=True)
            raise StorageError("retrieve option") from e
        return row_to_record(row) if row is not None else None

    def delete(self, option_id: int) -> bool:
        """Delete by id; returns whether a row was removed."""
        try:
            removed = self.db.query(OptionRow).filter(OptionRow.id == option_id).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database deletion error: {e}", exc_info=True)
            raise StorageError("delete option") from e

        if removed:
            logger.info(f"Deleted option {option_id}")
        return removed > 0
