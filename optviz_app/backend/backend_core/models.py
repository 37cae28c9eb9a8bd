"""
Database models for the options backend.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime
from sqlalchemy.sql import func

from optviz_app.backend.backend_core.database import Base


class OptionRow(Base):
    """
    Stored option record.

    ``sqlite_autoincrement`` makes SQLite use AUTOINCREMENT so ids of deleted
    rows are never handed out again.
    """
    __tablename__ = "options"
    __table_args__ = {'sqlite_autoincrement': True, 'extend_existing': True}

    id = Column(Integer, primary_key=True, index=True)
    option_type = Column(String, nullable=False)  # "call" or "put"
    strike_price = Column(Float, nullable=False)
    expiry_date = Column(String, nullable=False)  # YYYY-MM-DD
    size = Column(Float, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
