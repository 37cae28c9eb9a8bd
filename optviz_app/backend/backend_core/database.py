"""
Database configuration and session management.

Uses SQLAlchemy for ORM; tables are created on startup.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator

from optviz_app.backend.backend_core.config import settings

db_url = settings.DATABASE_URL

connect_args = {}
if "sqlite" in db_url.lower():
    # FastAPI runs sync endpoints in a threadpool
    connect_args = {"check_same_thread": False}

# Create database engine
engine = create_engine(
    db_url,
    connect_args=connect_args,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    """Create all tables if they don't exist yet."""
    # Import models so they register on Base.metadata
    from optviz_app.backend.backend_core import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
