"""
Shared fixtures.

The API tests run against an in-memory SQLite database injected through
``app.dependency_overrides[get_db]``; StaticPool keeps a single connection so
every session sees the same in-memory tables.
"""

from datetime import date, datetime, timedelta
from typing import List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from optviz.models.bar import PriceBar
from optviz.models.option_record import OptionKind, OptionRecord
from optviz_app.backend.backend_core import models  # noqa: F401  (registers tables)
from optviz_app.backend.backend_core.database import Base, get_db
from optviz_app.backend.main import _rate_limit_store, app

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TODAY = date(2025, 6, 1)
LAST_BAR = date(2025, 8, 17)


@pytest.fixture(autouse=True)
def reset_rate_limit():
    """Every test starts with an empty rate-limit window."""
    _rate_limit_store.clear()
    yield
    _rate_limit_store.clear()


@pytest.fixture
def db():
    """Create test database."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """Create test client with database override."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_bars(end: date = LAST_BAR, days: int = 30, start_price: float = 1.0) -> List[PriceBar]:
    """Ascending daily bars ending on ``end``; alternating up/down candles."""
    bars = []
    price = start_price
    for i in range(days):
        day = end - timedelta(days=days - 1 - i)
        close = round(price * (1.01 if i % 2 == 0 else 0.995), 6)
        bars.append(
            PriceBar(
                time=day,
                open=price,
                high=round(max(price, close) * 1.01, 6),
                low=round(min(price, close) * 0.99, 6),
                close=close,
                volume=1_000_000 + i * 1000,
            )
        )
        price = close
    return bars


@pytest.fixture
def bars() -> List[PriceBar]:
    return make_bars()


def make_record(
    record_id: int,
    kind: OptionKind = OptionKind.CALL,
    strike: float = 1.25,
    expiry: date = date(2025, 12, 19),
    size: float = 2_500_000,
) -> OptionRecord:
    return OptionRecord(
        id=record_id,
        kind=kind,
        strike_price=strike,
        expiry_date=expiry,
        size=size,
        created_at=datetime(2025, 5, 1, 12, 0, 0),
    )


def valid_payload(**overrides) -> dict:
    payload = {
        "option_type": "call",
        "strike_price": 1.25,
        "expiry_date": "2025-12-19",
        "size": 2_500_000,
    }
    payload.update(overrides)
    return payload
