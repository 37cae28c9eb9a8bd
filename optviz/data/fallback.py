"""
Embedded fallback price series.

Used when the backend's OHLCV endpoint is unreachable. Candles are derived
deterministically from monthly anchor prices, so the chart always looks the
same in fallback mode.
"""

from __future__ import annotations
from datetime import date
from typing import List, Tuple
import math

from optviz.models.bar import PriceBar

# (date, anchor price, seed index)
FALLBACK_ANCHORS: List[Tuple[str, float, int]] = [
    ("2023-01-01", 0.0922, 0),
    ("2023-02-01", 0.0969, 2),
    ("2023-03-01", 0.1127, 4),
    ("2023-04-01", 0.1252, 6),
    ("2023-05-01", 0.1411, 8),
    ("2023-06-01", 0.1917, 10),
    ("2023-07-01", 0.2043, 12),
    ("2023-08-01", 0.2401, 14),
    ("2023-09-01", 0.2291, 16),
    ("2023-10-01", 0.2518, 18),
    ("2023-11-01", 0.3319, 20),
    ("2023-12-01", 0.4550, 22),
    ("2024-01-01", 0.5491, 24),
    ("2024-02-01", 0.4541, 26),
    ("2024-03-01", 0.4042, 28),
    ("2024-03-15", 1.4922, 29),
    ("2024-04-01", 1.2559, 30),
    ("2024-05-01", 0.8977, 32),
    ("2024-06-01", 0.7886, 34),
    ("2024-07-01", 0.7196, 36),
    ("2024-08-01", 0.7502, 38),
    ("2024-09-01", 0.7423, 40),
    ("2024-10-01", 0.7523, 42),
    ("2024-11-01", 0.7390, 44),
    ("2024-12-01", 0.7334, 46),
    ("2024-12-19", 0.7241, 48),
]

VARIATION = 0.02
MIN_PRICE = 0.001


def _pseudo_random(seed: int) -> float:
    return (math.sin(seed) + 1) / 2


def generate_candle(day: date, base_price: float, index: int) -> PriceBar:
    """Build one candle around ``base_price`` (±2%), seeded by ``index``."""
    seed = index * 12345
    variation = base_price * VARIATION

    open_ = max(MIN_PRICE, base_price + (_pseudo_random(seed) - 0.5) * variation)
    close = max(MIN_PRICE, base_price + (_pseudo_random(seed + 1) - 0.5) * variation)

    high = max(open_, close) + _pseudo_random(seed + 2) * variation * 0.3
    low = min(open_, close) - _pseudo_random(seed + 3) * variation * 0.3

    return PriceBar(
        time=day,
        open=round(open_, 4),
        high=round(max(high, open_, close), 4),
        low=round(max(MIN_PRICE, min(low, open_, close)), 4),
        close=round(close, 4),
        volume=float(int(_pseudo_random(seed + 4) * 10_000_000) + 1_000_000),
    )


def generate_fallback_bars() -> List[PriceBar]:
    """All fallback candles, ascending by date."""
    return [
        generate_candle(date.fromisoformat(day), price, index)
        for day, price, index in FALLBACK_ANCHORS
    ]
