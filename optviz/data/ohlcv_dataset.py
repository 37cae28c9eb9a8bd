"""
Pre-baked FET/USD OHLCV dataset.

The raw file stores one row per day as ``[timestamp_ms, open, high, low,
close, volume]`` (the CoinGecko export layout). This module turns it into
chart-ready PriceBar values: ascending by date, one bar per date, prices
rounded to 6 decimals.
"""

from __future__ import annotations
from importlib import resources
from pathlib import Path
from typing import List, Optional, Union
import logging

import pandas as pd

from optviz.models.bar import PriceBar

logger = logging.getLogger(__name__)

DEFAULT_SYMBOL = "FET/USD"
DEFAULT_SOURCE = "CoinGecko"
_DATA_FILE = "fet_usd_ohlcv.csv"
PRICE_PRECISION = 6


class EmbeddedOHLCVDataset:
    """Read-only access to a packaged (or user supplied) OHLCV CSV file."""

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        symbol: str = DEFAULT_SYMBOL,
        source: str = DEFAULT_SOURCE,
    ):
        """
        Args:
            path: CSV file to read. Defaults to the file shipped with optviz.data
            symbol: Symbol label reported alongside the data
            source: Data source label reported alongside the data
        """
        self._path = Path(path) if path is not None else None
        self.symbol = symbol
        self.source = source
        self._bars: Optional[List[PriceBar]] = None

    def load_frame(self) -> pd.DataFrame:
        """Load the raw rows as a DataFrame indexed by calendar date."""
        if self._path is not None:
            raw = pd.read_csv(self._path)
        else:
            with resources.files("optviz.data").joinpath(_DATA_FILE).open("r") as f:
                raw = pd.read_csv(f)

        df = raw.copy()
        df["time"] = pd.to_datetime(df["timestamp"], unit="ms", utc=True).dt.date
        df = (
            df.drop_duplicates(subset="time", keep="last")
            .sort_values("time")
            .set_index("time")
        )
        for col in ("open", "high", "low", "close"):
            df[col] = df[col].astype(float).round(PRICE_PRECISION)
        df["volume"] = df["volume"].astype(float)
        return df[["open", "high", "low", "close", "volume"]]

    def bars(self) -> List[PriceBar]:
        """Chart-ready bars, computed once and reused."""
        if self._bars is None:
            df = self.load_frame()
            self._bars = [
                PriceBar(
                    time=ts,
                    open=float(row["open"]),
                    high=float(row["high"]),
                    low=float(row["low"]),
                    close=float(row["close"]),
                    volume=float(row["volume"]),
                )
                for ts, row in df.iterrows()
            ]
            if self._bars:
                logger.debug(
                    f"Loaded {len(self._bars)} {self.symbol} bars "
                    f"({self._bars[0].time} to {self._bars[-1].time})"
                )
        return list(self._bars)

    def close_series(self) -> List[dict]:
        """Close-only points (``{time, value}``) for line charts."""
        return [
            {"time": bar.time.isoformat(), "value": round(bar.close, PRICE_PRECISION)}
            for bar in self.bars()
        ]
