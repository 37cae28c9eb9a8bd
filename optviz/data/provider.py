"""
Price series provider.

Supplies the ordered OHLCV sequence that the chart is built from. The
backend's ``/api/ohlcv-data`` endpoint is tried exactly once (with a
timeout); any failure falls back to the embedded dataset. There is no retry
or backoff, and no ongoing subscription.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional
import logging

import httpx

from optviz.data.fallback import generate_fallback_bars
from optviz.data.ohlcv_dataset import DEFAULT_SYMBOL
from optviz.models.bar import PriceBar
from optviz.utils.error_handling import PriceFetchError, format_fetch_error_message

logger = logging.getLogger(__name__)


class DataSource(str, Enum):
    LOADING = "loading"
    API = "api"
    FALLBACK = "fallback"


@dataclass
class PriceSeries:
    symbol: str
    bars: List[PriceBar]
    source: DataSource
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def last_bar(self) -> Optional[PriceBar]:
        return self.bars[-1] if self.bars else None

    @property
    def first_bar(self) -> Optional[PriceBar]:
        return self.bars[0] if self.bars else None


def normalize_bars(bars: List[PriceBar]) -> List[PriceBar]:
    """Sort ascending by time and keep the last bar for any repeated date."""
    by_time = {}
    for bar in bars:
        by_time[bar.time] = bar
    return [by_time[t] for t in sorted(by_time)]


class PriceSeriesProvider:
    """One-shot loader for the chart's historical prices."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: float = 5.0,
        symbol: str = DEFAULT_SYMBOL,
        fallback: Callable[[], List[PriceBar]] = generate_fallback_bars,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            url: Full URL of the OHLCV endpoint. None/empty skips the network
            timeout: Request timeout in seconds
            symbol: Symbol reported when the fallback dataset is used
            fallback: Factory for the embedded dataset
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._url = url or None
        self._timeout = timeout
        self._symbol = symbol
        self._fallback = fallback
        self._transport = transport

    def fetch(self) -> PriceSeries:
        """
        Fetch from the backend without any fallback.

        Raises:
            PriceFetchError: on network, HTTP status or payload errors
        """
        if self._url is None:
            raise PriceFetchError("No OHLCV endpoint configured")

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.get(self._url)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise PriceFetchError(format_fetch_error_message("backend", url=self._url, error=e)) from e

        try:
            bars = normalize_bars([PriceBar.from_dict(item) for item in payload["data"]])
            symbol = str(payload.get("symbol") or self._symbol)
        except (KeyError, TypeError, ValueError) as e:
            raise PriceFetchError(
                format_fetch_error_message("backend", url=self._url, error=e, additional_info="malformed payload")
            ) from e

        if not bars:
            raise PriceFetchError(
                format_fetch_error_message("backend", url=self._url, additional_info="empty data array")
            )
        return PriceSeries(symbol=symbol, bars=bars, source=DataSource.API)

    def load(self) -> PriceSeries:
        """Fetch once, falling back to the embedded dataset on any failure."""
        if self._url is not None:
            try:
                series = self.fetch()
                logger.info(f"Loaded {len(series.bars)} candles from {self._url}")
                return series
            except PriceFetchError as e:
                logger.warning(f"Falling back to embedded price data: {e}")
        else:
            logger.info("No OHLCV endpoint configured, using embedded price data")

        return PriceSeries(
            symbol=self._symbol,
            bars=normalize_bars(self._fallback()),
            source=DataSource.FALLBACK,
        )
