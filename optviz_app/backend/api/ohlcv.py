"""
Historical price endpoints.

Both endpoints serve the embedded dataset: full OHLCV bars for the candlestick
chart and a legacy close-only series.
"""

from fastapi import APIRouter, Depends
from datetime import datetime, timezone
from functools import lru_cache
import logging

from optviz.data.ohlcv_dataset import EmbeddedOHLCVDataset
from optviz_app.backend.backend_core.config import settings
from optviz_app.backend.backend_core.errors import ApiError

router = APIRouter()
logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_dataset() -> EmbeddedOHLCVDataset:
    return EmbeddedOHLCVDataset(symbol=settings.SYMBOL, source=settings.DATA_SOURCE_NAME)


def _envelope(dataset: EmbeddedOHLCVDataset, data: list) -> dict:
    return {
        "symbol": dataset.symbol,
        "data": data,
        "source": dataset.source,
        "last_updated": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ohlcv-data")
def get_ohlcv_data(dataset: EmbeddedOHLCVDataset = Depends(get_dataset)):
    """OHLCV bars, ascending by date."""
    try:
        data = [bar.to_dict() for bar in dataset.bars()]
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Error formatting OHLCV data: {e}", exc_info=True)
        raise ApiError(500, "Failed to retrieve OHLCV data", "Price data unavailable")
    return _envelope(dataset, data)


@router.get("/price-data")
def get_price_data(dataset: EmbeddedOHLCVDataset = Depends(get_dataset)):
    """Legacy close-only series (``{time, value}`` points)."""
    try:
        data = dataset.close_series()
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Error formatting price data: {e}", exc_info=True)
        raise ApiError(500, "Failed to retrieve price data", "Price data unavailable")
    return _envelope(dataset, data)
