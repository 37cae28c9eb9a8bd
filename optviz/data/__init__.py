from optviz.data.fallback import generate_fallback_bars
from optviz.data.ohlcv_dataset import EmbeddedOHLCVDataset, DEFAULT_SYMBOL, DEFAULT_SOURCE
from optviz.data.provider import DataSource, PriceSeries, PriceSeriesProvider, normalize_bars

__all__ = [
    "generate_fallback_bars",
    "EmbeddedOHLCVDataset",
    "DEFAULT_SYMBOL",
    "DEFAULT_SOURCE",
    "DataSource",
    "PriceSeries",
    "PriceSeriesProvider",
    "normalize_bars",
]
