"""
Render surface contract and the chart handle that owns one.

The charting widget itself is an external collaborator. ``RenderSurface``
fixes the small imperative API the rest of the code is allowed to use:
series, price lines, markers and the visible time range. ``ChartHandle`` is
the explicitly owned resource that wraps a mounted surface together with the
primary candlestick/volume series created at startup.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence, Union
import logging

from optviz.models.bar import PriceBar
from optviz.visualization.chart_config import OverlayConfig
from optviz.visualization.models import (
    MarkerPrimitive,
    PriceLinePrimitive,
    SeriesKind,
    SeriesSpec,
    ValuePoint,
    VOLUME_SCALE_ID,
)

logger = logging.getLogger(__name__)

SeriesHandle = str
PriceLineHandle = str
SeriesData = Sequence[Union[PriceBar, ValuePoint]]


class SurfaceNotReadyError(RuntimeError):
    """Raised by a surface when it is used after teardown."""


class RenderSurface(ABC):
    @property
    @abstractmethod
    def is_ready(self) -> bool:
        ...

    @abstractmethod
    def add_series(self, spec: SeriesSpec) -> SeriesHandle:
        ...

    @abstractmethod
    def set_series_data(self, series: SeriesHandle, data: SeriesData) -> None:
        ...

    @abstractmethod
    def remove_series(self, series: SeriesHandle) -> None:
        ...

    @abstractmethod
    def create_price_line(self, series: SeriesHandle, line: PriceLinePrimitive) -> PriceLineHandle:
        ...

    @abstractmethod
    def remove_price_line(self, series: SeriesHandle, line: PriceLineHandle) -> None:
        ...

    @abstractmethod
    def set_markers(self, series: SeriesHandle, markers: Sequence[MarkerPrimitive]) -> None:
        """Replace all markers on ``series``."""
        ...

    @abstractmethod
    def set_visible_range(self, start: date, end: date) -> None:
        ...

    @abstractmethod
    def destroy(self) -> None:
        """Remove everything and mark the surface unusable."""
        ...


@dataclass
class ChartHandle:
    """
    A mounted chart: the surface plus the series created at startup.

    Create with ``mount_chart`` and release with ``teardown``. The overlay
    projector only ever receives this handle; it never reaches for a global.
    """
    surface: RenderSurface
    primary_series: SeriesHandle
    volume_series: Optional[SeriesHandle]
    first_bar_date: Optional[date]
    last_bar_date: Optional[date]
    last_close: Optional[float]
    symbol: str = ""
    mounted: bool = True

    @property
    def is_ready(self) -> bool:
        return self.mounted and self.surface.is_ready

    def teardown(self) -> None:
        if not self.mounted:
            return
        self.mounted = False
        self.surface.destroy()
        logger.debug("Chart torn down")


def volume_points(bars: Sequence[PriceBar], up_color: str, down_color: str) -> List[ValuePoint]:
    """Volume histogram points colored by candle direction."""
    return [
        ValuePoint(
            time=bar.time,
            value=bar.volume,
            color=up_color if bar.close >= bar.open else down_color,
        )
        for bar in bars
    ]


def mount_chart(
    surface: RenderSurface,
    bars: Sequence[PriceBar],
    config: OverlayConfig,
    symbol: str = "",
) -> ChartHandle:
    """
    Create the primary candlestick (and optional volume) series on ``surface``.

    Args:
        surface: A ready render surface
        bars: Historical bars, ascending by time
        config: Overlay configuration (theme, show_volume)
        symbol: Title for the candlestick series

    Returns:
        ChartHandle owning the surface
    """
    if not surface.is_ready:
        raise SurfaceNotReadyError("Cannot mount a chart on a destroyed surface")

    colors = config.colors
    primary = surface.add_series(
        SeriesSpec(
            kind=SeriesKind.CANDLESTICK,
            title=symbol,
            up_color=colors["candle_up"],
            down_color=colors["candle_down"],
            price_precision=4,
        )
    )
    surface.set_series_data(primary, list(bars))

    volume = None
    if config.show_volume:
        volume = surface.add_series(
            SeriesSpec(
                kind=SeriesKind.HISTOGRAM,
                title="Volume",
                color=colors["volume_up"],
                price_scale_id=VOLUME_SCALE_ID,
                last_value_visible=False,
                price_line_visible=False,
                scale_margin_top=0.7,
            )
        )
        surface.set_series_data(volume, volume_points(bars, colors["volume_up"], colors["volume_down"]))

    first = bars[0] if bars else None
    last = bars[-1] if bars else None
    handle = ChartHandle(
        surface=surface,
        primary_series=primary,
        volume_series=volume,
        first_bar_date=first.time if first else None,
        last_bar_date=last.time if last else None,
        last_close=last.close if last else None,
        symbol=symbol,
    )
    logger.info(
        f"Chart mounted with {len(bars)} candles"
        + (f" ({handle.first_bar_date} to {handle.last_bar_date})" if bars else "")
    )
    return handle
