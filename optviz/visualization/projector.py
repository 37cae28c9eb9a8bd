"""
Overlay projector.

Maps the option list onto chart primitives and applies them to a mounted
chart. Every refresh is clear-then-set over the primitives this projector
created, so calling it twice with the same list leaves the chart unchanged.
"""

from __future__ import annotations
from datetime import date, timedelta
from typing import List, Optional, Sequence
import logging

import pandas as pd

from optviz.models.option_record import OptionKind, OptionRecord
from optviz.visualization.chart_config import OverlayConfig, OverlayStyle, SizeTier
from optviz.visualization.models import (
    LineStyle,
    MarkerPosition,
    MarkerPrimitive,
    MarkerShape,
    OwnedPrimitives,
    PhantomSeriesPrimitive,
    PriceLinePrimitive,
    Projection,
    SeriesKind,
    SeriesSpec,
    ValuePoint,
)
from optviz.visualization.surface import ChartHandle

logger = logging.getLogger(__name__)

_LINE_WIDTH = {SizeTier.SMALL: 2, SizeTier.MEDIUM: 3, SizeTier.LARGE: 4}
_LINE_STYLE = {SizeTier.SMALL: LineStyle.DASHED, SizeTier.MEDIUM: LineStyle.SOLID, SizeTier.LARGE: LineStyle.SOLID}


def format_strike(value: float) -> str:
    """Shortest decimal form of a strike (2.0 -> "2", 1.25 -> "1.25")."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def option_label(record: OptionRecord) -> str:
    """Chart label, e.g. ``CALL 2.5M @ $1.25``."""
    return f"{record.kind.value.upper()} {record.size / 1_000_000:.1f}M @ ${format_strike(record.strike_price)}"


def add_months(day: date, months: int) -> date:
    return (pd.Timestamp(day) + pd.DateOffset(months=months)).date()


class OverlayProjector:
    """
    Draws option records on a chart.

    ``project`` is pure and can be tested without a surface. ``refresh``
    owns the side effects: it removes whatever it drew last time on the same
    chart, then draws the new projection.
    """

    def __init__(self, config: Optional[OverlayConfig] = None):
        self.config = config or OverlayConfig()
        self._chart: Optional[ChartHandle] = None
        self._owned = OwnedPrimitives()

    # ---------- Pure projection ----------

    def color_for(self, record: OptionRecord, tier: SizeTier) -> str:
        colors = self.config.colors
        if record.kind == OptionKind.CALL:
            return colors["call_large"] if tier == SizeTier.LARGE else colors["call"]
        return colors["put_large"] if tier == SizeTier.LARGE else colors["put"]

    def horizon(self, last_bar_date: date, records: Sequence[OptionRecord] = ()) -> date:
        """Far end of the time axis: Dec 31 a few years out, or the furthest expiry if later."""
        horizon = date(last_bar_date.year + self.config.horizon_years, 12, 31)
        if records:
            horizon = max(horizon, max(r.expiry_date for r in records))
        return horizon

    def phantom_points(self, last_bar_date: date, last_close: Optional[float], horizon: date) -> List[ValuePoint]:
        start = last_bar_date + timedelta(days=1)
        if horizon < start:
            return []
        value = last_close if last_close is not None else 0.0
        days = [ts.date() for ts in pd.date_range(start, horizon, freq=f"{self.config.phantom_interval_days}D")]
        if not days or days[-1] != horizon:
            days.append(horizon)
        return [ValuePoint(time=day, value=value) for day in days]

    def project(
        self,
        records: Sequence[OptionRecord],
        last_bar_date: Optional[date],
        last_close: Optional[float],
        first_bar_date: Optional[date] = None,
    ) -> Projection:
        """
        Build the primitives for ``records``.

        Args:
            records: Option records in display order
            last_bar_date: Date of the last historical bar (None if no history)
            last_close: Close of the last historical bar
            first_bar_date: Date of the first historical bar, used for the visible range

        Returns:
            Projection with price lines (PRICE_LINE style only), markers,
            the phantom series and the visible range
        """
        price_lines: List[PriceLinePrimitive] = []
        markers: List[MarkerPrimitive] = []

        for record in records:
            tier = self.config.size_tiers.tier_for(record.size)
            color = self.color_for(record, tier)
            label = option_label(record)
            is_call = record.kind == OptionKind.CALL

            if self.config.overlay_style == OverlayStyle.PRICE_LINE:
                price_lines.append(
                    PriceLinePrimitive(
                        record_id=record.id,
                        price=record.strike_price,
                        color=color,
                        line_width=_LINE_WIDTH[tier],
                        line_style=_LINE_STYLE[tier],
                        title=label,
                    )
                )
            markers.append(
                MarkerPrimitive(
                    record_id=record.id,
                    time=record.expiry_date,
                    price=record.strike_price,
                    position=MarkerPosition.ABOVE_BAR if is_call else MarkerPosition.BELOW_BAR,
                    shape=MarkerShape.ARROW_UP if is_call else MarkerShape.ARROW_DOWN,
                    color=color,
                    size=tier,
                    text=label,
                )
            )

        phantom = None
        visible_range = None
        if last_bar_date is not None:
            horizon = self.horizon(last_bar_date, records)
            phantom = PhantomSeriesPrimitive(points=tuple(self.phantom_points(last_bar_date, last_close, horizon)))
            start = first_bar_date or last_bar_date
            if records:
                end = add_months(max(r.expiry_date for r in records), self.config.expiry_padding_months)
                # Expired options must not hide recent candles
                end = max(end, last_bar_date)
            else:
                end = horizon
            visible_range = (start, end)

        return Projection(
            price_lines=tuple(price_lines),
            markers=tuple(markers),
            phantom=phantom,
            visible_range=visible_range,
        )

    # ---------- Side effects ----------

    def refresh(self, chart: Optional[ChartHandle], records: Sequence[OptionRecord]) -> bool:
        """
        Replace the overlay on ``chart`` with the projection of ``records``.

        Returns:
            False when the chart is not mounted (nothing happens), True otherwise
        """
        if chart is None or not chart.is_ready:
            logger.debug("Chart not mounted; overlay refresh skipped")
            return False

        if chart is not self._chart:
            # Handles from a previous chart instance are meaningless here
            self._chart = chart
            self._owned = OwnedPrimitives()

        self.clear(chart)
        projection = self.project(records, chart.last_bar_date, chart.last_close, chart.first_bar_date)
        self._apply(chart, projection)

        logger.debug(
            f"Overlay applied: {len(projection.price_lines)} price lines, "
            f"{len(projection.markers)} markers, "
            f"{len(projection.phantom.points) if projection.phantom else 0} phantom points"
        )
        return True

    def clear(self, chart: ChartHandle) -> None:
        """Remove every primitive this projector created on ``chart``."""
        if chart is not self._chart or self._owned.is_empty():
            return

        surface = chart.surface
        for series, line in self._owned.price_lines:
            surface.remove_price_line(series, line)
        for series in self._owned.marker_series:
            surface.remove_series(series)
        if self._owned.phantom_series is not None:
            surface.remove_series(self._owned.phantom_series)
        if self._owned.markers_on_primary:
            surface.set_markers(chart.primary_series, [])

        self._owned = OwnedPrimitives()

    def _apply(self, chart: ChartHandle, projection: Projection):
        surface = chart.surface
        owned = self._owned

        if self.config.overlay_style == OverlayStyle.PRICE_LINE:
            for line in projection.price_lines:
                owned.price_lines.append((chart.primary_series, surface.create_price_line(chart.primary_series, line)))
            if projection.markers:
                surface.set_markers(chart.primary_series, list(projection.markers))
                owned.markers_on_primary = True
        else:
            point_color = self.config.colors["strike_point"]
            for marker in projection.markers:
                series = surface.add_series(
                    SeriesSpec(
                        kind=SeriesKind.LINE,
                        title=marker.text,
                        color=point_color,
                        line_width=0,
                        last_value_visible=False,
                        price_line_visible=False,
                        point_markers_visible=True,
                    )
                )
                owned.marker_series.append(series)
                surface.set_series_data(series, [ValuePoint(time=marker.time, value=marker.price)])
                surface.set_markers(series, [marker])

        if projection.phantom is not None and projection.phantom.points:
            phantom = surface.add_series(projection.phantom.series_spec())
            owned.phantom_series = phantom
            surface.set_series_data(phantom, list(projection.phantom.points))

        if projection.visible_range is not None:
            surface.set_visible_range(*projection.visible_range)
