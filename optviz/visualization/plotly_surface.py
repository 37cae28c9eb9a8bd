"""
Plotly-backed render surface.

Keeps an in-memory registry of series, price lines and markers (the same
vocabulary a TradingView-style widget exposes) and materializes it as a
Plotly figure on demand. The registry is the source of truth; figures are
rebuilt from scratch every time so there is nothing to patch incrementally.
"""

from __future__ import annotations
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from itertools import count
from typing import Dict, List, Optional, Sequence, Tuple
import logging

import pandas as pd
import plotly.graph_objects as go

from optviz.models.bar import PriceBar
from optviz.visualization.chart_config import SizeTier, get_theme
from optviz.visualization.models import (
    LineStyle,
    MarkerPosition,
    MarkerPrimitive,
    MarkerShape,
    PriceLinePrimitive,
    PRICE_SCALE_ID,
    SeriesKind,
    SeriesSpec,
)
from optviz.visualization.surface import (
    PriceLineHandle,
    RenderSurface,
    SeriesData,
    SeriesHandle,
    SurfaceNotReadyError,
)

logger = logging.getLogger(__name__)

_DASH = {
    LineStyle.SOLID: "solid",
    LineStyle.DASHED: "dash",
    LineStyle.DOTTED: "dot",
}

_SYMBOL = {
    MarkerShape.ARROW_UP: "triangle-up",
    MarkerShape.ARROW_DOWN: "triangle-down",
    MarkerShape.CIRCLE: "circle",
}

_MARKER_PX = {
    SizeTier.SMALL: 10,
    SizeTier.MEDIUM: 14,
    SizeTier.LARGE: 18,
}


@dataclass
class _SeriesState:
    spec: SeriesSpec
    data: List = field(default_factory=list)
    markers: List[MarkerPrimitive] = field(default_factory=list)
    price_lines: "OrderedDict[PriceLineHandle, PriceLinePrimitive]" = field(default_factory=OrderedDict)


def bars_to_dataframe(bars: Sequence[PriceBar]) -> pd.DataFrame:
    """Convert PriceBar values to an OHLCV DataFrame indexed by date."""
    data = {
        "Open": [b.open for b in bars],
        "High": [b.high for b in bars],
        "Low": [b.low for b in bars],
        "Close": [b.close for b in bars],
        "Volume": [b.volume for b in bars],
    }
    return pd.DataFrame(data, index=pd.to_datetime([b.time for b in bars]))


class PlotlyRenderSurface(RenderSurface):
    """
    Render surface that draws with Plotly.

    Features:
    - Candlestick, histogram and line series on named price scales
    - Hidden scales for helper series (e.g. time-axis extension)
    - Strike price lines with axis labels
    - Directional markers sized by tier
    """

    def __init__(self, theme: str = "tradingview", figsize: tuple = (1400, 650)):
        """
        Args:
            theme: Theme name ("tradingview", "light")
            figsize: Figure size (width, height) in pixels
        """
        self.theme_name = theme
        self.theme = get_theme(theme)
        self.figsize = figsize
        self._series: "OrderedDict[SeriesHandle, _SeriesState]" = OrderedDict()
        self._ids = count(1)
        self._visible_range: Optional[Tuple[date, date]] = None
        self._ready = True

    # ---------- RenderSurface API ----------

    @property
    def is_ready(self) -> bool:
        return self._ready

    def add_series(self, spec: SeriesSpec) -> SeriesHandle:
        self._check_ready()
        handle = f"series-{next(self._ids)}"
        self._series[handle] = _SeriesState(spec=spec)
        return handle

    def set_series_data(self, series: SeriesHandle, data: SeriesData) -> None:
        self._state(series).data = list(data)

    def remove_series(self, series: SeriesHandle) -> None:
        self._check_ready()
        if self._series.pop(series, None) is None:
            raise KeyError(f"Unknown series: {series}")

    def create_price_line(self, series: SeriesHandle, line: PriceLinePrimitive) -> PriceLineHandle:
        state = self._state(series)
        handle = f"line-{next(self._ids)}"
        state.price_lines[handle] = line
        return handle

    def remove_price_line(self, series: SeriesHandle, line: PriceLineHandle) -> None:
        state = self._state(series)
        if state.price_lines.pop(line, None) is None:
            raise KeyError(f"Unknown price line: {line}")

    def set_markers(self, series: SeriesHandle, markers: Sequence[MarkerPrimitive]) -> None:
        # Widgets expect markers sorted by time
        self._state(series).markers = sorted(markers, key=lambda m: m.time)

    def set_visible_range(self, start: date, end: date) -> None:
        self._check_ready()
        if end < start:
            raise ValueError(f"Visible range end {end} is before start {start}")
        self._visible_range = (start, end)

    def destroy(self) -> None:
        logger.debug(f"Destroying surface with {len(self._series)} series")
        self._series.clear()
        self._visible_range = None
        self._ready = False

    # ---------- Introspection ----------

    def series_handles(self) -> List[SeriesHandle]:
        return list(self._series)

    def series_spec(self, series: SeriesHandle) -> SeriesSpec:
        return self._state(series).spec

    def series_data(self, series: SeriesHandle) -> List:
        return list(self._state(series).data)

    def markers(self, series: SeriesHandle) -> List[MarkerPrimitive]:
        return list(self._state(series).markers)

    def price_lines(self, series: SeriesHandle) -> List[PriceLinePrimitive]:
        return list(self._state(series).price_lines.values())

    @property
    def visible_range(self) -> Optional[Tuple[date, date]]:
        return self._visible_range

    def count_markers(self) -> int:
        return sum(len(s.markers) for s in self._series.values())

    def count_price_lines(self) -> int:
        return sum(len(s.price_lines) for s in self._series.values())

    # ---------- Figure building ----------

    def to_figure(self, title: Optional[str] = None) -> go.Figure:
        """Build a Plotly figure from the current registry."""
        self._check_ready()
        fig = go.Figure()

        fig.update_layout(
            template="plotly_dark" if self.theme_name != "light" else "plotly_white",
            plot_bgcolor=self.theme["plot_bg"],
            paper_bgcolor=self.theme["bg_color"],
            font=dict(color=self.theme["text_color"], size=12),
            width=self.figsize[0],
            height=self.figsize[1],
            hovermode="x",
            showlegend=True,
            legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
            title=title,
            margin=dict(l=40, r=80, t=60, b=40),
        )

        axis_refs = self._assign_axes(fig)

        for handle, state in self._series.items():
            yref = axis_refs[state.spec.price_scale_id]
            trace = self._series_trace(state, yref)
            if trace is not None:
                fig.add_trace(trace)
            for marker_trace in self._marker_traces(state.markers, yref):
                fig.add_trace(marker_trace)
            for line in state.price_lines.values():
                self._add_price_line(fig, line, yref)

        fig.update_xaxes(
            type="date",
            showgrid=True,
            gridcolor=self.theme["grid_color"],
            linecolor=self.theme["axis_color"],
            rangeslider_visible=False,
            showspikes=True,
            spikecolor=self.theme["crosshair"],
            spikethickness=1,
            spikedash="dash",
        )
        if self._visible_range is not None:
            start, end = self._visible_range
            fig.update_xaxes(range=[start.isoformat(), end.isoformat()])

        return fig

    def to_html(self, filename: Optional[str] = None, full_html: bool = True) -> str:
        """Render the figure to HTML (plotly.js from CDN), optionally writing it to disk."""
        html = self.to_figure().to_html(full_html=full_html, include_plotlyjs="cdn")
        if filename:
            with open(filename, "w", encoding="utf-8") as f:
                f.write(html)
        return html

    # ---------- Internals ----------

    def _check_ready(self):
        if not self._ready:
            raise SurfaceNotReadyError("Render surface has been destroyed")

    def _state(self, series: SeriesHandle) -> _SeriesState:
        self._check_ready()
        try:
            return self._series[series]
        except KeyError:
            raise KeyError(f"Unknown series: {series}") from None

    def _assign_axes(self, fig: go.Figure) -> Dict[str, str]:
        """Map price scale ids to Plotly y-axes; the main price scale is always ``y``."""
        refs: Dict[str, str] = {PRICE_SCALE_ID: "y"}
        fig.update_layout(
            yaxis=dict(
                side="right",
                showgrid=True,
                gridcolor=self.theme["grid_color"],
                linecolor=self.theme["axis_color"],
            )
        )

        for state in self._series.values():
            scale_id = state.spec.price_scale_id
            if scale_id in refs:
                continue
            n = len(refs) + 1
            refs[scale_id] = f"y{n}"
            axis = dict(overlaying="y", side="right", showgrid=False, showticklabels=False, visible=False)
            if state.spec.kind == SeriesKind.HISTOGRAM and state.data:
                # Push the histogram into the bottom of the pane
                peak = max(p.value for p in state.data) or 1.0
                axis["range"] = [0, peak / max(1e-9, 1.0 - state.spec.scale_margin_top)]
            fig.update_layout(**{f"yaxis{n}": axis})
        return refs

    def _series_trace(self, state: _SeriesState, yref: str) -> Optional[go.BaseTraceType]:
        spec = state.spec
        if not state.data:
            return None

        if spec.kind == SeriesKind.CANDLESTICK:
            df = bars_to_dataframe(state.data)
            return go.Candlestick(
                x=df.index,
                open=df["Open"],
                high=df["High"],
                low=df["Low"],
                close=df["Close"],
                name=spec.title or "Price",
                increasing_line_color=spec.up_color,
                decreasing_line_color=spec.down_color,
                increasing_fillcolor=spec.up_color,
                decreasing_fillcolor=spec.down_color,
                yaxis=yref,
                visible=spec.visible,
            )

        x = [p.time for p in state.data]
        y = [p.value for p in state.data]

        if spec.kind == SeriesKind.HISTOGRAM:
            colors = [p.color or spec.color for p in state.data]
            return go.Bar(
                x=x,
                y=y,
                name=spec.title or "Volume",
                marker=dict(color=colors, line=dict(width=0)),
                yaxis=yref,
                showlegend=True,
                visible=spec.visible,
            )

        if not spec.visible:
            # Hidden helper series: fully transparent but still counted by autorange
            return go.Scatter(
                x=x,
                y=y,
                mode="markers",
                marker=dict(opacity=0, size=1),
                hoverinfo="skip",
                showlegend=False,
                yaxis=yref,
                name=spec.title or "_hidden",
            )

        mode = "lines"
        if spec.line_width <= 0:
            mode = "markers"
        elif spec.point_markers_visible:
            mode = "lines+markers"
        return go.Scatter(
            x=x,
            y=y,
            mode=mode,
            name=spec.title,
            line=dict(color=spec.color, width=max(spec.line_width, 0.5)),
            marker=dict(color=spec.color, size=9),
            yaxis=yref,
            hoverinfo="x+y+name" if spec.crosshair_marker_visible else "skip",
        )

    def _marker_traces(self, markers: Sequence[MarkerPrimitive], yref: str) -> List[go.Scatter]:
        traces = []
        for marker in markers:
            traces.append(
                go.Scatter(
                    x=[marker.time],
                    y=[marker.price],
                    mode="markers+text",
                    marker=dict(
                        symbol=_SYMBOL[marker.shape],
                        size=_MARKER_PX[marker.size],
                        color=marker.color,
                    ),
                    text=[marker.text],
                    textposition="top center" if marker.position == MarkerPosition.ABOVE_BAR else "bottom center",
                    textfont=dict(color=marker.color, size=10),
                    name=marker.text,
                    showlegend=False,
                    yaxis=yref,
                    hovertemplate=f"{marker.text}<br>Expiry: {marker.time.isoformat()}<extra></extra>",
                )
            )
        return traces

    def _add_price_line(self, fig: go.Figure, line: PriceLinePrimitive, yref: str):
        fig.add_shape(
            type="line",
            xref="paper",
            x0=0,
            x1=1,
            yref=yref,
            y0=line.price,
            y1=line.price,
            line=dict(color=line.color, width=line.line_width, dash=_DASH[line.line_style]),
        )
        if line.axis_label_visible and line.title:
            fig.add_annotation(
                xref="paper",
                x=1,
                yref=yref,
                y=line.price,
                text=line.title,
                showarrow=False,
                xanchor="left",
                font=dict(color="#ffffff", size=10),
                bgcolor=line.color,
            )
