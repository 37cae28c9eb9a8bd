"""
Typed chart primitives.

The projector's output is a closed set of tagged variants: price lines,
markers and the phantom axis-extension series. Series descriptors used by
the render surface live here too.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple, Union

from optviz.visualization.chart_config import SizeTier

PHANTOM_SCALE_ID = "time_extension"
VOLUME_SCALE_ID = "volume"
PRICE_SCALE_ID = "right"


class SeriesKind(str, Enum):
    CANDLESTICK = "candlestick"
    HISTOGRAM = "histogram"
    LINE = "line"


class LineStyle(str, Enum):
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"


class MarkerShape(str, Enum):
    ARROW_UP = "arrow_up"
    ARROW_DOWN = "arrow_down"
    CIRCLE = "circle"


class MarkerPosition(str, Enum):
    ABOVE_BAR = "above_bar"
    BELOW_BAR = "below_bar"


@dataclass(frozen=True)
class ValuePoint:
    time: date
    value: float
    color: Optional[str] = None


@dataclass(frozen=True)
class SeriesSpec:
    """Declarative description of a series handed to the render surface."""
    kind: SeriesKind
    title: str = ""
    color: str = "#2962ff"
    up_color: Optional[str] = None
    down_color: Optional[str] = None
    price_scale_id: str = PRICE_SCALE_ID
    visible: bool = True
    line_width: float = 2
    last_value_visible: bool = True
    price_line_visible: bool = True
    point_markers_visible: bool = False
    crosshair_marker_visible: bool = True
    price_precision: int = 4
    # Fraction of the pane left empty above this series' scale (volume uses 0.7)
    scale_margin_top: float = 0.0


@dataclass(frozen=True)
class PriceLinePrimitive:
    """Horizontal strike line attached to the primary price series."""
    record_id: int
    price: float
    color: str
    line_width: int
    line_style: LineStyle
    title: str
    axis_label_visible: bool = True


@dataclass(frozen=True)
class MarkerPrimitive:
    """Annotation anchored at (expiry date, strike price)."""
    record_id: int
    time: date
    price: float
    position: MarkerPosition
    shape: MarkerShape
    color: str
    size: SizeTier
    text: str


@dataclass(frozen=True)
class PhantomSeriesPrimitive:
    """
    Invisible series whose only job is to stretch the time axis.

    Always on its own hidden scale; never visible, no last-value label and
    no price line.
    """
    points: Tuple[ValuePoint, ...]
    price_scale_id: str = PHANTOM_SCALE_ID

    @property
    def start(self) -> Optional[date]:
        return self.points[0].time if self.points else None

    @property
    def end(self) -> Optional[date]:
        return self.points[-1].time if self.points else None

    def series_spec(self) -> SeriesSpec:
        return SeriesSpec(
            kind=SeriesKind.LINE,
            title="",
            color="transparent",
            price_scale_id=self.price_scale_id,
            visible=False,
            line_width=0,
            last_value_visible=False,
            price_line_visible=False,
            crosshair_marker_visible=False,
        )


Primitive = Union[PriceLinePrimitive, MarkerPrimitive, PhantomSeriesPrimitive]


@dataclass(frozen=True)
class Projection:
    """Everything the projector wants on screen for one option list."""
    price_lines: Tuple[PriceLinePrimitive, ...] = ()
    markers: Tuple[MarkerPrimitive, ...] = ()
    phantom: Optional[PhantomSeriesPrimitive] = None
    visible_range: Optional[Tuple[date, date]] = None

    def primitives(self) -> List[Primitive]:
        items: List[Primitive] = [*self.price_lines, *self.markers]
        if self.phantom is not None:
            items.append(self.phantom)
        return items


@dataclass
class OwnedPrimitives:
    """Surface handles created by the projector on one chart instance."""
    price_lines: List[Tuple[str, str]] = field(default_factory=list)  # (series, line)
    marker_series: List[str] = field(default_factory=list)
    phantom_series: Optional[str] = None
    markers_on_primary: bool = False

    def is_empty(self) -> bool:
        return (
            not self.price_lines
            and not self.marker_series
            and self.phantom_series is None
            and not self.markers_on_primary
        )
