from optviz.visualization.chart_config import (
    OverlayConfig,
    OverlayStyle,
    SizeTier,
    SizeTierThresholds,
    THEMES,
    get_overlay_config,
    get_theme,
)
from optviz.visualization.models import (
    MarkerPrimitive,
    PhantomSeriesPrimitive,
    PriceLinePrimitive,
    Projection,
    PHANTOM_SCALE_ID,
)
from optviz.visualization.surface import ChartHandle, RenderSurface, SurfaceNotReadyError, mount_chart
from optviz.visualization.projector import OverlayProjector, option_label

# Plotly render surface (recommended)
from optviz.visualization.plotly_surface import PlotlyRenderSurface

__all__ = [
    "OverlayConfig",
    "OverlayStyle",
    "SizeTier",
    "SizeTierThresholds",
    "THEMES",
    "get_overlay_config",
    "get_theme",
    "MarkerPrimitive",
    "PhantomSeriesPrimitive",
    "PriceLinePrimitive",
    "Projection",
    "PHANTOM_SCALE_ID",
    "ChartHandle",
    "RenderSurface",
    "SurfaceNotReadyError",
    "mount_chart",
    "OverlayProjector",
    "option_label",
    "PlotlyRenderSurface",
]
