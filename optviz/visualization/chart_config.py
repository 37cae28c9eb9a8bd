"""
Chart configuration for the option overlay.

Chart views differ only in volume styling and overlay technique, so a single
``OverlayConfig`` covers them all. The projector and the chart mount routine
both read from it.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class OverlayStyle(str, Enum):
    """How option records are drawn on the chart."""
    PRICE_LINE = "price_line"  # Strike lines + markers on the candlestick series
    MARKER_SERIES = "marker_series"  # One single-point series per option


class SizeTier(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


# ---------- THEME DEFINITIONS ----------

THEMES: Dict[str, Dict[str, str]] = {
    "tradingview": {
        "bg_color": "#0a0b0f",
        "plot_bg": "#0a0b0f",
        "grid_color": "rgba(42, 46, 57, 0.5)",
        "axis_color": "#2a2e39",
        "text_color": "#d1d4dc",
        "candle_up": "#26a69a",
        "candle_down": "#ef5350",
        "volume_up": "rgba(38, 166, 154, 0.5)",
        "volume_down": "rgba(239, 83, 80, 0.5)",
        "call": "#26a69a",
        "put": "#ef5350",
        "call_large": "#00e676",
        "put_large": "#ff1744",
        "strike_point": "#ff9500",
        "crosshair": "#758494",
    },
    "light": {
        "bg_color": "#ffffff",
        "plot_bg": "#ffffff",
        "grid_color": "#e0e0e0",
        "axis_color": "#666666",
        "text_color": "#000000",
        "candle_up": "#26a69a",
        "candle_down": "#ef5350",
        "volume_up": "rgba(38, 166, 154, 0.5)",
        "volume_down": "rgba(239, 83, 80, 0.5)",
        "call": "#26a69a",
        "put": "#ef5350",
        "call_large": "#00c853",
        "put_large": "#d50000",
        "strike_point": "#ff9500",
        "crosshair": "#9e9e9e",
    },
}


def get_theme(theme_name: str) -> Dict[str, str]:
    """Get theme configuration by name."""
    return THEMES.get(theme_name, THEMES["tradingview"])


@dataclass(frozen=True)
class SizeTierThresholds:
    """
    Size tier boundaries (lower bound inclusive).

    size < medium -> small; medium <= size < large -> medium; size >= large -> large
    """
    medium: float = 2_000_000
    large: float = 5_000_000

    def tier_for(self, size: float) -> SizeTier:
        if size >= self.large:
            return SizeTier.LARGE
        if size >= self.medium:
            return SizeTier.MEDIUM
        return SizeTier.SMALL


@dataclass(frozen=True)
class OverlayConfig:
    """
    Overlay and chart mount configuration.

    Attributes:
        show_volume: Add the volume histogram when the chart is mounted
        overlay_style: PRICE_LINE or MARKER_SERIES
        theme: Theme name (see THEMES)
        horizon_years: Phantom series reaches Dec 31 of last bar year + this many years
        phantom_interval_days: Spacing between phantom points
        expiry_padding_months: Visible range padding after the furthest expiry
        size_tiers: Small/medium/large thresholds
    """
    show_volume: bool = True
    overlay_style: OverlayStyle = OverlayStyle.PRICE_LINE
    theme: str = "tradingview"
    horizon_years: int = 3
    phantom_interval_days: int = 7
    expiry_padding_months: int = 3
    size_tiers: SizeTierThresholds = field(default_factory=SizeTierThresholds)

    def __post_init__(self):
        if self.horizon_years < 1:
            raise ValueError(f"horizon_years must be >= 1, got {self.horizon_years}")
        if self.phantom_interval_days < 1:
            raise ValueError(f"phantom_interval_days must be >= 1, got {self.phantom_interval_days}")
        if self.size_tiers.medium >= self.size_tiers.large:
            raise ValueError("size_tiers.medium must be below size_tiers.large")

    @property
    def colors(self) -> Dict[str, str]:
        return get_theme(self.theme)

    def with_overrides(self, **kwargs) -> "OverlayConfig":
        return replace(self, **kwargs)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "OverlayConfig":
        """
        Build a config from a plain mapping (e.g. a YAML ``overlay`` section).

        Unknown keys are ignored; missing keys keep their defaults.
        """
        if not data:
            return cls()

        kwargs: Dict[str, Any] = {}
        if "show_volume" in data:
            kwargs["show_volume"] = bool(data["show_volume"])
        if "overlay_style" in data:
            kwargs["overlay_style"] = OverlayStyle(str(data["overlay_style"]).lower())
        if "theme" in data:
            kwargs["theme"] = str(data["theme"])
        for key in ("horizon_years", "phantom_interval_days", "expiry_padding_months"):
            if key in data:
                kwargs[key] = int(data[key])
        tiers = data.get("size_tiers")
        if isinstance(tiers, Mapping):
            kwargs["size_tiers"] = SizeTierThresholds(
                medium=float(tiers.get("medium", SizeTierThresholds.medium)),
                large=float(tiers.get("large", SizeTierThresholds.large)),
            )
        return cls(**kwargs)


# Factory function to get the config for a named chart variant
def get_overlay_config(variant: str = "default", **kwargs) -> OverlayConfig:
    """
    Get the overlay configuration for a chart variant.

    Args:
        variant: "default"/"price_line", "marker_series"/"strike_points", or "minimal"
        **kwargs: Field overrides applied on top of the variant

    Returns:
        OverlayConfig instance
    """
    variant_lower = variant.lower()

    if variant_lower in ("marker_series", "strike_points", "markers"):
        config = OverlayConfig(show_volume=False, overlay_style=OverlayStyle.MARKER_SERIES)
    elif variant_lower in ("minimal", "no_volume"):
        config = OverlayConfig(show_volume=False, overlay_style=OverlayStyle.PRICE_LINE)
    else:
        config = OverlayConfig()

    return config.with_overrides(**kwargs) if kwargs else config
