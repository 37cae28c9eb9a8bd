"""
Chart configuration loader.

Loads ``config/chart.yaml`` (or any YAML file with the same layout) and turns
its ``overlay`` section into an ``OverlayConfig``. Environment-driven
settings (theme, volume, style) are applied on top by the caller.
"""

from pathlib import Path
from typing import Any, Dict, Optional
import logging

import yaml

from optviz.visualization.chart_config import OverlayConfig

logger = logging.getLogger(__name__)


def default_config_dir() -> Path:
    # optviz/utils/config_loader.py -> project root
    return Path(__file__).resolve().parent.parent.parent / "config"


def load_yaml_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        config_file: Path to the YAML file. If None, uses config/chart.yaml
                     relative to the project root.

    Returns:
        Parsed mapping, or an empty dict if the file doesn't exist.

    Raises:
        yaml.YAMLError: if the file exists but is not valid YAML
        ValueError: if the top level is not a mapping
    """
    path = Path(config_file) if config_file else default_config_dir() / "chart.yaml"
    if not path.exists():
        logger.debug(f"Chart config {path} not found, using defaults")
        return {}

    with open(path, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Chart config {path} must contain a mapping, got {type(config).__name__}")
    return config


def load_overlay_config(
    config_file: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> OverlayConfig:
    """
    Build an OverlayConfig from the YAML ``overlay`` section plus overrides.

    Args:
        config_file: Optional YAML path (defaults to config/chart.yaml)
        overrides: Keys applied on top of the file (None values are skipped)

    Returns:
        OverlayConfig instance
    """
    section = dict(load_yaml_config(config_file).get("overlay") or {})
    if overrides:
        section.update({k: v for k, v in overrides.items() if v is not None})
    return OverlayConfig.from_dict(section)
