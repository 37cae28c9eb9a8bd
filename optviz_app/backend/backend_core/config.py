"""
Configuration settings for the options visualization backend.

Uses environment variables (or a local .env file) with sensible defaults.
Chart overlay settings can also come from config/chart.yaml.
"""

from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path
import os


class Settings(BaseSettings):
    """Application settings."""

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    APP_VERSION: str = "2.0.0"

    # CORS - comma-separated list; defaults to the Vite dev servers
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:5174"

    # Database
    DATABASE_URL: str = "sqlite:///./options.db"
    RUN_DB_STARTUP: bool = True

    # Rate limiting (per client IP, sliding window)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 900  # 15 minutes

    # Price data
    SYMBOL: str = "FET/USD"
    DATA_SOURCE_NAME: str = "CoinGecko"
    OHLCV_API_URL: str = ""  # Empty: dashboard uses the embedded dataset directly
    OHLCV_FETCH_TIMEOUT_SECONDS: float = 5.0

    # Portfolio (dashboard session)
    PORTFOLIO_CACHE_PATH: str = "data_cache/portfolio.json"
    OPTIONS_API_URL: str = ""  # Empty: dashboard keeps the portfolio local only

    # Chart - empty values defer to config/chart.yaml
    CHART_CONFIG_PATH: Optional[str] = None
    CHART_THEME: str = ""
    SHOW_VOLUME: Optional[bool] = None
    OVERLAY_STYLE: str = ""

    # Platform integration
    PLATFORM_ROOT: Path = Path(__file__).parent.parent.parent.parent

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    def __init__(self, **kwargs):
        """Initialize settings and normalize list-valued fields."""
        super().__init__(**kwargs)

        # Hosting platforms set PORT directly
        if 'PORT' in os.environ:
            self.PORT = int(os.environ['PORT'])

        # Parse CORS_ORIGINS from string to list
        if isinstance(self.CORS_ORIGINS, str):
            self.CORS_ORIGINS = [origin.strip() for origin in self.CORS_ORIGINS.split(',') if origin.strip()]

    def chart_config_file(self) -> Path:
        if self.CHART_CONFIG_PATH:
            return Path(self.CHART_CONFIG_PATH)
        return self.PLATFORM_ROOT / "config" / "chart.yaml"

    def overlay_overrides(self) -> dict:
        """Env-level chart overrides; unset values are None and get skipped."""
        return {
            "theme": self.CHART_THEME or None,
            "show_volume": self.SHOW_VOLUME,
            "overlay_style": self.OVERLAY_STYLE or None,
        }


settings = Settings()
