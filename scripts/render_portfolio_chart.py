"""
Render the cached option portfolio on top of the price chart.

Loads the local portfolio cache, fetches prices once (falling back to the
embedded dataset), projects the overlay and writes a standalone HTML file.

Usage:
    python scripts/render_portfolio_chart.py
    python scripts/render_portfolio_chart.py --cache data_cache/portfolio.json --output chart.html
    python scripts/render_portfolio_chart.py --ohlcv-url http://localhost:8000/api/ohlcv-data --style marker_series
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from optviz.data.ohlcv_dataset import EmbeddedOHLCVDataset
from optviz.data.provider import PriceSeriesProvider
from optviz.portfolio.cache import DEFAULT_CACHE_PATH, PortfolioCache
from optviz.portfolio.session import PortfolioSession
from optviz.utils.config_loader import load_overlay_config
from optviz.visualization.plotly_surface import PlotlyRenderSurface
from optviz.visualization.projector import OverlayProjector

logger = logging.getLogger("render_portfolio_chart")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render the option portfolio chart to HTML")
    parser.add_argument("--cache", default=DEFAULT_CACHE_PATH, help="Portfolio cache file")
    parser.add_argument("--output", default="portfolio_chart.html", help="HTML file to write")
    parser.add_argument("--ohlcv-url", default=None, help="OHLCV endpoint (default: embedded data only)")
    parser.add_argument("--timeout", type=float, default=5.0, help="Fetch timeout in seconds")
    parser.add_argument("--config", default=None, help="Chart YAML config (default: config/chart.yaml)")
    parser.add_argument("--style", choices=["price_line", "marker_series"], default=None, help="Overlay style")
    parser.add_argument("--theme", default=None, help="Chart theme (tradingview, light)")
    parser.add_argument("--no-volume", action="store_true", help="Hide the volume histogram")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    overlay = load_overlay_config(
        Path(args.config) if args.config else None,
        {
            "overlay_style": args.style,
            "theme": args.theme,
            "show_volume": False if args.no_volume else None,
        },
    )
    session = PortfolioSession(
        cache=PortfolioCache(args.cache),
        provider=PriceSeriesProvider(
            url=args.ohlcv_url,
            timeout=args.timeout,
            fallback=EmbeddedOHLCVDataset().bars,
        ),
        projector=OverlayProjector(overlay),
    )
    session.start()
    surface = PlotlyRenderSurface(theme=overlay.theme)
    session.mount(surface)

    summary = session.summary()
    logger.info(
        f"{summary.total} options ({summary.calls} calls, {summary.puts} puts, "
        f"{summary.total_size_millions}), prices from {session.data_source.value}"
    )

    session.render_chart(lambda s: s.to_html(filename=args.output))
    session.unmount()
    print(f"Chart written to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
