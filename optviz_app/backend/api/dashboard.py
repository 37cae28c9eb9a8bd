"""
Server-rendered portfolio dashboard.

Hosts the add-option form, the option list with per-row delete, the
portfolio summary and the Plotly chart. All state lives in one
``PortfolioSession`` shared by the app.
"""

from fastapi import APIRouter, Depends, Form
from fastapi.responses import HTMLResponse, RedirectResponse
from html import escape
from typing import Dict, Optional
import logging
import threading

from optviz.data.provider import PriceSeriesProvider
from optviz.portfolio.api_client import OptionsApiClient
from optviz.portfolio.cache import PortfolioCache
from optviz.portfolio.session import PortfolioSession
from optviz.utils.config_loader import load_overlay_config
from optviz.utils.error_handling import OptionValidationError
from optviz.visualization.plotly_surface import PlotlyRenderSurface
from optviz.visualization.projector import OverlayProjector, option_label
from optviz_app.backend.api.ohlcv import get_dataset
from optviz_app.backend.backend_core.config import settings

router = APIRouter()
logger = logging.getLogger(__name__)

_session: Optional[PortfolioSession] = None
_session_lock = threading.Lock()


def build_session() -> PortfolioSession:
    """Create, start and mount a session from the app settings."""
    overlay = load_overlay_config(settings.chart_config_file(), settings.overlay_overrides())
    provider = PriceSeriesProvider(
        url=settings.OHLCV_API_URL or None,
        timeout=settings.OHLCV_FETCH_TIMEOUT_SECONDS,
        symbol=settings.SYMBOL,
        fallback=get_dataset().bars,
    )
    api_client = None
    if settings.OPTIONS_API_URL:
        api_client = OptionsApiClient(settings.OPTIONS_API_URL, timeout=settings.OHLCV_FETCH_TIMEOUT_SECONDS)

    session = PortfolioSession(
        cache=PortfolioCache(settings.PORTFOLIO_CACHE_PATH),
        provider=provider,
        projector=OverlayProjector(overlay),
        api_client=api_client,
    )
    session.start()
    session.mount(PlotlyRenderSurface(theme=overlay.theme))
    return session


def get_session() -> PortfolioSession:
    global _session
    with _session_lock:
        if _session is None:
            _session = build_session()
        return _session


# ---------- Rendering ----------

_PAGE_STYLE = """
body { background:#0a0b0f; color:#d1d4dc; font-family:-apple-system,Segoe UI,Roboto,sans-serif; margin:0; }
header { padding:12px 20px; border-bottom:1px solid #2a2e39; display:flex; justify-content:space-between; }
main { display:flex; gap:16px; padding:16px; }
aside { width:320px; flex-shrink:0; }
section.chart { flex:1; min-width:0; }
.card { background:#131722; border:1px solid #2a2e39; border-radius:6px; padding:12px; margin-bottom:12px; }
.call { color:#26a69a; } .put { color:#ef5350; }
.expired { opacity:.55; }
.error { color:#ef5350; font-size:12px; display:block; }
label { display:block; margin-top:8px; font-size:13px; }
input, select { width:100%; box-sizing:border-box; background:#0a0b0f; color:#d1d4dc; border:1px solid #2a2e39; padding:4px; }
button { margin-top:10px; cursor:pointer; }
ul { list-style:none; padding:0; margin:0; }
li { display:flex; justify-content:space-between; align-items:center; padding:4px 0; border-bottom:1px solid #2a2e39; }
"""


def _field_error(errors: Dict[str, str], name: str) -> str:
    if name not in errors:
        return ""
    return f'<span class="error">{escape(errors[name])}</span>'


def _render_form(values: Dict[str, str], errors: Dict[str, str]) -> str:
    kind = values.get("option_type", "")
    options = "".join(
        f'<option value="{v}"{" selected" if kind == v else ""}>{label}</option>'
        for v, label in (("", "Select..."), ("call", "Call"), ("put", "Put"))
    )
    general = _field_error(errors, "_form")
    return f"""
<form class="card" method="post" action="/dashboard/options">
  <strong>Add option</strong>{general}
  <label>Type<select name="option_type">{options}</select></label>{_field_error(errors, "option_type")}
  <label>Strike price<input name="strike_price" type="number" step="any" value="{escape(str(values.get("strike_price", "")))}"></label>{_field_error(errors, "strike_price")}
  <label>Expiry date<input name="expiry_date" type="date" value="{escape(str(values.get("expiry_date", "")))}"></label>{_field_error(errors, "expiry_date")}
  <label>Size<input name="size" type="number" step="any" value="{escape(str(values.get("size", "")))}"></label>{_field_error(errors, "size")}
  <button type="submit">Add option</button>
</form>"""


def _render_list(session: PortfolioSession) -> str:
    rows = []
    for record in session.options:
        status = session.status(record).value
        rows.append(
            f'<li class="{record.kind.value} {status}">'
            f"<span>{escape(option_label(record))}<br><small>exp {record.expiry_date.isoformat()} ({status})</small></span>"
            f'<form method="post" action="/dashboard/options/{record.id}/delete"><button type="submit">Delete</button></form>'
            f"</li>"
        )
    items = "".join(rows) or "<li>No options yet</li>"
    clear = ""
    if rows:
        clear = '<form method="post" action="/dashboard/clear"><button type="submit">Clear all</button></form>'
    return f'<div class="card"><strong>Options</strong><ul>{items}</ul>{clear}</div>'


def _render_summary(session: PortfolioSession) -> str:
    summary = session.summary()
    return (
        '<div class="card"><strong>Portfolio</strong>'
        f"<div>Total: {summary.total}</div>"
        f"<div>Size: {summary.total_size_millions}</div>"
        f'<div class="call">Calls: {summary.calls}</div>'
        f'<div class="put">Puts: {summary.puts}</div>'
        "</div>"
    )


def render_dashboard(
    session: PortfolioSession,
    values: Optional[Dict[str, str]] = None,
    errors: Optional[Dict[str, str]] = None,
) -> str:
    chart_html = session.render_chart(lambda surface: surface.to_html(full_html=False))
    if chart_html is None:
        chart_html = "<p>Chart not mounted</p>"
    symbol = escape(session.price_series.symbol if session.price_series else settings.SYMBOL)
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{symbol} Options Visualization</title>
<style>{_PAGE_STYLE}</style>
</head>
<body>
<header><strong>{symbol} Options Visualization</strong><span>Data: {escape(session.data_source.value)}</span></header>
<main>
<aside>
{_render_form(values or {}, errors or {})}
{_render_summary(session)}
{_render_list(session)}
</aside>
<section class="chart card">{chart_html}</section>
</main>
</body>
</html>"""


# ---------- Routes ----------

@router.get("", response_class=HTMLResponse)
def dashboard(session: PortfolioSession = Depends(get_session)):
    return HTMLResponse(render_dashboard(session))


@router.post("/options", response_class=HTMLResponse)
def submit_option(
    option_type: str = Form(""),
    strike_price: str = Form(""),
    expiry_date: str = Form(""),
    size: str = Form(""),
    session: PortfolioSession = Depends(get_session),
):
    values = {
        "option_type": option_type,
        "strike_price": strike_price,
        "expiry_date": expiry_date,
        "size": size,
    }
    form = session.new_form()
    form.open()
    form.fill(values)

    try:
        record = session.submit(form)
    except OptionValidationError as e:
        logger.info(f"Option rejected by backend: {e.code}")
        errors = {e.field or "_form": e.message}
        return HTMLResponse(render_dashboard(session, values, errors), status_code=400)

    if record is None:
        return HTMLResponse(render_dashboard(session, values, form.errors), status_code=400)
    return RedirectResponse("/dashboard", status_code=303)


@router.post("/options/{option_id}/delete")
def delete_option(option_id: int, session: PortfolioSession = Depends(get_session)):
    if not session.delete_option(option_id):
        return HTMLResponse(f"<h2>Option not found: {option_id}</h2>", status_code=404)
    return RedirectResponse("/dashboard", status_code=303)


@router.post("/clear")
def clear_options(session: PortfolioSession = Depends(get_session)):
    session.clear_all()
    return RedirectResponse("/dashboard", status_code=303)


@router.get("/chart", response_class=HTMLResponse)
def chart(session: PortfolioSession = Depends(get_session)):
    html = session.render_chart(lambda surface: surface.to_html())
    if html is None:
        return HTMLResponse("<h2>Chart not mounted</h2>", status_code=503)
    return HTMLResponse(html)
