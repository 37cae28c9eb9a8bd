"""
Tests for the server-rendered dashboard.
"""

import pytest

from conftest import TODAY, make_bars
from optviz.data.provider import PriceSeriesProvider
from optviz.portfolio.cache import PortfolioCache
from optviz.portfolio.form import MSG_EXPIRY_PAST, MSG_STRIKE
from optviz.portfolio.session import PortfolioSession
from optviz.visualization.plotly_surface import PlotlyRenderSurface
from optviz_app.backend.api.dashboard import get_session
from optviz_app.backend.main import app


@pytest.fixture
def portfolio_session(tmp_path):
    bars = make_bars()
    session = PortfolioSession(
        cache=PortfolioCache(str(tmp_path / "portfolio.json")),
        provider=PriceSeriesProvider(url=None, fallback=lambda: bars),
        today_provider=lambda: TODAY,
    )
    session.start()
    session.mount(PlotlyRenderSurface())
    return session


@pytest.fixture
def dashboard_client(client, portfolio_session):
    app.dependency_overrides[get_session] = lambda: portfolio_session
    yield client


def form_data(**overrides):
    data = {"option_type": "call", "strike_price": "1.25", "expiry_date": "2025-12-19", "size": "2500000"}
    data.update(overrides)
    return data


def test_dashboard_renders(dashboard_client):
    response = dashboard_client.get("/dashboard")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "Add option" in response.text
    assert "No options yet" in response.text
    assert "plotly" in response.text.lower()


def test_add_option_redirects(dashboard_client, portfolio_session):
    response = dashboard_client.post("/dashboard/options", data=form_data(), follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"
    assert len(portfolio_session.options) == 1

    page = dashboard_client.get("/dashboard").text
    assert "CALL 2.5M @ $1.25" in page
    assert "Calls: 1" in page


def test_add_option_shows_field_errors(dashboard_client, portfolio_session):
    response = dashboard_client.post(
        "/dashboard/options",
        data=form_data(strike_price="-2", expiry_date="2025-05-01"),
    )
    assert response.status_code == 400
    assert MSG_STRIKE in response.text
    assert MSG_EXPIRY_PAST in response.text
    assert portfolio_session.options == []


def test_delete_option(dashboard_client, portfolio_session):
    dashboard_client.post("/dashboard/options", data=form_data(), follow_redirects=False)
    option_id = portfolio_session.options[0].id

    response = dashboard_client.post(f"/dashboard/options/{option_id}/delete", follow_redirects=False)
    assert response.status_code == 303
    assert portfolio_session.options == []

    response = dashboard_client.post(f"/dashboard/options/{option_id}/delete", follow_redirects=False)
    assert response.status_code == 404


def test_clear_all(dashboard_client, portfolio_session):
    dashboard_client.post("/dashboard/options", data=form_data(), follow_redirects=False)
    dashboard_client.post("/dashboard/options", data=form_data(option_type="put"), follow_redirects=False)

    response = dashboard_client.post("/dashboard/clear", follow_redirects=False)
    assert response.status_code == 303
    assert portfolio_session.options == []


def test_standalone_chart(dashboard_client):
    response = dashboard_client.get("/dashboard/chart")
    assert response.status_code == 200
    assert "<html>" in response.text.lower()


def test_chart_unavailable_after_unmount(dashboard_client, portfolio_session):
    portfolio_session.unmount()
    assert dashboard_client.get("/dashboard/chart").status_code == 503
    assert "Chart not mounted" in dashboard_client.get("/dashboard").text
