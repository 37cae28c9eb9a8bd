"""
Tests for the portfolio session (write-through, overlay sync, backend mirroring).
"""

import json
from datetime import date, datetime

import httpx
import pytest

from conftest import TODAY, make_bars, make_record
from optviz.data.provider import DataSource, PriceSeriesProvider
from optviz.models.option_record import OptionDraft, OptionKind
from optviz.portfolio.api_client import OptionsApiClient
from optviz.portfolio.cache import PortfolioCache
from optviz.portfolio.portfolio import OptionStatus
from optviz.portfolio.session import PortfolioSession
from optviz.utils.error_handling import BackendUnavailableError, OptionValidationError
from optviz.visualization.plotly_surface import PlotlyRenderSurface

NOW = datetime(2025, 6, 1, 9, 30, 0)


def draft(kind=OptionKind.CALL, strike=1.25, expiry=date(2025, 12, 19), size=2_500_000) -> OptionDraft:
    return OptionDraft(kind=kind, strike_price=strike, expiry_date=expiry, size=size)


@pytest.fixture
def cache(tmp_path):
    return PortfolioCache(str(tmp_path / "portfolio.json"))


@pytest.fixture
def bars():
    return make_bars()


def make_session(cache, bars, api_client=None, provider=None) -> PortfolioSession:
    return PortfolioSession(
        cache=cache,
        provider=provider or PriceSeriesProvider(url=None, fallback=lambda: bars),
        api_client=api_client,
        today_provider=lambda: TODAY,
        clock=lambda: NOW,
    )


@pytest.fixture
def session(cache, bars):
    return make_session(cache, bars)


@pytest.fixture
def surface():
    return PlotlyRenderSurface()


def test_start_loads_cache_before_mount(cache, session):
    cache.save([make_record(3), make_record(5)])
    assert session.start() is False  # nothing mounted yet
    assert [r.id for r in session.options] == [3, 5]
    assert session.data_source == DataSource.LOADING


def test_mount_draws_cached_portfolio(cache, session, surface, bars):
    cache.save([make_record(1), make_record(2, kind=OptionKind.PUT)])
    session.start()
    chart = session.mount(surface)

    assert session.data_source == DataSource.FALLBACK
    assert chart.last_bar_date == bars[-1].time
    assert surface.count_price_lines() == 2
    assert surface.count_markers() == 2


def test_mount_with_backend_prices(cache, bars, surface):
    payload = {"symbol": "FET/USD", "data": [b.to_dict() for b in bars]}
    provider = PriceSeriesProvider(
        url="http://backend.test/api/ohlcv-data",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload)),
    )
    session = make_session(cache, bars, provider=provider)
    session.mount(surface)
    assert session.data_source == DataSource.API


def test_add_writes_through_and_projects(cache, session, surface):
    session.start()
    session.mount(surface)

    first = session.add_option(draft())
    second = session.add_option(draft(kind=OptionKind.PUT, strike=0.9))

    assert (first.id, second.id) == (1, 2)
    assert first.created_at == NOW
    assert PortfolioCache(str(cache.path)).load() == [first, second]
    assert surface.count_price_lines() == 2


def test_local_ids_continue_after_cached_ids(cache, session):
    cache.save([make_record(5)])
    session.start()
    assert session.add_option(draft()).id == 6


def test_local_ids_are_not_reused(session):
    first = session.add_option(draft())
    session.delete_option(first.id)
    assert session.add_option(draft()).id == first.id + 1


def test_add_rechecks_form_rules(session):
    with pytest.raises(OptionValidationError):
        session.add_option(draft(expiry=TODAY))
    with pytest.raises(OptionValidationError):
        session.add_option(draft(size=-1))
    assert session.options == []


def test_submit_form(session, surface):
    session.mount(surface)
    form = session.new_form()
    form.fill({"option_type": "put", "strike_price": "0.8", "expiry_date": "2026-03-20", "size": "6000000"})
    record = session.submit(form)

    assert record is not None
    assert record.kind == OptionKind.PUT
    assert session.options == [record]
    assert surface.count_markers() == 1


def test_submit_invalid_form_changes_nothing(cache, session):
    form = session.new_form()
    form.fill({"option_type": "call", "strike_price": "-1", "expiry_date": "2026-03-20", "size": "1"})
    assert session.submit(form) is None
    assert "strike_price" in form.errors
    assert session.options == []
    assert cache.load() == []


def test_delete(cache, session, surface):
    session.mount(surface)
    a = session.add_option(draft())
    b = session.add_option(draft(strike=2.0))

    assert session.delete_option(a.id) is True
    assert session.options == [b]
    assert cache.load() == [b]
    assert surface.count_price_lines() == 1


def test_delete_unknown_id_changes_nothing(cache, session):
    record = session.add_option(draft())
    before = json.loads(cache.path.read_text())

    assert session.delete_option(999) is False
    assert session.options == [record]
    assert json.loads(cache.path.read_text()) == before


def test_clear_all(cache, session, surface):
    session.mount(surface)
    session.add_option(draft())
    session.add_option(draft(strike=2.0))

    assert session.clear_all() == 2
    assert session.options == []
    assert cache.load() == []
    assert surface.count_price_lines() == 0
    assert surface.count_markers() == 0


def test_summary_and_status(session):
    session.add_option(draft(size=2_500_000))
    session.add_option(draft(kind=OptionKind.PUT, size=1_000_000))
    session.add_option(draft(size=6_000_000))

    summary = session.summary()
    assert (summary.total, summary.calls, summary.puts) == (3, 2, 1)
    assert summary.total_size == 9_500_000
    assert summary.total_size_millions == "9.5M"

    assert session.status(make_record(1, expiry=date(2025, 6, 2))) == OptionStatus.ACTIVE
    assert session.status(make_record(1, expiry=TODAY)) == OptionStatus.EXPIRED


def test_unmount_tears_down_chart(session, surface):
    session.mount(surface)
    session.unmount()

    assert session.chart is None
    assert surface.is_ready is False
    assert session.refresh() is False
    assert session.render_chart(lambda s: "html") is None
    # Mutations still work without a chart
    assert session.add_option(draft()).id == 1


def test_remount_on_new_surface(session):
    session.mount(PlotlyRenderSurface())
    session.add_option(draft())

    second = PlotlyRenderSurface()
    session.mount(second)
    assert second.count_price_lines() == 1


# ---------- Backend mirroring ----------

class FakeBackend:
    """In-memory stand-in for the options API, served through httpx.MockTransport."""

    def __init__(self, next_id=42, down=False):
        self.next_id = next_id
        self.down = down
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        if request.method == "POST":
            body = json.loads(request.content)
            if body["option_type"] not in ("call", "put"):
                return httpx.Response(400, json={"error": "Invalid option type", "message": "bad"})
            option_id = self.next_id
            self.next_id += 1
            return httpx.Response(201, json={"id": option_id, "message": "Option added successfully"})
        if request.method == "DELETE":
            return httpx.Response(200, json={"message": "Option deleted successfully"})
        return httpx.Response(200, json=[])


def test_backend_assigns_ids(cache, bars):
    backend = FakeBackend(next_id=42)
    client = OptionsApiClient("http://backend.test", transport=httpx.MockTransport(backend))
    session = make_session(cache, bars, api_client=client)

    record = session.add_option(draft())
    assert record.id == 42
    assert session.delete_option(42) is True
    assert backend.requests == [("POST", "/api/options"), ("DELETE", "/api/options/42")]


def test_backend_down_uses_local_ids(cache, bars):
    backend = FakeBackend(down=True)
    client = OptionsApiClient("http://backend.test", transport=httpx.MockTransport(backend))
    session = make_session(cache, bars, api_client=client)

    record = session.add_option(draft())
    assert record.id == 1
    # Best-effort delete does not fail the local mutation
    assert session.delete_option(record.id) is True


def test_api_client_errors():
    backend = FakeBackend(down=True)
    client = OptionsApiClient("http://backend.test", transport=httpx.MockTransport(backend))
    with pytest.raises(BackendUnavailableError):
        client.list_options()


def test_api_client_delete_missing():
    def handler(request):
        return httpx.Response(404, json={"error": "Option not found", "message": "No option found with ID 7"})

    with OptionsApiClient("http://backend.test", transport=httpx.MockTransport(handler)) as client:
        assert client.delete_option(7) is False


def test_api_client_lists_records():
    stored = [make_record(2).to_dict(), make_record(1).to_dict()]
    client = OptionsApiClient("http://backend.test/", transport=httpx.MockTransport(
        lambda request: httpx.Response(200, json=stored)
    ))
    assert [r.id for r in client.list_options()] == [2, 1]


class RowBackend:
    """Options API that keeps its rows, so tests can check which ones survive."""

    def __init__(self, rows=None):
        self.rows = {row["id"]: row for row in rows or []}
        self.next_id = max(self.rows, default=0) + 1
        self.down = False
        self.deleted = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        if request.method == "POST":
            row = dict(json.loads(request.content), id=self.next_id, created_at="2025-06-01 09:30:00")
            self.rows[row["id"]] = row
            self.next_id += 1
            return httpx.Response(201, json={"id": row["id"], "message": "Option added successfully"})
        if request.method == "DELETE":
            option_id = int(request.url.path.rsplit("/", 1)[-1])
            self.deleted.append(option_id)
            if self.rows.pop(option_id, None) is None:
                return httpx.Response(404, json={"error": "Option not found", "message": "missing"})
            return httpx.Response(200, json={"message": "Option deleted successfully"})
        return httpx.Response(200, json=list(reversed(list(self.rows.values()))))


def test_outage_ids_never_delete_backend_rows(cache, bars):
    backend = RowBackend()
    client = OptionsApiClient("http://backend.test", transport=httpx.MockTransport(backend))
    session = make_session(cache, bars, api_client=client)

    a = session.add_option(draft(strike=1.0))
    backend.down = True
    b = session.add_option(draft(strike=2.0))
    backend.down = False
    c = session.add_option(draft(strike=3.0))

    # The backend handed out 2 again, which B already holds locally
    assert (a.id, b.id, c.id) == (1, 2, 3)
    assert set(backend.rows) == {1, 2}

    assert session.delete_option(b.id) is True
    assert backend.deleted == []
    assert backend.rows[2]["strike_price"] == 3.0

    assert session.delete_option(c.id) is True
    assert backend.deleted == [2]
    assert set(backend.rows) == {1}


def test_start_links_cached_options_to_matching_rows(cache, bars):
    cached = [make_record(1, strike=1.0), make_record(2, strike=2.0)]
    cache.save(cached)
    # Row 2 holds a different option than the cached record with id 2
    backend = RowBackend([
        make_record(1, strike=1.0).to_dict(),
        make_record(2, strike=9.0).to_dict(),
    ])
    client = OptionsApiClient("http://backend.test", transport=httpx.MockTransport(backend))
    session = make_session(cache, bars, api_client=client)
    session.start()

    session.delete_option(2)
    assert backend.deleted == []
    session.delete_option(1)
    assert backend.deleted == [1]
    assert set(backend.rows) == {2}


def test_start_with_backend_down_keeps_cached_options_local(cache, bars):
    cache.save([make_record(1)])
    backend = RowBackend([make_record(1).to_dict()])
    backend.down = True
    client = OptionsApiClient("http://backend.test", transport=httpx.MockTransport(backend))
    session = make_session(cache, bars, api_client=client)

    session.start()
    backend.down = False
    assert session.delete_option(1) is True
    assert backend.deleted == []
    assert set(backend.rows) == {1}
