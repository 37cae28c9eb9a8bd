"""
Tests for the price series provider, fallback data and embedded dataset.
"""

from datetime import date

import httpx
import pytest

from conftest import make_bars
from optviz.data.fallback import FALLBACK_ANCHORS, generate_fallback_bars
from optviz.data.ohlcv_dataset import EmbeddedOHLCVDataset
from optviz.data.provider import DataSource, PriceSeriesProvider
from optviz.utils.error_handling import PriceFetchError

URL = "http://backend.test/api/ohlcv-data"


def _provider(handler, **kwargs) -> PriceSeriesProvider:
    return PriceSeriesProvider(url=URL, transport=httpx.MockTransport(handler), **kwargs)


def _payload(bars):
    return {"symbol": "FET/USD", "data": [b.to_dict() for b in bars], "source": "CoinGecko"}


def test_api_success():
    bars = make_bars(days=5)
    provider = _provider(lambda request: httpx.Response(200, json=_payload(bars)))
    series = provider.load()
    assert series.source == DataSource.API
    assert series.bars == bars
    assert series.symbol == "FET/USD"
    assert series.last_bar == bars[-1]


def test_api_bars_are_sorted_and_deduplicated():
    bars = make_bars(days=3)
    duplicate = bars[1].to_dict()
    duplicate["close"] = 9.9
    data = [bars[2].to_dict(), bars[0].to_dict(), bars[1].to_dict(), duplicate]
    provider = _provider(lambda request: httpx.Response(200, json={"symbol": "FET/USD", "data": data}))

    series = provider.load()
    assert [b.time for b in series.bars] == [b.time for b in bars]
    assert series.bars[1].close == 9.9


@pytest.mark.parametrize(
    "handler",
    [
        lambda request: httpx.Response(500, json={"error": "boom"}),
        lambda request: httpx.Response(200, text="<html>not json</html>"),
        lambda request: httpx.Response(200, json={"symbol": "FET/USD"}),
        lambda request: httpx.Response(200, json={"symbol": "FET/USD", "data": []}),
        lambda request: httpx.Response(200, json={"symbol": "FET/USD", "data": [{"time": "2025-01-01"}]}),
    ],
)
def test_bad_responses_fall_back(handler):
    fallback = make_bars(days=4)
    series = _provider(handler, fallback=lambda: fallback).load()
    assert series.source == DataSource.FALLBACK
    assert series.bars == fallback


def test_network_error_falls_back(caplog):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    series = _provider(handler).load()
    assert series.source == DataSource.FALLBACK
    assert series.bars == generate_fallback_bars()
    assert "Falling back" in caplog.text


def test_single_attempt_only():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    _provider(handler).load()
    assert len(calls) == 1


def test_no_url_goes_straight_to_fallback():
    series = PriceSeriesProvider(url=None).load()
    assert series.source == DataSource.FALLBACK


def test_fetch_raises_without_fallback():
    with pytest.raises(PriceFetchError):
        _provider(lambda request: httpx.Response(404)).fetch()
    with pytest.raises(PriceFetchError):
        PriceSeriesProvider().fetch()


def test_fallback_bars_are_deterministic_and_valid():
    bars = generate_fallback_bars()
    assert bars == generate_fallback_bars()
    assert len(bars) == len(FALLBACK_ANCHORS)
    assert bars[-1].time == date(2024, 12, 19)
    assert [b.time for b in bars] == sorted(b.time for b in bars)
    for bar, (_, anchor, _) in zip(bars, FALLBACK_ANCHORS):
        assert bar.low <= min(bar.open, bar.close) <= max(bar.open, bar.close) <= bar.high
        assert abs(bar.open - anchor) <= anchor * 0.02
        assert bar.volume > 0


def test_embedded_dataset_normalizes_rows(tmp_path):
    csv = tmp_path / "ohlcv.csv"
    csv.write_text(
        "timestamp,open,high,low,close,volume\n"
        "1735776000000,2.0,2.2,1.9,2.1,100\n"   # 2025-01-02
        "1735689600000,1.0,1.2,0.9,1.1234567891,50\n"  # 2025-01-01
        "1735776000000,3.0,3.3,2.9,3.1,300\n"   # 2025-01-02 again, wins
    )
    dataset = EmbeddedOHLCVDataset(path=csv, symbol="TEST/USD")
    bars = dataset.bars()

    assert [b.time for b in bars] == [date(2025, 1, 1), date(2025, 1, 2)]
    assert bars[0].close == 1.123457
    assert bars[1].open == 3.0
    assert dataset.close_series()[1] == {"time": "2025-01-02", "value": 3.1}


def test_packaged_dataset_loads():
    bars = EmbeddedOHLCVDataset().bars()
    assert len(bars) > 300
    assert bars[-1].time == date(2025, 8, 17)
