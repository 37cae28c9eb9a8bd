"""
Tests for the price data and health endpoints.
"""

from datetime import date, datetime

from optviz_app.backend.api.ohlcv import get_dataset
from optviz_app.backend.main import app


def test_ohlcv_data_shape(client):
    response = client.get("/api/ohlcv-data")
    assert response.status_code == 200
    body = response.json()
    assert body["symbol"] == "FET/USD"
    assert body["source"] == "CoinGecko"
    datetime.fromisoformat(body["last_updated"])

    data = body["data"]
    assert len(data) > 300
    first = data[0]
    assert set(first) == {"time", "open", "high", "low", "close", "volume"}


def test_ohlcv_data_is_ordered_and_consistent(client):
    data = client.get("/api/ohlcv-data").json()["data"]
    times = [date.fromisoformat(bar["time"]) for bar in data]
    assert times == sorted(times)
    assert len(set(times)) == len(times)

    for bar in data:
        assert bar["low"] > 0
        assert bar["low"] <= min(bar["open"], bar["close"])
        assert bar["high"] >= max(bar["open"], bar["close"])
        assert bar["volume"] >= 0


def test_price_data_is_close_only(client):
    ohlcv = client.get("/api/ohlcv-data").json()["data"]
    response = client.get("/api/price-data")
    assert response.status_code == 200
    body = response.json()
    assert body["symbol"] == "FET/USD"
    assert len(body["data"]) == len(ohlcv)
    assert body["data"][-1] == {"time": ohlcv[-1]["time"], "value": ohlcv[-1]["close"]}


def test_ohlcv_failure_is_500(client):
    class _BrokenDataset:
        symbol = "FET/USD"
        source = "CoinGecko"

        def bars(self):
            raise OSError("file missing")

    app.dependency_overrides[get_dataset] = lambda: _BrokenDataset()
    response = client.get("/api/ohlcv-data")
    assert response.status_code == 500
    assert response.json()["error"] == "Failed to retrieve OHLCV data"


def test_health_check(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_readiness_check(client):
    response = client.get("/api/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["database"] == "ok"
