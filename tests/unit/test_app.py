"""
Unit Tests for the Monitoring API

These tests exercise the FastAPI routes against an in-memory feed that is
driven directly through its listener hooks. The lifespan (which would start
real connections) is not run: TestClient is used without a context manager.

Run with:
    pytest tests/unit/test_app.py -v
"""

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from core.connection_manager import ConnectionManager
from core.feed_manager import FeedManager
from core.schemas import Execution
from core.transport_interface import TransportAdapter


class IdleAdapter(TransportAdapter):
    """Adapter that is never started in these tests"""

    name = "testex"
    capabilities = {"ticker": True, "executions": True, "order_matching": True}

    async def initialize(self, listener):
        pass

    async def subscribe(self):
        pass

    async def listen(self):
        pass


class FixedClock:
    def __init__(self, now: int = 1_700_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def feed(clock):
    return ConnectionManager(IdleAdapter(), clock=clock)


@pytest.fixture
def client(feed):
    return TestClient(create_app(FeedManager(feeds=[feed])))


class TestSystemEndpoints:
    """Tests for /, /health and /feeds"""

    def test_root_lists_feeds(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["feeds"] == ["testex"]

    def test_health_degraded_until_available(self, client, feed, clock):
        """Verify health turns healthy once the feed is connected with a ticker"""
        body = client.get("/health").json()
        assert body["status"] == "degraded"
        assert body["feeds"]["testex"]["available"] is False

        feed.on_open()
        feed.on_ticker(clock.now, 100.0, 101.0, 99.0, 1.0, 1.0)

        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["feeds"]["testex"] == {
            "status": "Connected",
            "available": True,
            "latency_ms": 0,
            "retry_count": 0
        }

    def test_feeds_lists_capabilities(self, client):
        body = client.get("/feeds").json()

        assert body["feeds"] == [{
            "name": "testex",
            "capabilities": {"ticker": True, "executions": True, "order_matching": True}
        }]


class TestMarketDataEndpoints:
    """Tests for ticker and latency routes"""

    def test_ticker_null_before_first_ticker(self, client):
        body = client.get("/testex/ticker").json()

        assert body["ticker"] is None
        assert body["available"] is False

    def test_ticker_snapshot(self, client, feed, clock):
        feed.on_ticker(clock.now - 1, 100.0, 101.0, 99.0, 0.5, 0.7)

        ticker = client.get("/testex/ticker").json()["ticker"]

        assert ticker["last_price"] == 100.0
        assert ticker["best_ask_price"] == 101.0
        assert ticker["best_bid_size"] == 0.7
        assert ticker["latency_ms"] == 1000

    def test_latency(self, client, feed, clock):
        feed.on_message()
        clock.now += 3

        body = client.get("/testex/latency").json()

        assert body["latency_ms"] == 3000
        assert body["ms_from_last_message"] == 3000
        assert body["last_ticker_timestamp"] is None
        assert body["ms_from_last_ticker"] == 0

    def test_exchange_name_case_insensitive(self, client):
        assert client.get("/TestEx/ticker").status_code == 200

    def test_unknown_exchange_404(self, client):
        response = client.get("/nowhere/ticker")

        assert response.status_code == 404
        assert "not registered" in response.json()["detail"]


class TestCaptureEndpoints:
    """Tests for execution capture routes"""

    def test_capture_lifecycle(self, client, feed, clock):
        """Verify create, update via executions, read and delete"""
        feed.on_ticker(clock.now, 100.0, 101.0, 99.0, 1.0, 1.0)

        response = client.post("/testex/captures/A")
        assert response.status_code == 201
        assert response.json()["open"] == 100.0

        feed.on_executions([
            Execution(price=105, size=2, side="buy"),
            Execution(price=95, size=3, side="sell"),
        ])

        window = client.get("/testex/captures/A").json()
        assert (window["open"], window["high"], window["low"], window["close"]) == (100, 105, 95, 95)
        assert window["buy_volume"] == 2
        assert window["sell_volume"] == 3
        assert client.get("/testex/captures").json()["captures"] == ["A"]

        response = client.delete("/testex/captures/A")
        assert response.status_code == 200
        assert response.json() == {"exchange": "testex", "removed": "A"}
        assert client.get("/testex/captures/A").status_code == 404

    def test_create_without_ticker_unseeded(self, client):
        window = client.post("/testex/captures/B").json()

        assert window["open"] is None
        assert window["filled"] == 0.0

    def test_delete_unknown_capture_ok(self, client):
        """Verify removing a capture that never existed is not an error"""
        assert client.delete("/testex/captures/ghost").status_code == 200
