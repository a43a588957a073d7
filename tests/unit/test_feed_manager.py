"""
Unit Tests for FeedManager

These tests verify that FeedManager:
- Builds adapters for supported exchange names only
- Registers, looks up and lists feeds by name
- Starts each feed in its own task and stops them together
- Keeps one feed's failure from affecting the others

Run with:
    pytest tests/unit/test_feed_manager.py -v
"""

import asyncio

import pytest

from core.connection_manager import ConnectionManager
from core.feed_manager import FeedManager, build_adapter
from core.schemas import ConnectionStatus
from core.transport_interface import TransportAdapter
from core.utils.time import current_utc_timestamp
from exchanges.bitflyer import BitflyerAdapter
from exchanges.liquid import LiquidAdapter


class StubAdapter(TransportAdapter):
    """Adapter that stays connected until closed"""

    capabilities = {"ticker": True, "executions": True, "order_matching": False}

    def __init__(self, name: str, fail_initialize: bool = False):
        self.name = name
        self.fail_initialize = fail_initialize
        self.listener = None
        self._closed = asyncio.Event()

    async def initialize(self, listener):
        self.listener = listener
        if self.fail_initialize:
            raise ConnectionError(f"{self.name} unreachable")

    async def subscribe(self):
        self.listener.on_open()

    async def listen(self):
        await self._closed.wait()
        self.listener.on_close()

    async def close(self):
        self._closed.set()


def make_feed(name: str, **kwargs) -> ConnectionManager:
    return ConnectionManager(
        StubAdapter(name, **kwargs),
        retry_limit=3,
        retry_interval_ms=10,
        retry_jitter_ms=0
    )


async def wait_for_status(feed: ConnectionManager, status: ConnectionStatus) -> None:
    for _ in range(100):
        if feed.status == status:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"{feed.name} never reached {status}")


class TestBuildAdapter:
    """Tests for build_adapter()"""

    def test_known_exchanges(self):
        assert isinstance(build_adapter("bitflyer"), BitflyerAdapter)
        assert isinstance(build_adapter("Liquid"), LiquidAdapter)

    def test_unknown_exchange_raises(self):
        with pytest.raises(ValueError, match="not supported"):
            build_adapter("mtgox")


class TestRegistry:
    """Tests for feed registration and lookup"""

    def test_feeds_registered_by_name(self):
        manager = FeedManager(feeds=[make_feed("alpha"), make_feed("beta")])

        assert manager.list_feeds() == ["alpha", "beta"]
        assert len(manager) == 2
        assert manager.has_feed("ALPHA")
        assert manager.get_feed("Beta").name == "beta"

    def test_unknown_feed_raises(self):
        manager = FeedManager(feeds=[make_feed("alpha")])

        with pytest.raises(ValueError, match="not registered"):
            manager.get_feed("gamma")

    def test_default_feeds_follow_settings(self, monkeypatch):
        """Verify one feed per enabled exchange is created by default"""
        from core.config import settings

        monkeypatch.setattr(settings, "enabled_exchanges", "liquid")
        manager = FeedManager()

        assert manager.list_feeds() == ["liquid"]
        assert isinstance(manager.get_feed("liquid").adapter, LiquidAdapter)


class TestLifecycle:
    """Tests for start_all()/stop_all()"""

    @pytest.mark.asyncio
    async def test_start_and_stop_all(self):
        alpha, beta = make_feed("alpha"), make_feed("beta")
        manager = FeedManager(feeds=[alpha, beta])

        await manager.start_all()
        await wait_for_status(alpha, ConnectionStatus.CONNECTED)
        await wait_for_status(beta, ConnectionStatus.CONNECTED)

        await manager.stop_all(timeout=1.0)

        assert alpha.status == ConnectionStatus.TERMINATED
        assert beta.status == ConnectionStatus.TERMINATED

    @pytest.mark.asyncio
    async def test_failed_feed_does_not_stop_others(self):
        """Verify one feed failing to initialize leaves the rest running"""
        good, bad = make_feed("good"), make_feed("bad", fail_initialize=True)
        manager = FeedManager(feeds=[good, bad])

        await manager.start_all()
        await wait_for_status(good, ConnectionStatus.CONNECTED)

        assert bad.status == ConnectionStatus.INITIALIZING
        assert good.status == ConnectionStatus.CONNECTED

        await manager.stop_all(timeout=1.0)

    @pytest.mark.asyncio
    async def test_stop_all_without_start(self):
        manager = FeedManager(feeds=[make_feed("alpha")])

        await manager.stop_all(timeout=0.1)

        assert manager.get_feed("alpha").retry_state.retry_enabled is False


class TestStatus:
    """Tests for status_all()"""

    def test_status_summary(self):
        feed = make_feed("alpha")
        manager = FeedManager(feeds=[feed])

        assert manager.status_all() == {
            "alpha": {"status": None, "available": False, "latency_ms": 0, "retry_count": 0}
        }

        feed.on_open()
        feed.on_ticker(current_utc_timestamp(), 100.0, 101.0, 99.0, 1.0, 1.0)

        summary = manager.status_all()["alpha"]
        assert summary["status"] == "Connected"
        assert summary["available"] is True
