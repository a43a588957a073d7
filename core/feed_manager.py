"""
Feed Manager - Registry of Exchange Feeds

Each exchange connection is an independent ConnectionManager with its own
state. FeedManager keeps one per exchange name, starts each as its own
asyncio task and stops them together.

Example Usage:
    manager = FeedManager()
    await manager.start_all()

    feed = manager.get_feed("bitflyer")
    if feed.is_available():
        print(feed.get_ticker())

    await manager.stop_all()
"""

import asyncio
from typing import Dict, List, Optional

from core.config import settings
from core.connection_manager import ConnectionManager
from core.logging import logger
from core.transport_interface import TransportAdapter


def build_adapter(name: str) -> TransportAdapter:
    """
    Create the transport adapter for an exchange name.

    Raises:
        ValueError: If no adapter exists for the exchange
    """
    # Import here to avoid circular imports
    # (exchange packages import from core)
    from exchanges.bitflyer import BitflyerAdapter
    from exchanges.liquid import LiquidAdapter

    adapters = {
        "bitflyer": BitflyerAdapter,
        "liquid": LiquidAdapter,
    }

    name = name.lower()
    if name not in adapters:
        raise ValueError(
            f"Exchange '{name}' is not supported. "
            f"Available exchanges: {', '.join(adapters.keys())}"
        )
    return adapters[name]()


class FeedManager:
    """
    Registry of ConnectionManagers keyed by exchange name.

    Args:
        feeds: Pre-built feeds to register. When None, one feed per entry of
            settings.exchanges_list is created.
    """

    def __init__(self, feeds: Optional[List[ConnectionManager]] = None):
        self.feeds: Dict[str, ConnectionManager] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

        if feeds is None:
            feeds = [ConnectionManager(build_adapter(name)) for name in settings.exchanges_list]

        for feed in feeds:
            self.register(feed)

        logger.info(f"FeedManager initialized with {len(self.feeds)} feed(s): {', '.join(self.feeds.keys())}")

    # ============================================
    # Feed Retrieval
    # ============================================

    def register(self, feed: ConnectionManager) -> None:
        self.feeds[feed.name.lower()] = feed

    def get_feed(self, name: str) -> ConnectionManager:
        """
        Get a feed by exchange name.

        Raises:
            ValueError: If the feed is not registered
        """
        name = name.lower()

        if name not in self.feeds:
            available = ", ".join(self.feeds.keys())
            logger.error(f"Feed '{name}' not found. Available: {available}")
            raise ValueError(
                f"Feed '{name}' is not registered. "
                f"Available feeds: {available}"
            )

        return self.feeds[name]

    def has_feed(self, name: str) -> bool:
        return name.lower() in self.feeds

    def list_feeds(self) -> List[str]:
        return list(self.feeds.keys())

    # ============================================
    # Lifecycle Management
    # ============================================

    async def start_all(self) -> None:
        """Start every feed in its own background task."""
        logger.info("Starting all feeds...")
        for name, feed in self.feeds.items():
            task = self._tasks.get(name)
            if task is not None and not task.done():
                logger.debug(f"{name} is already running")
                continue
            self._tasks[name] = asyncio.create_task(self._supervise(name, feed))
        logger.info("All feeds started")

    async def _supervise(self, name: str, feed: ConnectionManager) -> None:
        try:
            await feed.start()
            logger.info(f"{name} feed terminated")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"✗ {name} feed failed to start: {e}")

    async def stop_all(self, timeout: float = 5.0) -> None:
        """
        Stop every feed and wait for its task to finish.

        Tasks still running after timeout seconds are cancelled.
        """
        logger.info("Stopping all feeds...")

        for name, feed in self.feeds.items():
            try:
                await feed.stop()
            except Exception as e:
                logger.error(f"✗ Error stopping {name}: {e}")

        tasks = [t for t in self._tasks.values() if not t.done()]
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=timeout)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

        logger.info("All feeds stopped")

    # ============================================
    # Status Queries
    # ============================================

    def status_all(self) -> Dict[str, dict]:
        """
        Summarize every feed.

        Returns:
            Dict mapping feed name to status, availability, latency and retry count
        """
        summary = {}
        for name, feed in self.feeds.items():
            status = feed.status
            summary[name] = {
                "status": status.value if status is not None else None,
                "available": feed.is_available(),
                "latency_ms": feed.get_latency(),
                "retry_count": feed.retry_state.retry_count,
            }
        return summary

    def __repr__(self) -> str:
        return f"<FeedManager(feeds={list(self.feeds.keys())})>"

    def __len__(self) -> int:
        return len(self.feeds)
