"""
Connection Manager - Supervised Lifecycle of One Exchange Feed

ConnectionManager owns the connection state of a single exchange feed. It
drives the adapter through connect -> consume -> (on disconnect) backoff and
reconnect -> terminate, and it is the FeedListener the adapter reports to:
every inbound frame updates the LatencyTracker, tickers replace the cached
TickerSnapshot, and executions are fanned out to the ExecutionCaptureEngine.

Failure policy:
    - initialization failure in start(): logged and re-raised, no retry
    - on_error(): logged, retries disabled (the loop ends at its next check)
    - on_close(): recoverable until retry_count reaches retry_limit; the
      retry that reaches the limit disables retries, so its backoff is the
      last thing the loop does
    - errors while handling a ticker or execution batch: logged, the stream
      goes on

Backoff:
    attempt N waits N * retry_interval_ms + retry_jitter_ms milliseconds.
    With the defaults (3 attempts, 10 000 ms) the waits are 10 100, 20 100
    and 30 100 ms. stop() wakes a pending wait immediately.

Usage:
    manager = ConnectionManager(BitflyerAdapter())
    task = asyncio.create_task(manager.start())
    ...
    if manager.is_available() and manager.get_latency() < 1000:
        ticker = manager.get_ticker()
    ...
    await manager.stop()
    await task
"""

import asyncio
import threading
from typing import Awaitable, Callable, Iterable, List, Optional

from core.config import settings
from core.execution_capture import ExecutionCaptureEngine
from core.latency_tracker import Clock, LatencyTracker
from core.logging import get_logger
from core.schemas import (
    ConnectionStatus,
    Execution,
    ExecutionCaptureWindow,
    RetryState,
    TickerSnapshot,
)
from core.transport_interface import FeedListener, TransportAdapter


Sleeper = Callable[[int], Awaitable[None]]


class ConnectionManager(FeedListener):
    """
    Lifecycle/retry state machine plus the per-feed in-memory model.

    Args:
        adapter: Exchange transport adapter
        retry_limit: Reconnect attempts before terminating (default: settings)
        retry_interval_ms: Linear backoff step (default: settings)
        retry_jitter_ms: Fixed backoff offset (default: settings)
        clock: Returns the current unix time in seconds
        sleep: Awaitable taking milliseconds; replaces the stop-aware
            backoff wait (used by tests to simulate time)

    Notes:
        Ticker cache, latency timestamps and status are guarded by one
        re-entrant lock; the capture table has its own lock inside the
        engine. Adapters may therefore call the on_* hooks from a thread
        other than the event loop running start().
    """

    def __init__(
        self,
        adapter: TransportAdapter,
        retry_limit: Optional[int] = None,
        retry_interval_ms: Optional[int] = None,
        retry_jitter_ms: Optional[int] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None
    ):
        self.adapter = adapter
        self.logger = get_logger(f"{__name__}.{adapter.name}")

        self._lock = threading.RLock()
        self._tracker = LatencyTracker(clock)
        self._captures = ExecutionCaptureEngine()
        self._retry = RetryState(
            retry_limit=settings.retry_limit if retry_limit is None else retry_limit,
            base_interval_ms=settings.retry_interval_ms if retry_interval_ms is None else retry_interval_ms,
            jitter_ms=settings.retry_jitter_ms if retry_jitter_ms is None else retry_jitter_ms,
        )

        self._status: Optional[ConnectionStatus] = None
        self._ticker: Optional[TickerSnapshot] = None
        self._ticker_initialized = adapter.ticker_preinitialized

        self._sleep = sleep
        self._stop_event: Optional[asyncio.Event] = None

    # ============================================
    # Public State
    # ============================================

    @property
    def name(self) -> str:
        return self.adapter.name

    @property
    def status(self) -> Optional[ConnectionStatus]:
        with self._lock:
            return self._status

    @property
    def retry_state(self) -> RetryState:
        """Copy of the current reconnect bookkeeping."""
        with self._lock:
            return self._retry.model_copy()

    # ============================================
    # Lifecycle
    # ============================================

    async def start(self) -> None:
        """
        Connect and supervise the feed until it terminates.

        Resets retry bookkeeping and all last-seen timestamps, initializes
        the transport, then runs the retry loop. Returns once the loop ends
        (status Terminated).

        Raises:
            Exception: Whatever the adapter raised during the first
                initialization; it is logged and not retried
        """
        with self._lock:
            self._retry.retry_enabled = True
            self._retry.retry_count = 0
            self._tracker.reset()
        self._stop_event = asyncio.Event()

        try:
            connected = await self._initialize_transport()
        except Exception as e:
            self.logger.error(f"Failed to initialize websocket: {e}")
            raise

        if connected:
            await self._run()

        self._set_status(ConnectionStatus.TERMINATED)
        self.logger.info("WebSocket has been terminated.")

    async def stop(self) -> None:
        """
        Disable further retries and close the transport.

        Safe to call more than once, and before start().
        """
        self.logger.info("Start closing websockets.")
        with self._lock:
            self._retry.retry_enabled = False
        if self._stop_event is not None:
            self._stop_event.set()

        await self._close_transport()
        self.logger.info("Websocket has been closed.")

    def is_available(self) -> bool:
        """True when connected and a ticker has been received."""
        with self._lock:
            return self._status == ConnectionStatus.CONNECTED and self._ticker_initialized

    def get_latency(self) -> int:
        """
        Single health signal for callers, in milliseconds.

        The larger of the cached ticker's propagation delay and the time
        since any frame arrived. Without a ticker, only the second term
        counts.
        """
        with self._lock:
            ticker_latency = self._ticker.latency_ms if self._ticker is not None else 0
            return max(ticker_latency, self._tracker.milliseconds_since_last_message())

    # ============================================
    # Retry Loop
    # ============================================

    async def _initialize_transport(self) -> bool:
        self._set_status(ConnectionStatus.INITIALIZING)
        self.logger.info("Start initializing websocket.")
        await self.adapter.initialize(self)
        self._set_status(ConnectionStatus.INITIALIZED)
        self.logger.info("Finish initializing websocket.")
        await self.adapter.subscribe()

        # stop() may have closed the transport before connect() finished
        if self._stop_event.is_set():
            self.logger.info("Stop requested while initializing. Closing transport.")
            await self._close_transport()
            return False
        return True

    async def _close_transport(self) -> None:
        try:
            await self.adapter.close()
        except Exception as e:
            self.logger.error(f"Error while closing transport: {e}")

    async def _run(self) -> None:
        connected = True
        while True:
            if connected:
                await self._consume()

            with self._lock:
                retry_enabled = self._retry.retry_enabled
                if retry_enabled:
                    self._retry.retry_count += 1
                    retry_count = self._retry.retry_count
                    sleep_ms = self._retry.next_backoff_ms()
                    if retry_count >= self._retry.retry_limit:
                        self.logger.error("Retry count reached the limit. Set retry=False.")
                        self._retry.retry_enabled = False

            if not retry_enabled:
                self.logger.info("Retry is false. Not retry anymore.")
                break

            self.logger.info(f"Retry connecting after {sleep_ms} ms. retry_count={retry_count}")
            await self._backoff(sleep_ms)

            if not self.retry_state.retry_enabled:
                self.logger.info("Retry is false after backoff. Not retry anymore.")
                break

            connected = await self._reconnect()

    async def _consume(self) -> None:
        try:
            await self.adapter.listen()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.on_error(e)

        # The adapter owes us on_close(); make sure the state machine sees it.
        if self.status != ConnectionStatus.DISCONNECTED:
            self.on_close()
        self.logger.info("Listener has been terminated.")

    async def _reconnect(self) -> bool:
        try:
            return await self._initialize_transport()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Reconnect failed: {e}")
            self.on_close()
            return False

    async def _backoff(self, sleep_ms: int) -> None:
        if self._sleep is not None:
            await self._sleep(sleep_ms)
            return

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=sleep_ms / 1000)
        except asyncio.TimeoutError:
            pass

    def _set_status(self, status: ConnectionStatus) -> None:
        with self._lock:
            self._status = status

    # ============================================
    # FeedListener Hooks (called by the adapter)
    # ============================================

    def on_open(self) -> None:
        self.logger.debug("on_open start.")
        with self._lock:
            self._tracker.reset()
            self._status = ConnectionStatus.CONNECTED
        self.logger.debug("on_open end.")

    def on_close(self) -> None:
        self.logger.debug("on_close start.")
        with self._lock:
            self.logger.debug(f"retry={self._retry.retry_enabled}")
            if self._retry.retry_enabled and self._retry.retry_count >= self._retry.retry_limit:
                self.logger.error("Retry count exceeded. Set retry=False.")
                self._retry.retry_enabled = False
            self._status = ConnectionStatus.DISCONNECTED
        self.logger.debug("on_close end.")

    def on_error(self, error: BaseException) -> None:
        self.logger.debug("on_error start.")
        with self._lock:
            self.logger.error(f"Transport error: {error!r} retry_count={self._retry.retry_count}")
            self._retry.retry_enabled = False
        self.logger.debug("on_error end.")

    def on_message(self) -> None:
        with self._lock:
            self._tracker.record_message()

    def on_ticker(
        self,
        timestamp: int,
        last_price: Optional[float],
        ask_price: Optional[float],
        bid_price: Optional[float],
        ask_size: Optional[float],
        bid_size: Optional[float]
    ) -> None:
        try:
            with self._lock:
                self._tracker.record_ticker()
                self.save_ticker(timestamp, last_price, ask_price, bid_price, ask_size, bid_size)
        except Exception as e:
            self.logger.error(f"Failed to handle ticker: {e}")

    def on_executions(self, executions: Iterable[Execution]) -> None:
        try:
            batch: List[Execution] = list(executions)
            with self._lock:
                self._tracker.record_execution()
            self._captures.ingest(batch)
        except Exception as e:
            self.logger.error(f"Failed to handle executions: {e}")

    # ============================================
    # Ticker
    # ============================================

    def save_ticker(
        self,
        timestamp: int,
        last_price: Optional[float],
        ask_price: Optional[float],
        bid_price: Optional[float],
        ask_size: Optional[float],
        bid_size: Optional[float]
    ) -> TickerSnapshot:
        """
        Replace the cached ticker.

        Args:
            timestamp: Event time at the exchange (unix seconds)
            last_price: Last traded price
            ask_price / bid_price: Best ask / bid
            ask_size / bid_size: Size at best ask / bid

        Returns:
            TickerSnapshot: The snapshot now cached, with latency_ms derived
        """
        with self._lock:
            timestamp = int(timestamp)
            snapshot = TickerSnapshot(
                timestamp=timestamp,
                last_price=last_price,
                best_ask_price=ask_price,
                best_bid_price=bid_price,
                best_ask_size=ask_size,
                best_bid_size=bid_size,
                latency_ms=self._tracker.now() * 1000 - timestamp * 1000,
            )
            self._ticker = snapshot
            self._ticker_initialized = True
            return snapshot

    def get_ticker(self) -> Optional[TickerSnapshot]:
        with self._lock:
            return self._ticker

    # ============================================
    # Latency Accessors
    # ============================================

    def get_last_message_timestamp(self) -> Optional[int]:
        with self._lock:
            return self._tracker.last_message_timestamp

    def get_last_ticker_timestamp(self) -> Optional[int]:
        with self._lock:
            return self._tracker.last_ticker_timestamp

    def get_last_execution_timestamp(self) -> Optional[int]:
        with self._lock:
            return self._tracker.last_execution_timestamp

    def get_millisecond_from_last_message(self) -> int:
        with self._lock:
            return self._tracker.milliseconds_since_last_message()

    def get_millisecond_from_last_ticker(self) -> int:
        with self._lock:
            return self._tracker.milliseconds_since_last_ticker()

    def get_millisecond_from_last_execution(self) -> int:
        with self._lock:
            return self._tracker.milliseconds_since_last_execution()

    # ============================================
    # Execution Captures
    # ============================================

    def create_execution_capture(self, capture_id: str) -> None:
        """
        Start recording high/low/volume from now on under capture_id.

        The window is seeded from the cached ticker's last price (None when
        no ticker has arrived). An existing capture with the same id is
        replaced.
        """
        with self._lock:
            price = self._ticker.last_price if self._ticker is not None else None
            self._captures.create(capture_id, price)

    def remove_execution_capture(self, capture_id: str) -> None:
        self._captures.remove(capture_id)

    def get_execution_capture(self, capture_id: str) -> Optional[ExecutionCaptureWindow]:
        return self._captures.get(capture_id)

    def list_execution_captures(self) -> List[str]:
        return self._captures.capture_ids()

    def __repr__(self) -> str:
        return f"<ConnectionManager(name='{self.name}', status={self._status})>"
