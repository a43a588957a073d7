"""
Latency Tracker

Records when the most recent message, ticker and execution were received
and reports how long ago that was.

Timestamps are unix seconds from the injected clock. Elapsed values are in
milliseconds. A value of 0 from milliseconds_since_*() means "nothing seen
yet" when the matching raw timestamp is None, so callers that care about
the difference must check both.
"""

from typing import Callable, Optional

from core.utils.time import current_utc_timestamp


Clock = Callable[[], int]


class LatencyTracker:
    """
    Three independent "last seen" timestamps: message, ticker, execution.

    Example:
        >>> tracker = LatencyTracker()
        >>> tracker.milliseconds_since_last_message()
        0
        >>> tracker.record_message()
        >>> tracker.last_message_timestamp is not None
        True
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or current_utc_timestamp
        self.last_message_timestamp: Optional[int] = None
        self.last_ticker_timestamp: Optional[int] = None
        self.last_execution_timestamp: Optional[int] = None

    def now(self) -> int:
        """Current time in unix seconds, from the injected clock."""
        return self._clock()

    def reset(self) -> None:
        """Forget every last-seen timestamp."""
        self.last_message_timestamp = None
        self.last_ticker_timestamp = None
        self.last_execution_timestamp = None

    def record_message(self) -> None:
        self.last_message_timestamp = self.now()

    def record_ticker(self) -> None:
        self.last_ticker_timestamp = self.now()

    def record_execution(self) -> None:
        self.last_execution_timestamp = self.now()

    def milliseconds_since_last_message(self) -> int:
        return self._elapsed_ms(self.last_message_timestamp)

    def milliseconds_since_last_ticker(self) -> int:
        return self._elapsed_ms(self.last_ticker_timestamp)

    def milliseconds_since_last_execution(self) -> int:
        return self._elapsed_ms(self.last_execution_timestamp)

    def _elapsed_ms(self, last: Optional[int]) -> int:
        if last is None:
            return 0
        return self.now() * 1000 - last * 1000
