"""
Normalized Data Schemas

This module defines Pydantic models for the feed client's in-memory model.
Adapters translate exchange-specific wire messages into these shapes, and
the core only ever works with them.

Models:
    - ConnectionStatus: Lifecycle state of a single feed connection
    - RetryState: Reconnect bookkeeping owned by ConnectionManager
    - TickerSnapshot: Best bid/ask and last traded price at a point in time
    - Execution: A single matched trade
    - ExecutionCaptureWindow: OHLC/volume aggregation since capture creation
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict, PrivateAttr


# ============================================
# Connection Lifecycle
# ============================================

class ConnectionStatus(str, Enum):
    """
    Lifecycle state of a feed connection.

    Transitions:
        Initializing -> Initialized -> Connected -> Disconnected
        Disconnected -> (retry) Connected | Terminated
    """

    INITIALIZING = "Initializing"
    INITIALIZED = "Initialized"
    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"
    TERMINATED = "Terminated"


class RetryState(BaseModel):
    """
    Reconnect bookkeeping.

    retry_count grows by one per disconnect-triggered retry. Once it reaches
    retry_limit, retry_enabled turns off and stays off; the lifecycle loop
    finishes that last backoff and terminates without reconnecting.
    """

    retry_enabled: bool = True
    retry_count: int = Field(default=0, ge=0)
    retry_limit: int = Field(default=3, ge=0)
    base_interval_ms: int = Field(default=10_000, ge=0)
    jitter_ms: int = Field(default=100, ge=0)

    def next_backoff_ms(self) -> int:
        """Backoff for the current attempt: linear step plus fixed jitter."""
        return self.retry_count * self.base_interval_ms + self.jitter_ms


# ============================================
# Ticker Schema
# ============================================

class TickerSnapshot(BaseModel):
    """
    Best bid/ask and last traded price at a point in time.

    Snapshots are immutable: every ticker event replaces the cached snapshot
    wholesale. latency_ms is derived when the snapshot is saved, as local
    receipt time minus the event timestamp, and can be slightly negative
    when the exchange clock runs ahead of ours.

    Example:
        >>> TickerSnapshot(
        ...     timestamp=1704110400,
        ...     last_price=6_500_000.0,
        ...     best_ask_price=6_500_100.0,
        ...     best_bid_price=6_499_900.0,
        ...     best_ask_size=0.5,
        ...     best_bid_size=1.2,
        ...     latency_ms=1000
        ... )
    """

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(
        ...,
        description="Event timestamp at the exchange (unix seconds)"
    )

    last_price: Optional[float] = Field(
        default=None,
        description="Last traded price"
    )

    best_ask_price: Optional[float] = Field(
        default=None,
        description="Best ask price"
    )

    best_bid_price: Optional[float] = Field(
        default=None,
        description="Best bid price"
    )

    best_ask_size: Optional[float] = Field(
        default=None,
        description="Size available at the best ask"
    )

    best_bid_size: Optional[float] = Field(
        default=None,
        description="Size available at the best bid"
    )

    latency_ms: int = Field(
        ...,
        description="Receipt time minus event time in milliseconds"
    )


# ============================================
# Execution Schema
# ============================================

class Execution(BaseModel):
    """
    A single matched trade, normalized.

    side is the taker side, lower-cased. "buy" and "sell" count toward
    volume; any other tag (bitFlyer reports "" for itayose fills) still
    moves the price fields.

    buy_order_id / sell_order_id are only filled by exchanges that expose
    the matched order identifiers.
    """

    price: float = Field(
        ...,
        ge=0,
        description="Execution price"
    )

    size: float = Field(
        ...,
        ge=0,
        description="Executed quantity in base asset"
    )

    side: Optional[str] = Field(
        default=None,
        description="Taker side: 'buy', 'sell', or an exchange-specific tag"
    )

    timestamp: Optional[datetime] = Field(
        default=None,
        description="Execution time in UTC"
    )

    buy_order_id: Optional[str] = Field(
        default=None,
        description="Order identifier on the buy side, if provided"
    )

    sell_order_id: Optional[str] = Field(
        default=None,
        description="Order identifier on the sell side, if provided"
    )

    @field_validator("side")
    @classmethod
    def normalize_side(cls, v: Optional[str]) -> Optional[str]:
        """Lower-case the taker side"""
        return v.lower() if v is not None else None


# ============================================
# Execution Capture Window
# ============================================

class ExecutionCaptureWindow(BaseModel):
    """
    Open-ended OHLC/volume aggregation over the execution stream.

    A window is seeded from the cached ticker when created and widened by
    every execution until the caller removes it.

    Attributes:
        start_time: Time of the first execution seen after creation
        end_time: Time of the most recent execution
        open/high/low/close: Seed price, then widened/updated by executions
        buy_volume: Taker-buy quantity accumulated
        sell_volume: Taker-sell quantity accumulated
        filled: Quantity matched against an order whose id equals the capture id
    """

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    close: Optional[float] = None
    buy_volume: float = 0.0
    sell_volume: float = 0.0
    filled: float = 0.0

    _started: bool = PrivateAttr(default=False)

    @property
    def started(self) -> bool:
        """True once any execution has been applied, even one without a timestamp."""
        return self._started

    def mark_started(self) -> None:
        self._started = True

    @classmethod
    def seeded(cls, price: Optional[float]) -> "ExecutionCaptureWindow":
        """Create a window whose OHLC starts at the given price (or None)."""
        return cls(open=price, high=price, low=price, close=price)
