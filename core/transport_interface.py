"""
Transport Interface - Contract Between the Core and Exchange Adapters

The core never opens a socket or parses a wire message. Each exchange
ships an adapter that implements TransportAdapter; ConnectionManager takes
one by injection and drives it through its lifecycle. In the other
direction, the adapter reports what happens on the wire through the
FeedListener callbacks, which ConnectionManager implements.

Adapter obligations:
    - initialize(listener): open the transport (may raise)
    - subscribe(): subscribe to channels, then call listener.on_open()
    - listen(): consume frames until the transport closes, then return
    - for every inbound frame: listener.on_message(), then on_ticker() or
      on_executions() with normalized data
    - on a transport error: listener.on_error(err) followed by on_close()
    - on a clean disconnect: listener.on_close()

Capabilities:
    "ticker"          - adapter delivers ticker updates
    "executions"      - adapter delivers executions
    "order_matching"  - executions carry buy/sell order identifiers

Example:
    class MyExchangeAdapter(TransportAdapter):
        name = "myexchange"
        capabilities = {"ticker": True, "executions": True, "order_matching": False}

        async def initialize(self, listener):
            self.listener = listener
            self.ws = await open_socket()

        async def subscribe(self):
            await self.ws.send(...)
            self.listener.on_open()

        async def listen(self):
            async for frame in self.ws:
                self.listener.on_message()
                ...
            self.listener.on_close()
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

from core.schemas import Execution


class FeedListener(ABC):
    """Callbacks an adapter uses to report transport events and data."""

    @abstractmethod
    def on_open(self) -> None:
        """Transport connected and channels subscribed."""
        ...

    @abstractmethod
    def on_close(self) -> None:
        """Transport disconnected."""
        ...

    @abstractmethod
    def on_error(self, error: BaseException) -> None:
        """Transport-level error."""
        ...

    @abstractmethod
    def on_message(self) -> None:
        """Any inbound frame arrived (called before type-specific handling)."""
        ...

    @abstractmethod
    def on_ticker(
        self,
        timestamp: int,
        last_price: Optional[float],
        ask_price: Optional[float],
        bid_price: Optional[float],
        ask_size: Optional[float],
        bid_size: Optional[float]
    ) -> None:
        """Normalized ticker update (timestamp in unix seconds)."""
        ...

    @abstractmethod
    def on_executions(self, executions: Iterable[Execution]) -> None:
        """Normalized batch of executions, in arrival order."""
        ...


class TransportAdapter(ABC):
    """
    Abstract base class for exchange transport adapters.

    Class Attributes:
        name: Unique identifier for the exchange (lowercase)
        capabilities: Which optional data this adapter delivers
        ticker_preinitialized: True when the adapter has no meaningful
            "first ticker received" moment (the feed counts as having a
            ticker from the start)
    """

    name: str

    capabilities: Dict[str, bool] = {
        "ticker": False,
        "executions": False,
        "order_matching": False
    }

    ticker_preinitialized: bool = False

    @abstractmethod
    async def initialize(self, listener: FeedListener) -> None:
        """
        Open the transport.

        Called once by start() and again before each reconnect attempt.

        Raises:
            Exception: If the transport cannot be established
        """
        ...

    @abstractmethod
    async def subscribe(self) -> None:
        """Subscribe to channels and report on_open() to the listener."""
        ...

    @abstractmethod
    async def listen(self) -> None:
        """Consume frames until the transport closes."""
        ...

    async def close(self) -> None:
        """
        Tear down the transport.

        Optional; default does nothing. Must be safe to call repeatedly and
        must make a running listen() return.
        """
        pass

    def supports(self, feature: str) -> bool:
        """Check whether the adapter declares a capability."""
        return self.capabilities.get(feature, False)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}')>"
