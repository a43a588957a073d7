"""
Liquid Adapter

Implements TransportAdapter for Liquid Tap (cash BTC/JPY by default).

Channels:
    - product_cash_{pair}_5   event "updated": last_traded_price, market_ask, market_bid
    - executions_cash_{pair}  event "created": price, quantity, taker_side, created_at

Liquid's product channel has no event timestamp and no best bid/ask sizes,
so tickers are stamped with local receipt time and sizes are reported as 0.

An abnormal close (websockets ConnectionClosedError, e.g. code 1006) is
reported as a plain disconnect so the feed reconnects.
"""

import json
from typing import Any, Dict, Optional

from websockets.exceptions import ConnectionClosed

from core.config import settings
from core.logging import get_logger, log_websocket_event
from core.schemas import Execution
from core.transport_interface import FeedListener, TransportAdapter
from core.utils.time import current_utc_timestamp, parse_exchange_timestamp
from .ws_client import LiquidWebSocketClient


class LiquidAdapter(TransportAdapter):
    """Liquid Tap transport adapter."""

    name = "liquid"

    capabilities = {
        "ticker": True,
        "executions": True,
        "order_matching": False
    }

    ticker_preinitialized = True

    def __init__(
        self,
        currency_pair: Optional[str] = None,
        ws_client: Optional[LiquidWebSocketClient] = None
    ):
        self.currency_pair = (currency_pair or settings.liquid_currency_pair).lower()
        self.ticker_channel = f"product_cash_{self.currency_pair}_5"
        self.executions_channel = f"executions_cash_{self.currency_pair}"
        self.channels = [self.ticker_channel, self.executions_channel]

        self.ws_client = ws_client or LiquidWebSocketClient()
        self.listener: Optional[FeedListener] = None
        self.logger = get_logger(__name__)

    # ============================================
    # TransportAdapter Lifecycle
    # ============================================

    async def initialize(self, listener: FeedListener) -> None:
        self.listener = listener
        await self.ws_client.connect()

    async def subscribe(self) -> None:
        self.logger.info("Subscribing start.")
        await self.ws_client.subscribe(self.channels)
        self.logger.info("Subscribing end.")
        self.listener.on_open()

    async def listen(self) -> None:
        try:
            async for frame in self.ws_client.frames():
                self.listener.on_message()
                await self.handle_frame(frame)
        except (ConnectionClosed, ConnectionError) as e:
            log_websocket_event(self.name, "disconnected", details=str(e))
        except Exception as e:
            log_websocket_event(self.name, "error", details=str(e))
            self.listener.on_error(e)
        log_websocket_event(self.name, "closed")
        self.listener.on_close()

    async def close(self) -> None:
        await self.ws_client.close()

    # ============================================
    # Message Handling
    # ============================================

    async def handle_frame(self, frame: str) -> None:
        """Route one Pusher frame to the listener."""
        try:
            data = json.loads(frame)
        except json.JSONDecodeError:
            self.logger.warning(f"Received invalid JSON from Liquid: {frame[:100]}")
            return

        event = data.get("event")
        channel = data.get("channel")

        if event == "pusher:ping":
            await self.ws_client.send_event("pusher:pong", {})
            return

        if event == "pusher_internal:subscription_succeeded":
            log_websocket_event(self.name, "subscribed", channel)
            return

        try:
            if channel == self.ticker_channel and event == "updated":
                self._update_ticker(self._payload(data))
            elif channel == self.executions_channel and event == "created":
                self.listener.on_executions([self.normalize_execution(self._payload(data))])
            else:
                self.logger.debug(f"Ignoring event '{event}' on channel '{channel}'")
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Error processing {channel} message: {e}")

    @staticmethod
    def _payload(data: Dict[str, Any]) -> Dict[str, Any]:
        payload = data.get("data")
        if isinstance(payload, str):
            payload = json.loads(payload)
        return payload

    def _update_ticker(self, ticker: Dict[str, Any]) -> None:
        self.listener.on_ticker(
            current_utc_timestamp(),
            float(ticker["last_traded_price"]),
            float(ticker["market_ask"]),
            float(ticker["market_bid"]),
            0.0,
            0.0
        )

    @staticmethod
    def normalize_execution(execution: Dict[str, Any]) -> Execution:
        """
        Convert a Liquid execution to an Execution model.

        Liquid Format:
            {
              "id": 123456,
              "quantity": 0.01,
              "price": 6500000.0,
              "taker_side": "buy",
              "created_at": 1704110400
            }
        """
        created_at = execution.get("created_at")
        return Execution(
            price=float(execution["price"]),
            size=float(execution["quantity"]),
            side=execution.get("taker_side"),
            timestamp=parse_exchange_timestamp(created_at) if created_at is not None else None
        )
