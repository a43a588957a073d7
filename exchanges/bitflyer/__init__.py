"""
bitFlyer Lightning Adapter

Implements TransportAdapter for bitFlyer Lightning (FX_BTC_JPY by default).

Endpoints Used:
    REST:
        - GET /v1/getticker - seeds the ticker on first initialization

    WebSocket (JSON-RPC 2.0):
        - lightning_ticker_{product_code}
        - lightning_executions_{product_code}

Execution messages carry the matched child order acceptance ids, so
execution captures named after an order acceptance id report how much of
that order was filled ("order_matching" capability).

A lost connection (an error frame or a reset socket) is reported
as a plain disconnect so the feed reconnects; anything else escaping the
stream is a transport error.

Structure:
    exchanges/bitflyer/
    ├── __init__.py          # This file (BitflyerAdapter class)
    ├── api_client.py        # REST ticker bootstrap with aiohttp
    └── ws_client.py         # JSON-RPC WebSocket connection with aiohttp
"""

import json
from typing import Any, Dict, List, Optional

import aiohttp

from core.config import settings
from core.logging import get_logger, log_websocket_event
from core.schemas import Execution
from core.transport_interface import FeedListener, TransportAdapter
from core.utils.time import datetime_to_timestamp, parse_exchange_timestamp
from .api_client import BitflyerAPIClient
from .ws_client import BitflyerWebSocketClient


class BitflyerAdapter(TransportAdapter):
    """
    bitFlyer Lightning transport adapter.

    Example:
        >>> feed = ConnectionManager(BitflyerAdapter())
        >>> await feed.start()
    """

    name = "bitflyer"

    capabilities = {
        "ticker": True,
        "executions": True,
        "order_matching": True
    }

    # The REST bootstrap provides a ticker before the stream does
    ticker_preinitialized = True

    def __init__(
        self,
        product_code: Optional[str] = None,
        ws_client: Optional[BitflyerWebSocketClient] = None,
        api_client: Optional[BitflyerAPIClient] = None
    ):
        self.product_code = product_code or settings.bitflyer_product_code
        self.ticker_channel = f"lightning_ticker_{self.product_code}"
        self.executions_channel = f"lightning_executions_{self.product_code}"
        self.channels = [self.ticker_channel, self.executions_channel]

        self.ws_client = ws_client or BitflyerWebSocketClient()
        self.api_client = api_client or BitflyerAPIClient()
        self.listener: Optional[FeedListener] = None
        self._bootstrapped = False
        self.logger = get_logger(__name__)

    # ============================================
    # TransportAdapter Lifecycle
    # ============================================

    async def initialize(self, listener: FeedListener) -> None:
        self.listener = listener
        if not self._bootstrapped:
            await self._fetch_ticker()
            self._bootstrapped = True
        await self.ws_client.connect()

    async def subscribe(self) -> None:
        self.logger.info("Subscribing start.")
        await self.ws_client.subscribe(self.channels)
        for channel in self.channels:
            log_websocket_event(self.name, "subscribed", channel)
        self.logger.info("Subscribing end.")
        self.listener.on_open()

    async def listen(self) -> None:
        try:
            async for frame in self.ws_client.frames():
                self.listener.on_message()
                self.handle_frame(frame)
        except (ConnectionError, aiohttp.ClientConnectionError) as e:
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

    def handle_frame(self, frame: str) -> None:
        """
        Route one JSON-RPC frame to the listener.

        Subscription acknowledgements and unknown channels are ignored.
        Malformed frames are logged and dropped.
        """
        try:
            data = json.loads(frame)
        except json.JSONDecodeError:
            self.logger.warning(f"Received invalid JSON from bitFlyer: {frame[:100]}")
            return

        if data.get("method") != "channelMessage":
            if "error" in data:
                self.logger.error(f"JSON-RPC error: {data['error']}")
            return

        params = data.get("params", {})
        channel = params.get("channel")
        message = params.get("message")

        try:
            if channel == self.ticker_channel:
                self._update_ticker(message)
            elif channel == self.executions_channel:
                self.listener.on_executions(self.normalize_executions(message))
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Error processing {channel} message: {e}")

    def _update_ticker(self, ticker: Dict[str, Any]) -> None:
        timestamp = datetime_to_timestamp(parse_exchange_timestamp(ticker["timestamp"]))
        self.listener.on_ticker(
            timestamp,
            ticker.get("ltp"),
            ticker.get("best_ask"),
            ticker.get("best_bid"),
            ticker.get("best_ask_size"),
            ticker.get("best_bid_size")
        )

    @staticmethod
    def normalize_executions(executions: List[Dict[str, Any]]) -> List[Execution]:
        """
        Convert bitFlyer execution dictionaries to Execution models.

        bitFlyer Format:
            {
              "id": 39361,
              "side": "SELL",
              "price": 35100,
              "size": 0.01,
              "exec_date": "2015-07-07T10:44:33.547Z",
              "buy_child_order_acceptance_id": "JRF20150707-014356-184990",
              "sell_child_order_acceptance_id": "JRF20150707-104433-186048"
            }
        """
        return [
            Execution(
                price=float(item["price"]),
                size=float(item["size"]),
                side=item.get("side"),
                timestamp=parse_exchange_timestamp(item["exec_date"]) if item.get("exec_date") else None,
                buy_order_id=item.get("buy_child_order_acceptance_id") or None,
                sell_order_id=item.get("sell_child_order_acceptance_id") or None
            )
            for item in executions
        ]

    async def _fetch_ticker(self) -> None:
        try:
            async with self.api_client as client:
                ticker = await client.get_ticker(self.product_code)
            self._update_ticker(ticker)
        except Exception as e:
            self.logger.error(f"Failed to fetch initial ticker: {e}")
