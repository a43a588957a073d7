"""
bitFlyer WebSocket Client

Thin aiohttp wrapper around the bitFlyer Realtime API (JSON-RPC 2.0 over
WebSocket). It only moves frames: reconnect policy lives in the core's
ConnectionManager, and normalization lives in BitflyerAdapter.

Subscription request:
    {"method": "subscribe", "params": {"channel": "lightning_ticker_FX_BTC_JPY"}, "id": 1}

Channel message:
    {"jsonrpc": "2.0", "method": "channelMessage",
     "params": {"channel": "lightning_ticker_FX_BTC_JPY", "message": {...}}}

WebSocket Documentation:
    https://bf-lightning-api.readme.io/docs/endpoint-json-rpc
"""

import aiohttp
import json
from typing import AsyncGenerator, List, Optional

from core.config import settings
from core.logging import get_logger


class BitflyerWebSocketClient:
    """
    Async JSON-RPC WebSocket connection to bitFlyer.

    Attributes:
        url: JSON-RPC WebSocket endpoint
        session: aiohttp ClientSession owning the connection
        ws: Active WebSocket connection
    """

    def __init__(self, url: Optional[str] = None, heartbeat: int = 30):
        self.url = url or settings.bitflyer_ws_url
        self.heartbeat = heartbeat
        self.session: Optional[aiohttp.ClientSession] = None
        self.ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._request_id = 0
        self.logger = get_logger(__name__)

    @property
    def closed(self) -> bool:
        return self.ws is None or self.ws.closed

    async def connect(self) -> None:
        """
        Open the WebSocket, creating a session if needed.

        Raises:
            aiohttp.ClientError: If connection fails
        """
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()

        self.logger.info(f"Connecting to {self.url}")
        try:
            self.ws = await self.session.ws_connect(self.url, heartbeat=self.heartbeat)
        except Exception as e:
            self.logger.error(f"Failed to connect to {self.url}: {e}")
            raise
        self.logger.info(f"✓ Connected to {self.url}")

    async def subscribe(self, channels: List[str]) -> None:
        """Send one JSON-RPC subscribe request per channel."""
        for channel in channels:
            self._request_id += 1
            await self.ws.send_str(json.dumps({
                "method": "subscribe",
                "params": {"channel": channel},
                "id": self._request_id
            }))
            self.logger.debug(f"Subscribe request sent: {channel}")

    async def frames(self) -> AsyncGenerator[str, None]:
        """
        Yield raw text frames until the connection closes.

        Raises:
            ConnectionResetError: When the connection reports an error frame
        """
        async for msg in self.ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield msg.data

            elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED):
                self.logger.warning(f"WebSocket closed: {msg.data}")
                break

            elif msg.type == aiohttp.WSMsgType.ERROR:
                # Heartbeat timeouts and dropped sockets end up here
                raise ConnectionResetError(f"WebSocket connection lost: {self.ws.exception()}")

            else:
                self.logger.debug(f"Received message type: {msg.type}")

    async def close(self) -> None:
        """Close WebSocket and session. Safe to call multiple times."""
        if self.ws is not None and not self.ws.closed:
            await self.ws.close()
            self.logger.debug("WebSocket closed")

        if self.session is not None and not self.session.closed:
            await self.session.close()
            self.logger.debug("Session closed")
