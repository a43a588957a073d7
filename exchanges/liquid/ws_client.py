"""
Liquid Tap WebSocket Client

Liquid Tap speaks the Pusher protocol over a plain WebSocket:

    -> {"event": "pusher:subscribe", "data": {"channel": "executions_cash_btcjpy"}}
    <- {"event": "pusher_internal:subscription_succeeded", "channel": "executions_cash_btcjpy"}
    <- {"event": "created", "channel": "executions_cash_btcjpy", "data": "{...json string...}"}
    <- {"event": "pusher:ping", "data": {}}
    -> {"event": "pusher:pong", "data": {}}

Note the channel payload in "data" is itself a JSON-encoded string.

This client only moves frames. Reconnect policy lives in ConnectionManager.
"""

import json
import websockets
from typing import Any, AsyncGenerator, List, Optional

from core.config import settings
from core.logging import get_logger


class LiquidWebSocketClient:
    """
    Async Pusher-protocol connection to Liquid Tap.

    Attributes:
        url: Liquid Tap WebSocket endpoint
        ws: Active connection (None until connect())
    """

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.liquid_ws_url
        self.ws: Optional[Any] = None
        self.logger = get_logger(__name__)

    async def connect(self) -> None:
        """
        Open the WebSocket.

        Raises:
            Exception: If the connection cannot be established
        """
        self.logger.info(f"Connecting to {self.url}")
        self.ws = await websockets.connect(self.url)
        self.logger.info(f"✓ Connected to {self.url}")

    async def subscribe(self, channels: List[str]) -> None:
        for channel in channels:
            await self.send_event("pusher:subscribe", {"channel": channel})
            self.logger.debug(f"Subscribe request sent: {channel}")

    async def send_event(self, event: str, data: Any) -> None:
        await self.ws.send(json.dumps({"event": event, "data": data}))

    async def frames(self) -> AsyncGenerator[str, None]:
        """
        Yield raw text frames until the connection closes.

        A normal close ends the iteration; an abnormal one raises
        websockets.exceptions.ConnectionClosedError.
        """
        async for message in self.ws:
            yield message

    async def close(self) -> None:
        """Close the connection. Safe to call multiple times."""
        if self.ws is not None:
            await self.ws.close()
            self.logger.debug("WebSocket closed")
