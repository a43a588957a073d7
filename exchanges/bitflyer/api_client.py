"""
bitFlyer REST API Client

Async HTTP client for the public bitFlyer Lightning HTTP API. The feed only
needs it once: to seed the ticker before the first WebSocket message.

API Documentation:
    https://lightning.bitflyer.com/docs?lang=en

Usage:
    async with BitflyerAPIClient() as client:
        ticker = await client.get_ticker("FX_BTC_JPY")
"""

import aiohttp
import asyncio
from typing import Any, Dict, Optional

from core.config import settings
from core.logging import get_logger


class BitflyerAPIClient:
    """
    Async HTTP client for bitFlyer public endpoints.

    Attributes:
        base_url: bitFlyer HTTP API base URL
        session: aiohttp ClientSession for HTTP requests
        max_attempts: Attempts per request before giving up
    """

    def __init__(self, base_url: Optional[str] = None, max_attempts: int = 3):
        self.base_url = base_url or settings.bitflyer_rest_url
        self.max_attempts = max_attempts
        self.session: Optional[aiohttp.ClientSession] = None
        self.logger = get_logger(__name__)

    async def __aenter__(self):
        self.session = aiohttp.ClientSession()
        self.logger.debug("BitflyerAPIClient session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.logger.debug("BitflyerAPIClient session closed")

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make GET request with retry logic.

        Retries on rate limiting (HTTP 429/503), timeouts and connection
        errors with a linear delay of 1.5s * attempt.

        Raises:
            RuntimeError: If session not initialized or all attempts failed
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.base_url}{path}"

        for attempt in range(self.max_attempts):
            try:
                async with self.session.get(
                    url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=settings.request_timeout)
                ) as resp:
                    if resp.status == 200:
                        data = await resp.json()
                        self.logger.debug(f"GET {path} - Success (attempt {attempt + 1})")
                        return data

                    elif resp.status in (429, 503):
                        delay = 1.5 * (attempt + 1)
                        self.logger.warning(
                            f"Rate limited (HTTP {resp.status}) on {path}. "
                            f"Retrying in {delay:.1f}s... (attempt {attempt + 1}/{self.max_attempts})"
                        )
                        await asyncio.sleep(delay)
                        continue

                    else:
                        text = await resp.text()
                        self.logger.error(f"HTTP {resp.status} on {path}: {text}")
                        break

            except asyncio.TimeoutError:
                self.logger.error(f"Timeout on {path} (attempt {attempt + 1}/{self.max_attempts})")
                await asyncio.sleep(1.0 * (attempt + 1))

            except aiohttp.ClientError as e:
                self.logger.error(f"Request failed on {path}: {e} (attempt {attempt + 1}/{self.max_attempts})")
                await asyncio.sleep(1.0 * (attempt + 1))

        raise RuntimeError(f"Failed to fetch {url} after {self.max_attempts} attempts")

    async def get_ticker(self, product_code: str) -> Dict[str, Any]:
        """
        Fetch the current ticker.

        bitFlyer Endpoint:
            GET /v1/getticker?product_code=FX_BTC_JPY

        Response Format:
            {
              "product_code": "FX_BTC_JPY",
              "timestamp": "2019-04-11T05:14:12.3739915Z",
              "best_bid": 580006.0,
              "best_ask": 580771.0,
              "best_bid_size": 2.00000013,
              "best_ask_size": 0.4,
              "ltp": 580543.0,
              ...
            }

        Returns:
            Raw ticker dictionary (same shape as the WebSocket ticker)
        """
        self.logger.info(f"Fetching ticker: {product_code}")
        return await self._get("/v1/getticker", {"product_code": product_code})
