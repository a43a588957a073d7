"""
Configuration Management Module

This module handles loading, validating, and providing access to the feed
client configuration from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Usage:
    from core.config import settings

    print(settings.retry_limit)
    print(settings.exchanges_list)  # Returns a list of strings
"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


SUPPORTED_EXCHANGES = ["bitflyer", "liquid"]


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        enabled_exchanges: Comma-separated exchanges to stream from
        retry_limit: Reconnect attempts before a feed terminates
        retry_interval_ms: Linear backoff step between reconnects
        retry_jitter_ms: Fixed offset added to every backoff
        bitflyer_*: bitFlyer Lightning endpoints and product code
        liquid_*: Liquid Tap endpoint and currency pair
        request_timeout: Timeout for REST bootstrap calls in seconds
        app_host / app_port: Monitoring API bind address
    """

    # ============================================
    # Feed Selection
    # ============================================

    enabled_exchanges: str = Field(
        default="bitflyer,liquid",
        description="Comma-separated list of exchanges to stream from"
    )

    # ============================================
    # Reconnect Policy
    # ============================================

    retry_limit: int = Field(
        default=3,
        description="Maximum reconnect attempts before the feed terminates"
    )

    retry_interval_ms: int = Field(
        default=10_000,
        description="Backoff step in milliseconds (attempt N waits N * interval + jitter)"
    )

    retry_jitter_ms: int = Field(
        default=100,
        description="Fixed offset in milliseconds added to every backoff"
    )

    # ============================================
    # bitFlyer Lightning
    # ============================================

    bitflyer_ws_url: str = Field(
        default="wss://ws.lightstream.bitflyer.com/json-rpc",
        description="bitFlyer Realtime API (JSON-RPC 2.0 over WebSocket)"
    )

    bitflyer_rest_url: str = Field(
        default="https://api.bitflyer.com",
        description="bitFlyer HTTP API base URL"
    )

    bitflyer_product_code: str = Field(
        default="FX_BTC_JPY",
        description="bitFlyer product code"
    )

    # ============================================
    # Liquid Tap
    # ============================================

    liquid_ws_url: str = Field(
        default="wss://tap.liquid.com/app/LiquidTapClient",
        description="Liquid Tap (Pusher protocol) WebSocket URL"
    )

    liquid_currency_pair: str = Field(
        default="btcjpy",
        description="Liquid currency pair code (lowercase)"
    )

    # ============================================
    # Application Configuration
    # ============================================

    request_timeout: int = Field(
        default=10,
        description="HTTP request timeout in seconds"
    )

    app_host: str = Field(
        default="0.0.0.0",
        description="Monitoring API host address"
    )

    app_port: int = Field(
        default=8000,
        description="Monitoring API port"
    )

    environment: str = Field(
        default="development",
        description="Application environment (development, production)"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    @property
    def exchanges_list(self) -> List[str]:
        """
        Convert comma-separated exchanges string to a list.

        Example:
            >>> settings.exchanges_list
            ['bitflyer', 'liquid']
        """
        return [e.strip().lower() for e in self.enabled_exchanges.split(",") if e.strip()]


settings = Settings()


def validate_configuration() -> None:
    """
    Validate critical configuration settings on application startup.

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # Import logger here to avoid circular import
    from core.logging import logger

    if not settings.exchanges_list:
        raise ValueError("ENABLED_EXCHANGES must contain at least one exchange")

    for exchange in settings.exchanges_list:
        if exchange not in SUPPORTED_EXCHANGES:
            raise ValueError(
                f"Unsupported exchange: '{exchange}'. "
                f"Must be one of: {', '.join(SUPPORTED_EXCHANGES)}"
            )

    if settings.retry_limit < 0:
        raise ValueError(f"Invalid RETRY_LIMIT: {settings.retry_limit}. Must be >= 0")

    if settings.retry_interval_ms < 0 or settings.retry_jitter_ms < 0:
        raise ValueError("RETRY_INTERVAL_MS and RETRY_JITTER_MS must be >= 0")

    if not (1 <= settings.app_port <= 65535):
        raise ValueError(f"Invalid port number: {settings.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if settings.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{settings.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Streaming exchanges: {', '.join(settings.exchanges_list)}")
    logger.info(
        f"Reconnect policy: limit={settings.retry_limit} "
        f"interval={settings.retry_interval_ms}ms jitter={settings.retry_jitter_ms}ms"
    )
    logger.info(f"Server: {settings.app_host}:{settings.app_port}")
    logger.info(f"Log level: {settings.log_level.upper()}")
