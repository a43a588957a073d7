"""
Feed Client Logging

Every module logs through a child of the "marketfeed" logger, so one
LOG_LEVEL setting controls the whole client.

Usage:
    from core.logging import logger, get_logger

    logger.info("Feed manager started")

    log = get_logger(__name__)
    log.warning("Retry connecting after 10100 ms")

What goes where:
    DEBUG    - Lifecycle hook tracing ("on_open start.")
    INFO     - Connection state changes ("Finish initializing websocket.")
    WARNING  - Recoverable problems ("Received invalid JSON")
    ERROR    - Transport errors, dropped messages, exhausted retries

In debug mode the thread name is added to every line, since adapters may
deliver messages from threads other than the event loop.
"""

import logging
import sys

from core.config import settings


ROOT_LOGGER_NAME = "marketfeed"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_level: str = "INFO", with_thread: bool = False) -> logging.Logger:
    """
    Configure stdout logging and return the "marketfeed" logger.

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Feed started")
        2024-01-01 12:00:00 [INFO] marketfeed: Feed started
    """
    thread_part = " (%(threadName)s)" if with_thread else ""
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=f"%(asctime)s [%(levelname)s]{thread_part} %(name)s: %(message)s",
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
        force=True
    )

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    return root


# ============================================
# Module Logger
# ============================================

logger = setup_logging(log_level=settings.log_level, with_thread=settings.debug)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger for a specific module.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Logger named "marketfeed.<name>"

    Example:
        >>> log = get_logger("core.connection_manager")
        >>> log.info("Websocket has been closed.")
        2024-01-01 12:00:00 [INFO] marketfeed.core.connection_manager: Websocket has been closed.
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_websocket_event(exchange: str, event: str, channel: str = None, details: str = None) -> None:
    """
    Log a WebSocket event with consistent formatting.

    Args:
        exchange: Exchange name
        event: Event type (e.g., "connected", "subscribed", "closed", "error")
        channel: Channel name (optional)
        details: Additional details (optional)

    Example:
        >>> log_websocket_event("bitflyer", "subscribed", "lightning_ticker_FX_BTC_JPY")
        [INFO] WebSocket: bitflyer subscribed | Channel: lightning_ticker_FX_BTC_JPY
    """
    channel_str = f" | Channel: {channel}" if channel else ""
    details_str = f" | {details}" if details else ""

    level = logging.ERROR if event == "error" else logging.INFO
    logger.log(level, f"WebSocket: {exchange} {event}{channel_str}{details_str}")


logger.debug("Logging system initialized")
