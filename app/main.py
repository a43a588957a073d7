"""
FastAPI Application - Market Feed Monitoring API

Exposes the in-memory state of every exchange feed over HTTP: connection
status, freshness/latency, the cached ticker, and execution captures.

Usage:
    uvicorn app.main:app --host 0.0.0.0 --port 8000

Docs:
    - Swagger: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request

from core.config import validate_configuration
from core.connection_manager import ConnectionManager
from core.feed_manager import FeedManager
from core.logging import logger
from core.schemas import ExecutionCaptureWindow


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start every feed on startup, stop them on shutdown."""
    logger.info("=== Application Starting ===")
    try:
        validate_configuration()
        await app.state.feeds.start_all()
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("=== Shutting Down ===")
    try:
        await app.state.feeds.stop_all()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


def _get_feed(request: Request, exchange: str) -> ConnectionManager:
    try:
        return request.app.state.feeds.get_feed(exchange)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ============================================
# Application Factory
# ============================================

def create_app(feeds: Optional[FeedManager] = None) -> FastAPI:
    """
    Build the API around a FeedManager.

    Args:
        feeds: Feed registry to serve (default: one feed per enabled exchange)
    """
    app = FastAPI(
        title="Market Feed Monitoring API",
        description=(
            "Read-only view of the live exchange feeds plus execution captures.\n\n"
            "## Endpoints\n"
            "- `GET /health` - Availability and latency of every feed\n"
            "- `GET /feeds` - Registered feeds and their capabilities\n"
            "- `GET /{exchange}/ticker` - Cached ticker snapshot\n"
            "- `GET /{exchange}/latency` - Freshness of messages, tickers and executions\n"
            "- `GET /{exchange}/captures` - Open execution captures\n"
            "- `POST /{exchange}/captures/{capture_id}` - Open an execution capture\n"
            "- `GET /{exchange}/captures/{capture_id}` - Read an execution capture\n"
            "- `DELETE /{exchange}/captures/{capture_id}` - Close an execution capture\n"
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.feeds = feeds if feeds is not None else FeedManager()

    # ============================================
    # System Endpoints
    # ============================================

    @app.get("/", tags=["System"])
    async def root(request: Request):
        """API information and registered feeds."""
        return {
            "name": "Market Feed Monitoring API",
            "version": "1.0.0",
            "docs": "/docs",
            "feeds": request.app.state.feeds.list_feeds()
        }

    @app.get("/health", tags=["System"])
    async def health_check(request: Request):
        """Per-feed status; overall status is degraded if any feed is unavailable."""
        feeds = request.app.state.feeds.status_all()
        healthy = bool(feeds) and all(f["available"] for f in feeds.values())
        return {
            "status": "healthy" if healthy else "degraded",
            "feeds": feeds
        }

    @app.get("/feeds", tags=["System"])
    async def list_feeds(request: Request):
        """List registered feeds and their adapter capabilities."""
        manager: FeedManager = request.app.state.feeds
        return {
            "feeds": [
                {
                    "name": name,
                    "capabilities": manager.get_feed(name).adapter.capabilities.copy()
                }
                for name in manager.list_feeds()
            ]
        }

    # ============================================
    # Market Data Endpoints
    # ============================================

    @app.get("/{exchange}/ticker", tags=["Market Data"])
    async def get_ticker(exchange: str, request: Request):
        """Cached ticker snapshot (null until the first ticker arrives)."""
        feed = _get_feed(request, exchange)
        return {
            "exchange": feed.name,
            "available": feed.is_available(),
            "ticker": feed.get_ticker()
        }

    @app.get("/{exchange}/latency", tags=["Market Data"])
    async def get_latency(exchange: str, request: Request):
        """
        Freshness of the feed.

        Elapsed values are 0 when nothing has been received yet; check the
        matching last_*_timestamp (null) to tell the two apart.
        """
        feed = _get_feed(request, exchange)
        return {
            "exchange": feed.name,
            "latency_ms": feed.get_latency(),
            "last_message_timestamp": feed.get_last_message_timestamp(),
            "last_ticker_timestamp": feed.get_last_ticker_timestamp(),
            "last_execution_timestamp": feed.get_last_execution_timestamp(),
            "ms_from_last_message": feed.get_millisecond_from_last_message(),
            "ms_from_last_ticker": feed.get_millisecond_from_last_ticker(),
            "ms_from_last_execution": feed.get_millisecond_from_last_execution()
        }

    # ============================================
    # Execution Capture Endpoints
    # ============================================

    @app.get("/{exchange}/captures", tags=["Execution Captures"])
    async def list_captures(exchange: str, request: Request):
        feed = _get_feed(request, exchange)
        return {"exchange": feed.name, "captures": feed.list_execution_captures()}

    @app.post(
        "/{exchange}/captures/{capture_id}",
        tags=["Execution Captures"],
        status_code=201,
        response_model=ExecutionCaptureWindow
    )
    async def create_capture(exchange: str, capture_id: str, request: Request):
        """Open (or reset) a capture seeded from the cached ticker."""
        feed = _get_feed(request, exchange)
        feed.create_execution_capture(capture_id)
        return feed.get_execution_capture(capture_id)

    @app.get(
        "/{exchange}/captures/{capture_id}",
        tags=["Execution Captures"],
        response_model=ExecutionCaptureWindow
    )
    async def get_capture(exchange: str, capture_id: str, request: Request):
        feed = _get_feed(request, exchange)
        window = feed.get_execution_capture(capture_id)
        if window is None:
            raise HTTPException(status_code=404, detail=f"Execution capture '{capture_id}' not found")
        return window

    @app.delete("/{exchange}/captures/{capture_id}", tags=["Execution Captures"])
    async def remove_capture(exchange: str, capture_id: str, request: Request):
        """Close a capture. Closing an unknown capture is not an error."""
        feed = _get_feed(request, exchange)
        feed.remove_execution_capture(capture_id)
        return {"exchange": feed.name, "removed": capture_id}

    return app


app = create_app()
