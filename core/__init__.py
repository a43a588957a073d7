"""
Core Package

Contains the exchange-agnostic feed logic:
- ConnectionManager: lifecycle/retry state machine and per-feed in-memory model
- LatencyTracker: last-seen timestamps and message freshness
- ExecutionCaptureEngine: windowed OHLC/volume aggregation over executions
- TransportAdapter / FeedListener: contract with exchange adapters
- FeedManager: registry of one feed per exchange
- Schemas: Pydantic models for the normalized data
"""
