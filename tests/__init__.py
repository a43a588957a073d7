"""
Test Suite

Structure:
- tests/unit/: Tests for individual components (core state machine, capture
  engine, latency tracker, adapters' message normalization, HTTP API)

Uses pytest with pytest-asyncio for testing async functionality.
No test opens a real network connection.
"""
