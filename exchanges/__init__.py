"""
Exchange Adapters Package

Each exchange has its own subfolder implementing core.transport_interface.TransportAdapter:
- ws_client.py: WebSocket connection (frames only, no reconnect policy)
- api_client.py: REST bootstrap calls, where the exchange needs them
- __init__.py: The adapter class that normalizes messages for the core

Adding an exchange means adding an adapter here; the core stays unchanged.
"""
