"""WebSocket endpoint test and monitoring tool."""
