"""Helpers for testing code that runs WebSocket tests."""
