"""Data models for test definitions, event logs and results."""
