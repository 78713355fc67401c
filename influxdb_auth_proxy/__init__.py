"""Reverse proxy that adds InfluxDB query-string credentials to forwarded requests."""

__version__ = "1.0"
