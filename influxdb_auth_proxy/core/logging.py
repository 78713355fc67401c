"""Logging configuration utilities for the InfluxDB auth proxy."""
import logging

# parent of every logger in this package
LOGGER_NAME = "influxdb_http_auth_proxy"


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once at startup with the given level."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger, or a named child of it."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)
