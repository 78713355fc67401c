"""Configuration for the InfluxDB auth proxy.

Provides the immutable ProxyConfig model and a loader that builds it from
command-line flags, with defaults suitable for local development.
"""

from __future__ import annotations

import argparse
import os
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError

APP_NAME = "influxdb-http-auth-proxy"
VERSION = "1.0"


class ProxyConfig(BaseModel):
    """Startup settings shared read-only by every request."""

    model_config = ConfigDict(frozen=True)

    # upstream InfluxDB as host:port, always reached over plain http
    upstream: str = ""
    username: str = ""
    password: str = ""
    address: str = ""
    log_level: str = "INFO"
    request_timeout_s: float | None = None
    metrics_address: str | None = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME, description="InfluxDB query-string auth proxy")
    parser.add_argument("--address", default="", help="Listen address")
    parser.add_argument("--upstream", default="", help="Upstream address")
    parser.add_argument("--username", default="", help="InfluxDB username")
    parser.add_argument("--password", default="", help="InfluxDB password")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--timeout",
        dest="request_timeout_s",
        type=float,
        default=None,
        help="Upstream request timeout in seconds (default: none)",
    )
    parser.add_argument(
        "--metrics-address",
        default=None,
        help="Expose Prometheus metrics on this address (default: disabled)",
    )
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {VERSION}")
    return parser


def load_config(argv: Optional[Sequence[str]] = None) -> ProxyConfig:
    """Parse command-line flags and return a ProxyConfig object."""
    args = build_parser().parse_args(argv)
    try:
        return ProxyConfig(
            upstream=args.upstream,
            username=args.username,
            password=args.password,
            address=args.address,
            log_level=args.log_level.upper(),
            request_timeout_s=args.request_timeout_s,
            metrics_address=args.metrics_address,
        )
    except ValidationError as e:
        raise RuntimeError(f"Invalid configuration: {e}") from e
