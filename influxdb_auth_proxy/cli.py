"""Command-line entry point: parse flags, bind the listener and serve."""

from __future__ import annotations

import sys
from typing import Optional, Sequence

import uvicorn
from prometheus_client import start_http_server

from influxdb_auth_proxy.core.config import ProxyConfig, load_config
from influxdb_auth_proxy.core.errors import ListenError
from influxdb_auth_proxy.core.logging import get_logger, setup_logging
from influxdb_auth_proxy.main import create_app
from influxdb_auth_proxy.services.listener import bind_socket, parse_address

log = get_logger()


def start_metrics(config: ProxyConfig) -> None:
    """Expose Prometheus metrics on their own listener, if configured."""
    if not config.metrics_address:
        return
    host, port = parse_address(config.metrics_address)
    try:
        start_http_server(port, addr=host)
    except OSError as e:
        raise ListenError(f"cannot bind metrics address {config.metrics_address!r}: {e}") from e
    log.info("Serving metrics at %s", config.metrics_address)


def serve(config: ProxyConfig) -> None:
    """Bind the listen address and run the proxy until interrupted."""
    sock = bind_socket(config.address)
    start_metrics(config)
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(config),
            log_level=config.log_level.lower(),
            access_log=False,
            # upstream headers are relayed as-is
            server_header=False,
            date_header=False,
        )
    )
    log.info("Listening at %s", config.address)
    server.run(sockets=[sock])


def main(argv: Optional[Sequence[str]] = None) -> None:
    config = load_config(argv)
    setup_logging(config.log_level)
    try:
        serve(config)
    except ListenError as e:
        log.error("Got error when listening: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
