"""InfluxDB auth proxy FastAPI application.

Creates the proxy service, stores the immutable config on the app and maps
upstream transport failures to a generic 500.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from influxdb_auth_proxy.api.routes import router
from influxdb_auth_proxy.core.config import APP_NAME, VERSION, ProxyConfig
from influxdb_auth_proxy.core.errors import UpstreamTransportError
from influxdb_auth_proxy.core.logging import get_logger

log = get_logger()


async def upstream_error_handler(_: Request, exc: UpstreamTransportError):
    """Report an unreachable upstream to the caller without details."""
    log.error("Got error from server: %s", exc)
    return PlainTextResponse("Server Error\n", status_code=500)


def create_app(config: ProxyConfig) -> FastAPI:
    """Build the app; every path is proxied, so docs routes are disabled."""
    app = FastAPI(
        title=APP_NAME,
        version=VERSION,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config
    app.add_exception_handler(UpstreamTransportError, upstream_error_handler)
    app.include_router(router)
    return app
