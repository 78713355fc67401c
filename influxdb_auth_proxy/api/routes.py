"""API routes for the InfluxDB auth proxy.

A single catch-all route hands every request, whatever its path or method,
to the streaming forwarder.
"""
from __future__ import annotations

from fastapi import APIRouter, Request
from prometheus_client import Counter

from influxdb_auth_proxy.core.config import ProxyConfig
from influxdb_auth_proxy.core.logging import get_logger
from influxdb_auth_proxy.services.proxy import forward

log = get_logger("api")
router = APIRouter()

REQUESTS = Counter("proxy_requests_total", "Total incoming proxy requests", ["method"])


def _get_config(request: Request) -> ProxyConfig:
    """Return the ProxyConfig placed on ``app.state`` by create_app."""
    return request.app.state.config


def _remote_addr(request: Request) -> str:
    if request.client is None:
        return "unknown"
    return f"{request.client.host}:{request.client.port}"


def _request_uri(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


async def proxy_request(request: Request):
    REQUESTS.labels(method=request.method).inc()
    log.info(
        "Receive http request from %s (method: %s, url: %s)",
        _remote_addr(request), request.method, _request_uri(request),
    )
    return await forward(request, _get_config(request))


class ProxyEndpoint:
    """ASGI endpoint; routes to a plain ASGI app match every HTTP method."""

    async def __call__(self, scope, receive, send):
        response = await proxy_request(Request(scope, receive))
        await response(scope, receive, send)


router.add_route("/{path:path}", ProxyEndpoint(), include_in_schema=False)
