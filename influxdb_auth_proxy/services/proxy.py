"""Reverse-proxy utilities for the InfluxDB auth proxy.

Provides a streaming forwarder that rewrites a client request for the fixed
upstream, appends the ``u``/``p`` credentials to its query string and streams
the upstream response back to the client.
"""
from __future__ import annotations
from typing import Iterable, List, Tuple
from urllib.parse import parse_qsl, urlencode
import httpx
from fastapi import Request, Response
from fastapi.responses import StreamingResponse
from prometheus_client import Counter, Histogram

from influxdb_auth_proxy.core.config import ProxyConfig
from influxdb_auth_proxy.core.errors import UpstreamTransportError
from influxdb_auth_proxy.core.logging import get_logger

log = get_logger("proxy")

UPSTREAM_ERRORS = Counter("proxy_upstream_errors_total", "Upstream transport failures")
UPSTREAM_LATENCY = Histogram("proxy_upstream_latency_seconds", "Time until upstream response headers")

# RFC 9110 hop-by-hop headers (must not be forwarded)
HOP_BY_HOP = {
    "connection", "keep-alive", "proxy-authenticate", "proxy-authorization",
    "te", "trailers", "transfer-encoding", "upgrade",
}

# recomputed by the client for the outbound request
_CLIENT_MANAGED = {"host", "content-length"}

HeaderList = List[Tuple[str, str]]


def strip_hop_headers(headers: Iterable[Tuple[str, str]]) -> HeaderList:
    """Drop hop-by-hop headers, keeping repeated values of the rest in order."""
    return [(k, v) for k, v in headers if k.lower() not in HOP_BY_HOP]


def add_auth_query(query: str, username: str, password: str) -> str:
    """Return ``query`` re-encoded with ``u`` and ``p`` appended.

    Existing parameters, including caller supplied ``u``/``p``, are kept in
    their original order. They are decoded and re-encoded byte for byte, so
    escapes that are not valid UTF-8 survive unchanged.
    """
    pairs = parse_qsl(query, keep_blank_values=True, encoding="latin-1")
    auth = str(httpx.QueryParams([("u", username), ("p", password)]))
    if not pairs:
        return auth
    return f"{urlencode(pairs, encoding='latin-1')}&{auth}"


def _raw_path(req: Request) -> str:
    raw = req.scope.get("raw_path")
    if not raw:
        return req.url.path
    # some ASGI servers include the query string in raw_path
    return raw.split(b"?", 1)[0].decode("latin-1")


def build_target_url(req: Request, config: ProxyConfig) -> str:
    """Build ``http://{upstream}{path}?{query}`` with credentials added."""
    query = add_auth_query(req.url.query, config.username, config.password)
    return f"http://{config.upstream}{_raw_path(req)}?{query}"


def outbound_headers(req: Request) -> HeaderList:
    headers = [(k.decode("latin-1"), v.decode("latin-1")) for k, v in req.headers.raw]
    return [(k, v) for k, v in strip_hop_headers(headers) if k.lower() not in _CLIENT_MANAGED]


async def forward(req: Request, config: ProxyConfig) -> Response:
    """Forward ``req`` to the configured upstream and stream the response back.

    A fresh client is used for every request. Transport failures raise
    UpstreamTransportError; nothing is retried.
    """
    target_url = build_target_url(req, config)
    headers = outbound_headers(req)
    body = await req.body()

    client = httpx.AsyncClient(timeout=httpx.Timeout(config.request_timeout_s), follow_redirects=False)
    try:
        upstream_request = client.build_request(req.method, target_url, headers=headers, content=body)
        # the client adds its own defaults, e.g. Connection: keep-alive
        for name in HOP_BY_HOP:
            upstream_request.headers.pop(name, None)
        with UPSTREAM_LATENCY.time():
            upstream_response = await client.send(upstream_request, stream=True)
    except (httpx.RequestError, httpx.InvalidURL) as e:
        await client.aclose()
        UPSTREAM_ERRORS.inc()
        raise UpstreamTransportError(f"{type(e).__name__}: {e}") from e

    resp_headers = strip_hop_headers(upstream_response.headers.multi_items())

    async def iter_upstream():
        try:
            # raw bytes: content-encoding is relayed, never decoded here
            async for chunk in upstream_response.aiter_raw():
                yield chunk
        except httpx.RequestError as e:
            UPSTREAM_ERRORS.inc()
            log.error("Got error while relaying upstream body: %s", e)
            raise
        finally:
            await upstream_response.aclose()
            await client.aclose()

    response = StreamingResponse(iter_upstream(), status_code=upstream_response.status_code)
    for k, v in resp_headers:
        response.headers.append(k, v)
    return response
