# tests/conftest.py
import asyncio
import gzip
import socket
import threading
import time
from contextlib import closing

import pytest
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

GZIP_BODY = gzip.compress(b"cpu,host=a value=1\n" * 50)

# --- helpers ---------------------------------------------------------------

def free_port() -> int:
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]

class BgServer:
    """Run a uvicorn server in a background thread; stop with should_exit=True."""
    def __init__(self, app, host: str, port: int):
        self.config = uvicorn.Config(app, host=host, port=port, log_level="error")
        self.server = uvicorn.Server(self.config)
        self.thread = threading.Thread(target=self.server.run, daemon=True)

    def start(self):
        self.thread.start()
        # Wait until port is accepting connections
        deadline = time.time() + 5
        while time.time() < deadline:
            try:
                with socket.create_connection((self.config.host, self.config.port), timeout=0.25):
                    return
            except OSError:
                time.sleep(0.05)
        raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.should_exit = True
        self.thread.join(timeout=3)

# --- mock InfluxDB (the real "upstream") ----------------------------------

def _make_upstream_app() -> FastAPI:
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/missing")
    async def missing():
        return PlainTextResponse("not found", status_code=404)

    @app.get("/gzip")
    async def gzipped():
        return Response(
            content=GZIP_BODY,
            media_type="application/octet-stream",
            headers={"content-encoding": "gzip"},
        )

    @app.get("/slow")
    async def slow():
        await asyncio.sleep(2)
        return PlainTextResponse("late")

    @app.get("/multi")
    async def multi():
        resp = PlainTextResponse("ok")
        resp.headers.append("x-influxdb-version", "1.8.10")
        resp.headers.append("x-multi", "a")
        resp.headers.append("x-multi", "b")
        resp.headers.append("keep-alive", "timeout=5")
        resp.headers.append("proxy-authenticate", "Basic")
        resp.headers.append("trailers", "x-checksum")
        resp.headers.append("upgrade", "h2c")
        return resp

    @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PROPFIND"])
    async def echo(request: Request, path: str):
        body = await request.body()
        return JSONResponse({
            "method": request.method,
            "path": request.url.path,
            "query": request.url.query,
            "params": [list(p) for p in request.query_params.multi_items()],
            "headers": [[k.decode(), v.decode()] for k, v in request.headers.raw],
            "body": body.decode(),
        })

    return app

# --- fixtures -------------------------------------------------------------

@pytest.fixture
def anyio_backend():
    return "asyncio"

@pytest.fixture(scope="session")
def upstream() -> str:
    """Address (host:port) of a running mock upstream."""
    port = free_port()
    server = BgServer(_make_upstream_app(), "127.0.0.1", port)
    server.start()
    try:
        yield f"127.0.0.1:{port}"
    finally:
        server.stop()

class TruncatingServer:
    """Answer every connection with a response cut short of its Content-Length."""
    def __init__(self):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(5)
        self.address = "127.0.0.1:%d" % self.sock.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self):
        while True:
            try:
                conn, _ = self.sock.accept()
            except OSError:
                return
            with conn:
                conn.recv(65536)
                conn.sendall(
                    b"HTTP/1.1 200 OK\r\n"
                    b"Content-Type: text/plain\r\n"
                    b"Content-Length: 1000\r\n\r\n"
                    b"partial"
                )

    def start(self):
        self.thread.start()

    def stop(self):
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.sock.close()
        self.thread.join(timeout=3)

@pytest.fixture
def truncating_upstream() -> str:
    """Address of an upstream that drops the connection mid-body."""
    server = TruncatingServer()
    server.start()
    try:
        yield server.address
    finally:
        server.stop()
