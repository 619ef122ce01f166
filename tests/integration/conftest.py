"""tests/integration/conftest.py

Local HTTP server shared by the integration tests.
"""

import gzip
import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Iterator
from urllib.parse import parse_qs, urlsplit

import pytest

from unireq import Options, Unireq


class IntegrationHTTPRequestHandler(BaseHTTPRequestHandler):
    """Keep-alive HTTP/1.1 handler with a few fixed routes."""

    protocol_version = "HTTP/1.1"

    def log_message(self, format: str, *args: Any) -> None:  # pylint: disable=redefined-builtin
        """Suppress server logs during testing."""

    def _send(
        self, status: int, body: bytes, content_type: str = "application/json", **extra
    ) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        for name, value in extra.items():
            self.send_header(name.replace("_", "-"), value)
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def _echo(self) -> None:
        length = int(self.headers.get("Content-Length", 0))
        received = self.rfile.read(length).decode("utf-8")
        split = urlsplit(self.path)
        payload = {
            "method": self.command,
            "path": split.path,
            "query": parse_qs(split.query),
            "headers": {name.lower(): value for name, value in self.headers.items()},
            "body": received,
        }
        self._send(200, json.dumps(payload).encode())

    def do_GET(self) -> None:
        """Handle GET requests."""
        path = urlsplit(self.path).path
        if path == "/json":
            self._send(200, json.dumps({"message": "Hello, World!", "id": 1}).encode())
        elif path == "/text":
            self._send(200, "héllo".encode("latin-1"), "text/plain; charset=latin-1")
        elif path == "/gzip":
            self._send(
                200,
                gzip.compress(b"compressed payload"),
                "text/plain",
                Content_Encoding="gzip",
            )
        elif path == "/slow":
            time.sleep(1.0)
            self._send(200, b"late", "text/plain")
        elif path == "/missing":
            self._send(404, b'{"error": "not found"}')
        elif path == "/broken":
            self._send(200, b"{not json")
        else:
            self._echo()

    def do_HEAD(self) -> None:
        """Handle HEAD requests."""
        self._send(200, b"ignored", "text/plain")

    do_POST = _echo
    do_PUT = _echo
    do_PATCH = _echo
    do_DELETE = _echo


@pytest.fixture(scope="module")
def server_url() -> Iterator[str]:
    """Start a threaded HTTP server for the module."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), IntegrationHTTPRequestHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def client(server_url: str) -> Iterator[Unireq]:
    """Unireq bound to the test server, shut down after each test."""
    with Unireq(Options(base_url=server_url, socket_timeout=5.0)) as instance:
        yield instance
