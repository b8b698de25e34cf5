from __future__ import annotations

import json
import threading
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from shipyard.core.result import Err, Ok
from shipyard.platform.http import HttpClient, HttpError, MockHttpClient, RealHttpClient


class _Handler(BaseHTTPRequestHandler):
    received: list[dict[str, object]] = []

    def do_POST(self) -> None:  # noqa: N802
        length = int(self.headers.get("Content-Length", "0"))
        body = json.loads(self.rfile.read(length))
        _Handler.received.append(body)
        status = 500 if self.path == "/broken" else 204
        self.send_response(status)
        self.end_headers()

    def log_message(self, format: str, *args: object) -> None:
        del format, args


@pytest.fixture
def server_url() -> Iterator[str]:
    _Handler.received = []
    server = HTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


class TestRealHttpClient:
    def test_post_json(self, server_url: str) -> None:
        result = RealHttpClient(timeout=5).post_json(f"{server_url}/hook", {"content": "hi"})
        assert result == Ok(204)
        assert _Handler.received == [{"content": "hi"}]

    def test_http_error_status(self, server_url: str) -> None:
        result = RealHttpClient(timeout=5).post_json(f"{server_url}/broken", {})
        assert isinstance(result, Err)
        assert result.error.status == 500

    def test_invalid_url(self) -> None:
        result = RealHttpClient().post_json("not a url", {})
        assert isinstance(result, Err)
        assert result.error.status == 0

    def test_satisfies_protocol(self) -> None:
        assert isinstance(RealHttpClient(), HttpClient)


class TestMockHttpClient:
    def test_records_calls(self) -> None:
        http = MockHttpClient()
        assert http.post_json("https://hooks.example/a", {"x": 1}) == Ok(204)
        assert http.calls == [("https://hooks.example/a", {"x": 1})]

    def test_configured_failure(self) -> None:
        http = MockHttpClient()
        http.fail("https://hooks.example/a", HttpError("https://hooks.example/a", 404, "Not Found"))
        result = http.post_json("https://hooks.example/a", {})
        assert isinstance(result, Err)
        assert str(result.error) == "HTTP 404: Not Found (https://hooks.example/a)"
