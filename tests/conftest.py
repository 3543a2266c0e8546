import json
import socket
import threading

import pytest
import requests

from config import Config


def make_response(status_code, body=None, text=None):
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    if body is not None:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = (text or "").encode("utf-8")
    # lets iter_content replay _content as if it had been streamed
    response._content_consumed = True
    response.encoding = "utf-8"
    return response


class FakeSession:
    """Stands in for requests.Session; records every post and replays a canned result."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.closed = False

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class LocalUpstream:
    """
    Minimal HTTP/1.1 server on 127.0.0.1 driven by ``handler(conn, request_bytes)``.

    Each accepted connection is served on its own daemon thread and every raw
    request is kept in ``requests`` for assertions.
    """

    def __init__(self, handler):
        self.handler = handler
        self.requests = []
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(5)
        self.url = f"http://127.0.0.1:{self.sock.getsockname()[1]}"
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while True:
            try:
                conn, _ = self.sock.accept()
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn):
        with conn:
            data = b""
            while b"\r\n\r\n" not in data:
                chunk = conn.recv(4096)
                if not chunk:
                    return
                data += chunk
            self.requests.append(data)
            try:
                self.handler(conn, data)
            except OSError:
                pass  # client hung up

    def header_values(self, name):
        """Value of header ``name`` in each recorded request, None where absent."""
        values = []
        for raw in self.requests:
            head = raw.split(b"\r\n\r\n", 1)[0].decode("latin-1")
            found = None
            for line in head.split("\r\n")[1:]:
                key, _, value = line.partition(":")
                if key.strip().lower() == name.lower():
                    found = value.strip()
            values.append(found)
        return values

    def close(self):
        self.sock.close()


@pytest.fixture
def no_proxy_env(monkeypatch):
    for name in ("HTTP_PROXY", "http_proxy", "HTTPS_PROXY", "https_proxy", "ALL_PROXY", "all_proxy"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config():
    return Config(request_timeout_ms=2000, base_url="https://gift.truemoney.com")


@pytest.fixture
def fake_session():
    return FakeSession(make_response(200, {"status": {"code": "SUCCESS"}, "data": {"amount_baht": "10.00"}}))
