import threading
import time
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from reflectscan.transport import Response


class FakeClient:
    """In-memory transport: handler(method, url, payloads) -> Response."""

    def __init__(self, handler):
        self.handler = handler
        self.calls = []
        self._lock = threading.Lock()

    def request(self, method, url, payloads):
        with self._lock:
            self.calls.append((method, url, tuple(payloads)))
        return self.handler(method, url, payloads)


def html(body):
    return Response(status_code=200, body=body.encode(), content_type="text/html; charset=utf-8")


class EchoHandler(BaseHTTPRequestHandler):
    def log_message(self, *args):
        pass

    def _reply(self, body, content_type="text/html"):
        data = body if isinstance(body, bytes) else body.encode()
        self.send_response(200)
        if content_type:
            self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _drip(self, size, delay):
        self.send_response(200)
        self.send_header("Content-Type", "text/html")
        self.send_header("Content-Length", str(size))
        self.end_headers()
        try:
            for _ in range(size):
                self.wfile.write(b"x")
                self.wfile.flush()
                time.sleep(delay)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def do_GET(self):
        parts = urllib.parse.urlsplit(self.path)
        if parts.path == "/big":
            self._reply(b"A" * 50000)
            return
        if parts.path == "/drip":
            self._drip(40, 0.2)
            return
        if parts.path == "/json":
            self._reply('{"ok": true}', "application/json")
            return
        pairs = urllib.parse.parse_qsl(parts.query, keep_blank_values=True)
        self._reply("<html>" + "".join(f"<i>{k}={v}</i>" for k, v in pairs) + "</html>")

    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        raw = self.rfile.read(length).decode()
        pairs = urllib.parse.parse_qsl(raw, keep_blank_values=True)
        ctype = self.headers.get("Content-Type", "")
        self._reply(f"<html><b>{ctype}</b>" + "".join(f"<i>{k}={v}</i>" for k, v in pairs) + "</html>")


@pytest.fixture
def echo_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), EchoHandler)
    t = threading.Thread(target=server.serve_forever, daemon=True)
    t.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def write_lines(tmp_path):
    def _write(name, lines):
        p = tmp_path / name
        p.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return str(p)
    return _write
