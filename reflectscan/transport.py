from __future__ import annotations

import logging
import socket
import threading
import time
import urllib.parse
from dataclasses import dataclass
from typing import List, Optional, Sequence

import requests
import urllib3
from requests.adapters import HTTPAdapter

from reflectscan.config import DEFAULT_MAX_BODY
from reflectscan.errors import TransportError
from reflectscan.payload import Payload

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:15.0) Gecko/20100101 Firefox/15.0.1"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
READ_CHUNK = 16 * 1024


@dataclass
class Response:
    status_code: int
    body: bytes
    content_type: str


# --------------------------------------------------------------------------------------
# Request building
# --------------------------------------------------------------------------------------

def build_get_url(url: str, payloads: Sequence[Payload]) -> str:
    """Overwrite the named query parameters, keep every other segment byte for byte."""
    parts = urllib.parse.urlsplit(url)
    values = {p.parameter: p.value for p in payloads}

    segments: List[str] = []
    seen = set()
    for seg in parts.query.split("&"):
        if not seg:
            continue
        key = urllib.parse.unquote_plus(seg.split("=", 1)[0])
        if key in values:
            if key in seen:
                continue
            seen.add(key)
            seg = urllib.parse.urlencode([(key, values[key])])
        segments.append(seg)
    for k, v in values.items():
        if k not in seen:
            segments.append(urllib.parse.urlencode([(k, v)]))

    return urllib.parse.urlunsplit(parts._replace(query="&".join(segments)))


def build_form_body(payloads: Sequence[Payload]) -> str:
    return "&".join(
        f"{urllib.parse.quote_plus(p.parameter)}={urllib.parse.quote_plus(p.value)}" for p in payloads
    )


def normalize_proxy(proxy: str) -> str:
    if "://" not in proxy:
        return "http://" + proxy
    return proxy


# --------------------------------------------------------------------------------------
# Client
# --------------------------------------------------------------------------------------

class HTTPClient:
    """requests-based transport shared by every worker.

    The connection pool blocks once max_conns connections to a host are in use,
    which caps per-host concurrency. Bodies are read in chunks and truncated at
    max_body bytes.
    """

    def __init__(self, timeout: float, proxy: Optional[str] = None, insecure: bool = False, max_conns: int = 10,
                 retries: int = 0, backoff: float = 0.5, max_body: int = DEFAULT_MAX_BODY,
                 cancel: Optional[threading.Event] = None):
        self.session = requests.Session()
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff
        self.max_body = max_body
        self.cancel = cancel or threading.Event()
        self.proxy = normalize_proxy(proxy) if proxy else None
        # intercepting proxies re-sign TLS traffic
        self.insecure = insecure or bool(self.proxy)

        adapter = HTTPAdapter(pool_connections=max_conns, pool_maxsize=max_conns, pool_block=True, max_retries=0)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        self.session.headers.update({
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "User-Agent": DEFAULT_USER_AGENT,
        })

        if self.proxy:
            self.session.proxies.update({"http": self.proxy, "https": self.proxy})
        if self.insecure:
            self.session.verify = False
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def close(self):
        self.session.close()

    def __enter__(self) -> "HTTPClient":
        return self

    def __exit__(self, *exc):
        self.close()

    def _read_body(self, r: requests.Response, deadline: float) -> bytes:
        """Read at most max_body bytes, giving up once the request deadline passes.

        The read timeout only bounds each socket read, so a watchdog shuts the
        socket down at the deadline to unblock a server that drips bytes.
        """
        expired = threading.Event()

        def expire():
            expired.set()
            conn = r.raw.connection
            sock = getattr(conn, "sock", None) if conn is not None else None
            if sock is not None:
                try:
                    sock.shutdown(socket.SHUT_RDWR)
                except OSError as e:
                    logger.debug("shutdown of %s failed: %s", r.url, e)

        watchdog = threading.Timer(max(0.0, deadline - time.monotonic()), expire)
        watchdog.daemon = True
        watchdog.start()

        buf = bytearray()
        try:
            for chunk in r.iter_content(READ_CHUNK):
                buf.extend(chunk)
                if len(buf) >= self.max_body:
                    logger.debug("body of %s truncated at %d bytes", r.url, self.max_body)
                    del buf[self.max_body:]
                    break
        except (requests.RequestException, OSError) as e:
            if expired.is_set():
                raise requests.Timeout(f"reading {r.url} exceeded {self.timeout:g}s") from e
            raise
        finally:
            watchdog.cancel()

        if expired.is_set():
            raise requests.Timeout(f"reading {r.url} exceeded {self.timeout:g}s")
        return bytes(buf)

    def _send(self, method: str, url: str, payloads: Sequence[Payload]) -> Response:
        deadline = time.monotonic() + self.timeout
        if method == "GET":
            r = self.session.get(build_get_url(url, payloads), timeout=self.timeout, stream=True,
                                 allow_redirects=False)
        else:
            r = self.session.post(url, data=build_form_body(payloads), timeout=self.timeout, stream=True,
                                  allow_redirects=False, headers={"Content-Type": FORM_CONTENT_TYPE})
        try:
            body = self._read_body(r, deadline)
        finally:
            r.close()
        return Response(status_code=r.status_code, body=body, content_type=r.headers.get("Content-Type", ""))

    def request(self, method: str, url: str, payloads: Sequence[Payload]) -> Response:
        """Issue one probe, re-sending up to `retries` times on transport errors only."""
        method = method.upper()
        if method not in ("GET", "POST"):
            raise ValueError(f"unsupported method {method!r}")

        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return self._send(method, url, payloads)
            except requests.RequestException as e:
                if attempt == attempts:
                    raise TransportError(f"{method} {url}: {e}") from e
                logger.debug("attempt %d/%d for %s %s failed: %s", attempt, attempts, method, url, e)
                if self.cancel.wait(self.backoff * attempt):
                    raise TransportError(f"{method} {url}: cancelled during retry ({e})") from e
        # should never reach
        raise RuntimeError("unreachable")
