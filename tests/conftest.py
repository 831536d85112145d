"""Shared fixtures: an in-memory transport so crawl graphs are deterministic."""

from __future__ import annotations

import socket
import threading

import httpx
import pytest

from sitespider.config import SpiderConfig
from sitespider.errors import FetchCancelled
from sitespider.fetcher import FetchResponse


def html_page(*hrefs: str, title: str = "") -> str:
    links = "".join(f'<a href="{h}">{h}</a>' for h in hrefs)
    head = f"<title>{title}</title>" if title else ""
    return f"<html><head>{head}</head><body>{links}</body></html>"


class FakeTransport:
    """
    Serves canned responses keyed by URL (case-insensitive).

    A value may be an HTML string (200, utf-8), a FetchResponse, or an
    exception instance to raise. URLs in ``blocking`` wait until the
    cancellation signal or ``release`` is set.
    """

    def __init__(self, site: dict[str, object] | None = None) -> None:
        self.site = {k.lower(): v for k, v in (site or {}).items()}
        self.fetched: list[str] = []
        self.configured: list[SpiderConfig] = []
        self.blocking: set[str] = set()
        self.entered = threading.Semaphore(0)
        self.release = threading.Event()
        self.closed = False
        self._lock = threading.Lock()

    def configure(self, config: SpiderConfig) -> None:
        self.configured.append(config)

    def close(self) -> None:
        self.closed = True

    def fetch(self, url: str, cancel: threading.Event | None = None) -> FetchResponse:
        with self._lock:
            self.fetched.append(url)
        if url.lower() in self.blocking:
            self.entered.release()
            while not self.release.is_set():
                if cancel is not None and cancel.wait(0.01):
                    raise FetchCancelled(url)
        value = self.site.get(url.lower())
        if value is None:
            return FetchResponse(url=url, status_code=404)
        if isinstance(value, BaseException):
            raise value
        if isinstance(value, FetchResponse):
            return value
        return FetchResponse(
            url=url,
            status_code=200,
            headers=httpx.Headers({"Content-Type": "text/html; charset=utf-8"}),
            content=str(value).encode("utf-8"),
        )

    def fetch_count(self, url: str) -> int:
        with self._lock:
            return sum(1 for u in self.fetched if u.lower() == url.lower())


class Recorder:
    """Collects callback invocations from worker threads."""

    def __init__(self) -> None:
        self.pages = []
        self.errors: list[tuple[str, BaseException]] = []
        self._lock = threading.Lock()

    def on_page(self, page) -> None:
        with self._lock:
            self.pages.append(page)

    def on_error(self, url: str, exc: BaseException) -> None:
        with self._lock:
            self.errors.append((url, exc))

    @property
    def page_urls(self) -> list[str]:
        return sorted(p.url for p in self.pages)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def silent_server(monkeypatch: pytest.MonkeyPatch):
    """Base URL of a local server that accepts connections and never answers."""
    for var in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(var, raising=False)
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(16)
    srv.settimeout(0.1)
    held: list[socket.socket] = []
    stop = threading.Event()

    def accept_forever() -> None:
        while not stop.is_set():
            try:
                conn, _ = srv.accept()
            except OSError:
                continue
            held.append(conn)

    t = threading.Thread(target=accept_forever, daemon=True)
    t.start()
    yield f"http://127.0.0.1:{srv.getsockname()[1]}"
    stop.set()
    t.join(timeout=2)
    for conn in held:
        conn.close()
    srv.close()
