"""HTTP transport for the crawler: pooled GETs with timeouts, default headers and cancellation."""

import logging
import threading
import time
from dataclasses import dataclass, field
from email.utils import parsedate_to_datetime
from typing import Mapping, Protocol

import httpx

from sitespider.config import DEFAULT_CONNECTION_LIMIT, DEFAULT_TIMEOUT, SpiderConfig
from sitespider.errors import FetchCancelled

log = logging.getLogger(__name__)

# Browser-like UA to reduce 403 from sites that block scrapers
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

RETRY_BACKOFF = 2.0  # multiplicative factor between retry waits
BASE_WAIT_5XX = 5.0  # base wait in seconds before retrying a 5xx
RETRYABLE_STATUS = (429, 500, 502, 503, 504)
CHUNK_SIZE = 65536
CANCEL_POLL_INTERVAL = 0.05  # how often a waiting caller checks its cancel event


def _retry_after_seconds(header: str | None) -> float | None:
    """Seconds a Retry-After header asks for (delta-seconds or HTTP-date); None if absent, bad or past."""
    value = (header or "").strip()
    if value.isdigit():
        return float(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    remaining = when.timestamp() - time.time()
    if remaining <= 0:
        return None
    return max(1.0, remaining)


def _backoff(status: int, attempt: int, retry_after: str | None) -> float:
    # Server's Retry-After wins; otherwise exponential, from a higher base for 5xx
    requested = _retry_after_seconds(retry_after)
    if requested is not None:
        return requested
    base = BASE_WAIT_5XX if status >= 500 else 1.0
    return base * RETRY_BACKOFF**attempt


def _cancelled(cancel: threading.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


@dataclass
class FetchResponse:
    """Status, headers and raw body of one GET."""

    url: str
    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> str | None:
        # Last value wins when the header is repeated
        values = self.headers.get_list("content-type")
        return values[-1] if values else None


class Transport(Protocol):
    """What the spider needs from an HTTP layer."""

    def configure(self, config: SpiderConfig) -> None: ...

    def fetch(self, url: str, cancel: threading.Event | None = None) -> FetchResponse: ...

    def close(self) -> None: ...


class Fetcher:
    """HTTP fetcher with connection pooling. One instance is shared by all crawl threads."""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        headers: Mapping[str, str] | None = None,
        connection_limit: int = DEFAULT_CONNECTION_LIMIT,
        verify: bool = True,
        retries: int = 0,
    ) -> None:
        self._timeout = timeout
        self._headers = httpx.Headers({**DEFAULT_HEADERS})
        self._headers.update(headers or {})
        self._connection_limit = connection_limit
        self._verify = verify
        self._retries = retries
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()

    @property
    def headers(self) -> httpx.Headers:
        return self._headers

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def connection_limit(self) -> int:
        return self._connection_limit

    def configure(self, config: SpiderConfig) -> None:
        """Apply config; the pooled client is rebuilt on next use. Not safe during a run."""
        with self._client_lock:
            self._timeout = config.timeout
            self._headers = httpx.Headers({**DEFAULT_HEADERS})
            self._headers.update(config.headers)
            self._connection_limit = config.connection_limit
            self._verify = config.verify
            self._retries = config.retries
            self._close_client()

    def _get_client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.Client(
                    follow_redirects=True,
                    timeout=self._timeout,
                    headers=self._headers,
                    verify=self._verify,
                    limits=httpx.Limits(
                        max_connections=self._connection_limit,
                        max_keepalive_connections=min(20, self._connection_limit),
                    ),
                )
            return self._client

    def _close_client(self) -> None:
        if self._client is not None and not self._client.is_closed:
            self._client.close()
        self._client = None

    def close(self) -> None:
        with self._client_lock:
            self._close_client()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def fetch(self, url: str, cancel: threading.Event | None = None) -> FetchResponse:
        """
        GET url. Returns the response whatever its status; the body is only
        read for 2xx. Retries 429/5xx up to the configured count, honoring
        Retry-After. Lets httpx.RequestError propagate.

        With a cancel event the request runs on a helper thread and this call
        raises FetchCancelled as soon as the event is set, even while connect
        or read is blocked. The abandoned request ends on its own timeout.
        """
        if cancel is None:
            return self._fetch(url, None)
        if cancel.is_set():
            raise FetchCancelled(url)

        outcome: list = []
        done = threading.Event()

        def request() -> None:
            try:
                outcome.append(self._fetch(url, cancel))
            except BaseException as e:
                outcome.append(e)
            finally:
                done.set()

        threading.Thread(target=request, name="sitespider-fetch", daemon=True).start()
        while not done.wait(CANCEL_POLL_INTERVAL):
            if cancel.is_set():
                log.debug("Abandoning in-flight GET %s", url)
                raise FetchCancelled(url)
        result = outcome[0]
        if isinstance(result, BaseException):
            raise result
        return result

    def _fetch(self, url: str, cancel: threading.Event | None) -> FetchResponse:
        attempt = 0
        while True:
            if _cancelled(cancel):
                raise FetchCancelled(url)
            log.debug("GET %s (try %d)", url, attempt + 1)
            client = self._get_client()
            with client.stream("GET", url) as resp:
                code = resp.status_code
                if code not in RETRYABLE_STATUS or attempt >= self._retries:
                    content = self._read_body(resp, url, cancel) if resp.is_success else b""
                    return FetchResponse(
                        url=url,
                        status_code=code,
                        headers=resp.headers,
                        content=content,
                    )
                wait = _backoff(code, attempt, resp.headers.get("retry-after"))
            log.info("HTTP %d for %s; waiting %.0fs then retrying", code, url, wait)
            if cancel is not None:
                if cancel.wait(wait):
                    raise FetchCancelled(url)
            else:
                time.sleep(wait)
            attempt += 1

    def _read_body(
        self, resp: httpx.Response, url: str, cancel: threading.Event | None
    ) -> bytes:
        chunks: list[bytes] = []
        for chunk in resp.iter_bytes(chunk_size=CHUNK_SIZE):
            if _cancelled(cancel):
                raise FetchCancelled(url)
            chunks.append(chunk)
        return b"".join(chunks)
