"""Recursive concurrent crawler: fetch, decode, extract links, fan out, fan in."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable

from sitespider.config import SpiderConfig
from sitespider.encoding import decode
from sitespider.errors import FetchCancelled, HTTPStatusFailure, SpiderBusyError
from sitespider.fetcher import Fetcher, Transport
from sitespider.history import History
from sitespider.page import Page, canonical_url, find_outbound_links
from sitespider.progress import Progress

log = logging.getLogger(__name__)

PageHandler = Callable[[Page], None]
ErrorHandler = Callable[[str, BaseException], None]
LinkFinder = Callable[[Page], Iterable[str]]


def _ignore_error(url: str, exc: BaseException) -> None:
    pass


def _ignore_page(page: Page) -> None:
    pass


@dataclass
class Traversal:
    """
    Caller hooks for a crawl.

    on_page runs once per successfully fetched page, on_error once per failed
    fetch (or failed link extraction), find_links picks the URLs to follow.
    All three may run concurrently from worker threads.
    """

    on_page: PageHandler = _ignore_page
    on_error: ErrorHandler = _ignore_error
    find_links: LinkFinder = find_outbound_links


class _Branch:
    """
    Wait-group node for the subtree rooted at one URL. Holds one unit for its
    own work plus one per child; reaching zero marks it done and releases one
    unit of its parent.
    """

    __slots__ = ("_parent", "_pending", "_lock", "done")

    def __init__(self, parent: "_Branch | None" = None) -> None:
        self._parent = parent
        self._pending = 1
        self._lock = threading.Lock()
        self.done = threading.Event()
        if parent is not None:
            parent._add()

    def _add(self) -> None:
        with self._lock:
            self._pending += 1

    def finish(self) -> None:
        # Iterative so very deep link chains don't hit the recursion limit
        node: _Branch | None = self
        while node is not None:
            with node._lock:
                node._pending -= 1
                last = node._pending == 0
            if not last:
                return
            node.done.set()
            node = node._parent


class Spider:
    """
    Crawls everything reachable from a seed URL, fetching each distinct URL
    (case-insensitive) at most once per run.

    Every newly discovered link gets its own task on a shared thread pool;
    a page's branch finishes only when all its children have. One run at a
    time per instance.
    """

    def __init__(
        self,
        traversal: Traversal | None = None,
        config: SpiderConfig | None = None,
        *,
        transport: Transport | None = None,
    ) -> None:
        self.traversal = traversal or Traversal()
        self.config = config or SpiderConfig()
        self._transport: Transport = transport if transport is not None else Fetcher()
        self._history = History()
        self._progress = Progress()
        self._running = False
        self._run_lock = threading.Lock()

    @property
    def progress(self) -> Progress:
        return self._progress

    @property
    def history(self) -> History:
        return self._history

    @property
    def running(self) -> bool:
        return self._running

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "Spider":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def run(self, seed_url: str, cancel: threading.Event | None = None) -> None:
        """
        Crawl from seed_url and return once every reachable branch has been
        attempted, or once cancel is set and in-flight branches have unwound.
        Raises SpiderBusyError without touching state if already running.
        """
        with self._run_lock:
            if self._running:
                raise SpiderBusyError("A crawl is already running on this Spider")
            self._running = True
        if cancel is None:
            cancel = threading.Event()
        try:
            self._history.reset()
            self._progress.reset()
            self._transport.configure(self.config)
            log.info("Crawl started at %s", seed_url)
            root = _Branch()
            with ThreadPoolExecutor(
                max_workers=self.config.connection_limit,
                thread_name_prefix="sitespider",
            ) as executor:
                self._schedule(seed_url, root, cancel, executor)
                root.finish()
                self._wait(root, cancel)
            log.info("Crawl finished: %s", self._progress)
        finally:
            with self._run_lock:
                self._running = False

    def _wait(self, root: _Branch, cancel: threading.Event) -> None:
        # Short waits keep the calling thread responsive to Ctrl-C
        try:
            while not root.done.wait(0.1):
                pass
        except KeyboardInterrupt:
            log.warning("Interrupted; cancelling %d outstanding fetches", self._progress.outstanding)
            cancel.set()
            root.done.wait()
            raise

    def _schedule(
        self,
        url: str | None,
        parent: _Branch,
        cancel: threading.Event,
        executor: ThreadPoolExecutor,
    ) -> None:
        """Claim url (in canonical form) and submit its branch; no-op if None, already claimed, or cancelled."""
        if url is None or cancel.is_set():
            return
        url = canonical_url(url)
        if not self._history.claim(url):
            return
        self._progress.raise_created()
        branch = _Branch(parent)
        executor.submit(self._crawl, url, branch, cancel, executor)

    def _crawl(
        self,
        url: str,
        branch: _Branch,
        cancel: threading.Event,
        executor: ThreadPoolExecutor,
    ) -> None:
        try:
            page = self._fetch_page(url, cancel)
            if page is None:
                return
            try:
                links = list(self.traversal.find_links(page))
            except Exception as e:
                log.info("Link extraction failed for %s: %s", url, e)
                self._report_error(url, e)
                links = []
            for link in links:
                if cancel.is_set():
                    break
                self._schedule(link, branch, cancel, executor)
        except Exception:
            # Nothing above should escape; keep fan-in intact if it does
            log.exception("Unexpected error crawling %s", url)
        finally:
            branch.finish()

    def _fetch_page(self, url: str, cancel: threading.Event) -> Page | None:
        """Fetch and decode url. Completes the progress unit claimed for url exactly once."""
        try:
            if cancel.is_set():
                raise FetchCancelled(url)
            resp = self._transport.fetch(url, cancel)
            if not resp.ok:
                raise HTTPStatusFailure(url, resp.status_code)
            page = Page(url, decode(resp.content, resp.content_type))
        except Exception as e:
            self._progress.raise_completed()
            log.info("Error %s: %s", url, e)
            self._report_error(url, e)
            return None
        self._progress.raise_completed()
        try:
            self.traversal.on_page(page)
        except Exception as e:
            log.info("Page handler failed for %s: %s", url, e)
            self._report_error(url, e)
        return page

    def _report_error(self, url: str, exc: BaseException) -> None:
        try:
            self.traversal.on_error(url, exc)
        except Exception:
            log.exception("Error handler raised for %s", url)


def crawl(
    seed_url: str,
    on_page: PageHandler = _ignore_page,
    *,
    on_error: ErrorHandler = _ignore_error,
    find_links: LinkFinder = find_outbound_links,
    config: SpiderConfig | None = None,
    cancel: threading.Event | None = None,
) -> Progress:
    """Standalone crawl (creates a temporary Spider). Returns the final progress."""
    traversal = Traversal(on_page=on_page, on_error=on_error, find_links=find_links)
    with Spider(traversal, config) as spider:
        spider.run(seed_url, cancel)
        return spider.progress
