"""Exceptions raised or reported by the crawler."""


class SpiderError(Exception):
    """Base class for crawler errors."""


class SpiderBusyError(SpiderError):
    """Raised by Spider.run when a run is already in progress on the instance."""


class FetchCancelled(SpiderError):
    """The cancellation signal was set before or while fetching url."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Fetch cancelled: {url}")
        self.url = url


class HTTPStatusFailure(SpiderError):
    """Server answered with a non-2xx status."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"HTTP {status_code} for url '{url}'")
        self.url = url
        self.status_code = status_code
