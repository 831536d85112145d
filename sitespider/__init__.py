"""Recursive concurrent site crawler."""

from importlib.metadata import PackageNotFoundError, version

from sitespider.config import SpiderConfig
from sitespider.errors import FetchCancelled, HTTPStatusFailure, SpiderBusyError, SpiderError
from sitespider.fetcher import Fetcher, FetchResponse
from sitespider.history import History
from sitespider.page import Page, find_outbound_links, same_site_links
from sitespider.progress import Progress
from sitespider.spider import Spider, Traversal, crawl

try:
    __version__ = version("sitespider")
except PackageNotFoundError:
    __version__ = "0.0.0+dev"

__all__ = [
    "FetchCancelled",
    "FetchResponse",
    "Fetcher",
    "HTTPStatusFailure",
    "History",
    "Page",
    "Progress",
    "Spider",
    "SpiderBusyError",
    "SpiderConfig",
    "SpiderError",
    "Traversal",
    "crawl",
    "find_outbound_links",
    "same_site_links",
]
