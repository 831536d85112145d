"""Fetched page value and outbound-link/title extraction."""

import html as _html
from dataclasses import dataclass, field
from functools import cached_property
from urllib.parse import urljoin, urlparse, urlsplit, urlunsplit

from sitespider.dom import Document, parse


def canonical_url(url: str) -> str:
    """
    Key form of a URL: fragment dropped, and an empty path on a URL with a
    host written as "/". Input that cannot be parsed is returned unchanged.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    path = parts.path or ("/" if parts.netloc else "")
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))


@dataclass(frozen=True)
class Page:
    """One successfully fetched and decoded HTML document. Never mutated."""

    url: str
    html: str = field(repr=False)

    @cached_property
    def document(self) -> Document:
        """Parsed DOM, built on first access."""
        return parse(self.html)

    @cached_property
    def title(self) -> str:
        """Text of the first <title>, entities decoded; empty string if absent."""
        doc = self.document
        for el in doc.select_all("title"):
            return doc.text(el)
        return ""

    def absolute_url(self, link: str | None) -> str | None:
        """Resolve link against this page's URL. None if it cannot form an absolute http-style URL."""
        if link is None:
            return None
        link = link.strip()
        if not link or link.startswith("#"):
            return None
        try:
            resolved = urljoin(self.url, link)
            parsed = urlparse(resolved)
        except ValueError:
            # e.g. unbalanced IPv6 brackets
            return None
        if not parsed.scheme or not parsed.netloc:
            return None
        return canonical_url(resolved)

    def links(self) -> list[str]:
        """Absolute URLs of every <a href> in document order; duplicates kept."""
        doc = self.document
        out: list[str] = []
        for a in doc.select_all("a"):
            url = self.absolute_url(doc.attribute(a, "href"))
            if url is not None:
                out.append(url)
        return out

    @staticmethod
    def html_decode(text: str) -> str:
        return _html.unescape(text)

    def __str__(self) -> str:
        return self.html


def find_outbound_links(page: Page) -> list[str]:
    """Default link-discovery strategy: every anchor on the page."""
    return page.links()


def same_site_links(page: Page) -> list[str]:
    """Link-discovery strategy that stays on the page's own host."""
    host = urlparse(page.url).netloc.lower()
    return [u for u in page.links() if urlparse(u).netloc.lower() == host]
