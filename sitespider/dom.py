"""Minimal DOM query capability used by Page: select by tag, read attributes and text."""

from typing import Iterable, Protocol

from bs4 import BeautifulSoup
from bs4.element import Tag

# lxml is the fastest bs4 tree builder and tolerates broken markup
PARSER = "lxml"


class Document(Protocol):
    """Anything that can enumerate elements by tag and read them."""

    def select_all(self, tag_name: str) -> Iterable[object]: ...

    def attribute(self, element: object, name: str) -> str | None: ...

    def text(self, element: object) -> str: ...


class SoupDocument:
    """Document backed by BeautifulSoup."""

    def __init__(self, html: str, parser: str = PARSER) -> None:
        self._soup = BeautifulSoup(html, parser)

    def select_all(self, tag_name: str) -> list[Tag]:
        return self._soup.find_all(tag_name)

    def attribute(self, element: Tag, name: str) -> str | None:
        value = element.get(name)
        if value is None:
            return None
        # Multi-valued attributes (class, rel) come back as lists
        if isinstance(value, list):
            return " ".join(value)
        return value

    def text(self, element: Tag) -> str:
        return element.get_text()


def parse(html: str) -> SoupDocument:
    return SoupDocument(html)
