"""Tests for Page title/link extraction and the DOM capability."""

from __future__ import annotations

import pytest

from sitespider.dom import SoupDocument
from sitespider.page import Page, canonical_url, find_outbound_links, same_site_links

_HTML = """\
<!DOCTYPE html>
<html>
<head><title>Fish &amp; Chips</title></head>
<body>
  <a href="/b">B</a>
  <a href="c.html">C</a>
  <a href="https://other.example/d">D</a>
  <a href="/b">B again</a>
  <a href="/e#section">E</a>
  <a>no href</a>
</body>
</html>
"""


class TestTitle:
    def test_title_is_entity_decoded(self) -> None:
        assert Page("http://x/dir/a", _HTML).title == "Fish & Chips"

    def test_missing_title_is_empty(self) -> None:
        assert Page("http://x/", "<html><body>hi</body></html>").title == ""

    def test_first_title_wins(self) -> None:
        html = "<title>One</title><svg><title>Two</title></svg>"
        assert Page("http://x/", html).title == "One"

    def test_title_whitespace_is_kept(self) -> None:
        assert Page("http://x/", "<title>  Hi </title>").title == "  Hi "


class TestLinks:
    def test_document_order_resolution_and_duplicates(self) -> None:
        page = Page("http://x/dir/a", _HTML)
        assert page.links() == [
            "http://x/b",
            "http://x/dir/c.html",
            "https://other.example/d",
            "http://x/b",
            "http://x/e",
        ]

    def test_default_strategy_matches_links(self) -> None:
        page = Page("http://x/dir/a", _HTML)
        assert find_outbound_links(page) == page.links()

    def test_same_site_strategy(self) -> None:
        page = Page("http://x/dir/a", _HTML)
        assert "https://other.example/d" not in same_site_links(page)
        assert same_site_links(page)[0] == "http://x/b"

    def test_unresolvable_hrefs_are_dropped(self) -> None:
        html = """
          <a href="">empty</a>
          <a href="   ">blank</a>
          <a href="#top">fragment</a>
          <a href="http://[broken">bad ipv6</a>
          <a href="mailto:me@example.com">mail</a>
          <a href="javascript:void(0)">js</a>
          <a href="/ok">ok</a>
        """
        assert Page("http://x/a", html).links() == ["http://x/ok"]

    def test_broken_markup_still_yields_links(self) -> None:
        html = '<div><a href="/one">one<p><a href="/two">two</div></p>'
        assert Page("http://x/", html).links() == ["http://x/one", "http://x/two"]


class TestAbsoluteUrl:
    @pytest.mark.parametrize(
        "link, expected",
        [
            ("../up", "http://x/up"),
            ("//cdn.example/lib.js", "http://cdn.example/lib.js"),
            ("?q=1", "http://x/dir/a?q=1"),
            (None, None),
            ("", None),
        ],
    )
    def test_resolution(self, link: str | None, expected: str | None) -> None:
        assert Page("http://x/dir/a", "").absolute_url(link) == expected


class TestCanonicalUrl:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("http://x/a#top", "http://x/a"),
            ("http://x", "http://x/"),
            ("http://x#frag", "http://x/"),
            ("http://x/a?q=1#f", "http://x/a?q=1"),
            ("http://x/A", "http://x/A"),
            ("not a url", "not a url"),
            ("http://[oops", "http://[oops"),
        ],
    )
    def test_canonical_form(self, url: str, expected: str) -> None:
        assert canonical_url(url) == expected


class TestPageValue:
    def test_is_immutable(self) -> None:
        page = Page("http://x/", "<p>hi</p>")
        with pytest.raises(AttributeError):
            page.url = "http://y/"  # type: ignore[misc]

    def test_str_is_html(self) -> None:
        assert str(Page("http://x/", "<p>hi</p>")) == "<p>hi</p>"

    def test_html_decode(self) -> None:
        assert Page.html_decode("&lt;b&gt; &amp; &#233;") == "<b> & é"


class TestSoupDocument:
    def test_attribute_and_text(self) -> None:
        doc = SoupDocument('<a href="/x" class="p q">Go <b>now</b></a>')
        (a,) = doc.select_all("a")
        assert doc.attribute(a, "href") == "/x"
        assert doc.attribute(a, "class") == "p q"
        assert doc.attribute(a, "missing") is None
        assert doc.text(a) == "Go now"
