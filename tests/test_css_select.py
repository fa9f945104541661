"""Tests for selector matching on the in-process document model."""

from __future__ import annotations

import pytest  # type: ignore[import-not-found]

from webview_inspector.css_select import SelectorSyntaxError, compile_selector, unescape_css
from webview_inspector.document import Document, element


def _page() -> Document:
    return Document(
        body=element(
            "body",
            element(
                "main",
                element("h1", "Title", cls="title big"),
                element(
                    "ul",
                    element("li", "one", cls="item", data_state="on"),
                    element("li", "two", cls="item hover:bg-red", lang="en-US"),
                    id="list",
                ),
                element("input", id="q", type="search", value="cats"),
                id="app",
            ),
            element("footer", element("a", "link", href="https://example.com/docs.html")),
        )
    )


def _texts(doc: Document, selector: str) -> list[str]:
    return [el.text_content for el in doc.query_selector_all(selector)]


class TestMatching:
    def test_type_id_class(self) -> None:
        doc = _page()
        assert doc.query_selector("h1") is not None
        assert doc.query_selector("#list") is not None
        assert _texts(doc, ".item") == ["one", "two"]
        assert _texts(doc, "h1.title.big") == ["Title"]
        assert doc.query_selector("h1.title.small") is None

    def test_tag_is_case_insensitive(self) -> None:
        assert _page().query_selector("H1") is not None

    def test_universal(self) -> None:
        assert len(_page().query_selector_all("ul > *")) == 2

    def test_descendant_and_child(self) -> None:
        doc = _page()
        assert _texts(doc, "main li") == ["one", "two"]
        assert _texts(doc, "#list > li") == ["one", "two"]
        assert _texts(doc, "main > li") == []
        assert _texts(doc, "body>main>ul>li.item") == ["one", "two"]

    def test_selector_list(self) -> None:
        assert _texts(_page(), "h1, footer a") == ["Title", "link"]

    def test_attributes(self) -> None:
        doc = _page()
        assert _texts(doc, "[data-state]") == ["one"]
        assert _texts(doc, '[data-state="on"]') == ["one"]
        assert _texts(doc, "[lang|=en]") == ["two"]
        assert _texts(doc, "[class~=item]") == ["one", "two"]
        assert _texts(doc, "a[href^='https://']") == ["link"]
        assert _texts(doc, "a[href$='.html']") == ["link"]
        assert _texts(doc, "a[href*=example]") == ["link"]
        assert doc.query_selector("input[type=search]") is not None

    def test_escaped_class(self) -> None:
        assert _texts(_page(), r".hover\:bg-red") == ["two"]

    def test_body_matches_itself(self) -> None:
        doc = _page()
        assert doc.query_selector("body") is doc.body


class TestSyntaxErrors:
    @pytest.mark.parametrize("selector", ["", "  ", "li:first-child", "h1 + ul", "h1 ~ ul", "> li", "ul >", "[", "##x"])
    def test_rejected(self, selector: str) -> None:
        with pytest.raises(SelectorSyntaxError):
            compile_selector(selector)


class TestUnescape:
    def test_char_escapes(self) -> None:
        assert unescape_css(r"hover\:bg") == "hover:bg"
        assert unescape_css(r"w-\[1px\]") == "w-[1px]"

    def test_hex_escape(self) -> None:
        assert unescape_css(r"\31 0") == "10"

    def test_plain(self) -> None:
        assert unescape_css("card") == "card"
