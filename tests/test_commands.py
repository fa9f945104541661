"""Tests for typed commands: script rendering and native evaluation."""

from __future__ import annotations

import json

import pytest  # type: ignore[import-not-found]

from webview_inspector.commands import (
    Diagnose,
    DomTree,
    InspectElement,
    QueryElement,
    RawEval,
    ValidateClasses,
    click_script,
    load_template,
    render_template,
    type_text_script,
)
from webview_inspector.document import Document, StyleSheet, element


def _doc() -> Document:
    return Document(
        body=element(
            "body",
            element(
                "h1",
                "Hello ",
                element("b", "world", rect=(60, 0, 50, 40)),
                id="title",
                rect=(0, 0, 200, 40),
            ),
            element("li", "one", cls="item", rect=(0, 50, 200, 20)),
            element("li", "two", cls="item", rect=(0, 70, 200, 20)),
            element("input", id="name", value="Ada", placeholder="Name", rect=(0, 100, 200, 30)),
            rect=(0, 0, 1280, 800),
        ),
        style_sheets=[StyleSheet.from_css(".item { margin: 0; }")],
    )


# =============================================================================
# Rendering
# =============================================================================


class TestRendering:
    def test_raw_eval_is_verbatim(self) -> None:
        assert RawEval("document.title").render() == "document.title"

    def test_parameters_are_json_literals(self) -> None:
        script = QueryElement('a[title="x"]', "attr", "title").render()
        assert 'const selector = "a[title=\\"x\\"]";' in script
        assert 'const mode = "attr";' in script
        assert "const all = false;" in script

    def test_null_selector(self) -> None:
        script = DomTree(max_depth=3, max_nodes=20).render()
        assert "const selector = null;" in script
        assert "const MAX_DEPTH = 3;" in script
        assert "const MAX_NODES = 20;" in script

    def test_placeholders_in_input_are_not_expanded(self) -> None:
        script = InspectElement("{CLASS_HELPERS}").render()
        assert '"{CLASS_HELPERS}"' in script

    def test_helpers_are_inlined(self) -> None:
        script = Diagnose().render()
        assert "{CLASS_HELPERS}" not in script
        assert "{VISIBILITY_HELPERS}" not in script
        assert load_template("classes.js").strip().splitlines()[0] in script

    def test_validate_classes_list(self) -> None:
        script = ValidateClasses(("card", "p-4")).render()
        assert '["card", "p-4"]' in script

    def test_every_template_renders_as_expression(self) -> None:
        for script in (
            QueryElement("#x").render(),
            DomTree().render(),
            InspectElement("#x").render(),
            ValidateClasses(("a",)).render(),
            Diagnose().render(),
            click_script("#x"),
            type_text_script("#x", "hi"),
        ):
            assert script.lstrip().startswith("(() => {")
            assert script.rstrip().endswith("})()")

    def test_interaction_scripts(self) -> None:
        assert 'document.querySelector("#go")' in click_script("#go")
        script = type_text_script("#name", 'say "hi"')
        assert 'el.value = "say \\"hi\\"";' in script

    def test_unknown_placeholder(self) -> None:
        with pytest.raises(KeyError, match="MODE"):
            render_template("query.js", SELECTOR="#x")


# =============================================================================
# Native evaluation
# =============================================================================


class TestQueryElement:
    def test_text(self) -> None:
        assert QueryElement("#title").evaluate(_doc()) == {"found": True, "value": "Hello world"}

    def test_html_and_outer_html(self) -> None:
        doc = _doc()
        assert QueryElement("#title", "html").evaluate(doc)["value"] == "Hello <b>world</b>"
        assert (
            QueryElement("#title", "outer_html").evaluate(doc)["value"]
            == '<h1 id="title">Hello <b>world</b></h1>'
        )

    def test_value_and_attr(self) -> None:
        doc = _doc()
        assert QueryElement("#name", "value").evaluate(doc)["value"] == "Ada"
        assert QueryElement("#name", "attr", "placeholder").evaluate(doc)["value"] == "Name"
        assert QueryElement("#name", "attr", "missing").evaluate(doc)["value"] is None

    def test_all(self) -> None:
        result = QueryElement(".item", all=True).evaluate(_doc())
        assert result == {"found": True, "values": ["one", "two"]}

    def test_not_found(self) -> None:
        assert QueryElement("#nope").evaluate(_doc()) == {
            "found": False,
            "error": "Element not found: #nope",
        }
        assert QueryElement(".nope", all=True).evaluate(_doc())["found"] is False


class TestOtherCommands:
    def test_dom_tree(self) -> None:
        result = DomTree(selector="#title").evaluate(_doc())
        assert result["tree"]["tag"] == "h1"
        json.dumps(result)

    def test_inspect(self) -> None:
        assert InspectElement("#title").evaluate(_doc())["visible"] is True

    def test_validate_classes(self) -> None:
        result = ValidateClasses(("item", "ghost")).evaluate(_doc())
        assert result["summary"]["missingClasses"] == ["ghost"]

    def test_diagnose(self) -> None:
        assert Diagnose().evaluate(_doc())["healthy"] is True
