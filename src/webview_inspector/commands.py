"""Typed inspector commands.

Each command is a closed, typed request the front door can build from
validated parameters. A command renders to a JavaScript expression for webview
hosts (``render``) and, except for raw scripts, evaluates natively against the
in-process document model (``evaluate``). Parameters only ever reach a script
as JSON literals substituted for the template's placeholders.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from functools import lru_cache
from importlib.resources import files
from typing import Any, ClassVar, Union

from .document import Document
from .projection import project_dom
from .stylesheets import validate_classes
from .visibility import diagnose, inspect_element

QUERY_MODES = ("text", "html", "outer_html", "value", "attr")

_PLACEHOLDER = re.compile(r"\{([A-Z_]+)\}")


@lru_cache(maxsize=None)
def load_template(name: str) -> str:
    """Read a script template shipped in ``webview_inspector/scripts``."""
    return files("webview_inspector").joinpath("scripts", name).read_text("utf-8")


def render_template(name: str, **params: Any) -> str:
    """Substitute placeholders in one pass.

    Values are JSON encoded; ``CLASS_HELPERS`` and ``VISIBILITY_HELPERS`` pull
    in the shared helper snippets verbatim.
    """
    values = {key: json.dumps(value) for key, value in params.items()}
    values["CLASS_HELPERS"] = load_template("classes.js").rstrip()
    values["VISIBILITY_HELPERS"] = load_template("visibility.js").rstrip()

    def substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in values:
            raise KeyError(f"No value for placeholder {{{key}}} in {name}")
        return values[key]

    return _PLACEHOLDER.sub(substitute, load_template(name))


@dataclass(frozen=True)
class RawEval:
    """Caller-supplied script, evaluated verbatim."""

    kind: ClassVar[str] = "eval"
    script: str

    def render(self) -> str:
        return self.script


@dataclass(frozen=True)
class QueryElement:
    kind: ClassVar[str] = "query"
    selector: str
    mode: str = "text"
    attr: str | None = None
    all: bool = False

    def render(self) -> str:
        return render_template(
            "query.js",
            SELECTOR=self.selector,
            MODE=self.mode,
            ATTR=self.attr,
            ALL=self.all,
        )

    def evaluate(self, document: Document) -> dict[str, Any]:
        not_found = {"found": False, "error": f"Element not found: {self.selector}"}
        if self.all:
            elements = document.query_selector_all(self.selector)
            if not elements:
                return not_found
            return {"found": True, "values": [self._read(el) for el in elements]}
        el = document.query_selector(self.selector)
        if el is None:
            return not_found
        return {"found": True, "value": self._read(el)}

    def _read(self, el: Any) -> str | None:
        if self.mode == "text":
            return el.text_content
        if self.mode == "html":
            return el.inner_html
        if self.mode == "outer_html":
            return el.outer_html
        if self.mode == "value":
            return el.value
        return el.get_attribute(self.attr or "")


@dataclass(frozen=True)
class DomTree:
    kind: ClassVar[str] = "dom"
    selector: str | None = None
    max_depth: int = 10
    max_nodes: int = 500
    max_text_length: int = 200

    def render(self) -> str:
        return render_template(
            "dom.js",
            SELECTOR=self.selector,
            MAX_DEPTH=self.max_depth,
            MAX_NODES=self.max_nodes,
            MAX_TEXT_LENGTH=self.max_text_length,
        )

    def evaluate(self, document: Document) -> dict[str, Any]:
        return project_dom(
            document,
            selector=self.selector,
            max_depth=self.max_depth,
            max_nodes=self.max_nodes,
            max_text_length=self.max_text_length,
        )


@dataclass(frozen=True)
class InspectElement:
    kind: ClassVar[str] = "inspect"
    selector: str

    def render(self) -> str:
        return render_template("inspect.js", SELECTOR=self.selector)

    def evaluate(self, document: Document) -> dict[str, Any]:
        return inspect_element(document, self.selector)


@dataclass(frozen=True)
class ValidateClasses:
    kind: ClassVar[str] = "validate_classes"
    classes: tuple[str, ...]

    def render(self) -> str:
        return render_template("validate_classes.js", CLASSES=list(self.classes))

    def evaluate(self, document: Document) -> dict[str, Any]:
        return validate_classes(document, list(self.classes))


@dataclass(frozen=True)
class Diagnose:
    kind: ClassVar[str] = "diagnose"

    def render(self) -> str:
        return render_template("diagnose.js")

    def evaluate(self, document: Document) -> dict[str, Any]:
        return diagnose(document)


Command = Union[RawEval, QueryElement, DomTree, InspectElement, ValidateClasses, Diagnose]


def click_script(selector: str) -> str:
    """Script that clicks the first match; returns 'clicked' or 'element not found'."""
    return render_template("click.js", SELECTOR=selector)


def type_text_script(selector: str, text: str) -> str:
    """Script that sets an input's value and fires input/change events."""
    return render_template("type_text.js", SELECTOR=selector, TEXT=text)
