"""In-process document model.

A small stand-in for a browser DOM. Hosts that render from Python state (and
the playground) hand a ``Document`` to ``DocumentEvaluator`` so inspector
commands run natively instead of as JavaScript. Elements carry their resolved
style and bounding rectangle directly; nothing here does layout.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import Any, Iterator, Union

from .css_select import matches

DEFAULT_STYLE: dict[str, str] = {
    "display": "block",
    "visibility": "visible",
    "opacity": "1",
    "position": "static",
    "z-index": "auto",
}

# User-agent stylesheets give these display: none.
UNRENDERED_TAGS = frozenset({"script", "style", "noscript", "template", "link", "meta"})

VOID_TAGS = frozenset({"br", "hr", "img", "input", "link", "meta", "source", "wbr"})

_RULE = re.compile(r"([^{}]+)\{([^{}]*)\}")
_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)


class SecurityError(Exception):
    """Raised when reading the rules of a cross-origin style sheet."""


@dataclass
class Rect:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def top(self) -> float:
        return self.y

    @property
    def left(self) -> float:
        return self.x

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    def to_dict(self) -> dict[str, float]:
        return {
            "top": self.top,
            "left": self.left,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class Viewport:
    width: int = 1280
    height: int = 800

    def to_dict(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(eq=False)
class TextNode:
    text: str
    parent: Element | None = field(default=None, repr=False)


@dataclass(eq=False)
class Element:
    tag: str
    id: str | None = None
    classes: list[str] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)
    style: dict[str, str] = field(default_factory=dict)
    rect: Rect = field(default_factory=Rect)
    children: list[Node] = field(default_factory=list)
    parent: Element | None = field(default=None, repr=False)
    value: str | None = None

    def __post_init__(self) -> None:
        self.tag = self.tag.lower()
        for child in self.children:
            child.parent = self

    def append(self, *nodes: Node) -> Element:
        for node in nodes:
            node.parent = self
            self.children.append(node)
        return self

    @property
    def class_name(self) -> str:
        return " ".join(self.classes)

    @property
    def element_children(self) -> list[Element]:
        return [c for c in self.children if isinstance(c, Element)]

    @property
    def text_content(self) -> str:
        parts: list[str] = []
        for child in self.children:
            if isinstance(child, TextNode):
                parts.append(child.text)
            else:
                parts.append(child.text_content)
        return "".join(parts)

    @property
    def inner_html(self) -> str:
        return "".join(_to_html(child) for child in self.children)

    @property
    def outer_html(self) -> str:
        return _to_html(self)

    def get_attribute(self, name: str) -> str | None:
        if name == "id":
            return self.id
        if name == "class":
            return self.class_name if self.classes else None
        if name == "value" and self.value is not None:
            return self.value
        return self.attributes.get(name)

    def computed_style(self) -> dict[str, str]:
        if self.tag in UNRENDERED_TAGS:
            return {**DEFAULT_STYLE, "display": "none", **self.style}
        return {**DEFAULT_STYLE, **self.style}

    def iter_descendants(self) -> Iterator[Element]:
        """Yield descendant elements in document order."""
        for child in self.children:
            if isinstance(child, Element):
                yield child
                yield from child.iter_descendants()

    def iter_rendered(self) -> Iterator[Element]:
        """Like iter_descendants, skipping script, style and similar subtrees."""
        for child in self.element_children:
            if child.tag in UNRENDERED_TAGS:
                continue
            yield child
            yield from child.iter_rendered()

    def query_selector(self, selector: str) -> Element | None:
        for el in self.iter_descendants():
            if matches(el, selector):
                return el
        return None

    def query_selector_all(self, selector: str) -> list[Element]:
        return [el for el in self.iter_descendants() if matches(el, selector)]


Node = Union[Element, TextNode]


def _to_html(node: Node) -> str:
    if isinstance(node, TextNode):
        return html.escape(node.text, quote=False)
    attrs = []
    if node.id:
        attrs.append(f' id="{html.escape(node.id)}"')
    if node.classes:
        attrs.append(f' class="{html.escape(node.class_name)}"')
    for name, value in node.attributes.items():
        attrs.append(f' {name}="{html.escape(value)}"')
    open_tag = f"<{node.tag}{''.join(attrs)}>"
    if node.tag in VOID_TAGS:
        return open_tag
    return f"{open_tag}{node.inner_html}</{node.tag}>"


def element(
    tag: str,
    *children: Node | str,
    id: str | None = None,
    cls: str | None = None,
    style: dict[str, str] | None = None,
    rect: Rect | tuple[float, float, float, float] | None = None,
    value: str | None = None,
    **attributes: Any,
) -> Element:
    """Build an element; strings become text nodes, ``data_x`` becomes ``data-x``."""
    if isinstance(rect, tuple):
        rect = Rect(*rect)
    nodes: list[Node] = [TextNode(c) if isinstance(c, str) else c for c in children]
    return Element(
        tag=tag,
        id=id,
        classes=cls.split() if cls else [],
        attributes={k.replace("_", "-"): str(v) for k, v in attributes.items()},
        style=dict(style or {}),
        rect=rect or Rect(),
        children=nodes,
        value=value,
    )


@dataclass
class StyleRule:
    selector_text: str
    css_text: str = ""

    def __post_init__(self) -> None:
        if not self.css_text:
            self.css_text = f"{self.selector_text} {{ }}"


@dataclass
class StyleSheet:
    rules: list[StyleRule] = field(default_factory=list)
    href: str | None = None
    accessible: bool = True

    @property
    def css_rules(self) -> list[StyleRule]:
        if not self.accessible:
            raise SecurityError(f"Cannot access rules of {self.href or 'style sheet'}")
        return self.rules

    @classmethod
    def from_css(
        cls, css: str, href: str | None = None, accessible: bool = True
    ) -> StyleSheet:
        """Parse flat ``selector { declarations }`` blocks (no nested at-rules)."""
        rules = []
        for match in _RULE.finditer(_COMMENT.sub("", css)):
            selector = " ".join(match.group(1).split())
            body = " ".join(match.group(2).split())
            rules.append(StyleRule(selector, f"{selector} {{ {body} }}"))
        return cls(rules=rules, href=href, accessible=accessible)


@dataclass
class Document:
    body: Element
    viewport: Viewport = field(default_factory=Viewport)
    style_sheets: list[StyleSheet] = field(default_factory=list)

    def iter_elements(self) -> Iterator[Element]:
        yield self.body
        yield from self.body.iter_descendants()

    def query_selector(self, selector: str) -> Element | None:
        for el in self.iter_elements():
            if matches(el, selector):
                return el
        return None

    def query_selector_all(self, selector: str) -> list[Element]:
        return [el for el in self.iter_elements() if matches(el, selector)]
