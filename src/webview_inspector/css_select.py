"""CSS selector matching for the in-process document model.

Supports the subset inspector commands need: type and universal selectors,
``#id``, ``.class``, attribute selectors (``[a]``, ``[a=v]``, ``[a~=v]``,
``[a^=v]``, ``[a$=v]``, ``[a*=v]``, ``[a|=v]``), descendant and child
combinators, and selector lists. Anything else (pseudo-classes, sibling
combinators) raises ``SelectorSyntaxError`` the way ``querySelector`` throws
on a selector it cannot parse.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .document import Element

_ESCAPE = r"\\(?:[0-9a-fA-F]{1,6}\s?|.)"
_IDENT = rf"-?(?:[_a-zA-Z]|[^\x00-\x7f]|{_ESCAPE})(?:[_a-zA-Z0-9-]|[^\x00-\x7f]|{_ESCAPE})*"

_PART = re.compile(
    rf"""
    (?P<tag>\*|{_IDENT})
    |\#(?P<id>(?:[_a-zA-Z0-9-]|[^\x00-\x7f]|{_ESCAPE})+)
    |\.(?P<cls>{_IDENT})
    |\[\s*(?P<attr>{_IDENT})\s*
        (?:(?P<op>[~|^$*]?=)\s*
            (?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>{_IDENT}))\s*
        )?\]
    """,
    re.VERBOSE,
)

_HEX_ESCAPE = re.compile(r"\\([0-9a-fA-F]{1,6})\s?")
_CHAR_ESCAPE = re.compile(r"\\(.)")


class SelectorSyntaxError(ValueError):
    """Raised for selectors outside the supported subset."""


def unescape_css(value: str) -> str:
    """Resolve CSS escapes (``\\:``, ``\\[``, ``\\31 0``) in an identifier."""
    if "\\" not in value:
        return value
    value = _HEX_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), value)
    return _CHAR_ESCAPE.sub(lambda m: m.group(1), value)


@dataclass
class _Compound:
    tag: str | None = None
    ids: list[str] = field(default_factory=list)
    classes: list[str] = field(default_factory=list)
    attrs: list[tuple[str, str | None, str | None]] = field(default_factory=list)
    empty: bool = True

    def matches(self, el: Element) -> bool:
        if self.tag is not None and el.tag != self.tag:
            return False
        if any(el.id != ident for ident in self.ids):
            return False
        if any(cls not in el.classes for cls in self.classes):
            return False
        for name, op, expected in self.attrs:
            actual = el.get_attribute(name)
            if actual is None or not _attr_matches(actual, op, expected):
                return False
        return True


def _attr_matches(actual: str, op: str | None, expected: str | None) -> bool:
    if op is None or expected is None:
        return True
    if op == "=":
        return actual == expected
    if op == "~=":
        return expected in actual.split()
    if op == "|=":
        return actual == expected or actual.startswith(expected + "-")
    if not expected:
        return False
    if op == "^=":
        return actual.startswith(expected)
    if op == "$=":
        return actual.endswith(expected)
    return expected in actual


_Complex = tuple[tuple[str | None, _Compound], ...]


def _split_list(selector: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    start = 0
    i = 0
    while i < len(selector):
        ch = selector[i]
        if ch == "\\":
            i += 2
            continue
        if quote:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append(selector[start:i])
            start = i + 1
        i += 1
    parts.append(selector[start:])
    return parts


def _parse_complex(text: str) -> _Complex:
    parts: list[tuple[str | None, _Compound]] = []
    combinator: str | None = None
    compound: _Compound | None = None
    pos = 0
    while pos < len(text):
        ch = text[pos]
        if ch.isspace():
            pos += 1
            if compound is not None:
                parts.append((combinator, compound))
                compound = None
                combinator = " "
            continue
        if ch == ">":
            if compound is not None:
                parts.append((combinator, compound))
                compound = None
            if not parts:
                raise SelectorSyntaxError(f"'{text.strip()}' is not a valid selector")
            combinator = ">"
            pos += 1
            continue
        if ch in "+~:":
            raise SelectorSyntaxError(
                f"Unsupported selector syntax {ch!r} in '{text.strip()}'"
            )
        match = _PART.match(text, pos)
        if match is None:
            raise SelectorSyntaxError(f"'{text.strip()}' is not a valid selector")
        if compound is None:
            compound = _Compound()
        if match.group("tag"):
            if not compound.empty:
                raise SelectorSyntaxError(f"'{text.strip()}' is not a valid selector")
            tag = match.group("tag")
            compound.tag = None if tag == "*" else unescape_css(tag).lower()
        elif match.group("id"):
            compound.ids.append(unescape_css(match.group("id")))
        elif match.group("cls"):
            compound.classes.append(unescape_css(match.group("cls")))
        else:
            value = match.group("dq")
            if value is None:
                value = match.group("sq")
            if value is None and match.group("bare") is not None:
                value = unescape_css(match.group("bare"))
            compound.attrs.append(
                (unescape_css(match.group("attr")).lower(), match.group("op"), value)
            )
        compound.empty = False
        pos = match.end()

    if compound is not None:
        parts.append((combinator, compound))
    elif combinator == ">" or not parts:
        raise SelectorSyntaxError(f"'{text.strip()}' is not a valid selector")
    return tuple(parts)


@lru_cache(maxsize=256)
def compile_selector(selector: str) -> tuple[_Complex, ...]:
    """Parse a selector list into right-to-left matchable parts."""
    if not selector.strip():
        raise SelectorSyntaxError("'' is not a valid selector")
    return tuple(_parse_complex(part) for part in _split_list(selector))


def _match_from(el: Element, parts: _Complex, idx: int) -> bool:
    combinator, compound = parts[idx]
    if not compound.matches(el):
        return False
    if idx == 0:
        return True
    if combinator == ">":
        return el.parent is not None and _match_from(el.parent, parts, idx - 1)
    ancestor = el.parent
    while ancestor is not None:
        if _match_from(ancestor, parts, idx - 1):
            return True
        ancestor = ancestor.parent
    return False


def matches(el: Element, selector: str) -> bool:
    """Return True if ``el`` matches any selector in the list."""
    return any(
        _match_from(el, parts, len(parts) - 1) for parts in compile_selector(selector)
    )
