"""Style-sheet scanning: class-token index, class validation and the
dynamic utility-class heuristic.

The heuristic exists so diagnosis does not flag classes produced at build or
run time by utility frameworks (``w-[37px]``, ``p-4``, ``hover:bg-red-500``)
as missing when no static rule spells them out. It is best-effort:

- false negatives: a genuinely undefined class that merely looks generated
  (``p-4`` with no utility CSS loaded at all) is not reported;
- false positives: generated classes that follow none of the patterns
  (custom plugin names, ``prose``, ``container``) are still reported.

The class validator reports the heuristic as a hint (``dynamic``) and keeps
strict found/missing semantics.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .css_select import unescape_css
from .document import Document, SecurityError

logger = logging.getLogger(__name__)

RULE_EXCERPT_LENGTH = 200

_CLASS_TOKEN = re.compile(r"\.((?:[\w-]|\\[0-9a-fA-F]{1,6}\s?|\\[^\n0-9a-fA-F])+)")

_VARIANT_PREFIX = re.compile(
    r"^(?:(?:hover|focus|focus-within|focus-visible|active|visited|disabled|"
    r"checked|first|last|odd|even|group-hover|peer-hover|placeholder|before|"
    r"after|dark|motion-safe|motion-reduce|print|sm|md|lg|xl|2xl):)+"
)
_ARBITRARY_VALUE = re.compile(r"\[[^\]]+\]")
_SCALE_NAME = re.compile(
    r"^-?[a-z]+(?:-[a-z]+)*-(?:\d+(?:\.\d+)?|\d+/\d+|px|full|auto|screen|"
    r"none|xs|sm|md|lg|xl|\dxl)$"
)


def extract_class_tokens(selector_text: str) -> list[str]:
    """Return class names in a selector, with CSS escapes resolved."""
    return [unescape_css(m.group(1)) for m in _CLASS_TOKEN.finditer(selector_text)]


def looks_dynamic(class_name: str) -> bool:
    """Best-effort guess that a class is generated by a utility framework."""
    if _ARBITRARY_VALUE.search(class_name):
        return True
    stripped = _VARIANT_PREFIX.sub("", class_name)
    if stripped != class_name:
        return True
    return bool(_SCALE_NAME.match(stripped))


def _excerpt(css_text: str) -> str:
    first_line = css_text.strip().splitlines()[0] if css_text.strip() else ""
    return first_line[:RULE_EXCERPT_LENGTH]


@dataclass
class ClassIndex:
    """Every class token found in the document's accessible style sheets."""

    rules: dict[str, str] = field(default_factory=dict)
    skipped_sheets: int = 0

    def __contains__(self, class_name: str) -> bool:
        return class_name in self.rules

    @classmethod
    def scan(cls, document: Document) -> ClassIndex:
        index = cls()
        for sheet in document.style_sheets:
            try:
                rules = sheet.css_rules
            except SecurityError as e:
                logger.debug(f"Skipping style sheet: {e}")
                index.skipped_sheets += 1
                continue
            for rule in rules:
                for token in extract_class_tokens(rule.selector_text):
                    index.rules.setdefault(token, _excerpt(rule.css_text))
        return index

    def missing(self, classes: list[str]) -> list[str]:
        """Classes absent from the index and not explained by the heuristic."""
        return [c for c in classes if c not in self and not looks_dynamic(c)]


def validate_classes(document: Document, classes: list[str]) -> dict[str, Any]:
    """Report per-class availability against the accessible style sheets."""
    index = ClassIndex.scan(document)
    results: dict[str, dict[str, Any]] = {}
    for cls in classes:
        found = cls in index
        results[cls] = {
            "found": found,
            "rule": index.rules[cls] if found else None,
            "dynamic": looks_dynamic(cls),
        }
    missing = [c for c in dict.fromkeys(classes) if not results[c]["found"]]
    return {
        "results": results,
        "summary": {
            "total": len(results),
            "found": len(results) - len(missing),
            "missing": len(missing),
            "missingClasses": missing,
        },
        "skippedSheets": index.skipped_sheets,
    }
