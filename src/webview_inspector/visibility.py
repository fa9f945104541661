"""Visibility classification for a single element and for a whole document."""

from __future__ import annotations

from collections import Counter
from typing import Any

from .document import Document, Element, Viewport
from .stylesheets import ClassIndex

POSITIONED = ("fixed", "absolute")
Z_INDEX_STACK_SIZE = 10

# Issue kinds that make an element invisible to the user.
VISIBILITY_KINDS = frozenset(
    {"out_of_viewport", "display_none", "visibility_hidden", "opacity_zero", "zero_dimensions"}
)


def describe(el: Element) -> str:
    """Short selector-ish label: ``#id``, ``.first-class`` or the tag."""
    if el.id:
        return f"#{el.id}"
    if el.classes:
        return f".{el.classes[0]}"
    return el.tag


def _opacity(style: dict[str, str]) -> float | None:
    try:
        return float(style.get("opacity", "1"))
    except ValueError:
        return None


def _inside_display_none(el: Element) -> bool:
    """An ancestor with display: none collapses the element to 0x0."""
    parent = el.parent
    while parent is not None:
        if parent.computed_style()["display"] == "none":
            return True
        parent = parent.parent
    return False


def classify(
    el: Element,
    viewport: Viewport,
    index: ClassIndex,
    report_classes: set[str] | None = None,
) -> list[dict[str, Any]]:
    """Check every rule independently and return all issues found.

    ``report_classes`` collects classes already reported as missing; when
    given, each missing class is reported only once across calls.
    """
    style = el.computed_style()
    rect = el.rect
    label = describe(el)
    issues: list[dict[str, Any]] = []

    def issue(kind: str, detail: str, **extra: Any) -> None:
        issues.append({"kind": kind, "selector": label, "detail": detail, **extra})

    if style["position"] in POSITIONED:
        if rect.top >= viewport.height:
            issue("out_of_viewport", f"Element below viewport (top: {rect.top}px)")
        if rect.bottom <= 0:
            issue("out_of_viewport", f"Element above viewport (bottom: {rect.bottom}px)")
        if rect.left >= viewport.width:
            issue("out_of_viewport", f"Element right of viewport (left: {rect.left}px)")
        if rect.right <= 0:
            issue("out_of_viewport", f"Element left of viewport (right: {rect.right}px)")

    hidden = (
        style["display"] == "none"
        or style["visibility"] == "hidden"
        or _inside_display_none(el)
    )
    has_content = bool(el.element_children) or bool(el.text_content.strip())
    if (rect.width == 0 or rect.height == 0) and has_content and not hidden:
        issue("zero_dimensions", f"Zero dimensions: {rect.width}x{rect.height}")

    if style["display"] == "none":
        issue("display_none", "Element has display: none")
    if style["visibility"] == "hidden":
        issue("visibility_hidden", "Element has visibility: hidden")
    if _opacity(style) == 0:
        issue("opacity_zero", "Element has opacity: 0")

    missing = index.missing(el.classes)
    if report_classes is not None:
        missing = [c for c in missing if c not in report_classes]
        report_classes.update(missing)
    if missing:
        issue(
            "css_classes_missing",
            f"Missing classes: {', '.join(missing)}",
            classes=missing,
        )
    return issues


def summarize(issues: list[dict[str, Any]]) -> str:
    if not issues:
        return "No issues detected"
    counts = Counter(i["kind"] for i in issues)
    return "Issues: " + ", ".join(f"{n} {kind}" for kind, n in counts.items())


def _computed_subset(style: dict[str, str]) -> dict[str, str]:
    return {
        "position": style["position"],
        "display": style["display"],
        "visibility": style["visibility"],
        "opacity": style["opacity"],
        "zIndex": style["z-index"],
    }


def inspect_element(document: Document, selector: str) -> dict[str, Any]:
    """Single-element visibility analysis."""
    el = document.query_selector(selector)
    if el is None:
        return {"found": False, "selector": selector, "error": f"Element not found: {selector}"}

    issues = classify(el, document.viewport, ClassIndex.scan(document))
    return {
        "found": True,
        "selector": selector,
        "visible": not any(i["kind"] in VISIBILITY_KINDS for i in issues),
        "healthy": not issues,
        "element": {
            "tag": el.tag,
            "id": el.id,
            "classes": list(el.classes),
            "boundingRect": el.rect.to_dict(),
            "computedStyle": _computed_subset(el.computed_style()),
        },
        "viewport": document.viewport.to_dict(),
        "issues": issues,
        "zIndexStack": [],
        "summary": "Element is visible" if not issues else summarize(issues),
    }


def z_index_stack(document: Document) -> list[dict[str, Any]]:
    """Positioned elements with an integer z-index, highest first, top 10."""
    stack = []
    for el in [document.body, *document.body.iter_rendered()]:
        style = el.computed_style()
        if style["position"] not in POSITIONED:
            continue
        try:
            z_index = int(style["z-index"])
        except ValueError:
            continue
        stack.append({"selector": describe(el), "zIndex": z_index, "position": style["position"]})
    stack.sort(key=lambda entry: entry["zIndex"], reverse=True)
    return stack[:Z_INDEX_STACK_SIZE]


def diagnose(document: Document) -> dict[str, Any]:
    """Aggregate health check over every element in the document."""
    index = ClassIndex.scan(document)
    reported: set[str] = set()
    issues: list[dict[str, Any]] = []
    for el in document.body.iter_rendered():
        issues.extend(classify(el, document.viewport, index, reported))
    return {
        "healthy": not issues,
        "viewport": document.viewport.to_dict(),
        "issues": issues,
        "zIndexStack": z_index_stack(document),
        "summary": summarize(issues),
    }
