"""DOM tree projection under depth and node budgets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .document import UNRENDERED_TAGS, Document, Element, Node, TextNode

# Template content is not part of the child list, so the element itself is kept.
SKIPPED_TAGS = UNRENDERED_TAGS - {"template"}

DEPTH_PLACEHOLDER_TAG = "..."


@dataclass
class _Budget:
    max_depth: int
    max_nodes: int
    max_text_length: int
    count: int = 0
    exhausted: bool = False
    truncated: bool = False

    def take(self) -> bool:
        """Claim one node; False (and mark exhaustion) once the budget is spent."""
        if self.count >= self.max_nodes:
            self.exhausted = True
            self.truncated = True
            return False
        self.count += 1
        return True


def _emits(node: Node) -> bool:
    if isinstance(node, TextNode):
        return bool(node.text.strip())
    return node.tag not in SKIPPED_TAGS


def _project(node: Node, depth: int, budget: _Budget) -> dict[str, Any] | None:
    """Project one content node; returns None when the node budget refuses it."""
    if depth > budget.max_depth:
        if not budget.take():
            return None
        budget.truncated = True
        return {"tag": DEPTH_PLACEHOLDER_TAG, "truncated": "depth"}

    if isinstance(node, TextNode):
        if not budget.take():
            return None
        text = node.text.strip()
        if len(text) > budget.max_text_length:
            text = text[: budget.max_text_length] + "..."
        return {"text": text}

    if not budget.take():
        return None
    projected: dict[str, Any] = {"tag": node.tag}
    if node.id:
        projected["id"] = node.id
    if node.classes:
        projected["class"] = node.class_name

    content = [child for child in node.children if _emits(child)]
    children: list[dict[str, Any]] = []
    for i, child in enumerate(content):
        result = _project(child, depth + 1, budget)
        if result is not None:
            children.append(result)
        if budget.exhausted:
            # The refused child is still untraversed; a child that fit is not.
            remaining = len(content) - i - (0 if result is None else 1)
            if remaining:
                projected["truncated"] = "max_nodes"
                projected["omittedSiblings"] = remaining
            break
    if children:
        projected["children"] = children
    return projected


def project_dom(
    document: Document,
    selector: str | None = None,
    max_depth: int = 10,
    max_nodes: int = 500,
    max_text_length: int = 200,
) -> dict[str, Any]:
    """Depth-first projection of the document (or a selector's subtree).

    Every emitted node (element, text or depth placeholder) counts against
    ``max_nodes``. Nodes deeper than ``max_depth`` become placeholders and
    their subtrees are not visited.
    """
    if selector:
        root: Element | None = document.query_selector(selector)
        if root is None:
            return {"found": False, "error": f"Selector not found: {selector}"}
    else:
        root = document.body

    budget = _Budget(max_depth, max_nodes, max_text_length)
    tree = _project(root, 0, budget) if _emits(root) else None
    return {
        "tree": tree,
        "stats": {
            "nodeCount": budget.count,
            "maxDepth": max_depth,
            "maxNodes": max_nodes,
            "truncated": budget.truncated,
        },
    }
