"""Tests for MCP tool formatting and dispatch."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest  # type: ignore[import-not-found]

from webview_inspector import server
from webview_inspector.client import InspectorClient
from webview_inspector.server import (
    TOOLS,
    format_class_validation,
    format_diagnosis,
    format_dom,
    format_dom_outline,
)

# =============================================================================
# Helpers
# =============================================================================


def _tree() -> dict[str, Any]:
    return {
        "tag": "body",
        "children": [
            {
                "tag": "div",
                "id": "app",
                "class": "calendar dark",
                "children": [
                    {"text": "Pick a Date"},
                    {"tag": "ul", "truncated": "max_nodes", "omittedSiblings": 3},
                ],
            },
            {"tag": "...", "truncated": "depth"},
        ],
    }


def _call_tool(
    monkeypatch: pytest.MonkeyPatch,
    handler: Callable[[httpx.Request], httpx.Response],
    name: str,
    arguments: dict[str, Any],
) -> list[Any]:
    bridge = InspectorClient("http://bridge", transport=httpx.MockTransport(handler))
    monkeypatch.setattr(server, "client", bridge)

    async def scenario() -> list[Any]:
        try:
            return await server.call_tool(name, arguments)
        finally:
            await bridge.close()

    return asyncio.run(scenario())


def _json(body: Any, status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status, json=body)


# =============================================================================
# Formatting
# =============================================================================


class TestFormatting:
    def test_outline(self) -> None:
        assert format_dom_outline(_tree()) == [
            "body",
            "  div#app.calendar.dark",
            '    "Pick a Date"',
            "    ul",
            "      ... 3 more (node limit)",
            "  ... (depth limit)",
        ]

    def test_dom_header(self) -> None:
        text = format_dom(
            {"tree": _tree(), "stats": {"nodeCount": 6, "maxDepth": 2, "maxNodes": 6, "truncated": True}}
        )
        assert text.splitlines()[0] == "DOM (6 nodes, truncated at depth 2 / 6 nodes)"

    def test_dom_empty(self) -> None:
        assert format_dom({"tree": None, "stats": {"nodeCount": 0}}) == "DOM (0 nodes)\n(empty)"

    def test_diagnosis(self) -> None:
        text = format_diagnosis(
            {
                "viewport": {"width": 1280, "height": 800},
                "summary": "Issues: 1 display_none",
                "issues": [{"kind": "display_none", "selector": "#p", "detail": "Element has display: none"}],
                "zIndexStack": [{"selector": ".toast", "zIndex": 50, "position": "fixed"}],
            }
        )
        assert "Viewport: 1280x800" in text
        assert "- [display_none] #p: Element has display: none" in text
        assert "- .toast: z-index 50 (fixed)" in text

    def test_class_validation(self) -> None:
        text = format_class_validation(
            {
                "results": {"card": {"found": True}, "ghost": {"found": False}, "p-4": {"dynamic": True}},
                "summary": {"total": 3, "found": 1, "missing": 2, "missingClasses": ["ghost", "p-4"]},
                "skippedSheets": 1,
            }
        )
        assert text.splitlines() == [
            "Classes: 1/3 found",
            "Missing:",
            "- ghost",
            "- p-4 (likely generated at build time)",
            "Skipped 1 inaccessible stylesheet(s)",
        ]


# =============================================================================
# Tools
# =============================================================================


class TestTools:
    def test_tool_names(self) -> None:
        assert [tool.name for tool in TOOLS] == [
            "inspector_status",
            "get_dom",
            "query_text",
            "query_html",
            "query_all",
            "click",
            "type_text",
            "eval",
            "inspect",
            "validate_classes",
            "diagnose",
            "screenshot",
        ]

    def test_status(self, monkeypatch: pytest.MonkeyPatch) -> None:
        body = {"status": "ok", "app_name": "calendar", "pid": 42, "uptime_seconds": 5, "uptime_human": "5s"}
        (content,) = _call_tool(monkeypatch, _json(body), "inspector_status", {})
        assert content.text == "Connected: calendar (pid 42, up 5s)"

    def test_status_unreachable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        (content,) = _call_tool(monkeypatch, handler, "inspector_status", {})
        assert content.text.startswith("Bridge not available: Cannot connect")

    def test_get_dom(self, monkeypatch: pytest.MonkeyPatch) -> None:
        body = {"tree": {"tag": "body"}, "stats": {"nodeCount": 1, "truncated": False}}
        (content,) = _call_tool(monkeypatch, _json(body), "get_dom", {"max_depth": 2})
        assert content.text == "DOM (1 nodes)\n\nbody"

    def test_query_all(self, monkeypatch: pytest.MonkeyPatch) -> None:
        body = {"ok": True, "selector": "li", "mode": "text", "results": [" one ", "two"], "count": 2}
        (content,) = _call_tool(monkeypatch, _json(body), "query_all", {"selector": "li"})
        assert content.text == "2 match(es) for li:\n[0] one\n[1] two"

    def test_bridge_error_is_reported(self, monkeypatch: pytest.MonkeyPatch) -> None:
        body = {"ok": False, "kind": "not_found", "error": "Element not found: #x"}
        (content,) = _call_tool(monkeypatch, _json(body, 404), "query_text", {"selector": "#x"})
        assert content.text == "Error: Element not found: #x"

    def test_click(self, monkeypatch: pytest.MonkeyPatch) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True, "result": "clicked"})

        (content,) = _call_tool(monkeypatch, handler, "click", {"selector": "#go"})
        assert content.text == "clicked"
        assert seen[0].url.path == "/eval"
        assert "#go" in json.loads(seen[0].content)["script"]

    def test_screenshot_image(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"png", headers={"content-type": "image/png"})

        (content,) = _call_tool(monkeypatch, handler, "screenshot", {})
        assert content.type == "image"
        assert content.mimeType == "image/png"

    def test_missing_argument(self, monkeypatch: pytest.MonkeyPatch) -> None:
        (content,) = _call_tool(monkeypatch, _json({}), "inspect", {})
        assert content.text == "Error: 'selector'"

    def test_unknown_tool(self, monkeypatch: pytest.MonkeyPatch) -> None:
        (content,) = _call_tool(monkeypatch, _json({}), "resize", {})
        assert content.text == "Unknown tool: resize"
