"""MCP server for the webview inspector - lets an agent inspect and drive a running app.

This server provides tools for:
- Reading the live document (DOM outline, text, HTML, attributes)
- Interacting with elements (click, type) and evaluating scripts
- Diagnosing visibility and styling problems
- Capturing screenshots
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from .client import BridgeResponse, InspectorClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# MCP Server instance
server = Server("webview-inspector")
client: InspectorClient | None = None


def get_client() -> InspectorClient:
    """Get or create the bridge client."""
    global client
    if client is None:
        client = InspectorClient()
    return client


# =============================================================================
# Formatting
# =============================================================================


def _node_label(node: dict[str, Any]) -> str:
    label = node.get("tag", "?")
    if node.get("id"):
        label += f"#{node['id']}"
    if node.get("class"):
        label += "." + ".".join(node["class"].split())
    return label


def format_dom_outline(node: dict[str, Any], indent: int = 0) -> list[str]:
    """Render a projected DOM node as indented outline lines."""
    pad = "  " * indent
    if "text" in node:
        return [f'{pad}"{node["text"]}"']
    if node.get("truncated") == "depth":
        return [f"{pad}... (depth limit)"]

    lines = [f"{pad}{_node_label(node)}"]
    for child in node.get("children", []):
        lines.extend(format_dom_outline(child, indent + 1))
    omitted = node.get("omittedSiblings")
    if omitted:
        lines.append(f"{pad}  ... {omitted} more (node limit)")
    return lines


def format_dom(data: dict[str, Any]) -> str:
    stats = data.get("stats", {})
    header = f"DOM ({stats.get('nodeCount', 0)} nodes"
    if stats.get("truncated"):
        header += (
            f", truncated at depth {stats.get('maxDepth')} / {stats.get('maxNodes')} nodes"
        )
    header += ")"
    tree = data.get("tree")
    if tree is None:
        return f"{header}\n(empty)"
    return "\n".join([header, ""] + format_dom_outline(tree))


def format_issues(issues: list[dict[str, Any]]) -> list[str]:
    return [
        f"- [{issue.get('kind')}] {issue.get('selector')}: {issue.get('detail')}"
        for issue in issues
    ]


def format_diagnosis(data: dict[str, Any]) -> str:
    """Short report: summary, issue list and z-index stack."""
    viewport = data.get("viewport", {})
    lines = [
        f"Viewport: {viewport.get('width')}x{viewport.get('height')}",
        f"Summary: {data.get('summary', '')}",
    ]
    issues = data.get("issues", [])
    if issues:
        lines.append("")
        lines.append(f"## Issues ({len(issues)})")
        lines.extend(format_issues(issues))
    stack = data.get("zIndexStack", [])
    if stack:
        lines.append("")
        lines.append("## Z-index stack")
        for entry in stack:
            lines.append(
                f"- {entry.get('selector')}: z-index {entry.get('zIndex')} ({entry.get('position')})"
            )
    return "\n".join(lines)


def format_inspection(data: dict[str, Any]) -> str:
    element = data.get("element", {})
    rect = element.get("boundingRect", {})
    style = element.get("computedStyle", {})
    lines = [
        f"{data.get('selector')} <{element.get('tag')}> "
        f"{'visible' if data.get('visible') else 'NOT visible'}",
        f"Bounds: ({rect.get('left', 0):.0f}, {rect.get('top', 0):.0f}, "
        f"{rect.get('width', 0):.0f}x{rect.get('height', 0):.0f})",
        "Style: " + ", ".join(f"{key}={value}" for key, value in style.items()),
        f"Summary: {data.get('summary', '')}",
    ]
    issues = data.get("issues", [])
    if issues:
        lines.append("")
        lines.extend(format_issues(issues))
    return "\n".join(lines)


def format_class_validation(data: dict[str, Any]) -> str:
    summary = data.get("summary", {})
    results = data.get("results", {})
    lines = [f"Classes: {summary.get('found', 0)}/{summary.get('total', 0)} found"]
    missing = summary.get("missingClasses", [])
    if missing:
        lines.append("Missing:")
        for name in missing:
            hint = " (likely generated at build time)" if results.get(name, {}).get("dynamic") else ""
            lines.append(f"- {name}{hint}")
    skipped = data.get("skippedSheets", 0)
    if skipped:
        lines.append(f"Skipped {skipped} inaccessible stylesheet(s)")
    return "\n".join(lines)


def _error(response: BridgeResponse) -> list[types.TextContent]:
    return [types.TextContent(type="text", text=f"Error: {response.error}")]


# -----------------------------------------------------------------------------
# Tool Definitions
# -----------------------------------------------------------------------------

_SELECTOR = {"type": "string", "description": "CSS selector (e.g. '#submit', '.card > h2')."}

TOOLS = [
    types.Tool(
        name="inspector_status",
        description="Check if the app's inspector bridge is running and accessible.",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="get_dom",
        description="""Get an outline of the live document tree.

Scripts, styles and empty text are skipped. Output is bounded by max_depth and
max_nodes; cut branches are marked "(depth limit)" or "N more (node limit)".""",
        inputSchema={
            "type": "object",
            "properties": {
                "selector": {
                    **_SELECTOR,
                    "description": "Root the outline at this element instead of <body>.",
                },
                "max_depth": {"type": "integer", "description": "Maximum depth (default 10)."},
                "max_nodes": {"type": "integer", "description": "Maximum nodes (default 500)."},
            },
            "required": [],
        },
    ),
    types.Tool(
        name="query_text",
        description="Get the text content of the first element matching a selector.",
        inputSchema={
            "type": "object",
            "properties": {"selector": _SELECTOR},
            "required": ["selector"],
        },
    ),
    types.Tool(
        name="query_html",
        description="Get the inner HTML of the first element matching a selector.",
        inputSchema={
            "type": "object",
            "properties": {"selector": _SELECTOR},
            "required": ["selector"],
        },
    ),
    types.Tool(
        name="query_all",
        description="Get the text content of every element matching a selector.",
        inputSchema={
            "type": "object",
            "properties": {"selector": _SELECTOR},
            "required": ["selector"],
        },
    ),
    types.Tool(
        name="click",
        description="Click the first element matching a selector.",
        inputSchema={
            "type": "object",
            "properties": {"selector": _SELECTOR},
            "required": ["selector"],
        },
    ),
    types.Tool(
        name="type_text",
        description="Set the value of an input and fire input/change events.",
        inputSchema={
            "type": "object",
            "properties": {
                "selector": _SELECTOR,
                "text": {"type": "string", "description": "Text to set."},
            },
            "required": ["selector", "text"],
        },
    ),
    types.Tool(
        name="eval",
        description="""Evaluate a JavaScript expression in the app's document.

The expression's value is returned as text. Wrap statements in an IIFE:
(() => { ...; return value; })()""",
        inputSchema={
            "type": "object",
            "properties": {
                "script": {"type": "string", "description": "JavaScript expression."},
            },
            "required": ["script"],
        },
    ),
    types.Tool(
        name="inspect",
        description="""Explain whether an element is visible and why not.

Reports bounds, computed style and issues such as display:none,
visibility:hidden, opacity:0, zero size, off-viewport positioning and
classes with no stylesheet rule.""",
        inputSchema={
            "type": "object",
            "properties": {"selector": _SELECTOR},
            "required": ["selector"],
        },
    ),
    types.Tool(
        name="validate_classes",
        description="Check which CSS classes have at least one rule in the loaded stylesheets.",
        inputSchema={
            "type": "object",
            "properties": {
                "classes": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Class names to check.",
                },
            },
            "required": ["classes"],
        },
    ),
    types.Tool(
        name="diagnose",
        description="Scan the whole document for visibility and styling problems.",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="screenshot",
        description="Capture the screen. Returns the image, or saves it when path is given.",
        inputSchema={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Optional file path to save the PNG."},
                "region": {
                    "type": "object",
                    "description": "Optional region in screen pixels.",
                    "properties": {
                        "x": {"type": "integer"},
                        "y": {"type": "integer"},
                        "width": {"type": "integer"},
                        "height": {"type": "integer"},
                    },
                    "required": ["x", "y", "width", "height"],
                },
            },
            "required": [],
        },
    ),
]


@server.list_tools()  # type: ignore
async def list_tools() -> list[types.Tool]:
    """List available inspector tools."""
    return TOOLS


@server.call_tool()  # type: ignore
async def call_tool(
    name: str, arguments: dict[str, Any]
) -> list[types.TextContent | types.ImageContent]:
    """Handle tool calls."""
    bridge = get_client()

    try:
        if name == "inspector_status":
            response = await bridge.status()
            if not response.success:
                return [
                    types.TextContent(
                        type="text",
                        text=f"Bridge not available: {response.error}. "
                        "Start the app with the inspector bridge enabled.",
                    )
                ]
            data = response.data or {}
            return [
                types.TextContent(
                    type="text",
                    text=f"Connected: {data.get('app_name')} "
                    f"(pid {data.get('pid')}, up {data.get('uptime_human')})",
                )
            ]

        elif name == "get_dom":
            response = await bridge.dom(
                arguments.get("selector"),
                arguments.get("max_depth"),
                arguments.get("max_nodes"),
            )
            if not response.success:
                return _error(response)
            return [types.TextContent(type="text", text=format_dom(response.data or {}))]

        elif name in ("query_text", "query_html"):
            mode = "text" if name == "query_text" else "html"
            response = await bridge.query(arguments["selector"], mode)
            if not response.success:
                return _error(response)
            result = (response.data or {}).get("result")
            return [types.TextContent(type="text", text="" if result is None else str(result))]

        elif name == "query_all":
            response = await bridge.query(arguments["selector"], "text", all=True)
            if not response.success:
                return _error(response)
            data = response.data or {}
            lines = [f"{data.get('count', 0)} match(es) for {arguments['selector']}:"]
            for i, text in enumerate(data.get("results", [])):
                lines.append(f"[{i}] {(text or '').strip()}")
            return [types.TextContent(type="text", text="\n".join(lines))]

        elif name == "click":
            response = await bridge.click(arguments["selector"])
            if not response.success:
                return _error(response)
            return [types.TextContent(type="text", text=str((response.data or {}).get("result")))]

        elif name == "type_text":
            response = await bridge.type_text(arguments["selector"], arguments["text"])
            if not response.success:
                return _error(response)
            return [types.TextContent(type="text", text=str((response.data or {}).get("result")))]

        elif name == "eval":
            response = await bridge.eval(arguments["script"])
            if not response.success:
                return _error(response)
            result = (response.data or {}).get("result")
            return [types.TextContent(type="text", text="null" if result is None else str(result))]

        elif name == "inspect":
            response = await bridge.inspect(arguments["selector"])
            if not response.success:
                return _error(response)
            return [
                types.TextContent(type="text", text=format_inspection(response.data or {}))
            ]

        elif name == "validate_classes":
            response = await bridge.validate_classes(list(arguments["classes"]))
            if not response.success:
                return _error(response)
            return [
                types.TextContent(
                    type="text", text=format_class_validation(response.data or {})
                )
            ]

        elif name == "diagnose":
            response = await bridge.diagnose()
            if not response.success:
                return _error(response)
            return [
                types.TextContent(type="text", text=format_diagnosis(response.data or {}))
            ]

        elif name == "screenshot":
            response = await bridge.screenshot(
                arguments.get("region"), arguments.get("path")
            )
            if not response.success:
                return _error(response)
            data = response.data or {}
            if "path" in data:
                return [types.TextContent(type="text", text=f"Screenshot saved: {data['path']}")]
            return [
                types.ImageContent(
                    type="image", data=data["image"], mimeType=data["mimeType"]
                )
            ]

        else:
            return [types.TextContent(type="text", text=f"Unknown tool: {name}")]

    except Exception as e:
        logger.exception(f"Error calling tool {name}")
        return [types.TextContent(type="text", text=f"Error: {str(e)}")]


# =============================================================================
# Entry point
# =============================================================================


async def main() -> None:
    """Run the MCP server."""
    logger.info(f"Starting webview inspector MCP server (bridge: {get_client().base_url})")

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def run() -> None:
    """Entry point for the MCP server."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
