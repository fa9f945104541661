"""HTTP client for the inspector bridge."""

from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass
from typing import Any

import httpx

from .commands import click_script, type_text_script

logger = logging.getLogger(__name__)

DEFAULT_BRIDGE_URL = "http://127.0.0.1:9999"
DEFAULT_TIMEOUT = 30.0


@dataclass
class BridgeResponse:
    """Response from the inspector bridge."""

    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    kind: str | None = None


class InspectorClient:
    """HTTP client for a running inspector bridge.

    Transport failures never raise; they come back as unsuccessful
    responses so tool handlers can report them as text.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Bridge URL. Defaults to $INSPECTOR_BRIDGE_URL or
                http://127.0.0.1:9999.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.base_url = (
            base_url or os.environ.get("INSPECTOR_BRIDGE_URL") or DEFAULT_BRIDGE_URL
        ).rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> BridgeResponse:
        """Make an HTTP request to the bridge.

        Args:
            method: HTTP method (GET or POST).
            endpoint: API endpoint path.
            json_data: Optional JSON body for POST requests.
            params: Optional query parameters for GET requests.
        """
        client = await self._get_client()
        url = f"{self.base_url}{endpoint}"

        try:
            if method == "GET":
                response = await client.get(endpoint, params=params)
            elif method == "POST":
                response = await client.post(endpoint, json=json_data)
            else:
                return BridgeResponse(success=False, error=f"Unsupported method: {method}")
        except httpx.ConnectError as e:
            return BridgeResponse(
                success=False,
                error=f"Cannot connect to bridge at {url}. Is the app running? Error: {e}",
                kind="connect_error",
            )
        except httpx.TimeoutException:
            return BridgeResponse(
                success=False,
                error=f"Request timed out after {self.timeout}s",
                kind="timeout",
            )
        except httpx.HTTPError as e:
            return BridgeResponse(success=False, error=str(e), kind="transport_error")

        if response.headers.get("content-type", "").startswith("image/"):
            return BridgeResponse(
                success=True,
                data={
                    "image": base64.b64encode(response.content).decode(),
                    "mimeType": response.headers["content-type"],
                },
            )

        try:
            body = response.json()
        except ValueError:
            return BridgeResponse(
                success=False,
                error=f"API error: {response.status_code} - {response.text}",
                kind="internal_error",
            )

        if response.is_error:
            if isinstance(body, dict) and "error" in body:
                return BridgeResponse(
                    success=False, error=str(body["error"]), kind=body.get("kind")
                )
            return BridgeResponse(
                success=False, error=f"API error: {response.status_code} - {response.text}"
            )
        return BridgeResponse(success=True, data=body)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    async def status(self) -> BridgeResponse:
        """Get app name, pid and uptime of the host."""
        return await self._request("GET", "/status")

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    async def eval(self, script: str) -> BridgeResponse:
        """Evaluate a raw script in the host's document."""
        return await self._request("POST", "/eval", {"script": script})

    async def click(self, selector: str) -> BridgeResponse:
        """Click the first element matching the selector."""
        return await self.eval(click_script(selector))

    async def type_text(self, selector: str, text: str) -> BridgeResponse:
        """Set an input's value and fire input/change events."""
        return await self.eval(type_text_script(selector, text))

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    async def query(
        self,
        selector: str,
        mode: str = "text",
        attr: str | None = None,
        all: bool = False,
    ) -> BridgeResponse:
        """Read text, HTML, value or an attribute of matching elements.

        Args:
            selector: CSS selector.
            mode: One of text, html, outer_html, value, attr.
            attr: Attribute name when mode is attr.
            all: Read every match instead of the first.
        """
        body: dict[str, Any] = {"selector": selector, "mode": mode, "all": all}
        if attr is not None:
            body["attr"] = attr
        return await self._request("POST", "/query", body)

    async def dom(
        self,
        selector: str | None = None,
        max_depth: int | None = None,
        max_nodes: int | None = None,
    ) -> BridgeResponse:
        """Get a budgeted projection of the document tree."""
        params = {
            key: value
            for key, value in (
                ("selector", selector),
                ("max_depth", max_depth),
                ("max_nodes", max_nodes),
            )
            if value is not None
        }
        return await self._request("GET", "/dom", params=params)

    async def inspect(self, selector: str) -> BridgeResponse:
        """Visibility analysis of a single element."""
        return await self._request("POST", "/inspect", {"selector": selector})

    async def validate_classes(self, classes: list[str]) -> BridgeResponse:
        """Check which classes have rules in the loaded stylesheets."""
        return await self._request("POST", "/validate-classes", {"classes": classes})

    async def diagnose(self) -> BridgeResponse:
        """Whole-document visibility and styling health check."""
        return await self._request("GET", "/diagnose")

    async def screenshot(
        self,
        region: dict[str, int] | None = None,
        path: str | None = None,
    ) -> BridgeResponse:
        """Capture the screen; returns base64 PNG data, or the saved path."""
        body: dict[str, Any] = {}
        if region is not None:
            body["region"] = region
        if path is not None:
            body["path"] = path
        return await self._request("POST", "/screenshot", body)
