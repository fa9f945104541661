"""HTTP endpoints of the inspector bridge.

Handlers never touch the document. They validate parameters, build a typed
command, relay it to the host's evaluation loop and shape the reply.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from fastapi import APIRouter, Request, Response

from .commands import (
    Command,
    Diagnose,
    DomTree,
    InspectElement,
    QueryElement,
    RawEval,
    ValidateClasses,
)
from .errors import BridgeTimeout, EvaluationError, InternalError, InvalidParams, NotFound
from .schemas import (
    DomParams,
    EvalRequest,
    EvalResponse,
    InspectRequest,
    QueryRequest,
    ScreenshotRequest,
    StatusResponse,
    ValidateClassesRequest,
)
from .screenshot import capture

if TYPE_CHECKING:
    from .bridge import BridgeState

logger = logging.getLogger(__name__)

router = APIRouter()


def format_uptime(seconds: int) -> str:
    """Human uptime: ``45s``, ``2m 5s`` or ``1h 1m``."""
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {seconds % 3600 // 60}m"


def _state(request: Request) -> BridgeState:
    return request.app.state.bridge


async def _round_trip(state: BridgeState, command: Command) -> EvalResponse:
    correlator = await state.sender.enqueue(command)
    return await correlator.wait(state.settings.eval_timeout)


async def relay(state: BridgeState, command: Command) -> EvalResponse:
    """Enqueue a command and wait for its successful response.

    One deadline covers both steps, so a full channel times out too.
    """
    timeout = state.settings.eval_timeout
    try:
        response = await asyncio.wait_for(_round_trip(state, command), timeout)
    except asyncio.TimeoutError:
        raise BridgeTimeout(
            f"No response from the evaluation loop within {timeout}s"
        ) from None
    if not response.success:
        raise EvaluationError(response.error or "Evaluation failed")
    return response


async def relay_json(state: BridgeState, command: Command) -> dict[str, Any]:
    """Relay a templated command and decode its JSON object result.

    A result reporting ``found: false`` becomes a NotFound error.
    """
    response = await relay(state, command)
    try:
        data = json.loads(response.result or "")
    except json.JSONDecodeError as e:
        raise InternalError(f"Evaluation result is not valid JSON: {e}") from None
    if not isinstance(data, dict):
        raise InternalError("Evaluation result is not a JSON object")
    if data.get("found") is False:
        raise NotFound(data.get("error") or "Not found")
    return data


@router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    state = _state(request)
    uptime = state.uptime_seconds
    return StatusResponse(
        app_name=state.app_name,
        pid=state.pid,
        uptime_seconds=uptime,
        uptime_human=format_uptime(uptime),
    )


@router.post("/eval")
async def eval_script(body: EvalRequest, request: Request) -> dict[str, Any]:
    response = await relay(_state(request), RawEval(body.script))
    return {"ok": True, "result": response.result}


@router.post("/query")
async def query(body: QueryRequest, request: Request) -> dict[str, Any]:
    command = QueryElement(body.selector, body.mode, body.attr, body.all)
    data = await relay_json(_state(request), command)
    reply: dict[str, Any] = {"ok": True, "selector": body.selector, "mode": body.mode}
    if body.all:
        values = data.get("values") or []
        reply["results"] = values
        reply["count"] = len(values)
    else:
        reply["result"] = data.get("value")
    return reply


@router.get("/dom")
async def dom(
    request: Request,
    selector: Optional[str] = None,
    max_depth: Optional[int] = None,
    depth: Optional[int] = None,
    max_nodes: Optional[int] = None,
) -> dict[str, Any]:
    state = _state(request)
    settings = state.settings
    params = DomParams(
        selector=selector,
        max_depth=max_depth if max_depth is not None else depth,
        max_nodes=max_nodes,
    )
    command = DomTree(
        selector=params.selector,
        max_depth=params.max_depth or settings.default_max_depth,
        max_nodes=params.max_nodes or settings.default_max_nodes,
        max_text_length=settings.max_text_length,
    )
    return await relay_json(state, command)


@router.post("/inspect")
async def inspect(body: InspectRequest, request: Request) -> dict[str, Any]:
    return await relay_json(_state(request), InspectElement(body.selector))


@router.post("/validate-classes")
async def validate_classes(body: ValidateClassesRequest, request: Request) -> dict[str, Any]:
    return await relay_json(_state(request), ValidateClasses(tuple(body.classes)))


@router.get("/diagnose")
async def diagnose(request: Request) -> dict[str, Any]:
    return await relay_json(_state(request), Diagnose())


@router.post("/screenshot")
async def screenshot(body: ScreenshotRequest) -> Any:
    png = await capture(body.region)
    if body.path is None:
        return Response(content=png, media_type="image/png")
    path = Path(body.path).expanduser()
    try:
        await asyncio.to_thread(path.write_bytes, png)
    except OSError as e:
        raise InvalidParams(f"Cannot write screenshot to {path}: {e}") from None
    logger.info(f"Saved screenshot ({len(png)} bytes) to {path}")
    return {"ok": True, "path": str(path)}
