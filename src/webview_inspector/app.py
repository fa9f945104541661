"""FastAPI application factory for the inspector bridge."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from . import __version__
from .errors import BridgeError, InvalidParams
from .handlers import router

if TYPE_CHECKING:
    from .bridge import BridgeState

logger = logging.getLogger(__name__)


def _describe_errors(errors: list) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


async def _bridge_error(request: Request, exc: BridgeError) -> JSONResponse:
    logger.warning(
        f"{request.method} {request.url.path} failed ({exc.status_code} {exc.kind}): {exc.detail}"
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _validation_error(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, (RequestValidationError, ValidationError)) else []
    return await _bridge_error(request, InvalidParams(_describe_errors(errors) or str(exc)))


def create_app(state: BridgeState) -> FastAPI:
    """Build the bridge application around a shared BridgeState."""
    app = FastAPI(
        title="webview-inspector bridge",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )
    app.state.bridge = state
    app.include_router(router)
    app.add_exception_handler(BridgeError, _bridge_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(ValidationError, _validation_error)
    return app
