"""Error taxonomy shared by the bridge, the channel and the evaluators.

Every error carries a stable ``kind`` and the HTTP status the front door
answers with, so handlers never have to map exceptions by hand.
"""

from __future__ import annotations

from typing import Any


class BridgeError(Exception):
    """Base exception for bridge errors."""

    kind = "internal_error"
    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        return {"ok": False, "kind": self.kind, "error": self.detail}


class InvalidParams(BridgeError):
    """Request parameters were rejected before any command was created."""

    kind = "invalid_params"
    status_code = 400


class NotFound(BridgeError):
    """A selector or element is absent from the document."""

    kind = "not_found"
    status_code = 404


class EvaluationError(BridgeError):
    """The script failed inside the document context."""

    kind = "evaluation_error"
    status_code = 500


class InternalError(BridgeError):
    """The bridge could not make sense of an evaluation result."""

    kind = "internal_error"
    status_code = 500


class PlatformUnsupported(BridgeError):
    """The capability is not available on this OS or display."""

    kind = "platform_unsupported"
    status_code = 501


class ChannelClosed(BridgeError):
    """The evaluation loop has shut down."""

    kind = "channel_closed"
    status_code = 503


class BridgeTimeout(BridgeError):
    """The deadline elapsed before the evaluation loop answered."""

    kind = "timeout"
    status_code = 504
