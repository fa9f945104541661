"""Inspect and drive the live document of a running webview app."""

__version__ = "0.1.0"

from .bridge import BridgeHandle, BridgeState, start_bridge  # noqa: E402
from .config import BridgeSettings  # noqa: E402
from .evaluator import DocumentEvaluator, EvaluationLoop, ScriptEvaluator  # noqa: E402

__all__ = [
    "BridgeHandle",
    "BridgeSettings",
    "BridgeState",
    "DocumentEvaluator",
    "EvaluationLoop",
    "ScriptEvaluator",
    "start_bridge",
]
