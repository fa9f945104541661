"""Evaluation loop helpers for the host application.

The host owns the only code that drains the command channel. These helpers
cover the usual shapes of that loop: a dedicated blocking thread, an asyncio
task, or a GUI timer that pumps whatever is queued. In every shape commands run
one at a time, in channel order, and every failure becomes an error response.
"""

from __future__ import annotations

import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Union

from .channel import CommandReceiver, EvalCommand
from .commands import RawEval
from .css_select import SelectorSyntaxError
from .document import Document
from .errors import EvaluationError
from .schemas import EvalResponse

logger = logging.getLogger(__name__)

Evaluator = Callable[[EvalCommand], Union[str, Awaitable[str]]]


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


class ScriptEvaluator:
    """Evaluate each command's script with the host's JavaScript function.

    ``eval_js`` is whatever the webview exposes, for example pywebview's
    ``window.evaluate_js``. Scripts are expressions whose value is the result.
    """

    def __init__(self, eval_js: Callable[[str], Any]) -> None:
        self.eval_js = eval_js

    def __call__(self, command: EvalCommand) -> str:
        return _as_text(self.eval_js(command.script))


class DocumentEvaluator:
    """Evaluate typed commands natively against an in-process document.

    Args:
        document_provider: Returns the current document, or None when the
            document is not available yet.
        script_engine: Optional callable for raw scripts. Without it, raw
            scripts fail with an evaluation error.
    """

    def __init__(
        self,
        document_provider: Callable[[], Document | None],
        script_engine: Callable[[str, Document], Any] | None = None,
    ) -> None:
        self.document_provider = document_provider
        self.script_engine = script_engine

    def __call__(self, command: EvalCommand) -> str:
        document = self.document_provider()
        if document is None:
            raise EvaluationError("Document unavailable")
        request = command.request
        if isinstance(request, RawEval):
            if self.script_engine is None:
                raise EvaluationError("Raw scripts need a script engine in this host")
            return _as_text(self.script_engine(request.script, document))
        try:
            return json.dumps(request.evaluate(document))
        except SelectorSyntaxError as e:
            raise EvaluationError(f"SyntaxError: {e}") from e


class EvaluationLoop:
    """Drain the channel and resolve each command's correlator."""

    def __init__(self, receiver: CommandReceiver, evaluator: Evaluator) -> None:
        self.receiver = receiver
        self.evaluator = evaluator
        self.processed = 0

    def _response_for(self, command: EvalCommand, outcome: Any) -> EvalResponse:
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, EvaluationError):
                logger.exception(
                    f"Evaluation of command {command.id} failed", exc_info=outcome
                )
            return EvalResponse.failure(str(outcome) or type(outcome).__name__)
        return EvalResponse.ok(outcome)

    def _finish(self, command: EvalCommand, response: EvalResponse) -> None:
        self.processed += 1
        command.respond(response)

    def process(self, command: EvalCommand) -> None:
        """Evaluate one command synchronously."""
        try:
            outcome: Any = self.evaluator(command)
            if inspect.isawaitable(outcome):
                if inspect.iscoroutine(outcome):
                    outcome.close()
                raise TypeError("Async evaluator used with a synchronous loop; use arun()")
        except Exception as e:
            outcome = e
        self._finish(command, self._response_for(command, outcome))

    def pump(self) -> int:
        """Process everything queued right now; for GUI idle/timer callbacks."""
        commands = self.receiver.drain()
        for command in commands:
            self.process(command)
        return len(commands)

    def run(self) -> None:
        """Block, processing commands until the channel closes."""
        for command in self.receiver:
            self.process(command)

    async def arun(self) -> None:
        """Process commands on the running event loop until the channel closes."""
        while True:
            command = await self.receiver.recv_async()
            if command is None:
                return
            try:
                outcome: Any = self.evaluator(command)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
            except Exception as e:
                outcome = e
            self._finish(command, self._response_for(command, outcome))
