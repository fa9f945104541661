"""Tests for the evaluation loop helpers."""

from __future__ import annotations

import asyncio
import json
import threading
from typing import Any

from webview_inspector.channel import EvalCommand, open_channel
from webview_inspector.commands import Command, DomTree, QueryElement, RawEval
from webview_inspector.document import Document, element
from webview_inspector.evaluator import DocumentEvaluator, EvaluationLoop, ScriptEvaluator
from webview_inspector.schemas import EvalResponse


def _doc() -> Document:
    return Document(body=element("body", element("h1", "Hi", id="title", rect=(0, 0, 100, 30))))


def _pump_all(evaluator: Any, *requests: Command) -> list[EvalResponse]:
    """Enqueue requests, pump them through one loop and collect responses."""

    async def scenario() -> list[EvalResponse]:
        sender, receiver = open_channel()
        pending = [await sender.enqueue(r) for r in requests]
        loop = EvaluationLoop(receiver, evaluator)
        assert loop.pump() == len(requests)
        return [await p.wait(1) for p in pending]

    return asyncio.run(scenario())


class TestEvaluationLoop:
    def test_pump_processes_in_order(self) -> None:
        seen: list[str] = []

        def evaluator(command: EvalCommand) -> str:
            seen.append(command.script)
            return command.script * 2

        responses = _pump_all(evaluator, RawEval("a"), RawEval("b"), RawEval("c"))
        assert seen == ["a", "b", "c"]
        assert [r.result for r in responses] == ["aa", "bb", "cc"]

    def test_exception_becomes_failure(self) -> None:
        def evaluator(command: EvalCommand) -> str:
            if command.script == "boom":
                raise ValueError("ReferenceError: boom is not defined")
            return "ok"

        failed, ok = _pump_all(evaluator, RawEval("boom"), RawEval("fine"))
        assert failed == EvalResponse(success=False, error="ReferenceError: boom is not defined")
        assert ok.result == "ok"

    def test_async_evaluator_rejected_by_sync_loop(self) -> None:
        async def evaluator(command: EvalCommand) -> str:
            return "never"

        (response,) = _pump_all(evaluator, RawEval("x"))
        assert response.success is False
        assert "arun" in (response.error or "")

    def test_run_on_a_dedicated_thread(self) -> None:
        sender, receiver = open_channel()
        loop = EvaluationLoop(receiver, lambda command: f"len={len(command.script)}")
        worker = threading.Thread(target=loop.run)
        worker.start()

        async def scenario() -> list[str | None]:
            pending = [await sender.enqueue(RawEval("x" * n)) for n in (1, 2, 3)]
            return [(await p.wait(5)).result for p in pending]

        try:
            assert asyncio.run(scenario()) == ["len=1", "len=2", "len=3"]
        finally:
            receiver.close()
            worker.join(5)
        assert not worker.is_alive()
        assert loop.processed == 3

    def test_arun_awaits_async_evaluators(self) -> None:
        async def evaluator(command: EvalCommand) -> str:
            await asyncio.sleep(0)
            return command.script.upper()

        async def scenario() -> list[str | None]:
            sender, receiver = open_channel()
            loop = EvaluationLoop(receiver, evaluator)
            task = asyncio.create_task(loop.arun())
            pending = [await sender.enqueue(RawEval(s)) for s in ("a", "b")]
            results = [(await p.wait(1)).result for p in pending]
            receiver.close()
            await asyncio.wait_for(task, 1)
            return results

        assert asyncio.run(scenario()) == ["A", "B"]


class TestScriptEvaluator:
    def test_passes_rendered_script(self) -> None:
        scripts: list[str] = []

        def eval_js(script: str) -> Any:
            scripts.append(script)
            return {"found": True}

        (response,) = _pump_all(ScriptEvaluator(eval_js), QueryElement("#title"))
        assert scripts[0].startswith("(() => {")
        assert 'const selector = "#title";' in scripts[0]
        assert json.loads(response.result or "") == {"found": True}

    def test_string_results_are_passed_through(self) -> None:
        (response,) = _pump_all(ScriptEvaluator(lambda script: "clicked"), RawEval("x"))
        assert response.result == "clicked"


class TestDocumentEvaluator:
    def test_typed_command(self) -> None:
        document = _doc()
        (response,) = _pump_all(DocumentEvaluator(lambda: document), QueryElement("#title"))
        assert json.loads(response.result or "") == {"found": True, "value": "Hi"}

    def test_dom_tree(self) -> None:
        document = _doc()
        (response,) = _pump_all(DocumentEvaluator(lambda: document), DomTree(max_nodes=2))
        data = json.loads(response.result or "")
        assert data["stats"]["nodeCount"] == 2
        assert data["stats"]["truncated"] is True

    def test_raw_eval_without_engine(self) -> None:
        document = _doc()
        (response,) = _pump_all(DocumentEvaluator(lambda: document), RawEval("1 + 1"))
        assert response.success is False
        assert "script engine" in (response.error or "")

    def test_raw_eval_with_engine(self) -> None:
        document = _doc()

        def engine(script: str, doc: Document) -> Any:
            return {"script": script, "title": doc.query_selector("#title").text_content}

        (response,) = _pump_all(DocumentEvaluator(lambda: document, engine), RawEval("t"))
        assert json.loads(response.result or "") == {"script": "t", "title": "Hi"}

    def test_document_unavailable(self) -> None:
        (response,) = _pump_all(DocumentEvaluator(lambda: None), QueryElement("#title"))
        assert response == EvalResponse(success=False, error="Document unavailable")

    def test_invalid_selector(self) -> None:
        document = _doc()
        (response,) = _pump_all(DocumentEvaluator(lambda: document), QueryElement("li:first-child"))
        assert response.success is False
        assert (response.error or "").startswith("SyntaxError:")
