# tests/unit/durable/test_extractor.py
"""Tests for durable workflow shape extraction.

Tests cover:
- Complete shapes from sync and async bodies
- Partial shapes plus a diagnostic when the body throws, uses an
  unsupported primitive, or exceeds the time budget
- No recorded nodes means no shape
- Stand-in selection for durable and plain dependencies
"""

import asyncio
import threading
import time
from collections.abc import Mapping
from typing import Any

import pytest

from runlens.contracts.definitions import ResourceDefinition
from runlens.contracts.enums import DiagnosticCode, ElementKind, FlowNodeKind, Severity
from runlens.contracts.flow import EmitNode, StepNode
from runlens.durable.context import DurableStandIn, FlowRecorder, InertStandIn, RecordingDurableContext
from runlens.durable.extractor import DEFAULT_TIMEOUT_MS, DurableFlowExtractor, build_stand_ins

_DEPS: Mapping[str, Any] = {"durable": ResourceDefinition("app.durable.runtime"), "mailer": ResourceDefinition("app.mailer")}


def _kinds(extraction: Any) -> list[FlowNodeKind]:
    return [node.kind for node in extraction.shape.nodes]


class TestBuildStandIns:
    """Dependency replacement."""

    def test_durable_and_inert(self) -> None:
        """Durable runtimes get the recording context; the rest are inert."""
        context = RecordingDurableContext(FlowRecorder())

        stand_ins = build_stand_ins(
            {**_DEPS, "store": {"id": "app.store", "tags": ["globals.tags.durableWorkflow"]}, "raw": 5}, context
        )

        assert isinstance(stand_ins["durable"], DurableStandIn)
        assert isinstance(stand_ins["store"], DurableStandIn)
        assert stand_ins["store"].resource_id == "app.store"
        assert isinstance(stand_ins["mailer"], InertStandIn)
        assert isinstance(stand_ins["raw"], InertStandIn)


class TestExtract:
    """Running bodies against stand-ins."""

    def test_sync_body(self) -> None:
        """Sync bodies work without awaiting primitives."""

        def _body(value: Any, deps: Mapping[str, Any]) -> None:
            ctx = deps["durable"].use()
            deps["mailer"].send("hello")
            ctx.step("reserve")
            ctx.emit("app.events.reserved")

        extraction = DurableFlowExtractor().extract("app.flow", _body, _DEPS)

        assert extraction.complete
        assert extraction.shape is not None
        assert extraction.shape.nodes == (StepNode("reserve"), EmitNode("app.events.reserved"))

    def test_async_body(self) -> None:
        """Async bodies run on their own event loop."""

        async def _body(value: Any, deps: Mapping[str, Any]) -> None:
            ctx = deps["durable"].use()
            await ctx.step("a")
            await asyncio.sleep(0)
            await ctx.wait_for_signal("app.signals.go")

        extraction = DurableFlowExtractor().extract("app.flow", _body, _DEPS)

        assert extraction.complete
        assert _kinds(extraction) == [FlowNodeKind.STEP, FlowNodeKind.WAIT_FOR_SIGNAL]

    def test_body_raises(self) -> None:
        """A throwing body keeps the nodes recorded before the throw."""

        def _body(value: Any, deps: Mapping[str, Any]) -> None:
            ctx = deps["durable"].use()
            ctx.step("first")
            raise KeyError("missing")

        extraction = DurableFlowExtractor().extract("app.flow", _body, _DEPS)

        assert not extraction.complete
        assert _kinds(extraction) == [FlowNodeKind.STEP]
        (diagnostic,) = extraction.diagnostics
        assert diagnostic.code == DiagnosticCode.DURABLE_DESCRIBE_FAILED
        assert diagnostic.severity == Severity.WARNING
        assert diagnostic.node_id == "app.flow"
        assert diagnostic.node_kind == ElementKind.TASK
        assert "body raised KeyError" in diagnostic.message

    def test_unsupported_primitive(self) -> None:
        """Unknown primitives stop the body with a named reason."""

        def _body(value: Any, deps: Mapping[str, Any]) -> None:
            ctx = deps["durable"].use()
            ctx.note("start")
            ctx.schedule("later")

        extraction = DurableFlowExtractor().extract("app.flow", _body, _DEPS)

        assert _kinds(extraction) == [FlowNodeKind.NOTE]
        assert "Unsupported durable primitive 'schedule'" in extraction.diagnostics[0].message

    def test_timeout(self) -> None:
        """A body exceeding the budget is abandoned with a partial shape."""
        release = threading.Event()

        def _body(value: Any, deps: Mapping[str, Any]) -> None:
            ctx = deps["durable"].use()
            ctx.step("before")
            release.wait(5)
            ctx.step("after")

        try:
            started = time.monotonic()
            extraction = DurableFlowExtractor(timeout_ms=50).extract("app.flow", _body, _DEPS)
            elapsed = time.monotonic() - started
        finally:
            release.set()

        assert elapsed < 5
        assert extraction.shape is not None
        assert extraction.shape.nodes == (StepNode("before"),)
        assert "timed out after 50 ms" in extraction.diagnostics[0].message

    def test_no_nodes(self) -> None:
        """A body recording nothing has no shape."""
        extraction = DurableFlowExtractor().extract("app.flow", lambda value, deps: None, _DEPS)

        assert extraction.shape is None
        assert extraction.diagnostics == ()
        assert not extraction.complete

    def test_missing_run(self) -> None:
        """A task without a body cannot be described."""
        extraction = DurableFlowExtractor().extract("app.flow", None, _DEPS)

        assert extraction.shape is None
        assert "task has no run function" in extraction.diagnostics[0].message


class TestConstruction:
    """Budget validation."""

    def test_default_budget(self) -> None:
        """The default budget is exposed."""
        assert DurableFlowExtractor().timeout_ms == DEFAULT_TIMEOUT_MS

    @pytest.mark.parametrize("timeout_ms", [0, -5])
    def test_invalid_budget(self, timeout_ms: int) -> None:
        """Non-positive budgets are rejected."""
        with pytest.raises(ValueError, match="timeout_ms"):
            DurableFlowExtractor(timeout_ms)
