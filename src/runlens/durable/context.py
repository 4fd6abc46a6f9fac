# src/runlens/durable/context.py
"""Recording stand-ins for running a durable workflow body without effects.

A durable task body normally receives a durable resource and calls
``durable.use()`` to get a workflow context. Here the body gets a
DurableStandIn instead; its ``use()`` returns a RecordingDurableContext that
appends one FlowNode per primitive call and performs nothing. Every other
dependency is an InertStandIn that accepts any attribute access or call.

Every primitive returns an already-resolved placeholder, so bodies work
whether or not they ``await`` the call.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Generator, Iterable, Mapping
from typing import Any

import structlog

from runlens.contracts.errors import UnsupportedDurablePrimitiveError
from runlens.contracts.flow import (
    EmitNode,
    FlowNode,
    NoteNode,
    SleepNode,
    StepNode,
    SwitchNode,
    WaitForSignalNode,
)

logger = structlog.get_logger(__name__)


class Resolved:
    """An awaitable that completes immediately with a fixed value."""

    __slots__ = ("value",)

    def __init__(self, value: Any = None) -> None:
        self.value = value

    def __await__(self) -> Generator[Any, None, Any]:
        yield from ()
        return self.value


def _ref_id(ref: Any, label: str) -> str:
    """Id of a string or an element-like reference (anything with .id or ["id"])."""
    if isinstance(ref, str):
        return ref
    candidate = ref.get("id") if isinstance(ref, Mapping) else getattr(ref, "id", None)
    if isinstance(candidate, str):
        return candidate
    raise TypeError(f"{label} must be an id or carry a string 'id', got {type(ref).__name__}")


class FlowRecorder:
    """Thread-safe, append-only list of recorded flow nodes.

    Once sealed, further records are ignored: an abandoned body that keeps
    running after its time budget cannot change a shape already returned.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._nodes: list[FlowNode] = []
        self._sealed = False

    def record(self, node: FlowNode) -> None:
        with self._lock:
            if self._sealed:
                logger.debug("Flow node recorded after seal ignored", kind=str(node.kind))
                return
            self._nodes.append(node)

    def seal(self) -> tuple[FlowNode, ...]:
        with self._lock:
            self._sealed = True
            return tuple(self._nodes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)


class RecordingDurableContext:
    """Durable workflow context that records calls instead of executing them."""

    def __init__(self, recorder: FlowRecorder) -> None:
        self._recorder = recorder

    def step(
        self,
        step_id: str,
        fn: Callable[..., Any] | None = None,
        *,
        compensate: Callable[..., Any] | None = None,
    ) -> Resolved:
        """Record a checkpointed step. The step function is never called."""
        self._recorder.record(StepNode(step_id=step_id, has_compensation=compensate is not None))
        return Resolved()

    def sleep(self, duration_ms: float, *, step_id: str | None = None) -> Resolved:
        self._recorder.record(SleepNode(duration_ms=duration_ms, step_id=step_id))
        return Resolved()

    def wait_for_signal(
        self,
        signal: Any,
        *,
        timeout_ms: float | None = None,
        step_id: str | None = None,
    ) -> Resolved:
        self._recorder.record(
            WaitForSignalNode(signal_id=_ref_id(signal, "signal"), timeout_ms=timeout_ms, step_id=step_id)
        )
        return Resolved()

    def emit(self, event: Any, payload: Any = None, *, step_id: str | None = None) -> Resolved:
        self._recorder.record(EmitNode(event_id=_ref_id(event, "event"), step_id=step_id))
        return Resolved()

    def switch(
        self,
        step_id: str,
        value: Any,
        branches: Iterable[Any],
        default: Any = None,
    ) -> Resolved:
        """Record a branch point with every declared branch id.

        Branch matchers are not evaluated; the recorded shape covers all
        paths, not the one value would take.
        """
        branch_ids = tuple(_ref_id(branch, "switch branch") for branch in branches)
        self._recorder.record(SwitchNode(step_id=step_id, branch_ids=branch_ids, has_default=default is not None))
        return Resolved()

    def note(self, message: str) -> Resolved:
        self._recorder.record(NoteNode(message=str(message)))
        return Resolved()

    def __getattr__(self, name: str) -> Any:
        # Dunder lookups (copy, pickle, inspect) must keep seeing a plain object
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        raise UnsupportedDurablePrimitiveError(name)


class DurableStandIn:
    """Replaces a durable resource: use() hands out the recording context."""

    def __init__(self, resource_id: str, context: RecordingDurableContext) -> None:
        self.resource_id = resource_id
        self._context = context

    def use(self) -> RecordingDurableContext:
        return self._context


class InertStandIn:
    """Replaces any non-durable dependency.

    Attribute access yields another inert stand-in; calls return a
    resolved placeholder.
    """

    def __init__(self, name: str) -> None:
        self._name = name

    def __getattr__(self, name: str) -> InertStandIn:
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        return InertStandIn(f"{self._name}.{name}")

    def __call__(self, *args: Any, **kwargs: Any) -> Resolved:
        return Resolved()

    def __repr__(self) -> str:
        return f"InertStandIn({self._name!r})"
