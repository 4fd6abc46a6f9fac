# src/runlens/contracts/flow.py
"""Statically discovered shape of a durable workflow.

The shape is what a workflow body WOULD do, recorded by running the body
against a recording context. Nodes appear in call order.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from runlens.contracts.enums import FlowNodeKind
from runlens.contracts.models import Diagnostic


@dataclass(frozen=True, slots=True)
class StepNode:
    step_id: str
    has_compensation: bool = False
    kind: FlowNodeKind = FlowNodeKind.STEP


@dataclass(frozen=True, slots=True)
class SleepNode:
    duration_ms: float
    step_id: str | None = None
    kind: FlowNodeKind = FlowNodeKind.SLEEP


@dataclass(frozen=True, slots=True)
class WaitForSignalNode:
    signal_id: str
    timeout_ms: float | None = None
    step_id: str | None = None
    kind: FlowNodeKind = FlowNodeKind.WAIT_FOR_SIGNAL


@dataclass(frozen=True, slots=True)
class EmitNode:
    event_id: str
    step_id: str | None = None
    kind: FlowNodeKind = FlowNodeKind.EMIT


@dataclass(frozen=True, slots=True)
class SwitchNode:
    """A branch point. Lists every declared branch, not the one taken."""

    step_id: str
    branch_ids: tuple[str, ...] = ()
    has_default: bool = False
    kind: FlowNodeKind = FlowNodeKind.SWITCH


@dataclass(frozen=True, slots=True)
class NoteNode:
    message: str
    kind: FlowNodeKind = FlowNodeKind.NOTE


FlowNode = StepNode | SleepNode | WaitForSignalNode | EmitNode | SwitchNode | NoteNode


@dataclass(frozen=True, slots=True)
class DurableFlowShape:
    nodes: tuple[FlowNode, ...] = ()


@dataclass(frozen=True, slots=True)
class FlowExtraction:
    """Result of describing one durable task.

    shape is None when nothing could be recorded. A partial shape with a
    diagnostic means the body stopped early (threw, timed out, or used an
    unsupported primitive).
    """

    task_id: str
    shape: DurableFlowShape | None = None
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def complete(self) -> bool:
        return self.shape is not None and not self.diagnostics
