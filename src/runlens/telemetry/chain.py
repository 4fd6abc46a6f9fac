# src/runlens/telemetry/chain.py
"""Run-context chain for nested task and hook executions.

Each run pushes its node id onto a context-local chain. The first node of
a chain is its root and allocates a correlation id that every nested run,
log line, emission and error inherits. contextvars carries the chain
across awaits and into tasks spawned with copied context.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RunContext:
    chain: tuple[str, ...]
    correlation_id: str


_run_context: ContextVar[RunContext | None] = ContextVar("runlens_run_context", default=None)


def get_current_run_context() -> RunContext | None:
    return _run_context.get()


def get_correlation_id() -> str | None:
    context = _run_context.get()
    return context.correlation_id if context is not None else None


def derive_parent_and_root(node_id: str) -> tuple[str | None, str]:
    """Parent and root for a run about to start in the current context.

    Args:
        node_id: Id of the node about to run

    Returns:
        (parent_id, root_id); outside any run the node is its own root
    """
    context = _run_context.get()
    if context is None or not context.chain:
        return None, node_id
    return context.chain[-1], context.chain[0]


@contextmanager
def task_run_context(node_id: str) -> Iterator[RunContext]:
    """Push node_id onto the run chain for the duration of the block."""
    current = _run_context.get()
    if current is None:
        context = RunContext(chain=(node_id,), correlation_id=str(uuid.uuid4()))
    else:
        context = RunContext(chain=(*current.chain, node_id), correlation_id=current.correlation_id)
    token = _run_context.set(context)
    try:
        yield context
    finally:
        _run_context.reset(token)


@contextmanager
def resume_run_context(context: RunContext) -> Iterator[RunContext]:
    """Re-enter a previously created frame, e.g. to await work started inside it."""
    token = _run_context.set(context)
    try:
        yield context
    finally:
        _run_context.reset(token)
