# src/runlens/durable/extractor.py
"""Durable workflow shape extraction.

DurableFlowExtractor runs a durable task body against recording stand-ins
on a daemon worker thread and returns the nodes it recorded. The caller
waits at most the configured wall-clock budget. A body that throws, uses a
primitive the recorder does not model, or outlives its budget still yields
whatever was recorded before it stopped, plus a DURABLE_DESCRIBE_FAILED
diagnostic.

An abandoned body keeps running on its daemon thread until it finishes on
its own; its outcome is only logged.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from collections.abc import Awaitable, Mapping
from concurrent.futures import Future, wait
from typing import Any

import structlog

from runlens.contracts.definitions import RunFn
from runlens.contracts.enums import DiagnosticCode, ElementKind, Severity
from runlens.contracts.errors import UnsupportedDurablePrimitiveError
from runlens.contracts.flow import DurableFlowShape, FlowExtraction
from runlens.contracts.models import Diagnostic
from runlens.core.tags import is_durable_resource, normalize_tags
from runlens.durable.context import DurableStandIn, FlowRecorder, InertStandIn, RecordingDurableContext

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_MS = 800


def _dependency_id(dependency: Any) -> str | None:
    if isinstance(dependency, Mapping):
        candidate = dependency.get("id")
    else:
        candidate = getattr(dependency, "id", None)
    return candidate if isinstance(candidate, str) else None


def _is_durable_dependency(dependency: Any) -> bool:
    dependency_id = _dependency_id(dependency)
    if dependency_id is None:
        return False
    tags = dependency.get("tags") if isinstance(dependency, Mapping) else getattr(dependency, "tags", ())
    try:
        tag_ids = [usage.id for usage in normalize_tags(tags)]
    except TypeError:
        tag_ids = []
    return is_durable_resource(dependency_id, tag_ids)


def build_stand_ins(dependencies: Mapping[str, Any], context: RecordingDurableContext) -> dict[str, Any]:
    """Replace every dependency of a durable body with a stand-in.

    Args:
        dependencies: dependency key -> declared dependency (definition or id-carrying object)
        context: Recording context handed out by durable stand-ins

    Returns:
        dependency key -> DurableStandIn for durable resources, InertStandIn otherwise
    """
    stand_ins: dict[str, Any] = {}
    for key, dependency in dependencies.items():
        if _is_durable_dependency(dependency):
            stand_ins[key] = DurableStandIn(_dependency_id(dependency) or key, context)
        else:
            stand_ins[key] = InertStandIn(key)
    return stand_ins


async def _drain(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


class DurableFlowExtractor:
    """Describes durable task bodies by recording what they would do.

    Args:
        timeout_ms: Wall-clock budget per extraction
    """

    def __init__(self, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        self._timeout_ms = timeout_ms

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    def extract(self, task_id: str, run: RunFn | None, dependencies: Mapping[str, Any]) -> FlowExtraction:
        """Run one durable body against stand-ins and collect its shape.

        Args:
            task_id: Task being described (used in diagnostics and logs)
            run: The task body, sync or async, called as run(None, deps)
            dependencies: Declared dependencies, keyed as the body expects them

        Returns:
            FlowExtraction; shape is None when no node was recorded
        """
        if run is None:
            return FlowExtraction(task_id=task_id, diagnostics=(self._failure(task_id, "task has no run function"),))

        recorder = FlowRecorder()
        context = RecordingDurableContext(recorder)
        stand_ins = build_stand_ins(dependencies, context)
        future: Future[None] = Future()

        def _worker() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = run(None, stand_ins)
                if inspect.isawaitable(result):
                    # Each extraction gets its own event loop on its own thread
                    asyncio.run(_drain(result))
            except Exception as exc:
                future.set_exception(exc)
            else:
                future.set_result(None)

        worker = threading.Thread(target=_worker, name=f"runlens-durable-{task_id}", daemon=True)
        worker.start()
        done, _ = wait([future], timeout=self._timeout_ms / 1000)

        reason: str | None = None
        if not done:
            reason = f"timed out after {self._timeout_ms} ms"
            future.add_done_callback(lambda f: self._log_late_outcome(task_id, f))
        else:
            exc = future.exception()
            if isinstance(exc, UnsupportedDurablePrimitiveError):
                reason = str(exc)
            elif exc is not None:
                reason = f"body raised {type(exc).__name__}: {exc}"

        nodes = recorder.seal()
        shape = DurableFlowShape(nodes=nodes) if nodes else None
        if reason is None:
            logger.debug("Durable flow described", task_id=task_id, nodes=len(nodes))
            return FlowExtraction(task_id=task_id, shape=shape)

        logger.info("Durable flow description incomplete", task_id=task_id, reason=reason, nodes=len(nodes))
        return FlowExtraction(task_id=task_id, shape=shape, diagnostics=(self._failure(task_id, reason),))

    @staticmethod
    def _failure(task_id: str, reason: str) -> Diagnostic:
        return Diagnostic(
            severity=Severity.WARNING,
            code=DiagnosticCode.DURABLE_DESCRIBE_FAILED,
            message=f"Could not fully describe durable task '{task_id}': {reason}",
            node_id=task_id,
            node_kind=ElementKind.TASK,
        )

    @staticmethod
    def _log_late_outcome(task_id: str, future: Future[None]) -> None:
        exc = future.exception()
        if exc is not None:
            logger.warning("Abandoned durable body raised", task_id=task_id, error=str(exc))
        else:
            logger.debug("Abandoned durable body finished", task_id=task_id)
