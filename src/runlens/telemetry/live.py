# src/runlens/telemetry/live.py
"""Live telemetry: logs, emissions, errors and runs of the host app.

LiveTelemetry owns one ring buffer per record type. The host runtime (or
the instrumentation helpers below) pushes records as things happen;
query callers read them back with a timestamp cursor, a filter and a
"last N" limit.
"""

from __future__ import annotations

import inspect
import json
import time
import traceback
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import structlog

from runlens.contracts.definitions import Interceptor, RunFn, TaskDefinition
from runlens.contracts.enums import LogLevel, NodeKind, SourceKind
from runlens.contracts.records import (
    EmissionEntry,
    EmissionFilter,
    ErrorEntry,
    ErrorFilter,
    LogEntry,
    LogFilter,
    RunFilter,
    RunQuery,
    RunRecord,
)
from runlens.telemetry.buffer import RingBuffer
from runlens.telemetry.chain import (
    RunContext,
    derive_parent_and_root,
    get_correlation_id,
    resume_run_context,
    task_run_context,
)
from runlens.telemetry.filtering import predicate_for

logger = structlog.get_logger(__name__)

# Runlens's own elements are never instrumented, to avoid recording itself
INTERNAL_ID_PREFIX = "runlens."
TELEMETRY_OWNER_ID = "runlens.telemetry"


def _now_ms() -> float:
    return time.time() * 1000


def normalize_error(error: object) -> tuple[str, str | None]:
    """Reduce an error value to (message, stack).

    Exceptions keep their formatted traceback; strings are used as-is;
    anything else is JSON-encoded when possible.
    """
    if isinstance(error, BaseException):
        stack = "".join(traceback.format_exception(error)) if error.__traceback__ is not None else None
        return str(error) or type(error).__name__, stack
    if isinstance(error, str):
        return error, None
    try:
        return json.dumps(error), None
    except (TypeError, ValueError):
        return str(error), None


class LiveTelemetry:
    """Bounded in-memory record of what the host app is doing.

    Args:
        max_entries: Capacity of each of the four buffers
        clock: Millisecond clock; injectable for deterministic tests
    """

    def __init__(self, max_entries: int = 10_000, *, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or _now_ms
        self.logs: RingBuffer[LogEntry] = RingBuffer(max_entries, name="logs")
        self.emissions: RingBuffer[EmissionEntry] = RingBuffer(max_entries, name="emissions")
        self.errors: RingBuffer[ErrorEntry] = RingBuffer(max_entries, name="errors")
        self.runs: RingBuffer[RunRecord] = RingBuffer(max_entries, name="runs")

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def record_log(self, level: LogLevel | str, message: str, data: Any = None) -> LogEntry:
        entry = LogEntry(
            timestamp_ms=self._clock(),
            level=LogLevel(level),
            message=message,
            data=data,
            correlation_id=get_correlation_id(),
        )
        self.logs.append(entry)
        return entry

    def record_emission(self, event_id: str, payload: Any = None, emitter_id: str | None = None) -> EmissionEntry:
        entry = EmissionEntry(
            timestamp_ms=self._clock(),
            event_id=event_id,
            emitter_id=emitter_id,
            payload=payload,
            correlation_id=get_correlation_id(),
        )
        self.emissions.append(entry)
        return entry

    def record_error(self, source_id: str, source_kind: SourceKind | str, error: object, data: Any = None) -> ErrorEntry:
        message, stack = normalize_error(error)
        entry = ErrorEntry(
            timestamp_ms=self._clock(),
            source_id=source_id,
            source_kind=SourceKind(source_kind),
            message=message,
            stack=stack,
            data=data,
            correlation_id=get_correlation_id(),
        )
        self.errors.append(entry)
        return entry

    def record_run(
        self,
        node_id: str,
        node_kind: NodeKind | str,
        duration_ms: float,
        ok: bool,
        error: object = None,
        parent_id: str | None = None,
        root_id: str | None = None,
    ) -> RunRecord:
        record = RunRecord(
            timestamp_ms=self._clock(),
            node_id=node_id,
            node_kind=NodeKind(node_kind),
            duration_ms=duration_ms,
            ok=ok,
            error=normalize_error(error)[0] if error is not None else None,
            parent_id=parent_id,
            root_id=root_id,
            correlation_id=get_correlation_id(),
        )
        self.runs.append(record)
        return record

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_logs(
        self, after_timestamp: float | None = None, *, filter: LogFilter | None = None, last: int | None = None
    ) -> list[LogEntry]:
        return self.logs.query(after_timestamp, predicate_for(filter), last)

    def get_emissions(
        self, after_timestamp: float | None = None, *, filter: EmissionFilter | None = None, last: int | None = None
    ) -> list[EmissionEntry]:
        return self.emissions.query(after_timestamp, predicate_for(filter), last)

    def get_errors(
        self, after_timestamp: float | None = None, *, filter: ErrorFilter | None = None, last: int | None = None
    ) -> list[ErrorEntry]:
        return self.errors.query(after_timestamp, predicate_for(filter), last)

    def get_runs(
        self, after_timestamp: float | None = None, *, filter: RunFilter | None = None, last: int | None = None
    ) -> list[RunRecord]:
        return self.runs.query(after_timestamp, predicate_for(filter), last)

    def run_query(self, query: RunQuery) -> list[RunRecord]:
        """Execute a RunQuery built by the introspector."""
        return self.get_runs(query.after_timestamp, filter=query.filter, last=query.last)

    # -------------------------------------------------------------------------
    # Instrumentation
    # -------------------------------------------------------------------------

    def instrument[**P, R](
        self,
        node_id: str,
        fn: Callable[P, R],
        node_kind: NodeKind = NodeKind.TASK,
    ) -> Callable[P, R]:
        """Wrap a callable so every call is recorded as a run.

        The wrapped call runs inside a run-context frame for node_id. Failures
        are recorded as an error entry plus a failed run, then re-raised.
        Coroutine results are awaited inside the frame before recording.

        Args:
            node_id: Task or hook id the callable implements
            fn: Sync callable, or callable returning an awaitable
            node_kind: Kind recorded on the run

        Returns:
            Callable with the same signature
        """
        source_kind = SourceKind.TASK if node_kind == NodeKind.TASK else SourceKind.HOOK

        # Records are written inside the run's frame so they share its correlation id
        def _finish(started: float, parent_id: str | None, root_id: str, error: BaseException | None) -> None:
            duration_ms = (time.perf_counter() - started) * 1000
            if error is not None:
                self.record_error(node_id, source_kind, error)
            self.record_run(node_id, node_kind, duration_ms, error is None, error, parent_id, root_id)

        async def _await_in_frame(
            awaitable: Awaitable[Any], frame: RunContext, started: float, parent_id: str | None, root_id: str
        ) -> Any:
            with resume_run_context(frame):
                try:
                    result = await awaitable
                except Exception as exc:
                    _finish(started, parent_id, root_id, exc)
                    raise
                _finish(started, parent_id, root_id, None)
                return result

        def _wrapped(*args: P.args, **kwargs: P.kwargs) -> R:
            parent_id, root_id = derive_parent_and_root(node_id)
            started = time.perf_counter()
            with task_run_context(node_id) as frame:
                try:
                    result = fn(*args, **kwargs)
                except Exception as exc:
                    _finish(started, parent_id, root_id, exc)
                    raise
                if not inspect.isawaitable(result):
                    _finish(started, parent_id, root_id, None)
                    return result
            return _await_in_frame(result, frame, started, parent_id, root_id)  # type: ignore[return-value]

        return _wrapped

    def attach_to(self, task: TaskDefinition) -> bool:
        """Install a run-recording interceptor on a task definition.

        Idempotent. Runlens's own tasks are skipped.

        Returns:
            True if an interceptor was installed
        """
        if task.id.startswith(INTERNAL_ID_PREFIX):
            return False
        if any(interceptor.owner_id == TELEMETRY_OWNER_ID for interceptor in task.interceptors):
            return False

        def _record(next_run: RunFn, input: Any, deps: Mapping[str, Any]) -> Any:
            return self.instrument(task.id, next_run)(input, deps)

        task.interceptors.append(Interceptor(fn=_record, owner_id=TELEMETRY_OWNER_ID))
        logger.debug("Telemetry interceptor installed", task_id=task.id)
        return True

    def clear(self) -> None:
        for buffer in (self.logs, self.emissions, self.errors, self.runs):
            buffer.clear()
