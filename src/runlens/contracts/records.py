# src/runlens/contracts/records.py
"""Live telemetry records and the filters that select them.

Records are append-only: once a record is in a ring buffer it is never
mutated. Timestamps are epoch milliseconds and are the cursor consumers
page with.

Filter semantics are uniform across record types: every field is
optional, ids inside one field are OR'd, distinct fields are AND'd.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from runlens.contracts.enums import LogLevel, NodeKind, SourceKind


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One application log line."""

    timestamp_ms: float
    level: LogLevel
    message: str
    data: Any = None
    correlation_id: str | None = None


@dataclass(frozen=True, slots=True)
class EmissionEntry:
    """One event emission."""

    timestamp_ms: float
    event_id: str
    emitter_id: str | None = None
    payload: Any = None
    correlation_id: str | None = None


@dataclass(frozen=True, slots=True)
class ErrorEntry:
    """One captured error, normalized to message and stack text."""

    timestamp_ms: float
    source_id: str
    source_kind: SourceKind
    message: str
    stack: str | None = None
    data: Any = None
    correlation_id: str | None = None


@dataclass(frozen=True, slots=True)
class RunRecord:
    """One completed task or hook execution."""

    timestamp_ms: float
    node_id: str
    node_kind: NodeKind
    duration_ms: float
    ok: bool
    error: str | None = None
    parent_id: str | None = None
    root_id: str | None = None
    correlation_id: str | None = None


@dataclass(frozen=True, slots=True)
class LogFilter:
    levels: tuple[LogLevel, ...] | None = None
    message_includes: str | None = None
    correlation_ids: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class EmissionFilter:
    event_ids: tuple[str, ...] | None = None
    emitter_ids: tuple[str, ...] | None = None
    correlation_ids: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class ErrorFilter:
    source_kinds: tuple[SourceKind, ...] | None = None
    source_ids: tuple[str, ...] | None = None
    message_includes: str | None = None
    correlation_ids: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class RunFilter:
    node_kinds: tuple[NodeKind, ...] | None = None
    node_ids: tuple[str, ...] | None = None
    ok: bool | None = None
    parent_ids: tuple[str, ...] | None = None
    root_ids: tuple[str, ...] | None = None
    correlation_ids: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class RunQuery:
    """A cursor-plus-filter query over run records.

    Produced by the introspector for per-task and per-hook run listings.
    """

    filter: RunFilter
    after_timestamp: float | None = None
    last: int | None = None
