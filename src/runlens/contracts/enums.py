# src/runlens/contracts/enums.py
"""All kinds, modes, and severities used across subsystem boundaries.

Values are the wire strings the query layer and serialized snapshots use,
so renaming a member is a breaking change for stored snapshots.
"""

from enum import StrEnum


class ElementKind(StrEnum):
    """Kind of a registry element.

    Also the resolution order of the generic by-id accessor: a bare id that
    exists under several kinds resolves to the first kind listed here.
    """

    TASK = "task"
    HOOK = "hook"
    RESOURCE = "resource"
    MIDDLEWARE = "middleware"
    EVENT = "event"
    ERROR = "error"
    ASYNC_CONTEXT = "async_context"
    TAG = "tag"


class NodeKind(StrEnum):
    """Kind of executable node recorded in run telemetry."""

    TASK = "TASK"
    HOOK = "HOOK"


class SourceKind(StrEnum):
    """Origin of a captured error."""

    TASK = "TASK"
    HOOK = "HOOK"
    RESOURCE = "RESOURCE"
    MIDDLEWARE = "MIDDLEWARE"
    INTERNAL = "INTERNAL"


class LogLevel(StrEnum):
    """Severity of a captured application log line."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    CRITICAL = "critical"


class MiddlewareKind(StrEnum):
    """What a middleware wraps."""

    TASK = "task"
    RESOURCE = "resource"


class ExportsMode(StrEnum):
    """How an isolation boundary declared its exports.

    UNSET: no exports declaration, everything registered is visible.
    NONE: explicit empty exports, nothing is visible.
    LIST: only ids matching the export patterns are visible.
    """

    UNSET = "unset"
    NONE = "none"
    LIST = "list"


class Severity(StrEnum):
    """Diagnostic severity."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class DiagnosticCode(StrEnum):
    """Stable codes for structural and extraction diagnostics."""

    MALFORMED_ELEMENT = "MALFORMED_ELEMENT"
    MISSING_FILE = "MISSING_FILE"
    DANGLING_DEPENDENCY = "DANGLING_DEPENDENCY"
    ORPHAN_EVENT = "ORPHAN_EVENT"
    UNEMITTED_EVENT = "UNEMITTED_EVENT"
    UNUSED_MIDDLEWARE = "UNUSED_MIDDLEWARE"
    OVERRIDE_CONFLICT = "OVERRIDE_CONFLICT"
    OVERRIDDEN_ELEMENT = "OVERRIDDEN_ELEMENT"
    UNUSED_ERROR = "UNUSED_ERROR"
    DURABLE_DESCRIBE_FAILED = "DURABLE_DESCRIBE_FAILED"


class TunnelMode(StrEnum):
    """Direction a tunnel resource forwards calls."""

    CLIENT = "client"
    SERVER = "server"
    BOTH = "both"


class FlowNodeKind(StrEnum):
    """Kind of a statically discovered durable workflow node."""

    STEP = "step"
    SLEEP = "sleep"
    WAIT_FOR_SIGNAL = "wait_for_signal"
    EMIT = "emit"
    SWITCH = "switch"
    NOTE = "note"
