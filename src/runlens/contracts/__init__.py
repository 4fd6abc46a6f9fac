"""Shared types for runlens: registry models, telemetry records, host definitions.

Leaf package. Nothing here imports from core, introspection, durable or
telemetry.
"""

from runlens.contracts.definitions import (
    AsyncContextDefinition,
    ErrorDefinition,
    EventDefinition,
    HookDefinition,
    Interceptor,
    IsolationPolicy,
    MiddlewareAttachment,
    MiddlewareDefinition,
    OverrideRequest,
    ResourceDefinition,
    Store,
    TagAttachment,
    TagDefinition,
    TaskDefinition,
    UnknownRegistration,
)
from runlens.contracts.enums import (
    DiagnosticCode,
    ElementKind,
    ExportsMode,
    FlowNodeKind,
    LogLevel,
    MiddlewareKind,
    NodeKind,
    Severity,
    SourceKind,
    TunnelMode,
)
from runlens.contracts.errors import RunlensError, SwapError, UnsupportedDurablePrimitiveError
from runlens.contracts.flow import (
    DurableFlowShape,
    EmitNode,
    FlowExtraction,
    FlowNode,
    NoteNode,
    SleepNode,
    StepNode,
    SwitchNode,
    WaitForSignalNode,
)
from runlens.contracts.models import (
    AppError,
    AsyncContext,
    CoverageSummary,
    Dependencies,
    Dependents,
    Diagnostic,
    Element,
    Event,
    Hook,
    Isolation,
    Meta,
    Middleware,
    MiddlewareConsumer,
    MiddlewareGlobal,
    MiddlewareUsage,
    RegistrySnapshot,
    Resource,
    Tag,
    TaggedElements,
    TagUsage,
    Task,
    TunnelInfo,
)
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

__all__ = [
    "AppError",
    "AsyncContext",
    "AsyncContextDefinition",
    "CoverageSummary",
    "Dependencies",
    "Dependents",
    "Diagnostic",
    "DiagnosticCode",
    "DurableFlowShape",
    "Element",
    "ElementKind",
    "EmissionEntry",
    "EmissionFilter",
    "EmitNode",
    "ErrorDefinition",
    "ErrorEntry",
    "ErrorFilter",
    "Event",
    "EventDefinition",
    "ExportsMode",
    "FlowExtraction",
    "FlowNode",
    "FlowNodeKind",
    "Hook",
    "HookDefinition",
    "Interceptor",
    "Isolation",
    "IsolationPolicy",
    "LogEntry",
    "LogFilter",
    "LogLevel",
    "Meta",
    "Middleware",
    "MiddlewareAttachment",
    "MiddlewareConsumer",
    "MiddlewareDefinition",
    "MiddlewareGlobal",
    "MiddlewareKind",
    "MiddlewareUsage",
    "NodeKind",
    "NoteNode",
    "OverrideRequest",
    "RegistrySnapshot",
    "Resource",
    "ResourceDefinition",
    "RunFilter",
    "RunQuery",
    "RunRecord",
    "RunlensError",
    "Severity",
    "SleepNode",
    "SourceKind",
    "StepNode",
    "Store",
    "SwapError",
    "SwitchNode",
    "Tag",
    "TagAttachment",
    "TagDefinition",
    "TagUsage",
    "TaggedElements",
    "Task",
    "TaskDefinition",
    "TunnelInfo",
    "TunnelMode",
    "UnknownRegistration",
    "UnsupportedDurablePrimitiveError",
    "WaitForSignalNode",
]
