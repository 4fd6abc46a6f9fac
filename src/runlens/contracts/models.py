# src/runlens/contracts/models.py
"""Registry snapshot models.

Every element is a frozen dataclass addressed by its string id. Relations
between elements are stored as id tuples, never as object references, so a
snapshot of a cyclic application graph is still a flat, serializable value.

Derived reverse relations (who emits an event, who listens to it, who
carries a tag) are NOT stored on the target element. They live in the
introspection index and are recomputed on every rebuild.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from runlens.contracts.enums import (
    DiagnosticCode,
    ElementKind,
    ExportsMode,
    MiddlewareKind,
    Severity,
    TunnelMode,
)


@dataclass(frozen=True, slots=True)
class Meta:
    """Human-facing title and description of an element."""

    title: str | None = None
    description: str | None = None


@dataclass(frozen=True, slots=True)
class TagUsage:
    """A tag attached to an element, with its per-usage config.

    Config is the JSON-serialized value the element attached the tag with,
    or None when the tag was attached bare.
    """

    id: str
    config: str | None = None


@dataclass(frozen=True, slots=True)
class MiddlewareUsage:
    """A middleware attached to a task or resource, with per-usage config."""

    id: str
    config: str | None = None


@dataclass(frozen=True, slots=True)
class MiddlewareConsumer:
    """One task or resource using a middleware, seen from the middleware side."""

    node_id: str
    config: str | None = None


@dataclass(frozen=True, slots=True)
class Isolation:
    """Isolation boundary declared by a resource."""

    deny: tuple[str, ...] = ()
    only: tuple[str, ...] = ()
    exports: tuple[str, ...] = ()
    exports_mode: ExportsMode = ExportsMode.UNSET


@dataclass(frozen=True, slots=True)
class TunnelInfo:
    """Normalized description of a tunnel resource's runtime value.

    tasks/events are None when the tunnel does not restrict by id
    (predicate-based selection is resolved to concrete ids at populate time).
    """

    mode: TunnelMode
    transport: str = "http"
    tasks: tuple[str, ...] | None = None
    events: tuple[str, ...] | None = None
    endpoint: str | None = None
    auth: str | None = None
    event_delivery_mode: str | None = None


@dataclass(frozen=True, slots=True)
class MiddlewareGlobal:
    """Automatic application of a middleware to every task/resource."""

    enabled: bool = False
    tasks: bool = False
    resources: bool = False


@dataclass(frozen=True, slots=True)
class Element:
    """Fields every registry element carries."""

    id: str
    meta: Meta | None = None
    tags: tuple[str, ...] = ()
    tags_detailed: tuple[TagUsage, ...] = ()
    file_path: str | None = None
    registered_by: str | None = None


@dataclass(frozen=True, slots=True)
class Task(Element):
    """An invocable unit of work."""

    depends_on: tuple[str, ...] = ()
    emits: tuple[str, ...] = ()
    middleware: tuple[str, ...] = ()
    middleware_detailed: tuple[MiddlewareUsage, ...] = ()
    requires: tuple[str, ...] = ()
    throws: tuple[str, ...] = ()
    input_schema: str | None = None
    result_schema: str | None = None
    overridden_by: str | None = None
    is_durable: bool = False
    durable_resource_id: str | None = None
    interceptor_owner_ids: tuple[str, ...] = ()
    interceptor_count: int = 0


@dataclass(frozen=True, slots=True)
class Hook(Element):
    """A listener bound to exactly one event id ("*" for every event)."""

    event: str = "*"
    hook_order: int | None = None
    depends_on: tuple[str, ...] = ()
    emits: tuple[str, ...] = ()
    middleware: tuple[str, ...] = ()
    middleware_detailed: tuple[MiddlewareUsage, ...] = ()
    requires: tuple[str, ...] = ()
    throws: tuple[str, ...] = ()
    overridden_by: str | None = None


@dataclass(frozen=True, slots=True)
class Resource(Element):
    """A long-lived dependency, possibly registering other elements."""

    depends_on: tuple[str, ...] = ()
    emits: tuple[str, ...] = ()
    middleware: tuple[str, ...] = ()
    middleware_detailed: tuple[MiddlewareUsage, ...] = ()
    registers: tuple[str, ...] = ()
    overrides: tuple[str, ...] = ()
    provides: tuple[str, ...] = ()
    throws: tuple[str, ...] = ()
    config: str | None = None
    config_schema: str | None = None
    context: str | None = None
    isolation: Isolation | None = None
    tunnel_info: TunnelInfo | None = None
    overridden_by: str | None = None


@dataclass(frozen=True, slots=True)
class Middleware(Element):
    """A wrapper applied around task runs or resource initialization."""

    kind: MiddlewareKind = MiddlewareKind.TASK
    depends_on: tuple[str, ...] = ()
    emits: tuple[str, ...] = ()
    used_by_tasks: tuple[str, ...] = ()
    used_by_resources: tuple[str, ...] = ()
    config_schema: str | None = None
    global_: MiddlewareGlobal | None = None
    overridden_by: str | None = None


@dataclass(frozen=True, slots=True)
class Event(Element):
    """A named signal. Emitters and listeners are derived, never stored."""

    payload_schema: str | None = None


@dataclass(frozen=True, slots=True)
class Tag(Element):
    """A tag definition. Carriers are derived by scanning element tags."""

    config_schema: str | None = None


@dataclass(frozen=True, slots=True)
class AppError(Element):
    """A declared application error type."""

    data_schema: str | None = None
    thrown_by: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AsyncContext(Element):
    """A request-scoped context value shared through the call chain."""

    used_by: tuple[str, ...] = ()
    required_by: tuple[str, ...] = ()
    provided_by: tuple[str, ...] = ()
    serialize: str | None = None
    parse: str | None = None


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A structural finding about the registry. Collected, never raised."""

    severity: Severity
    code: DiagnosticCode
    message: str
    node_id: str | None = None
    node_kind: ElementKind | None = None


@dataclass(frozen=True, slots=True)
class CoverageSummary:
    """Statement coverage of one source file."""

    file_path: str | None = None
    total_statements: int = 0
    covered_statements: int = 0
    percentage: int = 0


@dataclass(frozen=True, slots=True)
class RegistrySnapshot:
    """Everything the introspector is built from, in registration order."""

    root_id: str | None = None
    tasks: tuple[Task, ...] = ()
    hooks: tuple[Hook, ...] = ()
    resources: tuple[Resource, ...] = ()
    middlewares: tuple[Middleware, ...] = ()
    events: tuple[Event, ...] = ()
    tags: tuple[Tag, ...] = ()
    errors: tuple[AppError, ...] = ()
    async_contexts: tuple[AsyncContext, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class Dependencies:
    """One-level resolution of a node's dependency and emit lists."""

    tasks: tuple[Task, ...] = ()
    hooks: tuple[Hook, ...] = ()
    resources: tuple[Resource, ...] = ()
    emitters: tuple[Event, ...] = ()
    errors: tuple[AppError, ...] = ()


@dataclass(frozen=True, slots=True)
class TaggedElements:
    """Elements carrying one tag, grouped by kind."""

    tasks: tuple[Task, ...] = ()
    hooks: tuple[Hook, ...] = ()
    resources: tuple[Resource, ...] = ()
    middlewares: tuple[Middleware, ...] = ()
    events: tuple[Event, ...] = ()
    errors: tuple[AppError, ...] = ()


@dataclass(frozen=True, slots=True)
class Dependents:
    """Tasks, hooks and resources that depend on one id."""

    tasks: tuple[Task, ...] = ()
    hooks: tuple[Hook, ...] = ()
    resources: tuple[Resource, ...] = ()
