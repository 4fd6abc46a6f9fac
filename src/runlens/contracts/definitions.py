# src/runlens/contracts/definitions.py
"""Raw element definitions handed over by the live runtime.

These are the host application's own building blocks: what a developer
declares when wiring tasks, hooks and resources together. The snapshot
builder reads them (or any duck-typed object or mapping with the same
attribute names) and maps them into the frozen registry models.

Definitions are deliberately loose: dependencies may be a mapping or a
zero-argument callable returning one, tags may be bare ids, definitions,
attachments with config, or mappings. Narrowing happens once, at
snapshot time.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from runlens.contracts.enums import MiddlewareKind

# run(input, deps) -> result, sync or async
RunFn = Callable[[Any, Mapping[str, Any]], Any]


@dataclass(eq=False)
class TagAttachment:
    """A tag attached with per-usage config."""

    tag: TagDefinition | str
    config: Any = None


@dataclass(eq=False)
class TagDefinition:
    id: str
    meta: Mapping[str, Any] | None = None
    config_schema: Any = None
    file_path: str | None = None
    registered_by: str | None = None

    def with_config(self, config: Any) -> TagAttachment:
        return TagAttachment(tag=self, config=config)


@dataclass(eq=False)
class EventDefinition:
    id: str
    meta: Mapping[str, Any] | None = None
    tags: Sequence[Any] = ()
    payload_schema: Any = None
    file_path: str | None = None
    registered_by: str | None = None


@dataclass(eq=False)
class ErrorDefinition:
    id: str
    meta: Mapping[str, Any] | None = None
    tags: Sequence[Any] = ()
    data_schema: Any = None
    file_path: str | None = None
    registered_by: str | None = None


@dataclass(eq=False)
class AsyncContextDefinition:
    id: str
    meta: Mapping[str, Any] | None = None
    tags: Sequence[Any] = ()
    serialize: Callable[[Any], str] | None = None
    parse: Callable[[str], Any] | None = None
    file_path: str | None = None
    registered_by: str | None = None


@dataclass(eq=False)
class MiddlewareAttachment:
    """A middleware attached to a task or resource with per-usage config."""

    middleware: MiddlewareDefinition | str
    config: Any = None


@dataclass(eq=False)
class MiddlewareDefinition:
    id: str
    kind: MiddlewareKind = MiddlewareKind.TASK
    run: Callable[..., Any] | None = None
    dependencies: Mapping[str, Any] | Callable[[], Mapping[str, Any]] = field(default_factory=dict)
    meta: Mapping[str, Any] | None = None
    tags: Sequence[Any] = ()
    config_schema: Any = None
    everywhere: bool = False
    file_path: str | None = None
    registered_by: str | None = None

    def with_config(self, config: Any) -> MiddlewareAttachment:
        return MiddlewareAttachment(middleware=self, config=config)


@dataclass(eq=False)
class Interceptor:
    """One link in a task's interceptor chain.

    fn receives the next callable in the chain plus the run arguments and
    decides whether and how to call it. owner_id names the resource that
    installed the interceptor.
    """

    fn: Callable[[RunFn, Any, Mapping[str, Any]], Any]
    owner_id: str | None = None


@dataclass(eq=False)
class TaskDefinition:
    id: str
    run: RunFn | None = None
    dependencies: Mapping[str, Any] | Callable[[], Mapping[str, Any]] = field(default_factory=dict)
    middleware: Sequence[Any] = ()
    meta: Mapping[str, Any] | None = None
    tags: Sequence[Any] = ()
    input_schema: Any = None
    result_schema: Any = None
    throws: Sequence[Any] = ()
    requires: Sequence[Any] = ()
    interceptors: list[Interceptor] = field(default_factory=list)
    file_path: str | None = None
    registered_by: str | None = None


@dataclass(eq=False)
class HookDefinition:
    id: str
    on: EventDefinition | str = "*"
    run: RunFn | None = None
    order: int | None = None
    dependencies: Mapping[str, Any] | Callable[[], Mapping[str, Any]] = field(default_factory=dict)
    middleware: Sequence[Any] = ()
    meta: Mapping[str, Any] | None = None
    tags: Sequence[Any] = ()
    throws: Sequence[Any] = ()
    requires: Sequence[Any] = ()
    file_path: str | None = None
    registered_by: str | None = None


@dataclass(eq=False)
class IsolationPolicy:
    """Visibility rules of a resource boundary.

    exports None means "not declared" (everything registered is visible);
    an empty sequence means nothing is.
    """

    exports: Sequence[str] | None = None
    deny: Sequence[str] = ()
    only: Sequence[str] = ()


@dataclass(eq=False)
class ResourceDefinition:
    id: str
    init: Callable[..., Any] | None = None
    dependencies: Mapping[str, Any] | Callable[[], Mapping[str, Any]] = field(default_factory=dict)
    register: Sequence[Any] = ()
    overrides: Sequence[Any] = ()
    provides: Sequence[Any] = ()
    middleware: Sequence[Any] = ()
    meta: Mapping[str, Any] | None = None
    tags: Sequence[Any] = ()
    throws: Sequence[Any] = ()
    config: Any = None
    config_schema: Any = None
    context: Any = None
    isolate: IsolationPolicy | None = None
    file_path: str | None = None
    registered_by: str | None = None


@dataclass(frozen=True, slots=True)
class OverrideRequest:
    """A request, recorded by the runtime, that source replaces target."""

    source_id: str
    target_id: str


@dataclass(frozen=True, slots=True)
class UnknownRegistration:
    """A register list entry that is not a runlens definition."""

    registrar_id: str
    entry: Any


@dataclass
class Store:
    """Everything the live runtime knows about one application.

    Element lists hold raw definitions in registration order. They may also
    hold foreign objects or mappings; anything without a usable id is
    reported as malformed when the snapshot is built.

    Attributes:
        root_id: Id of the root resource, if the app has one
        resource_values: Initialized resource values, keyed by resource id
        override_requests: Override requests in the order they were made
        unknown_registrations: Register list entries that are not definitions
    """

    root_id: str | None = None
    tasks: list[Any] = field(default_factory=list)
    hooks: list[Any] = field(default_factory=list)
    resources: list[Any] = field(default_factory=list)
    middlewares: list[Any] = field(default_factory=list)
    events: list[Any] = field(default_factory=list)
    tags: list[Any] = field(default_factory=list)
    errors: list[Any] = field(default_factory=list)
    async_contexts: list[Any] = field(default_factory=list)
    resource_values: dict[str, Any] = field(default_factory=dict)
    override_requests: list[OverrideRequest] = field(default_factory=list)
    unknown_registrations: list[UnknownRegistration] = field(default_factory=list)

    @classmethod
    def from_root(cls, root: ResourceDefinition) -> Store:
        """Collect a store by walking a root resource's registrations.

        Elements are added in depth-first registration order. An id seen
        twice within one kind keeps its first definition. Entries that are
        not definitions (bare ids, foreign objects) are set aside in
        unknown_registrations for the snapshot builder to report.

        Args:
            root: The application's root resource

        Returns:
            Store holding every element reachable through register lists
        """
        store = cls(root_id=root.id)
        seen: set[tuple[str, str]] = set()
        for registrar_id, definition in _walk_registrations(root):
            bucket = _bucket_name(definition)
            if bucket is None:
                store.unknown_registrations.append(UnknownRegistration(registrar_id, definition))
                continue
            key = (bucket, definition.id)
            if key in seen:
                continue
            seen.add(key)
            getattr(store, bucket).append(definition)
            if isinstance(definition, ResourceDefinition):
                for target in definition.overrides:
                    target_id = target if isinstance(target, str) else target.id
                    store.override_requests.append(OverrideRequest(definition.id, target_id))
        return store

    def find_task(self, task_id: str) -> TaskDefinition | None:
        for definition in self.tasks:
            if getattr(definition, "id", None) == task_id:
                return definition  # type: ignore[no-any-return]
        return None

    def find_resource(self, resource_id: str) -> ResourceDefinition | None:
        for definition in self.resources:
            if getattr(definition, "id", None) == resource_id:
                return definition  # type: ignore[no-any-return]
        return None


_BUCKETS: tuple[tuple[type, str], ...] = (
    (TaskDefinition, "tasks"),
    (HookDefinition, "hooks"),
    (ResourceDefinition, "resources"),
    (MiddlewareDefinition, "middlewares"),
    (EventDefinition, "events"),
    (TagDefinition, "tags"),
    (ErrorDefinition, "errors"),
    (AsyncContextDefinition, "async_contexts"),
)


def _bucket_name(definition: Any) -> str | None:
    for definition_type, bucket in _BUCKETS:
        if isinstance(definition, definition_type):
            return bucket
    return None


def _walk_registrations(
    resource: ResourceDefinition, registrar_id: str = "", visited: set[int] | None = None
) -> Iterator[tuple[str, Any]]:
    """Yield (registering resource id, entry) pairs; the root has no registrar."""
    visited = set() if visited is None else visited
    if id(resource) in visited:
        return
    visited.add(id(resource))
    yield registrar_id, resource
    for child in resource.register:
        if isinstance(child, ResourceDefinition):
            yield from _walk_registrations(child, resource.id, visited)
        else:
            yield resource.id, child
