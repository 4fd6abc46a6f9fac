# src/runlens/introspection/introspector.py
"""Read-only query facade over one registry snapshot.

The Introspector owns a snapshot, per-kind id maps, and an
IntrospectionIndex built once at construction. Every query is a pure read
except populate_tunnel_info(), which fills tunnel descriptions from live
resource values exactly once.

Lookups never raise for unknown ids: single-element lookups return None and
list-returning lookups return an empty list.
"""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

import structlog
from pydantic import BaseModel, Field, TypeAdapter

from runlens.contracts.enums import ElementKind, NodeKind
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
    Middleware,
    MiddlewareConsumer,
    MiddlewareUsage,
    RegistrySnapshot,
    Resource,
    Tag,
    TaggedElements,
    Task,
)
from runlens.contracts.records import RunFilter, RunQuery
from runlens.core.config import RunlensSettings
from runlens.core.coverage import CoverageDetails, CoverageReport
from runlens.core.paths import PathSanitizer
from runlens.core.tags import is_tunnel_tag
from runlens.introspection.diagnostics import build_diagnostics
from runlens.introspection.index import IntrospectionIndex
from runlens.introspection.isolation import matches_any
from runlens.introspection.isolation import resolve_exposed_ids as resolve_resource_exposed_ids
from runlens.introspection.tunnel import extract_tunnel_info

logger = structlog.get_logger(__name__)

_SNAPSHOT_ADAPTER: TypeAdapter[RegistrySnapshot] = TypeAdapter(RegistrySnapshot)

type NodeElement = Task | Hook | Resource


# =============================================================================
# Run listing arguments
# =============================================================================


class RunFilterArgs(BaseModel):
    """Filter part of a run listing request, as sent by a query client."""

    model_config = {"frozen": True, "populate_by_name": True, "extra": "ignore"}

    node_ids: list[str] | None = Field(default=None, alias="nodeIds")
    node_kinds: list[NodeKind] | None = Field(default=None, alias="nodeKinds")
    ok: bool | None = None
    parent_ids: list[str] | None = Field(default=None, alias="parentIds")
    root_ids: list[str] | None = Field(default=None, alias="rootIds")
    correlation_ids: list[str] | None = Field(default=None, alias="correlationIds")


class RunArgs(BaseModel):
    """Cursor, window and filter of a run listing request."""

    model_config = {"frozen": True, "populate_by_name": True, "extra": "ignore"}

    after_timestamp: float | None = Field(default=None, alias="afterTimestamp")
    last: int | None = Field(default=None, ge=0)
    filter: RunFilterArgs | None = None


def _tuple_or_none[T](values: list[T] | None) -> tuple[T, ...] | None:
    return tuple(values) if values is not None else None


# =============================================================================
# Introspector
# =============================================================================


class Introspector:
    """Queries over one registry snapshot.

    Args:
        snapshot: The registry to query
        runtime_values: resource id -> initialized value, read when tunnel
            info is populated
        settings: Runtime settings (legacy tunnel tag matching)
        coverage: Coverage report for get_coverage()
        path_sanitizer: Resolves sanitized file labels back to absolute
            paths for coverage lookups
    """

    def __init__(
        self,
        snapshot: RegistrySnapshot,
        *,
        runtime_values: Mapping[str, Any] | None = None,
        settings: RunlensSettings | None = None,
        coverage: CoverageReport | None = None,
        path_sanitizer: PathSanitizer | None = None,
    ) -> None:
        self._snapshot = snapshot
        self._runtime_values = dict(runtime_values or {})
        self._settings = settings or RunlensSettings()
        self._coverage = coverage or CoverageReport.empty()
        self._path_sanitizer = path_sanitizer
        self._tunnels_populated = False
        self._tunnel_lock = threading.Lock()

        self._tasks = {task.id: task for task in snapshot.tasks}
        self._hooks = {hook.id: hook for hook in snapshot.hooks}
        self._resources = {resource.id: resource for resource in snapshot.resources}
        self._middlewares = {middleware.id: middleware for middleware in snapshot.middlewares}
        self._events = {event.id: event for event in snapshot.events}
        self._tags = {tag.id: tag for tag in snapshot.tags}
        self._errors = {error.id: error for error in snapshot.errors}
        self._async_contexts = {context.id: context for context in snapshot.async_contexts}

        self.index = IntrospectionIndex(snapshot)
        logger.debug(
            "Introspector built",
            nodes=self.index.node_count,
            edges=self.index.edge_count,
            root_id=snapshot.root_id,
        )

    @property
    def snapshot(self) -> RegistrySnapshot:
        """Current snapshot, including populated tunnel info."""
        return dataclasses.replace(self._snapshot, resources=tuple(self._resources.values()))

    # -------------------------------------------------------------------------
    # Single-element lookups
    # -------------------------------------------------------------------------

    def get_task(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def get_hook(self, hook_id: str) -> Hook | None:
        return self._hooks.get(hook_id)

    def get_resource(self, resource_id: str) -> Resource | None:
        return self._resources.get(resource_id)

    def get_middleware(self, middleware_id: str) -> Middleware | None:
        return self._middlewares.get(middleware_id)

    def get_event(self, event_id: str) -> Event | None:
        return self._events.get(event_id)

    def get_tag(self, tag_id: str) -> Tag | None:
        return self._tags.get(tag_id)

    def get_error(self, error_id: str) -> AppError | None:
        return self._errors.get(error_id)

    def get_async_context(self, context_id: str) -> AsyncContext | None:
        return self._async_contexts.get(context_id)

    def get_element(self, element_id: str) -> Element | None:
        """Resolve an id of any kind.

        Kinds are tried in order: task, hook, resource, middleware, event,
        error, async context, tag. The first match wins.
        """
        for lookup in (
            self._tasks,
            self._hooks,
            self._resources,
            self._middlewares,
            self._events,
            self._errors,
            self._async_contexts,
            self._tags,
        ):
            element: Element | None = lookup.get(element_id)
            if element is not None:
                return element
        return None

    def get_root(self) -> Resource | None:
        """The root resource, falling back to the first registered resource."""
        if self._snapshot.root_id is not None and self._snapshot.root_id in self._resources:
            return self._resources[self._snapshot.root_id]
        return next(iter(self._resources.values()), None)

    # -------------------------------------------------------------------------
    # List accessors
    # -------------------------------------------------------------------------

    @staticmethod
    def _filtered[E: Element](elements: Iterable[E], id_includes: str | None) -> list[E]:
        if not id_includes:
            return list(elements)
        return [element for element in elements if id_includes in element.id]

    def get_tasks(self, id_includes: str | None = None) -> list[Task]:
        return self._filtered(self._tasks.values(), id_includes)

    def get_hooks(self, id_includes: str | None = None) -> list[Hook]:
        return self._filtered(self._hooks.values(), id_includes)

    def get_resources(self, id_includes: str | None = None) -> list[Resource]:
        return self._filtered(self._resources.values(), id_includes)

    def get_middlewares(self, id_includes: str | None = None) -> list[Middleware]:
        return self._filtered(self._middlewares.values(), id_includes)

    def get_events(self, id_includes: str | None = None) -> list[Event]:
        return self._filtered(self._events.values(), id_includes)

    def get_tags(self, id_includes: str | None = None) -> list[Tag]:
        return self._filtered(self._tags.values(), id_includes)

    def get_errors(self, id_includes: str | None = None) -> list[AppError]:
        return self._filtered(self._errors.values(), id_includes)

    def get_async_contexts(self, id_includes: str | None = None) -> list[AsyncContext]:
        return self._filtered(self._async_contexts.values(), id_includes)

    def get_task_middlewares(self) -> list[Middleware]:
        """Middleware used by tasks or hooks, or not used at all."""
        return [m for m in self._middlewares.values() if m.used_by_tasks or not m.used_by_resources]

    def get_resource_middlewares(self) -> list[Middleware]:
        """Middleware used only by resources."""
        return [m for m in self._middlewares.values() if m.used_by_resources and not m.used_by_tasks]

    def get_all(self) -> list[Element]:
        """Every element, grouped by kind in resolution order."""
        return [
            *self._tasks.values(),
            *self._hooks.values(),
            *self._resources.values(),
            *self._middlewares.values(),
            *self._events.values(),
            *self._errors.values(),
            *self._async_contexts.values(),
            *self._tags.values(),
        ]

    # -------------------------------------------------------------------------
    # Lookups by id list (input order kept, unknown ids dropped)
    # -------------------------------------------------------------------------

    @staticmethod
    def _by_ids[E](lookup: Mapping[str, E], ids: Iterable[str]) -> list[E]:
        return [lookup[element_id] for element_id in ids if element_id in lookup]

    def get_tasks_by_ids(self, ids: Iterable[str]) -> list[Task]:
        return self._by_ids(self._tasks, ids)

    def get_hooks_by_ids(self, ids: Iterable[str]) -> list[Hook]:
        return self._by_ids(self._hooks, ids)

    def get_resources_by_ids(self, ids: Iterable[str]) -> list[Resource]:
        return self._by_ids(self._resources, ids)

    def get_middlewares_by_ids(self, ids: Iterable[str]) -> list[Middleware]:
        return self._by_ids(self._middlewares, ids)

    def get_events_by_ids(self, ids: Iterable[str]) -> list[Event]:
        return self._by_ids(self._events, ids)

    def get_tags_by_ids(self, ids: Iterable[str]) -> list[Tag]:
        return self._by_ids(self._tags, ids)

    def get_errors_by_ids(self, ids: Iterable[str]) -> list[AppError]:
        return self._by_ids(self._errors, ids)

    def get_async_contexts_by_ids(self, ids: Iterable[str]) -> list[AsyncContext]:
        return self._by_ids(self._async_contexts, ids)

    # -------------------------------------------------------------------------
    # Graph queries
    # -------------------------------------------------------------------------

    def get_dependencies(self, node: NodeElement) -> Dependencies:
        """Resolve one node's depends_on and emits lists, one level deep.

        Dependency ids keep their declaration order within each group; ids
        that resolve to no element are dropped.
        """
        return Dependencies(
            tasks=tuple(self.get_tasks_by_ids(node.depends_on)),
            hooks=tuple(self.get_hooks_by_ids(node.depends_on)),
            resources=tuple(self.get_resources_by_ids(node.depends_on)),
            emitters=tuple(self.get_events_by_ids(node.emits)),
            errors=tuple(self.get_errors_by_ids(node.depends_on)),
        )

    def get_dependents(self, element_id: str) -> Dependents:
        groups = self.index.dependents_of(element_id)
        return Dependents(
            tasks=tuple(self.get_tasks_by_ids(groups.tasks)),
            hooks=tuple(self.get_hooks_by_ids(groups.hooks)),
            resources=tuple(self.get_resources_by_ids(groups.resources)),
        )

    def get_emitted_events(self, node: NodeElement) -> list[Event]:
        return self.get_events_by_ids(node.emits)

    def get_emitters_of_event(self, event_id: str) -> list[NodeElement]:
        """Tasks, hooks and resources whose emits list contains event_id."""
        emitters: list[NodeElement] = []
        for kind, node_id in self.index.emitters.get(event_id, ()):
            node = self._node(kind, node_id)
            if node is not None:
                emitters.append(node)
        return emitters

    def get_hooks_of_event(self, event_id: str) -> list[Hook]:
        """Hooks bound to exactly event_id, stable-sorted by order (unset is 0)."""
        hooks = self.get_hooks_by_ids(self.index.listeners.get(event_id, ()))
        return sorted(hooks, key=lambda hook: hook.hook_order or 0)

    def _node(self, kind: ElementKind, node_id: str) -> NodeElement | None:
        match kind:
            case ElementKind.TASK:
                return self._tasks.get(node_id)
            case ElementKind.HOOK:
                return self._hooks.get(node_id)
            case ElementKind.RESOURCE:
                return self._resources.get(node_id)
            case _:
                return None

    # -------------------------------------------------------------------------
    # Middleware
    # -------------------------------------------------------------------------

    def _resolved_usages(self, usages: Sequence[MiddlewareUsage]) -> list[tuple[MiddlewareUsage, Middleware]]:
        return [(usage, self._middlewares[usage.id]) for usage in usages if usage.id in self._middlewares]

    def get_middleware_usages_for_task(self, task_id: str) -> list[tuple[MiddlewareUsage, Middleware]]:
        """Middleware attached to a task or hook, with per-usage config."""
        node = self._tasks.get(task_id) or self._hooks.get(task_id)
        if node is None:
            return []
        return self._resolved_usages(node.middleware_detailed)

    def get_middleware_usages_for_resource(self, resource_id: str) -> list[tuple[MiddlewareUsage, Middleware]]:
        resource = self._resources.get(resource_id)
        if resource is None:
            return []
        return self._resolved_usages(resource.middleware_detailed)

    def get_tasks_using_middleware_detailed(self, middleware_id: str) -> list[tuple[MiddlewareConsumer, Task | Hook]]:
        """Tasks and hooks attaching a middleware, each with its usage config."""
        users = self.index.middleware_users.get(middleware_id)
        if users is None:
            return []
        result: list[tuple[MiddlewareConsumer, Task | Hook]] = []
        for consumer in users.tasks:
            node = self._tasks.get(consumer.node_id) or self._hooks.get(consumer.node_id)
            if node is not None:
                result.append((consumer, node))
        return result

    def get_resources_using_middleware_detailed(self, middleware_id: str) -> list[tuple[MiddlewareConsumer, Resource]]:
        users = self.index.middleware_users.get(middleware_id)
        if users is None:
            return []
        return [
            (consumer, self._resources[consumer.node_id])
            for consumer in users.resources
            if consumer.node_id in self._resources
        ]

    def _events_emitted_by(self, nodes: Iterable[Task | Hook]) -> list[Event]:
        emitted: dict[str, None] = {}
        for node in nodes:
            for event_id in node.emits:
                emitted.setdefault(event_id)
        return self.get_events_by_ids(emitted)

    def get_middleware_emitted_events(self, middleware_id: str) -> list[Event]:
        """Events emitted by the tasks and hooks a middleware wraps."""
        return self._events_emitted_by(node for _, node in self.get_tasks_using_middleware_detailed(middleware_id))

    def get_emitted_events_for_resource(self, resource_id: str) -> list[Event]:
        """Events emitted by the tasks and hooks depending on a resource."""
        dependents = self.get_dependents(resource_id)
        return self._events_emitted_by((*dependents.tasks, *dependents.hooks))

    # -------------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------------

    def get_tag_carriers(self, tag_id: str) -> TaggedElements:
        carriers = self.index.tag_carriers.get(tag_id)
        if carriers is None:
            return TaggedElements()
        return TaggedElements(
            tasks=tuple(self.get_tasks_by_ids(carriers.tasks)),
            hooks=tuple(self.get_hooks_by_ids(carriers.hooks)),
            resources=tuple(self.get_resources_by_ids(carriers.resources)),
            middlewares=tuple(self.get_middlewares_by_ids(carriers.middlewares)),
            events=tuple(self.get_events_by_ids(carriers.events)),
            errors=tuple(self.get_errors_by_ids(carriers.errors)),
        )

    def get_tasks_with_tag(self, tag_id: str) -> list[Task]:
        return list(self.get_tag_carriers(tag_id).tasks)

    def get_hooks_with_tag(self, tag_id: str) -> list[Hook]:
        return list(self.get_tag_carriers(tag_id).hooks)

    def get_resources_with_tag(self, tag_id: str) -> list[Resource]:
        return list(self.get_tag_carriers(tag_id).resources)

    def get_middlewares_with_tag(self, tag_id: str) -> list[Middleware]:
        return list(self.get_tag_carriers(tag_id).middlewares)

    def get_events_with_tag(self, tag_id: str) -> list[Event]:
        return list(self.get_tag_carriers(tag_id).events)

    def get_errors_with_tag(self, tag_id: str) -> list[AppError]:
        return list(self.get_tag_carriers(tag_id).errors)

    def get_tag_handlers(self, tag_id: str) -> Dependents:
        """Tasks, hooks and resources that depend on a tag (tag-driven handlers)."""
        return self.get_dependents(tag_id)

    def get_tag_config(self, element_id: str, tag_id: str) -> str | None:
        return self.index.tag_configs.get((element_id, tag_id))

    # -------------------------------------------------------------------------
    # Errors and async contexts
    # -------------------------------------------------------------------------

    def _nodes_by_ids(self, ids: Iterable[str]) -> list[NodeElement]:
        nodes: list[NodeElement] = []
        for node_id in ids:
            node = self._tasks.get(node_id) or self._hooks.get(node_id) or self._resources.get(node_id)
            if node is not None:
                nodes.append(node)
        return nodes

    def get_error_throwers(self, error_id: str) -> list[NodeElement]:
        error = self._errors.get(error_id)
        return self._nodes_by_ids(error.thrown_by) if error else []

    def get_context_users(self, context_id: str) -> list[Element]:
        """Tasks, hooks, resources and middleware depending on a context."""
        context = self._async_contexts.get(context_id)
        if context is None:
            return []
        users: list[Element] = []
        for user_id in context.used_by:
            user: Element | None = (
                self._tasks.get(user_id)
                or self._hooks.get(user_id)
                or self._resources.get(user_id)
                or self._middlewares.get(user_id)
            )
            if user is not None:
                users.append(user)
        return users

    def get_context_providers(self, context_id: str) -> list[Resource]:
        context = self._async_contexts.get(context_id)
        return self.get_resources_by_ids(context.provided_by) if context else []

    def is_context_required_by(self, context_id: str, node_id: str) -> bool:
        context = self._async_contexts.get(context_id)
        return context is not None and node_id in context.required_by

    # -------------------------------------------------------------------------
    # Registration and isolation
    # -------------------------------------------------------------------------

    def get_registered_by(self, element_id: str) -> str | None:
        """Id of the resource registering an element.

        A registered_by value recorded on the element itself wins over the
        index derived from resource register lists.
        """
        element = self.get_element(element_id)
        if element is not None and element.registered_by:
            return element.registered_by
        return self.index.registered_by.get(element_id)

    def get_registered_elements(self, resource_id: str) -> list[Element]:
        resource = self._resources.get(resource_id)
        if resource is None:
            return []
        elements: list[Element] = []
        for child_id in resource.registers:
            element = self.get_element(child_id)
            if element is not None:
                elements.append(element)
        return elements

    def resolve_exposed_ids(self, resource_id: str) -> frozenset[str]:
        resource = self._resources.get(resource_id)
        return resolve_resource_exposed_ids(resource) if resource else frozenset()

    def get_visibility_reason(self, element_id: str) -> str | None:
        """Why an element is hidden by its registering resource, or None when visible."""
        owner_id = self.get_registered_by(element_id)
        owner = self._resources.get(owner_id) if owner_id else None
        if owner is None or owner.isolation is None:
            return None
        if element_id in resolve_resource_exposed_ids(owner):
            return None
        if matches_any(element_id, owner.isolation.deny):
            return f"Denied by isolation policy of {owner.id}"
        return f"Not exported by {owner.id}"

    def is_private(self, element_id: str) -> bool:
        return self.get_visibility_reason(element_id) is not None

    # -------------------------------------------------------------------------
    # Tunnels
    # -------------------------------------------------------------------------

    def populate_tunnel_info(self) -> None:
        """Describe tunnel resources from their initialized values.

        Only resources carrying a tunnel tag with a truthy runtime value are
        described. Runs once; later calls do nothing.

        Concurrent callers block until the first one has published the
        described resources, so no caller sees a half-populated registry.
        """
        if self._tunnels_populated:
            return
        with self._tunnel_lock:
            if self._tunnels_populated:
                return
            legacy = self._settings.introspection.legacy_tunnel_tag_matching
            task_ids = list(self._tasks)
            event_ids = list(self._events)
            resources = dict(self._resources)
            for resource in self._resources.values():
                if not any(is_tunnel_tag(tag_id, legacy_matching=legacy) for tag_id in resource.tags):
                    continue
                value = self._runtime_values.get(resource.id)
                if not value:
                    continue
                info = extract_tunnel_info(value, task_ids, event_ids)
                if info is None:
                    logger.debug("Tunnel-tagged resource value is not a tunnel", resource_id=resource.id)
                    continue
                resources[resource.id] = dataclasses.replace(resource, tunnel_info=info)
            self._resources = resources
            self._tunnels_populated = True

    def get_tunnel_resources(self) -> list[Resource]:
        self.populate_tunnel_info()
        return [resource for resource in self._resources.values() if resource.tunnel_info is not None]

    def get_tunneled_tasks(self, tunnel_resource_id: str) -> list[Task]:
        self.populate_tunnel_info()
        tunnel = self._resources.get(tunnel_resource_id)
        if tunnel is None or tunnel.tunnel_info is None or tunnel.tunnel_info.tasks is None:
            return []
        return self.get_tasks_by_ids(tunnel.tunnel_info.tasks)

    def get_tunneled_events(self, tunnel_resource_id: str) -> list[Event]:
        self.populate_tunnel_info()
        tunnel = self._resources.get(tunnel_resource_id)
        if tunnel is None or tunnel.tunnel_info is None or tunnel.tunnel_info.events is None:
            return []
        return self.get_events_by_ids(tunnel.tunnel_info.events)

    def _first_tunnel(self, accepts: Callable[[Resource], bool]) -> Resource | None:
        return next((tunnel for tunnel in self.get_tunnel_resources() if accepts(tunnel)), None)

    def get_tunnel_for_task(self, task_id: str) -> Resource | None:
        if task_id not in self._tasks:
            return None
        return self._first_tunnel(lambda t: t.tunnel_info is not None and task_id in (t.tunnel_info.tasks or ()))

    def get_tunnel_for_event(self, event_id: str) -> Resource | None:
        return self._first_tunnel(lambda t: t.tunnel_info is not None and event_id in (t.tunnel_info.events or ()))

    # -------------------------------------------------------------------------
    # Durable workflows
    # -------------------------------------------------------------------------

    def is_durable_task(self, task_id: str) -> bool:
        task = self._tasks.get(task_id)
        return task is not None and task.is_durable

    def get_durable_tasks(self) -> list[Task]:
        return [task for task in self._tasks.values() if task.is_durable]

    def get_durable_resource_for_task(self, task_id: str) -> Resource | None:
        """First durable resource in the task's depends_on order."""
        task = self._tasks.get(task_id)
        if task is None or task.durable_resource_id is None:
            return None
        return self._resources.get(task.durable_resource_id)

    # -------------------------------------------------------------------------
    # Run listings
    # -------------------------------------------------------------------------

    @staticmethod
    def _run_query(node_id: str, node_kind: NodeKind, args: RunArgs | Mapping[str, Any] | None) -> RunQuery:
        parsed = args if isinstance(args, RunArgs) else RunArgs.model_validate(dict(args or {}))
        requested = parsed.filter or RunFilterArgs()
        return RunQuery(
            filter=RunFilter(
                node_kinds=tuple(requested.node_kinds) if requested.node_kinds is not None else (node_kind,),
                node_ids=tuple(requested.node_ids) if requested.node_ids is not None else (node_id,),
                ok=requested.ok,
                parent_ids=_tuple_or_none(requested.parent_ids),
                root_ids=_tuple_or_none(requested.root_ids),
                correlation_ids=_tuple_or_none(requested.correlation_ids),
            ),
            after_timestamp=parsed.after_timestamp,
            last=parsed.last,
        )

    def build_run_options_for_task(self, task_id: str, args: RunArgs | Mapping[str, Any] | None = None) -> RunQuery:
        """Translate listing arguments into a run query scoped to one task.

        Args:
            task_id: Task whose runs are listed unless the filter names other ids
            args: {"afterTimestamp", "last", "filter"} mapping or RunArgs

        Returns:
            RunQuery defaulting to node_ids=(task_id,) and node_kinds=(TASK,)

        Raises:
            pydantic.ValidationError: If args are malformed
        """
        return self._run_query(task_id, NodeKind.TASK, args)

    def build_run_options_for_hook(self, hook_id: str, args: RunArgs | Mapping[str, Any] | None = None) -> RunQuery:
        return self._run_query(hook_id, NodeKind.HOOK, args)

    # -------------------------------------------------------------------------
    # Diagnostics, interceptors, coverage
    # -------------------------------------------------------------------------

    def get_diagnostics(self) -> list[Diagnostic]:
        return build_diagnostics(self, self._snapshot.diagnostics)

    def get_task_interceptor_owner_ids(self, task_id: str) -> tuple[str, ...]:
        task = self._tasks.get(task_id)
        return task.interceptor_owner_ids if task else ()

    def get_task_interceptor_count(self, task_id: str) -> int:
        task = self._tasks.get(task_id)
        return task.interceptor_count if task else 0

    def _absolute_source(self, element_id: str) -> str | None:
        element = self.get_element(element_id)
        if element is None or element.file_path is None:
            return None
        if self._path_sanitizer is None:
            return element.file_path
        return self._path_sanitizer.resolve_label(element.file_path)

    def get_coverage(self, element_id: str) -> CoverageSummary:
        """Statement coverage of an element's source file, zeros when unknown.

        The summary carries the element's sanitized label, never the
        absolute path the report is keyed by.
        """
        element = self.get_element(element_id)
        label = element.file_path if element else None
        summary = self._coverage.summary_for(self._absolute_source(element_id))
        if summary is not None:
            return dataclasses.replace(summary, file_path=label)
        return CoverageSummary(file_path=label)

    def get_coverage_details(self, element_id: str) -> CoverageDetails | None:
        return self._coverage.details_for(self._absolute_source(element_id))

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def serialize(self) -> dict[str, Any]:
        """JSON-ready form of the current snapshot.

        Tunnel info is populated first, since restored introspectors never
        populate it again.
        """
        self.populate_tunnel_info()
        data: dict[str, Any] = _SNAPSHOT_ADAPTER.dump_python(self.snapshot, mode="json")
        return data

    @classmethod
    def from_serialized(cls, data: Mapping[str, Any], **kwargs: Any) -> Introspector:
        """Rebuild an introspector from serialize() output.

        Raises:
            pydantic.ValidationError: If data is not a serialized snapshot
        """
        introspector = cls(_SNAPSHOT_ADAPTER.validate_python(dict(data)), **kwargs)
        # Tunnel info travels inside the snapshot
        introspector._tunnels_populated = True
        return introspector
