# src/runlens/introspection/snapshot.py
"""Registry snapshot construction.

build_snapshot() maps every raw element of a host Store into the frozen
registry models in one pass, then runs a linking pass that fills the
relations stored on the models themselves (overrides, middleware users,
durable flags, error throw sites, async-context users).

Raw elements are read by attribute or mapping key, so foreign objects work
as long as they carry the expected names. Elements that cannot be read are
dropped with a MALFORMED_ELEMENT diagnostic; the build always completes.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import structlog

from runlens.contracts.definitions import (
    AsyncContextDefinition,
    ErrorDefinition,
    EventDefinition,
    HookDefinition,
    MiddlewareAttachment,
    MiddlewareDefinition,
    OverrideRequest,
    ResourceDefinition,
    Store,
    TagDefinition,
    TaskDefinition,
)
from runlens.contracts.enums import DiagnosticCode, ElementKind, ExportsMode, MiddlewareKind, Severity
from runlens.contracts.models import (
    AppError,
    AsyncContext,
    Diagnostic,
    Event,
    Hook,
    Isolation,
    Meta,
    Middleware,
    MiddlewareGlobal,
    MiddlewareUsage,
    RegistrySnapshot,
    Resource,
    Tag,
    Task,
)
from runlens.core.paths import PathSanitizer
from runlens.core.schema_text import format_schema, to_json_text
from runlens.core.tags import is_durable_resource, normalize_tags

logger = structlog.get_logger(__name__)

_DEFINITION_KINDS: tuple[tuple[type, ElementKind], ...] = (
    (TaskDefinition, ElementKind.TASK),
    (HookDefinition, ElementKind.HOOK),
    (ResourceDefinition, ElementKind.RESOURCE),
    (MiddlewareDefinition, ElementKind.MIDDLEWARE),
    (EventDefinition, ElementKind.EVENT),
    (ErrorDefinition, ElementKind.ERROR),
    (AsyncContextDefinition, ElementKind.ASYNC_CONTEXT),
    (TagDefinition, ElementKind.TAG),
)


class MalformedElementError(ValueError):
    """Raised internally when a raw element cannot be mapped."""


def _read(raw: Any, name: str, default: Any = None) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name, default)
    return getattr(raw, name, default)


def _element_id(raw: Any) -> str | None:
    candidate = raw if isinstance(raw, str) else _read(raw, "id")
    return candidate if isinstance(candidate, str) and candidate else None


def _sequence(raw: Any, name: str) -> list[Any]:
    value = _read(raw, name)
    if value is None:
        return []
    if isinstance(value, str | bytes | Mapping) or not isinstance(value, Iterable):
        raise MalformedElementError(f"'{name}' must be a list, got {type(value).__name__}")
    return list(value)


def _id_list(raw: Any, name: str) -> tuple[str, ...]:
    ids: list[str] = []
    for item in _sequence(raw, name):
        item_id = _element_id(item)
        if item_id is not None and item_id not in ids:
            ids.append(item_id)
    return tuple(ids)


def _kind_of(value: Any) -> ElementKind | None:
    for definition_type, kind in _DEFINITION_KINDS:
        if isinstance(value, definition_type):
            return kind
    declared = _read(value, "kind") if not isinstance(value, str) else None
    if isinstance(declared, str):
        try:
            return ElementKind(declared)
        except ValueError:
            return None
    return None


def _describe_callable(value: Any) -> str | None:
    if value is None:
        return None
    if callable(value):
        return getattr(value, "__qualname__", None) or repr(value)
    return to_json_text(value)


def _meta(raw: Any) -> Meta | None:
    meta = _read(raw, "meta")
    if meta is None:
        return None
    if isinstance(meta, Meta):
        return meta
    title = _read(meta, "title")
    description = _read(meta, "description")
    return Meta(
        title=str(title) if title is not None else None,
        description=str(description) if description is not None else None,
    )


class _DependencyLists:
    """A raw element's dependencies split by what they mean."""

    def __init__(self) -> None:
        self.depends_on: list[str] = []
        self.emits: list[str] = []

    def add(self, value: Any) -> None:
        dep_id = _element_id(value)
        if dep_id is None:
            return
        target = self.emits if _kind_of(value) == ElementKind.EVENT else self.depends_on
        if dep_id not in target:
            target.append(dep_id)


def _dependencies(raw: Any) -> _DependencyLists:
    declared = _read(raw, "dependencies")
    if callable(declared) and not isinstance(declared, Mapping):
        declared = declared()
    lists = _DependencyLists()
    if declared is None:
        return lists
    if not isinstance(declared, Mapping):
        raise MalformedElementError(f"dependencies must be a mapping, got {type(declared).__name__}")
    for value in declared.values():
        lists.add(value)
    return lists


def _middleware_usages(raw: Any) -> tuple[MiddlewareUsage, ...]:
    usages: list[MiddlewareUsage] = []
    for item in _sequence(raw, "middleware"):
        match item:
            case MiddlewareAttachment(middleware=middleware, config=config):
                middleware_id = _element_id(middleware)
            case Mapping() if "middleware" in item:
                middleware_id = _element_id(item["middleware"])
                config = item.get("config")
            case Mapping():
                middleware_id = _element_id(item)
                config = item.get("config")
            case _:
                middleware_id = _element_id(item)
                config = None
        if middleware_id is not None and all(usage.id != middleware_id for usage in usages):
            usages.append(MiddlewareUsage(id=middleware_id, config=to_json_text(config)))
    return tuple(usages)


def _isolation(raw: Any) -> Isolation | None:
    policy = _read(raw, "isolate")
    if policy is None:
        return None
    exports = _read(policy, "exports")
    if exports is None:
        mode = ExportsMode.UNSET
        export_ids: tuple[str, ...] = ()
    else:
        export_ids = tuple(item_id for item_id in (_element_id(item) for item in exports) if item_id)
        mode = ExportsMode.LIST if export_ids else ExportsMode.NONE
    return Isolation(
        deny=tuple(item for item in (_element_id(v) for v in _read(policy, "deny") or ()) if item),
        only=tuple(item for item in (_element_id(v) for v in _read(policy, "only") or ()) if item),
        exports=export_ids,
        exports_mode=mode,
    )


class SnapshotBuilder:
    """Maps one Store into a RegistrySnapshot.

    Single use: construct, call build(), discard.
    """

    def __init__(self, store: Store, sanitizer: PathSanitizer) -> None:
        self._store = store
        self._sanitizer = sanitizer
        self._diagnostics: list[Diagnostic] = []

    # -------------------------------------------------------------------------
    # Common fields
    # -------------------------------------------------------------------------

    def _file_path(self, raw: Any, element_id: str, kind: ElementKind) -> str | None:
        path = _read(raw, "file_path")
        if not isinstance(path, str) or not path:
            return None
        if os.path.isabs(path) and not os.path.exists(path):
            self._diagnostics.append(
                Diagnostic(
                    severity=Severity.INFO,
                    code=DiagnosticCode.MISSING_FILE,
                    message=f"Source file for {kind} '{element_id}' does not exist: {self._sanitizer.sanitize(path)}",
                    node_id=element_id,
                    node_kind=kind,
                )
            )
        return self._sanitizer.sanitize(path)

    def _common(self, raw: Any, element_id: str, kind: ElementKind) -> dict[str, Any]:
        tags_detailed = normalize_tags(_sequence(raw, "tags"))
        registered_by = _read(raw, "registered_by")
        return {
            "id": element_id,
            "meta": _meta(raw),
            "tags": tuple(usage.id for usage in tags_detailed),
            "tags_detailed": tags_detailed,
            "file_path": self._file_path(raw, element_id, kind),
            "registered_by": registered_by if isinstance(registered_by, str) else None,
        }

    # -------------------------------------------------------------------------
    # Per-kind mapping
    # -------------------------------------------------------------------------

    def _task(self, raw: Any, task_id: str) -> Task:
        deps = _dependencies(raw)
        usages = _middleware_usages(raw)
        interceptors = _read(raw, "interceptors") or ()
        owner_ids: list[str] = []
        for interceptor in interceptors:
            owner_id = _read(interceptor, "owner_id")
            if isinstance(owner_id, str) and owner_id not in owner_ids:
                owner_ids.append(owner_id)
        return Task(
            **self._common(raw, task_id, ElementKind.TASK),
            depends_on=tuple(deps.depends_on),
            emits=tuple(deps.emits),
            middleware=tuple(usage.id for usage in usages),
            middleware_detailed=usages,
            requires=_id_list(raw, "requires"),
            throws=_id_list(raw, "throws"),
            input_schema=format_schema(_read(raw, "input_schema")),
            result_schema=format_schema(_read(raw, "result_schema")),
            interceptor_owner_ids=tuple(owner_ids),
            interceptor_count=len(interceptors),
        )

    def _hook(self, raw: Any, hook_id: str) -> Hook:
        deps = _dependencies(raw)
        usages = _middleware_usages(raw)
        on = _read(raw, "on", "*")
        event_id = _element_id(on)
        if event_id is None:
            raise MalformedElementError("hook has no readable 'on' event")
        order = _read(raw, "order")
        return Hook(
            **self._common(raw, hook_id, ElementKind.HOOK),
            event=event_id,
            hook_order=order if isinstance(order, int) and not isinstance(order, bool) else None,
            depends_on=tuple(deps.depends_on),
            emits=tuple(deps.emits),
            middleware=tuple(usage.id for usage in usages),
            middleware_detailed=usages,
            requires=_id_list(raw, "requires"),
            throws=_id_list(raw, "throws"),
        )

    def _resource(self, raw: Any, resource_id: str) -> Resource:
        deps = _dependencies(raw)
        usages = _middleware_usages(raw)
        return Resource(
            **self._common(raw, resource_id, ElementKind.RESOURCE),
            depends_on=tuple(deps.depends_on),
            emits=tuple(deps.emits),
            middleware=tuple(usage.id for usage in usages),
            middleware_detailed=usages,
            registers=_id_list(raw, "register"),
            overrides=_id_list(raw, "overrides"),
            provides=_id_list(raw, "provides"),
            throws=_id_list(raw, "throws"),
            config=to_json_text(_read(raw, "config")),
            config_schema=format_schema(_read(raw, "config_schema")),
            context=_describe_callable(_read(raw, "context")),
            isolation=_isolation(raw),
        )

    def _middleware(self, raw: Any, middleware_id: str) -> Middleware:
        deps = _dependencies(raw)
        try:
            kind = MiddlewareKind(_read(raw, "kind", MiddlewareKind.TASK))
        except ValueError as exc:
            raise MalformedElementError(str(exc)) from exc
        everywhere = bool(_read(raw, "everywhere", False))
        return Middleware(
            **self._common(raw, middleware_id, ElementKind.MIDDLEWARE),
            kind=kind,
            depends_on=tuple(deps.depends_on),
            emits=tuple(deps.emits),
            config_schema=format_schema(_read(raw, "config_schema")),
            global_=MiddlewareGlobal(
                enabled=everywhere,
                tasks=everywhere and kind == MiddlewareKind.TASK,
                resources=everywhere and kind == MiddlewareKind.RESOURCE,
            ),
        )

    def _event(self, raw: Any, event_id: str) -> Event:
        return Event(
            **self._common(raw, event_id, ElementKind.EVENT),
            payload_schema=format_schema(_read(raw, "payload_schema")),
        )

    def _tag(self, raw: Any, tag_id: str) -> Tag:
        return Tag(
            **self._common(raw, tag_id, ElementKind.TAG),
            config_schema=format_schema(_read(raw, "config_schema")),
        )

    def _error(self, raw: Any, error_id: str) -> AppError:
        return AppError(
            **self._common(raw, error_id, ElementKind.ERROR),
            data_schema=format_schema(_read(raw, "data_schema")),
        )

    def _async_context(self, raw: Any, context_id: str) -> AsyncContext:
        return AsyncContext(
            **self._common(raw, context_id, ElementKind.ASYNC_CONTEXT),
            serialize=_describe_callable(_read(raw, "serialize")),
            parse=_describe_callable(_read(raw, "parse")),
        )

    def _map_all[M](self, raws: Iterable[Any], kind: ElementKind, mapper: Callable[[Any, str], M]) -> list[M]:
        mapped: list[M] = []
        seen: set[str] = set()
        for position, raw in enumerate(raws):
            element_id = _element_id(raw) if not isinstance(raw, str) else None
            if element_id is None:
                self._malformed(kind, None, f"{kind} at position {position} has no usable id")
                continue
            if element_id in seen:
                self._malformed(kind, element_id, f"Duplicate {kind} id '{element_id}'; keeping the first definition")
                continue
            try:
                element = mapper(raw, element_id)
            except MalformedElementError as exc:
                self._malformed(kind, element_id, f"{kind} '{element_id}' is malformed: {exc}")
                continue
            except Exception as exc:
                # Host callables (dependency factories) may fail arbitrarily
                logger.warning("Element mapping failed", kind=str(kind), element_id=element_id, error=str(exc))
                self._malformed(kind, element_id, f"{kind} '{element_id}' could not be read: {exc}")
                continue
            seen.add(element_id)
            mapped.append(element)
        return mapped

    def _malformed(self, kind: ElementKind, element_id: str | None, message: str) -> None:
        self._diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code=DiagnosticCode.MALFORMED_ELEMENT,
                message=message,
                node_id=element_id,
                node_kind=kind,
            )
        )

    # -------------------------------------------------------------------------
    # Build
    # -------------------------------------------------------------------------

    def build(self) -> RegistrySnapshot:
        store = self._store
        tasks = self._map_all(store.tasks, ElementKind.TASK, self._task)
        hooks = self._map_all(store.hooks, ElementKind.HOOK, self._hook)
        resources = self._map_all(store.resources, ElementKind.RESOURCE, self._resource)
        middlewares = self._map_all(store.middlewares, ElementKind.MIDDLEWARE, self._middleware)
        events = self._map_all(store.events, ElementKind.EVENT, self._event)
        tags = self._map_all(store.tags, ElementKind.TAG, self._tag)
        errors = self._map_all(store.errors, ElementKind.ERROR, self._error)
        contexts = self._map_all(store.async_contexts, ElementKind.ASYNC_CONTEXT, self._async_context)
        for unknown in store.unknown_registrations:
            entry = repr(unknown.entry) if isinstance(unknown.entry, str) else type(unknown.entry).__name__
            self._malformed(
                ElementKind.RESOURCE,
                unknown.registrar_id,
                f"resource '{unknown.registrar_id}' registers {entry}, which is not a definition",
            )

        snapshot = _link(
            RegistrySnapshot(
                root_id=store.root_id,
                tasks=tuple(tasks),
                hooks=tuple(hooks),
                resources=tuple(resources),
                middlewares=tuple(middlewares),
                events=tuple(events),
                tags=tuple(tags),
                errors=tuple(errors),
                async_contexts=tuple(contexts),
                diagnostics=tuple(self._diagnostics),
            ),
            override_requests=store.override_requests,
        )
        logger.debug(
            "Registry snapshot built",
            tasks=len(snapshot.tasks),
            hooks=len(snapshot.hooks),
            resources=len(snapshot.resources),
            events=len(snapshot.events),
            diagnostics=len(snapshot.diagnostics),
        )
        return snapshot


def _link(snapshot: RegistrySnapshot, *, override_requests: Iterable[OverrideRequest]) -> RegistrySnapshot:
    """Fill relations stored on the models themselves.

    Args:
        snapshot: Freshly mapped snapshot
        override_requests: Override requests in registration order; the
            latest request for a target wins

    Returns:
        New snapshot with linked models
    """
    overridden_by: dict[str, str] = {}
    for request in override_requests:
        overridden_by[request.target_id] = request.source_id

    resources_by_id = {resource.id: resource for resource in snapshot.resources}

    def durable_resource_for(depends_on: tuple[str, ...]) -> str | None:
        for dep_id in depends_on:
            resource = resources_by_id.get(dep_id)
            if resource is not None and is_durable_resource(resource.id, resource.tags):
                return resource.id
        return None

    def link_task(task: Task) -> Task:
        durable_resource_id = durable_resource_for(task.depends_on)
        return dataclasses.replace(
            task,
            overridden_by=overridden_by.get(task.id),
            durable_resource_id=durable_resource_id,
            is_durable=durable_resource_id is not None,
        )

    tasks = tuple(link_task(task) for task in snapshot.tasks)
    hooks = tuple(dataclasses.replace(hook, overridden_by=overridden_by.get(hook.id)) for hook in snapshot.hooks)
    resources = tuple(
        dataclasses.replace(resource, overridden_by=overridden_by.get(resource.id)) for resource in snapshot.resources
    )
    middlewares = tuple(
        dataclasses.replace(
            middleware,
            overridden_by=overridden_by.get(middleware.id),
            used_by_tasks=tuple(node.id for node in (*tasks, *hooks) if middleware.id in node.middleware),
            used_by_resources=tuple(resource.id for resource in resources if middleware.id in resource.middleware),
        )
        for middleware in snapshot.middlewares
    )
    throwers = (*tasks, *hooks, *resources)
    errors = tuple(
        dataclasses.replace(
            error,
            thrown_by=tuple(node.id for node in throwers if error.id in node.depends_on or error.id in node.throws),
        )
        for error in snapshot.errors
    )
    users = (*tasks, *hooks, *resources, *middlewares)
    contexts = tuple(
        dataclasses.replace(
            context,
            used_by=tuple(node.id for node in users if context.id in node.depends_on),
            required_by=tuple(node.id for node in (*tasks, *hooks) if context.id in node.requires),
            provided_by=tuple(resource.id for resource in resources if context.id in resource.provides),
        )
        for context in snapshot.async_contexts
    )
    return dataclasses.replace(
        snapshot,
        tasks=tasks,
        hooks=hooks,
        resources=resources,
        middlewares=middlewares,
        errors=errors,
        async_contexts=contexts,
    )


def build_snapshot(store: Store, *, sanitizer: PathSanitizer) -> RegistrySnapshot:
    """Build a registry snapshot of a host Store.

    Args:
        store: Raw definitions and runtime state from the live runtime
        sanitizer: Redacts element source paths

    Returns:
        Frozen snapshot with build diagnostics attached
    """
    return SnapshotBuilder(store, sanitizer).build()
