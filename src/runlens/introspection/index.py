# src/runlens/introspection/index.py
"""Reverse indexes over one registry snapshot.

Built in a single pass when an introspector is constructed and never
updated afterwards: a rebuilt snapshot gets a new index. All indexes hold
ids, not model objects, so replacing a model (e.g. when tunnel info is
populated) never invalidates them.

The dependency structure is also kept as a NetworkX MultiDiGraph (one node
per id, one typed edge per relation) for dependents lookups and dangling
reference detection.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import StrEnum

import networkx as nx
from networkx import MultiDiGraph

from runlens.contracts.enums import ElementKind
from runlens.contracts.models import Element, Hook, MiddlewareConsumer, RegistrySnapshot, Resource, Task


class EdgeKind(StrEnum):
    """Relation carried by a graph edge (source -> target)."""

    DEPENDS_ON = "depends_on"
    EMITS = "emits"
    LISTENS = "listens"
    REGISTERS = "registers"
    USES_MIDDLEWARE = "uses_middleware"
    TAGGED = "tagged"


@dataclass(slots=True)
class TagCarrierIds:
    tasks: list[str] = field(default_factory=list)
    hooks: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    middlewares: list[str] = field(default_factory=list)
    events: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class NodeIdGroups:
    tasks: list[str] = field(default_factory=list)
    hooks: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)


@dataclass(slots=True)
class MiddlewareUsers:
    tasks: list[MiddlewareConsumer] = field(default_factory=list)
    resources: list[MiddlewareConsumer] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DanglingReference:
    node_id: str
    node_kind: ElementKind
    target_id: str


_CARRIER_FIELD: dict[ElementKind, str] = {
    ElementKind.TASK: "tasks",
    ElementKind.HOOK: "hooks",
    ElementKind.RESOURCE: "resources",
    ElementKind.MIDDLEWARE: "middlewares",
    ElementKind.EVENT: "events",
    ElementKind.ERROR: "errors",
}

_NODE_FIELD: dict[ElementKind, str] = {
    ElementKind.TASK: "tasks",
    ElementKind.HOOK: "hooks",
    ElementKind.RESOURCE: "resources",
}


class IntrospectionIndex:
    """Reverse indexes for one snapshot.

    Attributes:
        tag_carriers: tag id -> ids of elements carrying it, grouped by kind
        tag_configs: (element id, tag id) -> per-usage config
        middleware_users: middleware id -> per-usage consumers
        emitters: event id -> (kind, id) of tasks, hooks, resources emitting it
        listeners: event id -> hook ids listening to exactly that id
        registered_by: element id -> id of the first resource registering it
        known_ids: every id defined by the snapshot, any kind
    """

    def __init__(self, snapshot: RegistrySnapshot) -> None:
        self.tag_carriers: dict[str, TagCarrierIds] = defaultdict(TagCarrierIds)
        self.tag_configs: dict[tuple[str, str], str | None] = {}
        self.middleware_users: dict[str, MiddlewareUsers] = defaultdict(MiddlewareUsers)
        self.emitters: dict[str, list[tuple[ElementKind, str]]] = defaultdict(list)
        self.listeners: dict[str, list[str]] = defaultdict(list)
        self.registered_by: dict[str, str] = {}
        self.known_ids: set[str] = set()
        self._graph: MultiDiGraph[str] = nx.MultiDiGraph()
        self._dangling: list[DanglingReference] = []
        self._build(snapshot)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def _add_node(self, element: Element, kind: ElementKind) -> None:
        self.known_ids.add(element.id)
        # The node may already exist as the target of an earlier edge
        self._graph.add_node(element.id)
        self._graph.nodes[element.id].setdefault("kinds", []).append(kind)
        for usage in element.tags_detailed:
            if kind in _CARRIER_FIELD:
                getattr(self.tag_carriers[usage.id], _CARRIER_FIELD[kind]).append(element.id)
            self.tag_configs.setdefault((element.id, usage.id), usage.config)
            self._graph.add_edge(element.id, usage.id, kind=EdgeKind.TAGGED, source_kind=kind)

    def _add_node_relations(self, node: Task | Hook | Resource, kind: ElementKind) -> None:
        for dep_id in node.depends_on:
            self._graph.add_edge(node.id, dep_id, kind=EdgeKind.DEPENDS_ON, source_kind=kind)
        for event_id in node.emits:
            self._graph.add_edge(node.id, event_id, kind=EdgeKind.EMITS, source_kind=kind)
            self.emitters[event_id].append((kind, node.id))
        for usage in node.middleware_detailed:
            self._graph.add_edge(node.id, usage.id, kind=EdgeKind.USES_MIDDLEWARE, source_kind=kind)
            consumer = MiddlewareConsumer(node_id=node.id, config=usage.config)
            users = self.middleware_users[usage.id]
            (users.resources if kind == ElementKind.RESOURCE else users.tasks).append(consumer)

    def _build(self, snapshot: RegistrySnapshot) -> None:
        for task in snapshot.tasks:
            self._add_node(task, ElementKind.TASK)
            self._add_node_relations(task, ElementKind.TASK)
        for hook in snapshot.hooks:
            self._add_node(hook, ElementKind.HOOK)
            self._add_node_relations(hook, ElementKind.HOOK)
            self._graph.add_edge(hook.id, hook.event, kind=EdgeKind.LISTENS, source_kind=ElementKind.HOOK)
            self.listeners[hook.event].append(hook.id)
        for resource in snapshot.resources:
            self._add_node(resource, ElementKind.RESOURCE)
            self._add_node_relations(resource, ElementKind.RESOURCE)
            for child_id in resource.registers:
                self._graph.add_edge(resource.id, child_id, kind=EdgeKind.REGISTERS, source_kind=ElementKind.RESOURCE)
                self.registered_by.setdefault(child_id, resource.id)
        for middleware in snapshot.middlewares:
            self._add_node(middleware, ElementKind.MIDDLEWARE)
            for dep_id in middleware.depends_on:
                self._graph.add_edge(middleware.id, dep_id, kind=EdgeKind.DEPENDS_ON, source_kind=ElementKind.MIDDLEWARE)
        for event in snapshot.events:
            self._add_node(event, ElementKind.EVENT)
        for error in snapshot.errors:
            self._add_node(error, ElementKind.ERROR)
        for context in snapshot.async_contexts:
            self._add_node(context, ElementKind.ASYNC_CONTEXT)
        for tag in snapshot.tags:
            self._add_node(tag, ElementKind.TAG)

        for source_id, target_id, data in self._graph.edges(data=True):
            if data["kind"] == EdgeKind.DEPENDS_ON and target_id not in self.known_ids:
                self._dangling.append(DanglingReference(source_id, data["source_kind"], target_id))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def dependents_of(self, target_id: str) -> NodeIdGroups:
        """Tasks, hooks and resources with target_id in their depends_on."""
        groups = NodeIdGroups()
        if not self._graph.has_node(target_id):
            return groups
        for source_id, _, data in self._graph.in_edges(target_id, data=True):
            if data["kind"] != EdgeKind.DEPENDS_ON or data["source_kind"] not in _NODE_FIELD:
                continue
            bucket: list[str] = getattr(groups, _NODE_FIELD[data["source_kind"]])
            if source_id not in bucket:
                bucket.append(source_id)
        return groups

    def dangling_references(self) -> list[DanglingReference]:
        """depends_on entries naming ids no element defines."""
        return list(self._dangling)

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def get_nx_graph(self) -> MultiDiGraph[str]:
        """Return a frozen copy of the underlying NetworkX graph.

        Mutation attempts on the returned graph raise nx.NetworkXError.
        """
        return nx.freeze(self._graph.copy())  # type: ignore[no-any-return]
