# tests/property/introspection/test_index_properties.py
"""Property-based tests for the introspection reverse indexes.

The index exists so that event, dependency and registration lookups do
not scan every element. These tests verify that each index answers
exactly what a linear scan over the snapshot would:
- emitters / get_emitters_of_event()
- listeners / get_hooks_of_event() (stable by hook order)
- dependents_of()
- registered_by (first registering resource wins)
"""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from runlens.contracts.enums import ElementKind
from runlens.contracts.models import Event, Hook, RegistrySnapshot, Resource, Task
from runlens.introspection.index import IntrospectionIndex
from runlens.introspection.introspector import Introspector
from tests.property.settings import DETERMINISM_SETTINGS, STANDARD_SETTINGS

# =============================================================================
# Strategies for generating registries
# =============================================================================

EVENT_IDS = [f"app.events.e{i}" for i in range(4)]

event_refs = st.lists(st.sampled_from(EVENT_IDS), unique=True, max_size=3)


@st.composite
def registries(draw: st.DrawFn) -> RegistrySnapshot:
    """Tasks, hooks and resources with random emits, events and dependencies."""
    task_count = draw(st.integers(min_value=0, max_value=5))
    hook_count = draw(st.integers(min_value=0, max_value=5))
    resource_count = draw(st.integers(min_value=0, max_value=4))

    task_ids = [f"app.tasks.t{i}" for i in range(task_count)]
    hook_ids = [f"app.hooks.h{i}" for i in range(hook_count)]
    resource_ids = [f"app.resources.r{i}" for i in range(resource_count)]
    all_ids = task_ids + hook_ids + resource_ids
    dependency_pool = [*resource_ids, *task_ids, "app.missing"]

    def _deps() -> tuple[str, ...]:
        return tuple(draw(st.lists(st.sampled_from(dependency_pool), unique=True, max_size=3)))

    tasks = tuple(Task(id=task_id, depends_on=_deps(), emits=tuple(draw(event_refs))) for task_id in task_ids)
    hooks = tuple(
        Hook(
            id=hook_id,
            event=draw(st.sampled_from([*EVENT_IDS, "*"])),
            hook_order=draw(st.none() | st.integers(min_value=-3, max_value=3)),
            depends_on=_deps(),
            emits=tuple(draw(event_refs)),
        )
        for hook_id in hook_ids
    )
    resources = tuple(
        Resource(
            id=resource_id,
            depends_on=_deps(),
            emits=tuple(draw(event_refs)),
            registers=tuple(draw(st.lists(st.sampled_from(all_ids), unique=True, max_size=3))) if all_ids else (),
        )
        for resource_id in resource_ids
    )
    events = tuple(Event(id=event_id) for event_id in EVENT_IDS)
    return RegistrySnapshot(root_id=None, tasks=tasks, hooks=hooks, resources=resources, events=events)


def _nodes(snapshot: RegistrySnapshot) -> list[tuple[ElementKind, Task | Hook | Resource]]:
    return [
        *((ElementKind.TASK, task) for task in snapshot.tasks),
        *((ElementKind.HOOK, hook) for hook in snapshot.hooks),
        *((ElementKind.RESOURCE, resource) for resource in snapshot.resources),
    ]


# =============================================================================
# Index agreement
# =============================================================================


class TestEventIndexProperties:
    """Emitter and listener indexes agree with a scan."""

    @given(snapshot=registries())
    @DETERMINISM_SETTINGS
    def test_emitters_match_scan(self, snapshot: RegistrySnapshot) -> None:
        """Every emitter, in task/hook/resource order, and nothing else."""
        index = IntrospectionIndex(snapshot)

        for event_id in EVENT_IDS:
            expected = [(kind, node.id) for kind, node in _nodes(snapshot) if event_id in node.emits]
            assert index.emitters.get(event_id, []) == expected

    @given(snapshot=registries())
    @DETERMINISM_SETTINGS
    def test_listeners_match_scan(self, snapshot: RegistrySnapshot) -> None:
        """Listeners are hooks bound to exactly the id; "*" is its own key."""
        index = IntrospectionIndex(snapshot)

        for event_id in [*EVENT_IDS, "*"]:
            expected = [hook.id for hook in snapshot.hooks if hook.event == event_id]
            assert index.listeners.get(event_id, []) == expected

    @given(snapshot=registries())
    @STANDARD_SETTINGS
    def test_introspector_event_queries(self, snapshot: RegistrySnapshot) -> None:
        """Introspector answers resolve the indexed ids to elements."""
        introspector = Introspector(snapshot)

        for event_id in EVENT_IDS:
            emitters = introspector.get_emitters_of_event(event_id)
            assert [node.id for node in emitters] == [node.id for _, node in _nodes(snapshot) if event_id in node.emits]

            hooks = introspector.get_hooks_of_event(event_id)
            bound = [hook for hook in snapshot.hooks if hook.event == event_id]
            assert hooks == sorted(bound, key=lambda hook: hook.hook_order or 0)


class TestDependencyIndexProperties:
    """dependents_of() and registered_by agree with a scan."""

    @given(snapshot=registries())
    @DETERMINISM_SETTINGS
    def test_dependents_match_scan(self, snapshot: RegistrySnapshot) -> None:
        """Each group holds exactly the nodes listing the target."""
        index = IntrospectionIndex(snapshot)
        targets = {dep_id for _, node in _nodes(snapshot) for dep_id in node.depends_on}

        for target_id in targets:
            groups = index.dependents_of(target_id)
            assert set(groups.tasks) == {task.id for task in snapshot.tasks if target_id in task.depends_on}
            assert set(groups.hooks) == {hook.id for hook in snapshot.hooks if target_id in hook.depends_on}
            assert set(groups.resources) == {
                resource.id for resource in snapshot.resources if target_id in resource.depends_on
            }
            assert len(groups.tasks) == len(set(groups.tasks))

    @given(snapshot=registries())
    @STANDARD_SETTINGS
    def test_dangling_references_match_scan(self, snapshot: RegistrySnapshot) -> None:
        """Only dependencies on undefined ids are dangling."""
        index = IntrospectionIndex(snapshot)

        expected = {(node.id, "app.missing") for _, node in _nodes(snapshot) if "app.missing" in node.depends_on}
        actual = {(ref.node_id, ref.target_id) for ref in index.dangling_references()}

        assert actual == expected

    @given(snapshot=registries())
    @STANDARD_SETTINGS
    def test_first_registrar_wins(self, snapshot: RegistrySnapshot) -> None:
        """registered_by names the first resource listing the child."""
        index = IntrospectionIndex(snapshot)

        expected: dict[str, str] = {}
        for resource in snapshot.resources:
            for child_id in resource.registers:
                expected.setdefault(child_id, resource.id)

        assert index.registered_by == expected
