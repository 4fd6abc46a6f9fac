# src/runlens/introspection/diagnostics.py
"""Structural diagnostics over an introspected registry.

Each compute_* function answers one question about the registry. The
build_diagnostics() roll-up turns the answers into Diagnostic records,
merges in the problems found while building the snapshot, and sorts the
result by code, then node id, then message so output is stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from runlens.contracts.enums import DiagnosticCode, ElementKind, Severity
from runlens.contracts.models import Diagnostic

if TYPE_CHECKING:
    from runlens.introspection.introspector import Introspector


@dataclass(frozen=True, slots=True)
class OverrideConflict:
    target_id: str
    by: str


@dataclass(frozen=True, slots=True)
class OverriddenElement:
    id: str
    kind: ElementKind
    overridden_by: str


def is_system_id(element_id: str) -> bool:
    """Framework-owned ids ("globals.*" and the "*" wildcard)."""
    lowered = element_id.lower()
    return lowered.startswith("globals.") or lowered == "*"


def compute_orphan_events(introspector: Introspector) -> list[str]:
    """Events no hook listens to by exact id. Wildcard hooks do not count."""
    return [event.id for event in introspector.get_events() if not introspector.get_hooks_of_event(event.id)]


def compute_unemitted_events(introspector: Introspector) -> list[str]:
    return [
        event.id
        for event in introspector.get_events()
        if not introspector.get_emitters_of_event(event.id) and not is_system_id(event.id)
    ]


def compute_unused_middleware(introspector: Introspector) -> list[str]:
    """Middleware attached nowhere and not applied everywhere."""
    unused: list[str] = []
    for middleware in introspector.get_middlewares():
        used = bool(middleware.used_by_tasks or middleware.used_by_resources)
        applied_everywhere = middleware.global_ is not None and middleware.global_.enabled
        if not used and not applied_everywhere:
            unused.append(middleware.id)
    return unused


def compute_override_conflicts(introspector: Introspector) -> list[OverrideConflict]:
    """Targets overridden by more than one resource, one entry per overrider."""
    overriders: dict[str, list[str]] = {}
    for resource in introspector.get_resources():
        for target_id in resource.overrides:
            by = overriders.setdefault(target_id, [])
            if resource.id not in by:
                by.append(resource.id)
    conflicts = [OverrideConflict(target_id, by) for target_id, all_by in overriders.items() if len(all_by) > 1 for by in all_by]
    return sorted(conflicts, key=lambda conflict: (conflict.target_id, conflict.by))


def compute_overridden_elements(introspector: Introspector) -> list[OverriddenElement]:
    overridden: list[OverriddenElement] = []
    groups = (
        (ElementKind.TASK, introspector.get_tasks()),
        (ElementKind.HOOK, introspector.get_hooks()),
        (ElementKind.RESOURCE, introspector.get_resources()),
        (ElementKind.MIDDLEWARE, introspector.get_middlewares()),
    )
    for kind, elements in groups:
        for element in elements:
            if element.overridden_by:
                overridden.append(OverriddenElement(element.id, kind, element.overridden_by))
    return overridden


def compute_unused_errors(introspector: Introspector) -> list[str]:
    return sorted(error.id for error in introspector.get_errors() if not error.thrown_by)


def build_diagnostics(introspector: Introspector, build_diagnostics: tuple[Diagnostic, ...] = ()) -> list[Diagnostic]:
    """Every diagnostic for the registry, sorted.

    Args:
        introspector: Registry to inspect
        build_diagnostics: Problems recorded while building the snapshot

    Returns:
        Diagnostics sorted by (code, node id, message)
    """
    diagnostics = list(build_diagnostics)

    for event_id in compute_orphan_events(introspector):
        if is_system_id(event_id):
            continue
        diagnostics.append(
            Diagnostic(Severity.WARNING, DiagnosticCode.ORPHAN_EVENT, f"Event has no hooks: {event_id}", event_id, ElementKind.EVENT)
        )
    for event_id in compute_unemitted_events(introspector):
        diagnostics.append(
            Diagnostic(
                Severity.WARNING, DiagnosticCode.UNEMITTED_EVENT, f"Event has no emitters: {event_id}", event_id, ElementKind.EVENT
            )
        )
    for middleware_id in compute_unused_middleware(introspector):
        if is_system_id(middleware_id):
            continue
        diagnostics.append(
            Diagnostic(
                Severity.INFO,
                DiagnosticCode.UNUSED_MIDDLEWARE,
                f"Middleware is defined but not used: {middleware_id}",
                middleware_id,
                ElementKind.MIDDLEWARE,
            )
        )
    for conflict in compute_override_conflicts(introspector):
        diagnostics.append(
            Diagnostic(
                Severity.ERROR,
                DiagnosticCode.OVERRIDE_CONFLICT,
                f"Override conflict on {conflict.target_id} by {conflict.by}",
                conflict.target_id,
            )
        )
    for item in compute_overridden_elements(introspector):
        diagnostics.append(
            Diagnostic(
                Severity.INFO,
                DiagnosticCode.OVERRIDDEN_ELEMENT,
                f"{item.kind.upper()} is overridden by {item.overridden_by}: {item.id}",
                item.id,
                item.kind,
            )
        )
    for error_id in compute_unused_errors(introspector):
        diagnostics.append(
            Diagnostic(
                Severity.INFO, DiagnosticCode.UNUSED_ERROR, f"Error is defined but never used: {error_id}", error_id, ElementKind.ERROR
            )
        )
    for dangling in introspector.index.dangling_references():
        diagnostics.append(
            Diagnostic(
                Severity.WARNING,
                DiagnosticCode.DANGLING_DEPENDENCY,
                f"{dangling.node_kind} '{dangling.node_id}' depends on unknown id '{dangling.target_id}'",
                dangling.node_id,
                dangling.node_kind,
            )
        )

    diagnostics.sort(key=lambda d: (d.code, d.node_id or "", d.message))
    return diagnostics
