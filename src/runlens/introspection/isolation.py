# src/runlens/introspection/isolation.py
"""Isolation boundary resolution.

A resource that declares an isolation policy decides which of the elements
it registers are visible outside it:

- no exports declaration: everything registered is visible
- exports == []: nothing is visible
- exports == [patterns]: only registered ids matching a pattern

Deny patterns always subtract from the result. Patterns are exact ids or
end in a single "*" wildcard ("app.billing.*").
"""

from collections.abc import Iterable

from runlens.contracts.enums import ExportsMode
from runlens.contracts.models import Resource


def matches_pattern(element_id: str, pattern: str) -> bool:
    if pattern.endswith("*"):
        return element_id.startswith(pattern[:-1])
    return element_id == pattern


def matches_any(element_id: str, patterns: Iterable[str]) -> bool:
    return any(matches_pattern(element_id, pattern) for pattern in patterns)


def resolve_exposed_ids(resource: Resource) -> frozenset[str]:
    """Ids a resource makes visible outside its boundary.

    Example:
        registers ["a.x", "a.y", "b.z"], exports ["a.*"], deny ["a.y"]
        resolves to {"a.x"}.
    """
    registered = resource.registers
    isolation = resource.isolation
    if isolation is None:
        return frozenset(registered)

    match isolation.exports_mode:
        case ExportsMode.NONE:
            exposed: set[str] = set()
        case ExportsMode.LIST:
            exposed = {element_id for element_id in registered if matches_any(element_id, isolation.exports)}
        case ExportsMode.UNSET:
            exposed = set(registered)

    return frozenset(element_id for element_id in exposed if not matches_any(element_id, isolation.deny))
