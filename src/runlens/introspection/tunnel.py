# src/runlens/introspection/tunnel.py
"""Tunnel resource description.

A tunnel resource forwards selected tasks and events to another process.
Its initialized value says how; extract_tunnel_info() reads that value
into a TunnelInfo. The value is only available after resource init, which
is why tunnel info is populated lazily rather than at snapshot time.
"""

from collections.abc import Callable, Mapping, Sequence
from typing import Any

import structlog

from runlens.contracts.enums import TunnelMode
from runlens.contracts.models import TunnelInfo

logger = structlog.get_logger(__name__)


def _get(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


def _read_id(item: Any) -> str:
    if isinstance(item, str):
        return item
    candidate = _get(item, "id")
    return candidate if isinstance(candidate, str) else str(candidate)


def _select_ids(selector: Any, candidates: Sequence[str], label: str) -> tuple[str, ...] | None:
    """Resolve an id list or an id predicate against the known ids."""
    if isinstance(selector, list | tuple):
        return tuple(_read_id(item) for item in selector)
    if callable(selector):
        predicate: Callable[[Any], Any] = selector
        selected: list[str] = []
        for candidate in candidates:
            try:
                accepted = bool(predicate({"id": candidate}))
            except Exception as exc:
                # A failing predicate excludes the id; it must not break introspection
                logger.debug("Tunnel selector raised", selector=label, candidate=candidate, error=str(exc))
                accepted = False
            if accepted:
                selected.append(candidate)
        return tuple(selected)
    return None


def _auth_kind(auth: Any) -> str | None:
    if isinstance(auth, str):
        return auth
    if not auth:
        return None
    if _get(auth, "token"):
        return "token"
    if _get(auth, "validator"):
        return "validator"
    return "custom"


def extract_tunnel_info(
    value: Any,
    all_task_ids: Sequence[str],
    all_event_ids: Sequence[str],
) -> TunnelInfo | None:
    """Read a tunnel resource's initialized value.

    Args:
        value: The resource value (mapping or object)
        all_task_ids: Ids a task predicate is evaluated against
        all_event_ids: Ids an event predicate is evaluated against

    Returns:
        TunnelInfo, or None when the value does not look like a tunnel
        (no mode of client, server or both)
    """
    if value is None or isinstance(value, str | bytes | int | float | bool):
        return None
    try:
        mode = TunnelMode(_get(value, "mode"))
    except ValueError:
        return None

    transport = _get(value, "transport")
    endpoint = _get(value, "endpoint")
    if not isinstance(endpoint, str):
        client = _get(value, "client")
        base_url = (_get(client, "baseUrl") or _get(client, "base_url")) if client else None
        endpoint = base_url if isinstance(base_url, str) else None

    delivery_mode = _get(value, "event_delivery_mode") or _get(value, "eventDeliveryMode")

    return TunnelInfo(
        mode=mode,
        transport=transport if isinstance(transport, str) else "http",
        tasks=_select_ids(_get(value, "tasks"), all_task_ids, "tasks"),
        events=_select_ids(_get(value, "events"), all_event_ids, "events"),
        endpoint=endpoint,
        auth=_auth_kind(_get(value, "auth")),
        event_delivery_mode=delivery_mode if isinstance(delivery_mode, str) else None,
    )
