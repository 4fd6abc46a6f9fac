# src/runlens/core/tags.py
"""Tag reference narrowing and the well-known tag conventions.

A tag reference reaches the snapshot builder in one of several shapes:

- a bare tag id string
- a tag definition (anything with an ``id`` attribute)
- an attachment ``TagAttachment(tag, config)``
- a mapping ``{"id": ..., "config": ...}``
- a mapping ``{"tag": {"id": ...}, "config": ...}``

normalize_tag() is the single place that tells them apart. Every other
module works with the canonical TagUsage.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from runlens.contracts.definitions import TagAttachment
from runlens.contracts.models import TagUsage
from runlens.core.schema_text import to_json_text

DURABLE_WORKFLOW_TAG_ID = "globals.tags.durableWorkflow"
LEGACY_DURABLE_WORKFLOW_TAG_ID = "durable.workflow"
TUNNEL_TAG_ID = "globals.tags.tunnel"
LEGACY_TUNNEL_TAG_ID = "runner-dev.tunnel"

_DURABLE_TAG_IDS = frozenset({DURABLE_WORKFLOW_TAG_ID, LEGACY_DURABLE_WORKFLOW_TAG_ID})
_TUNNEL_TAG_IDS = frozenset({TUNNEL_TAG_ID, LEGACY_TUNNEL_TAG_ID})
_TUNNEL_WORD = re.compile(r"\btunnel\b", re.IGNORECASE)


def _tag_id(value: Any) -> str | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, Mapping):
        candidate = value.get("id")
    else:
        candidate = getattr(value, "id", None)
    return candidate if isinstance(candidate, str) and candidate else None


def normalize_tag(ref: Any) -> TagUsage | None:
    """Narrow one tag reference to a TagUsage.

    Args:
        ref: Any supported tag reference shape

    Returns:
        TagUsage with JSON-serialized config, or None when no id can be found
    """
    match ref:
        case str():
            return TagUsage(id=ref) if ref else None
        case TagAttachment(tag=tag, config=config):
            tag_id = _tag_id(tag)
            return TagUsage(id=tag_id, config=to_json_text(config)) if tag_id else None
        case Mapping() if "tag" in ref:
            tag_id = _tag_id(ref["tag"])
            return TagUsage(id=tag_id, config=to_json_text(ref.get("config"))) if tag_id else None
        case Mapping():
            tag_id = _tag_id(ref)
            return TagUsage(id=tag_id, config=to_json_text(ref.get("config"))) if tag_id else None
        case _:
            tag_id = _tag_id(ref)
            return TagUsage(id=tag_id) if tag_id else None


def normalize_tags(refs: Iterable[Any] | None) -> tuple[TagUsage, ...]:
    """Narrow a tag list, dropping unreadable references and repeated ids.

    The first usage of a repeated tag id wins.
    """
    usages: list[TagUsage] = []
    seen: set[str] = set()
    for ref in refs or ():
        usage = normalize_tag(ref)
        if usage is None or usage.id in seen:
            continue
        seen.add(usage.id)
        usages.append(usage)
    return tuple(usages)


def is_durable_tag(tag_id: str) -> bool:
    return tag_id in _DURABLE_TAG_IDS


def is_durable_resource(resource_id: str, tag_ids: Iterable[str] = ()) -> bool:
    """Whether a resource is a durable workflow runtime.

    Matches an id containing a ".durable" segment (e.g. "base.durable.runtime"
    or "app.durableStore") or a resource carrying the durable-workflow tag.
    """
    return ".durable" in resource_id or any(is_durable_tag(tag_id) for tag_id in tag_ids)


def is_tunnel_tag(tag_id: str, *, legacy_matching: bool = False) -> bool:
    """Whether a tag marks its carrier as a tunnel resource.

    Args:
        tag_id: Tag id to test
        legacy_matching: Also accept any id containing the word "tunnel",
            except tunnel-policy tags

    Returns:
        True for the canonical tunnel tag ids (and legacy matches if enabled)
    """
    if tag_id in _TUNNEL_TAG_IDS:
        return True
    if not legacy_matching:
        return False
    return bool(_TUNNEL_WORD.search(tag_id)) and "tunnelpolicy" not in tag_id.lower()
