# src/runlens/core/schema_text.py
"""JSON Schema rendering.

Two directions:

- format_schema(): turn a schema-library value (a pydantic model class, a
  TypeAdapter, an annotation pydantic can adapt) into a JSON Schema string.
- json_schema_to_readable_text(): turn a JSON Schema string into indented
  plain text for documentation pages.

Neither function raises. Bad input becomes inline error text or a generic
object schema, because schema rendering runs inside documentation requests
that must not fail on one odd element.
"""

import json
from collections.abc import Mapping
from typing import Any, get_origin

import structlog
from pydantic import BaseModel, PydanticUserError, TypeAdapter

logger = structlog.get_logger(__name__)

GENERIC_OBJECT_SCHEMA = '{ "type": "object" }'


def to_json_text(value: Any) -> str | None:
    """Serialize an arbitrary config value to compact JSON text.

    Values JSON cannot represent natively fall back to str(); circular
    structures fall back to their repr as a JSON string.
    """
    if value is None:
        return None
    try:
        return json.dumps(value, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return json.dumps(repr(value), ensure_ascii=False)


def format_schema(value: Any) -> str | None:
    """Convert a schema-library value to a JSON Schema string.

    Args:
        value: pydantic model class, TypeAdapter, adaptable annotation,
            JSON-Schema mapping, or an already-serialized JSON string

    Returns:
        Indented JSON Schema text, None for None, or the generic object
        schema for values pydantic cannot describe
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return json.dumps(value, indent=2, default=str)
    try:
        if isinstance(value, type) and issubclass(value, BaseModel):
            return json.dumps(value.model_json_schema(), indent=2)
        if isinstance(value, TypeAdapter):
            return json.dumps(value.json_schema(), indent=2)
        if isinstance(value, type) or get_origin(value) is not None:
            return json.dumps(TypeAdapter(value).json_schema(), indent=2)
    except (PydanticUserError, TypeError, ValueError) as exc:
        logger.debug("Schema value not describable as JSON Schema", value_type=type(value).__name__, error=str(exc))
    return GENERIC_OBJECT_SCHEMA


def json_schema_to_readable_text(schema_json: str) -> str:
    """Render a JSON Schema document as indented readable text.

    Args:
        schema_json: JSON Schema document text

    Returns:
        Readable text, or "Error parsing JSON schema: <reason>" for invalid JSON
    """
    try:
        schema = json.loads(schema_json)
    except (TypeError, ValueError) as exc:
        return f"Error parsing JSON schema: {exc}"
    if not isinstance(schema, dict):
        return ""
    return _format_root(schema, schema, ())


# =============================================================================
# Rendering helpers
# =============================================================================


def _js_text(value: Any) -> str:
    """Stringify a schema keyword value the way template text shows it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join(_js_text(item) for item in value)
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _json_value(value: Any) -> str:
    """Compact JSON encoding of an enum/const/default/example value."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _resolve_ref(ref: str, root: Any) -> Any:
    if not ref.startswith("#/"):
        return None
    current = root
    for raw_part in ref[2:].split("/"):
        part = raw_part.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdecimal() and int(part) < len(current):
            current = current[int(part)]
        else:
            return None
    return current


def _follow_ref(schema: dict[str, Any], root: Any, chain: tuple[str, ...], indent: str) -> tuple[Any, tuple[str, ...], str | None]:
    """Resolve a $ref, or return the line to print instead."""
    ref = schema["$ref"]
    if not isinstance(ref, str):
        return None, chain, f"{indent}Reference: {_js_text(ref)} (unresolved)"
    if ref in chain:
        return None, chain, f"{indent}Reference: {ref} (circular)"
    resolved = _resolve_ref(ref, root)
    if resolved is None:
        return None, chain, f"{indent}Reference: {ref} (unresolved)"
    return resolved, (*chain, ref), None


def _required(schema: dict[str, Any]) -> list[Any]:
    required = schema.get("required")
    return required if isinstance(required, list) else []


def _format_root(schema: dict[str, Any], root: Any, chain: tuple[str, ...]) -> str:
    if schema.get("$ref"):
        resolved, chain, line = _follow_ref(schema, root, chain, "")
        if line is not None:
            return line
        return _format_root(resolved, root, chain) if isinstance(resolved, dict) else ""

    lines: list[str] = []
    if schema.get("title"):
        lines.append(f"Schema: {_js_text(schema['title'])}")
        lines.append("")
    if schema.get("description"):
        lines.append(f"Description: {_js_text(schema['description'])}")
        lines.append("")

    schema_type = schema.get("type")
    if schema_type == "object":
        required = _required(schema)
        lines.append("Type: Object")
        if required:
            lines.append(f"Required fields: {', '.join(_js_text(name) for name in required)}")
        lines.append("")
        lines.append("Properties:")
        properties = schema.get("properties")
        if isinstance(properties, dict):
            for name, prop in properties.items():
                marker = " (required)" if name in required else " (optional)"
                lines.append("")
                lines.append(f"  {name}{marker}:")
                lines.append(_format_property(prop, 2, root, chain))
        if "additionalProperties" in schema:
            allowed = "not allowed" if schema["additionalProperties"] is False else "allowed"
            lines.append("")
            lines.append(f"  Additional properties: {allowed}")
        lines.extend(_composite_lines(schema, 0, root, chain))
    elif schema_type == "array":
        lines.append("Type: Array")
        lines.extend(_array_lines(schema, 0, root, chain))
        lines.extend(_composite_lines(schema, 0, root, chain))
    else:
        # Scalars, enums, consts and bare composites render like a property,
        # so root-level constraints are not lost
        rendered = _format_property(schema, 0, root, chain, include_description=False)
        if rendered:
            lines.append(rendered)
        elif lines and lines[-1] == "":
            lines.pop()
    return "\n".join(lines)


def _array_lines(schema: dict[str, Any], depth: int, root: Any, chain: tuple[str, ...]) -> list[str]:
    indent = "  " * depth
    lines: list[str] = []
    if "minItems" in schema:
        lines.append(f"{indent}Minimum items: {_js_text(schema['minItems'])}")
    if "maxItems" in schema:
        lines.append(f"{indent}Maximum items: {_js_text(schema['maxItems'])}")
    if schema.get("uniqueItems"):
        lines.append(f"{indent}Items must be unique")
    if schema.get("items"):
        lines.append(f"{indent}Item type:")
        lines.append(_format_property(schema["items"], depth + 1, root, chain))
    return lines


def _composite_lines(schema: dict[str, Any], depth: int, root: Any, chain: tuple[str, ...]) -> list[str]:
    indent = "  " * depth
    lines: list[str] = []
    for keyword, heading, label in (
        ("oneOf", "Must match exactly one of:", "Option"),
        ("anyOf", "Must match at least one of:", "Option"),
        ("allOf", "Must match all of:", "Constraint"),
    ):
        options = schema.get(keyword)
        if not isinstance(options, list):
            continue
        lines.append(f"{indent}{heading}")
        for index, option in enumerate(options, start=1):
            lines.append(f"{indent}  {label} {index}:")
            lines.append(_format_property(option, depth + 2, root, chain))
    return lines


def _format_property(
    prop: Any,
    depth: int,
    root: Any,
    chain: tuple[str, ...],
    *,
    include_description: bool = True,
) -> str:
    if not isinstance(prop, dict):
        return ""
    indent = "  " * depth

    if prop.get("$ref"):
        resolved, chain, line = _follow_ref(prop, root, chain, indent)
        if line is not None:
            return line
        return _format_property(resolved, depth, root, chain, include_description=include_description)

    lines: list[str] = []
    prop_type = prop.get("type")
    if prop_type:
        lines.append(f"{indent}Type: {_js_text(prop_type)}")
    if include_description and prop.get("description"):
        lines.append(f"{indent}Description: {_js_text(prop['description'])}")
    if prop.get("format"):
        lines.append(f"{indent}Format: {_js_text(prop['format'])}")
    if "default" in prop:
        lines.append(f"{indent}Default: {_json_value(prop['default'])}")

    if prop_type == "string":
        if "minLength" in prop:
            lines.append(f"{indent}Minimum length: {_js_text(prop['minLength'])}")
        if "maxLength" in prop:
            lines.append(f"{indent}Maximum length: {_js_text(prop['maxLength'])}")
        if prop.get("pattern"):
            lines.append(f"{indent}Pattern: {_js_text(prop['pattern'])}")

    if prop_type in ("number", "integer"):
        for key, label in (("minimum", "Minimum"), ("maximum", "Maximum")):
            exclusive_key = "exclusive" + label
            if key in prop:
                exclusive = " (exclusive)" if prop.get(exclusive_key) else ""
                lines.append(f"{indent}{label}: {_js_text(prop[key])}{exclusive}")
            elif _is_number(prop.get(exclusive_key)):
                # Draft 6+ form: the exclusive bound is the number itself
                lines.append(f"{indent}{label}: {_js_text(prop[exclusive_key])} (exclusive)")
        if "multipleOf" in prop:
            lines.append(f"{indent}Must be multiple of: {_js_text(prop['multipleOf'])}")

    if isinstance(prop.get("enum"), list):
        lines.append(f"{indent}Allowed values: {', '.join(_json_value(v) for v in prop['enum'])}")
    if "const" in prop:
        lines.append(f"{indent}Constant value: {_json_value(prop['const'])}")

    properties = prop.get("properties")
    if prop_type == "object" and isinstance(properties, dict) and properties:
        required = _required(prop)
        if required:
            lines.append(f"{indent}Required fields: {', '.join(_js_text(name) for name in required)}")
        lines.append(f"{indent}Properties:")
        for name, nested in properties.items():
            marker = " (required)" if name in required else " (optional)"
            lines.append(f"{indent}  {name}{marker}:")
            lines.append(_format_property(nested, depth + 2, root, chain))
        if "additionalProperties" in prop:
            allowed = "not allowed" if prop["additionalProperties"] is False else "allowed"
            lines.append(f"{indent}Additional properties: {allowed}")

    if prop_type == "array":
        lines.extend(_array_lines(prop, depth, root, chain))

    lines.extend(_composite_lines(prop, depth, root, chain))

    examples = prop.get("examples")
    if isinstance(examples, list) and examples:
        lines.append(f"{indent}Examples: {', '.join(_json_value(e) for e in examples)}")

    return "\n".join(lines)
