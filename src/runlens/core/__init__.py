"""Core infrastructure: configuration, logging, path redaction, schema text, coverage."""

from runlens.core.config import RunlensSettings, load_settings
from runlens.core.coverage import CoverageReport
from runlens.core.paths import PathRoot, PathSanitizer
from runlens.core.schema_text import format_schema, json_schema_to_readable_text

__all__ = [
    "CoverageReport",
    "PathRoot",
    "PathSanitizer",
    "RunlensSettings",
    "format_schema",
    "json_schema_to_readable_text",
    "load_settings",
]
