# src/runlens/core/logging.py
"""Diagnostic logging for runlens itself.

Every runlens module logs through ``structlog.get_logger(__name__)`` with
key/value context. configure_logging() wires those loggers into stdlib
logging through ProcessorFormatter, so third-party stdlib records (dynaconf
while loading settings, asyncio from durable extraction) share one format.

Each line carries a ``subsystem`` field taken from the logger name
(``runlens.introspection.session`` -> ``introspection``), which makes it
easy to follow one part of the engine in a mixed stream.

Log lines the host application writes are telemetry, not diagnostics: they
go to LiveTelemetry buffers and never pass through this module.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

from runlens.core.config import LoggingSettings

_PACKAGE = "runlens"

# Quiet at DEBUG too; they report on our own settings loading and event loops
_QUIET_LOGGERS = ("asyncio", "dynaconf")


def _add_subsystem(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    record = event_dict.get("_record")
    name = record.name if record is not None else event_dict.get("logger")
    if isinstance(name, str):
        parts = name.split(".")
        if parts[0] == _PACKAGE:
            event_dict.setdefault("subsystem", parts[1] if len(parts) > 1 else _PACKAGE)
    return event_dict


def _drop_formatter_keys(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    # Added by ProcessorFormatter on every record
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def configure_logging(*, json_output: bool = False, level: str = "INFO", stream: TextIO | None = None) -> None:
    """Route runlens and stdlib logging through one structlog pipeline.

    Safe to call repeatedly; the root handler is replaced each time.

    Args:
        json_output: One JSON object per line instead of console text
        level: DEBUG, INFO, WARNING or ERROR (case-insensitive)
        stream: Destination, stderr by default so stdout stays parseable
    """
    numeric_level = logging.getLevelNamesMapping()[level.upper()]

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    )
    render_chain: list[Any] = [_add_subsystem, _drop_formatter_keys]
    if json_output:
        render_chain.append(structlog.processors.format_exc_info)
    render_chain.append(renderer)

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must reach loggers created at import time
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(ProcessorFormatter(processors=render_chain, foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(numeric_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def configure_from_settings(settings: LoggingSettings, *, stream: TextIO | None = None) -> None:
    configure_logging(json_output=settings.json_output, level=settings.level, stream=stream)
