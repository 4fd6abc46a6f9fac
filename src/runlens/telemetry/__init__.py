"""Live telemetry for the host application.

Ring-buffered logs, emissions, errors and run records, with cursor and
filter queries and a run-context chain for correlation.
"""

from runlens.telemetry.buffer import RingBuffer
from runlens.telemetry.chain import (
    RunContext,
    derive_parent_and_root,
    get_correlation_id,
    get_current_run_context,
    task_run_context,
)
from runlens.telemetry.filtering import matches
from runlens.telemetry.live import LiveTelemetry, normalize_error

__all__ = [
    "LiveTelemetry",
    "RingBuffer",
    "RunContext",
    "derive_parent_and_root",
    "get_correlation_id",
    "get_current_run_context",
    "matches",
    "normalize_error",
    "task_run_context",
]
