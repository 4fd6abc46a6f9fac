# src/runlens/telemetry/filtering.py
"""Record filtering for live telemetry queries.

Single source of truth for how a filter selects records. Every filter
field is optional; ids inside one field are OR'd, distinct fields are
AND'd. An empty id tuple matches nothing, None matches everything.
"""

from collections.abc import Callable, Iterable

from runlens.contracts.records import (
    EmissionEntry,
    EmissionFilter,
    ErrorEntry,
    ErrorFilter,
    LogEntry,
    LogFilter,
    RunFilter,
    RunRecord,
)

TelemetryRecord = LogEntry | EmissionEntry | ErrorEntry | RunRecord
TelemetryFilter = LogFilter | EmissionFilter | ErrorFilter | RunFilter


def _any_of[V](allowed: Iterable[V] | None, value: V) -> bool:
    return allowed is None or value in allowed


def _includes(needle: str | None, haystack: str) -> bool:
    return needle is None or needle in haystack


def matches(record: TelemetryRecord, record_filter: TelemetryFilter | None) -> bool:
    """Whether a record passes a filter.

    A filter of the wrong type for the record never matches, so a run filter
    cannot accidentally be applied to log lines.

    Args:
        record: The record to test
        record_filter: Filter to apply; None accepts every record

    Returns:
        True if the record should be included in query results
    """
    if record_filter is None:
        return True

    match record, record_filter:
        case LogEntry(), LogFilter():
            return (
                _any_of(record_filter.levels, record.level)
                and _includes(record_filter.message_includes, record.message)
                and _any_of(record_filter.correlation_ids, record.correlation_id)
            )

        case EmissionEntry(), EmissionFilter():
            return (
                _any_of(record_filter.event_ids, record.event_id)
                and _any_of(record_filter.emitter_ids, record.emitter_id)
                and _any_of(record_filter.correlation_ids, record.correlation_id)
            )

        case ErrorEntry(), ErrorFilter():
            return (
                _any_of(record_filter.source_kinds, record.source_kind)
                and _any_of(record_filter.source_ids, record.source_id)
                and _includes(record_filter.message_includes, record.message)
                and _any_of(record_filter.correlation_ids, record.correlation_id)
            )

        case RunRecord(), RunFilter():
            return (
                _any_of(record_filter.node_kinds, record.node_kind)
                and _any_of(record_filter.node_ids, record.node_id)
                and (record_filter.ok is None or record.ok == record_filter.ok)
                and _any_of(record_filter.parent_ids, record.parent_id)
                and _any_of(record_filter.root_ids, record.root_id)
                and _any_of(record_filter.correlation_ids, record.correlation_id)
            )

        case _:
            return False


def predicate_for[R: TelemetryRecord](record_filter: TelemetryFilter | None) -> Callable[[R], bool] | None:
    """Bind a filter into a buffer predicate (None when there is nothing to filter)."""
    if record_filter is None:
        return None

    def _predicate(record: R) -> bool:
        return matches(record, record_filter)

    return _predicate
