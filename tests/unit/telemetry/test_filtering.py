# tests/unit/telemetry/test_filtering.py
"""Tests for telemetry record filters.

Tests cover:
- OR within a field, AND across fields
- None matches everything, empty tuple matches nothing
- Substring matching on messages
- Filters of the wrong record type never match
"""

from runlens.contracts.enums import LogLevel, NodeKind, SourceKind
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
from runlens.telemetry.filtering import matches, predicate_for

_LOG = LogEntry(timestamp_ms=1, level=LogLevel.WARN, message="disk almost full", correlation_id="c1")
_RUN = RunRecord(
    timestamp_ms=1,
    node_id="billing.charge",
    node_kind=NodeKind.TASK,
    duration_ms=2.5,
    ok=False,
    parent_id="app.checkout",
    root_id="app.checkout",
    correlation_id="c1",
)


class TestMatches:
    """matches() semantics."""

    def test_no_filter_accepts(self) -> None:
        """A None filter accepts every record."""
        assert matches(_LOG, None)

    def test_or_within_field(self) -> None:
        """Any listed level is enough."""
        assert matches(_LOG, LogFilter(levels=(LogLevel.ERROR, LogLevel.WARN)))
        assert not matches(_LOG, LogFilter(levels=(LogLevel.ERROR,)))

    def test_and_across_fields(self) -> None:
        """Every present field must match."""
        assert matches(_LOG, LogFilter(levels=(LogLevel.WARN,), message_includes="full"))
        assert not matches(_LOG, LogFilter(levels=(LogLevel.WARN,), message_includes="empty"))

    def test_empty_tuple_matches_nothing(self) -> None:
        """An explicit empty id list excludes everything."""
        assert not matches(_LOG, LogFilter(correlation_ids=()))

    def test_run_filter_fields(self) -> None:
        """Run filters select on kind, id, outcome and lineage."""
        assert matches(_RUN, RunFilter(node_kinds=(NodeKind.TASK,), node_ids=("billing.charge",), ok=False))
        assert matches(_RUN, RunFilter(parent_ids=("app.checkout",), root_ids=("app.checkout",)))
        assert not matches(_RUN, RunFilter(ok=True))
        assert not matches(_RUN, RunFilter(node_kinds=(NodeKind.HOOK,)))

    def test_emission_and_error_filters(self) -> None:
        """Emission and error filters use their own fields."""
        emission = EmissionEntry(timestamp_ms=1, event_id="e1", emitter_id="t1")
        error = ErrorEntry(timestamp_ms=1, source_id="t1", source_kind=SourceKind.TASK, message="boom happened")

        assert matches(emission, EmissionFilter(event_ids=("e1",), emitter_ids=("t1", "t2")))
        assert not matches(emission, EmissionFilter(emitter_ids=("t2",)))
        assert matches(error, ErrorFilter(source_kinds=(SourceKind.TASK,), message_includes="boom"))
        assert not matches(error, ErrorFilter(source_ids=("t2",)))

    def test_mismatched_filter_type(self) -> None:
        """A run filter never matches a log line."""
        assert not matches(_LOG, RunFilter())


class TestPredicateFor:
    """Buffer predicate binding."""

    def test_none_filter_has_no_predicate(self) -> None:
        """No filter means no predicate work at all."""
        assert predicate_for(None) is None

    def test_bound_predicate(self) -> None:
        """The predicate applies the bound filter."""
        predicate = predicate_for(LogFilter(message_includes="disk"))

        assert predicate is not None
        assert predicate(_LOG)
