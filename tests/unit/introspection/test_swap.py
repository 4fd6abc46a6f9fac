# tests/unit/introspection/test_swap.py
"""Tests for task hot swap and interceptor composition.

Tests cover:
- compose_run(): first interceptor is outermost, short-circuiting
- swap()/unswap()/unswap_all(): first original kept, unknown tasks and
  non-callables rejected, session rebuilt
- resolve_run(): interceptors stay around swapped code
"""

from collections.abc import Mapping
from typing import Any

import pytest

from runlens.contracts.definitions import Interceptor, RunFn, Store, TaskDefinition
from runlens.contracts.errors import SwapError
from runlens.introspection.session import IntrospectionSession
from runlens.introspection.swap import SwapManager, compose_run
from tests.conftest import WORKSPACE


def _old(value: Any, deps: Mapping[str, Any]) -> str:
    return "old"


def _new(value: Any, deps: Mapping[str, Any]) -> str:
    return "new"


def _newer(value: Any, deps: Mapping[str, Any]) -> str:
    return "newer"


@pytest.fixture
def session() -> IntrospectionSession:
    """Session over two swappable tasks."""
    store = Store(tasks=[TaskDefinition("app.a", run=_old), TaskDefinition("app.b", run=_old)])
    return IntrospectionSession(store, cwd=WORKSPACE, home="/home/dev")


class TestComposeRun:
    """Interceptor chains."""

    def test_first_interceptor_is_outermost(self) -> None:
        """Calls enter in list order and unwind in reverse."""
        calls: list[str] = []

        def _tracing(name: str) -> Interceptor:
            def _fn(next_run: RunFn, value: Any, deps: Mapping[str, Any]) -> Any:
                calls.append(f"{name}:in")
                result = next_run(value, deps)
                calls.append(f"{name}:out")
                return result

            return Interceptor(fn=_fn)

        run = compose_run(lambda value, deps: calls.append("base") or value, [_tracing("outer"), _tracing("inner")])

        assert run(7, {}) == 7
        assert calls == ["outer:in", "inner:in", "base", "inner:out", "outer:out"]

    def test_short_circuit(self) -> None:
        """An interceptor may skip the rest of the chain."""
        run = compose_run(_old, [Interceptor(fn=lambda next_run, value, deps: "cached")])

        assert run(None, {}) == "cached"

    def test_no_interceptors(self) -> None:
        """An empty chain is the base function."""
        assert compose_run(_old, []) is _old


class TestSwapManager:
    """Swapping implementations on a live session."""

    def test_swap_and_unswap(self, session: IntrospectionSession) -> None:
        """Swapping changes the effective run; unswap restores it."""
        manager = SwapManager(session)

        manager.swap("app.a", _new)

        run = manager.resolve_run("app.a")
        assert run is not None
        assert run(None, {}) == "new"
        assert manager.is_swapped("app.a")
        assert manager.get_swapped_tasks() == ["app.a"]

        assert manager.unswap("app.a") is True
        assert manager.resolve_run("app.a", with_interceptors=False) is _old
        assert manager.unswap("app.a") is False

    def test_first_original_is_kept(self, session: IntrospectionSession) -> None:
        """Swapping twice still restores the original code."""
        manager = SwapManager(session)
        manager.swap("app.a", _new)
        manager.swap("app.a", _newer)

        manager.unswap("app.a")

        assert manager.resolve_run("app.a", with_interceptors=False) is _old

    def test_unswap_all(self, session: IntrospectionSession) -> None:
        """Every swapped task is restored."""
        manager = SwapManager(session)
        manager.swap("app.a", _new)
        manager.swap("app.b", _new)

        assert manager.unswap_all() == ["app.a", "app.b"]
        assert manager.get_swapped_tasks() == []
        assert manager.unswap_all() == []

    def test_rejections(self, session: IntrospectionSession) -> None:
        """Unknown tasks and non-callables cannot be swapped in."""
        manager = SwapManager(session)

        with pytest.raises(SwapError, match="task not found"):
            manager.swap("ghost", _new)
        with pytest.raises(SwapError, match="not callable"):
            manager.swap("app.a", "print('hi')")  # type: ignore[arg-type]
        assert manager.get_swapped_tasks() == []

    def test_swap_rebuilds_session(self, session: IntrospectionSession) -> None:
        """A swap publishes a fresh introspector."""
        before = session.introspector

        SwapManager(session).swap("app.a", _new)

        assert session.introspector is not before

    def test_telemetry_wraps_swapped_code(self, session: IntrospectionSession) -> None:
        """Interceptors installed before a swap still record runs."""
        session.instrument_tasks()
        manager = SwapManager(session)
        manager.swap("app.a", _new)

        run = manager.resolve_run("app.a")
        assert run is not None
        assert run(None, {}) == "new"

        assert [record.node_id for record in session.telemetry.get_runs()] == ["app.a"]
        assert manager.resolve_run("ghost") is None
