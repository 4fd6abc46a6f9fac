# src/runlens/introspection/swap.py
"""Task hot swap and interceptor composition.

A task's effective implementation is its base run function wrapped by its
interceptor chain, composed at call time by compose_run(). Hot swap
replaces only the base function; interceptors installed by the runtime or
by live telemetry stay in place around the new implementation.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from runlens.contracts.definitions import Interceptor, RunFn
from runlens.contracts.errors import SwapError

if TYPE_CHECKING:
    from runlens.introspection.session import IntrospectionSession

logger = structlog.get_logger(__name__)


def _link(interceptor: Interceptor, next_run: RunFn) -> RunFn:
    def _run(input: Any, deps: Mapping[str, Any]) -> Any:
        return interceptor.fn(next_run, input, deps)

    return _run


def compose_run(base: RunFn, interceptors: Sequence[Interceptor]) -> RunFn:
    """Wrap base in an interceptor chain.

    The first interceptor is outermost: it is called first and decides
    whether the rest of the chain (and finally base) runs.
    """
    run = base
    for interceptor in reversed(interceptors):
        run = _link(interceptor, run)
    return run


class SwapManager:
    """Replaces task implementations on a live session.

    Every swap or unswap rebuilds the session so cached, per-snapshot
    results (durable flow shapes) are recomputed against the new code.
    """

    def __init__(self, session: IntrospectionSession) -> None:
        self._session = session
        self._lock = threading.Lock()
        self._originals: dict[str, RunFn | None] = {}

    def swap(self, task_id: str, run: RunFn) -> None:
        """Replace a task's base implementation.

        Swapping an already swapped task keeps the first original, so a
        later unswap restores the code the task started with.

        Raises:
            SwapError: If the store has no task with this id
        """
        if not callable(run):
            raise SwapError(task_id, "replacement is not callable")
        with self._lock:
            task = self._session.store.find_task(task_id)
            if task is None:
                raise SwapError(task_id, "task not found")
            self._originals.setdefault(task_id, task.run)
            task.run = run
        logger.info("Task implementation swapped", task_id=task_id)
        self._session.rebuild()

    def unswap(self, task_id: str) -> bool:
        """Restore a task's original implementation.

        Returns:
            False if the task was not swapped
        """
        with self._lock:
            if task_id not in self._originals:
                return False
            original = self._originals.pop(task_id)
            task = self._session.store.find_task(task_id)
            if task is not None:
                task.run = original
        logger.info("Task implementation restored", task_id=task_id)
        self._session.rebuild()
        return True

    def unswap_all(self) -> list[str]:
        """Restore every swapped task; returns the restored ids."""
        with self._lock:
            restored = list(self._originals)
            for task_id, original in self._originals.items():
                task = self._session.store.find_task(task_id)
                if task is not None:
                    task.run = original
            self._originals.clear()
        if restored:
            logger.info("Task implementations restored", task_ids=restored)
            self._session.rebuild()
        return restored

    def is_swapped(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._originals

    def get_swapped_tasks(self) -> list[str]:
        with self._lock:
            return list(self._originals)

    def resolve_run(self, task_id: str, *, with_interceptors: bool = True) -> RunFn | None:
        """Current effective implementation of a task, or None if it has none."""
        task = self._session.store.find_task(task_id)
        if task is None or task.run is None:
            return None
        if not with_interceptors:
            return task.run
        return compose_run(task.run, list(task.interceptors))
