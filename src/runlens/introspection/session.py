# src/runlens/introspection/session.py
"""Long-lived introspection of one running application.

IntrospectionSession ties a host Store to everything built from it: the
current Introspector, live telemetry, the coverage report and the durable
flow extractor. rebuild() constructs a complete new introspector before
publishing it with a single assignment, so readers holding the previous one
keep a consistent view.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any

import structlog

from runlens.contracts.definitions import Store, TaskDefinition
from runlens.contracts.flow import FlowExtraction
from runlens.core.config import RunlensSettings
from runlens.core.coverage import CoverageReport
from runlens.core.paths import PathSanitizer
from runlens.durable.extractor import DurableFlowExtractor
from runlens.introspection.introspector import Introspector
from runlens.introspection.snapshot import build_snapshot
from runlens.telemetry.live import LiveTelemetry

logger = structlog.get_logger(__name__)


class IntrospectionSession:
    """Owns the published introspector for one Store.

    Args:
        store: Raw definitions and live state of the host application
        settings: Runtime settings; defaults apply when omitted
        cwd: Workspace directory for path sanitizing (defaults to process cwd)
        home: Home directory for path sanitizing (defaults to the user's home)
    """

    def __init__(
        self,
        store: Store,
        settings: RunlensSettings | None = None,
        *,
        cwd: str | None = None,
        home: str | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or RunlensSettings()
        self.sanitizer = PathSanitizer.from_settings(self._settings.paths, cwd=cwd, home=home)
        self.coverage = CoverageReport.load(self._settings.coverage.report_path)
        self.telemetry = LiveTelemetry(self._settings.telemetry.max_entries)
        self.extractor = DurableFlowExtractor(self._settings.durable.describe_timeout_ms)
        self._lock = threading.Lock()
        self._introspector = self._build()
        self._durable_cache: dict[str, FlowExtraction] = {}

    @property
    def store(self) -> Store:
        return self._store

    @property
    def settings(self) -> RunlensSettings:
        return self._settings

    @property
    def introspector(self) -> Introspector:
        with self._lock:
            return self._introspector

    def _build(self) -> Introspector:
        snapshot = build_snapshot(self._store, sanitizer=self.sanitizer)
        return Introspector(
            snapshot,
            runtime_values=self._store.resource_values,
            settings=self._settings,
            coverage=self.coverage,
            path_sanitizer=self.sanitizer,
        )

    def rebuild(self) -> Introspector:
        """Build a new introspector from the store and publish it."""
        introspector = self._build()
        with self._lock:
            self._introspector = introspector
            self._durable_cache = {}
        logger.info(
            "Introspector rebuilt",
            tasks=len(introspector.get_tasks()),
            resources=len(introspector.get_resources()),
            diagnostics=len(introspector.snapshot.diagnostics),
        )
        return introspector

    def instrument_tasks(self) -> int:
        """Attach run-recording telemetry to every task in the store.

        Returns:
            Number of tasks newly instrumented
        """
        installed = sum(
            1 for task in self._store.tasks if isinstance(task, TaskDefinition) and self.telemetry.attach_to(task)
        )
        logger.debug("Tasks instrumented", installed=installed)
        return installed

    def describe_durable_task(self, task_id: str) -> FlowExtraction | None:
        """Describe a durable task's workflow shape.

        The result is cached until the next rebuild. Returns None when
        durable description is disabled or the task is not durable.
        """
        if not self._settings.durable.enabled:
            return None
        with self._lock:
            introspector = self._introspector
            cache = self._durable_cache
            cached = cache.get(task_id)
        if cached is not None:
            return cached
        if not introspector.is_durable_task(task_id):
            return None
        definition = self._store.find_task(task_id)
        if definition is None:
            return None

        extraction = self.extractor.extract(task_id, definition.run, _resolve_dependencies(definition.dependencies))
        with self._lock:
            # A rebuild in the meantime replaced the cache; do not repopulate it with stale results
            if cache is self._durable_cache:
                cache.setdefault(task_id, extraction)
        return extraction


def _resolve_dependencies(dependencies: Any) -> Mapping[str, Any]:
    resolved = dependencies() if callable(dependencies) else dependencies
    return resolved if isinstance(resolved, Mapping) else {}
