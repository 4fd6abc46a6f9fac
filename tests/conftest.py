# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- sanitizer: PathSanitizer with fixed roots (no dependence on the real cwd/home)
- sample_store: a small application exercising every element kind
- sample_snapshot / sample_introspector: the sample store, built and indexed
- minimal_store: the three-element t1/r1/e1 application

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings

from runlens.contracts.definitions import (
    AsyncContextDefinition,
    ErrorDefinition,
    EventDefinition,
    HookDefinition,
    IsolationPolicy,
    MiddlewareDefinition,
    ResourceDefinition,
    Store,
    TagDefinition,
    TaskDefinition,
)
from runlens.contracts.models import RegistrySnapshot
from runlens.core.paths import PathRoot, PathSanitizer
from runlens.introspection.introspector import Introspector
from runlens.introspection.snapshot import build_snapshot

# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Sample applications
# =============================================================================

WORKSPACE = "/repo"


def make_minimal_store() -> Store:
    """Task t1 depends on r1 and emits e1; r1 registers t1."""
    return Store(
        root_id="r1",
        tasks=[{"id": "t1", "dependencies": {"r1": "r1", "e1": {"id": "e1", "kind": "event"}}}],
        resources=[{"id": "r1", "register": ["t1"]}],
        events=[{"id": "e1"}],
    )


def make_sample_store() -> Store:
    """An application touching every element kind.

    app (root)
      registers: billing (isolated), mailer, audit mw, events, tags, errors
      billing exports "billing.charge*" and denies "billing.chargeInternal"
      billing.charge depends on mailer and the durable runtime, emits invoiced
      on.invoiced hook listens to invoiced (order 2), on.invoiced.first (order 1)
    """
    public_tag = TagDefinition("app.tags.public")
    durable_runtime = ResourceDefinition("app.durable.runtime")
    invoiced = EventDefinition("app.events.invoiced", payload_schema={"type": "object"})
    never_listened = EventDefinition("app.events.unheard")
    payment_failed = ErrorDefinition("app.errors.paymentFailed")
    unused_error = ErrorDefinition("app.errors.neverThrown")
    request_ctx = AsyncContextDefinition("app.ctx.request")
    audit = MiddlewareDefinition("app.mw.audit", kind="task")
    idle_mw = MiddlewareDefinition("app.mw.idle", kind="task")
    mailer = ResourceDefinition("app.mailer", provides=[request_ctx])

    charge = TaskDefinition(
        "billing.charge",
        dependencies={"mailer": mailer, "durable": durable_runtime, "invoiced": invoiced, "ctx": request_ctx},
        middleware=[audit.with_config({"level": "full"})],
        tags=[public_tag.with_config({"owner": "billing"})],
        throws=[payment_failed],
        requires=[request_ctx],
        file_path=f"{WORKSPACE}/src/billing/charge.py",
    )
    internal = TaskDefinition("billing.chargeInternal", dependencies={"mailer": mailer})
    refund = TaskDefinition("billing.refund", tags=["app.tags.public"])
    second_hook = HookDefinition("on.invoiced", on=invoiced, order=2, dependencies={"mailer": mailer})
    first_hook = HookDefinition("on.invoiced.first", on=invoiced, order=1, middleware=[audit])
    billing = ResourceDefinition(
        "billing",
        register=[charge, internal, refund],
        isolate=IsolationPolicy(exports=["billing.charge*"], deny=["billing.chargeInternal"]),
    )
    root = ResourceDefinition(
        "app",
        register=[
            public_tag,
            durable_runtime,
            mailer,
            billing,
            invoiced,
            never_listened,
            payment_failed,
            unused_error,
            request_ctx,
            audit,
            idle_mw,
            second_hook,
            first_hook,
        ],
    )
    return Store.from_root(root)


@pytest.fixture
def sanitizer() -> PathSanitizer:
    """Sanitizer with only a fixed workspace root."""
    return PathSanitizer([PathRoot("workspace", WORKSPACE)])


@pytest.fixture
def minimal_store() -> Store:
    """The t1/r1/e1 application."""
    return make_minimal_store()


@pytest.fixture
def sample_store() -> Store:
    """Application exercising every element kind."""
    return make_sample_store()


@pytest.fixture
def sample_snapshot(sample_store: Store, sanitizer: PathSanitizer) -> RegistrySnapshot:
    """Snapshot of the sample application."""
    return build_snapshot(sample_store, sanitizer=sanitizer)


@pytest.fixture
def sample_introspector(sample_snapshot: RegistrySnapshot, sanitizer: PathSanitizer) -> Introspector:
    """Introspector over the sample application."""
    return Introspector(sample_snapshot, path_sanitizer=sanitizer)


def build_introspector(store: Store, **kwargs: Any) -> Introspector:
    """Build and index a store with a fixed-root sanitizer."""
    sanitizer = PathSanitizer([PathRoot("workspace", WORKSPACE)])
    return Introspector(build_snapshot(store, sanitizer=sanitizer), path_sanitizer=sanitizer, **kwargs)
