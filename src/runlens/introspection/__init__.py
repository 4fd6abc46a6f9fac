# src/runlens/introspection/__init__.py
"""Registry introspection: snapshot building, indexing, queries, sessions."""

from runlens.introspection.diagnostics import build_diagnostics, is_system_id
from runlens.introspection.index import DanglingReference, EdgeKind, IntrospectionIndex
from runlens.introspection.introspector import Introspector, RunArgs, RunFilterArgs
from runlens.introspection.isolation import matches_pattern, resolve_exposed_ids
from runlens.introspection.session import IntrospectionSession
from runlens.introspection.snapshot import build_snapshot
from runlens.introspection.swap import SwapManager, compose_run
from runlens.introspection.tunnel import extract_tunnel_info

__all__ = [
    "DanglingReference",
    "EdgeKind",
    "IntrospectionIndex",
    "IntrospectionSession",
    "Introspector",
    "RunArgs",
    "RunFilterArgs",
    "SwapManager",
    "build_diagnostics",
    "build_snapshot",
    "compose_run",
    "extract_tunnel_info",
    "is_system_id",
    "matches_pattern",
    "resolve_exposed_ids",
]
