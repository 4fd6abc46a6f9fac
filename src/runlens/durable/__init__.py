# src/runlens/durable/__init__.py
"""Durable workflow shape extraction."""

from runlens.durable.context import (
    DurableStandIn,
    FlowRecorder,
    InertStandIn,
    RecordingDurableContext,
    Resolved,
)
from runlens.durable.extractor import DurableFlowExtractor, build_stand_ins

__all__ = [
    "DurableFlowExtractor",
    "DurableStandIn",
    "FlowRecorder",
    "InertStandIn",
    "RecordingDurableContext",
    "Resolved",
    "build_stand_ins",
]
