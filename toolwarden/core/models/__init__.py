"""
Domain models — Pydantic types for the orchestrator.

All models are re-exported here for convenient access:

    from toolwarden.core.models import ToolDescriptor, ToolStatus, ReconcileReport
"""

from toolwarden.core.models.event import ProgressEvent
from toolwarden.core.models.tool import (
    NativeManifest,
    PlatformArtifact,
    ReconcileReport,
    ToolDescriptor,
    ToolOutcome,
    ToolPhase,
    ToolStatus,
)

__all__ = [
    # event.py
    "ProgressEvent",
    # tool.py
    "NativeManifest",
    "PlatformArtifact",
    "ReconcileReport",
    "ToolDescriptor",
    "ToolOutcome",
    "ToolPhase",
    "ToolStatus",
]
