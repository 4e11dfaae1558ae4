"""
Progress event model — what the presentation layer receives.

Message standard (v1)::

    {
        "v": 1,                     # schema version
        "ts": 1739648400.123,       # publish timestamp
        "seq": 47,                  # monotonic sequence per bus
        "type": "tool-installing",  # phase signal
        "key": "gemini",            # tool name ("" for pass-level events)
        "error": "",                # set on failure events
        "data": { ... },            # optional payload (versions, paths)
    }
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

TOOL_CHECKING = "tool-checking"
TOOL_INSTALLING = "tool-installing"
TOOL_INSTALLED = "tool-installed"
TOOL_UPDATING = "tool-updating"
TOOL_UPDATED = "tool-updated"
TOOL_FAILED = "tool-failed"
TOOLS_DONE = "tools-install-done"

EVENT_TYPES = (
    TOOL_CHECKING,
    TOOL_INSTALLING,
    TOOL_INSTALLED,
    TOOL_UPDATING,
    TOOL_UPDATED,
    TOOL_FAILED,
    TOOLS_DONE,
)


class ProgressEvent(BaseModel):
    """A single phase-boundary signal."""

    v: int = 1
    ts: float
    seq: int
    type: str
    key: str = ""
    error: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
