"""
Tool models — catalog descriptors, inspected status, native manifests,
reconciliation results.

Descriptors are static and live in the catalog. Everything else is
derived from the filesystem or the network on demand and never
persisted: delete the private root and the orchestrator simply starts
from "nothing installed".
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ToolDescriptor(BaseModel):
    """Static description of one installable CLI agent.

    Platform-keyed fields accept either ``"<os>"`` or ``"<os>-<arch>"``
    keys (``"windows"``, ``"linux-arm64"``). The more specific key wins.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    package: str
    package_overrides: dict[str, str] = Field(default_factory=dict)
    extra_packages: dict[str, list[str]] = Field(default_factory=dict)
    aliases: list[str] = Field(default_factory=list)
    os_aliases: dict[str, list[str]] = Field(default_factory=dict)
    extra_paths: dict[str, list[str]] = Field(default_factory=dict)
    native: bool = False                  # distributed outside the registry
    skip_scripts_on_install: bool = False
    skip_scripts_on_update: bool = False
    description: str = ""


class ToolStatus(BaseModel):
    """Observed state of a tool inside the private root.

    A pure function of the filesystem at call time. ``version`` is
    best-effort and stays empty when the binary cannot report it.
    """

    name: str
    installed: bool = False
    path: str = ""
    version: str = ""


class PlatformArtifact(BaseModel):
    """One platform entry of a native release manifest."""

    checksum: str
    size: int = 0


class NativeManifest(BaseModel):
    """Release manifest of the natively distributed binary."""

    model_config = ConfigDict(populate_by_name=True)

    version: str = ""
    build_date: str = Field(default="", alias="buildDate")
    platforms: dict[str, PlatformArtifact] = Field(default_factory=dict)


class ToolPhase(StrEnum):
    """Per-tool states of a reconciliation pass."""

    CHECKING = "checking"
    NOT_INSTALLED = "not_installed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    CHECKING_UPDATE = "checking_update"
    UP_TO_DATE = "up_to_date"
    UPDATING = "updating"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class ToolOutcome(BaseModel):
    """Terminal result for one tool in one pass."""

    name: str
    phase: ToolPhase = ToolPhase.CHECKING
    version: str = ""
    latest: str = ""
    error: str = ""
    warning: str = ""

    @property
    def failed(self) -> bool:
        return self.phase == ToolPhase.FAILED


class ReconcileReport(BaseModel):
    """Summary of one reconciliation pass over the catalog."""

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = ""
    outcomes: list[ToolOutcome] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Whether every tool ended without a non-benign failure."""
        return not any(o.failed for o in self.outcomes)

    def get(self, name: str) -> ToolOutcome | None:
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        return None

    def finish(self) -> None:
        self.ended_at = _now_iso()
