"""
L5 Orchestration — ToolOrchestrator facade.

Wires one configuration into the shared collaborators (inspector, lock
coordinator, installers, event bus) so every entry point, the
background pass as well as on-demand requests, sees the same locks::

    orch = ToolOrchestrator.from_config()
    orch.start_background()          # daemon reconciliation pass
    orch.install("gemini")           # on-demand, waits for the pass if needed
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from toolwarden.core.models.tool import ReconcileReport, ToolStatus
from toolwarden.core.reliability.retry_policy import Sleep
from toolwarden.core.services.event_bus import EventBus
from toolwarden.core.services.tool_install.data.catalog import (
    HostPlatform,
    catalog_names,
    detect_host,
    get_descriptor,
)
from toolwarden.core.services.tool_install.data.constants import NATIVE_TOOL
from toolwarden.core.services.tool_install.detection.package_manager import (
    executable_dir,
    resolve_npm,
)
from toolwarden.core.services.tool_install.detection.tool_status import StatusInspector
from toolwarden.core.services.tool_install.domain.errors import (
    ToolBusyError,
    UnsupportedToolError,
)
from toolwarden.core.services.tool_install.execution.locks import LockCoordinator
from toolwarden.core.services.tool_install.execution.native_installer import NativeInstaller
from toolwarden.core.services.tool_install.execution.package_installer import PackageInstaller
from toolwarden.core.services.tool_install.execution.subprocess_runner import (
    PackageManagerRunner,
)
from toolwarden.core.services.tool_install.orchestration.on_demand import install_on_demand
from toolwarden.core.services.tool_install.orchestration.reconciler import Reconciler

if TYPE_CHECKING:
    from toolwarden.core.config.loader import OrchestratorConfig

logger = logging.getLogger(__name__)


class ToolOrchestrator:
    """Single owner of the tool lifecycle for one private root.

    Args:
        config: Loaded configuration.
        bus: Progress sink (a fresh one when omitted).
        host: Target platform (default: this one).
        runner: Fixed package-manager runner; npm is resolved per
            operation when omitted.
        sleep: Injected for tests; shared by every retry and wait.
    """

    def __init__(
        self,
        config: OrchestratorConfig,
        *,
        bus: EventBus | None = None,
        host: HostPlatform | None = None,
        runner: PackageManagerRunner | None = None,
        sleep: Sleep = time.sleep,
    ) -> None:
        self.config = config
        self.bus = bus or EventBus()
        self.host = host or detect_host()
        self.sleep = sleep

        self.inspector = StatusInspector(
            config.root, host=self.host, version_timeout=config.version_timeout,
        )
        self.locks = LockCoordinator(config.lock_dir, stale_after=config.lock_stale_after)
        self.native = NativeInstaller(
            config.root,
            config.download_dir,
            self.inspector,
            dist_url=config.native_dist_url,
            host=self.host,
            http_timeout=config.http_timeout,
            settle_delay=config.settle_delay,
            sleep=sleep,
        )
        self.installer = PackageInstaller(
            config.root,
            config.cache_dir,
            self.inspector,
            native=self.native,
            runner=runner,
            host=self.host,
            registry_mirror=config.registry_mirror,
            native_channel=config.native_channel,
            settle_delay=config.settle_delay,
            npm_timeout=config.npm_timeout,
            sleep=sleep,
        )
        self.reconciler = Reconciler(
            self.inspector,
            self.locks,
            self.installer,
            self.bus,
            registry_mirror=config.registry_mirror,
        )

    @classmethod
    def from_config(cls, path: str | Path | None = None, **kwargs) -> ToolOrchestrator:
        """Load configuration (see ``load_config``) and build an orchestrator."""
        from toolwarden.core.config.loader import load_config

        return cls(load_config(path), **kwargs)

    # ── Queries ─────────────────────────────────────────────────

    def status(self, name: str) -> ToolStatus:
        return self.inspector.inspect(name)

    def status_all(self) -> list[ToolStatus]:
        return self.inspector.inspect_all(catalog_names())

    def paths(self) -> dict[str, str]:
        """Where everything lives, for diagnostics."""
        npm = resolve_npm(self.config.root, self.host)
        return {
            "root": str(self.config.root),
            "bin": str(executable_dir(self.config.root, self.host)),
            "cache": str(self.config.cache_dir),
            "downloads": str(self.config.download_dir),
            "locks": str(self.config.lock_dir),
            "npm": npm or "",
            "platform": self.host.key,
        }

    # ── Operations ──────────────────────────────────────────────

    def install(self, name: str) -> ToolStatus:
        """On-demand install; returns at once when already installed."""
        if get_descriptor(name) is None:
            raise UnsupportedToolError(f"Unknown tool: {name}", tool=name)
        return install_on_demand(
            name,
            inspector=self.inspector,
            locks=self.locks,
            installer=self.installer,
            bus=self.bus,
            wait_timeout=self.config.lock_wait_timeout,
            poll_interval=self.config.lock_poll_interval,
            sleep=self.sleep,
        )

    def update(self, name: str) -> ToolStatus:
        """Update one tool now, under its install lock."""
        if not self.locks.try_lock(name):
            raise ToolBusyError(f"Tool {name} is being installed or updated", tool=name)
        try:
            return self.installer.update(name)
        finally:
            self.locks.unlock(name)

    def install_native(self, selector: str | None = None) -> ToolStatus:
        """Install a specific native build (``latest``, ``stable`` or a version)."""
        if not self.locks.try_lock(NATIVE_TOOL):
            raise ToolBusyError(
                f"Tool {NATIVE_TOOL} is being installed or updated", tool=NATIVE_TOOL,
            )
        try:
            return self.native.install(selector or self.config.native_channel)
        finally:
            self.locks.unlock(NATIVE_TOOL)

    def reconcile(self) -> ReconcileReport:
        """Run one reconciliation pass on the calling thread."""
        return self.reconciler.run_pass()

    def start_background(
        self,
        *,
        on_done: Callable[[ReconcileReport], None] | None = None,
    ) -> threading.Thread:
        """Run one reconciliation pass on a daemon thread."""
        return self.reconciler.start_background(on_done=on_done)
