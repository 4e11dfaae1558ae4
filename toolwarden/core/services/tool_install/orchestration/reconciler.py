"""
L5 Orchestration — Background reconciliation pass.

Walks the catalog once, sequentially: installs what is missing,
updates what is behind the registry, and skips anything an on-demand
request is already working on. One tool's failure never stops the
pass; every tool ends with a ``ToolOutcome`` and the pass always ends
with ``tools-install-done``.

    CHECKING ─┬─ NOT_INSTALLED → INSTALLING → INSTALLED | FAILED
              └─ CHECKING_UPDATE → UP_TO_DATE
                                 → UPDATING → UPDATED | FAILED
    SKIPPED   lock held elsewhere, or installed outside the root
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from toolwarden.core.models.event import (
    TOOL_CHECKING,
    TOOL_FAILED,
    TOOL_INSTALLED,
    TOOL_INSTALLING,
    TOOL_UPDATED,
    TOOL_UPDATING,
    TOOLS_DONE,
)
from toolwarden.core.models.tool import ReconcileReport, ToolOutcome, ToolPhase
from toolwarden.core.services.event_bus import EventBus
from toolwarden.core.services.tool_install.data.catalog import (
    catalog_names,
    package_identifier,
)
from toolwarden.core.services.tool_install.detection.package_manager import (
    executable_dir,
    latest_registry_version,
)
from toolwarden.core.services.tool_install.detection.tool_status import StatusInspector
from toolwarden.core.services.tool_install.domain.errors import (
    FilesystemContentionError,
    PackageManagerUnavailableError,
    ToolInstallError,
)
from toolwarden.core.services.tool_install.domain.version_compare import is_newer
from toolwarden.core.services.tool_install.execution.locks import LockCoordinator
from toolwarden.core.services.tool_install.execution.package_installer import PackageInstaller
from toolwarden.core.services.tool_install.execution.subprocess_runner import (
    PackageManagerRunner,
    prepend_process_path,
)

logger = logging.getLogger(__name__)


class Reconciler:
    """Brings every cataloged tool to "installed and current".

    Args:
        inspector: Status inspector over the private root.
        locks: Shared per-tool lock coordinator.
        installer: Package installer (delegates the native tool itself).
        bus: Progress event sink.
        names: Tools to reconcile, in order (default: the catalog order).
        registry_mirror: Alternate registry for the latest-version query.
    """

    def __init__(
        self,
        inspector: StatusInspector,
        locks: LockCoordinator,
        installer: PackageInstaller,
        bus: EventBus,
        *,
        names: list[str] | None = None,
        registry_mirror: str = "",
    ) -> None:
        self.inspector = inspector
        self.locks = locks
        self.installer = installer
        self.bus = bus
        self.names = list(names) if names is not None else catalog_names()
        self.registry_mirror = registry_mirror

    def run_pass(self) -> ReconcileReport:
        """Run one full pass over ``self.names``."""
        report = ReconcileReport()
        runner = self._query_runner()

        for name in self.names:
            if not self.locks.try_lock(name):
                logger.info("Background: %s is being installed elsewhere, skipping", name)
                report.outcomes.append(ToolOutcome(
                    name=name, phase=ToolPhase.SKIPPED, warning="install lock held",
                ))
                continue
            try:
                outcome = self._reconcile_tool(name, runner)
            except Exception as e:
                logger.exception("Background: unexpected error while reconciling %s", name)
                outcome = self._fail(ToolOutcome(name=name), e)
            finally:
                self.locks.unlock(name)
            report.outcomes.append(outcome)

        report.finish()
        failed = [o.name for o in report.outcomes if o.failed]
        if failed:
            logger.warning("Background tool check finished with failures: %s", ", ".join(failed))
        else:
            logger.info("Background tool check/update complete")
        self.bus.publish(TOOLS_DONE, data={
            "ok": report.ok,
            "failed": failed,
        })
        return report

    def start_background(
        self,
        *,
        on_done: Callable[[ReconcileReport], None] | None = None,
    ) -> threading.Thread:
        """Run one pass on a daemon thread and return the started thread."""

        def _run() -> None:
            try:
                report = self.run_pass()
            except Exception:
                logger.exception("Background reconciliation crashed")
                self.bus.publish(TOOLS_DONE, error="reconciliation crashed")
                return
            if on_done is not None:
                on_done(report)

        thread = threading.Thread(target=_run, daemon=True, name="tool-reconciler")
        thread.start()
        return thread

    # ── Per tool ────────────────────────────────────────────────

    def _query_runner(self) -> PackageManagerRunner | None:
        try:
            return self.installer.runner()
        except PackageManagerUnavailableError as e:
            logger.warning("Background: %s; update checks disabled for this pass", e)
            return None

    def _fail(self, outcome: ToolOutcome, error: Exception) -> ToolOutcome:
        outcome.phase = ToolPhase.FAILED
        outcome.error = str(error)
        logger.error("Background: %s failed: %s", outcome.name, error)
        self.bus.publish(TOOL_FAILED, key=outcome.name, error=outcome.error, data={
            "kind": getattr(error, "kind", "failed"),
        })
        return outcome

    def _reconcile_tool(self, name: str, runner: PackageManagerRunner | None) -> ToolOutcome:
        outcome = ToolOutcome(name=name)
        logger.info("Background: checking %s in private directory", name)
        self.bus.publish(TOOL_CHECKING, key=name)
        status = self.inspector.inspect(name)

        if not status.installed:
            outcome.phase = ToolPhase.INSTALLING
            logger.info("Background: %s not found, installing", name)
            self.bus.publish(TOOL_INSTALLING, key=name)
            try:
                installed = self.installer.install(name)
            except ToolInstallError as e:
                return self._fail(outcome, e)
            prepend_process_path(executable_dir(self.inspector.root, self.inspector.host))
            outcome.phase = ToolPhase.INSTALLED
            outcome.version = installed.version
            self.bus.publish(TOOL_INSTALLED, key=name, data={"version": installed.version})
            return outcome

        outcome.version = status.version
        if not self.inspector.is_under_root(status.path):
            logger.warning(
                "Background: %s found at %s (not in private directory, skipping)",
                name, status.path,
            )
            outcome.phase = ToolPhase.SKIPPED
            outcome.warning = f"installed outside private directory: {status.path}"
            return outcome

        outcome.phase = ToolPhase.CHECKING_UPDATE
        latest = None
        if runner is not None:
            latest = latest_registry_version(
                runner,
                package_identifier(name, self.inspector.host),
                registry_mirror=self.registry_mirror,
                env=self.installer.env(),
            )
        if not latest:
            logger.warning("Background: could not determine latest version of %s", name)
            outcome.phase = ToolPhase.UP_TO_DATE
            return outcome

        outcome.latest = latest
        if not is_newer(latest, status.version):
            logger.info("Background: %s is already up to date (version: %s)", name, status.version)
            outcome.phase = ToolPhase.UP_TO_DATE
            return outcome

        logger.info(
            "Background: new version available for %s: %s (current: %s), updating",
            name, latest, status.version or "?",
        )
        outcome.phase = ToolPhase.UPDATING
        self.bus.publish(TOOL_UPDATING, key=name, data={
            "from": status.version, "to": latest,
        })
        try:
            updated = self.installer.update(name)
        except FilesystemContentionError as e:
            # benign: the next pass retries once the files are released
            logger.warning("Background: %s update failed due to file lock", name)
            outcome.phase = ToolPhase.UP_TO_DATE
            outcome.warning = str(e)
            return outcome
        except ToolInstallError as e:
            return self._fail(outcome, e)

        outcome.phase = ToolPhase.UPDATED
        outcome.version = updated.version or latest
        self.bus.publish(TOOL_UPDATED, key=name, data={"version": outcome.version})
        return outcome
