"""
L5 Orchestration — User-triggered install.

Shares the per-tool lock with the reconciliation pass. If the pass is
already installing the requested tool, the caller waits for it (up to
a ceiling) instead of starting a second npm run for the same package.
"""

from __future__ import annotations

import logging
import time

from toolwarden.core.models.event import TOOL_FAILED, TOOL_INSTALLED, TOOL_INSTALLING
from toolwarden.core.models.tool import ToolStatus
from toolwarden.core.reliability.retry_policy import Sleep
from toolwarden.core.services.event_bus import EventBus
from toolwarden.core.services.tool_install.detection.package_manager import executable_dir
from toolwarden.core.services.tool_install.detection.tool_status import StatusInspector
from toolwarden.core.services.tool_install.domain.errors import ToolBusyError, ToolInstallError
from toolwarden.core.services.tool_install.execution.locks import LockCoordinator
from toolwarden.core.services.tool_install.execution.package_installer import PackageInstaller
from toolwarden.core.services.tool_install.execution.subprocess_runner import (
    prepend_process_path,
)

logger = logging.getLogger(__name__)


def install_on_demand(
    name: str,
    *,
    inspector: StatusInspector,
    locks: LockCoordinator,
    installer: PackageInstaller,
    bus: EventBus,
    wait_timeout: float = 60.0,
    poll_interval: float = 1.0,
    sleep: Sleep = time.sleep,
) -> ToolStatus:
    """Make sure ``name`` is installed, installing it now if needed.

    Args:
        name: Tool name from the catalog.
        wait_timeout: Ceiling for waiting on an in-flight install.
        poll_interval: Seconds between lock checks while waiting.

    Returns:
        Status of the installed tool.

    Raises:
        ToolBusyError: The lock was still held after ``wait_timeout``.
        ToolInstallError: The install itself failed.
    """
    if not locks.try_lock(name):
        logger.info("On-demand: %s is already being installed, waiting", name)
        locks.wait_until_released(name, timeout=wait_timeout, interval=poll_interval, sleep=sleep)

        status = inspector.inspect(name)
        if status.installed:
            logger.info("On-demand: %s was installed by the background pass", name)
            return status
        if not locks.try_lock(name):
            raise ToolBusyError(f"Tool {name} is still being installed", tool=name)

    try:
        status = inspector.inspect(name)
        if status.installed:
            return status

        logger.info("On-demand: installing %s", name)
        bus.publish(TOOL_INSTALLING, key=name)
        try:
            status = installer.install(name)
        except ToolInstallError as e:
            logger.error("On-demand: failed to install %s: %s", name, e)
            bus.publish(TOOL_FAILED, key=name, error=str(e), data={"kind": e.kind})
            raise

        prepend_process_path(executable_dir(inspector.root, inspector.host))
        logger.info("On-demand: %s installed successfully", name)
        bus.publish(TOOL_INSTALLED, key=name, data={"version": status.version})
        return status
    finally:
        locks.unlock(name)
