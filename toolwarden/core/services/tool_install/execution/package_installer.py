"""
L4 Execution — Registry package installer.

Installs and updates npm-distributed tools into the private root with
``npm install -g --prefix <root>``. Every invocation is isolated: its
own prefix, its own cache directory, ``--force`` against half-removed
trees, and ``PATH`` led by the root's launcher directory so install
scripts find the private node first.

Recovery ladder for ``install``::

    EACCES / EEXIST   → npm cache clean → one retry
    ENOTEMPTY         → wait, force-remove package dir, cache clean → one retry
    anything else     → ToolInstallError (raw output attached)

``update`` retries lock-class failures with progressive backoff and
forgives a rate-limited auxiliary ripgrep download.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from toolwarden.core.models.tool import ToolStatus
from toolwarden.core.reliability.retry_policy import (
    INSTALL_RECOVERY,
    NOT_EMPTY_SETTLE_S,
    PREINSTALL_REMOVE,
    UPDATE_LOCK,
    RetryPolicy,
    Sleep,
)
from toolwarden.core.services.tool_install.data.catalog import (
    HostPlatform,
    binary_aliases,
    detect_host,
    get_descriptor,
    install_packages,
    package_identifier,
)
from toolwarden.core.services.tool_install.detection.package_manager import (
    executable_dir,
    package_dir,
    registry_args,
    resolve_npm,
)
from toolwarden.core.services.tool_install.detection.tool_status import StatusInspector
from toolwarden.core.services.tool_install.domain.error_analysis import (
    InstallFailure,
    UpdateFailure,
    classify_install_failure,
    classify_update_failure,
)
from toolwarden.core.services.tool_install.domain.errors import (
    FilesystemContentionError,
    NotManagedError,
    PackageManagerUnavailableError,
    ToolInstallError,
    ToolNotInstalledError,
    UnsupportedToolError,
    VerificationError,
)
from toolwarden.core.services.tool_install.execution.filesystem import (
    discard,
    force_remove_tree,
    remove_tree,
)
from toolwarden.core.services.tool_install.execution.native_installer import NativeInstaller
from toolwarden.core.services.tool_install.execution.subprocess_runner import (
    CommandResult,
    NpmRunner,
    PackageManagerRunner,
    build_env,
)

logger = logging.getLogger(__name__)

RunnerFactory = Callable[[str], PackageManagerRunner]


class PackageInstaller:
    """Install/update registry-distributed tools under a private root.

    Args:
        root: Private installation root (npm ``--prefix``).
        cache_dir: Private npm cache (``--cache``).
        inspector: Status inspector for pre-checks and verification.
        native: Installer the natively distributed tool is delegated to.
        runner: Fixed package-manager runner. When omitted, npm is
            resolved on every operation and wrapped by ``runner_factory``.
        runner_factory: Builds a runner from a resolved npm path.
        host: Target platform (default: this one).
        registry_mirror: Alternate registry URL, empty for the default.
        native_channel: Channel used when installing the native tool.
        settle_delay: Pause before the post-install status check.
        npm_timeout: Seconds per npm invocation.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        root: Path,
        cache_dir: Path,
        inspector: StatusInspector,
        *,
        native: NativeInstaller | None = None,
        runner: PackageManagerRunner | None = None,
        runner_factory: RunnerFactory | None = None,
        host: HostPlatform | None = None,
        registry_mirror: str = "",
        native_channel: str = "latest",
        settle_delay: float = 0.5,
        npm_timeout: int = 600,
        sleep: Sleep = time.sleep,
    ) -> None:
        self.root = Path(root)
        self.cache_dir = Path(cache_dir)
        self.inspector = inspector
        self.native = native
        self._runner = runner
        self._runner_factory = runner_factory or (lambda path: NpmRunner(path, timeout=npm_timeout))
        self.host = host or detect_host()
        self.registry_mirror = registry_mirror
        self.native_channel = native_channel
        self.settle_delay = settle_delay
        self.sleep = sleep

    # ── Package manager ─────────────────────────────────────────

    def runner(self) -> PackageManagerRunner:
        """Package-manager runner for the next operation.

        Raises:
            PackageManagerUnavailableError: npm cannot be found.
        """
        if self._runner is not None:
            return self._runner
        npm = resolve_npm(self.root, self.host)
        if npm is None:
            raise PackageManagerUnavailableError(
                "npm not found. Please ensure Node.js is installed."
            )
        return self._runner_factory(npm)

    def env(self) -> dict[str, str]:
        """Environment for npm: ``PATH`` led by the root's launcher dir."""
        return build_env(path_prefix=executable_dir(self.root, self.host))

    def install_args(self, name: str, *, skip_scripts: bool) -> list[str]:
        args = ["install", "-g", *install_packages(name, self.host)]
        args += [
            "--prefix", str(self.root),
            "--cache", str(self.cache_dir),
            "--loglevel", "info",
            "--force",
        ]
        if skip_scripts:
            args.append("--ignore-scripts")
        args += registry_args(self.registry_mirror)
        return args

    def _clean_cache(self, runner: PackageManagerRunner, env: dict[str, str]) -> None:
        args = ["cache", "clean", "--force", "--cache", str(self.cache_dir)]
        args += registry_args(self.registry_mirror)
        result = runner.run(args, env)
        if not result.ok:
            # a failed clean does not stop the retry
            logger.warning("npm cache clean failed: %s", result.error)

    def _delegate_native(self, name: str, selector: str) -> ToolStatus:
        if self.native is None:
            raise UnsupportedToolError(
                f"No native installer configured for {name}", tool=name,
            )
        return self.native.install(selector)

    def _verify(self, name: str, action: str) -> ToolStatus:
        self.sleep(self.settle_delay)
        status = self.inspector.inspect(name)
        if not status.installed:
            raise VerificationError(
                f"{action} completed but tool verification failed - {name} not found",
                tool=name,
            )
        return status

    # ── Install ─────────────────────────────────────────────────

    def _preclean(self, name: str, package: str) -> None:
        """Remove a previous copy of the package to avoid ENOTEMPTY."""
        pkg_dir = package_dir(self.root, package, self.host)
        if not pkg_dir.exists():
            return

        logger.info("Removing existing %s installation to ensure clean install", name)
        if self.host.is_windows:
            for alias in binary_aliases(name, self.host):
                for wrapper in (f"{alias}.cmd", f"{alias}.ps1", alias):
                    discard(self.root / wrapper)
        if not remove_tree(pkg_dir, PREINSTALL_REMOVE, sleep=self.sleep):
            logger.warning("Continuing with a partially removed %s", pkg_dir)

    def install(self, name: str) -> ToolStatus:
        """Install ``name`` into the private root.

        Returns:
            The verified post-install status.

        Raises:
            UnsupportedToolError: ``name`` is not in the catalog.
            PackageManagerUnavailableError: npm cannot be found.
            ToolInstallError: npm failed after recovery.
            VerificationError: npm succeeded but no launcher appeared.
        """
        desc = get_descriptor(name)
        if desc is None:
            raise UnsupportedToolError(f"Unknown tool: {name}", tool=name)
        if desc.native:
            return self._delegate_native(name, self.native_channel)

        runner = self.runner()
        package = package_identifier(name, self.host)

        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemContentionError(
                f"Cannot create install root {self.root}: {e}", tool=name,
            ) from e
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Failed to create npm cache dir %s: %s", self.cache_dir, e)

        self._preclean(name, package)

        env = self.env()
        args = self.install_args(name, skip_scripts=desc.skip_scripts_on_install)
        logger.info("Installing %s: npm %s", name, " ".join(args))

        result = self._install_with_recovery(name, package, runner, args, env)
        if not result.ok:
            raise ToolInstallError(
                f"Failed to install {name}: {result.error}", tool=name, output=result.output,
            )

        status = self._verify(name, "Installation")
        logger.info("%s installed and verified (version: %s)", name, status.version or "?")
        return status

    def _install_with_recovery(
        self,
        name: str,
        package: str,
        runner: PackageManagerRunner,
        args: list[str],
        env: dict[str, str],
        policy: RetryPolicy = INSTALL_RECOVERY,
    ) -> CommandResult:
        result = CommandResult(ok=False)
        for attempt in policy.attempts(self.sleep):
            result = runner.run(args, env)
            if result.ok or attempt == policy.max_attempts:
                break

            failure = classify_install_failure(result.output)
            if failure is InstallFailure.OTHER:
                break

            if failure is InstallFailure.NOT_EMPTY:
                logger.info("ENOTEMPTY while installing %s; cleaning up before retry", name)
                self.sleep(NOT_EMPTY_SETTLE_S)
                pkg_dir = package_dir(self.root, package, self.host)
                try:
                    force_remove_tree(pkg_dir)
                except OSError as e:
                    logger.warning("Could not remove %s: %s", pkg_dir, e)
            else:
                logger.info("npm cache conflict while installing %s; clearing cache", name)

            self._clean_cache(runner, env)
            logger.info("Retrying installation of %s after cleanup", name)
        return result

    # ── Update ──────────────────────────────────────────────────

    def update(self, name: str) -> ToolStatus:
        """Update an installed tool in place.

        Only copies inside the private root are touched; a system-wide
        installation of the same CLI is refused.

        Raises:
            UnsupportedToolError: ``name`` is not in the catalog.
            ToolNotInstalledError: Nothing to update.
            NotManagedError: Installed outside the private root.
            PackageManagerUnavailableError: npm cannot be found.
            FilesystemContentionError: Files stayed locked through every retry.
            ToolInstallError: Any other npm failure.
            VerificationError: Launcher gone after the update.
        """
        desc = get_descriptor(name)
        if desc is None:
            raise UnsupportedToolError(f"Unknown tool: {name}", tool=name)
        if desc.native:
            return self._delegate_native(name, "latest")

        status = self.inspector.inspect(name)
        if not status.installed:
            raise ToolNotInstalledError(f"Tool {name} is not installed", tool=name)
        if not self.inspector.is_under_root(status.path):
            raise NotManagedError(
                f"Tool {name} is not installed in the private directory ({status.path}); "
                "only private installations can be updated",
                tool=name,
            )

        runner = self.runner()
        env = self.env()
        args = self.install_args(name, skip_scripts=desc.skip_scripts_on_update)
        logger.info("Updating %s in private directory: npm %s", name, " ".join(args))

        result = CommandResult(ok=False)
        for attempt in UPDATE_LOCK.attempts(self.sleep):
            result = runner.run(args, env)
            if result.ok:
                break
            if classify_update_failure(result.output) is not UpdateFailure.FILE_LOCK:
                break
            if attempt < UPDATE_LOCK.max_attempts:
                logger.info("Detected file lock issue updating %s, will retry", name)

        if not result.ok:
            failure = classify_update_failure(result.output)
            if failure is UpdateFailure.BENIGN_AUXILIARY:
                logger.warning(
                    "ripgrep download failed (GitHub API limit), but %s may still work", name,
                )
            elif failure is UpdateFailure.FILE_LOCK:
                raise FilesystemContentionError(
                    f"Failed to update {name}: files still locked after "
                    f"{UPDATE_LOCK.max_attempts} attempts",
                    tool=name,
                    output=result.output,
                )
            else:
                raise ToolInstallError(
                    f"Failed to update {name}: {result.error}", tool=name, output=result.output,
                )

        status = self._verify(name, "Update")
        logger.info("Updated %s (version: %s)", name, status.version or "?")
        return status
