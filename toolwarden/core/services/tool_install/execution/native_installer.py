"""
L4 Execution — Native binary installer.

Installs the natively distributed ``claude`` build from the release
bucket instead of the registry::

    <dist>/<channel>                         → bare version string
    <dist>/<version>/manifest.json           → {version, buildDate, platforms}
    <dist>/<version>/<platform>/claude[.exe] → the binary

The binary is verified against the manifest's size and SHA-256 before
it touches the private root. A failed check leaves the previous binary
in place and no download behind.
"""

from __future__ import annotations

import http.client
import logging
import os
import shutil
import time
from pathlib import Path

from pydantic import ValidationError

from toolwarden.core.models.tool import NativeManifest, ToolStatus
from toolwarden.core.reliability.retry_policy import NATIVE_REPLACE, RetryPolicy, Sleep
from toolwarden.core.services.tool_install.data.catalog import HostPlatform, detect_host
from toolwarden.core.services.tool_install.data.constants import (
    NATIVE_CHANNELS,
    NATIVE_DIST_URL,
    NATIVE_PLATFORM_KEYS,
    NATIVE_TOOL,
)
from toolwarden.core.services.tool_install.detection.package_manager import executable_dir
from toolwarden.core.services.tool_install.detection.tool_status import StatusInspector
from toolwarden.core.services.tool_install.domain.errors import (
    FilesystemContentionError,
    IntegrityError,
    NativeDownloadError,
    UnsupportedPlatformError,
    VerificationError,
)
from toolwarden.core.services.tool_install.execution.download import (
    download_with_digest,
    fetch_json,
    fetch_text,
)
from toolwarden.core.services.tool_install.execution.filesystem import discard, remove_file

logger = logging.getLogger(__name__)

# urllib raises URLError (an OSError); a truncated body raises IncompleteRead
_NETWORK_ERRORS = (OSError, http.client.HTTPException)


def native_platform_key(host: HostPlatform) -> str:
    """Release bucket key for ``host``.

    Raises:
        UnsupportedPlatformError: No build is published for ``host``.
    """
    key = NATIVE_PLATFORM_KEYS.get((host.os, host.arch))
    if key is None:
        raise UnsupportedPlatformError(
            f"No native build for {host.os}/{host.arch}", tool=NATIVE_TOOL,
        )
    return key


def write_windows_wrappers(target: Path) -> list[Path]:
    """Write ``claude.cmd`` and ``claude.ps1`` next to ``target``.

    Both forward all arguments to the installed binary by absolute path.
    """
    cmd_path = target.with_name(f"{NATIVE_TOOL}.cmd")
    ps1_path = target.with_name(f"{NATIVE_TOOL}.ps1")
    cmd_path.write_text(f'@echo off\r\n"{target}" %*\r\n', encoding="utf-8")
    ps1_path.write_text(f'& "{target}" @args\r\n', encoding="utf-8")
    return [cmd_path, ps1_path]


class NativeInstaller:
    """Downloads, verifies and places the native binary.

    Args:
        root: Private installation root.
        download_dir: Scratch directory for the unverified download.
        inspector: Status inspector used for the post-install check.
        dist_url: Release bucket base URL.
        host: Target platform (default: this one).
        http_timeout: Seconds per HTTP request.
        settle_delay: Pause before the post-install status check.
        replace_policy: Retry schedule for removing the old binary.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        root: Path,
        download_dir: Path,
        inspector: StatusInspector,
        *,
        dist_url: str = NATIVE_DIST_URL,
        host: HostPlatform | None = None,
        http_timeout: int = 60,
        settle_delay: float = 0.5,
        replace_policy: RetryPolicy = NATIVE_REPLACE,
        sleep: Sleep = time.sleep,
    ) -> None:
        self.root = Path(root)
        self.download_dir = Path(download_dir)
        self.inspector = inspector
        self.dist_url = dist_url.rstrip("/")
        self.host = host or detect_host()
        self.http_timeout = http_timeout
        self.settle_delay = settle_delay
        self.replace_policy = replace_policy
        self.sleep = sleep

    @property
    def binary_name(self) -> str:
        return f"{NATIVE_TOOL}.exe" if self.host.is_windows else NATIVE_TOOL

    @property
    def target_path(self) -> Path:
        return executable_dir(self.root, self.host) / self.binary_name

    # ── Release metadata ────────────────────────────────────────

    def resolve_version(self, selector: str) -> str:
        """Turn ``latest``/``stable`` into a concrete version; pass others through."""
        selector = selector.strip() or "latest"
        if selector not in NATIVE_CHANNELS:
            return selector
        url = f"{self.dist_url}/{selector}"
        try:
            version = fetch_text(url, timeout=self.http_timeout)
        except _NETWORK_ERRORS as e:
            raise NativeDownloadError(
                f"Failed to get {selector} version: {e}", tool=NATIVE_TOOL,
            ) from e
        if not version:
            raise NativeDownloadError(
                f"Empty version from {url}", tool=NATIVE_TOOL,
            )
        return version

    def fetch_manifest(self, version: str) -> NativeManifest:
        url = f"{self.dist_url}/{version}/manifest.json"
        try:
            data = fetch_json(url, timeout=self.http_timeout)
        except (*_NETWORK_ERRORS, ValueError) as e:
            raise NativeDownloadError(
                f"Failed to get manifest for {version}: {e}", tool=NATIVE_TOOL,
            ) from e
        try:
            return NativeManifest.model_validate(data)
        except ValidationError as e:
            raise NativeDownloadError(
                f"Invalid manifest for {version}: {e}", tool=NATIVE_TOOL,
            ) from e

    # ── Install ─────────────────────────────────────────────────

    def install(self, selector: str = "latest") -> ToolStatus:
        """Install ``selector`` (``latest``, ``stable`` or an exact version).

        Returns:
            The post-install status of the native tool.

        Raises:
            UnsupportedPlatformError: No build for this host.
            NativeDownloadError: Release metadata or binary unreachable.
            IntegrityError: Size or checksum mismatch.
            FilesystemContentionError: Old binary could not be removed.
            VerificationError: Binary not found after installation.
        """
        platform_key = native_platform_key(self.host)
        version = self.resolve_version(selector)
        logger.info("Installing native %s %s (%s)", NATIVE_TOOL, version, platform_key)

        manifest = self.fetch_manifest(version)
        artifact = manifest.platforms.get(platform_key)
        if artifact is None:
            raise UnsupportedPlatformError(
                f"Platform {platform_key} not found in manifest for {version}",
                tool=NATIVE_TOOL,
            )

        suffix = ".exe" if self.host.is_windows else ""
        url = f"{self.dist_url}/{version}/{platform_key}/{self.binary_name}"
        download_path = self.download_dir / f"{NATIVE_TOOL}-{version}-{platform_key}{suffix}"

        try:
            digest, size = download_with_digest(
                url, download_path, timeout=self.http_timeout,
            )
        except _NETWORK_ERRORS as e:
            raise NativeDownloadError(
                f"Failed to download {url}: {e}", tool=NATIVE_TOOL,
            ) from e

        try:
            self._verify(artifact.checksum, artifact.size, digest, size)
            self._place(download_path)
        finally:
            discard(download_path)

        self.sleep(self.settle_delay)
        status = self.inspector.inspect(NATIVE_TOOL)
        if not status.installed:
            raise VerificationError(
                f"Installation completed but {NATIVE_TOOL} was not found under {self.root}",
                tool=NATIVE_TOOL,
            )
        logger.info("Native %s %s installed at %s", NATIVE_TOOL, status.version or version, status.path)
        return status

    def _verify(self, expected_digest: str, expected_size: int, digest: str, size: int) -> None:
        if expected_size and size != expected_size:
            raise IntegrityError(
                f"Size mismatch: expected {expected_size} bytes, got {size}",
                tool=NATIVE_TOOL,
                expected=str(expected_size),
                actual=str(size),
            )
        if digest.lower() != expected_digest.strip().lower():
            raise IntegrityError(
                f"Checksum verification failed\nExpected: {expected_digest}\nActual: {digest}",
                tool=NATIVE_TOOL,
                expected=expected_digest,
                actual=digest,
            )
        logger.debug("Checksum verified: %s", digest)

    def _place(self, download_path: Path) -> None:
        target = self.target_path

        if target.exists():
            logger.info("Removing old version at %s", target)
            try:
                remove_file(target, self.replace_policy, sleep=self.sleep)
            except OSError as e:
                raise FilesystemContentionError(
                    f"Failed to remove old version at {target}: {e}", tool=NATIVE_TOOL,
                ) from e

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(download_path, target)
            os.chmod(target, 0o755)
            if self.host.is_windows:
                write_windows_wrappers(target)
        except OSError as e:
            raise FilesystemContentionError(
                f"Failed to install binary to {target}: {e}", tool=NATIVE_TOOL,
            ) from e
