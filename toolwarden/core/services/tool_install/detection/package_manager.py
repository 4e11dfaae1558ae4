"""
L3 Detection — Package manager discovery and registry queries.

Read-only: locates ``npm`` (private root copy first) and asks the
registry for a package's latest version without installing anything.
"""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from toolwarden.core.services.tool_install.data.catalog import HostPlatform, detect_host

if TYPE_CHECKING:
    from toolwarden.core.services.tool_install.execution.subprocess_runner import (
        PackageManagerRunner,
    )

logger = logging.getLogger(__name__)

_SEMVER_LINE = re.compile(r"^v?(\d+(?:\.\d+)+[\w.+-]*)$")


def executable_dir(root: Path, host: HostPlatform | None = None) -> Path:
    """Directory npm drops launchers into under ``--prefix``.

    Windows keeps them at the prefix root, everything else in ``bin``.
    """
    host = host or detect_host()
    return root if host.is_windows else root / "bin"


def package_dir(root: Path, package: str, host: HostPlatform | None = None) -> Path:
    """Where npm puts ``package`` under ``--prefix root -g``."""
    host = host or detect_host()
    parts = package.split("/")
    if host.is_windows:
        return root.joinpath("node_modules", *parts)
    return root.joinpath("lib", "node_modules", *parts)


def private_npm_path(root: Path, host: HostPlatform | None = None) -> Path:
    host = host or detect_host()
    if host.is_windows:
        return root / "npm.cmd"
    return root / "bin" / "npm"


def resolve_npm(root: Path, host: HostPlatform | None = None) -> str | None:
    """Find npm: the private root copy first, then the system one.

    The private copy guarantees install isolation when both exist.

    Returns:
        Absolute path, or None when npm is not available at all.
    """
    local = private_npm_path(root, host)
    if local.is_file():
        return str(local)

    for name in ("npm", "npm.cmd"):
        found = shutil.which(name)
        if found:
            return found
    return None


def registry_args(registry_mirror: str) -> list[str]:
    return [f"--registry={registry_mirror}"] if registry_mirror else []


def latest_registry_version(
    runner: PackageManagerRunner,
    package: str,
    *,
    registry_mirror: str = "",
    env: dict[str, str] | None = None,
) -> str | None:
    """Ask the registry for ``package``'s latest published version.

    A lightweight ``npm view`` query, distinct from the install path.

    Returns:
        Version string, or None when the query fails or prints nothing
        recognisable.
    """
    if not package:
        return None
    result = runner.run(["view", package, "version", *registry_args(registry_mirror)], env)
    if not result.ok:
        logger.debug("npm view %s failed: %s", package, result.error)
        return None

    # npm may print warnings before the version; take the last version line
    for line in reversed(result.output.strip().splitlines()):
        line = line.strip().strip("'\"")
        match = _SEMVER_LINE.match(line)
        if match:
            return match.group(1)
    return None
