"""
L3 Detection — Tool status inspection.

Read-only: locates a tool's launcher inside the private root and asks
it for its version. Never looks at the system PATH, so a globally
installed copy of the same CLI is invisible here by construction.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from toolwarden.core.models.tool import ToolStatus
from toolwarden.core.services.tool_install.data.catalog import (
    HostPlatform,
    binary_aliases,
    detect_host,
    extra_candidate_paths,
    package_identifier,
)
from toolwarden.core.services.tool_install.data.constants import (
    WINDOWS_BIN_EXTS,
    WINDOWS_ROOT_EXTS,
)
from toolwarden.core.services.tool_install.domain.version_compare import (
    parse_version_output,
)

logger = logging.getLogger(__name__)


def _version_command(path: Path) -> list[str]:
    """How to invoke ``path --version`` for each launcher flavour."""
    suffix = path.suffix.lower()
    if suffix == ".ps1":
        return [
            "powershell", "-NoProfile", "-ExecutionPolicy", "Bypass",
            "-File", str(path), "--version",
        ]
    if suffix == ".js":
        return ["node", str(path), "--version"]
    return [str(path), "--version"]


def get_tool_version(path: Path | str, *, timeout: int = 10) -> str:
    """Run ``<path> --version`` and normalise the output.

    Returns:
        Bare version (e.g. ``"2.1.29"``), the raw output when the format
        is unknown, or ``""`` when the binary cannot be run.
    """
    cmd = _version_command(Path(path))
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Version query failed for %s: %s", path, e)
        return ""

    if result.returncode != 0:
        logger.debug("Version query for %s exited %d", path, result.returncode)
        return ""
    return parse_version_output(result.stdout or "")


class StatusInspector:
    """Locate installed tools under a private root.

    Args:
        root: Private installation root.
        host: Platform to apply path conventions for (default: this one).
        version_timeout: Seconds allowed for ``--version``.
    """

    def __init__(
        self,
        root: Path,
        *,
        host: HostPlatform | None = None,
        version_timeout: int = 10,
    ) -> None:
        self.root = Path(root)
        self.host = host or detect_host()
        self.version_timeout = version_timeout

    def candidate_paths(self, name: str) -> list[Path]:
        """Every path ``name`` may live at, in priority order.

        Aliases are walked in declaration order; for each alias the
        OS-specific locations follow. Unknown tools have no candidates.
        """
        root = self.root
        package = package_identifier(name, self.host)
        candidates: list[Path] = []

        for alias in binary_aliases(name, self.host):
            if self.host.is_windows:
                candidates += [root / f"{alias}{ext}" for ext in WINDOWS_ROOT_EXTS]
                candidates += [root / "bin" / f"{alias}{ext}" for ext in WINDOWS_BIN_EXTS]
                candidates += [root / alias, root / "bin" / alias]
                candidates += [root.joinpath(*rel.split("/")) for rel in extra_candidate_paths(name, self.host)]
                if package:
                    pkg_bin = root.joinpath("node_modules", *package.split("/"), "bin", alias)
                    candidates += [pkg_bin, pkg_bin.with_name(f"{alias}.js")]
            else:
                candidates.append(root / "bin" / alias)
                candidates += [root.joinpath(*rel.split("/")) for rel in extra_candidate_paths(name, self.host)]
                if package:
                    candidates.append(
                        root.joinpath("node_modules", *package.split("/"), "bin", alias)
                    )
        return candidates

    def locate(self, name: str) -> Path | None:
        """First existing, non-directory candidate, or None."""
        for candidate in self.candidate_paths(name):
            if candidate.is_file():
                return candidate
        return None

    def inspect(self, name: str) -> ToolStatus:
        """Recompute ``name``'s status from the filesystem.

        Lookup success does not depend on the version query succeeding.
        """
        path = self.locate(name)
        if path is None:
            logger.debug("Tool '%s' not found under %s", name, self.root)
            return ToolStatus(name=name)

        version = get_tool_version(path, timeout=self.version_timeout)
        logger.debug("Tool '%s' found at %s (version: %s)", name, path, version or "?")
        return ToolStatus(name=name, installed=True, path=str(path), version=version)

    def inspect_all(self, names: list[str]) -> list[ToolStatus]:
        return [self.inspect(name) for name in names]

    def is_under_root(self, path: Path | str) -> bool:
        """Whether ``path`` lives inside the private root."""
        if not path:
            return False
        try:
            return Path(path).resolve().is_relative_to(self.root.resolve())
        except OSError:
            return False
