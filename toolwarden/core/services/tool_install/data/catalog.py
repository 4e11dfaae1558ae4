"""
L0 Data — Tool catalog.

Static mapping from logical tool name to npm package identifier(s),
binary aliases, and per-OS path conventions.

Lookups never raise for unknown names: callers get an empty identifier
or an empty alias list and treat the tool as "not installed".
"""

from __future__ import annotations

import platform
from dataclasses import dataclass

from toolwarden.core.models.tool import ToolDescriptor
from toolwarden.core.services.tool_install.data.constants import _IARCH_MAP, _OS_MAP


@dataclass(frozen=True)
class HostPlatform:
    """Normalised OS / CPU architecture of the running process."""

    os: str     # windows, darwin, linux, ...
    arch: str   # x64, arm64, ...

    @property
    def key(self) -> str:
        return f"{self.os}-{self.arch}"

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"


def detect_host() -> HostPlatform:
    """Detect the host platform from ``platform.system()/machine()``."""
    system = platform.system()
    machine = platform.machine()
    return HostPlatform(
        os=_OS_MAP.get(system, system.lower()),
        arch=_IARCH_MAP.get(machine, machine.lower()),
    )


# Background passes walk the catalog in this order.
CATALOG_ORDER: tuple[str, ...] = (
    "kilo", "claude", "gemini", "codex", "opencode",
    "codebuddy", "qoder", "kode", "iflow",
)

TOOL_CATALOG: dict[str, ToolDescriptor] = {
    "claude": ToolDescriptor(
        name="claude",
        package="@anthropic-ai/claude-code",
        aliases=["claude", "claude-code"],
        native=True,
        description="Anthropic Claude Code",
    ),
    "gemini": ToolDescriptor(
        name="gemini",
        package="@google/gemini-cli",
        aliases=["gemini"],
        description="Google Gemini CLI",
    ),
    "codex": ToolDescriptor(
        name="codex",
        package="@openai/codex",
        aliases=["codex", "openai"],
        description="OpenAI Codex CLI",
    ),
    "opencode": ToolDescriptor(
        name="opencode",
        package="opencode-ai",
        package_overrides={"windows": "opencode-windows-x64"},
        extra_packages={
            "darwin-arm64": ["opencode-darwin-arm64"],
            "darwin-x64": ["opencode-darwin-x64"],
            "linux-arm64": ["opencode-linux-arm64"],
            "linux-x64": ["opencode-linux-x64"],
        },
        aliases=["opencode"],
        os_aliases={"windows": ["opencode-windows-x64"]},
        extra_paths={
            "windows": ["node_modules/opencode-windows-x64/bin/opencode.exe"],
        },
        description="OpenCode",
    ),
    "codebuddy": ToolDescriptor(
        name="codebuddy",
        package="@tencent-ai/codebuddy-code",
        aliases=["codebuddy", "codebuddy-code"],
        description="Tencent CodeBuddy Code",
    ),
    "qoder": ToolDescriptor(
        name="qoder",
        package="@qoder-ai/qodercli",
        aliases=["qodercli", "qoder"],
        description="Qoder CLI",
    ),
    "iflow": ToolDescriptor(
        name="iflow",
        package="@iflow-ai/iflow-cli",
        aliases=["iflow"],
        # postinstall references a missing ripgrep helper script
        skip_scripts_on_install=True,
        skip_scripts_on_update=True,
        description="iFlow CLI",
    ),
    "kilo": ToolDescriptor(
        name="kilo",
        package="@kilocode/cli",
        aliases=["kilo", "kilocode"],
        skip_scripts_on_update=True,
        description="Kilo Code CLI",
    ),
    "kode": ToolDescriptor(
        name="kode",
        package="@shareai-lab/kode",
        aliases=["kode"],
        description="Kode",
    ),
}


def _platform_value(mapping: dict, host: HostPlatform, default=None):
    """Pick the ``<os>-<arch>`` entry, then ``<os>``, then ``default``."""
    if host.key in mapping:
        return mapping[host.key]
    return mapping.get(host.os, default)


def catalog_names() -> list[str]:
    """All cataloged tool names in pass order."""
    ordered = [n for n in CATALOG_ORDER if n in TOOL_CATALOG]
    ordered += sorted(n for n in TOOL_CATALOG if n not in ordered)
    return ordered


def get_descriptor(name: str) -> ToolDescriptor | None:
    return TOOL_CATALOG.get(name)


def package_identifier(name: str, host: HostPlatform | None = None) -> str:
    """npm package identifier for ``name`` on ``host``.

    Returns ``""`` for tools not in the catalog.
    """
    desc = TOOL_CATALOG.get(name)
    if desc is None:
        return ""
    host = host or detect_host()
    return _platform_value(desc.package_overrides, host, desc.package)


def binary_aliases(name: str, host: HostPlatform | None = None) -> list[str]:
    """Ordered candidate binary basenames (declaration order = priority)."""
    desc = TOOL_CATALOG.get(name)
    if desc is None:
        return []
    host = host or detect_host()
    aliases = list(desc.aliases or [name])
    for extra in _platform_value(desc.os_aliases, host, []):
        if extra not in aliases:
            aliases.append(extra)
    return aliases


def extra_candidate_paths(name: str, host: HostPlatform | None = None) -> list[str]:
    """Root-relative special-case paths (POSIX separators)."""
    desc = TOOL_CATALOG.get(name)
    if desc is None:
        return []
    host = host or detect_host()
    return list(_platform_value(desc.extra_paths, host, []))


def install_packages(name: str, host: HostPlatform | None = None) -> list[str]:
    """Package specs to hand to ``npm install`` (``pkg@latest`` form).

    Includes platform payload packages some tools publish separately
    per OS/architecture.
    """
    pkg = package_identifier(name, host)
    if not pkg:
        return []
    host = host or detect_host()
    desc = TOOL_CATALOG[name]
    specs = [f"{pkg}@latest"]
    for extra in desc.extra_packages.get(host.key, []):
        specs.append(f"{extra}@latest")
    return specs
