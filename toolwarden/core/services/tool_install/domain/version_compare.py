"""
L1 Domain — Version comparison and ``--version`` output parsing (pure).

No I/O, no subprocess.
"""

from __future__ import annotations

import re

from toolwarden.core.services.tool_install.data.constants import VERSION_OUTPUT_PATTERNS

_LEADING_DIGITS = re.compile(r"^(\d*)")


def _clean(version: str) -> str:
    v = (version or "").strip()
    if v[:1] in ("v", "V"):
        v = v[1:]
    # "1.2.3 (build 42)" → "1.2.3"
    return v.split(" ", 1)[0]


def _component(part: str) -> int:
    """Numeric prefix of one dot-component; ``"3-beta"`` → 3, ``"rc1"`` → 0."""
    digits = _LEADING_DIGITS.match(part).group(1)
    return int(digits) if digits else 0


def compare_versions(v1: str, v2: str) -> int:
    """Compare two dot-separated versions numerically.

    Non-numeric suffixes on a component are dropped before comparing,
    missing trailing components count as zero, a leading ``v`` is
    ignored.

    Returns:
        ``-1`` if ``v1 < v2``, ``0`` if equal, ``1`` if ``v1 > v2``.
    """
    parts1 = _clean(v1).split(".")
    parts2 = _clean(v2).split(".")

    for i in range(max(len(parts1), len(parts2))):
        n1 = _component(parts1[i]) if i < len(parts1) else 0
        n2 = _component(parts2[i]) if i < len(parts2) else 0
        if n1 < n2:
            return -1
        if n1 > n2:
            return 1
    return 0


def is_newer(candidate: str, current: str) -> bool:
    """True when ``candidate`` is strictly newer than ``current``."""
    if not candidate:
        return False
    return compare_versions(current, candidate) < 0


def parse_version_output(output: str) -> str:
    """Normalise a tool's ``--version`` output to a bare version.

    Known vendor formats (``"2.1.29 (Claude Code)"``,
    ``"claude-code/0.2.29 darwin-arm64 node-v22.12.0"``, ``"v1.4.0"``)
    are reduced to the version. Unrecognised output passes through
    stripped.
    """
    text = (output or "").strip()
    if not text:
        return ""
    first_line = text.splitlines()[0].strip()
    for pattern in VERSION_OUTPUT_PATTERNS:
        match = re.match(pattern, first_line)
        if match:
            return match.group(1)
    return text
