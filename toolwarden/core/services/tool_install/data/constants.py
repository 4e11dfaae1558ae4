"""
L0 Data — Module-level constants.

Pure data. No logic. No imports beyond stdlib.
"""

from __future__ import annotations

# Architecture name normalization (``platform.machine()`` → Node style).
# Node and the native release bucket both use ``x64`` / ``arm64``.
_IARCH_MAP: dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",
    "AMD64": "x64",        # Windows
    "x64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",      # macOS (Darwin reports arm64)
    "ARM64": "arm64",
    "armv7l": "arm",
    "i686": "ia32",
    "i386": "ia32",
}

# ``platform.system()`` → short OS name used in catalog keys.
_OS_MAP: dict[str, str] = {
    "Windows": "windows",
    "Darwin": "darwin",
    "Linux": "linux",
}

# Native release bucket platform keys, keyed by (os, arch).
# Windows only ships x64; arm64 Windows runs it under emulation.
NATIVE_PLATFORM_KEYS: dict[tuple[str, str], str] = {
    ("windows", "x64"): "win32-x64",
    ("windows", "arm64"): "win32-x64",
    ("darwin", "x64"): "darwin-x64",
    ("darwin", "arm64"): "darwin-arm64",
    ("linux", "x64"): "linux-x64",
    ("linux", "arm64"): "linux-arm64",
}

NATIVE_DIST_URL = (
    "https://storage.googleapis.com/"
    "claude-code-dist-86c565f3-f756-42ad-8dfa-d59b1c096819/claude-code-releases"
)
NATIVE_TOOL = "claude"
NATIVE_CHANNELS: frozenset[str] = frozenset({"latest", "stable"})

HTTP_USER_AGENT = "toolwarden/0.1"

# Windows launcher extensions, in lookup priority order.
WINDOWS_ROOT_EXTS: tuple[str, ...] = (".cmd", ".exe", ".bat", ".ps1")
WINDOWS_BIN_EXTS: tuple[str, ...] = (".cmd", ".exe")

# ── npm failure signatures ──────────────────────────────────────

# Cache permission / stale entries → ``npm cache clean`` then retry once.
CACHE_CONFLICT_SIGNATURES: tuple[str, ...] = ("EACCES", "EEXIST")

# Half-removed package directory → wait, force remove, retry once.
NOT_EMPTY_SIGNATURES: tuple[str, ...] = ("ENOTEMPTY",)

# File held open by a just-exited process (mostly Windows).
LOCK_SIGNATURES: tuple[str, ...] = (
    "EPERM",
    "EBUSY",
    "ENOTEMPTY",
    "operation not permitted",
    "resource busy or locked",
)

# Auxiliary download some CLIs fetch in postinstall; GitHub rate limits
# it with a 403 while the CLI itself installs fine.
BENIGN_AUXILIARY_DOWNLOADS: tuple[str, ...] = ("ripgrep",)
BENIGN_AUXILIARY_STATUS = "403"

# Known ``--version`` output shapes → bare version (first group).
# Anything unmatched passes through unparsed.
VERSION_OUTPUT_PATTERNS: tuple[str, ...] = (
    r"^v?(\d+(?:\.\d+)+\S*)\s+\(",             # "2.1.29 (Claude Code)"
    r"^[@\w./-]+/v?(\d+(?:\.\d+)+\S*)(?:\s|$)",  # "claude-code/0.2.29 darwin-arm64 node-v22"
    r"^v(\d+(?:\.\d+)+\S*)$",                  # "v1.4.0"
)
