"""
L1 Domain — Install error taxonomy.

Every failure an installer can surface is a ``ToolInstallError``.
``kind`` is a stable string the reconciler and the CLI switch on;
``output`` keeps the raw package-manager output for diagnostics.
"""

from __future__ import annotations


class ToolInstallError(Exception):
    """Base class for install/update failures."""

    kind = "failed"

    def __init__(self, message: str, *, tool: str = "", output: str = "") -> None:
        super().__init__(message)
        self.tool = tool
        self.output = output

    def __str__(self) -> str:
        msg = super().__str__()
        if self.output:
            return f"{msg}\nOutput: {self.output.strip()[-2000:]}"
        return msg


class UnsupportedToolError(ToolInstallError):
    """Tool name is not in the catalog."""

    kind = "unsupported"


class UnsupportedPlatformError(ToolInstallError):
    """No build published for this OS/architecture."""

    kind = "unsupported"


class PackageManagerUnavailableError(ToolInstallError):
    """npm cannot be located. Permanent until the base environment is fixed."""

    kind = "unavailable"


class FilesystemContentionError(ToolInstallError):
    """Locked/busy/non-empty paths persisted through every retry."""

    kind = "contention"


class IntegrityError(ToolInstallError):
    """Downloaded artifact does not match the manifest. Never installed."""

    kind = "integrity"

    def __init__(
        self,
        message: str,
        *,
        tool: str = "",
        expected: str = "",
        actual: str = "",
    ) -> None:
        super().__init__(message, tool=tool)
        self.expected = expected
        self.actual = actual


class VerificationError(ToolInstallError):
    """Installer reported success but the binary cannot be found."""

    kind = "verification"


class ToolNotInstalledError(ToolInstallError):
    """Update requested for a tool that is not installed."""

    kind = "refused"


class NotManagedError(ToolInstallError):
    """Tool lives outside the private root; refusing to touch it."""

    kind = "refused"


class NativeDownloadError(ToolInstallError):
    """Version endpoint, manifest or binary could not be fetched."""

    kind = "network"


class ToolBusyError(ToolInstallError):
    """Another actor still holds the tool's install lock."""

    kind = "busy"
