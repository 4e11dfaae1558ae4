"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

These functions have NO subprocess calls, NO filesystem access,
NO network calls. Pure input→output.
"""

from toolwarden.core.services.tool_install.domain.error_analysis import (  # noqa: F401
    InstallFailure,
    UpdateFailure,
    classify_install_failure,
    classify_update_failure,
    is_benign_auxiliary_failure,
    is_lock_error,
)
from toolwarden.core.services.tool_install.domain.errors import (  # noqa: F401
    FilesystemContentionError,
    IntegrityError,
    NativeDownloadError,
    NotManagedError,
    PackageManagerUnavailableError,
    ToolBusyError,
    ToolInstallError,
    ToolNotInstalledError,
    UnsupportedPlatformError,
    UnsupportedToolError,
    VerificationError,
)
from toolwarden.core.services.tool_install.domain.version_compare import (  # noqa: F401
    compare_versions,
    is_newer,
    parse_version_output,
)
