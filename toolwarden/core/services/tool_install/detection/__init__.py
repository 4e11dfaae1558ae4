"""
L3 Detection — ``__init__.py`` re-exports all detection functions.

These functions READ system state but never WRITE.
Subprocess calls, file reads and env var reads only; nothing is modified.
"""

from toolwarden.core.services.tool_install.detection.package_manager import (  # noqa: F401
    executable_dir,
    latest_registry_version,
    package_dir,
    private_npm_path,
    registry_args,
    resolve_npm,
)
from toolwarden.core.services.tool_install.detection.tool_status import (  # noqa: F401
    StatusInspector,
    get_tool_version,
)
