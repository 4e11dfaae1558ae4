"""
L4 Execution — ``__init__.py`` re-exports all execution functions.

These functions WRITE to the system: npm subprocess calls, downloads,
binary placement, lock markers.
"""

from toolwarden.core.services.tool_install.execution.download import (  # noqa: F401
    download_with_digest,
    fetch_json,
    fetch_text,
)
from toolwarden.core.services.tool_install.execution.filesystem import (  # noqa: F401
    discard,
    force_remove_tree,
    remove_file,
    remove_tree,
)
from toolwarden.core.services.tool_install.execution.locks import (  # noqa: F401
    LockCoordinator,
)
from toolwarden.core.services.tool_install.execution.native_installer import (  # noqa: F401
    NativeInstaller,
    native_platform_key,
    write_windows_wrappers,
)
from toolwarden.core.services.tool_install.execution.package_installer import (  # noqa: F401
    PackageInstaller,
)
from toolwarden.core.services.tool_install.execution.subprocess_runner import (  # noqa: F401
    CommandResult,
    NpmRunner,
    PackageManagerRunner,
    build_env,
    prepend_process_path,
)
