"""
Tool installation service — package re-exports.

This ``__init__.py`` re-exports the public entry points so callers
need a single import::

    from toolwarden.core.services.tool_install import ToolOrchestrator

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → detection → execution →
orchestration).
"""

# ── L0: Data ──
from toolwarden.core.services.tool_install.data.catalog import (  # noqa: F401
    TOOL_CATALOG,
    HostPlatform,
    catalog_names,
    detect_host,
)

# ── L1: Domain ──
from toolwarden.core.services.tool_install.domain.errors import (  # noqa: F401
    ToolInstallError,
)
from toolwarden.core.services.tool_install.domain.version_compare import (  # noqa: F401
    compare_versions,
)

# ── L3: Detection ──
from toolwarden.core.services.tool_install.detection.tool_status import (  # noqa: F401
    StatusInspector,
    get_tool_version,
)

# ── L4: Execution ──
from toolwarden.core.services.tool_install.execution.locks import (  # noqa: F401
    LockCoordinator,
)
from toolwarden.core.services.tool_install.execution.native_installer import (  # noqa: F401
    NativeInstaller,
)
from toolwarden.core.services.tool_install.execution.package_installer import (  # noqa: F401
    PackageInstaller,
)

# ── L5: Orchestration ──
from toolwarden.core.services.tool_install.orchestration.orchestrator import (  # noqa: F401
    ToolOrchestrator,
)
from toolwarden.core.services.tool_install.orchestration.on_demand import (  # noqa: F401
    install_on_demand,
)
