"""
L0 Data — ``__init__.py`` re-exports the catalog and constants.
"""

from toolwarden.core.services.tool_install.data.catalog import (  # noqa: F401
    CATALOG_ORDER,
    TOOL_CATALOG,
    HostPlatform,
    binary_aliases,
    catalog_names,
    detect_host,
    extra_candidate_paths,
    get_descriptor,
    install_packages,
    package_identifier,
)
from toolwarden.core.services.tool_install.data.constants import (  # noqa: F401
    NATIVE_DIST_URL,
    NATIVE_PLATFORM_KEYS,
    NATIVE_TOOL,
    _IARCH_MAP,
    _OS_MAP,
)
