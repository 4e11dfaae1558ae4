"""
L5 Orchestration — ``__init__.py`` re-exports top-level coordinators.

These are the entry points that external code calls.
"""

from toolwarden.core.services.tool_install.orchestration.on_demand import (  # noqa: F401
    install_on_demand,
)
from toolwarden.core.services.tool_install.orchestration.orchestrator import (  # noqa: F401
    ToolOrchestrator,
)
from toolwarden.core.services.tool_install.orchestration.reconciler import (  # noqa: F401
    Reconciler,
)
