"""
L5 Orchestration — workflow entry points.
"""

from appdeploy.core.services.app_install.orchestration.orchestrator import (  # noqa: F401
    Components,
    build_components,
    run_bootstrap,
    run_check,
    run_detection,
    run_install,
)
