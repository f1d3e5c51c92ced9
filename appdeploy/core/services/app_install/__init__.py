"""
App install service — detection, remediation and installation of a
single Windows application through winget.

Layers (each imports only from the layers below it):

    L0 data/           constants
    L1 domain/         pure helpers and report text
    L3 detection/      read-only system probes
    L4 execution/      downloads, remediation, package-manager calls
    L5 orchestration/  the workflows the CLI runs
"""

from appdeploy.core.services.app_install.orchestration import (  # noqa: F401
    Components,
    build_components,
    run_bootstrap,
    run_check,
    run_detection,
    run_install,
)
