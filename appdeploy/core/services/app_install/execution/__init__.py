"""
L4 Execution — ``__init__.py`` re-exports the execution layer.

These functions WRITE system state: they download, stage and install.
"""

from appdeploy.core.services.app_install.execution.download import (  # noqa: F401
    fetch_release,
    file_digest,
    http_download,
    stage_artifact,
    verify_checksum,
)
from appdeploy.core.services.app_install.execution.install import (  # noqa: F401
    InstallOrchestrator,
    InstallOutcome,
    output_tail,
)
from appdeploy.core.services.app_install.execution.remediation import (  # noqa: F401
    DependencyRemediator,
    RemediationResult,
    render_bootstrap_script,
    resolve_staging_dir,
)
from appdeploy.core.services.app_install.execution.subprocess_runner import (  # noqa: F401
    run_with_capture,
)
