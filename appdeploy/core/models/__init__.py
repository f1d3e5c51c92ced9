"""
Domain models — configuration schema and run status types.

    from appdeploy.core.models import DeployConfig, ExecutionSummary, ExitCode
"""

from appdeploy.core.models.config import (
    AppSpec,
    DeployConfig,
    DependencyArtifact,
    EndpointHosts,
    PackageManagerSpec,
    PrerequisitePatterns,
    Timeouts,
    VcRuntimeSpec,
)
from appdeploy.core.models.status import (
    ConnectivityStatus,
    Endpoint,
    ExecutionSummary,
    ExitCode,
    InstallationRecord,
    Prerequisite,
    PrerequisiteStatus,
    ReportClass,
)

__all__ = [
    # config.py
    "AppSpec",
    "DeployConfig",
    "DependencyArtifact",
    "EndpointHosts",
    "PackageManagerSpec",
    "PrerequisitePatterns",
    "Timeouts",
    "VcRuntimeSpec",
    # status.py
    "ConnectivityStatus",
    "Endpoint",
    "ExecutionSummary",
    "ExitCode",
    "InstallationRecord",
    "Prerequisite",
    "PrerequisiteStatus",
    "ReportClass",
]
