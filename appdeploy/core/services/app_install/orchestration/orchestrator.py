"""
L5 Orchestration — Top-level workflows.

Each workflow threads one ``ExecutionSummary`` through its stages and
returns it; the CLI prints the final line and exits with its code.

    run_detection   presence gate, then diagnostics on a miss
    run_install     architecture → VC++ runtime → package manager
                    {direct | located | remediated} → install
    run_check       read-only environment report
    run_bootstrap   package-manager remediation on its own
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from appdeploy.adapters.windows.registry import WindowsInventory, WinregUninstallStore
from appdeploy.adapters.windows.scheduled_task import DirectRunner, ScheduledTaskRunner
from appdeploy.core.models.config import DeployConfig
from appdeploy.core.models.status import (
    ConnectivityStatus,
    ExecutionSummary,
    ExitCode,
    Prerequisite,
    PrerequisiteStatus,
    ReportClass,
)
from appdeploy.core.services.app_install.detection.environment import (
    detect_architecture,
    is_supported_architecture,
)
from appdeploy.core.services.app_install.detection.locator import PackageManagerLocator
from appdeploy.core.services.app_install.detection.network import check_connectivity
from appdeploy.core.services.app_install.detection.prerequisites import PrerequisiteChecker
from appdeploy.core.services.app_install.detection.presence import PresenceDetector
from appdeploy.core.services.app_install.domain.reporting import (
    describe_connectivity,
    describe_prerequisites,
    describe_record,
)
from appdeploy.core.services.app_install.execution.install import InstallOrchestrator
from appdeploy.core.services.app_install.execution.remediation import DependencyRemediator
from appdeploy.core.services.app_install.execution.subprocess_runner import run_with_capture

logger = logging.getLogger(__name__)

Progress = Callable[[str], None]


@dataclass
class Components:
    """Collaborators of the workflows. Tests substitute fakes."""

    presence: PresenceDetector
    prerequisites: PrerequisiteChecker
    locator: PackageManagerLocator
    remediator: DependencyRemediator
    connectivity: Callable[[], ConnectivityStatus]
    architecture: Callable[[], str] = detect_architecture
    which: Callable[[str], str | None] = shutil.which
    install_runner: Callable[..., dict] = run_with_capture


def build_components(config: DeployConfig) -> Components:
    """Wire the live Windows collaborators for ``config``."""
    store = WinregUninstallStore()
    if config.delegate_to_user:
        runner = ScheduledTaskRunner(poll_interval=config.timeouts.poll_interval)
    else:
        runner = DirectRunner()

    return Components(
        presence=PresenceDetector(config.app, uninstall_store=store),
        prerequisites=PrerequisiteChecker(config, inventory=WindowsInventory(store)),
        locator=PackageManagerLocator(config.package_manager),
        remediator=DependencyRemediator(config, runner=runner),
        connectivity=lambda: check_connectivity(config.endpoints, config.timeouts.probe),
    )


def _emit(progress: Progress | None, message: str) -> None:
    logger.info(message)
    if progress:
        progress(message)


# ── Detection ───────────────────────────────────────────────────


def run_detection(
    config: DeployConfig,
    components: Components,
    progress: Progress | None = None,
) -> ExecutionSummary:
    """Is the target application installed?

    Found → OK with path and version. Not found → FAIL, with the
    prerequisite and connectivity diagnostics folded into the summary.
    """
    summary = ExecutionSummary()
    name = config.app.display_name

    _emit(progress, f"Detecting {name}")
    record = components.presence.detect()
    if record:
        summary.add(describe_record(name, record))
        return summary

    summary.fail(ExitCode.FAILURE, f"{name} not found")
    _add_diagnostics(config, components, summary, progress)
    return summary


def _add_diagnostics(
    config: DeployConfig,
    components: Components,
    summary: ExecutionSummary,
    progress: Progress | None,
) -> tuple[PrerequisiteStatus, ConnectivityStatus]:
    _emit(progress, "Checking prerequisites")
    prereqs = components.prerequisites.check()
    summary.add(describe_prerequisites(prereqs))

    _emit(progress, "Checking connectivity")
    connectivity = components.connectivity()
    summary.add(describe_connectivity(connectivity, config.endpoints))
    return prereqs, connectivity


# ── Installation ────────────────────────────────────────────────


def run_install(
    config: DeployConfig,
    components: Components,
    app_id: str | None = None,
    progress: Progress | None = None,
) -> ExecutionSummary:
    """Install ``app_id`` (default: the configured application)."""
    summary = ExecutionSummary()
    app_id = app_id or config.app.package_id

    # EnsureArchitecture
    arch = components.architecture()
    _emit(progress, f"Architecture: {arch}")
    if not is_supported_architecture(arch, config.supported_architectures):
        return summary.fail(ExitCode.UNSUPPORTED_ARCHITECTURE, f"unsupported architecture {arch}")

    _emit(progress, "Checking prerequisites")
    prereqs = components.prerequisites.check()
    summary.add(describe_prerequisites(prereqs))

    # EnsurePrerequisite(VCRuntime)
    if Prerequisite.VC_RUNTIME in prereqs.missing:
        _emit(progress, "Installing Visual C++ runtime")
        result = components.remediator.install_vc_runtime()
        if not result.ok:
            return summary.fail(ExitCode.PREREQUISITE_FAILED, result.describe())
        summary.add("Visual C++ runtime installed")

    # ResolvePackageManager
    package_manager = _resolve_package_manager(config, components, prereqs, summary, progress)
    if package_manager is None:
        return summary

    # Install
    _emit(progress, f"Installing {app_id} with {package_manager}")
    orchestrator = InstallOrchestrator(
        package_manager,
        config.package_manager,
        runner=components.install_runner,
        timeout=config.timeouts.install,
    )
    outcome = orchestrator.install(app_id)
    if not outcome.ok:
        return summary.fail(ExitCode.FAILURE, outcome.describe(app_id))
    summary.add(outcome.describe(app_id))

    if config.verify_after_install and app_id == config.app.package_id:
        record = components.presence.detect()
        if record:
            summary.add(describe_record(config.app.display_name, record))
        else:
            summary.note(f"{config.app.display_name} not detected after install")
    return summary


def _resolve_package_manager(
    config: DeployConfig,
    components: Components,
    prereqs: PrerequisiteStatus,
    summary: ExecutionSummary,
    progress: Progress | None,
) -> Path | None:
    """Direct path, located, or remediated. None means ``summary`` has failed."""
    executable = config.package_manager.executable

    if Prerequisite.PACKAGE_MANAGER not in prereqs.missing:
        direct = components.which(executable)
        if direct:
            summary.add(f"package manager on PATH at {direct}")
            return Path(direct)

    located = components.locator.locate()
    if located:
        summary.add(f"package manager located at {located}")
        return located

    _emit(progress, "Package manager not found, checking connectivity")
    connectivity = components.connectivity()
    summary.add(describe_connectivity(connectivity, config.endpoints))

    _emit(progress, "Bootstrapping package manager")
    result = components.remediator.bootstrap_package_manager()
    if not result.ok:
        summary.fail(ExitCode.BOOTSTRAP_FAILED, result.describe())
        if not result.timed_out:
            return None

    located = components.locator.locate()
    if located is None:
        if not result.timed_out:
            summary.fail(ExitCode.PACKAGE_MANAGER_NOT_FOUND, f"{executable} not found after bootstrap")
        return None

    if result.timed_out:
        # The delegated task outlived its wait, but it got there.
        summary.override(ReportClass.NOTE, ExitCode.OK)
        summary.add(f"package manager present at {located} despite bootstrap timeout")
    else:
        summary.add(f"package manager bootstrapped at {located}")
    return located


# ── Diagnostics / maintenance ───────────────────────────────────


def run_check(
    config: DeployConfig,
    components: Components,
    progress: Progress | None = None,
) -> ExecutionSummary:
    """Environment report: architecture, prerequisites, connectivity, package manager."""
    summary = ExecutionSummary()

    arch = components.architecture()
    if is_supported_architecture(arch, config.supported_architectures):
        summary.add(f"architecture {arch}")
    else:
        summary.fail(ExitCode.UNSUPPORTED_ARCHITECTURE, f"unsupported architecture {arch}")

    prereqs, connectivity = _add_diagnostics(config, components, summary, progress)

    gaps = set(prereqs.missing)
    located = components.locator.locate()
    if located:
        if Prerequisite.PACKAGE_MANAGER in gaps:
            gaps.discard(Prerequisite.PACKAGE_MANAGER)
            summary.add(f"package manager located at {located} (not on PATH)")
        else:
            summary.add(f"package manager located at {located}")

    if not summary.failed and (gaps or not connectivity.ok):
        summary.fail(ExitCode.FAILURE, "environment incomplete")
    return summary


def run_bootstrap(
    config: DeployConfig,
    components: Components,
    progress: Progress | None = None,
) -> ExecutionSummary:
    """Bootstrap the package manager unless it is already there."""
    summary = ExecutionSummary()

    located = components.locator.locate()
    if located:
        return summary.add(f"package manager already present at {located}")

    _emit(progress, "Bootstrapping package manager")
    result = components.remediator.bootstrap_package_manager()
    if not result.ok:
        return summary.fail(ExitCode.BOOTSTRAP_FAILED, result.describe())

    located = components.locator.locate()
    if located is None:
        return summary.fail(
            ExitCode.PACKAGE_MANAGER_NOT_FOUND,
            f"{config.package_manager.executable} not found after bootstrap",
        )
    return summary.add(f"package manager bootstrapped at {located}")
