"""
L4 Execution — Dependency remediation.

Two remediations:

    bootstrap_package_manager   stage the winget bundle and its AppX
                                dependencies, then add them in one
                                Add-AppxPackage call as the logged-on
                                user
    install_vc_runtime          stage and run the VC++ redistributable

Both stage into a scratch directory that is removed on every exit
path. A download error or hash mismatch aborts the remediation; nothing
is retried.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from appdeploy.adapters.windows.scheduled_task import DirectRunner, RunAsUser
from appdeploy.core.models.config import DependencyArtifact, DeployConfig
from appdeploy.core.services.app_install.data.constants import BOOTSTRAP_SCRIPT_NAME
from appdeploy.core.services.app_install.domain.paths import expand_path, has_unexpanded_vars
from appdeploy.core.services.app_install.domain.reporting import (
    fmt_exit_code,
    normalise_exit_code,
)
from appdeploy.core.services.app_install.execution.download import (
    Downloader,
    fetch_release,
    http_download,
    stage_artifact,
)
from appdeploy.core.services.app_install.execution.subprocess_runner import run_with_capture

logger = logging.getLogger(__name__)

ReleaseFetcher = Callable[[str, str, int], dict]


@dataclass
class RemediationResult:
    """Outcome of one remediation."""

    ok: bool
    error: str = ""
    timed_out: bool = False
    downloaded: list[str] = field(default_factory=list)
    reused: list[str] = field(default_factory=list)

    def describe(self) -> str:
        if self.ok:
            return "remediation completed"
        return self.error or "remediation failed"


def resolve_staging_dir(configured: str) -> Path:
    """Expand the configured staging dir; fall back to the temp dir."""
    path = expand_path(configured)
    if has_unexpanded_vars(path):
        return Path(tempfile.gettempdir()) / "appdeploy-staging"
    return Path(path)


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def render_bootstrap_script(bundle: str, dependencies: list[str]) -> str:
    """PowerShell that adds the bundle with its dependencies in one call."""
    deps = ", ".join(_ps_quote(d) for d in dependencies)
    return (
        "$ErrorActionPreference = 'Stop'\n"
        "try {\n"
        f"    Add-AppxPackage -Path {_ps_quote(bundle)} -DependencyPath @({deps}) "
        "-ForceApplicationShutdown\n"
        "    exit 0\n"
        "} catch {\n"
        "    Write-Error $_\n"
        "    exit 1\n"
        "}\n"
    )


class DependencyRemediator:
    """Stages verified artifacts and installs them."""

    def __init__(
        self,
        config: DeployConfig,
        *,
        runner: RunAsUser | None = None,
        downloader: Downloader = http_download,
        release_fetcher: ReleaseFetcher = fetch_release,
        staging_dir: Path | None = None,
        process_runner: Callable[..., dict] = run_with_capture,
    ):
        self.config = config
        self._runner = runner or DirectRunner()
        self._download = downloader
        self._fetch_release = release_fetcher
        self._staging_dir = staging_dir or resolve_staging_dir(config.staging_dir)
        self._run_process = process_runner

    @property
    def staging_dir(self) -> Path:
        return self._staging_dir

    # ── Package manager ─────────────────────────────────────────

    def bootstrap_package_manager(self) -> RemediationResult:
        result = RemediationResult(ok=False)
        try:
            dependency_paths: list[str] = []
            for artifact in self.config.artifacts:
                path = self._stage(artifact, result)
                if path is None:
                    return result
                dependency_paths.append(path)

            bundle = self._resolve_bundle(result)
            if bundle is None:
                return result
            bundle_path = self._stage(bundle, result)
            if bundle_path is None:
                return result

            script = self._staging_dir / BOOTSTRAP_SCRIPT_NAME
            script.write_text(render_bootstrap_script(bundle_path, dependency_paths), encoding="utf-8")

            run = self._runner.run_script(script, timeout=self.config.timeouts.delegated_task)
            if run.ok:
                result.ok = True
                logger.info("Package manager bootstrap completed")
            else:
                result.timed_out = run.timed_out
                result.error = f"package manager bootstrap failed: {run.describe()}"
                logger.error(result.error)
            return result
        except OSError as exc:
            result.error = f"package manager bootstrap failed: {exc}"
            logger.error(result.error)
            return result
        finally:
            self._cleanup()

    def _resolve_bundle(self, result: RemediationResult) -> DependencyArtifact | None:
        spec = self.config.package_manager
        release = self._fetch_release(spec.release_feed, spec.bundle_suffix, self.config.timeouts.download)
        if not release.get("ok"):
            result.error = release.get("error", "cannot resolve package manager release")
            logger.error(result.error)
            return None
        if not release.get("digest"):
            result.error = f"release asset {release['asset_name']} publishes no digest"
            logger.error(result.error)
            return None
        logger.info("Package manager release %s: %s", release.get("version", "?"), release["asset_name"])
        return DependencyArtifact(
            file_name=release["asset_name"],
            source_url=release["url"],
            expected_hash=release["digest"],
        )

    # ── VC++ runtime ────────────────────────────────────────────

    def install_vc_runtime(self) -> RemediationResult:
        spec = self.config.vc_runtime
        result = RemediationResult(ok=False)
        try:
            path = self._stage(spec.artifact, result)
            if path is None:
                return result

            r = self._run_process([path, *spec.install_args], timeout=self.config.timeouts.install)
            if r.get("returncode") is None:
                result.error = f"VC++ runtime installer failed: {r.get('error', 'did not run')}"
            else:
                code = normalise_exit_code(r["returncode"])
                if code in {normalise_exit_code(c) for c in spec.success_exit_codes}:
                    result.ok = True
                    logger.info("VC++ runtime installer exited %s", fmt_exit_code(r["returncode"]))
                else:
                    result.error = f"VC++ runtime installer exited {fmt_exit_code(r['returncode'])}"
            if result.error:
                logger.error(result.error)
            return result
        except OSError as exc:
            result.error = f"VC++ runtime remediation failed: {exc}"
            logger.error(result.error)
            return result
        finally:
            self._cleanup()

    # ── Shared ──────────────────────────────────────────────────

    def _stage(self, artifact: DependencyArtifact, result: RemediationResult) -> str | None:
        staged = stage_artifact(
            artifact,
            self._staging_dir,
            downloader=self._download,
            timeout=self.config.timeouts.download,
        )
        if not staged["ok"]:
            result.error = staged["error"]
            logger.error("Staging %s failed: %s", artifact.file_name, staged["error"])
            return None
        (result.downloaded if staged["downloaded"] else result.reused).append(artifact.file_name)
        return staged["path"]

    def _cleanup(self) -> None:
        if not self._staging_dir.exists():
            return
        try:
            shutil.rmtree(self._staging_dir)
        except OSError as exc:
            logger.warning("Could not remove staging dir %s: %s", self._staging_dir, exc)
