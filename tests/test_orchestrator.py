"""
Tests for the detection and installation workflows.
"""

from pathlib import Path

import pytest
from conftest import FakeInventory, FakeUninstallStore, connectivity

from appdeploy.core.models.config import AppSpec, DeployConfig, PackageManagerSpec
from appdeploy.core.models.status import Endpoint, ExitCode, InstallationRecord, ReportClass
from appdeploy.core.services.app_install.detection.locator import PackageManagerLocator
from appdeploy.core.services.app_install.detection.prerequisites import PrerequisiteChecker
from appdeploy.core.services.app_install.detection.presence import PresenceDetector
from appdeploy.core.services.app_install.execution.remediation import RemediationResult
from appdeploy.core.services.app_install.orchestration.orchestrator import (
    Components,
    run_bootstrap,
    run_check,
    run_detection,
    run_install,
)

ALL_RUNTIMES = [
    "Microsoft Visual C++ 2015-2022 Redistributable (x64) - 14.38.33135",
    "Microsoft.VCLibs.140.00.UWPDesktop",
    "Microsoft.UI.Xaml.2.8",
]

RECORD = InstallationRecord(install_path=r"C:\Program Files\Notepad++\notepad++.exe", display_version="8.6.2")


class StubPresence:
    def __init__(self, *results):
        self._results = list(results)
        self.calls = 0

    def detect(self):
        self.calls += 1
        if len(self._results) > 1:
            return self._results.pop(0)
        return self._results[0] if self._results else None


class StubLocator:
    def __init__(self, *results):
        self._results = list(results)
        self.calls = 0

    def locate(self):
        self.calls += 1
        if len(self._results) > 1:
            return self._results.pop(0)
        return self._results[0] if self._results else None


class StubRemediator:
    def __init__(self, bootstrap=None, vc=None):
        self.bootstrap_result = bootstrap or RemediationResult(ok=True)
        self.vc_result = vc or RemediationResult(ok=True)
        self.bootstrap_calls = 0
        self.vc_calls = 0

    def bootstrap_package_manager(self):
        self.bootstrap_calls += 1
        return self.bootstrap_result

    def install_vc_runtime(self):
        self.vc_calls += 1
        return self.vc_result


class RecordingInstall:
    def __init__(self, returncode=0, output=""):
        self.returncode = returncode
        self.output = output
        self.calls = []

    def __call__(self, cmd, *, timeout):
        self.calls.append(cmd)
        return {"ok": self.returncode == 0, "returncode": self.returncode, "output": self.output}


def _components(
    config: DeployConfig,
    *,
    presence=None,
    installed=ALL_RUNTIMES,
    on_path: str | None = None,
    locator=None,
    remediator=None,
    reach=None,
    arch="AMD64",
    install=None,
) -> Components:
    return Components(
        presence=presence or StubPresence(None),
        prerequisites=PrerequisiteChecker(
            config, inventory=FakeInventory(installed), which=lambda name: on_path,
        ),
        locator=locator or StubLocator(None),
        remediator=remediator or StubRemediator(),
        connectivity=lambda: reach or connectivity(),
        architecture=lambda: arch,
        which=lambda name: on_path,
        install_runner=install or RecordingInstall(),
    )


# ── Detection ───────────────────────────────────────────────────


class TestDetection:
    def test_installed_app_reports_ok_with_version(self, tmp_path: Path):
        exe = tmp_path / "Notepad++" / "notepad++.exe"
        exe.parent.mkdir()
        exe.write_bytes(b"MZ")
        config = DeployConfig(app=AppSpec(canonical_paths=[str(exe)]))
        presence = PresenceDetector(
            config.app, uninstall_store=FakeUninstallStore(), version_reader=lambda p: "8.6.2.0",
        )
        summary = run_detection(config, _components(config, presence=presence))
        assert summary.exit_code == ExitCode.OK
        assert summary.report is ReportClass.OK
        assert "8.6.2.0" in summary.text
        assert str(exe) in summary.text

    def test_found_app_skips_diagnostics(self, config):
        checked = []
        comps = _components(config, presence=StubPresence(RECORD))
        comps.connectivity = lambda: checked.append(1) or connectivity()
        run_detection(config, comps)
        assert checked == []

    def test_missing_app_reports_dependency_and_connectivity(self, config):
        installed = [n for n in ALL_RUNTIMES if "VCLibs" not in n]
        summary = run_detection(config, _components(config, installed=installed, on_path=None))
        assert summary.exit_code == ExitCode.FAILURE
        assert summary.report is ReportClass.FAIL
        assert "Notepad++ not found" in summary.text
        assert "VCLibs" in summary.text
        assert "connectivity OK" in summary.text

    def test_unreachable_endpoint_named(self, config):
        comps = _components(config, reach=connectivity(Endpoint.DISTRIBUTION))
        summary = run_detection(config, comps)
        assert "unreachable: github.com [G]" in summary.text

    def test_progress_lines(self, config):
        lines = []
        run_detection(config, _components(config), progress=lines.append)
        assert lines == ["Detecting Notepad++", "Checking prerequisites", "Checking connectivity"]

    def test_final_line_format(self, config):
        from datetime import datetime

        summary = run_detection(config, _components(config, presence=StubPresence(RECORD)))
        line = summary.final_line(now=datetime(2024, 5, 1, 9, 30, 0))
        assert line.startswith("OK 2024-05-01 09:30:00 : Notepad++ 8.6.2 found at ")


# ── Installation ────────────────────────────────────────────────


def _winget_dir(root: Path, version: str = "1.22.10861.0") -> Path:
    d = root / f"Microsoft.DesktopAppInstaller_{version}_x64__8wekyb3d8bbwe"
    d.mkdir(parents=True)
    (d / "winget.exe").write_bytes(b"MZ")
    return d


class TestInstall:
    def test_wildcard_located_package_manager_installs(self, tmp_path: Path):
        d = _winget_dir(tmp_path / "WindowsApps")
        config = DeployConfig(
            package_manager=PackageManagerSpec(candidate_dirs=[
                str(tmp_path / "WindowsApps" / "Microsoft.DesktopAppInstaller_*_x64__8wekyb3d8bbwe"),
            ]),
        )
        install = RecordingInstall(0)
        comps = _components(
            config,
            locator=PackageManagerLocator(config.package_manager),
            presence=StubPresence(RECORD),
            install=install,
        )
        summary = run_install(config, comps)
        assert summary.exit_code == ExitCode.OK
        assert summary.report is ReportClass.OK
        assert install.calls[0][0] == str(d / "winget.exe")
        assert "Notepad++.Notepad++ installed" in summary.text

    def test_installer_failure_code_reported(self, config):
        install = RecordingInstall(1603, "Installer failed with exit code: 1603")
        comps = _components(config, on_path=r"C:\winget.exe", install=install)
        summary = run_install(config, comps)
        assert summary.exit_code == ExitCode.FAILURE
        assert summary.report is ReportClass.FAIL
        assert "1603" in summary.text

    def test_second_run_no_update_needed_is_success(self, config):
        presence = StubPresence(RECORD)
        comps = _components(config, on_path=r"C:\winget.exe", presence=presence,
                            install=RecordingInstall(-1978335189))
        first = run_install(config, comps)
        second = run_install(config, comps)
        assert first.exit_code == ExitCode.OK
        assert second.exit_code == ExitCode.OK
        assert second.report is ReportClass.OK

    def test_direct_path_skips_locator(self, config):
        locator = StubLocator(Path(r"C:\other\winget.exe"))
        install = RecordingInstall(0)
        comps = _components(config, on_path=r"C:\Windows\winget.exe", locator=locator,
                            presence=StubPresence(RECORD), install=install)
        run_install(config, comps)
        assert locator.calls == 0
        assert install.calls[0][0] == r"C:\Windows\winget.exe"

    def test_app_id_override(self, config):
        install = RecordingInstall(0)
        comps = _components(config, on_path="winget.exe", install=install)
        summary = run_install(config, comps, app_id="VideoLAN.VLC")
        assert install.calls[0][3] == "VideoLAN.VLC"
        # Post-install detection only applies to the configured application
        assert summary.report is ReportClass.OK

    def test_unsupported_architecture(self, config):
        install = RecordingInstall(0)
        summary = run_install(config, _components(config, arch="ARM64", install=install))
        assert summary.exit_code == ExitCode.UNSUPPORTED_ARCHITECTURE
        assert install.calls == []

    def test_vc_runtime_remediated(self, config):
        remediator = StubRemediator()
        installed = [n for n in ALL_RUNTIMES if "Visual C++" not in n]
        comps = _components(config, installed=installed, on_path="winget.exe",
                            remediator=remediator, presence=StubPresence(RECORD))
        summary = run_install(config, comps)
        assert remediator.vc_calls == 1
        assert summary.exit_code == ExitCode.OK
        assert "Visual C++ runtime installed" in summary.text

    def test_vc_runtime_failure_stops_before_install(self, config):
        remediator = StubRemediator(vc=RemediationResult(ok=False, error="Hash mismatch for vc_redist.x64.exe"))
        install = RecordingInstall(0)
        installed = [n for n in ALL_RUNTIMES if "Visual C++" not in n]
        comps = _components(config, installed=installed, on_path="winget.exe",
                            remediator=remediator, install=install)
        summary = run_install(config, comps)
        assert summary.exit_code == ExitCode.PREREQUISITE_FAILED
        assert "Hash mismatch" in summary.text
        assert install.calls == []

    def test_bootstrap_then_install(self, config):
        winget = Path(r"C:\Program Files\WindowsApps\winget.exe")
        remediator = StubRemediator()
        comps = _components(config, locator=StubLocator(None, winget), remediator=remediator,
                            presence=StubPresence(RECORD))
        summary = run_install(config, comps)
        assert remediator.bootstrap_calls == 1
        assert summary.exit_code == ExitCode.OK
        assert "bootstrapped" in summary.text
        assert "connectivity OK" in summary.text

    def test_bootstrap_failure(self, config):
        install = RecordingInstall(0)
        remediator = StubRemediator(bootstrap=RemediationResult(ok=False, error="Hash mismatch for xaml.appx"))
        comps = _components(config, remediator=remediator, install=install)
        summary = run_install(config, comps)
        assert summary.exit_code == ExitCode.BOOTSTRAP_FAILED
        assert summary.report is ReportClass.FAIL
        assert install.calls == []

    def test_still_missing_after_bootstrap(self, config):
        install = RecordingInstall(0)
        comps = _components(config, locator=StubLocator(None, None), install=install)
        summary = run_install(config, comps)
        assert summary.exit_code == ExitCode.PACKAGE_MANAGER_NOT_FOUND
        assert install.calls == []

    def test_bootstrap_timeout_but_present_is_note(self, config):
        winget = Path(r"C:\winget.exe")
        remediator = StubRemediator(bootstrap=RemediationResult(
            ok=False, timed_out=True, error="package manager bootstrap failed: delegated task did not finish",
        ))
        comps = _components(config, locator=StubLocator(None, winget), remediator=remediator,
                            presence=StubPresence(RECORD))
        summary = run_install(config, comps)
        assert summary.report is ReportClass.NOTE
        assert summary.exit_code == ExitCode.OK
        assert "despite bootstrap timeout" in summary.text

    def test_bootstrap_timeout_and_absent_fails(self, config):
        remediator = StubRemediator(bootstrap=RemediationResult(ok=False, timed_out=True, error="timed out"))
        comps = _components(config, remediator=remediator)
        summary = run_install(config, comps)
        assert summary.exit_code == ExitCode.BOOTSTRAP_FAILED

    def test_not_detected_after_install_is_note(self, config):
        comps = _components(config, on_path="winget.exe", presence=StubPresence(None))
        summary = run_install(config, comps)
        assert summary.report is ReportClass.NOTE
        assert summary.exit_code == ExitCode.OK

    def test_verification_can_be_disabled(self):
        config = DeployConfig(verify_after_install=False)
        presence = StubPresence(None)
        comps = _components(config, on_path="winget.exe", presence=presence)
        summary = run_install(config, comps)
        assert summary.report is ReportClass.OK
        assert presence.calls == 0


# ── Check / bootstrap ───────────────────────────────────────────


class TestCheckAndBootstrap:
    def test_check_all_good(self, config):
        comps = _components(config, on_path="winget.exe", locator=StubLocator(Path(r"C:\winget.exe")))
        summary = run_check(config, comps)
        assert summary.exit_code == ExitCode.OK

    def test_check_reports_gaps(self, config):
        summary = run_check(config, _components(config, installed=[], reach=connectivity(Endpoint.PACKAGE_REGISTRY)))
        assert summary.exit_code == ExitCode.FAILURE
        assert "[WCVX]" in summary.text
        assert "[R]" in summary.text

    def test_check_accepts_located_package_manager_off_path(self, config):
        comps = _components(config, on_path=None, locator=StubLocator(Path(r"C:\winget.exe")))
        summary = run_check(config, comps)
        assert summary.exit_code == ExitCode.OK
        assert "not on PATH" in summary.text

    def test_check_missing_package_manager_fails(self, config):
        summary = run_check(config, _components(config, on_path=None))
        assert summary.exit_code == ExitCode.FAILURE

    @pytest.mark.parametrize("arch", ["ARM64", "x86"])
    def test_check_architecture(self, config, arch):
        summary = run_check(config, _components(config, on_path="winget.exe", arch=arch))
        assert summary.exit_code == ExitCode.UNSUPPORTED_ARCHITECTURE

    def test_bootstrap_noop_when_present(self, config):
        remediator = StubRemediator()
        comps = _components(config, locator=StubLocator(Path(r"C:\winget.exe")), remediator=remediator)
        summary = run_bootstrap(config, comps)
        assert summary.exit_code == ExitCode.OK
        assert remediator.bootstrap_calls == 0

    def test_bootstrap_runs_remediation(self, config):
        remediator = StubRemediator()
        comps = _components(config, locator=StubLocator(None, Path(r"C:\winget.exe")), remediator=remediator)
        summary = run_bootstrap(config, comps)
        assert summary.exit_code == ExitCode.OK
        assert remediator.bootstrap_calls == 1

    def test_bootstrap_failure_code(self, config):
        remediator = StubRemediator(bootstrap=RemediationResult(ok=False, error="No expected hash pinned"))
        summary = run_bootstrap(config, _components(config, remediator=remediator))
        assert summary.exit_code == ExitCode.BOOTSTRAP_FAILED
        assert "No expected hash pinned" in summary.text
