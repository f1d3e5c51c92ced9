"""
Deployment configuration — the schema of deploy.yml.

Every field has a default, so an empty (or absent) deploy.yml yields
a working configuration for the built-in target application.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from appdeploy.core.models.status import Endpoint, Prerequisite


class AppSpec(BaseModel):
    """The single application this deployment targets."""

    package_id: str = "Notepad++.Notepad++"
    display_name: str = "Notepad++"
    # fnmatch pattern against uninstall DisplayName (case-insensitive)
    display_name_pattern: str = "Notepad++*"
    executable: str = "notepad++.exe"
    canonical_paths: list[str] = Field(default_factory=lambda: [
        r"%ProgramFiles%\Notepad++\notepad++.exe",
        r"%ProgramFiles(x86)%\Notepad++\notepad++.exe",
    ])
    # Resolved under an uninstall record's InstallLocation
    relative_exe: str = "notepad++.exe"


class PackageManagerSpec(BaseModel):
    """Where winget lives and how to drive it."""

    executable: str = "winget.exe"
    # Priority order: per-machine before per-user.
    candidate_dirs: list[str] = Field(default_factory=lambda: [
        r"%ProgramFiles%\WindowsApps\Microsoft.DesktopAppInstaller_*_x64__8wekyb3d8bbwe",
        r"%ProgramW6432%\WindowsApps\Microsoft.DesktopAppInstaller_*_x64__8wekyb3d8bbwe",
        r"%LOCALAPPDATA%\Microsoft\WindowsApps",
    ])
    release_feed: str = "https://api.github.com/repos/microsoft/winget-cli/releases/latest"
    bundle_suffix: str = ".msixbundle"
    install_args: list[str] = Field(default_factory=lambda: [
        "--exact",
        "--silent",
        "--scope", "machine",
        "--accept-package-agreements",
        "--accept-source-agreements",
        "--force",
    ])
    # 0x8A15002B: no applicable update, 0x8A150061: already installed
    success_exit_codes: list[int] = Field(default_factory=lambda: [0, 0x8A15002B, 0x8A150061])


class DependencyArtifact(BaseModel):
    """A file the remediator stages before installing the package manager."""

    file_name: str
    source_url: str
    # ``sha256:<hex>`` or bare hex (sha256 assumed). Empty = not pinned.
    expected_hash: str = ""
    # Path inside the downloaded archive to extract after verification
    extract_member: str | None = None

    @field_validator("expected_hash")
    @classmethod
    def _normalise_hash(cls, v: str) -> str:
        v = v.strip().lower()
        if v and ":" not in v:
            v = f"sha256:{v}"
        return v

    @property
    def staged_name(self) -> str:
        """File name the installer consumes (the extracted member, if any)."""
        if self.extract_member:
            return self.extract_member.replace("\\", "/").rsplit("/", 1)[-1]
        return self.file_name


class PrerequisitePatterns(BaseModel):
    """Installed-application name patterns per runtime dependency."""

    vc_runtime: list[str] = Field(default_factory=lambda: [
        "Microsoft Visual C++ 2015-2022 Redistributable (x64)*",
        "Microsoft Visual C++ 2015-2019 Redistributable (x64)*",
    ])
    vclibs: list[str] = Field(default_factory=lambda: ["Microsoft.VCLibs.140.00.UWPDesktop*"])
    ui_xaml: list[str] = Field(default_factory=lambda: ["Microsoft.UI.Xaml.2.8*"])

    def patterns_for(self, prereq: Prerequisite) -> list[str]:
        return {
            Prerequisite.VC_RUNTIME: self.vc_runtime,
            Prerequisite.VCLIBS: self.vclibs,
            Prerequisite.UI_XAML: self.ui_xaml,
        }.get(prereq, [])


class EndpointHosts(BaseModel):
    distribution: str = "github.com"
    package_registry: str = "cdn.winget.microsoft.com"
    port: int = 443

    def host_for(self, endpoint: Endpoint) -> str:
        if endpoint is Endpoint.DISTRIBUTION:
            return self.distribution
        return self.package_registry


class VcRuntimeSpec(BaseModel):
    """Visual C++ runtime installer used when the runtime is missing."""

    artifact: DependencyArtifact = Field(default_factory=lambda: DependencyArtifact(
        file_name="vc_redist.x64.exe",
        source_url="https://aka.ms/vs/17/release/vc_redist.x64.exe",
    ))
    install_args: list[str] = Field(default_factory=lambda: ["/install", "/quiet", "/norestart"])
    # 1638: newer version present, 3010: reboot required
    success_exit_codes: list[int] = Field(default_factory=lambda: [0, 1638, 3010])


class Timeouts(BaseModel):
    """All timeouts in seconds."""

    probe: float = 3.0
    download: int = 120
    install: int = 1800
    delegated_task: int = 300
    poll_interval: float = 5.0


def _default_artifacts() -> list[DependencyArtifact]:
    return [
        DependencyArtifact(
            file_name="Microsoft.VCLibs.x64.14.00.Desktop.appx",
            source_url="https://aka.ms/Microsoft.VCLibs.x64.14.00.Desktop.appx",
        ),
        DependencyArtifact(
            file_name="microsoft.ui.xaml.2.8.6.zip",
            source_url="https://www.nuget.org/api/v2/package/Microsoft.UI.Xaml/2.8.6",
            extract_member="tools/AppX/x64/Release/Microsoft.UI.Xaml.2.8.appx",
        ),
    ]


class DeployConfig(BaseModel):
    """Root configuration — loaded from deploy.yml."""

    version: int = 1

    app: AppSpec = Field(default_factory=AppSpec)
    package_manager: PackageManagerSpec = Field(default_factory=PackageManagerSpec)
    prerequisites: PrerequisitePatterns = Field(default_factory=PrerequisitePatterns)
    endpoints: EndpointHosts = Field(default_factory=EndpointHosts)
    artifacts: list[DependencyArtifact] = Field(default_factory=_default_artifacts)
    vc_runtime: VcRuntimeSpec = Field(default_factory=VcRuntimeSpec)
    timeouts: Timeouts = Field(default_factory=Timeouts)

    supported_architectures: list[str] = Field(default_factory=lambda: ["AMD64", "x86_64"])
    staging_dir: str = r"%ProgramData%\appdeploy\staging"
    # Run the package-manager bootstrap as the logged-on user
    delegate_to_user: bool = True
    verify_after_install: bool = True
