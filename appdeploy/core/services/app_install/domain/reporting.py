"""
L1 Domain — Human-readable report fragments (pure).

Turns status values into the text folded into the run summary. Legacy
character codes appear in brackets so the management agent can keep
parsing them.
"""

from __future__ import annotations

from appdeploy.core.models.config import EndpointHosts
from appdeploy.core.models.status import (
    ConnectivityStatus,
    Endpoint,
    InstallationRecord,
    PrerequisiteStatus,
)

_PREREQ_LABELS = {
    "PACKAGE_MANAGER": "package manager",
    "VC_RUNTIME": "Visual C++ runtime",
    "VCLIBS": "VCLibs",
    "UI_XAML": "UI.Xaml",
}


def describe_record(name: str, record: InstallationRecord) -> str:
    return f"{name} {record.display_version} found at {record.install_path}"


def describe_prerequisites(status: PrerequisiteStatus) -> str:
    if status.ok:
        return f"prerequisites present [{status.legacy_code()}]"
    missing = ", ".join(_PREREQ_LABELS.get(n, n) for n in status.names())
    return f"prerequisites missing: {missing} [{status.legacy_code()}]"


def describe_connectivity(status: ConnectivityStatus, hosts: EndpointHosts) -> str:
    if status.ok:
        return f"connectivity OK to {hosts.distribution}, {hosts.package_registry} [{status.legacy_code()}]"
    unreachable = ", ".join(
        hosts.host_for(Endpoint[n]) for n in status.names()
    )
    return f"unreachable: {unreachable} [{status.legacy_code()}]"


def fmt_exit_code(code: int) -> str:
    """``1603`` → ``1603``; HRESULT-range codes get their hex form too."""
    unsigned = code & 0xFFFFFFFF
    if unsigned > 0xFFFF:
        return f"{code} (0x{unsigned:08X})"
    return str(code)


def normalise_exit_code(code: int) -> int:
    """Fold signed and unsigned renderings of a 32-bit exit code together."""
    return code & 0xFFFFFFFF


def _fmt_size(n: int | float) -> str:
    """Format byte count to human-readable string."""
    for unit in ("B", "KB", "MB", "GB"):
        if n < 1024:
            return f"{n:.1f} {unit}"
        n /= 1024
    return f"{n:.1f} TB"
