"""
Installed-software stores — read-only views of what the OS says is installed.

Two sources:
    * Uninstall records under ``...\\CurrentVersion\\Uninstall`` (both
      registry views of HKLM, plus HKCU), read with ``winreg``.
    * AppX packages, listed through ``Get-AppxPackage``.

Both are ABCs so the detection layer can be exercised without a
Windows registry.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)

UNINSTALL_KEY = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall"


@dataclass(frozen=True)
class UninstallRecord:
    """One uninstall entry, reduced to the values detection needs."""

    display_name: str
    display_version: str = ""
    install_location: str = ""
    display_icon: str = ""
    key_path: str = ""


class UninstallStore(ABC):
    """Source of uninstall records."""

    @abstractmethod
    def records(self) -> list[UninstallRecord]:
        """Every uninstall record with a DisplayName. Never raises."""


class InstalledInventory(ABC):
    """Names of everything installed, across all package kinds."""

    @abstractmethod
    def names(self) -> list[str]:
        """Installed application / package names. Never raises."""


# ── winreg implementation ───────────────────────────────────────


class WinregUninstallStore(UninstallStore):
    """Uninstall records read from the live registry."""

    def records(self) -> list[UninstallRecord]:
        if sys.platform != "win32":
            return []

        import winreg

        roots = [
            ("HKLM", winreg.HKEY_LOCAL_MACHINE, winreg.KEY_WOW64_64KEY),
            ("HKLM", winreg.HKEY_LOCAL_MACHINE, winreg.KEY_WOW64_32KEY),
            ("HKCU", winreg.HKEY_CURRENT_USER, 0),
        ]
        found: list[UninstallRecord] = []
        for hive_name, hive, view in roots:
            found.extend(self._read_hive(winreg, hive_name, hive, view))
        return found

    def _read_hive(self, winreg, hive_name: str, hive: int, view: int) -> list[UninstallRecord]:
        out: list[UninstallRecord] = []
        try:
            root = winreg.OpenKey(hive, UNINSTALL_KEY, 0, winreg.KEY_READ | view)
        except OSError:
            return out

        with root:
            index = 0
            while True:
                try:
                    sub_name = winreg.EnumKey(root, index)
                except OSError:
                    break
                index += 1
                try:
                    with winreg.OpenKey(root, sub_name) as sub:
                        name = _query_str(winreg, sub, "DisplayName")
                        if not name:
                            continue
                        out.append(UninstallRecord(
                            display_name=name,
                            display_version=_query_str(winreg, sub, "DisplayVersion"),
                            install_location=_query_str(winreg, sub, "InstallLocation"),
                            display_icon=_query_str(winreg, sub, "DisplayIcon"),
                            key_path=f"{hive_name}\\{UNINSTALL_KEY}\\{sub_name}",
                        ))
                except OSError as exc:
                    logger.debug("Skipping unreadable key %s: %s", sub_name, exc)
        return out


def _query_str(winreg, key, value_name: str) -> str:
    try:
        value, reg_type = winreg.QueryValueEx(key, value_name)
    except OSError:
        return ""
    if reg_type in (winreg.REG_SZ, winreg.REG_EXPAND_SZ) and isinstance(value, str):
        return value.strip()
    return ""


class WindowsInventory(InstalledInventory):
    """Uninstall DisplayNames plus AppX package names."""

    def __init__(self, uninstall_store: UninstallStore | None = None, timeout: int = 60):
        self._store = uninstall_store or WinregUninstallStore()
        self._timeout = timeout

    def names(self) -> list[str]:
        names = [r.display_name for r in self._store.records()]
        names.extend(self._appx_names())
        return names

    def _appx_names(self) -> list[str]:
        if sys.platform != "win32":
            return []
        try:
            r = subprocess.run(
                [
                    "powershell.exe", "-NoProfile", "-NonInteractive", "-Command",
                    "Get-AppxPackage -AllUsers | ForEach-Object { $_.Name }",
                ],
                capture_output=True, text=True, timeout=self._timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.warning("AppX inventory query failed: %s", exc)
            return []

        if r.returncode != 0:
            logger.warning("AppX inventory query exited %d: %s", r.returncode, r.stderr.strip()[:200])
            return []
        return [line.strip() for line in r.stdout.splitlines() if line.strip()]
