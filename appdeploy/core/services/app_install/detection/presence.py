"""
L3 Detection — Target application presence.

Read-only. Answers "is the application installed, where, which
version?" Absence is a normal answer (None), never an exception.

Detection order, first verified hit wins:
    1. Canonical install paths from config
    2. Uninstall records matching the display name pattern
"""

from __future__ import annotations

import fnmatch
import logging
import os
from typing import Callable

from appdeploy.adapters.windows.file_version import read_file_version
from appdeploy.adapters.windows.registry import (
    UninstallRecord,
    UninstallStore,
    WinregUninstallStore,
)
from appdeploy.core.models.config import AppSpec
from appdeploy.core.models.status import InstallationRecord
from appdeploy.core.services.app_install.domain.paths import (
    expand_path,
    has_unexpanded_vars,
    parse_display_icon,
)

logger = logging.getLogger(__name__)


class PresenceDetector:
    """Locates the installed target application."""

    def __init__(
        self,
        app: AppSpec,
        *,
        uninstall_store: UninstallStore | None = None,
        version_reader: Callable[[str], str | None] = read_file_version,
        exists: Callable[[str], bool] = os.path.isfile,
    ):
        self.app = app
        self._store = uninstall_store or WinregUninstallStore()
        self._read_version = version_reader
        self._exists = exists

    def detect(self) -> InstallationRecord | None:
        """Return the installation record, or None when not installed."""
        record = self._probe_canonical_paths()
        if record:
            return record
        return self._probe_uninstall_records()

    def _probe_canonical_paths(self) -> InstallationRecord | None:
        for raw in self.app.canonical_paths:
            path = expand_path(raw)
            if has_unexpanded_vars(path):
                continue
            if self._exists(path):
                logger.info("Found %s at canonical path %s", self.app.display_name, path)
                return InstallationRecord(
                    install_path=path,
                    display_version=self._read_version(path) or "unknown",
                )
        return None

    def _probe_uninstall_records(self) -> InstallationRecord | None:
        pattern = self.app.display_name_pattern.lower()
        for rec in self._store.records():
            if not fnmatch.fnmatch(rec.display_name.lower(), pattern):
                continue

            path = self._resolve_record_path(rec)
            if path is None:
                logger.debug("Uninstall record %s points at no existing file", rec.key_path)
                continue

            logger.info("Found %s via uninstall record %s", self.app.display_name, rec.key_path)
            version = rec.display_version or self._read_version(path) or "unknown"
            return InstallationRecord(install_path=path, display_version=version)
        return None

    def _resolve_record_path(self, rec: UninstallRecord) -> str | None:
        if rec.install_location:
            location = expand_path(rec.install_location.strip().strip('"'))
            candidate = os.path.join(location, self.app.relative_exe)
            return candidate if self._exists(candidate) else None

        if rec.display_icon:
            candidate = expand_path(parse_display_icon(rec.display_icon))
            return candidate if self._exists(candidate) else None

        return None
