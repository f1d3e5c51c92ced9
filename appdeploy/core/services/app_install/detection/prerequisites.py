"""
L3 Detection — Environment prerequisites.

Checks the package manager and each runtime dependency it needs.
Every check runs even after an earlier one fails: the caller reports
the full set of gaps, not the first one.
"""

from __future__ import annotations

import fnmatch
import logging
import shutil
from typing import Callable

from appdeploy.adapters.windows.registry import InstalledInventory, WindowsInventory
from appdeploy.core.models.config import DeployConfig
from appdeploy.core.models.status import Prerequisite, PrerequisiteStatus

logger = logging.getLogger(__name__)

RUNTIME_DEPENDENCIES: tuple[Prerequisite, ...] = (
    Prerequisite.VC_RUNTIME,
    Prerequisite.VCLIBS,
    Prerequisite.UI_XAML,
)


class PrerequisiteChecker:
    """Collect-all prerequisite checker."""

    def __init__(
        self,
        config: DeployConfig,
        *,
        inventory: InstalledInventory | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ):
        self.config = config
        self._inventory = inventory or WindowsInventory()
        self._which = which

    def check(self) -> PrerequisiteStatus:
        missing: set[Prerequisite] = set()

        if not self._which(self.config.package_manager.executable):
            missing.add(Prerequisite.PACKAGE_MANAGER)

        names = self._inventory.names()
        for prereq in RUNTIME_DEPENDENCIES:
            if not self._matches(prereq, names):
                missing.add(prereq)

        status = PrerequisiteStatus(frozenset(missing))
        logger.info("Prerequisite check: %s", status.legacy_code())
        return status

    def is_installed(self, prereq: Prerequisite) -> bool:
        """Single-dependency recheck, used after remediation."""
        if prereq is Prerequisite.PACKAGE_MANAGER:
            return bool(self._which(self.config.package_manager.executable))
        return self._matches(prereq, self._inventory.names())

    def _matches(self, prereq: Prerequisite, names: list[str]) -> bool:
        patterns = [p.lower() for p in self.config.prerequisites.patterns_for(prereq)]
        for name in names:
            lowered = name.lower()
            if any(fnmatch.fnmatch(lowered, p) for p in patterns):
                return True
        return False
