"""
L3 Detection — Package manager executable lookup.

winget is an AppX package: it lives in a version-suffixed directory
that is usually not on the SYSTEM account's PATH. The locator walks a
prioritised candidate list and expands wildcards to find it.
"""

from __future__ import annotations

import glob
import logging
import os
from pathlib import Path
from typing import Callable

from appdeploy.core.models.config import PackageManagerSpec
from appdeploy.core.services.app_install.domain.paths import (
    dir_version_key,
    expand_path,
    has_unexpanded_vars,
    has_wildcard,
)

logger = logging.getLogger(__name__)


class PackageManagerLocator:
    """Finds the package manager outside of PATH."""

    def __init__(
        self,
        spec: PackageManagerSpec,
        *,
        glob_fn: Callable[[str], list[str]] = glob.glob,
        exists: Callable[[str], bool] = os.path.isfile,
    ):
        self.spec = spec
        self._glob = glob_fn
        self._exists = exists

    def candidate_dirs(self) -> list[str]:
        """Concrete directories to search, in priority order."""
        dirs: list[str] = []
        for raw in self.spec.candidate_dirs:
            pattern = expand_path(raw)
            if has_unexpanded_vars(pattern):
                logger.debug("Skipping %s: environment variable not set", raw)
                continue
            if not has_wildcard(pattern):
                dirs.append(pattern)
                continue
            matches = self._glob(pattern)
            if not matches:
                logger.debug("No directory matches %s", pattern)
                continue
            # Newest version first within one wildcard
            dirs.extend(sorted(matches, key=dir_version_key, reverse=True))
        return dirs

    def locate(self) -> Path | None:
        for directory in self.candidate_dirs():
            candidate = os.path.join(directory, self.spec.executable)
            if self._exists(candidate):
                logger.info("Located package manager at %s", candidate)
                return Path(candidate)
        logger.info("Package manager not found in %d candidate dirs", len(self.spec.candidate_dirs))
        return None
