"""
L4 Execution — Package installation through the package manager.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from appdeploy.core.models.config import PackageManagerSpec
from appdeploy.core.services.app_install.domain.reporting import (
    fmt_exit_code,
    normalise_exit_code,
)
from appdeploy.core.services.app_install.execution.subprocess_runner import run_with_capture

logger = logging.getLogger(__name__)

_OUTPUT_TAIL_LINES = 5
_OUTPUT_TAIL_CHARS = 400


@dataclass
class InstallOutcome:
    """Result of one package-manager invocation."""

    ok: bool
    exit_code: int | None = None
    output: str = ""
    error: str = ""

    def describe(self, app_id: str) -> str:
        if self.exit_code is None:
            return f"install of {app_id} failed: {self.error}"
        if self.ok:
            if self.exit_code == 0:
                return f"{app_id} installed"
            return f"{app_id} already current (exit {fmt_exit_code(self.exit_code)})"
        text = f"install of {app_id} failed with exit code {fmt_exit_code(self.exit_code)}"
        tail = output_tail(self.output)
        return f"{text}: {tail}" if tail else text


def output_tail(output: str) -> str:
    """Last few meaningful lines of captured output, on one line."""
    lines = [ln.strip() for ln in output.splitlines()]
    # winget draws progress bars with box characters; keep only text lines
    lines = [ln for ln in lines if ln and any(c.isalnum() for c in ln)]
    tail = " | ".join(lines[-_OUTPUT_TAIL_LINES:])
    if len(tail) > _OUTPUT_TAIL_CHARS:
        tail = "..." + tail[-_OUTPUT_TAIL_CHARS:]
    return tail


class InstallOrchestrator:
    """Runs ``winget install`` for one package id and maps its exit code."""

    def __init__(
        self,
        package_manager: Path,
        spec: PackageManagerSpec,
        *,
        runner: Callable[..., dict] = run_with_capture,
        timeout: int = 1800,
    ):
        self.package_manager = package_manager
        self.spec = spec
        self._run = runner
        self._timeout = timeout

    def command(self, app_id: str) -> list[str]:
        return [str(self.package_manager), "install", "--id", app_id, *self.spec.install_args]

    def install(self, app_id: str) -> InstallOutcome:
        cmd = self.command(app_id)
        logger.info("Running: %s", " ".join(cmd))
        try:
            r = self._run(cmd, timeout=self._timeout)
        except Exception as exc:
            logger.exception("Package manager invocation raised")
            return InstallOutcome(ok=False, error=f"{type(exc).__name__}: {exc}")

        code = r.get("returncode")
        if code is None:
            logger.error("Package manager did not run: %s", r.get("error"))
            return InstallOutcome(ok=False, error=r.get("error", "package manager did not run"))

        success = {normalise_exit_code(c) for c in self.spec.success_exit_codes}
        ok = normalise_exit_code(code) in success
        outcome = InstallOutcome(ok=ok, exit_code=code, output=r.get("output", ""))
        if ok:
            logger.info("Package manager exited %s", fmt_exit_code(code))
        else:
            logger.error("Package manager exited %s", fmt_exit_code(code))
            logger.debug("Package manager output:\n%s", outcome.output)
        return outcome
