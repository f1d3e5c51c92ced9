"""
Run-as-identity collaborators.

``RunAsUser`` is the seam the remediator uses to execute its install
script. Two implementations:

    DirectRunner         run in the current process context
    ScheduledTaskRunner  run as the logged-on user through a one-shot
                         Task Scheduler task, polled until it finishes
"""

from __future__ import annotations

import logging
import subprocess
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from appdeploy.adapters.windows.session import resolve_interactive_user

logger = logging.getLogger(__name__)

# Task Scheduler "Last Result" values that mean "not finished"
SCHED_S_TASK_RUNNING = 267009
SCHED_S_TASK_HAS_NOT_RUN = 267011
_PENDING_RESULTS = {SCHED_S_TASK_RUNNING, SCHED_S_TASK_HAS_NOT_RUN}


@dataclass
class RunResult:
    """Outcome of a delegated script run."""

    completed: bool
    exit_code: int | None = None
    timed_out: bool = False
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.completed and self.exit_code == 0

    def describe(self) -> str:
        if self.timed_out:
            return "delegated task did not finish before timeout"
        if self.error:
            return self.error
        return f"delegated task exited {self.exit_code}"


def powershell_command(script: Path) -> list[str]:
    return [
        "powershell.exe", "-NoProfile", "-NonInteractive",
        "-ExecutionPolicy", "Bypass", "-File", str(script),
    ]


class RunAsUser(ABC):
    """Executes a PowerShell script under some identity."""

    @abstractmethod
    def run_script(self, script: Path, *, timeout: int) -> RunResult:
        """Run ``script`` and block until it finishes or ``timeout`` passes.

        MUST never raise. Failures are captured in the RunResult.
        """


class DirectRunner(RunAsUser):
    """Run the script as the current process identity."""

    def run_script(self, script: Path, *, timeout: int) -> RunResult:
        try:
            r = subprocess.run(
                powershell_command(script),
                capture_output=True, text=True, timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return RunResult(completed=False, timed_out=True)
        except OSError as exc:
            return RunResult(completed=False, error=f"Cannot start PowerShell: {exc}")

        if r.returncode != 0:
            logger.warning("Script %s exited %d: %s", script.name, r.returncode, r.stderr.strip()[-500:])
        return RunResult(completed=True, exit_code=r.returncode)


class ScheduledTaskRunner(RunAsUser):
    """Run the script as the interactive user via a transient scheduled task.

    The task is created, triggered, polled until Task Scheduler reports
    a terminal result or the timeout passes, and deleted on every path.
    """

    def __init__(
        self,
        *,
        user_resolver: Callable[[], str | None] = resolve_interactive_user,
        poll_interval: float = 5.0,
        task_prefix: str = "appdeploy-bootstrap",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._resolve_user = user_resolver
        self._poll_interval = poll_interval
        self._task_prefix = task_prefix
        self._clock = clock
        self._sleep = sleep

    def run_script(self, script: Path, *, timeout: int) -> RunResult:
        user = self._resolve_user()
        if not user:
            return RunResult(completed=False, error="No interactive user session found")

        task_name = f"{self._task_prefix}-{uuid.uuid4().hex[:8]}"
        command = subprocess.list2cmdline(powershell_command(script))
        logger.info("Delegating %s to %s as task %s", script.name, user, task_name)

        created = self._schtasks([
            "/Create", "/TN", task_name, "/TR", command,
            "/SC", "ONCE", "/ST", "00:00", "/RU", user, "/IT", "/F",
        ])
        if created.returncode != 0:
            return RunResult(
                completed=False,
                error=f"Cannot create task: {created.stderr.strip()[:200] or created.returncode}",
            )

        try:
            started = self._schtasks(["/Run", "/TN", task_name])
            if started.returncode != 0:
                return RunResult(
                    completed=False,
                    error=f"Cannot start task: {started.stderr.strip()[:200] or started.returncode}",
                )
            return self._wait(task_name, timeout)
        finally:
            deleted = self._schtasks(["/Delete", "/TN", task_name, "/F"])
            if deleted.returncode != 0:
                logger.warning("Could not delete task %s: %s", task_name, deleted.stderr.strip())

    def _wait(self, task_name: str, timeout: int) -> RunResult:
        deadline = self._clock() + timeout
        while True:
            status, last_result = self.query(task_name)
            if status.lower() != "running" and last_result is not None \
                    and last_result not in _PENDING_RESULTS:
                return RunResult(completed=True, exit_code=last_result)
            if self._clock() >= deadline:
                logger.warning("Task %s still pending after %ss", task_name, timeout)
                return RunResult(completed=False, timed_out=True)
            self._sleep(self._poll_interval)

    def query(self, task_name: str) -> tuple[str, int | None]:
        """Return ``(status, last_result)`` as reported by ``schtasks /Query``."""
        r = self._schtasks(["/Query", "/TN", task_name, "/FO", "LIST", "/V"])
        status = ""
        last_result: int | None = None
        if r.returncode != 0:
            return status, last_result

        for line in r.stdout.splitlines():
            key, _, value = line.partition(":")
            key = key.strip().lower()
            value = value.strip()
            if key == "status":
                status = value
            elif key == "last result":
                try:
                    last_result = int(value)
                except ValueError:
                    last_result = None
        return status, last_result

    def _schtasks(self, args: list[str]) -> subprocess.CompletedProcess:
        cmd = ["schtasks.exe", *args]
        try:
            return subprocess.run(cmd, capture_output=True, text=True, timeout=60)
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.warning("schtasks %s failed: %s", args[0], exc)
            return subprocess.CompletedProcess(cmd, 1, "", str(exc))
