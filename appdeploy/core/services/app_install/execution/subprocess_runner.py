"""
L4 Execution — Subprocess execution with file capture.

Installers run for minutes and can write a lot of output; it is
redirected to a temporary file instead of a pipe so a full pipe buffer
can never stall the child. The file is read back and removed once the
process has exited.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import time

logger = logging.getLogger(__name__)


def run_with_capture(
    cmd: list[str],
    *,
    timeout: int = 1800,
    env: dict[str, str] | None = None,
) -> dict:
    """Run a command, capturing stdout and stderr into one temp file.

    Never raises: a child that cannot be spawned or that times out is
    reported in the result.

    Returns::

        {"ok": True, "returncode": 0, "output": "...", "elapsed_ms": 1234}
        or
        {"ok": False, "returncode": None, "error": "...", "elapsed_ms": 5}
    """
    fd, capture_path = tempfile.mkstemp(prefix="appdeploy-", suffix=".log")
    start = time.monotonic()
    try:
        with os.fdopen(fd, "w+b") as capture:
            try:
                proc = subprocess.run(
                    cmd,
                    stdout=capture,
                    stderr=subprocess.STDOUT,
                    stdin=subprocess.DEVNULL,
                    timeout=timeout,
                    env=env,
                )
            except subprocess.TimeoutExpired:
                return {
                    "ok": False,
                    "returncode": None,
                    "error": f"Command timed out after {timeout}s",
                    "elapsed_ms": _elapsed(start),
                }
            except OSError as exc:
                return {
                    "ok": False,
                    "returncode": None,
                    "error": f"Cannot start {cmd[0]}: {exc}",
                    "elapsed_ms": _elapsed(start),
                }

            capture.seek(0)
            output = capture.read().decode("utf-8", errors="replace")

        elapsed = _elapsed(start)
        logger.debug("%s exited %d in %dms", cmd[0], proc.returncode, elapsed)
        return {
            "ok": proc.returncode == 0,
            "returncode": proc.returncode,
            "output": output,
            "elapsed_ms": elapsed,
        }
    finally:
        try:
            os.unlink(capture_path)
        except OSError as exc:
            logger.debug("Could not remove capture file %s: %s", capture_path, exc)


def _elapsed(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
