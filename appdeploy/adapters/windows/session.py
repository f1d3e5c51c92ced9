"""
Interactive user resolution.

The management agent runs as SYSTEM, which has no user profile. Steps
that must run in a user's context need to know who is logged on.
"""

from __future__ import annotations

import logging
import subprocess

import psutil

logger = logging.getLogger(__name__)

_SHELL_PROCESS = "explorer.exe"


def resolve_interactive_user() -> str | None:
    """Return ``DOMAIN\\user`` of the logged-on interactive user, or None.

    Primary source is the console session owner reported by
    ``Win32_ComputerSystem``. When that is empty (RDP sessions, query
    failure) the owner of the most recently started shell process is
    used instead. The fallback is a best-effort guess: with several
    users logged on, the newest shell wins and there is no other
    tie-break.
    """
    user = _console_session_owner()
    if user:
        return user

    logger.info("Console session owner unknown, falling back to newest %s owner", _SHELL_PROCESS)
    return _latest_shell_owner()


def _console_session_owner() -> str | None:
    try:
        r = subprocess.run(
            [
                "powershell.exe", "-NoProfile", "-NonInteractive", "-Command",
                "(Get-CimInstance -ClassName Win32_ComputerSystem).UserName",
            ],
            capture_output=True, text=True, timeout=30,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.warning("Session owner query failed: %s", exc)
        return None

    user = r.stdout.strip()
    return user or None


def _latest_shell_owner() -> str | None:
    newest: tuple[float, str] | None = None
    for proc in psutil.process_iter(["name", "username", "create_time"]):
        info = proc.info
        if (info.get("name") or "").lower() != _SHELL_PROCESS:
            continue
        username = info.get("username")
        created = info.get("create_time")
        if not username or created is None:
            continue
        if newest is None or created > newest[0]:
            newest = (created, username)

    return newest[1] if newest else None
