"""
PE file version reader (pywin32).
"""

from __future__ import annotations

import logging
import sys

logger = logging.getLogger(__name__)


def read_file_version(path: str) -> str | None:
    """Return the embedded ``FileVersion`` of an executable, e.g. ``"8.6.2.0"``.

    Returns None off Windows or when the binary carries no version
    resource.
    """
    if sys.platform != "win32":
        return None

    import win32api

    try:
        info = win32api.GetFileVersionInfo(path, "\\")
    except Exception as exc:  # pywintypes.error
        logger.debug("No version resource in %s: %s", path, exc)
        return None

    ms = info["FileVersionMS"]
    ls = info["FileVersionLS"]
    return (
        f"{win32api.HIWORD(ms)}.{win32api.LOWORD(ms)}."
        f"{win32api.HIWORD(ls)}.{win32api.LOWORD(ls)}"
    )
