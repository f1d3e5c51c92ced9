"""
L1 Domain — Path helpers (pure).

Windows-style ``%VAR%`` expansion, wildcard detection and the ordering
of version-suffixed install directories. No filesystem access.
"""

from __future__ import annotations

import ntpath
import re

_WILDCARD_CHARS = frozenset("*?[")

# Microsoft.DesktopAppInstaller_1.22.10861.0_x64__8wekyb3d8bbwe
_DIR_VERSION_RE = re.compile(r"_(\d+(?:\.\d+)+)_")

_UNEXPANDED_RE = re.compile(r"%[^%\\/]+%")


def expand_path(path: str) -> str:
    """Expand ``%VAR%`` references on any platform.

    ``ntpath.expandvars`` is used explicitly so configuration written
    with Windows variables behaves the same under test on POSIX.
    Unknown variables are left in place.
    """
    return ntpath.expandvars(path)


def has_unexpanded_vars(path: str) -> bool:
    return bool(_UNEXPANDED_RE.search(path))


def has_wildcard(path: str) -> bool:
    return any(c in _WILDCARD_CHARS for c in path)


def dir_version_key(path: str) -> tuple[int, ...]:
    """Sort key for version-suffixed directory names; unversioned sorts first."""
    name = re.split(r"[\\/]", path.rstrip("\\/"))[-1]
    m = _DIR_VERSION_RE.search(name)
    if not m:
        return ()
    return tuple(int(part) for part in m.group(1).split("."))


def parse_display_icon(value: str) -> str:
    """Reduce a DisplayIcon value to a file path.

    Strips surrounding quotes and a trailing ``,<index>`` resource
    suffix: ``"C:\\App\\app.exe",0`` → ``C:\\App\\app.exe``.
    """
    value = value.strip()
    if value.startswith('"'):
        end = value.find('"', 1)
        return value[1:end] if end > 0 else value.strip('"')
    head, sep, tail = value.rpartition(",")
    if sep and tail.strip().lstrip("-").isdigit():
        return head.strip()
    return value
