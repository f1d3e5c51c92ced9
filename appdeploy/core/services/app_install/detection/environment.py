"""
L3 Detection — Host architecture.
"""

from __future__ import annotations

import os
import platform


def detect_architecture() -> str:
    """Return the OS architecture, e.g. ``AMD64`` or ``ARM64``.

    A 32-bit process on 64-bit Windows (the management agent's default
    host) sees ``x86`` from ``platform.machine()``; the real OS
    architecture is then in ``PROCESSOR_ARCHITEW6432``.
    """
    wow64 = os.environ.get("PROCESSOR_ARCHITEW6432")
    if wow64:
        return wow64
    return platform.machine()


def is_supported_architecture(arch: str, supported: list[str]) -> bool:
    return arch.lower() in {a.lower() for a in supported}
