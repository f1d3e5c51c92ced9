"""
Windows adapters — registry, file version, sessions, scheduled tasks.
"""

from appdeploy.adapters.windows.file_version import read_file_version  # noqa: F401
from appdeploy.adapters.windows.registry import (  # noqa: F401
    InstalledInventory,
    UninstallRecord,
    UninstallStore,
    WindowsInventory,
    WinregUninstallStore,
)
from appdeploy.adapters.windows.scheduled_task import (  # noqa: F401
    DirectRunner,
    RunAsUser,
    RunResult,
    ScheduledTaskRunner,
)
from appdeploy.adapters.windows.session import resolve_interactive_user  # noqa: F401
