"""
L3 Detection — ``__init__.py`` re-exports all detection functions.

These functions READ system state but never WRITE.
"""

from appdeploy.core.services.app_install.detection.environment import (  # noqa: F401
    detect_architecture,
    is_supported_architecture,
)
from appdeploy.core.services.app_install.detection.locator import (  # noqa: F401
    PackageManagerLocator,
)
from appdeploy.core.services.app_install.detection.network import (  # noqa: F401
    check_connectivity,
    check_endpoint_reachable,
)
from appdeploy.core.services.app_install.detection.prerequisites import (  # noqa: F401
    RUNTIME_DEPENDENCIES,
    PrerequisiteChecker,
)
from appdeploy.core.services.app_install.detection.presence import (  # noqa: F401
    PresenceDetector,
)
