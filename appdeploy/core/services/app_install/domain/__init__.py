"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

These functions have NO subprocess calls, NO filesystem access,
NO network calls. Pure input→output.
"""

from appdeploy.core.services.app_install.domain.paths import (  # noqa: F401
    dir_version_key,
    expand_path,
    has_unexpanded_vars,
    has_wildcard,
    parse_display_icon,
)
from appdeploy.core.services.app_install.domain.reporting import (  # noqa: F401
    _fmt_size,
    describe_connectivity,
    describe_prerequisites,
    describe_record,
    fmt_exit_code,
    normalise_exit_code,
)
