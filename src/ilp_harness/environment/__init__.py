"""Host environment cleanup.

This package owns the shared host state every job depends on:
1. Frees the tracked service ports
2. Removes containers and the test network
3. Deletes stale snapshot files and the working log directory
"""

from .containers import ContainerReaper
from .files import LogCleaner, SnapshotCleaner
from .ports import PortReaper, find_listeners
from .reset import EnvironmentReset, ResetReport
from .state import (
    CleanupReport,
    CleanupWarning,
    EnvironmentState,
    EnvironmentTargets,
    PortGroup,
    default_port_groups,
)

__all__ = [
    # Cleaners
    "PortReaper",
    "ContainerReaper",
    "SnapshotCleaner",
    "LogCleaner",
    "find_listeners",
    # Reset gateway
    "EnvironmentReset",
    "ResetReport",
    # State
    "EnvironmentTargets",
    "EnvironmentState",
    "PortGroup",
    "default_port_groups",
    "CleanupReport",
    "CleanupWarning",
]
