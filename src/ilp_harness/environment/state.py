"""Tracked host state and cleanup results.

``EnvironmentTargets`` names the slice of host state the harness owns:
service ports, the test container network, snapshot files and the
working log directory. ``EnvironmentState`` is an observation of that
slice at one point in time. Cleaners only ever touch what the targets
name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..shared.paths import LOG_DIR_NAME

DEFAULT_NETWORK = "interledger"
DEFAULT_SNAPSHOT_FILES = ("dump.rdb",)
REDIS_SHUTDOWN_COMMAND = ("redis-cli", "-p", "{port}", "shutdown")


@dataclass(frozen=True)
class PortGroup:
    """A named set of service ports.

    ``shutdown_command`` is an optional argv template (``{port}`` is
    substituted) used to ask the occupant to exit gracefully before it is
    terminated.
    """

    name: str
    ports: tuple[int, ...]
    shutdown_command: tuple[str, ...] | None = None

    @classmethod
    def from_range(
        cls,
        name: str,
        first: int,
        last: int,
        shutdown_command: tuple[str, ...] | None = None,
    ) -> PortGroup:
        """Create a group covering ``first..last`` inclusive."""
        return cls(name, tuple(range(first, last + 1)), shutdown_command)

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any] | list[Any]) -> PortGroup:
        """Build a group from its YAML form.

        Accepts ``ports: [..]`` and/or ``range: [first, last]`` plus an
        optional ``shutdown: [argv...]``. A bare list is shorthand for
        ``ports``.
        """
        if isinstance(data, list):
            data = {"ports": data}
        if not isinstance(data, dict):
            raise TypeError(f"port group {name!r} must be a list or a mapping")
        ports: list[int] = [int(p) for p in data.get("ports", [])]
        if "range" in data:
            first, last = (int(x) for x in data["range"])
            ports.extend(range(first, last + 1))
        shutdown = data.get("shutdown")
        return cls(
            name=name,
            ports=tuple(ports),
            shutdown_command=tuple(str(a) for a in shutdown) if shutdown else None,
        )

    def shutdown_argv(self, port: int) -> list[str] | None:
        if not self.shutdown_command:
            return None
        return [arg.replace("{port}", str(port)) for arg in self.shutdown_command]


def default_port_groups() -> tuple[PortGroup, ...]:
    """Ports used by the example topologies."""
    return (
        PortGroup.from_range("redis", 6379, 6385, REDIS_SHUTDOWN_COMMAND),
        PortGroup("ganache", (8545,)),
        PortGroup("node", (7770, 8770, 9770)),
        PortGroup.from_range("settlement-engine", 3000, 3003),
    )


@dataclass(frozen=True)
class EnvironmentTargets:
    """Host resources owned by the harness."""

    port_groups: tuple[PortGroup, ...] = field(default_factory=default_port_groups)
    network: str = DEFAULT_NETWORK
    snapshot_files: tuple[str, ...] = DEFAULT_SNAPSHOT_FILES
    log_dir_name: str = LOG_DIR_NAME

    @property
    def ports(self) -> list[int]:
        """All tracked ports, in group order without duplicates."""
        seen: dict[int, None] = {}
        for group in self.port_groups:
            for port in group.ports:
                seen.setdefault(port, None)
        return list(seen)

    def group_for(self, port: int) -> PortGroup | None:
        for group in self.port_groups:
            if port in group.ports:
                return group
        return None


@dataclass(frozen=True)
class CleanupWarning:
    """A cleanup step that could not confirm a clean state."""

    cleaner: str
    resource: str
    message: str


@dataclass
class CleanupReport:
    """What one cleaner removed and what it could not."""

    cleaner: str
    removed: list[str] = field(default_factory=list)
    warnings: list[CleanupWarning] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.warnings

    def warn(self, resource: str, message: str) -> CleanupWarning:
        warning = CleanupWarning(self.cleaner, resource, message)
        self.warnings.append(warning)
        return warning


@dataclass
class EnvironmentState:
    """Observed tracked host state.

    Empty means the environment is in its known-clean state.
    """

    bound_ports: dict[int, list[int]] = field(default_factory=dict)
    containers: list[str] = field(default_factory=list)
    network_present: bool = False
    files: list[Path] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.bound_ports or self.containers or self.network_present or self.files)

    def describe(self) -> list[str]:
        """Human-readable leftovers, one entry per resource."""
        lines = [
            f"port {port} bound by pid(s) {', '.join(str(p) for p in pids)}"
            for port, pids in sorted(self.bound_ports.items())
        ]
        lines.extend(f"container {cid}" for cid in self.containers)
        if self.network_present:
            lines.append("test network")
        lines.extend(f"file {path}" for path in self.files)
        return lines
