"""Scenario discovery.

Every immediate subdirectory of the examples root is one scenario, and
every scenario is run twice: once with native processes and once inside
containers.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..errors import CatalogError, ConfigError


class Mode(Enum):
    """How a scenario's services are started."""

    DIRECT = "0"
    CONTAINERIZED = "1"

    @property
    def id(self) -> str:
        """Artifact directory name for this mode."""
        return self.value

    @property
    def label(self) -> str:
        return "docker" if self is Mode.CONTAINERIZED else "non-docker"


MODE_FILTERS = {
    "all": (Mode.DIRECT, Mode.CONTAINERIZED),
    "direct": (Mode.DIRECT,),
    "containerized": (Mode.CONTAINERIZED,),
}


@dataclass(frozen=True)
class Scenario:
    """One example directory."""

    path: Path

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class Job:
    """One (scenario, mode) execution unit."""

    scenario: Scenario
    mode: Mode

    def __str__(self) -> str:
        return f"{self.scenario.name}/{self.mode.id}"


def compile_filter(pattern: str | None) -> re.Pattern[str] | None:
    """Compile a scenario name filter; ``None`` or empty matches all."""
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"Invalid scenario filter {pattern!r}: {e}") from e


class ScenarioCatalog:
    """Discover scenarios and expand them into jobs."""

    def __init__(self, examples_root: Path):
        """Initialize catalog.

        Args:
            examples_root: Directory whose subdirectories are scenarios.
        """
        self.examples_root = examples_root

    def scenarios(self, name_filter: str | None = None) -> list[Scenario]:
        """List scenarios sorted by name.

        Hidden directories are skipped.

        Args:
            name_filter: Regular expression searched in scenario names.

        Returns:
            Sorted list of scenarios; empty when the root has none.

        Raises:
            CatalogError: If the root is missing or cannot be listed.
            ConfigError: If ``name_filter`` is not a valid expression.
        """
        pattern = compile_filter(name_filter)
        root = self.examples_root
        if not root.is_dir():
            raise CatalogError(f"Examples root not found: {root}", data={"root": str(root)})
        try:
            entries = list(root.iterdir())
        except OSError as e:
            raise CatalogError(f"Cannot read examples root {root}: {e}", data={"root": str(root)}) from e

        # keep the entry's own name, even when it is a symlink
        base = root.resolve()
        found = [
            Scenario(base / entry.name)
            for entry in entries
            if entry.is_dir() and not entry.name.startswith(".")
        ]
        if pattern is not None:
            found = [s for s in found if pattern.search(s.name)]
        return sorted(found, key=lambda s: s.name)

    def jobs(self, name_filter: str | None = None, mode_filter: str = "all") -> list[Job]:
        """Expand scenarios into jobs, direct mode first.

        Args:
            name_filter: Regular expression searched in scenario names.
            mode_filter: One of "all", "direct", "containerized".

        Returns:
            Jobs in execution order.
        """
        if mode_filter not in MODE_FILTERS:
            raise ConfigError(f"Unknown mode filter: {mode_filter}")
        modes = MODE_FILTERS[mode_filter]
        return list(self._expand(self.scenarios(name_filter), modes))

    @staticmethod
    def _expand(scenarios: list[Scenario], modes: tuple[Mode, ...]) -> Iterator[Job]:
        for scenario in scenarios:
            for mode in modes:
                yield Job(scenario, mode)
