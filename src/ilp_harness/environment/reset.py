"""Environment reset for idempotent job setup.

``EnvironmentReset`` is the single gateway through which the harness
touches shared host state. It runs before every job so that containers
or services left by the previous job cannot collide with the next one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..shared.logging import get_logger
from .containers import ContainerReaper
from .files import LogCleaner, SnapshotCleaner
from .ports import DEFAULT_GRACE_SECONDS, PortReaper
from .state import CleanupReport, CleanupWarning, EnvironmentState, EnvironmentTargets

logger = get_logger(__name__)


@dataclass
class ResetReport:
    """Combined result of one environment reset."""

    workdir: Path
    reports: list[CleanupReport] = field(default_factory=list)

    @property
    def warnings(self) -> list[CleanupWarning]:
        return [w for report in self.reports for w in report.warnings]

    @property
    def removed(self) -> list[str]:
        return [item for report in self.reports for item in report.removed]

    @property
    def clean(self) -> bool:
        return not self.warnings


class EnvironmentReset:
    """Bring the host to a known-clean state."""

    def __init__(
        self,
        targets: EnvironmentTargets | None = None,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
        docker: str = "docker",
    ):
        """Initialize environment reset.

        Args:
            targets: Tracked host resources (default: example topology)
            grace_seconds: SIGTERM to SIGKILL delay for port owners
            docker: Docker CLI executable
        """
        self.targets = targets or EnvironmentTargets()
        self.log_cleaner = LogCleaner(self.targets)
        self.container_reaper = ContainerReaper(self.targets, docker=docker)
        self.port_reaper = PortReaper(self.targets, grace_seconds=grace_seconds)
        self.snapshot_cleaner = SnapshotCleaner(self.targets)

    def run(self, workdir: Path) -> ResetReport:
        """Reset the environment for a job running in ``workdir``.

        Log clearing comes first so the next run's writes land in an empty
        directory; the other three steps are independent. Never raises for
        cleanup problems; they are returned as warnings.

        Args:
            workdir: Scenario directory holding logs and snapshot files.

        Returns:
            ResetReport with one CleanupReport per cleaner.
        """
        report = ResetReport(workdir)
        report.reports.append(self.log_cleaner.clean(workdir))
        report.reports.append(self.container_reaper.reap())
        report.reports.append(self.port_reaper.reap())
        report.reports.append(self.snapshot_cleaner.clean(workdir))

        logger.info(
            "environment reset",
            workdir=str(workdir),
            removed=len(report.removed),
            warnings=len(report.warnings),
        )
        return report

    def observe(self, workdir: Path) -> EnvironmentState:
        """Observe what is left of the tracked state.

        Args:
            workdir: Scenario directory holding logs and snapshot files.

        Returns:
            EnvironmentState; ``is_clean`` holds right after a warning-free reset.
        """
        files = [p for p in self.snapshot_cleaner.paths(workdir) if p.exists()]
        log_dir = self.log_cleaner.path(workdir)
        if log_dir.exists():
            files.append(log_dir)
        return EnvironmentState(
            bound_ports=self.port_reaper.observe(),
            containers=self.container_reaper.list_containers(),
            network_present=self.container_reaper.network_exists(),
            files=files,
        )
