"""Container reaping.

Stops and removes every container on the host and removes the dedicated
test network. The example topologies use fixed container names and
ports, so nothing from a previous job may survive.
"""

from __future__ import annotations

import subprocess

from ..shared.logging import get_logger
from .state import CleanupReport, EnvironmentTargets

logger = get_logger(__name__)

DOCKER_TIMEOUT = 120

# stderr fragments docker prints when there is nothing to do
NOT_FOUND_MARKERS = ("no such network", "not found", "no such container")


def _is_not_found(stderr: str) -> bool:
    lowered = stderr.lower()
    return any(marker in lowered for marker in NOT_FOUND_MARKERS)


class ContainerReaper:
    """Remove all containers and the test network."""

    name = "containers"

    def __init__(self, targets: EnvironmentTargets, docker: str = "docker"):
        """Initialize container reaper.

        Args:
            targets: Tracked host resources (network name is used here)
            docker: Docker CLI executable
        """
        self.targets = targets
        self.docker = docker

    def _docker(self, *args: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            [self.docker, *args],
            capture_output=True,
            text=True,
            timeout=DOCKER_TIMEOUT,
        )

    def list_containers(self) -> list[str]:
        """IDs of all containers, running or stopped.

        Returns an empty list when docker is unavailable.
        """
        try:
            result = self._docker("ps", "-aq")
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return []
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def network_exists(self) -> bool:
        try:
            result = self._docker("network", "inspect", self.targets.network)
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return False
        return result.returncode == 0

    def reap(self) -> CleanupReport:
        """Stop and remove containers, then remove the network.

        Returns:
            CleanupReport; missing docker or nothing to remove is success.
        """
        report = CleanupReport(self.name)
        try:
            listing = self._docker("ps", "-aq")
        except FileNotFoundError:
            logger.debug("docker not installed, skipping container cleanup")
            return report
        except subprocess.TimeoutExpired:
            report.warn("containers", "docker ps timed out")
            return report

        if listing.returncode != 0:
            report.warn("containers", f"docker ps failed: {listing.stderr.strip()}")
        else:
            ids = [line.strip() for line in listing.stdout.splitlines() if line.strip()]
            if ids:
                self._run_step(report, "stop", ids)
                if self._run_step(report, "rm", ids):
                    report.removed.extend(f"container {cid}" for cid in ids)

        self._remove_network(report)

        for warning in report.warnings:
            logger.warning("container cleanup incomplete", resource=warning.resource, reason=warning.message)
        return report

    def _run_step(self, report: CleanupReport, verb: str, ids: list[str]) -> bool:
        try:
            result = self._docker(verb, *ids)
        except subprocess.TimeoutExpired:
            report.warn("containers", f"docker {verb} timed out")
            return False
        if result.returncode != 0 and not _is_not_found(result.stderr):
            report.warn("containers", f"docker {verb} failed: {result.stderr.strip()}")
            return False
        logger.info(f"docker {verb}", containers=len(ids))
        return True

    def _remove_network(self, report: CleanupReport) -> None:
        network = self.targets.network
        try:
            result = self._docker("network", "rm", network)
        except subprocess.TimeoutExpired:
            report.warn(f"network {network}", "docker network rm timed out")
            return
        if result.returncode == 0:
            report.removed.append(f"network {network}")
            logger.info("removed test network", network=network)
        elif not _is_not_found(result.stderr):
            report.warn(f"network {network}", result.stderr.strip() or "docker network rm failed")
