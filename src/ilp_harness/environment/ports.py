"""Port reaping.

Finds processes listening on the tracked service ports and makes them
exit: first through the service's own shutdown command when its port
group has one (redis), then SIGTERM, then SIGKILL after a grace period.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Iterable

import psutil

from ..shared.logging import get_logger
from .state import CleanupReport, EnvironmentTargets

logger = get_logger(__name__)

DEFAULT_GRACE_SECONDS = 5.0
SHUTDOWN_COMMAND_TIMEOUT = 10


def _listening_sockets() -> list[tuple[int, int | None]]:
    """(port, pid) for every listening TCP socket on the host."""
    try:
        return [
            (conn.laddr.port, conn.pid)
            for conn in psutil.net_connections(kind="tcp")
            if conn.status == psutil.CONN_LISTEN and conn.laddr
        ]
    except psutil.AccessDenied:
        # macOS needs root for the global table; fall back to per-process scans
        sockets: list[tuple[int, int | None]] = []
        for proc in psutil.process_iter():
            try:
                for conn in proc.net_connections(kind="tcp"):
                    if conn.status == psutil.CONN_LISTEN and conn.laddr:
                        sockets.append((conn.laddr.port, proc.pid))
            except (psutil.AccessDenied, psutil.NoSuchProcess, psutil.ZombieProcess):
                continue
        return sockets


def find_listeners(ports: Iterable[int]) -> dict[int, list[int]]:
    """Map each bound port to the pids listening on it.

    Ports nobody listens on are omitted. A port whose owner is not visible
    to this user maps to an empty pid list.
    """
    wanted = set(ports)
    if not wanted:
        return {}
    listeners: dict[int, list[int]] = {}
    for port, pid in _listening_sockets():
        if port not in wanted:
            continue
        pids = listeners.setdefault(port, [])
        if pid and pid not in pids:
            pids.append(pid)
    return listeners


class PortReaper:
    """Free the tracked service ports."""

    name = "ports"

    def __init__(
        self,
        targets: EnvironmentTargets,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
    ):
        """Initialize port reaper.

        Args:
            targets: Tracked host resources (port groups are used here)
            grace_seconds: How long to wait after SIGTERM before SIGKILL
        """
        self.targets = targets
        self.grace_seconds = grace_seconds

    def observe(self) -> dict[int, list[int]]:
        return find_listeners(self.targets.ports)

    def reap(self) -> CleanupReport:
        """Free every tracked port. Best effort, never raises.

        Returns:
            CleanupReport listing freed ports and ports still bound.
        """
        report = CleanupReport(self.name)
        listeners = self.observe()
        if not listeners:
            logger.debug("ports already free", ports=len(self.targets.ports))
            return report

        for port in listeners:
            group = self.targets.group_for(port)
            argv = group.shutdown_argv(port) if group else None
            if argv:
                self._request_shutdown(port, argv)

        # graceful shutdowns may have released some ports already
        still_bound = find_listeners(listeners)
        handled: set[int] = set()
        for port, pids in still_bound.items():
            if not pids:
                report.warn(f"port {port}", "bound by a process not visible to this user")
                continue
            self._terminate(port, [pid for pid in pids if pid not in handled], report)
            handled.update(pids)

        remaining = find_listeners(listeners)
        for port in listeners:
            if port in remaining:
                if not any(w.resource == f"port {port}" for w in report.warnings):
                    report.warn(f"port {port}", "still bound after termination")
            else:
                report.removed.append(f"port {port}")

        for warning in report.warnings:
            logger.warning("port cleanup incomplete", resource=warning.resource, reason=warning.message)
        return report

    def _request_shutdown(self, port: int, argv: list[str]) -> None:
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=SHUTDOWN_COMMAND_TIMEOUT,
            )
        except FileNotFoundError:
            logger.debug("shutdown command not installed", port=port, command=argv[0])
            return
        except subprocess.TimeoutExpired:
            logger.debug("shutdown command timed out", port=port, command=argv[0])
            return
        if result.returncode != 0:
            logger.debug(
                "shutdown command failed",
                port=port,
                returncode=result.returncode,
                stderr=result.stderr.strip(),
            )
        else:
            logger.info("requested graceful shutdown", port=port)

    def _terminate(self, port: int, pids: list[int], report: CleanupReport) -> None:
        procs: list[psutil.Process] = []
        for pid in pids:
            if pid == os.getpid():
                report.warn(f"port {port}", "held by the harness process itself")
                continue
            try:
                proc = psutil.Process(pid)
                proc.terminate()
                procs.append(proc)
                logger.info("terminated port owner", port=port, pid=pid, name=proc.name())
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                report.warn(f"port {port}", f"permission denied terminating pid {pid}")

        _, alive = psutil.wait_procs(procs, timeout=self.grace_seconds)
        for proc in alive:
            try:
                proc.kill()
                logger.info("killed port owner", port=port, pid=proc.pid)
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                report.warn(f"port {port}", f"permission denied killing pid {proc.pid}")
        if alive:
            psutil.wait_procs(alive, timeout=self.grace_seconds)
