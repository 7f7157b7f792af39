"""Snapshot and log directory cleanup inside a scenario directory."""

from __future__ import annotations

import shutil
from pathlib import Path

from ..shared.logging import get_logger
from .state import CleanupReport, EnvironmentTargets

logger = get_logger(__name__)


def _remove_path(path: Path, report: CleanupReport) -> None:
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        return
    except OSError as e:
        report.warn(str(path), f"could not remove: {e}")
        logger.warning("file cleanup incomplete", path=str(path), error=str(e))
        return
    report.removed.append(str(path))
    logger.debug("removed", path=str(path))


class SnapshotCleaner:
    """Delete stale storage snapshots (redis ``dump.rdb``)."""

    name = "snapshots"

    def __init__(self, targets: EnvironmentTargets):
        self.targets = targets

    def paths(self, workdir: Path) -> list[Path]:
        return [workdir / name for name in self.targets.snapshot_files]

    def clean(self, workdir: Path) -> CleanupReport:
        report = CleanupReport(self.name)
        for path in self.paths(workdir):
            _remove_path(path, report)
        return report


class LogCleaner:
    """Delete the working log directory a scenario writes into."""

    name = "logs"

    def __init__(self, targets: EnvironmentTargets):
        self.targets = targets

    def path(self, workdir: Path) -> Path:
        return workdir / self.targets.log_dir_name

    def clean(self, workdir: Path) -> CleanupReport:
        report = CleanupReport(self.name)
        _remove_path(self.path(workdir), report)
        return report
