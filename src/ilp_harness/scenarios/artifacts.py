"""Log artifact collection.

Moves the ``logs`` directory a scenario leaves behind into
``<artifact-root>/<scenario-name>/<mode-id>/`` so it survives the next
job's environment reset.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from ..shared.logging import get_logger
from ..shared.paths import LOG_DIR_NAME, artifact_dir
from .catalog import Job

logger = get_logger(__name__)


class ArtifactCollector:
    """Relocate per-job logs into durable artifact directories."""

    def __init__(self, artifact_root: Path, log_dir_name: str = LOG_DIR_NAME):
        """Initialize artifact collector.

        Args:
            artifact_root: Root directory for all run artifacts
            log_dir_name: Log directory name inside a scenario directory
        """
        self.artifact_root = artifact_root
        self.log_dir_name = log_dir_name

    def prepare(self) -> Path:
        """Wipe and recreate the artifact root at the start of a run."""
        if self.artifact_root.exists():
            shutil.rmtree(self.artifact_root)
        self.artifact_root.mkdir(parents=True, exist_ok=True)
        return self.artifact_root

    def destination(self, job: Job) -> Path:
        return artifact_dir(self.artifact_root, job.scenario.name, job.mode.id)

    def collect(self, job: Job) -> Path | None:
        """Move the job's log directory into the artifact tree.

        Args:
            job: The job that just finished (passed or failed).

        Returns:
            Artifact directory, or None if the entrypoint left no logs.
        """
        source = job.scenario.path / self.log_dir_name
        if not source.is_dir():
            logger.warning(
                "no log directory produced",
                scenario=job.scenario.name,
                mode=job.mode.id,
                expected=str(source),
            )
            return None

        dest = self.destination(job)
        dest.parent.mkdir(parents=True, exist_ok=True)
        if dest.exists():
            shutil.rmtree(dest)
        shutil.move(str(source), str(dest))
        logger.info("collected logs", scenario=job.scenario.name, mode=job.mode.id, path=str(dest))
        return dest
