"""Test matrix orchestration.

Drives one run: discover jobs, then for every job reset the environment,
execute the entrypoint and collect its logs, and finally aggregate the
verdict. Jobs run strictly one after another because they share fixed
ports and container names.
"""

from __future__ import annotations

import time

from rich.console import Console

from .config import HarnessConfig, load_config
from .environment import EnvironmentReset
from .scenarios import (
    ArtifactCollector,
    Job,
    ResultAggregator,
    RunOutcome,
    ScenarioCatalog,
    ScenarioRunner,
)
from .shared.logging import get_logger, job_context
from .shared.paths import SUMMARY_FILE_NAME

logger = get_logger(__name__)


class Orchestrator:
    """Compose catalog, reset, runner, collector and aggregator."""

    def __init__(self, config: HarnessConfig, console: Console | None = None):
        """Initialize orchestrator.

        Args:
            config: Effective harness configuration
            console: Console for progress and summary lines
        """
        self.config = config
        self.console = console or Console()
        self.catalog = ScenarioCatalog(config.examples_root)
        self.reset = EnvironmentReset(
            config.targets(),
            grace_seconds=config.grace_seconds,
            docker=config.docker,
        )
        self.runner = ScenarioRunner(
            self.reset,
            entrypoint=config.entrypoint,
            extra_env=config.extra_env,
            job_timeout=config.job_timeout,
            group_grace_seconds=config.group_grace_seconds,
        )
        self.collector = ArtifactCollector(config.artifact_root, config.log_dir_name)

    def plan(self, name_filter: str | None = None, mode_filter: str = "all") -> list[Job]:
        """Jobs a run with these filters would execute, in order."""
        return self.catalog.jobs(name_filter, mode_filter)

    def run(self, name_filter: str | None = None, mode_filter: str = "all") -> int:
        """Execute the whole matrix.

        A failing job never stops the run; only catalog errors abort it.

        Args:
            name_filter: Regular expression searched in scenario names.
            mode_filter: One of "all", "direct", "containerized".

        Returns:
            Process exit code (0 when every job passed, including zero jobs).

        Raises:
            CatalogError: If the examples root is missing or unreadable.
        """
        jobs = self.plan(name_filter, mode_filter)
        self.collector.prepare()
        logger.info("starting run", jobs=len(jobs), artifact_root=str(self.config.artifact_root))

        aggregator = ResultAggregator(total=len(jobs), console=self.console)
        try:
            for job in jobs:
                aggregator.announce(job)
                aggregator.record(self.run_job(job))
        finally:
            # partial tally on interruption
            aggregator.write_summary(self.config.artifact_root / SUMMARY_FILE_NAME)
        return aggregator.finish()

    def run_job(self, job: Job) -> RunOutcome:
        """Reset, execute and collect one job."""
        started = time.monotonic()
        with job_context(job.scenario.name, job.mode.id):
            try:
                exit_code = self.runner.execute(job)
            finally:
                # logs are kept for post-mortem even when the run is interrupted
                artifact = self.collector.collect(job)
        return RunOutcome(
            job=job,
            exit_code=exit_code,
            artifact=artifact,
            duration_seconds=time.monotonic() - started,
        )


def run(
    name_filter_pattern: str | None = None,
    docker_mode_flag: str = "all",
    config: HarnessConfig | None = None,
) -> int:
    """Run the example matrix and return the process exit code.

    Args:
        name_filter_pattern: Scenario name filter (default: all scenarios)
        docker_mode_flag: "all", "direct" or "containerized"
        config: Harness configuration (default: loaded from file/env)
    """
    return Orchestrator(config or load_config()).run(name_filter_pattern, docker_mode_flag)
