"""CLI output formatting helpers."""

from typing import Any

import click
import yaml

from .environment import EnvironmentState, ResetReport
from .scenarios import Job


def print_config_yaml(data: dict[str, Any]) -> None:
    """Print config as YAML, keeping key order."""
    click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False))


def print_sources(sources: dict[str, str]) -> None:
    """Print where non-default config values came from."""
    if not sources:
        click.echo("All values are defaults.")
        return
    click.echo("Sources:")
    for key, source in sorted(sources.items()):
        click.echo(f"  {key}: {source}")


def print_job_plan(jobs: list[Job]) -> None:
    """Print planned jobs grouped by scenario."""
    if not jobs:
        click.echo("No scenarios found.")
        return

    by_scenario: dict[str, list[Job]] = {}
    for job in jobs:
        by_scenario.setdefault(job.scenario.name, []).append(job)

    click.echo(f"Planned jobs ({len(jobs)}):")
    for name, scenario_jobs in by_scenario.items():
        click.echo(f"  {name} ({scenario_jobs[0].scenario.path})")
        for job in scenario_jobs:
            click.echo(f"    - mode {job.mode.id} ({job.mode.label})")


def print_reset_report(report: ResetReport) -> None:
    """Print what an environment reset removed and what it could not."""
    click.echo(f"Environment reset in {report.workdir}\n")

    if report.removed:
        click.echo("Removed:")
        for item in report.removed:
            click.echo(f"  ✓ {item}")
    else:
        click.echo("Nothing to remove.")

    if report.warnings:
        click.echo("WARNINGS:")
        for w in report.warnings:
            click.echo(f"  ⚠ [{w.cleaner}] {w.resource}: {w.message}")


def print_environment_state(state: EnvironmentState) -> None:
    """Print leftovers of the tracked host state."""
    if state.is_clean:
        click.echo("✓ Environment is clean")
        return
    click.echo("Leftover state:")
    for line in state.describe():
        click.echo(f"  ✗ {line}")
