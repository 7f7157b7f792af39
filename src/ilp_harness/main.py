"""CLI main entry point."""

import json
import signal
import sys
from pathlib import Path
from typing import Any

import click

from .config import load_config
from .errors import EXIT_FAILED, HarnessError
from .orchestrator import Orchestrator
from .scenarios import MODE_FILTERS
from .shared.logging import configure_logging, level_for_verbosity


def _handle_sigterm(signum: int, frame: Any) -> None:
    # unwinds through the runner, which kills the current job's process group
    sys.exit(128 + signum)


def _load(ctx: click.Context, **overrides: Any):
    try:
        return load_config(ctx.obj["config_path"], overrides)
    except HarnessError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(e.exit_code)


filter_options = [
    click.option("--filter", "name_filter", help="Regular expression matched against scenario names"),
    click.option(
        "--mode",
        "mode_filter",
        type=click.Choice(list(MODE_FILTERS)),
        default="all",
        show_default=True,
        help="Run only direct or only containerized jobs",
    ),
    click.option(
        "--examples-root",
        type=click.Path(file_okay=False, path_type=Path),
        help="Directory whose subdirectories are scenarios",
    ),
]


def with_filter_options(func):
    for option in reversed(filter_options):
        func = option(func)
    return func


@click.group()
@click.option("-c", "--config", type=click.Path(), help="Config file path")
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option("-q", "--quiet", is_flag=True, help="Only print errors")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--log-json", is_flag=True, help="Emit structured logs as JSON")
@click.option("--log-file", type=click.Path(), help="Write logs to a file instead of stderr")
@click.pass_context
def cli(
    ctx: click.Context,
    config: str | None,
    verbose: int,
    quiet: bool,
    json_output: bool,
    log_json: bool,
    log_file: str | None,
) -> None:
    """Integration-test harness for the node examples."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["json_output"] = json_output
    configure_logging(
        level=level_for_verbosity(verbose, quiet),
        log_file=log_file,
        json_output=log_json,
    )


@cli.command()
@with_filter_options
@click.option(
    "--artifact-root",
    type=click.Path(file_okay=False, path_type=Path),
    help="Where per-job logs are collected (wiped at start)",
)
@click.option("--entrypoint", help="Command run inside each scenario directory")
@click.option("--job-timeout", type=float, help="Per-job wall-clock limit in seconds")
@click.pass_context
def run(
    ctx: click.Context,
    name_filter: str | None,
    mode_filter: str,
    examples_root: Path | None,
    artifact_root: Path | None,
    entrypoint: str | None,
    job_timeout: float | None,
) -> None:
    """Run every example in direct and containerized mode.

    Each job starts from a clean environment: stray service processes,
    containers, snapshot files and logs from earlier runs are removed
    first. A failing example does not stop the rest of the matrix.

    Examples:

        # Run the full matrix
        ilp-harness run

        # Only the eth-settlement example, containerized
        ilp-harness run --filter '^eth-settlement$' --mode containerized
    """
    config = _load(
        ctx,
        examples_root=examples_root,
        artifact_root=artifact_root,
        entrypoint=entrypoint,
        job_timeout=job_timeout,
    )
    previous_handler = signal.signal(signal.SIGTERM, _handle_sigterm)

    try:
        exit_code = Orchestrator(config).run(name_filter, mode_filter)
    except HarnessError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(e.exit_code)
    finally:
        signal.signal(signal.SIGTERM, previous_handler)
    sys.exit(exit_code)


@cli.command("list")
@with_filter_options
@click.pass_context
def list_jobs(
    ctx: click.Context,
    name_filter: str | None,
    mode_filter: str,
    examples_root: Path | None,
) -> None:
    """Show the jobs a run would execute."""
    from .formatters import print_job_plan

    config = _load(ctx, examples_root=examples_root)
    try:
        jobs = Orchestrator(config).plan(name_filter, mode_filter)
    except HarnessError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(e.exit_code)

    if ctx.obj["json_output"]:
        jobs_data = [
            {"scenario": j.scenario.name, "path": str(j.scenario.path), "mode": j.mode.id}
            for j in jobs
        ]
        click.echo(json.dumps(jobs_data, indent=2))
    else:
        print_job_plan(jobs)


@cli.command()
@click.option(
    "--workdir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    help="Directory holding logs and snapshot files (default: current)",
)
@click.option("--check", is_flag=True, help="Fail if anything is left after the reset")
@click.pass_context
def reset(ctx: click.Context, workdir: Path, check: bool) -> None:
    """Bring the host to a clean state without running anything.

    Useful to recover after an interrupted run.
    """
    from .formatters import print_environment_state, print_reset_report

    config = _load(ctx)
    orchestrator = Orchestrator(config)
    workdir = workdir.resolve()
    report = orchestrator.reset.run(workdir)
    state = orchestrator.reset.observe(workdir) if check else None

    if ctx.obj["json_output"]:
        data: dict[str, Any] = {
            "workdir": str(workdir),
            "removed": report.removed,
            "warnings": [
                {"cleaner": w.cleaner, "resource": w.resource, "message": w.message}
                for w in report.warnings
            ],
        }
        if state is not None:
            data["leftovers"] = state.describe()
        click.echo(json.dumps(data, indent=2))
    else:
        print_reset_report(report)
        if state is not None:
            print_environment_state(state)

    if state is not None and not state.is_clean:
        sys.exit(EXIT_FAILED)


@cli.group()
def config() -> None:
    """Configuration commands."""
    pass


@config.command("show")
@click.option("--section", help="Show specific section")
@click.pass_context
def config_show(ctx: click.Context, section: str | None) -> None:
    """Show the effective harness configuration."""
    from .formatters import print_config_yaml, print_sources

    harness_config = _load(ctx)
    data = harness_config.to_dict()

    if section:
        if section not in data:
            click.echo(f"Error: Unknown section '{section}'", err=True)
            click.echo(f"Valid sections: {', '.join(data)}", err=True)
            sys.exit(1)
        data = {section: data[section]}

    if ctx.obj["json_output"]:
        click.echo(json.dumps({"values": data, "sources": harness_config._sources}, indent=2))
    else:
        click.echo("Harness Configuration\n")
        print_config_yaml(data)
        print_sources(harness_config._sources)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
