"""Scenario execution.

Runs one job's entrypoint in its own session so that every service the
entrypoint backgrounds shares one process group. The runner waits for
the whole group, not just the direct child, so the next job's
environment reset cannot race a still-exiting service.
"""

from __future__ import annotations

import os
import signal
import subprocess
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from ..environment import EnvironmentReset
from ..shared.logging import get_logger
from .catalog import Job, Mode

logger = get_logger(__name__)

ENV_TEST_MODE = "TEST_MODE"
ENV_USE_CONTAINERS = "USE_CONTAINERS"
# Alias read by the example scripts of the node repository
ENV_USE_DOCKER = "USE_DOCKER"

DEFAULT_ENTRYPOINT = ("./run.sh",)
DEFAULT_GROUP_GRACE_SECONDS = 5.0

# Shell conventions
EXIT_TIMEOUT = 124
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127

_POLL_INTERVAL = 0.1


def group_alive(pgid: int) -> bool:
    """Check whether any process is left in a process group."""
    try:
        os.killpg(pgid, 0)  # Signal 0 = check existence
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        # Member exists but belongs to another user
        return True


def wait_group(pgid: int, timeout: float) -> bool:
    """Wait for a process group to empty.

    Returns:
        True if the group is gone, False on timeout.
    """
    deadline = time.monotonic() + timeout
    while group_alive(pgid):
        if time.monotonic() >= deadline:
            return False
        time.sleep(_POLL_INTERVAL)
    return True


def terminate_group(pgid: int, grace_seconds: float) -> None:
    """SIGTERM a process group, SIGKILL whatever is left after the grace period."""
    try:
        os.killpg(pgid, signal.SIGTERM)
    except ProcessLookupError:
        return
    if wait_group(pgid, grace_seconds):
        return
    try:
        os.killpg(pgid, signal.SIGKILL)
    except ProcessLookupError:
        return
    wait_group(pgid, grace_seconds)


class ScenarioRunner:
    """Execute jobs one at a time."""

    def __init__(
        self,
        reset: EnvironmentReset,
        entrypoint: Sequence[str] = DEFAULT_ENTRYPOINT,
        extra_env: Mapping[str, str] | None = None,
        job_timeout: float | None = None,
        group_grace_seconds: float = DEFAULT_GROUP_GRACE_SECONDS,
    ):
        """Initialize scenario runner.

        Args:
            reset: Environment reset run before every job
            entrypoint: Command run inside the scenario directory
            extra_env: Additional environment for the entrypoint
            job_timeout: Optional wall-clock limit per job in seconds
            group_grace_seconds: How long background processes may outlive
                the entrypoint before they are terminated
        """
        if not entrypoint:
            raise ValueError("entrypoint must not be empty")
        self.reset = reset
        self.entrypoint = list(entrypoint)
        self.extra_env = dict(extra_env or {})
        self.job_timeout = job_timeout
        self.group_grace_seconds = group_grace_seconds

    def child_env(self, mode: Mode) -> dict[str, str]:
        """Environment for the entrypoint of a job in ``mode``."""
        env = dict(os.environ)
        env.update(self.extra_env)
        env.pop(ENV_USE_CONTAINERS, None)
        env.pop(ENV_USE_DOCKER, None)
        env[ENV_TEST_MODE] = "1"
        if mode is Mode.CONTAINERIZED:
            env[ENV_USE_CONTAINERS] = "1"
            env[ENV_USE_DOCKER] = "1"
        return env

    def command(self, workdir: Path) -> list[str]:
        """Entrypoint argv with a relative program path anchored at ``workdir``."""
        program, *args = self.entrypoint
        if os.sep in program and not os.path.isabs(program):
            program = str(workdir / program)
        return [program, *args]

    def execute(self, job: Job) -> int:
        """Reset the environment and run one job to completion.

        A nonzero exit status is returned, not raised.

        Args:
            job: Job to run.

        Returns:
            Entrypoint exit status (124 timeout, 126 not executable,
            127 not found).
        """
        workdir = job.scenario.path
        log = logger.bind(scenario=job.scenario.name, mode=job.mode.id)

        self.reset.run(workdir)

        argv = self.command(workdir)
        log.info("starting entrypoint", command=argv)
        try:
            process = subprocess.Popen(
                argv,
                cwd=workdir,
                env=self.child_env(job.mode),
                start_new_session=True,
            )
        except FileNotFoundError:
            log.error("entrypoint not found", command=argv[0])
            return EXIT_NOT_FOUND
        except PermissionError:
            log.error("entrypoint not executable", command=argv[0])
            return EXIT_NOT_EXECUTABLE
        except OSError as e:
            # e.g. ENOEXEC for a script without a shebang line
            log.error("entrypoint could not be started", command=argv[0], error=str(e))
            return EXIT_NOT_EXECUTABLE

        pgid = process.pid
        try:
            returncode = process.wait(timeout=self.job_timeout)
            if not wait_group(pgid, self.group_grace_seconds):
                log.info("terminating leftover background processes", pgid=pgid)
                terminate_group(pgid, self.group_grace_seconds)
        except subprocess.TimeoutExpired:
            log.error("job timed out", timeout=self.job_timeout)
            terminate_group(pgid, self.group_grace_seconds)
            process.wait()
            return EXIT_TIMEOUT
        except (KeyboardInterrupt, SystemExit):
            log.warning("interrupted, terminating job process group", pgid=pgid)
            terminate_group(pgid, self.group_grace_seconds)
            process.wait()
            raise

        log.info("entrypoint finished", returncode=returncode)
        return returncode
