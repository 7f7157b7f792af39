"""Shared test fixtures for ilp-harness tests.

This module provides fixtures for building throwaway example trees:
- make_scenario: creates a scenario directory with a shell entrypoint
- harness_config: a config that never touches real ports or docker
- quiet_console: a rich Console writing into a buffer
"""

import io
import os
import stat
from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from ilp_harness.config import HarnessConfig

# Makes docker calls raise FileNotFoundError, which the reaper treats as "nothing to do"
MISSING_DOCKER = "docker-not-installed-for-tests"


def write_script(path: Path, body: str, executable: bool = True) -> Path:
    """Write a /bin/sh script."""
    path.write_text("#!/bin/sh\n" + body)
    if executable:
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def examples_root(tmp_path: Path) -> Path:
    """Empty examples root."""
    root = tmp_path / "examples"
    root.mkdir()
    return root


@pytest.fixture
def make_scenario(examples_root: Path) -> Callable[..., Path]:
    """Factory creating ``examples/<name>/run.sh``.

    The default body writes a log file and exits 0.
    """

    def _make(name: str, body: str | None = None, executable: bool = True) -> Path:
        scenario_dir = examples_root / name
        scenario_dir.mkdir()
        if body is None:
            body = 'mkdir -p logs\necho "mode=${USE_CONTAINERS:-0}" > logs/run.log\nexit 0\n'
        write_script(scenario_dir / "run.sh", body, executable=executable)
        return scenario_dir

    return _make


@pytest.fixture
def harness_config(tmp_path: Path, examples_root: Path) -> HarnessConfig:
    """Config whose environment reset only touches files under tmp_path."""
    return HarnessConfig(
        examples_root=examples_root,
        artifact_root=tmp_path / "artifacts",
        docker=MISSING_DOCKER,
        port_groups=(),
        grace_seconds=0.5,
        group_grace_seconds=0.5,
    )


@pytest.fixture
def quiet_console() -> Console:
    """Console that records output instead of printing."""
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove harness env vars and markers inherited from the outer shell."""
    for var in list(os.environ):
        if var.startswith("ILP_HARNESS_") or var in ("TEST_MODE", "USE_CONTAINERS", "USE_DOCKER"):
            monkeypatch.delenv(var, raising=False)
