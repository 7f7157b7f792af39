"""Run outcomes and the aggregate verdict."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

from ..errors import EXIT_FAILED, EXIT_OK
from .catalog import Job


@dataclass(frozen=True)
class RunOutcome:
    """Result of executing one job."""

    job: Job
    exit_code: int
    artifact: Path | None = None
    duration_seconds: float = 0.0

    @property
    def passed(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenario": self.job.scenario.name,
            "mode": self.job.mode.id,
            "exit_code": self.exit_code,
            "passed": self.passed,
            "artifact": str(self.artifact) if self.artifact else None,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class AggregateResult:
    """Running totals across a run."""

    total: int = 0
    failed: int = 0
    index: int = 0

    @property
    def passed(self) -> int:
        return self.total - self.failed

    @property
    def exit_code(self) -> int:
        return EXIT_OK if self.failed == 0 else EXIT_FAILED


@dataclass
class ResultAggregator:
    """Tally outcomes and report progress and the final verdict.

    The only place that decides the run's exit code.
    """

    total: int
    console: Console = field(default_factory=Console)
    outcomes: list[RunOutcome] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.result = AggregateResult(total=self.total)

    def announce(self, job: Job) -> None:
        """Print the progress line for the job about to run."""
        self.console.print(
            f'Testing "{escape(job.scenario.name)}" on {job.mode.label} mode. '
            f"\\[{self.result.index + 1}/{self.total}]",
            style="bold yellow",
            highlight=False,
        )

    def record(self, outcome: RunOutcome) -> None:
        self.outcomes.append(outcome)
        if not outcome.passed:
            self.result.failed += 1
        self.result.index += 1

    def summary_line(self) -> str:
        tally = f"{self.result.passed}/{self.total} passed"
        if self.result.failed == 0:
            return f"All tests passed! {tally}"
        return f"Some tests failed. {tally}"

    def finish(self) -> int:
        """Print the summary line and return the process exit code."""
        style = "bold green" if self.result.failed == 0 else "bold red"
        self.console.print(self.summary_line(), style=style, highlight=False)
        for outcome in self.outcomes:
            if not outcome.passed:
                self.console.print(
                    f"  ✗ {escape(str(outcome.job))} (exit {outcome.exit_code})",
                    style="red",
                    highlight=False,
                )
        return self.result.exit_code

    def write_summary(self, path: Path) -> Path:
        """Write every outcome and the tally as JSON."""
        data = {
            "total": self.total,
            "passed": self.result.passed,
            "failed": self.result.failed,
            "exit_code": self.result.exit_code,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2))
        return path
