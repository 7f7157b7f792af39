"""Scenario matrix: discovery, execution, artifacts and results."""

from .artifacts import ArtifactCollector
from .catalog import MODE_FILTERS, Job, Mode, Scenario, ScenarioCatalog
from .results import AggregateResult, ResultAggregator, RunOutcome
from .runner import (
    ENV_TEST_MODE,
    ENV_USE_CONTAINERS,
    ENV_USE_DOCKER,
    EXIT_NOT_EXECUTABLE,
    EXIT_NOT_FOUND,
    EXIT_TIMEOUT,
    ScenarioRunner,
)

__all__ = [
    # Catalog
    "Scenario",
    "Mode",
    "Job",
    "ScenarioCatalog",
    "MODE_FILTERS",
    # Execution
    "ScenarioRunner",
    "ENV_TEST_MODE",
    "ENV_USE_CONTAINERS",
    "ENV_USE_DOCKER",
    "EXIT_TIMEOUT",
    "EXIT_NOT_EXECUTABLE",
    "EXIT_NOT_FOUND",
    # Artifacts
    "ArtifactCollector",
    # Results
    "RunOutcome",
    "AggregateResult",
    "ResultAggregator",
]
