"""Harness error types.

Only errors that abort a whole run are exceptions. Problems during
environment cleanup are recorded as ``CleanupWarning`` values instead,
and failing scenarios are reported through their ``RunOutcome``.
"""

from dataclasses import dataclass, field
from typing import Any

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


@dataclass
class HarnessError(Exception):
    """Base error class for fatal harness errors."""

    message: str
    exit_code: int = EXIT_USAGE
    data: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


@dataclass
class CatalogError(HarnessError):
    """Examples root is missing or unreadable; no jobs can be derived."""

    message: str = "Examples root not found"


@dataclass
class ConfigError(HarnessError):
    """Invalid harness configuration (bad YAML, bad values, bad filter)."""

    message: str = "Invalid configuration"
