"""Logging configuration for ilp-harness.

Structured logs go to stderr (or a file) so they never interleave with the
progress and summary lines on stdout. While a job runs, every event carries
the job it belongs to (see ``job_context``).
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

VERBOSITY_LEVELS = ["warning", "info", "debug"]


def level_for_verbosity(verbose: int, quiet: bool = False) -> str:
    """Map -v/-q flags to a log level name."""
    if quiet:
        return "error"
    return VERBOSITY_LEVELS[min(verbose, len(VERBOSITY_LEVELS) - 1)]


def _handler(log_file: str | Path | None) -> logging.Handler:
    if log_file is None:
        return logging.StreamHandler(sys.stderr)
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(str(log_file))


def configure_logging(
    level: str = "warning",
    log_file: str | Path | None = None,
    json_output: bool = False,
) -> None:
    """Configure standard logging and structlog.

    Args:
        level: Log level (debug, info, warning, error, critical)
        log_file: Optional path to a log file (implies JSON output)
        json_output: Render events as JSON, one object per line

    Usage:
        CI: configure_logging("info", log_file="/tmp/run-md-test/harness.log")
        Interactive: configure_logging() (stderr, human-readable)
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)
    handler = _handler(log_file)
    handler.setLevel(log_level)
    logging.basicConfig(level=log_level, handlers=[handler], format="%(message)s", force=True)

    renderer: structlog.types.Processor
    if log_file or json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def job_context(scenario: str, mode: str) -> Iterator[None]:
    """Tag every log event emitted inside the block with the job."""
    with structlog.contextvars.bound_contextvars(scenario=scenario, mode=mode):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger (typically ``get_logger(__name__)``)."""
    return structlog.get_logger(name)
