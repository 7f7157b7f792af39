"""Shared modules for ilp-harness.

This module provides functionality used across the harness:
- Logging configuration (structlog)
- Default paths and artifact layout
"""

from .logging import configure_logging, get_logger, job_context, level_for_verbosity
from .paths import (
    DEFAULT_ARTIFACT_ROOT,
    DEFAULT_CONFIG_FILE,
    DEFAULT_EXAMPLES_ROOT,
    LOG_DIR_NAME,
    SUMMARY_FILE_NAME,
    artifact_dir,
)

__all__ = [
    # Paths
    "DEFAULT_EXAMPLES_ROOT",
    "DEFAULT_ARTIFACT_ROOT",
    "DEFAULT_CONFIG_FILE",
    "LOG_DIR_NAME",
    "SUMMARY_FILE_NAME",
    "artifact_dir",
    # Logging
    "configure_logging",
    "get_logger",
    "job_context",
    "level_for_verbosity",
]
