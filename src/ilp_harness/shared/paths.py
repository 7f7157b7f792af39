"""Default locations used by the harness.

Relative defaults are resolved against the directory the harness is
started from, mirroring how the example scripts are laid out in the
node repository (``examples/<scenario>/``).
"""

from pathlib import Path

# Scenario directories live directly below this root
DEFAULT_EXAMPLES_ROOT = Path("examples")

# Durable per-job log artifacts (picked up by CI as build artifacts)
DEFAULT_ARTIFACT_ROOT = Path("/tmp/run-md-test/logs")

# Config file looked up in the current directory when --config is not given
DEFAULT_CONFIG_FILE = Path("ilp-harness.yaml")

# Written by every scenario entrypoint, relative to the scenario directory
LOG_DIR_NAME = "logs"

SUMMARY_FILE_NAME = "summary.json"


def artifact_dir(artifact_root: Path, scenario_name: str, mode_id: str) -> Path:
    """Get the artifact directory for one job.

    Args:
        artifact_root: Root directory for all run artifacts
        scenario_name: Scenario name (last path segment of its directory)
        mode_id: Mode identifier ("0" direct, "1" containerized)

    Returns:
        Path to ``<artifact_root>/<scenario_name>/<mode_id>``
    """
    return artifact_root / scenario_name / mode_id
