"""ilp-harness - integration-test harness for the node examples."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ilp-harness")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"  # Fallback for editable installs without metadata

from .main import main
from .orchestrator import Orchestrator, run

__all__ = ["main", "run", "Orchestrator", "__version__"]
