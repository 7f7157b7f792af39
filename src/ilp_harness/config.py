"""Harness configuration management.

Handles harness configuration stored in ``./ilp-harness.yaml`` (or the
file passed with ``--config``). Supports environment variable overrides
and CLI flag precedence.
"""

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .environment import EnvironmentTargets, PortGroup, default_port_groups
from .environment.ports import DEFAULT_GRACE_SECONDS
from .environment.state import DEFAULT_NETWORK, DEFAULT_SNAPSHOT_FILES
from .errors import ConfigError
from .scenarios.runner import DEFAULT_ENTRYPOINT, DEFAULT_GROUP_GRACE_SECONDS
from .shared.paths import (
    DEFAULT_ARTIFACT_ROOT,
    DEFAULT_CONFIG_FILE,
    DEFAULT_EXAMPLES_ROOT,
    LOG_DIR_NAME,
)

# Environment variable mappings
ENV_VARS = {
    "examples_root": "ILP_HARNESS_EXAMPLES_ROOT",
    "artifact_root": "ILP_HARNESS_ARTIFACT_ROOT",
    "entrypoint": "ILP_HARNESS_ENTRYPOINT",
    "job_timeout": "ILP_HARNESS_JOB_TIMEOUT",
    "network": "ILP_HARNESS_NETWORK",
    "docker": "ILP_HARNESS_DOCKER",
}

SCALAR_KEYS = [
    "examples_root",
    "artifact_root",
    "entrypoint",
    "job_timeout",
    "grace_seconds",
    "group_grace_seconds",
    "network",
    "docker",
    "log_dir_name",
    "snapshot_files",
    "extra_env",
]


@dataclass
class HarnessConfig:
    """Harness configuration."""

    examples_root: Path = DEFAULT_EXAMPLES_ROOT
    artifact_root: Path = DEFAULT_ARTIFACT_ROOT
    entrypoint: list[str] = field(default_factory=lambda: list(DEFAULT_ENTRYPOINT))
    job_timeout: float | None = None
    grace_seconds: float = DEFAULT_GRACE_SECONDS
    group_grace_seconds: float = DEFAULT_GROUP_GRACE_SECONDS
    network: str = DEFAULT_NETWORK
    docker: str = "docker"
    log_dir_name: str = LOG_DIR_NAME
    snapshot_files: list[str] = field(default_factory=lambda: list(DEFAULT_SNAPSHOT_FILES))
    extra_env: dict[str, str] = field(default_factory=dict)
    port_groups: tuple[PortGroup, ...] = field(default_factory=default_port_groups)

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    def targets(self) -> EnvironmentTargets:
        """Host resources the environment reset is responsible for."""
        return EnvironmentTargets(
            port_groups=self.port_groups,
            network=self.network,
            snapshot_files=tuple(self.snapshot_files),
            log_dir_name=self.log_dir_name,
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain representation for ``config show``."""
        return {
            "examples_root": str(self.examples_root),
            "artifact_root": str(self.artifact_root),
            "entrypoint": list(self.entrypoint),
            "job_timeout": self.job_timeout,
            "grace_seconds": self.grace_seconds,
            "group_grace_seconds": self.group_grace_seconds,
            "network": self.network,
            "docker": self.docker,
            "log_dir_name": self.log_dir_name,
            "snapshot_files": list(self.snapshot_files),
            "extra_env": dict(self.extra_env),
            "ports": {
                group.name: {
                    "ports": list(group.ports),
                    **({"shutdown": list(group.shutdown_command)} if group.shutdown_command else {}),
                }
                for group in self.port_groups
            },
        }


def _entry_name(value: Any) -> str:
    """A single entry directly inside a scenario directory."""
    name = str(value)
    if name in ("", ".", "..") or "/" in name or os.sep in name:
        raise ValueError(f"{name!r} is not a plain file name")
    return name


def _coerce(key: str, value: Any) -> Any:
    if key in ("examples_root", "artifact_root"):
        return Path(str(value)).expanduser()
    if key == "entrypoint":
        if isinstance(value, str):
            return shlex.split(value)
        return [str(v) for v in value]
    if key == "job_timeout":
        if value in (None, "", 0, "0"):
            return None
        return float(value)
    if key in ("grace_seconds", "group_grace_seconds"):
        return float(value)
    if key == "snapshot_files":
        if isinstance(value, str):
            return [_entry_name(value)]
        return [_entry_name(v) for v in value]
    if key == "log_dir_name":
        return _entry_name(value)
    if key == "extra_env":
        if not isinstance(value, dict):
            raise ValueError("extra_env must be a mapping")
        return {str(k): str(v) for k, v in value.items()}
    return str(value)


def _apply(config: HarnessConfig, key: str, value: Any, source: str) -> None:
    try:
        setattr(config, key, _coerce(key, value))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {key} ({source}): {value!r}") from e
    config._sources[key] = source


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def get_config_path(explicit: str | Path | None = None) -> Path | None:
    """Get the config file to load.

    Returns:
        The explicit path, ``./ilp-harness.yaml`` if present, or None.
    """
    if explicit:
        return Path(explicit)
    if DEFAULT_CONFIG_FILE.exists():
        return DEFAULT_CONFIG_FILE
    return None


def load_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> HarnessConfig:
    """Load harness configuration.

    Precedence (highest to lowest):
    1. CLI flags (``overrides``; None values are skipped)
    2. Environment variables
    3. Config file
    4. Defaults

    Returns:
        HarnessConfig with values and sources

    Raises:
        ConfigError: On unreadable files or invalid values.
    """
    config = HarnessConfig()

    path = get_config_path(config_path)
    if path is not None:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        file_config = _read_config_file(path)
        for key in SCALAR_KEYS:
            if key in file_config:
                _apply(config, key, file_config[key], "config file")
        if "ports" in file_config:
            ports = file_config["ports"]
            if not isinstance(ports, dict):
                raise ConfigError("ports must be a mapping of group name to ports")
            try:
                config.port_groups = tuple(
                    PortGroup.from_dict(name, spec or {}) for name, spec in ports.items()
                )
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid ports section: {e}") from e
            config._sources["ports"] = "config file"

    # Override with environment variables
    for key, env_var in ENV_VARS.items():
        if os.environ.get(env_var):
            _apply(config, key, os.environ[env_var], "environment")

    for key, value in (overrides or {}).items():
        if value is not None:
            _apply(config, key, value, "cli")

    return config
