# Copyright (c) Syntropy Systems
"""Configuration management for fitsim."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import cast

import yaml

from fitsim.errors import ConfigurationError

DIR_NAME = ".fitsim"


@dataclass
class StudyConfig:
    """Configuration for a fit-statistics simulation study."""

    # Factor levels, crossed in this order
    sample_sizes: list[int] = field(default_factory=lambda: [100, 200, 500, 1000])
    model_types: list[str] = field(default_factory=lambda: ["true", "misspecified"])
    data_types: list[str] = field(default_factory=lambda: ["normal", "non_normal"])

    # Replications per condition
    replications: int = 500

    # Condition i uses seed base_seed + i
    base_seed: int = 12345

    # Retries per failed replication (fresh draw each time)
    max_retries: int = 0

    # "sequential" or "conditions"
    parallelism: str = "sequential"
    max_workers: int | None = None

    # Population model
    loading: float = 0.7
    cross_loading: float = 0.3
    factor_correlation: float = 0.3

    # Non-normal indicators: univariate skewness and excess kurtosis
    skewness: float = 2.0
    kurtosis: float = 7.0

    def factor_levels(self) -> dict[str, list[object]]:
        """Return the experimental factors in declaration order."""
        return {
            "sample_size": list(self.sample_sizes),
            "model_type": list(self.model_types),
            "data_type": list(self.data_types),
        }

    def to_dict(self) -> dict[str, object]:
        """Return the configuration as YAML-friendly values."""
        return asdict(self)


_INT_KEYS = ("replications", "base_seed", "max_retries")
_FLOAT_KEYS = ("loading", "cross_loading", "factor_correlation", "skewness", "kurtosis")
_LIST_KEYS = ("sample_sizes", "model_types", "data_types")


def _apply(config: StudyConfig, data: dict[str, object]) -> StudyConfig:
    for key in _INT_KEYS:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            msg = f"Config key '{key}' must be an integer, got {value!r}"
            raise ConfigurationError(msg)
        setattr(config, key, value)

    for key in _FLOAT_KEYS:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            msg = f"Config key '{key}' must be a number, got {value!r}"
            raise ConfigurationError(msg)
        setattr(config, key, float(value))

    for key in _LIST_KEYS:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, list):
            msg = f"Config key '{key}' must be a list, got {value!r}"
            raise ConfigurationError(msg)
        setattr(config, key, value)

    parallelism = data.get("parallelism")
    if parallelism is not None:
        if not isinstance(parallelism, str):
            msg = f"Config key 'parallelism' must be a string, got {parallelism!r}"
            raise ConfigurationError(msg)
        config.parallelism = parallelism

    max_workers = data.get("max_workers")
    if max_workers is not None:
        if isinstance(max_workers, bool) or not isinstance(max_workers, int):
            msg = f"Config key 'max_workers' must be an integer, got {max_workers!r}"
            raise ConfigurationError(msg)
        config.max_workers = max_workers

    return config


def find_fitsim_dir(start_path: Path | None = None) -> Path | None:
    """Find the nearest .fitsim directory by walking up from start_path.

    Returns None if no .fitsim directory is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        fitsim_dir = current / DIR_NAME
        if fitsim_dir.is_dir():
            return fitsim_dir
        current = current.parent

    # Check root
    fitsim_dir = current / DIR_NAME
    if fitsim_dir.is_dir():
        return fitsim_dir

    return None


def get_global_config_dir() -> Path:
    """Get the global fitsim config directory (~/.fitsim)."""
    return Path.home() / DIR_NAME


def load_config(fitsim_dir: Path | None = None) -> StudyConfig:
    """Load configuration from .fitsim/config.yaml or defaults.

    Looks for config in:
    1. Provided fitsim_dir
    2. Nearest .fitsim directory walking up
    3. ~/.fitsim/config.yaml
    4. Defaults
    """
    config = StudyConfig()

    config_path = None

    if fitsim_dir is not None:
        config_path = fitsim_dir / "config.yaml"
    else:
        found_dir = find_fitsim_dir()
        if found_dir is not None:
            config_path = found_dir / "config.yaml"
        else:
            global_config = get_global_config_dir() / "config.yaml"
            if global_config.exists():
                config_path = global_config

    if config_path is not None and config_path.exists():
        try:
            with config_path.open() as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            msg = f"Cannot parse {config_path}: {e}"
            raise ConfigurationError(msg) from e
        if not isinstance(loaded, dict):
            msg = f"{config_path} must contain a mapping"
            raise ConfigurationError(msg)
        config = _apply(config, cast("dict[str, object]", loaded))

    return config


def write_config(config: StudyConfig, path: Path) -> None:
    """Write a configuration file."""
    with path.open("w") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)


def get_state_path(fitsim_dir: Path) -> Path:
    """Get the path to the resumable simulation state."""
    return fitsim_dir / "state.json"


def get_results_path(fitsim_dir: Path) -> Path:
    """Get the default path for the exported results table."""
    return fitsim_dir / "results.csv"


def require_fitsim_dir() -> Path:
    """Get fitsim directory or raise an error if not found."""
    fitsim_dir = find_fitsim_dir()
    if fitsim_dir is None:
        msg = "No .fitsim directory found. Run 'fitsim init' first."
        raise RuntimeError(msg)
    return fitsim_dir
