# Copyright (c) Syntropy Systems
"""Pytest fixtures for fitsim tests."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Generator, Mapping
from pathlib import Path

import numpy as np
import pytest

from fitsim.errors import NonConvergenceError
from fitsim.grid import Condition, ModelType
from fitsim.models.results import FitStatistics

# Store original cwd at module load time
_original_cwd = Path.cwd()


def stub_generate(condition: Condition, rng: np.random.Generator) -> np.ndarray:
    """Small seed-dependent dataset."""
    return rng.standard_normal(condition.sample_size)


def stub_fit(condition: Condition, data: np.ndarray) -> FitStatistics:
    """Deterministic statistics derived from the data."""
    shift = float(np.mean(data))
    penalty = 0.05 if condition.model_type is ModelType.MISSPECIFIED else 0.0
    return FitStatistics(
        cfi=0.99 - penalty + shift / 100,
        tli=0.98 - penalty + shift / 100,
        rmsea=0.02 + penalty + abs(shift) / 100,
        srmr=0.03 + penalty,
        chisq=10.0 + shift,
        df=8.0,
    )


def always_fail(condition: Condition, data: object) -> Mapping[str, float]:
    """Fitter that never converges."""
    msg = "did not converge"
    raise NonConvergenceError(msg)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fitsim_project(temp_dir: Path) -> Generator[Path, None, None]:
    """Create a temporary fitsim project with a small study config."""
    from fitsim.config import StudyConfig, write_config

    fitsim_dir = temp_dir / ".fitsim"
    fitsim_dir.mkdir()
    config = StudyConfig(
        sample_sizes=[50, 100],
        model_types=["true", "misspecified"],
        data_types=["normal"],
        replications=4,
        base_seed=7,
    )
    write_config(config, fitsim_dir / "config.yaml")

    # Change to temp directory
    os.chdir(temp_dir)

    yield temp_dir

    # Always return to original cwd
    os.chdir(_original_cwd)


@pytest.fixture
def small_grid() -> tuple[Condition, ...]:
    """Grid with 2 x 2 x 1 conditions."""
    from fitsim.grid import build_grid

    return build_grid(
        {
            "sample_size": [100, 200],
            "model_type": ["true", "misspecified"],
            "data_type": ["normal"],
        }
    )
