# Copyright (c) Syntropy Systems
"""Wire a StudyConfig to the default generator, fitter and engine."""
from __future__ import annotations

from typing import TYPE_CHECKING

from fitsim.engine import ConditionCallback, SimulationEngine
from fitsim.fitting import CFAFitter
from fitsim.grid import Condition, build_grid
from fitsim.population import DataGenerator, PopulationModel

if TYPE_CHECKING:
    from pathlib import Path

    from fitsim.config import StudyConfig


def build_study_grid(config: StudyConfig) -> tuple[Condition, ...]:
    """Condition grid for the configured factor levels."""
    return build_grid(config.factor_levels())


def create_engine(
    config: StudyConfig,
    *,
    state_path: Path | None = None,
    on_condition: ConditionCallback | None = None,
) -> SimulationEngine:
    """Engine using the default population generator and CFA fitter."""
    population = PopulationModel(
        loading=config.loading,
        cross_loading=config.cross_loading,
        factor_correlation=config.factor_correlation,
    )
    return SimulationEngine(
        DataGenerator(
            population=population,
            skewness=config.skewness,
            kurtosis=config.kurtosis,
        ),
        CFAFitter(population=population),
        base_seed=config.base_seed,
        max_retries=config.max_retries,
        state_path=state_path,
        parallelism=config.parallelism,
        max_workers=config.max_workers,
        on_condition=on_condition,
    )
