# Copyright (c) Syntropy Systems
"""Pydantic models for fit statistics and per-condition summaries."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pydantic import Field

from .base import FrozenModel

if TYPE_CHECKING:
    from fitsim.grid import Condition

FIT_STATISTICS: tuple[str, ...] = ("cfi", "tli", "rmsea", "srmr", "chisq", "df")


class FitStatistics(FrozenModel):
    """Fit indices returned by a model fitter for one dataset."""

    cfi: float
    tli: float
    rmsea: float
    srmr: float
    chisq: float
    df: float

    def as_dict(self) -> dict[str, float]:
        """Return the statistics in their fixed layout order."""
        return {name: float(getattr(self, name)) for name in FIT_STATISTICS}


class ConditionSummary(FrozenModel):
    """Aggregated fit statistics and provenance for one condition."""

    index: int
    sample_size: int
    model_type: str
    data_type: str
    statistics: dict[str, float] = Field(default_factory=dict)
    replications: int
    completed: int
    failed: int
    retries: int = 0
    warnings: int = 0
    failed_condition: bool = False
    seed: int
    elapsed_seconds: float = 0.0

    @property
    def condition(self) -> Condition:
        """Rebuild the condition this row summarizes."""
        from fitsim.grid import Condition, DataType, ModelType

        return Condition(
            sample_size=self.sample_size,
            model_type=ModelType(self.model_type),
            data_type=DataType(self.data_type),
        )

    def same_values(self, other: ConditionSummary) -> bool:
        """Compare two summaries, treating NaN statistics as equal."""
        if self.model_dump(exclude={"statistics", "elapsed_seconds"}) != (
            other.model_dump(exclude={"statistics", "elapsed_seconds"})
        ):
            return False
        if self.statistics.keys() != other.statistics.keys():
            return False
        for name, value in self.statistics.items():
            theirs = other.statistics[name]
            if math.isnan(value) and math.isnan(theirs):
                continue
            if value != theirs:
                return False
        return True
