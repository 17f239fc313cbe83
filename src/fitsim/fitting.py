# Copyright (c) Syntropy Systems
"""Maximum-likelihood CFA fitting with semopy."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
import semopy

from fitsim.errors import NonConvergenceError
from fitsim.models.results import FitStatistics
from fitsim.population import PopulationModel

if TYPE_CHECKING:
    import pandas as pd

    from fitsim.grid import Condition

# semopy.calc_stats column -> FitStatistics field
_SEMOPY_STATS = {
    "CFI": "cfi",
    "TLI": "tli",
    "RMSEA": "rmsea",
    "chi2": "chisq",
    "DoF": "df",
}


def srmr(sample_cov: np.ndarray, implied_cov: np.ndarray) -> float:
    """Standardized root mean square residual over the lower triangle."""
    sd = np.sqrt(np.diag(sample_cov))
    residual = (sample_cov - implied_cov) / np.outer(sd, sd)
    rows, cols = np.tril_indices_from(residual)
    return float(np.sqrt(np.mean(residual[rows, cols] ** 2)))


@dataclass
class CFAFitter:
    """Default ``fit(condition, data)`` implementation.

    Fits the analysis model selected by ``condition.model_type`` and raises
    NonConvergenceError when estimation fails or yields undefined indices.
    """

    population: PopulationModel = field(default_factory=PopulationModel)
    objective: str = "MLW"

    def __call__(self, condition: Condition, data: pd.DataFrame) -> FitStatistics:
        model = semopy.Model(self.population.analysis_syntax(condition.model_type))
        try:
            result = model.fit(data, obj=self.objective)
        except (ValueError, ArithmeticError) as e:
            msg = f"Estimation failed: {e}"
            raise NonConvergenceError(msg) from e
        if not result.success:
            msg = f"Optimizer did not converge: {result.message}"
            raise NonConvergenceError(msg)

        try:
            stats = semopy.calc_stats(model).T["Value"]
            implied, _ = model.calc_sigma()
        except (ValueError, ArithmeticError) as e:
            msg = f"Fit indices could not be computed: {e}"
            raise NonConvergenceError(msg) from e

        observed = model.vars["observed"]
        sample = np.cov(data[observed].to_numpy(), rowvar=False, bias=True)

        values = {name: float(stats[column]) for column, name in _SEMOPY_STATS.items()}
        values["srmr"] = srmr(sample, implied)
        undefined = [name for name, value in values.items() if not math.isfinite(value)]
        if undefined:
            msg = f"Undefined fit indices: {', '.join(undefined)}"
            raise NonConvergenceError(msg)
        return FitStatistics(**values)
