# Copyright (c) Syntropy Systems
"""Population model and synthetic data generation.

The population is a two-factor model with standardized indicators. The
first indicator of the second factor also loads on the first factor
(the cross-loading); the misspecified analysis model leaves it out.

Non-normal data use Fleishman's power transform ``a + bZ + cZ^2 + dZ^3``
applied to multivariate normal draws whose correlations are adjusted so the
transformed variables keep the population correlations (Vale & Maurelli).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd
from scipy import optimize

from fitsim.errors import ConfigurationError, InvalidCovarianceError
from fitsim.grid import DataType, ModelType

if TYPE_CHECKING:
    from fitsim.grid import Condition

logger = logging.getLogger(__name__)

FleishmanCoefficients = tuple[float, float, float, float]


@dataclass(frozen=True)
class PopulationModel:
    """Two correlated factors with one cross-loading."""

    loading: float = 0.7
    cross_loading: float = 0.3
    factor_correlation: float = 0.3
    indicators_per_factor: int = 3

    @property
    def indicators(self) -> list[str]:
        return [f"x{i + 1}" for i in range(2 * self.indicators_per_factor)]

    @property
    def cross_loaded_indicator(self) -> str:
        return self.indicators[self.indicators_per_factor]

    def loadings(self) -> np.ndarray:
        """Loading matrix, indicators x factors."""
        k = self.indicators_per_factor
        matrix = np.zeros((2 * k, 2))
        matrix[:k, 0] = self.loading
        matrix[k:, 1] = self.loading
        matrix[k, 0] = self.cross_loading
        return matrix

    def covariance(self) -> np.ndarray:
        """Model-implied covariance with unit indicator variances."""
        if not -1.0 < self.factor_correlation < 1.0:
            msg = f"Factor correlation {self.factor_correlation} is outside (-1, 1)"
            raise InvalidCovarianceError(msg)

        phi = np.array([[1.0, self.factor_correlation], [self.factor_correlation, 1.0]])
        lam = self.loadings()
        common = lam @ phi @ lam.T
        residual = 1.0 - np.diag(common)
        if np.any(residual <= 0):
            msg = "Loadings leave non-positive residual variances"
            raise InvalidCovarianceError(msg)
        return common + np.diag(residual)

    def analysis_syntax(self, model_type: ModelType) -> str:
        """Model description in lavaan/semopy syntax."""
        k = self.indicators_per_factor
        first = self.indicators[:k]
        second = self.indicators[k:]
        if model_type is ModelType.TRUE and self.cross_loading != 0.0:
            first = [*first, self.cross_loaded_indicator]
        return "\n".join(
            [
                f"F1 =~ {' + '.join(first)}",
                f"F2 =~ {' + '.join(second)}",
            ]
        )


def _fleishman_equations(x: np.ndarray, skewness: float, kurtosis: float) -> list[float]:
    b, c, d = x
    return [
        b**2 + 6 * b * d + 2 * c**2 + 15 * d**2 - 1,
        2 * c * (b**2 + 24 * b * d + 105 * d**2 + 2) - skewness,
        24
        * (
            b * d
            + c**2 * (1 + b**2 + 28 * b * d)
            + d**2 * (12 + 48 * b * d + 141 * c**2 + 225 * d**2)
        )
        - kurtosis,
    ]


def fleishman_coefficients(skewness: float, kurtosis: float) -> FleishmanCoefficients:
    """Solve Fleishman's equations for (a, b, c, d).

    ``kurtosis`` is excess kurtosis. Raises ConfigurationError when the
    pair is outside the range the transform can reach.
    """
    if skewness == 0.0 and kurtosis == 0.0:
        return (0.0, 1.0, 0.0, 0.0)

    guesses = ((1.0, 0.0, 0.0), (0.9, skewness / 6, 0.05), (0.5, 0.5, 0.1))
    for guess in guesses:
        solution, _, ier, _ = optimize.fsolve(
            _fleishman_equations,
            guess,
            args=(skewness, kurtosis),
            full_output=True,
        )
        residual = _fleishman_equations(solution, skewness, kurtosis)
        if ier == 1 and np.allclose(residual, 0.0, atol=1e-8):
            b, c, d = (float(v) for v in solution)
            if b < 0:
                b, d = -b, -d
            return (-c, b, c, d)

    msg = f"No Fleishman transform for skewness={skewness}, kurtosis={kurtosis}"
    raise ConfigurationError(msg)


def intermediate_correlation(rho: float, coefficients: FleishmanCoefficients) -> float:
    """Normal correlation that becomes ``rho`` after the power transform."""
    _, b, c, d = coefficients
    roots = np.roots([6 * d**2, 2 * c**2, (b + 3 * d) ** 2, -rho])
    candidates = [
        float(root.real)
        for root in roots
        if abs(root.imag) < 1e-10 and -1.0 <= root.real <= 1.0
    ]
    if not candidates:
        msg = f"No intermediate correlation reproduces {rho:.4f}"
        raise InvalidCovarianceError(msg)
    return min(candidates, key=lambda r: abs(r - rho))


def _cholesky(matrix: np.ndarray) -> np.ndarray:
    try:
        return np.linalg.cholesky(matrix)
    except np.linalg.LinAlgError as e:
        msg = "Covariance matrix is not positive definite"
        raise InvalidCovarianceError(msg) from e


def draw_normal(sigma: np.ndarray, n: int, rng: np.random.Generator) -> np.ndarray:
    """Draw ``n`` zero-mean multivariate normal rows with covariance ``sigma``."""
    factor = _cholesky(sigma)
    return rng.standard_normal((n, sigma.shape[0])) @ factor.T


def draw_non_normal(
    sigma: np.ndarray,
    n: int,
    rng: np.random.Generator,
    coefficients: FleishmanCoefficients,
) -> np.ndarray:
    """Draw ``n`` rows with covariance ``sigma`` and Fleishman marginals."""
    sd = np.sqrt(np.diag(sigma))
    corr = sigma / np.outer(sd, sd)
    p = corr.shape[0]

    adjusted = np.eye(p)
    for i in range(p):
        for j in range(i):
            value = intermediate_correlation(float(corr[i, j]), coefficients)
            adjusted[i, j] = adjusted[j, i] = value

    z = draw_normal(adjusted, n, rng)
    a, b, c, d = coefficients
    return (a + b * z + c * z**2 + d * z**3) * sd


@dataclass
class DataGenerator:
    """Default ``generate(condition, rng)`` implementation."""

    population: PopulationModel = field(default_factory=PopulationModel)
    skewness: float = 2.0
    kurtosis: float = 7.0
    _coefficients: FleishmanCoefficients = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._coefficients = fleishman_coefficients(self.skewness, self.kurtosis)
        logger.debug(
            "Fleishman coefficients for skew=%s kurtosis=%s: %s",
            self.skewness,
            self.kurtosis,
            self._coefficients,
        )

    def __call__(self, condition: Condition, rng: np.random.Generator) -> pd.DataFrame:
        sigma = self.population.covariance()
        if condition.data_type is DataType.NORMAL:
            values = draw_normal(sigma, condition.sample_size, rng)
        else:
            values = draw_non_normal(
                sigma, condition.sample_size, rng, self._coefficients
            )
        return pd.DataFrame(values, columns=self.population.indicators)
