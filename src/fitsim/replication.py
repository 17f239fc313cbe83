# Copyright (c) Syntropy Systems
"""Replication runner: repeated generate -> fit with failure isolation."""
from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Union

import numpy as np
from typing_extensions import TypeAlias

from fitsim.errors import ConditionFailure, ConfigurationError, ReplicationError
from fitsim.models.results import FitStatistics

if TYPE_CHECKING:
    from fitsim.grid import Condition

logger = logging.getLogger(__name__)

FitResult: TypeAlias = Union[FitStatistics, Mapping[str, float]]
GenerateFn: TypeAlias = Callable[["Condition", np.random.Generator], Any]
FitFn: TypeAlias = Callable[["Condition", Any], FitResult]


def replication_rng(seed: int, replication: int, attempt: int) -> np.random.Generator:
    """Get an independent generator for one attempt of one replication.

    Depends only on its arguments, never on global random state or on the
    order in which replications are scheduled.
    """
    return np.random.default_rng(np.random.SeedSequence([seed, replication, attempt]))


def as_statistics(result: object) -> dict[str, float]:
    """Convert a fitter result into a plain ``name -> value`` mapping."""
    if isinstance(result, FitStatistics):
        return result.as_dict()
    if not isinstance(result, Mapping):
        msg = (
            "Fit function must return FitStatistics or a mapping, "
            f"got {type(result).__name__}"
        )
        raise ConfigurationError(msg)
    statistics: dict[str, float] = {}
    for name, value in result.items():
        try:
            statistics[str(name)] = float(value)
        except (TypeError, ValueError) as e:
            msg = f"Fit statistic '{name}' is not numeric: {value!r}"
            raise ConfigurationError(msg) from e
    return statistics


@dataclass
class ReplicationResult:
    """Outcome of one replication, after any retries."""

    replication: int
    attempts: int
    statistics: dict[str, float] | None = None
    error: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Whether the replication produced statistics."""
        return self.statistics is not None

    @property
    def retries(self) -> int:
        """Number of attempts beyond the first."""
        return self.attempts - 1


@dataclass
class ReplicationOutcome:
    """All replication results for one condition."""

    condition: Condition
    condition_index: int
    results: list[ReplicationResult]

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def retries(self) -> int:
        return sum(r.retries for r in self.results)

    @property
    def warnings(self) -> int:
        return sum(len(r.warnings) for r in self.results)

    def raise_for_status(self) -> None:
        """Raise ConditionFailure if no replication succeeded."""
        if self.results and self.succeeded == 0:
            raise ConditionFailure(self.condition_index, self.failed)


class ReplicationRunner:
    """Runs the replications of a single condition.

    Each replication calls ``generate(condition, rng)`` then
    ``fit(condition, data)``. A :class:`ReplicationError` from either is
    retried with a fresh draw up to ``max_retries`` times before the
    replication is marked as failed. Any other exception aborts the
    condition.
    """

    generate: GenerateFn
    fit: FitFn
    max_retries: int

    def __init__(
        self,
        generate: GenerateFn,
        fit: FitFn,
        max_retries: int = 0,
    ) -> None:
        if max_retries < 0:
            msg = f"max_retries must be >= 0, got {max_retries}"
            raise ConfigurationError(msg)
        self.generate = generate
        self.fit = fit
        self.max_retries = max_retries

    def run(
        self,
        condition: Condition,
        replications: int,
        seed: int,
        condition_index: int = 0,
    ) -> ReplicationOutcome:
        """Run ``replications`` replications of ``condition``."""
        if replications <= 0:
            msg = f"replications must be a positive integer, got {replications}"
            raise ConfigurationError(msg)

        results = [
            self._run_replication(condition, replication, seed)
            for replication in range(1, replications + 1)
        ]
        outcome = ReplicationOutcome(
            condition=condition,
            condition_index=condition_index,
            results=results,
        )
        logger.info(
            "%s: %d/%d replications succeeded (%d failed, %d retries, %d warnings)",
            condition.label,
            outcome.succeeded,
            replications,
            outcome.failed,
            outcome.retries,
            outcome.warnings,
        )
        return outcome

    def _run_replication(
        self,
        condition: Condition,
        replication: int,
        seed: int,
    ) -> ReplicationResult:
        captured: list[str] = []
        error: str | None = None

        for attempt in range(self.max_retries + 1):
            rng = replication_rng(seed, replication, attempt)
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                try:
                    data = self.generate(condition, rng)
                    statistics = as_statistics(self.fit(condition, data))
                except ReplicationError as e:
                    error = f"{type(e).__name__}: {e}"
                    logger.debug(
                        "%s replication %d attempt %d failed: %s",
                        condition.label,
                        replication,
                        attempt + 1,
                        error,
                    )
                    continue
                finally:
                    captured.extend(str(w.message) for w in caught)

            return ReplicationResult(
                replication=replication,
                attempts=attempt + 1,
                statistics=statistics,
                warnings=captured,
            )

        return ReplicationResult(
            replication=replication,
            attempts=self.max_retries + 1,
            error=error,
            warnings=captured,
        )
