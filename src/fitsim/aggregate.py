# Copyright (c) Syntropy Systems
"""Reduce replication results to one summary row per condition."""
from __future__ import annotations

import math
from typing import TYPE_CHECKING

from fitsim.errors import ConfigurationError
from fitsim.models.results import FIT_STATISTICS, ConditionSummary

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fitsim.grid import Condition
    from fitsim.replication import ReplicationResult


def column_means(vectors: Sequence[dict[str, float]]) -> dict[str, float]:
    """Element-wise arithmetic mean of statistics vectors.

    Uses exactly rounded summation, so the result does not depend on the
    order of ``vectors``. Every vector must have the same field layout.
    """
    if not vectors:
        return {name: math.nan for name in FIT_STATISTICS}

    layout = tuple(vectors[0])
    for vector in vectors[1:]:
        if tuple(vector) != layout:
            msg = (
                f"Fit statistics layout mismatch: expected {list(layout)}, "
                f"got {list(vector)}"
            )
            raise ConfigurationError(msg)

    n = len(vectors)
    return {name: math.fsum(v[name] for v in vectors) / n for name in layout}


def summarize(
    condition: Condition,
    results: Sequence[ReplicationResult],
    *,
    index: int,
    seed: int,
    replications: int | None = None,
    elapsed_seconds: float = 0.0,
) -> ConditionSummary:
    """Build the summary row for one condition.

    Failed replications are excluded from the means and counted. When no
    replication succeeded, every statistic is NaN and the row is flagged
    with ``failed_condition``.
    """
    vectors = [r.statistics for r in results if r.statistics is not None]
    completed = len(vectors)

    return ConditionSummary(
        index=index,
        sample_size=condition.sample_size,
        model_type=condition.model_type.value,
        data_type=condition.data_type.value,
        statistics=column_means(vectors),
        replications=len(results) if replications is None else replications,
        completed=completed,
        failed=len(results) - completed,
        retries=sum(r.retries for r in results),
        warnings=sum(len(r.warnings) for r in results),
        failed_condition=completed == 0,
        seed=seed,
        elapsed_seconds=elapsed_seconds,
    )
