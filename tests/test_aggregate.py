# Copyright (c) Syntropy Systems
"""Tests for aggregation of replication results."""

from __future__ import annotations

import itertools
import math

import pytest

from fitsim.aggregate import column_means, summarize
from fitsim.errors import ConfigurationError
from fitsim.grid import Condition, DataType, ModelType
from fitsim.models.results import FIT_STATISTICS
from fitsim.replication import ReplicationResult

CONDITION = Condition(200, ModelType.MISSPECIFIED, DataType.NON_NORMAL)


def _result(replication: int, value: float, **extra: float) -> ReplicationResult:
    statistics = {name: value for name in FIT_STATISTICS}
    statistics.update(extra)
    return ReplicationResult(replication=replication, attempts=1, statistics=statistics)


def _failed(replication: int, attempts: int = 1) -> ReplicationResult:
    return ReplicationResult(
        replication=replication,
        attempts=attempts,
        error="NonConvergenceError: did not converge",
    )


class TestColumnMeans:
    """Tests for column_means."""

    def test_mean(self) -> None:
        """Test element-wise arithmetic mean."""
        means = column_means([{"cfi": 0.9, "df": 8.0}, {"cfi": 1.0, "df": 8.0}])
        assert means == {"cfi": pytest.approx(0.95), "df": 8.0}

    def test_order_invariant(self) -> None:
        """Test every permutation gives bit-identical means."""
        vectors = [
            {"cfi": 0.1, "rmsea": 1e16},
            {"cfi": 0.2, "rmsea": 1.0},
            {"cfi": 0.3, "rmsea": -1e16},
            {"cfi": 0.7, "rmsea": 3.0},
        ]
        expected = column_means(vectors)
        for perm in itertools.permutations(vectors):
            assert column_means(list(perm)) == expected

    def test_layout_mismatch(self) -> None:
        """Test different field layouts are a configuration error."""
        with pytest.raises(ConfigurationError, match="layout"):
            _ = column_means([{"cfi": 0.9, "df": 8.0}, {"cfi": 0.9}])
        with pytest.raises(ConfigurationError, match="layout"):
            _ = column_means([{"cfi": 0.9, "df": 8.0}, {"df": 8.0, "cfi": 0.9}])

    def test_empty(self) -> None:
        """Test no vectors gives NaN for every statistic."""
        means = column_means([])
        assert list(means) == list(FIT_STATISTICS)
        assert all(math.isnan(v) for v in means.values())


class TestSummarize:
    """Tests for summarize."""

    def test_summary_fields(self) -> None:
        """Test provenance and counts on the summary row."""
        results = [_result(1, 0.9), _failed(2, attempts=3), _result(3, 1.0)]
        summary = summarize(
            CONDITION, results, index=4, seed=104, replications=3, elapsed_seconds=1.5
        )

        assert summary.index == 4
        assert summary.sample_size == 200
        assert summary.model_type == "misspecified"
        assert summary.data_type == "non_normal"
        assert summary.statistics["cfi"] == pytest.approx(0.95)
        assert summary.replications == 3
        assert summary.completed == 2
        assert summary.failed == 1
        assert summary.retries == 2
        assert summary.failed_condition is False
        assert summary.seed == 104
        assert summary.elapsed_seconds == 1.5
        assert summary.condition == CONDITION

    def test_order_invariant(self) -> None:
        """Test summarizing [a, b, c] and [c, a, b] gives the same row."""
        a, b, c = _result(1, 0.91), _result(2, 0.97), _failed(3)
        first = summarize(CONDITION, [a, b, c], index=0, seed=1)
        second = summarize(CONDITION, [c, a, b], index=0, seed=1)

        assert first == second

    def test_all_failed(self) -> None:
        """Test zero successes gives NaN statistics and the failure flag."""
        summary = summarize(CONDITION, [_failed(1), _failed(2)], index=0, seed=1)

        assert summary.failed_condition is True
        assert summary.completed == 0
        assert summary.failed == 2
        assert all(math.isnan(v) for v in summary.statistics.values())
        assert set(summary.statistics) == set(FIT_STATISTICS)

    def test_replications_default(self) -> None:
        """Test replications defaults to the number of results."""
        summary = summarize(CONDITION, [_result(1, 0.9)], index=0, seed=1)
        assert summary.replications == 1

    def test_same_values_nan(self) -> None:
        """Test NaN-aware comparison of summaries."""
        first = summarize(CONDITION, [_failed(1)], index=0, seed=1, elapsed_seconds=1)
        second = summarize(CONDITION, [_failed(1)], index=0, seed=1, elapsed_seconds=2)

        assert first != second
        assert first.same_values(second)
