# Copyright (c) Syntropy Systems
"""Simulation engine: runs every condition of a grid and assembles results."""
from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Executor, ProcessPoolExecutor, wait
from enum import Enum
from typing import TYPE_CHECKING, Callable

from fitsim.aggregate import summarize as default_summarize
from fitsim.errors import ConditionFailure, ConfigurationError
from fitsim.models.state import SimulationState, StudySettings
from fitsim.replication import ReplicationRunner
from fitsim.results import ResultsTable

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from pathlib import Path

    from fitsim.grid import Condition
    from fitsim.models.results import ConditionSummary
    from fitsim.replication import FitFn, GenerateFn

logger = logging.getLogger(__name__)

SummarizeFn = Callable[..., "ConditionSummary"]
ExecutorFactory = Callable[..., Executor]
ConditionCallback = Callable[["ConditionSummary", int, int], None]


class Parallelism(str, Enum):
    """How conditions are scheduled."""

    SEQUENTIAL = "sequential"
    CONDITIONS = "conditions"


def condition_seed(base_seed: int, index: int) -> int:
    """Seed for the condition at grid row ``index``."""
    return base_seed + index


def run_condition(
    index: int,
    condition: Condition,
    replications: int,
    seed: int,
    generate: GenerateFn,
    fit: FitFn,
    summarize: SummarizeFn,
    max_retries: int,
) -> ConditionSummary:
    """Run and summarize a single condition.

    Module-level so it can be shipped to worker processes.
    """
    started = time.perf_counter()
    runner = ReplicationRunner(generate, fit, max_retries=max_retries)
    outcome = runner.run(condition, replications, seed, condition_index=index)

    try:
        outcome.raise_for_status()
    except ConditionFailure as e:
        logger.warning("%s (%s); recording undefined statistics", e, condition.label)

    return summarize(
        condition,
        outcome.results,
        index=index,
        seed=seed,
        replications=replications,
        elapsed_seconds=time.perf_counter() - started,
    )


class SimulationEngine:
    """Runs a condition grid with per-condition seeds and resumable state.

    With ``state_path`` set, progress is written to a JSON file after every
    completed condition. The file only ever holds fully summarized
    conditions, so an interrupted run can be resumed with ``resume=True``.
    """

    generate: GenerateFn
    fit: FitFn
    summarize: SummarizeFn
    base_seed: int
    max_retries: int
    state_path: Path | None
    parallelism: Parallelism
    max_workers: int | None
    executor_factory: ExecutorFactory
    on_condition: ConditionCallback | None

    def __init__(
        self,
        generate: GenerateFn,
        fit: FitFn,
        summarize: SummarizeFn = default_summarize,
        *,
        base_seed: int = 0,
        max_retries: int = 0,
        state_path: Path | None = None,
        parallelism: Parallelism | str = Parallelism.SEQUENTIAL,
        max_workers: int | None = None,
        executor_factory: ExecutorFactory = ProcessPoolExecutor,
        on_condition: ConditionCallback | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            generate: ``generate(condition, rng)`` returning one dataset
            fit: ``fit(condition, data)`` returning fit statistics
            summarize: Aggregator building a ConditionSummary
            base_seed: Non-negative seed combined with each condition index
            max_retries: Retries per failed replication
            state_path: JSON file for resumable progress (None disables it)
            parallelism: ``sequential`` or ``conditions``
            max_workers: Worker count for parallel runs
            executor_factory: Executor class used for parallel runs
            on_condition: Called with (summary, done, total) as conditions finish

        """
        if base_seed < 0:
            msg = f"base_seed must be >= 0, got {base_seed}"
            raise ConfigurationError(msg)
        if max_retries < 0:
            msg = f"max_retries must be >= 0, got {max_retries}"
            raise ConfigurationError(msg)
        try:
            self.parallelism = Parallelism(parallelism)
        except ValueError as e:
            msg = f"Unknown parallelism: {parallelism!r}"
            raise ConfigurationError(msg) from e
        if max_workers is not None and max_workers < 1:
            msg = f"max_workers must be >= 1, got {max_workers}"
            raise ConfigurationError(msg)

        self.generate = generate
        self.fit = fit
        self.summarize = summarize
        self.base_seed = base_seed
        self.max_retries = max_retries
        self.state_path = state_path
        self.max_workers = max_workers
        self.executor_factory = executor_factory
        self.on_condition = on_condition

    def clean(self) -> bool:
        """Discard persisted state. Returns True if a file was removed."""
        if self.state_path is None or not self.state_path.exists():
            return False
        self.state_path.unlink()
        logger.info("Removed simulation state %s", self.state_path)
        return True

    def run(
        self,
        grid: Sequence[Condition],
        replications_per_condition: int,
        *,
        resume: bool = False,
    ) -> ResultsTable:
        """Run every condition of ``grid`` and return results in grid order."""
        if not grid:
            msg = "Condition grid is empty"
            raise ConfigurationError(msg)
        if replications_per_condition <= 0:
            msg = (
                "replications_per_condition must be a positive integer, "
                f"got {replications_per_condition}"
            )
            raise ConfigurationError(msg)

        settings = StudySettings(
            replications=replications_per_condition,
            base_seed=self.base_seed,
            max_retries=self.max_retries,
        )
        seeds = [condition_seed(self.base_seed, index) for index in range(len(grid))]
        state = self._prepare_state(grid, settings, seeds, resume=resume)

        summaries: dict[int, ConditionSummary] = {}
        if state is not None and resume:
            summaries.update(state.completed_summaries())
            if summaries:
                logger.info(
                    "Resuming: %d of %d conditions already completed",
                    len(summaries),
                    len(grid),
                )

        pending = [index for index in range(len(grid)) if index not in summaries]
        started = time.perf_counter()
        for summary in self._execute(grid, pending, seeds, replications_per_condition):
            summaries[summary.index] = summary
            if state is not None:
                state.mark_completed(summary)
                state.save()
            logger.info(
                "Condition %d/%d %s done in %.2fs (total %.1fs)",
                summary.index + 1,
                len(grid),
                grid[summary.index].label,
                summary.elapsed_seconds,
                time.perf_counter() - started,
            )
            if self.on_condition is not None:
                self.on_condition(summary, len(summaries), len(grid))

        return ResultsTable(rows=tuple(summaries[index] for index in range(len(grid))))

    def _prepare_state(
        self,
        grid: Sequence[Condition],
        settings: StudySettings,
        seeds: Sequence[int],
        *,
        resume: bool,
    ) -> SimulationState | None:
        if self.state_path is None:
            return None

        if resume and self.state_path.exists():
            state = SimulationState.load(self.state_path)
            state.check_compatible(grid, settings, seeds)
            return state

        if not resume:
            _ = self.clean()
        state = SimulationState.create(grid, settings, seeds)
        state.set_path(self.state_path)
        state.save()
        return state

    def _execute(
        self,
        grid: Sequence[Condition],
        pending: list[int],
        seeds: Sequence[int],
        replications: int,
    ) -> Iterator[ConditionSummary]:
        if self.parallelism is Parallelism.SEQUENTIAL or len(pending) <= 1:
            for index in pending:
                yield self._run_condition(grid, index, seeds, replications)
            return

        yield from self._execute_parallel(grid, pending, seeds, replications)

    def _run_condition(
        self,
        grid: Sequence[Condition],
        index: int,
        seeds: Sequence[int],
        replications: int,
    ) -> ConditionSummary:
        return run_condition(
            index,
            grid[index],
            replications,
            seeds[index],
            self.generate,
            self.fit,
            self.summarize,
            self.max_retries,
        )

    def _execute_parallel(
        self,
        grid: Sequence[Condition],
        pending: list[int],
        seeds: Sequence[int],
        replications: int,
    ) -> Iterator[ConditionSummary]:
        with self.executor_factory(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(
                    run_condition,
                    index,
                    grid[index],
                    replications,
                    seeds[index],
                    self.generate,
                    self.fit,
                    self.summarize,
                    self.max_retries,
                )
                for index in pending
            }
            try:
                while futures:
                    done, futures = wait(futures, return_when=FIRST_COMPLETED)
                    for future in done:
                        yield future.result()
            except BaseException:
                # Running tasks finish on executor exit; queued ones never start
                for future in futures:
                    _ = future.cancel()
                raise
