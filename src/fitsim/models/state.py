# Copyright (c) Syntropy Systems
"""Pydantic models for the persisted partial state of a simulation."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import Field, PrivateAttr, ValidationError
from typing_extensions import override

from fitsim.errors import ResumeStateError

from .base import FitsimBaseModel
from .results import ConditionSummary

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from fitsim.grid import Condition


def utcnow() -> str:
    """Get current UTC time as ISO format string."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ConditionStatus(str, Enum):
    """Completion status of one condition."""

    PENDING = "pending"
    COMPLETED = "completed"


class StudySettings(FitsimBaseModel):
    """Settings that must match for a state file to be resumable."""

    replications: int
    base_seed: int
    max_retries: int = 0


class ConditionRecord(FitsimBaseModel):
    """Persisted progress of a single condition."""

    index: int
    sample_size: int
    model_type: str
    data_type: str
    status: ConditionStatus = ConditionStatus.PENDING
    seed: int
    elapsed_seconds: float | None = None
    summary: ConditionSummary | None = None

    def matches(self, condition: Condition) -> bool:
        """Check that this record describes ``condition``."""
        return (
            self.sample_size == condition.sample_size
            and self.model_type == condition.model_type.value
            and self.data_type == condition.data_type.value
        )


class SimulationState(FitsimBaseModel):
    """Per-condition progress of a simulation, written after every condition."""

    settings: StudySettings
    conditions: list[ConditionRecord] = Field(default_factory=list)
    created_at: str = ""
    updated_at: str | None = None

    _path: Path | None = PrivateAttr(default=None)

    @override
    def model_post_init(self, __context: object, /) -> None:
        if not self.created_at:
            self.created_at = utcnow()

    @classmethod
    def create(
        cls,
        grid: Sequence[Condition],
        settings: StudySettings,
        seeds: Sequence[int],
    ) -> SimulationState:
        """Create a fresh state with every condition pending."""
        return cls(
            settings=settings,
            conditions=[
                ConditionRecord(
                    index=index,
                    sample_size=condition.sample_size,
                    model_type=condition.model_type.value,
                    data_type=condition.data_type.value,
                    seed=seed,
                )
                for index, (condition, seed) in enumerate(zip(grid, seeds))
            ],
        )

    @classmethod
    def load(cls, path: Path) -> SimulationState:
        """Load state from a JSON file.

        Raises ResumeStateError if the file cannot be read or parsed.
        """
        try:
            state = cls.model_validate_json(path.read_bytes())
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            msg = f"Cannot read simulation state {path}: {e}"
            raise ResumeStateError(msg) from e
        state.set_path(path)
        return state

    def save(self) -> None:
        """Atomically write state to its JSON file."""
        if self._path is None:
            msg = "State path not set"
            raise ValueError(msg)

        self.updated_at = utcnow()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        _ = tmp_path.write_text(self.model_dump_json(indent=2))
        os.replace(tmp_path, self._path)

    def set_path(self, path: Path) -> None:
        """Set the state file path for persistence."""
        self._path = path

    def check_compatible(
        self,
        grid: Sequence[Condition],
        settings: StudySettings,
        seeds: Sequence[int],
    ) -> None:
        """Raise ResumeStateError unless this state belongs to the given study."""
        if self.settings != settings:
            msg = (
                f"State was written with {self.settings.model_dump()}, "
                f"current settings are {settings.model_dump()}"
            )
            raise ResumeStateError(msg)
        if len(self.conditions) != len(grid):
            msg = (
                f"State has {len(self.conditions)} conditions, "
                f"current grid has {len(grid)}"
            )
            raise ResumeStateError(msg)

        for index, (record, condition, seed) in enumerate(
            zip(self.conditions, grid, seeds)
        ):
            if record.index != index or not record.matches(condition):
                msg = f"State row {index} does not match condition {condition.label}"
                raise ResumeStateError(msg)
            if record.seed != seed:
                msg = f"State row {index} was run with seed {record.seed}, expected {seed}"
                raise ResumeStateError(msg)
            if record.status is not ConditionStatus.COMPLETED:
                continue
            summary = record.summary
            if summary is None:
                msg = f"State row {index} is marked completed without a summary"
                raise ResumeStateError(msg)
            if (
                summary.index != index
                or summary.seed != seed
                or summary.sample_size != condition.sample_size
                or summary.model_type != condition.model_type.value
                or summary.data_type != condition.data_type.value
            ):
                msg = f"State row {index} holds a summary for a different condition"
                raise ResumeStateError(msg)

    def mark_completed(self, summary: ConditionSummary) -> None:
        """Record a finished condition."""
        record = self.conditions[summary.index]
        record.status = ConditionStatus.COMPLETED
        record.elapsed_seconds = summary.elapsed_seconds
        record.summary = summary

    def completed_summaries(self) -> dict[int, ConditionSummary]:
        """Map condition index to summary for every completed condition."""
        return {
            record.index: record.summary
            for record in self.conditions
            if record.status is ConditionStatus.COMPLETED and record.summary is not None
        }

    @property
    def progress(self) -> tuple[int, int]:
        """Return (completed, total) condition counts."""
        done = sum(
            1 for record in self.conditions if record.status is ConditionStatus.COMPLETED
        )
        return done, len(self.conditions)
