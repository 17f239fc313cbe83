# Copyright (c) Syntropy Systems
"""Results table assembly and export."""
from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, overload

import pandas as pd

from fitsim.models.results import FIT_STATISTICS, ConditionSummary

if TYPE_CHECKING:
    from pathlib import Path

CONDITION_COLUMNS: tuple[str, ...] = ("index", "sample_size", "model_type", "data_type")
PROVENANCE_COLUMNS: tuple[str, ...] = (
    "replications",
    "completed",
    "failed",
    "retries",
    "warnings",
    "failed_condition",
    "seed",
    "elapsed_seconds",
)


@dataclass(frozen=True)
class ResultsTable(Sequence[ConditionSummary]):
    """Summary rows for every condition, in grid order."""

    rows: tuple[ConditionSummary, ...]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[ConditionSummary]:
        return iter(self.rows)

    @overload
    def __getitem__(self, index: int) -> ConditionSummary: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[ConditionSummary, ...]: ...

    def __getitem__(
        self, index: int | slice
    ) -> ConditionSummary | tuple[ConditionSummary, ...]:
        return self.rows[index]

    @property
    def failed_conditions(self) -> list[ConditionSummary]:
        """Rows where every replication failed."""
        return [row for row in self.rows if row.failed_condition]

    @property
    def statistic_names(self) -> list[str]:
        """Statistic columns in first-seen order."""
        names: list[str] = []
        for row in self.rows:
            for name in row.statistics:
                if name not in names:
                    names.append(name)
        return names or list(FIT_STATISTICS)

    def same_values(self, other: ResultsTable) -> bool:
        """Row-wise comparison, treating NaN statistics as equal."""
        return len(self) == len(other) and all(
            mine.same_values(theirs) for mine, theirs in zip(self.rows, other.rows)
        )

    def to_frame(self) -> pd.DataFrame:
        """One row per condition: parameters, statistic means, provenance."""
        statistics = self.statistic_names
        columns = [*CONDITION_COLUMNS, *statistics, *PROVENANCE_COLUMNS]
        records = []
        for row in self.rows:
            data = row.model_dump(exclude={"statistics"})
            data.update({name: row.statistics.get(name, float("nan")) for name in statistics})
            records.append(data)
        return pd.DataFrame.from_records(records, columns=columns)

    def to_long_frame(self) -> pd.DataFrame:
        """One row per (condition, statistic), for plotting against sample size."""
        return self.to_frame().melt(
            id_vars=[*CONDITION_COLUMNS, "completed", "failed_condition"],
            value_vars=self.statistic_names,
            var_name="statistic",
            value_name="value",
        )

    def export(self, output: Path, *, long: bool = False) -> None:
        """Write the table to ``.csv`` or ``.json`` depending on the suffix."""
        suffix = output.suffix.lower()
        if suffix not in (".csv", ".json"):
            msg = f"Output must be .csv or .json, got '{output.name}'"
            raise ValueError(msg)

        output.parent.mkdir(parents=True, exist_ok=True)
        frame = self.to_long_frame() if long else self.to_frame()
        if suffix == ".csv":
            frame.to_csv(output, index=False)
        else:
            _ = output.write_text(frame.to_json(orient="records", indent=2))

