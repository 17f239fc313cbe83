# Copyright (c) Syntropy Systems
"""Experimental conditions and grid generation."""
from __future__ import annotations

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from fitsim.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from fitsim.models.base import JSONValue


class ModelType(str, Enum):
    """Analysis model fitted to each dataset."""

    TRUE = "true"
    MISSPECIFIED = "misspecified"


class DataType(str, Enum):
    """Distribution of the generated indicators."""

    NORMAL = "normal"
    NON_NORMAL = "non_normal"


FACTORS: tuple[str, ...] = ("sample_size", "model_type", "data_type")


@dataclass(frozen=True)
class Condition:
    """One point of the experimental design."""

    sample_size: int
    model_type: ModelType
    data_type: DataType

    @property
    def label(self) -> str:
        """Short human-readable label, e.g. ``n=200/true/normal``."""
        return f"n={self.sample_size}/{self.model_type.value}/{self.data_type.value}"

    def as_dict(self) -> dict[str, JSONValue]:
        """Return the condition parameters as plain JSON values."""
        return {
            "sample_size": self.sample_size,
            "model_type": self.model_type.value,
            "data_type": self.data_type.value,
        }


def _coerce_sample_size(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        msg = f"Invalid sample size: {value!r}"
        raise ConfigurationError(msg)
    try:
        size = int(value)
    except ValueError as e:
        msg = f"Invalid sample size: {value!r}"
        raise ConfigurationError(msg) from e
    if size != float(value) or size <= 0:
        msg = f"Sample size must be a positive integer, got {value!r}"
        raise ConfigurationError(msg)
    return size


def _coerce_enum(enum_type: type[ModelType] | type[DataType], value: object) -> Enum:
    if isinstance(value, enum_type):
        return value
    # YAML reads an unquoted `true` as a boolean
    if isinstance(value, bool):
        value = str(value).lower()
    if isinstance(value, str):
        key = value.strip().lower().replace("-", "_")
        for member in enum_type:
            if key in (member.value, member.name.lower()):
                return member
    choices = ", ".join(member.value for member in enum_type)
    msg = f"Unknown {enum_type.__name__} level {value!r} (expected one of: {choices})"
    raise ConfigurationError(msg)


_COERCERS = {
    "sample_size": _coerce_sample_size,
    "model_type": lambda value: _coerce_enum(ModelType, value),
    "data_type": lambda value: _coerce_enum(DataType, value),
}


def normalize_levels(
    factor_levels: Mapping[str, Sequence[object]],
) -> dict[str, list[object]]:
    """Validate factor levels and coerce them to their condition types.

    Preserves the declaration order of the factors and of their levels.
    """
    unknown = [name for name in factor_levels if name not in FACTORS]
    if unknown:
        msg = f"Unknown factor(s): {', '.join(unknown)}"
        raise ConfigurationError(msg)
    missing = [name for name in FACTORS if name not in factor_levels]
    if missing:
        msg = f"Missing factor(s): {', '.join(missing)}"
        raise ConfigurationError(msg)

    normalized: dict[str, list[object]] = {}
    for name, levels in factor_levels.items():
        if isinstance(levels, (str, bytes)) or not levels:
            msg = f"Factor '{name}' must have at least one level"
            raise ConfigurationError(msg)
        coerced = [_COERCERS[name](level) for level in levels]
        if len(set(coerced)) != len(coerced):
            msg = f"Factor '{name}' has duplicate levels"
            raise ConfigurationError(msg)
        normalized[name] = coerced
    return normalized


def generate_grid_combinations(
    factor_levels: Mapping[str, Sequence[object]],
) -> Iterator[dict[str, object]]:
    """Generate all level combinations, last factor varying fastest."""
    normalized = normalize_levels(factor_levels)
    names = list(normalized)
    for combo in itertools.product(*normalized.values()):
        yield dict(zip(names, combo))


def build_grid(factor_levels: Mapping[str, Sequence[object]]) -> tuple[Condition, ...]:
    """Build the ordered condition grid.

    The position of a condition in the returned tuple is its row index; the
    order depends only on the input, so a partially completed study can be
    resumed by index.
    """
    return tuple(
        Condition(
            sample_size=combo["sample_size"],  # type: ignore[arg-type]
            model_type=combo["model_type"],  # type: ignore[arg-type]
            data_type=combo["data_type"],  # type: ignore[arg-type]
        )
        for combo in generate_grid_combinations(factor_levels)
    )
