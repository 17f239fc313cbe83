# Copyright (c) Syntropy Systems
"""Shared Pydantic model helpers for fitsim."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, JsonValue
from typing_extensions import TypeAlias

JSONValue: TypeAlias = JsonValue


class FitsimBaseModel(BaseModel):
    """Base model with shared config for fitsim schemas.

    Non-finite floats are written as JSON constants (``NaN``) so undefined
    statistics survive a save/load cycle.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        ser_json_inf_nan="constants",
    )


class FrozenModel(FitsimBaseModel):
    """Immutable variant of :class:`FitsimBaseModel`."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        ser_json_inf_nan="constants",
        frozen=True,
    )
