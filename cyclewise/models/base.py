"""Shared Pydantic base models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CyclewiseBase(BaseModel):
    """Base model with shared config for all Cyclewise schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class FrozenBase(CyclewiseBase):
    """Immutable variant used for snapshots handed to the engine."""

    model_config = ConfigDict(frozen=True)
