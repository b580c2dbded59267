"""Pydantic models for stored cycle data and the engine input snapshot."""

from cyclewise.models.tracking import (
    CervicalFluid,
    DaySymptomRecord,
    FlowIntensity,
    Mood,
    OvulationTestResult,
    PainLevel,
    PhysiologicalMode,
    UserSnapshot,
)

__all__ = [
    "CervicalFluid",
    "DaySymptomRecord",
    "FlowIntensity",
    "Mood",
    "OvulationTestResult",
    "PainLevel",
    "PhysiologicalMode",
    "UserSnapshot",
]
