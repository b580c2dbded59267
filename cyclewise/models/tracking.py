"""Pydantic models for user-entered cycle data: daily symptom records,
physiological mode, and the immutable snapshot the engine consumes."""

from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from typing import Any

from pydantic import Field, ValidationError, field_validator

from cyclewise.engine.calendar import ParseError, parse_day
from cyclewise.models.base import CyclewiseBase, FrozenBase

logger = logging.getLogger("cyclewise.models.tracking")


# ---------- Enums ----------

class FlowIntensity(str, Enum):
    none = "none"
    light = "light"
    medium = "medium"
    heavy = "heavy"


class PainLevel(str, Enum):
    none = "none"
    mild = "mild"
    moderate = "moderate"
    severe = "severe"


class Mood(str, Enum):
    good = "good"
    ok = "ok"
    low = "low"
    anxious = "anxious"


class CervicalFluid(str, Enum):
    dry = "dry"
    sticky = "sticky"
    creamy = "creamy"
    watery = "watery"
    eggwhite = "eggwhite"


class OvulationTestResult(str, Enum):
    negative = "negative"
    positive = "positive"


class PhysiologicalMode(str, Enum):
    regular = "regular"
    postpartum = "postpartum"
    breastfeeding = "breastfeeding"
    perimenopause = "perimenopause"
    post_contraception = "post_contraception"

    @classmethod
    def parse(cls, value: Any) -> PhysiologicalMode:
        """Resolve a stored mode, including legacy spellings.

        Unknown values fall back to ``regular`` so a bad setting can never
        soften alerts for a user who is not in a special state.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.regular
        text = str(value).strip()
        if text in _LEGACY_MODES:
            return _LEGACY_MODES[text]
        try:
            return cls(text)
        except ValueError:
            logger.warning("Unknown physiological mode %r; using 'regular'", value)
            return cls.regular

    @property
    def is_special(self) -> bool:
        return self is not PhysiologicalMode.regular


_LEGACY_MODES = {
    "none": PhysiologicalMode.regular,
    "": PhysiologicalMode.regular,
    "stoppingPills": PhysiologicalMode.post_contraception,
    "postOCP": PhysiologicalMode.post_contraception,
}

_POSITIVE_TEST_VALUES = frozenset({"positive", "pos", "true", "yes", "y", "1"})
_NEGATIVE_TEST_VALUES = frozenset({"negative", "neg", "false", "no", "n", "0"})


# ---------- Daily symptom record ----------

class DaySymptomRecord(CyclewiseBase):
    """Everything recorded for one calendar day.

    Every field is optional: ``None`` means "not recorded", which is distinct
    from an explicit ``FlowIntensity.none``.  Aliases match the keys written
    by the mobile client.
    """

    flow: FlowIntensity | None = None
    pain: PainLevel | None = None
    mood: Mood | None = None
    cervical_fluid: CervicalFluid | None = Field(default=None, alias="discharge")
    intercourse: bool | None = Field(default=None, alias="sex")
    ovulation_test: OvulationTestResult | None = Field(default=None, alias="ovulationTest")
    basal_body_temp_c: float | None = Field(default=None, alias="bbt")
    note: str | None = Field(default=None, alias="notes")
    photo_ref: str | None = Field(default=None, alias="photoUri")

    @field_validator("ovulation_test", mode="before")
    @classmethod
    def _lenient_ovulation_test(cls, value: Any) -> Any:
        if value is None or isinstance(value, OvulationTestResult):
            return value
        if value is True:
            return OvulationTestResult.positive
        if value is False:
            return OvulationTestResult.negative
        text = str(value).strip().lower()
        if text in _POSITIVE_TEST_VALUES:
            return OvulationTestResult.positive
        if text in _NEGATIVE_TEST_VALUES:
            return OvulationTestResult.negative
        logger.warning("Unrecognised ovulation test value %r; treating as not recorded", value)
        return None

    @property
    def is_bleeding(self) -> bool:
        """True if flow was recorded and is anything other than ``none``."""
        return self.flow is not None and self.flow is not FlowIntensity.none

    @property
    def is_heavy_flow(self) -> bool:
        return self.flow in (FlowIntensity.medium, FlowIntensity.heavy)

    @property
    def has_positive_ovulation_test(self) -> bool:
        return self.ovulation_test is OvulationTestResult.positive

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in type(self).model_fields)

    def merged(self, patch: DaySymptomRecord) -> DaySymptomRecord:
        """Apply a merge-patch: fields set on ``patch`` overwrite, the rest are kept."""
        return self.model_copy(update=patch.model_dump(exclude_unset=True))

    def to_store(self) -> dict[str, Any]:
        """Serialise with client aliases, omitting unrecorded fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------- Engine input snapshot ----------

class UserSnapshot(FrozenBase):
    """One immutable view of a user's stored data, handed to the engine per call.

    Malformed dates are dropped with a warning rather than failing the whole
    snapshot; absence of data is an expected state.
    """

    period_start_dates: tuple[date, ...] = ()
    period_start_fallback: date | None = None
    symptoms_by_day: dict[date, DaySymptomRecord] = Field(default_factory=dict)
    manual_cycle_length: int = 28
    manual_period_length: int = 5
    physiological_mode: PhysiologicalMode = PhysiologicalMode.regular
    birthday: date | None = None
    today: date = Field(default_factory=date.today)

    @field_validator("period_start_dates", mode="before")
    @classmethod
    def _parse_period_starts(cls, value: Any) -> Any:
        if value is None:
            return ()
        days: set[date] = set()
        for raw in value:
            try:
                days.add(parse_day(raw))
            except ParseError as exc:
                logger.warning("Dropping unparseable period start: %s", exc)
        return tuple(sorted(days))

    @field_validator("period_start_fallback", "birthday", mode="before")
    @classmethod
    def _parse_optional_day(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        try:
            return parse_day(value)
        except ParseError as exc:
            logger.warning("Dropping unparseable date: %s", exc)
            return None

    @field_validator("today", mode="before")
    @classmethod
    def _parse_today(cls, value: Any) -> Any:
        return parse_day(value)

    @field_validator("physiological_mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> PhysiologicalMode:
        return PhysiologicalMode.parse(value)

    @field_validator("symptoms_by_day", mode="before")
    @classmethod
    def _parse_symptoms(cls, value: Any) -> Any:
        if value is None:
            return {}
        records: dict[date, DaySymptomRecord] = {}
        for raw_key, raw_record in dict(value).items():
            try:
                day = parse_day(raw_key)
            except ParseError as exc:
                logger.warning("Dropping symptom record with bad day key: %s", exc)
                continue
            if raw_record is None:
                continue
            try:
                record = (
                    raw_record
                    if isinstance(raw_record, DaySymptomRecord)
                    else DaySymptomRecord.model_validate(raw_record)
                )
            except ValidationError as exc:
                logger.warning(
                    "Dropping invalid symptom record for %s (%d error(s))",
                    day, exc.error_count(),
                )
                continue
            records[day] = record
        # chronological iteration order
        return dict(sorted(records.items()))

    @property
    def age_years(self) -> int | None:
        """Whole years of age at ``today``, or None if unknown or implausible."""
        if self.birthday is None:
            return None
        b, t = self.birthday, self.today
        age = t.year - b.year - ((t.month, t.day) < (b.month, b.day))
        if age < 0 or age > 120:
            return None
        return age
