"""Per-day symptom findings for the cycle report.

Two lists pulled straight from the daily records, newest day first:

- positive_ovulation_test_days:  days with a positive ovulation test.
- abnormal_symptom_findings:  days worth showing a clinician.  A day counts
  for severe pain or a basal temperature outside 35.0-38.0 °C.  A note of
  120+ characters counts too.

Unlike clinical flags these are not pattern detections; each day stands on
its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Mapping

from cyclewise.engine.config_loader import EngineConfig, get_engine_config
from cyclewise.models.tracking import DaySymptomRecord, PainLevel

logger = logging.getLogger("cyclewise.engine.symptom_findings")


class FindingKind(str, Enum):
    severe_pain = "severe_pain"
    abnormal_bbt = "abnormal_bbt"
    long_note = "long_note"


@dataclass(frozen=True)
class SymptomFinding:
    """Everything notable about one recorded day.

    Attributes:
        day:               Calendar day of the record.
        kinds:             Findings for the day, in a fixed order.
        basal_body_temp_c: The recorded temperature when it is out of range.
    """

    day: date
    kinds: tuple[FindingKind, ...]
    basal_body_temp_c: float | None = None


def positive_ovulation_test_days(
    symptoms_by_day: Mapping[date, DaySymptomRecord] | None,
) -> list[date]:
    """Days with a positive ovulation test, newest first."""
    return sorted(
        (day for day, record in (symptoms_by_day or {}).items()
         if record.has_positive_ovulation_test),
        reverse=True,
    )


def _finding_for(
    day: date, record: DaySymptomRecord, config: EngineConfig
) -> SymptomFinding | None:
    sf = config.symptom_findings
    kinds: list[FindingKind] = []
    temp = None

    if record.pain is PainLevel.severe:
        kinds.append(FindingKind.severe_pain)
    bbt = record.basal_body_temp_c
    if bbt is not None and (bbt < sf.bbt_low_c or bbt > sf.bbt_high_c):
        kinds.append(FindingKind.abnormal_bbt)
        temp = round(bbt, 1)
    if record.note and len(record.note.strip()) >= sf.long_note_chars:
        kinds.append(FindingKind.long_note)

    if not kinds:
        return None
    return SymptomFinding(day=day, kinds=tuple(kinds), basal_body_temp_c=temp)


def abnormal_symptom_findings(
    symptoms_by_day: Mapping[date, DaySymptomRecord] | None,
    config: EngineConfig | None = None,
) -> list[SymptomFinding]:
    """Days with at least one finding, newest first."""
    cfg = config or get_engine_config()
    findings: list[SymptomFinding] = []
    for day in sorted(symptoms_by_day or {}, reverse=True):
        finding = _finding_for(day, symptoms_by_day[day], cfg)
        if finding is not None:
            findings.append(finding)
    logger.debug("%d day(s) with symptom findings", len(findings))
    return findings
