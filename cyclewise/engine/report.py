"""Cycle report: the single output record consumed by the UI, reminders and
exports.

Runs the whole pipeline for one snapshot::

    snapshot → history → {ovulation, regularity} → forecast → clinical flags
    snapshot → symptom findings
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from cyclewise.engine.clinical_flags import ClinicalFlag, compute_clinical_flags
from cyclewise.engine.config_loader import EngineConfig, get_engine_config
from cyclewise.engine.education import (
    EducationTopic,
    education_topic_for_flag,
    education_topic_for_mode,
)
from cyclewise.engine.forecast import CycleForecast, forecast_from_snapshot
from cyclewise.engine.history import (
    CycleHistory,
    CycleLengthPoint,
    history_from_snapshot,
    observed_period_lengths,
)
from cyclewise.engine.regularity import (
    PredictionConfidence,
    RegularityResult,
    classify_regularity,
    prediction_confidence,
)
from cyclewise.engine.symptom_findings import (
    SymptomFinding,
    abnormal_symptom_findings,
    positive_ovulation_test_days,
)
from cyclewise.models.tracking import PhysiologicalMode, UserSnapshot

logger = logging.getLogger("cyclewise.engine.report")


@dataclass
class CycleReport:
    """Everything the engine knows about one user on one day.

    Attributes:
        today:                  Reference day.
        physiological_mode:     Mode the report was computed under.
        age_years:              Age used for FIGO rules (None if unknown).
        cycle_points:           Accepted cycle lengths, oldest first.
        forecast:               Forecast for the current cycle.
        regularity:             Regularity statistics and verdict.
        confidence:             Prediction confidence grade.
        flags:                  Clinical flags.
        flag_topics:            Education topic per flag, same order as ``flags``.
        mode_topic:             Education topic for the current mode, if any.
        observed_period_lengths: Logged bleeding length per period start.
        avg_observed_period_length: Mean of the above.
        positive_ovulation_test_days: Days with a positive ovulation test, newest first.
        symptom_findings:       Days with notable symptoms, newest first.
    """

    today: date
    physiological_mode: PhysiologicalMode
    age_years: int | None
    cycle_points: list[CycleLengthPoint]
    forecast: CycleForecast
    regularity: RegularityResult
    confidence: PredictionConfidence
    flags: list[ClinicalFlag] = field(default_factory=list)
    flag_topics: list[EducationTopic] = field(default_factory=list)
    mode_topic: EducationTopic | None = None
    observed_period_lengths: list[int] = field(default_factory=list)
    avg_observed_period_length: float | None = None
    positive_ovulation_test_days: list[date] = field(default_factory=list)
    symptom_findings: list[SymptomFinding] = field(default_factory=list)


def compute_cycle_report(
    snapshot: UserSnapshot,
    config: EngineConfig | None = None,
    history: CycleHistory | None = None,
) -> CycleReport:
    """Run the full engine pipeline over one snapshot.

    Args:
        snapshot: Immutable user data for this call.
        config:   Engine config (defaults to the global singleton).
        history:  Pre-built history for the snapshot, if the caller has one.
    """
    cfg = config or get_engine_config()
    if history is None:
        history = history_from_snapshot(snapshot, cfg)
    mode = snapshot.physiological_mode
    age = snapshot.age_years

    forecast = forecast_from_snapshot(snapshot, history=history, config=cfg)
    regularity = classify_regularity(history.lengths, age_years=age, mode=mode, config=cfg)
    confidence = prediction_confidence(len(history.starts), mode=mode, config=cfg)
    flags = compute_clinical_flags(
        history,
        period_length=snapshot.manual_period_length,
        symptoms_by_day=snapshot.symptoms_by_day,
        today=snapshot.today,
        mode=mode,
        config=cfg,
    )
    period_lengths, avg_period = observed_period_lengths(
        history, snapshot.symptoms_by_day, config=cfg
    )

    logger.debug(
        "Report for %s: %d start(s), %d cycle(s), confidence=%s, %d flag(s)",
        snapshot.today, len(history.starts), history.n, confidence.value, len(flags),
    )

    return CycleReport(
        today=snapshot.today,
        physiological_mode=mode,
        age_years=age,
        cycle_points=list(history.points),
        forecast=forecast,
        regularity=regularity,
        confidence=confidence,
        flags=flags,
        flag_topics=[education_topic_for_flag(f) for f in flags],
        mode_topic=education_topic_for_mode(mode),
        observed_period_lengths=period_lengths,
        avg_observed_period_length=avg_period,
        positive_ovulation_test_days=positive_ovulation_test_days(snapshot.symptoms_by_day),
        symptom_findings=abnormal_symptom_findings(snapshot.symptoms_by_day, config=cfg),
    )


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(_plain(k)): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, float):
        return round(value, 2)
    return value


def report_to_dict(report: CycleReport) -> dict[str, Any]:
    """JSON-ready view of a report (ISO dates, enum values, rounded floats)."""
    data = _plain(asdict(report))
    forecast = report.forecast
    data["forecast"]["ovulation_date"] = _plain(forecast.ovulation_date)
    data["forecast"]["ovulation_observed"] = forecast.ovulation_observed
    return data
