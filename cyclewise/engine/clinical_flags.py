"""Clinical flag engine.

Scans the cycle-length history and daily symptom records for patterns worth
a gentle nudge towards medical follow-up:

- short_cycles / long_cycles:  2+ of the last 5 cycles below 21 / above 35
  days (``suggest``), plus an ``info`` flag when the all-time median is
  atypical (< 22 or > 34 days, 3+ cycles).
- bleeding_longer_than_config / prolonged_bleeding:  the bleeding run from
  the latest period start exceeds the configured period length by more than
  a day (``info``) or lasts more than 8 days (``suggest``).
- intermenstrual_bleeding:  2+ bleeding days in the last 45 days outside the
  latest period window; ``suggest`` if any was medium or heavy.
- no_period:       more than 45 days since the latest start (60 for
  perimenopause and post-contraception).  Never evaluated postpartum or while
  breastfeeding.

The short/long pattern rule reads only the last 5 cycles; the median rule
reads the whole history.

Flags are advisory.  Each carries an opaque type tag for routing to
educational content and a short templated message; nothing here is
diagnostic.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Mapping

from cyclewise.engine.calendar import add_days, days_between, in_range
from cyclewise.engine.config_loader import EngineConfig, get_engine_config
from cyclewise.engine.history import CycleHistory, bleeding_run_length
from cyclewise.models.tracking import DaySymptomRecord, PhysiologicalMode

logger = logging.getLogger("cyclewise.engine.clinical_flags")


class FlagType(str, Enum):
    short_cycles = "short_cycles"
    long_cycles = "long_cycles"
    prolonged_bleeding = "prolonged_bleeding"
    bleeding_longer_than_config = "bleeding_longer_than_config"
    intermenstrual_bleeding = "intermenstrual_bleeding"
    no_period = "no_period"


class FlagSeverity(str, Enum):
    info = "info"
    suggest = "suggest"


@dataclass(frozen=True)
class ClinicalFlag:
    """One advisory finding.

    Attributes:
        type:     Routing tag.
        severity: ``info`` (worth knowing) or ``suggest`` (consider follow-up).
        title:    Short heading.
        message:  One or two sentences, templated.
    """

    type: FlagType
    severity: FlagSeverity
    title: str
    message: str


# Modes for which an absent period is expected.
_OVERDUE_SUPPRESSED_MODES = frozenset(
    {PhysiologicalMode.postpartum, PhysiologicalMode.breastfeeding}
)
_OVERDUE_RELAXED_MODES = frozenset(
    {PhysiologicalMode.perimenopause, PhysiologicalMode.post_contraception}
)


def _median(values: list[int]) -> float | None:
    return float(statistics.median(values)) if values else None


def _cycle_pattern_flags(lengths: list[int], config: EngineConfig) -> list[ClinicalFlag]:
    fc = config.clinical_flags
    if len(lengths) < fc.pattern_min_count:
        return []

    flags: list[ClinicalFlag] = []
    recent = lengths[-fc.recent_window:]
    short_count = sum(1 for v in recent if v < fc.short_cycle_lt)
    long_count = sum(1 for v in recent if v > fc.long_cycle_gt)

    if short_count >= fc.pattern_min_count:
        flags.append(
            ClinicalFlag(
                type=FlagType.short_cycles,
                severity=FlagSeverity.suggest,
                title="Shorter cycles than usual",
                message=(
                    f"{short_count} of your last {len(recent)} cycles were shorter than "
                    f"{fc.short_cycle_lt} days. If this keeps happening, consider "
                    "talking to a clinician or keeping a closer record."
                ),
            )
        )
    if long_count >= fc.pattern_min_count:
        flags.append(
            ClinicalFlag(
                type=FlagType.long_cycles,
                severity=FlagSeverity.suggest,
                title="Longer cycles than usual",
                message=(
                    f"{long_count} of your last {len(recent)} cycles were longer than "
                    f"{fc.long_cycle_gt} days. If this keeps happening, consider "
                    "talking to a clinician or keeping a closer record."
                ),
            )
        )

    median = _median(lengths)
    if (
        median is not None
        and len(lengths) >= fc.median_min_points
        and (median < fc.median_short_lt or median > fc.median_long_gt)
    ):
        flags.append(
            ClinicalFlag(
                type=FlagType.short_cycles if median < fc.median_short_lt else FlagType.long_cycles,
                severity=FlagSeverity.info,
                title="Atypical cycle length",
                message=(
                    f"Your typical cycle is about {median:g} days. That is not a problem "
                    "by itself, but it is worth watching if anything else changes."
                ),
            )
        )
    return flags


def _bleeding_length_flags(
    latest_start: date,
    period_length: int | None,
    symptoms_by_day: Mapping[date, DaySymptomRecord],
    config: EngineConfig,
) -> list[ClinicalFlag]:
    fc = config.clinical_flags
    run = bleeding_run_length(latest_start, symptoms_by_day, fc.bleeding_scan_cap_days)
    if run == 0:
        # no flow recorded for this period: nothing to compare
        return []

    flags: list[ClinicalFlag] = []
    configured = period_length if period_length and period_length > 0 else 0
    if configured and run > configured + fc.bleeding_over_config_margin:
        flags.append(
            ClinicalFlag(
                type=FlagType.bleeding_longer_than_config,
                severity=FlagSeverity.info,
                title="Bleeding lasted longer than your usual period",
                message=(
                    f"Based on the days you logged, bleeding lasted about {run} days "
                    f"while your settings say {configured}. If this repeats, it is worth "
                    "keeping an eye on."
                ),
            )
        )
    if run > fc.prolonged_bleeding_gt:
        flags.append(
            ClinicalFlag(
                type=FlagType.prolonged_bleeding,
                severity=FlagSeverity.suggest,
                title="Prolonged bleeding",
                message=(
                    f"Based on the days you logged, bleeding lasted about {run} days. "
                    "If this is not your usual pattern, consider seeking medical advice."
                ),
            )
        )
    return flags


def _intermenstrual_flag(
    latest_start: date,
    period_length: int | None,
    symptoms_by_day: Mapping[date, DaySymptomRecord],
    today: date,
    config: EngineConfig,
) -> ClinicalFlag | None:
    fc = config.clinical_flags
    low, high = fc.period_window_bounds
    configured = period_length if period_length is not None else config.defaults.period_length
    window_days = min(high, max(low, configured))
    window_end = add_days(latest_start, window_days - 1)

    outside = 0
    outside_heavy = 0
    for offset in range(fc.intermenstrual_lookback_days):
        day = add_days(today, -offset)
        record = symptoms_by_day.get(day)
        if record is None or not record.is_bleeding:
            continue
        if in_range(day, latest_start, window_end):
            continue
        outside += 1
        if record.is_heavy_flow:
            outside_heavy += 1

    if outside < fc.intermenstrual_min_days:
        return None

    if outside_heavy:
        return ClinicalFlag(
            type=FlagType.intermenstrual_bleeding,
            severity=FlagSeverity.suggest,
            title="Bleeding between periods",
            message=(
                f"You logged {outside} bleeding days outside your last period, some of "
                "them medium or heavy. If this repeats, or comes with pain or "
                "dizziness, consider seeking medical advice."
            ),
        )
    return ClinicalFlag(
        type=FlagType.intermenstrual_bleeding,
        severity=FlagSeverity.info,
        title="Spotting between periods",
        message=(
            f"You logged {outside} days of spotting or light bleeding outside your "
            "last period. If this repeats, consider a check-up."
        ),
    )


def _overdue_flag(
    latest_start: date,
    today: date,
    mode: PhysiologicalMode,
    config: EngineConfig,
) -> ClinicalFlag | None:
    if mode in _OVERDUE_SUPPRESSED_MODES:
        return None
    fc = config.clinical_flags
    limit = (
        max(fc.overdue_days_relaxed, fc.overdue_days_default)
        if mode in _OVERDUE_RELAXED_MODES
        else fc.overdue_days_default
    )
    since = days_between(latest_start, today)
    if since <= limit:
        return None
    return ClinicalFlag(
        type=FlagType.no_period,
        severity=FlagSeverity.suggest,
        title="Period is significantly late",
        message=(
            f"It has been {since} days since your last period started. If that is "
            "not expected for you, consider a test or medical advice."
        ),
    )


def compute_clinical_flags(
    history: CycleHistory,
    period_length: int | None,
    symptoms_by_day: Mapping[date, DaySymptomRecord] | None,
    today: date,
    mode: PhysiologicalMode = PhysiologicalMode.regular,
    config: EngineConfig | None = None,
) -> list[ClinicalFlag]:
    """Run every detection and return all triggered flags.

    Args:
        history:         Cycle history (starts and accepted lengths).
        period_length:   Configured period length.
        symptoms_by_day: Daily records keyed by day.
        today:           Reference day.
        mode:            Physiological mode.
        config:          Engine config (defaults to the global singleton).

    Returns:
        Flags in detection order; empty when nothing is known.
    """
    cfg = config or get_engine_config()
    symptoms = symptoms_by_day or {}

    flags = _cycle_pattern_flags(history.lengths, cfg)

    latest_start = history.current_start(today)
    if latest_start is not None:
        flags.extend(_bleeding_length_flags(latest_start, period_length, symptoms, cfg))

        intermenstrual = _intermenstrual_flag(latest_start, period_length, symptoms, today, cfg)
        if intermenstrual is not None:
            flags.append(intermenstrual)

        overdue = _overdue_flag(latest_start, today, mode, cfg)
        if overdue is not None:
            flags.append(overdue)

    if flags:
        logger.debug(
            "Clinical flags for %s: %s",
            today, ", ".join(f"{f.type.value}/{f.severity.value}" for f in flags),
        )
    return flags
