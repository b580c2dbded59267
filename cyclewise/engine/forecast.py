"""Cycle forecast engine.

Combines the cycle history with the resolved ovulation day to predict:
- Next period start
- Fertile window
- Current cycle day and "is today in X" booleans

Everything is recomputed on each call from the snapshot it is given; there
is no cached state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Mapping

from cyclewise.engine.calendar import add_days, days_between, in_range
from cyclewise.engine.config_loader import EngineConfig, get_engine_config
from cyclewise.engine.history import (
    CycleHistory,
    effective_cycle_length,
    history_from_snapshot,
)
from cyclewise.engine.ovulation import OvulationResolution, resolve_ovulation
from cyclewise.models.tracking import DaySymptomRecord, UserSnapshot

logger = logging.getLogger("cyclewise.engine.forecast")


class DayMark(str, Enum):
    period = "period"
    ovulation = "ovulation"
    fertile = "fertile"


@dataclass
class CycleForecast:
    """Forecast for the current cycle.

    Attributes:
        today:                Reference day the forecast was computed for.
        cycle_start:          Latest period start on or before ``today``.
        cycle_length:         Cycle length used (history mean or manual).
        period_length:        Configured period length.
        computed_period_end:  ``cycle_start + period_length - 1``.
        ovulation:            Resolved ovulation (observed or estimated).
        fertile_window_start: ``ovulation - days_before`` (inclusive).
        fertile_window_end:   ``ovulation + days_after`` (inclusive).
        next_period_start:    ``ovulation + luteal`` when observed, otherwise
                              ``cycle_start + cycle_length``.
        cycle_day:            1-based day of the current cycle.
        in_period_by_calc:    Today falls in the calculated bleeding days.
        in_fertile_window:    Today falls in the fertile window.
    """

    today: date
    cycle_start: date | None = None
    cycle_length: int | None = None
    period_length: int | None = None
    computed_period_end: date | None = None
    ovulation: OvulationResolution | None = None
    fertile_window_start: date | None = None
    fertile_window_end: date | None = None
    next_period_start: date | None = None
    cycle_day: int | None = None
    in_period_by_calc: bool = False
    in_fertile_window: bool = False

    @property
    def ovulation_date(self) -> date | None:
        return self.ovulation.ovulation_date if self.ovulation else None

    @property
    def ovulation_observed(self) -> bool:
        return bool(self.ovulation and self.ovulation.observed)


def compute_forecast(
    history: CycleHistory,
    today: date,
    cycle_length: int | None,
    period_length: int | None,
    symptoms_by_day: Mapping[date, DaySymptomRecord] | None = None,
    config: EngineConfig | None = None,
) -> CycleForecast:
    """Compute the forecast for the cycle containing ``today``.

    Args:
        history:         Cycle history (see ``build_cycle_history``).
        today:           Reference day.
        cycle_length:    Cycle length to project with.
        period_length:   Configured bleeding length.
        symptoms_by_day: Daily records, consulted for ovulation tests.
        config:          Engine config (defaults to the global singleton).

    Returns:
        CycleForecast; every field is None/False when no start is known.
    """
    cfg = config or get_engine_config()
    forecast = CycleForecast(
        today=today,
        cycle_length=cycle_length,
        period_length=period_length,
    )

    start = history.current_start(today)
    if start is None:
        logger.debug("No period start on or before %s; forecast unknown", today)
        return forecast
    forecast.cycle_start = start
    forecast.cycle_day = days_between(start, today) + 1

    if period_length and period_length > 0:
        period_end = add_days(start, period_length - 1)
        forecast.computed_period_end = period_end
        forecast.in_period_by_calc = in_range(today, start, period_end)

    ovulation = resolve_ovulation(start, cycle_length, symptoms_by_day, config=cfg)
    if ovulation is None:
        return forecast
    forecast.ovulation = ovulation

    fw = cfg.fertile_window
    forecast.fertile_window_start = add_days(ovulation.ovulation_date, -fw.days_before_ovulation)
    forecast.fertile_window_end = add_days(ovulation.ovulation_date, fw.days_after_ovulation)
    forecast.in_fertile_window = in_range(
        today, forecast.fertile_window_start, forecast.fertile_window_end
    )

    if ovulation.observed:
        forecast.next_period_start = add_days(
            ovulation.ovulation_date, cfg.ovulation.luteal_phase_days
        )
    else:
        forecast.next_period_start = add_days(start, cycle_length)

    return forecast


def forecast_from_snapshot(
    snapshot: UserSnapshot,
    history: CycleHistory | None = None,
    config: EngineConfig | None = None,
) -> CycleForecast:
    """Forecast straight from a user snapshot.

    The cycle length is the history mean when any cycle has completed,
    otherwise the manual setting.
    """
    cfg = config or get_engine_config()
    if history is None:
        history = history_from_snapshot(snapshot, cfg)
    return compute_forecast(
        history,
        today=snapshot.today,
        cycle_length=effective_cycle_length(history, snapshot.manual_cycle_length),
        period_length=snapshot.manual_period_length,
        symptoms_by_day=snapshot.symptoms_by_day,
        config=cfg,
    )


def day_marks(
    days: Iterable[date],
    cycle_start: date | None,
    cycle_length: int | None,
    period_length: int,
    symptoms_by_day: Mapping[date, DaySymptomRecord] | None = None,
    config: EngineConfig | None = None,
) -> dict[date, DayMark | None]:
    """Project the current cycle onto a grid of calendar days.

    Each day is placed in the cycle by its offset from ``cycle_start`` modulo
    the cycle length, so past and future cycles repeat the current pattern.
    Period days take precedence, then the ovulation day, then the fertile
    window (clipped to the cycle).

    Returns:
        Mapping of day → mark (None for unmarked days).  Empty when the start
        or cycle length is unknown.
    """
    if cycle_start is None or not cycle_length or cycle_length <= 0:
        return {}

    cfg = config or get_engine_config()
    ovulation = resolve_ovulation(cycle_start, cycle_length, symptoms_by_day, config=cfg)
    ovulation_day = ovulation.ovulation_date if ovulation else None
    ovulation_offset = (
        days_between(cycle_start, ovulation_day) % cycle_length if ovulation_day else None
    )

    marks: dict[date, DayMark | None] = {}
    for day in days:
        offset = days_between(cycle_start, day) % cycle_length
        if offset < period_length:
            marks[day] = DayMark.period
            continue
        if ovulation_offset is None:
            marks[day] = None
            continue
        if offset == ovulation_offset or day == ovulation_day:
            marks[day] = DayMark.ovulation
            continue
        fertile_first = max(0, ovulation_offset - cfg.fertile_window.days_before_ovulation)
        fertile_last = min(cycle_length - 1, ovulation_offset + cfg.fertile_window.days_after_ovulation)
        marks[day] = DayMark.fertile if fertile_first <= offset <= fertile_last else None
    return marks
