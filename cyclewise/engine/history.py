"""Cycle history model.

Derives the anchor for the current cycle and the cycle-length series from
raw period-start entries.  The stored history list is the source of truth;
a single legacy ``periodStart`` value is consulted only when the history is
empty.

Gaps between consecutive starts outside the configured sanity band
(10–90 days by default) are treated as data-entry mistakes and silently left
out of the series.  They are never clamped and never reported as errors.
"""

from __future__ import annotations

import logging
import math
import statistics
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping

from cyclewise.engine.calendar import add_days, days_between
from cyclewise.engine.config_loader import EngineConfig, get_engine_config
from cyclewise.models.tracking import DaySymptomRecord, UserSnapshot

logger = logging.getLogger("cyclewise.engine.history")


@dataclass(frozen=True)
class CycleLengthPoint:
    """Length of one completed cycle.

    Attributes:
        index:       1-based position in the accepted series.
        start:       Period start opening the cycle.
        next_start:  Period start closing it.
        length_days: ``next_start - start`` in days.
    """

    index: int
    start: date
    next_start: date
    length_days: int


@dataclass
class CycleHistory:
    """Ordered period starts and the cycle-length series derived from them.

    Attributes:
        starts:         Distinct period starts, oldest first.
        points:         Accepted cycle lengths between consecutive starts.
        rejected_gaps:  Gaps dropped by the sanity band (kept for diagnostics).
    """

    starts: list[date] = field(default_factory=list)
    points: list[CycleLengthPoint] = field(default_factory=list)
    rejected_gaps: list[int] = field(default_factory=list)

    @property
    def latest_start(self) -> date | None:
        return self.starts[-1] if self.starts else None

    @property
    def lengths(self) -> list[int]:
        return [p.length_days for p in self.points]

    @property
    def n(self) -> int:
        return len(self.points)

    def current_start(self, as_of: date) -> date | None:
        """Most recent period start on or before ``as_of``.

        Future-dated entries never anchor the current cycle.
        """
        for start in reversed(self.starts):
            if start <= as_of:
                return start
        return None


def build_cycle_history(
    period_starts: Iterable[date],
    fallback_start: date | None = None,
    config: EngineConfig | None = None,
) -> CycleHistory:
    """Build the cycle history from period-start days.

    Args:
        period_starts:  Period-start days in any order; duplicates collapse.
        fallback_start: Legacy single start used only when ``period_starts``
                        is empty.
        config:         Engine config (defaults to the global singleton).
    """
    band = (config or get_engine_config()).history

    starts = sorted(set(period_starts))
    if not starts and fallback_start is not None:
        starts = [fallback_start]

    history = CycleHistory(starts=starts)
    for prev, curr in zip(starts, starts[1:]):
        gap = days_between(prev, curr)
        if not band.accepts(gap):
            history.rejected_gaps.append(gap)
            continue
        history.points.append(
            CycleLengthPoint(
                index=len(history.points) + 1,
                start=prev,
                next_start=curr,
                length_days=gap,
            )
        )

    if history.rejected_gaps:
        logger.debug(
            "Excluded %d cycle gap(s) outside [%d, %d] days: %s",
            len(history.rejected_gaps),
            band.min_cycle_days,
            band.max_cycle_days,
            history.rejected_gaps,
        )
    return history


def history_from_snapshot(
    snapshot: UserSnapshot, config: EngineConfig | None = None
) -> CycleHistory:
    return build_cycle_history(
        snapshot.period_start_dates,
        fallback_start=snapshot.period_start_fallback,
        config=config,
    )


def effective_cycle_length(history: CycleHistory, manual_cycle_length: int | None) -> int | None:
    """Cycle length used for forecasting.

    The rounded mean of the accepted history when any cycle has completed,
    otherwise the manual setting.  Returns None if neither is usable.
    """
    if history.points:
        mean = statistics.fmean(history.lengths)
        # half-up, so 28.5 forecasts 29 days
        return int(math.floor(mean + 0.5))
    if manual_cycle_length and manual_cycle_length > 0:
        return manual_cycle_length
    return None


def bleeding_run_length(
    start: date,
    symptoms_by_day: Mapping[date, DaySymptomRecord],
    cap_days: int,
) -> int:
    """Count consecutive bleeding-marked days beginning at ``start``.

    Unrecorded days and explicit ``flow: none`` both end the run.
    """
    run = 0
    for offset in range(cap_days):
        record = symptoms_by_day.get(add_days(start, offset))
        if record is None or not record.is_bleeding:
            break
        run += 1
    return run


def observed_period_lengths(
    history: CycleHistory,
    symptoms_by_day: Mapping[date, DaySymptomRecord],
    config: EngineConfig | None = None,
) -> tuple[list[int], float | None]:
    """Actual bleeding length per period start, from the daily flow records.

    Starts with no flow recorded on the start day contribute nothing.  Each
    length is capped at ``observed_period_max_days``; the mean is None when
    no period was observed.
    """
    fc = (config or get_engine_config()).clinical_flags
    values: list[int] = []
    for start in history.starts:
        length = bleeding_run_length(start, symptoms_by_day, fc.observed_period_scan_cap_days)
        if length > 0:
            values.append(min(length, fc.observed_period_max_days))
    avg = round(statistics.fmean(values), 1) if values else None
    return values, avg
