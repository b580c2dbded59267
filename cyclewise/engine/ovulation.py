"""Ovulation resolver for the current cycle.

Priority:
1. An observed positive ovulation test (OPK) inside the current cycle window
   ``[cycle_start, cycle_start + cycle_length)``.  If several days tested
   positive, the latest one wins: tests are repeated and the most recent
   positive is the most informative.
2. Otherwise the calendar estimate ``cycle_start + max(0, cycle_length - luteal)``
   with a fixed luteal phase (14 days by default).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Mapping

from cyclewise.engine.calendar import add_days
from cyclewise.engine.config_loader import EngineConfig, get_engine_config
from cyclewise.models.tracking import DaySymptomRecord

logger = logging.getLogger("cyclewise.engine.ovulation")


class OvulationSource(str, Enum):
    ovulation_test = "ovulation_test"
    calendar = "calendar"


@dataclass(frozen=True)
class OvulationResolution:
    """The authoritative ovulation day for the current cycle.

    Attributes:
        ovulation_date: Resolved ovulation day.
        source:         Whether it was observed (test) or estimated (calendar).
        window_start:   First day of the cycle window searched.
        window_end:     Last day of the cycle window searched (inclusive).
    """

    ovulation_date: date
    source: OvulationSource
    window_start: date
    window_end: date

    @property
    def observed(self) -> bool:
        return self.source is OvulationSource.ovulation_test


def latest_positive_test(
    symptoms_by_day: Mapping[date, DaySymptomRecord],
    window_start: date,
    window_end_exclusive: date,
) -> date | None:
    """Latest day in ``[window_start, window_end_exclusive)`` with a positive test."""
    latest: date | None = None
    for day, record in symptoms_by_day.items():
        if not record.has_positive_ovulation_test:
            continue
        if not (window_start <= day < window_end_exclusive):
            continue
        if latest is None or day > latest:
            latest = day
    return latest


def resolve_ovulation(
    cycle_start: date | None,
    cycle_length: int | None,
    symptoms_by_day: Mapping[date, DaySymptomRecord] | None = None,
    config: EngineConfig | None = None,
) -> OvulationResolution | None:
    """Resolve the ovulation day for the cycle opened by ``cycle_start``.

    Args:
        cycle_start:     Current cycle start (latest period start).
        cycle_length:    Configured or history-derived cycle length in days.
        symptoms_by_day: Daily records keyed by day.
        config:          Engine config (defaults to the global singleton).

    Returns:
        OvulationResolution, or None when the start or a positive cycle
        length is unavailable.
    """
    if cycle_start is None or not cycle_length or cycle_length <= 0:
        return None

    luteal = (config or get_engine_config()).ovulation.luteal_phase_days
    window_end_exclusive = add_days(cycle_start, cycle_length)
    window_end = add_days(window_end_exclusive, -1)

    observed = latest_positive_test(symptoms_by_day or {}, cycle_start, window_end_exclusive)
    if observed is not None:
        logger.debug("Ovulation resolved from positive test on %s", observed)
        return OvulationResolution(
            ovulation_date=observed,
            source=OvulationSource.ovulation_test,
            window_start=cycle_start,
            window_end=window_end,
        )

    estimate = add_days(cycle_start, max(0, cycle_length - luteal))
    logger.debug(
        "No positive test in %s..%s; calendar estimate %s (luteal=%d)",
        cycle_start, window_end, estimate, luteal,
    )
    return OvulationResolution(
        ovulation_date=estimate,
        source=OvulationSource.calendar,
        window_start=cycle_start,
        window_end=window_end,
    )
