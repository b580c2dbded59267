"""Predicted-period reminder sync.

The engine never talks to a notification backend directly.  Anything that
can schedule a single "period expected soon" reminder implements
``ReminderScheduler``; ``resync_period_reminder`` keeps it pointed at the
forecast's next period start.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Protocol, runtime_checkable

from cyclewise.engine.calendar import add_days
from cyclewise.engine.config_loader import EngineConfig
from cyclewise.engine.forecast import forecast_from_snapshot
from cyclewise.models.tracking import UserSnapshot

logger = logging.getLogger("cyclewise.services.reminders")


@runtime_checkable
class ReminderScheduler(Protocol):
    """A backend holding at most one pending predicted-period reminder."""

    def schedule_period_reminder(self, day: date) -> None:
        """Replace any pending reminder with one for the period expected on ``day``."""
        ...

    def cancel_period_reminder(self) -> None:
        ...


def reminder_day(next_period_start: date, today: date) -> date:
    """Day the reminder should fire for a predicted start.

    The day before the predicted start; if that is already past, the start
    itself; if that is past too (an overdue prediction), tomorrow.
    """
    for candidate in (add_days(next_period_start, -1), next_period_start):
        if candidate > today:
            return candidate
    return add_days(today, 1)


def resync_period_reminder(
    snapshot: UserSnapshot,
    scheduler: ReminderScheduler,
    enabled: bool = True,
    config: EngineConfig | None = None,
) -> date | None:
    """Point the scheduler at the current forecast.

    Cancels the pending reminder when reminders are disabled or there is no
    period start to forecast from.

    Returns:
        The predicted next period start that was scheduled, or None if the
        reminder was cancelled.
    """
    if not enabled:
        scheduler.cancel_period_reminder()
        logger.debug("Predicted-period reminder disabled; cancelled")
        return None

    forecast = forecast_from_snapshot(snapshot, config=config)
    if forecast.next_period_start is None:
        scheduler.cancel_period_reminder()
        logger.debug("No forecast for %s; predicted-period reminder cancelled", snapshot.today)
        return None

    scheduler.schedule_period_reminder(forecast.next_period_start)
    logger.info(
        "Predicted-period reminder set for %s (period expected %s)",
        reminder_day(forecast.next_period_start, snapshot.today),
        forecast.next_period_start,
    )
    return forecast.next_period_start
