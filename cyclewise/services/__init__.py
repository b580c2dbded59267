"""Stateful collaborators around the engine: persistence and reminders."""

from cyclewise.services.reminders import ReminderScheduler, reminder_day, resync_period_reminder
from cyclewise.services.store import UserDataStore

__all__ = [
    "ReminderScheduler",
    "UserDataStore",
    "reminder_day",
    "resync_period_reminder",
]
