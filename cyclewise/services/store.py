"""Key-value persistence for one user's cycle data.

Wraps any ``MutableMapping[str, str]`` (an on-device key-value store, a
dict in tests, a JSON file loaded by the CLI).  Lists and maps are stored as
JSON; scalar settings are stored as plain strings.  Values written by older
clients (noon-pinned ISO timestamps, legacy mode names) are accepted on read.

The period history list is the source of truth.  ``periodStart`` is kept in
sync with its newest entry and is only read when the history is empty.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Callable, Mapping, MutableMapping

from cyclewise.engine.calendar import ParseError, parse_day, to_day_key
from cyclewise.engine.config_loader import EngineConfig, get_engine_config
from cyclewise.models.tracking import DaySymptomRecord, PhysiologicalMode, UserSnapshot
from cyclewise.services.reminders import ReminderScheduler, resync_period_reminder

logger = logging.getLogger("cyclewise.services.store")

KEY_PERIOD_HISTORY = "periodHistory"
KEY_PERIOD_START = "periodStart"
KEY_PERIOD_LENGTH = "periodLength"
KEY_CYCLE_LENGTH_MANUAL = "cycleLengthManual"
KEY_SYMPTOMS_BY_DAY = "symptomsByDay"
KEY_BIRTHDAY = "birthday"
KEY_PHYSIO_MODE = "physioMode"

ALL_KEYS = (
    KEY_PERIOD_HISTORY,
    KEY_PERIOD_START,
    KEY_PERIOD_LENGTH,
    KEY_CYCLE_LENGTH_MANUAL,
    KEY_SYMPTOMS_BY_DAY,
    KEY_BIRTHDAY,
    KEY_PHYSIO_MODE,
)


def _clamp(value: int, bounds: tuple[int, int]) -> int:
    low, high = bounds
    return min(high, max(low, int(value)))


class UserDataStore:
    """Read and mutate one user's stored cycle data.

    Args:
        storage:           Backing key-value mapping (string values).
        reminders:         Optional scheduler, resynced after history or
                           cycle-length changes.
        reminders_enabled: Whether the predicted-period reminder is on.
        config:            Engine config (defaults to the global singleton).
        clock:             Returns "today"; injectable for tests.
    """

    def __init__(
        self,
        storage: MutableMapping[str, str],
        reminders: ReminderScheduler | None = None,
        reminders_enabled: bool = True,
        config: EngineConfig | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._storage = storage
        self._reminders = reminders
        self._reminders_enabled = reminders_enabled
        self._config = config or get_engine_config()
        self._clock = clock

    # ── raw access ──

    def _read_json(self, key: str, default: Any) -> Any:
        raw = self._storage.get(key)
        if raw is None or raw == "":
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored value for %r is not valid JSON; treating it as empty", key)
            return default

    def _read_text(self, key: str) -> str | None:
        raw = self._storage.get(key)
        if raw is None:
            return None
        text = raw.strip()
        # tolerate JSON-quoted scalars
        if len(text) >= 2 and text[0] == text[-1] == '"':
            try:
                text = json.loads(text)
            except json.JSONDecodeError:
                pass
        return text or None

    def _read_positive_int(self, key: str, default: int, bounds: tuple[int, int]) -> int:
        text = self._read_text(key)
        if text is None:
            return default
        try:
            number = int(float(text))
        except (ValueError, OverflowError):
            logger.warning("Stored value for %r is not a number: %r", key, text)
            return default
        if number <= 0:
            return default
        return _clamp(number, bounds)

    def _write_json(self, key: str, value: Any) -> None:
        self._storage[key] = json.dumps(value, ensure_ascii=False)

    # ── reads ──

    def period_history(self) -> list[date]:
        """Stored period starts, newest first, deduplicated."""
        raw = self._read_json(KEY_PERIOD_HISTORY, [])
        if not isinstance(raw, list):
            logger.warning("%r is not a list; ignoring it", KEY_PERIOD_HISTORY)
            return []
        days: set[date] = set()
        for value in raw:
            if not value:
                continue
            try:
                days.add(parse_day(value))
            except ParseError as exc:
                logger.warning("Dropping unparseable period start: %s", exc)
        return sorted(days, reverse=True)

    def _symptoms_raw(self) -> dict[str, Any]:
        raw = self._read_json(KEY_SYMPTOMS_BY_DAY, {})
        if not isinstance(raw, dict):
            logger.warning("%r is not a mapping; ignoring it", KEY_SYMPTOMS_BY_DAY)
            return {}
        return raw

    def symptoms_for_day(self, day: date) -> DaySymptomRecord | None:
        return self.load_snapshot().symptoms_by_day.get(day)

    def load_snapshot(self, today: date | None = None) -> UserSnapshot:
        """Build the immutable engine input from what is stored."""
        defaults = self._config.defaults
        return UserSnapshot(
            period_start_dates=tuple(self.period_history()),
            period_start_fallback=self._read_text(KEY_PERIOD_START),
            symptoms_by_day=self._symptoms_raw(),
            manual_cycle_length=self._read_positive_int(
                KEY_CYCLE_LENGTH_MANUAL, defaults.cycle_length, defaults.cycle_length_bounds
            ),
            manual_period_length=self._read_positive_int(
                KEY_PERIOD_LENGTH, defaults.period_length, defaults.period_length_bounds
            ),
            physiological_mode=self._read_text(KEY_PHYSIO_MODE),
            birthday=self._read_text(KEY_BIRTHDAY),
            today=today or self._clock(),
        )

    # ── period history ──

    def _save_history(self, newest_first: list[date]) -> None:
        self._write_json(KEY_PERIOD_HISTORY, [to_day_key(d) for d in newest_first])
        if newest_first:
            self._storage[KEY_PERIOD_START] = to_day_key(newest_first[0])
        else:
            self._storage.pop(KEY_PERIOD_START, None)
        self._resync()

    def add_period_date(self, day: date | str) -> list[date]:
        """Record a period start.  Adding an existing day is a no-op."""
        new_day = parse_day(day)
        history = self.period_history()
        if new_day not in history:
            history = sorted([*history, new_day], reverse=True)
            logger.info("Period start added: %s", new_day)
        self._save_history(history)
        return history

    def remove_period_date(self, day: date | str) -> list[date]:
        """Delete a period start.  Removing an unknown day is a no-op."""
        target = parse_day(day)
        history = [d for d in self.period_history() if d != target]
        self._save_history(history)
        return history

    def start_period_today(self, today: date | None = None) -> list[date]:
        return self.add_period_date(today or self._clock())

    # ── daily symptoms ──

    def set_symptoms_for_day(
        self, day: date | str, patch: DaySymptomRecord | Mapping[str, Any]
    ) -> DaySymptomRecord | None:
        """Merge ``patch`` into the day's record.

        Fields present in the patch overwrite (an explicit None clears the
        field); absent fields are kept.  A record left with nothing recorded
        is removed.

        Returns:
            The stored record, or None if it was removed.
        """
        key = to_day_key(parse_day(day))
        if not isinstance(patch, DaySymptomRecord):
            patch = DaySymptomRecord.model_validate(patch)

        raw = self._symptoms_raw()
        existing = DaySymptomRecord()
        if raw.get(key):
            try:
                existing = DaySymptomRecord.model_validate(raw[key])
            except ValueError:
                logger.warning("Replacing unreadable symptom record for %s", key)

        merged = existing.merged(patch)
        if merged.is_empty():
            raw.pop(key, None)
            result = None
        else:
            raw[key] = merged.to_store()
            result = merged
        self._write_json(KEY_SYMPTOMS_BY_DAY, raw)
        return result

    def clear_symptoms_for_day(self, day: date | str) -> None:
        key = to_day_key(parse_day(day))
        raw = self._symptoms_raw()
        if raw.pop(key, None) is not None:
            self._write_json(KEY_SYMPTOMS_BY_DAY, raw)

    # ── settings ──

    def set_period_length(self, days: int) -> int:
        value = _clamp(days, self._config.defaults.period_length_bounds)
        self._storage[KEY_PERIOD_LENGTH] = str(value)
        return value

    def set_cycle_length_manual(self, days: int) -> int:
        value = _clamp(days, self._config.defaults.cycle_length_bounds)
        self._storage[KEY_CYCLE_LENGTH_MANUAL] = str(value)
        self._resync()
        return value

    def set_physiological_mode(self, mode: PhysiologicalMode | str) -> PhysiologicalMode:
        resolved = PhysiologicalMode.parse(mode)
        self._storage[KEY_PHYSIO_MODE] = resolved.value
        return resolved

    def set_birthday(self, day: date | str | None) -> date | None:
        if day is None or day == "":
            self._storage.pop(KEY_BIRTHDAY, None)
            return None
        birthday = parse_day(day)
        self._storage[KEY_BIRTHDAY] = to_day_key(birthday)
        return birthday

    def set_reminders_enabled(self, enabled: bool) -> None:
        self._reminders_enabled = enabled
        self._resync()

    def reset(self) -> None:
        """Delete every stored key and cancel the pending reminder."""
        for key in ALL_KEYS:
            self._storage.pop(key, None)
        if self._reminders is not None:
            self._reminders.cancel_period_reminder()
        logger.info("User data reset")

    # ── reminders ──

    def _resync(self) -> None:
        if self._reminders is None:
            return
        resync_period_reminder(
            self.load_snapshot(),
            self._reminders,
            enabled=self._reminders_enabled,
            config=self._config,
        )
