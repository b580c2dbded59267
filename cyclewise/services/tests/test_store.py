"""Tests for the key-value store accessor."""

from __future__ import annotations

import json
import logging
from datetime import date

import pytest

from cyclewise.engine.calendar import ParseError
from cyclewise.engine.config_loader import EngineConfig
from cyclewise.models.tracking import FlowIntensity, PhysiologicalMode
from cyclewise.services.store import (
    KEY_BIRTHDAY,
    KEY_CYCLE_LENGTH_MANUAL,
    KEY_PERIOD_HISTORY,
    KEY_PERIOD_LENGTH,
    KEY_PERIOD_START,
    KEY_PHYSIO_MODE,
    KEY_SYMPTOMS_BY_DAY,
    UserDataStore,
)
from cyclewise.services.tests.conftest import TODAY, RecordingScheduler


class TestLoadSnapshot:
    """Reading stored values into an engine snapshot."""

    def test_store_dump(self, store_dump: dict[str, str], engine_config: EngineConfig) -> None:
        snapshot = UserDataStore(store_dump, config=engine_config).load_snapshot(today=TODAY)
        assert snapshot.period_start_dates == (
            date(2024, 1, 1),
            date(2024, 1, 29),
            date(2024, 2, 26),
        )
        assert snapshot.manual_cycle_length == 30
        assert snapshot.manual_period_length == 5
        assert snapshot.physiological_mode is PhysiologicalMode.regular
        assert snapshot.birthday == date(1993, 6, 15)
        assert snapshot.symptoms_by_day[date(2024, 2, 26)].flow is FlowIntensity.heavy
        assert snapshot.today == TODAY

    def test_empty_store(self, store: UserDataStore) -> None:
        snapshot = store.load_snapshot()
        assert snapshot.period_start_dates == ()
        assert snapshot.period_start_fallback is None
        assert snapshot.symptoms_by_day == {}
        assert snapshot.manual_cycle_length == 28
        assert snapshot.manual_period_length == 5
        assert snapshot.today == TODAY

    def test_invalid_json_treated_as_empty(
        self, storage: dict[str, str], store: UserDataStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        storage[KEY_PERIOD_HISTORY] = "[not json"
        storage[KEY_SYMPTOMS_BY_DAY] = "{"
        with caplog.at_level(logging.WARNING, logger="cyclewise.services.store"):
            snapshot = store.load_snapshot()
        assert snapshot.period_start_dates == ()
        assert snapshot.symptoms_by_day == {}
        assert "not valid JSON" in caplog.text

    def test_wrong_json_shape_ignored(self, storage: dict[str, str], store: UserDataStore) -> None:
        storage[KEY_PERIOD_HISTORY] = json.dumps({"2024-01-01": True})
        storage[KEY_SYMPTOMS_BY_DAY] = json.dumps(["2024-01-01"])
        snapshot = store.load_snapshot()
        assert snapshot.period_start_dates == ()
        assert snapshot.symptoms_by_day == {}

    def test_legacy_period_start_used_when_history_empty(
        self, storage: dict[str, str], store: UserDataStore
    ) -> None:
        storage[KEY_PERIOD_START] = "2024-02-20T12:00:00.000Z"
        snapshot = store.load_snapshot()
        assert snapshot.period_start_fallback == date(2024, 2, 20)

    @pytest.mark.parametrize(
        "raw, expected",
        [("31", 31), ("100", 60), ("5", 18), ("29.7", 29), ("0", 28), ("-3", 28), ("abc", 28), ("nan", 28)],
    )
    def test_manual_cycle_length_read(
        self, storage: dict[str, str], store: UserDataStore, raw: str, expected: int
    ) -> None:
        storage[KEY_CYCLE_LENGTH_MANUAL] = raw
        assert store.load_snapshot().manual_cycle_length == expected

    def test_json_quoted_scalars(self, storage: dict[str, str], store: UserDataStore) -> None:
        storage[KEY_BIRTHDAY] = '"1990-01-01"'
        storage[KEY_PHYSIO_MODE] = '"postpartum"'
        snapshot = store.load_snapshot()
        assert snapshot.birthday == date(1990, 1, 1)
        assert snapshot.physiological_mode is PhysiologicalMode.postpartum


class TestPeriodHistory:
    """Adding and removing period starts."""

    def test_add_period_date(
        self, storage: dict[str, str], store: UserDataStore, scheduler: RecordingScheduler
    ) -> None:
        store.add_period_date(date(2024, 3, 1))
        assert json.loads(storage[KEY_PERIOD_HISTORY]) == ["2024-03-01"]
        assert storage[KEY_PERIOD_START] == "2024-03-01"
        assert scheduler.scheduled == date(2024, 3, 29)

    def test_history_kept_newest_first(self, storage: dict[str, str], store: UserDataStore) -> None:
        for day in ("2024-01-29", "2024-02-26", "2024-01-01"):
            store.add_period_date(day)
        assert json.loads(storage[KEY_PERIOD_HISTORY]) == ["2024-02-26", "2024-01-29", "2024-01-01"]
        assert storage[KEY_PERIOD_START] == "2024-02-26"

    def test_duplicates_collapse(self, store: UserDataStore) -> None:
        store.add_period_date("2024-03-01")
        history = store.add_period_date("2024-03-01T12:00:00.000Z")
        assert history == [date(2024, 3, 1)]

    def test_add_rejects_garbage(self, store: UserDataStore) -> None:
        with pytest.raises(ParseError):
            store.add_period_date("someday")

    def test_remove_period_date(self, storage: dict[str, str], store: UserDataStore) -> None:
        store.add_period_date("2024-02-01")
        store.add_period_date("2024-03-01")
        history = store.remove_period_date("2024-03-01")
        assert history == [date(2024, 2, 1)]
        assert storage[KEY_PERIOD_START] == "2024-02-01"

    def test_remove_last_entry_clears_start_and_reminder(
        self, storage: dict[str, str], store: UserDataStore, scheduler: RecordingScheduler
    ) -> None:
        store.add_period_date("2024-03-01")
        store.remove_period_date("2024-03-01")
        assert json.loads(storage[KEY_PERIOD_HISTORY]) == []
        assert KEY_PERIOD_START not in storage
        assert scheduler.scheduled is None
        assert scheduler.calls[-1] == ("cancel", None)

    def test_remove_unknown_is_noop(self, store: UserDataStore) -> None:
        store.add_period_date("2024-03-01")
        assert store.remove_period_date("2023-03-01") == [date(2024, 3, 1)]

    def test_start_period_today(self, store: UserDataStore) -> None:
        assert store.start_period_today() == [TODAY]

    def test_history_is_source_of_truth(self, storage: dict[str, str], store: UserDataStore) -> None:
        storage[KEY_PERIOD_START] = "2020-01-01"
        store.add_period_date("2024-03-01")
        snapshot = store.load_snapshot()
        assert snapshot.period_start_dates == (date(2024, 3, 1),)
        assert storage[KEY_PERIOD_START] == "2024-03-01"


class TestSymptoms:
    """Merge-patching daily records."""

    def test_merge_keeps_untouched_fields(self, store: UserDataStore) -> None:
        store.set_symptoms_for_day("2024-03-01", {"flow": "heavy", "pain": "severe"})
        record = store.set_symptoms_for_day("2024-03-01", {"flow": "medium"})
        assert record.flow is FlowIntensity.medium
        assert record.pain.value == "severe"

    def test_stored_with_client_keys(self, storage: dict[str, str], store: UserDataStore) -> None:
        store.set_symptoms_for_day(date(2024, 3, 1), {"ovulation_test": "positive", "note": "hi"})
        assert json.loads(storage[KEY_SYMPTOMS_BY_DAY]) == {
            "2024-03-01": {"ovulationTest": "positive", "notes": "hi"}
        }

    def test_emptied_record_is_removed(self, storage: dict[str, str], store: UserDataStore) -> None:
        store.set_symptoms_for_day("2024-03-01", {"flow": "light"})
        assert store.set_symptoms_for_day("2024-03-01", {"flow": None}) is None
        assert json.loads(storage[KEY_SYMPTOMS_BY_DAY]) == {}

    def test_other_days_untouched(self, storage: dict[str, str], store: UserDataStore) -> None:
        storage[KEY_SYMPTOMS_BY_DAY] = json.dumps({"2024-02-01": {"flow": "light", "custom": 1}})
        store.set_symptoms_for_day("2024-03-01", {"flow": "heavy"})
        stored = json.loads(storage[KEY_SYMPTOMS_BY_DAY])
        assert stored["2024-02-01"] == {"flow": "light", "custom": 1}
        assert stored["2024-03-01"] == {"flow": "heavy"}

    def test_clear_symptoms_for_day(self, storage: dict[str, str], store: UserDataStore) -> None:
        store.set_symptoms_for_day("2024-03-01", {"flow": "light"})
        store.set_symptoms_for_day("2024-03-02", {"flow": "light"})
        store.clear_symptoms_for_day("2024-03-01")
        assert list(json.loads(storage[KEY_SYMPTOMS_BY_DAY])) == ["2024-03-02"]
        assert store.symptoms_for_day(date(2024, 3, 1)) is None
        assert store.symptoms_for_day(date(2024, 3, 2)).flow is FlowIntensity.light


class TestSettings:
    """Manual settings are clamped on write."""

    @pytest.mark.parametrize("days, expected", [(1, 2), (5, 5), (12, 12), (30, 12)])
    def test_period_length_clamped(
        self, storage: dict[str, str], store: UserDataStore, days: int, expected: int
    ) -> None:
        assert store.set_period_length(days) == expected
        assert storage[KEY_PERIOD_LENGTH] == str(expected)

    @pytest.mark.parametrize("days, expected", [(10, 18), (35, 35), (99, 60)])
    def test_cycle_length_clamped(self, store: UserDataStore, days: int, expected: int) -> None:
        assert store.set_cycle_length_manual(days) == expected
        assert store.load_snapshot().manual_cycle_length == expected

    def test_cycle_length_change_resyncs_reminder(
        self, store: UserDataStore, scheduler: RecordingScheduler
    ) -> None:
        store.add_period_date("2024-03-01")
        store.set_cycle_length_manual(35)
        assert scheduler.scheduled == date(2024, 4, 5)

    def test_physiological_mode_normalised(self, storage: dict[str, str], store: UserDataStore) -> None:
        assert store.set_physiological_mode("postOCP") is PhysiologicalMode.post_contraception
        assert storage[KEY_PHYSIO_MODE] == "post_contraception"

    def test_birthday_set_and_cleared(self, storage: dict[str, str], store: UserDataStore) -> None:
        store.set_birthday("1990-05-01")
        assert storage[KEY_BIRTHDAY] == "1990-05-01"
        store.set_birthday(None)
        assert KEY_BIRTHDAY not in storage

    def test_disabling_reminders_cancels(
        self, store: UserDataStore, scheduler: RecordingScheduler
    ) -> None:
        store.add_period_date("2024-03-01")
        store.set_reminders_enabled(False)
        assert scheduler.scheduled is None

    def test_reset(self, storage: dict[str, str], store: UserDataStore, scheduler: RecordingScheduler) -> None:
        storage["goal"] = "track"
        store.add_period_date("2024-03-01")
        store.set_period_length(6)
        store.reset()
        assert storage == {"goal": "track"}
        assert scheduler.scheduled is None

    def test_no_scheduler_attached(self, storage: dict[str, str], engine_config: EngineConfig) -> None:
        store = UserDataStore(storage, config=engine_config, clock=lambda: TODAY)
        store.add_period_date("2024-03-01")
        store.set_cycle_length_manual(30)
        assert storage[KEY_CYCLE_LENGTH_MANUAL] == "30"
