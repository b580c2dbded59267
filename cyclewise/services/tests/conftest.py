"""Shared fixtures for the store and reminder tests."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from cyclewise.engine.config_loader import EngineConfig, load_engine_config
from cyclewise.services.store import UserDataStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"

TODAY = date(2024, 3, 10)


class RecordingScheduler:
    """In-memory ReminderScheduler that records every call."""

    def __init__(self) -> None:
        self.scheduled: date | None = None
        self.calls: list[tuple[str, date | None]] = []

    def schedule_period_reminder(self, day: date) -> None:
        self.scheduled = day
        self.calls.append(("schedule", day))

    def cancel_period_reminder(self) -> None:
        self.scheduled = None
        self.calls.append(("cancel", None))


@pytest.fixture
def engine_config() -> EngineConfig:
    return load_engine_config()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def storage() -> dict[str, str]:
    return {}


@pytest.fixture
def store(storage: dict[str, str], scheduler: RecordingScheduler, engine_config: EngineConfig) -> UserDataStore:
    return UserDataStore(storage, reminders=scheduler, config=engine_config, clock=lambda: TODAY)


@pytest.fixture
def store_dump_path() -> Path:
    return FIXTURES_DIR / "store_dump.json"


@pytest.fixture
def store_dump(store_dump_path: Path) -> dict[str, str]:
    return json.loads(store_dump_path.read_text(encoding="utf-8"))
