"""Shared fixtures and sample data for the cycle engine tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from cyclewise.engine.config_loader import EngineConfig, load_engine_config

# Fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine_config() -> EngineConfig:
    """Load the real bundled engine config for tests."""
    return load_engine_config()


# ---------------------------------------------------------------------------
# JSON fixture loaders
# ---------------------------------------------------------------------------


@pytest.fixture
def regular_user_raw() -> dict:
    return json.loads((FIXTURES_DIR / "regular_user.json").read_text(encoding="utf-8"))


@pytest.fixture
def irregular_user_raw() -> dict:
    return json.loads((FIXTURES_DIR / "irregular_user.json").read_text(encoding="utf-8"))
