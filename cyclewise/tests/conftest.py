"""Shared fixtures for the command-line tests."""

from __future__ import annotations

from pathlib import Path

import pytest

# The CLI reads the same store dump the store accessor tests use
STORE_DUMP = Path(__file__).parents[1] / "services" / "tests" / "fixtures" / "store_dump.json"


@pytest.fixture
def store_dump_path() -> Path:
    return STORE_DUMP
