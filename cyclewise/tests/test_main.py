"""Tests for the command-line entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from cyclewise.main import main


class TestMain:
    def test_prints_report(self, store_dump_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(store_dump_path), "--today", "2024-03-10"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["today"] == "2024-03-10"
        assert data["confidence"] == "medium"
        assert data["forecast"]["cycle_start"] == "2024-02-26"
        # history mean (28) wins over the manual 30
        assert data["forecast"]["cycle_length"] == 28
        assert data["forecast"]["ovulation_date"] == "2024-03-05"
        assert data["forecast"]["ovulation_observed"] is True
        assert data["forecast"]["next_period_start"] == "2024-03-19"
        assert data["positive_ovulation_test_days"] == ["2024-03-05"]
        assert data["symptom_findings"] == []
        assert data["education_links"] == {}

    def test_education_links_for_flags(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        dump = tmp_path / "store.json"
        dump.write_text(
            json.dumps({"periodHistory": ["2024-01-01"], "physioMode": "perimenopause"})
        )
        assert main([str(dump), "--today", "2024-03-15"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert [f["type"] for f in data["flags"]] == ["no_period"]
        assert set(data["education_links"]) == {"late_period", "cycle_irregular"}
        assert all(url.startswith("https://") for url in data["education_links"].values())

    def test_bad_today_exits_2(self, store_dump_path: Path) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main([str(store_dump_path), "--today", "tomorrow"])
        assert excinfo.value.code == 2

    def test_missing_file_exits_2(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main([str(tmp_path / "missing.json")])
        assert excinfo.value.code == 2

    def test_non_object_dump_exits_2(self, tmp_path: Path) -> None:
        dump = tmp_path / "store.json"
        dump.write_text("[1, 2, 3]")
        with pytest.raises(SystemExit) as excinfo:
            main([str(dump)])
        assert excinfo.value.code == 2

    def test_invalid_config_exits_2(self, store_dump_path: Path, tmp_path: Path) -> None:
        config = tmp_path / "engine_config.yaml"
        config.write_text("ovulation:\n  luteal_phase_days: soon\n")
        with pytest.raises(SystemExit) as excinfo:
            main([str(store_dump_path), "--config", str(config)])
        assert excinfo.value.code == 2
