"""Tests for the cycle history model."""

from __future__ import annotations

from datetime import date

from cyclewise.engine.config_loader import EngineConfig
from cyclewise.engine.history import (
    bleeding_run_length,
    build_cycle_history,
    effective_cycle_length,
    history_from_snapshot,
    observed_period_lengths,
)
from cyclewise.models.tracking import DaySymptomRecord, FlowIntensity, UserSnapshot


def flow(level: str) -> DaySymptomRecord:
    return DaySymptomRecord(flow=FlowIntensity(level))


class TestBuildCycleHistory:
    """Deriving the cycle-length series from period starts."""

    def test_consecutive_differences(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history(
            [date(2024, 1, 1), date(2024, 1, 29), date(2024, 2, 26)], config=engine_config
        )
        assert history.lengths == [28, 28]
        assert history.n == 2
        assert history.latest_start == date(2024, 2, 26)
        assert [p.index for p in history.points] == [1, 2]

    def test_input_order_and_duplicates_ignored(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history(
            [date(2024, 2, 26), date(2024, 1, 1), date(2024, 1, 29), date(2024, 1, 1)],
            config=engine_config,
        )
        assert history.starts == [date(2024, 1, 1), date(2024, 1, 29), date(2024, 2, 26)]
        assert history.lengths == [28, 28]

    def test_gaps_outside_band_are_skipped_not_clamped(self, engine_config: EngineConfig) -> None:
        starts = [
            date(2024, 1, 1),
            date(2024, 1, 6),   # 5 days: data-entry slip
            date(2024, 2, 3),   # 28
            date(2024, 6, 1),   # 119: missed months
            date(2024, 6, 30),  # 29
        ]
        history = build_cycle_history(starts, config=engine_config)
        assert history.lengths == [28, 29]
        assert history.rejected_gaps == [5, 119]
        assert all(10 <= v <= 90 for v in history.lengths)

    def test_band_edges_are_inclusive(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history(
            [date(2024, 1, 1), date(2024, 1, 11), date(2024, 4, 10)], config=engine_config
        )
        assert history.lengths == [10, 90]

    def test_single_start_has_no_lengths(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history([date(2024, 1, 1)], config=engine_config)
        assert history.n == 0
        assert history.latest_start == date(2024, 1, 1)

    def test_empty_history_uses_fallback(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history([], fallback_start=date(2024, 1, 1), config=engine_config)
        assert history.starts == [date(2024, 1, 1)]

    def test_fallback_ignored_when_history_present(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history(
            [date(2024, 2, 1)], fallback_start=date(2023, 1, 1), config=engine_config
        )
        assert history.starts == [date(2024, 2, 1)]

    def test_empty_everything(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history([], config=engine_config)
        assert history.latest_start is None
        assert history.current_start(date(2024, 1, 1)) is None


class TestCurrentStart:
    """Anchoring the current cycle."""

    def test_future_dated_start_is_not_current(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history(
            [date(2024, 1, 1), date(2024, 1, 29), date(2024, 4, 1)], config=engine_config
        )
        assert history.latest_start == date(2024, 4, 1)
        assert history.current_start(date(2024, 2, 10)) == date(2024, 1, 29)

    def test_start_on_reference_day_is_current(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history([date(2024, 1, 1), date(2024, 1, 29)], config=engine_config)
        assert history.current_start(date(2024, 1, 29)) == date(2024, 1, 29)

    def test_only_future_starts(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history([date(2024, 5, 1)], config=engine_config)
        assert history.current_start(date(2024, 4, 1)) is None


class TestEffectiveCycleLength:
    """History mean with manual fallback."""

    def test_manual_when_no_cycle_completed(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history([date(2024, 1, 1)], config=engine_config)
        assert effective_cycle_length(history, 31) == 31

    def test_mean_of_history(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history(
            [date(2024, 1, 1), date(2024, 1, 29), date(2024, 2, 27)], config=engine_config
        )
        # (28 + 29) / 2 = 28.5 rounds half up
        assert effective_cycle_length(history, 40) == 29

    def test_unusable_manual_value(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history([], config=engine_config)
        assert effective_cycle_length(history, 0) is None
        assert effective_cycle_length(history, None) is None


class TestObservedBleeding:
    """Bleeding runs measured from daily flow records."""

    def test_run_stops_at_first_gap(self) -> None:
        start = date(2024, 1, 1)
        symptoms = {
            date(2024, 1, 1): flow("heavy"),
            date(2024, 1, 2): flow("medium"),
            date(2024, 1, 3): flow("light"),
            date(2024, 1, 5): flow("light"),
        }
        assert bleeding_run_length(start, symptoms, cap_days=30) == 3

    def test_explicit_none_flow_ends_run(self) -> None:
        start = date(2024, 1, 1)
        symptoms = {date(2024, 1, 1): flow("light"), date(2024, 1, 2): flow("none")}
        assert bleeding_run_length(start, symptoms, cap_days=30) == 1

    def test_run_is_capped(self) -> None:
        start = date(2024, 1, 1)
        symptoms = {date(2024, 1, d): flow("light") for d in range(1, 31)}
        assert bleeding_run_length(start, symptoms, cap_days=15) == 15

    def test_observed_period_lengths(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history(
            [date(2024, 1, 1), date(2024, 1, 29), date(2024, 2, 26)], config=engine_config
        )
        symptoms = {
            **{date(2024, 1, d): flow("medium") for d in range(1, 6)},
            **{date(2024, 2, d): flow("light") for d in range(26, 30)},
        }
        values, avg = observed_period_lengths(history, symptoms, config=engine_config)
        assert values == [5, 4]
        assert avg == 4.5

    def test_long_run_is_capped_at_twelve(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history([date(2024, 1, 1)], config=engine_config)
        symptoms = {date(2024, 1, d): flow("light") for d in range(1, 15)}
        values, avg = observed_period_lengths(history, symptoms, config=engine_config)
        assert values == [12]
        assert avg == 12.0

    def test_no_observed_periods(self, engine_config: EngineConfig) -> None:
        history = build_cycle_history([date(2024, 1, 1)], config=engine_config)
        assert observed_period_lengths(history, {}, config=engine_config) == ([], None)


class TestHistoryFromSnapshot:
    """Snapshot → history, using the JSON fixtures."""

    def test_regular_user(self, engine_config: EngineConfig, regular_user_raw: dict) -> None:
        snapshot = UserSnapshot.model_validate(regular_user_raw)
        history = history_from_snapshot(snapshot, engine_config)
        assert len(history.starts) == 6
        assert history.lengths == [28] * 5

    def test_irregular_user(self, engine_config: EngineConfig, irregular_user_raw: dict) -> None:
        snapshot = UserSnapshot.model_validate(irregular_user_raw)
        history = history_from_snapshot(snapshot, engine_config)
        assert history.lengths == [20, 21, 50]
        assert history.rejected_gaps == [7]
