"""Cyclewise engine — pure cycle computations over an immutable snapshot.

Modules:
    calendar       — Day keys and calendar-day arithmetic
    config_loader  — engine_config.yaml loading, validation and hot reload
    history        — Period starts → cycle-length series
    ovulation      — Observed-test vs calendar ovulation resolution
    forecast       — Next period, fertile window, cycle day, calendar marks
    regularity     — FIGO System 1 regularity and prediction confidence
    clinical_flags — Advisory pattern detections
    education      — Flag/mode → educational topic routing
    report         — Full pipeline for one snapshot
"""

from cyclewise.engine.calendar import (
    ParseError,
    add_days,
    day_key_to_date,
    days_between,
    in_range,
    parse_day,
    to_day_key,
)
from cyclewise.engine.config_loader import (
    ConfigValidationError,
    EngineConfig,
    get_engine_config,
    load_engine_config,
    reload_engine_config,
)

__all__ = [
    "ConfigValidationError",
    "EngineConfig",
    "ParseError",
    "add_days",
    "day_key_to_date",
    "days_between",
    "get_engine_config",
    "in_range",
    "load_engine_config",
    "parse_day",
    "reload_engine_config",
    "to_day_key",
]
