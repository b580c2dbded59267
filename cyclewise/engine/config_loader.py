"""Load, validate, and hot-reload the Cyclewise engine configuration.

The config lives in ``engine_config.yaml`` alongside this module.  At first
use it is loaded once and cached.  Call ``reload_engine_config()`` to re-read
from disk after an update.

Usage::

    from cyclewise.engine.config_loader import get_engine_config

    config = get_engine_config()
    config.ovulation.luteal_phase_days          # 14
    config.regularity.threshold_for_age(30)     # 9
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger("cyclewise.engine.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "engine_config.yaml"

_CONFIDENCE_GRADES = ("none", "very_low", "low", "medium", "high")
_SPECIAL_MODES = ("postpartum", "breastfeeding", "perimenopause", "post_contraception")


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class HistoryConfig:
    """Sanity band for derived cycle lengths."""

    min_cycle_days: int = 10
    max_cycle_days: int = 90

    def accepts(self, length_days: int) -> bool:
        return self.min_cycle_days <= length_days <= self.max_cycle_days


@dataclass
class DefaultsConfig:
    """Fallback manual settings and the bounds they are clamped to."""

    cycle_length: int = 28
    period_length: int = 5
    cycle_length_bounds: tuple[int, int] = (18, 60)
    period_length_bounds: tuple[int, int] = (2, 12)


@dataclass
class OvulationConfig:
    luteal_phase_days: int = 14


@dataclass
class FertileWindowConfig:
    """Fertile window offsets around the ovulation day (inclusive)."""

    days_before_ovulation: int = 4
    days_after_ovulation: int = 1


@dataclass
class VariabilityBand:
    """FIGO variability threshold for an inclusive age band."""

    min_age: int
    max_age: int
    threshold_days: int


@dataclass
class RegularityConfig:
    """FIGO System 1 regularity settings."""

    figo_age_range: tuple[int, int] = (18, 45)
    normal_cycle_range: tuple[int, int] = (24, 38)
    min_points_for_variation: int = 2
    variability_bands: list[VariabilityBand] = field(default_factory=list)

    def in_figo_age_range(self, age_years: int | None) -> bool:
        if age_years is None:
            return False
        low, high = self.figo_age_range
        return low <= age_years <= high

    def threshold_for_age(self, age_years: int | None) -> int | None:
        """Return the variability threshold for an age, or None outside every band."""
        if age_years is None:
            return None
        for band in self.variability_bands:
            if band.min_age <= age_years <= band.max_age:
                return band.threshold_days
        return None


@dataclass
class ConfidenceConfig:
    """Volume tiers (minimum data points per grade) and per-mode caps."""

    tiers: dict[str, int] = field(default_factory=dict)
    mode_caps: dict[str, str] = field(default_factory=dict)


@dataclass
class ClinicalFlagConfig:
    """Thresholds for the clinical flag detections."""

    recent_window: int = 5
    short_cycle_lt: int = 21
    long_cycle_gt: int = 35
    pattern_min_count: int = 2
    median_short_lt: float = 22
    median_long_gt: float = 34
    median_min_points: int = 3
    bleeding_scan_cap_days: int = 30
    bleeding_over_config_margin: int = 1
    prolonged_bleeding_gt: int = 8
    intermenstrual_lookback_days: int = 45
    intermenstrual_min_days: int = 2
    period_window_bounds: tuple[int, int] = (2, 12)
    overdue_days_default: int = 45
    overdue_days_relaxed: int = 60
    observed_period_scan_cap_days: int = 15
    observed_period_max_days: int = 12


@dataclass
class SymptomFindingConfig:
    """Thresholds for per-day findings listed in the report."""

    bbt_low_c: float = 35.0
    bbt_high_c: float = 38.0
    long_note_chars: int = 120


@dataclass
class EngineConfig:
    """Complete, validated engine configuration.

    This is the single in-memory representation of engine_config.yaml.
    Every engine component reads its thresholds from this object.
    """

    version: str
    history: HistoryConfig
    defaults: DefaultsConfig
    ovulation: OvulationConfig
    fertile_window: FertileWindowConfig
    regularity: RegularityConfig
    confidence: ConfidenceConfig
    clinical_flags: ClinicalFlagConfig
    symptom_findings: SymptomFindingConfig = field(default_factory=SymptomFindingConfig)
    education_topics: dict[str, str] = field(default_factory=dict)
    _raw: dict = field(default_factory=dict, repr=False)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when engine_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Engine config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> EngineConfig:
    """Validate the raw YAML dict and construct an EngineConfig.

    All problems are collected before raising so a broken file is reported
    in one pass.  Missing optional keys take their defaults.

    Raises:
        ConfigValidationError: If any value is missing or invalid.
    """
    errors: list[str] = []

    def _int(section: dict, key: str, default: int, path: str, minimum: int = 0) -> int:
        value = section.get(key, default)
        try:
            number = int(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be an integer, got {value!r}")
            return default
        if number < minimum:
            errors.append(f"{path}.{key} = {number} must be >= {minimum}")
        return number

    def _float(section: dict, key: str, default: float, path: str) -> float:
        value = section.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be a number, got {value!r}")
            return default

    def _range(section: dict, key: str, default: tuple[int, int], path: str) -> tuple[int, int]:
        value = section.get(key, list(default))
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            errors.append(f"{path}.{key} must be a [low, high] pair, got {value!r}")
            return default
        try:
            low, high = int(value[0]), int(value[1])
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must contain integers, got {value!r}")
            return default
        if low > high:
            errors.append(f"{path}.{key} = [{low}, {high}] has low > high")
        return low, high

    def _section(key: str) -> dict:
        value = raw.get(key) or {}
        if not isinstance(value, dict):
            errors.append(f"'{key}' must be a mapping")
            return {}
        return value

    version = str(raw.get("version", "1.0"))

    # ── History sanity band ──
    h_raw = _section("history")
    history = HistoryConfig(
        min_cycle_days=_int(h_raw, "min_cycle_days", 10, "history", minimum=1),
        max_cycle_days=_int(h_raw, "max_cycle_days", 90, "history", minimum=1),
    )
    if history.min_cycle_days > history.max_cycle_days:
        errors.append("history.min_cycle_days must not exceed history.max_cycle_days")

    # ── Defaults ──
    d_raw = _section("defaults")
    defaults = DefaultsConfig(
        cycle_length=_int(d_raw, "cycle_length", 28, "defaults", minimum=1),
        period_length=_int(d_raw, "period_length", 5, "defaults", minimum=1),
        cycle_length_bounds=_range(d_raw, "cycle_length_bounds", (18, 60), "defaults"),
        period_length_bounds=_range(d_raw, "period_length_bounds", (2, 12), "defaults"),
    )

    # ── Ovulation / fertile window ──
    o_raw = _section("ovulation")
    ovulation = OvulationConfig(
        luteal_phase_days=_int(o_raw, "luteal_phase_days", 14, "ovulation", minimum=1),
    )
    fw_raw = _section("fertile_window")
    fertile_window = FertileWindowConfig(
        days_before_ovulation=_int(fw_raw, "days_before_ovulation", 4, "fertile_window"),
        days_after_ovulation=_int(fw_raw, "days_after_ovulation", 1, "fertile_window"),
    )

    # ── Regularity (FIGO) ──
    r_raw = _section("regularity")
    bands: list[VariabilityBand] = []
    for i, band_raw in enumerate(r_raw.get("variability_bands") or []):
        if not isinstance(band_raw, dict):
            errors.append(f"regularity.variability_bands[{i}] must be a mapping")
            continue
        path = f"regularity.variability_bands[{i}]"
        bands.append(
            VariabilityBand(
                min_age=_int(band_raw, "min_age", 0, path),
                max_age=_int(band_raw, "max_age", 0, path),
                threshold_days=_int(band_raw, "threshold_days", 0, path, minimum=1),
            )
        )
    regularity = RegularityConfig(
        figo_age_range=_range(r_raw, "figo_age_range", (18, 45), "regularity"),
        normal_cycle_range=_range(r_raw, "normal_cycle_range", (24, 38), "regularity"),
        min_points_for_variation=_int(
            r_raw, "min_points_for_variation", 2, "regularity", minimum=2
        ),
        variability_bands=bands,
    )
    if not bands:
        logger.warning(
            "No FIGO variability bands configured; regularity verdicts will "
            "rely on the out-of-range rule only."
        )

    # ── Confidence ──
    c_raw = _section("confidence")
    tiers_raw = c_raw.get("tiers") or {"high": 6, "medium": 3, "low": 1}
    tiers: dict[str, int] = {}
    for grade, minimum in tiers_raw.items():
        if grade not in _CONFIDENCE_GRADES or grade == "none":
            errors.append(f"confidence.tiers.{grade} is not a known confidence grade")
            continue
        tiers[grade] = _int(tiers_raw, grade, 0, "confidence.tiers", minimum=1)
    caps_raw = c_raw.get("mode_caps") or {}
    mode_caps: dict[str, str] = {}
    for mode, grade in caps_raw.items():
        if mode not in _SPECIAL_MODES:
            errors.append(f"confidence.mode_caps.{mode} is not a special physiological mode")
            continue
        if grade not in _CONFIDENCE_GRADES:
            errors.append(f"confidence.mode_caps.{mode} = {grade!r} is not a confidence grade")
            continue
        mode_caps[mode] = grade
    confidence = ConfidenceConfig(tiers=tiers, mode_caps=mode_caps)

    # ── Clinical flags ──
    f_raw = _section("clinical_flags")
    p = "clinical_flags"
    clinical_flags = ClinicalFlagConfig(
        recent_window=_int(f_raw, "recent_window", 5, p, minimum=1),
        short_cycle_lt=_int(f_raw, "short_cycle_lt", 21, p),
        long_cycle_gt=_int(f_raw, "long_cycle_gt", 35, p),
        pattern_min_count=_int(f_raw, "pattern_min_count", 2, p, minimum=1),
        median_short_lt=_int(f_raw, "median_short_lt", 22, p),
        median_long_gt=_int(f_raw, "median_long_gt", 34, p),
        median_min_points=_int(f_raw, "median_min_points", 3, p, minimum=1),
        bleeding_scan_cap_days=_int(f_raw, "bleeding_scan_cap_days", 30, p, minimum=1),
        bleeding_over_config_margin=_int(f_raw, "bleeding_over_config_margin", 1, p),
        prolonged_bleeding_gt=_int(f_raw, "prolonged_bleeding_gt", 8, p, minimum=1),
        intermenstrual_lookback_days=_int(
            f_raw, "intermenstrual_lookback_days", 45, p, minimum=1
        ),
        intermenstrual_min_days=_int(f_raw, "intermenstrual_min_days", 2, p, minimum=1),
        period_window_bounds=_range(f_raw, "period_window_bounds", (2, 12), p),
        overdue_days_default=_int(f_raw, "overdue_days_default", 45, p, minimum=1),
        overdue_days_relaxed=_int(f_raw, "overdue_days_relaxed", 60, p, minimum=1),
        observed_period_scan_cap_days=_int(
            f_raw, "observed_period_scan_cap_days", 15, p, minimum=1
        ),
        observed_period_max_days=_int(f_raw, "observed_period_max_days", 12, p, minimum=1),
    )

    # ── Symptom findings ──
    s_raw = _section("symptom_findings")
    p = "symptom_findings"
    symptom_findings = SymptomFindingConfig(
        bbt_low_c=_float(s_raw, "bbt_low_c", 35.0, p),
        bbt_high_c=_float(s_raw, "bbt_high_c", 38.0, p),
        long_note_chars=_int(s_raw, "long_note_chars", 120, p, minimum=1),
    )
    if symptom_findings.bbt_low_c >= symptom_findings.bbt_high_c:
        errors.append("symptom_findings.bbt_low_c must be below symptom_findings.bbt_high_c")

    # ── Education topics ──
    e_raw = _section("education")
    topics = e_raw.get("topics") or {}
    if not isinstance(topics, dict):
        errors.append("education.topics must be a mapping of topic → slug")
        topics = {}

    if errors:
        raise ConfigValidationError(
            f"engine_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return EngineConfig(
        version=version,
        history=history,
        defaults=defaults,
        ovulation=ovulation,
        fertile_window=fertile_window,
        regularity=regularity,
        confidence=confidence,
        clinical_flags=clinical_flags,
        symptom_findings=symptom_findings,
        education_topics={str(k): str(v) for k, v in topics.items()},
        _raw=raw,
    )


def load_engine_config(path: Path | None = None) -> EngineConfig:
    """Load and validate the engine config from disk.

    Args:
        path: Override path to YAML. Uses the bundled engine_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded engine config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: EngineConfig | None = None
_config_lock = threading.Lock()


def get_engine_config() -> EngineConfig:
    """Return the global EngineConfig singleton, loading it on first call.

    Thread-safe.  Use ``reload_engine_config()`` to refresh after YAML changes.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_engine_config()
    return _config


def reload_engine_config(path: Path | None = None) -> EngineConfig:
    """Reload the engine config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_engine_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded engine config: %s → %s", old_version, new_config.version)
    return new_config
