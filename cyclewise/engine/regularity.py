"""Cycle regularity classification and prediction confidence.

Regularity follows FIGO System 1 (ages 18–45):
- Normal frequency: every cycle between 24 and 38 days.
- Irregular variability: shortest-to-longest spread above 7 days (ages
  18–25 and 42–45) or 9 days (ages 26–41).

Statistics are computed over the whole accepted history.  Outside the FIGO
age band the numbers are still reported but no variability verdict is given.

Special physiological modes (postpartum, breastfeeding, perimenopause,
post-contraception) suppress the verdict entirely and cap confidence: the
cycles are expected to be atypical, and volume-based confidence assumes a
stationary process.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from cyclewise.engine.config_loader import EngineConfig, get_engine_config
from cyclewise.models.tracking import PhysiologicalMode

logger = logging.getLogger("cyclewise.engine.regularity")


class PredictionConfidence(str, Enum):
    none = "none"
    very_low = "very_low"
    low = "low"
    medium = "medium"
    high = "high"


class RegularityReason(str, Enum):
    insufficient_history = "insufficient_history"
    age_outside_figo_range = "age_outside_figo_range"
    cycle_length_out_of_range = "cycle_length_out_of_range"
    variation_above_threshold = "variation_above_threshold"
    suppressed_by_physiological_mode = "suppressed_by_physiological_mode"


@dataclass
class RegularityResult:
    """Regularity statistics and verdict for a cycle-length history.

    Attributes:
        n:                   Number of cycle lengths.
        avg:                 Mean cycle length.
        std_dev:             Population standard deviation.
        min_length:          Shortest cycle.
        max_length:          Longest cycle.
        variation_days:      ``max_length - min_length``.
        threshold_days:      FIGO variability threshold for the age, if any.
        has_out_of_range:    Any cycle outside the normal range (FIGO ages only).
        is_irregular:        Final verdict (always False in special modes).
        irregular_reason:    Tags explaining the verdict or its absence.
        suppressed_by_mode:  The special mode that suppressed the verdict.
    """

    n: int = 0
    avg: float | None = None
    std_dev: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    variation_days: int | None = None
    threshold_days: int | None = None
    has_out_of_range: bool = False
    is_irregular: bool = False
    irregular_reason: list[RegularityReason] = field(default_factory=list)
    suppressed_by_mode: PhysiologicalMode | None = None


def classify_regularity(
    lengths: Sequence[int],
    age_years: int | None = None,
    mode: PhysiologicalMode = PhysiologicalMode.regular,
    config: EngineConfig | None = None,
) -> RegularityResult:
    """Classify a cycle-length history against FIGO System 1.

    Args:
        lengths:   Accepted cycle lengths (order does not matter).
        age_years: User age; None withholds the age-dependent rules.
        mode:      Physiological mode; any special mode suppresses the verdict.
        config:    Engine config (defaults to the global singleton).
    """
    rc = (config or get_engine_config()).regularity
    values = list(lengths)
    result = RegularityResult(n=len(values))

    if values:
        result.avg = statistics.fmean(values)
        result.std_dev = statistics.pstdev(values)
        result.min_length = min(values)
        result.max_length = max(values)
        result.variation_days = result.max_length - result.min_length

    threshold = rc.threshold_for_age(age_years)
    result.threshold_days = threshold

    in_figo_ages = rc.in_figo_age_range(age_years)
    low, high = rc.normal_cycle_range
    result.has_out_of_range = in_figo_ages and any(v < low or v > high for v in values)

    enough_for_variation = (
        result.n >= rc.min_points_for_variation and result.variation_days is not None
    )
    variation_irregular = (
        threshold is not None and enough_for_variation and result.variation_days > threshold
    )

    if mode.is_special:
        # Numbers stay visible; only the verdict is withheld.
        result.is_irregular = False
        result.suppressed_by_mode = mode
        result.irregular_reason = [RegularityReason.suppressed_by_physiological_mode]
        logger.debug("Regularity verdict suppressed for mode %s", mode.value)
        return result

    result.is_irregular = result.has_out_of_range or variation_irregular

    reasons = result.irregular_reason
    if result.n < rc.min_points_for_variation:
        reasons.append(RegularityReason.insufficient_history)
    if not in_figo_ages:
        reasons.append(RegularityReason.age_outside_figo_range)
    if result.has_out_of_range:
        reasons.append(RegularityReason.cycle_length_out_of_range)
    if variation_irregular:
        reasons.append(RegularityReason.variation_above_threshold)

    return result


def prediction_confidence(
    data_points: int,
    mode: PhysiologicalMode = PhysiologicalMode.regular,
    config: EngineConfig | None = None,
) -> PredictionConfidence:
    """Grade how much a forecast can be trusted.

    Regular mode grades on volume (default tiers: 6+ high, 3+ medium, 1+ low).
    Special modes get a fixed ceiling regardless of volume.  Zero data is
    always ``none``.

    Args:
        data_points: Number of recorded period starts.
        mode:        Physiological mode.
        config:      Engine config (defaults to the global singleton).
    """
    cc = (config or get_engine_config()).confidence
    if data_points <= 0:
        return PredictionConfidence.none

    if mode.is_special:
        cap = cc.mode_caps.get(mode.value, PredictionConfidence.very_low.value)
        return PredictionConfidence(cap)

    # highest tier first
    for grade in (PredictionConfidence.high, PredictionConfidence.medium, PredictionConfidence.low):
        minimum = cc.tiers.get(grade.value)
        if minimum is not None and data_points >= minimum:
            return grade
    return PredictionConfidence.none
