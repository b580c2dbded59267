"""Route clinical flags and physiological modes to educational content."""

from __future__ import annotations

from enum import Enum

from cyclewise.engine.clinical_flags import ClinicalFlag, FlagType
from cyclewise.engine.config_loader import EngineConfig, get_engine_config
from cyclewise.models.tracking import PhysiologicalMode


class EducationTopic(str, Enum):
    cycle_regular = "cycle_regular"
    cycle_irregular = "cycle_irregular"
    late_period = "late_period"
    prolonged_bleeding = "prolonged_bleeding"
    heavy_bleeding = "heavy_bleeding"
    intermenstrual_bleeding = "intermenstrual_bleeding"
    period_pain = "period_pain"
    postpartum = "postpartum"
    breastfeeding = "breastfeeding"
    post_ocp = "post_ocp"
    perimenopause_cycle_changes = "perimenopause_cycle_changes"
    long_cycle = "long_cycle"
    short_cycle = "short_cycle"


_FLAG_TOPICS: dict[FlagType, EducationTopic] = {
    FlagType.short_cycles: EducationTopic.cycle_irregular,
    FlagType.long_cycles: EducationTopic.cycle_irregular,
    FlagType.prolonged_bleeding: EducationTopic.prolonged_bleeding,
    FlagType.bleeding_longer_than_config: EducationTopic.prolonged_bleeding,
    FlagType.intermenstrual_bleeding: EducationTopic.heavy_bleeding,
    FlagType.no_period: EducationTopic.late_period,
}

_MODE_TOPICS: dict[PhysiologicalMode, EducationTopic] = {
    PhysiologicalMode.postpartum: EducationTopic.postpartum,
    PhysiologicalMode.breastfeeding: EducationTopic.breastfeeding,
    PhysiologicalMode.post_contraception: EducationTopic.post_ocp,
    PhysiologicalMode.perimenopause: EducationTopic.cycle_irregular,
}


def education_topic_for_flag(flag: ClinicalFlag | FlagType) -> EducationTopic:
    flag_type = flag.type if isinstance(flag, ClinicalFlag) else flag
    return _FLAG_TOPICS.get(flag_type, EducationTopic.cycle_irregular)


def education_topic_for_mode(mode: PhysiologicalMode) -> EducationTopic | None:
    return _MODE_TOPICS.get(mode)


def education_url(
    topic: EducationTopic,
    base_url: str,
    config: EngineConfig | None = None,
) -> str | None:
    """Full URL for a topic, or None if the topic has no configured page."""
    slug = (config or get_engine_config()).education_topics.get(topic.value)
    if slug is None:
        return None
    return f"{base_url.rstrip('/')}{slug}"
