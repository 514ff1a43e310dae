from .entity_registry import EntityRegistry
from .reference_data import (
    NpcRecord,
    ReferenceData,
    SkillBuffRecord,
    SkillEffectRecord,
    SkillRecord,
    load_reference_data,
)
from .skill_resolver import SkillResolver

__all__ = [
    "EntityRegistry",
    "NpcRecord",
    "ReferenceData",
    "SkillBuffRecord",
    "SkillEffectRecord",
    "SkillRecord",
    "SkillResolver",
    "load_reference_data",
]
