from __future__ import annotations

from loa_meter.domain.skill_resolver import SkillResolver
from loa_meter.models import Entity, Skill


# Skills whose ids differ but resolve to the same display name share one
# record. The flag is True only when a new record was inserted.
def ensure_skill(
    entity: Entity,
    resolver: SkillResolver,
    skill_id: int,
    fallback_name: str,
    *,
    skill_effect_id: int = 0,
) -> tuple[Skill, bool]:
    skill = entity.skills.get(skill_id)
    if skill is not None:
        return skill, False
    name, icon = resolver.resolve_skill_name_icon(skill_id, skill_effect_id, fallback_name)
    skill = entity.find_skill_by_name(name)
    if skill is not None:
        return skill, False
    skill = Skill(id=skill_id, name=name, icon=icon)
    entity.skills[skill_id] = skill
    return skill, True
