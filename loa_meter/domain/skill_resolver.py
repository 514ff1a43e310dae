from __future__ import annotations

from dataclasses import dataclass

from loa_meter.domain.reference_data import ReferenceData, SkillBuffRecord, SkillRecord
from loa_meter.models import (
    StatusEffect,
    StatusEffectBuffType,
    StatusEffectSource,
    StatusEffectTarget,
)

BLEED_NAME = "Bleed"
BLEED_ICON = "buff_168.png"
SUMMON_SUFFIX = " (Summon)"

SUPPORT_CLASS_IDS = {105, 204, 603}
SUPPORT_BUFF_CATEGORIES = {"classskill", "identity", "ability"}

HIDDEN_ICON_SHOW_TYPE = "none"
DROPS_OF_ETHER_CATEGORY = "dropsofether"
DROPS_OF_ETHER_GROUPS = {501, 502, 503, 504, 505}
SOURCE_SKILL_CATEGORIES = {"classkill", "identity"}

DMG_BUFF_TYPES = {
    "weaken_defense",
    "weaken_resistance",
    "skill_damage_amplify",
    "beattacked_damage_amplify",
    "skill_damage_amplify_attack",
    "directional_attack_amplify",
    "instant_stat_amplify",
    "attack_power_amplify",
    "instant_stat_amplify_by_contents",
}
MOVESPEED_BUFF_TYPES = {"move_speed_down", "all_speed_down"}
COOLDOWN_BUFF_TYPES = {"reset_cooldown"}
STAGGER_BUFF_TYPES = {"change_ai_point", "ai_point_amplify"}
RESOURCE_BUFF_TYPES = {"increase_identity_gauge"}

BUFF_TYPE_TABLE = (
    (DMG_BUFF_TYPES, StatusEffectBuffType.DMG),
    (MOVESPEED_BUFF_TYPES, StatusEffectBuffType.MOVESPEED),
    (COOLDOWN_BUFF_TYPES, StatusEffectBuffType.COOLDOWN),
    (STAGGER_BUFF_TYPES, StatusEffectBuffType.STAGGER),
    (RESOURCE_BUFF_TYPES, StatusEffectBuffType.RESOURCE),
)


@dataclass
class SkillResolver:
    reference: ReferenceData

    def resolve_skill_name_icon(
        self, skill_id: int, skill_effect_id: int, fallback_name: str
    ) -> tuple[str, str]:
        if skill_id == 0 and skill_effect_id == 0:
            return BLEED_NAME, BLEED_ICON
        if skill_id == 0:
            return self._resolve_effect_name_icon(skill_effect_id, fallback_name)

        skill = self.reference.skill(skill_id)
        if skill is None:
            skill = self.reference.skill(skill_id - skill_id % 10)
            if skill is None:
                return fallback_name, ""
        if skill.summon_source_skill is not None:
            summon = self.reference.skill(skill.summon_source_skill)
            if summon is None:
                return fallback_name, ""
            return summon.name + SUMMON_SUFFIX, summon.icon
        if skill.source_skill is not None:
            source = self.reference.skill(skill.source_skill)
            if source is None:
                return fallback_name, ""
            return source.name, source.icon
        return skill.name, skill.icon

    def _resolve_effect_name_icon(
        self, skill_effect_id: int, fallback_name: str
    ) -> tuple[str, str]:
        effect = self.reference.skill_effect(skill_effect_id)
        if effect is None:
            return fallback_name, ""
        if effect.item_name is not None:
            return effect.item_name, effect.icon or ""
        if effect.source_skill is not None:
            skill = self.reference.skill(effect.source_skill)
        else:
            skill = self.reference.skill(skill_effect_id // 10)
        if skill is not None:
            return skill.name, skill.icon
        return effect.comment, ""

    def resolve_status_effect(self, buff_id: int) -> StatusEffect | None:
        buff = self.reference.skill_buff(buff_id)
        if buff is None or buff.icon_show_type == HIDDEN_ICON_SHOW_TYPE:
            return None

        if buff.buff_category == "ability" and buff.unique_group in DROPS_OF_ETHER_GROUPS:
            buff_category = DROPS_OF_ETHER_CATEGORY
        else:
            buff_category = buff.buff_category

        status_effect = StatusEffect(
            target=_status_effect_target(buff.target),
            category=buff.category,
            buff_category=buff_category,
            buff_type=int(buff_type_flags(buff)),
            unique_group=buff.unique_group,
            source=StatusEffectSource(name=buff.name, desc=buff.desc, icon=buff.icon),
        )

        if buff_category in SOURCE_SKILL_CATEGORIES or (
            buff_category == "ability" and buff.unique_group != 0
        ):
            status_effect.source.skill = self._buff_source_skill(buff_id, buff)
        elif buff_category == "set" and buff.set_name is not None:
            status_effect.source.set_name = buff.set_name

        return status_effect

    def _buff_source_skill(self, buff_id: int, buff: SkillBuffRecord) -> SkillRecord | None:
        for candidate in (buff.source_skill, buff_id // 10, buff.unique_group // 10):
            skill = self.reference.skill(candidate)
            if skill is not None:
                return skill
        return None


def buff_type_flags(buff: SkillBuffRecord) -> StatusEffectBuffType:
    for keywords, flag in BUFF_TYPE_TABLE:
        if buff.buff_type in keywords:
            return flag
    return StatusEffectBuffType.NONE


def is_support_class_id(class_id: int) -> bool:
    return class_id in SUPPORT_CLASS_IDS


def is_support_status_effect(status_effect: StatusEffect) -> bool:
    skill = status_effect.source.skill
    if skill is None:
        return False
    return (
        status_effect.buff_category in SUPPORT_BUFF_CATEGORIES
        and status_effect.target == StatusEffectTarget.PARTY
        and is_support_class_id(skill.class_id)
    )


def _status_effect_target(raw: str) -> StatusEffectTarget:
    if raw == "none":
        return StatusEffectTarget.OTHER
    if raw == "self":
        return StatusEffectTarget.SELF
    return StatusEffectTarget.PARTY
