from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from loa_meter.domain.entity_registry import EntityRegistry
from loa_meter.domain.skill_resolver import BLEED_NAME, SkillResolver, is_support_status_effect
from loa_meter.meter.skills import ensure_skill
from loa_meter.models import (
    Encounter,
    Entity,
    EntityType,
    HitFlag,
    HitOption,
    StatusEffect,
)
from loa_meter.protocol.log_lines import LogDamage

HIT_FLAG_MASK = 0xF
HIT_OPTION_SHIFT = 4
HIT_OPTION_MASK = 0x7
CRIT_FLAGS = {HitFlag.CRITICAL, HitFlag.DOT_CRITICAL}


def decode_damage_modifier(damage_mod: int) -> tuple[HitFlag, HitOption] | None:
    try:
        hit_flag = HitFlag(damage_mod & HIT_FLAG_MASK)
    except ValueError:
        return None
    try:
        hit_option = HitOption(((damage_mod >> HIT_OPTION_SHIFT) & HIT_OPTION_MASK) - 1)
    except ValueError:
        return None
    return hit_flag, hit_option


@dataclass
class DamageProcessor:
    registry: EntityRegistry
    resolver: SkillResolver

    @property
    def encounter(self) -> Encounter:
        return self.registry.encounter

    def apply(
        self,
        record: LogDamage,
        hit_flag: HitFlag,
        hit_option: HitOption,
        timestamp: int,
    ) -> bool:
        if hit_flag == HitFlag.INVINCIBLE:
            return False

        skill_id = record.skill_id
        skill_name = record.skill_name
        if skill_id == 0 and record.skill_effect_id != 0:
            skill_id = record.skill_effect_id
            skill_name = record.skill_effect
        if skill_name == BLEED_NAME and hit_flag == HitFlag.DAMAGE_SHARE:
            return False

        encounter = self.encounter
        source = self.registry.get_or_create(
            record.source_name,
            lambda: Entity(id=record.source_id, name=record.source_name),
        )
        target = self.registry.get_or_create(
            record.target_name,
            lambda: Entity(
                id=record.target_id,
                name=record.target_name,
                current_hp=record.current_hp,
                max_hp=record.max_hp,
            ),
        )
        source.id = record.source_id
        target.id = record.target_id

        if not encounter.active:
            encounter.fight_start = timestamp

        target.current_hp = record.current_hp
        target.max_hp = record.max_hp
        target.last_update = timestamp
        source.last_update = timestamp

        damage = record.damage
        if target.entity_type != EntityType.PLAYER and record.current_hp < 0:
            damage += record.current_hp

        skill, created = ensure_skill(
            source,
            self.resolver,
            skill_id,
            skill_name,
            skill_effect_id=record.skill_effect_id,
        )
        if created:
            skill.casts = 1

        is_crit = hit_flag in CRIT_FLAGS
        is_back_attack = hit_option == HitOption.BACK_ATTACK
        is_front_attack = hit_option == HitOption.FRONTAL_ATTACK

        skill.total_damage += damage
        if damage > skill.max_damage:
            skill.max_damage = damage

        source.damage_stats.damage_dealt += damage
        target.damage_stats.damage_taken += damage

        for stats in (source.skill_stats, skill):
            stats.hits += 1
            stats.crits += int(is_crit)
            stats.back_attacks += int(is_back_attack)
            stats.front_attacks += int(is_front_attack)

        totals = encounter.encounter_damage_stats
        if source.entity_type == EntityType.PLAYER:
            totals.total_damage_dealt += damage
            totals.top_damage_dealt = max(
                totals.top_damage_dealt, source.damage_stats.damage_dealt
            )

            buffed_by_support = self._has_support_effect(
                record.effects_on_source, totals.buffs, totals.unknown_buffs
            )
            debuffed_by_support = self._has_support_effect(
                record.effects_on_target, totals.debuffs, totals.unknown_buffs
            )
            if buffed_by_support:
                skill.buffed_by_support += damage
                source.damage_stats.buffed_by_support += damage
            if debuffed_by_support:
                skill.debuffed_by_support += damage
                source.damage_stats.debuffed_by_support += damage

            for buff_id in record.effects_on_source:
                _add(skill.buffed_by, buff_id, damage)
                _add(source.damage_stats.buffed_by, buff_id, damage)
            for buff_id in record.effects_on_target:
                _add(skill.debuffed_by, buff_id, damage)
                _add(source.damage_stats.debuffed_by, buff_id, damage)

        if target.entity_type == EntityType.PLAYER:
            totals.total_damage_taken += damage
            totals.top_damage_taken = max(
                totals.top_damage_taken, target.damage_stats.damage_taken
            )

        self.registry.refresh_boss_from_target(target)
        encounter.last_combat_packet = timestamp
        return True

    def status_effect(
        self,
        buff_id: int,
        cache: dict[int, StatusEffect],
        unknown: set[int],
    ) -> StatusEffect | None:
        if buff_id in unknown:
            return None
        status_effect = cache.get(buff_id)
        if status_effect is not None:
            return status_effect
        status_effect = self.resolver.resolve_status_effect(buff_id)
        if status_effect is None:
            unknown.add(buff_id)
            return None
        cache[buff_id] = status_effect
        return status_effect

    def _has_support_effect(
        self,
        buff_ids: Iterable[int],
        cache: dict[int, StatusEffect],
        unknown: set[int],
    ) -> bool:
        found = False
        for buff_id in buff_ids:
            status_effect = self.status_effect(buff_id, cache, unknown)
            if status_effect is not None and not found:
                found = is_support_status_effect(status_effect)
        return found


def _add(contributions: dict[int, int], buff_id: int, damage: int) -> None:
    contributions[buff_id] = contributions.get(buff_id, 0) + damage
