from __future__ import annotations

from collections.abc import Iterable

from loa_meter.models import Encounter, MostDamageTakenEntity


def finalize_encounter(encounter: Encounter) -> Encounter:
    encounter.duration = encounter.last_combat_packet - encounter.fight_start
    seconds = encounter.duration / 1000
    stats = encounter.encounter_damage_stats
    stats.dps = _per_second(stats.total_damage_dealt, seconds)

    if encounter.entities:
        most_damaged = max(
            encounter.entities.values(), key=lambda entity: entity.damage_stats.damage_taken
        )
        stats.most_damage_taken_entity = MostDamageTakenEntity(
            name=most_damaged.name,
            damage_taken=most_damaged.damage_stats.damage_taken,
        )

    for name in [name for name, entity in encounter.entities.items() if entity.max_hp <= 0]:
        del encounter.entities[name]
    if encounter.current_boss_name not in encounter.entities:
        encounter.current_boss_name = ""

    for entity in encounter.entities.values():
        # from damage dealt; the upstream meter divides damage taken here
        entity.damage_stats.dps = _per_second(entity.damage_stats.damage_dealt, seconds)
        for skill in entity.skills.values():
            skill.dps = _per_second(skill.total_damage, seconds)
    return encounter


def finalize_encounters(encounters: Iterable[Encounter]) -> list[Encounter]:
    return [finalize_encounter(encounter) for encounter in encounters]


def _per_second(total: int, seconds: float) -> int:
    if seconds <= 0:
        return 0
    return int(total / seconds)
