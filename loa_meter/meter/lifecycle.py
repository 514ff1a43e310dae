from __future__ import annotations

import copy
import logging
import time
from enum import Enum

from loa_meter.models import Encounter, EncounterDamageStats, Entity, EntityType

logger = logging.getLogger(__name__)


class ResetState(Enum):
    CLEAR = "clear"
    PENDING = "pending"


def reset(encounter: Encounter) -> None:
    previous = encounter.entities
    encounter.fight_start = 0
    encounter.last_combat_packet = 0
    encounter.duration = 0
    encounter.entities = {}
    encounter.current_boss_name = ""
    encounter.encounter_damage_stats = EncounterDamageStats()
    encounter.reset = False
    if not encounter.local_player:
        return
    player = previous.get(encounter.local_player)
    if player is None:
        return
    encounter.entities[encounter.local_player] = Entity(
        id=player.id,
        name=player.name,
        class_name=player.class_name,
        class_id=player.class_id,
        entity_type=EntityType.PLAYER,
        gear_score=player.gear_score,
        last_update=_now_ms(),
    )


def soft_reset(encounter: Encounter) -> None:
    previous = encounter.entities
    boss_name = encounter.current_boss_name
    reset(encounter)
    now = _now_ms()
    for key, entity in previous.items():
        encounter.entities[key] = Entity(
            id=entity.id,
            name=entity.name,
            npc_id=entity.npc_id,
            class_name=entity.class_name,
            class_id=entity.class_id,
            entity_type=entity.entity_type,
            gear_score=entity.gear_score,
            max_hp=entity.max_hp,
            current_hp=entity.current_hp,
            is_dead=entity.is_dead,
            last_update=now,
        )
    if boss_name in encounter.entities:
        encounter.current_boss_name = boss_name


def split_encounter(
    encounter: Encounter,
    collector: list[Encounter] | None,
    *,
    soft: bool,
) -> Encounter | None:
    finished: Encounter | None = None
    if encounter.active and encounter.has_damage():
        finished = copy.deepcopy(encounter)
        if collector is not None:
            collector.append(finished)
            logger.debug(
                "Encounter split: %d entities, boss %r",
                len(finished.entities),
                finished.current_boss_name,
            )
    if soft:
        soft_reset(encounter)
    else:
        reset(encounter)
    return finished


def _now_ms() -> int:
    return int(time.time() * 1000)
