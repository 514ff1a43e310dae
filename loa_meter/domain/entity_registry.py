from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from loa_meter.domain.reference_data import ReferenceData
from loa_meter.models import DamageStats, Encounter, Entity, EntityType
from loa_meter.protocol.log_lines import LogDeath, LogNewNpc, LogNewPc

LOCAL_PLAYER_NAME = "You"
BOSS_HP_SENTINEL_FLOOR = 1865513010
BOSS_HP_SENTINELS = {529402339, 285632921, 999_999_999}

logger = logging.getLogger(__name__)


# Display names are the merge key. An entity's raw id is whatever was seen last.
@dataclass
class EntityRegistry:
    encounter: Encounter
    reference: ReferenceData

    def get(self, name: str) -> Entity | None:
        return self.encounter.entities.get(name)

    def get_or_create(self, name: str, factory: Callable[[], Entity]) -> Entity:
        entity = self.encounter.entities.get(name)
        if entity is None:
            entity = factory()
            self.encounter.entities[name] = entity
        return entity

    def put(self, entity: Entity) -> None:
        self.encounter.entities[entity.name] = entity

    def retain(self, predicate: Callable[[Entity], bool]) -> None:
        entities = self.encounter.entities
        for name in [name for name, entity in entities.items() if not predicate(entity)]:
            del entities[name]
        self.clear_dangling_boss()

    def evict_id(self, entity_id: str) -> None:
        self.retain(lambda entity: entity.id != entity_id)

    def ensure_local_player(self, player_id: str, timestamp: int) -> Entity:
        player = self.encounter.entities.get(self.encounter.local_player)
        if player is not None:
            player.id = player_id
            player.last_update = timestamp
            return player
        self.encounter.local_player = LOCAL_PLAYER_NAME
        player = Entity(
            id=player_id,
            name=LOCAL_PLAYER_NAME,
            entity_type=EntityType.PLAYER,
            last_update=timestamp,
        )
        self.put(player)
        return player

    def apply_new_pc(self, record: LogNewPc, timestamp: int) -> Entity:
        encounter = self.encounter
        if encounter.local_player:
            local = encounter.entities.get(encounter.local_player)
            if local is not None and local.id == record.id:
                logger.debug("Local player identified as %s", record.name)
                encounter.local_player = record.name

        player = encounter.entities.get(record.name)
        if player is not None:
            player.id = record.id
            player.class_id = record.class_id
            player.class_name = record.class_name
            player.gear_score = record.gear_score
            player.current_hp = record.current_hp
            player.max_hp = record.max_hp
            player.last_update = timestamp
            return player

        self.evict_id(record.id)
        player = Entity(
            id=record.id,
            name=record.name,
            class_id=record.class_id,
            class_name=record.class_name,
            gear_score=record.gear_score,
            current_hp=record.current_hp,
            max_hp=record.max_hp,
            entity_type=EntityType.PLAYER,
            last_update=timestamp,
        )
        self.put(player)
        return player

    def apply_new_npc(self, record: LogNewNpc, timestamp: int) -> Entity:
        npc_info = self.reference.npc(record.npc_id)
        npc = self.encounter.entities.get(record.name)
        if npc is not None:
            npc.id = record.id
            npc.npc_id = record.npc_id
            npc.current_hp = record.current_hp
            npc.max_hp = record.max_hp
            npc.last_update = timestamp
            if npc_info is not None:
                npc.entity_type = EntityType.BOSS if npc_info.is_boss else EntityType.NPC
        else:
            npc = Entity(
                id=record.id,
                npc_id=record.npc_id,
                name=record.name,
                current_hp=record.current_hp,
                max_hp=record.max_hp,
                entity_type=(
                    EntityType.BOSS
                    if npc_info is not None and npc_info.is_boss
                    else EntityType.NPC
                ),
                last_update=timestamp,
            )
            self.put(npc)
        self.track_boss_from_npc(record)
        return npc

    def track_boss_from_npc(self, record: LogNewNpc) -> None:
        encounter = self.encounter
        is_boss = self.reference.is_boss_npc(record.npc_id)
        if not encounter.current_boss_name:
            if is_boss:
                encounter.current_boss_name = record.name
            return
        boss = encounter.entities.get(encounter.current_boss_name)
        if boss is None:
            encounter.current_boss_name = ""
            return
        if is_boss and record.max_hp > boss.max_hp:
            encounter.current_boss_name = record.name

    def apply_death(self, record: LogDeath, timestamp: int) -> Entity | None:
        entity = self.encounter.entities.get(record.name)
        if entity is None:
            entity = Entity(
                id=record.id,
                name=record.name,
                is_dead=True,
                damage_stats=DamageStats(deaths=1, death_time=timestamp),
                last_update=timestamp,
            )
            self.put(entity)
            return entity
        if entity.id != record.id:
            logger.debug(
                "Ignoring death of %s: id %s does not match %s",
                record.name,
                record.id,
                entity.id,
            )
            return None
        if not entity.is_dead:
            entity.damage_stats.deaths = 1
        entity.is_dead = True
        entity.damage_stats.death_time = timestamp
        entity.last_update = timestamp
        return entity

    def refresh_boss_from_target(self, target: Entity) -> None:
        if target.entity_type == EntityType.BOSS:
            self.encounter.current_boss_name = target.name
        elif target.entity_type == EntityType.UNKNOWN and is_boss_hp_sentinel(target.max_hp):
            self.encounter.current_boss_name = target.name

    def clear_dangling_boss(self) -> None:
        name = self.encounter.current_boss_name
        if name and name not in self.encounter.entities:
            self.encounter.current_boss_name = ""


def is_boss_hp_sentinel(max_hp: int) -> bool:
    return max_hp > BOSS_HP_SENTINEL_FLOOR or max_hp in BOSS_HP_SENTINELS
