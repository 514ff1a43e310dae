from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loa_meter.domain.reference_data import SkillRecord


class EntityType(str, Enum):
    UNKNOWN = "UNKNOWN"
    PLAYER = "PLAYER"
    NPC = "NPC"
    BOSS = "BOSS"


class HitFlag(IntEnum):
    NORMAL = 0
    CRITICAL = 1
    MISS = 2
    INVINCIBLE = 3
    DOT = 4
    IMMUNE = 5
    IMMUNE_SILENCED = 6
    FONT_SILENCED = 7
    DOT_CRITICAL = 8
    DODGE = 9
    REFLECT = 10
    DAMAGE_SHARE = 11
    DODGE_HIT = 12
    MAX = 13


class HitOption(IntEnum):
    NONE = -1
    BACK_ATTACK = 0
    FRONTAL_ATTACK = 1
    FLANK_ATTACK = 2
    MAX = 3


class RaidResult(str, Enum):
    RAID_RESULT = "RAID_RESULT"
    GUARDIAN_DEAD = "GUARDIAN_DEAD"
    RAID_END = "RAID_END"
    UNKNOWN = "UNKNOWN"


class StatusEffectTarget(str, Enum):
    OTHER = "OTHER"
    PARTY = "PARTY"
    SELF = "SELF"


class StatusEffectBuffType(IntFlag):
    NONE = 0
    DMG = 1
    MOVESPEED = 1 << 1
    COOLDOWN = 1 << 2
    STAGGER = 1 << 3
    RESOURCE = 1 << 4


@dataclass
class Skill:
    id: int = 0
    name: str = ""
    icon: str = ""
    casts: int = 0
    hits: int = 0
    crits: int = 0
    back_attacks: int = 0
    front_attacks: int = 0
    total_damage: int = 0
    max_damage: int = 0
    dps: int = 0
    buffed_by: dict[int, int] = field(default_factory=dict)
    debuffed_by: dict[int, int] = field(default_factory=dict)
    buffed_by_support: int = 0
    debuffed_by_support: int = 0


@dataclass
class SkillStats:
    casts: int = 0
    hits: int = 0
    crits: int = 0
    back_attacks: int = 0
    front_attacks: int = 0
    counters: int = 0


@dataclass
class DamageStats:
    damage_dealt: int = 0
    damage_taken: int = 0
    dps: int = 0
    deaths: int = 0
    death_time: int = 0
    buffed_by: dict[int, int] = field(default_factory=dict)
    debuffed_by: dict[int, int] = field(default_factory=dict)
    buffed_by_support: int = 0
    debuffed_by_support: int = 0


@dataclass
class Entity:
    id: str = ""
    name: str = ""
    npc_id: int = 0
    entity_type: EntityType = EntityType.UNKNOWN
    class_name: str = ""
    class_id: int = 0
    gear_score: float = 0.0
    current_hp: int = 0
    max_hp: int = 0
    is_dead: bool = False
    last_update: int = 0
    skills: dict[int, Skill] = field(default_factory=dict)
    skill_stats: SkillStats = field(default_factory=SkillStats)
    damage_stats: DamageStats = field(default_factory=DamageStats)

    def find_skill_by_name(self, name: str) -> Skill | None:
        for skill in self.skills.values():
            if skill.name == name:
                return skill
        return None


@dataclass
class StatusEffectSource:
    name: str = ""
    desc: str = ""
    icon: str = ""
    skill: SkillRecord | None = None
    set_name: str | None = None


@dataclass
class StatusEffect:
    target: StatusEffectTarget = StatusEffectTarget.OTHER
    category: str = ""
    buff_category: str = ""
    buff_type: int = int(StatusEffectBuffType.NONE)
    unique_group: int = 0
    source: StatusEffectSource = field(default_factory=StatusEffectSource)


@dataclass
class MostDamageTakenEntity:
    name: str = ""
    damage_taken: int = 0


@dataclass
class EncounterDamageStats:
    total_damage_dealt: int = 0
    top_damage_dealt: int = 0
    total_damage_taken: int = 0
    top_damage_taken: int = 0
    dps: int = 0
    most_damage_taken_entity: MostDamageTakenEntity = field(
        default_factory=MostDamageTakenEntity
    )
    buffs: dict[int, StatusEffect] = field(default_factory=dict)
    debuffs: dict[int, StatusEffect] = field(default_factory=dict)
    unknown_buffs: set[int] = field(default_factory=set)


@dataclass
class Encounter:
    fight_start: int = 0
    last_combat_packet: int = 0
    duration: int = 0
    local_player: str = ""
    current_boss_name: str = ""
    entities: dict[str, Entity] = field(default_factory=dict)
    encounter_damage_stats: EncounterDamageStats = field(
        default_factory=EncounterDamageStats
    )
    reset: bool = False

    @property
    def active(self) -> bool:
        return self.fight_start != 0

    def has_damage(self) -> bool:
        stats = self.encounter_damage_stats
        return stats.total_damage_dealt != 0 or stats.total_damage_taken != 0
