from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Sequence

from loa_meter.models import RaidResult

FIELD_SEPARATOR = "|"
BUFF_SEPARATOR = ","
NO_SUBJECT_ID = "0"
UNKNOWN_ENTITY = "Unknown Entity"
UNKNOWN_SKILL = "Unknown Skill"
UNKNOWN_CLASS = "Unknown Class"
MAX_GEAR_SCORE = 1655.0

DAMAGE_MIN_FIELDS = 13
DAMAGE_BUFF_MIN_FIELDS = 17

DECIMAL_RE = re.compile(r"[-+]?[0-9]+")
HEX_RE = re.compile(r"[-+]?[0-9a-fA-F]+")

logger = logging.getLogger(__name__)


class LogParseError(ValueError):
    pass


class LogType(IntEnum):
    MESSAGE = 0
    INIT_ENV = 1
    PHASE_TRANSITION = 2
    NEW_PC = 3
    NEW_NPC = 4
    DEATH = 5
    SKILL_START = 6
    SKILL_STAGE = 7
    DAMAGE = 8
    HEAL = 9
    BUFF = 10
    COUNTERATTACK = 12


@dataclass(frozen=True)
class LogLine:
    kind: LogType
    timestamp: int
    fields: tuple[str, ...]


def tokenize_line(line: str) -> LogLine | None:
    if not line:
        return None
    fields = line.strip().split(FIELD_SEPARATOR)
    if len(fields) < 2 or not fields[0]:
        return None
    try:
        code = int(fields[0])
    except ValueError:
        logger.debug("Could not parse log type: %r", fields[0])
        return None
    timestamp = parse_timestamp(fields[1])
    if timestamp is None:
        logger.debug("Could not parse timestamp: %r", fields[1])
        return None
    if len(fields) > 2 and fields[2] == NO_SUBJECT_ID:
        return None
    try:
        kind = LogType(code)
    except ValueError:
        logger.debug("Ignoring unknown log type %d", code)
        return None
    return LogLine(kind=kind, timestamp=timestamp, fields=tuple(fields))


def parse_timestamp(raw: str) -> int | None:
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


@dataclass(frozen=True)
class LogInitEnv:
    player_id: str

    @classmethod
    def parse(cls, fields: Sequence[str]) -> LogInitEnv | None:
        if len(fields) < 3:
            return None
        return cls(player_id=fields[2])


@dataclass(frozen=True)
class LogPhaseTransition:
    raid_result: RaidResult

    @classmethod
    def parse(cls, fields: Sequence[str]) -> LogPhaseTransition | None:
        if len(fields) < 3:
            return None
        return cls(raid_result=_raid_result(fields[2]))


@dataclass(frozen=True)
class LogNewPc:
    id: str
    name: str
    class_id: int
    class_name: str
    level: int
    gear_score: float
    current_hp: int
    max_hp: int

    @classmethod
    def parse(cls, fields: Sequence[str]) -> LogNewPc | None:
        if len(fields) < 10:
            return None
        gear_score = _parse_float(fields[7])
        if not 0.0 <= gear_score <= MAX_GEAR_SCORE:
            gear_score = 0.0
        return cls(
            id=fields[2],
            name=fields[3] or UNKNOWN_ENTITY,
            class_id=_parse_int(fields[4]),
            class_name=fields[5] or UNKNOWN_CLASS,
            level=_parse_int(fields[6]),
            gear_score=gear_score,
            current_hp=_parse_int(fields[8]),
            max_hp=_parse_int(fields[9]),
        )


@dataclass(frozen=True)
class LogNewNpc:
    id: str
    npc_id: int
    name: str
    current_hp: int
    max_hp: int

    @classmethod
    def parse(cls, fields: Sequence[str]) -> LogNewNpc | None:
        if len(fields) < 7:
            return None
        return cls(
            id=fields[2],
            npc_id=_parse_int(fields[3]),
            name=fields[4] or UNKNOWN_ENTITY,
            current_hp=_parse_int(fields[5]),
            max_hp=_parse_int(fields[6]),
        )


@dataclass(frozen=True)
class LogDeath:
    id: str
    name: str
    killer_id: str
    killer_name: str

    @classmethod
    def parse(cls, fields: Sequence[str]) -> LogDeath | None:
        if len(fields) < 6:
            return None
        return cls(
            id=fields[2],
            name=fields[3] or UNKNOWN_ENTITY,
            killer_id=fields[4],
            killer_name=fields[5] or UNKNOWN_ENTITY,
        )


@dataclass(frozen=True)
class LogSkillStart:
    id: str
    name: str
    skill_id: int
    skill_name: str

    @classmethod
    def parse(cls, fields: Sequence[str]) -> LogSkillStart | None:
        if len(fields) < 6:
            return None
        return cls(
            id=fields[2],
            name=fields[3] or UNKNOWN_ENTITY,
            skill_id=_parse_int(fields[4]),
            skill_name=fields[5] or UNKNOWN_SKILL,
        )


@dataclass(frozen=True)
class LogDamage:
    source_id: str
    source_name: str
    skill_id: int
    skill_name: str
    skill_effect_id: int
    skill_effect: str
    target_id: str
    target_name: str
    damage: int
    damage_mod: int
    current_hp: int
    max_hp: int
    effects_on_target: frozenset[int] = field(default_factory=frozenset)
    effects_on_source: frozenset[int] = field(default_factory=frozenset)

    @classmethod
    def parse(cls, fields: Sequence[str]) -> LogDamage | None:
        if len(fields) < DAMAGE_MIN_FIELDS:
            return None
        effects_on_target: frozenset[int] = frozenset()
        effects_on_source: frozenset[int] = frozenset()
        if len(fields) >= DAMAGE_BUFF_MIN_FIELDS:
            effects_on_target = parse_buff_ids(fields[14])
            effects_on_source = parse_buff_ids(fields[15])
        return cls(
            source_id=fields[2],
            source_name=fields[3] or UNKNOWN_ENTITY,
            skill_id=_parse_int(fields[4]),
            skill_name=fields[5] or UNKNOWN_SKILL,
            skill_effect_id=_parse_int(fields[6]),
            skill_effect=fields[7],
            target_id=fields[8],
            target_name=fields[9] or UNKNOWN_ENTITY,
            damage=_parse_int(fields[10]),
            damage_mod=_parse_int(fields[11], base=16),
            current_hp=_parse_int(fields[12]),
            max_hp=_parse_int(fields[13]) if len(fields) > 13 else 0,
            effects_on_target=effects_on_target,
            effects_on_source=effects_on_source,
        )


@dataclass(frozen=True)
class LogCounterAttack:
    id: str
    name: str
    target_id: str
    target_name: str

    @classmethod
    def parse(cls, fields: Sequence[str]) -> LogCounterAttack | None:
        if len(fields) < 6:
            return None
        return cls(
            id=fields[2],
            name=fields[3] or UNKNOWN_ENTITY,
            target_id=fields[4],
            target_name=fields[5] or UNKNOWN_ENTITY,
        )


def parse_buff_ids(raw: str) -> frozenset[int]:
    # ids alternate with a second value that is not used
    return frozenset(
        _parse_int(token) for token in raw.split(BUFF_SEPARATOR)[::2] if token
    )


def _raid_result(raw: str) -> RaidResult:
    if not DECIMAL_RE.fullmatch(raw):
        return RaidResult.UNKNOWN
    code = int(raw)
    if code == 0:
        return RaidResult.RAID_RESULT
    if code == 1:
        return RaidResult.GUARDIAN_DEAD
    if code == 2:
        return RaidResult.RAID_END
    return RaidResult.UNKNOWN


def _parse_int(raw: str, base: int = 10) -> int:
    # plain sign and digits only; anything else counts as 0
    pattern = HEX_RE if base == 16 else DECIMAL_RE
    if not isinstance(raw, str) or not pattern.fullmatch(raw):
        return 0
    return int(raw, base)


def _parse_float(raw: str) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0
