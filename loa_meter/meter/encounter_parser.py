from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from loa_meter.domain.entity_registry import EntityRegistry
from loa_meter.domain.reference_data import ReferenceData
from loa_meter.domain.skill_resolver import SkillResolver
from loa_meter.meter.damage import DamageProcessor, decode_damage_modifier
from loa_meter.meter.lifecycle import ResetState, soft_reset, split_encounter
from loa_meter.meter.skills import ensure_skill
from loa_meter.models import Encounter, Entity, EntityType
from loa_meter.notify import PHASE_TRANSITION_EVENT, ZONE_CHANGE_EVENT, EventSink
from loa_meter.protocol.log_lines import (
    LogCounterAttack,
    LogDamage,
    LogDeath,
    LogInitEnv,
    LogLine,
    LogNewNpc,
    LogNewPc,
    LogPhaseTransition,
    LogSkillStart,
    LogType,
    tokenize_line,
)

LIVE_SETTLE_SECONDS = 6.0

Handler = Callable[[int, Sequence[str]], None]

logger = logging.getLogger(__name__)


# A collector list means replay: zone changes and phase transitions close the
# current encounter into it. Without one the encounter is reset in place and a
# phase transition only marks a reset for the next damage record.
@dataclass
class EncounterParser:
    reference: ReferenceData
    encounter: Encounter = field(default_factory=Encounter)
    collector: list[Encounter] | None = None
    sink: EventSink | None = None
    settle_seconds: float = LIVE_SETTLE_SECONDS
    reset_state: ResetState = ResetState.CLEAR
    resolver: SkillResolver = field(init=False)
    registry: EntityRegistry = field(init=False)
    damage: DamageProcessor = field(init=False)
    _handlers: dict[LogType, Handler] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.resolver = SkillResolver(self.reference)
        self.registry = EntityRegistry(self.encounter, self.reference)
        self.damage = DamageProcessor(self.registry, self.resolver)
        self._handlers = {
            LogType.MESSAGE: self._on_message,
            LogType.INIT_ENV: self._on_init_env,
            LogType.PHASE_TRANSITION: self._on_phase_transition,
            LogType.NEW_PC: self._on_new_pc,
            LogType.NEW_NPC: self._on_new_npc,
            LogType.DEATH: self._on_death,
            LogType.SKILL_START: self._on_skill_start,
            LogType.SKILL_STAGE: self._on_skill_stage,
            LogType.DAMAGE: self._on_damage,
            LogType.HEAL: self._on_heal,
            LogType.BUFF: self._on_buff,
            LogType.COUNTERATTACK: self._on_counterattack,
        }

    @property
    def is_live(self) -> bool:
        return self.collector is None

    def parse_line(self, line: str) -> None:
        log_line = tokenize_line(line)
        if log_line is None:
            return
        self.handle(log_line)

    def handle(self, log_line: LogLine) -> None:
        self._handlers[log_line.kind](log_line.timestamp, log_line.fields)

    def flush(self) -> None:
        if self.collector is None:
            return
        split_encounter(self.encounter, self.collector, soft=False)

    def _emit(self, event: str, payload: object) -> None:
        if self.sink is not None:
            self.sink.emit(event, payload)

    def _consume_pending_reset(self) -> None:
        if self.reset_state is ResetState.PENDING:
            logger.debug("Applying deferred soft reset")
            soft_reset(self.encounter)
            self.reset_state = ResetState.CLEAR

    def _on_message(self, _timestamp: int, fields: Sequence[str]) -> None:
        logger.debug("Message: %s", "|".join(fields[2:]))

    def _on_init_env(self, timestamp: int, fields: Sequence[str]) -> None:
        record = LogInitEnv.parse(fields)
        if record is None or not record.player_id:
            return
        encounter = self.encounter
        self.registry.ensure_local_player(record.player_id, timestamp)
        if self.is_live:
            self.registry.retain(
                lambda entity: entity.name == encounter.local_player
                or entity.damage_stats.damage_dealt > 0
            )
            encounter.current_boss_name = ""
            if self.settle_seconds > 0:
                time.sleep(self.settle_seconds)
            soft_reset(encounter)
            self.reset_state = ResetState.CLEAR
        else:
            split_encounter(encounter, self.collector, soft=False)
        logger.info("Zone change (local player id %s)", record.player_id)
        self._emit(ZONE_CHANGE_EVENT, "")

    def _on_phase_transition(self, _timestamp: int, fields: Sequence[str]) -> None:
        record = LogPhaseTransition.parse(fields)
        if record is None:
            return
        logger.info("Phase transition: %s", record.raid_result.value)
        self._emit(PHASE_TRANSITION_EVENT, record.raid_result)
        if self.is_live:
            self.reset_state = ResetState.PENDING
            self.encounter.reset = True
        else:
            split_encounter(self.encounter, self.collector, soft=True)

    def _on_new_pc(self, timestamp: int, fields: Sequence[str]) -> None:
        record = LogNewPc.parse(fields)
        if record is not None:
            self.registry.apply_new_pc(record, timestamp)

    def _on_new_npc(self, timestamp: int, fields: Sequence[str]) -> None:
        record = LogNewNpc.parse(fields)
        if record is not None:
            self.registry.apply_new_npc(record, timestamp)

    def _on_death(self, timestamp: int, fields: Sequence[str]) -> None:
        record = LogDeath.parse(fields)
        if record is not None:
            self.registry.apply_death(record, timestamp)

    def _on_skill_start(self, timestamp: int, fields: Sequence[str]) -> None:
        record = LogSkillStart.parse(fields)
        if record is None:
            return
        entity = self.registry.get_or_create(
            record.name, lambda: Entity(id=record.id, name=record.name)
        )
        entity.last_update = timestamp
        entity.is_dead = False
        entity.skill_stats.casts += 1
        skill, created = ensure_skill(entity, self.resolver, record.skill_id, record.skill_name)
        if created:
            skill.casts = 1
        else:
            skill.casts += 1

    def _on_skill_stage(self, _timestamp: int, _fields: Sequence[str]) -> None:
        pass

    def _on_damage(self, timestamp: int, fields: Sequence[str]) -> None:
        record = LogDamage.parse(fields)
        if record is None:
            return
        decoded = decode_damage_modifier(record.damage_mod)
        if decoded is None:
            logger.debug("Dropping damage record with modifier %#x", record.damage_mod)
            return
        self._consume_pending_reset()
        hit_flag, hit_option = decoded
        self.damage.apply(record, hit_flag, hit_option, timestamp)

    def _on_heal(self, _timestamp: int, _fields: Sequence[str]) -> None:
        logger.debug("Heal")

    def _on_buff(self, _timestamp: int, _fields: Sequence[str]) -> None:
        logger.debug("Buff")

    def _on_counterattack(self, _timestamp: int, fields: Sequence[str]) -> None:
        record = LogCounterAttack.parse(fields)
        if record is None:
            return
        entity = self.registry.get_or_create(
            record.name,
            lambda: Entity(id=record.id, name=record.name, entity_type=EntityType.PLAYER),
        )
        entity.skill_stats.counters += 1
