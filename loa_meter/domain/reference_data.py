from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar


ENV_DATA_DIR = "LOA_METER_DATA_DIR"
ENV_NPC_JSON = "LOA_METER_NPC_JSON"
ENV_SKILL_JSON = "LOA_METER_SKILL_JSON"
ENV_SKILL_EFFECT_JSON = "LOA_METER_SKILL_EFFECT_JSON"
ENV_SKILL_BUFF_JSON = "LOA_METER_SKILL_BUFF_JSON"

DEFAULT_DATA_DIRS = (
    Path("meter-data"),
    Path("data/meter-data"),
)
NPC_FILE = "Npc.json"
SKILL_FILE = "Skill.json"
SKILL_EFFECT_FILE = "SkillEffect.json"
SKILL_BUFF_FILE = "SkillBuff.json"

BOSS_GRADES = {"boss", "raid", "epic_raid", "commander"}

RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class NpcRecord:
    id: int
    name: str = ""
    grade: str = ""

    @property
    def is_boss(self) -> bool:
        return self.grade in BOSS_GRADES


@dataclass(frozen=True)
class SkillRecord:
    id: int
    name: str = ""
    desc: str = ""
    class_id: int = 0
    icon: str = ""
    summon_source_skill: int | None = None
    source_skill: int | None = None


@dataclass(frozen=True)
class SkillEffectRecord:
    id: int
    comment: str = ""
    source_skill: int | None = None
    item_name: str | None = None
    icon: str | None = None


@dataclass(frozen=True)
class SkillBuffRecord:
    id: int
    name: str = ""
    desc: str = ""
    icon: str = ""
    icon_show_type: str = ""
    duration: int = 0
    category: str = ""
    buff_type: str = ""
    set_name: str | None = None
    buff_category: str = ""
    target: str = ""
    unique_group: int = 0
    source_skill: int | None = None


@dataclass(frozen=True)
class ReferenceData:
    npcs: Mapping[int, NpcRecord] = field(default_factory=dict)
    skills: Mapping[int, SkillRecord] = field(default_factory=dict)
    skill_effects: Mapping[int, SkillEffectRecord] = field(default_factory=dict)
    skill_buffs: Mapping[int, SkillBuffRecord] = field(default_factory=dict)

    def npc(self, npc_id: int) -> NpcRecord | None:
        return self.npcs.get(npc_id)

    def skill(self, skill_id: int | None) -> SkillRecord | None:
        if skill_id is None:
            return None
        return self.skills.get(skill_id)

    def skill_effect(self, effect_id: int) -> SkillEffectRecord | None:
        return self.skill_effects.get(effect_id)

    def skill_buff(self, buff_id: int) -> SkillBuffRecord | None:
        return self.skill_buffs.get(buff_id)

    def is_boss_npc(self, npc_id: int) -> bool:
        npc = self.npcs.get(npc_id)
        return npc is not None and npc.is_boss

    @classmethod
    def from_raw(
        cls,
        *,
        npcs: Any = None,
        skills: Any = None,
        skill_effects: Any = None,
        skill_buffs: Any = None,
    ) -> ReferenceData:
        return cls(
            npcs=_build_table(npcs, _npc_from_record),
            skills=_build_table(skills, _skill_from_record),
            skill_effects=_build_table(skill_effects, _skill_effect_from_record),
            skill_buffs=_build_table(skill_buffs, _skill_buff_from_record),
        )


def load_reference_data(
    data_dir: str | Path | None = None,
    *,
    npc_path: str | Path | None = None,
    skill_path: str | Path | None = None,
    skill_effect_path: str | Path | None = None,
    skill_buff_path: str | Path | None = None,
    logger: logging.Logger | None = None,
) -> ReferenceData:
    logger = logger or logging.getLogger(__name__)
    base_dir = _resolve_data_dir(data_dir)
    if base_dir is None:
        logger.debug("No reference data directory found (meter-data).")

    tables: dict[str, Any] = {}
    for key, provided, env_key, filename in (
        ("npcs", npc_path, ENV_NPC_JSON, NPC_FILE),
        ("skills", skill_path, ENV_SKILL_JSON, SKILL_FILE),
        ("skill_effects", skill_effect_path, ENV_SKILL_EFFECT_JSON, SKILL_EFFECT_FILE),
        ("skill_buffs", skill_buff_path, ENV_SKILL_BUFF_JSON, SKILL_BUFF_FILE),
    ):
        path = _resolve_path(provided, env_key, base_dir, filename)
        if path is None:
            logger.debug("No %s table found (%s).", key, filename)
            tables[key] = {}
            continue
        tables[key] = _load_json(path, logger=logger)

    reference = ReferenceData.from_raw(**tables)
    for key in ("npcs", "skills", "skill_effects", "skill_buffs"):
        if tables[key] and not getattr(reference, key):
            logger.warning("Reference table %s loaded but produced no entries.", key)
    logger.debug(
        "Loaded reference data: %d npcs, %d skills, %d skill effects, %d skill buffs",
        len(reference.npcs),
        len(reference.skills),
        len(reference.skill_effects),
        len(reference.skill_buffs),
    )
    return reference


def _resolve_data_dir(provided: str | Path | None) -> Path | None:
    if provided:
        path = Path(provided)
        return path if path.is_dir() else None
    env_val = os.environ.get(ENV_DATA_DIR)
    if env_val:
        path = Path(env_val)
        return path if path.is_dir() else None
    for candidate in DEFAULT_DATA_DIRS:
        if candidate.is_dir():
            return candidate
    return None


def _resolve_path(
    provided: str | Path | None,
    env_key: str,
    base_dir: Path | None,
    filename: str,
) -> Path | None:
    if provided:
        path = Path(provided)
        return path if path.exists() else None
    env_val = os.environ.get(env_key)
    if env_val:
        path = Path(env_val)
        return path if path.exists() else None
    if base_dir is not None:
        candidate = base_dir / filename
        if candidate.exists():
            return candidate
    return None


def _load_json(path: Path, *, logger: logging.Logger) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        logger.exception("Failed to load JSON: %s", path)
        return {}


def _build_table(
    data: Any, factory: Callable[[int, dict[str, Any]], RecordT]
) -> dict[int, RecordT]:
    table: dict[int, RecordT] = {}
    for key, record in _iter_records(data):
        normalized = _normalize_keys(record)
        record_id = _coerce_int(normalized.get("id"), default=None)
        if record_id is None:
            record_id = _coerce_int(key, default=None)
        if record_id is None:
            continue
        table[record_id] = factory(record_id, normalized)
    return table


def _iter_records(data: Any) -> Iterable[tuple[Any, dict[str, Any]]]:
    if isinstance(data, Mapping):
        return [(key, value) for key, value in data.items() if isinstance(value, Mapping)]
    if isinstance(data, list):
        return [(None, value) for value in data if isinstance(value, Mapping)]
    return []


def _normalize_keys(record: Mapping[str, Any]) -> dict[str, Any]:
    return {str(k).replace("_", "").lower(): v for k, v in record.items()}


def _npc_from_record(record_id: int, record: dict[str, Any]) -> NpcRecord:
    return NpcRecord(
        id=record_id,
        name=_coerce_str(record.get("name")),
        grade=_coerce_str(record.get("grade")),
    )


def _skill_from_record(record_id: int, record: dict[str, Any]) -> SkillRecord:
    return SkillRecord(
        id=record_id,
        name=_coerce_str(record.get("name")),
        desc=_coerce_str(record.get("desc")),
        class_id=_coerce_int(record.get("classid")),
        icon=_coerce_str(record.get("icon")),
        summon_source_skill=_coerce_int(record.get("summonsourceskill"), default=None),
        source_skill=_coerce_int(record.get("sourceskill"), default=None),
    )


def _skill_effect_from_record(record_id: int, record: dict[str, Any]) -> SkillEffectRecord:
    return SkillEffectRecord(
        id=record_id,
        comment=_coerce_str(record.get("comment")),
        source_skill=_coerce_int(record.get("sourceskill"), default=None),
        item_name=_coerce_optional_str(record.get("itemname")),
        icon=_coerce_optional_str(record.get("icon")),
    )


def _skill_buff_from_record(record_id: int, record: dict[str, Any]) -> SkillBuffRecord:
    buff_type = record.get("bufftype")
    if buff_type is None:
        buff_type = record.get("type")
    return SkillBuffRecord(
        id=record_id,
        name=_coerce_str(record.get("name")),
        desc=_coerce_str(record.get("desc")),
        icon=_coerce_str(record.get("icon")),
        icon_show_type=_coerce_str(record.get("iconshowtype")),
        duration=_coerce_int(record.get("duration")),
        category=_coerce_str(record.get("category")),
        buff_type=_coerce_str(buff_type),
        set_name=_coerce_optional_str(record.get("setname")),
        buff_category=_coerce_str(record.get("buffcategory")),
        target=_coerce_str(record.get("target")),
        unique_group=_coerce_int(record.get("uniquegroup")),
        source_skill=_coerce_int(record.get("sourceskill"), default=None),
    )


def _coerce_int(value: Any, default: int | None = 0) -> int | None:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _coerce_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _coerce_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
