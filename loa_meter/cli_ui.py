from __future__ import annotations

from datetime import datetime, timezone

from rich.table import Table
from rich.text import Text

from loa_meter.models import Encounter, Entity, EntityType

TYPE_COLORS = {
    EntityType.PLAYER: "#6de38f",
    EntityType.BOSS: "#ff7a59",
    EntityType.NPC: "#4fb3ff",
    EntityType.UNKNOWN: "#a39dff",
}
BAR_WIDTH = 20
NAME_LIMIT = 20


def format_encounter_table(encounter: Encounter, *, top_n: int = 10, title: str | None = None) -> Table:
    table = Table(title=title or encounter_title(encounter), title_justify="left")
    table.add_column("name")
    table.add_column("class")
    table.add_column("damage", justify="right")
    table.add_column("dps", justify="right")
    table.add_column("crit %", justify="right")
    table.add_column("back %", justify="right")
    table.add_column("front %", justify="right")
    table.add_column("support", justify="right")
    table.add_column("taken", justify="right")
    table.add_column("bar")

    entities = ranked_entities(encounter)
    if top_n > 0:
        entities = entities[:top_n]
    top_damage = max((entity.damage_stats.damage_dealt for entity in entities), default=0)
    for entity in entities:
        color = TYPE_COLORS.get(entity.entity_type, TYPE_COLORS[EntityType.UNKNOWN])
        stats = entity.skill_stats
        damage = entity.damage_stats
        table.add_row(
            Text(_shorten_label(entity.name), style=color),
            entity.class_name or "-",
            format_number(damage.damage_dealt),
            format_number(damage.dps),
            _percent(stats.crits, stats.hits),
            _percent(stats.back_attacks, stats.hits),
            _percent(stats.front_attacks, stats.hits),
            _percent(damage.buffed_by_support, damage.damage_dealt),
            format_number(damage.damage_taken),
            _bar(damage.damage_dealt, top_damage, color),
        )
    return table


def ranked_entities(encounter: Encounter) -> list[Entity]:
    entities = [
        entity
        for entity in encounter.entities.values()
        if entity.damage_stats.damage_dealt > 0 or entity.entity_type == EntityType.PLAYER
    ]
    entities.sort(key=lambda entity: entity.damage_stats.damage_dealt, reverse=True)
    return entities


def encounter_title(encounter: Encounter) -> str:
    boss = encounter.current_boss_name or "No boss"
    started = format_timestamp(encounter.fight_start) if encounter.fight_start else "-"
    stats = encounter.encounter_damage_stats
    return (
        f"{boss}  {started}  {format_duration(encounter.duration)}"
        f"  dmg {format_number(stats.total_damage_dealt)}"
        f"  dps {format_number(stats.dps)}"
    )


def format_timestamp(timestamp_ms: int) -> str:
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def format_duration(duration_ms: int) -> str:
    total = max(int(round(duration_ms / 1000)), 0)
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def format_number(value: float) -> str:
    value = float(value)
    for limit, suffix in ((1e9, "b"), (1e6, "m"), (1e3, "k")):
        if abs(value) >= limit:
            return f"{value / limit:.1f}{suffix}"
    return f"{value:.0f}"


def _percent(part: int, whole: int) -> str:
    if whole <= 0:
        return "-"
    return f"{part / whole * 100:.1f}"


def _bar(value: float, max_value: float, color: str) -> Text:
    if max_value <= 0:
        fill = 0
    else:
        fill = int(round((value / max_value) * BAR_WIDTH))
    fill = max(0, min(BAR_WIDTH, fill))
    return Text("#" * fill + "." * (BAR_WIDTH - fill), style=f"bold {color}")


def _shorten_label(label: str, limit: int = NAME_LIMIT) -> str:
    if len(label) <= limit:
        return label
    if limit <= 3:
        return label[:limit]
    return f"{label[: limit - 3]}..."
