from __future__ import annotations

import pytest

from log_builders import (
    BACK_ATTACK,
    CRITICAL,
    DAMAGE_SHARE,
    FRONT_ATTACK,
    INVINCIBLE,
    counterattack,
    damage,
    ms,
    new_npc,
    new_pc,
    skill_start,
)
from loa_meter.meter import EncounterParser, decode_damage_modifier
from loa_meter.models import EntityType, HitFlag, HitOption


def _setup(parser: EncounterParser) -> None:
    parser.parse_line(new_pc("1", "Alice"))
    parser.parse_line(new_pc("2", "Bard", class_id=204, class_name="Bard"))
    parser.parse_line(new_npc("9", 100, "Valtan", current_hp=10000, max_hp=10000))


@pytest.mark.parametrize(
    ("modifier", "expected"),
    [
        (0x00, (HitFlag.NORMAL, HitOption.NONE)),
        (0x10, (HitFlag.NORMAL, HitOption.BACK_ATTACK)),
        (0x21, (HitFlag.CRITICAL, HitOption.FRONTAL_ATTACK)),
        (0x4D, (HitFlag.MAX, HitOption.MAX)),
        (0x0E, None),
        (0x0F, None),
        (0x50, None),
        (0x7B, None),
    ],
)
def test_decode_damage_modifier(modifier: int, expected: tuple[HitFlag, HitOption] | None) -> None:
    assert decode_damage_modifier(modifier) == expected


def test_back_attack_hit_updates_source_target_and_totals(replay_parser: EncounterParser) -> None:
    _setup(replay_parser)

    replay_parser.parse_line(damage("1", "Alice", "9", "Valtan", 500, modifier=BACK_ATTACK, at=2))

    encounter = replay_parser.encounter
    alice = encounter.entities["Alice"]
    valtan = encounter.entities["Valtan"]
    skill = alice.skills[16010]
    assert encounter.fight_start == ms(2)
    assert encounter.last_combat_packet == ms(2)
    assert encounter.current_boss_name == "Valtan"
    assert alice.damage_stats.damage_dealt == 500
    assert valtan.damage_stats.damage_taken == 500
    assert (skill.name, skill.casts, skill.hits, skill.back_attacks, skill.crits) == (
        "Sword Storm",
        1,
        1,
        1,
        0,
    )
    assert skill.total_damage == skill.max_damage == 500
    assert alice.skill_stats.hits == 1
    assert alice.skill_stats.back_attacks == 1
    assert encounter.encounter_damage_stats.total_damage_dealt == 500
    assert encounter.encounter_damage_stats.top_damage_dealt == 500
    assert encounter.encounter_damage_stats.total_damage_taken == 0


def test_crit_and_front_attack_counters(replay_parser: EncounterParser) -> None:
    _setup(replay_parser)

    replay_parser.parse_line(damage("1", "Alice", "9", "Valtan", 100, modifier=CRITICAL))
    replay_parser.parse_line(damage("1", "Alice", "9", "Valtan", 300, modifier=FRONT_ATTACK))

    skill = replay_parser.encounter.entities["Alice"].skills[16010]
    assert skill.hits == 2
    assert skill.crits == 1
    assert skill.front_attacks == 1
    assert skill.max_damage == 300
    assert replay_parser.encounter.entities["Alice"].skill_stats.crits == 1


def test_invincible_hit_is_ignored(replay_parser: EncounterParser) -> None:
    _setup(replay_parser)

    replay_parser.parse_line(damage("1", "Alice", "9", "Valtan", 500, modifier=INVINCIBLE))
    replay_parser.parse_line(damage("1", "Alice", "9", "Valtan", 500, modifier=0x0E))

    encounter = replay_parser.encounter
    assert not encounter.active
    assert encounter.entities["Alice"].skills == {}
    assert encounter.encounter_damage_stats.total_damage_dealt == 0


def test_bleed_damage_share_is_ignored(replay_parser: EncounterParser) -> None:
    _setup(replay_parser)

    replay_parser.parse_line(
        damage("1", "Alice", "42", "Newcomer", 500, skill_id=0, skill_name="Bleed", modifier=DAMAGE_SHARE)
    )

    assert "Newcomer" not in replay_parser.encounter.entities
    assert not replay_parser.encounter.active


def test_overkill_is_trimmed_for_non_players(replay_parser: EncounterParser) -> None:
    _setup(replay_parser)

    replay_parser.parse_line(damage("1", "Alice", "9", "Valtan", 500, current_hp=-200))
    replay_parser.parse_line(damage("9", "Valtan", "1", "Alice", 700, current_hp=-100, max_hp=1000))

    encounter = replay_parser.encounter
    assert encounter.entities["Alice"].damage_stats.damage_dealt == 300
    assert encounter.entities["Alice"].damage_stats.damage_taken == 700
    assert encounter.entities["Alice"].current_hp == -100
    assert encounter.encounter_damage_stats.total_damage_dealt == 300
    assert encounter.encounter_damage_stats.total_damage_taken == 700
    assert encounter.encounter_damage_stats.top_damage_taken == 700


def test_unknown_entities_are_created_on_damage(replay_parser: EncounterParser) -> None:
    replay_parser.parse_line(damage("7", "Stray", "8", "Target", 50, max_hp=2_000_000_000))

    encounter = replay_parser.encounter
    assert encounter.entities["Stray"].entity_type == EntityType.UNKNOWN
    assert encounter.entities["Target"].max_hp == 2_000_000_000
    assert encounter.current_boss_name == "Target"
    assert encounter.encounter_damage_stats.total_damage_dealt == 0
    assert encounter.has_damage() is False


def test_effect_id_replaces_missing_skill_id(replay_parser: EncounterParser) -> None:
    _setup(replay_parser)

    replay_parser.parse_line(
        damage("1", "Alice", "9", "Valtan", 250, skill_id=0, skill_name="", effect_id=500, effect_name="grenade")
    )

    skills = replay_parser.encounter.entities["Alice"].skills
    assert list(skills) == [500]
    assert (skills[500].name, skills[500].icon) == ("grenade", "")


def test_effect_id_is_resolved_through_skill_table(replay_parser: EncounterParser) -> None:
    _setup(replay_parser)

    replay_parser.parse_line(
        damage("1", "Alice", "9", "Valtan", 250, skill_id=0, skill_name="", effect_id=3001, effect_name="raw")
    )

    skill = replay_parser.encounter.entities["Alice"].skills[3001]
    assert (skill.name, skill.icon) == ("Effect Skill", "effect.png")


def test_skills_with_same_name_are_coalesced(replay_parser: EncounterParser) -> None:
    _setup(replay_parser)

    replay_parser.parse_line(skill_start("1", "Alice", 16010, "Sword Storm"))
    replay_parser.parse_line(damage("1", "Alice", "9", "Valtan", 100, skill_id=16060))
    replay_parser.parse_line(skill_start("1", "Alice", 16060, "Sword Storm"))

    alice = replay_parser.encounter.entities["Alice"]
    assert list(alice.skills) == [16010]
    assert alice.skills[16010].casts == 2
    assert alice.skills[16010].hits == 1
    assert alice.skill_stats.casts == 2


def test_support_buffs_are_attributed(replay_parser: EncounterParser) -> None:
    _setup(replay_parser)

    replay_parser.parse_line(
        damage(
            "1",
            "Alice",
            "9",
            "Valtan",
            400,
            source_buffs=(211400, 900, 31337),
            target_buffs=(210500,),
        )
    )
    replay_parser.parse_line(damage("1", "Alice", "9", "Valtan", 100, source_buffs=(900,)))

    encounter = replay_parser.encounter
    stats = encounter.entities["Alice"].damage_stats
    skill = encounter.entities["Alice"].skills[16010]
    assert stats.buffed_by_support == 400
    assert stats.debuffed_by_support == 400
    assert skill.buffed_by_support == 400
    assert stats.buffed_by == {211400: 400, 900: 500, 31337: 400}
    assert skill.debuffed_by == {210500: 400}
    totals = encounter.encounter_damage_stats
    assert set(totals.buffs) == {211400, 900}
    assert set(totals.debuffs) == {210500}
    assert totals.unknown_buffs == {31337}


def test_npc_damage_skips_buff_attribution(replay_parser: EncounterParser) -> None:
    _setup(replay_parser)

    replay_parser.parse_line(damage("9", "Valtan", "1", "Alice", 100, source_buffs=(211400,), max_hp=1000))

    encounter = replay_parser.encounter
    assert encounter.entities["Valtan"].damage_stats.buffed_by == {}
    assert encounter.encounter_damage_stats.buffs == {}


def test_counterattacks_are_counted_per_entity(replay_parser: EncounterParser) -> None:
    _setup(replay_parser)

    replay_parser.parse_line(counterattack("1", "Alice"))
    replay_parser.parse_line(counterattack("1", "Alice"))
    replay_parser.parse_line(counterattack("5", "Stranger"))

    entities = replay_parser.encounter.entities
    assert entities["Alice"].skill_stats.counters == 2
    assert entities["Stranger"].skill_stats.counters == 1
    assert entities["Stranger"].entity_type == EntityType.PLAYER
