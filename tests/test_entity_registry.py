from __future__ import annotations

import pytest

from loa_meter.domain import EntityRegistry, ReferenceData
from loa_meter.domain.entity_registry import is_boss_hp_sentinel
from loa_meter.models import Encounter, Entity, EntityType
from loa_meter.protocol.log_lines import LogDeath, LogNewNpc, LogNewPc


@pytest.fixture
def registry(reference: ReferenceData) -> EntityRegistry:
    return EntityRegistry(Encounter(), reference)


def _pc(entity_id: str, name: str, class_id: int = 102) -> LogNewPc:
    return LogNewPc(
        id=entity_id,
        name=name,
        class_id=class_id,
        class_name="Berserker",
        level=60,
        gear_score=1540.0,
        current_hp=1000,
        max_hp=1000,
    )


def _npc(entity_id: str, npc_id: int, name: str, max_hp: int = 1000) -> LogNewNpc:
    return LogNewNpc(id=entity_id, npc_id=npc_id, name=name, current_hp=max_hp, max_hp=max_hp)


def test_new_pc_merges_by_name(registry: EntityRegistry) -> None:
    first = registry.apply_new_pc(_pc("1", "Alice"), 10)
    first.damage_stats.damage_dealt = 500

    second = registry.apply_new_pc(_pc("2", "Alice", class_id=204), 20)

    assert second is first
    assert second.id == "2"
    assert second.class_id == 204
    assert second.damage_stats.damage_dealt == 500
    assert list(registry.encounter.entities) == ["Alice"]


def test_new_pc_evicts_stale_entity_with_same_id(registry: EntityRegistry) -> None:
    registry.apply_new_pc(_pc("1", "Alice"), 10)

    registry.apply_new_pc(_pc("1", "Bob"), 20)

    assert list(registry.encounter.entities) == ["Bob"]


def test_new_pc_renames_local_player(registry: EntityRegistry) -> None:
    registry.ensure_local_player("1000", 5)
    assert registry.encounter.local_player == "You"

    registry.apply_new_pc(_pc("1000", "Alice"), 10)

    assert registry.encounter.local_player == "Alice"
    assert list(registry.encounter.entities) == ["Alice"]
    assert registry.encounter.entities["Alice"].entity_type == EntityType.PLAYER


def test_ensure_local_player_updates_existing(registry: EntityRegistry) -> None:
    registry.ensure_local_player("1000", 5)
    registry.apply_new_pc(_pc("1000", "Alice"), 10)

    player = registry.ensure_local_player("2000", 30)

    assert player.name == "Alice"
    assert player.id == "2000"
    assert player.last_update == 30


def test_new_npc_classification(registry: EntityRegistry) -> None:
    boss = registry.apply_new_npc(_npc("9", 100, "Valtan"), 10)
    ghoul = registry.apply_new_npc(_npc("10", 200, "Ghoul"), 10)
    stranger = registry.apply_new_npc(_npc("11", 12345, "Stranger"), 10)

    assert boss.entity_type == EntityType.BOSS
    assert ghoul.entity_type == EntityType.NPC
    assert stranger.entity_type == EntityType.NPC
    assert registry.encounter.current_boss_name == "Valtan"


def test_boss_tracking_prefers_larger_boss(registry: EntityRegistry) -> None:
    registry.apply_new_npc(_npc("9", 100, "Valtan", max_hp=1000), 10)
    registry.apply_new_npc(_npc("10", 200, "Ghoul", max_hp=10**9), 20)
    assert registry.encounter.current_boss_name == "Valtan"

    registry.apply_new_npc(_npc("11", 101, "Vykas", max_hp=500), 30)
    assert registry.encounter.current_boss_name == "Valtan"

    registry.apply_new_npc(_npc("12", 101, "Vykas", max_hp=5000), 40)
    assert registry.encounter.current_boss_name == "Vykas"


def test_boss_tracking_clears_dangling_boss(registry: EntityRegistry) -> None:
    registry.encounter.current_boss_name = "Gone"

    registry.apply_new_npc(_npc("10", 100, "Valtan"), 10)

    assert registry.encounter.current_boss_name == ""


def test_retain_clears_removed_boss(registry: EntityRegistry) -> None:
    registry.apply_new_npc(_npc("9", 100, "Valtan"), 10)

    registry.retain(lambda entity: entity.entity_type != EntityType.BOSS)

    assert registry.encounter.entities == {}
    assert registry.encounter.current_boss_name == ""


def test_death_is_counted_once(registry: EntityRegistry) -> None:
    registry.apply_new_pc(_pc("1", "Alice"), 10)

    registry.apply_death(LogDeath("1", "Alice", "9", "Valtan"), 20)
    entity = registry.apply_death(LogDeath("1", "Alice", "9", "Valtan"), 30)

    assert entity is not None
    assert entity.is_dead
    assert entity.damage_stats.deaths == 1
    assert entity.damage_stats.death_time == 30


def test_death_with_mismatched_id_is_ignored(registry: EntityRegistry) -> None:
    registry.apply_new_pc(_pc("1", "Alice"), 10)

    assert registry.apply_death(LogDeath("2", "Alice", "9", "Valtan"), 20) is None
    assert not registry.encounter.entities["Alice"].is_dead


def test_death_of_unseen_entity_creates_it(registry: EntityRegistry) -> None:
    entity = registry.apply_death(LogDeath("5", "Ghost", "9", "Valtan"), 20)

    assert entity is not None
    assert entity.entity_type == EntityType.UNKNOWN
    assert entity.damage_stats.deaths == 1
    assert registry.get("Ghost") is entity


def test_refresh_boss_from_target(registry: EntityRegistry) -> None:
    registry.refresh_boss_from_target(Entity(name="Add", entity_type=EntityType.NPC, max_hp=999_999_999))
    assert registry.encounter.current_boss_name == ""

    registry.refresh_boss_from_target(Entity(name="Mystery", max_hp=999_999_999))
    assert registry.encounter.current_boss_name == "Mystery"

    registry.refresh_boss_from_target(Entity(name="Valtan", entity_type=EntityType.BOSS))
    assert registry.encounter.current_boss_name == "Valtan"


@pytest.mark.parametrize(
    ("max_hp", "expected"),
    [
        (1_865_513_011, True),
        (1_865_513_010, False),
        (529_402_339, True),
        (285_632_921, True),
        (999_999_999, True),
        (1_000_000, False),
    ],
)
def test_boss_hp_sentinels(max_hp: int, expected: bool) -> None:
    assert is_boss_hp_sentinel(max_hp) is expected
