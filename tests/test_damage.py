"""
Tests for damage mitigation, downing, death saves and healing.
"""

import pytest

from encountersim.classes.resources import start_rage
from encountersim.combat.combat_manager import CombatManager
from encountersim.combat.damage import apply_damage, apply_healing, resolve_damage
from encountersim.combat.log import DeathSaveEntry, StatusEntry
from encountersim.core.constants import DamageType

from .conftest import ScriptedDice, build_config


@pytest.fixture
def skeleton(make_combatant):
    return make_combatant(
        name="Skeleton",
        is_player=False,
        max_hp=13,
        damage_vulnerabilities=["BLUDGEONING"],
        damage_immunities=["POISON"],
        damage_resistances=["FIRE"],
    )


def test_immunity_blocks_damage(skeleton):
    result = resolve_damage(skeleton, 12, DamageType.POISON)
    assert result.final_damage == 0
    assert result.immune


def test_resistance_halves_rounding_down(skeleton):
    assert resolve_damage(skeleton, 7, DamageType.FIRE).final_damage == 3


def test_vulnerability_doubles(skeleton):
    result = resolve_damage(skeleton, 5, DamageType.BLUDGEONING)
    assert result.final_damage == 10
    assert result.vulnerable


def test_untyped_damage_is_unmitigated(skeleton):
    assert resolve_damage(skeleton, 5, None).final_damage == 5


def test_rage_halves_physical_damage(make_combatant):
    barbarian = make_combatant(class_name="BARBARIAN", level=5, max_hp=55)
    assert start_rage(barbarian)
    assert resolve_damage(barbarian, 9, DamageType.SLASHING).final_damage == 4
    assert resolve_damage(barbarian, 9, DamageType.FIRE).final_damage == 9


def test_player_drops_unconscious(make_combatant, make_ctx):
    hero = make_combatant(max_hp=10)
    ctx = make_ctx(hero)
    outcome = apply_damage(hero, 25, DamageType.SLASHING, ctx)

    assert outcome.downed
    assert outcome.damage == 10
    assert hero.current_hp == 0
    assert hero.is_unconscious
    assert not hero.is_dead
    assert any(isinstance(e, StatusEntry) and e.status == "downed" for e in outcome.followups)


def test_monster_dies_at_zero(orc, make_ctx):
    ctx = make_ctx(orc)
    outcome = apply_damage(orc, 30, DamageType.PIERCING, ctx)
    assert outcome.killed
    assert orc.is_dead
    assert not orc.is_unconscious


def test_damage_to_dying_player_adds_failures(make_combatant, make_ctx):
    hero = make_combatant(max_hp=10)
    ctx = make_ctx(hero)
    apply_damage(hero, 10, DamageType.SLASHING, ctx)

    apply_damage(hero, 3, DamageType.SLASHING, ctx)
    assert hero.death_save_failures == 1
    apply_damage(hero, 3, DamageType.SLASHING, ctx, is_critical=True)
    assert hero.death_save_failures == 3
    assert hero.is_dead


def test_dead_combatants_take_no_damage(orc, make_ctx):
    ctx = make_ctx(orc)
    apply_damage(orc, 30, DamageType.PIERCING, ctx)
    assert apply_damage(orc, 5, DamageType.PIERCING, ctx).damage == 0


def test_healing_capped_and_revives(make_combatant, make_ctx):
    hero = make_combatant(max_hp=10)
    ctx = make_ctx(hero)
    apply_damage(hero, 10, DamageType.SLASHING, ctx)
    hero.death_save_failures = 2

    healed, revived = apply_healing(hero, 50)
    assert (healed, revived) == (10, True)
    assert hero.is_conscious
    assert hero.death_save_failures == 0


def test_dead_cannot_be_healed(orc, make_ctx):
    apply_damage(orc, 30, DamageType.PIERCING, make_ctx(orc))
    assert apply_healing(orc, 5) == (0, False)


# ============================================================================
# DEATH SAVES
# ============================================================================


def _downed_manager(*faces: int) -> tuple[CombatManager, object]:
    hero = build_config(name="Hero", max_hp=10)
    orc = build_config(name="Orc", is_player=False, max_hp=15)
    manager = CombatManager([hero], [orc], dice=ScriptedDice(*faces))
    combatant = manager.ctx.find("Hero")
    combatant.current_hp = 0
    combatant.is_unconscious = True
    return manager, combatant


def test_death_save_natural_20_revives():
    manager, hero = _downed_manager(20)
    assert manager.roll_death_save(hero)
    assert hero.current_hp == 1
    assert hero.is_conscious


def test_death_save_natural_1_counts_twice():
    manager, hero = _downed_manager(1)
    assert not manager.roll_death_save(hero)
    assert hero.death_save_failures == 2
    assert not hero.is_dead


def test_three_failures_kill():
    manager, hero = _downed_manager(5, 9, 2)
    for _ in range(3):
        manager.roll_death_save(hero)
    assert hero.is_dead
    entries = [e for e in manager.ctx.log if isinstance(e, DeathSaveEntry)]
    assert entries[-1].outcome == "dead"


def test_three_successes_stabilize():
    manager, hero = _downed_manager(10, 15, 19)
    for _ in range(3):
        manager.roll_death_save(hero)
    assert hero.is_stabilized
    assert hero.is_unconscious
    assert not hero.is_dead
