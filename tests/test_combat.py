"""
Tests for attack resolution, saving throws, concentration and targeting.
"""

import pytest

from encountersim.combat.actions import AttackProfile, execute_attack, should_use_shield
from encountersim.combat.damage import apply_damage
from encountersim.combat.log import AttackEntry, ConcentrationEntry, SavingThrowEntry
from encountersim.combat.saves import roll_saving_throw, save_bonus
from encountersim.combat.targeting import (
    select_attack_target,
    select_heal_target,
    select_tactical_target,
    select_target,
    threat_score,
)
from encountersim.core.constants import Ability, ConditionType, DamageType
from encountersim.effects.concentration import concentration_dc
from encountersim.effects.conditions import apply_condition, has_condition

from .conftest import ScriptedDice


# ============================================================================
# ATTACKS
# ============================================================================


def test_attack_hits_on_armor_class(make_combatant, orc, make_ctx):
    hero = make_combatant(name="Hero", attack_bonus=4, damage="1d8+2")
    ctx = make_ctx(hero, orc, roller=ScriptedDice(9, 5))
    entry = execute_attack(hero, orc, ctx)

    assert entry.hit
    assert entry.total == 13
    assert entry.damage == 7
    assert orc.current_hp == 8
    assert ctx.log == [entry]


def test_natural_one_always_misses(make_combatant, orc, make_ctx):
    hero = make_combatant(name="Hero", attack_bonus=30)
    ctx = make_ctx(hero, orc, roller=ScriptedDice(1))
    entry = execute_attack(hero, orc, ctx)
    assert not entry.hit
    assert orc.current_hp == orc.max_hp


def test_natural_twenty_is_critical(make_combatant, orc, make_ctx):
    hero = make_combatant(name="Hero", attack_bonus=-10, damage="1d8+2")
    ctx = make_ctx(hero, orc, roller=ScriptedDice(20, 3, 4))
    entry = execute_attack(hero, orc, ctx)
    assert entry.hit
    assert entry.critical
    assert entry.damage == 3 + 4 + 2


def test_melee_hit_on_paralyzed_is_critical(make_combatant, make_ctx):
    attacker = make_combatant(name="Orc", is_player=False, attack_bonus=4, damage="1d8+2")
    target = make_combatant(name="Hero", max_hp=30)
    apply_condition(target, ConditionType.PARALYZED, duration=1)
    ctx = make_ctx(attacker, target, roller=ScriptedDice(10, 3, 4, 4))
    entry = execute_attack(attacker, target, ctx)

    assert entry.roll == 10
    assert entry.critical
    assert entry.damage == 10


def test_attack_on_downed_target_adds_failures(orc, make_combatant, make_ctx):
    hero = make_combatant(name="Hero")
    hero.current_hp = 0
    hero.is_unconscious = True
    ctx = make_ctx(hero, orc, roller=ScriptedDice(2))
    entry = execute_attack(orc, hero, ctx)

    assert entry.hit
    assert entry.death_save_failures == 2
    assert hero.death_save_failures == 2


def test_ranged_attack_on_downed_target_adds_one_failure(make_combatant, make_ctx):
    archer = make_combatant(name="Archer", is_player=False, attack_type="RANGED")
    hero = make_combatant(name="Hero")
    hero.current_hp = 0
    hero.is_unconscious = True
    ctx = make_ctx(archer, hero, roller=ScriptedDice(15))
    execute_attack(archer, hero, ctx)
    assert hero.death_save_failures == 1


def test_on_hit_condition_after_failed_save(make_combatant, make_ctx):
    wolf = make_combatant(
        name="Wolf",
        is_player=False,
        attack_bonus=4,
        damage="2d4+2",
        on_hit_effect={"condition": "PRONE", "save_dc": 11, "save_ability": "STRENGTH"},
    )
    hero = make_combatant(name="Hero", max_hp=30)
    ctx = make_ctx(wolf, hero, roller=ScriptedDice(15, 2, 2, 3))
    execute_attack(wolf, hero, ctx)
    assert hero.current_hp == 30 - 6
    assert has_condition(hero, ConditionType.PRONE)


def test_multiattack_profile_skips_weapon_riders(make_config):
    config = make_config(
        name="Dragon",
        is_player=False,
        multiattack=[{"name": "Bite", "attack_bonus": 10, "damage": "2d10+6", "count": 1}],
    )
    profile = AttackProfile.from_multiattack(config.multiattack[0])
    assert profile.name == "Bite"
    assert not profile.weapon


def test_shield_only_when_it_turns_the_hit(make_combatant):
    wizard = make_combatant(spells=["shield"], spell_slots={1: 2}, armor_class=12)
    assert should_use_shield(wizard, 14)
    assert not should_use_shield(wizard, 17)
    assert not should_use_shield(wizard, 11)


# ============================================================================
# SAVES AND CONCENTRATION
# ============================================================================


def test_save_bonus_prefers_explicit_saves(make_combatant):
    hero = make_combatant(ability_modifiers={"DEXTERITY": 1}, saving_throws={"DEXTERITY": 5})
    assert save_bonus(hero, Ability.DEXTERITY) == 5
    assert save_bonus(hero, Ability.WISDOM) == 0


def test_dodging_gives_advantage_on_dexterity_saves(make_combatant, make_ctx):
    monk = make_combatant()
    monk.is_dodging = True
    ctx = make_ctx(monk, roller=ScriptedDice(3, 18))
    outcome = roll_saving_throw(monk, Ability.DEXTERITY, 15, ctx)
    assert outcome.success
    assert outcome.roll == 18
    assert isinstance(ctx.log[-1], SavingThrowEntry)


def test_legendary_resistance_against_paralysis(make_combatant, make_ctx):
    dragon = make_combatant(name="Dragon", is_player=False, max_hp=200, legendary_resistances=1)
    ctx = make_ctx(dragon, roller=ScriptedDice(2))
    outcome = roll_saving_throw(dragon, Ability.WISDOM, 15, ctx, condition=ConditionType.PARALYZED)
    assert outcome.success
    assert outcome.legendary_resistance
    assert dragon.legendary_resistances_remaining == 0


def test_indomitable_rerolls_failed_save(make_combatant, make_ctx):
    fighter = make_combatant(class_name="FIGHTER", level=9)
    ctx = make_ctx(fighter, roller=ScriptedDice(2, 19))
    outcome = roll_saving_throw(fighter, Ability.WISDOM, 15, ctx, condition=ConditionType.STUNNED)
    assert outcome.success
    assert outcome.indomitable
    assert outcome.roll == 19


@pytest.mark.parametrize("damage, dc", [(0, 10), (19, 10), (22, 11), (40, 20)])
def test_concentration_dc(damage, dc):
    assert concentration_dc(damage) == dc


def test_lost_concentration_ends_conditions(make_combatant, make_ctx):
    caster = make_combatant(name="Quillon", max_hp=40)
    victim = make_combatant(name="Orc", is_player=False)
    caster.concentrating_on = "Hold Person"
    apply_condition(victim, ConditionType.PARALYZED, duration=10, source="Quillon", concentration=True)
    ctx = make_ctx(caster, victim, roller=ScriptedDice(2))

    outcome = apply_damage(caster, 30, DamageType.SLASHING, ctx)
    check = outcome.followups[0]
    assert isinstance(check, ConcentrationEntry)
    assert check.dc == 15
    assert not check.maintained
    assert caster.concentrating_on is None
    assert not has_condition(victim, ConditionType.PARALYZED)


# ============================================================================
# TARGETING
# ============================================================================


@pytest.fixture
def party(make_combatant):
    fighter = make_combatant(name="Fighter", max_hp=40, position="FRONT")
    wizard = make_combatant(
        name="Wizard", max_hp=22, position="BACK", cantrips=["fire-bolt"], spell_slots={1: 4}
    )
    rogue = make_combatant(name="Rogue", max_hp=18, position="FRONT")
    return [fighter, wizard, rogue]


def test_focus_fire_picks_lowest_hp(party, orc):
    assert select_target(orc, [orc, *party]).name == "Rogue"


def test_smart_melee_monster_is_held_by_the_front_line(party, make_combatant):
    spider = make_combatant(name="Spider", is_player=False, smart_targeting=True)
    party[1].concentrating_on = "Hold Person"
    target = select_tactical_target(spider, [spider, *party])
    assert target.position.name == "FRONT"


def test_smart_ranged_monster_reaches_the_back_line(party, make_combatant):
    archer = make_combatant(
        name="Archer", is_player=False, smart_targeting=True, attack_type="RANGED"
    )
    party[1].concentrating_on = "Hold Person"
    assert select_attack_target(archer, [archer, *party]).name == "Wizard"


def test_threat_score_ranks_casters(party):
    fighter, wizard, _ = party
    assert threat_score(wizard) > threat_score(fighter)


def test_threat_score_ranks_healers(make_combatant):
    priest = make_combatant(name="Priest", spells=["cure-wounds"], position="FRONT")
    acolyte = make_combatant(name="Acolyte", spells=["fire-bolt"], position="FRONT")
    assert threat_score(priest) == threat_score(acolyte) + 50


def test_attackers_finish_the_dying(party, orc):
    for hero in party:
        hero.current_hp = 0
        hero.is_unconscious = True
    party[2].death_save_failures = 2
    assert select_attack_target(orc, [orc, *party]).name == "Rogue"


def test_heal_target_is_only_the_dying(party, make_combatant):
    cleric = make_combatant(name="Cleric", healing_dice="1d8+3")
    party[0].current_hp = 1
    assert select_heal_target(cleric, [cleric, *party]) is None
    party[1].current_hp = 0
    party[1].is_unconscious = True
    assert select_heal_target(cleric, [cleric, *party]) is party[1]


def test_attack_log_records_roll_mode(make_combatant, orc, make_ctx):
    hero = make_combatant(name="Hero")
    hero.is_hidden = True
    ctx = make_ctx(hero, orc, roller=ScriptedDice(1, 1))
    entry = execute_attack(hero, orc, ctx)
    assert isinstance(entry, AttackEntry)
    assert entry.roll_mode.name == "ADVANTAGE"
