"""
Tests for class resources, features and the class decision helpers.
"""

import pytest

from encountersim.classes.class_ai import should_use_lay_on_hands, should_use_uncanny_dodge
from encountersim.classes.features import (
    apply_evasion,
    aura_of_protection_bonus,
    calculate_sneak_attack,
    divine_smite_damage,
    spend_metamagic,
)
from encountersim.classes.resources import (
    aura_radius,
    consume_resource,
    get_max_resource,
    get_resource,
    has_class_feature,
    long_rest,
    martial_arts_die,
    reset_round_resources,
    reset_turn_resources,
    restore_resource,
    short_rest,
    sneak_attack_dice,
    start_rage,
    tick_rage,
)
from encountersim.classes.templates import ClassFeature
from encountersim.core.constants import Ability, Position, RAGE_DURATION_ROUNDS, ResourceName

from .conftest import ScriptedDice


def test_fighter_pools(fighter):
    assert get_resource(fighter, ResourceName.SECOND_WIND) == 1
    assert get_resource(fighter, ResourceName.ACTION_SURGE) == 1
    assert get_resource(fighter, ResourceName.INDOMITABLE) == 0


def test_monster_has_no_pools(orc):
    assert orc.class_resources == {}
    assert get_max_resource(orc, ResourceName.RAGE) == 0


def test_extra_attack_by_level(make_combatant):
    assert make_combatant(class_name="FIGHTER", level=4).num_attacks == 1
    assert make_combatant(class_name="FIGHTER", level=11).num_attacks == 3
    assert make_combatant(class_name="PALADIN", level=5).num_attacks == 2
    assert make_combatant(class_name="WIZARD", level=11).num_attacks == 1
    assert make_combatant(num_attacks=3).num_attacks == 3


def test_turn_and_round_resets(fighter):
    fighter.is_dodging = True
    fighter.sneak_attack_used_this_turn = True
    fighter.has_reaction = False
    fighter.uncanny_dodge_used_this_round = True

    reset_turn_resources(fighter)
    assert not fighter.is_dodging
    assert not fighter.sneak_attack_used_this_turn
    assert not fighter.has_reaction

    reset_round_resources(fighter)
    assert fighter.has_reaction
    assert not fighter.uncanny_dodge_used_this_round


def test_consume_fails_without_spending(make_combatant):
    monk = make_combatant(class_name="MONK", level=5)
    assert get_resource(monk, ResourceName.KI) == 5
    assert not consume_resource(monk, ResourceName.KI, 6)
    assert get_resource(monk, ResourceName.KI) == 5
    assert consume_resource(monk, ResourceName.KI, 2)
    assert get_resource(monk, ResourceName.KI) == 3


def test_restore_is_capped(make_combatant):
    monk = make_combatant(class_name="MONK", level=5)
    consume_resource(monk, ResourceName.KI, 2)
    assert restore_resource(monk, ResourceName.KI, 10) == 2
    assert get_resource(monk, ResourceName.KI) == 5


def test_rests(make_combatant):
    wizard = make_combatant(class_name="FIGHTER", level=5, spell_slots={1: 2})
    consume_resource(wizard, ResourceName.SECOND_WIND)
    consume_resource(wizard, ResourceName.ACTION_SURGE)
    wizard.current_slots[1] = 0

    short_rest(wizard)
    assert get_resource(wizard, ResourceName.SECOND_WIND) == 1
    assert get_resource(wizard, ResourceName.ACTION_SURGE) == 1
    assert wizard.current_slots[1] == 0

    long_rest(wizard)
    assert wizard.current_slots[1] == 2


def test_rage_lasts_ten_rounds(make_combatant):
    barbarian = make_combatant(class_name="BARBARIAN", level=5)
    assert start_rage(barbarian)
    assert not start_rage(barbarian)
    for _ in range(RAGE_DURATION_ROUNDS - 1):
        assert not tick_rage(barbarian)
    assert tick_rage(barbarian)
    assert not barbarian.is_raging


@pytest.mark.parametrize("level, dice", [(1, 1), (3, 2), (5, 3), (20, 10)])
def test_sneak_attack_dice(level, dice):
    assert sneak_attack_dice(level) == dice


def test_scaling_tables():
    assert martial_arts_die(1) == "1d4"
    assert martial_arts_die(11) == "1d8"
    assert aura_radius(5) == 0
    assert aura_radius(6) == 10
    assert aura_radius(18) == 30


def test_feature_levels(make_combatant):
    rogue = make_combatant(class_name="ROGUE", level=4)
    assert has_class_feature(rogue, ClassFeature.SNEAK_ATTACK)
    assert not has_class_feature(rogue, ClassFeature.UNCANNY_DODGE)


def test_fighting_style_needs_configuration(make_combatant):
    assert not has_class_feature(make_combatant(class_name="FIGHTER"), ClassFeature.FIGHTING_STYLE)
    styled = make_combatant(class_name="FIGHTER", fighting_style="DUELING")
    assert has_class_feature(styled, ClassFeature.FIGHTING_STYLE)


def test_sneak_attack_needs_advantage_or_adjacent_ally(make_combatant, orc):
    rogue = make_combatant(name="Nettle", class_name="ROGUE", level=5, position="BACK")
    ally = make_combatant(name="Brom", position="FRONT")
    assert calculate_sneak_attack(rogue, orc, [], has_advantage=False) is None
    assert calculate_sneak_attack(rogue, orc, [], has_advantage=True) == "3d6"
    assert calculate_sneak_attack(rogue, orc, [ally], has_advantage=False) == "3d6"
    rogue.sneak_attack_used_this_turn = True
    assert calculate_sneak_attack(rogue, orc, [ally], has_advantage=True) is None


def test_evasion(make_combatant):
    rogue = make_combatant(class_name="ROGUE", level=7)
    wizard = make_combatant(class_name="WIZARD", level=7)
    assert apply_evasion(rogue, 20, saved=True) == 0
    assert apply_evasion(rogue, 20, saved=False) == 10
    assert apply_evasion(wizard, 21, saved=True) == 10
    assert apply_evasion(wizard, 21, saved=False) == 21


def test_uncanny_dodge_once_per_round(make_combatant):
    rogue = make_combatant(class_name="ROGUE", level=5, max_hp=30)
    assert should_use_uncanny_dodge(rogue, 12)
    rogue.has_reaction = False
    assert not should_use_uncanny_dodge(rogue, 12)


def test_aura_of_protection(make_combatant):
    paladin = make_combatant(
        name="Paladin", class_name="PALADIN", level=6, ability_modifiers={"CHARISMA": 3}
    )
    fighter = make_combatant(name="Fighter", position="FRONT")
    wizard = make_combatant(name="Wizard", position="BACK")
    assert paladin.position == Position.FRONT
    assert aura_of_protection_bonus(fighter, [paladin, wizard]) == 3
    assert aura_of_protection_bonus(wizard, [paladin, fighter]) == 0
    assert aura_of_protection_bonus(paladin, [fighter]) == 3

    paladin.is_unconscious = True
    assert aura_of_protection_bonus(fighter, [paladin]) == 0


def test_divine_smite_spends_slot(make_combatant, orc):
    paladin = make_combatant(class_name="PALADIN", level=5, spell_slots={1: 4, 2: 2})
    dice = ScriptedDice(8, 8, 8)
    assert divine_smite_damage(paladin, 2, False, orc, dice) == 24
    assert paladin.current_slots[2] == 1


def test_divine_smite_extra_die_against_undead(make_combatant):
    paladin = make_combatant(class_name="PALADIN", level=5, spell_slots={1: 1})
    zombie = make_combatant(name="Zombie", is_player=False, creature_type="UNDEAD")
    assert divine_smite_damage(paladin, 1, False, zombie, ScriptedDice(1, 1, 1)) == 3


def test_metamagic_spends_sorcery_points(make_combatant):
    sorcerer = make_combatant(class_name="SORCERER", level=5)
    assert spend_metamagic(sorcerer, "quickened")
    assert get_resource(sorcerer, ResourceName.SORCERY_POINTS) == 3
    assert spend_metamagic(sorcerer, "heightened")
    assert not spend_metamagic(sorcerer, "quickened")
    assert get_resource(sorcerer, ResourceName.SORCERY_POINTS) == 0


def test_lay_on_hands_revives_dying_ally(make_combatant):
    paladin = make_combatant(name="Paladin", class_name="PALADIN", level=6)
    dying = make_combatant(name="Alys")
    dying.current_hp = 0
    dying.is_unconscious = True
    plan = should_use_lay_on_hands(paladin, [dying])
    assert plan is not None
    assert plan.target is dying
    assert plan.amount == 5


def test_paladin_save_bonus_uses_charisma(make_combatant):
    paladin = make_combatant(class_name="PALADIN", level=6, ability_modifiers={"CHA": 2})
    assert paladin.config.ability_modifier(Ability.CHARISMA) == 2
