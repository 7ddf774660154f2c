"""
Tests for status conditions and roll mode combination.
"""

from encountersim.core.constants import Ability, AttackType, ConditionType, RollMode
from encountersim.effects.conditions import (
    ApplyResult,
    apply_condition,
    can_act,
    clear_conditions,
    combine_modifiers,
    get_active_conditions,
    get_attack_modifier,
    get_combined_modifier,
    get_condition,
    get_defense_modifier,
    has_auto_crit_against,
    has_condition,
    process_end_of_turn_saves,
    remove_conditions_from_source,
    tick_conditions,
)

from .conftest import ScriptedDice


def test_apply_new_condition(make_combatant):
    target = make_combatant()
    assert apply_condition(target, ConditionType.POISONED, duration=2) == ApplyResult.APPLIED
    assert has_condition(target, ConditionType.POISONED)


def test_condition_immunity(make_combatant):
    skeleton = make_combatant(condition_immunities=["POISONED"])
    assert apply_condition(skeleton, ConditionType.POISONED, duration=2) == ApplyResult.IMMUNE
    assert not has_condition(skeleton, ConditionType.POISONED)


def test_reapply_keeps_longer_duration(make_combatant):
    target = make_combatant()
    apply_condition(target, ConditionType.PRONE, duration=3)
    assert apply_condition(target, ConditionType.PRONE, duration=1) == ApplyResult.REFRESHED
    assert get_condition(target, ConditionType.PRONE).duration == 3
    assert len(target.conditions) == 1


def test_reapply_extends_duration(make_combatant):
    target = make_combatant()
    apply_condition(target, ConditionType.PRONE, duration=1)
    apply_condition(target, ConditionType.PRONE, duration=4)
    assert get_condition(target, ConditionType.PRONE).duration == 4


def test_permanent_condition_replaces_timed_one(make_combatant):
    target = make_combatant()
    apply_condition(target, ConditionType.FRIGHTENED, duration=2)
    apply_condition(target, ConditionType.FRIGHTENED)
    assert get_condition(target, ConditionType.FRIGHTENED).duration is None


def test_tick_conditions_expires(make_combatant):
    target = make_combatant()
    apply_condition(target, ConditionType.STUNNED, duration=1)
    apply_condition(target, ConditionType.POISONED, duration=2)
    apply_condition(target, ConditionType.CHARMED)

    assert tick_conditions(target) == [ConditionType.STUNNED]
    assert get_condition(target, ConditionType.POISONED).duration == 1
    assert has_condition(target, ConditionType.CHARMED)


def test_incapacitating_conditions_block_turns(make_combatant):
    target = make_combatant()
    assert can_act(target)
    apply_condition(target, ConditionType.PARALYZED, duration=1)
    assert not can_act(target)


def test_combine_modifiers_cancel():
    """Test that any advantage and any disadvantage cancel out."""
    assert combine_modifiers(RollMode.ADVANTAGE, RollMode.ADVANTAGE, RollMode.DISADVANTAGE) == (
        RollMode.NORMAL
    )
    assert combine_modifiers(RollMode.ADVANTAGE, RollMode.NORMAL) == RollMode.ADVANTAGE
    assert combine_modifiers(RollMode.DISADVANTAGE) == RollMode.DISADVANTAGE
    assert combine_modifiers() == RollMode.NORMAL


def test_prone_target_depends_on_range(make_combatant):
    attacker, target = make_combatant(name="A"), make_combatant(name="B")
    apply_condition(target, ConditionType.PRONE, duration=1)
    assert get_combined_modifier(attacker, target, AttackType.MELEE) == RollMode.ADVANTAGE
    assert get_combined_modifier(attacker, target, AttackType.RANGED) == RollMode.DISADVANTAGE


def test_poisoned_attacker_against_restrained_target(make_combatant):
    attacker, target = make_combatant(name="A"), make_combatant(name="B")
    apply_condition(attacker, ConditionType.POISONED, duration=1)
    apply_condition(target, ConditionType.RESTRAINED, duration=1)
    assert get_combined_modifier(attacker, target, AttackType.MELEE) == RollMode.NORMAL


def test_paralyzed_target_is_auto_crit_in_melee(make_combatant):
    target = make_combatant()
    apply_condition(target, ConditionType.PARALYZED, duration=1)
    assert has_auto_crit_against(target, AttackType.MELEE)
    assert not has_auto_crit_against(target, AttackType.RANGED)


def test_end_of_turn_save_removes_condition(make_combatant):
    target = make_combatant(saving_throws={"WISDOM": 2})
    apply_condition(
        target,
        ConditionType.PARALYZED,
        duration=10,
        save_dc=13,
        save_ability=Ability.WISDOM,
        save_end_of_turn=True,
    )
    attempts = process_end_of_turn_saves(target, ScriptedDice(11))

    assert len(attempts) == 1
    assert attempts[0].success
    assert attempts[0].total == 13
    assert attempts[0].ability == Ability.WISDOM
    assert not has_condition(target, ConditionType.PARALYZED)


def test_end_of_turn_save_failure_keeps_condition(make_combatant):
    target = make_combatant()
    apply_condition(
        target,
        ConditionType.PARALYZED,
        duration=10,
        save_dc=13,
        save_ability=Ability.WISDOM,
        save_end_of_turn=True,
    )
    attempts = process_end_of_turn_saves(target, ScriptedDice(5), save_bonus=lambda _: 3)
    assert not attempts[0].success
    assert attempts[0].total == 8
    assert has_condition(target, ConditionType.PARALYZED)


def test_remove_conditions_from_source_only_concentration(make_combatant):
    target = make_combatant()
    apply_condition(target, ConditionType.PARALYZED, source="Quillon", concentration=True)
    apply_condition(target, ConditionType.PRONE, duration=1, source="Quillon")
    assert remove_conditions_from_source(target, "Quillon") == [ConditionType.PARALYZED]
    assert has_condition(target, ConditionType.PRONE)


def test_roll_modes_per_side(make_combatant):
    target = make_combatant()
    apply_condition(target, ConditionType.PRONE, duration=1)
    assert get_attack_modifier(target) == RollMode.DISADVANTAGE
    assert get_defense_modifier(target, AttackType.MELEE) == RollMode.ADVANTAGE
    assert get_defense_modifier(target, AttackType.RANGED) == RollMode.DISADVANTAGE
    assert get_attack_modifier(make_combatant(name="Fresh")) == RollMode.NORMAL


def test_clear_conditions(make_combatant):
    target = make_combatant()
    apply_condition(target, ConditionType.POISONED, duration=2)
    apply_condition(target, ConditionType.BLINDED, duration=2)
    assert get_active_conditions(target) == [ConditionType.POISONED, ConditionType.BLINDED]
    clear_conditions(target)
    assert get_active_conditions(target) == []
