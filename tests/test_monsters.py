"""
Tests for monster abilities: recharge, breath weapons, multiattack, legendary
actions, legendary resistance and frightful presence.
"""

import pytest

from encountersim.classes.class_ai import should_use_indomitable
from encountersim.combatant.config import LegendaryAbility
from encountersim.core.constants import ConditionType, LegendaryKind
from encountersim.effects.conditions import DANGEROUS_CONDITIONS, get_condition
from encountersim.monsters.abilities import (
    execute_breath_weapon,
    execute_frightful_presence,
    execute_legendary_action,
    execute_multiattack,
    process_recharges,
    reset_legendary_actions,
    roll_recharge,
    select_legendary_action,
    should_use_breath_weapon,
    should_use_frightful_presence,
)
from encountersim.monsters.resistance import should_use_legendary_resistance

from .conftest import ScriptedDice


@pytest.fixture
def dragon(make_combatant):
    return make_combatant(
        name="Dragon",
        is_player=False,
        creature_type="DRAGON",
        max_hp=200,
        armor_class=19,
        multiattack=[
            {"name": "Bite", "attack_bonus": 11, "damage": "2d10+6", "damage_type": "PIERCING"},
            {"name": "Claw", "attack_bonus": 11, "damage": "2d6+6", "count": 2},
        ],
        recharge_abilities=[
            {"name": "Fire Breath", "damage": "2d6", "save_dc": 13, "recharge_min": 5}
        ],
        legendary_actions=3,
        legendary_abilities=[
            {"name": "Tail Attack", "cost": 1, "attack_bonus": 11, "damage": "2d8+6"},
            {
                "name": "Wing Attack",
                "cost": 2,
                "kind": "AREA",
                "damage": "2d6+6",
                "save_dc": 19,
                "save_ability": "DEXTERITY",
                "on_fail": "PRONE",
            },
        ],
        legendary_resistances=3,
        frightful_presence={"save_dc": 16},
    )


@pytest.fixture
def heroes(make_combatant):
    return [
        make_combatant(name="Brom", max_hp=40, position="FRONT"),
        make_combatant(name="Alys", max_hp=40, position="FRONT"),
    ]


@pytest.mark.parametrize("d20, face", [(20, 6), (17, 6), (16, 5), (14, 5), (13, 4), (1, 1)])
def test_recharge_reads_a_d6_off_a_d20(dragon, d20, face):
    ability = dragon.config.recharge_abilities[0]
    recharged, rolled = roll_recharge(ability, ScriptedDice(d20))
    assert rolled == face
    assert recharged == (face >= 5)


def test_only_spent_abilities_roll_to_recharge(dragon, heroes, make_ctx):
    ctx = make_ctx(dragon, *heroes, roller=ScriptedDice(18))
    assert process_recharges(dragon, ctx) == []

    dragon.recharge_available["Fire Breath"] = False
    entries = process_recharges(dragon, ctx)
    assert len(entries) == 1
    assert entries[0].success
    assert dragon.recharge_available["Fire Breath"]


def test_breath_weapon_against_the_front_line(dragon, heroes, make_ctx):
    ctx = make_ctx(dragon, *heroes, roller=ScriptedDice(6, 6, 20, 2))
    ability = should_use_breath_weapon(dragon, ctx)
    assert ability is not None

    entry = execute_breath_weapon(dragon, ability, ctx)
    assert [o.damage for o in entry.outcomes] == [6, 12]
    assert not dragon.recharge_available["Fire Breath"]
    assert should_use_breath_weapon(dragon, ctx) is None


def test_breath_weapon_spared_on_a_weak_lone_target(dragon, make_combatant, make_ctx):
    rogue = make_combatant(name="Nettle", max_hp=10, position="FRONT")
    wizard = make_combatant(name="Quillon", max_hp=10, position="BACK")
    assert should_use_breath_weapon(dragon, make_ctx(dragon, rogue, wizard)) is None


def test_evasion_against_breath(dragon, make_combatant, make_ctx):
    rogue = make_combatant(name="Nettle", class_name="ROGUE", level=7, max_hp=40)
    ally = make_combatant(name="Brom", max_hp=40)
    ctx = make_ctx(dragon, rogue, ally, roller=ScriptedDice(5, 5, 20, 20))
    entry = execute_breath_weapon(dragon, dragon.config.recharge_abilities[0], ctx)
    assert [o.damage for o in entry.outcomes] == [0, 5]


def test_multiattack_repeats_entries(dragon, make_combatant, make_ctx):
    tank = make_combatant(name="Tank", max_hp=500)
    ctx = make_ctx(dragon, tank, roller=ScriptedDice(seed=5))
    entries = execute_multiattack(dragon, ctx)
    assert [e.attack_name for e in entries] == ["Bite", "Claw", "Claw"]


def test_legendary_area_preferred_against_a_group(dragon, heroes, make_ctx):
    ctx = make_ctx(dragon, *heroes)
    assert select_legendary_action(dragon, ctx).name == "Wing Attack"


def test_legendary_attack_against_a_lone_enemy(dragon, heroes, make_ctx):
    ctx = make_ctx(dragon, heroes[0])
    assert select_legendary_action(dragon, ctx).name == "Wing Attack"
    dragon.legendary_actions_remaining = 1
    assert select_legendary_action(dragon, ctx).name == "Tail Attack"


def test_legendary_actions_are_spent_and_reset(dragon, heroes, make_ctx):
    ctx = make_ctx(dragon, *heroes, roller=ScriptedDice(4, 4, 2, 20))
    wing = dragon.config.legendary_abilities[1]
    entry = execute_legendary_action(dragon, wing, ctx)

    assert dragon.legendary_actions_remaining == 1
    assert [o.saved for o in entry.outcomes] == [False, True]
    assert heroes[0].current_hp == 40 - 14
    assert get_condition(heroes[0], ConditionType.PRONE).duration == 1
    assert execute_legendary_action(dragon, wing, ctx) is None
    assert select_legendary_action(dragon, ctx).name == "Tail Attack"

    reset_legendary_actions(dragon)
    assert dragon.legendary_actions_remaining == 3


def test_unresolvable_legendary_action_is_not_spent(dragon, heroes, make_ctx):
    ctx = make_ctx(dragon, *heroes)
    tail = LegendaryAbility.model_construct(name="Tail", kind=LegendaryKind.ATTACK, damage=None)
    gust = LegendaryAbility.model_construct(name="Gust", kind=LegendaryKind.AREA, damage="1d6")

    assert execute_legendary_action(dragon, tail, ctx) is None
    assert execute_legendary_action(dragon, gust, ctx) is None
    assert dragon.legendary_actions_remaining == 3
    assert ctx.log == []


@pytest.mark.parametrize(
    "charges, condition, damage, expected",
    [
        (1, ConditionType.PARALYZED, 0, True),
        (1, ConditionType.FRIGHTENED, 0, False),
        (2, ConditionType.FRIGHTENED, 0, True),
        (1, ConditionType.PRONE, 0, False),
        (2, None, 60, True),
        (2, None, 20, False),
        (1, None, 60, False),
        (0, ConditionType.STUNNED, 0, False),
    ],
)
def test_legendary_resistance_policy(dragon, charges, condition, damage, expected):
    dragon.legendary_resistances_remaining = charges
    assert should_use_legendary_resistance(dragon, condition, damage) is expected


def test_frightful_presence(dragon, heroes, make_ctx):
    ctx = make_ctx(dragon, *heroes, roller=ScriptedDice(3, 19))
    assert should_use_frightful_presence(dragon, ctx)
    entry = execute_frightful_presence(dragon, ctx)

    assert [o.saved for o in entry.outcomes] == [False, True]
    frightened = get_condition(heroes[0], ConditionType.FRIGHTENED)
    assert frightened.save_end_of_turn
    assert frightened.duration == 10
    assert heroes[1].frightful_presence_immune
    assert not should_use_frightful_presence(dragon, ctx)


@pytest.mark.parametrize("condition", list(DANGEROUS_CONDITIONS))
def test_dangerous_conditions_warrant_the_last_reroll(dragon, make_combatant, condition):
    veteran = make_combatant(class_name="FIGHTER", level=9)
    dragon.legendary_resistances_remaining = 1
    assert should_use_legendary_resistance(dragon, condition)
    assert should_use_indomitable(veteran, condition)
    assert not should_use_indomitable(veteran, ConditionType.FRIGHTENED)
