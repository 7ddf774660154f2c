"""
Tests for battlefield positions and area-of-effect target selection.
"""

import pytest

from encountersim.combat.positioning import (
    count_enemies_by_position,
    get_default_position,
    select_aoe_targets,
    select_cone_targets,
    select_line_targets,
    select_sphere_targets,
    select_sphere_targets_with_friendly_fire,
)
from encountersim.core.constants import AoeShape, Position

from .conftest import ScriptedDice


def test_default_positions(make_config):
    assert get_default_position(make_config()) == Position.FRONT
    assert get_default_position(make_config(attack_type="RANGED")) == Position.BACK
    assert get_default_position(make_config(position="BACK")) == Position.BACK
    wizard = make_config(cantrips=["fire-bolt"], attack_bonus=2)
    assert get_default_position(wizard) == Position.BACK
    cleric = make_config(cantrips=["sacred-flame"], attack_bonus=2, healing_dice="1d8")
    assert get_default_position(cleric) == Position.FRONT


@pytest.fixture
def battlefield(make_combatant):
    caster = make_combatant(name="Caster", position="BACK")
    ally = make_combatant(name="Ally", position="FRONT", max_hp=30)
    orcs = [
        make_combatant(name=f"Orc {i}", is_player=False, position="FRONT", max_hp=15)
        for i in range(3)
    ]
    archer = make_combatant(name="Archer", is_player=False, position="BACK", max_hp=11)
    return [caster, ally, *orcs, archer]


def test_count_enemies_by_position(battlefield):
    counts = count_enemies_by_position(battlefield, attacker_is_player=True)
    assert counts == {Position.FRONT: 3, Position.BACK: 1}


def test_sphere_picks_the_crowded_line(battlefield):
    selection = select_sphere_targets(battlefield, caster_is_player=True)
    assert selection.should_cast
    assert selection.position == Position.FRONT
    assert len(selection.targets) == 3


def test_sphere_needs_two_targets(battlefield):
    for orc in battlefield[2:5]:
        orc.is_dead = True
    assert not select_sphere_targets(battlefield, caster_is_player=True).should_cast


def test_friendly_fire_weighs_allies_double(battlefield):
    selection = select_sphere_targets_with_friendly_fire(
        battlefield, True, avg_damage=28.0, caster=battlefield[0]
    )
    # Front: three orcs worth 45 against an ally costing 2 * 28. Back: a lone archer.
    assert not selection.should_cast
    assert selection.position == Position.BACK
    assert selection.value == 11


def test_friendly_fire_worth_it_without_allies(battlefield):
    battlefield[1].position = Position.BACK
    selection = select_sphere_targets_with_friendly_fire(
        battlefield, True, avg_damage=10.0, caster=battlefield[0]
    )
    assert selection.should_cast
    assert selection.position == Position.FRONT
    assert selection.allies == []


def test_cone_hits_the_whole_front_line(battlefield):
    selection = select_cone_targets(battlefield, attacker_is_player=True)
    assert [c.name for c in selection.targets] == ["Orc 0", "Orc 1", "Orc 2"]


def test_cone_without_front_line_hits_one_target(battlefield):
    for orc in battlefield[2:5]:
        orc.is_dead = True
    selection = select_cone_targets(battlefield, attacker_is_player=True)
    assert [c.name for c in selection.targets] == ["Archer"]
    assert selection.should_cast


def test_line_hits_one_per_line(battlefield):
    selection = select_line_targets(battlefield, True, ScriptedDice(seed=3))
    assert selection.should_cast
    assert {c.position for c in selection.targets} == {Position.FRONT, Position.BACK}


def test_aoe_dispatch(battlefield):
    selection = select_aoe_targets(AoeShape.CONE, battlefield, False, ScriptedDice())
    assert [c.name for c in selection.targets] == ["Ally"]
