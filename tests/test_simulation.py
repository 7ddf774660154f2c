"""
Tests for the combat manager and the simulation runner.
"""

import pytest

from encountersim.combat.combat_manager import CombatManager
from encountersim.combat.log import CombatEndEntry, InitiativeEntry, RoundStartEntry, StatusEntry
from encountersim.core.constants import ConditionType, Position
from encountersim.core.error_handling import ConfigurationError
from encountersim.core.settings import SimulationSettings
from encountersim.effects.conditions import apply_condition, has_condition
from encountersim.simulation.results import SimulationResult
from encountersim.simulation.runner import (
    prepare_sides,
    run_combat,
    run_simulations,
    summarize,
)

from .conftest import ScriptedDice, build_config

PARTY = [
    {"name": "Brom", "max_hp": 44, "armor_class": 18, "attack_bonus": 7, "damage": "1d8+4",
     "num_attacks": 2, "class_name": "FIGHTER", "level": 5},
    {"name": "Alys", "max_hp": 38, "armor_class": 18, "attack_bonus": 5, "damage": "1d6+3",
     "healing_dice": "1d8+3"},
]
MONSTERS = [
    {"name": "Orc 1", "max_hp": 15, "armor_class": 13, "attack_bonus": 5, "damage": "1d12+3"},
    {"name": "Orc 2", "max_hp": 15, "armor_class": 13, "attack_bonus": 5, "damage": "1d12+3"},
]


def test_batch_of_ten():
    batch = run_simulations(PARTY, MONSTERS, 10, seed=11)
    summary = batch.summary

    assert len(batch.results) == 10
    assert summary.total_simulations == 10
    assert 0 <= summary.party_win_percentage <= 100
    assert summary.average_rounds > 0
    assert [r.id for r in batch.results] == list(range(10))


def test_seeded_batches_repeat():
    first = run_simulations(PARTY, MONSTERS, 5, seed="replay")
    second = run_simulations(PARTY, MONSTERS, 5, seed="replay")
    assert [(r.party_won, r.total_rounds) for r in first.results] == [
        (r.party_won, r.total_rounds) for r in second.results
    ]
    assert [e.describe() for e in first.results[0].log] == [
        e.describe() for e in second.results[0].log
    ]


def test_runs_share_no_state():
    batch = run_simulations(PARTY, MONSTERS, 3, seed=2)
    for result in batch.results:
        initiatives = [e for e in result.log if isinstance(e, InitiativeEntry)]
        assert len(initiatives) == 4
        assert result.log[-1].__class__ is CombatEndEntry


def test_single_run_outcome_is_consistent():
    result = run_combat(PARTY, MONSTERS, simulation_id=7, dice=ScriptedDice(seed=3))
    assert result.id == 7
    if result.party_won:
        assert result.surviving_party
        assert not result.surviving_monsters
    else:
        assert not result.surviving_party


def test_at_least_one_simulation():
    assert len(run_simulations(PARTY, MONSTERS, 0, seed=1).results) == 1


def test_sides_are_forced():
    party, monsters = prepare_sides(MONSTERS[:1], [build_config(name="Ogre", max_hp=59)])
    assert party[0].is_player
    assert not monsters[0].is_player


def test_empty_side_rejected():
    with pytest.raises(ConfigurationError):
        run_simulations([], MONSTERS, 1)


def test_duplicate_names_rejected():
    with pytest.raises(ConfigurationError):
        prepare_sides(PARTY, [{"name": "Brom", "max_hp": 7, "armor_class": 15}])


def test_invalid_record_rejected():
    with pytest.raises(ConfigurationError):
        prepare_sides(PARTY, [{"name": "Orc", "max_hp": 0, "armor_class": 13}])


def test_summarize_empty_batch():
    summary = summarize([])
    assert summary.total_simulations == 0
    assert summary.party_win_percentage == 0.0


def test_summarize_counts_survivors():
    results = [
        SimulationResult(id=0, party_won=True, total_rounds=3, surviving_party=["Brom"]),
        SimulationResult(id=1, party_won=False, total_rounds=5, surviving_monsters=["Orc 1"]),
        SimulationResult(id=2, party_won=True, total_rounds=4, surviving_party=["Brom", "Alys"]),
    ]
    summary = summarize(results)
    assert summary.party_wins == 2
    assert summary.party_win_percentage == pytest.approx(200 / 3)
    assert summary.average_rounds == 4
    assert summary.survivor_counts == {"Brom": 2, "Orc 1": 1, "Alys": 1}


def test_log_can_be_switched_off():
    settings = SimulationSettings(record_log=False, seed=4)
    batch = run_simulations(PARTY, MONSTERS, 2, settings=settings)
    assert all(r.log == [] for r in batch.results)


# ============================================================================
# ROUND LIMIT
# ============================================================================


def _stalemate(party_hp: int, monster_hp: int) -> SimulationResult:
    """Two sides immune to each other's blades, decided by the round limit."""
    party = [{"name": "Golem", "max_hp": party_hp, "armor_class": 10, "damage_immunities": ["SLASHING"]}]
    monsters = [{"name": "Statue", "max_hp": monster_hp, "armor_class": 10, "damage_immunities": ["SLASHING"]}]
    return run_combat(party, monsters, settings=SimulationSettings(max_rounds=3, seed=1))


def test_round_limit_tie_goes_to_monsters():
    result = _stalemate(20, 20)
    assert result.ended_by_round_limit
    assert result.total_rounds == 3
    assert not result.party_won
    assert result.surviving_party == ["Golem"]


def test_round_limit_decided_by_hit_points():
    assert _stalemate(21, 20).party_won
    assert not _stalemate(19, 20).party_won


# ============================================================================
# TURNS
# ============================================================================


def test_initiative_ties_favor_the_party():
    manager = CombatManager(
        [build_config(name="Zed")],
        [build_config(name="Aaron", is_player=False)],
        dice=ScriptedDice(10, 10),
    )
    manager.initialize()
    assert [c.name for c in manager.participants] == ["Zed", "Aaron"]


def test_initiative_uses_the_bonus():
    manager = CombatManager(
        [build_config(name="Slow")],
        [build_config(name="Quick", is_player=False, initiative_bonus=5)],
        dice=ScriptedDice(12, 8),
    )
    manager.initialize()
    assert manager.initiatives == {"Slow": 12, "Quick": 13}
    assert manager.participants[0].name == "Quick"


def test_round_starts_are_logged():
    result = run_combat(PARTY, MONSTERS, dice=ScriptedDice(seed=9))
    rounds = [e.round for e in result.log if isinstance(e, RoundStartEntry)]
    assert rounds == list(range(1, result.total_rounds + 1))


def test_incapacitated_combatant_loses_its_turn():
    manager = CombatManager(
        [build_config(name="Hero")], [build_config(name="Orc", is_player=False)], dice=ScriptedDice(seed=1)
    )
    hero = manager.ctx.find("Hero")
    apply_condition(hero, ConditionType.STUNNED, duration=1)
    manager.run_participant_turn(hero)
    assert isinstance(manager.ctx.log[-1], StatusEntry)
    assert manager.ctx.log[-1].status == "incapacitated"
    assert manager.ctx.find("Orc").current_hp == manager.ctx.find("Orc").max_hp


def test_conditions_expire_at_the_end_of_the_round():
    manager = CombatManager(
        [build_config(name="Hero")], [build_config(name="Orc", is_player=False)], dice=ScriptedDice(seed=1)
    )
    hero = manager.ctx.find("Hero")
    apply_condition(hero, ConditionType.POISONED, duration=1)
    manager.initialize()
    manager.end_of_round()
    assert not has_condition(hero, ConditionType.POISONED)


def test_turned_creature_flees_and_provokes(mocker):
    manager = CombatManager(
        [build_config(name="Cleric")],
        [build_config(name="Zombie", is_player=False, creature_type="UNDEAD", max_hp=22)],
        dice=ScriptedDice(seed=1),
    )
    zombie = manager.ctx.find("Zombie")
    apply_condition(zombie, ConditionType.TURNED, duration=10)
    attack = mocker.patch("encountersim.combat.combat_manager.execute_opportunity_attack")

    manager.run_participant_turn(zombie)

    attack.assert_called_once_with(manager.ctx.find("Cleric"), zombie, manager.ctx)
    assert zombie.position == Position.BACK


def test_downed_player_rolls_death_saves_on_its_turn(mocker):
    manager = CombatManager(
        [build_config(name="Hero")], [build_config(name="Orc", is_player=False)], dice=ScriptedDice(5)
    )
    hero = manager.ctx.find("Hero")
    hero.current_hp = 0
    hero.is_unconscious = True
    take_actions = mocker.patch.object(manager, "take_actions")

    manager.run_participant_turn(hero)

    assert hero.death_save_failures == 1
    take_actions.assert_not_called()
