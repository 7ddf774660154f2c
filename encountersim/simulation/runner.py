"""
Simulation runner.

Repeats an encounter many times and aggregates the outcomes. Every run gets a
fresh set of combatants and its own roller derived from the master seed, so
runs share no state and any single run can be replayed from `(seed, id)`.
"""

from collections import Counter
from collections.abc import Iterable
from typing import Any

from catchery import log_debug, log_warning
from pydantic import ValidationError

from encountersim.combat.combat_manager import CombatManager
from encountersim.combatant.config import CombatantConfig
from encountersim.core.dice_parser import Dice
from encountersim.core.error_handling import (
    ConfigurationError,
    ensure_int_in_range,
    require_non_empty,
    require_unique_names,
)
from encountersim.core.settings import SimulationSettings
from encountersim.simulation.results import (
    SimulationBatch,
    SimulationResult,
    SimulationSummary,
)

__all__ = [
    "SimulationBatch",
    "SimulationResult",
    "SimulationSummary",
    "prepare_sides",
    "run_combat",
    "run_simulations",
    "summarize",
]


def _to_configs(side: Iterable[CombatantConfig | dict[str, Any]], is_player: bool) -> list[CombatantConfig]:
    configs = []
    for item in side:
        if isinstance(item, CombatantConfig):
            if item.is_player != is_player:
                item = item.model_copy(update={"is_player": is_player})
            configs.append(item)
            continue
        try:
            configs.append(CombatantConfig(**{**item, "is_player": is_player}))
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid combatant: {e.errors()[0]['msg']}",
                {"combatant": item.get("name") if isinstance(item, dict) else repr(item)},
            ) from e
    return configs


def prepare_sides(
    party: Iterable[CombatantConfig | dict[str, Any]],
    monsters: Iterable[CombatantConfig | dict[str, Any]],
) -> tuple[list[CombatantConfig], list[CombatantConfig]]:
    """
    Validates both sides of an encounter.

    Plain dicts are validated into configurations, players on the party side
    and monsters on the other.

    Raises:
        ConfigurationError: If a side is empty, an entry is invalid or two
            combatants share a name.

    """
    party_configs = require_non_empty(_to_configs(party, True), "party")
    monster_configs = require_non_empty(_to_configs(monsters, False), "monsters")
    require_unique_names(c.name for c in party_configs + monster_configs)
    return party_configs, monster_configs


def run_combat(
    party: Iterable[CombatantConfig | dict[str, Any]],
    monsters: Iterable[CombatantConfig | dict[str, Any]],
    simulation_id: int = 0,
    dice: Dice | None = None,
    settings: SimulationSettings | None = None,
) -> SimulationResult:
    """
    Runs a single encounter to completion.

    Args:
        party (Iterable[CombatantConfig | dict]): The adventurers.
        monsters (Iterable[CombatantConfig | dict]): Their opponents.
        simulation_id (int): Identifier copied into the result.
        dice (Dice | None): The roller, derived from the settings' seed when
            omitted.
        settings (SimulationSettings | None): Round limit and log switch.

    Returns:
        SimulationResult: The outcome and the combat log.

    """
    settings = settings or SimulationSettings()
    party_configs, monster_configs = prepare_sides(party, monsters)
    if dice is None:
        dice = Dice.for_run(settings.seed, simulation_id)
    manager = CombatManager(party_configs, monster_configs, simulation_id, dice, settings)
    return manager.run()


def run_simulations(
    party: Iterable[CombatantConfig | dict[str, Any]],
    monsters: Iterable[CombatantConfig | dict[str, Any]],
    num_simulations: int,
    seed: int | str | None = None,
    settings: SimulationSettings | None = None,
) -> SimulationBatch:
    """
    Runs the same encounter many times.

    Args:
        party (Iterable[CombatantConfig | dict]): The adventurers.
        monsters (Iterable[CombatantConfig | dict]): Their opponents.
        num_simulations (int): Number of runs, at least 1.
        seed (int | str | None): Master seed, the settings' seed by default.
        settings (SimulationSettings | None): Round limit and log switch.

    Returns:
        SimulationBatch: One result per run and their summary.

    """
    settings = settings or SimulationSettings()
    count = ensure_int_in_range(num_simulations, "num_simulations", 1)
    master_seed = seed if seed is not None else settings.seed
    party_configs, monster_configs = prepare_sides(party, monsters)

    results = []
    for simulation_id in range(count):
        dice = Dice.for_run(master_seed, simulation_id)
        manager = CombatManager(party_configs, monster_configs, simulation_id, dice, settings)
        results.append(manager.run())
    summary = summarize(results)
    log_debug(
        f"Ran {count} simulations: party won {summary.party_wins} "
        f"({summary.party_win_percentage:.1f}%)"
    )
    return SimulationBatch(results=results, summary=summary)


def summarize(results: list[SimulationResult]) -> SimulationSummary:
    """
    Aggregates the results of a batch.

    Survivor counts tally, for every name, the runs it survived.
    """
    if not results:
        log_warning("Summarizing an empty batch.", {"results": 0})
        return SimulationSummary(
            total_simulations=0, party_wins=0, party_win_percentage=0.0, average_rounds=0.0
        )
    total = len(results)
    wins = sum(1 for r in results if r.party_won)
    survivors: Counter[str] = Counter()
    for result in results:
        survivors.update(result.surviving_party)
        survivors.update(result.surviving_monsters)
    return SimulationSummary(
        total_simulations=total,
        party_wins=wins,
        party_win_percentage=100.0 * wins / total,
        average_rounds=sum(r.total_rounds for r in results) / total,
        survivor_counts=dict(survivors),
        round_limit_endings=sum(1 for r in results if r.ended_by_round_limit),
    )
