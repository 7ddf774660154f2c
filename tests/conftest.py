"""
Shared fixtures for the encounter simulator tests.
"""

from collections import deque
from typing import Any

import pytest

from encountersim.combat.context import BattleContext
from encountersim.combatant.config import CombatantConfig
from encountersim.combatant.main import Combatant
from encountersim.core.dice_parser import Dice


class ScriptedDice(Dice):
    """A roller returning queued die faces before falling back to its generator."""

    def __init__(self, *faces: int, seed: Any = 0) -> None:
        super().__init__(seed=seed)
        self.faces: deque[int] = deque(faces)

    def queue(self, *faces: int) -> "ScriptedDice":
        self.faces.extend(faces)
        return self

    def roll_die(self, sides: int) -> int:
        if self.faces:
            return min(sides, self.faces.popleft())
        return super().roll_die(sides)


def build_config(**overrides: Any) -> CombatantConfig:
    data: dict[str, Any] = {
        "name": "Dummy",
        "is_player": True,
        "max_hp": 20,
        "armor_class": 12,
        "attack_bonus": 4,
        "damage": "1d8+2",
    }
    data.update(overrides)
    return CombatantConfig(**data)


@pytest.fixture
def make_config():
    return build_config


@pytest.fixture
def make_combatant():
    def _make(**overrides: Any) -> Combatant:
        return Combatant(build_config(**overrides))

    return _make


@pytest.fixture
def dice():
    return ScriptedDice()


@pytest.fixture
def make_ctx(dice):
    def _make(*combatants: Combatant, roller: Dice | None = None) -> BattleContext:
        return BattleContext(list(combatants), roller or dice)

    return _make


@pytest.fixture
def fighter(make_combatant):
    return make_combatant(
        name="Brom",
        class_name="FIGHTER",
        level=5,
        max_hp=44,
        armor_class=18,
        attack_bonus=7,
        damage="1d8+4",
        num_attacks=2,
    )


@pytest.fixture
def orc(make_combatant):
    return make_combatant(
        name="Orc",
        is_player=False,
        creature_type="HUMANOID",
        max_hp=15,
        armor_class=13,
        attack_bonus=5,
        damage="1d12+3",
    )
