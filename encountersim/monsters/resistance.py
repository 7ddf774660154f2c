"""
Legendary resistance policy.

A legendary creature can turn a failed saving throw into a success a few
times per encounter. It always does so against conditions that would take it
out of the fight, and spends its last charge on nothing less.
"""

from typing import TYPE_CHECKING

from encountersim.core.constants import ConditionType
from encountersim.effects.conditions import DANGEROUS_CONDITIONS

if TYPE_CHECKING:
    from encountersim.combatant.main import Combatant

# Resisted while at least two charges remain.
ANNOYING_CONDITIONS = frozenset(
    {
        ConditionType.FRIGHTENED,
        ConditionType.CHARMED,
        ConditionType.RESTRAINED,
        ConditionType.BLINDED,
    }
)
# Share of maximum HP that makes a damage-only save worth resisting.
HEAVY_DAMAGE_RATIO = 0.25


def should_use_legendary_resistance(
    monster: "Combatant",
    condition: ConditionType | None = None,
    damage: int = 0,
) -> bool:
    """
    Decides whether a monster spends a legendary resistance on a failed save.

    Args:
        monster (Combatant): The creature that failed the save.
        condition (ConditionType | None): Condition riding on the save.
        damage (int): Damage riding on the save, for damage-only saves.

    Returns:
        bool: Whether to turn the failure into a success.

    """
    charges = monster.legendary_resistances_remaining
    if charges <= 0:
        return False
    if condition in DANGEROUS_CONDITIONS:
        return True
    if condition in ANNOYING_CONDITIONS:
        return charges >= 2
    if condition is None and damage > 0:
        return charges >= 2 and damage >= monster.max_hp * HEAVY_DAMAGE_RATIO
    return False


def use_legendary_resistance(monster: "Combatant") -> bool:
    """Spends one charge. Returns False when none is left."""
    if monster.legendary_resistances_remaining <= 0:
        return False
    monster.legendary_resistances_remaining -= 1
    return True
