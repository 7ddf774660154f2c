"""
Saving throws.

Every saving throw forced by a spell, a class feature or a monster ability
goes through `roll_saving_throw`, so that Aura of Protection, Legendary
Resistance and Indomitable apply uniformly and every save lands in the log.
"""

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from encountersim.classes.class_ai import should_use_indomitable
from encountersim.classes.features import aura_of_protection_bonus, indomitable_reroll
from encountersim.combat.log import SavingThrowEntry
from encountersim.core.constants import Ability, ConditionType, RollMode
from encountersim.monsters.resistance import (
    should_use_legendary_resistance,
    use_legendary_resistance,
)

if TYPE_CHECKING:
    from encountersim.combat.context import BattleContext
    from encountersim.combatant.main import Combatant


class SaveOutcome(BaseModel):
    """The resolved result of a saving throw."""

    success: bool = Field(description="Whether the save succeeded in the end")
    roll: int = Field(description="The d20 kept, after any reroll")
    total: int = Field(description="Roll plus bonus")
    dc: int = Field(description="Difficulty class")
    ability: Ability
    legendary_resistance: bool = Field(default=False, description="Success bought with a charge")
    indomitable: bool = Field(default=False, description="Whether Indomitable was used")


def save_bonus(
    combatant: "Combatant", ability: Ability, ctx: "BattleContext | None" = None
) -> int:
    """
    Saving throw bonus of a combatant.

    Args:
        combatant (Combatant): The combatant saving.
        ability (Ability): The ability of the save.
        ctx (BattleContext | None): The encounter, needed for allied auras.

    Returns:
        int: The explicit save bonus, or the ability modifier, plus the best
            Aura of Protection covering the combatant.

    """
    bonus = combatant.base_save_bonus(ability)
    if ctx is not None:
        bonus += aura_of_protection_bonus(combatant, ctx.allies_of(combatant))
    return bonus


def roll_saving_throw(
    target: "Combatant",
    ability: Ability,
    dc: int,
    ctx: "BattleContext",
    condition: ConditionType | None = None,
    damage: int = 0,
    disadvantage: bool = False,
    source: str | None = None,
) -> SaveOutcome:
    """
    Rolls and logs a saving throw.

    A dodging combatant has advantage on Dexterity saves. A failure can be
    turned around by a legendary creature spending Legendary Resistance, or
    by a fighter rerolling with Indomitable.

    Args:
        target (Combatant): The combatant saving.
        ability (Ability): The ability of the save.
        dc (int): The difficulty class.
        ctx (BattleContext): The encounter.
        condition (ConditionType | None): Condition riding on a failure.
        damage (int): Damage riding on a failure, for damage-only saves.
        disadvantage (bool): Whether the save is made with disadvantage.
        source (str | None): Name of what forced the save, for the log.

    Returns:
        SaveOutcome: The final result.

    """
    mode = RollMode.NORMAL
    if disadvantage:
        mode = RollMode.DISADVANTAGE
    elif ability == Ability.DEXTERITY and target.is_dodging:
        mode = RollMode.ADVANTAGE
    bonus = save_bonus(target, ability, ctx)
    roll = ctx.dice.roll_d20_with_modifier(mode).result
    outcome = SaveOutcome(success=roll + bonus >= dc, roll=roll, total=roll + bonus, dc=dc, ability=ability)

    if not outcome.success and should_use_indomitable(target, condition, is_damage=damage > 0):
        reroll = indomitable_reroll(target, ctx.dice)
        if reroll is not None:
            outcome.indomitable = True
            outcome.roll = reroll
            outcome.total = reroll + bonus
            outcome.success = outcome.total >= dc

    if not outcome.success and should_use_legendary_resistance(target, condition, damage):
        if use_legendary_resistance(target):
            outcome.legendary_resistance = True
            outcome.success = True

    ctx.record(
        SavingThrowEntry(
            round=ctx.round,
            actor=target.name,
            ability=ability,
            dc=dc,
            roll=outcome.roll,
            total=outcome.total,
            success=outcome.success,
            legendary_resistance=outcome.legendary_resistance,
            indomitable=outcome.indomitable,
            source=source,
        )
    )
    return outcome
