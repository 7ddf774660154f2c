"""
Concentration.

A caster concentrates on at most one spell. Taking damage forces a
Constitution save to keep it, and losing it ends every condition the spell
was maintaining.
"""

from typing import TYPE_CHECKING

from encountersim.combat.log import ConcentrationEntry, ConditionEndedEntry
from encountersim.combat.saves import save_bonus
from encountersim.core.constants import CONCENTRATION_MIN_DC, Ability
from encountersim.effects.conditions import remove_conditions_from_source

if TYPE_CHECKING:
    from encountersim.combat.context import BattleContext
    from encountersim.combatant.main import Combatant


def concentration_dc(damage: int) -> int:
    return max(CONCENTRATION_MIN_DC, damage // 2)


def check_concentration(
    caster: "Combatant", damage: int, ctx: "BattleContext"
) -> list[ConcentrationEntry | ConditionEndedEntry]:
    """
    Rolls the Constitution save forced by taking damage while concentrating.

    Args:
        caster (Combatant): The damaged combatant.
        damage (int): Damage taken after mitigation.
        ctx (BattleContext): The encounter.

    Returns:
        list: The concentration check, followed by the conditions that ended
            if it failed. Empty when the caster was not concentrating.

    """
    if caster.concentrating_on is None or damage <= 0:
        return []
    dc = concentration_dc(damage)
    roll = ctx.dice.roll_d20()
    total = roll + save_bonus(caster, Ability.CONSTITUTION, ctx)
    maintained = total >= dc
    entries: list[ConcentrationEntry | ConditionEndedEntry] = [
        ConcentrationEntry(
            round=ctx.round,
            actor=caster.name,
            spell=caster.concentrating_on,
            dc=dc,
            roll=roll,
            total=total,
            maintained=maintained,
        )
    ]
    if not maintained:
        entries += break_concentration(caster, ctx)
    return entries


def break_concentration(caster: "Combatant", ctx: "BattleContext") -> list[ConditionEndedEntry]:
    """
    Ends the caster's concentration and the conditions it maintained.

    Returns:
        list[ConditionEndedEntry]: One entry per condition removed.

    """
    if caster.concentrating_on is None:
        return []
    caster.concentrating_on = None
    ended: list[ConditionEndedEntry] = []
    for combatant in ctx.combatants:
        for condition in remove_conditions_from_source(combatant, caster.name):
            ended.append(
                ConditionEndedEntry(
                    round=ctx.round,
                    actor=combatant.name,
                    condition=condition,
                    reason="concentration",
                )
            )
    return ended
