"""
Condition registry for the encounter simulator.

Conditions are status effects (prone, stunned, poisoned, ...) attached to a
combatant. Each condition type has a static definition describing how it
changes the bearer's attacks, the attacks made against it and whether it can
act. The functions here are the only place where a combatant's condition list
is modified.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from catchery import log_debug
from pydantic import BaseModel, Field

from encountersim.core.constants import (
    Ability,
    AttackType,
    ConditionType,
    NiceEnum,
    RollMode,
)
from encountersim.core.dice_parser import Dice

if TYPE_CHECKING:
    from encountersim.combatant.main import Combatant

# Conditions that take the bearer out of the fight. Worth a reroll or a
# legendary resistance.
DANGEROUS_CONDITIONS = frozenset(
    {
        ConditionType.PARALYZED,
        ConditionType.STUNNED,
        ConditionType.PETRIFIED,
        ConditionType.INCAPACITATED,
    }
)


class ApplyResult(NiceEnum):
    """Outcome of applying a condition."""

    APPLIED = "APPLIED"
    REFRESHED = "REFRESHED"
    IMMUNE = "IMMUNE"


class ConditionDefinition(BaseModel):
    """Static rules of a condition type."""

    condition: ConditionType = Field(description="The condition described")
    attack_modifier: RollMode = Field(
        default=RollMode.NORMAL, description="Effect on the bearer's own attacks"
    )
    defend_melee: RollMode = Field(
        default=RollMode.NORMAL, description="Effect on melee attacks against the bearer"
    )
    defend_ranged: RollMode = Field(
        default=RollMode.NORMAL, description="Effect on ranged attacks against the bearer"
    )
    can_act: bool = Field(default=True, description="Whether the bearer can take its turn")
    auto_crit: bool = Field(
        default=False, description="Whether melee hits against the bearer are critical"
    )

    model_config = {"frozen": True}

    def defend_modifier(self, attack_type: AttackType) -> RollMode:
        if attack_type == AttackType.RANGED:
            return self.defend_ranged
        return self.defend_melee


def _definition(condition: ConditionType, **kwargs: Any) -> ConditionDefinition:
    return ConditionDefinition(condition=condition, **kwargs)


_ADV = RollMode.ADVANTAGE
_DIS = RollMode.DISADVANTAGE

CONDITIONS: dict[ConditionType, ConditionDefinition] = {
    d.condition: d
    for d in (
        _definition(ConditionType.PRONE, attack_modifier=_DIS, defend_melee=_ADV, defend_ranged=_DIS),
        _definition(ConditionType.STUNNED, defend_melee=_ADV, defend_ranged=_ADV, can_act=False),
        _definition(ConditionType.POISONED, attack_modifier=_DIS),
        _definition(ConditionType.RESTRAINED, attack_modifier=_DIS, defend_melee=_ADV, defend_ranged=_ADV),
        _definition(ConditionType.BLINDED, attack_modifier=_DIS, defend_melee=_ADV, defend_ranged=_ADV),
        _definition(
            ConditionType.PARALYZED,
            defend_melee=_ADV,
            defend_ranged=_ADV,
            can_act=False,
            auto_crit=True,
        ),
        _definition(ConditionType.FRIGHTENED, attack_modifier=_DIS),
        _definition(ConditionType.CHARMED),
        _definition(ConditionType.INCAPACITATED, can_act=False),
        _definition(ConditionType.PETRIFIED, defend_melee=_ADV, defend_ranged=_ADV, can_act=False),
        _definition(ConditionType.TURNED, can_act=False),
    )
}


class ActiveCondition(BaseModel):
    """A condition currently affecting a combatant."""

    condition: ConditionType = Field(description="The condition type")
    duration: int | None = Field(
        default=None, description="Remaining rounds, None for permanent"
    )
    save_dc: int | None = Field(default=None, description="DC of the end-of-turn save")
    save_ability: Ability | None = Field(default=None, description="Ability of the save")
    save_end_of_turn: bool = Field(
        default=False, description="Whether the bearer saves at the end of each turn"
    )
    source: str | None = Field(default=None, description="Name of the combatant responsible")
    concentration: bool = Field(
        default=False, description="Whether it ends with the source's concentration"
    )

    @property
    def definition(self) -> ConditionDefinition:
        return CONDITIONS[self.condition]


class EndOfTurnSave(BaseModel):
    """The result of one end-of-turn saving throw against a condition."""

    condition: ConditionType
    ability: Ability
    roll: int
    total: int
    dc: int
    success: bool


# ============================================================================
# QUERIES
# ============================================================================


def has_condition(combatant: "Combatant", condition: ConditionType) -> bool:
    return any(c.condition == condition for c in combatant.conditions)


def get_condition(combatant: "Combatant", condition: ConditionType) -> ActiveCondition | None:
    for active in combatant.conditions:
        if active.condition == condition:
            return active
    return None


def get_active_conditions(combatant: "Combatant") -> list[ConditionType]:
    return [c.condition for c in combatant.conditions]


def is_immune_to_condition(combatant: "Combatant", condition: ConditionType) -> bool:
    return condition in combatant.config.condition_immunities


def can_act(combatant: "Combatant") -> bool:
    """
    Checks whether a combatant's conditions allow it to take a turn.

    Args:
        combatant (Combatant): The combatant to check.

    Returns:
        bool: False if any active condition prevents actions.

    """
    return all(c.definition.can_act for c in combatant.conditions)


def has_auto_crit_against(target: "Combatant", attack_type: AttackType) -> bool:
    """Melee hits against a paralyzed creature are automatically critical."""
    if attack_type != AttackType.MELEE:
        return False
    return any(c.definition.auto_crit for c in target.conditions)


def combine_modifiers(*modes: RollMode) -> RollMode:
    """
    Combines several roll modes into one.

    Any source of advantage together with any source of disadvantage cancels
    out to a normal roll, however many of each there are.

    Returns:
        RollMode: The resulting mode.

    """
    advantage = RollMode.ADVANTAGE in modes
    disadvantage = RollMode.DISADVANTAGE in modes
    if advantage and disadvantage:
        return RollMode.NORMAL
    if advantage:
        return RollMode.ADVANTAGE
    if disadvantage:
        return RollMode.DISADVANTAGE
    return RollMode.NORMAL


def get_attack_modifier(attacker: "Combatant") -> RollMode:
    """Roll mode imposed by the attacker's own conditions."""
    return combine_modifiers(*(c.definition.attack_modifier for c in attacker.conditions))


def get_defense_modifier(target: "Combatant", attack_type: AttackType) -> RollMode:
    """Roll mode imposed on attacks by the target's conditions."""
    return combine_modifiers(
        *(c.definition.defend_modifier(attack_type) for c in target.conditions)
    )


def get_combined_modifier(
    attacker: "Combatant", target: "Combatant", attack_type: AttackType
) -> RollMode:
    """
    Roll mode of an attack, from the conditions on both sides.

    Args:
        attacker (Combatant): The attacking combatant.
        target (Combatant): The defending combatant.
        attack_type (AttackType): Melee or ranged.

    Returns:
        RollMode: ADVANTAGE, DISADVANTAGE or NORMAL.

    """
    return combine_modifiers(*condition_roll_modes(attacker, target, attack_type))


def condition_roll_modes(
    attacker: "Combatant", target: "Combatant", attack_type: AttackType
) -> list[RollMode]:
    """Every roll mode contributed by conditions, attacker's first."""
    modes = [c.definition.attack_modifier for c in attacker.conditions]
    modes += [c.definition.defend_modifier(attack_type) for c in target.conditions]
    return modes


# ============================================================================
# MUTATIONS
# ============================================================================


def apply_condition(
    combatant: "Combatant",
    condition: ConditionType,
    duration: int | None = None,
    save_dc: int | None = None,
    save_ability: Ability | None = None,
    save_end_of_turn: bool = False,
    source: str | None = None,
    concentration: bool = False,
) -> ApplyResult:
    """
    Applies a condition to a combatant.

    A condition type is held at most once. Re-applying an existing condition
    keeps the old entry unless the new one lasts longer (or forever), in which
    case it replaces it.

    Args:
        combatant (Combatant): The combatant receiving the condition.
        condition (ConditionType): The condition to apply.
        duration (int | None): Rounds it lasts, None for permanent.
        save_dc (int | None): DC of the end-of-turn save, if any.
        save_ability (Ability | None): Ability used for that save.
        save_end_of_turn (bool): Whether the bearer saves at the end of each turn.
        source (str | None): Name of the combatant responsible.
        concentration (bool): Whether it ends when the source loses concentration.

    Returns:
        ApplyResult: IMMUNE, REFRESHED or APPLIED.

    """
    if is_immune_to_condition(combatant, condition):
        log_debug(f"{combatant.name} is immune to {condition.display_name}")
        return ApplyResult.IMMUNE
    new = ActiveCondition(
        condition=condition,
        duration=duration,
        save_dc=save_dc,
        save_ability=save_ability,
        save_end_of_turn=save_end_of_turn,
        source=source,
        concentration=concentration,
    )
    for index, existing in enumerate(combatant.conditions):
        if existing.condition != condition:
            continue
        if duration is None or (existing.duration is not None and duration > existing.duration):
            combatant.conditions[index] = new
        return ApplyResult.REFRESHED
    combatant.conditions.append(new)
    return ApplyResult.APPLIED


def remove_condition(combatant: "Combatant", condition: ConditionType) -> bool:
    """Removes a condition. Returns whether it was present."""
    before = len(combatant.conditions)
    combatant.conditions = [c for c in combatant.conditions if c.condition != condition]
    return len(combatant.conditions) != before


def remove_conditions_from_source(combatant: "Combatant", source: str) -> list[ConditionType]:
    """Removes the concentration conditions maintained by the named caster."""
    removed = [c.condition for c in combatant.conditions if c.concentration and c.source == source]
    combatant.conditions = [
        c for c in combatant.conditions if not (c.concentration and c.source == source)
    ]
    return removed


def clear_conditions(combatant: "Combatant") -> None:
    combatant.conditions = []


def process_end_of_turn_saves(
    combatant: "Combatant",
    dice: Dice,
    save_bonus: Callable[[Ability], int] | None = None,
) -> list[EndOfTurnSave]:
    """
    Rolls the end-of-turn saves of every condition that allows one.

    A success removes the condition.

    Args:
        combatant (Combatant): The combatant whose turn is ending.
        dice (Dice): The roller.
        save_bonus (Callable[[Ability], int] | None): Bonus lookup. Defaults to
            the combatant's own saving throw bonus.

    Returns:
        list[EndOfTurnSave]: One entry per save rolled.

    """
    bonus_for = save_bonus or combatant.base_save_bonus
    attempts: list[EndOfTurnSave] = []
    for active in list(combatant.conditions):
        if not active.save_end_of_turn or active.save_dc is None or active.save_ability is None:
            continue
        roll = dice.roll_d20()
        total = roll + bonus_for(active.save_ability)
        success = total >= active.save_dc
        attempts.append(
            EndOfTurnSave(
                condition=active.condition,
                ability=active.save_ability,
                roll=roll,
                total=total,
                dc=active.save_dc,
                success=success,
            )
        )
        if success:
            remove_condition(combatant, active.condition)
    return attempts


def tick_conditions(combatant: "Combatant") -> list[ConditionType]:
    """
    Advances condition durations by one round.

    Permanent conditions are untouched. Conditions reaching 0 are removed.

    Returns:
        list[ConditionType]: The conditions that expired.

    """
    expired: list[ConditionType] = []
    remaining: list[ActiveCondition] = []
    for active in combatant.conditions:
        if active.duration is not None:
            active.duration -= 1
            if active.duration <= 0:
                expired.append(active.condition)
                continue
        remaining.append(active)
    combatant.conditions = remaining
    return expired
