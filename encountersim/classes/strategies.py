"""
Class strategy table.

Maps each character class to the hooks the combat loop calls during a turn.
Every hook has the same signature, `(combatant, ctx) -> ClassAction | None`:
it asks the class AI whether a feature is worth using right now and, if so,
describes it. `execute_class_action` then resolves the description through
the class ability library.

Hooks:
    pre_action: before the main action (Rage, Reckless Attack, Hide, Bardic
        Inspiration, Lay on Hands, Turn Undead).
    post_action: after the main action (Action Surge).
    bonus_action: when the bonus action is still free at the end of the turn
        (monk bonus actions, Step of the Wind, Disengage).
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field

from encountersim.classes.abilities import (
    execute_action_surge,
    execute_bardic_inspiration,
    execute_cunning_action,
    execute_flurry_of_blows,
    execute_lay_on_hands,
    execute_martial_arts,
    execute_patient_defense,
    execute_rage,
    execute_reckless_attack,
    execute_step_of_the_wind,
    execute_turn_undead,
)
from encountersim.classes.class_ai import (
    select_cunning_action,
    select_monk_bonus_action,
    should_rage,
    should_use_action_surge,
    should_use_bardic_inspiration,
    should_use_lay_on_hands,
    should_use_reckless_attack,
    should_use_turn_undead,
)
from encountersim.combat.log import BaseEntry
from encountersim.combat.targeting import select_attack_target
from encountersim.core.constants import ClassName

if TYPE_CHECKING:
    from encountersim.combat.context import BattleContext
    from encountersim.combatant.main import Combatant

ActionName = Literal[
    "action_surge",
    "bardic_inspiration",
    "cunning_action",
    "flurry_of_blows",
    "lay_on_hands",
    "martial_arts",
    "patient_defense",
    "rage",
    "reckless_attack",
    "step_of_the_wind",
    "turn_undead",
]
ActionCost = Literal["action", "bonus_action", "free"]


class ClassAction(BaseModel):
    """A class feature the AI decided to use."""

    name: ActionName
    cost: ActionCost = Field(default="free", description="What the feature spends")
    target: Any = Field(default=None, description="Target combatant, if any")
    amount: int | None = Field(default=None, description="Points spent, for pools")
    option: str | None = Field(default=None, description="Variant, e.g. the cunning action")


Hook = Callable[["Combatant", "BattleContext"], ClassAction | None]


def _no_action(combatant: "Combatant", ctx: "BattleContext") -> ClassAction | None:
    return None


class ClassStrategy:
    """The turn hooks of one class."""

    def __init__(
        self,
        pre_action: Hook = _no_action,
        post_action: Hook = _no_action,
        bonus_action: Hook = _no_action,
    ) -> None:
        self.pre_action = pre_action
        self.post_action = post_action
        self.bonus_action = bonus_action


# ============================================================================
# HOOKS
# ============================================================================


def _fighter_post(fighter: "Combatant", ctx: "BattleContext") -> ClassAction | None:
    target = select_attack_target(fighter, ctx.combatants)
    if target is None or ctx.is_over():
        return None
    if should_use_action_surge(fighter, target, ctx.allies_of(fighter), ctx.enemies_of(fighter)):
        return ClassAction(name="action_surge", target=target)
    return None


def _rogue_pre(rogue: "Combatant", ctx: "BattleContext") -> ClassAction | None:
    if rogue.bonus_action_used:
        return None
    if select_cunning_action(rogue, ctx.allies_of(rogue), ctx.enemies_of(rogue)) == "hide":
        return ClassAction(name="cunning_action", cost="bonus_action", option="hide")
    return None


def _rogue_bonus(rogue: "Combatant", ctx: "BattleContext") -> ClassAction | None:
    if select_cunning_action(rogue, ctx.allies_of(rogue), ctx.enemies_of(rogue)) == "disengage":
        return ClassAction(name="cunning_action", cost="bonus_action", option="disengage")
    return None


def _barbarian_pre(barbarian: "Combatant", ctx: "BattleContext") -> ClassAction | None:
    enemies = ctx.enemies_of(barbarian)
    if not barbarian.bonus_action_used and should_rage(barbarian, ctx.round, enemies):
        return ClassAction(name="rage", cost="bonus_action")
    if barbarian.is_reckless:
        return None
    target = select_attack_target(barbarian, ctx.combatants)
    if target is not None and should_use_reckless_attack(
        barbarian, target, ctx.allies_of(barbarian), enemies
    ):
        return ClassAction(name="reckless_attack", target=target)
    return None


def _paladin_pre(paladin: "Combatant", ctx: "BattleContext") -> ClassAction | None:
    if paladin.action_used:
        return None
    plan = should_use_lay_on_hands(paladin, ctx.allies_of(paladin))
    if plan is None:
        return None
    return ClassAction(name="lay_on_hands", cost="action", target=plan.target, amount=plan.amount)


def _monk_bonus(monk: "Combatant", ctx: "BattleContext") -> ClassAction | None:
    target = select_attack_target(monk, ctx.combatants)
    plan = select_monk_bonus_action(monk, target, ctx.allies_of(monk), ctx.enemies_of(monk))
    if plan is None:
        return None
    option = "disengage" if plan.kind == "step_of_the_wind" else None
    return ClassAction(name=plan.kind, cost="bonus_action", target=plan.target, option=option)


def _cleric_pre(cleric: "Combatant", ctx: "BattleContext") -> ClassAction | None:
    if cleric.action_used or not should_use_turn_undead(cleric, ctx.enemies_of(cleric)):
        return None
    return ClassAction(name="turn_undead", cost="action")


def _bard_pre(bard: "Combatant", ctx: "BattleContext") -> ClassAction | None:
    if bard.bonus_action_used:
        return None
    target = should_use_bardic_inspiration(bard, ctx.allies_of(bard))
    if target is None:
        return None
    return ClassAction(name="bardic_inspiration", cost="bonus_action", target=target)


CLASS_STRATEGIES: dict[ClassName, ClassStrategy] = {
    ClassName.FIGHTER: ClassStrategy(post_action=_fighter_post),
    ClassName.ROGUE: ClassStrategy(pre_action=_rogue_pre, bonus_action=_rogue_bonus),
    ClassName.BARBARIAN: ClassStrategy(pre_action=_barbarian_pre),
    ClassName.PALADIN: ClassStrategy(pre_action=_paladin_pre),
    ClassName.MONK: ClassStrategy(bonus_action=_monk_bonus),
    ClassName.CLERIC: ClassStrategy(pre_action=_cleric_pre),
    ClassName.BARD: ClassStrategy(pre_action=_bard_pre),
}


def get_strategy(combatant: "Combatant") -> ClassStrategy | None:
    if combatant.class_name is None:
        return None
    return CLASS_STRATEGIES.get(combatant.class_name)


def select_class_pre_action(combatant: "Combatant", ctx: "BattleContext") -> ClassAction | None:
    strategy = get_strategy(combatant)
    return strategy.pre_action(combatant, ctx) if strategy else None


def select_class_post_action(combatant: "Combatant", ctx: "BattleContext") -> ClassAction | None:
    strategy = get_strategy(combatant)
    return strategy.post_action(combatant, ctx) if strategy else None


def select_class_bonus_action(combatant: "Combatant", ctx: "BattleContext") -> ClassAction | None:
    """Looks up the class's bonus action hook. Classes without one return None."""
    if combatant.bonus_action_used:
        return None
    strategy = get_strategy(combatant)
    return strategy.bonus_action(combatant, ctx) if strategy else None


# ============================================================================
# EXECUTION
# ============================================================================


def execute_class_action(
    combatant: "Combatant", action: ClassAction, ctx: "BattleContext"
) -> BaseEntry | None:
    """
    Resolves a class action and spends the action or bonus action it costs.

    Returns:
        BaseEntry | None: The main log entry, or None when the feature could
            not be used after all (no uses left, no valid target).

    """
    name = action.name
    entry: BaseEntry | None
    if name == "action_surge":
        entry = execute_action_surge(combatant, ctx)
    elif name == "bardic_inspiration":
        entry = execute_bardic_inspiration(combatant, action.target, ctx)
    elif name == "cunning_action":
        entry = execute_cunning_action(combatant, action.option or "dash", ctx)
    elif name == "flurry_of_blows":
        entry = execute_flurry_of_blows(combatant, action.target, ctx)
    elif name == "lay_on_hands":
        entry = execute_lay_on_hands(combatant, action.target, action.amount or 0, ctx)
    elif name == "martial_arts":
        entry = execute_martial_arts(combatant, action.target, ctx)
    elif name == "patient_defense":
        entry = execute_patient_defense(combatant, ctx)
    elif name == "rage":
        entry = execute_rage(combatant, ctx)
    elif name == "reckless_attack":
        entry = execute_reckless_attack(combatant, ctx)
    elif name == "step_of_the_wind":
        entry = execute_step_of_the_wind(combatant, action.option or "disengage", ctx)
    else:
        entry = execute_turn_undead(combatant, ctx)
    if entry is not None:
        if action.cost == "action":
            combatant.action_used = True
        elif action.cost == "bonus_action":
            combatant.bonus_action_used = True
    return entry
