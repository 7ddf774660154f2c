"""
Damage resolution.

Mitigates raw damage (immunity, resistance, vulnerability, rage) and applies
it: hit points drop, players fall unconscious, monsters die, concentration is
tested. Consequences are returned as log entries so that callers record them
right after the event that caused them.
"""

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from encountersim.classes.class_ai import should_use_uncanny_dodge
from encountersim.classes.features import uncanny_dodge
from encountersim.classes.resources import end_rage, has_class_feature
from encountersim.classes.templates import ClassFeature
from encountersim.combat.log import ClassFeatureEntry, StatusEntry
from encountersim.combat.saves import roll_saving_throw
from encountersim.core.constants import (
    DEATH_SAVE_THRESHOLD,
    RELENTLESS_RAGE_DC_STEP,
    Ability,
    ClassName,
    DamageType,
)
from encountersim.effects.concentration import break_concentration, check_concentration

if TYPE_CHECKING:
    from encountersim.combat.context import BattleContext
    from encountersim.combatant.main import Combatant


class DamageResult(BaseModel):
    """Damage left after mitigation, and why."""

    final_damage: int = Field(ge=0, description="Damage actually dealt")
    immune: bool = False
    resistant: bool = False
    vulnerable: bool = False
    rage_resisted: bool = False


class DamageOutcome(BaseModel):
    """What applying damage did to its target."""

    damage: int = Field(default=0, description="Hit points lost")
    result: DamageResult | None = None
    downed: bool = Field(default=False, description="A player dropped to 0 hit points")
    killed: bool = Field(default=False, description="The target died")
    death_save_failures: int = Field(default=0, description="Failures added to a dying target")
    uncanny_dodge: bool = False
    followups: list[Any] = Field(default_factory=list, description="Log entries to record")


def resolve_damage(target: "Combatant", amount: int, damage_type: DamageType | None) -> DamageResult:
    """
    Mitigates damage against a target's defences.

    Immunity wins over everything. Resistance (or a raging barbarian against
    bludgeoning, piercing and slashing) halves, rounding down. Vulnerability
    doubles.

    Args:
        target (Combatant): The combatant taking damage.
        amount (int): Raw damage.
        damage_type (DamageType | None): Type of the damage, None for untyped.

    Returns:
        DamageResult: The final damage and the defences that applied.

    """
    amount = max(0, amount)
    config = target.config
    if damage_type is None:
        return DamageResult(final_damage=amount)
    if damage_type in config.damage_immunities:
        return DamageResult(final_damage=0, immune=True)
    if damage_type in config.damage_resistances:
        return DamageResult(final_damage=amount // 2, resistant=True)
    if target.is_raging and target.class_name == ClassName.BARBARIAN and damage_type.is_physical:
        return DamageResult(final_damage=amount // 2, rage_resisted=True)
    if damage_type in config.damage_vulnerabilities:
        return DamageResult(final_damage=amount * 2, vulnerable=True)
    return DamageResult(final_damage=amount)


def add_death_save_failures(
    target: "Combatant", count: int, ctx: "BattleContext"
) -> list[Any]:
    """
    Adds death-save failures to a dying combatant.

    Returns:
        list: A death status entry when the failures reach the threshold.

    """
    if target.is_dead or not target.is_unconscious:
        return []
    target.death_save_failures = min(DEATH_SAVE_THRESHOLD, target.death_save_failures + count)
    if target.death_save_failures >= DEATH_SAVE_THRESHOLD:
        return kill(target, ctx)
    return []


def kill(target: "Combatant", ctx: "BattleContext") -> list[Any]:
    """Marks a combatant dead, ending its concentration and rage."""
    target.is_dead = True
    target.is_unconscious = False
    target.current_hp = 0
    end_rage(target)
    target.spiritual_weapon = None
    entries: list[Any] = [StatusEntry(round=ctx.round, actor=target.name, status="died")]
    return entries + break_concentration(target, ctx)


def _relentless_rage(target: "Combatant", ctx: "BattleContext") -> list[Any] | None:
    """Keeps a raging barbarian at 1 hit point on a successful Constitution save."""
    if not target.is_raging or not has_class_feature(target, ClassFeature.RELENTLESS_RAGE):
        return None
    dc = target.relentless_rage_dc
    target.relentless_rage_dc += RELENTLESS_RAGE_DC_STEP
    outcome = roll_saving_throw(target, Ability.CONSTITUTION, dc, ctx, source="Relentless Rage")
    if not outcome.success:
        return None
    target.current_hp = 1
    return [ClassFeatureEntry(round=ctx.round, actor=target.name, feature="Relentless Rage", note="stays at 1 hp")]


def _drop_to_zero(target: "Combatant", ctx: "BattleContext", outcome: DamageOutcome) -> None:
    target.current_hp = 0
    if not target.is_player:
        outcome.killed = True
        outcome.followups += kill(target, ctx)
        return
    target.is_unconscious = True
    target.is_stabilized = False
    target.death_save_successes = 0
    target.death_save_failures = 0
    end_rage(target)
    outcome.downed = True
    outcome.followups.append(StatusEntry(round=ctx.round, actor=target.name, status="downed"))
    outcome.followups += break_concentration(target, ctx)


def apply_damage(
    target: "Combatant",
    amount: int,
    damage_type: DamageType | None,
    ctx: "BattleContext",
    is_critical: bool = False,
    from_attack: bool = False,
) -> DamageOutcome:
    """
    Deals damage to a combatant.

    Args:
        target (Combatant): The combatant taking damage.
        amount (int): Raw damage, before mitigation.
        damage_type (DamageType | None): Type of the damage.
        ctx (BattleContext): The encounter.
        is_critical (bool): Whether the damage comes from a critical hit.
        from_attack (bool): Whether the damage comes from an attack roll,
            which Uncanny Dodge can halve.

    Returns:
        DamageOutcome: Hit points lost, state transitions and follow-up log
            entries. A dying player takes death-save failures (two on a
            critical) instead of damage.

    """
    outcome = DamageOutcome()
    if target.is_dead:
        return outcome
    if target.is_unconscious:
        if amount > 0:
            failures = 2 if is_critical else 1
            outcome.death_save_failures = failures
            outcome.followups += add_death_save_failures(target, failures, ctx)
            outcome.killed = target.is_dead
        return outcome

    result = resolve_damage(target, amount, damage_type)
    outcome.result = result
    damage = result.final_damage
    if from_attack and damage > 0 and should_use_uncanny_dodge(target, damage):
        damage = uncanny_dodge(target, damage)
        outcome.uncanny_dodge = True
        outcome.followups.append(
            ClassFeatureEntry(round=ctx.round, actor=target.name, feature="Uncanny Dodge", amount=damage)
        )
    if damage <= 0:
        return outcome

    outcome.damage = min(damage, target.current_hp)
    target.current_hp = max(0, target.current_hp - damage)
    if target.current_hp == 0:
        rescued = _relentless_rage(target, ctx)
        if rescued is not None:
            outcome.followups += rescued
        else:
            _drop_to_zero(target, ctx, outcome)
            return outcome
    outcome.followups += check_concentration(target, damage, ctx)
    return outcome


def apply_healing(target: "Combatant", amount: int) -> tuple[int, bool]:
    """
    Restores hit points, never above the maximum.

    Healing a dying combatant brings it back up with both death-save
    counters cleared. The dead cannot be healed.

    Returns:
        tuple[int, bool]: Hit points restored and whether the target revived.

    """
    if target.is_dead or amount <= 0:
        return 0, False
    revived = target.is_unconscious
    before = target.current_hp
    target.current_hp = min(target.max_hp, target.current_hp + amount)
    if revived:
        target.is_unconscious = False
        target.is_stabilized = False
        target.death_save_successes = 0
        target.death_save_failures = 0
    return target.current_hp - before, revived
