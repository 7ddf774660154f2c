"""
Monster abilities.

Multiattack routines, recharge abilities such as breath weapons, legendary
actions taken between other creatures' turns, and frightful presence. The
legendary resistance policy lives in `encountersim.monsters.resistance` and is
re-exported here.
"""

import math
from typing import TYPE_CHECKING

from catchery import log_debug

from encountersim.classes.features import apply_evasion
from encountersim.combat.actions import AttackProfile, execute_attack
from encountersim.combat.damage import apply_damage
from encountersim.combat.log import (
    AttackEntry,
    ConditionAppliedEntry,
    MonsterAbilityEntry,
    TargetOutcome,
)
from encountersim.combat.positioning import get_enemies_at_position, select_aoe_targets
from encountersim.combat.saves import roll_saving_throw
from encountersim.combat.targeting import select_attack_target
from encountersim.combatant.config import LegendaryAbility, RechargeAbility
from encountersim.core.constants import (
    Ability,
    AoeShape,
    AttackType,
    ConditionType,
    LegendaryKind,
    Position,
    SaveEffect,
)
from encountersim.core.dice_parser import Dice
from encountersim.effects.conditions import apply_condition
from encountersim.monsters.resistance import (
    should_use_legendary_resistance,
    use_legendary_resistance,
)

if TYPE_CHECKING:
    from encountersim.combat.context import BattleContext
    from encountersim.combatant.main import Combatant

__all__ = [
    "execute_breath_weapon",
    "execute_frightful_presence",
    "execute_legendary_action",
    "execute_multiattack",
    "process_recharges",
    "reset_legendary_actions",
    "roll_recharge",
    "select_legendary_action",
    "should_use_breath_weapon",
    "should_use_frightful_presence",
    "should_use_legendary_resistance",
    "use_legendary_resistance",
]

# A d20 divided by this and rounded up gives a d6 face.
D20_TO_D6 = 3.34
# A lone target this healthy is worth a breath weapon on its own.
BREATH_SINGLE_TARGET_HP = 30
LEGENDARY_CONDITION_DURATION = 1


# ============================================================================
# RECHARGE
# ============================================================================


def roll_recharge(ability: RechargeAbility, dice: Dice) -> tuple[bool, int]:
    """
    Rolls to recharge an ability.

    The d6 is read off a d20 as ceil(d20 / 3.34), so a 17 to 20 shows a 6.

    Returns:
        tuple[bool, int]: Whether it recharged, and the d6 face.

    """
    face = math.ceil(dice.roll_d20() / D20_TO_D6)
    return face >= ability.recharge_min, face


def process_recharges(monster: "Combatant", ctx: "BattleContext") -> list[MonsterAbilityEntry]:
    """Rolls once for every spent recharge ability at the start of the monster's turn."""
    entries = []
    for ability in monster.config.recharge_abilities:
        if monster.recharge_available.get(ability.name, True):
            continue
        recharged, face = roll_recharge(ability, ctx.dice)
        if recharged:
            monster.recharge_available[ability.name] = True
        entries.append(
            MonsterAbilityEntry(
                round=ctx.round,
                actor=monster.name,
                ability=ability.name,
                kind="recharge",
                roll=face,
                success=recharged,
            )
        )
    ctx.record(*entries)
    return entries


# ============================================================================
# MULTIATTACK
# ============================================================================


def execute_multiattack(monster: "Combatant", ctx: "BattleContext") -> list[AttackEntry]:
    """
    Runs the monster's multiattack routine.

    A target is chosen before every single attack, so a creature dropped by
    the bite is not clawed twice.
    """
    entries: list[AttackEntry] = []
    for attack in monster.config.multiattack:
        profile = AttackProfile.from_multiattack(attack)
        for _ in range(attack.count):
            if ctx.is_over():
                return entries
            target = select_attack_target(monster, ctx.combatants)
            if target is None:
                return entries
            entries.append(execute_attack(monster, target, ctx, profile))
    return entries


# ============================================================================
# BREATH WEAPONS
# ============================================================================


def should_use_breath_weapon(monster: "Combatant", ctx: "BattleContext") -> RechargeAbility | None:
    """
    Picks an available recharge ability worth using.

    A cone is used against two front-liners, against a single healthy one,
    or against the back line when the front is empty. Other shapes need two
    standing enemies, or a single healthy one.

    Args:
        monster (Combatant): The monster.
        ctx (BattleContext): The encounter.

    Returns:
        RechargeAbility | None: The ability to use.

    """
    living = ctx.conscious_enemies_of(monster)
    if not living:
        return None
    front = get_enemies_at_position(ctx.combatants, monster.is_player, Position.FRONT)
    for ability in monster.config.recharge_abilities:
        if not monster.recharge_available.get(ability.name, True):
            continue
        if ability.shape == AoeShape.CONE:
            if len(front) >= 2 or not front:
                return ability
            if front[0].current_hp >= BREATH_SINGLE_TARGET_HP:
                return ability
            continue
        if len(living) >= 2 or living[0].current_hp >= BREATH_SINGLE_TARGET_HP:
            return ability
    return None


def execute_breath_weapon(
    monster: "Combatant", ability: RechargeAbility, ctx: "BattleContext"
) -> MonsterAbilityEntry:
    """
    Uses a recharge ability on every enemy caught in its template.

    Damage is rolled once. Each target saves separately: half damage (or
    none, with Evasion) on a success for save-for-half abilities.
    """
    monster.recharge_available[ability.name] = False
    rolled = ctx.dice.roll_damage(ability.damage)
    selection = select_aoe_targets(ability.shape, ctx.combatants, monster.is_player, ctx.dice)
    entry = MonsterAbilityEntry(
        round=ctx.round,
        actor=monster.name,
        ability=ability.name,
        kind="breath",
        note=f"{rolled} {ability.damage_type.display_name.lower()}",
    )
    ctx.record(entry)
    for target in selection.targets:
        save = roll_saving_throw(
            target, ability.save_ability, ability.save_dc, ctx, damage=rolled, source=ability.name
        )
        if ability.save_effect == SaveEffect.NONE:
            damage = 0 if save.success else rolled
        elif ability.save_ability == Ability.DEXTERITY:
            damage = apply_evasion(target, rolled, save.success)
        else:
            damage = rolled // 2 if save.success else rolled
        result = apply_damage(target, damage, ability.damage_type, ctx)
        ctx.record(*result.followups)
        entry.outcomes.append(
            TargetOutcome(
                target=target.name, saved=save.success, damage=result.damage, target_hp=target.current_hp
            )
        )
    return entry


# ============================================================================
# LEGENDARY ACTIONS
# ============================================================================


def reset_legendary_actions(monster: "Combatant") -> None:
    monster.legendary_actions_remaining = monster.config.legendary_actions


def select_legendary_action(monster: "Combatant", ctx: "BattleContext") -> LegendaryAbility | None:
    """
    Picks a legendary action the monster can afford.

    Area actions are preferred against two or more standing enemies;
    otherwise the most expensive affordable action is taken.
    """
    if monster.legendary_actions_remaining <= 0 or not monster.is_conscious:
        return None
    if not ctx.conscious_enemies_of(monster):
        return None
    affordable = sorted(
        (a for a in monster.config.legendary_abilities if a.cost <= monster.legendary_actions_remaining),
        key=lambda a: a.cost,
        reverse=True,
    )
    if not affordable:
        return None
    if len(ctx.conscious_enemies_of(monster)) >= 2:
        area = next((a for a in affordable if a.kind == LegendaryKind.AREA), None)
        if area is not None:
            return area
    return affordable[0]


def execute_legendary_action(
    monster: "Combatant", ability: LegendaryAbility, ctx: "BattleContext"
) -> MonsterAbilityEntry | None:
    """
    Spends legendary actions on an ability.

    An attack strikes the weakest standing enemy. An area action forces a
    save on every standing enemy: a success takes nothing, a failure takes
    full damage and the `on_fail` condition for one round.

    Returns:
        MonsterAbilityEntry | None: The action, or None when it is not
            affordable or no enemy is standing.

    """
    enemies = ctx.conscious_enemies_of(monster)
    if not enemies or ability.cost > monster.legendary_actions_remaining:
        return None
    if ability.kind == LegendaryKind.ATTACK:
        if ability.damage is None:
            return None
    elif ability.save_dc is None or ability.save_ability is None:
        return None
    monster.legendary_actions_remaining -= ability.cost
    entry = MonsterAbilityEntry(
        round=ctx.round, actor=monster.name, ability=ability.name, kind="legendary"
    )
    ctx.record(entry)

    if ability.kind == LegendaryKind.ATTACK:
        target = select_attack_target(monster, ctx.combatants)
        if target is None:
            return entry
        profile = AttackProfile(
            name=ability.name,
            attack_bonus=ability.attack_bonus,
            damage=ability.damage,
            damage_type=ability.damage_type,
            attack_type=AttackType.MELEE,
            weapon=False,
        )
        attack = execute_attack(monster, target, ctx, profile)
        entry.outcomes.append(
            TargetOutcome(target=target.name, hit=attack.hit, damage=attack.damage, target_hp=target.current_hp)
        )
        return entry

    rolled = ctx.dice.roll_damage(ability.damage) if ability.damage else 0
    for target in enemies:
        save = roll_saving_throw(
            target,
            ability.save_ability,
            ability.save_dc,
            ctx,
            condition=ability.on_fail,
            damage=rolled,
            source=ability.name,
        )
        outcome = TargetOutcome(target=target.name, saved=save.success, target_hp=target.current_hp)
        entry.outcomes.append(outcome)
        if save.success:
            continue
        result = apply_damage(target, rolled, ability.damage_type, ctx)
        ctx.record(*result.followups)
        outcome.damage = result.damage
        outcome.target_hp = target.current_hp
        if ability.on_fail is not None and target.is_conscious:
            result = apply_condition(
                target, ability.on_fail, duration=LEGENDARY_CONDITION_DURATION, source=monster.name
            )
            _record_condition(
                monster, target, ability.on_fail, LEGENDARY_CONDITION_DURATION, ctx, result.value
            )
    return entry


def _record_condition(
    monster: "Combatant",
    target: "Combatant",
    condition: ConditionType,
    duration: int | None,
    ctx: "BattleContext",
    result: str,
) -> None:
    ctx.record(
        ConditionAppliedEntry(
            round=ctx.round,
            actor=monster.name,
            target=target.name,
            condition=condition,
            result=result,
            duration=duration,
        )
    )


# ============================================================================
# FRIGHTFUL PRESENCE
# ============================================================================


def _presence_targets(monster: "Combatant", ctx: "BattleContext") -> list["Combatant"]:
    return [e for e in ctx.conscious_enemies_of(monster) if not e.frightful_presence_immune]


def should_use_frightful_presence(monster: "Combatant", ctx: "BattleContext") -> bool:
    """Once per encounter, while some enemy can still be frightened."""
    if monster.config.frightful_presence is None or monster.frightful_presence_used:
        return False
    return bool(_presence_targets(monster, ctx))


def execute_frightful_presence(monster: "Combatant", ctx: "BattleContext") -> MonsterAbilityEntry | None:
    """
    Frightens every enemy who fails a Wisdom save.

    A frightened creature repeats the save at the end of each of its turns.
    A creature that succeeds is immune for the rest of the encounter.
    """
    presence = monster.config.frightful_presence
    if presence is None:
        log_debug(f"{monster.name} has no frightful presence")
        return None
    monster.frightful_presence_used = True
    entry = MonsterAbilityEntry(
        round=ctx.round, actor=monster.name, ability="Frightful Presence", kind="frightful_presence"
    )
    ctx.record(entry)
    for target in _presence_targets(monster, ctx):
        save = roll_saving_throw(
            target,
            Ability.WISDOM,
            presence.save_dc,
            ctx,
            condition=ConditionType.FRIGHTENED,
            source="Frightful Presence",
        )
        entry.outcomes.append(TargetOutcome(target=target.name, saved=save.success))
        if save.success:
            target.frightful_presence_immune = True
            continue
        result = apply_condition(
            target,
            ConditionType.FRIGHTENED,
            duration=presence.duration,
            save_dc=presence.save_dc,
            save_ability=Ability.WISDOM,
            save_end_of_turn=True,
            source=monster.name,
        )
        _record_condition(monster, target, ConditionType.FRIGHTENED, presence.duration, ctx, result.value)
    return entry
