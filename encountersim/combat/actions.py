"""
Action executor.

Resolves a single attack, heal, bonus action or reaction against a target:
roll mode, the d20, class riders, reactions of the defender, damage and
on-hit conditions. Every `execute_*` function records its own log entries in
the battle context and returns the main one.
"""

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field

from encountersim.classes.class_ai import should_divine_smite, should_use_second_wind
from encountersim.classes.features import (
    apply_sneak_attack,
    brutal_critical_damage,
    divine_smite_damage,
    fighting_style_attack_bonus,
    fighting_style_damage_bonus,
    foe_slayer_bonus,
    improved_smite_damage,
    rage_bonus,
    roll_weapon_damage,
    use_bardic_inspiration,
)
from encountersim.classes.resources import consume_resource
from encountersim.combat.damage import add_death_save_failures, apply_damage, apply_healing
from encountersim.combat.log import (
    AttackEntry,
    ConditionAppliedEntry,
    HealEntry,
    SpellEntry,
    TargetOutcome,
)
from encountersim.combat.saves import roll_saving_throw
from encountersim.combat.targeting import select_attack_target
from encountersim.combatant.config import MultiattackEntry, OnHitEffect
from encountersim.core.constants import (
    SHIELD_AC_BONUS,
    AttackType,
    ClassName,
    DamageType,
    ResourceName,
    RollMode,
)
from encountersim.effects.conditions import (
    apply_condition,
    combine_modifiers,
    condition_roll_modes,
    has_auto_crit_against,
)

if TYPE_CHECKING:
    from encountersim.combat.context import BattleContext
    from encountersim.combatant.main import Combatant

# Death-save failures inflicted by hitting a dying creature.
DOWNED_MELEE_FAILURES = 2
DOWNED_RANGED_FAILURES = 1

BonusActionKind = Literal["spiritual_weapon", "second_wind", "off_hand"]


class AttackProfile(BaseModel):
    """Everything needed to resolve one attack roll."""

    name: str = Field(default="attack", description="Name shown in the log")
    attack_bonus: int = Field(description="Bonus to the d20")
    damage: str = Field(description="Damage dice notation")
    damage_type: DamageType = Field(default=DamageType.SLASHING)
    attack_type: AttackType = Field(default=AttackType.MELEE)
    damage_bonus: int = Field(default=0, description="Flat damage not doubled on a critical")
    weapon: bool = Field(default=True, description="Whether class weapon riders apply")
    on_hit: OnHitEffect | None = Field(default=None, description="Condition inflicted on a hit")

    @classmethod
    def weapon_of(cls, combatant: "Combatant", name: str = "attack") -> "AttackProfile":
        config = combatant.config
        return cls(
            name=name,
            attack_bonus=config.attack_bonus,
            damage=config.damage,
            damage_type=config.damage_type,
            attack_type=config.attack_type,
            on_hit=config.on_hit_effect,
        )

    @classmethod
    def from_multiattack(cls, entry: MultiattackEntry) -> "AttackProfile":
        return cls(
            name=entry.name,
            attack_bonus=entry.attack_bonus,
            damage=entry.damage,
            damage_type=entry.damage_type,
            attack_type=entry.attack_type,
            weapon=False,
            on_hit=entry.on_hit_effect,
        )


class BonusAction(BaseModel):
    """A generic bonus action picked for a combatant."""

    kind: BonusActionKind
    target: Any = Field(default=None, description="Target of the action, if any")


# ============================================================================
# ATTACKS
# ============================================================================


def resolve_roll_mode(attacker: "Combatant", target: "Combatant", attack_type: AttackType) -> RollMode:
    """
    Roll mode of an attack, from conditions and transient flags.

    A reckless attacker and a hidden attacker gain advantage; attacks against
    a reckless target gain advantage; attacks against a dodging target have
    disadvantage. All sources combine like condition modifiers.
    """
    modes = condition_roll_modes(attacker, target, attack_type)
    if attacker.is_reckless and attack_type == AttackType.MELEE:
        modes.append(RollMode.ADVANTAGE)
    if attacker.is_hidden:
        modes.append(RollMode.ADVANTAGE)
    if target.is_reckless:
        modes.append(RollMode.ADVANTAGE)
    if target.is_dodging:
        modes.append(RollMode.DISADVANTAGE)
    return combine_modifiers(*modes)


def _attack_downed_target(
    attacker: "Combatant",
    target: "Combatant",
    profile: AttackProfile,
    roll: int,
    mode: RollMode,
    ctx: "BattleContext",
) -> AttackEntry:
    failures = DOWNED_MELEE_FAILURES if profile.attack_type == AttackType.MELEE else DOWNED_RANGED_FAILURES
    followups = add_death_save_failures(target, failures, ctx)
    entry = AttackEntry(
        round=ctx.round,
        actor=attacker.name,
        target=target.name,
        attack_name=profile.name,
        roll=roll,
        roll_mode=mode,
        hit=True,
        critical=profile.attack_type == AttackType.MELEE,
        death_save_failures=failures,
        target_hp=target.current_hp,
    )
    ctx.record(entry, *followups)
    return entry


def _weapon_riders(
    attacker: "Combatant",
    target: "Combatant",
    profile: AttackProfile,
    critical: bool,
    mode: RollMode,
    ctx: "BattleContext",
) -> tuple[int, list[str]]:
    """Extra damage from class features on a weapon hit."""
    dice = ctx.dice
    extra = 0
    riders: list[str] = []

    bonus = rage_bonus(attacker, profile.attack_type)
    if bonus:
        extra += bonus
        riders.append(f"rage +{bonus}")
    if critical:
        brutal = brutal_critical_damage(attacker, profile.damage, dice)
        if brutal:
            extra += brutal
            riders.append(f"brutal critical +{brutal}")
    sneak = apply_sneak_attack(
        attacker, target, ctx.allies_of(attacker), mode == RollMode.ADVANTAGE, critical, dice
    )
    if sneak:
        extra += sneak
        riders.append(f"sneak attack +{sneak}")
    if profile.attack_type == AttackType.MELEE and attacker.class_name == ClassName.PALADIN:
        slot_level = should_divine_smite(attacker, critical, target)
        if slot_level is not None:
            smite = divine_smite_damage(attacker, slot_level, critical, target, dice)
            if smite is not None:
                extra += smite
                riders.append(f"divine smite ({slot_level}) +{smite}")
        improved = improved_smite_damage(attacker, critical, dice)
        if improved:
            extra += improved
            riders.append(f"improved smite +{improved}")
    dueling = fighting_style_damage_bonus(attacker, profile.attack_type)
    if dueling:
        extra += dueling
        riders.append(f"dueling +{dueling}")
    slayer = foe_slayer_bonus(attacker)
    if slayer:
        extra += slayer
        riders.append(f"foe slayer +{slayer}")
    return extra, riders


def _apply_on_hit(
    attacker: "Combatant", target: "Combatant", effect: OnHitEffect, ctx: "BattleContext"
) -> None:
    if not target.is_conscious:
        return
    if effect.save_dc is not None and effect.save_ability is not None:
        saved = roll_saving_throw(
            target,
            effect.save_ability,
            effect.save_dc,
            ctx,
            condition=effect.condition,
            source=attacker.name,
        ).success
        if saved:
            return
    result = apply_condition(
        target,
        effect.condition,
        duration=effect.duration,
        save_dc=effect.save_dc,
        save_ability=effect.save_ability,
        save_end_of_turn=effect.save_end_of_turn,
        source=attacker.name,
    )
    ctx.record(
        ConditionAppliedEntry(
            round=ctx.round,
            actor=attacker.name,
            target=target.name,
            condition=effect.condition,
            result=result.value,
            duration=effect.duration,
        )
    )


def execute_attack(
    attacker: "Combatant",
    target: "Combatant",
    ctx: "BattleContext",
    profile: AttackProfile | None = None,
) -> AttackEntry:
    """
    Resolves one attack roll.

    A natural 1 always misses and a natural 20 always hits and is critical;
    otherwise the attack hits when roll plus bonus reaches the target's AC.
    Melee hits against a paralyzed creature are critical. A dying target is
    hit automatically and takes death-save failures instead of damage (two
    for melee, one for ranged).

    Args:
        attacker (Combatant): The attacking combatant.
        target (Combatant): The defending combatant.
        ctx (BattleContext): The encounter.
        profile (AttackProfile | None): The attack to make, the attacker's
            weapon by default.

    Returns:
        AttackEntry: The recorded attack.

    """
    profile = profile or AttackProfile.weapon_of(attacker)
    dice = ctx.dice
    mode = resolve_roll_mode(attacker, target, profile.attack_type)
    d20 = dice.roll_d20_with_modifier(mode)
    roll = d20.result

    if target.is_unconscious and not target.is_dead:
        return _attack_downed_target(attacker, target, profile, roll, mode, ctx)

    bonus = profile.attack_bonus
    if profile.weapon:
        bonus += fighting_style_attack_bonus(attacker, profile.attack_type)
    total = roll + bonus
    riders: list[str] = []

    if not d20.is_natural_1 and not d20.is_natural_20 and total < target.armor_class:
        if attacker.inspiration_die is not None:
            inspiration = use_bardic_inspiration(attacker, dice)
            total += inspiration
            riders.append(f"inspiration +{inspiration}")

    hit = not d20.is_natural_1 and (d20.is_natural_20 or total >= target.armor_class)
    if hit and not d20.is_natural_20 and should_use_shield(target, total):
        hit = not apply_shield_reaction(target, total, ctx)

    entry = AttackEntry(
        round=ctx.round,
        actor=attacker.name,
        target=target.name,
        attack_name=profile.name,
        roll=roll,
        total=total,
        target_ac=target.armor_class,
        roll_mode=mode,
        hit=hit,
        riders=riders,
        target_hp=target.current_hp,
    )
    if not hit:
        ctx.record(entry)
        return entry

    critical = d20.is_natural_20 or has_auto_crit_against(target, profile.attack_type)
    damage = roll_weapon_damage(attacker, profile.damage, critical, dice) + profile.damage_bonus
    if profile.weapon and attacker.is_player:
        extra, extra_riders = _weapon_riders(attacker, target, profile, critical, mode, ctx)
        damage += extra
        riders.extend(extra_riders)

    outcome = apply_damage(target, damage, profile.damage_type, ctx, is_critical=critical, from_attack=True)
    entry.critical = critical
    entry.damage = outcome.damage
    entry.damage_type = profile.damage_type
    entry.target_hp = target.current_hp
    if outcome.result is not None and outcome.result.immune:
        riders.append("immune")
    ctx.record(entry, *outcome.followups)

    if profile.on_hit is not None:
        _apply_on_hit(attacker, target, profile.on_hit, ctx)
    return entry


def execute_attack_sequence(
    attacker: "Combatant", ctx: "BattleContext", profile: AttackProfile | None = None, count: int | None = None
) -> list[AttackEntry]:
    """
    Makes several attacks, choosing a fresh target before each one.

    Stops early when the encounter ends or no target remains.
    """
    entries: list[AttackEntry] = []
    for _ in range(count if count is not None else attacker.num_attacks):
        if ctx.is_over():
            break
        target = select_attack_target(attacker, ctx.combatants)
        if target is None:
            break
        entries.append(execute_attack(attacker, target, ctx, profile))
    return entries


# ============================================================================
# HEALING
# ============================================================================


def execute_heal(healer: "Combatant", target: "Combatant", ctx: "BattleContext") -> HealEntry | None:
    """Heals a target with the healer's healing dice."""
    if not healer.config.healing_dice:
        return None
    rolled = ctx.dice.roll_dice(healer.config.healing_dice).total
    healed, revived = apply_healing(target, rolled)
    entry = HealEntry(
        round=ctx.round,
        actor=healer.name,
        target=target.name,
        amount=healed,
        source="heal",
        revived=revived,
        target_hp=target.current_hp,
    )
    ctx.record(entry)
    return entry


def execute_second_wind(fighter: "Combatant", ctx: "BattleContext") -> HealEntry | None:
    """Fighter heals itself for 1d10 + fighter level."""
    if not consume_resource(fighter, ResourceName.SECOND_WIND):
        return None
    rolled = ctx.dice.roll_dice(f"1d10+{fighter.level}").total
    healed, _ = apply_healing(fighter, rolled)
    entry = HealEntry(
        round=ctx.round,
        actor=fighter.name,
        target=fighter.name,
        amount=healed,
        source="Second Wind",
        target_hp=fighter.current_hp,
    )
    ctx.record(entry)
    return entry


# ============================================================================
# BONUS ACTIONS AND REACTIONS
# ============================================================================


def execute_off_hand_attack(
    attacker: "Combatant", target: "Combatant", ctx: "BattleContext"
) -> AttackEntry | None:
    """Two-weapon fighting: an off-hand attack without the ability modifier."""
    if not attacker.config.off_hand_damage:
        return None
    profile = AttackProfile.weapon_of(attacker, name="off-hand attack")
    profile = profile.model_copy(update={"damage": attacker.config.off_hand_damage, "on_hit": None})
    return execute_attack(attacker, target, ctx, profile)


def execute_spiritual_weapon_attack(
    caster: "Combatant", target: "Combatant", ctx: "BattleContext"
) -> AttackEntry | None:
    weapon = caster.spiritual_weapon
    if weapon is None:
        return None
    profile = AttackProfile(
        name="Spiritual Weapon",
        attack_bonus=caster.config.spell_attack_bonus,
        damage=weapon.damage,
        damage_type=DamageType.FORCE,
        attack_type=AttackType.MELEE,
        damage_bonus=caster.config.spellcasting_mod,
        weapon=False,
    )
    return execute_attack(caster, target, ctx, profile)


def execute_opportunity_attack(
    attacker: "Combatant", target: "Combatant", ctx: "BattleContext"
) -> AttackEntry | None:
    """Spends the attacker's reaction on a weapon attack against a fleeing target."""
    if not attacker.has_reaction or not attacker.is_conscious:
        return None
    attacker.has_reaction = False
    profile = AttackProfile.weapon_of(attacker, name="opportunity attack")
    return execute_attack(attacker, target, ctx, profile)


def should_use_shield(target: "Combatant", attack_total: int) -> bool:
    """Casts Shield only when +5 AC turns the hit into a miss."""
    if not target.has_reaction or target.shield_active:
        return False
    if "shield" not in target.config.spells:
        return False
    if target.current_slots.get(1, 0) <= 0:
        return False
    return target.armor_class <= attack_total < target.armor_class + SHIELD_AC_BONUS


def apply_shield_reaction(target: "Combatant", attack_total: int, ctx: "BattleContext") -> bool:
    """
    Casts Shield as a reaction, spending a 1st level slot.

    Returns:
        bool: Whether the triggering attack now misses.

    """
    target.current_slots[1] -= 1
    target.has_reaction = False
    target.shield_active = True
    blocked = attack_total < target.armor_class
    ctx.record(
        SpellEntry(
            round=ctx.round,
            actor=target.name,
            spell="Shield",
            slot_level=1,
            outcomes=[TargetOutcome(target=target.name, hit=not blocked, is_ally=True)],
            note="blocks the attack" if blocked else "the attack still hits",
        )
    )
    return blocked


def select_bonus_action(combatant: "Combatant", ctx: "BattleContext") -> BonusAction | None:
    """
    Generic bonus action shared by every class.

    Priorities: attack with a Spiritual Weapon, Second Wind when bloodied,
    then an off-hand attack.
    """
    target = select_attack_target(combatant, ctx.combatants)
    if combatant.spiritual_weapon is not None and target is not None:
        return BonusAction(kind="spiritual_weapon", target=target)
    if should_use_second_wind(combatant):
        return BonusAction(kind="second_wind")
    if combatant.config.off_hand_damage and target is not None:
        return BonusAction(kind="off_hand", target=target)
    return None


def execute_bonus_action(
    combatant: "Combatant", action: BonusAction, ctx: "BattleContext"
) -> AttackEntry | HealEntry | None:
    if action.kind == "spiritual_weapon":
        return execute_spiritual_weapon_attack(combatant, action.target, ctx)
    if action.kind == "second_wind":
        return execute_second_wind(combatant, ctx)
    return execute_off_hand_attack(combatant, action.target, ctx)


def tick_spiritual_weapon(combatant: "Combatant") -> None:
    weapon = combatant.spiritual_weapon
    if weapon is None:
        return
    weapon.rounds_remaining -= 1
    if weapon.rounds_remaining <= 0:
        combatant.spiritual_weapon = None
