"""
Class ability library.

Active class features: the ones a combatant chooses to use on its turn and
that spend a resource, change its state or force a saving throw. The passive
riders (Sneak Attack, Rage damage, Divine Smite, fighting styles, ...) live in
`encountersim.classes.features` and are re-exported here, so that this module
is the single entry point to everything a class can do.

Every `execute_*` function records its own log entries and returns the main
one, or None when the capability is absent or out of uses.
"""

from typing import TYPE_CHECKING, Literal

from catchery import log_debug

from encountersim.classes.class_ai import should_use_stunning_strike
from encountersim.classes.features import (
    agonizing_blast_bonus,
    apply_evasion,
    apply_sneak_attack,
    aura_of_protection_bonus,
    brutal_critical_damage,
    calculate_sneak_attack,
    divine_smite_damage,
    fighting_style_ac_bonus,
    fighting_style_attack_bonus,
    fighting_style_damage_bonus,
    foe_slayer_bonus,
    improved_smite_damage,
    indomitable_reroll,
    metamagic_cost,
    rage_bonus,
    roll_weapon_damage,
    spend_metamagic,
    uncanny_dodge,
    use_bardic_inspiration,
)
from encountersim.classes.resources import (
    bardic_inspiration_die,
    consume_resource,
    has_class_feature,
    martial_arts_die,
    start_rage,
)
from encountersim.classes.templates import DESTROY_UNDEAD_CR, ClassFeature, lookup
from encountersim.combat.actions import (
    AttackProfile,
    execute_attack,
    execute_attack_sequence,
    execute_second_wind,
)
from encountersim.combat.damage import apply_healing, kill
from encountersim.combat.log import (
    AttackEntry,
    ClassFeatureEntry,
    ConditionAppliedEntry,
    HealEntry,
    TargetOutcome,
)
from encountersim.combat.saves import roll_saving_throw
from encountersim.combat.targeting import select_attack_target
from encountersim.core.constants import (
    Ability,
    AttackType,
    ConditionType,
    CreatureType,
    DamageType,
    Position,
    ResourceName,
)
from encountersim.core.dice_parser import add_modifier
from encountersim.effects.conditions import apply_condition

if TYPE_CHECKING:
    from encountersim.combat.context import BattleContext
    from encountersim.combatant.main import Combatant

__all__ = [
    "agonizing_blast_bonus",
    "apply_evasion",
    "apply_sneak_attack",
    "aura_of_protection_bonus",
    "brutal_critical_damage",
    "calculate_sneak_attack",
    "divine_smite_damage",
    "execute_action_surge",
    "execute_bardic_inspiration",
    "execute_cunning_action",
    "execute_flurry_of_blows",
    "execute_lay_on_hands",
    "execute_martial_arts",
    "execute_patient_defense",
    "execute_rage",
    "execute_reckless_attack",
    "execute_second_wind",
    "execute_step_of_the_wind",
    "execute_stunning_strike",
    "execute_turn_undead",
    "fighting_style_ac_bonus",
    "fighting_style_attack_bonus",
    "fighting_style_damage_bonus",
    "foe_slayer_bonus",
    "improved_smite_damage",
    "indomitable_reroll",
    "metamagic_cost",
    "rage_bonus",
    "roll_weapon_damage",
    "spend_metamagic",
    "uncanny_dodge",
    "use_bardic_inspiration",
]

TURNED_DURATION = 10
STUNNING_STRIKE_DURATION = 1

MovementType = Literal["dash", "disengage", "hide"]


def _feature_entry(
    combatant: "Combatant",
    ctx: "BattleContext",
    feature: str,
    target: "Combatant | None" = None,
    amount: int | None = None,
    note: str | None = None,
) -> ClassFeatureEntry:
    entry = ClassFeatureEntry(
        round=ctx.round,
        actor=combatant.name,
        feature=feature,
        target=target.name if target is not None else None,
        amount=amount,
        note=note,
    )
    ctx.record(entry)
    return entry


def _move(combatant: "Combatant", kind: MovementType) -> str:
    if kind == "disengage":
        combatant.position = Position.BACK
        return "disengages to the back line"
    if kind == "hide":
        combatant.is_hidden = True
        return "hides"
    return "dashes"


# ============================================================================
# FIGHTER
# ============================================================================


def execute_action_surge(fighter: "Combatant", ctx: "BattleContext") -> ClassFeatureEntry | None:
    """Spends Action Surge and takes a second Attack action."""
    if fighter.action_surge_used_this_turn:
        return None
    if not consume_resource(fighter, ResourceName.ACTION_SURGE):
        return None
    fighter.action_surge_used_this_turn = True
    entry = _feature_entry(fighter, ctx, "Action Surge")
    execute_attack_sequence(fighter, ctx)
    return entry


# ============================================================================
# ROGUE
# ============================================================================


def execute_cunning_action(
    rogue: "Combatant", kind: MovementType, ctx: "BattleContext"
) -> ClassFeatureEntry | None:
    """
    Dash, Disengage or Hide as a bonus action.

    Disengaging moves the rogue to the back line. Hiding grants advantage on
    its attacks until the start of its next turn.
    """
    if not has_class_feature(rogue, ClassFeature.CUNNING_ACTION):
        return None
    return _feature_entry(rogue, ctx, "Cunning Action", note=_move(rogue, kind))


# ============================================================================
# BARBARIAN
# ============================================================================


def execute_rage(barbarian: "Combatant", ctx: "BattleContext") -> ClassFeatureEntry | None:
    if not start_rage(barbarian):
        return None
    return _feature_entry(
        barbarian, ctx, "Rage", note=f"{barbarian.rage_rounds_remaining} rounds"
    )


def execute_reckless_attack(barbarian: "Combatant", ctx: "BattleContext") -> ClassFeatureEntry | None:
    """Attacks with advantage this turn, and is attacked with advantage until the next one."""
    if not has_class_feature(barbarian, ClassFeature.RECKLESS_ATTACK):
        return None
    barbarian.is_reckless = True
    return _feature_entry(barbarian, ctx, "Reckless Attack")


# ============================================================================
# PALADIN
# ============================================================================


def execute_lay_on_hands(
    paladin: "Combatant", target: "Combatant", amount: int, ctx: "BattleContext"
) -> HealEntry | None:
    """
    Heals from the Lay on Hands pool.

    Args:
        paladin (Combatant): The paladin.
        target (Combatant): The creature touched, possibly the paladin itself.
        amount (int): Points spent from the pool.
        ctx (BattleContext): The encounter.

    Returns:
        HealEntry | None: The healing, or None when the pool is too low.

    """
    if target.is_dead or not consume_resource(paladin, ResourceName.LAY_ON_HANDS, amount):
        return None
    healed, revived = apply_healing(target, amount)
    entry = HealEntry(
        round=ctx.round,
        actor=paladin.name,
        target=target.name,
        amount=healed,
        source="Lay on Hands",
        revived=revived,
        target_hp=target.current_hp,
    )
    ctx.record(entry)
    return entry


# ============================================================================
# MONK
# ============================================================================


def unarmed_strike_profile(monk: "Combatant") -> AttackProfile:
    """Martial arts die plus the better of Strength and Dexterity."""
    config = monk.config
    modifier = max(
        config.ability_modifier(Ability.DEXTERITY), config.ability_modifier(Ability.STRENGTH)
    )
    return AttackProfile(
        name="unarmed strike",
        attack_bonus=config.attack_bonus,
        damage=add_modifier(martial_arts_die(monk.level), modifier),
        damage_type=DamageType.BLUDGEONING,
        attack_type=AttackType.MELEE,
    )


def _monk_strike(
    monk: "Combatant", target: "Combatant | None", ctx: "BattleContext"
) -> AttackEntry | None:
    if target is None or not target.is_conscious:
        target = select_attack_target(monk, ctx.combatants)
    if target is None:
        return None
    entry = execute_attack(monk, target, ctx, unarmed_strike_profile(monk))
    if entry.hit and target.is_conscious and should_use_stunning_strike(monk, target):
        execute_stunning_strike(monk, target, ctx)
    return entry


def execute_flurry_of_blows(
    monk: "Combatant", target: "Combatant | None", ctx: "BattleContext"
) -> ClassFeatureEntry | None:
    """Spends 1 ki on two unarmed strikes, re-targeting if the first one drops the target."""
    if not has_class_feature(monk, ClassFeature.FLURRY_OF_BLOWS):
        return None
    if not consume_resource(monk, ResourceName.KI):
        return None
    entry = _feature_entry(monk, ctx, "Flurry of Blows", target=target)
    for _ in range(2):
        if ctx.is_over():
            break
        strike = _monk_strike(monk, target, ctx)
        if strike is None:
            break
        target = ctx.find(strike.target)
    return entry


def execute_martial_arts(
    monk: "Combatant", target: "Combatant | None", ctx: "BattleContext"
) -> AttackEntry | None:
    """The free bonus unarmed strike of Martial Arts."""
    if not has_class_feature(monk, ClassFeature.MARTIAL_ARTS):
        return None
    return _monk_strike(monk, target, ctx)


def execute_patient_defense(monk: "Combatant", ctx: "BattleContext") -> ClassFeatureEntry | None:
    if not has_class_feature(monk, ClassFeature.PATIENT_DEFENSE):
        return None
    if not consume_resource(monk, ResourceName.KI):
        return None
    monk.is_dodging = True
    return _feature_entry(monk, ctx, "Patient Defense", note="dodges")


def execute_step_of_the_wind(
    monk: "Combatant", kind: Literal["dash", "disengage"], ctx: "BattleContext"
) -> ClassFeatureEntry | None:
    if not has_class_feature(monk, ClassFeature.STEP_OF_THE_WIND):
        return None
    if not consume_resource(monk, ResourceName.KI):
        return None
    return _feature_entry(monk, ctx, "Step of the Wind", note=_move(monk, kind))


def stunning_strike_dc(monk: "Combatant") -> int:
    config = monk.config
    return 8 + config.proficiency_bonus + config.ability_modifier(Ability.WISDOM)


def execute_stunning_strike(
    monk: "Combatant", target: "Combatant", ctx: "BattleContext"
) -> ClassFeatureEntry | None:
    """
    Spends 1 ki to force a Constitution save against being stunned.

    The DC is 8 + proficiency + Wisdom modifier. A failed save stuns the
    target for one round.
    """
    if not has_class_feature(monk, ClassFeature.STUNNING_STRIKE):
        return None
    if not consume_resource(monk, ResourceName.KI):
        return None
    dc = stunning_strike_dc(monk)
    entry = _feature_entry(monk, ctx, "Stunning Strike", target=target, note=f"DC {dc}")
    save = roll_saving_throw(
        target,
        Ability.CONSTITUTION,
        dc,
        ctx,
        condition=ConditionType.STUNNED,
        source="Stunning Strike",
    )
    if save.success:
        return entry
    result = apply_condition(
        target, ConditionType.STUNNED, duration=STUNNING_STRIKE_DURATION, source=monk.name
    )
    ctx.record(
        ConditionAppliedEntry(
            round=ctx.round,
            actor=monk.name,
            target=target.name,
            condition=ConditionType.STUNNED,
            result=result.value,
            duration=STUNNING_STRIKE_DURATION,
        )
    )
    return entry


# ============================================================================
# CLERIC
# ============================================================================


def turn_undead_dc(cleric: "Combatant") -> int:
    config = cleric.config
    return 8 + config.proficiency_bonus + config.ability_modifier(Ability.WISDOM)


def destroy_undead_cr(cleric: "Combatant") -> float | None:
    """Highest challenge rating Destroy Undead destroys outright, if the cleric has it."""
    if not has_class_feature(cleric, ClassFeature.DESTROY_UNDEAD):
        return None
    return float(lookup(DESTROY_UNDEAD_CR, cleric.level, 0.0))


def execute_turn_undead(cleric: "Combatant", ctx: "BattleContext") -> ClassFeatureEntry | None:
    """
    Presents the holy symbol to every undead enemy still standing.

    Each one makes a Wisdom save. On a failure it is destroyed if its
    challenge rating is low enough for Destroy Undead, and turned for ten
    rounds otherwise.
    """
    if not has_class_feature(cleric, ClassFeature.TURN_UNDEAD):
        return None
    undead = [
        e for e in ctx.conscious_enemies_of(cleric) if e.config.creature_type == CreatureType.UNDEAD
    ]
    if not undead:
        log_debug(f"{cleric.name} has no undead to turn")
        return None
    if not consume_resource(cleric, ResourceName.CHANNEL_DIVINITY):
        return None
    dc = turn_undead_dc(cleric)
    destroy_cr = destroy_undead_cr(cleric)
    entry = _feature_entry(cleric, ctx, "Turn Undead", note=f"DC {dc}")
    outcomes: list[TargetOutcome] = []
    for creature in undead:
        save = roll_saving_throw(
            creature, Ability.WISDOM, dc, ctx, condition=ConditionType.TURNED, source="Turn Undead"
        )
        outcomes.append(TargetOutcome(target=creature.name, saved=save.success))
        if save.success:
            continue
        if destroy_cr is not None and creature.config.challenge_rating <= destroy_cr:
            ctx.record(*kill(creature, ctx))
            continue
        result = apply_condition(
            creature, ConditionType.TURNED, duration=TURNED_DURATION, source=cleric.name
        )
        ctx.record(
            ConditionAppliedEntry(
                round=ctx.round,
                actor=cleric.name,
                target=creature.name,
                condition=ConditionType.TURNED,
                result=result.value,
                duration=TURNED_DURATION,
            )
        )
    entry.amount = sum(1 for o in outcomes if not o.saved)
    return entry


# ============================================================================
# BARD
# ============================================================================


def execute_bardic_inspiration(
    bard: "Combatant", target: "Combatant", ctx: "BattleContext"
) -> ClassFeatureEntry | None:
    """Grants an ally an inspiration die, spent on its next missed attack."""
    if target.inspiration_die is not None or not target.is_conscious:
        return None
    if not consume_resource(bard, ResourceName.BARDIC_INSPIRATION):
        return None
    target.inspiration_die = bardic_inspiration_die(bard.level)
    return _feature_entry(
        bard, ctx, "Bardic Inspiration", target=target, note=target.inspiration_die
    )
