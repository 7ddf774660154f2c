"""
Passive class features.

Bonuses and riders that other engine modules fold into attacks, damage and
saving throws: Aura of Protection, Sneak Attack, Rage, Brutal Critical, Divine
Smite, Foe Slayer, Agonizing Blast, fighting styles, Evasion, Bardic
Inspiration and metamagic costs. Everything here is a plain function of the
combatants involved; nothing selects actions or writes to the log.
"""

from typing import TYPE_CHECKING, Literal

from catchery import log_debug

from encountersim.classes.resources import (
    aura_radius,
    brutal_critical_dice,
    consume_resource,
    has_class_feature,
    rage_damage_bonus,
    sneak_attack_dice,
)
from encountersim.classes.templates import ClassFeature
from encountersim.core.constants import (
    Ability,
    AttackType,
    ClassName,
    CreatureType,
    FightingStyle,
    ResourceName,
)
from encountersim.core.dice_parser import Dice, parse_dice_notation

if TYPE_CHECKING:
    from encountersim.combatant.main import Combatant

Metamagic = Literal["quickened", "twinned", "heightened"]

# Radius from which the aura covers the whole party, front and back.
AURA_FULL_COVERAGE_RADIUS = 30
ARCHERY_BONUS = 2
DUELING_BONUS = 2
DEFENSE_BONUS = 1
# Divine Smite never rolls more than this many d8s before the undead bonus.
SMITE_MAX_DICE = 5
QUICKENED_COST = 2
HEIGHTENED_COST = 3


# ============================================================================
# PALADIN
# ============================================================================


def aura_of_protection_bonus(combatant: "Combatant", allies: list["Combatant"]) -> int:
    """
    Best Aura of Protection bonus covering a combatant.

    The paladin must be conscious and stand in the same line as the
    combatant, unless its aura is wide enough to cover both lines. The
    paladin's own aura covers itself.

    Args:
        combatant (Combatant): The combatant making a saving throw.
        allies (list[Combatant]): Its allies, itself included or not.

    Returns:
        int: The Charisma modifier of the best paladin in range, never negative.

    """
    best = 0
    for paladin in [combatant, *allies]:
        if paladin.is_player != combatant.is_player or not paladin.is_conscious:
            continue
        if not has_class_feature(paladin, ClassFeature.AURA_OF_PROTECTION):
            continue
        radius = aura_radius(paladin.level)
        if paladin.position != combatant.position and radius < AURA_FULL_COVERAGE_RADIUS:
            continue
        best = max(best, paladin.config.ability_modifier(Ability.CHARISMA))
    return best


def divine_smite_damage(
    paladin: "Combatant", slot_level: int, is_critical: bool, target: "Combatant", dice: Dice
) -> int | None:
    """
    Spends a spell slot on a Divine Smite and rolls its radiant damage.

    Two d8s for a 1st level slot plus one per level above (five at most),
    and one more against undead and fiends.

    Returns:
        int | None: The damage, or None when the slot is not available.

    """
    if not has_class_feature(paladin, ClassFeature.DIVINE_SMITE):
        return None
    if paladin.current_slots.get(slot_level, 0) <= 0:
        log_debug(f"{paladin.name} has no level {slot_level} slot to smite with")
        return None
    paladin.current_slots[slot_level] -= 1
    count = min(1 + slot_level, SMITE_MAX_DICE)
    if target.config.creature_type in (CreatureType.UNDEAD, CreatureType.FIEND):
        count += 1
    return dice.roll_damage(f"{count}d8", is_critical)


def improved_smite_damage(paladin: "Combatant", is_critical: bool, dice: Dice) -> int:
    if not has_class_feature(paladin, ClassFeature.IMPROVED_DIVINE_SMITE):
        return 0
    return dice.roll_damage("1d8", is_critical)


# ============================================================================
# ROGUE
# ============================================================================


def calculate_sneak_attack(
    rogue: "Combatant", target: "Combatant", allies: list["Combatant"], has_advantage: bool
) -> str | None:
    """
    Sneak Attack dice of an attack, if it qualifies.

    It needs advantage, or a conscious ally of the rogue standing in the
    target's line, and is limited to once per turn.

    Returns:
        str | None: Dice notation like "3d6", or None.

    """
    if not has_class_feature(rogue, ClassFeature.SNEAK_ATTACK):
        return None
    if rogue.sneak_attack_used_this_turn:
        return None
    ally_adjacent = any(
        ally.is_conscious and ally is not rogue and ally.position == target.position
        for ally in allies
    )
    if not has_advantage and not ally_adjacent:
        return None
    return f"{sneak_attack_dice(rogue.level)}d6"


def apply_sneak_attack(
    rogue: "Combatant",
    target: "Combatant",
    allies: list["Combatant"],
    has_advantage: bool,
    is_critical: bool,
    dice: Dice,
) -> int:
    """Rolls Sneak Attack damage and marks it used. Returns 0 when it does not apply."""
    notation = calculate_sneak_attack(rogue, target, allies, has_advantage)
    if notation is None:
        return 0
    rogue.sneak_attack_used_this_turn = True
    return dice.roll_damage(notation, is_critical)


def apply_evasion(combatant: "Combatant", damage: int, saved: bool) -> int:
    """
    Damage taken from a save-for-half effect.

    With Evasion a success takes nothing and a failure takes half.
    """
    if not has_class_feature(combatant, ClassFeature.EVASION):
        return damage // 2 if saved else damage
    return 0 if saved else damage // 2


def uncanny_dodge(rogue: "Combatant", incoming_damage: int) -> int:
    """Spends the rogue's reaction to halve an attack's damage. Returns the reduced damage."""
    rogue.has_reaction = False
    rogue.uncanny_dodge_used_this_round = True
    return incoming_damage // 2


# ============================================================================
# BARBARIAN
# ============================================================================


def rage_bonus(combatant: "Combatant", attack_type: AttackType) -> int:
    """Rage adds its damage bonus to melee weapon attacks."""
    if not combatant.is_raging or attack_type != AttackType.MELEE:
        return 0
    if combatant.class_name != ClassName.BARBARIAN:
        return 0
    return rage_damage_bonus(combatant.level)


def brutal_critical_damage(combatant: "Combatant", weapon: str, dice: Dice) -> int:
    """Extra weapon dice rolled on a critical hit."""
    if not has_class_feature(combatant, ClassFeature.BRUTAL_CRITICAL):
        return 0
    extra = brutal_critical_dice(combatant.level)
    if extra <= 0:
        return 0
    sides = parse_dice_notation(weapon).sides
    return sum(dice.roll_die(sides) for _ in range(extra))


# ============================================================================
# RANGER AND WARLOCK
# ============================================================================


def foe_slayer_bonus(ranger: "Combatant") -> int:
    """Wisdom modifier added to one damage roll per turn."""
    if not has_class_feature(ranger, ClassFeature.FOE_SLAYER):
        return 0
    if ranger.foe_slayer_used_this_turn:
        return 0
    ranger.foe_slayer_used_this_turn = True
    return ranger.config.ability_modifier(Ability.WISDOM)


def agonizing_blast_bonus(warlock: "Combatant") -> int:
    if not has_class_feature(warlock, ClassFeature.AGONIZING_BLAST):
        return 0
    return max(0, warlock.config.ability_modifier(Ability.CHARISMA))


# ============================================================================
# FIGHTING STYLES
# ============================================================================


def _style(combatant: "Combatant") -> FightingStyle | None:
    if not has_class_feature(combatant, ClassFeature.FIGHTING_STYLE):
        return None
    return combatant.config.fighting_style


def fighting_style_attack_bonus(combatant: "Combatant", attack_type: AttackType) -> int:
    if _style(combatant) == FightingStyle.ARCHERY and attack_type == AttackType.RANGED:
        return ARCHERY_BONUS
    return 0


def fighting_style_damage_bonus(combatant: "Combatant", attack_type: AttackType) -> int:
    """Dueling: +2 damage with a one-handed melee weapon and nothing in the off hand."""
    if _style(combatant) != FightingStyle.DUELING or attack_type != AttackType.MELEE:
        return 0
    if combatant.config.off_hand_damage:
        return 0
    return DUELING_BONUS


def fighting_style_ac_bonus(combatant: "Combatant") -> int:
    return DEFENSE_BONUS if _style(combatant) == FightingStyle.DEFENSE else 0


def roll_weapon_damage(
    combatant: "Combatant", notation: str, is_critical: bool, dice: Dice
) -> int:
    """
    Rolls weapon damage, rerolling 1s and 2s once with Great Weapon Fighting.

    Args:
        combatant (Combatant): The attacker.
        notation (str): The weapon's damage dice.
        is_critical (bool): Whether to roll twice the dice.
        dice (Dice): The roller.

    Returns:
        int: The damage, never below 0.

    """
    if _style(combatant) != FightingStyle.GREAT_WEAPON_FIGHTING:
        return dice.roll_damage(notation, is_critical)
    parsed = parse_dice_notation(notation)
    count = parsed.count * 2 if is_critical else parsed.count
    total = 0
    for _ in range(count):
        roll = dice.roll_die(parsed.sides)
        if roll <= 2:
            roll = dice.roll_die(parsed.sides)
        total += roll
    return max(0, total + parsed.modifier)


# ============================================================================
# FIGHTER
# ============================================================================


def indomitable_reroll(fighter: "Combatant", dice: Dice) -> int | None:
    """Spends a use of Indomitable. Returns the new d20, or None when out of uses."""
    if not consume_resource(fighter, ResourceName.INDOMITABLE):
        return None
    return dice.roll_d20()


# ============================================================================
# BARD AND SORCERER
# ============================================================================


def use_bardic_inspiration(combatant: "Combatant", dice: Dice) -> int:
    """Rolls and spends a held inspiration die. Returns 0 when none is held."""
    if combatant.inspiration_die is None:
        return 0
    total = dice.roll_dice(combatant.inspiration_die).total
    combatant.inspiration_die = None
    return total


def metamagic_cost(kind: Metamagic, spell_level: int) -> int:
    if kind == "quickened":
        return QUICKENED_COST
    if kind == "twinned":
        return max(1, spell_level)
    return HEIGHTENED_COST


def spend_metamagic(sorcerer: "Combatant", kind: Metamagic, spell_level: int = 0) -> bool:
    """
    Spends sorcery points on a metamagic option.

    Returns:
        bool: False (and nothing spent) when the sorcerer lacks the feature or
            the points.

    """
    if not has_class_feature(sorcerer, ClassFeature.METAMAGIC):
        return False
    return consume_resource(
        sorcerer, ResourceName.SORCERY_POINTS, metamagic_cost(kind, spell_level)
    )
