"""
Class AI heuristics.

Pure decision functions answering "should this combatant use feature X right
now?". They only read state: spending resources and resolving effects is the
job of the feature and ability modules.
"""

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field

from encountersim.classes.resources import get_resource, has_class_feature, has_resource
from encountersim.classes.templates import ClassFeature
from encountersim.core.constants import (
    Ability,
    ConditionType,
    CreatureType,
    Position,
    ResourceName,
)
from encountersim.core.dice_parser import average_roll
from encountersim.effects.conditions import DANGEROUS_CONDITIONS

if TYPE_CHECKING:
    from encountersim.combatant.main import Combatant
    from encountersim.spells.definitions import Spell

CunningActionType = Literal["dash", "disengage", "hide"]


class HealPlan(BaseModel):
    """Who to heal, and by how much."""

    target: Any = Field(description="The combatant to heal")
    amount: int = Field(ge=1, description="Hit points to restore")


class MonkPlan(BaseModel):
    """The bonus action a monk picked."""

    kind: Literal["flurry_of_blows", "patient_defense", "step_of_the_wind", "martial_arts"]
    target: Any = Field(default=None, description="Target of the strikes, if any")


# ============================================================================
# HELPERS
# ============================================================================


def is_low_hp(combatant: "Combatant", threshold: float = 0.5) -> bool:
    return combatant.current_hp < combatant.max_hp * threshold


def is_critical_hp(combatant: "Combatant", threshold: float = 0.25) -> bool:
    return combatant.current_hp < combatant.max_hp * threshold


def would_kill_target(target: "Combatant", extra_damage: float, base_damage: float = 0) -> bool:
    return target.current_hp <= extra_damage + base_damage


def count_standing(combatants: list["Combatant"]) -> int:
    return sum(1 for c in combatants if c.is_conscious)


def find_unconscious_ally(allies: list["Combatant"]) -> "Combatant | None":
    return next((a for a in allies if a.is_unconscious and not a.is_dead), None)


def find_lowest_hp_ally(allies: list["Combatant"]) -> "Combatant | None":
    standing = [a for a in allies if a.is_conscious]
    if not standing:
        return None
    return min(standing, key=lambda a: a.hp_ratio)


def find_lowest_hp_enemy(enemies: list["Combatant"]) -> "Combatant | None":
    standing = [e for e in enemies if e.is_conscious]
    if not standing:
        return None
    return min(standing, key=lambda e: e.current_hp)


def is_spellcaster(combatant: "Combatant") -> bool:
    return combatant.config.is_caster or bool(combatant.config.spell_slots)


def _average_round_damage(combatant: "Combatant") -> float:
    return average_roll(combatant.config.damage) * combatant.num_attacks


# ============================================================================
# FIGHTER
# ============================================================================


def should_use_action_surge(
    fighter: "Combatant",
    target: "Combatant",
    allies: list["Combatant"],
    enemies: list["Combatant"],
) -> bool:
    """
    Decides whether a fighter takes a second Attack action this turn.

    Surges when a second volley likely finishes the target, when the party is
    outnumbered, against a bloodied last enemy, or when about to go down.
    """
    if not has_resource(fighter, ResourceName.ACTION_SURGE):
        return False
    if fighter.action_surge_used_this_turn:
        return False
    living_enemies = count_standing(enemies)
    if would_kill_target(target, _average_round_damage(fighter) * 2):
        return True
    if living_enemies > count_standing(allies) + 1:
        return True
    if living_enemies == 1 and is_low_hp(target):
        return True
    return is_critical_hp(fighter)


def should_use_second_wind(fighter: "Combatant") -> bool:
    return has_resource(fighter, ResourceName.SECOND_WIND) and is_low_hp(fighter)


def should_use_indomitable(
    fighter: "Combatant", condition: ConditionType | None = None, is_damage: bool = False
) -> bool:
    """
    Decides whether a fighter rerolls a failed saving throw.

    Args:
        fighter (Combatant): The fighter who failed the save.
        condition (ConditionType | None): Condition the save was against.
        is_damage (bool): Whether the save only reduces damage.

    Returns:
        bool: True against dangerous conditions, against damage when nearly
            dead, or whenever at least two uses remain.

    """
    if not has_resource(fighter, ResourceName.INDOMITABLE):
        return False
    if condition in DANGEROUS_CONDITIONS:
        return True
    if is_damage and is_critical_hp(fighter):
        return True
    return get_resource(fighter, ResourceName.INDOMITABLE) >= 2


# ============================================================================
# ROGUE
# ============================================================================


def select_cunning_action(
    rogue: "Combatant", allies: list["Combatant"], enemies: list["Combatant"]
) -> CunningActionType | None:
    """Back-line rogues hide for advantage; bloodied front-line rogues disengage."""
    if not has_class_feature(rogue, ClassFeature.CUNNING_ACTION):
        return None
    if rogue.position == Position.BACK and not rogue.is_hidden:
        return "hide"
    if is_low_hp(rogue, 0.3) and rogue.position == Position.FRONT:
        return "disengage"
    return None


def should_use_uncanny_dodge(rogue: "Combatant", incoming_damage: int) -> bool:
    """Halve a hit that would drop the rogue, hurts a lot, or lands while bloodied."""
    if not has_class_feature(rogue, ClassFeature.UNCANNY_DODGE):
        return False
    if not rogue.has_reaction or rogue.uncanny_dodge_used_this_round:
        return False
    if incoming_damage >= rogue.current_hp:
        return True
    if incoming_damage >= rogue.max_hp * 0.25:
        return True
    return is_low_hp(rogue) and incoming_damage >= 5


# ============================================================================
# BARBARIAN
# ============================================================================


def should_rage(barbarian: "Combatant", round_number: int, enemies: list["Combatant"]) -> bool:
    if barbarian.is_raging or not has_resource(barbarian, ResourceName.RAGE):
        return False
    standing = count_standing(enemies)
    if round_number == 1 and standing > 0:
        return True
    if is_low_hp(barbarian):
        return True
    return standing >= 3


def should_use_reckless_attack(
    barbarian: "Combatant",
    target: "Combatant",
    allies: list["Combatant"],
    enemies: list["Combatant"],
) -> bool:
    """
    Decides whether a barbarian attacks recklessly this turn.

    Reckless while raging (resistance offsets the exposure), against heavily
    armored targets, to secure a kill, or when the party clearly outnumbers
    the enemy.
    """
    if not has_class_feature(barbarian, ClassFeature.RECKLESS_ATTACK):
        return False
    if barbarian.is_raging:
        return True
    if target.armor_class >= 18:
        return True
    if would_kill_target(target, _average_round_damage(barbarian)):
        return True
    return count_standing(allies) >= count_standing(enemies) * 2


# ============================================================================
# PALADIN
# ============================================================================


def should_use_lay_on_hands(paladin: "Combatant", allies: list["Combatant"]) -> HealPlan | None:
    """
    Picks a Lay on Hands target.

    Priorities: revive a dying ally with 5 points, then top up a critically
    wounded ally, then the paladin itself. Small top-ups (under 10) are not
    worth the action.

    Args:
        paladin (Combatant): The paladin.
        allies (list[Combatant]): The paladin's allies, itself excluded.

    Returns:
        HealPlan | None: Target and amount, or None.

    """
    if not has_resource(paladin, ResourceName.LAY_ON_HANDS):
        return None
    pool = get_resource(paladin, ResourceName.LAY_ON_HANDS)

    unconscious = find_unconscious_ally(allies)
    if unconscious is not None and pool >= 5:
        return HealPlan(target=unconscious, amount=5)

    lowest = find_lowest_hp_ally(allies)
    if lowest is not None and is_critical_hp(lowest):
        amount = min(pool, lowest.max_hp - lowest.current_hp)
        if amount >= 10:
            return HealPlan(target=lowest, amount=amount)

    if is_critical_hp(paladin):
        amount = min(pool, paladin.max_hp - paladin.current_hp)
        if amount >= 10:
            return HealPlan(target=paladin, amount=amount)
    return None


def should_divine_smite(paladin: "Combatant", is_critical: bool, target: "Combatant") -> int | None:
    """
    Picks the slot level of a Divine Smite, or None to hold off.

    Crits get the highest slot available; undead and fiends, and kills in
    reach, get at most a 2nd level slot; otherwise smite with a 1st level slot
    only while slots are plentiful.
    """
    if not has_class_feature(paladin, ClassFeature.DIVINE_SMITE):
        return None
    slot_level = next(
        (level for level in range(5, 0, -1) if paladin.current_slots.get(level, 0) > 0), None
    )
    if slot_level is None:
        return None
    if is_critical:
        return slot_level
    if target.config.creature_type in (CreatureType.UNDEAD, CreatureType.FIEND):
        return min(slot_level, 2)
    if would_kill_target(target, (1 + slot_level) * 4.5):
        return min(slot_level, 2)
    if paladin.spell_slots_remaining >= 4 and paladin.current_slots.get(1, 0) > 0:
        return 1
    return None


# ============================================================================
# MONK
# ============================================================================


def select_monk_bonus_action(
    monk: "Combatant",
    target: "Combatant | None",
    allies: list["Combatant"],
    enemies: list["Combatant"],
) -> MonkPlan | None:
    """Flurry wounded targets, retreat or dodge when in trouble, flurry with spare ki."""
    if not has_class_feature(monk, ClassFeature.MARTIAL_ARTS):
        return None
    ki = get_resource(monk, ResourceName.KI)
    standing = count_standing(enemies)
    if ki >= 1:
        if target is not None and is_low_hp(target):
            return MonkPlan(kind="flurry_of_blows", target=target)
        if should_use_step_of_the_wind(monk):
            return MonkPlan(kind="step_of_the_wind")
        if is_critical_hp(monk) or standing >= 3:
            return MonkPlan(kind="patient_defense")
        if target is not None and standing > 0 and ki >= 2:
            return MonkPlan(kind="flurry_of_blows", target=target)
    if target is None:
        return None
    return MonkPlan(kind="martial_arts", target=target)


def should_use_step_of_the_wind(monk: "Combatant") -> bool:
    """A monk about to drop on the front line disengages to the back."""
    if not has_class_feature(monk, ClassFeature.STEP_OF_THE_WIND):
        return False
    if not has_resource(monk, ResourceName.KI):
        return False
    return monk.position == Position.FRONT and is_critical_hp(monk)


def should_use_stunning_strike(monk: "Combatant", target: "Combatant") -> bool:
    """Stun casters, low-Constitution targets and heavy hitters, or spend spare ki."""
    if not has_class_feature(monk, ClassFeature.STUNNING_STRIKE):
        return False
    if not has_resource(monk, ResourceName.KI):
        return False
    ki = get_resource(monk, ResourceName.KI)
    if is_spellcaster(target) and ki >= 2:
        return True
    if target.base_save_bonus(Ability.CONSTITUTION) <= 0 and ki >= 2:
        return True
    if ki >= monk.level * 0.7:
        return True
    return average_roll(target.config.damage) >= 15


# ============================================================================
# CASTERS
# ============================================================================


def should_use_quickened_spell(
    sorcerer: "Combatant", spell: "Spell | None", enemies: list["Combatant"]
) -> bool:
    if spell is None or not has_resource(sorcerer, ResourceName.SORCERY_POINTS, 2):
        return False
    return count_standing(enemies) >= 3 and spell.is_area


def should_use_twinned_spell(
    sorcerer: "Combatant", spell: "Spell | None", targets: list["Combatant"]
) -> bool:
    """Twin single-target spells when a second valid target exists."""
    if spell is None or spell.is_area:
        return False
    if not has_resource(sorcerer, ResourceName.SORCERY_POINTS, max(1, spell.level)):
        return False
    return count_standing(targets) >= 2


def should_use_bardic_inspiration(
    bard: "Combatant", allies: list["Combatant"]
) -> "Combatant | None":
    """Inspire the uninspired front-liner with the best attack bonus."""
    if not has_resource(bard, ResourceName.BARDIC_INSPIRATION):
        return None
    frontliners = [
        a
        for a in allies
        if a.is_conscious
        and a.position == Position.FRONT
        and a.inspiration_die is None
        and a is not bard
    ]
    if not frontliners:
        return None
    return max(frontliners, key=lambda a: a.config.attack_bonus)


# ============================================================================
# CLERIC
# ============================================================================


def should_use_turn_undead(cleric: "Combatant", enemies: list["Combatant"]) -> bool:
    """Turn when at least two undead stand, or one that outlasts a round of attacks."""
    if not has_resource(cleric, ResourceName.CHANNEL_DIVINITY):
        return False
    if not has_class_feature(cleric, ClassFeature.TURN_UNDEAD):
        return False
    undead = [
        e
        for e in enemies
        if e.is_conscious and e.config.creature_type == CreatureType.UNDEAD
    ]
    if len(undead) >= 2:
        return True
    return any(u.current_hp > _average_round_damage(cleric) for u in undead)


# ============================================================================
# METAMAGIC
# ============================================================================


def should_use_heightened_spell(
    sorcerer: "Combatant", spell: "Spell | None", target: "Combatant | None"
) -> bool:
    """Impose disadvantage on the save of a control spell against a strong target."""
    if spell is None or spell.condition is None or target is None:
        return False
    if not has_resource(sorcerer, ResourceName.SORCERY_POINTS, 3):
        return False
    return target.current_hp >= sorcerer.current_hp
