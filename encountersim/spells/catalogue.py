"""
Spell catalogue arithmetic.

Cantrip scaling, upcasting and spell slots over the definitions of
`encountersim.spells.definitions`. Casting lives in
`encountersim.spells.spellcasting`.
"""

from typing import TYPE_CHECKING

from catchery import log_debug, log_warning

from encountersim.classes.templates import lookup
from encountersim.core.dice_parser import add_modifier, parse_dice_notation, with_dice_count
from encountersim.spells.definitions import SPELLS, Spell

if TYPE_CHECKING:
    from encountersim.combatant.main import Combatant

# (caster level, cantrip dice or beams), highest level first.
CANTRIP_TIERS: list[tuple[int, int]] = [(17, 4), (11, 3), (5, 2), (1, 1)]


def get_known_spells(caster: "Combatant") -> list[Spell]:
    """Cantrips first, then leveled spells, skipping keys missing from the catalogue."""
    keys = [*caster.config.cantrips, *caster.config.spells]
    return [SPELLS[key] for key in keys if key in SPELLS]


def cantrip_tier(caster_level: int) -> int:
    return int(lookup(CANTRIP_TIERS, caster_level, 1))


def get_cantrip_damage(notation: str, caster_level: int = 1) -> str:
    """
    Scales a cantrip's dice with the caster's level.

    One die at level 1, two at 5, three at 11 and four at 17. The modifier
    of the expression is kept.
    """
    return with_dice_count(notation, cantrip_tier(caster_level))


def _upcast_steps(spell: Spell, slot_level: int) -> int:
    return max(0, slot_level - spell.level) // spell.upcast_step


def _upcast(spell: Spell, base: str, extra: str | None, slot_level: int) -> str:
    steps = _upcast_steps(spell, slot_level)
    if extra is None or steps == 0:
        return base
    parsed, bonus = parse_dice_notation(base), parse_dice_notation(extra)
    if parsed.sides != bonus.sides:
        log_warning(
            f"Upcast dice of {spell.name} do not match its base dice; casting at base damage.",
            {"spell": spell.key, "base": base, "upcast": extra},
        )
        return base
    return with_dice_count(base, parsed.count + bonus.count * steps)


def get_spell_damage(
    spell: Spell, slot_level: int | None = None, caster_level: int = 1, target_hurt: bool = False
) -> str | None:
    """
    Damage dice of one hit of a spell.

    Args:
        spell (Spell): The spell.
        slot_level (int | None): Slot used, the spell's own level by default.
        caster_level (int): Level of the caster, for cantrip scaling.
        target_hurt (bool): Whether the target is below its maximum hit points.

    Returns:
        str | None: Dice notation, None for spells dealing no damage.

    """
    damage = spell.damage_if_hurt if target_hurt and spell.damage_if_hurt else spell.damage
    if damage is None:
        return None
    if spell.is_cantrip:
        return damage if spell.scales_projectiles else get_cantrip_damage(damage, caster_level)
    return _upcast(spell, damage, spell.upcast_damage, slot_level or spell.level)


def get_spell_projectiles(spell: Spell, slot_level: int | None = None, caster_level: int = 1) -> int:
    """Darts, rays or beams: one more per slot level above, or per cantrip tier."""
    if spell.is_cantrip:
        return cantrip_tier(caster_level) if spell.scales_projectiles else spell.projectiles
    return spell.projectiles + spell.upcast_projectiles * _upcast_steps(spell, slot_level or spell.level)


def get_spell_targets(spell: Spell, slot_level: int | None = None) -> int:
    return spell.targets + spell.upcast_targets * _upcast_steps(spell, slot_level or spell.level)


def get_spell_healing(spell: Spell, slot_level: int | None = None, modifier: int = 0) -> str | None:
    """Healing dice of a spell, upcast and plus the caster's spellcasting modifier."""
    if spell.healing is None:
        return None
    dice = _upcast(spell, spell.healing, spell.upcast_healing, slot_level or spell.level)
    return add_modifier(dice, modifier)


# ============================================================================
# SPELL SLOTS
# ============================================================================


def has_spell_slot(caster: "Combatant", level: int) -> bool:
    if level == 0:
        return True
    return caster.current_slots.get(level, 0) > 0


def find_available_slot(caster: "Combatant", min_level: int) -> int | None:
    """Lowest slot level at or above `min_level` with a slot left."""
    if min_level == 0:
        return 0
    for level in sorted(caster.current_slots):
        if level >= min_level and caster.current_slots[level] > 0:
            return level
    return None


def consume_spell_slot(caster: "Combatant", level: int) -> bool:
    """Spends a slot. Cantrips cost nothing. Returns False when none is left."""
    if level == 0:
        return True
    if not has_spell_slot(caster, level):
        log_debug(f"{caster.name} has no level {level} slot left")
        return False
    caster.current_slots[level] -= 1
    return True
