"""
Static class data.

Feature unlock levels, resource pool sizes and per-level scaling tables for
every supported character class. This module is pure data: the resource
manager and the ability library both read it, neither is imported here.
"""

import math
from collections.abc import Callable

from encountersim.core.constants import Ability, ClassName, NiceEnum, ResourceName, RestType


class ClassFeature(NiceEnum):
    """Class features gated by level."""

    # Fighter.
    FIGHTING_STYLE = "FIGHTING_STYLE"
    SECOND_WIND = "SECOND_WIND"
    ACTION_SURGE = "ACTION_SURGE"
    INDOMITABLE = "INDOMITABLE"
    EXTRA_ATTACK = "EXTRA_ATTACK"
    # Rogue.
    SNEAK_ATTACK = "SNEAK_ATTACK"
    CUNNING_ACTION = "CUNNING_ACTION"
    UNCANNY_DODGE = "UNCANNY_DODGE"
    EVASION = "EVASION"
    ELUSIVE = "ELUSIVE"
    STROKE_OF_LUCK = "STROKE_OF_LUCK"
    # Barbarian.
    RAGE = "RAGE"
    RECKLESS_ATTACK = "RECKLESS_ATTACK"
    BRUTAL_CRITICAL = "BRUTAL_CRITICAL"
    RELENTLESS_RAGE = "RELENTLESS_RAGE"
    # Paladin.
    LAY_ON_HANDS = "LAY_ON_HANDS"
    DIVINE_SMITE = "DIVINE_SMITE"
    AURA_OF_PROTECTION = "AURA_OF_PROTECTION"
    IMPROVED_DIVINE_SMITE = "IMPROVED_DIVINE_SMITE"
    # Ranger.
    FOE_SLAYER = "FOE_SLAYER"
    # Monk.
    MARTIAL_ARTS = "MARTIAL_ARTS"
    KI = "KI"
    FLURRY_OF_BLOWS = "FLURRY_OF_BLOWS"
    PATIENT_DEFENSE = "PATIENT_DEFENSE"
    STEP_OF_THE_WIND = "STEP_OF_THE_WIND"
    STUNNING_STRIKE = "STUNNING_STRIKE"
    DIAMOND_SOUL = "DIAMOND_SOUL"
    # Casters.
    FONT_OF_MAGIC = "FONT_OF_MAGIC"
    METAMAGIC = "METAMAGIC"
    BARDIC_INSPIRATION = "BARDIC_INSPIRATION"
    FONT_OF_INSPIRATION = "FONT_OF_INSPIRATION"
    CHANNEL_DIVINITY = "CHANNEL_DIVINITY"
    TURN_UNDEAD = "TURN_UNDEAD"
    DESTROY_UNDEAD = "DESTROY_UNDEAD"
    PACT_MAGIC = "PACT_MAGIC"
    AGONIZING_BLAST = "AGONIZING_BLAST"
    ARCANE_RECOVERY = "ARCANE_RECOVERY"
    WILD_SHAPE = "WILD_SHAPE"


F = ClassFeature

# Level at which each class gains each feature.
FEATURE_LEVELS: dict[ClassName, dict[ClassFeature, int]] = {
    ClassName.FIGHTER: {
        F.FIGHTING_STYLE: 1,
        F.SECOND_WIND: 1,
        F.ACTION_SURGE: 2,
        F.EXTRA_ATTACK: 5,
        F.INDOMITABLE: 9,
    },
    ClassName.ROGUE: {
        F.SNEAK_ATTACK: 1,
        F.CUNNING_ACTION: 2,
        F.UNCANNY_DODGE: 5,
        F.EVASION: 7,
        F.ELUSIVE: 18,
        F.STROKE_OF_LUCK: 20,
    },
    ClassName.BARBARIAN: {
        F.RAGE: 1,
        F.RECKLESS_ATTACK: 2,
        F.EXTRA_ATTACK: 5,
        F.BRUTAL_CRITICAL: 9,
        F.RELENTLESS_RAGE: 11,
    },
    ClassName.PALADIN: {
        F.LAY_ON_HANDS: 1,
        F.DIVINE_SMITE: 2,
        F.FIGHTING_STYLE: 2,
        F.EXTRA_ATTACK: 5,
        F.AURA_OF_PROTECTION: 6,
        F.IMPROVED_DIVINE_SMITE: 11,
    },
    ClassName.RANGER: {
        F.FIGHTING_STYLE: 2,
        F.EXTRA_ATTACK: 5,
        F.FOE_SLAYER: 20,
    },
    ClassName.MONK: {
        F.MARTIAL_ARTS: 1,
        F.KI: 2,
        F.FLURRY_OF_BLOWS: 2,
        F.PATIENT_DEFENSE: 2,
        F.STEP_OF_THE_WIND: 2,
        F.EXTRA_ATTACK: 5,
        F.STUNNING_STRIKE: 5,
        F.EVASION: 7,
        F.DIAMOND_SOUL: 14,
    },
    ClassName.SORCERER: {
        F.FONT_OF_MAGIC: 2,
        F.METAMAGIC: 3,
    },
    ClassName.BARD: {
        F.BARDIC_INSPIRATION: 1,
        F.FONT_OF_INSPIRATION: 5,
    },
    ClassName.CLERIC: {
        F.CHANNEL_DIVINITY: 2,
        F.TURN_UNDEAD: 2,
        F.DESTROY_UNDEAD: 5,
    },
    ClassName.WARLOCK: {
        F.PACT_MAGIC: 1,
        F.AGONIZING_BLAST: 2,
    },
    ClassName.WIZARD: {
        F.ARCANE_RECOVERY: 1,
    },
    ClassName.DRUID: {
        F.WILD_SHAPE: 2,
    },
}

# Classes whose Extra Attack grows beyond two attacks.
EXTRA_ATTACK_LEVELS: dict[ClassName, list[tuple[int, int]]] = {
    ClassName.FIGHTER: [(20, 4), (11, 3), (5, 2)],
    ClassName.BARBARIAN: [(5, 2)],
    ClassName.PALADIN: [(5, 2)],
    ClassName.RANGER: [(5, 2)],
    ClassName.MONK: [(5, 2)],
}

# (minimum level, value) pairs, highest level first.
RAGES_PER_DAY: list[tuple[int, int]] = [(17, 6), (12, 5), (6, 4), (3, 3), (1, 2)]
UNLIMITED_RAGE_LEVEL = 20
UNLIMITED_RAGES = 99
RAGE_DAMAGE: list[tuple[int, int]] = [(16, 4), (9, 3), (1, 2)]
BRUTAL_CRITICAL_DICE: list[tuple[int, int]] = [(17, 3), (13, 2), (9, 1)]
MARTIAL_ARTS_DIE: list[tuple[int, str]] = [(17, "1d10"), (11, "1d8"), (5, "1d6"), (1, "1d4")]
BARDIC_INSPIRATION_DIE: list[tuple[int, str]] = [(15, "1d12"), (10, "1d10"), (5, "1d8"), (1, "1d6")]
AURA_RADIUS: list[tuple[int, int]] = [(18, 30), (6, 10)]
CHANNEL_DIVINITY_USES: list[tuple[int, int]] = [(18, 3), (6, 2), (2, 1)]
INDOMITABLE_USES: list[tuple[int, int]] = [(17, 3), (13, 2), (9, 1)]
PACT_SLOTS: list[tuple[int, int]] = [(17, 4), (11, 3), (2, 2), (1, 1)]
MYSTIC_ARCANUM: list[tuple[int, int]] = [(17, 4), (15, 3), (13, 2), (11, 1)]
# Challenge rating destroyed by Destroy Undead, by cleric level.
DESTROY_UNDEAD_CR: list[tuple[int, float]] = [(17, 4), (14, 3), (11, 2), (8, 1), (5, 0.5)]

LAY_ON_HANDS_PER_LEVEL = 5


def lookup(table: list[tuple[int, object]], level: int, default: object = 0) -> object:
    """Returns the value of the highest threshold not above `level`."""
    for threshold, value in table:
        if level >= threshold:
            return value
    return default


# ============================================================================
# RESOURCE POOLS
# ============================================================================

# A builder returns {resource: (maximum, rest type)} for a class level.
PoolBuilder = Callable[[int, dict[Ability, int]], dict[ResourceName, tuple[int, RestType]]]


def _fighter_pools(level: int, _: dict[Ability, int]) -> dict[ResourceName, tuple[int, RestType]]:
    pools = {ResourceName.SECOND_WIND: (1, RestType.SHORT)}
    if level >= 2:
        pools[ResourceName.ACTION_SURGE] = (2 if level >= 17 else 1, RestType.SHORT)
    if level >= 9:
        pools[ResourceName.INDOMITABLE] = (lookup(INDOMITABLE_USES, level), RestType.LONG)
    return pools


def _rogue_pools(level: int, _: dict[Ability, int]) -> dict[ResourceName, tuple[int, RestType]]:
    if level >= 20:
        return {ResourceName.STROKE_OF_LUCK: (1, RestType.SHORT)}
    return {}


def _barbarian_pools(level: int, _: dict[Ability, int]) -> dict[ResourceName, tuple[int, RestType]]:
    rages = UNLIMITED_RAGES if level >= UNLIMITED_RAGE_LEVEL else lookup(RAGES_PER_DAY, level)
    return {ResourceName.RAGE: (rages, RestType.LONG)}


def _paladin_pools(level: int, _: dict[Ability, int]) -> dict[ResourceName, tuple[int, RestType]]:
    pools = {
        ResourceName.LAY_ON_HANDS: (LAY_ON_HANDS_PER_LEVEL * level, RestType.LONG),
        ResourceName.DIVINE_SENSE: (1, RestType.LONG),
    }
    if level >= 3:
        pools[ResourceName.CHANNEL_DIVINITY] = (1, RestType.SHORT)
    return pools


def _monk_pools(level: int, _: dict[Ability, int]) -> dict[ResourceName, tuple[int, RestType]]:
    if level < 2:
        return {}
    return {ResourceName.KI: (level, RestType.SHORT)}


def _wizard_pools(level: int, _: dict[Ability, int]) -> dict[ResourceName, tuple[int, RestType]]:
    return {ResourceName.ARCANE_RECOVERY: (math.ceil(level / 2), RestType.LONG)}


def _sorcerer_pools(level: int, _: dict[Ability, int]) -> dict[ResourceName, tuple[int, RestType]]:
    if level < 2:
        return {}
    return {ResourceName.SORCERY_POINTS: (level, RestType.LONG)}


def _warlock_pools(level: int, _: dict[Ability, int]) -> dict[ResourceName, tuple[int, RestType]]:
    pools = {ResourceName.PACT_SLOTS: (lookup(PACT_SLOTS, level), RestType.SHORT)}
    if level >= 11:
        pools[ResourceName.MYSTIC_ARCANUM] = (lookup(MYSTIC_ARCANUM, level), RestType.LONG)
    return pools


def _cleric_pools(level: int, _: dict[Ability, int]) -> dict[ResourceName, tuple[int, RestType]]:
    uses = lookup(CHANNEL_DIVINITY_USES, level)
    return {ResourceName.CHANNEL_DIVINITY: (uses, RestType.SHORT)} if uses else {}


def _bard_pools(level: int, mods: dict[Ability, int]) -> dict[ResourceName, tuple[int, RestType]]:
    uses = max(1, mods.get(Ability.CHARISMA, 0))
    rest = RestType.SHORT if level >= 5 else RestType.LONG
    return {ResourceName.BARDIC_INSPIRATION: (uses, rest)}


def _druid_pools(level: int, _: dict[Ability, int]) -> dict[ResourceName, tuple[int, RestType]]:
    if level < 2:
        return {}
    return {ResourceName.WILD_SHAPE: (2, RestType.SHORT)}


CLASS_POOLS: dict[ClassName, PoolBuilder] = {
    ClassName.FIGHTER: _fighter_pools,
    ClassName.ROGUE: _rogue_pools,
    ClassName.BARBARIAN: _barbarian_pools,
    ClassName.PALADIN: _paladin_pools,
    ClassName.MONK: _monk_pools,
    ClassName.WIZARD: _wizard_pools,
    ClassName.SORCERER: _sorcerer_pools,
    ClassName.WARLOCK: _warlock_pools,
    ClassName.CLERIC: _cleric_pools,
    ClassName.BARD: _bard_pools,
    ClassName.DRUID: _druid_pools,
}


def get_num_attacks(class_name: ClassName | None, level: int) -> int:
    """Attacks per Attack action granted by Extra Attack."""
    if class_name is None:
        return 1
    return int(lookup(EXTRA_ATTACK_LEVELS.get(class_name, []), level, 1))
