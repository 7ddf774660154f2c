"""
Constants and enumerations for the encounter simulator.

Defines global constants and the enumerations shared by every engine module:
positions, attack types, roll modes, conditions, damage types, abilities,
character classes, class resources, spell shapes and creature types.
"""

from enum import Enum
from typing import Any

# Hard cap on the number of rounds a single encounter may last.
MAX_ROUNDS = 100

# Death saving throws.
DEATH_SAVE_THRESHOLD = 3
DEATH_SAVE_SUCCESS_DC = 10

# Rage lasts one minute.
RAGE_DURATION_ROUNDS = 10

# Save DC used by spells cast by combatants without a configured DC.
DEFAULT_SPELL_SAVE_DC = 13

# Minimum DC of a concentration check.
CONCENTRATION_MIN_DC = 10

# Bonus granted by the Shield spell.
SHIELD_AC_BONUS = 5

# Frightful presence lasts one minute unless the target saves.
FRIGHTFUL_PRESENCE_DURATION = 10

# Relentless Rage starts at DC 10 and grows by 5 with each use.
RELENTLESS_RAGE_BASE_DC = 10
RELENTLESS_RAGE_DC_STEP = 5


class NiceEnum(Enum):
    """An enumeration that provides a nicer string representation."""

    def __str__(self) -> str:
        return self.name

    @property
    def display_name(self) -> str:
        return self.name.replace("_", " ").lower().capitalize()

    @classmethod
    def _missing_(cls, value: Any) -> Any:
        # Accept "front", "Front" and "FRONT" alike when loading JSON.
        if isinstance(value, str):
            normalized = value.strip().upper().replace("-", "_").replace(" ", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class Position(NiceEnum):
    """Abstract battlefield placement of a combatant."""

    FRONT = "FRONT"
    BACK = "BACK"

    @property
    def emoji(self) -> str:
        return {Position.FRONT: "🛡️", Position.BACK: "🏹"}.get(self, "❔")


class AttackType(NiceEnum):
    """How a combatant delivers its attacks."""

    MELEE = "MELEE"
    RANGED = "RANGED"


class RollMode(NiceEnum):
    """How a d20 roll is taken."""

    NORMAL = "NORMAL"
    ADVANTAGE = "ADVANTAGE"
    DISADVANTAGE = "DISADVANTAGE"

    @property
    def color(self) -> str:
        return {
            RollMode.ADVANTAGE: "bold green",
            RollMode.DISADVANTAGE: "bold red",
        }.get(self, "dim white")


class ConditionType(NiceEnum):
    """Status conditions that can be applied to combatants."""

    PRONE = "PRONE"
    STUNNED = "STUNNED"
    POISONED = "POISONED"
    RESTRAINED = "RESTRAINED"
    BLINDED = "BLINDED"
    PARALYZED = "PARALYZED"
    FRIGHTENED = "FRIGHTENED"
    CHARMED = "CHARMED"
    INCAPACITATED = "INCAPACITATED"
    PETRIFIED = "PETRIFIED"
    TURNED = "TURNED"

    @property
    def emoji(self) -> str:
        """Returns the emoji associated with this condition."""
        return {
            ConditionType.PRONE: "🛌",
            ConditionType.STUNNED: "💫",
            ConditionType.POISONED: "🤢",
            ConditionType.RESTRAINED: "⛓️",
            ConditionType.BLINDED: "🙈",
            ConditionType.PARALYZED: "🧊",
            ConditionType.FRIGHTENED: "😱",
            ConditionType.CHARMED: "💖",
            ConditionType.INCAPACITATED: "😵",
            ConditionType.PETRIFIED: "🗿",
            ConditionType.TURNED: "✝️",
        }.get(self, "❔")


class DamageType(NiceEnum):
    """Defines various types of damage that can be inflicted."""

    PIERCING = "PIERCING"
    SLASHING = "SLASHING"
    BLUDGEONING = "BLUDGEONING"
    FIRE = "FIRE"
    COLD = "COLD"
    LIGHTNING = "LIGHTNING"
    THUNDER = "THUNDER"
    POISON = "POISON"
    NECROTIC = "NECROTIC"
    RADIANT = "RADIANT"
    PSYCHIC = "PSYCHIC"
    FORCE = "FORCE"
    ACID = "ACID"

    @property
    def is_physical(self) -> bool:
        return self in (
            DamageType.PIERCING,
            DamageType.SLASHING,
            DamageType.BLUDGEONING,
        )

    @property
    def color(self) -> str:
        """Returns the color string associated with this damage type."""
        return {
            DamageType.PIERCING: "bold magenta",
            DamageType.SLASHING: "bold yellow",
            DamageType.BLUDGEONING: "bold blue",
            DamageType.FIRE: "bold red",
            DamageType.COLD: "bold cyan",
            DamageType.LIGHTNING: "yellow",
            DamageType.THUNDER: "blue",
            DamageType.POISON: "green",
            DamageType.NECROTIC: "dim white",
            DamageType.RADIANT: "bright_white",
            DamageType.PSYCHIC: "magenta",
            DamageType.FORCE: "bright_magenta",
            DamageType.ACID: "bright_green",
        }.get(self, "white")


class Ability(NiceEnum):
    """The six ability scores, used for saving throws."""

    STRENGTH = "STRENGTH"
    DEXTERITY = "DEXTERITY"
    CONSTITUTION = "CONSTITUTION"
    INTELLIGENCE = "INTELLIGENCE"
    WISDOM = "WISDOM"
    CHARISMA = "CHARISMA"

    @property
    def short(self) -> str:
        return self.value[:3]

    @classmethod
    def _missing_(cls, value: Any) -> Any:
        member = super()._missing_(value)
        if member is None and isinstance(value, str):
            short = value.strip().upper()[:3]
            for candidate in cls:
                if candidate.short == short:
                    return candidate
        return member


class ClassName(NiceEnum):
    """Character classes with dedicated features."""

    FIGHTER = "FIGHTER"
    ROGUE = "ROGUE"
    BARBARIAN = "BARBARIAN"
    PALADIN = "PALADIN"
    RANGER = "RANGER"
    MONK = "MONK"
    WIZARD = "WIZARD"
    SORCERER = "SORCERER"
    WARLOCK = "WARLOCK"
    CLERIC = "CLERIC"
    BARD = "BARD"
    DRUID = "DRUID"


class ResourceName(NiceEnum):
    """Keys of the per-class limited-use resource pools."""

    SECOND_WIND = "SECOND_WIND"
    ACTION_SURGE = "ACTION_SURGE"
    INDOMITABLE = "INDOMITABLE"
    STROKE_OF_LUCK = "STROKE_OF_LUCK"
    RAGE = "RAGE"
    LAY_ON_HANDS = "LAY_ON_HANDS"
    CHANNEL_DIVINITY = "CHANNEL_DIVINITY"
    DIVINE_SENSE = "DIVINE_SENSE"
    KI = "KI"
    ARCANE_RECOVERY = "ARCANE_RECOVERY"
    SORCERY_POINTS = "SORCERY_POINTS"
    PACT_SLOTS = "PACT_SLOTS"
    MYSTIC_ARCANUM = "MYSTIC_ARCANUM"
    BARDIC_INSPIRATION = "BARDIC_INSPIRATION"
    WILD_SHAPE = "WILD_SHAPE"


class RestType(NiceEnum):
    """When a resource pool recovers."""

    SHORT = "SHORT"
    LONG = "LONG"


class FightingStyle(NiceEnum):
    """Fighting styles available to martial classes."""

    ARCHERY = "ARCHERY"
    DUELING = "DUELING"
    DEFENSE = "DEFENSE"
    GREAT_WEAPON_FIGHTING = "GREAT_WEAPON_FIGHTING"
    TWO_WEAPON_FIGHTING = "TWO_WEAPON_FIGHTING"


class AoeShape(NiceEnum):
    """Area-of-effect templates used by spells and monster abilities."""

    SPHERE = "SPHERE"
    CONE = "CONE"
    LINE = "LINE"


class SaveEffect(NiceEnum):
    """What a successful saving throw does to incoming damage."""

    HALF = "HALF"
    NONE = "NONE"


class SpellKind(NiceEnum):
    """How a spell resolves."""

    ATTACK = "ATTACK"
    SAVE = "SAVE"
    AUTO_HIT = "AUTO_HIT"
    HEALING = "HEALING"
    CONTROL = "CONTROL"
    BUFF = "BUFF"
    REACTION = "REACTION"
    SUMMON = "SUMMON"


class LegendaryKind(NiceEnum):
    """Type of a legendary action."""

    ATTACK = "ATTACK"
    AREA = "AREA"


class CreatureType(NiceEnum):
    """Creature type, relevant to a handful of class features."""

    HUMANOID = "HUMANOID"
    BEAST = "BEAST"
    UNDEAD = "UNDEAD"
    FIEND = "FIEND"
    DRAGON = "DRAGON"
    GIANT = "GIANT"
    MONSTROSITY = "MONSTROSITY"
    ABERRATION = "ABERRATION"
    CELESTIAL = "CELESTIAL"
    CONSTRUCT = "CONSTRUCT"
    ELEMENTAL = "ELEMENTAL"
    FEY = "FEY"
    OOZE = "OOZE"
    PLANT = "PLANT"
