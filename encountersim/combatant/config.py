"""
Combatant configuration models.

A `CombatantConfig` is the immutable description of a party member or a
monster, validated once when loaded. The engine never mutates it: every run
builds fresh `Combatant` state from it.
"""

from typing import Any

from catchery import log_warning
from pydantic import BaseModel, Field, ValidationError, field_validator

from encountersim.core.constants import (
    DEFAULT_SPELL_SAVE_DC,
    FRIGHTFUL_PRESENCE_DURATION,
    Ability,
    AoeShape,
    AttackType,
    ClassName,
    ConditionType,
    CreatureType,
    DamageType,
    FightingStyle,
    LegendaryKind,
    Position,
    SaveEffect,
)
from encountersim.core.dice_parser import parse_dice_notation
from encountersim.core.error_handling import DiceFormatError
from encountersim.spells.definitions import SPELLS


def _check_notation(value: str | None) -> str | None:
    if value is not None:
        parse_dice_notation(value)
    return value


def reraise_dice_error(error: ValidationError) -> None:
    """Re-raises the DiceFormatError pydantic wrapped into a validation error, if any."""
    for detail in error.errors():
        cause = detail.get("ctx", {}).get("error")
        if isinstance(cause, DiceFormatError):
            raise cause from error


def normalize_spell_key(name: str) -> str:
    """Turns "Fire Bolt" or "fire_bolt" into the catalogue key "fire-bolt"."""
    return "-".join(name.strip().lower().replace("_", " ").split())


class OnHitEffect(BaseModel):
    """A condition inflicted by a successful attack."""

    condition: ConditionType = Field(description="Condition applied on a hit")
    duration: int | None = Field(
        default=1, description="Duration in rounds, None for permanent"
    )
    save_dc: int | None = Field(default=None, description="DC of the save avoiding it")
    save_ability: Ability | None = Field(default=None, description="Ability used to save")
    save_end_of_turn: bool = Field(
        default=False, description="Whether the target repeats the save each turn"
    )

    model_config = {"frozen": True}

    def model_post_init(self, _: Any) -> None:
        """Validates the save configuration."""
        if (self.save_dc is None) != (self.save_ability is None):
            raise ValueError("save_dc and save_ability must both be provided or both be None")
        if self.save_end_of_turn and self.save_dc is None:
            raise ValueError("save_end_of_turn requires save_dc and save_ability")


class MultiattackEntry(BaseModel):
    """One attack of a monster's multiattack routine."""

    name: str = Field(description="Name of the attack, e.g. 'bite'")
    attack_bonus: int = Field(description="Bonus to the attack roll")
    damage: str = Field(description="Damage dice notation")
    damage_type: DamageType = Field(default=DamageType.SLASHING, description="Damage type")
    attack_type: AttackType = Field(default=AttackType.MELEE, description="Melee or ranged")
    count: int = Field(default=1, ge=1, description="How many times the attack is made")
    on_hit_effect: OnHitEffect | None = Field(
        default=None, description="Condition inflicted when this attack hits"
    )

    model_config = {"frozen": True}

    @field_validator("damage")
    @classmethod
    def validate_damage(cls, value: str | None) -> str | None:
        return _check_notation(value)


class RechargeAbility(BaseModel):
    """A powerful ability that recharges on a d6 roll, e.g. a breath weapon."""

    name: str = Field(description="Name of the ability")
    recharge_min: int = Field(default=5, ge=1, le=6, description="Lowest d6 that recharges it")
    damage: str = Field(description="Damage dice notation")
    damage_type: DamageType = Field(default=DamageType.FIRE, description="Damage type")
    save_dc: int = Field(description="DC of the saving throw")
    save_ability: Ability = Field(default=Ability.DEXTERITY, description="Ability used to save")
    save_effect: SaveEffect = Field(default=SaveEffect.HALF, description="Effect of a success")
    shape: AoeShape = Field(default=AoeShape.CONE, description="Area template")
    size: int = Field(default=30, ge=0, description="Size of the template in feet")

    model_config = {"frozen": True}

    @field_validator("damage")
    @classmethod
    def validate_damage(cls, value: str | None) -> str | None:
        return _check_notation(value)


class LegendaryAbility(BaseModel):
    """An action a legendary creature can take at the end of another creature's turn."""

    name: str = Field(description="Name of the legendary action")
    cost: int = Field(default=1, ge=1, description="Legendary actions spent")
    kind: LegendaryKind = Field(default=LegendaryKind.ATTACK, description="Attack or area")
    attack_bonus: int = Field(default=0, description="Attack bonus, for attack actions")
    damage: str | None = Field(default=None, description="Damage dice notation")
    damage_type: DamageType = Field(default=DamageType.BLUDGEONING, description="Damage type")
    save_dc: int | None = Field(default=None, description="DC, for area actions")
    save_ability: Ability | None = Field(default=None, description="Ability, for area actions")
    on_fail: ConditionType | None = Field(
        default=None, description="Condition applied for one round on a failed save"
    )

    model_config = {"frozen": True}

    @field_validator("damage")
    @classmethod
    def validate_damage(cls, value: str | None) -> str | None:
        return _check_notation(value)

    def model_post_init(self, _: Any) -> None:
        """Validates that the action can be resolved."""
        if self.kind == LegendaryKind.ATTACK and self.damage is None:
            raise ValueError(f"Legendary attack '{self.name}' needs damage")
        if self.kind == LegendaryKind.AREA and (self.save_dc is None or self.save_ability is None):
            raise ValueError(f"Legendary area action '{self.name}' needs save_dc and save_ability")


class FrightfulPresence(BaseModel):
    """Frightful presence of a dragon-like creature."""

    save_dc: int = Field(description="DC of the Wisdom save")
    duration: int = Field(default=FRIGHTFUL_PRESENCE_DURATION, ge=1, description="Rounds")

    model_config = {"frozen": True}


class CombatantConfig(BaseModel):
    """
    Immutable description of a combatant.

    Everything here is validated at construction: dice notations are parsed
    immediately, so a malformed "1d" fails when the encounter is loaded rather
    than in the middle of a simulation.
    """

    # Identity.
    name: str = Field(description="Unique name of the combatant")
    is_player: bool = Field(default=False, description="Party member (True) or monster")
    class_name: ClassName | None = Field(default=None, description="Character class")
    level: int = Field(default=1, ge=1, le=20, description="Character level")
    creature_type: CreatureType | None = Field(default=None, description="Creature type")
    challenge_rating: float = Field(default=0.0, ge=0, description="Monster challenge rating")

    # Core statistics.
    max_hp: int = Field(gt=0, description="Maximum hit points")
    armor_class: int = Field(ge=0, description="Armor class")
    attack_bonus: int = Field(default=0, description="Bonus to weapon attack rolls")
    damage: str = Field(default="1d4", description="Weapon damage dice notation")
    damage_type: DamageType = Field(default=DamageType.SLASHING, description="Weapon damage type")
    num_attacks: int = Field(default=1, ge=1, description="Attacks per Attack action")
    initiative_bonus: int = Field(default=0, description="Bonus to initiative rolls")
    position: Position | None = Field(default=None, description="Explicit battlefield position")
    attack_type: AttackType = Field(default=AttackType.MELEE, description="Melee or ranged")
    ability_modifiers: dict[Ability, int] = Field(default_factory=dict)
    saving_throws: dict[Ability, int] = Field(
        default_factory=dict, description="Save bonuses overriding the ability modifiers"
    )
    proficiency: int | None = Field(default=None, description="Proficiency bonus override")

    # Defences.
    damage_immunities: list[DamageType] = Field(default_factory=list)
    damage_resistances: list[DamageType] = Field(default_factory=list)
    damage_vulnerabilities: list[DamageType] = Field(default_factory=list)
    condition_immunities: list[ConditionType] = Field(default_factory=list)

    # Healing and spellcasting.
    healing_dice: str | None = Field(default=None, description="Dice healed by the Heal action")
    spells: list[str] = Field(default_factory=list, description="Known leveled spells")
    cantrips: list[str] = Field(default_factory=list, description="Known cantrips")
    spell_slots: dict[int, int] = Field(default_factory=dict, description="Slots per level")
    spellcasting_mod: int = Field(default=0, description="Spellcasting ability modifier")
    spell_attack: int | None = Field(default=None, description="Spell attack bonus override")
    spell_dc: int | None = Field(default=None, description="Spell save DC override")

    # Martial options.
    fighting_style: FightingStyle | None = Field(default=None)
    off_hand_damage: str | None = Field(default=None, description="Off-hand weapon damage")
    invocations: list[str] = Field(default_factory=list, description="Warlock invocations")

    # Monster options.
    smart_targeting: bool = Field(default=False, description="Use tactical target selection")
    on_hit_effect: OnHitEffect | None = Field(default=None)
    multiattack: list[MultiattackEntry] = Field(default_factory=list)
    recharge_abilities: list[RechargeAbility] = Field(default_factory=list)
    legendary_actions: int = Field(default=0, ge=0, description="Legendary actions per round")
    legendary_abilities: list[LegendaryAbility] = Field(default_factory=list)
    legendary_resistances: int = Field(default=0, ge=0, description="Legendary resistances")
    frightful_presence: FrightfulPresence | None = Field(default=None)

    model_config = {"frozen": True}

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            reraise_dice_error(e)
            raise

    @field_validator("damage", "healing_dice", "off_hand_damage")
    @classmethod
    def validate_notation(cls, value: str | None) -> str | None:
        return _check_notation(value)

    @field_validator("spells", "cantrips", mode="before")
    @classmethod
    def normalize_spells(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [normalize_spell_key(v) if isinstance(v, str) else v for v in value]
        return value

    @field_validator("spell_slots", mode="after")
    @classmethod
    def check_slots(cls, value: dict[int, int]) -> dict[int, int]:
        for level, count in value.items():
            if not 1 <= level <= 9 or count < 0:
                raise ValueError(f"Invalid spell slots {level}: {count}")
        return value

    def model_post_init(self, _: Any) -> None:
        """Validates cross-field constraints and reports unknown spells."""
        if not self.name.strip():
            raise ValueError("name must be a non-empty string")
        unknown = [s for s in [*self.spells, *self.cantrips] if s not in SPELLS]
        if unknown:
            log_warning(
                f"Combatant '{self.name}' knows spells missing from the catalogue; "
                "they will never be cast.",
                {"combatant": self.name, "spells": unknown},
            )

    @property
    def proficiency_bonus(self) -> int:
        if self.proficiency is not None:
            return self.proficiency
        return 2 + (self.level - 1) // 4

    @property
    def spell_attack_bonus(self) -> int:
        if self.spell_attack is not None:
            return self.spell_attack
        if self.spellcasting_mod:
            return self.proficiency_bonus + self.spellcasting_mod
        return self.attack_bonus

    @property
    def spell_save_dc(self) -> int:
        if self.spell_dc is not None:
            return self.spell_dc
        return DEFAULT_SPELL_SAVE_DC

    @property
    def is_caster(self) -> bool:
        return bool(self.spells or self.cantrips)

    @property
    def is_legendary(self) -> bool:
        return self.legendary_actions > 0 and bool(self.legendary_abilities)

    def ability_modifier(self, ability: Ability) -> int:
        return self.ability_modifiers.get(ability, 0)
