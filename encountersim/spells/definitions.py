"""
Spell definitions.

The static description of every spell the engine knows. Only data and key
lookups live here, so configurations and targeting can read the catalogue
without pulling in the scaling and casting code.
"""

from typing import Any

from catchery import log_debug
from pydantic import BaseModel, Field

from encountersim.core.constants import (
    Ability,
    AoeShape,
    ConditionType,
    CreatureType,
    DamageType,
    SaveEffect,
    SpellKind,
)


class Spell(BaseModel):
    """A spell of the catalogue."""

    key: str = Field(description="Catalogue key, e.g. 'fire-bolt'")
    name: str = Field(description="Display name")
    level: int = Field(ge=0, le=9, description="Spell level, 0 for cantrips")
    kind: SpellKind = Field(description="How the spell resolves")
    damage: str | None = Field(default=None, description="Damage dice of one projectile or target")
    damage_type: DamageType | None = None
    damage_if_hurt: str | None = Field(default=None, description="Damage against a wounded target")
    save_ability: Ability | None = None
    save_effect: SaveEffect = SaveEffect.NONE
    shape: AoeShape | None = Field(default=None, description="Area template, None for targeted")
    friendly_fire: bool = Field(default=False, description="Whether allies in the area are hit")
    concentration: bool = False
    condition: ConditionType | None = Field(default=None, description="Condition on a failed save")
    duration: int | None = Field(default=None, description="Rounds the effect lasts")
    save_end_of_turn: bool = False
    projectiles: int = Field(default=1, ge=1, description="Darts, rays or beams")
    scales_projectiles: bool = Field(default=False, description="Cantrip scaling adds beams")
    targets: int = Field(default=1, ge=1, description="Creatures affected")
    healing: str | None = Field(default=None, description="Healing dice")
    upcast_damage: str | None = Field(default=None, description="Extra damage per step above")
    upcast_step: int = Field(default=1, ge=1, description="Slot levels per upcast step")
    upcast_healing: str | None = None
    upcast_projectiles: int = 0
    upcast_targets: int = 0
    bonus_action: bool = False
    target_restriction: CreatureType | None = None

    model_config = {"frozen": True}

    @property
    def is_cantrip(self) -> bool:
        return self.level == 0

    @property
    def is_area(self) -> bool:
        return self.shape is not None

    @property
    def is_healing(self) -> bool:
        return self.kind == SpellKind.HEALING


def _spell(key: str, name: str, level: int, kind: SpellKind, **kwargs: Any) -> Spell:
    return Spell(key=key, name=name, level=level, kind=kind, **kwargs)


_DEX, _WIS = Ability.DEXTERITY, Ability.WISDOM

SPELLS: dict[str, Spell] = {
    s.key: s
    for s in (
        # Cantrips.
        _spell("fire-bolt", "Fire Bolt", 0, SpellKind.ATTACK, damage="1d10", damage_type=DamageType.FIRE),
        _spell(
            "sacred-flame", "Sacred Flame", 0, SpellKind.SAVE,
            damage="1d8", damage_type=DamageType.RADIANT, save_ability=_DEX,
        ),
        _spell(
            "toll-the-dead", "Toll the Dead", 0, SpellKind.SAVE,
            damage="1d8", damage_if_hurt="1d12", damage_type=DamageType.NECROTIC, save_ability=_WIS,
        ),
        _spell(
            "eldritch-blast", "Eldritch Blast", 0, SpellKind.ATTACK,
            damage="1d10", damage_type=DamageType.FORCE, scales_projectiles=True,
        ),
        # 1st level.
        _spell(
            "magic-missile", "Magic Missile", 1, SpellKind.AUTO_HIT,
            damage="1d4+1", damage_type=DamageType.FORCE, projectiles=3, upcast_projectiles=1,
        ),
        _spell("shield", "Shield", 1, SpellKind.REACTION),
        _spell(
            "healing-word", "Healing Word", 1, SpellKind.HEALING,
            healing="1d4", upcast_healing="1d4", bonus_action=True,
        ),
        _spell("bless", "Bless", 1, SpellKind.BUFF, concentration=True, targets=3, upcast_targets=1),
        _spell("cure-wounds", "Cure Wounds", 1, SpellKind.HEALING, healing="1d8", upcast_healing="1d8"),
        _spell(
            "burning-hands", "Burning Hands", 1, SpellKind.SAVE,
            damage="3d6", damage_type=DamageType.FIRE, save_ability=_DEX,
            save_effect=SaveEffect.HALF, shape=AoeShape.CONE, upcast_damage="1d6",
        ),
        # 2nd level.
        _spell(
            "scorching-ray", "Scorching Ray", 2, SpellKind.ATTACK,
            damage="2d6", damage_type=DamageType.FIRE, projectiles=3, upcast_projectiles=1,
        ),
        _spell(
            "hold-person", "Hold Person", 2, SpellKind.CONTROL,
            save_ability=_WIS, condition=ConditionType.PARALYZED, duration=10,
            save_end_of_turn=True, concentration=True, upcast_targets=1,
            target_restriction=CreatureType.HUMANOID,
        ),
        _spell(
            "spiritual-weapon", "Spiritual Weapon", 2, SpellKind.SUMMON,
            damage="1d8", damage_type=DamageType.FORCE, duration=10,
            upcast_damage="1d8", upcast_step=2, bonus_action=True,
        ),
        # 3rd level.
        _spell(
            "fireball", "Fireball", 3, SpellKind.SAVE,
            damage="8d6", damage_type=DamageType.FIRE, save_ability=_DEX,
            save_effect=SaveEffect.HALF, shape=AoeShape.SPHERE, friendly_fire=True,
            upcast_damage="1d6",
        ),
        _spell(
            "lightning-bolt", "Lightning Bolt", 3, SpellKind.SAVE,
            damage="8d6", damage_type=DamageType.LIGHTNING, save_ability=_DEX,
            save_effect=SaveEffect.HALF, shape=AoeShape.LINE, upcast_damage="1d6",
        ),
        _spell("counterspell", "Counterspell", 3, SpellKind.REACTION),
        _spell("haste", "Haste", 3, SpellKind.BUFF, concentration=True, duration=10),
    )
}


def get_spell(key: str) -> Spell | None:
    spell = SPELLS.get(key)
    if spell is None:
        log_debug(f"Unknown spell '{key}'")
    return spell


def is_healing_spell(key: str) -> bool:
    spell = SPELLS.get(key)
    return spell is not None and spell.is_healing
