"""
Abstract battlefield positioning.

There is no grid: every combatant stands either in the front line or in the
back line. Area-of-effect templates are resolved against these two buckets.
"""

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from encountersim.core.constants import AoeShape, AttackType, Position
from encountersim.core.dice_parser import Dice

if TYPE_CHECKING:
    from encountersim.combatant.config import CombatantConfig
    from encountersim.combatant.main import Combatant

# An ally caught in a friendly-fire template counts double against casting.
FRIENDLY_FIRE_PENALTY = 2
# Highest attack bonus of a caster considered to have no melee presence.
BACKLINE_CASTER_MAX_ATTACK_BONUS = 3


class AoeSelection(BaseModel):
    """Combatants caught by an area-of-effect template."""

    should_cast: bool = Field(default=False, description="Whether the area is worth it")
    targets: list[Any] = Field(default_factory=list, description="Every combatant hit")
    position: Position | None = Field(default=None, description="Bucket targeted")
    enemies: list[Any] = Field(default_factory=list, description="Enemies hit")
    allies: list[Any] = Field(default_factory=list, description="Allies hit")
    value: float = Field(default=0.0, description="Net expected value of casting")


def get_default_position(config: "CombatantConfig") -> Position:
    """
    Infers where a combatant stands when its configuration does not say.

    Args:
        config (CombatantConfig): The combatant's configuration.

    Returns:
        Position: The explicit position, else BACK for ranged attackers and
            casters without melee presence, else FRONT.

    """
    if config.position is not None:
        return config.position
    if config.attack_type == AttackType.RANGED:
        return Position.BACK
    is_caster = bool(config.spells or config.cantrips)
    if (
        is_caster
        and not config.healing_dice
        and config.attack_bonus <= BACKLINE_CASTER_MAX_ATTACK_BONUS
    ):
        return Position.BACK
    return Position.FRONT


def _targetable(combatant: "Combatant") -> bool:
    return not combatant.is_dead and not combatant.is_unconscious


def get_all_at_position(combatants: list["Combatant"], position: Position) -> list["Combatant"]:
    """Every conscious combatant, of either side, standing at a position."""
    return [c for c in combatants if _targetable(c) and c.position == position]


def get_enemies_at_position(
    combatants: list["Combatant"], attacker_is_player: bool, position: Position
) -> list["Combatant"]:
    return [c for c in get_all_at_position(combatants, position) if c.is_player != attacker_is_player]


def get_enemies_by_position(
    combatants: list["Combatant"], attacker_is_player: bool
) -> dict[Position, list["Combatant"]]:
    return {
        position: get_enemies_at_position(combatants, attacker_is_player, position)
        for position in Position
    }


def get_allies_by_position(
    combatants: list["Combatant"], caster_is_player: bool
) -> dict[Position, list["Combatant"]]:
    return {
        position: [
            c for c in get_all_at_position(combatants, position) if c.is_player == caster_is_player
        ]
        for position in Position
    }


def count_enemies_by_position(
    combatants: list["Combatant"], attacker_is_player: bool
) -> dict[Position, int]:
    return {
        position: len(targets)
        for position, targets in get_enemies_by_position(combatants, attacker_is_player).items()
    }


# ============================================================================
# AREA TEMPLATES
# ============================================================================


def select_sphere_targets(combatants: list["Combatant"], caster_is_player: bool) -> AoeSelection:
    """
    Centers a sphere on the enemy bucket holding the most enemies.

    The front line wins ties. Casting is worthwhile only with two targets.
    """
    buckets = get_enemies_by_position(combatants, caster_is_player)
    front, back = buckets[Position.FRONT], buckets[Position.BACK]
    position = Position.FRONT if len(front) >= len(back) else Position.BACK
    targets = buckets[position]
    return AoeSelection(
        should_cast=len(targets) >= 2,
        targets=targets,
        position=position,
        enemies=targets,
        value=float(len(targets)),
    )


def select_sphere_targets_with_friendly_fire(
    combatants: list["Combatant"],
    caster_is_player: bool,
    avg_damage: float,
    caster: "Combatant | None" = None,
) -> AoeSelection:
    """
    Centers a sphere that also hits allies standing in the chosen bucket.

    For each bucket the net value is the damage expected to land on enemies
    minus twice the damage expected to land on allies, each capped at the
    creature's remaining hit points.

    Args:
        combatants (list[Combatant]): Every combatant of the encounter.
        caster_is_player (bool): The side of the caster.
        avg_damage (float): Expected damage of the spell.
        caster (Combatant | None): The caster, never caught in its own sphere.

    Returns:
        AoeSelection: The best bucket. `should_cast` requires a positive net
            value and at least two enemies.

    """
    enemies_by_position = get_enemies_by_position(combatants, caster_is_player)
    allies_by_position = get_allies_by_position(combatants, caster_is_player)
    candidates = []
    for position in Position:
        enemies = enemies_by_position[position]
        allies = [a for a in allies_by_position[position] if a is not caster]
        value = sum(min(e.current_hp, avg_damage) for e in enemies)
        value -= FRIENDLY_FIRE_PENALTY * sum(min(a.current_hp, avg_damage) for a in allies)
        candidates.append(
            AoeSelection(
                should_cast=value > 0 and len(enemies) >= 2,
                targets=[*enemies, *allies],
                position=position,
                enemies=enemies,
                allies=allies,
                value=value,
            )
        )
    return max(candidates, key=lambda c: (c.should_cast, c.value))


def select_cone_targets(combatants: list["Combatant"], attacker_is_player: bool) -> AoeSelection:
    """
    A cone hits the whole enemy front line.

    With no front line it clips exactly one back-line target.
    """
    front = get_enemies_at_position(combatants, attacker_is_player, Position.FRONT)
    if front:
        return AoeSelection(
            should_cast=True, targets=front, position=Position.FRONT, enemies=front,
            value=float(len(front)),
        )
    back = get_enemies_at_position(combatants, attacker_is_player, Position.BACK)[:1]
    return AoeSelection(
        should_cast=bool(back), targets=back, position=Position.BACK, enemies=back,
        value=float(len(back)),
    )


def select_line_targets(
    combatants: list["Combatant"], attacker_is_player: bool, dice: Dice
) -> AoeSelection:
    """A line hits one random enemy in each non-empty bucket."""
    targets = []
    for position, bucket in get_enemies_by_position(combatants, attacker_is_player).items():
        if bucket:
            targets.append(dice.choice(bucket))
    return AoeSelection(
        should_cast=len(targets) >= 2,
        targets=targets,
        position=None,
        enemies=targets,
        value=float(len(targets)),
    )


def select_aoe_targets(
    shape: AoeShape,
    combatants: list["Combatant"],
    caster_is_player: bool,
    dice: Dice,
    avg_damage: float = 0.0,
    friendly_fire: bool = False,
    caster: "Combatant | None" = None,
) -> AoeSelection:
    """
    Dispatches to the template selection of a shape.

    Args:
        shape (AoeShape): Sphere, cone or line.
        combatants (list[Combatant]): Every combatant of the encounter.
        caster_is_player (bool): The side of the caster.
        dice (Dice): Roller, used by lines.
        avg_damage (float): Expected damage, used by friendly-fire spheres.
        friendly_fire (bool): Whether allies in the template are hit too.
        caster (Combatant | None): The caster itself.

    Returns:
        AoeSelection: The targets and whether casting is worthwhile.

    """
    if shape == AoeShape.SPHERE:
        if friendly_fire:
            return select_sphere_targets_with_friendly_fire(
                combatants, caster_is_player, avg_damage, caster
            )
        return select_sphere_targets(combatants, caster_is_player)
    if shape == AoeShape.CONE:
        return select_cone_targets(combatants, caster_is_player)
    return select_line_targets(combatants, caster_is_player, dice)
