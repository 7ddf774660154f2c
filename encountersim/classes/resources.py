"""
Class resource manager.

Tracks the limited-use pools of each combatant (Ki, Rage, Lay on Hands,
Action Surge, ...), the rage state machine and the per-turn/per-round
flags. Asking for a resource a combatant does not have is not an error: the
capability is simply absent.
"""

import math
from typing import TYPE_CHECKING

from catchery import log_debug
from pydantic import BaseModel, Field

from encountersim.classes.templates import (
    AURA_RADIUS,
    BARDIC_INSPIRATION_DIE,
    BRUTAL_CRITICAL_DICE,
    CLASS_POOLS,
    FEATURE_LEVELS,
    MARTIAL_ARTS_DIE,
    RAGE_DAMAGE,
    ClassFeature,
    lookup,
)
from encountersim.core.constants import RAGE_DURATION_ROUNDS, ResourceName, RestType

if TYPE_CHECKING:
    from encountersim.combatant.main import Combatant


class ResourcePool(BaseModel):
    """A limited-use class resource."""

    current: int = Field(ge=0, description="Uses left")
    maximum: int = Field(ge=0, description="Uses when fully rested")
    rest: RestType = Field(description="Rest that restores the pool")

    def model_post_init(self, _: object) -> None:
        if self.current > self.maximum:
            raise ValueError(f"current ({self.current}) exceeds maximum ({self.maximum})")


def init_resources(combatant: "Combatant") -> None:
    """
    Fills a combatant's resource pools from its class and level.

    Combatants without a class (most monsters) get no pools.
    """
    combatant.class_resources = {}
    class_name = combatant.config.class_name
    if class_name is None or class_name not in CLASS_POOLS:
        return
    pools = CLASS_POOLS[class_name](combatant.config.level, combatant.config.ability_modifiers)
    for name, (maximum, rest) in pools.items():
        combatant.class_resources[name] = ResourcePool(current=maximum, maximum=maximum, rest=rest)


def get_resource(combatant: "Combatant", name: ResourceName) -> int:
    pool = combatant.class_resources.get(name)
    return pool.current if pool else 0


def get_max_resource(combatant: "Combatant", name: ResourceName) -> int:
    pool = combatant.class_resources.get(name)
    return pool.maximum if pool else 0


def has_resource(combatant: "Combatant", name: ResourceName, amount: int = 1) -> bool:
    return get_resource(combatant, name) >= amount


def consume_resource(combatant: "Combatant", name: ResourceName, amount: int = 1) -> bool:
    """
    Spends uses of a resource.

    Args:
        combatant (Combatant): The owner of the pool.
        name (ResourceName): The pool to draw from.
        amount (int): Uses to spend.

    Returns:
        bool: False (and nothing spent) when fewer than `amount` uses remain.

    """
    pool = combatant.class_resources.get(name)
    if pool is None or pool.current < amount:
        log_debug(f"{combatant.name} cannot spend {amount} {name.display_name}")
        return False
    pool.current -= amount
    return True


def restore_resource(combatant: "Combatant", name: ResourceName, amount: int | None = None) -> int:
    """
    Restores uses of a resource, never above its maximum.

    Args:
        combatant (Combatant): The owner of the pool.
        name (ResourceName): The pool to refill.
        amount (int | None): Uses to restore, None for a full refill.

    Returns:
        int: The number of uses actually restored.

    """
    pool = combatant.class_resources.get(name)
    if pool is None:
        return 0
    target = pool.maximum if amount is None else min(pool.maximum, pool.current + amount)
    restored = max(0, target - pool.current)
    pool.current += restored
    return restored


def short_rest(combatant: "Combatant") -> None:
    """Restores short-rest pools and ends rage."""
    for pool in combatant.class_resources.values():
        if pool.rest == RestType.SHORT:
            pool.current = pool.maximum
    end_rage(combatant)


def long_rest(combatant: "Combatant") -> None:
    """Restores every pool and spell slot and ends rage."""
    for pool in combatant.class_resources.values():
        pool.current = pool.maximum
    combatant.current_slots = dict(combatant.config.spell_slots)
    end_rage(combatant)


def reset_turn_resources(combatant: "Combatant") -> None:
    combatant.reset_turn_flags()


def reset_round_resources(combatant: "Combatant") -> None:
    combatant.has_reaction = True
    combatant.uncanny_dodge_used_this_round = False


# ============================================================================
# RAGE
# ============================================================================


def start_rage(combatant: "Combatant") -> bool:
    """
    Enters a rage, spending one use.

    Returns:
        bool: False when already raging or out of rages.

    """
    if combatant.is_raging or not consume_resource(combatant, ResourceName.RAGE):
        return False
    combatant.is_raging = True
    combatant.rage_rounds_remaining = RAGE_DURATION_ROUNDS
    return True


def end_rage(combatant: "Combatant") -> None:
    combatant.is_raging = False
    combatant.rage_rounds_remaining = 0


def tick_rage(combatant: "Combatant") -> bool:
    """Counts down an active rage. Returns True when the rage just ended."""
    if not combatant.is_raging:
        return False
    combatant.rage_rounds_remaining -= 1
    if combatant.rage_rounds_remaining <= 0:
        end_rage(combatant)
        return True
    return False


# ============================================================================
# FEATURES AND SCALING
# ============================================================================


def has_class_feature(combatant: "Combatant", feature: ClassFeature) -> bool:
    """
    Checks whether a combatant's class and level grant a feature.

    Fighting styles also need a configured style and Agonizing Blast needs the
    invocation.
    """
    config = combatant.config
    if config.class_name is None:
        return False
    required = FEATURE_LEVELS.get(config.class_name, {}).get(feature)
    if required is None or config.level < required:
        return False
    if feature == ClassFeature.FIGHTING_STYLE:
        return config.fighting_style is not None
    if feature == ClassFeature.AGONIZING_BLAST:
        return "agonizing-blast" in config.invocations
    return True


def sneak_attack_dice(level: int) -> int:
    return math.ceil(level / 2)


def martial_arts_die(level: int) -> str:
    return str(lookup(MARTIAL_ARTS_DIE, level, "1d4"))


def rage_damage_bonus(level: int) -> int:
    return int(lookup(RAGE_DAMAGE, level, 2))


def brutal_critical_dice(level: int) -> int:
    return int(lookup(BRUTAL_CRITICAL_DICE, level, 0))


def bardic_inspiration_die(level: int) -> str:
    return str(lookup(BARDIC_INSPIRATION_DIE, level, "1d6"))


def aura_radius(level: int) -> int:
    return int(lookup(AURA_RADIUS, level, 0))
