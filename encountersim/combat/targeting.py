"""
Target selection heuristics.

Combatants focus fire on the weakest enemy. Monsters flagged for smart
targeting instead score enemies by how threatening they are, and healers only
ever spend their heals on allies who are dying.
"""

from typing import TYPE_CHECKING

from encountersim.core.constants import AttackType, Position
from encountersim.spells.definitions import is_healing_spell

if TYPE_CHECKING:
    from encountersim.combatant.main import Combatant


def _living_enemies(attacker: "Combatant", combatants: list["Combatant"]) -> list["Combatant"]:
    return [
        c
        for c in combatants
        if c.is_player != attacker.is_player and not c.is_dead and not c.is_unconscious
    ]


def select_target(attacker: "Combatant", combatants: list["Combatant"]) -> "Combatant | None":
    """
    Focus fire: the conscious enemy with the lowest current hit points.

    Args:
        attacker (Combatant): The combatant choosing a target.
        combatants (list[Combatant]): Every combatant of the encounter.

    Returns:
        Combatant | None: The target, or None when no enemy is left standing.

    """
    enemies = _living_enemies(attacker, combatants)
    if not enemies:
        return None
    return min(enemies, key=lambda c: c.current_hp)


def threat_score(target: "Combatant") -> float:
    """
    How much a smart monster wants to take a combatant out.

    Concentrating casters, healers, combatants with spell slots left and
    nearly-dead ones rank high; back-line combatants get a small bonus.
    """
    config = target.config
    score = 0.0
    if target.concentrating_on:
        score += 100
    score += 10 * target.spell_slots_remaining
    if config.cantrips:
        score += 20
    if config.healing_dice or _knows_healing_spell(target):
        score += 50
    score += max(0, 50 - target.current_hp)
    if target.position == Position.BACK:
        score += 15
    return score


def _knows_healing_spell(combatant: "Combatant") -> bool:
    return any(is_healing_spell(name) for name in combatant.config.spells)


def can_reach_back_line(attacker: "Combatant") -> bool:
    return attacker.config.attack_type == AttackType.RANGED


def select_tactical_target(
    attacker: "Combatant", combatants: list["Combatant"]
) -> "Combatant | None":
    """
    Picks the most threatening reachable enemy.

    Melee attackers are held by the enemy front line: they only consider the
    back line once the front is empty. Ranged attackers consider both lines.

    Args:
        attacker (Combatant): The combatant choosing a target.
        combatants (list[Combatant]): Every combatant of the encounter.

    Returns:
        Combatant | None: The highest scoring target, if any.

    """
    enemies = _living_enemies(attacker, combatants)
    if not enemies:
        return None
    front = [e for e in enemies if e.position == Position.FRONT]
    if front and not can_reach_back_line(attacker):
        enemies = front
    return max(enemies, key=threat_score)


def select_attack_target(
    attacker: "Combatant", combatants: list["Combatant"]
) -> "Combatant | None":
    """
    Uses tactical targeting for smart monsters and focus fire otherwise.

    Once no enemy is left standing, attackers finish off the dying, starting
    with the one closest to death.
    """
    if attacker.config.smart_targeting:
        target = select_tactical_target(attacker, combatants)
    else:
        target = select_target(attacker, combatants)
    if target is None:
        target = select_downed_target(attacker, combatants)
    return target


def select_downed_target(
    attacker: "Combatant", combatants: list["Combatant"]
) -> "Combatant | None":
    downed = [
        c
        for c in combatants
        if c.is_player != attacker.is_player and c.is_unconscious and not c.is_dead
    ]
    if not downed:
        return None
    return max(downed, key=lambda c: c.death_save_failures)


def select_heal_target(healer: "Combatant", combatants: list["Combatant"]) -> "Combatant | None":
    """
    Picks a dying ally to bring back up.

    Only unconscious, living allies are eligible: a wounded but conscious ally
    is never healed. The ally with the most death-save failures comes first.

    Returns:
        Combatant | None: The ally to heal, if any.

    """
    candidates = [
        c
        for c in combatants
        if c.is_player == healer.is_player and c.is_unconscious and not c.is_dead
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda c: c.death_save_failures)
