"""
Spellcasting.

Casting spells from the catalogue: slot checks, single-target damage, healing,
control spells held by concentration, area spells resolved against the
front/back buckets, and the spell choice of a caster's turn. Sorcerers may
alter a cast with metamagic.
"""

from typing import TYPE_CHECKING, Any

from catchery import log_debug
from pydantic import BaseModel, Field

from encountersim.classes.class_ai import (
    should_use_heightened_spell,
    should_use_quickened_spell,
    should_use_twinned_spell,
)
from encountersim.classes.features import (
    Metamagic,
    agonizing_blast_bonus,
    apply_evasion,
    spend_metamagic,
)
from encountersim.combat.actions import (
    apply_shield_reaction,
    execute_spiritual_weapon_attack,
    resolve_roll_mode,
    should_use_shield,
)
from encountersim.combat.damage import apply_damage, apply_healing
from encountersim.combat.log import (
    ConditionAppliedEntry,
    HealEntry,
    SpellEntry,
    TargetOutcome,
)
from encountersim.combat.positioning import select_aoe_targets
from encountersim.combat.saves import roll_saving_throw
from encountersim.combat.targeting import (
    select_attack_target,
    select_heal_target,
    select_tactical_target,
    select_target,
)
from encountersim.combatant.main import SummonedWeapon
from encountersim.core.constants import (
    Ability,
    AttackType,
    Position,
    SaveEffect,
    SpellKind,
)
from encountersim.core.dice_parser import average_roll
from encountersim.effects.concentration import break_concentration, check_concentration
from encountersim.effects.conditions import ApplyResult, apply_condition, has_condition
from encountersim.spells.catalogue import (
    consume_spell_slot,
    find_available_slot,
    get_known_spells,
    get_spell_damage,
    get_spell_healing,
    get_spell_projectiles,
    get_spell_targets,
    has_spell_slot,
)
from encountersim.spells.definitions import Spell, get_spell

if TYPE_CHECKING:
    from encountersim.combat.context import BattleContext
    from encountersim.combatant.main import Combatant

__all__ = [
    "SpellPlan",
    "break_concentration",
    "can_cast_spell",
    "cast_area_spell",
    "cast_control_spell",
    "cast_damage_spell",
    "cast_healing_spell",
    "cast_spiritual_weapon",
    "check_concentration",
    "execute_spell_plan",
    "select_spell_to_cast",
]

# An ally caught in the area weighs twice an enemy.
FRIENDLY_FIRE_WEIGHT = 2


class SpellPlan(BaseModel):
    """A spell a caster decided to cast this turn."""

    spell: Spell
    slot_level: int = Field(ge=0, description="Slot used, 0 for cantrips")
    targets: list[Any] = Field(default_factory=list, description="Chosen targets")
    position: Position | None = Field(default=None, description="Bucket hit by an area spell")
    metamagic: Metamagic | None = None

    @property
    def bonus_action(self) -> bool:
        return self.spell.bonus_action or self.metamagic == "quickened"


# ============================================================================
# CHECKS
# ============================================================================


def can_cast_spell(caster: "Combatant", key: str, slot_level: int | None = None) -> bool:
    """
    Checks that a caster knows a spell and has a slot for it.

    Args:
        caster (Combatant): The caster.
        key (str): Catalogue key of the spell.
        slot_level (int | None): Slot to use, the spell's level by default.

    Returns:
        bool: False for unknown spells, spells not known by the caster, slots
            below the spell's level or spent slots.

    """
    spell = get_spell(key)
    if spell is None:
        return False
    if key not in caster.config.cantrips and key not in caster.config.spells:
        log_debug(f"{caster.name} does not know {spell.name}")
        return False
    if spell.is_cantrip:
        return True
    level = slot_level or spell.level
    if level < spell.level:
        log_debug(f"{spell.name} cannot be cast with a level {level} slot")
        return False
    return has_spell_slot(caster, level)


def _begin_cast(
    caster: "Combatant",
    spell: Spell,
    slot_level: int,
    ctx: "BattleContext",
    metamagic: Metamagic | None = None,
) -> SpellEntry:
    """Spends the slot, swaps concentration and logs the cast."""
    consume_spell_slot(caster, slot_level)
    entry = SpellEntry(
        round=ctx.round,
        actor=caster.name,
        spell=spell.name,
        slot_level=slot_level,
        metamagic=metamagic,
    )
    ctx.record(entry)
    if spell.concentration:
        ctx.record(*break_concentration(caster, ctx))
        caster.concentrating_on = spell.key
    return entry


# ============================================================================
# DAMAGE
# ============================================================================


def _spell_attack(
    caster: "Combatant", spell: Spell, target: "Combatant", slot_level: int, ctx: "BattleContext"
) -> TargetOutcome:
    """One ray or beam: a ranged spell attack roll."""
    mode = resolve_roll_mode(caster, target, AttackType.RANGED)
    d20 = ctx.dice.roll_d20_with_modifier(mode)
    total = d20.result + caster.config.spell_attack_bonus
    hit = not d20.is_natural_1 and (d20.is_natural_20 or total >= target.armor_class)
    if hit and not d20.is_natural_20 and should_use_shield(target, total):
        hit = not apply_shield_reaction(target, total, ctx)
    outcome = TargetOutcome(target=target.name, hit=hit, target_hp=target.current_hp)
    if not hit:
        return outcome
    notation = get_spell_damage(spell, slot_level, caster.level, target.current_hp < target.max_hp)
    damage = ctx.dice.roll_damage(notation, d20.is_natural_20) if notation else 0
    if spell.key == "eldritch-blast":
        damage += agonizing_blast_bonus(caster)
    result = apply_damage(target, damage, spell.damage_type, ctx, d20.is_natural_20, from_attack=True)
    ctx.record(*result.followups)
    outcome.damage = result.damage
    outcome.target_hp = target.current_hp
    return outcome


def _spell_save(
    caster: "Combatant",
    spell: Spell,
    target: "Combatant",
    slot_level: int,
    ctx: "BattleContext",
    rolled: int | None = None,
    heightened: bool = False,
) -> TargetOutcome:
    """
    Resolves a damaging saving throw for one target.

    Args:
        rolled (int | None): Damage already rolled for an area, rolled here
            for single targets.
        heightened (bool): Whether the save is made with disadvantage.

    """
    notation = get_spell_damage(spell, slot_level, caster.level, target.current_hp < target.max_hp)
    expected = rolled if rolled is not None else int(average_roll(notation))
    if spell.save_ability is None:
        return TargetOutcome(target=target.name, target_hp=target.current_hp)
    save = roll_saving_throw(
        target,
        spell.save_ability,
        caster.config.spell_save_dc,
        ctx,
        damage=expected,
        disadvantage=heightened,
        source=spell.name,
    )
    damage = rolled if rolled is not None else (ctx.dice.roll_damage(notation) if notation else 0)
    if spell.save_effect == SaveEffect.NONE:
        damage = 0 if save.success else damage
    elif spell.save_ability == Ability.DEXTERITY:
        damage = apply_evasion(target, damage, save.success)
    elif save.success:
        damage //= 2
    result = apply_damage(target, damage, spell.damage_type, ctx)
    ctx.record(*result.followups)
    return TargetOutcome(
        target=target.name,
        saved=save.success,
        damage=result.damage,
        is_ally=target.is_player == caster.is_player,
        target_hp=target.current_hp,
    )


def _strike(
    caster: "Combatant",
    spell: Spell,
    target: "Combatant",
    slot_level: int,
    ctx: "BattleContext",
    heightened: bool = False,
) -> list[TargetOutcome]:
    if spell.kind == SpellKind.SAVE:
        return [_spell_save(caster, spell, target, slot_level, ctx, heightened=heightened)]
    if spell.kind == SpellKind.AUTO_HIT:
        notation = get_spell_damage(spell, slot_level, caster.level)
        darts = get_spell_projectiles(spell, slot_level, caster.level)
        damage = sum(ctx.dice.roll_damage(notation) for _ in range(darts)) if notation else 0
        result = apply_damage(target, damage, spell.damage_type, ctx)
        ctx.record(*result.followups)
        return [TargetOutcome(target=target.name, hit=True, damage=result.damage, target_hp=target.current_hp)]
    outcomes = []
    for _ in range(get_spell_projectiles(spell, slot_level, caster.level)):
        if not target.is_conscious:
            replacement = _damage_target(caster, ctx)
            if replacement is None:
                break
            target = replacement
        outcomes.append(_spell_attack(caster, spell, target, slot_level, ctx))
    return outcomes


def cast_damage_spell(
    caster: "Combatant",
    spell: Spell,
    target: "Combatant",
    slot_level: int,
    ctx: "BattleContext",
    metamagic: Metamagic | None = None,
    second_target: "Combatant | None" = None,
) -> SpellEntry:
    """
    Casts a single-target damage spell.

    Spell attacks roll once per ray or beam, re-targeting when the target
    drops. Save spells deal half or nothing on a success. Magic Missile's
    darts always hit. Cantrips scale with the caster's level and leveled
    spells with the slot.

    Args:
        caster (Combatant): The caster.
        spell (Spell): The spell.
        target (Combatant): The target.
        slot_level (int): Slot spent, 0 for cantrips.
        ctx (BattleContext): The encounter.
        metamagic (Metamagic | None): Metamagic already paid for.
        second_target (Combatant | None): Target of a twinned spell.

    Returns:
        SpellEntry: The logged cast.

    """
    entry = _begin_cast(caster, spell, slot_level, ctx, metamagic)
    entry.outcomes += _strike(caster, spell, target, slot_level, ctx, heightened=metamagic == "heightened")
    if second_target is not None and second_target.is_conscious:
        entry.outcomes += _strike(caster, spell, second_target, slot_level, ctx)
    return entry


# ============================================================================
# HEALING
# ============================================================================


def cast_healing_spell(
    caster: "Combatant",
    spell: Spell,
    target: "Combatant",
    slot_level: int,
    ctx: "BattleContext",
    metamagic: Metamagic | None = None,
    second_target: "Combatant | None" = None,
) -> SpellEntry:
    """Heals dice plus the caster's spellcasting modifier, reviving a dying target."""
    entry = _begin_cast(caster, spell, slot_level, ctx, metamagic)
    notation = get_spell_healing(spell, slot_level, caster.config.spellcasting_mod)
    for creature in (target, second_target):
        if creature is None or notation is None:
            continue
        healed, revived = apply_healing(creature, ctx.dice.roll_dice(notation).total)
        entry.outcomes.append(TargetOutcome(target=creature.name, is_ally=True, target_hp=creature.current_hp))
        ctx.record(
            HealEntry(
                round=ctx.round,
                actor=caster.name,
                target=creature.name,
                amount=healed,
                source=spell.name,
                revived=revived,
                target_hp=creature.current_hp,
            )
        )
    return entry


# ============================================================================
# CONTROL
# ============================================================================


def can_affect(spell: Spell, target: "Combatant") -> bool:
    """Creature type restriction, e.g. Hold Person only holds humanoids."""
    if spell.target_restriction is None:
        return True
    creature_type = target.config.creature_type
    return creature_type is None or creature_type == spell.target_restriction


def cast_control_spell(
    caster: "Combatant",
    spell: Spell,
    targets: list["Combatant"],
    slot_level: int,
    ctx: "BattleContext",
    metamagic: Metamagic | None = None,
) -> SpellEntry:
    """
    Casts a condition-inflicting spell.

    A concentration spell ends the caster's previous concentration first.
    Each target saves; a failure applies the condition, which ends with the
    caster's concentration and may allow a save at the end of each turn. If
    every target resists, the caster stops concentrating.

    Returns:
        SpellEntry: The logged cast, one outcome per target.

    """
    entry = _begin_cast(caster, spell, slot_level, ctx, metamagic)
    dc = caster.config.spell_save_dc
    affected = 0
    for index, target in enumerate(targets):
        if not can_affect(spell, target) or spell.condition is None:
            log_debug(f"{spell.name} cannot affect {target.name}")
            continue
        saved = False
        if spell.save_ability is not None:
            saved = roll_saving_throw(
                target,
                spell.save_ability,
                dc,
                ctx,
                condition=spell.condition,
                disadvantage=metamagic == "heightened" and index == 0,
                source=spell.name,
            ).success
        entry.outcomes.append(TargetOutcome(target=target.name, saved=saved))
        if saved:
            continue
        result = apply_condition(
            target,
            spell.condition,
            duration=spell.duration,
            save_dc=dc if spell.save_end_of_turn else None,
            save_ability=spell.save_ability if spell.save_end_of_turn else None,
            save_end_of_turn=spell.save_end_of_turn,
            source=caster.name,
            concentration=spell.concentration,
        )
        if result != ApplyResult.IMMUNE:
            affected += 1
        ctx.record(
            ConditionAppliedEntry(
                round=ctx.round,
                actor=caster.name,
                target=target.name,
                condition=spell.condition,
                result=result.value,
                duration=spell.duration,
            )
        )
    if spell.concentration and affected == 0:
        entry.note = "no target affected"
        ctx.record(*break_concentration(caster, ctx))
    return entry


# ============================================================================
# AREA
# ============================================================================


def cast_area_spell(
    caster: "Combatant",
    spell: Spell,
    targets: list["Combatant"],
    slot_level: int,
    ctx: "BattleContext",
    position: Position | None = None,
    metamagic: Metamagic | None = None,
) -> SpellEntry:
    """
    Casts an area damage spell on every combatant of the template.

    Damage is rolled once and every target saves separately. Allies caught
    by a friendly-fire sphere are hit like enemies and flagged in the log.

    Args:
        caster (Combatant): The caster.
        spell (Spell): The area spell.
        targets (list[Combatant]): Everyone caught in the template.
        slot_level (int): Slot spent.
        ctx (BattleContext): The encounter.
        position (Position | None): Bucket targeted, for the log.
        metamagic (Metamagic | None): Metamagic already paid for.

    Returns:
        SpellEntry: The logged cast with one outcome per target.

    """
    entry = _begin_cast(caster, spell, slot_level, ctx, metamagic)
    if position is not None:
        entry.note = f"centered on the {position.value.lower()} line"
    notation = get_spell_damage(spell, slot_level, caster.level)
    rolled = ctx.dice.roll_damage(notation) if notation else 0
    for target in targets:
        if target.is_dead:
            continue
        entry.outcomes.append(_spell_save(caster, spell, target, slot_level, ctx, rolled=rolled))
    return entry


# ============================================================================
# SUMMONS
# ============================================================================


def cast_spiritual_weapon(
    caster: "Combatant", spell: Spell, slot_level: int, ctx: "BattleContext"
) -> SpellEntry:
    """Summons the weapon and attacks with it at once."""
    entry = _begin_cast(caster, spell, slot_level, ctx)
    caster.spiritual_weapon = SummonedWeapon(
        damage=get_spell_damage(spell, slot_level) or "1d8",
        rounds_remaining=spell.duration or 10,
        slot_level=slot_level,
    )
    target = select_attack_target(caster, ctx.combatants)
    if target is not None:
        attack = execute_spiritual_weapon_attack(caster, target, ctx)
        if attack is not None:
            entry.outcomes.append(
                TargetOutcome(target=target.name, hit=attack.hit, damage=attack.damage, target_hp=target.current_hp)
            )
    return entry


# ============================================================================
# SPELL SELECTION
# ============================================================================


def _damage_target(caster: "Combatant", ctx: "BattleContext") -> "Combatant | None":
    if caster.config.smart_targeting:
        return select_tactical_target(caster, ctx.combatants)
    return select_target(caster, ctx.combatants)


def _slot_for(caster: "Combatant", spell: Spell) -> int | None:
    return find_available_slot(caster, spell.level)


def _area_plan(caster: "Combatant", spell: Spell, ctx: "BattleContext") -> tuple[float, SpellPlan] | None:
    slot = _slot_for(caster, spell)
    if slot is None or spell.shape is None:
        return None
    average = average_roll(get_spell_damage(spell, slot, caster.level))
    selection = select_aoe_targets(
        spell.shape,
        ctx.combatants,
        caster.is_player,
        ctx.dice,
        avg_damage=average,
        friendly_fire=spell.friendly_fire,
        caster=caster,
    )
    if not selection.should_cast or len(selection.enemies) < 2:
        return None
    value = sum(min(e.current_hp, average) for e in selection.enemies)
    value -= FRIENDLY_FIRE_WEIGHT * sum(min(a.current_hp, average) for a in selection.allies)
    if value <= 0:
        return None
    plan = SpellPlan(spell=spell, slot_level=slot, targets=selection.targets, position=selection.position)
    return value, plan


def select_spell_to_cast(
    caster: "Combatant",
    ctx: "BattleContext",
    action_only: bool = False,
    cantrips_only: bool = False,
) -> SpellPlan | None:
    """
    Picks the spell of a caster's turn.

    Priorities:
        1. heal a dying ally, bonus-action spells first;
        2. the area spell with the best net value hitting two or more enemies;
        3. a control spell on the highest-HP enemy it can affect, when not
           already concentrating;
        4. summon a Spiritual Weapon when none is active;
        5. guaranteed damage (Magic Missile), then leveled spell attacks, on
           the weakest enemy;
        6. the first damage cantrip.

    Args:
        caster (Combatant): The caster.
        ctx (BattleContext): The encounter.
        action_only (bool): Skip bonus-action spells, the bonus action being
            already spent.
        cantrips_only (bool): Only consider cantrips, after a leveled spell was
            cast as a bonus action.

    Returns:
        SpellPlan | None: The plan, or None when no spell is worth casting.

    """
    known = [
        s
        for s in get_known_spells(caster)
        if not (action_only and s.bonus_action) and not (cantrips_only and not s.is_cantrip)
    ]
    if not known:
        return None
    enemies = ctx.conscious_enemies_of(caster)

    healing = sorted((s for s in known if s.is_healing), key=lambda s: not s.bonus_action)
    dying = select_heal_target(caster, ctx.combatants)
    if dying is not None:
        for spell in healing:
            slot = _slot_for(caster, spell)
            if slot is not None:
                return SpellPlan(spell=spell, slot_level=slot, targets=[dying])

    if not enemies:
        return None

    areas = []
    for spell in known:
        if spell.is_area:
            candidate = _area_plan(caster, spell, ctx)
            if candidate is not None:
                areas.append(candidate)
    if areas:
        return max(areas, key=lambda pair: pair[0])[1]

    if caster.concentrating_on is None:
        for spell in known:
            if spell.kind != SpellKind.CONTROL or spell.condition is None:
                continue
            slot = _slot_for(caster, spell)
            candidates = [
                e for e in enemies if can_affect(spell, e) and not has_condition(e, spell.condition)
            ]
            if slot is None or not candidates:
                continue
            candidates.sort(key=lambda e: e.current_hp, reverse=True)
            return SpellPlan(
                spell=spell, slot_level=slot, targets=candidates[: get_spell_targets(spell, slot)]
            )

    for spell in known:
        if spell.kind == SpellKind.SUMMON and caster.spiritual_weapon is None:
            slot = _slot_for(caster, spell)
            if slot is not None:
                return SpellPlan(spell=spell, slot_level=slot)

    target = _damage_target(caster, ctx)
    if target is None:
        return None
    leveled = [
        s for s in known if not s.is_cantrip and not s.is_area and s.kind in (SpellKind.AUTO_HIT, SpellKind.ATTACK)
    ]
    leveled.sort(key=lambda s: s.kind != SpellKind.AUTO_HIT)
    for spell in leveled:
        slot = _slot_for(caster, spell)
        if slot is not None:
            return SpellPlan(spell=spell, slot_level=slot, targets=[target])

    for spell in known:
        if spell.is_cantrip and spell.damage and spell.kind in (SpellKind.ATTACK, SpellKind.SAVE):
            return SpellPlan(spell=spell, slot_level=0, targets=[target])
    return None


# ============================================================================
# EXECUTION
# ============================================================================


def choose_metamagic(caster: "Combatant", plan: SpellPlan, ctx: "BattleContext") -> Metamagic | None:
    """
    Quickens area spells into a crowd, twins single-target spells when a
    second target exists and heightens control spells against strong targets.
    """
    spell = plan.spell
    if spell.bonus_action or spell.kind in (SpellKind.SUMMON, SpellKind.REACTION, SpellKind.BUFF):
        return None
    enemies = ctx.conscious_enemies_of(caster)
    if should_use_quickened_spell(caster, spell, enemies):
        return "quickened"
    target = plan.targets[0] if plan.targets else None
    if spell.kind == SpellKind.CONTROL:
        return "heightened" if should_use_heightened_spell(caster, spell, target) else None
    if spell.is_area or spell.is_healing:
        return None
    if get_spell_projectiles(spell, plan.slot_level, caster.level) > 1:
        return None
    if should_use_twinned_spell(caster, spell, enemies):
        return "twinned"
    return None


def _second_target(caster: "Combatant", plan: SpellPlan, ctx: "BattleContext") -> "Combatant | None":
    first = plan.targets[0] if plan.targets else None
    pool = [e for e in ctx.conscious_enemies_of(caster) if e is not first]
    return min(pool, key=lambda e: e.current_hp) if pool else None


def execute_spell_plan(caster: "Combatant", plan: SpellPlan, ctx: "BattleContext") -> SpellEntry | None:
    """
    Casts a planned spell, paying for metamagic first.

    Returns:
        SpellEntry | None: The cast, or None when the slot is gone or the
            plan has no valid target left.

    """
    spell = plan.spell
    if not spell.is_cantrip and not has_spell_slot(caster, plan.slot_level):
        return None
    if plan.metamagic is None:
        metamagic = choose_metamagic(caster, plan, ctx)
        if metamagic is not None and spend_metamagic(caster, metamagic, spell.level):
            plan.metamagic = metamagic
    metamagic = plan.metamagic

    if spell.kind == SpellKind.SUMMON:
        return cast_spiritual_weapon(caster, spell, plan.slot_level, ctx)
    if spell.kind == SpellKind.CONTROL:
        return cast_control_spell(caster, spell, plan.targets, plan.slot_level, ctx, metamagic)
    if spell.is_area:
        return cast_area_spell(caster, spell, plan.targets, plan.slot_level, ctx, plan.position, metamagic)
    if not plan.targets:
        return None
    if spell.is_healing:
        return cast_healing_spell(caster, spell, plan.targets[0], plan.slot_level, ctx, metamagic)
    second = _second_target(caster, plan, ctx) if metamagic == "twinned" else None
    target = plan.targets[0]
    if not target.is_conscious:
        target = _damage_target(caster, ctx)
        if target is None:
            return None
    return cast_damage_spell(caster, spell, target, plan.slot_level, ctx, metamagic, second)
