"""
Combat log entries.

The log of an encounter is an ordered, append-only list of tagged entries.
Each entry type has a literal `action_type` discriminator, so a log survives a
JSON round trip and can be replayed or rendered after the fact.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from encountersim.core.constants import Ability, ConditionType, DamageType, RollMode


class BaseEntry(BaseModel):
    """Fields shared by every log entry."""

    round: int = Field(description="Round in which the event happened")
    actor: str | None = Field(default=None, description="Combatant responsible for the event")

    def describe(self) -> str:
        return f"{self.actor}"


class RoundStartEntry(BaseEntry):
    action_type: Literal["round_start"] = "round_start"

    def describe(self) -> str:
        return f"[bold]Round {self.round}[/]"


class InitiativeEntry(BaseEntry):
    """Initiative roll of one combatant, logged before round 1."""

    action_type: Literal["initiative"] = "initiative"
    roll: int
    total: int

    def describe(self) -> str:
        return f"{self.actor} rolls initiative {self.total} ({self.roll})"


class AttackEntry(BaseEntry):
    """A single weapon, natural or spell attack roll."""

    action_type: Literal["attack"] = "attack"
    target: str
    attack_name: str = Field(default="attack", description="Name of the attack")
    roll: int | None = Field(default=None, description="The kept d20, None for automatic hits")
    total: int | None = Field(default=None, description="Roll plus bonuses")
    target_ac: int | None = None
    roll_mode: RollMode = RollMode.NORMAL
    hit: bool = False
    critical: bool = False
    damage: int = 0
    damage_type: DamageType | None = None
    riders: list[str] = Field(default_factory=list, description="Extra effects of the hit")
    death_save_failures: int = Field(
        default=0, description="Failures inflicted on a downed target"
    )
    target_hp: int | None = None

    def describe(self) -> str:
        if self.death_save_failures:
            return (
                f"{self.actor} strikes the downed {self.target} with {self.attack_name} "
                f"({self.death_save_failures} death save failure(s))"
            )
        if not self.hit:
            return f"{self.actor} misses {self.target} with {self.attack_name} ({self.total} vs AC {self.target_ac})"
        crit = " [bold yellow]CRITICAL[/]" if self.critical else ""
        extras = f" [{', '.join(self.riders)}]" if self.riders else ""
        kind = f" {self.damage_type.display_name.lower()}" if self.damage_type else ""
        return (
            f"{self.actor} hits {self.target} with {self.attack_name}{crit} "
            f"for {self.damage}{kind} damage{extras} (hp {self.target_hp})"
        )


class HealEntry(BaseEntry):
    action_type: Literal["heal"] = "heal"
    target: str
    amount: int
    source: str = Field(default="heal", description="Spell or feature used")
    revived: bool = False
    target_hp: int | None = None

    def describe(self) -> str:
        revived = " and brings them back up" if self.revived else ""
        return f"{self.actor} heals {self.target} for {self.amount} with {self.source}{revived}"


class DeathSaveEntry(BaseEntry):
    action_type: Literal["death_save"] = "death_save"
    roll: int
    outcome: Literal["revived", "success", "failure", "stabilized", "dead"]
    successes: int
    failures: int

    def describe(self) -> str:
        return (
            f"{self.actor} rolls a death save: {self.roll} -> {self.outcome} "
            f"({self.successes} successes, {self.failures} failures)"
        )


class SavingThrowEntry(BaseEntry):
    """A saving throw forced by a spell, a feature or a monster ability."""

    action_type: Literal["saving_throw"] = "saving_throw"
    ability: Ability
    dc: int
    roll: int
    total: int
    success: bool
    legendary_resistance: bool = False
    indomitable: bool = False
    source: str | None = None

    def describe(self) -> str:
        result = "succeeds" if self.success else "fails"
        if self.legendary_resistance:
            result = "uses a legendary resistance to succeed"
        elif self.indomitable:
            result += " after an indomitable reroll"
        source = f" against {self.source}" if self.source else ""
        return f"{self.actor} {result} a DC {self.dc} {self.ability.short} save{source} ({self.total})"


class ConditionAppliedEntry(BaseEntry):
    action_type: Literal["condition_applied"] = "condition_applied"
    target: str
    condition: ConditionType
    result: Literal["APPLIED", "REFRESHED", "IMMUNE"]
    duration: int | None = None

    def describe(self) -> str:
        if self.result == "IMMUNE":
            return f"{self.target} is immune to {self.condition.display_name.lower()}"
        return f"{self.target} is {self.condition.display_name.lower()} ({self.result.lower()})"


class ConditionEndedEntry(BaseEntry):
    action_type: Literal["condition_ended"] = "condition_ended"
    condition: ConditionType
    reason: Literal["save", "expired", "concentration"]

    def describe(self) -> str:
        return f"{self.actor} is no longer {self.condition.display_name.lower()} ({self.reason})"


class TargetOutcome(BaseModel):
    """What an area effect or multi-target spell did to one combatant."""

    target: str
    hit: bool | None = None
    saved: bool | None = None
    damage: int = 0
    is_ally: bool = False
    target_hp: int | None = None


class SpellEntry(BaseEntry):
    """A spell being cast, with its per-target outcome."""

    action_type: Literal["spell"] = "spell"
    spell: str
    slot_level: int = 0
    outcomes: list[TargetOutcome] = Field(default_factory=list)
    metamagic: str | None = None
    note: str | None = None

    @property
    def allies_hit(self) -> list[str]:
        return [o.target for o in self.outcomes if o.is_ally]

    def describe(self) -> str:
        level = f" (level {self.slot_level})" if self.slot_level else ""
        meta = f" [{self.metamagic}]" if self.metamagic else ""
        parts = []
        for o in self.outcomes:
            detail = f"{o.damage}" if o.damage else ("saved" if o.saved else "hit" if o.hit else "miss")
            parts.append(f"{o.target}{' (ally)' if o.is_ally else ''}: {detail}")
        targets = f" -> {', '.join(parts)}" if parts else ""
        note = f" {self.note}" if self.note else ""
        return f"{self.actor} casts {self.spell}{level}{meta}{targets}{note}"


class ConcentrationEntry(BaseEntry):
    action_type: Literal["concentration"] = "concentration"
    spell: str
    dc: int
    roll: int
    total: int
    maintained: bool

    def describe(self) -> str:
        outcome = "keeps" if self.maintained else "loses"
        return f"{self.actor} {outcome} concentration on {self.spell} (DC {self.dc}, rolled {self.total})"


class ClassFeatureEntry(BaseEntry):
    """A class feature being used."""

    action_type: Literal["class_feature"] = "class_feature"
    feature: str
    target: str | None = None
    amount: int | None = None
    note: str | None = None

    def describe(self) -> str:
        target = f" on {self.target}" if self.target else ""
        amount = f" ({self.amount})" if self.amount is not None else ""
        note = f": {self.note}" if self.note else ""
        return f"{self.actor} uses {self.feature}{target}{amount}{note}"


class MonsterAbilityEntry(BaseEntry):
    """A recharge, legendary or frightful-presence ability of a monster."""

    action_type: Literal["monster_ability"] = "monster_ability"
    ability: str
    kind: Literal["recharge", "breath", "legendary", "frightful_presence", "multiattack"]
    outcomes: list[TargetOutcome] = Field(default_factory=list)
    roll: int | None = None
    success: bool | None = None
    note: str | None = None

    def describe(self) -> str:
        if self.kind == "recharge":
            result = "recharges" if self.success else "does not recharge"
            return f"{self.actor}'s {self.ability} {result} (rolled {self.roll})"
        parts = [f"{o.target}: {o.damage}" if o.damage else f"{o.target}: {'saved' if o.saved else 'failed'}" for o in self.outcomes]
        targets = f" -> {', '.join(parts)}" if parts else ""
        return f"{self.actor} uses {self.ability}{targets}"


class StatusEntry(BaseEntry):
    """Something notable that is neither an attack nor a spell."""

    action_type: Literal["status"] = "status"
    status: Literal["incapacitated", "fled", "died", "downed", "rage_ended", "no_target"]
    note: str | None = None

    def describe(self) -> str:
        note = f": {self.note}" if self.note else ""
        return f"{self.actor} {self.status.replace('_', ' ')}{note}"


class CombatEndEntry(BaseEntry):
    action_type: Literal["combat_end"] = "combat_end"
    party_won: bool
    reason: Literal["victory", "round_limit"]
    party_hp: int
    monster_hp: int

    def describe(self) -> str:
        winner = "The party" if self.party_won else "The monsters"
        how = "by remaining hit points" if self.reason == "round_limit" else ""
        return f"[bold]{winner} win {how}[/] (party hp {self.party_hp}, monster hp {self.monster_hp})"


LogEntry = Annotated[
    Union[
        RoundStartEntry,
        InitiativeEntry,
        AttackEntry,
        HealEntry,
        DeathSaveEntry,
        SavingThrowEntry,
        ConditionAppliedEntry,
        ConditionEndedEntry,
        SpellEntry,
        ConcentrationEntry,
        ClassFeatureEntry,
        MonsterAbilityEntry,
        StatusEntry,
        CombatEndEntry,
    ],
    Field(discriminator="action_type"),
]
