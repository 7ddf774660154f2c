"""
Combat orchestration.

`CombatManager` runs one encounter from initiative to the last blow: it owns
the round loop, the death-save machine, the order in which a combatant spends
its action, bonus action and reaction, legendary actions between turns and
the end-of-round bookkeeping. Everything it does is written to the log of the
`BattleContext`.
"""

from collections import deque

from catchery import log_debug, log_warning

from encountersim.classes.resources import (
    reset_round_resources,
    reset_turn_resources,
    tick_rage,
)
from encountersim.classes.strategies import (
    execute_class_action,
    select_class_bonus_action,
    select_class_post_action,
    select_class_pre_action,
)
from encountersim.combat.actions import (
    execute_attack_sequence,
    execute_bonus_action,
    execute_heal,
    execute_opportunity_attack,
    select_bonus_action,
    tick_spiritual_weapon,
)
from encountersim.combat.context import BattleContext
from encountersim.combat.damage import kill
from encountersim.combat.log import (
    CombatEndEntry,
    ConditionEndedEntry,
    DeathSaveEntry,
    InitiativeEntry,
    RoundStartEntry,
    SavingThrowEntry,
    StatusEntry,
)
from encountersim.combat.positioning import get_enemies_at_position
from encountersim.combat.saves import save_bonus
from encountersim.combat.targeting import select_heal_target
from encountersim.combatant.config import CombatantConfig
from encountersim.combatant.main import Combatant, build_combatants
from encountersim.core.constants import (
    DEATH_SAVE_SUCCESS_DC,
    DEATH_SAVE_THRESHOLD,
    Ability,
    ConditionType,
    Position,
)
from encountersim.core.dice_parser import Dice
from encountersim.core.settings import SimulationSettings
from encountersim.effects.conditions import (
    can_act,
    has_condition,
    process_end_of_turn_saves,
    tick_conditions,
)
from encountersim.monsters.abilities import (
    execute_breath_weapon,
    execute_frightful_presence,
    execute_legendary_action,
    execute_multiattack,
    process_recharges,
    reset_legendary_actions,
    select_legendary_action,
    should_use_breath_weapon,
    should_use_frightful_presence,
)
from encountersim.simulation.results import SimulationResult
from encountersim.spells.spellcasting import execute_spell_plan, select_spell_to_cast

# Death-save failures of a natural 1.
NATURAL_ONE_FAILURES = 2


class CombatManager:
    """Runs one encounter between a party and a group of monsters.

    The manager builds fresh combatants from the configurations, rolls
    initiative once and then plays rounds until one side has no living
    member, or until the round limit where the side with more remaining hit
    points wins. The same manager must not be run twice: build a new one for
    every encounter.
    """

    def __init__(
        self,
        party: list[CombatantConfig],
        monsters: list[CombatantConfig],
        simulation_id: int = 0,
        dice: Dice | None = None,
        settings: SimulationSettings | None = None,
    ) -> None:
        """Initialize the CombatManager with the two sides of the encounter.

        Args:
            party (list[CombatantConfig]): The adventurers.
            monsters (list[CombatantConfig]): Their opponents.
            simulation_id (int): Index of the run, copied into the result.
            dice (Dice | None): The roller, an unseeded one by default.
            settings (SimulationSettings | None): Round limit and log switch.

        """
        # Identifier of the run inside its batch.
        self.simulation_id: int = simulation_id

        # Fresh combatants: nothing is shared with other runs.
        combatants: list[Combatant] = build_combatants(list(party) + list(monsters))

        # Everything the actions of the encounter need.
        self.ctx: BattleContext = BattleContext(combatants, dice or Dice(), settings)

        # Combatants in initiative order, filled by `initialize`.
        self.participants: deque[Combatant] = deque()

        # Stores the initiative of each participant, by name.
        self.initiatives: dict[str, int] = {}

        # Whether the round limit decided the encounter.
        self.ended_by_round_limit: bool = False

    @property
    def round_number(self) -> int:
        return self.ctx.round

    def initialize(self) -> None:
        """Rolls initiative and sorts the participants.

        Ties go to the party, then to the alphabetically first name.
        """
        for combatant in self.ctx.combatants:
            roll = self.ctx.dice.roll_d20()
            self.initiatives[combatant.name] = roll + combatant.config.initiative_bonus
            self.ctx.record(
                InitiativeEntry(
                    round=0,
                    actor=combatant.name,
                    roll=roll,
                    total=self.initiatives[combatant.name],
                )
            )
        self.participants = deque(
            sorted(
                self.ctx.combatants,
                key=lambda c: (-self.initiatives[c.name], not c.is_player, c.name),
            )
        )
        # The context sees the combatants in turn order too.
        self.ctx.combatants = list(self.participants)
        log_debug(
            "Turn order: "
            + ", ".join(f"{c.name} ({self.initiatives[c.name]})" for c in self.participants)
        )

    def run(self) -> SimulationResult:
        """Plays the encounter to the end.

        Returns:
            SimulationResult: The winner, the survivors and the full log.

        """
        self.initialize()
        while not self.ctx.is_over():
            if self.ctx.round >= self.ctx.settings.max_rounds:
                self.ended_by_round_limit = True
                log_warning(
                    "Encounter reached the round limit, deciding by remaining hit points.",
                    {"simulation_id": self.simulation_id, "max_rounds": self.ctx.settings.max_rounds},
                )
                break
            self.run_round()
        return self.build_result()

    # ------------------------------------------------------------------------
    # Rounds and turns.
    # ------------------------------------------------------------------------

    def run_round(self) -> None:
        """Plays one full round, then advances durations."""
        ctx = self.ctx
        ctx.round += 1
        ctx.record(RoundStartEntry(round=ctx.round))
        for combatant in self.participants:
            reset_round_resources(combatant)
            reset_legendary_actions(combatant)

        for combatant in self.participants:
            if ctx.is_over():
                return
            self.run_participant_turn(combatant)
            self.run_legendary_actions(combatant)

        self.end_of_round()

    def run_participant_turn(self, participant: Combatant) -> None:
        """Runs the turn of a single combatant.

        Args:
            participant (Combatant): The combatant whose turn it is.

        """
        if participant.is_dead:
            return
        if participant.is_unconscious:
            if participant.is_stabilized:
                return
            if not self.roll_death_save(participant):
                return

        reset_turn_resources(participant)
        process_recharges(participant, self.ctx)

        if has_condition(participant, ConditionType.TURNED):
            self.flee(participant)
        elif not can_act(participant):
            self.ctx.record(
                StatusEntry(round=self.ctx.round, actor=participant.name, status="incapacitated")
            )
        else:
            self.take_actions(participant)

        if participant.is_conscious:
            self.end_of_turn_saves(participant)

    def roll_death_save(self, combatant: Combatant) -> bool:
        """Rolls a death save for a dying combatant.

        A natural 20 brings the combatant back with 1 hit point, a natural 1
        counts as two failures, 10 or more is a success. Three failures kill,
        three successes stabilize.

        Returns:
            bool: True when the combatant is back up and takes its turn.

        """
        ctx = self.ctx
        roll = ctx.dice.roll_d20()
        followups = []
        if roll == 20:
            combatant.current_hp = 1
            combatant.is_unconscious = False
            combatant.death_save_successes = 0
            combatant.death_save_failures = 0
            outcome = "revived"
        elif roll == 1 or roll < DEATH_SAVE_SUCCESS_DC:
            failures = NATURAL_ONE_FAILURES if roll == 1 else 1
            combatant.death_save_failures = min(
                DEATH_SAVE_THRESHOLD, combatant.death_save_failures + failures
            )
            outcome = "failure"
            if combatant.death_save_failures >= DEATH_SAVE_THRESHOLD:
                outcome = "dead"
                followups = kill(combatant, ctx)
        else:
            combatant.death_save_successes += 1
            outcome = "success"
            if combatant.death_save_successes >= DEATH_SAVE_THRESHOLD:
                combatant.is_stabilized = True
                outcome = "stabilized"
        ctx.record(
            DeathSaveEntry(
                round=ctx.round,
                actor=combatant.name,
                roll=roll,
                outcome=outcome,
                successes=combatant.death_save_successes,
                failures=combatant.death_save_failures,
            ),
            *followups,
        )
        return outcome == "revived"

    def flee(self, combatant: Combatant) -> None:
        """A turned creature runs to the back line, provoking the front line."""
        ctx = self.ctx
        ctx.record(StatusEntry(round=ctx.round, actor=combatant.name, status="fled"))
        if combatant.position == Position.FRONT:
            for enemy in get_enemies_at_position(ctx.combatants, combatant.is_player, Position.FRONT):
                if not combatant.is_conscious:
                    break
                execute_opportunity_attack(enemy, combatant, ctx)
        combatant.position = Position.BACK

    def take_actions(self, combatant: Combatant) -> None:
        """Spends the turn of a combatant able to act.

        Order: monster abilities, class features used before the action,
        spells, then a heal or the attacks, features used after the action
        and finally the bonus action.
        """
        ctx = self.ctx
        if not combatant.is_player:
            self.take_monster_action(combatant)

        # Class features that come before the action, each at most once.
        used: set[str] = set()
        while not ctx.is_over():
            pre = select_class_pre_action(combatant, ctx)
            if pre is None or pre.name in used:
                break
            used.add(pre.name)
            execute_class_action(combatant, pre, ctx)

        if not combatant.action_used and combatant.config.is_caster and not ctx.is_over():
            self.cast_spells(combatant)

        if not combatant.action_used and not ctx.is_over():
            heal_target = None
            if combatant.config.healing_dice:
                heal_target = select_heal_target(combatant, ctx.combatants)
            if heal_target is not None:
                execute_heal(combatant, heal_target, ctx)
            else:
                execute_attack_sequence(combatant, ctx)
            combatant.action_used = True

        post = select_class_post_action(combatant, ctx)
        if post is not None:
            execute_class_action(combatant, post, ctx)

        if not combatant.bonus_action_used and not ctx.is_over():
            self.take_bonus_action(combatant)

    def take_monster_action(self, monster: Combatant) -> None:
        """Frightful presence, then a breath weapon or the multiattack."""
        ctx = self.ctx
        if should_use_frightful_presence(monster, ctx):
            execute_frightful_presence(monster, ctx)
        ability = should_use_breath_weapon(monster, ctx)
        if ability is not None:
            execute_breath_weapon(monster, ability, ctx)
            monster.action_used = True
        elif monster.config.multiattack:
            execute_multiattack(monster, ctx)
            monster.action_used = True

    def cast_spells(self, caster: Combatant) -> None:
        """Casts the spells of a turn.

        A spell cast as a bonus action, natively or quickened, leaves the
        action for a cantrip only. Without a cantrip worth casting the action
        goes to the attacks.
        """
        ctx = self.ctx
        plan = select_spell_to_cast(caster, ctx, action_only=caster.bonus_action_used)
        if plan is None:
            return
        entry = execute_spell_plan(caster, plan, ctx)
        if entry is None:
            return
        if not plan.bonus_action:
            caster.action_used = True
            return
        caster.bonus_action_used = True
        if ctx.is_over():
            return
        follow = select_spell_to_cast(caster, ctx, action_only=True, cantrips_only=True)
        if follow is not None and execute_spell_plan(caster, follow, ctx) is not None:
            caster.action_used = True

    def take_bonus_action(self, combatant: Combatant) -> None:
        """The class bonus action first, the generic one otherwise."""
        ctx = self.ctx
        action = select_class_bonus_action(combatant, ctx)
        if action is not None:
            execute_class_action(combatant, action, ctx)
        if combatant.bonus_action_used:
            return
        bonus = select_bonus_action(combatant, ctx)
        if bonus is not None and execute_bonus_action(combatant, bonus, ctx) is not None:
            combatant.bonus_action_used = True

    def end_of_turn_saves(self, combatant: Combatant) -> None:
        """Rolls the saves that can shake off a condition at the end of a turn."""
        ctx = self.ctx
        attempts = process_end_of_turn_saves(
            combatant, ctx.dice, save_bonus=lambda ability: self._save_bonus(combatant, ability)
        )
        for attempt in attempts:
            ctx.record(
                SavingThrowEntry(
                    round=ctx.round,
                    actor=combatant.name,
                    ability=attempt.ability,
                    dc=attempt.dc,
                    roll=attempt.roll,
                    total=attempt.total,
                    success=attempt.success,
                    source=attempt.condition.display_name,
                )
            )
            if attempt.success:
                ctx.record(
                    ConditionEndedEntry(
                        round=ctx.round,
                        actor=combatant.name,
                        condition=attempt.condition,
                        reason="save",
                    )
                )

    def _save_bonus(self, combatant: Combatant, ability: Ability) -> int:
        return save_bonus(combatant, ability, self.ctx)

    def run_legendary_actions(self, acted: Combatant) -> None:
        """Lets every other legendary creature spend one legendary action."""
        ctx = self.ctx
        for monster in self.participants:
            if ctx.is_over():
                return
            if monster is acted or not monster.config.is_legendary or not monster.is_conscious:
                continue
            ability = select_legendary_action(monster, ctx)
            if ability is not None:
                execute_legendary_action(monster, ability, ctx)

    def end_of_round(self) -> None:
        """Ticks condition durations, rages and summoned weapons."""
        ctx = self.ctx
        for combatant in self.participants:
            if combatant.is_dead:
                continue
            for condition in tick_conditions(combatant):
                ctx.record(
                    ConditionEndedEntry(
                        round=ctx.round, actor=combatant.name, condition=condition, reason="expired"
                    )
                )
            if tick_rage(combatant):
                ctx.record(StatusEntry(round=ctx.round, actor=combatant.name, status="rage_ended"))
            tick_spiritual_weapon(combatant)

    # ------------------------------------------------------------------------
    # Outcome.
    # ------------------------------------------------------------------------

    def build_result(self) -> SimulationResult:
        """Decides the winner and packs the result.

        A side with no living member loses. At the round limit the side with
        more remaining hit points wins, a tie going to the monsters.
        """
        ctx = self.ctx
        party_hp = sum(c.current_hp for c in ctx.party if c.is_alive)
        monster_hp = sum(c.current_hp for c in ctx.monsters if c.is_alive)
        if self.ended_by_round_limit:
            party_won = party_hp > monster_hp
        else:
            party_won = any(c.is_alive for c in ctx.party)
        ctx.record(
            CombatEndEntry(
                round=ctx.round,
                party_won=party_won,
                reason="round_limit" if self.ended_by_round_limit else "victory",
                party_hp=party_hp,
                monster_hp=monster_hp,
            )
        )
        log_debug(
            f"Simulation {self.simulation_id} ended in round {ctx.round}: "
            f"{'party' if party_won else 'monsters'} won"
        )
        return SimulationResult(
            id=self.simulation_id,
            party_won=party_won,
            total_rounds=ctx.round,
            surviving_party=[c.name for c in ctx.party if c.is_alive],
            surviving_monsters=[c.name for c in ctx.monsters if c.is_alive],
            ended_by_round_limit=self.ended_by_round_limit,
            log=list(ctx.log),
        )

