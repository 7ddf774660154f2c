"""
Mutable per-run combatant state.

A `Combatant` wraps an immutable `CombatantConfig` and carries everything that
changes during an encounter: hit points, death saves, conditions, class
resources, spell slots, concentration and a handful of per-turn flags. A new
set of combatants is built for every simulation run, so no state leaks from
one run to the next.
"""

from pydantic import BaseModel, Field

from encountersim.classes.features import fighting_style_ac_bonus
from encountersim.classes.resources import ResourcePool, init_resources
from encountersim.classes.templates import get_num_attacks
from encountersim.combat.positioning import get_default_position
from encountersim.combatant.config import CombatantConfig
from encountersim.core.constants import (
    RELENTLESS_RAGE_BASE_DC,
    SHIELD_AC_BONUS,
    Ability,
    ClassName,
    Position,
    ResourceName,
)
from encountersim.effects.conditions import ActiveCondition


class SummonedWeapon(BaseModel):
    """A spectral weapon (Spiritual Weapon) attacking as a bonus action."""

    damage: str = Field(description="Damage dice notation, spellcasting modifier excluded")
    rounds_remaining: int = Field(default=10, description="Rounds before it vanishes")
    slot_level: int = Field(default=2, description="Slot level it was cast with")


class Combatant:
    """A participant of one encounter."""

    def __init__(self, config: CombatantConfig) -> None:
        """
        Initialize the combatant from its configuration, at full health.

        Args:
            config (CombatantConfig): The immutable description.

        """
        self.config: CombatantConfig = config
        self.reset()

    @classmethod
    def from_config(cls, config: CombatantConfig) -> "Combatant":
        return cls(config)

    def reset(self) -> None:
        """Restores the state of a fresh encounter."""
        config = self.config
        self.position: Position = get_default_position(config)
        # Health and death saves.
        self.current_hp: int = config.max_hp
        self.is_unconscious: bool = False
        self.is_dead: bool = False
        self.is_stabilized: bool = False
        self.death_save_successes: int = 0
        self.death_save_failures: int = 0
        # Conditions.
        self.conditions: list[ActiveCondition] = []
        # Spellcasting.
        self.current_slots: dict[int, int] = dict(config.spell_slots)
        self.concentrating_on: str | None = None
        self.spiritual_weapon: SummonedWeapon | None = None
        # Class features.
        self.class_resources: dict[ResourceName, ResourcePool] = {}
        self.is_raging: bool = False
        self.rage_rounds_remaining: int = 0
        self.inspiration_die: str | None = None
        # Monster features.
        self.legendary_actions_remaining: int = config.legendary_actions
        self.legendary_resistances_remaining: int = config.legendary_resistances
        self.recharge_available: dict[str, bool] = {a.name: True for a in config.recharge_abilities}
        self.frightful_presence_immune: bool = False
        self.frightful_presence_used: bool = False
        self.relentless_rage_dc: int = RELENTLESS_RAGE_BASE_DC
        # Reactions and per-turn flags.
        self.has_reaction: bool = True
        self.uncanny_dodge_used_this_round: bool = False
        self.reset_turn_flags()
        init_resources(self)

    def reset_turn_flags(self) -> None:
        """Clears the flags that last until the start of the combatant's next turn."""
        self.sneak_attack_used_this_turn: bool = False
        self.foe_slayer_used_this_turn: bool = False
        self.action_surge_used_this_turn: bool = False
        self.is_reckless: bool = False
        self.is_dodging: bool = False
        self.is_hidden: bool = False
        self.shield_active: bool = False
        self.action_used: bool = False
        self.bonus_action_used: bool = False

    # ------------------------------------------------------------------------
    # Shortcuts to the configuration.
    # ------------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def is_player(self) -> bool:
        return self.config.is_player

    @property
    def max_hp(self) -> int:
        return self.config.max_hp

    @property
    def class_name(self) -> ClassName | None:
        return self.config.class_name

    @property
    def level(self) -> int:
        return self.config.level

    @property
    def armor_class(self) -> int:
        """Current armor class, including the Defense style and an active Shield spell."""
        armor_class = self.config.armor_class + fighting_style_ac_bonus(self)
        return armor_class + (SHIELD_AC_BONUS if self.shield_active else 0)

    @property
    def num_attacks(self) -> int:
        """Attacks per Attack action: the configured count or Extra Attack, whichever is higher."""
        return max(self.config.num_attacks, get_num_attacks(self.class_name, self.level))

    # ------------------------------------------------------------------------
    # Status.
    # ------------------------------------------------------------------------

    @property
    def is_alive(self) -> bool:
        return not self.is_dead

    @property
    def is_conscious(self) -> bool:
        """Alive and not dying: the combatant can be targeted and can act."""
        return not self.is_dead and not self.is_unconscious

    @property
    def hp_ratio(self) -> float:
        return self.current_hp / self.max_hp

    @property
    def spell_slots_remaining(self) -> int:
        return sum(self.current_slots.values())

    def base_save_bonus(self, ability: Ability) -> int:
        """Saving throw bonus from the configuration alone."""
        if ability in self.config.saving_throws:
            return self.config.saving_throws[ability]
        return self.config.ability_modifier(ability)

    def __repr__(self) -> str:
        return f"Combatant({self.name!r}, hp={self.current_hp}/{self.max_hp})"


def build_combatants(configs: list[CombatantConfig]) -> list[Combatant]:
    """Builds fresh combatants for one run."""
    return [Combatant.from_config(config) for config in configs]
