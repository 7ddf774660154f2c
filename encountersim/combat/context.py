"""
Battle context.

Bundles what every action of an encounter needs to see: the combatants, the
roller, the current round and the log being written.
"""

from typing import TYPE_CHECKING

from encountersim.combat.log import BaseEntry
from encountersim.core.dice_parser import Dice
from encountersim.core.settings import SimulationSettings

if TYPE_CHECKING:
    from encountersim.combatant.main import Combatant


class BattleContext:
    """Shared state of one encounter."""

    def __init__(
        self,
        combatants: list["Combatant"],
        dice: Dice,
        settings: SimulationSettings | None = None,
    ) -> None:
        """
        Initialize the context.

        Args:
            combatants (list[Combatant]): Every combatant, in initiative order
                once combat starts.
            dice (Dice): The roller of this encounter.
            settings (SimulationSettings | None): Tunables of the batch.

        """
        self.combatants: list["Combatant"] = combatants
        self.dice: Dice = dice
        self.settings: SimulationSettings = settings or SimulationSettings()
        self.round: int = 0
        self.log: list[BaseEntry] = []

    def record(self, *entries: BaseEntry | None) -> None:
        """Appends entries to the log, skipping None."""
        if not self.settings.record_log:
            return
        self.log.extend(entry for entry in entries if entry is not None)

    @property
    def party(self) -> list["Combatant"]:
        return [c for c in self.combatants if c.is_player]

    @property
    def monsters(self) -> list["Combatant"]:
        return [c for c in self.combatants if not c.is_player]

    def allies_of(self, combatant: "Combatant", include_self: bool = False) -> list["Combatant"]:
        return [
            c
            for c in self.combatants
            if c.is_player == combatant.is_player and (include_self or c is not combatant)
        ]

    def enemies_of(self, combatant: "Combatant") -> list["Combatant"]:
        return [c for c in self.combatants if c.is_player != combatant.is_player]

    def conscious_enemies_of(self, combatant: "Combatant") -> list["Combatant"]:
        return [c for c in self.enemies_of(combatant) if c.is_conscious]

    def find(self, name: str) -> "Combatant | None":
        for combatant in self.combatants:
            if combatant.name == name:
                return combatant
        return None

    def is_over(self) -> bool:
        """True once a side has no living member."""
        party_alive = any(c.is_alive for c in self.party)
        monsters_alive = any(c.is_alive for c in self.monsters)
        return not party_alive or not monsters_alive
