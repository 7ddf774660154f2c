"""
Result records of a simulation batch.

Only names and final statuses leave an encounter: the combatants themselves
are discarded once the result is built.
"""

from pydantic import BaseModel, Field

from encountersim.combat.log import LogEntry


class SimulationResult(BaseModel):
    """Outcome of one encounter."""

    id: int = Field(description="Index of the run inside its batch")
    party_won: bool
    total_rounds: int = Field(ge=0, description="Rounds fought")
    surviving_party: list[str] = Field(default_factory=list, description="Party members still alive")
    surviving_monsters: list[str] = Field(default_factory=list, description="Monsters still alive")
    ended_by_round_limit: bool = Field(
        default=False, description="Whether the hit point tie-break decided the encounter"
    )
    log: list[LogEntry] = Field(default_factory=list, description="Ordered combat log")


class SimulationSummary(BaseModel):
    """Aggregate statistics of a batch."""

    total_simulations: int
    party_wins: int
    party_win_percentage: float = Field(ge=0, le=100)
    average_rounds: float
    survivor_counts: dict[str, int] = Field(
        default_factory=dict, description="How many runs each combatant survived"
    )
    round_limit_endings: int = Field(default=0, description="Runs decided by the tie-break")


class SimulationBatch(BaseModel):
    """Every result of a batch with its summary."""

    results: list[SimulationResult]
    summary: SimulationSummary
