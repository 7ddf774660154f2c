"""
Console reports.

Renders a batch summary and single combat logs with rich.
"""

from rich.table import Table

from encountersim.combat.log import BaseEntry, RoundStartEntry
from encountersim.core.utils import cprint, crule
from encountersim.simulation.results import SimulationBatch, SimulationResult, SimulationSummary


def summary_table(summary: SimulationSummary, party: list[str], monsters: list[str]) -> Table:
    """
    Builds the survivor table of a batch.

    Args:
        summary (SimulationSummary): The aggregated batch.
        party (list[str]): Party member names, in display order.
        monsters (list[str]): Monster names, in display order.

    Returns:
        Table: One row per combatant with its survival rate.

    """
    table = Table(title="Survivors", pad_edge=False)
    table.add_column("Side", style="magenta")
    table.add_column("Name", style="bold")
    table.add_column("Survived", justify="right")
    table.add_column("Rate", justify="right", style="cyan")
    total = max(1, summary.total_simulations)
    for side, names, color in (("party", party, "blue"), ("monsters", monsters, "red")):
        for name in names:
            count = summary.survivor_counts.get(name, 0)
            table.add_row(f"[{color}]{side}[/]", name, str(count), f"{100.0 * count / total:.1f}%")
    return table


def print_summary(batch: SimulationBatch, party: list[str], monsters: list[str]) -> None:
    """Prints the headline figures of a batch and its survivor table."""
    summary = batch.summary
    crule(":bar_chart:  Simulation Summary", style="bold blue")
    color = "green" if summary.party_win_percentage >= 50 else "red"
    cprint(f"Simulations      : {summary.total_simulations}")
    cprint(
        f"Party victories  : {summary.party_wins} "
        f"([bold {color}]{summary.party_win_percentage:.1f}%[/])"
    )
    cprint(f"Average rounds   : {summary.average_rounds:.2f}")
    if summary.round_limit_endings:
        cprint(f"[yellow]Decided by the round limit: {summary.round_limit_endings}[/]")
    cprint(summary_table(summary, party, monsters))


def format_entry(entry: BaseEntry) -> str:
    return entry.describe()


def print_log(result: SimulationResult) -> None:
    """Prints the combat log of one run, a rule per round."""
    crule(f":crossed_swords:  Simulation {result.id}", style="bold green")
    for entry in result.log:
        if isinstance(entry, RoundStartEntry):
            crule(f"Round {entry.round}", style="cyan")
            continue
        cprint(f"    {format_entry(entry)}")
    winner = "[bold blue]party[/]" if result.party_won else "[bold red]monsters[/]"
    cprint(f"Winner: {winner} after {result.total_rounds} rounds")
    cprint("")
