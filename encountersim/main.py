"""
Command line entry point of the encounter simulator.

Loads a party and a monster group from JSON files, runs the encounter many
times and prints the win rate, the average length of a fight and how often
each combatant survived. The combat log of the first runs can be printed too.
"""

import argparse
from pathlib import Path

from catchery import log_debug
from pydantic import ValidationError

from encountersim.core.content import DATA_DIR, load_combatants, load_encounter
from encountersim.core.error_handling import SimulatorError
from encountersim.core.logging import setup_logging
from encountersim.core.settings import SimulationSettings, load_settings
from encountersim.core.utils import cprint, crule
from encountersim.simulation.report import print_log, print_summary
from encountersim.simulation.runner import run_simulations

DEFAULT_PARTY = DATA_DIR / "party.json"
DEFAULT_MONSTERS = DATA_DIR / "monsters_orcs.json"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        prog="encountersim",
        description="Simulate a tabletop RPG encounter many times and report the odds.",
    )
    ap.add_argument(
        "--party", type=Path, default=DEFAULT_PARTY, help="JSON list of party members."
    )
    ap.add_argument(
        "--monsters", type=Path, default=DEFAULT_MONSTERS, help="JSON list of monsters."
    )
    ap.add_argument(
        "--encounter",
        type=Path,
        help="JSON object with both sides; takes precedence over --party and --monsters.",
    )
    ap.add_argument("-n", "--num", type=int, default=1000, help="Number of simulations.")
    ap.add_argument("--seed", help="Master seed, for reproducible batches.")
    ap.add_argument("--max-rounds", type=int, help="Rounds before the HP tie-break.")
    ap.add_argument("--settings", type=Path, help="JSON file with simulation settings.")
    ap.add_argument(
        "--show-log", type=int, default=0, metavar="K", help="Print the log of the first K runs."
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return ap.parse_args(argv)


def build_settings(args: argparse.Namespace) -> SimulationSettings:
    """Merges the settings file, if any, with the command line flags."""
    overrides = {
        "seed": args.seed,
        "max_rounds": args.max_rounds,
        "log_level": "DEBUG" if args.verbose else None,
        # Logs are only kept when someone is going to read them.
        "record_log": args.show_log > 0,
    }
    if args.settings is not None:
        return load_settings(args.settings, **overrides)
    return SimulationSettings(**{k: v for k, v in overrides.items() if v is not None})


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "WARNING")
    try:
        settings = build_settings(args)
        setup_logging(settings.log_level)
        if args.encounter is not None:
            party, monsters = load_encounter(args.encounter)
        else:
            party = load_combatants(args.party, is_player=True)
            monsters = load_combatants(args.monsters, is_player=False)
    except (SimulatorError, ValidationError) as e:
        cprint(f"[bold red]Error:[/] {e}")
        return 1

    crule(":crossed_swords:  Encounter Simulator", style="bold green")
    cprint(f"[blue]Party   :[/] {', '.join(c.name for c in party)}")
    cprint(f"[red]Monsters:[/] {', '.join(c.name for c in monsters)}")
    log_debug(f"Running {args.num} simulations with {settings}")

    batch = run_simulations(party, monsters, args.num, settings=settings)
    for result in batch.results[: args.show_log]:
        print_log(result)
    print_summary(batch, [c.name for c in party], [c.name for c in monsters])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
