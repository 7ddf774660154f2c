"""
Logging configuration module for the encounter simulator.

Provides centralized logging setup with colored output using rich. Engine
modules report through catchery, which writes to the standard `logging`
hierarchy configured here.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler


def parse_log_level(level: int | str) -> int:
    """
    Converts a level name such as "debug" to its numeric value.

    Args:
        level (int | str): A numeric level or a level name.

    Returns:
        int: The numeric logging level, INFO when the name is unknown.

    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: int | str = logging.WARNING) -> None:
    """
    Sets up logging configuration with rich colored output.

    Args:
        level (int | str): The logging level to set. Defaults to WARNING, since
            a batch of simulations produces a lot of debug chatter.

    """
    console = Console(width=120, stderr=True, force_jupyter=False)

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    rich_handler.setFormatter(
        logging.Formatter("%(name)s - %(message)s", datefmt="[%X]")
    )

    logging.basicConfig(
        level=parse_log_level(level),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[rich_handler],
        force=True,
    )
