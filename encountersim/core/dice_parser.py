"""
Dice module for the encounter simulator.

Parses standard `NdS[+/-M]` notation and rolls dice through an injectable
random generator, so that a whole encounter can be replayed from a seed.
"""

import random
import re
from collections.abc import Sequence
from functools import lru_cache
from typing import Any

from catchery import log_debug
from pydantic import BaseModel, Field
from typing_extensions import TypeVar

from encountersim.core.constants import RollMode
from encountersim.core.error_handling import DiceFormatError

T = TypeVar("T")

DICE_PATTERN = re.compile(r"^(\d+)d(\d+)([+-]\d+)?$", re.IGNORECASE)


class DiceNotation(BaseModel):
    """A parsed dice expression such as 2d6+3."""

    count: int = Field(description="Number of dice to roll")
    sides: int = Field(description="Number of faces of each die")
    modifier: int = Field(default=0, description="Flat bonus added to the sum")

    model_config = {"frozen": True}

    def __str__(self) -> str:
        if self.modifier:
            return f"{self.count}d{self.sides}{self.modifier:+d}"
        return f"{self.count}d{self.sides}"

    @property
    def average(self) -> float:
        return self.count * (self.sides + 1) / 2 + self.modifier


class DiceRoll(BaseModel):
    """The outcome of rolling a dice expression."""

    total: int = Field(description="Sum of the dice plus the modifier")
    rolls: list[int] = Field(default_factory=list, description="Individual dice")
    modifier: int = Field(default=0, description="Flat bonus that was added")


class D20Roll(BaseModel):
    """A d20 roll, possibly taken with advantage or disadvantage."""

    result: int = Field(description="The kept die")
    rolls: list[int] = Field(description="Every die that was rolled")
    mode: RollMode = Field(default=RollMode.NORMAL, description="How the roll was taken")

    @property
    def is_natural_20(self) -> bool:
        return self.result == 20

    @property
    def is_natural_1(self) -> bool:
        return self.result == 1

    @property
    def all_ones(self) -> bool:
        """True when every die shows a 1 (a fumble even with advantage)."""
        return all(roll == 1 for roll in self.rolls)


@lru_cache(maxsize=512)
def parse_dice_notation(notation: str) -> DiceNotation:
    """
    Parses a dice expression.

    Args:
        notation (str): Expression like "1d8", "2d6+3" or "1d4-1".

    Returns:
        DiceNotation: The parsed expression.

    Raises:
        DiceFormatError: If the expression does not follow `NdS[+/-M]`.

    """
    if not isinstance(notation, str):
        raise DiceFormatError(f"Invalid dice notation: {notation!r}")
    match = DICE_PATTERN.match(notation.strip())
    if not match:
        raise DiceFormatError(f"Invalid dice notation: {notation}", {"notation": notation})
    count_str, sides_str, modifier_str = match.groups()
    count, sides = int(count_str), int(sides_str)
    if count < 1 or sides < 1:
        raise DiceFormatError(
            f"Dice notation needs at least one die with one face: {notation}",
            {"notation": notation, "count": count, "sides": sides},
        )
    return DiceNotation(
        count=count,
        sides=sides,
        modifier=int(modifier_str) if modifier_str else 0,
    )


def is_valid_notation(notation: Any) -> bool:
    """Checks whether a value is parseable dice notation."""
    try:
        parse_dice_notation(notation)
    except DiceFormatError:
        return False
    return True


def average_roll(notation: str | None) -> float:
    """
    Returns the expected value of a dice expression.

    Empty or malformed expressions average to 0.
    """
    if not notation:
        return 0.0
    try:
        return parse_dice_notation(notation).average
    except DiceFormatError:
        log_debug(f"Cannot average malformed dice notation '{notation}'")
        return 0.0


def with_dice_count(notation: str, count: int) -> str:
    """Rewrites an expression with a different number of dice, keeping the modifier."""
    parsed = parse_dice_notation(notation)
    return str(DiceNotation(count=max(1, count), sides=parsed.sides, modifier=parsed.modifier))


def add_modifier(notation: str, bonus: int) -> str:
    """Adds a flat bonus to an expression's modifier."""
    parsed = parse_dice_notation(notation)
    return str(
        DiceNotation(count=parsed.count, sides=parsed.sides, modifier=parsed.modifier + bonus)
    )


class Dice:
    """
    Dice roller backed by its own random generator.

    Every random decision of the engine goes through an instance of this
    class. Two rollers created with the same seed produce the same sequence.
    """

    def __init__(self, seed: Any = None, rng: random.Random | None = None) -> None:
        """
        Initialize the roller.

        Args:
            seed (Any): Seed of a fresh generator; ignored when `rng` is given.
            rng (random.Random | None): An existing generator to draw from.

        """
        self.seed = seed
        self.rng = rng if rng is not None else random.Random(seed)

    @classmethod
    def for_run(cls, master_seed: Any, run_id: int) -> "Dice":
        """
        Derives the roller of one simulation run from a master seed.

        String seeds are hashed deterministically by `random.Random`, so the
        same `(master_seed, run_id)` pair always replays the same run.
        """
        if master_seed is None:
            return cls()
        return cls(seed=f"{master_seed}:{run_id}")

    def roll_die(self, sides: int) -> int:
        """Rolls a single die, uniform in [1, sides]."""
        if sides < 1:
            raise DiceFormatError(f"A die needs at least one face, got {sides}")
        return self.rng.randint(1, sides)

    def roll_dice(self, notation: str) -> DiceRoll:
        """
        Rolls a dice expression.

        Args:
            notation (str): Expression like "2d6+3".

        Returns:
            DiceRoll: The total and the individual dice.

        """
        parsed = parse_dice_notation(notation)
        rolls = [self.roll_die(parsed.sides) for _ in range(parsed.count)]
        return DiceRoll(total=sum(rolls) + parsed.modifier, rolls=rolls, modifier=parsed.modifier)

    def roll_damage(self, notation: str, is_critical: bool = False) -> int:
        """
        Rolls damage, doubling the dice (not the modifier) on a critical hit.

        Args:
            notation (str): The damage expression.
            is_critical (bool): Whether the hit was critical.

        Returns:
            int: The damage rolled, never below 0.

        """
        parsed = parse_dice_notation(notation)
        count = parsed.count * 2 if is_critical else parsed.count
        total = sum(self.roll_die(parsed.sides) for _ in range(count)) + parsed.modifier
        return max(0, total)

    def roll_d20(self) -> int:
        return self.roll_die(20)

    def roll_d20_with_modifier(self, mode: RollMode = RollMode.NORMAL) -> D20Roll:
        """
        Rolls a d20, with two dice when advantage or disadvantage applies.

        Args:
            mode (RollMode): How to take the roll.

        Returns:
            D20Roll: The kept die and every die rolled.

        """
        if mode == RollMode.NORMAL:
            roll = self.roll_d20()
            return D20Roll(result=roll, rolls=[roll], mode=mode)
        rolls = [self.roll_d20(), self.roll_d20()]
        kept = max(rolls) if mode == RollMode.ADVANTAGE else min(rolls)
        return D20Roll(result=kept, rolls=rolls, mode=mode)

    def choice(self, items: Sequence[T]) -> T:
        """Picks one element uniformly at random."""
        return self.rng.choice(items)
