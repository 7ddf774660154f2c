"""
Tests for dice notation parsing and the dice roller.
"""

import pytest

from encountersim.core.constants import RollMode
from encountersim.core.dice_parser import (
    Dice,
    add_modifier,
    average_roll,
    is_valid_notation,
    parse_dice_notation,
    with_dice_count,
)
from encountersim.core.error_handling import DiceFormatError

from .conftest import ScriptedDice


@pytest.mark.parametrize(
    "notation, expected",
    [
        ("1d8", (1, 8, 0)),
        ("2d6+3", (2, 6, 3)),
        ("1d4-1", (1, 4, -1)),
        ("8D6", (8, 6, 0)),
    ],
)
def test_parse_valid_notation(notation, expected):
    parsed = parse_dice_notation(notation)
    assert (parsed.count, parsed.sides, parsed.modifier) == expected


@pytest.mark.parametrize("notation", ["1d", "d6", "abc", "2d6+", "0d6", "1d0", ""])
def test_parse_invalid_notation_raises(notation):
    with pytest.raises(DiceFormatError):
        parse_dice_notation(notation)


def test_invalid_notation_is_a_value_error():
    """Test that callers catching ValueError also catch malformed dice."""
    with pytest.raises(ValueError):
        parse_dice_notation("1d")


def test_is_valid_notation():
    assert is_valid_notation("3d6")
    assert not is_valid_notation("three dice")
    assert not is_valid_notation(None)


def test_average_roll():
    assert average_roll("1d8") == 4.5
    assert average_roll("2d6+3") == 10.0
    assert average_roll(None) == 0.0
    assert average_roll("not dice") == 0.0


def test_notation_rewriting():
    assert with_dice_count("1d10+2", 3) == "3d10+2"
    assert add_modifier("2d4", 3) == "2d4+3"
    assert add_modifier("2d4+1", -2) == "2d4-1"


def test_roll_dice_stays_in_range():
    dice = Dice(seed=7)
    for _ in range(200):
        roll = dice.roll_dice("2d6+1")
        assert 3 <= roll.total <= 13
        assert len(roll.rolls) == 2


def test_seeded_rollers_repeat():
    first, second = Dice(seed="abc"), Dice(seed="abc")
    assert [first.roll_d20() for _ in range(20)] == [second.roll_d20() for _ in range(20)]


def test_for_run_derives_distinct_rollers():
    first = Dice.for_run(42, 0)
    again = Dice.for_run(42, 0)
    other = Dice.for_run(42, 1)
    rolls = [first.roll_d20() for _ in range(30)]
    assert rolls == [again.roll_d20() for _ in range(30)]
    assert rolls != [other.roll_d20() for _ in range(30)]


def test_for_run_without_seed():
    assert Dice.for_run(None, 3).seed is None


def test_critical_doubles_dice_not_modifier():
    dice = ScriptedDice(3, 5)
    assert dice.roll_damage("1d6+2", is_critical=True) == 3 + 5 + 2


def test_damage_never_negative():
    dice = ScriptedDice(1)
    assert dice.roll_damage("1d4-3") == 0


def test_advantage_keeps_highest():
    roll = ScriptedDice(4, 17).roll_d20_with_modifier(RollMode.ADVANTAGE)
    assert roll.result == 17
    assert roll.rolls == [4, 17]


def test_disadvantage_keeps_lowest():
    roll = ScriptedDice(4, 17).roll_d20_with_modifier(RollMode.DISADVANTAGE)
    assert roll.result == 4


def test_natural_rolls():
    assert ScriptedDice(20).roll_d20_with_modifier().is_natural_20
    assert ScriptedDice(1).roll_d20_with_modifier().is_natural_1


def test_die_needs_a_face():
    with pytest.raises(DiceFormatError):
        Dice(seed=1).roll_die(0)
