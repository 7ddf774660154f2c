"""
Core module for the encounter simulator.

This module contains the fundamental components the engine is built on:
constants, dice rolling, errors, logging, settings and content loading.
"""

from .constants import (
    MAX_ROUNDS,
    Ability,
    AttackType,
    ConditionType,
    DamageType,
    Position,
    RollMode,
)
from .dice_parser import Dice, average_roll, parse_dice_notation
from .error_handling import ConfigurationError, DiceFormatError, SimulatorError

__all__ = [
    "MAX_ROUNDS",
    "Ability",
    "AttackType",
    "ConditionType",
    "ConfigurationError",
    "DamageType",
    "Dice",
    "DiceFormatError",
    "Position",
    "RollMode",
    "SimulatorError",
    "average_roll",
    "parse_dice_notation",
]
