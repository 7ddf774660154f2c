"""
Exceptions and validation helpers for the encounter simulator.

Fatal problems (malformed dice notation, an unusable encounter definition)
raise a `SimulatorError` subclass. Recoverable oddities are corrected in place
and reported through catchery's warning log.
"""

from collections.abc import Iterable
from typing import Any

from catchery import log_warning


class SimulatorError(Exception):
    """Base class of every error raised by the simulator."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = " ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} [{details}]"


class DiceFormatError(SimulatorError, ValueError):
    """Raised when a dice notation string cannot be parsed."""


class ConfigurationError(SimulatorError, ValueError):
    """Raised when an encounter definition cannot be simulated."""


# ==============================================================================
# VALIDATION HELPERS
# ==============================================================================


def require_non_empty(
    values: Iterable[Any], param_name: str, context: dict[str, Any] | None = None
) -> list[Any]:
    """
    Validates that a collection holds at least one element.

    Args:
        values: The collection to validate
        param_name: Human-readable parameter name for error messages
        context: Additional context attached to the error

    Returns:
        list: The collection as a list

    Raises:
        ConfigurationError: If the collection is empty
    """
    items = list(values)
    if not items:
        raise ConfigurationError(
            f"{param_name} must contain at least one entry",
            {**(context or {}), "param_name": param_name},
        )
    return items


def require_unique_names(names: Iterable[str], context: dict[str, Any] | None = None) -> None:
    """
    Validates that no two combatants share a name.

    Names identify combatants in logs and survivor counts, so duplicates would
    make results ambiguous.

    Raises:
        ConfigurationError: If a name appears more than once
    """
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ConfigurationError(
                f"Duplicate combatant name '{name}'",
                {**(context or {}), "name": name},
            )
        seen.add(name)


def ensure_int_in_range(
    value: Any,
    param_name: str,
    min_val: int,
    max_val: int | None = None,
    context: dict[str, Any] | None = None,
) -> int:
    """
    Ensures a value is an integer within the given range, clamping if needed.

    Logs a warning for out-of-range values but continues execution.

    Args:
        value: The value to validate
        param_name: Human-readable parameter name for the warning
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive), None for no maximum
        context: Additional context for logging

    Returns:
        int: The clamped integer value
    """
    try:
        converted = int(value)
    except (TypeError, ValueError):
        converted = min_val
    clamped = max(min_val, converted)
    if max_val is not None:
        clamped = min(max_val, clamped)
    if clamped != value:
        log_warning(
            f"{param_name} must be an integer in range, got: {value}, correcting to {clamped}",
            {
                **(context or {}),
                "param_name": param_name,
                "value": value,
                "min_val": min_val,
                "max_val": max_val,
                "corrected_to": clamped,
            },
        )
    return clamped
