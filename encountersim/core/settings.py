"""
Simulation settings.

Holds the tunables of a batch of simulations. Settings come from CLI flags or
from a JSON file and are validated by pydantic.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from encountersim.core.constants import MAX_ROUNDS
from encountersim.core.error_handling import ConfigurationError


class SimulationSettings(BaseModel):
    """Tunables shared by every run of a batch."""

    max_rounds: int = Field(
        default=MAX_ROUNDS,
        ge=1,
        description="Rounds after which the encounter is decided by remaining HP.",
    )
    seed: int | str | None = Field(
        default=None,
        description="Master seed. Each run derives its own roller from it.",
    )
    record_log: bool = Field(
        default=True,
        description="Whether each result keeps its combat log.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Level passed to the logging setup.",
    )

    model_config = {"frozen": True}


def load_settings(path: Path, **overrides: Any) -> SimulationSettings:
    """
    Loads settings from a JSON object file.

    Args:
        path (Path): The file to read.
        **overrides: Values taking precedence over the file (None is ignored).

    Returns:
        SimulationSettings: The validated settings.

    Raises:
        ConfigurationError: If the file is missing or invalid.

    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Expected an object, got {type(data).__name__}")
        data.update({k: v for k, v in overrides.items() if v is not None})
        return SimulationSettings(**data)
    except (OSError, json.JSONDecodeError, ValueError, ValidationError) as e:
        raise ConfigurationError(f"Settings file {path} raised an error: {e}", {"path": str(path)})
