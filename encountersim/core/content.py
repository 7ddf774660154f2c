"""
Loading of encounter content from JSON.

Party and monster files are JSON lists of combatant records. A record may name
a bundled preset (`"preset": "Orc"`) and override any of its fields, and a
`"count"` repeats it: duplicates get numbered names, "Orc (1)", "Orc (2)".
An encounter file is an object holding both sides.
"""

import json
from collections import Counter
from pathlib import Path
from typing import Any

from catchery import log_debug
from pydantic import ValidationError

from encountersim.combatant.config import CombatantConfig
from encountersim.core.error_handling import (
    ConfigurationError,
    require_non_empty,
    require_unique_names,
)

# Bundled fixtures.
DATA_DIR = Path(__file__).resolve().parent.parent / "data"
PRESET_FILES = ("monsters.json", "classes.json")


def _load_json_file(filepath: Path, description: str) -> Any:
    """Reads a JSON file, turning every failure into a ConfigurationError."""
    log_debug(f"Loading {description} from {filepath}")
    if not filepath.exists():
        raise ConfigurationError(f"File not found: {filepath}", {"file": str(filepath)})
    if not filepath.is_file():
        raise ConfigurationError(f"Not a file: {filepath}", {"file": str(filepath)})
    try:
        with open(filepath, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"File {filepath} is not valid JSON: {e}", {"file": str(filepath)}
        ) from e


def load_presets(data_dir: Path = DATA_DIR) -> dict[str, dict[str, Any]]:
    """
    Loads the bundled monster and class presets.

    Returns:
        dict[str, dict]: Preset records keyed by lowercase name.

    """
    presets: dict[str, dict[str, Any]] = {}
    for filename in PRESET_FILES:
        path = data_dir / filename
        if not path.exists():
            continue
        for record in _load_json_file(path, "presets"):
            presets[record["name"].lower()] = record
    return presets


def expand_records(
    records: list[dict[str, Any]], presets: dict[str, dict[str, Any]]
) -> list[dict[str, Any]]:
    """
    Resolves preset references and counts.

    Args:
        records (list[dict]): Raw records of one side.
        presets (dict[str, dict]): Available presets, keyed by lowercase name.

    Returns:
        list[dict]: One plain record per combatant.

    Raises:
        ConfigurationError: If a record names an unknown preset.

    """
    expanded: list[dict[str, Any]] = []
    for record in records:
        if not isinstance(record, dict):
            raise ConfigurationError(
                f"Expected a combatant object, got {type(record).__name__}", {"record": repr(record)}
            )
        record = dict(record)
        count = int(record.pop("count", 1))
        preset_name = record.pop("preset", None)
        if preset_name is not None:
            preset = presets.get(str(preset_name).lower())
            if preset is None:
                raise ConfigurationError(
                    f"Unknown preset '{preset_name}'",
                    {"preset": preset_name, "available": sorted(presets)},
                )
            record = {**preset, **record}
        expanded.extend(dict(record) for _ in range(count))
    return expanded


def make_names_unique(records: list[dict[str, Any]]) -> None:
    """
    Numbers duplicate names in place.

    Example:
        ["Goblin", "Goblin", "Orc"] becomes ["Goblin (1)", "Goblin (2)", "Orc"].

    """
    name_counts = Counter(r.get("name") for r in records)
    seen: Counter[str] = Counter()
    for record in records:
        base = record.get("name")
        if base is not None and name_counts[base] > 1:
            seen[base] += 1
            record["name"] = f"{base} ({seen[base]})"


def build_configs(
    records: list[dict[str, Any]],
    is_player: bool,
    presets: dict[str, dict[str, Any]] | None = None,
) -> list[CombatantConfig]:
    """
    Validates the records of one side into configurations.

    Raises:
        ConfigurationError: If a record is invalid or references an unknown
            preset.
        DiceFormatError: If a dice notation is malformed.

    """
    expanded = expand_records(records, load_presets() if presets is None else presets)
    make_names_unique(expanded)
    configs = []
    for record in expanded:
        try:
            configs.append(CombatantConfig(**{**record, "is_player": is_player}))
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid combatant '{record.get('name')}': {e.errors()[0]['msg']}",
                {"combatant": record.get("name")},
            ) from e
    return configs


def load_combatants(path: Path, is_player: bool) -> list[CombatantConfig]:
    """
    Loads one side of an encounter.

    Args:
        path (Path): A JSON list of combatant records.
        is_player (bool): Whether the file holds the party.

    Returns:
        list[CombatantConfig]: The validated configurations, in file order.

    """
    data = _load_json_file(path, "party" if is_player else "monsters")
    if not isinstance(data, list):
        raise ConfigurationError(
            f"Expected a list in {path}, got {type(data).__name__}", {"file": str(path)}
        )
    return require_non_empty(build_configs(data, is_player), str(path))


def load_encounter(path: Path) -> tuple[list[CombatantConfig], list[CombatantConfig]]:
    """
    Loads a whole encounter.

    The file holds an object with a "party" and a "monsters" list.

    Returns:
        tuple[list[CombatantConfig], list[CombatantConfig]]: Party and monsters.

    Raises:
        ConfigurationError: If a side is missing or empty, or two combatants
            share a name.

    """
    data = _load_json_file(path, "encounter")
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected an object in {path}, got {type(data).__name__}", {"file": str(path)}
        )
    presets = load_presets()
    party = require_non_empty(build_configs(data.get("party", []), True, presets), "party")
    monsters = require_non_empty(build_configs(data.get("monsters", []), False, presets), "monsters")
    require_unique_names(c.name for c in party + monsters)
    return party, monsters
