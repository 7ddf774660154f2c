"""
Tests for loading combatants, presets and encounters from JSON.
"""

import json

import pytest

from encountersim.combatant.config import CombatantConfig
from encountersim.core.content import (
    build_configs,
    expand_records,
    load_combatants,
    load_encounter,
    load_presets,
    make_names_unique,
)
from encountersim.core.content import DATA_DIR
from encountersim.core.error_handling import ConfigurationError, DiceFormatError
from encountersim.core.settings import SimulationSettings, load_settings


def _write(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_bundled_presets():
    presets = load_presets()
    assert {"orc", "goblin", "fighter", "wizard"} <= set(presets)


def test_make_names_unique():
    records = [{"name": "Goblin"}, {"name": "Goblin"}, {"name": "Orc"}]
    make_names_unique(records)
    assert [r["name"] for r in records] == ["Goblin (1)", "Goblin (2)", "Orc"]


def test_preset_with_overrides_and_count():
    presets = {"orc": {"name": "Orc", "max_hp": 15, "armor_class": 13}}
    expanded = expand_records([{"preset": "orc", "count": 2, "max_hp": 20}], presets)
    assert expanded == [{"name": "Orc", "max_hp": 20, "armor_class": 13}] * 2
    assert expanded[0] is not expanded[1]


def test_unknown_preset():
    with pytest.raises(ConfigurationError):
        expand_records([{"preset": "Tarrasque"}], {})


def test_load_combatants(tmp_path):
    path = _write(tmp_path, "monsters.json", [{"preset": "Orc", "count": 3}, {"preset": "Goblin"}])
    configs = load_combatants(path, is_player=False)
    assert [c.name for c in configs] == ["Orc (1)", "Orc (2)", "Orc (3)", "Goblin"]
    assert not any(c.is_player for c in configs)
    assert all(isinstance(c, CombatantConfig) for c in configs)


def test_player_flag_follows_the_file(tmp_path):
    path = _write(tmp_path, "party.json", [{"name": "Brom", "max_hp": 12, "armor_class": 16}])
    assert load_combatants(path, is_player=True)[0].is_player


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_combatants(tmp_path / "nope.json", is_player=True)


def test_directory_is_not_a_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_combatants(tmp_path, is_player=True)


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("[{", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_combatants(path, is_player=True)


def test_side_must_be_a_non_empty_list(tmp_path):
    with pytest.raises(ConfigurationError):
        load_combatants(_write(tmp_path, "obj.json", {"name": "Orc"}), is_player=False)
    with pytest.raises(ConfigurationError):
        load_combatants(_write(tmp_path, "empty.json", []), is_player=False)


def test_malformed_dice_is_reported(tmp_path):
    path = _write(tmp_path, "bad.json", [{"name": "Orc", "max_hp": 15, "armor_class": 13, "damage": "1d"}])
    with pytest.raises(DiceFormatError):
        load_combatants(path, is_player=False)


def test_malformed_dice_in_a_config():
    with pytest.raises(DiceFormatError):
        CombatantConfig(name="Orc", max_hp=15, armor_class=13, damage="abc")
    with pytest.raises(DiceFormatError):
        CombatantConfig(
            name="Dragon",
            max_hp=100,
            armor_class=18,
            multiattack=[{"name": "Bite", "attack_bonus": 8, "damage": "2d"}],
        )


def test_invalid_record(tmp_path):
    with pytest.raises(ConfigurationError):
        build_configs([{"name": "Orc", "max_hp": -3, "armor_class": 13}], is_player=False, presets={})


def test_bundled_encounter():
    party, monsters = load_encounter(DATA_DIR / "encounter_orcs.json")
    assert [c.name for c in party] == ["Brom", "Sister Alys", "Quillon", "Nettle"]
    assert len(monsters) == 6
    assert all(c.is_player for c in party)
    assert not any(c.is_player for c in monsters)


def test_encounter_needs_both_sides(tmp_path):
    path = _write(tmp_path, "encounter.json", {"party": [{"preset": "Fighter"}]})
    with pytest.raises(ConfigurationError):
        load_encounter(path)


def test_encounter_names_unique_across_sides(tmp_path):
    path = _write(
        tmp_path,
        "encounter.json",
        {"party": [{"preset": "Fighter", "name": "Orc"}], "monsters": [{"preset": "Orc"}]},
    )
    with pytest.raises(ConfigurationError):
        load_encounter(path)


def test_settings_file_with_overrides(tmp_path):
    path = _write(tmp_path, "settings.json", {"max_rounds": 20, "seed": 3})
    settings = load_settings(path, seed=None, record_log=False)
    assert settings == SimulationSettings(max_rounds=20, seed=3, record_log=False)


def test_invalid_settings(tmp_path):
    with pytest.raises(ConfigurationError):
        load_settings(_write(tmp_path, "settings.json", {"max_rounds": 0}))
