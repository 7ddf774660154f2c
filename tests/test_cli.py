"""
Tests for the command line entry point and the console report.
"""

import json

import pytest

from encountersim import main as cli
from encountersim.simulation.report import summary_table
from encountersim.simulation.results import SimulationSummary


@pytest.fixture
def sides(tmp_path):
    party = tmp_path / "party.json"
    party.write_text(
        json.dumps([{"name": "Brom", "max_hp": 44, "armor_class": 18, "attack_bonus": 7, "damage": "1d8+4"}]),
        encoding="utf-8",
    )
    monsters = tmp_path / "monsters.json"
    monsters.write_text(json.dumps([{"preset": "Goblin", "count": 2}]), encoding="utf-8")
    return party, monsters


def test_runs_a_batch(sides, mocker):
    party, monsters = sides
    print_summary = mocker.patch("encountersim.main.print_summary")
    print_log = mocker.patch("encountersim.main.print_log")

    assert cli.main(["--party", str(party), "--monsters", str(monsters), "-n", "3", "--seed", "1"]) == 0

    batch, party_names, monster_names = print_summary.call_args.args
    assert len(batch.results) == 3
    assert party_names == ["Brom"]
    assert monster_names == ["Goblin (1)", "Goblin (2)"]
    print_log.assert_not_called()


def test_show_log_prints_the_first_runs(sides, mocker):
    party, monsters = sides
    mocker.patch("encountersim.main.print_summary")
    print_log = mocker.patch("encountersim.main.print_log")

    cli.main(["--party", str(party), "--monsters", str(monsters), "-n", "4", "--show-log", "2"])

    assert print_log.call_count == 2
    assert print_log.call_args_list[0].args[0].log


def test_bundled_encounter(mocker):
    print_summary = mocker.patch("encountersim.main.print_summary")
    encounter = cli.DATA_DIR / "encounter_orcs.json"
    assert cli.main(["--encounter", str(encounter), "-n", "2", "--seed", "7"]) == 0
    assert len(print_summary.call_args.args[1]) == 4


def test_missing_file_is_reported(tmp_path, capsys):
    assert cli.main(["--party", str(tmp_path / "nope.json"), "-n", "1"]) == 1
    assert "Error:" in capsys.readouterr().out


def test_bad_dice_is_reported(tmp_path, sides, capsys):
    _, monsters = sides
    party = tmp_path / "bad.json"
    party.write_text(json.dumps([{"name": "Brom", "max_hp": 9, "armor_class": 12, "damage": "d"}]))
    assert cli.main(["--party", str(party), "--monsters", str(monsters)]) == 1
    assert "Error:" in capsys.readouterr().out


def test_build_settings():
    settings = cli.build_settings(cli.parse_args(["--max-rounds", "12", "--seed", "abc"]))
    assert settings.max_rounds == 12
    assert settings.seed == "abc"
    assert not settings.record_log
    assert cli.build_settings(cli.parse_args(["--show-log", "1"])).record_log


def test_settings_file_under_flags(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"max_rounds": 30, "seed": 5}))
    settings = cli.build_settings(cli.parse_args(["--settings", str(path), "--seed", "9", "-v"]))
    assert settings.max_rounds == 30
    assert settings.seed == "9"
    assert settings.log_level == "DEBUG"


def test_summary_table():
    summary = SimulationSummary(
        total_simulations=4,
        party_wins=3,
        party_win_percentage=75.0,
        average_rounds=3.5,
        survivor_counts={"Brom": 3},
    )
    table = summary_table(summary, ["Brom"], ["Orc"])
    assert [c.header for c in table.columns] == ["Side", "Name", "Survived", "Rate"]
    assert table.row_count == 2
