import json
from pathlib import Path

import pytest

from kattegat.__main__ import auto_fighter, auto_gunner, build_parser, main
from kattegat.engine.rng import make_rng
from kattegat.engine.types import AmmoType
from tests.helpers.factories import make_combat, make_melee


def test_broadside_prints_log_and_outcome(capsys) -> None:
    assert main(["broadside", "--seed", "3"]) == 0

    out = capsys.readouterr().out
    assert out.startswith("Broadside vs ")
    assert "Round 1: Your " in out
    assert "Victor: " in out or "Undecided" in out


def test_broadside_is_reproducible(capsys) -> None:
    main(["broadside", "--seed", "11", "--difficulty", "hard"])
    first = capsys.readouterr().out
    main(["broadside", "--seed", "11", "--difficulty", "hard"])
    assert capsys.readouterr().out == first


@pytest.mark.parametrize("context", ["boarding", "barfight", "duel", "stealth_fight"])
def test_duel_contexts(context: str, capsys) -> None:
    assert main(["duel", "--seed", "5", "--context", context]) == 0
    out = capsys.readouterr().out
    assert "Round 1:" in out
    assert "Victor: " in out or "Undecided" in out


def test_round_cap_reports_undecided(capsys) -> None:
    assert main(["duel", "--seed", "5", "--max-rounds", "1"]) == 0
    assert "Undecided after 1 rounds." in capsys.readouterr().out


def test_snapshot_file_is_used(tmp_path: Path, capsys) -> None:
    path = tmp_path / "save.json"
    path.write_text(json.dumps({"ship": {"hull": 30, "max_hull": 80}, "difficulty": "easy"}), encoding="utf-8")

    assert main(["broadside", "--seed", "2", "--snapshot", str(path)]) == 0
    assert "(easy, seed 2)" in capsys.readouterr().out


def test_bad_snapshot_exits_2(tmp_path: Path, capsys) -> None:
    path = tmp_path / "save.json"
    path.write_text(json.dumps({"ship": {"hull": 300, "max_hull": 80}}), encoding="utf-8")

    assert main(["duel", "--snapshot", str(path)]) == 2
    assert "[kattegat]" in capsys.readouterr().err


def test_non_numeric_bonus_exits_2(tmp_path: Path, capsys) -> None:
    path = tmp_path / "save.json"
    data = {"ship": {"hull": 50, "max_hull": 80}, "crew": {"count": 10, "max": 20, "boarding_bonus": "lots"}}
    path.write_text(json.dumps(data), encoding="utf-8")

    assert main(["duel", "--context", "boarding", "--snapshot", str(path)]) == 2
    assert "boarding_bonus must be an integer" in capsys.readouterr().err


def test_invalid_choice_is_an_argparse_error() -> None:
    with pytest.raises(SystemExit) as exc:
        build_parser().parse_args(["broadside", "--difficulty", "brutal"])
    assert exc.value.code == 2


def test_auto_gunner_switches_away_from_empty_locker() -> None:
    session = make_combat()
    session.ammo_inventory[AmmoType.IRON] = 0

    auto_gunner(make_rng(1))(session)

    assert session.ammo_type is AmmoType.CHAIN
    assert 55.0 <= session.power <= 95.0
    assert abs(session.aim.x) <= 10.0 and abs(session.aim.y) <= 10.0


def test_auto_fighter_picks_affordable_moves() -> None:
    session = make_melee()
    session.player.stamina = 15
    fighter = auto_fighter(make_rng(9))
    for _ in range(20):
        move, _zone = fighter(session)
        assert session.rules.move(move).stamina_cost <= 15
