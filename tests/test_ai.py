import pytest
from hypothesis import given
from hypothesis import strategies as st

from kattegat.engine.ai import affordable_moves, choose_move, choose_zone, enemy_ai
from kattegat.engine.types import AIStyle, MoveId, Zone
from kattegat.rules.ruleset import default_ruleset
from tests.helpers.factories import make_melee
from tests.helpers.fakes import ScriptedRandom
from tests.helpers.strategies import unit_rolls, zones


def _choose(style: AIStyle, stamina: int, roll: float | None) -> tuple[MoveId, ScriptedRandom]:
    rules = default_ruleset()
    rng = ScriptedRandom([] if roll is None else [roll])
    move = choose_move(rules.melee.ai_styles[style], stamina, rng, rules.melee.moves)
    return move, rng


@pytest.mark.parametrize(
    ("style", "roll", "expected"),
    [
        (AIStyle.AGGRESSIVE, 0.1, MoveId.THRUST),
        (AIStyle.AGGRESSIVE, 0.5, MoveId.SLASH),
        (AIStyle.AGGRESSIVE, 0.8, MoveId.PARRY),
        (AIStyle.AGGRESSIVE, 0.95, MoveId.DODGE),
        (AIStyle.DEFENSIVE, 0.1, MoveId.PARRY),
        (AIStyle.DEFENSIVE, 0.5, MoveId.SLASH),
        (AIStyle.DEFENSIVE, 0.7, MoveId.DODGE),
        (AIStyle.DEFENSIVE, 0.9, MoveId.THRUST),
        (AIStyle.DRUNK, 0.3, MoveId.SLASH),
        (AIStyle.DRUNK, 0.6, MoveId.THRUST),
        (AIStyle.DRUNK, 0.8, MoveId.DODGE),
        (AIStyle.DRUNK, 0.9, MoveId.PARRY),
        (AIStyle.BALANCED, 0.2, MoveId.SLASH),
        (AIStyle.BALANCED, 0.4, MoveId.PARRY),
        (AIStyle.BALANCED, 0.6, MoveId.THRUST),
        (AIStyle.BALANCED, 0.8, MoveId.DODGE),
    ],
)
def test_style_branches_with_full_stamina(style: AIStyle, roll: float, expected: MoveId) -> None:
    move, rng = _choose(style, 100, roll)
    assert move is expected
    assert rng.calls == 1


def test_unaffordable_branch_passes_roll_on() -> None:
    # Thrust costs 35: the roll falls through to the slash branch
    move, _ = _choose(AIStyle.AGGRESSIVE, 30, 0.1)
    assert move is MoveId.SLASH


def test_unaffordable_fallback_takes_first_affordable() -> None:
    move, _ = _choose(AIStyle.DEFENSIVE, 20, 0.9)
    assert move is MoveId.SLASH


def test_exhausted_fighter_is_forced_to_dodge_without_rolling() -> None:
    move, rng = _choose(AIStyle.AGGRESSIVE, 5, None)
    assert move is MoveId.DODGE
    assert rng.calls == 0


def test_affordable_moves_keep_move_order() -> None:
    moves = default_ruleset().melee.moves
    assert affordable_moves(20, moves) == [MoveId.SLASH, MoveId.PARRY, MoveId.DODGE]
    assert affordable_moves(9, moves) == []


@given(zone=zones)
def test_defensive_mirrors_last_player_zone(zone: Zone) -> None:
    rng = ScriptedRandom([])
    assert choose_zone(AIStyle.DEFENSIVE, zone, rng) is zone
    assert rng.calls == 0


@pytest.mark.parametrize("style", [AIStyle.AGGRESSIVE, AIStyle.DRUNK, AIStyle.BALANCED])
@pytest.mark.parametrize(("roll", "expected"), [(0.0, Zone.HIGH), (0.5, Zone.MID), (0.99, Zone.LOW)])
def test_other_styles_pick_zone_uniformly(style: AIStyle, roll: float, expected: Zone) -> None:
    assert choose_zone(style, Zone.MID, ScriptedRandom([roll])) is expected


def test_enemy_ai_sets_selection() -> None:
    session = make_melee("stealth_fight")
    session.last_player_zone = Zone.LOW
    session.rng = ScriptedRandom([0.1])

    assert enemy_ai(session) == (MoveId.PARRY, Zone.LOW)
    assert (session.enemy_move, session.enemy_zone) == (MoveId.PARRY, Zone.LOW)


def test_enemy_without_style_plays_balanced() -> None:
    session = make_melee()
    session.enemy.ai_style = None
    session.rng = ScriptedRandom([0.2, 0.0])
    assert enemy_ai(session) == (MoveId.SLASH, Zone.HIGH)


@given(
    style=st.sampled_from(list(AIStyle)),
    stamina=st.integers(min_value=10, max_value=100),
    roll=unit_rolls,
)
def test_chosen_move_is_always_affordable(style: AIStyle, stamina: int, roll: float) -> None:
    rules = default_ruleset()
    move, _ = _choose(style, stamina, roll)
    assert rules.move(move).stamina_cost <= stamina
