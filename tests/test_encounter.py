import pytest
from hypothesis import given, settings

from kattegat.engine.encounter import (
    NpcShip,
    attack_npc,
    board_npc,
    captain_for,
    fire_round,
    run_cannon_battle,
    run_melee,
)
from kattegat.engine.ranged import lock_aim, set_power
from kattegat.engine.rng import make_rng
from kattegat.engine.types import AIStyle, Difficulty, Faction, MeleeContext, MeleePhase, MoveId, Side
from tests.helpers.factories import make_combat, make_melee, make_snapshot
from tests.helpers.fakes import ScriptedRandom
from tests.helpers.invariants import assert_fighter_bounds, assert_ship_bounds
from tests.helpers.strategies import seeds

BRIG = NpcShip(id="npc-7", name="Gyldenlove", faction=Faction.DANISH, hull=70, max_hull=90, crew=35, max_crew=40, masts=2)


def _dead_centre(session) -> None:
    lock_aim(session, 0.0, 0.0)
    set_power(session, 100.0)


def test_attack_npc_replaces_rolled_enemy() -> None:
    session = attack_npc(make_snapshot(), BRIG, make_rng(5))

    enemy = session.enemy
    assert enemy.name == "Gyldenlove"
    assert (enemy.hull, enemy.max_hull, enemy.crew, enemy.max_crew, enemy.masts) == (70, 90, 35, 40, 2)
    assert session.faction is Faction.DANISH
    assert session.npc_id == "npc-7"
    assert session.reputation_action == "attack_danish"


def test_story_boss_is_the_flagship() -> None:
    boss = NpcShip(id="boss", name="Sovereign", faction=Faction.ENGLISH, hull=1, max_hull=1, story_boss=True)
    session = attack_npc(make_snapshot(), boss, make_rng(5))

    assert session.enemy.name == "HMS Sovereign"
    assert (session.enemy.hull, session.enemy.crew, session.enemy.masts) == (200, 100, 4)
    assert session.reputation_action == "attack_english"


@pytest.mark.parametrize("faction", list(Faction))
def test_boarding_any_faction_carries_attack_hint(faction: Faction) -> None:
    npc = NpcShip(id="x", name="Havfruen", faction=faction, hull=50, max_hull=50)
    session = board_npc(make_snapshot(), npc, make_rng(3))
    assert session.reputation_action == f"attack_{faction.value}"


def test_plain_fights_carry_no_attack_hint() -> None:
    assert make_combat().reputation_action is None
    assert make_melee().reputation_action is None


@pytest.mark.parametrize(
    ("faction", "crew", "hp", "strength", "style"),
    [
        (Faction.PIRATE, 40, 100, 12, AIStyle.AGGRESSIVE),
        (Faction.MERCHANT, 15, 75, 9, AIStyle.BALANCED),
        (Faction.ENGLISH, None, 90, 11, AIStyle.BALANCED),
    ],
)
def test_boarding_captain(faction: Faction, crew, hp: int, strength: int, style: AIStyle) -> None:
    npc = NpcShip(id="x", name="Havfruen", faction=faction, hull=50, max_hull=50, crew=crew)
    captain = captain_for(npc)

    assert captain.name == "Havfruen Captain"
    assert (captain.hp, captain.strength, captain.agility) == (hp, strength, 7)
    assert captain.ai_style is style


def test_board_npc_starts_boarding_melee() -> None:
    session = board_npc(make_snapshot(boarding_bonus=2), BRIG, make_rng(2))

    assert session.context is MeleeContext.BOARDING
    assert session.enemy.name == "Gyldenlove Captain"
    assert session.enemy.hp == 95
    assert session.player.hp == 106
    assert session.faction is Faction.DANISH
    assert session.npc_id == "npc-7"
    assert session.reputation_action == "attack_danish"


def test_fire_round_full_exchange() -> None:
    session = make_combat(rng=ScriptedRandom([0.2]))
    _dead_centre(session)
    # player hull, player crew, enemy accuracy, enemy hull, enemy crew, enemy mast
    session.rng = ScriptedRandom([0.5, 0.0, 0.1, 0.0, 0.0, 0.9])

    report = fire_round(session)

    assert report.round == 1
    assert report.player_shot.hull_dmg == 20
    assert report.enemy_shot is not None and report.enemy_shot.hull_dmg == 8
    assert not report.resolved and report.victor is None
    assert report.flight_time > 0 and report.landing_distance > 0
    assert session.round == 2
    assert session.combat_log == [
        "Round 1: Your iron shot hits! Hull -20, Crew -0",
        "Round 1: The Danish Brig hits! Hull -8, Crew -0",
    ]


def test_sinking_shot_skips_return_fire() -> None:
    session = make_combat()
    _dead_centre(session)
    session.enemy.hull = 5
    session.rng = ScriptedRandom([0.5, 0.0])

    report = fire_round(session)

    assert report.enemy_shot is None
    assert report.resolved and report.victor is Side.PLAYER
    assert session.round == 1


def test_fire_round_passes_difficulty_to_enemy() -> None:
    session = make_combat()
    lock_aim(session, 50.0, 0.0)
    session.rng = ScriptedRandom([0.0, 0.5, 0.5, 0.9])

    report = fire_round(session, damage_taken_mult=0.7)

    assert not report.player_shot.hit
    assert (report.enemy_shot.hull_dmg, report.enemy_shot.crew_dmg) == (10, 1)


@given(seed=seeds)
@settings(max_examples=30, deadline=None)
def test_cannon_battle_always_resolves(seed: int) -> None:
    session = make_combat(seed=seed)
    rounds = run_cannon_battle(session, _dead_centre, max_rounds=50, difficulty=Difficulty.HARD)

    assert session.resolved
    assert session.victor in (Side.PLAYER, Side.ENEMY)
    assert rounds[-1].resolved
    assert [r.round for r in rounds] == list(range(1, len(rounds) + 1))
    assert_ship_bounds(session.player)
    assert_ship_bounds(session.enemy)


def test_cannon_battle_round_cap(caplog) -> None:
    session = make_combat()
    rounds = run_cannon_battle(session, lambda s: lock_aim(s, 50.0, 50.0), max_rounds=2)

    assert len(rounds) == 2
    assert not session.resolved
    assert "still undecided" in caplog.text


@given(seed=seeds)
@settings(max_examples=30, deadline=None)
def test_fixed_slash_melee_always_finishes(seed: int) -> None:
    session = make_melee(seed=seed)
    exchanges = run_melee(session, lambda s: (MoveId.SLASH, "high"), max_rounds=100)

    assert session.phase is MeleePhase.RESULT
    assert session.victor is not None
    assert len(exchanges) == session.round
    assert_fighter_bounds(session.player)
    assert_fighter_bounds(session.enemy)


def test_run_melee_falls_back_when_winded() -> None:
    session = make_melee(seed=4)
    session.player.stamina = 20
    exchanges = run_melee(session, lambda s: ("thrust", "mid"), max_rounds=1)

    assert len(exchanges) == 1
    assert exchanges[0].player_move is MoveId.DODGE
    assert session.phase is MeleePhase.CHOOSE_MOVE


def test_run_melee_forces_dodge_when_exhausted() -> None:
    session = make_melee(seed=4)
    session.player.stamina = 0
    exchanges = run_melee(session, lambda s: ("slash", "low"), max_rounds=1)
    assert exchanges[0].player_move is MoveId.DODGE
