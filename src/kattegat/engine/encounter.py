"""Drives whole fights: overworld hand-off, round sequencing and auto-play."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from kattegat.engine.melee import (
    MeleeCombatSession,
    MeleeExchange,
    create_melee_state,
    finish_animation,
    select_move,
    select_zone,
)
from kattegat.engine.ranged import (
    RangedCombatSession,
    ShotResult,
    apply_damage_to_enemy,
    calculate_player_damage,
    check_combat_end,
    create_combat_state,
    enemy_fire,
)
from kattegat.engine.rng import RandomSource
from kattegat.engine.snapshot import GameSnapshot
from kattegat.engine.spoils import attack_reputation
from kattegat.engine.trajectory import flight_time, landing_distance
from kattegat.engine.types import (
    MOVE_LIST,
    AIStyle,
    Difficulty,
    Faction,
    MeleeContext,
    MeleePhase,
    MoveId,
    Side,
    Zone,
)
from kattegat.rules.ruleset import OpponentTemplate, Ruleset, default_ruleset

logger = logging.getLogger(__name__)

BOSS_ID = "english_flagship"
DEFAULT_NPC_CREW = 30

CAPTAIN_BASE_HP = 60
CAPTAIN_BASE_STRENGTH = 8
CAPTAIN_AGILITY = 7

Gunner = Callable[[RangedCombatSession], None]
Fighter = Callable[[MeleeCombatSession], "tuple[MoveId | str, Zone | str]"]


@dataclass(frozen=True, slots=True)
class NpcShip:
    id: str
    name: str
    faction: Faction
    hull: int
    max_hull: int
    crew: int | None = None
    max_crew: int | None = None
    masts: int = 2
    story_boss: bool = False


@dataclass(frozen=True, slots=True)
class CannonRound:
    round: int
    flight_time: float
    landing_distance: float
    player_shot: ShotResult
    enemy_shot: ShotResult | None
    resolved: bool
    victor: Side | None


def attack_npc(
    snapshot: GameSnapshot,
    npc: NpcShip,
    rng: RandomSource | None = None,
    rules: Ruleset | None = None,
) -> RangedCombatSession:
    rules = rules or default_ruleset()
    session = create_combat_state(snapshot, rng, rules=rules)

    enemy = session.enemy
    if npc.story_boss:
        boss = rules.boss(BOSS_ID)
        enemy.name, enemy.hull, enemy.max_hull = boss.name, boss.hull, boss.hull
        enemy.crew, enemy.max_crew = boss.crew, boss.crew
        enemy.masts = enemy.max_masts = boss.masts
    else:
        crew = npc.crew if npc.crew is not None else DEFAULT_NPC_CREW
        enemy.name = npc.name
        enemy.hull, enemy.max_hull = npc.hull, npc.max_hull
        enemy.crew = crew
        enemy.max_crew = npc.max_crew if npc.max_crew is not None else crew
        enemy.masts = enemy.max_masts = npc.masts

    session.faction = npc.faction
    session.npc_id = npc.id
    session.reputation_action = attack_reputation(rules, npc.faction)
    logger.info("Engaging %s (%s) at the guns", enemy.name, npc.faction.value)
    return session


def captain_for(npc: NpcShip) -> OpponentTemplate:
    crew = npc.crew or DEFAULT_NPC_CREW
    return OpponentTemplate(
        name=f"{npc.name} Captain",
        hp=CAPTAIN_BASE_HP + crew,
        strength=CAPTAIN_BASE_STRENGTH + crew // 10,
        agility=CAPTAIN_AGILITY,
        ai_style=AIStyle.AGGRESSIVE if npc.faction is Faction.PIRATE else AIStyle.BALANCED,
    )


def board_npc(
    snapshot: GameSnapshot,
    npc: NpcShip,
    rng: RandomSource | None = None,
    rules: Ruleset | None = None,
) -> MeleeCombatSession:
    session = create_melee_state(snapshot, MeleeContext.BOARDING, captain_for(npc), rng, rules=rules)
    session.faction = npc.faction
    session.npc_id = npc.id
    session.reputation_action = attack_reputation(session.rules, npc.faction)
    logger.info("Boarding %s (%s)", npc.name, npc.faction.value)
    return session


def fire_round(session: RangedCombatSession, damage_taken_mult: float = 1.0) -> CannonRound:
    """Play one exchange of fire: our broadside, then theirs if they still can."""
    round_no = session.round
    ball_time = flight_time(session.power)
    ball_distance = landing_distance(session.power)

    player_shot = calculate_player_damage(session)
    apply_damage_to_enemy(session, player_shot)

    enemy_shot = None
    if not check_combat_end(session):
        enemy_shot = enemy_fire(session, damage_taken_mult)
        if not check_combat_end(session):
            session.round += 1

    return CannonRound(
        round=round_no,
        flight_time=ball_time,
        landing_distance=ball_distance,
        player_shot=player_shot,
        enemy_shot=enemy_shot,
        resolved=session.resolved,
        victor=session.victor,
    )


def run_cannon_battle(
    session: RangedCombatSession,
    gunner: Gunner,
    max_rounds: int = 50,
    difficulty: Difficulty | str = Difficulty.NORMAL,
) -> list[CannonRound]:
    mult = session.rules.settings_for(difficulty).damage_taken_mult
    rounds: list[CannonRound] = []
    while not session.resolved and len(rounds) < max_rounds:
        gunner(session)
        rounds.append(fire_round(session, mult))
    if not session.resolved:
        logger.warning("Broadside vs %s still undecided after %d rounds", session.enemy.name, max_rounds)
    return rounds


def run_melee(
    session: MeleeCombatSession,
    fighter: Fighter,
    max_rounds: int = 100,
) -> list[MeleeExchange]:
    exchanges: list[MeleeExchange] = []
    while session.phase is not MeleePhase.RESULT and len(exchanges) < max_rounds:
        move, zone = fighter(session)
        if not select_move(session, move):
            fallback = _cheapest_move(session)
            logger.debug("Cannot afford %s, falling back to %s", MoveId.parse(move).value, fallback.value)
            if not select_move(session, fallback):
                # Out of breath: forced to dodge like the opponent would be
                session.player_move = fallback
                session.phase = MeleePhase.CHOOSE_ZONE
        exchanges.append(select_zone(session, zone))
        finish_animation(session)
    if session.phase is not MeleePhase.RESULT:
        logger.warning("Melee vs %s still undecided after %d rounds", session.enemy.name, max_rounds)
    return exchanges


def _cheapest_move(session: MeleeCombatSession) -> MoveId:
    return min(MOVE_LIST, key=lambda move_id: session.rules.move(move_id).stamina_cost)
