from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping

from kattegat.engine.rng import RandomSource, pick
from kattegat.engine.types import MOVE_LIST, ZONE_LIST, AIStyle, MoveId, Zone
from kattegat.rules.ruleset import AIStyleRule, MoveDef

if TYPE_CHECKING:
    from kattegat.engine.melee import MeleeCombatSession

logger = logging.getLogger(__name__)


def affordable_moves(stamina: int, moves: Mapping[MoveId, MoveDef]) -> list[MoveId]:
    return [move_id for move_id in MOVE_LIST if moves[move_id].stamina_cost <= stamina]


def choose_move(
    rule: AIStyleRule,
    stamina: int,
    rng: RandomSource,
    moves: Mapping[MoveId, MoveDef],
) -> MoveId:
    """Walk the style's weighted branches with a single roll.

    A branch whose move is out of reach passes the roll on to the next one.
    With nothing affordable the fighter is forced to dodge without rolling.
    """
    affordable = affordable_moves(stamina, moves)
    if not affordable:
        return MoveId.DODGE

    roll = rng.random()
    for branch in rule.branches:
        if roll < branch.threshold and branch.move in affordable:
            return branch.move
    if rule.fallback in affordable:
        return rule.fallback
    return affordable[0]


def choose_zone(style: AIStyle, last_player_zone: Zone | None, rng: RandomSource) -> Zone:
    if style is AIStyle.DEFENSIVE and last_player_zone is not None:
        return last_player_zone
    return pick(rng, ZONE_LIST)


def enemy_ai(session: "MeleeCombatSession") -> tuple[MoveId, Zone]:
    enemy = session.enemy
    style = AIStyle.parse(enemy.ai_style or AIStyle.BALANCED)
    rule = session.rules.melee.ai_styles[style]

    move = choose_move(rule, enemy.stamina, session.rng, session.rules.melee.moves)
    zone = choose_zone(style, session.last_player_zone, session.rng)

    session.enemy_move = move
    session.enemy_zone = zone
    logger.debug("%s (%s, stamina=%d) picks %s@%s", enemy.name, style.value, enemy.stamina, move.value, zone.value)
    return move, zone
