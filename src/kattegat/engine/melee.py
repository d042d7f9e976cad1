"""Turn-based melee duels.

Both fighters commit a move and a zone, then the round is resolved
simultaneously: each direction is computed from the pre-round selections
before any hit points or stamina change.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from kattegat.engine.ai import enemy_ai
from kattegat.engine.rng import RandomSource, make_rng, rand_range, round_half_up
from kattegat.engine.snapshot import GameSnapshot
from kattegat.engine.types import (
    AIStyle,
    Faction,
    MeleeContext,
    MeleePhase,
    MeleePhaseError,
    MoveId,
    ReturnMode,
    Side,
    Zone,
)
from kattegat.rules.ruleset import MoveDef, OpponentTemplate, Ruleset, default_ruleset

logger = logging.getLogger(__name__)

STRENGTH_BASELINE = 10
VARIANCE_FLOOR = 0.8
VARIANCE_SPREAD = 0.4


@dataclass(slots=True)
class MeleeCombatant:
    name: str
    hp: int
    max_hp: int
    stamina: int
    max_stamina: int
    strength: int
    agility: int = 0
    ai_style: AIStyle | None = None

    @classmethod
    def from_template(cls, template: OpponentTemplate, stamina: int) -> "MeleeCombatant":
        return cls(
            name=template.name,
            hp=template.hp,
            max_hp=template.hp,
            stamina=stamina,
            max_stamina=stamina,
            strength=template.strength,
            agility=template.agility,
            ai_style=template.ai_style,
        )


@dataclass(frozen=True, slots=True)
class MeleeExchange:
    round: int
    player_move: MoveId
    player_zone: Zone
    enemy_move: MoveId
    enemy_zone: Zone
    damage_to_enemy: int
    damage_to_player: int
    lines: tuple[str, ...]


@dataclass(slots=True)
class MeleeCombatSession:
    rng: RandomSource
    rules: Ruleset
    player: MeleeCombatant
    enemy: MeleeCombatant
    context: MeleeContext
    return_mode: ReturnMode
    phase: MeleePhase = MeleePhase.CHOOSE_MOVE
    player_move: MoveId | None = None
    player_zone: Zone | None = None
    enemy_move: MoveId | None = None
    enemy_zone: Zone | None = None
    round: int = 0
    log: deque[str] = field(default_factory=lambda: deque(maxlen=4))
    victor: Side | None = None
    loot: Any = None
    last_player_zone: Zone = Zone.MID
    last_exchange: MeleeExchange | None = None
    # Set when boarding an overworld ship
    faction: Faction | None = None
    npc_id: str | None = None
    reputation_action: str | None = None


def create_melee_state(
    snapshot: GameSnapshot,
    context: MeleeContext | str,
    opponent_override: OpponentTemplate | None = None,
    rng: RandomSource | None = None,
    *,
    rules: Ruleset | None = None,
) -> MeleeCombatSession:
    rules = rules or default_ruleset()
    rng = rng if rng is not None else make_rng()
    config = rules.melee
    context = MeleeContext.parse(context)
    context_rule = rules.context_rule(context)

    template = opponent_override or rules.opponent(context_rule.opponent)

    strength = config.player_strength
    hp = config.player_hp
    if context is MeleeContext.BOARDING:
        bonus = snapshot.boarding_bonus
        strength += bonus // 2
        hp += bonus * 3
    if context_rule.player_hp is not None:
        hp = context_rule.player_hp

    session = MeleeCombatSession(
        rng=rng,
        rules=rules,
        player=MeleeCombatant(
            name="You",
            hp=hp,
            max_hp=hp,
            stamina=config.player_stamina,
            max_stamina=config.player_stamina,
            strength=strength,
        ),
        enemy=MeleeCombatant.from_template(template, config.enemy_stamina),
        context=context,
        return_mode=context_rule.return_mode,
        log=deque(maxlen=config.log_capacity),
    )
    logger.debug(
        "Melee (%s) vs %s [%s]: player hp=%d str=%d, enemy hp=%d str=%d",
        context.value,
        template.name,
        template.ai_style.value,
        hp,
        strength,
        template.hp,
        template.strength,
    )
    return session


def can_afford_move(session: MeleeCombatSession, move_id: MoveId | str) -> bool:
    return session.player.stamina >= session.rules.move(move_id).stamina_cost


def resolve_round(session: MeleeCombatSession) -> MeleeExchange:
    if None in (session.player_move, session.player_zone, session.enemy_move, session.enemy_zone):
        raise MeleePhaseError("Both fighters must pick a move and a zone before the round resolves")

    session.round += 1
    rules = session.rules
    pm, pz = MoveId.parse(session.player_move), Zone.parse(session.player_zone)
    em, ez = MoveId.parse(session.enemy_move), Zone.parse(session.enemy_zone)
    p_def = rules.move(pm)
    e_def = rules.move(em)

    for fighter, move in ((session.player, p_def), (session.enemy, e_def)):
        if fighter.stamina < move.stamina_cost:
            logger.warning("%s commits %s without the stamina for it", fighter.name, move.id.value)

    damage_to_enemy = _strike(session.rng, p_def, pz, em, ez, session.player.strength)
    damage_to_player = _strike(session.rng, e_def, ez, pm, pz, session.enemy.strength)

    session.enemy.hp = max(0, session.enemy.hp - damage_to_enemy)
    session.player.hp = max(0, session.player.hp - damage_to_player)

    regen = rules.melee.stamina_regen
    for fighter, move in ((session.player, p_def), (session.enemy, e_def)):
        fighter.stamina = max(0, fighter.stamina - move.stamina_cost)
        fighter.stamina = min(fighter.max_stamina, fighter.stamina + regen)

    lines = (
        _describe_player(p_def, pz, em, ez, damage_to_enemy),
        _describe_enemy(session.enemy.name, e_def, ez, damage_to_player),
    )
    session.log.extend(lines)
    session.last_player_zone = pz

    exchange = MeleeExchange(
        round=session.round,
        player_move=pm,
        player_zone=pz,
        enemy_move=em,
        enemy_zone=ez,
        damage_to_enemy=damage_to_enemy,
        damage_to_player=damage_to_player,
        lines=lines,
    )
    session.last_exchange = exchange
    logger.debug(
        "Melee round %d: %s@%s vs %s@%s -> enemy -%d, player -%d",
        session.round,
        pm.value,
        pz.value,
        em.value,
        ez.value,
        damage_to_enemy,
        damage_to_player,
    )
    return exchange


def check_melee_end(session: MeleeCombatSession) -> bool:
    if session.enemy.hp <= 0:
        session.victor = Side.PLAYER
        return True
    if session.player.hp <= 0:
        session.victor = Side.ENEMY
        return True
    return False


def select_move(session: MeleeCombatSession, move_id: MoveId | str) -> bool:
    """Pick the player's move; returns False (no transition) when it cannot be afforded."""
    _require_phase(session, MeleePhase.CHOOSE_MOVE)
    move = MoveId.parse(move_id)
    if not can_afford_move(session, move):
        return False
    session.player_move = move
    session.phase = MeleePhase.CHOOSE_ZONE
    return True


def back_to_move(session: MeleeCombatSession) -> None:
    _require_phase(session, MeleePhase.CHOOSE_ZONE)
    session.phase = MeleePhase.CHOOSE_MOVE


def select_zone(session: MeleeCombatSession, zone: Zone | str) -> MeleeExchange:
    """Commit the player's zone, let the opponent choose, and resolve the round."""
    _require_phase(session, MeleePhase.CHOOSE_ZONE)
    session.player_zone = Zone.parse(zone)
    enemy_ai(session)
    exchange = resolve_round(session)
    session.phase = MeleePhase.ANIMATE
    return exchange


def finish_animation(session: MeleeCombatSession) -> MeleePhase:
    _require_phase(session, MeleePhase.ANIMATE)
    session.phase = MeleePhase.RESULT if check_melee_end(session) else MeleePhase.CHOOSE_MOVE
    return session.phase


def _require_phase(session: MeleeCombatSession, expected: MeleePhase) -> None:
    if session.phase is not expected:
        raise MeleePhaseError(f"Expected melee phase {expected.value}, currently {session.phase.value}")


def _strike(
    rng: RandomSource,
    attack: MoveDef,
    attack_zone: Zone,
    defence: MoveId,
    defence_zone: Zone,
    strength: int,
) -> int:
    """Damage dealt by one side's move to the other, from pre-round selections."""
    power = strength / STRENGTH_BASELINE
    same_zone = attack_zone is defence_zone

    if attack.id is MoveId.DODGE:
        return 0
    if attack.riposte:
        if defence not in (MoveId.DODGE, MoveId.PARRY) and same_zone:
            return round_half_up(rand_range(rng, *attack.riposte_damage) * power)
        return 0
    if defence is MoveId.DODGE:
        return 0
    if defence is MoveId.PARRY and same_zone:
        return 0
    variance = VARIANCE_FLOOR + rng.random() * VARIANCE_SPREAD
    return round_half_up(rand_range(rng, *attack.damage) * power * variance)


def _describe_player(move: MoveDef, zone: Zone, enemy_move: MoveId, enemy_zone: Zone, damage: int) -> str:
    verb = move.label.lower()
    if move.id is MoveId.DODGE:
        return "You dodge aside."
    if move.riposte:
        if damage > 0:
            return f"You parry and riposte! {damage} dmg!"
        if enemy_move not in (MoveId.DODGE, MoveId.PARRY) and zone is not enemy_zone:
            return "Your parry misses the mark."
        return "You raise your guard."
    if damage > 0:
        return f"Your {verb} hits {zone.value}! {damage} dmg!"
    return f"Your {verb} is {'dodged' if enemy_move is MoveId.DODGE else 'blocked'}!"


def _describe_enemy(name: str, move: MoveDef, zone: Zone, damage: int) -> str:
    verb = move.label.lower()
    if move.id is MoveId.DODGE:
        return f"{name} dodges."
    if move.riposte:
        if damage > 0:
            return f"{name} ripostes! {damage} dmg!"
        return f"{name} guards."
    if damage > 0:
        suffix = "es" if verb.endswith(("sh", "ch", "s")) else "s"
        return f"{name} {verb}{suffix} {zone.value}! {damage} dmg!"
    return f"{name}'s {verb} misses!"
