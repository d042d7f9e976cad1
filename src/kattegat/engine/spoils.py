"""Post-fight consequences.

Nothing here touches the persistent game: every function returns a hint
record that the overworld applies to its own state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from kattegat.engine.melee import MeleeCombatSession
from kattegat.engine.ranged import RangedCombatSession
from kattegat.engine.rng import RandomSource, chance, pick, round_half_up
from kattegat.engine.types import Difficulty, Faction, MeleeContext, ReturnMode, Side
from kattegat.rules.ruleset import Ruleset

logger = logging.getLogger(__name__)

MORALE_VICTORY = "victory"
MORALE_LOSS = "loss"


@dataclass(frozen=True, slots=True)
class CannonSpoils:
    victor: Side | None
    hull: int
    gold: int = 0
    goods: dict[str, int] = field(default_factory=dict)
    treasure_map: bool = False
    morale_event: str | None = None
    reputation_action: str | None = None
    npc_id: str | None = None


@dataclass(frozen=True, slots=True)
class CapturedShip:
    ship_type: str
    name: str
    hull_fraction: float


@dataclass(frozen=True, slots=True)
class MeleeAftermath:
    context: MeleeContext
    victor: Side | None
    return_mode: ReturnMode
    gold: int = 0
    cargo: str | None = None
    cargo_qty: int = 0
    captured_ship: CapturedShip | None = None
    morale_event: str | None = None
    morale_delta: int = 0
    hull_damage: int = 0
    # Outcome flag for duels and stealth fights, read by the island/fort modes
    outcome_flag: str | None = None
    npc_id: str | None = None


def attack_reputation(rules: Ruleset, faction: Faction | None) -> str | None:
    if faction is None:
        return None
    return rules.spoils.attack_actions.get(faction)


def roll_cannon_spoils(
    session: RangedCombatSession,
    rng: RandomSource,
    rules: Ruleset | None = None,
    difficulty: Difficulty | str = Difficulty.NORMAL,
) -> CannonSpoils:
    rules = rules or session.rules
    hull = session.player.hull

    if session.victor is not Side.PLAYER:
        morale = MORALE_LOSS if session.victor is Side.ENEMY else None
        return CannonSpoils(victor=session.victor, hull=hull, morale_event=morale, npc_id=session.npc_id)

    config = rules.spoils.cannon
    gold_mult = rules.settings_for(difficulty).gold_mult
    gold = round_half_up((config.gold_base + int(rng.random() * config.gold_spread)) * gold_mult)

    is_merchant = session.faction is Faction.MERCHANT
    key = session.faction.value if session.faction is not None else "default"
    cargo_chance = config.cargo_chance.get(key, config.cargo_chance["default"])

    goods: dict[str, int] = {}
    for good in config.goods:
        if chance(rng, cargo_chance):
            goods[good] = 1 + int(rng.random() * config.merchant_qty_spread) if is_merchant else 1

    treasure_map = chance(rng, config.treasure_map_chance)
    reputation = rules.spoils.defeat_actions.get(session.faction) if session.faction else None

    logger.info("Plundered %d gold and %d kinds of cargo from %s", gold, len(goods), session.enemy.name)
    return CannonSpoils(
        victor=Side.PLAYER,
        hull=hull,
        gold=gold,
        goods=goods,
        treasure_map=treasure_map,
        morale_event=MORALE_VICTORY,
        reputation_action=reputation,
        npc_id=session.npc_id,
    )


def settle_melee(
    session: MeleeCombatSession,
    rng: RandomSource,
    rules: Ruleset | None = None,
    fleet_size: int | None = None,
) -> MeleeAftermath:
    """Work out what a finished melee means for the wider game.

    ``fleet_size`` is None when the player has no fleet, in which case a
    boarded ship can never be captured. The result is also stored on
    ``session.loot``.
    """
    rules = rules or session.rules
    spoils = rules.spoils
    won = session.victor is Side.PLAYER
    base = {
        "context": session.context,
        "victor": session.victor,
        "return_mode": session.return_mode,
        "npc_id": session.npc_id,
    }

    if session.victor is None:
        logger.warning("Settling a melee vs %s that has no victor", session.enemy.name)
        aftermath = MeleeAftermath(**base)
    elif session.context is MeleeContext.BOARDING and won:
        aftermath = _settle_boarding(session, rng, rules, fleet_size, base)
    elif session.context is MeleeContext.BOARDING:
        aftermath = MeleeAftermath(**base, hull_damage=spoils.defeat_hull_damage, morale_event=MORALE_LOSS)
    elif session.context is MeleeContext.BARFIGHT:
        stakes = spoils.barfight
        if won:
            aftermath = MeleeAftermath(**base, gold=stakes.win_gold, morale_delta=stakes.win_morale)
        else:
            aftermath = MeleeAftermath(**base, gold=-stakes.loss_gold, morale_delta=-stakes.loss_morale)
    elif session.context is MeleeContext.DUEL:
        outcome = f"duel_{session.victor.value}"
        hull_damage = 0 if won else spoils.defeat_hull_damage
        aftermath = MeleeAftermath(**base, hull_damage=hull_damage, outcome_flag=outcome)
    else:
        aftermath = MeleeAftermath(**base, outcome_flag=f"stealth_fight_{session.victor.value}")

    session.loot = aftermath
    return aftermath


def _settle_boarding(
    session: MeleeCombatSession,
    rng: RandomSource,
    rules: Ruleset,
    fleet_size: int | None,
    base: dict,
) -> MeleeAftermath:
    config = rules.spoils.boarding
    gold = config.gold_base + int(rng.random() * config.gold_spread)
    cargo = pick(rng, config.goods)
    cargo_qty = config.cargo_qty_base + int(rng.random() * config.cargo_qty_spread)

    captured = None
    if fleet_size is not None and chance(rng, config.capture_chance) and fleet_size < config.max_fleet_size:
        faction = session.faction or Faction.PIRATE
        ship_type = rules.spoils.faction_ship_types.get(faction, rules.spoils.default_ship_type)
        # The captain's name carries the ship's name
        name = session.enemy.name.removesuffix(" Captain") if session.faction else "Captured Ship"
        captured = CapturedShip(ship_type=ship_type, name=name, hull_fraction=config.captured_hull_fraction)
        logger.info("Captured %s (%s)", name, ship_type)

    return MeleeAftermath(
        **base,
        gold=gold,
        cargo=cargo,
        cargo_qty=cargo_qty,
        captured_ship=captured,
        morale_event=MORALE_VICTORY,
    )
