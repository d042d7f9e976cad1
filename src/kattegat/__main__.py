"""Headless fight simulator.

    python -m kattegat broadside --seed 7 --difficulty hard
    python -m kattegat duel --context barfight
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from pathlib import Path

from kattegat.engine.encounter import Fighter, Gunner, run_cannon_battle, run_melee
from kattegat.engine.melee import MeleeCombatSession, can_afford_move, create_melee_state
from kattegat.engine.ranged import RangedCombatSession, create_combat_state, lock_aim, select_ammo, set_power
from kattegat.engine.rng import RandomSource, derive_seed, make_rng, pick, rand_range
from kattegat.engine.snapshot import GameSnapshot, SnapshotError, load_snapshot
from kattegat.engine.spoils import roll_cannon_spoils, settle_melee
from kattegat.engine.types import AMMO_CYCLE, MOVE_LIST, ZONE_LIST, CombatError, Difficulty, MeleeContext
from kattegat.rules.ruleset import RulesError, default_ruleset

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT = GameSnapshot(hull=100, max_hull=100)

# Gunner's spread around the crosshair and preferred charge
AIM_SPREAD = 10.0
POWER_RANGE = (55.0, 95.0)


def auto_gunner(rng: RandomSource) -> Gunner:
    def gunner(session: RangedCombatSession) -> None:
        loaded = [ammo for ammo in AMMO_CYCLE if session.ammo_inventory.get(ammo, 0) > 0]
        if session.ammo_inventory.get(session.ammo_type, 0) <= 0 and loaded:
            select_ammo(session, loaded[0])
        lock_aim(session, rand_range(rng, -AIM_SPREAD, AIM_SPREAD), rand_range(rng, -AIM_SPREAD, AIM_SPREAD))
        set_power(session, rand_range(rng, *POWER_RANGE))

    return gunner


def auto_fighter(rng: RandomSource) -> Fighter:
    def fighter(session: MeleeCombatSession):
        moves = [move for move in MOVE_LIST if can_afford_move(session, move)] or list(MOVE_LIST)
        return pick(rng, moves), pick(rng, ZONE_LIST)

    return fighter


def _load_snapshot(path: str | None) -> GameSnapshot:
    if path is None:
        return DEFAULT_SNAPSHOT
    return load_snapshot(Path(path))


def _cmd_broadside(args: argparse.Namespace, seed: int) -> int:
    rules = default_ruleset()
    snapshot = _load_snapshot(args.snapshot)
    difficulty = Difficulty(args.difficulty) if args.difficulty else snapshot.difficulty

    session = create_combat_state(
        snapshot, make_rng(derive_seed(seed, encounter=0, stream="broadside", purpose="combat")), rules=rules
    )
    gunner = auto_gunner(make_rng(derive_seed(seed, encounter=0, stream="broadside", purpose="gunner")))
    print(f"Broadside vs {session.enemy.name} ({difficulty.value}, seed {seed})")

    run_cannon_battle(session, gunner, max_rounds=args.max_rounds, difficulty=difficulty)
    for line in session.combat_log:
        print(f"  {line}")

    if not session.resolved:
        print(f"Undecided after {args.max_rounds} rounds.")
        return 0
    print(f"Victor: {session.victor.value}")

    spoils = roll_cannon_spoils(
        session, make_rng(derive_seed(seed, encounter=0, stream="broadside", purpose="spoils")), rules, difficulty
    )
    print(f"Hull: {spoils.hull}/{session.player.max_hull}")
    if spoils.gold:
        cargo = ", ".join(f"{qty} {good}" for good, qty in spoils.goods.items()) or "none"
        print(f"Plundered: {spoils.gold} rigsdaler. Cargo: {cargo}")
    if spoils.treasure_map:
        print("Found a treasure map!")
    return 0


def _cmd_duel(args: argparse.Namespace, seed: int) -> int:
    rules = default_ruleset()
    snapshot = _load_snapshot(args.snapshot)
    context = MeleeContext.parse(args.context)

    session = create_melee_state(
        snapshot, context, rng=make_rng(derive_seed(seed, encounter=0, stream="duel", purpose="combat")), rules=rules
    )
    fighter = auto_fighter(make_rng(derive_seed(seed, encounter=0, stream="duel", purpose="fighter")))
    print(f"{context.value.replace('_', ' ').title()} vs {session.enemy.name} (seed {seed})")

    for exchange in run_melee(session, fighter, max_rounds=args.max_rounds):
        print(f"Round {exchange.round}:")
        for line in exchange.lines:
            print(f"  {line}")
        print(f"  (them -{exchange.damage_to_enemy}, you -{exchange.damage_to_player})")

    if session.victor is None:
        print(f"Undecided after {args.max_rounds} rounds.")
        return 0

    aftermath = settle_melee(
        session, make_rng(derive_seed(seed, encounter=0, stream="duel", purpose="spoils")), rules, fleet_size=1
    )
    print(f"Victor: {session.victor.value}. Returning to {aftermath.return_mode.value}.")
    if aftermath.gold:
        print(f"Gold: {aftermath.gold:+d}")
    if aftermath.cargo:
        print(f"Cargo: {aftermath.cargo_qty} {aftermath.cargo}")
    if aftermath.captured_ship:
        print(f"Ship captured: {aftermath.captured_ship.name} ({aftermath.captured_ship.ship_type})")
    if aftermath.hull_damage:
        print(f"Hull -{aftermath.hull_damage}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m kattegat",
        description="Auto-play a cannon broadside or a melee duel from the combat core.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log engine decisions at DEBUG level.")
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--seed", type=int, default=None, help="Base seed (default: random).")
    common.add_argument("--snapshot", default=None, help="Game snapshot JSON file.")

    broadside = sub.add_parser("broadside", parents=[common], help="Fight a ship at the guns.")
    broadside.add_argument("--difficulty", choices=[d.value for d in Difficulty], default=None)
    broadside.add_argument("--max-rounds", type=int, default=50, help="Round cap (default: %(default)s).")
    broadside.set_defaults(handler=_cmd_broadside)

    duel = sub.add_parser("duel", parents=[common], help="Fight hand to hand.")
    duel.add_argument("--context", choices=[c.value for c in MeleeContext], default=MeleeContext.DUEL.value)
    duel.add_argument("--max-rounds", type=int, default=100, help="Round cap (default: %(default)s).")
    duel.set_defaults(handler=_cmd_duel)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    seed = args.seed if args.seed is not None else random.randrange(2**32)
    logger.debug("Base seed %d", seed)
    try:
        return args.handler(args, seed)
    except (RulesError, SnapshotError, CombatError) as exc:
        print(f"[kattegat] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
