from __future__ import annotations

from dataclasses import replace
from typing import Callable

from kattegat.engine.melee import MeleeCombatSession, create_melee_state
from kattegat.engine.ranged import RangedCombatSession, create_combat_state
from kattegat.engine.rng import RandomSource, make_rng
from kattegat.engine.snapshot import GameSnapshot
from kattegat.engine.types import AIStyle, MeleeContext
from kattegat.rules.ruleset import OpponentTemplate, default_ruleset

# Strength 10 keeps the strength scaling at exactly 1.0
DUMMY = OpponentTemplate(name="Training Dummy", hp=100, strength=10, agility=5, ai_style=AIStyle.BALANCED)


def make_snapshot(**overrides) -> GameSnapshot:
    """Healthy 100-hull ship with no crew, fleet or convoy subsystems."""
    return replace(GameSnapshot(hull=100, max_hull=100), **overrides)


def make_combat(
    *,
    seed: int = 1,
    snapshot: GameSnapshot | None = None,
    rng: RandomSource | None = None,
    apply: Callable[[RangedCombatSession], None] | None = None,
) -> RangedCombatSession:
    session = create_combat_state(
        snapshot or make_snapshot(),
        rng if rng is not None else make_rng(seed),
        rules=default_ruleset(),
    )
    if apply is not None:
        apply(session)
    return session


def make_melee(
    context: MeleeContext | str = MeleeContext.DUEL,
    *,
    seed: int = 1,
    snapshot: GameSnapshot | None = None,
    opponent: OpponentTemplate | None = None,
    rng: RandomSource | None = None,
    apply: Callable[[MeleeCombatSession], None] | None = None,
) -> MeleeCombatSession:
    session = create_melee_state(
        snapshot or make_snapshot(),
        context,
        opponent,
        rng if rng is not None else make_rng(seed),
        rules=default_ruleset(),
    )
    if apply is not None:
        apply(session)
    return session
