from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from kattegat.engine.rng import RandomSource, chance, make_rng, pick, rand_range, round_half_up
from kattegat.engine.snapshot import GameSnapshot
from kattegat.engine.trajectory import check_hit
from kattegat.engine.types import (
    AMMO_CYCLE,
    AimOffset,
    AmmoType,
    Faction,
    SessionResolvedError,
    Side,
    Wind,
)
from kattegat.rules.ruleset import Ruleset, ShipTemplate, default_ruleset

logger = logging.getLogger(__name__)

DIRECT_HIT_QUALITY = 1.0
NEAR_MISS_QUALITY = 0.4
BASELINE_CANNONS = 2


@dataclass(slots=True)
class ShipCombatant:
    name: str
    hull: int
    max_hull: int
    crew: int
    max_crew: int
    masts: int
    max_masts: int
    cannons: int = 0
    max_cannons: int = 0

    @classmethod
    def from_template(cls, template: ShipTemplate) -> "ShipCombatant":
        return cls(
            name=template.name,
            hull=template.hull,
            max_hull=template.hull,
            crew=template.crew,
            max_crew=template.crew,
            masts=template.masts,
            max_masts=template.masts,
        )

    def take_damage(self, hull: int, crew: int, masts: int) -> None:
        self.hull = _clamp(self.hull - hull, 0, self.max_hull)
        self.crew = _clamp(self.crew - crew, 0, self.max_crew)
        self.masts = _clamp(self.masts - masts, 0, self.max_masts)

    def is_disabled(self) -> bool:
        return self.hull <= 0 or self.crew <= 0


@dataclass(frozen=True, slots=True)
class ShotResult:
    source: Side
    hit: bool
    hull_dmg: int = 0
    crew_dmg: int = 0
    mast_dmg: int = 0
    hit_quality: float = 0.0
    near_miss: bool = False


@dataclass(slots=True)
class RangedCombatSession:
    rng: RandomSource
    rules: Ruleset
    player: ShipCombatant
    enemy: ShipCombatant
    wind: Wind
    ammo_inventory: dict[AmmoType, int]
    round: int = 1
    aim: AimOffset = AimOffset()
    power: float = 0.0
    ammo_type: AmmoType = AmmoType.IRON
    last_shot_result: ShotResult | None = None
    combat_log: list[str] = field(default_factory=list)
    resolved: bool = False
    victor: Side | None = None
    # Set when the fight comes from an overworld encounter
    faction: Faction | None = None
    npc_id: str | None = None
    reputation_action: str | None = None


def create_combat_state(
    snapshot: GameSnapshot,
    rng: RandomSource | None = None,
    *,
    rules: Ruleset | None = None,
) -> RangedCombatSession:
    rules = rules or default_ruleset()
    rng = rng if rng is not None else make_rng()
    gunnery = rules.gunnery
    defaults = gunnery.player_defaults

    template = pick(rng, gunnery.enemy_ships)

    crew = snapshot.crew_count if snapshot.crew_count is not None else defaults.crew
    max_crew = snapshot.max_crew if snapshot.max_crew is not None else defaults.max_crew
    cannons = defaults.base_cannons + snapshot.cannon_bonus + snapshot.escort_cannons()
    masts = snapshot.flagship_masts if snapshot.flagship_masts is not None else defaults.masts

    session = RangedCombatSession(
        rng=rng,
        rules=rules,
        player=ShipCombatant(
            name="You",
            hull=snapshot.hull,
            max_hull=snapshot.max_hull,
            crew=crew,
            max_crew=max_crew,
            masts=masts,
            max_masts=masts,
            cannons=cannons,
            max_cannons=cannons,
        ),
        enemy=ShipCombatant.from_template(template),
        wind=snapshot.wind,
        ammo_inventory=dict(gunnery.starting_ammo),
    )
    logger.debug(
        "Broadside engagement vs %s (hull=%d crew=%d masts=%d), player cannons=%d",
        template.name,
        template.hull,
        template.crew,
        template.masts,
        cannons,
    )
    return session


def calculate_player_damage(session: RangedCombatSession) -> ShotResult:
    profile = session.rules.ammo_profile(session.ammo_type)
    aim = session.aim
    check = check_hit(aim.x, aim.y)

    if check.hit:
        hit_quality = DIRECT_HIT_QUALITY
    elif check.near_miss:
        hit_quality = NEAR_MISS_QUALITY
    else:
        return ShotResult(source=Side.PLAYER, hit=False)

    power_scale = session.power / 100
    cannons = session.player.cannons
    cannon_mult = cannons / BASELINE_CANNONS if cannons else 1.0
    scale = power_scale * hit_quality * cannon_mult

    hull_dmg = round_half_up(rand_range(session.rng, *profile.hull) * scale)
    crew_dmg = round_half_up(rand_range(session.rng, *profile.crew) * scale)

    # Mast-cutting shot only tells on a direct hit fired hard enough
    mast_dmg = 0
    if profile.masts and session.power > session.rules.gunnery.chain_mast_min_power and check.hit:
        mast_dmg = profile.masts

    logger.debug(
        "Player %s shot: dist=%.2f quality=%.1f power=%.0f -> hull=%d crew=%d masts=%d",
        profile.ammo.value,
        check.distance,
        hit_quality,
        session.power,
        hull_dmg,
        crew_dmg,
        mast_dmg,
    )
    return ShotResult(
        source=Side.PLAYER,
        hit=True,
        hull_dmg=hull_dmg,
        crew_dmg=crew_dmg,
        mast_dmg=mast_dmg,
        hit_quality=hit_quality,
        near_miss=check.near_miss,
    )


def apply_damage_to_enemy(session: RangedCombatSession, dmg: ShotResult) -> None:
    _require_active(session)
    ammo = AmmoType.parse(session.ammo_type)
    session.enemy.take_damage(dmg.hull_dmg, dmg.crew_dmg, dmg.mast_dmg)
    session.last_shot_result = replace(dmg, source=Side.PLAYER)

    if dmg.hit:
        message = (
            f"Round {session.round}: Your {ammo.value} shot hits! "
            f"Hull -{dmg.hull_dmg}, Crew -{dmg.crew_dmg}{_mast_suffix(dmg.mast_dmg)}"
        )
    else:
        message = f"Round {session.round}: Your shot misses!"
    session.combat_log.append(message)

    remaining = session.ammo_inventory.get(ammo, 0)
    if remaining <= 0:
        logger.warning("Fired %s shot with an empty locker", ammo.value)
    session.ammo_inventory[ammo] = max(0, remaining - 1)


def enemy_fire(session: RangedCombatSession, damage_taken_mult: float = 1.0) -> ShotResult:
    _require_active(session)
    fire = session.rules.gunnery.enemy_fire
    enemy = session.enemy

    crew_ratio = enemy.crew / enemy.max_crew if enemy.max_crew else 0.0
    accuracy = fire.base_accuracy + crew_ratio * fire.crew_accuracy

    if not chance(session.rng, accuracy):
        result = ShotResult(source=Side.ENEMY, hit=False)
        session.last_shot_result = result
        session.combat_log.append(f"Round {session.round}: The {enemy.name} fires and misses!")
        logger.debug("Enemy fire missed (accuracy=%.2f)", accuracy)
        return result

    hull_dmg = round_half_up(rand_range(session.rng, *fire.hull) * damage_taken_mult)
    crew_dmg = round_half_up(rand_range(session.rng, *fire.crew) * damage_taken_mult)
    mast_dmg = 1 if chance(session.rng, fire.mast_chance) else 0

    session.player.take_damage(hull_dmg, crew_dmg, mast_dmg)
    result = ShotResult(
        source=Side.ENEMY,
        hit=True,
        hull_dmg=hull_dmg,
        crew_dmg=crew_dmg,
        mast_dmg=mast_dmg,
        hit_quality=DIRECT_HIT_QUALITY,
    )
    session.last_shot_result = result
    session.combat_log.append(
        f"Round {session.round}: The {enemy.name} hits! "
        f"Hull -{hull_dmg}, Crew -{crew_dmg}{_mast_suffix(mast_dmg)}"
    )
    logger.debug(
        "Enemy fire hit (accuracy=%.2f mult=%.2f) -> hull=%d crew=%d masts=%d",
        accuracy,
        damage_taken_mult,
        hull_dmg,
        crew_dmg,
        mast_dmg,
    )
    return result


def check_combat_end(session: RangedCombatSession) -> bool:
    if session.resolved:
        return True
    # Enemy first: a mutual knockout goes to the player
    if session.enemy.is_disabled():
        session.resolved = True
        session.victor = Side.PLAYER
    elif session.player.is_disabled():
        session.resolved = True
        session.victor = Side.ENEMY
    else:
        return False
    logger.info(
        "Broadside vs %s resolved after round %d: %s wins",
        session.enemy.name,
        session.round,
        session.victor.value,
    )
    return True


def cycle_ammo(session: RangedCombatSession) -> AmmoType:
    current = AmmoType.parse(session.ammo_type)
    session.ammo_type = AMMO_CYCLE[(AMMO_CYCLE.index(current) + 1) % len(AMMO_CYCLE)]
    return session.ammo_type


def select_ammo(session: RangedCombatSession, ammo: AmmoType | str) -> None:
    session.ammo_type = AmmoType.parse(ammo)


def lock_aim(session: RangedCombatSession, offset_x: float, offset_y: float) -> None:
    session.aim = AimOffset(x=float(offset_x), y=float(offset_y))


def set_power(session: RangedCombatSession, power: float) -> None:
    session.power = float(min(100.0, max(0.0, power)))


def _require_active(session: RangedCombatSession) -> None:
    if session.resolved:
        winner = session.victor.value if session.victor else "no victor"
        raise SessionResolvedError(f"Broadside vs {session.enemy.name} is already resolved ({winner})")


def _mast_suffix(mast_dmg: int) -> str:
    return f", Mast -{mast_dmg}" if mast_dmg else ""


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))
