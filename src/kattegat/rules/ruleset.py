"""Data-driven combat rules."""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

from kattegat.engine.types import (
    AIStyle,
    AmmoType,
    CombatError,
    Difficulty,
    Faction,
    MeleeContext,
    MoveId,
    ReturnMode,
)

DEFAULT_DATA_DIR = Path(__file__).resolve().parents[1] / "data"


class RulesError(ValueError):
    """Error loading or validating rules."""


Range = tuple[float, float]


@dataclass(frozen=True)
class AmmoProfile:
    ammo: AmmoType
    hull: Range
    crew: Range
    masts: int


@dataclass(frozen=True)
class ShipTemplate:
    name: str
    hull: int
    crew: int
    masts: int


@dataclass(frozen=True)
class EnemyFireConfig:
    hull: Range
    crew: Range
    mast_chance: float
    base_accuracy: float
    crew_accuracy: float


@dataclass(frozen=True)
class PlayerShipDefaults:
    crew: int
    max_crew: int
    masts: int
    base_cannons: int


@dataclass(frozen=True)
class GunneryConfig:
    ammo: dict[AmmoType, AmmoProfile]
    chain_mast_min_power: float
    starting_ammo: dict[AmmoType, int]
    player_defaults: PlayerShipDefaults
    enemy_ships: tuple[ShipTemplate, ...]
    bosses: dict[str, ShipTemplate]
    enemy_fire: EnemyFireConfig


@dataclass(frozen=True)
class MoveDef:
    id: MoveId
    label: str
    damage: Range
    stamina_cost: int
    riposte: bool
    riposte_damage: Range = (0.0, 0.0)


@dataclass(frozen=True)
class OpponentTemplate:
    name: str
    hp: int
    strength: int
    agility: int
    ai_style: AIStyle


@dataclass(frozen=True)
class ContextRule:
    context: MeleeContext
    opponent: str
    return_mode: ReturnMode
    player_hp: int | None = None


@dataclass(frozen=True)
class AIBranch:
    move: MoveId
    threshold: float


@dataclass(frozen=True)
class AIStyleRule:
    style: AIStyle
    branches: tuple[AIBranch, ...]
    fallback: MoveId


@dataclass(frozen=True)
class MeleeConfig:
    moves: dict[MoveId, MoveDef]
    opponents: dict[str, OpponentTemplate]
    contexts: dict[MeleeContext, ContextRule]
    ai_styles: dict[AIStyle, AIStyleRule]
    player_hp: int
    player_strength: int
    player_stamina: int
    enemy_stamina: int
    stamina_regen: int
    log_capacity: int


@dataclass(frozen=True)
class DifficultySettings:
    difficulty: Difficulty
    label: str
    gold_mult: float
    damage_taken_mult: float
    guard_speed_mult: float


@dataclass(frozen=True)
class CannonSpoilsConfig:
    gold_base: int
    gold_spread: int
    goods: tuple[str, ...]
    cargo_chance: dict[str, float]
    merchant_qty_spread: int
    treasure_map_chance: float


@dataclass(frozen=True)
class BoardingSpoilsConfig:
    gold_base: int
    gold_spread: int
    goods: tuple[str, ...]
    cargo_qty_base: int
    cargo_qty_spread: int
    capture_chance: float
    captured_hull_fraction: float
    max_fleet_size: int


@dataclass(frozen=True)
class BarfightStakes:
    win_gold: int
    loss_gold: int
    win_morale: int
    loss_morale: int


@dataclass(frozen=True)
class SpoilsConfig:
    cannon: CannonSpoilsConfig
    boarding: BoardingSpoilsConfig
    barfight: BarfightStakes
    defeat_hull_damage: int
    faction_ship_types: dict[Faction, str]
    default_ship_type: str
    attack_actions: dict[Faction, str]
    defeat_actions: dict[Faction, str]


@dataclass(frozen=True)
class Ruleset:
    """Loaded and validated ruleset."""

    gunnery: GunneryConfig
    melee: MeleeConfig
    difficulty: dict[Difficulty, DifficultySettings]
    spoils: SpoilsConfig

    @staticmethod
    def load(data_dir: Path) -> "Ruleset":
        """Load ruleset from JSON files in data directory."""
        return Ruleset(
            gunnery=_load_gunnery(data_dir / "gunnery.json"),
            melee=_load_melee(data_dir / "melee.json"),
            difficulty=_load_difficulty(data_dir / "difficulty.json"),
            spoils=_load_spoils(data_dir / "spoils.json"),
        )

    def ammo_profile(self, ammo: AmmoType | str) -> AmmoProfile:
        return self.gunnery.ammo[AmmoType.parse(ammo)]

    def move(self, move_id: MoveId | str) -> MoveDef:
        return self.melee.moves[MoveId.parse(move_id)]

    def context_rule(self, context: MeleeContext | str) -> ContextRule:
        return self.melee.contexts[MeleeContext.parse(context)]

    def opponent(self, template_id: str) -> OpponentTemplate:
        try:
            return self.melee.opponents[template_id]
        except KeyError:
            raise CombatError(f"Unknown opponent template: {template_id}") from None

    def boss(self, boss_id: str) -> ShipTemplate:
        try:
            return self.gunnery.bosses[boss_id]
        except KeyError:
            raise CombatError(f"Unknown boss ship: {boss_id}") from None

    def settings_for(self, difficulty: Difficulty | str) -> DifficultySettings:
        return self.difficulty[Difficulty(difficulty)]


@lru_cache(maxsize=1)
def default_ruleset() -> Ruleset:
    return Ruleset.load(DEFAULT_DATA_DIR)


def _load_json(path: Path) -> dict[str, Any]:
    """Load JSON file."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as exc:
        raise RulesError(f"Rules file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise RulesError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise RulesError(f"{path}: root must be an object")
    return data


def _require_dict(data: dict, key: str, path: Path) -> dict:
    value = data.get(key)
    if not isinstance(value, dict):
        raise RulesError(f"{path}: '{key}' must be an object")
    return value


def _require_list(data: dict, key: str, path: Path) -> list:
    value = data.get(key)
    if not isinstance(value, list):
        raise RulesError(f"{path}: '{key}' must be an array")
    return value


def _require_int(data: dict, key: str, path: Path) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise RulesError(f"{path}: '{key}' must be an integer")
    return value


def _require_number(data: dict, key: str, path: Path) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RulesError(f"{path}: '{key}' must be a number")
    return float(value)


def _require_range(data: dict, key: str, path: Path) -> Range:
    value = data.get(key)
    if not isinstance(value, list) or len(value) != 2:
        raise RulesError(f"{path}: '{key}' must be [min, max]")
    low, high = value
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (low, high)):
        raise RulesError(f"{path}: '{key}' bounds must be numbers")
    if low > high:
        raise RulesError(f"{path}: '{key}' min exceeds max ({low} > {high})")
    return (float(low), float(high))


def _enum_key(enum_cls, raw: str, path: Path):
    try:
        return enum_cls(raw)
    except ValueError:
        raise RulesError(f"{path}: unknown {enum_cls.__name__} '{raw}'") from None


def _require_all(enum_cls, keys, path: Path, what: str) -> None:
    missing = [member.value for member in enum_cls if member not in keys]
    if missing:
        raise RulesError(f"{path}: missing {what}: {missing}")


def _parse_ship(item: Any, path: Path) -> ShipTemplate:
    if not isinstance(item, dict):
        raise RulesError(f"{path}: ship entry must be object")
    name = item.get("name")
    if not isinstance(name, str):
        raise RulesError(f"{path}: ship.name must be string")
    hull = _require_int(item, "hull", path)
    crew = _require_int(item, "crew", path)
    masts = _require_int(item, "masts", path)
    if hull <= 0 or crew <= 0 or masts < 0:
        raise RulesError(f"{path}: ship '{name}' needs positive hull/crew and non-negative masts")
    return ShipTemplate(name=name, hull=hull, crew=crew, masts=masts)


def _load_gunnery(path: Path) -> GunneryConfig:
    data = _load_json(path)

    ammo: dict[AmmoType, AmmoProfile] = {}
    for raw_id, entry in _require_dict(data, "ammo", path).items():
        ammo_type = _enum_key(AmmoType, raw_id, path)
        if not isinstance(entry, dict):
            raise RulesError(f"{path}: ammo.{raw_id} must be object")
        ammo[ammo_type] = AmmoProfile(
            ammo=ammo_type,
            hull=_require_range(entry, "hull", path),
            crew=_require_range(entry, "crew", path),
            masts=int(entry.get("masts", 0)),
        )
    _require_all(AmmoType, ammo, path, "ammo types")

    starting_ammo: dict[AmmoType, int] = {}
    for raw_id, count in _require_dict(data, "starting_ammo", path).items():
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise RulesError(f"{path}: starting_ammo.{raw_id} must be a non-negative integer")
        starting_ammo[_enum_key(AmmoType, raw_id, path)] = count
    _require_all(AmmoType, starting_ammo, path, "starting ammo")

    defaults = _require_dict(data, "player_defaults", path)
    ships = tuple(_parse_ship(item, path) for item in _require_list(data, "enemy_ships", path))
    if not ships:
        raise RulesError(f"{path}: enemy_ships must not be empty")
    bosses = {
        str(boss_id): _parse_ship(item, path)
        for boss_id, item in dict(data.get("bosses", {})).items()
    }

    fire = _require_dict(data, "enemy_fire", path)
    return GunneryConfig(
        ammo=ammo,
        chain_mast_min_power=float(data.get("chain_mast_min_power", 60)),
        starting_ammo=starting_ammo,
        player_defaults=PlayerShipDefaults(
            crew=int(defaults.get("crew", 30)),
            max_crew=int(defaults.get("max_crew", 30)),
            masts=int(defaults.get("masts", 2)),
            base_cannons=int(defaults.get("base_cannons", 2)),
        ),
        enemy_ships=ships,
        bosses=bosses,
        enemy_fire=EnemyFireConfig(
            hull=_require_range(fire, "hull", path),
            crew=_require_range(fire, "crew", path),
            mast_chance=_require_number(fire, "mast_chance", path),
            base_accuracy=_require_number(fire, "base_accuracy", path),
            crew_accuracy=_require_number(fire, "crew_accuracy", path),
        ),
    )


def _load_melee(path: Path) -> MeleeConfig:
    data = _load_json(path)

    moves: dict[MoveId, MoveDef] = {}
    for raw_id, entry in _require_dict(data, "moves", path).items():
        move_id = _enum_key(MoveId, raw_id, path)
        if not isinstance(entry, dict):
            raise RulesError(f"{path}: moves.{raw_id} must be object")
        riposte = bool(entry.get("riposte", False))
        moves[move_id] = MoveDef(
            id=move_id,
            label=str(entry.get("label", raw_id.title())),
            damage=_require_range(entry, "damage", path),
            stamina_cost=_require_int(entry, "stamina", path),
            riposte=riposte,
            riposte_damage=_require_range(entry, "riposte_damage", path) if riposte else (0.0, 0.0),
        )
    _require_all(MoveId, moves, path, "moves")

    opponents: dict[str, OpponentTemplate] = {}
    for template_id, entry in _require_dict(data, "opponents", path).items():
        if not isinstance(entry, dict):
            raise RulesError(f"{path}: opponents.{template_id} must be object")
        opponents[str(template_id)] = OpponentTemplate(
            name=str(entry.get("name", template_id)),
            hp=_require_int(entry, "hp", path),
            strength=_require_int(entry, "strength", path),
            agility=int(entry.get("agility", 0)),
            ai_style=_enum_key(AIStyle, str(entry.get("ai_style", "balanced")), path),
        )

    contexts: dict[MeleeContext, ContextRule] = {}
    for raw_id, entry in _require_dict(data, "contexts", path).items():
        context = _enum_key(MeleeContext, raw_id, path)
        if not isinstance(entry, dict):
            raise RulesError(f"{path}: contexts.{raw_id} must be object")
        opponent = entry.get("opponent")
        if opponent not in opponents:
            raise RulesError(f"{path}: contexts.{raw_id}.opponent '{opponent}' is not a known template")
        player_hp = entry.get("player_hp")
        contexts[context] = ContextRule(
            context=context,
            opponent=str(opponent),
            return_mode=_enum_key(ReturnMode, str(entry.get("return_mode", "OVERWORLD")), path),
            player_hp=int(player_hp) if player_hp is not None else None,
        )
    _require_all(MeleeContext, contexts, path, "contexts")

    ai_styles: dict[AIStyle, AIStyleRule] = {}
    for raw_id, entry in _require_dict(data, "ai_styles", path).items():
        style = _enum_key(AIStyle, raw_id, path)
        if not isinstance(entry, dict):
            raise RulesError(f"{path}: ai_styles.{raw_id} must be object")
        branches: list[AIBranch] = []
        last = 0.0
        for branch in _require_list(entry, "branches", path):
            if not isinstance(branch, list) or len(branch) != 2:
                raise RulesError(f"{path}: ai_styles.{raw_id} branches must be [move, threshold]")
            threshold = float(branch[1])
            if threshold < last or threshold > 1.0:
                raise RulesError(f"{path}: ai_styles.{raw_id} thresholds must ascend within [0, 1]")
            last = threshold
            branches.append(AIBranch(move=_enum_key(MoveId, str(branch[0]), path), threshold=threshold))
        ai_styles[style] = AIStyleRule(
            style=style,
            branches=tuple(branches),
            fallback=_enum_key(MoveId, str(entry.get("fallback", "dodge")), path),
        )
    _require_all(AIStyle, ai_styles, path, "ai styles")

    player = _require_dict(data, "player", path)
    return MeleeConfig(
        moves=moves,
        opponents=opponents,
        contexts=contexts,
        ai_styles=ai_styles,
        player_hp=_require_int(player, "hp", path),
        player_strength=_require_int(player, "strength", path),
        player_stamina=_require_int(player, "stamina", path),
        enemy_stamina=int(data.get("enemy_stamina", 100)),
        stamina_regen=int(data.get("stamina_regen", 15)),
        log_capacity=int(data.get("log_capacity", 4)),
    )


def _load_difficulty(path: Path) -> dict[Difficulty, DifficultySettings]:
    data = _load_json(path)
    levels: dict[Difficulty, DifficultySettings] = {}
    for raw_id, entry in _require_dict(data, "levels", path).items():
        difficulty = _enum_key(Difficulty, raw_id, path)
        if not isinstance(entry, dict):
            raise RulesError(f"{path}: levels.{raw_id} must be object")
        levels[difficulty] = DifficultySettings(
            difficulty=difficulty,
            label=str(entry.get("label", raw_id.title())),
            gold_mult=float(entry.get("gold_mult", 1.0)),
            damage_taken_mult=float(entry.get("damage_taken_mult", 1.0)),
            guard_speed_mult=float(entry.get("guard_speed_mult", 1.0)),
        )
    _require_all(Difficulty, levels, path, "difficulty levels")
    return levels


def _faction_map(raw: Any, path: Path, key: str) -> dict[Faction, str]:
    if not isinstance(raw, dict):
        raise RulesError(f"{path}: '{key}' must be an object")
    return {_enum_key(Faction, str(k), path): str(v) for k, v in raw.items()}


def _load_spoils(path: Path) -> SpoilsConfig:
    data = _load_json(path)
    cannon = _require_dict(data, "cannon", path)
    boarding = _require_dict(data, "boarding", path)
    barfight = _require_dict(data, "barfight", path)
    reputation = _require_dict(data, "reputation", path)

    cargo_chance = {str(k): float(v) for k, v in dict(cannon.get("cargo_chance", {})).items()}
    if "default" not in cargo_chance:
        raise RulesError(f"{path}: cannon.cargo_chance needs a 'default' entry")

    return SpoilsConfig(
        cannon=CannonSpoilsConfig(
            gold_base=_require_int(cannon, "gold_base", path),
            gold_spread=_require_int(cannon, "gold_spread", path),
            goods=tuple(str(g) for g in _require_list(cannon, "goods", path)),
            cargo_chance=cargo_chance,
            merchant_qty_spread=int(cannon.get("merchant_qty_spread", 3)),
            treasure_map_chance=float(cannon.get("treasure_map_chance", 0.15)),
        ),
        boarding=BoardingSpoilsConfig(
            gold_base=_require_int(boarding, "gold_base", path),
            gold_spread=_require_int(boarding, "gold_spread", path),
            goods=tuple(str(g) for g in _require_list(boarding, "goods", path)),
            cargo_qty_base=int(boarding.get("cargo_qty_base", 2)),
            cargo_qty_spread=int(boarding.get("cargo_qty_spread", 4)),
            capture_chance=float(boarding.get("capture_chance", 0.5)),
            captured_hull_fraction=float(boarding.get("captured_hull_fraction", 0.3)),
            max_fleet_size=int(boarding.get("max_fleet_size", 4)),
        ),
        barfight=BarfightStakes(
            win_gold=int(barfight.get("win_gold", 30)),
            loss_gold=int(barfight.get("loss_gold", 20)),
            win_morale=int(barfight.get("win_morale", 2)),
            loss_morale=int(barfight.get("loss_morale", 1)),
        ),
        defeat_hull_damage=int(data.get("defeat_hull_damage", 30)),
        faction_ship_types=_faction_map(data.get("faction_ship_types", {}), path, "faction_ship_types"),
        default_ship_type=str(data.get("default_ship_type", "sloop")),
        attack_actions=_faction_map(reputation.get("attack", {}), path, "reputation.attack"),
        defeat_actions=_faction_map(reputation.get("defeat", {}), path, "reputation.defeat"),
    )
