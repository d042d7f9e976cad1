"""Read-only game-state snapshot consumed by the combat engines."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from kattegat.engine.types import Difficulty, Wind


class SnapshotError(ValueError):
    pass


@dataclass(frozen=True)
class EscortSnapshot:
    name: str
    alive: bool = True


@dataclass(frozen=True)
class ConvoySnapshot:
    active: bool
    escorts: tuple[EscortSnapshot, ...] = ()

    def living_escorts(self) -> int:
        if not self.active:
            return 0
        return sum(1 for escort in self.escorts if escort.alive)


@dataclass(frozen=True)
class GameSnapshot:
    """What the overworld hands to a fight.

    ``crew_count``/``max_crew`` are None when the crew subsystem is absent and
    ``flagship_masts`` is None when there is no fleet flagship; the engines
    substitute their defaults in that case.
    """

    hull: int
    max_hull: int
    crew_count: int | None = None
    max_crew: int | None = None
    cannon_bonus: int = 0
    convoy: ConvoySnapshot | None = None
    flagship_masts: int | None = None
    wind: Wind = field(default_factory=Wind)
    boarding_bonus: int = 0
    difficulty: Difficulty = Difficulty.NORMAL

    def escort_cannons(self) -> int:
        return self.convoy.living_escorts() if self.convoy is not None else 0


def load_snapshot(path: Path) -> GameSnapshot:
    data = _load_json(path)
    return parse_snapshot(data)


def parse_snapshot(data: dict) -> GameSnapshot:
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot root must be an object")

    ship = _require_dict(data, "ship")
    hull = _require_int(ship, "hull")
    max_hull = _require_int(ship, "max_hull")
    if max_hull <= 0:
        raise SnapshotError("ship.max_hull must be positive")
    if not (0 <= hull <= max_hull):
        raise SnapshotError("ship.hull must be between 0 and ship.max_hull")

    crew_count = None
    max_crew = None
    boarding_bonus = 0
    if "crew" in data:
        crew = _require_dict(data, "crew")
        crew_count = _require_int(crew, "count")
        max_crew = _require_int(crew, "max")
        if crew_count < 0 or max_crew <= 0:
            raise SnapshotError("crew.count must be non-negative and crew.max positive")
        if crew_count > max_crew:
            raise SnapshotError("crew.count must not exceed crew.max")
        boarding_bonus = _optional_int(crew, "boarding_bonus")

    cannon_bonus = 0
    if "economy" in data:
        cannon_bonus = _optional_int(_require_dict(data, "economy"), "cannon_bonus")

    convoy = None
    if data.get("convoy") is not None:
        convoy = _parse_convoy(_require_dict(data, "convoy"))

    flagship_masts = None
    if "fleet" in data:
        masts = _require_dict(data, "fleet").get("flagship_masts")
        if masts is not None:
            if not isinstance(masts, int) or masts < 0:
                raise SnapshotError("fleet.flagship_masts must be a non-negative integer")
            flagship_masts = masts

    wind = Wind()
    if "wind" in data:
        wind_data = _require_dict(data, "wind")
        wind = Wind(
            direction=_optional_int(wind_data, "direction"),
            strength=_require_number(wind_data, "strength"),
        )

    raw_difficulty = data.get("difficulty", Difficulty.NORMAL.value)
    try:
        difficulty = Difficulty(raw_difficulty)
    except ValueError:
        raise SnapshotError(f"difficulty must be one of {[d.value for d in Difficulty]}") from None

    return GameSnapshot(
        hull=hull,
        max_hull=max_hull,
        crew_count=crew_count,
        max_crew=max_crew,
        cannon_bonus=cannon_bonus,
        convoy=convoy,
        flagship_masts=flagship_masts,
        wind=wind,
        boarding_bonus=boarding_bonus,
        difficulty=difficulty,
    )


def _parse_convoy(data: dict) -> ConvoySnapshot:
    escorts_raw = data.get("escorts", [])
    if not isinstance(escorts_raw, list):
        raise SnapshotError("convoy.escorts must be an array")
    escorts = []
    for entry in escorts_raw:
        if not isinstance(entry, dict):
            raise SnapshotError("convoy.escorts entries must be objects")
        escorts.append(
            EscortSnapshot(name=str(entry.get("name", "Escort")), alive=bool(entry.get("alive", True)))
        )
    return ConvoySnapshot(active=bool(data.get("active", False)), escorts=tuple(escorts))


def _load_json(path: Path) -> dict:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise SnapshotError(f"Snapshot not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Invalid JSON in snapshot: {exc}") from exc


def _require_dict(data: dict, key: str) -> dict:
    value = data.get(key)
    if not isinstance(value, dict):
        raise SnapshotError(f"{key} must be an object")
    return value


def _require_int(data: dict, key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise SnapshotError(f"{key} must be an integer")
    return value


def _optional_int(data: dict, key: str, default: int = 0) -> int:
    if key not in data:
        return default
    return _require_int(data, key)


def _require_number(data: dict, key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SnapshotError(f"{key} must be a number")
    return float(value)
