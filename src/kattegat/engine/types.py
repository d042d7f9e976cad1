"""Common types, enums and domain errors."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class CombatError(ValueError):
    """Base error for misuse of the combat engine."""


class UnknownAmmoType(CombatError):
    pass


class UnknownMoveId(CombatError):
    pass


class UnknownZone(CombatError):
    pass


class UnknownContext(CombatError):
    pass


class UnknownAIStyle(CombatError):
    pass


class SessionResolvedError(CombatError):
    """Raised when a resolved ranged session is mutated."""


class MeleePhaseError(CombatError):
    """Raised when a melee transition is invoked from the wrong phase."""


def _coerce(enum_cls, value, error_cls):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(member.value for member in enum_cls)
        raise error_cls(f"Unknown {enum_cls.__name__} {value!r} (expected one of: {valid})") from None


class Side(str, Enum):
    PLAYER = "player"
    ENEMY = "enemy"


class AmmoType(str, Enum):
    IRON = "iron"
    CHAIN = "chain"
    GRAPE = "grape"

    @classmethod
    def parse(cls, value: "AmmoType | str") -> "AmmoType":
        return _coerce(cls, value, UnknownAmmoType)


# Spyglass ammo cycle order
AMMO_CYCLE = (AmmoType.IRON, AmmoType.CHAIN, AmmoType.GRAPE)


class MoveId(str, Enum):
    SLASH = "slash"
    THRUST = "thrust"
    PARRY = "parry"
    DODGE = "dodge"

    @classmethod
    def parse(cls, value: "MoveId | str") -> "MoveId":
        return _coerce(cls, value, UnknownMoveId)


class Zone(str, Enum):
    HIGH = "high"
    MID = "mid"
    LOW = "low"

    @classmethod
    def parse(cls, value: "Zone | str") -> "Zone":
        return _coerce(cls, value, UnknownZone)


MOVE_LIST = tuple(MoveId)
ZONE_LIST = tuple(Zone)


class AIStyle(str, Enum):
    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    DRUNK = "drunk"
    BALANCED = "balanced"

    @classmethod
    def parse(cls, value: "AIStyle | str") -> "AIStyle":
        return _coerce(cls, value, UnknownAIStyle)


class MeleeContext(str, Enum):
    BOARDING = "boarding"
    BARFIGHT = "barfight"
    DUEL = "duel"
    STEALTH_FIGHT = "stealth_fight"

    @classmethod
    def parse(cls, value: "MeleeContext | str") -> "MeleeContext":
        return _coerce(cls, value, UnknownContext)


class ReturnMode(str, Enum):
    """Where control goes back to once a melee is over."""

    OVERWORLD = "OVERWORLD"
    PORT = "PORT"
    ISLAND = "ISLAND"
    STEALTH = "STEALTH"


class MeleePhase(str, Enum):
    CHOOSE_MOVE = "choose_move"
    CHOOSE_ZONE = "choose_zone"
    ANIMATE = "animate"
    RESULT = "result"


class Faction(str, Enum):
    ENGLISH = "english"
    DANISH = "danish"
    MERCHANT = "merchant"
    PIRATE = "pirate"


class Difficulty(str, Enum):
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"


@dataclass(frozen=True)
class Wind:
    direction: int = 0
    strength: float = 0.0


@dataclass(frozen=True)
class AimOffset:
    """Offset of the locked crosshair from the point of aim."""

    x: float = 0.0
    y: float = 0.0

    def distance(self) -> float:
        return math.hypot(self.x, self.y)
