from __future__ import annotations

import hashlib
import math
import random
from typing import Protocol, Sequence, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    """Anything that yields floats in [0, 1). ``random.Random`` qualifies."""

    def random(self) -> float: ...


def make_rng(seed: int | None = None) -> random.Random:
    return random.Random(seed)


def derive_seed(base_seed: int, *, encounter: int, stream: str, purpose: str) -> int:
    payload = f"{base_seed}|{encounter}|{stream}|{purpose}".encode("utf-8")
    digest = hashlib.blake2b(payload, digest_size=8).digest()
    return int.from_bytes(digest, "big")


def rand_range(rng: RandomSource, low: float, high: float) -> float:
    return low + rng.random() * (high - low)


def pick(rng: RandomSource, items: Sequence[T]) -> T:
    if not items:
        raise ValueError("Cannot pick from an empty sequence")
    # Guard against sources that return exactly 1.0
    index = min(len(items) - 1, int(rng.random() * len(items)))
    return items[index]


def chance(rng: RandomSource, probability: float) -> bool:
    return rng.random() < probability


def round_half_up(value: float) -> int:
    """Round to the nearest integer with ties going up (22.5 -> 23, -2.5 -> -2)."""
    return math.floor(value + 0.5)
