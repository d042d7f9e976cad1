"""Cannonball flight model.

Power alone fixes the flight time, so callers can schedule the shot's
animation before any damage is rolled. Damage only looks at the aim offset
through :func:`check_hit`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from kattegat.engine.types import Wind

GRAVITY = -4.0

HIT_RADIUS = 6.0
NEAR_MISS_RADIUS = 12.0

WIND_DRIFT_FACTOR = 0.3


@dataclass(frozen=True, slots=True)
class LaunchParams:
    vel_z: float
    vel_y: float
    launch_angle: float


@dataclass(frozen=True, slots=True)
class TrajectoryPoint:
    x: float  # lateral wind drift
    y: float  # height
    z: float  # depth towards the target


@dataclass(frozen=True, slots=True)
class HitCheck:
    hit: bool
    near_miss: bool
    distance: float


def compute_launch_params(power: float) -> LaunchParams:
    scale = power / 100
    vel_z = 2.0 + scale * 8.0
    launch_angle = 0.2 + scale * 0.6
    vel_y = math.sin(launch_angle) * vel_z * 1.5
    return LaunchParams(vel_z=vel_z, vel_y=vel_y, launch_angle=launch_angle)


def trajectory_at(t: float, power: float, wind: Wind) -> TrajectoryPoint:
    params = compute_launch_params(power)
    z = params.vel_z * t
    y = params.vel_y * t + 0.5 * GRAVITY * t * t
    x = wind.strength * WIND_DRIFT_FACTOR * t
    return TrajectoryPoint(x=x, y=y, z=z)


def flight_time(power: float) -> float:
    """Time until the ball is back at launch height."""
    params = compute_launch_params(power)
    return -2 * params.vel_y / GRAVITY


def landing_distance(power: float) -> float:
    return compute_launch_params(power).vel_z * flight_time(power)


def check_hit(offset_x: float, offset_y: float) -> HitCheck:
    distance = math.hypot(offset_x, offset_y)
    if distance < HIT_RADIUS:
        return HitCheck(hit=True, near_miss=False, distance=distance)
    if distance < NEAR_MISS_RADIUS:
        return HitCheck(hit=False, near_miss=True, distance=distance)
    return HitCheck(hit=False, near_miss=False, distance=distance)
