import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from kattegat.engine.trajectory import (
    HIT_RADIUS,
    NEAR_MISS_RADIUS,
    check_hit,
    compute_launch_params,
    flight_time,
    landing_distance,
    trajectory_at,
)
from kattegat.engine.types import Wind
from tests.helpers.strategies import offsets, powers


def test_launch_params_at_zero_and_full_power() -> None:
    low = compute_launch_params(0)
    assert low.vel_z == pytest.approx(2.0)
    assert low.launch_angle == pytest.approx(0.2)
    assert low.vel_y == pytest.approx(math.sin(0.2) * 2.0 * 1.5)

    high = compute_launch_params(100)
    assert high.vel_z == pytest.approx(10.0)
    assert high.launch_angle == pytest.approx(0.8)


def test_ball_returns_to_launch_height_at_flight_time() -> None:
    for power in (0, 35, 60, 100):
        t = flight_time(power)
        assert t > 0
        assert trajectory_at(t, power, Wind()).y == pytest.approx(0.0, abs=1e-9)


def test_landing_distance_matches_depth_at_flight_time() -> None:
    t = flight_time(70)
    assert landing_distance(70) == pytest.approx(trajectory_at(t, 70, Wind()).z)


def test_wind_drifts_ball_sideways() -> None:
    assert trajectory_at(2.0, 50, Wind()).x == 0.0
    assert trajectory_at(2.0, 50, Wind(direction=3, strength=5.0)).x == pytest.approx(3.0)


@given(a=powers, b=powers)
def test_flight_time_grows_with_power(a: float, b: float) -> None:
    if a < b:
        assert flight_time(a) < flight_time(b)


@pytest.mark.parametrize(
    ("x", "y", "hit", "near_miss"),
    [
        (0.0, 0.0, True, False),
        (3.0, 4.0, True, False),
        (5.99, 0.0, True, False),
        (HIT_RADIUS, 0.0, False, True),
        (0.0, -11.9, False, True),
        (NEAR_MISS_RADIUS, 0.0, False, False),
        (-20.0, 15.0, False, False),
    ],
)
def test_check_hit_bands(x: float, y: float, hit: bool, near_miss: bool) -> None:
    result = check_hit(x, y)
    assert (result.hit, result.near_miss) == (hit, near_miss)
    assert result.distance == pytest.approx(math.hypot(x, y))


@given(x=offsets, y=offsets)
def test_hit_and_near_miss_are_exclusive(x: float, y: float) -> None:
    result = check_hit(x, y)
    assert not (result.hit and result.near_miss)
    assert result.hit == (result.distance < HIT_RADIUS)


@given(power=st.floats(min_value=0.0, max_value=100.0), t=st.floats(min_value=0.0, max_value=5.0))
def test_trajectory_without_wind_stays_in_plane(power: float, t: float) -> None:
    assert trajectory_at(t, power, Wind()).x == 0.0
