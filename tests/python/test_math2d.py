from __future__ import annotations

import random

import pytest

from fireflies.sim.utils.math2d import _clamp_length_xy_f, _safe_normalize_xy_f, _smoothstep, wrap01, wrap_delta

_SAMPLES = [0.0, 0.5, 0.999999, 1.0, 1.5, -1e-17, -0.25, -3.75, 12.125, 1e6 + 0.3]


@pytest.mark.parametrize("value", _SAMPLES)
def test_wrap01_stays_in_unit_interval(value):
    wrapped = wrap01(value)
    assert 0.0 <= wrapped < 1.0


@pytest.mark.parametrize("value", _SAMPLES)
def test_wrap_delta_stays_in_half_open_range(value):
    wrapped = wrap_delta(value)
    assert -0.5 <= wrapped < 0.5


def test_wrapped_position_update_stays_on_torus():
    rng = random.Random(5)
    for _ in range(500):
        position = rng.random()
        velocity = rng.uniform(-2.0, 2.0)
        assert 0.0 <= wrap01(position + velocity) < 1.0


def test_wrap_delta_takes_shortest_route():
    assert wrap_delta(0.98 - 0.01) == pytest.approx(-0.03)
    assert wrap_delta(0.01 - 0.98) == pytest.approx(0.03)
    assert wrap_delta(0.3) == pytest.approx(0.3)


def test_safe_normalize_of_zero_is_zero():
    assert _safe_normalize_xy_f(0.0, 0.0) == (0.0, 0.0)
    x, y = _safe_normalize_xy_f(3.0, 4.0)
    assert x == pytest.approx(0.6)
    assert y == pytest.approx(0.8)


def test_clamp_length_preserves_direction():
    x, y = _clamp_length_xy_f(3.0, 4.0, 1.0)
    assert (x * x + y * y) ** 0.5 == pytest.approx(1.0)
    assert x / y == pytest.approx(0.75)
    assert _clamp_length_xy_f(0.1, 0.1, 1.0) == (0.1, 0.1)


def test_smoothstep_with_reversed_edges():
    assert _smoothstep(1.0, 0.9, 0.5) == 1.0
    assert _smoothstep(1.0, 0.9, 1.0) == 0.0
    assert 0.0 < _smoothstep(1.0, 0.9, 0.95) < 1.0
