from __future__ import annotations

import math


def wrap01(value: float) -> float:
    wrapped = value % 1.0
    # Tiny negative inputs round up to exactly 1.0.
    if wrapped >= 1.0:
        return 0.0
    return wrapped


def wrap_delta(value: float) -> float:
    """Shortest signed offset on the unit torus, in [-0.5, 0.5)."""
    return wrap01(value + 0.5) - 0.5


def _fract(value: float) -> float:
    return value - math.floor(value)


def _smoothstep(edge0: float, edge1: float, x: float) -> float:
    t = (x - edge0) / (edge1 - edge0)
    if t < 0.0:
        t = 0.0
    elif t > 1.0:
        t = 1.0
    return t * t * (3.0 - 2.0 * t)


def _safe_normalize_xy_f(x: float, y: float) -> tuple[float, float]:
    magnitude_sq = x * x + y * y
    if magnitude_sq < 1e-24:
        return 0.0, 0.0
    inv = 1.0 / math.sqrt(magnitude_sq)
    return x * inv, y * inv


def _clamp_length_xy_f(x: float, y: float, max_length: float) -> tuple[float, float]:
    if max_length <= 0.0:
        return 0.0, 0.0
    magnitude_sq = x * x + y * y
    max_sq = max_length * max_length
    if magnitude_sq <= max_sq:
        return x, y
    if magnitude_sq <= 1e-30:
        return 0.0, 0.0
    inv = max_length / math.sqrt(magnitude_sq)
    return x * inv, y * inv


def _mix(a: float, b: float, t: float) -> float:
    return a + (b - a) * t
