"""Stateless hash-based randomness.

Every random quantity in the simulation is a pure function of integer
coordinates (grid cell, seed, quantised position), so the same inputs always
reproduce the same values no matter which worker evaluates them or in which
order.
"""
from __future__ import annotations

import math

_MASK32 = 0xFFFFFFFF
_UNIT = float(_MASK32)
_POSITION_QUANTUM = 12345.0

# Offsets and scales of the two sine hashes used for velocity noise.
_NOISE_X = (12.9898, 78.233)
_NOISE_Y = (93.9898, 67.345)
_SINE_SCALE = 43758.5453


def pcg3d(x: int, y: int, z: int) -> tuple[int, int, int]:
    x = ((x & _MASK32) * 1664525 + 1013904223) & _MASK32
    y = ((y & _MASK32) * 1664525 + 1013904223) & _MASK32
    z = ((z & _MASK32) * 1664525 + 1013904223) & _MASK32
    x = (x + y * z) & _MASK32
    y = (y + z * x) & _MASK32
    z = (z + x * y) & _MASK32
    x ^= x >> 16
    y ^= y >> 16
    z ^= z >> 16
    x = (x + y * z) & _MASK32
    y = (y + z * x) & _MASK32
    z = (z + x * y) & _MASK32
    return x, y, z


def hash3(x: int, y: int, z: int) -> tuple[float, float, float]:
    """Three uniform floats in [0, 1] for an integer triple."""
    hx, hy, hz = pcg3d(x, y, z)
    return hx / _UNIT, hy / _UNIT, hz / _UNIT


def hash_position(x: float, y: float, z: float) -> tuple[float, float, float]:
    return hash3(
        int(x * _POSITION_QUANTUM),
        int(y * _POSITION_QUANTUM),
        int(z * _POSITION_QUANTUM),
    )


def sine_hash(x: float, y: float, kx: float, ky: float) -> float:
    value = math.sin(x * kx + y * ky) * _SINE_SCALE
    return value - math.floor(value)


def position_noise(x: float, y: float) -> tuple[float, float]:
    """Two decorrelated pseudo-noise components in [-1, 1]."""
    return (
        sine_hash(x, y, _NOISE_X[0], _NOISE_X[1]) * 2.0 - 1.0,
        sine_hash(x, y, _NOISE_Y[0], _NOISE_Y[1]) * 2.0 - 1.0,
    )
