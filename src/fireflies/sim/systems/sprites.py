"""Presentational values a renderer derives from an agent's phase."""
from __future__ import annotations

import math

from ..utils.math2d import _mix

FLASH_SHARPNESS = 400.0
MIN_SPRITE_RADIUS = 0.003
MAX_SPRITE_RADIUS = 0.008


def flash_intensity(phase: float) -> float:
    return math.exp(-phase * phase * FLASH_SHARPNESS)


def sprite_radius(flash: float) -> float:
    return _mix(MIN_SPRITE_RADIUS, MAX_SPRITE_RADIUS, flash)
