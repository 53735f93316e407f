from __future__ import annotations

import math

from ..core.agent import StateCell, VelocityCell
from ..core.config import FlockingParams
from ..core.rng import hash_position
from ..types.inputs import Touch
from ..utils.math2d import wrap01
from .field import FieldAccumulator

BASE_PHASE_STEP = 0.001
NOISY_PHASE_STEP = 0.005
SENSE_GAIN = 0.05
FIRING_JITTER = 0.1


def advance_phase(phase: float, sense: float, jitter: float, params: FlockingParams) -> float:
    if params.firing_noise > 0.0:
        phase = phase + NOISY_PHASE_STEP + sense * SENSE_GAIN + (jitter - 0.5) * FIRING_JITTER
    else:
        phase = phase + BASE_PHASE_STEP + sense * SENSE_GAIN
    if phase >= 1.0:
        # Fire: the next step's field accumulation picks this agent up as a flash.
        phase = 0.0
    return phase


def integrate(
    state: StateCell,
    velocity: VelocityCell,
    flash_field: FieldAccumulator,
    params: FlockingParams,
    touch: Touch,
    aspect: tuple[float, float],
    touch_radius: float,
) -> StateCell:
    x, y, hue, phase = state
    vx, vy = velocity
    x = wrap01(x + vx)
    y = wrap01(y + vy)

    # One hash channel drives hue drift, firing jitter and the touch reseed.
    noise = hash_position(x, y, hue)[0]
    hue += noise - 0.5

    # Refractory gate: flashes are only sensed after the release threshold.
    sense = flash_field.sample(x, y) if phase >= params.release_time else 0.0
    phase = advance_phase(phase, sense, noise, params)

    if touch.pressed:
        dx = (touch.position.x - x) / aspect[0]
        dy = (touch.position.y - y) / aspect[1]
        if math.sqrt(dx * dx + dy * dy) < touch_radius:
            phase = noise
    return (x, y, hue, phase)
