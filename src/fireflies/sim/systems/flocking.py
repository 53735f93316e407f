from __future__ import annotations

import math
from typing import NamedTuple, Sequence

from ..core.agent import StateCell, VelocityCell
from ..core.config import FlockingParams
from ..core.rng import position_noise
from ..utils.math2d import _clamp_length_xy_f, _safe_normalize_xy_f, wrap_delta

ALIGNMENT_RADIUS = 0.1
COHESION_RADIUS = 0.1


class NeighborSums(NamedTuple):
    separation_x: float
    separation_y: float
    separation_count: int
    alignment_x: float
    alignment_y: float
    alignment_count: int
    cohesion_x: float
    cohesion_y: float
    cohesion_count: int


def scan_neighbors(
    index: int,
    states: Sequence[StateCell],
    velocities: Sequence[VelocityCell],
    separation_radius: float,
) -> NeighborSums:
    """Brute-force pass over every other agent using wrapped offsets.

    The three bands are independent: one neighbour can count towards any
    subset of separation, alignment and cohesion.
    """
    px, py, _hue, _phase = states[index]
    sep_x = sep_y = 0.0
    ali_x = ali_y = 0.0
    coh_x = coh_y = 0.0
    sep_count = ali_count = coh_count = 0
    for other in range(len(states)):
        if other == index:
            continue
        ox, oy, _ohue, _ophase = states[other]
        dx = wrap_delta(ox - px)
        dy = wrap_delta(oy - py)
        dist = math.sqrt(dx * dx + dy * dy)
        if dist < separation_radius:
            nx, ny = _safe_normalize_xy_f(dx, dy)
            sep_x -= nx
            sep_y -= ny
            sep_count += 1
        if dist < ALIGNMENT_RADIUS:
            ovx, ovy = velocities[other]
            ali_x += ovx
            ali_y += ovy
            ali_count += 1
        if dist < COHESION_RADIUS:
            coh_x += px + dx
            coh_y += py + dy
            coh_count += 1
    return NeighborSums(sep_x, sep_y, sep_count, ali_x, ali_y, ali_count, coh_x, coh_y, coh_count)


def steering_acceleration(
    index: int,
    states: Sequence[StateCell],
    velocities: Sequence[VelocityCell],
    params: FlockingParams,
) -> tuple[float, float]:
    """Combined flocking steer for one agent, limited to ``max_force``."""
    px, py, _hue, _phase = states[index]
    vx, vy = velocities[index]
    sums = scan_neighbors(index, states, velocities, params.separation_radius)

    accel_x = 0.0
    accel_y = 0.0
    if sums.separation_count > 0:
        sx, sy = _safe_normalize_xy_f(
            sums.separation_x / sums.separation_count,
            sums.separation_y / sums.separation_count,
        )
        accel_x += sx * params.separation_weight
        accel_y += sy * params.separation_weight
    if sums.alignment_count > 0:
        avg_vx = sums.alignment_x / sums.alignment_count
        avg_vy = sums.alignment_y / sums.alignment_count
        ax, ay = _safe_normalize_xy_f(avg_vx - vx, avg_vy - vy)
        accel_x += ax * params.alignment_weight
        accel_y += ay * params.alignment_weight
    if sums.cohesion_count > 0:
        center_x = sums.cohesion_x / sums.cohesion_count
        center_y = sums.cohesion_y / sums.cohesion_count
        cx, cy = _safe_normalize_xy_f(center_x - px, center_y - py)
        accel_x += cx * params.cohesion_weight
        accel_y += cy * params.cohesion_weight

    return _clamp_length_xy_f(accel_x, accel_y, params.max_force)


def compute_velocity(
    index: int,
    states: Sequence[StateCell],
    velocities: Sequence[VelocityCell],
    params: FlockingParams,
) -> VelocityCell:
    px, py, _hue, _phase = states[index]
    vx, vy = velocities[index]
    accel_x, accel_y = steering_acceleration(index, states, velocities, params)
    vx += accel_x * params.acceleration_scale
    vy += accel_y * params.acceleration_scale
    noise_x, noise_y = position_noise(px, py)
    vx += noise_x * params.noise_scale
    vy += noise_y * params.noise_scale
    return _clamp_length_xy_f(vx, vy, params.max_speed)
