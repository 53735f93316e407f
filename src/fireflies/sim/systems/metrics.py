from __future__ import annotations

import math
from typing import Sequence

from ..core.agent import StateCell, VelocityCell
from ..types.metrics import TickMetrics


def phase_synchrony(states: Sequence[StateCell]) -> float:
    """Kuramoto order parameter of the phases: 1.0 when all agents agree."""
    if not states:
        return 0.0
    sum_cos = 0.0
    sum_sin = 0.0
    for _x, _y, _hue, phase in states:
        angle = math.tau * phase
        sum_cos += math.cos(angle)
        sum_sin += math.sin(angle)
    return math.hypot(sum_cos, sum_sin) / len(states)


def create_metrics(
    tick: int,
    states: Sequence[StateCell],
    velocities: Sequence[VelocityCell],
    flashes: int,
    field_peak: float,
    scattering: bool,
    elapsed_ms: float,
) -> TickMetrics:
    population = len(states)
    phase_sum = 0.0
    for _x, _y, _hue, phase in states:
        phase_sum += phase
    speed_sum = 0.0
    max_speed = 0.0
    for vx, vy in velocities:
        speed = math.hypot(vx, vy)
        speed_sum += speed
        if speed > max_speed:
            max_speed = speed
    return TickMetrics(
        tick=tick,
        population=population,
        flashes=flashes,
        mean_phase=phase_sum / population if population else 0.0,
        synchrony=phase_synchrony(states),
        mean_speed=speed_sum / population if population else 0.0,
        max_speed=max_speed,
        field_peak=field_peak,
        neighbor_checks=population * max(0, population - 1),
        scattering=scattering,
        tick_duration_ms=elapsed_ms,
    )
