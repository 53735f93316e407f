from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    flashes: int
    mean_phase: float
    synchrony: float
    mean_speed: float
    max_speed: float
    field_peak: float
    neighbor_checks: int
    scattering: bool
    tick_duration_ms: float = 0.0
