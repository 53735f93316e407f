from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    agents: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"
    fields: "SnapshotFields"


@dataclass(slots=True)
class SnapshotWorld:
    grid_size: int
    aspect: tuple[float, float]


@dataclass(slots=True)
class SnapshotMetadata:
    grid_size: int
    steps_per_frame: int
    frame_interval: float
    seed: int
    config_version: str
    scattering: bool
    params: Dict[str, float]


@dataclass(slots=True)
class SnapshotFields:
    flash: Dict[str, Any]
