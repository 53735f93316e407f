from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlockingParams:
    """Parameter snapshot read by every kernel during one step."""

    release_time: float = 0.5
    flash_radius: float = 0.04
    max_speed: float = 0.001
    max_force: float = 0.00005
    acceleration_scale: float = 1.0
    cohesion_weight: float = 1.0
    alignment_weight: float = 1.0
    separation_weight: float = 1.0
    noise_scale: float = 0.0001
    separation_radius: float = 0.02
    firing_noise: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class ScatterConfig:
    separation_weight: float = 10.0
    separation_radius: float = 0.03
    firing_noise: float = 0.01
    revert_delay_seconds: float = 0.3


@dataclass
class FieldConfig:
    width: int = 512
    height: int = 512


@dataclass
class SimulationConfig:
    grid_size: int = 20
    steps_per_frame: int = 1
    seed: int = 123
    initial_speed: float = 0.001
    touch_radius: float = 0.1
    canvas_width: int = 800
    canvas_height: int = 800
    frame_interval: float = 1.0 / 60.0
    workers: int = 1
    config_version: str = "v1"
    params: FlockingParams = field(default_factory=FlockingParams)
    scatter: ScatterConfig = field(default_factory=ScatterConfig)
    raster: FieldConfig = field(default_factory=FieldConfig)

    @property
    def population(self) -> int:
        return self.grid_size * self.grid_size

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        logger.info("loaded simulation config from %s", path)
        return load_config(data)

    def validate(self) -> "SimulationConfig":
        if self.grid_size < 1:
            raise ValueError(f"grid_size must be positive, got {self.grid_size}")
        if self.steps_per_frame < 1:
            raise ValueError(f"steps_per_frame must be at least 1, got {self.steps_per_frame}")
        if self.raster.width < 1 or self.raster.height < 1:
            raise ValueError(f"field raster must be non-empty, got {self.raster.width}x{self.raster.height}")
        if self.canvas_width < 1 or self.canvas_height < 1:
            raise ValueError(f"canvas must be non-empty, got {self.canvas_width}x{self.canvas_height}")
        if self.frame_interval <= 0.0:
            raise ValueError(f"frame_interval must be positive, got {self.frame_interval}")
        if self.scatter.revert_delay_seconds < 0.0:
            raise ValueError("scatter.revert_delay_seconds must not be negative")
        _check_params(self.params)
        _check_params(
            FlockingParams(
                separation_weight=self.scatter.separation_weight,
                separation_radius=self.scatter.separation_radius,
                firing_noise=self.scatter.firing_noise,
            )
        )
        if self.initial_speed < 0.0 or self.touch_radius < 0.0:
            raise ValueError("initial_speed and touch_radius must not be negative")
        return self


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


_NON_NEGATIVE_PARAMS = (
    "flash_radius",
    "max_speed",
    "max_force",
    "acceleration_scale",
    "noise_scale",
    "separation_radius",
    "firing_noise",
)


def _check_params(params: FlockingParams) -> None:
    for name in _NON_NEGATIVE_PARAMS:
        value = getattr(params, name)
        if value < 0.0:
            raise ValueError(f"{name} must not be negative, got {value}")


def params_from_dict(raw: Dict[str, Any], base: FlockingParams | None = None) -> FlockingParams:
    base = FlockingParams() if base is None else base
    known = {f.name for f in fields(FlockingParams)}
    unknown = set(raw) - known
    if unknown:
        raise TypeError(f"unknown flocking parameters: {sorted(unknown)}")
    values = base.to_dict()
    values.update({k: float(v) for k, v in raw.items()})
    return FlockingParams(**values)


def load_config(raw: dict) -> SimulationConfig:
    params = params_from_dict(raw.get("params", {}))
    scatter = ScatterConfig(**raw.get("scatter", {}))
    raster = FieldConfig(**raw.get("raster", {}))
    sim_values = {k: v for k, v in raw.items() if k not in {"params", "scatter", "raster"}}
    config = SimulationConfig(params=params, scatter=scatter, raster=raster, **sim_values)
    return config.validate()
