from __future__ import annotations

from time import perf_counter
from typing import Any, Callable, Dict, List

from pygame.math import Vector2

from .agent import Agent
from .config import FlockingParams, SimulationConfig
from .kernels import KernelRunner
from .state import NEXT, AgentStateStore, VelocityStore, build_agents, initialize
from ..systems import flocking, integration, metrics as metrics_system, sprites
from ..systems.field import FieldAccumulator
from ..systems.perturbation import PerturbationController
from ..types.inputs import NO_TOUCH, Touch, canvas_aspect, pointer_to_touch
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotFields, SnapshotMetadata, SnapshotWorld


class FireflyWorld:
    def __init__(self, config: SimulationConfig, clock: Callable[[], float] | None = None):
        self._config = config
        side = config.grid_size
        self._states = AgentStateStore(side)
        self._velocities = VelocityStore(side)
        self._field = FieldAccumulator(config.raster.width, config.raster.height)
        if clock is None:
            self._perturbation = PerturbationController(config.params, config.scatter)
        else:
            self._perturbation = PerturbationController(config.params, config.scatter, clock=clock)
        self._runner = KernelRunner(config.workers)
        self._aspect = canvas_aspect(config.canvas_width, config.canvas_height)
        self._metrics: TickMetrics | None = None
        self._steps = 0
        initialize(self._states, self._velocities, config.seed, config.initial_speed)

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def states(self) -> AgentStateStore:
        return self._states

    @property
    def velocities(self) -> VelocityStore:
        return self._velocities

    @property
    def field(self) -> FieldAccumulator:
        return self._field

    @property
    def perturbation(self) -> PerturbationController:
        return self._perturbation

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def steps(self) -> int:
        return self._steps

    @property
    def aspect(self) -> tuple[float, float]:
        return self._aspect

    @property
    def agents(self) -> List[Agent]:
        return build_agents(self._states, self._velocities)

    def reset(self) -> None:
        initialize(self._states, self._velocities, self._config.seed, self._config.initial_speed)
        self._field.clear()
        self._perturbation.reset()
        self._metrics = None
        self._steps = 0

    def place(self, agents: List[Agent]) -> None:
        """Replace the current generation with explicitly given agents."""
        ordered = sorted(agents, key=lambda agent: agent.index)
        self._states.load(agent.state_cell() for agent in ordered)
        self._velocities.load(agent.velocity_cell() for agent in ordered)

    def close(self) -> None:
        self._perturbation.cancel_timer()
        self._runner.close()

    def step(
        self,
        touch: Touch = NO_TOUCH,
        aspect: tuple[float, float] | None = None,
        params: FlockingParams | None = None,
    ) -> TickMetrics:
        start = perf_counter()
        params = self._perturbation.params if params is None else params
        aspect = self._aspect if aspect is None else aspect
        touch_radius = self._config.touch_radius
        states = self._states.current
        velocities = self._velocities.current
        population = len(states)
        field = self._field

        flashes = field.accumulate(states, params.flash_radius, aspect)

        velocity_store = self._velocities

        def velocity_kernel(index: int) -> None:
            velocity_store.write(index, flocking.compute_velocity(index, states, velocities, params))

        self._runner.dispatch(velocity_kernel, population)

        state_store = self._states

        def integration_kernel(index: int) -> None:
            state_store.write(
                index,
                integration.integrate(
                    states[index], velocity_store.read(NEXT, index), field, params, touch, aspect, touch_radius
                ),
            )

        self._runner.dispatch(integration_kernel, population)
        # Both generations commit together once every kernel has finished.
        velocity_store.swap()
        state_store.swap()

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            self._steps,
            state_store.current,
            velocity_store.current,
            flashes,
            field.peak(),
            self._perturbation.is_scattering,
            elapsed_ms,
        )
        self._steps += 1
        self._metrics = metrics
        return metrics

    def frame(
        self,
        canvas_size: tuple[float, float] | None = None,
        pointer: tuple[float, float, bool] = (0.0, 0.0, False),
    ) -> TickMetrics:
        """One rendered frame: ``steps_per_frame`` steps with the frame's pointer."""
        if canvas_size is None:
            canvas_size = (self._config.canvas_width, self._config.canvas_height)
        width, height = canvas_size
        self._aspect = canvas_aspect(width, height)
        touch = pointer_to_touch(width, height, pointer[0], pointer[1], pointer[2])
        self._perturbation.poll()
        metrics = self._metrics
        for _ in range(self._config.steps_per_frame):
            metrics = self.step(touch, self._aspect)
        return metrics

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._snapshot_metrics_from_state(tick)
        agents_payload = [self._agent_snapshot(agent) for agent in self.agents]
        params = self._perturbation.params
        metadata = SnapshotMetadata(
            grid_size=self._config.grid_size,
            steps_per_frame=self._config.steps_per_frame,
            frame_interval=self._config.frame_interval,
            seed=self._config.seed,
            config_version=self._config.config_version,
            scattering=self._perturbation.is_scattering,
            params=params.to_dict(),
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=agents_payload,
            world=SnapshotWorld(grid_size=self._config.grid_size, aspect=self._aspect),
            metadata=metadata,
            fields=SnapshotFields(flash=self._field.export_cells()),
        )

    def _snapshot_metrics_from_state(self, tick: int) -> TickMetrics:
        return metrics_system.create_metrics(
            tick,
            self._states.current,
            self._velocities.current,
            0,
            self._field.peak(),
            self._perturbation.is_scattering,
            0.0,
        )

    @staticmethod
    def _agent_snapshot(agent: Agent) -> Dict[str, Any]:
        flash = sprites.flash_intensity(agent.phase)
        velocity: Vector2 = agent.velocity
        return {
            "id": agent.index,
            "gx": agent.grid_x,
            "gy": agent.grid_y,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": velocity.x,
            "vy": velocity.y,
            "speed": velocity.length(),
            "phase": agent.phase,
            "hue": agent.hue,
            "flash": flash,
            "size": sprites.sprite_radius(flash),
        }
