"""Double-buffered agent storage.

Each store owns two fixed arenas and an active index. Kernels read only the
current arena and write only the next one, so every agent can be updated
independently; ``swap`` hands the current role to the freshly written arena
once the whole generation is complete.
"""
from __future__ import annotations

import math
from typing import Generic, Iterable, List, Sequence, TypeVar

from pygame.math import Vector2

from .agent import Agent, StateCell, VelocityCell
from .rng import hash3
from ..utils.math2d import _fract, wrap01

CURRENT = 0
NEXT = 1

# Velocities are hashed from a second stream offset from the position seed.
VELOCITY_SEED_OFFSET = 333

CellT = TypeVar("CellT")


class DoubleBuffer(Generic[CellT]):
    def __init__(self, side: int, fill: CellT):
        self._side = side
        count = side * side
        self._arenas: tuple[List[CellT], List[CellT]] = ([fill] * count, [fill] * count)
        self._written = (bytearray(count), bytearray(count))
        self._active = 0

    @property
    def side(self) -> int:
        return self._side

    def __len__(self) -> int:
        return self._side * self._side

    @property
    def current(self) -> Sequence[CellT]:
        return self._arenas[self._active]

    def index_of(self, x: int, y: int) -> int:
        return y * self._side + x

    def coords(self, index: int) -> tuple[int, int]:
        return index % self._side, index // self._side

    def read(self, buffer: int, index: int) -> CellT:
        return self._arenas[self._active ^ buffer][index]

    def write(self, index: int, value: CellT) -> None:
        target = self._active ^ NEXT
        self._arenas[target][index] = value
        self._written[target][index] = 1

    def pending(self) -> int:
        written = self._written[self._active ^ NEXT]
        return len(written) - sum(written)

    def swap(self) -> None:
        missing = self.pending()
        if missing:
            raise RuntimeError(f"cannot swap: {missing} cells of the next generation were not written")
        self._written[self._active ^ NEXT][:] = bytes(len(self))
        self._active ^= 1

    def load(self, values: Iterable[CellT]) -> None:
        """Write a complete generation and make it current."""
        values = list(values)
        if len(values) != len(self):
            raise ValueError(f"expected {len(self)} cells, got {len(values)}")
        for index, value in enumerate(values):
            self.write(index, value)
        self.swap()


class AgentStateStore(DoubleBuffer[StateCell]):
    def __init__(self, side: int):
        super().__init__(side, (0.0, 0.0, 0.0, 0.0))

    def initialize(self, seed: int) -> None:
        cells = []
        for index in range(len(self)):
            x, y = self.coords(index)
            rx, ry, rz = hash3(x, y, seed)
            cells.append((wrap01(rx), wrap01(ry), rz * math.tau, _fract(rz * 100.0)))
        self.load(cells)


class VelocityStore(DoubleBuffer[VelocityCell]):
    def __init__(self, side: int):
        super().__init__(side, (0.0, 0.0))

    def initialize(self, seed: int, initial_speed: float) -> None:
        cells = []
        for index in range(len(self)):
            x, y = self.coords(index)
            rx, ry, _ = hash3(x, y, seed + VELOCITY_SEED_OFFSET)
            cells.append(((rx * 2.0 - 1.0) * initial_speed, (ry * 2.0 - 1.0) * initial_speed))
        self.load(cells)


def initialize(states: AgentStateStore, velocities: VelocityStore, seed: int, initial_speed: float) -> None:
    states.initialize(seed)
    velocities.initialize(seed, initial_speed)


def build_agents(states: AgentStateStore, velocities: VelocityStore, buffer: int = CURRENT) -> List[Agent]:
    agents: List[Agent] = []
    for index in range(len(states)):
        x, y, hue, phase = states.read(buffer, index)
        vx, vy = velocities.read(buffer, index)
        grid_x, grid_y = states.coords(index)
        agents.append(
            Agent(
                index=index,
                grid_x=grid_x,
                grid_y=grid_y,
                position=Vector2(x, y),
                phase=phase,
                hue=hue,
                velocity=Vector2(vx, vy),
            )
        )
    return agents
