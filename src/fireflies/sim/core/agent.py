from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector2

# Channel layout of one state cell: (x, y, hue, phase).
StateCell = tuple[float, float, float, float]
# Channel layout of one velocity cell: (vx, vy).
VelocityCell = tuple[float, float]


@dataclass(slots=True)
class Agent:
    index: int
    grid_x: int
    grid_y: int
    position: Vector2
    phase: float
    hue: float = 0.0
    velocity: Vector2 = field(default_factory=Vector2)

    @property
    def flashing(self) -> bool:
        return self.phase == 0.0

    def state_cell(self) -> StateCell:
        return (self.position.x, self.position.y, self.hue, self.phase)

    def velocity_cell(self) -> VelocityCell:
        return (self.velocity.x, self.velocity.y)
