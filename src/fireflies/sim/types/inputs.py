from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector2


@dataclass(frozen=True)
class Touch:
    """Pointer state in unit-domain coordinates."""

    position: Vector2 = field(default_factory=Vector2)
    pressed: bool = False


NO_TOUCH = Touch()


def canvas_aspect(width: float, height: float) -> tuple[float, float]:
    """Per-axis scale that keeps discs circular on a non-square canvas."""
    total = width + height
    return total / width, total / height


def pointer_to_touch(width: float, height: float, x: float, y: float, pressed: bool) -> Touch:
    """Convert a pointer given in pixels from the canvas centre."""
    return Touch(position=Vector2(x / width + 0.5, y / height + 0.5), pressed=bool(pressed))
