from __future__ import annotations

import math
from typing import Any, Dict, List, Sequence

from ..core.agent import StateCell
from ..utils.math2d import _smoothstep

# Disc profile: full intensity inside 90% of the radius, fading to zero at the rim.
_RIM_INNER = 0.9
_RIM_OUTER = 1.0


class FieldAccumulator:
    """Sensing raster built from the flashes of the current generation.

    ``flash_radius`` is measured in clip-space units, where the raster spans
    two units, so a disc covers ``flash_radius * aspect / 2`` of the unit
    domain along each axis. Contributions add up; discs that cross the edge
    are clipped, not wrapped.
    """

    def __init__(self, width: int, height: int):
        self._width = width
        self._height = height
        self._cells: List[float] = [0.0] * (width * height)
        self._active_indices: List[int] = []

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def clear(self) -> None:
        cells = self._cells
        for index in self._active_indices:
            cells[index] = 0.0
        self._active_indices.clear()

    def accumulate(self, states: Sequence[StateCell], flash_radius: float, aspect: tuple[float, float]) -> int:
        self.clear()
        radius_x = flash_radius * aspect[0] * 0.5
        radius_y = flash_radius * aspect[1] * 0.5
        flashes = 0
        for x, y, _hue, phase in states:
            if phase != 0.0:
                continue
            flashes += 1
            self.splat(x, y, radius_x, radius_y)
        return flashes

    def splat(self, cx: float, cy: float, radius_x: float, radius_y: float) -> None:
        if radius_x <= 0.0 or radius_y <= 0.0:
            return
        width = self._width
        height = self._height
        x0 = max(0, int(math.floor((cx - radius_x) * width)))
        x1 = min(width - 1, int(math.ceil((cx + radius_x) * width)))
        y0 = max(0, int(math.floor((cy - radius_y) * height)))
        y1 = min(height - 1, int(math.ceil((cy + radius_y) * height)))
        cells = self._cells
        active = self._active_indices
        for py in range(y0, y1 + 1):
            dy = ((py + 0.5) / height - cy) / radius_y
            row = py * width
            for px in range(x0, x1 + 1):
                dx = ((px + 0.5) / width - cx) / radius_x
                dist = math.sqrt(dx * dx + dy * dy)
                if dist >= _RIM_OUTER:
                    continue
                index = row + px
                if cells[index] == 0.0:
                    active.append(index)
                cells[index] += _smoothstep(_RIM_OUTER, _RIM_INNER, dist)

    def sample(self, x: float, y: float) -> float:
        px = min(self._width - 1, max(0, int(x * self._width)))
        py = min(self._height - 1, max(0, int(y * self._height)))
        return self._cells[py * self._width + px]

    def peak(self) -> float:
        cells = self._cells
        return max((cells[index] for index in self._active_indices), default=0.0)

    def export_cells(self) -> Dict[str, Any]:
        cells = self._cells
        width = self._width
        values = [
            [index % width, index // width, round(cells[index], 4)]
            for index in sorted(self._active_indices)
            if cells[index] > 0.0
        ]
        return {"width": width, "height": self._height, "cells": values}
