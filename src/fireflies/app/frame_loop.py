from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..sim.core.world import FireflyWorld
from ..sim.types.metrics import TickMetrics
from ..sim.types.snapshot import Snapshot

logger = logging.getLogger(__name__)

RenderCallback = Callable[[Snapshot], None]


class FrameLoop:
    """Cooperative display-refresh loop around a world.

    While the surface is hidden ``advance`` does nothing and simulation time
    does not pass; once visible again it resumes from the last committed
    generation.
    """

    def __init__(
        self,
        world: FireflyWorld,
        canvas_size: tuple[float, float] | None = None,
        render: Optional[RenderCallback] = None,
    ):
        config = world.config
        self.world = world
        self.canvas_size = canvas_size or (config.canvas_width, config.canvas_height)
        self.render = render
        self.visible = True
        self.frames = 0
        self.skipped_frames = 0
        self._pointer: tuple[float, float, bool] = (0.0, 0.0, False)

    @property
    def pointer(self) -> tuple[float, float, bool]:
        return self._pointer

    def set_pointer(self, x: float, y: float, pressed: bool) -> None:
        self._pointer = (float(x), float(y), bool(pressed))

    def set_visibility(self, visible: bool) -> None:
        visible = bool(visible)
        if visible != self.visible:
            logger.info("surface %s", "visible, resuming" if visible else "hidden, pausing")
        self.visible = visible

    def advance(self) -> TickMetrics | None:
        # The revert deadline runs on wall time and keeps counting while hidden.
        self.world.perturbation.poll()
        if not self.visible:
            self.skipped_frames += 1
            return None
        metrics = self.world.frame(self.canvas_size, self._pointer)
        if self.render is not None:
            self.render(self.world.snapshot(self.frames))
        self.frames += 1
        return metrics

    async def run(self, frames: int | None = None, interval: float | None = None) -> None:
        """Advance once per ``interval`` seconds; ``frames`` counts rendered frames."""
        interval = self.world.config.frame_interval if interval is None else interval
        while frames is None or self.frames < frames:
            self.advance()
            await asyncio.sleep(interval)
