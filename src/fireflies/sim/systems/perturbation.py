"""Transient "scatter" override of the shared flocking parameters.

The controller is a two-state machine, NORMAL and SCATTERING(deadline).
``trigger`` enters SCATTERING and pushes the deadline out; ``poll`` reverts
once the deadline has passed. Hosts without an event loop call ``poll`` from
their frame loop; hosts with one can also arm a cancellable timer with
``schedule_revert``. Every transition publishes a new frozen
``FlockingParams`` under a lock, so a step always reads a consistent set.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import replace
from enum import Enum
from typing import Any, Callable

from ..core.config import FlockingParams, ScatterConfig, params_from_dict

logger = logging.getLogger(__name__)


class ScatterState(str, Enum):
    NORMAL = "Normal"
    SCATTERING = "Scattering"


class PerturbationController:
    def __init__(
        self,
        baseline: FlockingParams,
        scatter: ScatterConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._lock = threading.Lock()
        self._baseline = baseline
        self._params = baseline
        self._scatter = scatter
        self._clock = clock
        self._state = ScatterState.NORMAL
        self._deadline: float | None = None
        self._timer: asyncio.TimerHandle | None = None
        self.triggers = 0
        self.reverts = 0

    @property
    def params(self) -> FlockingParams:
        return self._params

    @property
    def baseline(self) -> FlockingParams:
        return self._baseline

    @property
    def state(self) -> ScatterState:
        return self._state

    @property
    def is_scattering(self) -> bool:
        return self._state is ScatterState.SCATTERING

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def trigger(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        with self._lock:
            self._params = self._scattered(self._params)
            self._state = ScatterState.SCATTERING
            deadline = self._clock() + self._scatter.revert_delay_seconds
            self._deadline = deadline
            self.triggers += 1
        logger.debug("scatter triggered, revert due at %.3f", deadline)
        if loop is not None:
            self.schedule_revert(loop)

    def poll(self, now: float | None = None) -> bool:
        """Revert if the pending deadline has passed; returns True on revert."""
        with self._lock:
            if self._deadline is None:
                return False
            now = self._clock() if now is None else now
            if now < self._deadline:
                return False
            self._params = self._restored(self._params)
            self._state = ScatterState.NORMAL
            self._deadline = None
            self.reverts += 1
        logger.debug("scatter reverted")
        return True

    def schedule_revert(self, loop: asyncio.AbstractEventLoop) -> None:
        """Arm a one-shot revert timer, replacing any pending one."""
        if self._timer is not None:
            self._timer.cancel()
        deadline = self._deadline
        if deadline is None:
            self._timer = None
            return
        self._timer = loop.call_later(self._scatter.revert_delay_seconds, self._on_timer, deadline)

    def _on_timer(self, deadline: float) -> None:
        self._timer = None
        # The loop may run a timer marginally early; a later trigger moves the
        # deadline past this one and keeps the override alive.
        self.poll(now=deadline)

    def cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def override(self, **changes: Any) -> FlockingParams:
        """Replace baseline values; live scatter fields stay in force until revert."""
        with self._lock:
            self._baseline = params_from_dict(changes, self._baseline)
            live = self._baseline
            if self._state is ScatterState.SCATTERING:
                live = self._scattered(live)
            self._params = live
        logger.info("parameters overridden: %s", sorted(changes))
        return self._params

    def reset(self, baseline: FlockingParams | None = None) -> None:
        self.cancel_timer()
        with self._lock:
            if baseline is not None:
                self._baseline = baseline
            self._params = self._baseline
            self._state = ScatterState.NORMAL
            self._deadline = None

    def _scattered(self, params: FlockingParams) -> FlockingParams:
        return replace(
            params,
            separation_weight=self._scatter.separation_weight,
            separation_radius=self._scatter.separation_radius,
            firing_noise=self._scatter.firing_noise,
        )

    def _restored(self, params: FlockingParams) -> FlockingParams:
        return replace(
            params,
            separation_weight=self._baseline.separation_weight,
            separation_radius=self._baseline.separation_radius,
            firing_noise=self._baseline.firing_noise,
        )
