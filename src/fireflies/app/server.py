from __future__ import annotations

import argparse
import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Set

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import AppConfig, SimulationConfig
from ..sim.core.world import FireflyWorld
from .frame_loop import FrameLoop

logger = logging.getLogger(__name__)

# Unacknowledged snapshots kept for slow or reconnecting clients.
MAX_QUEUED_SNAPSHOTS = 32


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.world = FireflyWorld(config)
        self.frame_loop = FrameLoop(self.world)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=MAX_QUEUED_SNAPSHOTS)
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._frame_task: asyncio.Task | None = None

    @property
    def tick(self) -> int:
        return self.frame_loop.frames

    async def start(self) -> None:
        if self._frame_task is None:
            self._frame_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def shutdown(self) -> None:
        self.running = False
        if self._frame_task is not None:
            self._frame_task.cancel()
            try:
                await self._frame_task
            except asyncio.CancelledError:
                pass
            self._frame_task = None
        self.world.close()

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.frame_loop.frames = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.frame_interval / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                metrics = self.frame_loop.advance()
            if metrics is not None and self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    def scatter(self) -> None:
        self.world.perturbation.trigger(asyncio.get_running_loop())

    def set_pointer(self, x: float, y: float, pressed: bool) -> None:
        self.frame_loop.set_pointer(x, y, pressed)

    def set_visibility(self, visible: bool) -> None:
        self.frame_loop.set_visibility(visible)

    def override_params(self, changes: Dict[str, Any]) -> Dict[str, float]:
        return self.world.perturbation.override(**changes).to_dict()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "agents": snapshot.agents,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
                "fields": asdict(snapshot.fields),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)

    async def handle_message(self, payload: Dict[str, Any]) -> None:
        kind = payload.get("type")
        if kind == "ack":
            tick = payload.get("tick")
            if isinstance(tick, int):
                await self.acknowledge(tick)
        elif kind == "pointer":
            self.set_pointer(
                float(payload.get("x", 0.0)),
                float(payload.get("y", 0.0)),
                bool(payload.get("pressed", False)),
            )
        elif kind == "scatter":
            self.scatter()
        elif kind == "visibility":
            self.set_visibility(bool(payload.get("visible", True)))


def create_app(app_config: AppConfig | None = None) -> FastAPI:
    app_config = AppConfig() if app_config is None else app_config
    try:
        controller = SimulationController(
            app_config.simulation.validate(), broadcast_interval=app_config.broadcast_interval
        )
    except (TypeError, ValueError):
        logger.exception("failed to initialise the simulation")
        raise

    app = FastAPI(title="Firefly Sync Simulation")
    app.state.controller = controller

    @app.on_event("startup")
    async def _startup() -> None:
        await controller.start()
        logger.info("simulation started with %d agents", app_config.simulation.population)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await controller.shutdown()

    @app.get("/api/status")
    async def status() -> JSONResponse:
        snapshot = controller.world.snapshot(controller.tick)
        return JSONResponse(
            {
                "running": controller.running,
                "visible": controller.frame_loop.visible,
                "tick": controller.tick,
                "population": app_config.simulation.population,
                "scattering": controller.world.perturbation.is_scattering,
                "metrics": asdict(snapshot.metrics),
            }
        )

    @app.post("/api/control/start")
    async def start_simulation() -> JSONResponse:
        controller.running = True
        return JSONResponse({"running": True})

    @app.post("/api/control/stop")
    async def stop_simulation() -> JSONResponse:
        controller.running = False
        return JSONResponse({"running": False})

    @app.post("/api/control/reset")
    async def reset_simulation() -> JSONResponse:
        await controller.reset()
        return JSONResponse({"running": controller.running, "tick": controller.tick})

    @app.post("/api/control/speed")
    async def set_speed(payload: dict) -> JSONResponse:
        speed = float(payload.get("multiplier", 1.0))
        controller.speed_multiplier = max(0.1, min(5.0, speed))
        return JSONResponse({"multiplier": controller.speed_multiplier})

    @app.get("/api/params")
    async def get_params() -> JSONResponse:
        perturbation = controller.world.perturbation
        return JSONResponse(
            {
                "params": perturbation.params.to_dict(),
                "baseline": perturbation.baseline.to_dict(),
                "scattering": perturbation.is_scattering,
            }
        )

    @app.post("/api/params")
    async def set_params(payload: dict) -> JSONResponse:
        try:
            params = controller.override_params(payload)
        except (TypeError, ValueError) as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return JSONResponse({"params": params})

    @app.post("/api/scatter")
    async def scatter() -> JSONResponse:
        controller.scatter()
        return JSONResponse({"scattering": True})

    @app.post("/api/visibility")
    async def set_visibility(payload: dict) -> JSONResponse:
        controller.set_visibility(bool(payload.get("visible", True)))
        return JSONResponse({"visible": controller.frame_loop.visible})

    @app.post("/api/pointer")
    async def set_pointer(payload: dict) -> JSONResponse:
        controller.set_pointer(
            float(payload.get("x", 0.0)),
            float(payload.get("y", 0.0)),
            bool(payload.get("pressed", False)),
        )
        return JSONResponse({"pointer": list(controller.frame_loop.pointer)})

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        controller.clients.add(websocket)
        controller._client_last_sent[websocket] = -1
        await controller._send_pending_snapshots(websocket)
        try:
            while True:
                message = await websocket.receive_text()
                try:
                    payload = json.loads(message)
                except json.JSONDecodeError:
                    continue
                if isinstance(payload, dict):
                    await controller.handle_message(payload)
        except WebSocketDisconnect:
            controller.clients.discard(websocket)
            controller._client_last_sent.pop(websocket, None)

    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Firefly simulation web host")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--broadcast-interval", type=int, default=2)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        simulation = SimulationConfig.from_yaml(args.config) if args.config else SimulationConfig()
        app = create_app(AppConfig(simulation=simulation, broadcast_interval=args.broadcast_interval))
    except (OSError, TypeError, ValueError) as exc:
        logger.error("cannot start server: %s", exc)
        raise SystemExit(2) from exc
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


app = create_app()


if __name__ == "__main__":
    main()


__all__ = ["app", "create_app", "SimulationController", "main"]
