import asyncio
import json

import pytest

from fireflies.app.server import MAX_QUEUED_SNAPSHOTS, SimulationController
from fireflies.sim.core.config import FieldConfig, SimulationConfig


class RecordingSocket:
    def __init__(self) -> None:
        self.sent = []

    async def send_text(self, text: str) -> None:
        self.sent.append(json.loads(text))


def _controller() -> SimulationController:
    return SimulationController(SimulationConfig(grid_size=2, raster=FieldConfig(32, 32)))


def test_snapshot_queue_ack_cleanup() -> None:
    controller = _controller()

    async def exercise() -> None:
        controller.frame_loop.frames = 1
        await controller._broadcast_snapshot()
        controller.frame_loop.frames = 2
        await controller._broadcast_snapshot()
        async with controller._queue_lock:
            queued_ticks = [item.tick for item in controller._snapshot_queue]
        assert queued_ticks == [1, 2]
        await controller.acknowledge(1)
        async with controller._queue_lock:
            remaining_ticks = [item.tick for item in controller._snapshot_queue]
        assert remaining_ticks == [2]

    asyncio.run(exercise())


def test_snapshot_queue_is_bounded_without_acks() -> None:
    controller = _controller()

    async def exercise() -> None:
        for tick in range(MAX_QUEUED_SNAPSHOTS * 3):
            controller.frame_loop.frames = tick
            await controller._broadcast_snapshot()

    asyncio.run(exercise())

    queued_ticks = [item.tick for item in controller._snapshot_queue]
    assert len(queued_ticks) == MAX_QUEUED_SNAPSHOTS
    assert queued_ticks[0] == MAX_QUEUED_SNAPSHOTS * 2
    assert queued_ticks[-1] == MAX_QUEUED_SNAPSHOTS * 3 - 1


def test_pending_snapshots_are_sent_once() -> None:
    controller = _controller()
    client = RecordingSocket()

    async def exercise() -> None:
        controller._client_last_sent[client] = -1
        controller.frame_loop.frames = 3
        await controller._broadcast_snapshot()
        await controller._send_pending_snapshots(client)
        await controller._send_pending_snapshots(client)

    asyncio.run(exercise())

    assert [message["tick"] for message in client.sent] == [3]
    payload = client.sent[0]["payload"]
    assert payload["metadata"]["grid_size"] == 2
    assert len(payload["agents"]) == 4
    assert "flash" in payload["fields"]


def test_messages_drive_pointer_visibility_and_scatter() -> None:
    controller = _controller()

    async def exercise() -> None:
        await controller.handle_message({"type": "pointer", "x": 10, "y": -5, "pressed": True})
        await controller.handle_message({"type": "visibility", "visible": False})
        await controller.handle_message({"type": "scatter"})
        assert controller.world.perturbation.is_scattering
        controller.world.perturbation.cancel_timer()

    asyncio.run(exercise())

    assert controller.frame_loop.pointer == (10.0, -5.0, True)
    assert controller.frame_loop.visible is False


def test_override_params() -> None:
    controller = _controller()

    params = controller.override_params({"cohesion_weight": 0.5})

    assert params["cohesion_weight"] == 0.5
    assert controller.world.perturbation.params.cohesion_weight == 0.5
    with pytest.raises(TypeError):
        controller.override_params({"unknown": 1.0})
