from __future__ import annotations

import asyncio

from pytest import approx

from fireflies.app.frame_loop import FrameLoop
from fireflies.sim.core.config import FieldConfig, SimulationConfig
from fireflies.sim.core.world import FireflyWorld
from fireflies.sim.types.inputs import canvas_aspect, pointer_to_touch


def _world(**overrides) -> FireflyWorld:
    return FireflyWorld(SimulationConfig(grid_size=2, raster=FieldConfig(32, 32), **overrides))


def test_hidden_surface_does_not_advance():
    world = _world()
    loop = FrameLoop(world)
    before = list(world.states.current)

    loop.set_visibility(False)
    assert loop.advance() is None
    assert loop.advance() is None

    assert world.steps == 0
    assert loop.frames == 0
    assert loop.skipped_frames == 2
    assert list(world.states.current) == before


def test_resumes_from_last_generation_when_visible_again():
    world = _world()
    loop = FrameLoop(world)
    loop.advance()
    paused = list(world.states.current)

    loop.set_visibility(False)
    loop.advance()
    assert list(world.states.current) == paused

    loop.set_visibility(True)
    metrics = loop.advance()
    assert metrics is not None
    assert world.steps == 2


def test_each_frame_runs_steps_per_frame():
    world = _world(steps_per_frame=4)
    loop = FrameLoop(world)

    loop.advance()
    loop.advance()

    assert loop.frames == 2
    assert world.steps == 8


def test_render_callback_receives_frame_snapshot():
    world = _world()
    rendered = []
    loop = FrameLoop(world, render=rendered.append)

    loop.advance()
    loop.advance()

    assert [snapshot.tick for snapshot in rendered] == [0, 1]
    assert len(rendered[-1].agents) == 4


def test_canvas_size_drives_aspect():
    world = _world()
    loop = FrameLoop(world, canvas_size=(800.0, 400.0))

    loop.advance()

    assert world.aspect == approx((1.5, 3.0))


def test_run_stops_after_requested_frames():
    world = _world()
    loop = FrameLoop(world)

    asyncio.run(loop.run(frames=3, interval=0.0))

    assert loop.frames == 3
    assert world.steps == 3


def test_pointer_is_measured_from_canvas_centre():
    touch = pointer_to_touch(800.0, 400.0, 200.0, -100.0, True)

    assert touch.position.x == approx(0.75)
    assert touch.position.y == approx(0.25)
    assert touch.pressed
    assert canvas_aspect(800.0, 800.0) == (2.0, 2.0)
