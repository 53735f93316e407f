from __future__ import annotations

from pytest import approx

from fireflies.sim.systems.field import FieldAccumulator

SQUARE = (2.0, 2.0)


def test_only_flashing_agents_contribute():
    field = FieldAccumulator(128, 128)

    flashes = field.accumulate([(0.5, 0.5, 0.0, 0.3), (0.2, 0.2, 0.0, 0.999)], 0.04, SQUARE)

    assert flashes == 0
    assert field.sample(0.5, 0.5) == 0.0
    assert field.peak() == 0.0


def test_flash_disc_has_full_core_and_finite_radius():
    field = FieldAccumulator(512, 512)

    flashes = field.accumulate([(0.5, 0.5, 0.0, 0.0)], 0.04, SQUARE)

    assert flashes == 1
    assert field.sample(0.5, 0.5) == approx(1.0)
    assert field.sample(0.52, 0.5) == approx(1.0)
    assert field.sample(0.55, 0.5) == 0.0
    assert field.sample(0.5, 0.45) == 0.0


def test_disc_is_stretched_by_aspect():
    field = FieldAccumulator(512, 512)

    field.accumulate([(0.5, 0.5, 0.0, 0.0)], 0.04, (4.0, 2.0))

    assert field.sample(0.56, 0.5) == approx(1.0)
    assert field.sample(0.5, 0.56) == 0.0


def test_contributions_add_up():
    field = FieldAccumulator(256, 256)

    flashes = field.accumulate([(0.5, 0.5, 0.0, 0.0), (0.5, 0.5, 0.0, 0.0)], 0.04, SQUARE)

    assert flashes == 2
    assert field.sample(0.5, 0.5) == approx(2.0)
    assert field.peak() == approx(2.0)


def test_field_is_rebuilt_each_step():
    field = FieldAccumulator(256, 256)
    field.accumulate([(0.5, 0.5, 0.0, 0.0)], 0.04, SQUARE)

    field.accumulate([(0.5, 0.5, 0.0, 0.5)], 0.04, SQUARE)

    assert field.sample(0.5, 0.5) == 0.0
    assert field.export_cells()["cells"] == []


def test_discs_are_clipped_at_the_edge():
    field = FieldAccumulator(256, 256)

    field.accumulate([(0.0, 0.5, 0.0, 0.0)], 0.04, SQUARE)

    assert field.sample(0.01, 0.5) == approx(1.0)
    assert field.sample(0.995, 0.5) == 0.0


def test_export_lists_lit_cells():
    field = FieldAccumulator(64, 32)
    field.accumulate([(0.5, 0.5, 0.0, 0.0)], 0.1, SQUARE)

    exported = field.export_cells()

    assert exported["width"] == 64
    assert exported["height"] == 32
    assert exported["cells"]
    for x, y, value in exported["cells"]:
        assert 0 <= x < 64 and 0 <= y < 32
        assert value > 0.0
