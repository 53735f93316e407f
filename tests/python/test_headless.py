import csv
import json

import pytest

from fireflies.app.headless import run_headless
from fireflies.sim.core.config import FieldConfig, SimulationConfig


def _config(**overrides) -> SimulationConfig:
    return SimulationConfig(grid_size=3, raster=FieldConfig(64, 64), **overrides)


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def test_headless_basic_log_header(tmp_path):
    log_path = tmp_path / "basic.csv"
    run_headless(frames=2, seed=1, log_path=log_path, deterministic_log=True, log_format="basic", config=_config())
    rows = _read_csv(log_path)
    assert len(rows) == 3
    assert rows[0] == [
        "tick",
        "population",
        "flashes",
        "mean_phase",
        "synchrony",
        "mean_speed",
        "neighbor_checks",
        "tick_ms",
    ]
    assert rows[1][1] == "9"
    assert rows[1][6] == str(9 * 8)


def test_headless_detailed_log_header_and_ratios(tmp_path):
    log_path = tmp_path / "detailed.csv"
    run_headless(frames=3, seed=2, log_path=log_path, deterministic_log=True, log_format="detailed", config=_config())
    rows = _read_csv(log_path)
    assert len(rows) == 4
    header = rows[0]
    assert header == [
        "tick",
        "population",
        "flashes",
        "mean_phase",
        "synchrony",
        "mean_speed",
        "max_speed",
        "field_peak",
        "scattering",
        "neighbor_checks",
        "tick_ms",
        "flashes_per_agent",
        "tick_ms_per_agent",
    ]
    for row in rows[1:]:
        values = dict(zip(header, row))
        population = int(values["population"])
        assert float(values["flashes_per_agent"]) == pytest.approx(int(values["flashes"]) / population, abs=1e-4)
        assert values["tick_ms"] == "0.000"
        assert 0.0 <= float(values["synchrony"]) <= 1.0


def test_headless_deterministic_logs_match(tmp_path):
    first = tmp_path / "first.csv"
    second = tmp_path / "second.csv"
    run_headless(frames=5, seed=11, log_path=first, deterministic_log=True, config=_config())
    run_headless(frames=5, seed=11, log_path=second, deterministic_log=True, config=_config())
    assert first.read_text() == second.read_text()


def test_headless_rejects_unknown_format(tmp_path):
    with pytest.raises(ValueError):
        run_headless(frames=1, seed=1, log_path=tmp_path / "x.csv", log_format="verbose", config=_config())


def test_headless_scatter_and_summary(tmp_path):
    log_path = tmp_path / "scatter.csv"
    summary_path = tmp_path / "summary.json"
    world = run_headless(
        frames=25,
        seed=None,
        log_path=log_path,
        deterministic_log=True,
        summary_path=summary_path,
        summary_window=10,
        config=SimulationConfig(grid_size=2, raster=FieldConfig(32, 32)),
        scatter_at=[0],
    )
    rows = _read_csv(log_path)
    scattering = rows[0].index("scattering")
    assert rows[1][scattering] == "1"
    assert rows[-1][scattering] == "0"
    assert not world.perturbation.is_scattering

    summary = json.loads(summary_path.read_text())
    assert summary["frames"] == 25
    assert summary["steps"] == 25
    assert summary["seed"] == 123
    assert summary["population"] == 4
    assert summary["scatter_triggers"] == 1
    assert summary["scatter_reverts"] == 1
    assert summary["tail_window"]["window"] == 10
    for key in ["min", "max", "avg", "p50", "p90", "p99"]:
        assert key in summary["synchrony"]
    assert summary["tick_ms"]["max"] == 0.0
