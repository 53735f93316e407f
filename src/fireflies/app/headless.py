from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Iterable, Optional

import yaml

from ..sim.core.config import SimulationConfig
from ..sim.core.world import FireflyWorld
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

_BASIC_HEADER = [
    "tick",
    "population",
    "flashes",
    "mean_phase",
    "synchrony",
    "mean_speed",
    "neighbor_checks",
    "tick_ms",
]

_DETAILED_HEADER = [
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


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.flashes,
        f"{metrics.mean_phase:.4f}",
        f"{metrics.synchrony:.4f}",
        f"{metrics.mean_speed:.6f}",
        metrics.neighbor_checks,
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    population = metrics.population
    if population <= 0:
        flashes_per_agent = 0.0
        tick_ms_per_agent = 0.0
    else:
        flashes_per_agent = metrics.flashes / population
        tick_ms_per_agent = tick_ms / population
    return [
        metrics.tick,
        population,
        metrics.flashes,
        f"{metrics.mean_phase:.4f}",
        f"{metrics.synchrony:.4f}",
        f"{metrics.mean_speed:.6f}",
        f"{metrics.max_speed:.6f}",
        f"{metrics.field_peak:.4f}",
        int(metrics.scattering),
        metrics.neighbor_checks,
        f"{tick_ms:.3f}",
        f"{flashes_per_agent:.4f}",
        f"{tick_ms_per_agent:.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    frames: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 500,
    config: Optional[SimulationConfig] = None,
    scatter_at: Iterable[int] = (),
) -> FireflyWorld:
    config = SimulationConfig() if config is None else config
    if seed is not None:
        config.seed = seed
    config.validate()

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    # Perturbation deadlines run on simulated time so identical runs match.
    sim_clock = {"now": 0.0}
    world = FireflyWorld(config, clock=lambda: sim_clock["now"])
    scatter_frames = set(scatter_at)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    synchrony_series: list[float] = []
    flash_series: list[float] = []
    tick_ms_series: list[float] = []
    peak_synchrony = (-1.0, -1)

    logger.info(
        "running %d frames, %d agents, seed %d", frames, config.population, config.seed
    )
    try:
        for frame in range(frames):
            sim_clock["now"] = frame * config.frame_interval
            if frame in scatter_frames:
                world.perturbation.trigger()
            metrics = world.frame()
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms

            synchrony_series.append(metrics.synchrony)
            flash_series.append(float(metrics.flashes))
            tick_ms_series.append(tick_ms)
            if metrics.synchrony > peak_synchrony[0]:
                peak_synchrony = (metrics.synchrony, metrics.tick)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()
        world.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(synchrony_series) - window), len(synchrony_series))
        summary = {
            "frames": frames,
            "steps": world.steps,
            "seed": config.seed,
            "population": config.population,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "synchrony": _summary_stats(synchrony_series),
            "flashes": _summary_stats(flash_series),
            "tick_ms": _summary_stats(tick_ms_series),
            "scatter_triggers": world.perturbation.triggers,
            "scatter_reverts": world.perturbation.reverts,
            "peaks": {
                "synchrony": {"value": float(peak_synchrony[0]), "tick": peak_synchrony[1]},
            },
            "tail_window": {
                "window": window,
                "synchrony": _summary_stats(synchrony_series[tail_slice]),
                "flashes": _summary_stats(flash_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless firefly simulation")
    parser.add_argument("--frames", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=500,
        help="Tail window size (frames) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument(
        "--scatter-at",
        type=int,
        nargs="*",
        default=[],
        help="Frame numbers at which to trigger the scatter perturbation.",
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = SimulationConfig.from_yaml(args.config) if args.config else SimulationConfig()
    except (OSError, TypeError, ValueError, yaml.YAMLError) as exc:
        logger.error("cannot load simulation config: %s", exc)
        raise SystemExit(2) from exc

    run_headless(
        args.frames,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config=config,
        scatter_at=args.scatter_at,
    )


if __name__ == "__main__":
    main()
