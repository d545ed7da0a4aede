"""
Sweep benchmark
---------------
Runs the full frame (update + sync + render + present) at increasing particle
counts and records the average frame time per count.

bench_config.json:

    {"start_n": 10000, "end_n": 200000, "step_n": 10000,
     "warmup_seconds": 1.0, "sample_seconds": 3.0,
     "seed": 1, "out_csv": "bench_gpu.csv"}
"""

import csv
import json
import logging
import time
from dataclasses import dataclass

from .config import with_overrides
from .errors import ConfigError
from .scheduler import FrameScheduler

logger = logging.getLogger(__name__)

CSV_FIELDS = ["engine", "N", "avg_ms", "fps"]


@dataclass(frozen=True)
class BenchConfig:
    start_n: int
    end_n: int
    step_n: int
    warmup_seconds: float = 1.0
    sample_seconds: float = 3.0
    seed: int = 1
    out_csv: str = ""

    def counts(self):
        return range(self.start_n, self.end_n + 1, self.step_n)


def load_bench_config(path: str) -> BenchConfig:
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        cfg = BenchConfig(
            start_n=int(raw["start_n"]),
            end_n=int(raw["end_n"]),
            step_n=int(raw["step_n"]),
            warmup_seconds=float(raw.get("warmup_seconds", 1.0)),
            sample_seconds=float(raw.get("sample_seconds", 3.0)),
            seed=int(raw.get("seed", 1)),
            out_csv=str(raw.get("out_csv", "")),
        )
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"cannot read bench config {path}: {exc}") from exc
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"bad bench config {path}: {exc!r}") from exc

    if cfg.start_n < 1 or cfg.end_n < cfg.start_n or cfg.step_n < 1:
        raise ConfigError(f"bad sweep range in {path}: {cfg.start_n}..{cfg.end_n} step {cfg.step_n}")
    return cfg


def write_csv(path, rows):
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        w.writeheader()
        w.writerows(rows)


def _drive(scheduler, seconds):
    """Step for ``seconds`` of wall time. Returns (frames, summed frame ms)."""
    host = scheduler.host
    frames = 0
    ms_sum = 0.0
    t0 = time.perf_counter()
    while time.perf_counter() - t0 < seconds:
        host.poll_events()
        if host.should_close():
            break
        f0 = time.perf_counter()
        scheduler.step()
        ms_sum += (time.perf_counter() - f0) * 1000.0
        frames += 1
    return frames, ms_sum


def run_bench(config, bench, create_host, build_stages):
    """Sweep ``bench.counts()`` on one host; stages are rebuilt for every count."""
    host = create_host(config)
    rows = []
    try:
        for n in bench.counts():
            if host.should_close():
                break

            cfg = with_overrides(config, particle_count=n, seed=bench.seed)
            scheduler = FrameScheduler(*build_stages(cfg, host), host, stats_interval=float("inf"))
            try:
                _drive(scheduler, bench.warmup_seconds)
                frames, ms_sum = _drive(scheduler, bench.sample_seconds)
            finally:
                scheduler.close()

            if frames > 0:
                avg_ms = ms_sum / frames
                fps = 1000.0 / max(1e-9, avg_ms)
                logger.info("[BENCH][%s] N=%d avg=%.3f ms (%.1f FPS)", config.backend, n, avg_ms, fps)
                rows.append({"engine": config.backend, "N": n, "avg_ms": avg_ms, "fps": fps})
    finally:
        host.close()
    return rows
