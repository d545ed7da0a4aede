import csv
import json

import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg")

from falling_particles import plot_bench
from falling_particles.bench import BenchConfig, load_bench_config, run_bench, write_csv
from falling_particles.buffer import allocate, initialize
from falling_particles.config import SimConfig
from falling_particles.errors import ConfigError
from falling_particles.kernel import CpuUpdateKernel


class NullRenderer:
    def render(self, buffer):
        pass

    def close(self):
        pass


class CountingHost:
    def __init__(self):
        self.presents = 0
        self.closed = False

    def poll_events(self):
        pass

    def should_close(self):
        return False

    def present(self):
        self.presents += 1

    def close(self):
        self.closed = True


def cpu_stages(cfg, host):
    buf = allocate(cfg.particle_count)
    initialize(buf, np.random.default_rng(cfg.seed))
    return buf, CpuUpdateKernel(cfg), NullRenderer()


def test_load_bench_config(tmp_path):
    path = tmp_path / "bench.json"
    path.write_text(json.dumps({"start_n": 100, "end_n": 300, "step_n": 100, "sample_seconds": 0.5}))
    cfg = load_bench_config(str(path))
    assert list(cfg.counts()) == [100, 200, 300]
    assert cfg.warmup_seconds == 1.0
    assert cfg.sample_seconds == 0.5


@pytest.mark.parametrize("raw", [
    {"end_n": 300, "step_n": 100},
    {"start_n": 300, "end_n": 100, "step_n": 100},
    {"start_n": 100, "end_n": 300, "step_n": 0},
    {"start_n": "many", "end_n": 300, "step_n": 100},
])
def test_bad_bench_config(tmp_path, raw):
    path = tmp_path / "bench.json"
    path.write_text(json.dumps(raw))
    with pytest.raises(ConfigError):
        load_bench_config(str(path))


def test_run_bench_sweeps_counts():
    host = CountingHost()
    bench = BenchConfig(start_n=100, end_n=300, step_n=100, warmup_seconds=0.0, sample_seconds=0.02)
    cfg = SimConfig(backend="cpu", workers=2)

    rows = run_bench(cfg, bench, lambda c: host, cpu_stages)

    assert [r["N"] for r in rows] == [100, 200, 300]
    assert all(r["engine"] == "cpu" for r in rows)
    assert all(r["avg_ms"] > 0 and r["fps"] > 0 for r in rows)
    assert host.presents > 0
    assert host.closed


def test_csv_roundtrip_and_plot(tmp_path):
    rows = [
        {"engine": "cpu", "N": 1000, "avg_ms": 2.0, "fps": 500.0},
        {"engine": "cpu", "N": 2000, "avg_ms": 4.0, "fps": 250.0},
    ]
    path = tmp_path / "bench_cpu.csv"
    write_csv(str(path), rows)

    with open(path, newline="", encoding="utf-8") as f:
        header = next(csv.reader(f))
    assert header == ["engine", "N", "avg_ms", "fps"]

    assert plot_bench.read_csv(str(path)) == {"cpu": ([1000, 2000], [500.0, 250.0])}

    out = tmp_path / "plot.png"
    plot_bench.main([str(path), "--out", str(out)])
    assert out.exists() and out.stat().st_size > 0
