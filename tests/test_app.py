import json

import pytest

from falling_particles import app
from falling_particles.config import SimConfig
from falling_particles.errors import AllocationError, DispatchError
from falling_particles.render import PygamePointRenderer


class ClosingHost:
    """Closes after a few presents; provides a pygame surface without a display."""

    def __init__(self, frames=3):
        import pygame

        self.screen = pygame.Surface((32, 32), 0, 32)
        self.frames = frames
        self.presents = 0
        self.closed = False

    def poll_events(self):
        pass

    def should_close(self):
        return self.presents >= self.frames

    def present(self):
        self.presents += 1

    def close(self):
        self.closed = True


def test_build_stages_cpu():
    cfg = SimConfig(particle_count=64, backend="cpu", workers=1)
    buf, kernel, renderer = app.build_stages(cfg, ClosingHost())
    try:
        assert len(buf) == 64
        assert isinstance(renderer, PygamePointRenderer)
        assert buf.positions[:, 1].min() >= 0.0
    finally:
        kernel.close()


def test_main_runs_until_window_closes(monkeypatch):
    host = ClosingHost(frames=5)
    monkeypatch.setattr(app, "create_host", lambda cfg: host)

    assert app.main(["--backend", "cpu", "--particles", "200"]) == 0
    assert host.presents == 5
    assert host.closed


def test_main_config_error_exits_2(tmp_path):
    path = tmp_path / "sim.json"
    path.write_text(json.dumps({"restitution": 1.5}))
    assert app.main(["--config", str(path)]) == 2


def test_main_zero_particles_exits_1(monkeypatch):
    host = ClosingHost()
    monkeypatch.setattr(app, "create_host", lambda cfg: host)
    assert app.main(["--backend", "cpu", "--particles", "0"]) == 1
    assert host.presents == 0
    assert host.closed


@pytest.mark.parametrize("exc", [AllocationError("out of memory"), DispatchError("no device")])
def test_main_startup_failures_exit_1(monkeypatch, exc):
    def fail(cfg):
        raise exc

    monkeypatch.setattr(app, "create_host", fail)
    assert app.main(["--backend", "cpu"]) == 1


def test_main_bench_writes_csv(monkeypatch, tmp_path):
    out = tmp_path / "rows.csv"
    bench = tmp_path / "bench.json"
    bench.write_text(json.dumps({
        "start_n": 50, "end_n": 100, "step_n": 50,
        "warmup_seconds": 0.0, "sample_seconds": 0.01, "out_csv": str(out),
    }))
    monkeypatch.setattr(app, "create_host", lambda cfg: ClosingHost(frames=10**9))

    assert app.main(["--backend", "cpu", "--bench", "--bench-config", str(bench)]) == 0
    lines = out.read_text().splitlines()
    assert lines[0] == "engine,N,avg_ms,fps"
    assert [l.split(",")[1] for l in lines[1:]] == ["50", "100"]
