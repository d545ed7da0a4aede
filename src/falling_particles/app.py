"""
Falling particles
-----------------
Particles fall under gravity and bounce off the floor, updated in parallel
every frame and drawn as points.

Backends:
- gpu: compute shader + SSBO, drawn with ModernGL in a GLFW window (default)
- cpu: NumPy work groups on a thread pool, drawn with pygame

Keys:
- ESC = quit
"""

import argparse
import logging

import numpy as np

from .bench import load_bench_config, run_bench, write_csv
from .buffer import allocate, initialize
from .config import BACKENDS, config_from_args
from .errors import ConfigError, ParticleSimError
from .gpu import GpuUpdateKernel, SharedStorageBuffer
from .kernel import CpuUpdateKernel
from .log import setup_default_logging
from .render import GLPointRenderer, PygamePointRenderer
from .scheduler import FrameScheduler

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    ap = argparse.ArgumentParser(prog="falling-particles", description="Parallel falling-particle simulator")
    ap.add_argument("--config", default=None, help="JSON file with simulation options")
    ap.add_argument("--backend", choices=BACKENDS, default=None, help="Update/render backend")
    ap.add_argument("--particles", type=int, default=None, help="Particle count N")
    ap.add_argument("--timestep", type=float, default=None, help="Integration step DT")
    ap.add_argument("--seed", type=int, default=None, help="Initial state seed")
    ap.add_argument("--group-size", type=int, default=None, help="Tasks per work group")
    ap.add_argument("--workers", type=int, default=None, help="CPU backend thread count")
    ap.add_argument("--vsync", action="store_true", help="Sync presents to the display refresh")
    ap.add_argument("--bench", action="store_true", help="Run automated sweep benchmark and exit")
    ap.add_argument("--bench-config", default="bench_config.json", help="Path to benchmark config json")
    ap.add_argument("--log-level", default="INFO")
    return ap.parse_args(argv)


def create_host(config):
    # window libraries load only when a window is opened
    from .hosts import GlfwHost, PygameHost

    if config.backend == "gpu":
        return GlfwHost(config)
    return PygameHost(config)


def build_stages(config, host):
    """Allocate + initialize the buffer and build kernel and renderer for ``config.backend``."""
    host_buffer = allocate(config.particle_count)
    initialize(host_buffer, np.random.default_rng(config.seed))

    if config.backend == "gpu":
        buffer = SharedStorageBuffer.from_host(host.ctx, host_buffer)
        try:
            kernel = GpuUpdateKernel(host.ctx, config)
            renderer = GLPointRenderer(host.ctx, config, host.framebuffer_size)
        except BaseException:
            buffer.release()
            raise
    else:
        buffer = host_buffer
        kernel = CpuUpdateKernel(config)
        renderer = PygamePointRenderer(host.screen, config)

    logger.info("backend=%s N=%d group_size=%d", config.backend, len(buffer), config.group_size)
    return buffer, kernel, renderer


def run(config) -> int:
    host = create_host(config)
    try:
        scheduler = FrameScheduler(*build_stages(config, host), host)
        try:
            return scheduler.run()
        finally:
            scheduler.close()
    finally:
        host.close()


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_default_logging(args.log_level)

    try:
        config = config_from_args(args)
        bench = load_bench_config(args.bench_config) if args.bench else None
    except ConfigError as exc:
        logger.error("configuration error: %s", exc)
        return 2

    try:
        if bench is not None:
            rows = run_bench(config, bench, create_host, build_stages)
            out_csv = bench.out_csv or f"bench_{config.backend}.csv"
            write_csv(out_csv, rows)
            logger.info("wrote %d rows to %s", len(rows), out_csv)
        else:
            run(config)
    except ParticleSimError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1
    return 0
