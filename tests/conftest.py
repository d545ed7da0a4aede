"""Shared fixtures: small configs, seeded generator, optional GL context."""

import numpy as np
import pytest

from falling_particles.buffer import allocate
from falling_particles.config import SimConfig


@pytest.fixture()
def rng():
    return np.random.default_rng(12345)


@pytest.fixture()
def config():
    return SimConfig(particle_count=1, backend="cpu", workers=2)


@pytest.fixture()
def single(config):
    """Make a 1-particle buffer at (0, y) with vertical velocity vy."""

    def make(y, vy):
        buf = allocate(1)
        buf.positions[0] = (0.0, y)
        buf.velocities[0] = (0.0, vy)
        return buf

    return make


@pytest.fixture(scope="session")
def gl_ctx():
    moderngl = pytest.importorskip("moderngl")
    try:
        ctx = moderngl.create_standalone_context(require=430)
    except Exception as exc:
        pytest.skip(f"no OpenGL 4.3 context: {exc}")
    yield ctx
    ctx.release()
