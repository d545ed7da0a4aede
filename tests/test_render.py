import moderngl
import numpy as np
import pygame
import pytest

from falling_particles.buffer import allocate
from falling_particles.config import SimConfig
from falling_particles.errors import DispatchError
from falling_particles.render import GLPointRenderer, PygamePointRenderer, world_to_screen


@pytest.fixture()
def surface():
    return pygame.Surface((20, 20), 0, 32)


def test_world_to_screen_corners():
    pos = np.array([[-1.0, 1.0], [0.0, 0.0], [0.99, -0.99]], dtype=np.float32)
    sx, sy = world_to_screen(pos, 20, 20)
    assert list(sx) == [0, 10, 19]
    assert list(sy) == [0, 10, 19]


def test_draws_points_on_background(surface):
    cfg = SimConfig(backend="cpu", point_size=1.0, point_color=(1.0, 0.0, 0.0, 1.0),
                    background_color=(0.0, 0.0, 1.0, 1.0))
    buf = allocate(1)
    buf.positions[0] = (0.0, 0.0)

    PygamePointRenderer(surface, cfg).render(buf)

    assert tuple(surface.get_at((10, 10)))[:3] == (255, 0, 0)
    assert tuple(surface.get_at((0, 0)))[:3] == (0, 0, 255)


def test_point_size_and_clipping(surface):
    cfg = SimConfig(backend="cpu", point_size=3.0)
    buf = allocate(3)
    buf.positions[0] = (0.0, 0.0)
    buf.positions[1] = (-1.0, 1.0)   # partially off the top-left
    buf.positions[2] = (0.0, 5.0)    # far above the window

    PygamePointRenderer(surface, cfg).render(buf)

    pix = pygame.surfarray.array3d(surface)
    lit = pix.sum(axis=2) > 0
    # 3x3 square around (10, 10) plus the 2x2 visible corner of the second point
    assert lit[9:12, 9:12].all()
    assert lit[0:2, 0:2].all()
    assert lit.sum() == 9 + 4


def test_render_does_not_mutate_buffer(surface):
    buf = allocate(16)
    buf.positions[:] = np.linspace(-1, 1, 32, dtype=np.float32).reshape(16, 2)
    before = buf.data.copy()
    PygamePointRenderer(surface, SimConfig(backend="cpu")).render(buf)
    np.testing.assert_array_equal(buf.data, before)


def test_gl_shader_failure_is_dispatch_error():
    class BrokenContext:
        def program(self, **shaders):
            raise moderngl.Error("0:7(1): error: syntax error")

    with pytest.raises(DispatchError) as ei:
        GLPointRenderer(BrokenContext(), SimConfig())
    assert isinstance(ei.value.__cause__, moderngl.Error)
