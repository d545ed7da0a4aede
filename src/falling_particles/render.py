"""
Renderers
---------
Draw one point per particle from the shared buffer. Renderers only read, and
the scheduler only calls them after the update barrier.
"""

import moderngl
import numpy as np
import pygame

from .errors import DispatchError

# ----------------------------
# GLSL: Vertex + Fragment (draw from SSBO)
# ----------------------------
VERT_SRC = r"""
#version 430

struct Particle {
    vec2 pos;
    vec2 vel;
};

layout(std430, binding = 0) buffer Particles { Particle p[]; };

uniform float uPointSize;

void main() {
    gl_Position = vec4(p[gl_VertexID].pos, 0.0, 1.0);
    gl_PointSize = uPointSize;
}
"""

FRAG_SRC = r"""
#version 430

uniform vec4 uColor;
out vec4 fColor;

void main() {
    vec2 q = gl_PointCoord * 2.0 - 1.0;
    float r2 = dot(q, q);
    if (r2 > 1.0) discard;

    float alpha = 1.0 - smoothstep(0.5, 1.0, r2);
    fColor = vec4(uColor.rgb, uColor.a * alpha);
}
"""


class GLPointRenderer:
    def __init__(self, ctx, config, framebuffer_size=None):
        self.ctx = ctx
        self.background = tuple(config.background_color)
        self.framebuffer_size = framebuffer_size

        try:
            self.prog = ctx.program(vertex_shader=VERT_SRC, fragment_shader=FRAG_SRC)
            self.vao = ctx.vertex_array(self.prog, [])  # gl_VertexID fetches from SSBO
        except moderngl.Error as exc:
            raise DispatchError(f"point shader failed to compile: {exc}") from exc
        self.prog["uPointSize"].value = float(config.point_size)
        self.prog["uColor"].value = tuple(config.point_color)

    def render(self, buffer):
        if self.framebuffer_size is not None:
            fb_w, fb_h = self.framebuffer_size()
            self.ctx.viewport = (0, 0, fb_w, fb_h)

        buffer.bind()
        self.ctx.clear(*self.background)
        self.vao.render(mode=moderngl.POINTS, vertices=len(buffer))

    def close(self):
        self.vao.release()
        self.prog.release()


# ----------------------------
# Helpers: world <-> screen
# ----------------------------
def world_to_screen(pos, width, height):
    """Map world [-1, 1]^2 (y up) to integer pixel coordinates (y down)."""
    sx = ((pos[:, 0] * 0.5 + 0.5) * width).astype(np.int64)
    sy = ((-pos[:, 1] * 0.5 + 0.5) * height).astype(np.int64)
    return sx, sy


def _rgb255(color):
    return tuple(int(round(max(0.0, min(1.0, c)) * 255)) for c in color[:3])


class PygamePointRenderer:
    def __init__(self, surface, config):
        self.surface = surface
        self.background = _rgb255(config.background_color)
        self.color = np.array(_rgb255(config.point_color), dtype=np.uint8)
        self.size = max(1, int(round(config.point_size)))

    def render(self, buffer):
        self.surface.fill(self.background)
        w, h = self.surface.get_size()

        sx, sy = world_to_screen(buffer.snapshot_view()["pos"], w, h)
        sx -= self.size // 2
        sy -= self.size // 2

        pix = pygame.surfarray.pixels3d(self.surface)
        try:
            for dy in range(self.size):
                for dx in range(self.size):
                    px = sx + dx
                    py = sy + dy
                    inside = (px >= 0) & (px < w) & (py >= 0) & (py < h)
                    pix[px[inside], py[inside]] = self.color
        finally:
            # release the surface lock before the host flips
            del pix

    def close(self):
        pass
