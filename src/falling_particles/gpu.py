"""
GPU update path (ModernGL compute shader)
-----------------------------------------
The particle state lives in one shader storage buffer (binding 0). The compute
shader writes it in place and the point renderer pulls from the same buffer via
gl_VertexID, so nothing is copied between update and draw.
"""

import logging

import moderngl
import numpy as np

from .buffer import PARTICLE_DTYPE
from .errors import AllocationError, DispatchError, SynchronizationFailure
from .kernel import floor_f32, group_count

logger = logging.getLogger(__name__)

PARTICLE_BINDING = 0

# ----------------------------
# GLSL: per-particle update
# ----------------------------
UPDATE_SRC = r"""
#version 430

struct Particle {
    vec2 pos;
    vec2 vel;
};

layout(std430, binding = 0) buffer Particles { Particle p[]; };

uniform int   uN;
uniform float uDT;
uniform vec2  uGravity;
uniform float uBoundaryY;
uniform float uRestitution;

layout(local_size_x = __LOCAL_SIZE__) in;

void main() {
    uint i = gl_GlobalInvocationID.x;
    if (i >= uint(uN)) return;

    vec2 vel = p[i].vel + uGravity * uDT;
    vec2 pos = p[i].pos + vel * uDT;

    // bounce off the floor
    if (pos.y < uBoundaryY) {
        pos.y = uBoundaryY;
        vel.y *= -uRestitution;
    }

    p[i].pos = pos;
    p[i].vel = vel;
}
"""


def update_source(group_size: int) -> str:
    return UPDATE_SRC.replace("__LOCAL_SIZE__", str(int(group_size)))


class SharedStorageBuffer:
    """Particle SSBO visible to both the compute shader and the point renderer."""

    def __init__(self, ctx, ssbo, capacity: int):
        self.ctx = ctx
        self.ssbo = ssbo
        self._capacity = capacity

    @classmethod
    def from_host(cls, ctx, host_buffer):
        """Reserve an SSBO sized to ``host_buffer`` and fill it with its initial state."""
        nbytes = host_buffer.nbytes
        limit = ctx.info.get("GL_MAX_SHADER_STORAGE_BLOCK_SIZE")
        if limit and nbytes > limit:
            raise AllocationError(
                f"{len(host_buffer)} particles need {nbytes} bytes, "
                f"device storage block limit is {limit}"
            )
        try:
            if nbytes:
                ssbo = ctx.buffer(host_buffer.data.tobytes())
            else:
                # GL rejects zero-size buffers
                ssbo = ctx.buffer(reserve=PARTICLE_DTYPE.itemsize)
        except moderngl.Error as exc:
            raise AllocationError(f"cannot reserve particle buffer ({nbytes} bytes): {exc}") from exc

        logger.debug("particle SSBO: %d particles, %d bytes", len(host_buffer), nbytes)
        buf = cls(ctx, ssbo, len(host_buffer))
        buf.bind()
        return buf

    def __len__(self):
        return self._capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    def bind(self):
        self.ssbo.bind_to_storage_buffer(binding=PARTICLE_BINDING)

    def snapshot_view(self) -> np.ndarray:
        """Read the buffer back for inspection. Not used by the frame loop."""
        raw = self.ssbo.read(size=self._capacity * PARTICLE_DTYPE.itemsize)
        return np.frombuffer(raw, dtype=PARTICLE_DTYPE)

    def release(self):
        if self.ssbo is not None:
            self.ssbo.release()
            self.ssbo = None


class GpuUpdateKernel:
    def __init__(self, ctx, config):
        self.ctx = ctx
        self.group_size = config.group_size

        max_size = ctx.info.get("GL_MAX_COMPUTE_WORK_GROUP_SIZE")
        if max_size and self.group_size > max_size[0]:
            raise DispatchError(
                f"group_size {self.group_size} exceeds device limit {max_size[0]}"
            )
        self._max_groups = (ctx.info.get("GL_MAX_COMPUTE_WORK_GROUP_COUNT") or (None,))[0]

        try:
            self.shader = ctx.compute_shader(update_source(self.group_size))
        except moderngl.Error as exc:
            raise DispatchError(f"update shader failed to compile: {exc}") from exc

        self.shader["uDT"].value = config.timestep
        self.shader["uGravity"].value = tuple(config.gravity)
        self.shader["uBoundaryY"].value = float(floor_f32(config.boundary_y))
        self.shader["uRestitution"].value = config.restitution

        self.query = ctx.query(time=True)
        self._in_flight = False
        self.last_update_ms = 0.0

    def dispatch(self, buffer):
        n = len(buffer)
        if n == 0:
            raise DispatchError("nothing to dispatch: particle_count is 0")
        if self._in_flight:
            raise DispatchError("previous update pass has not been synchronized")

        groups = group_count(n, self.group_size)
        if self._max_groups and groups > self._max_groups:
            raise DispatchError(f"{groups} work groups exceed device limit {self._max_groups}")

        buffer.bind()
        self.shader["uN"].value = n
        try:
            with self.query:
                self.shader.run(group_x=groups)
        except moderngl.Error as exc:
            raise DispatchError(f"update dispatch failed: {exc}") from exc
        self._in_flight = True

    def synchronize(self):
        self._in_flight = False
        try:
            self.ctx.memory_barrier()
            self.ctx.finish()
        except moderngl.Error as exc:
            raise SynchronizationFailure(f"waiting for update pass failed: {exc}") from exc

        err = self.ctx.error
        if err != "GL_NO_ERROR":
            raise SynchronizationFailure(f"update pass reported {err}")
        self.last_update_ms = self.query.elapsed / 1e6

    def close(self):
        self.shader.release()
