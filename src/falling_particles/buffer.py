"""
Particle buffer
---------------
Fixed-capacity particle store shared by the update and render stages.

Layout matches the std430 GLSL struct used by the shaders:

    struct Particle { vec2 pos; vec2 vel; };
"""

import numpy as np

from .errors import AllocationError

PARTICLE_DTYPE = np.dtype([
    ("pos", np.float32, (2,)),
    ("vel", np.float32, (2,)),
])

# initial spawn rectangle
SPAWN_X = (-1.0, 1.0)
SPAWN_Y = (0.0, 2.0)


class ParticleBuffer:
    """Host-side particle storage. Slots are never added or removed."""

    def __init__(self, data: np.ndarray):
        if data.dtype != PARTICLE_DTYPE or data.ndim != 1:
            raise TypeError(f"expected 1-D array of {PARTICLE_DTYPE}, got {data.dtype} / ndim={data.ndim}")
        self.data = data

    def __len__(self):
        return self.data.shape[0]

    @property
    def capacity(self) -> int:
        return self.data.shape[0]

    @property
    def nbytes(self) -> int:
        return self.data.nbytes

    @property
    def positions(self) -> np.ndarray:
        return self.data["pos"]

    @property
    def velocities(self) -> np.ndarray:
        return self.data["vel"]

    def snapshot_view(self) -> np.ndarray:
        view = self.data.view()
        view.flags.writeable = False
        return view

    def release(self):
        pass


def allocate(capacity: int) -> ParticleBuffer:
    if capacity < 0:
        raise AllocationError(f"capacity must be >= 0, got {capacity}")
    try:
        data = np.zeros(capacity, dtype=PARTICLE_DTYPE)
    except (MemoryError, ValueError) as exc:
        raise AllocationError(f"cannot reserve {capacity} particles: {exc}") from exc
    return ParticleBuffer(data)


def initialize(buffer: ParticleBuffer, rng: np.random.Generator):
    """Uniform positions in the spawn rectangle, zero velocity."""
    n = len(buffer)
    buffer.positions[:, 0] = rng.uniform(SPAWN_X[0], SPAWN_X[1], n).astype(np.float32)
    buffer.positions[:, 1] = rng.uniform(SPAWN_Y[0], SPAWN_Y[1], n).astype(np.float32)
    buffer.velocities[:] = 0.0


def snapshot_view(buffer) -> np.ndarray:
    """Read-only view of the buffer; only meaningful after the update barrier."""
    return buffer.snapshot_view()
