"""
CPU update kernel (NumPy + thread pool)
---------------------------------------
Same per-particle rule as the compute shader in gpu.py:

    vel += gravity * dt
    pos += vel * dt
    if pos.y < boundary_y: pos.y = boundary_y; vel.y *= -restitution

N tasks are split into fixed-size groups, one pool job per group. A group only
writes its own slots, so the only synchronization needed is waiting for all
jobs before the buffer is read.
"""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, wait

import numpy as np

from .errors import DispatchError, SynchronizationFailure

logger = logging.getLogger(__name__)


def group_count(n: int, group_size: int) -> int:
    return (n + group_size - 1) // group_size


def floor_f32(boundary_y) -> np.float32:
    """Smallest float32 >= ``boundary_y``, so clamped particles never sit below the floor."""
    b = np.float32(boundary_y)
    if float(b) < boundary_y:
        b = np.nextafter(b, np.float32(np.inf))
    return b


def update_group(data, group_id, group_size, dt, gravity, boundary_y, restitution):
    """Advance one work group of particles in place."""
    n = data.shape[0]
    idx = group_id * group_size + np.arange(group_size)
    idx = idx[idx < n]  # over-provisioned tasks do nothing
    if idx.size == 0:
        return

    pos = data["pos"][idx]
    vel = data["vel"][idx]

    vel += gravity * dt
    pos += vel * dt

    # bounce off the floor
    below = pos[:, 1] < boundary_y
    if np.any(below):
        pos[below, 1] = boundary_y
        vel[below, 1] *= -restitution

    data["pos"][idx] = pos
    data["vel"][idx] = vel


class CpuUpdateKernel:
    def __init__(self, config):
        self.dt = np.float32(config.timestep)
        self.gravity = np.asarray(config.gravity, dtype=np.float32)
        self.boundary_y = floor_f32(config.boundary_y)
        self.restitution = np.float32(config.restitution)
        self.group_size = config.group_size

        workers = config.workers or os.cpu_count() or 1
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="update")
        self._pending = []
        self._t0 = None
        self.last_update_ms = 0.0

    def dispatch(self, buffer):
        n = len(buffer)
        if n == 0:
            raise DispatchError("nothing to dispatch: particle_count is 0")
        if self._pending:
            raise DispatchError("previous update pass has not been synchronized")

        self._t0 = time.perf_counter()
        try:
            self._pending = [
                self._executor.submit(
                    update_group, buffer.data, g, self.group_size,
                    self.dt, self.gravity, self.boundary_y, self.restitution,
                )
                for g in range(group_count(n, self.group_size))
            ]
        except RuntimeError as exc:
            # pool already shut down
            raise DispatchError(f"cannot launch update groups: {exc}") from exc

    def synchronize(self):
        pending, self._pending = self._pending, []
        wait(pending)
        if self._t0 is not None:
            self.last_update_ms = (time.perf_counter() - self._t0) * 1000.0
            self._t0 = None

        failed = [f.exception() for f in pending if f.exception() is not None]
        if failed:
            raise SynchronizationFailure(
                f"{len(failed)} of {len(pending)} update groups failed: {failed[0]!r}"
            ) from failed[0]

    def close(self):
        self._executor.shutdown(wait=True)
        logger.debug("update pool shut down")
