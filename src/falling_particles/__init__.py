"""Parallel falling-particle simulator (ModernGL compute / NumPy + pygame)."""

from .buffer import PARTICLE_DTYPE, ParticleBuffer, allocate, initialize, snapshot_view
from .config import SimConfig
from .errors import (
    AllocationError,
    ConfigError,
    DispatchError,
    ParticleSimError,
    SynchronizationFailure,
)
from .kernel import CpuUpdateKernel
from .scheduler import FrameScheduler, FrameState

__version__ = "0.1.0"

__all__ = [
    "PARTICLE_DTYPE",
    "ParticleBuffer",
    "allocate",
    "initialize",
    "snapshot_view",
    "SimConfig",
    "AllocationError",
    "ConfigError",
    "DispatchError",
    "ParticleSimError",
    "SynchronizationFailure",
    "CpuUpdateKernel",
    "FrameScheduler",
    "FrameState",
]
