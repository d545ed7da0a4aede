"""
Errors
------
Every stage either fully succeeds or stops the process; nothing here is retried.
"""


class ParticleSimError(Exception):
    """Base class for fatal simulator errors."""


class AllocationError(ParticleSimError):
    """The particle buffer could not be reserved at the requested capacity."""


class DispatchError(ParticleSimError):
    """A parallel update pass could not be launched."""


class SynchronizationFailure(ParticleSimError):
    """Waiting for an update pass reported a fault; buffer state is not trusted."""


class ConfigError(ParticleSimError, ValueError):
    """Invalid configuration value."""
