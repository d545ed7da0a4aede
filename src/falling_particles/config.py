"""
Configuration
-------------
Read once at startup: module defaults, then an optional JSON file, then CLI flags.
The resulting SimConfig is frozen.
"""

import json
import math
from dataclasses import dataclass, fields, replace

from .buffer import SPAWN_Y
from .errors import ConfigError

# ----------------------------
# Defaults
# ----------------------------
NUM_PARTICLES = 10000
DT = 0.01                       # time step per update
GRAVITY = (0.0, -9.8)
BOUNDARY_Y = -1.0               # floor height
RESTITUTION = 0.8               # fraction of vertical speed kept on bounce
GROUP_SIZE = 256                # tasks per work group
SEED = 1

WINDOW_SIZE = (800, 800)
POINT_SIZE = 2.0
POINT_COLOR = (1.0, 1.0, 1.0, 1.0)
BACKGROUND_COLOR = (0.0, 0.0, 0.0, 1.0)
TITLE = "Particle Simulator"

BACKENDS = ("gpu", "cpu")
MAX_GROUP_SIZE = 1024


@dataclass(frozen=True)
class SimConfig:
    particle_count: int = NUM_PARTICLES
    timestep: float = DT
    gravity: tuple = GRAVITY
    boundary_y: float = BOUNDARY_Y
    restitution: float = RESTITUTION
    group_size: int = GROUP_SIZE
    workers: int | None = None
    seed: int = SEED
    backend: str = "gpu"

    window_size: tuple = WINDOW_SIZE
    point_size: float = POINT_SIZE
    point_color: tuple = POINT_COLOR
    background_color: tuple = BACKGROUND_COLOR
    vsync: bool = False
    title: str = TITLE

    def __post_init__(self):
        # JSON hands us lists; keep vectors hashable and immutable
        for name in ("gravity", "window_size", "point_color", "background_color"):
            value = getattr(self, name)
            try:
                object.__setattr__(self, name, tuple(value))
            except TypeError as exc:
                raise ConfigError(f"{name} must be a sequence, got {value!r}") from exc
        validate(self)


def _check(cond, msg):
    if not cond:
        raise ConfigError(msg)


def _is_real(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def _is_vector(v, size) -> bool:
    return len(v) == size and all(_is_real(c) for c in v)


def validate(cfg: SimConfig):
    for name in ("timestep", "boundary_y", "restitution", "point_size"):
        value = getattr(cfg, name)
        _check(_is_real(value), f"{name} must be a finite number, got {value!r}")

    _check(isinstance(cfg.particle_count, int) and cfg.particle_count >= 0,
           f"particle_count must be a non-negative integer, got {cfg.particle_count!r}")
    _check(cfg.timestep > 0, f"timestep must be positive, got {cfg.timestep!r}")
    _check(_is_vector(cfg.gravity, 2), f"gravity must be a 2-vector of numbers, got {cfg.gravity!r}")
    # particles spawn at y >= SPAWN_Y[0]
    _check(cfg.boundary_y <= SPAWN_Y[0],
           f"boundary_y must be <= {SPAWN_Y[0]} (bottom of the spawn area), got {cfg.boundary_y!r}")
    _check(0.0 <= cfg.restitution < 1.0,
           f"restitution must be in [0, 1), got {cfg.restitution!r}")
    _check(isinstance(cfg.group_size, int) and 1 <= cfg.group_size <= MAX_GROUP_SIZE,
           f"group_size must be in [1, {MAX_GROUP_SIZE}], got {cfg.group_size!r}")
    _check(cfg.workers is None or (isinstance(cfg.workers, int) and cfg.workers >= 1),
           f"workers must be a positive integer, got {cfg.workers!r}")
    _check(cfg.backend in BACKENDS, f"backend must be one of {BACKENDS}, got {cfg.backend!r}")
    _check(len(cfg.window_size) == 2
           and all(isinstance(v, int) and not isinstance(v, bool) and v > 0 for v in cfg.window_size),
           f"window_size must be two positive integers, got {cfg.window_size!r}")
    _check(cfg.point_size > 0, f"point_size must be positive, got {cfg.point_size!r}")
    _check(_is_vector(cfg.point_color, 4), f"point_color must be RGBA numbers, got {cfg.point_color!r}")
    _check(_is_vector(cfg.background_color, 4),
           f"background_color must be RGBA numbers, got {cfg.background_color!r}")


def load_config(path: str, base=None) -> SimConfig:
    """Load a JSON config file on top of ``base`` (defaults when None)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"config {path} must hold a JSON object")
    return with_overrides(base or SimConfig(), **raw)


def with_overrides(cfg: SimConfig, **overrides) -> SimConfig:
    known = {f.name for f in fields(SimConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigError(f"unknown config option(s): {', '.join(unknown)}")
    try:
        return replace(cfg, **overrides)
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc


def config_from_args(args) -> SimConfig:
    """Build the config from parsed CLI args (see app.parse_args)."""
    cfg = load_config(args.config) if args.config else SimConfig()

    flags = {
        "backend": args.backend,
        "particle_count": args.particles,
        "timestep": args.timestep,
        "seed": args.seed,
        "group_size": args.group_size,
        "workers": args.workers,
    }
    overrides = {k: v for k, v in flags.items() if v is not None}
    if args.vsync:
        overrides["vsync"] = True
    return with_overrides(cfg, **overrides) if overrides else cfg
