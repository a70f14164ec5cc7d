from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)


@dataclass
class ParticleSet:
    """Struct-of-arrays particle state; row i is particle i for the whole run.

    pos, vel, acc: (N, 3) float64
    mass:          (N,)   float64, read-only after construction
    """
    pos: NDArray[np.float64]
    vel: NDArray[np.float64]
    acc: NDArray[np.float64]
    mass: NDArray[np.float64]

    def __post_init__(self) -> None:
        n = self.mass.shape[0]
        for name in ("pos", "vel", "acc"):
            arr = getattr(self, name)
            if arr.shape != (n, 3):
                raise ValueError(f"{name} must have shape ({n}, 3), got {arr.shape}")
        self.mass.flags.writeable = False

    @property
    def n(self) -> int:
        return int(self.mass.shape[0])

    def copy(self) -> "ParticleSet":
        return ParticleSet(pos=self.pos.copy(), vel=self.vel.copy(),
                           acc=self.acc.copy(), mass=self.mass.copy())


def read_seed_file(path: str) -> Optional[NDArray[np.float64]]:
    """Read a flat whitespace-separated list of floats as (x,y,z) triples.

    Parsing stops at the first token that is not a float; a trailing
    incomplete triple is ignored. Returns None if the file cannot be read.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            tokens = f.read().split()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not open the input file %r (%s); using random positions", path, e)
        return None

    values = []
    for tok in tokens:
        try:
            values.append(float(tok))
        except ValueError:
            logger.warning("Stopped reading %r at non-numeric token %r", path, tok)
            break
    k = len(values) // 3
    return np.asarray(values[:3*k], dtype=np.float64).reshape(k, 3)


def init_positions(n: int, seed: int = 42, seed_file: Optional[str] = None) -> NDArray[np.float64]:
    rng = np.random.default_rng(seed)
    pos = rng.uniform(0.0, 1.0, size=(n, 3))
    if seed_file:
        override = read_seed_file(seed_file)
        if override is not None:
            k = min(n, override.shape[0])
            pos[:k] = override[:k]
            logger.info("Read %d of %d positions from %s", k, n, seed_file)
    return pos


def init_velocities(n: int, seed: int = 42) -> NDArray[np.float64]:
    rng = np.random.default_rng(seed)
    return rng.uniform(-1.0, 1.0, size=(n, 3)) * 1.0e-3


def init_accelerations(n: int) -> NDArray[np.float64]:
    return np.zeros((n, 3), dtype=np.float64)


def init_masses(n: int, seed: int = 42) -> NDArray[np.float64]:
    # scaled by N, so total mass grows with N (model constant, not normalized)
    rng = np.random.default_rng(seed)
    return float(n) * rng.uniform(0.0, 1.0, size=n)


def make_particle_set(n: int, seed: int = 42, seed_file: Optional[str] = None) -> ParticleSet:
    if n < 1:
        raise ValueError(f"need at least one particle, got n={n}")
    return ParticleSet(
        pos=init_positions(n, seed, seed_file),
        vel=init_velocities(n, seed),
        acc=init_accelerations(n),
        mass=init_masses(n, seed),
    )
