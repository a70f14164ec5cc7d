from __future__ import annotations

import itertools
import math
import threading
from concurrent.futures import Executor, Future
from typing import List

import numpy as np
from numpy.typing import NDArray

from .forces import work_groups
from .particles import ParticleSet


class EnergyAccumulator:
    """Shared sum of mass*|v|^2 over all particles of one step.

    Work groups add their unrounded per-particle terms; the total is a single
    math.fsum over all of them, which is exactly rounded, so it depends on
    neither the completion order nor the work-group split.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._terms: List[NDArray[np.float64]] = []

    def add(self, terms) -> None:
        arr = np.array(terms, dtype=np.float64, ndmin=1)
        with self._lock:
            self._terms.append(arr)

    def total(self) -> float:
        with self._lock:
            return math.fsum(itertools.chain.from_iterable(self._terms))

    def reset(self) -> None:
        with self._lock:
            self._terms.clear()


class IntegrationKernel:
    """Second dispatch of a step: drift positions and accumulate m|v|^2."""

    def __init__(self, dt: float, work_group_size: int = 128):
        self.dt = float(dt)
        self.work_group_size = int(work_group_size)

    def run_group(self, ps: ParticleSet, start: int, stop: int, energy: EnergyAccumulator) -> None:
        v = ps.vel[start:stop]
        ps.pos[start:stop] += v * self.dt
        energy.add(ps.mass[start:stop] * (v[:, 0]*v[:, 0] + v[:, 1]*v[:, 1] + v[:, 2]*v[:, 2]))

    def submit(self, pool: Executor, ps: ParticleSet, energy: EnergyAccumulator) -> List[Future]:
        return [pool.submit(self.run_group, ps, start, stop, energy)
                for start, stop in work_groups(ps.n, self.work_group_size)]
