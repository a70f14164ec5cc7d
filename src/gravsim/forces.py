from __future__ import annotations

from concurrent.futures import Executor, Future
from typing import List, Tuple
import numpy as np
from numpy.typing import NDArray

from .config import Units
from .channel import ExtremaChannel
from .particles import ParticleSet


def work_groups(n: int, size: int) -> List[Tuple[int, int]]:
    """Split [0, n) into contiguous (start, stop) ranges of at most `size` rows."""
    return [(k, min(k + size, n)) for k in range(0, n, size)]


def _running_sum(c: NDArray[np.float64], reset=None) -> NDArray[np.float64]:
    """Sequential running sums along each row of c.

    Where `reset` is set the running sum is forced to zero and accumulation
    restarts with the next column, so earlier terms of that row are dropped.
    """
    out = np.cumsum(c, axis=1)
    if reset is None:
        return out
    for b in np.flatnonzero(reset.any(axis=1)):
        cols = np.flatnonzero(reset[b])
        ends = list(cols[1:]) + [c.shape[1]]
        for k, end in zip(cols, ends):
            out[b, k] = 0.0
            if end > k + 1:
                np.cumsum(c[b, k+1:end], out=out[b, k+1:end])
    return out


def force_block(pos: NDArray[np.float64],
                mass: NDArray[np.float64],
                start: int,
                stop: int,
                units: Units,
                column_block: int = 1024) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Softened pairwise acceleration for particles start..stop-1.

    Sums run over every j in ascending order, including j == i (zero term),
    `column_block` sources at a time; the running sum is carried into the
    first term of the next block so the summation order is the same for any
    block size. With ``units.zero_check == "reset"`` a zero separation on a
    checked axis resets that axis' running sum to zero.

    Returns (acc, extrema) where acc is (B, 3) and extrema[b] is the larger of
    the running maximum and the negated running minimum of the three partial
    sums seen while accumulating particle start+b (both start at zero).
    """
    n = mass.shape[0]
    p = pos[start:stop]
    reset_axes = units.zero_check_axes if units.zero_check == "reset" else ()

    carry = np.zeros((stop - start, 3), dtype=np.float64)
    run_max = np.zeros(stop - start, dtype=np.float64)
    run_min = np.zeros(stop - start, dtype=np.float64)
    for j0 in range(0, n, column_block):
        j1 = min(j0 + column_block, n)
        q = pos[j0:j1]
        dx = q[None, :, 0] - p[:, 0, None]
        dy = q[None, :, 1] - p[:, 1, None]
        dz = q[None, :, 2] - p[:, 2, None]

        inv = 1.0 / np.sqrt(dx*dx + dy*dy + dz*dz + units.softening_sqr)
        scale = units.G * mass[None, j0:j1] * (inv*inv*inv)

        for axis, delta in enumerate((dx, dy, dz)):
            contrib = delta * scale
            contrib[:, 0] += carry[:, axis]
            reset = (delta == 0.0) if axis in reset_axes else None
            partial = _running_sum(contrib, reset)
            carry[:, axis] = partial[:, -1]
            np.maximum(run_max, partial.max(axis=1), out=run_max)
            np.minimum(run_min, partial.min(axis=1), out=run_min)

    extrema = np.where(-run_min > run_max, -run_min, run_max)
    return carry, extrema


class ForceKernel:
    """First dispatch of a step: acceleration, velocity kick, extremum records."""

    def __init__(self, units: Units, dt: float, work_group_size: int = 128, column_block: int = 1024):
        self.units = units
        self.dt = float(dt)
        self.work_group_size = int(work_group_size)
        self.column_block = int(column_block)

    def run_group(self, ps: ParticleSet, start: int, stop: int, channel: ExtremaChannel) -> None:
        # reads every position/mass, writes only rows start..stop-1
        acc, extrema = force_block(ps.pos, ps.mass, start, stop, self.units, self.column_block)
        ps.acc[start:stop] = acc
        ps.vel[start:stop] += acc * self.dt
        for value in extrema:
            channel.write(float(value), True)

    def _guarded(self, ps: ParticleSet, start: int, stop: int, channel: ExtremaChannel) -> None:
        try:
            self.run_group(ps, start, stop, channel)
        except BaseException as e:
            channel.abort(e)
            raise

    def submit(self, pool: Executor, ps: ParticleSet, channel: ExtremaChannel) -> List[Future]:
        return [pool.submit(self._guarded, ps, start, stop, channel)
                for start, stop in work_groups(ps.n, self.work_group_size)]
