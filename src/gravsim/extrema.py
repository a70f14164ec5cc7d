from __future__ import annotations

from typing import Iterable
import numpy as np
from numpy.typing import NDArray

from .channel import ExtremumRecord


def step_extremum(records: Iterable[ExtremumRecord]) -> float:
    """Largest record value of one step (0 if no record is flagged)."""
    best = 0.0
    for rec in records:
        if rec.flag and rec.value > best:
            best = rec.value
    return float(best)


def rescan_extremum(acc: NDArray[np.float64]) -> float:
    """max(max component, -min component) over the acceleration array, floored at 0."""
    if acc.size == 0:
        return 0.0
    hi = max(float(acc.max()), 0.0)
    lo = min(float(acc.min()), 0.0)
    return -lo if -lo > hi else hi


class GlobalExtremum:
    """Monotone running maximum of acceleration extrema for one run."""

    def __init__(self) -> None:
        self.value = 0.0
        self.n_folds = 0

    def fold(self, value: float) -> float:
        if value > self.value:
            self.value = float(value)
        self.n_folds += 1
        return self.value

    def fold_records(self, records: Iterable[ExtremumRecord]) -> float:
        return self.fold(step_extremum(records))
