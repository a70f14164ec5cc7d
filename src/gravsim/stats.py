from __future__ import annotations

import csv
import math
import os
from typing import Dict, List, Optional

ROW_FIELDS = ["step", "time", "kenergy", "elapsed_sec", "gflops", "extremum"]


def gflop_per_step(n: int) -> float:
    """Analytic operation count of one step, in GFLOP (not measured)."""
    return 1e-9 * ((11.0 + 18.0) * n * n + n * 19.0)


def format_header() -> str:
    return (" " + "s".ljust(8) + "dt".ljust(8) + "kenergy".ljust(12)
            + "time (s)".ljust(12) + "GFLOPS".ljust(12)).rstrip()


def format_row(row: Dict[str, float]) -> str:
    return (f" {row['step']:<8d}{row['time']:<8.5g}{row['kenergy']:<12.5g}"
            f"{row['elapsed_sec']:<12.5g}{row['gflops']:<12.5g}").rstrip()


class StatisticsCollector:
    """Throughput/energy bookkeeping for sampled steps.

    The first `n_warmup` samples are reported but excluded from the running
    mean and standard deviation of throughput.
    """

    def __init__(self, npart: int, sample_freq: int = 1, n_warmup: int = 2):
        if sample_freq < 1:
            raise ValueError(f"sample_freq must be >= 1, got {sample_freq}")
        self.npart = int(npart)
        self.sample_freq = int(sample_freq)
        self.n_warmup = int(n_warmup)
        self.gflops = gflop_per_step(self.npart)

        self.n_samples = 0
        self.n_accumulated = 0
        self._sum = 0.0
        self._sumsq = 0.0
        self.rows: List[Dict[str, float]] = []

    def is_sampled(self, step: int) -> bool:
        return step % self.sample_freq == 0

    def sample(self, step: int, sim_time: float, kenergy: float, elapsed: float,
               extremum: float = float("nan")) -> Optional[Dict[str, float]]:
        """Record a step; returns the report row for sampled steps, else None."""
        if not self.is_sampled(step):
            return None
        self.n_samples += 1
        rate = self.gflops * self.sample_freq / elapsed if elapsed > 0.0 else math.inf
        if self.n_samples > self.n_warmup and math.isfinite(rate):
            self._sum += rate
            self._sumsq += rate * rate
            self.n_accumulated += 1
        row = {
            "step": int(step),
            "time": float(sim_time),
            "kenergy": float(kenergy),
            "elapsed_sec": float(elapsed),
            "gflops": float(rate),
            "extremum": float(extremum),
        }
        self.rows.append(row)
        return row

    @property
    def mean(self) -> float:
        if self.n_accumulated == 0:
            return math.nan
        return self._sum / self.n_accumulated

    @property
    def stddev(self) -> float:
        if self.n_accumulated == 0:
            return math.nan
        av = self.mean
        return math.sqrt(max(self._sumsq / self.n_accumulated - av * av, 0.0))

    def write_csv(self, path: str) -> None:
        d = os.path.dirname(path)
        if d:
            os.makedirs(d, exist_ok=True)
        tmp = path + ".tmp"
        with open(tmp, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=ROW_FIELDS)
            writer.writeheader()
            for row in self.rows:
                writer.writerow(row)
        os.replace(tmp, path)
