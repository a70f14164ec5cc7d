from __future__ import annotations

import numpy as np
import pandas as pd
from scipy.stats import linregress


def load_stats(path: str) -> pd.DataFrame:
    df = pd.read_csv(path)
    missing = {"step", "time", "kenergy", "elapsed_sec", "gflops"} - set(df.columns)
    if missing:
        raise ValueError(f"{path} is missing columns: {sorted(missing)}")
    return df.sort_values("step").reset_index(drop=True)


def energy_drift(df: pd.DataFrame) -> dict:
    """Least-squares slope of kinetic energy against simulated time."""
    t = df["time"].to_numpy(dtype=float)
    ke = df["kenergy"].to_numpy(dtype=float)
    if len(t) < 2 or np.ptp(t) == 0.0:
        return {"slope": np.nan, "intercept": np.nan, "rvalue": np.nan, "n": int(len(t))}
    fit = linregress(t, ke)
    return {"slope": float(fit.slope), "intercept": float(fit.intercept),
            "rvalue": float(fit.rvalue), "n": int(len(t))}


def throughput_summary(df: pd.DataFrame, n_warmup: int = 2) -> dict:
    """Mean/stddev of GFLOPS with the first `n_warmup` samples dropped."""
    g = df["gflops"].to_numpy(dtype=float)[n_warmup:]
    g = g[np.isfinite(g)]
    if len(g) == 0:
        return {"mean": np.nan, "std": np.nan, "n": 0}
    # population stddev, matching the running estimate of the simulation
    return {"mean": float(np.mean(g)), "std": float(np.std(g)), "n": int(len(g))}
