#!/usr/bin/env python
from __future__ import annotations

import os
import argparse

import numpy as np
import pandas as pd

from gravsim.analysis import load_stats, energy_drift
from gravsim.plotting import FigureConfig, set_style, savefig, ensure_dir

import matplotlib
matplotlib.use("Agg", force=True)
import matplotlib.pyplot as plt


def plot_energy(df: pd.DataFrame, out_path: str, cfg: FigureConfig) -> None:
    fig = plt.figure()
    ax = fig.add_subplot(111)
    ax.plot(df["time"], df["kenergy"], marker=".", label="kinetic energy")
    fit = energy_drift(df)
    if np.isfinite(fit["slope"]):
        t = df["time"].to_numpy(dtype=float)
        ax.plot(t, fit["intercept"] + fit["slope"]*t, linestyle="--",
                label=fr"drift $\approx {fit['slope']:.3g}$")
    ax.set_xlabel("t")
    ax.set_ylabel("kinetic energy")
    ax.legend(loc="best")
    savefig(fig, out_path, cfg)
    plt.close(fig)


def plot_throughput(df: pd.DataFrame, out_path: str, cfg: FigureConfig, warmup: int) -> None:
    fig = plt.figure()
    ax = fig.add_subplot(111)
    ax.plot(df["step"], df["gflops"], marker="o", linestyle="-")
    if warmup > 0 and len(df) > 0:
        ax.axvspan(df["step"].iloc[0], df["step"].iloc[min(warmup, len(df)) - 1],
                   alpha=0.15, label="warm-up")
        ax.legend(loc="best")
    ax.set_xlabel("step")
    ax.set_ylabel("GFLOPS")
    savefig(fig, out_path, cfg)
    plt.close(fig)


def plot_extremum(df: pd.DataFrame, out_path: str, cfg: FigureConfig) -> None:
    fig = plt.figure()
    ax = fig.add_subplot(111)
    ax.semilogy(df["step"], df["extremum"], marker=".", label="step")
    ax.semilogy(df["step"], df["extremum"].cummax(), linestyle="--", label="running max")
    ax.set_xlabel("step")
    ax.set_ylabel("max |acceleration|")
    ax.legend(loc="best")
    savefig(fig, out_path, cfg)
    plt.close(fig)


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--stats_csv", required=True)
    ap.add_argument("--out_dir", default="figures")
    ap.add_argument("--fmt", default="png")
    ap.add_argument("--warmup", type=int, default=2)
    args = ap.parse_args()

    cfg = FigureConfig(fmt=args.fmt)
    set_style(cfg)
    ensure_dir(args.out_dir)

    df = load_stats(args.stats_csv)
    plot_energy(df, os.path.join(args.out_dir, f"kenergy.{cfg.fmt}"), cfg)
    plot_throughput(df, os.path.join(args.out_dir, f"gflops.{cfg.fmt}"), cfg, args.warmup)
    if "extremum" in df.columns:
        plot_extremum(df, os.path.join(args.out_dir, f"extremum.{cfg.fmt}"), cfg)
    print("Saved figures to:", args.out_dir)


if __name__ == "__main__":
    main()
