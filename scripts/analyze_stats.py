#!/usr/bin/env python
from __future__ import annotations

import argparse

from gravsim.analysis import load_stats, energy_drift, throughput_summary


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--stats_csv", required=True)
    ap.add_argument("--warmup", type=int, default=2)
    args = ap.parse_args()

    df = load_stats(args.stats_csv)
    print("n samples:", len(df))
    print(df[["kenergy", "elapsed_sec", "gflops", "extremum"]].describe())

    print("\nthroughput (warm-up dropped):", throughput_summary(df, n_warmup=args.warmup))
    print("kinetic energy drift:", energy_drift(df))
    if "extremum" in df.columns:
        print("max step extremum:", float(df["extremum"].max()))


if __name__ == "__main__":
    main()
