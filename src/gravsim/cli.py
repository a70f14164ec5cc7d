from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from typing import List, Optional

from .config import RunConfig, load_run_config
from .simulation import SimulationResult, run_simulation


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Gravitational N-body simulation")
    ap.add_argument("seed_file", nargs="?", default=None,
                    help="Whitespace-separated x y z triples overriding the first particle positions")
    ap.add_argument("--config", default=None, help="Path to run JSON config")
    ap.add_argument("--npart", type=int, default=None)
    ap.add_argument("--nsteps", type=int, default=None)
    ap.add_argument("--dt", type=float, default=None)
    ap.add_argument("--sfreq", type=int, default=None, help="Report every N-th step")
    ap.add_argument("--workers", type=int, default=None, help="Thread pool size (0 = cpu count)")
    ap.add_argument("--output", default=None, help="Path of the extremum info file")
    ap.add_argument("--zero-check", choices=["off", "reset"], default=None,
                    help="'reset' zeroes the running x acceleration sum on a zero x separation")
    ap.add_argument("--stats-csv", default=None, help="Write sampled step rows to this CSV")
    ap.add_argument("--progress", action="store_true", help="Show a progress bar")
    ap.add_argument("--log-level", default="WARNING")
    return ap


def config_from_args(args: argparse.Namespace) -> RunConfig:
    cfg = load_run_config(args.config) if args.config else RunConfig()

    sim_kw = {}
    if args.npart is not None:
        sim_kw["npart"] = args.npart
    if args.nsteps is not None:
        sim_kw["nsteps"] = args.nsteps
    if args.dt is not None:
        sim_kw["dt"] = args.dt
    if args.sfreq is not None:
        sim_kw["sample_freq"] = args.sfreq
    out_kw = {}
    if args.output is not None:
        out_kw["info_path"] = args.output
    if args.stats_csv is not None:
        out_kw["stats_csv"] = args.stats_csv
    if args.progress:
        out_kw["progress"] = True

    cfg = replace(cfg, sim=replace(cfg.sim, **sim_kw), output=replace(cfg.output, **out_kw))
    if args.zero_check is not None:
        cfg = replace(cfg, units=replace(cfg.units, zero_check=args.zero_check))
    if args.workers is not None:
        cfg = replace(cfg, parallel=replace(cfg.parallel, workers=args.workers))
    return cfg


def run_cli(argv: Optional[List[str]] = None) -> SimulationResult:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
                        format="%(levelname)s %(name)s: %(message)s")
    cfg = config_from_args(args)
    return run_simulation(cfg, seed_file=args.seed_file)


def main(argv: Optional[List[str]] = None) -> None:
    run_cli(argv)


if __name__ == "__main__":
    main()
