from __future__ import annotations

import enum
import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from tqdm import tqdm

from .channel import ChannelProtocolError, ExtremaChannel, ExtremumRecord
from .config import RunConfig, validate_config
from .extrema import GlobalExtremum, rescan_extremum, step_extremum
from .forces import ForceKernel
from .integration import EnergyAccumulator, IntegrationKernel
from .particles import ParticleSet, make_particle_set
from .stats import StatisticsCollector, format_header, format_row

logger = logging.getLogger(__name__)

RULE = "==============================="
DASHES = "------------------------------------------------"


class DispatchError(RuntimeError):
    """A work item of a parallel dispatch raised; the run cannot continue."""


class SimState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    FINALIZED = "finalized"


@dataclass
class SimulationResult:
    npart: int
    nsteps: int
    extremum: float
    rescan_extremum: float
    kenergy: List[float] = field(default_factory=list)
    step_extrema: List[float] = field(default_factory=list)
    total_time: float = 0.0
    gflops_mean: float = float("nan")
    gflops_std: float = float("nan")
    rows: List[Dict[str, float]] = field(default_factory=list)


def write_info_file(path: str, value: float) -> None:
    """Write the final extremum twice, one value per line."""
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)
    text = repr(float(value))
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"{text}\n{text}\n")


def _join(futures: Sequence[Future], phase: str) -> None:
    """Barrier: wait for every work item, then surface the first failure."""
    wait(futures)
    errors = [f.exception() for f in futures if f.exception() is not None]
    if not errors:
        return
    # work items woken by a closed channel only report the shutdown
    root = [e for e in errors if not isinstance(e, ChannelProtocolError)]
    exc = (root or errors)[0]
    raise DispatchError(f"{phase} dispatch failed: {type(exc).__name__}: {exc}") from exc


class GravitySimulation:
    """Drives the per-step force/integration pipeline for one run.

    State machine: UNINITIALIZED -> INITIALIZED -> RUNNING -> FINALIZED.
    """

    def __init__(self, cfg: Optional[RunConfig] = None, seed_file: Optional[str] = None):
        cfg = cfg if cfg is not None else RunConfig()
        validate_config(cfg)
        self.cfg = cfg
        self.seed_file = seed_file
        self.state = SimState.UNINITIALIZED
        self.particles: Optional[ParticleSet] = None

        sim = cfg.sim
        wg = cfg.parallel.work_group_size
        self.force_kernel = ForceKernel(cfg.units, sim.dt, wg, cfg.parallel.column_block)
        self.integration_kernel = IntegrationKernel(sim.dt, wg)
        self.energy = EnergyAccumulator()
        self.channel = ExtremaChannel(cfg.channel.capacity, cfg.channel.timeout_sec)
        self.stats = StatisticsCollector(sim.npart, sim.sample_freq, sim.n_warmup)
        self.extremum = GlobalExtremum()
        self.rescan = GlobalExtremum()
        self.kenergy_history: List[float] = []
        self.step_extrema: List[float] = []
        self._bar = None

    def _emit(self, line: str) -> None:
        if self._bar is not None:
            tqdm.write(line)
        else:
            print(line)

    def _require(self, *states: SimState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.name for s in states)
            raise RuntimeError(f"simulation is {self.state.name}; expected {allowed}")

    def initialize(self) -> ParticleSet:
        self._require(SimState.UNINITIALIZED)
        sim = self.cfg.sim
        self._emit(RULE)
        self._emit(" Initialize Gravity Simulation")
        self.particles = make_particle_set(sim.npart, sim.seed, self.seed_file)
        self.state = SimState.INITIALIZED
        return self.particles

    def print_header(self) -> None:
        sim = self.cfg.sim
        self._emit(f" nPart = {sim.npart}; nSteps = {sim.nsteps}; dt = {sim.dt:g}")
        self._emit(DASHES)
        self._emit(format_header())
        self._emit(DASHES)

    def _force_phase(self, pool: ThreadPoolExecutor) -> List[ExtremumRecord]:
        ps = self.particles
        assert ps is not None
        self.channel.begin_step()
        futures = self.force_kernel.submit(pool, ps, self.channel)
        # drain while the dispatch is in flight so producers blocked on a
        # full channel can finish; folding waits for the barriers
        try:
            records = self.channel.drain(ps.n)
        except ChannelProtocolError:
            # release producers still blocked on the channel
            self.channel.close()
            _join(futures, "force")
            raise
        _join(futures, "force")
        return records

    def _integration_phase(self, pool: ThreadPoolExecutor) -> float:
        ps = self.particles
        assert ps is not None
        futures = self.integration_kernel.submit(pool, ps, self.energy)
        _join(futures, "integration")
        kenergy = 0.5 * self.energy.total()
        self.energy.reset()
        return kenergy

    def step(self, pool: ThreadPoolExecutor, s: int) -> float:
        """Advance one step; returns the kinetic energy after the step."""
        self._require(SimState.RUNNING)
        ps = self.particles
        assert ps is not None
        sim = self.cfg.sim

        ts0 = time.time()
        records = self._force_phase(pool)
        kenergy = self._integration_phase(pool)
        elapsed = time.time() - ts0

        step_ext = step_extremum(records)
        row = self.stats.sample(s, s * sim.dt, kenergy, elapsed, step_ext)
        if row is not None:
            self._emit(format_row(row))

        self.channel.end_step(ps.n)
        self.extremum.fold(step_ext)
        if sim.verify_rescan:
            self.rescan.fold(rescan_extremum(ps.acc))

        self.kenergy_history.append(kenergy)
        self.step_extrema.append(step_ext)
        return kenergy

    def run(self) -> SimulationResult:
        if self.state is SimState.UNINITIALIZED:
            self.initialize()
        self._require(SimState.INITIALIZED)
        sim = self.cfg.sim
        out = self.cfg.output

        self.print_header()
        self.state = SimState.RUNNING
        steps = range(1, sim.nsteps + 1)
        if out.progress:
            self._bar = tqdm(steps, total=sim.nsteps, desc="steps", leave=False)
            steps = self._bar

        t0 = time.time()
        try:
            with ThreadPoolExecutor(max_workers=self.cfg.resolved_workers()) as pool:
                try:
                    for s in steps:
                        self.step(pool, s)
                except BaseException:
                    self.channel.close()
                    raise
        finally:
            if self._bar is not None:
                self._bar.close()
                self._bar = None
        total_time = time.time() - t0
        return self._finalize(total_time)

    def _finalize(self, total_time: float) -> SimulationResult:
        self._require(SimState.RUNNING)
        self.channel.close()
        out = self.cfg.output

        self._emit("")
        self._emit(f"# Total Time (s)     : {total_time:.6g}")
        self._emit(f"# Average Performance : {self.stats.mean:.6g} +- {self.stats.stddev:.6g}")
        self._emit(RULE)

        if self.cfg.sim.verify_rescan and self.rescan.value > self.extremum.value:
            # every re-scanned component is also one of the streamed partial sums
            logger.warning("re-scan extremum %r exceeds streamed extremum %r",
                           self.rescan.value, self.extremum.value)

        if out.info_path:
            write_info_file(out.info_path, self.extremum.value)
            logger.info("Saved: %s", out.info_path)
        if out.stats_csv:
            self.stats.write_csv(out.stats_csv)
            logger.info("Saved: %s", out.stats_csv)

        self.state = SimState.FINALIZED
        return SimulationResult(
            npart=self.cfg.sim.npart,
            nsteps=self.cfg.sim.nsteps,
            extremum=self.extremum.value,
            rescan_extremum=self.rescan.value,
            kenergy=list(self.kenergy_history),
            step_extrema=list(self.step_extrema),
            total_time=float(total_time),
            gflops_mean=self.stats.mean,
            gflops_std=self.stats.stddev,
            rows=list(self.stats.rows),
        )


def run_simulation(cfg: Optional[RunConfig] = None, seed_file: Optional[str] = None) -> SimulationResult:
    """Run a full simulation and return its summary."""
    return GravitySimulation(cfg, seed_file).run()
