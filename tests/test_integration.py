from concurrent.futures import ThreadPoolExecutor

import numpy as np

from gravsim.integration import EnergyAccumulator, IntegrationKernel
from gravsim.particles import make_particle_set


def integrate(ps, dt, wg, workers):
    energy = EnergyAccumulator()
    kernel = IntegrationKernel(dt, work_group_size=wg)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        for f in kernel.submit(pool, ps, energy):
            f.result()
    return energy


def test_drift_and_energy():
    dt = 0.1
    ps = make_particle_set(100)
    pos0 = ps.pos.copy()
    energy = integrate(ps, dt, wg=16, workers=4)

    np.testing.assert_allclose(ps.pos, pos0 + ps.vel * dt, rtol=1e-15)
    expected = np.sum(ps.mass * np.sum(ps.vel**2, axis=1))
    np.testing.assert_allclose(energy.total(), expected, rtol=1e-12)


def test_energy_reduction_independent_of_worker_count():
    totals = []
    for workers in (1, 3, 8):
        ps = make_particle_set(257)
        totals.append(integrate(ps, 0.1, wg=16, workers=workers).total())
    assert totals[0] == totals[1] == totals[2]


def test_accumulator_reset():
    acc = EnergyAccumulator()
    acc.add(1.0)
    acc.add(1e-20)
    acc.add(-1.0)
    assert acc.total() == 1e-20
    acc.reset()
    assert acc.total() == 0.0


def test_energy_reduction_independent_of_work_group_size():
    totals = []
    for wg in (1, 16, 100, 257):
        ps = make_particle_set(257)
        totals.append(integrate(ps, 0.1, wg=wg, workers=4).total())
    assert len(set(totals)) == 1


def test_accumulator_sums_unrounded_terms():
    acc = EnergyAccumulator()
    acc.add(np.array([1e16, 1.0]))
    acc.add(np.array([1.0, -1e16]))
    assert acc.total() == 2.0
