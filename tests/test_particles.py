import logging

import numpy as np
import pytest

from gravsim.particles import (
    ParticleSet, make_particle_set, init_positions, read_seed_file,
)


def test_initial_state_is_deterministic():
    a = make_particle_set(64)
    b = make_particle_set(64)
    for name in ("pos", "vel", "acc", "mass"):
        np.testing.assert_array_equal(getattr(a, name), getattr(b, name))


def test_initial_ranges():
    n = 200
    ps = make_particle_set(n)
    assert np.all((ps.pos >= 0.0) & (ps.pos < 1.0))
    assert np.all((ps.vel >= -1e-3) & (ps.vel < 1e-3))
    assert np.all(ps.acc == 0.0)
    # masses scale with N
    assert np.all((ps.mass >= 0.0) & (ps.mass < n))
    assert ps.mass.max() > 1.0


def test_mass_is_read_only():
    ps = make_particle_set(4)
    with pytest.raises(ValueError):
        ps.mass[0] = 1.0


def test_shape_mismatch_rejected():
    with pytest.raises(ValueError):
        ParticleSet(pos=np.zeros((3, 3)), vel=np.zeros((2, 3)), acc=np.zeros((3, 3)), mass=np.ones(3))


def test_partial_seed_file_overrides_leading_particles(tmp_path):
    path = tmp_path / "seed.txt"
    # two complete triples and one dangling value
    path.write_text("0.5 0.25 0.125\n1 2\n3   4.5\n")
    n = 10
    pos = init_positions(n, seed_file=str(path))
    ref = init_positions(n)

    np.testing.assert_array_equal(pos[0], [0.5, 0.25, 0.125])
    np.testing.assert_array_equal(pos[1], [1.0, 2.0, 3.0])
    np.testing.assert_array_equal(pos[2:], ref[2:])
    assert np.all((pos[2:] >= 0.0) & (pos[2:] < 1.0))


def test_seed_file_with_more_triples_than_particles(tmp_path):
    path = tmp_path / "seed.txt"
    path.write_text(" ".join(str(float(v)) for v in range(30)))
    pos = init_positions(4, seed_file=str(path))
    np.testing.assert_array_equal(pos, np.arange(12, dtype=float).reshape(4, 3))


def test_seed_file_stops_at_non_numeric_token(tmp_path):
    path = tmp_path / "seed.txt"
    path.write_text("1 2 3 4 oops 5 6 7")
    out = read_seed_file(str(path))
    assert out.shape == (1, 3)
    np.testing.assert_array_equal(out[0], [1.0, 2.0, 3.0])


def test_missing_seed_file_is_a_warning(tmp_path, caplog):
    missing = tmp_path / "does_not_exist.txt"
    with caplog.at_level(logging.WARNING, logger="gravsim.particles"):
        pos = init_positions(8, seed_file=str(missing))
    assert "Could not open the input file" in caplog.text
    np.testing.assert_array_equal(pos, init_positions(8))
