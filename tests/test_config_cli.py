import json
import os

import pytest

from gravsim.cli import build_parser, config_from_args, run_cli
from gravsim.config import ParallelParams, RunConfig, SimParams, Units, load_run_config, to_json, validate_config


def test_json_round_trip(tmp_path):
    cfg = RunConfig(sim=SimParams(npart=32, nsteps=4), units=Units(zero_check_axes=(0, 1, 2)))
    path = tmp_path / "cfg.json"
    to_json(cfg, str(path))
    assert load_run_config(str(path)) == cfg


def test_partial_json_keeps_defaults(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"sim": {"npart": 8}, "channel": {"capacity": 16}}))
    cfg = load_run_config(str(path))
    assert cfg.sim.npart == 8
    assert cfg.sim.dt == 0.1
    assert cfg.channel.capacity == 16
    assert cfg.units.G == 6.67259e-11


def test_bad_zero_check_axis():
    with pytest.raises(ValueError):
        validate_config(RunConfig(units=Units(zero_check_axes=(3,))))


def test_defaults_without_flags():
    args = build_parser().parse_args([])
    cfg = config_from_args(args)
    assert args.seed_file is None
    assert (cfg.sim.npart, cfg.sim.nsteps, cfg.sim.dt, cfg.sim.sample_freq) == (16000, 10, 0.1, 1)


def test_flags_override_config(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"sim": {"npart": 8, "nsteps": 3}}))
    args = build_parser().parse_args(["seed.txt", "--config", str(path), "--nsteps", "5", "--workers", "2"])
    cfg = config_from_args(args)
    assert args.seed_file == "seed.txt"
    assert cfg.sim.npart == 8
    assert cfg.sim.nsteps == 5
    assert cfg.parallel.workers == 2


def test_run_cli_with_seed_file(tmp_path, capsys):
    seed = tmp_path / "seed.txt"
    seed.write_text("0 0 0\n1 0 0\n")
    info = tmp_path / "info.txt"
    res = run_cli([str(seed), "--npart", "2", "--nsteps", "2", "--workers", "1", "--output", str(info)])
    lines = info.read_text().splitlines()
    assert lines[0] == lines[1]
    assert float(lines[0]) == res.extremum > 0.0
    assert "Initialize Gravity Simulation" in capsys.readouterr().out


def test_invalid_force_options():
    with pytest.raises(ValueError):
        validate_config(RunConfig(units=Units(zero_check="skip")))
    with pytest.raises(ValueError):
        validate_config(RunConfig(parallel=ParallelParams(column_block=0)))


def test_zero_check_flag():
    cfg = config_from_args(build_parser().parse_args(["--zero-check", "reset"]))
    assert cfg.units.zero_check == "reset"
    assert cfg.units.zero_check_axes == (0,)
    assert config_from_args(build_parser().parse_args([])).units.zero_check == "off"


def test_run_cli_leaves_thread_env_alone(tmp_path, monkeypatch):
    monkeypatch.delenv("OMP_NUM_THREADS", raising=False)
    run_cli(["--npart", "3", "--nsteps", "1", "--workers", "1", "--output", str(tmp_path / "info.txt")])
    assert "OMP_NUM_THREADS" not in os.environ
