"""Smoke tests for the config-driven experiment runner and CLIs."""
from __future__ import annotations

import json
import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest
import yaml

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from arsampling.cli import compare as compare_cli
from arsampling.cli import run_experiment as run_cli
from arsampling.experiments.registry import get_available_samplers, get_sampler_name_from_config
from arsampling.experiments.runner import ExperimentError, run_experiment


def _normal_config(**sampler):
    return {
        "seed": 123,
        "name": "smoke",
        "target": {"name": "normal", "mu": 0.0, "sigma": 1.0},
        "support": {"points": [-4.0, -2.0, 0.0, 2.0, 4.0]},
        "sampler": {"name": "ars", **sampler},
        "experiments": {"n_samples": 1000, "batch_size": 100, "plots": False},
    }


def test_run_experiment_creates_artifacts(tmp_path):
    cfg = _normal_config()
    cfg["experiments"]["plots"] = True
    metrics = run_experiment(cfg, tmp_path)

    assert metrics["status"] == "OK"
    assert metrics["sampler"] == "ars"
    assert metrics["n_samples"] == 1000
    for name in ("samples.npz", "metrics.json", "histogram.png", "envelope.png", "acceptance.png"):
        assert (tmp_path / name).exists(), name

    saved = json.loads((tmp_path / "metrics.json").read_text(encoding="utf-8"))
    diag = saved["diagnostics"]
    assert diag["ks_statistic"] < 0.1
    assert len(diag["batch_acceptance"]) == 10
    assert saved["sampler_report"]["acceptance_rate"] >= 0.9

    with np.load(tmp_path / "samples.npz") as arrays:
        assert arrays["samples"].shape == (1000,)
        assert int(arrays["slot_iterations"].sum()) == saved["sampler_report"]["total_iterations"]
        assert arrays["support_x"].size > 5


def test_run_experiment_is_reproducible(tmp_path):
    a = run_experiment(_normal_config(), tmp_path / "a")
    b = run_experiment(_normal_config(), tmp_path / "b")
    assert a["diagnostics"]["mean"] == b["diagnostics"]["mean"]
    with np.load(tmp_path / "a" / "samples.npz") as xa, np.load(tmp_path / "b" / "samples.npz") as xb:
        np.testing.assert_array_equal(xa["samples"], xb["samples"])


def test_run_experiment_with_parallel_workers(tmp_path):
    cfg = _normal_config()
    cfg["parallel"] = {"workers": 2, "backend": "thread"}
    metrics = run_experiment(cfg, tmp_path)
    assert metrics["sampler_report"]["workers"] == 2
    assert metrics["n_samples"] == 1000


@pytest.mark.parametrize("name", ["rejection", "slice"])
def test_run_experiment_baselines(tmp_path, name):
    cfg = _normal_config()
    cfg["sampler"] = {"name": name, "scale": 1.5, "width": 2.0, "burn_in": 50}
    metrics = run_experiment(cfg, tmp_path)
    assert metrics["sampler"] == name
    assert metrics["n_samples"] == 1000
    if name == "slice":
        assert metrics["diagnostics"]["ess"] > 0


def test_run_experiment_config_errors(tmp_path):
    with pytest.raises(ExperimentError):
        run_experiment({"experiments": {"n_samples": 10}}, tmp_path)
    with pytest.raises(ExperimentError):
        run_experiment({**_normal_config(), "target": {"name": "cauchy"}}, tmp_path)
    with pytest.raises(ExperimentError):
        run_experiment({**_normal_config(), "sampler": {"name": "gibbs"}}, tmp_path)


def test_sampler_registry_defaults():
    assert {"ars", "adaptive_rejection", "rejection", "slice"} <= set(get_available_samplers())
    assert get_sampler_name_from_config({}) == "ars"
    assert get_sampler_name_from_config({"sampler": {"type": "slice"}}) == "slice"


def _write_configs(tmp_path: Path) -> Path:
    base = {
        "seed": 7,
        "experiments": {"n_samples": 5000, "batch_size": 50, "plots": False},
        "sampler": {"name": "ars"},
    }
    child = {
        "defaults": "base.yaml",
        "name": "cli-normal",
        "target": {"name": "normal"},
        "support": {"points": [-4, -2, 0, 2, 4]},
    }
    (tmp_path / "base.yaml").write_text(yaml.safe_dump(base), encoding="utf-8")
    child_path = tmp_path / "normal.yaml"
    child_path.write_text(yaml.safe_dump(child), encoding="utf-8")
    return child_path


def test_cli_run_experiment_with_defaults_and_overrides(tmp_path):
    cfg_path = _write_configs(tmp_path)
    out = tmp_path / "runs"
    code = run_cli.main(["--config", str(cfg_path), "--outdir", str(out), "-o", "experiments.n_samples=300"])
    assert code == 0

    run_dirs = [p for p in out.iterdir() if p.is_dir()]
    assert len(run_dirs) == 1
    assert run_dirs[0].name.startswith("cli-normal-")
    resolved = yaml.safe_load((run_dirs[0] / "resolved_config.yaml").read_text(encoding="utf-8"))
    assert resolved["experiments"]["n_samples"] == 300
    assert resolved["seed"] == 7
    assert "defaults" not in resolved
    metrics = json.loads((run_dirs[0] / "metrics.json").read_text(encoding="utf-8"))
    assert metrics["n_samples"] == 300


def test_cli_compare_writes_table(tmp_path):
    cfg_path = _write_configs(tmp_path)
    out = tmp_path / "compare"
    code = compare_cli.main(
        ["--config", str(cfg_path), "--outdir", str(out), "-o", "experiments.n_samples=300", "sampler.burn_in=20"]
    )
    assert code == 0
    (run_dir,) = [p for p in out.iterdir() if p.is_dir()]
    table = pd.read_csv(run_dir / "comparison.csv")
    assert list(table["sampler"]) == ["ars", "rejection", "slice"]
    assert (table["n_samples"] == 300).all()
    assert (run_dir / "comparison.tex").read_text(encoding="utf-8").startswith("\\begin{tabular}")
    for name in ("ars", "rejection", "slice"):
        assert (run_dir / name / "metrics.json").exists()
