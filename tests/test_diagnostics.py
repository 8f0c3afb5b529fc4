"""Tests for sample-quality diagnostics and comparison tables."""
from __future__ import annotations

import numpy as np
import pytest
from scipy import stats

from arsampling.diagnostics.checks import (
    acceptance_trend,
    batch_acceptance_rates,
    boundary_mass,
    effective_sample_size,
    ks_statistic,
    moment_summary,
    summarize_samples,
)
from arsampling.viz.tables import COMPARISON_COLUMNS, comparison_frame, frame_to_latex, to_latex_table


def test_ks_statistic_small_for_matching_distribution():
    draws = np.random.default_rng(0).normal(size=5000)
    result = ks_statistic(draws, stats.norm.cdf)
    assert result["ks_statistic"] < 0.03
    assert result["ks_pvalue"] > 0.001
    shifted = ks_statistic(draws + 0.5, stats.norm.cdf)
    assert shifted["ks_statistic"] > 0.1
    with pytest.raises(ValueError):
        ks_statistic(np.array([]), stats.norm.cdf)


def test_moment_summary_keys_and_values():
    draws = np.random.default_rng(1).normal(2.0, 3.0, size=20_000)
    summary = moment_summary(draws)
    assert set(summary) == {"mean", "variance", "skewness", "q05", "median", "q95", "min", "max"}
    assert summary["mean"] == pytest.approx(2.0, abs=0.1)
    assert summary["variance"] == pytest.approx(9.0, rel=0.05)
    assert summary["q05"] < summary["median"] < summary["q95"]
    with pytest.raises(ValueError):
        moment_summary(np.array([1.0]))


def test_summarize_samples_adds_ks_only_with_cdf():
    draws = np.random.default_rng(2).normal(size=500)
    assert "ks_statistic" not in summarize_samples(draws)
    assert "ks_statistic" in summarize_samples(draws, stats.norm.cdf)


def test_batch_acceptance_rates():
    np.testing.assert_allclose(batch_acceptance_rates(np.array([1, 1, 2, 4]), 2), [1.0, 2.0 / 6.0])
    # Trailing partial batch is kept.
    np.testing.assert_allclose(batch_acceptance_rates(np.array([1, 1, 1]), 2), [1.0, 1.0])
    assert batch_acceptance_rates(np.array([], dtype=int), 3).size == 0
    with pytest.raises(ValueError):
        batch_acceptance_rates(np.array([1, 2]), 0)


def test_acceptance_trend_sign():
    assert acceptance_trend([0.5, 0.7, 0.9, 0.95]) > 0
    assert acceptance_trend([0.9, 0.8, 0.6]) < 0
    assert acceptance_trend([0.8]) == 0.0


def test_boundary_mass_uniform():
    draws = np.random.default_rng(3).uniform(0.0, 1.0, size=20_000)
    mass = boundary_mass(draws, 0.0, 1.0, frac=0.1)
    assert mass["edge_fraction"] == pytest.approx(0.2, abs=0.02)
    assert mass["centre_fraction"] == pytest.approx(0.2, abs=0.02)


def test_effective_sample_size_iid_vs_correlated():
    rng = np.random.default_rng(4)
    iid = rng.normal(size=2000)
    assert effective_sample_size(iid) > 1000
    ar = np.empty(2000)
    ar[0] = 0.0
    for t in range(1, ar.size):
        ar[t] = 0.95 * ar[t - 1] + rng.normal()
    assert effective_sample_size(ar) < 300
    assert effective_sample_size(np.ones(50)) == pytest.approx(50.0)
    with pytest.raises(ValueError):
        effective_sample_size(np.zeros(3))


def test_comparison_frame_orders_columns():
    records = [
        {"ess": 120.0, "sampler": "slice", "mean": 0.01, "n_samples": 100},
        {"sampler": "ars", "acceptance_rate": 0.99, "mean": -0.02, "n_samples": 100},
    ]
    frame = comparison_frame(records)
    assert list(frame.columns[:2]) == ["sampler", "n_samples"]
    assert frame.columns[-1] == "ess"
    assert list(comparison_frame([]).columns) == COMPARISON_COLUMNS


def test_latex_rendering():
    frame = comparison_frame([{"sampler": "ars", "n_samples": 10, "acceptance_rate": None, "mean": 0.123456}])
    latex = frame_to_latex(frame)
    assert latex.startswith("\\begin{tabular}{llll}")
    assert "ars & 10 & -- & 0.1235 \\\\" in latex
    assert latex.rstrip().endswith("\\end{tabular}")
    assert "\\hline" in to_latex_table([[1, 2.0]])
