"""Tests for the non-adaptive baselines: Gaussian-proposal rejection and slice sampling."""
from __future__ import annotations

import math

import numpy as np
import pytest

from arsampling.diagnostics.checks import effective_sample_size
from arsampling.errors import InvalidSampleCountError, IterationLimitError
from arsampling.inference.rejection import estimate_log_bound, rejection_sample
from arsampling.inference.samplers import SliceSampler1D, run_slice_chain, slice_sample_1d
from arsampling.targets import BetaTarget, NormalTarget


def test_rejection_sampler_recovers_normal_moments():
    result = rejection_sample(NormalTarget(), 5000, loc=0.0, scale=1.5, seed=0)
    assert result.samples.shape == (5000,)
    assert result.samples.mean() == pytest.approx(0.0, abs=0.06)
    assert result.samples.var(ddof=1) == pytest.approx(1.0, abs=0.1)
    assert result.bound_violations == 0
    # 1 / M with M = 1.5 * exp(0.1)
    assert 0.5 < result.acceptance_rate < 0.7
    assert result.total_iterations >= 5000


def test_estimate_log_bound_covers_density_ratio():
    bound = estimate_log_bound(NormalTarget(), 0.0, 1.5)
    assert bound == pytest.approx(math.log(1.5) + 0.1, abs=1e-6)


def test_rejection_sampler_is_reproducible():
    a = rejection_sample(NormalTarget(1.0, 2.0), 300, loc=1.0, scale=3.0, seed=4)
    b = rejection_sample(NormalTarget(1.0, 2.0), 300, loc=1.0, scale=3.0, seed=4)
    np.testing.assert_array_equal(a.samples, b.samples)


def test_rejection_sampler_flags_understated_bound():
    result = rejection_sample(NormalTarget(), 500, loc=0.0, scale=1.5, log_bound=-1.0, seed=2)
    assert result.bound_violations > 0


def test_rejection_sampler_errors():
    with pytest.raises(InvalidSampleCountError):
        rejection_sample(NormalTarget(), 0)
    with pytest.raises(ValueError):
        rejection_sample(NormalTarget(), 10, scale=0.0)
    with pytest.raises(IterationLimitError):
        rejection_sample(NormalTarget(), 1000, loc=0.0, scale=1.5, seed=0, max_iterations=50)


def test_slice_chain_matches_normal_moments():
    result = run_slice_chain(NormalTarget(), 0.0, 3000, seed=0, width=2.0, burn_in=200)
    assert result.samples.shape == (3000,)
    assert result.samples.mean() == pytest.approx(0.0, abs=0.15)
    assert result.samples.var(ddof=1) == pytest.approx(1.0, abs=0.25)
    assert result.evaluations > 3000
    ess = effective_sample_size(result.samples)
    assert 0 < ess <= 3000
    assert result.to_dict()["burn_in"] == 200


def test_slice_chain_rejects_bad_start():
    with pytest.raises(ValueError):
        run_slice_chain(BetaTarget(2.0, 2.0), 2.0, 10, seed=0)


def test_slice_step_respects_width():
    rng = np.random.default_rng(0)
    with pytest.raises(ValueError):
        slice_sample_1d(NormalTarget().log_density, 0.0, rng, width=0.0)
    sampler = SliceSampler1D(NormalTarget().log_density, width=1.0, rng=rng)
    x = 0.0
    for _ in range(50):
        x = sampler.step(x)
    assert np.isfinite(x)
