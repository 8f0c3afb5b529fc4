"""Tests for envelope/squeeze construction and segment areas."""
from __future__ import annotations

import math

import numpy as np
import pytest

from arsampling.inference.envelope import (
    envelope_gap,
    log_lower_bound,
    lower_bound,
    segment_areas,
    segment_log_areas,
    segment_probabilities,
    segment_slopes,
    upper_bound,
)
from arsampling.inference.support import SupportSet
from arsampling.targets import CallableTarget, GammaTarget, NormalTarget

TOL = 1e-10


@pytest.fixture
def normal_support():
    return SupportSet(NormalTarget(), [-4.0, -2.0, 0.0, 2.0, 4.0])


def test_envelope_bounds_target_on_grid(normal_support):
    target = normal_support.target
    grid = np.linspace(-4.0, 4.0, 801)
    h = target.log_density(grid)
    assert np.all(upper_bound(normal_support, grid) >= h - TOL)
    assert np.all(lower_bound(normal_support, grid) <= np.exp(h) + TOL)
    assert np.all(log_lower_bound(normal_support, grid) <= h + TOL)


def test_boundary_tangents_extrapolate_outside_hull(normal_support):
    target = normal_support.target
    outside = np.concatenate([np.linspace(-8.0, -4.01, 50), np.linspace(4.01, 8.0, 50)])
    assert np.all(upper_bound(normal_support, outside) >= target.log_density(outside) - TOL)
    np.testing.assert_array_equal(lower_bound(normal_support, outside), 0.0)
    assert np.all(np.isneginf(log_lower_bound(normal_support, outside)))


def test_bounds_touch_target_at_support_points(normal_support):
    xs = normal_support.xs
    np.testing.assert_allclose(upper_bound(normal_support, xs), normal_support.hs)
    np.testing.assert_allclose(log_lower_bound(normal_support, xs), normal_support.hs)


def test_scalar_input_returns_float(normal_support):
    assert isinstance(upper_bound(normal_support, 0.3), float)
    assert isinstance(lower_bound(normal_support, 0.3), float)


def test_bounds_tighten_monotonically():
    target = GammaTarget(shape=3.0, rate=1.0)
    support = SupportSet(target, [0.2, 2.0, 6.0, 12.0])
    grid = np.linspace(0.2, 12.0, 600)
    upper_prev = upper_bound(support, grid)
    lower_prev = lower_bound(support, grid)
    gap_prev = envelope_gap(support, grid)
    for x in [1.0, 4.0, 0.5, 8.0, 3.0]:
        support.insert(x)
        upper_now = upper_bound(support, grid)
        lower_now = lower_bound(support, grid)
        assert np.all(upper_now <= upper_prev + TOL)
        assert np.all(lower_now >= lower_prev - TOL)
        gap_now = envelope_gap(support, grid)
        assert gap_now <= gap_prev + TOL
        upper_prev, lower_prev, gap_prev = upper_now, lower_now, gap_now


def test_nan_tangent_is_ignored_by_envelope():
    target = CallableTarget(lambda x: -0.5 * x * x, grad=lambda x: math.nan if x > 3 else -x)
    support = SupportSet(target, [-1.0, 1.0])
    support.insert(3.5)
    value = upper_bound(support, 2.0)
    assert math.isfinite(value)
    assert value == pytest.approx(-0.5 - 1.0 * (2.0 - 1.0))


def test_zero_slope_segment_has_positive_area():
    target = NormalTarget()
    support = SupportSet(target, [0.0, 1.0])
    np.testing.assert_array_equal(segment_slopes(support), [0.0])
    log_area = segment_log_areas(support)
    assert log_area[0] == pytest.approx(target.log_density(0.0) + math.log(1.0))
    probs = segment_probabilities(support)
    assert np.all(np.isfinite(probs))
    assert probs.sum() == pytest.approx(1.0)


def test_segment_log_areas_match_closed_form():
    target = NormalTarget()
    support = SupportSet(target, [-3.0, -1.0, 0.5, 2.0])
    xs, hs, hps = support.xs, support.hs, support.h_primes
    expected = []
    for i in range(len(xs) - 1):
        b, dx = hps[i], xs[i + 1] - xs[i]
        expected.append(math.log(math.exp(hs[i]) * math.expm1(b * dx) / b))
    np.testing.assert_allclose(segment_log_areas(support), expected, rtol=1e-10)


def test_segment_areas_floor_keeps_tiny_segments_selectable():
    support = SupportSet(NormalTarget(), [-40.0, -39.0, 0.0, 1.0])
    areas = segment_areas(support)
    assert areas.max() == pytest.approx(1.0)
    assert np.all(areas >= 1e-12)
    assert areas[0] == pytest.approx(1e-12)


def test_nan_slope_coerced_to_zero():
    target = CallableTarget(lambda x: -0.5 * x * x, grad=lambda x: math.nan if x > 3 else -x)
    support = SupportSet(target, [-1.0, 1.0])
    support.insert(3.5)
    support.insert(5.0)
    slopes = segment_slopes(support)
    assert slopes[-1] == 0.0
    assert np.all(np.isfinite(segment_areas(support)))


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_envelope_stays_finite_when_both_tangents_are_unusable(bad):
    target = CallableTarget(lambda x: -0.5 * x * x, grad=lambda x: bad if 1.0 < x < 4.9 else -x)
    support = SupportSet(target, [-5.0, 0.0, 1.0, 5.0])
    for x in (2.0, 3.0):
        support.insert(x)
    assert not np.any(np.isfinite(support.h_primes[3:5]))

    grid = np.linspace(-5.0, 5.0, 1001)
    upper = upper_bound(support, grid)
    assert np.all(np.isfinite(upper))
    assert np.all(upper >= target.log_density(grid) - TOL)
    # Both ends of [2, 3] lack a tangent: flat cap at the larger endpoint value.
    assert upper_bound(support, 2.5) == pytest.approx(-2.0)
    # One usable tangent is enough.
    assert upper_bound(support, 1.5) == pytest.approx(-0.5 - 1.0 * 0.5)
