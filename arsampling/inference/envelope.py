"""Envelope (upper) and squeeze (lower) bounds derived from a support set.

All functions here are pure: they read the support set and never mutate it.
``upper_bound`` is in log space; ``lower_bound`` is in density space and is
``0`` outside the support hull, where no squeeze is guaranteed.
"""
from __future__ import annotations

import numpy as np

from arsampling.inference.support import SupportSet

_SLOPE_TOL = 1e-12
_AREA_EPS = 1e-12


def _out(value, x):
    if np.ndim(x) == 0:
        return float(value)
    return value


def upper_bound(support: SupportSet, x):
    """Pointwise minimum of the tangents at the two support points bracketing ``x``.

    Points beyond the hull use the boundary interval, so the boundary tangents
    extrapolate. A tangent with a non-finite slope (or one that overflows) is
    ignored in favour of its neighbour. When neither is usable the segment is
    capped by the flat line at ``max(h_i, h_{i+1})``, so the bound is always
    finite and proposals there are still evaluated and refine the support.
    """
    xs, hs, hps = support.xs, support.hs, support.h_primes
    xa = np.asarray(x, dtype=float)
    i = np.asarray(support.locate_interval(xa))
    with np.errstate(invalid="ignore", over="ignore"):
        left = hs[i] + hps[i] * (xa - xs[i])
        right = hs[i + 1] + hps[i + 1] * (xa - xs[i + 1])
    left = np.where(np.isfinite(left), left, np.nan)
    right = np.where(np.isfinite(right), right, np.nan)
    value = np.fmin(left, right)
    value = np.where(np.isnan(value), np.maximum(hs[i], hs[i + 1]), value)
    return _out(value, x)


def log_lower_bound(support: SupportSet, x):
    """Secant through the bracketing support points; ``-inf`` outside the hull."""
    xs, hs = support.xs, support.hs
    xa = np.asarray(x, dtype=float)
    i = np.asarray(support.locate_interval(xa))
    x0, x1 = xs[i], xs[i + 1]
    with np.errstate(invalid="ignore", over="ignore"):
        secant = hs[i] + (hs[i + 1] - hs[i]) * (xa - x0) / (x1 - x0)
    inside = (xa >= xs[0]) & (xa <= xs[-1])
    value = np.where(inside, secant, -np.inf)
    return _out(value, x)


def lower_bound(support: SupportSet, x):
    """Squeeze in density space: ``exp(secant(x))`` inside the hull, else ``0``."""
    with np.errstate(over="ignore"):
        value = np.exp(np.asarray(log_lower_bound(support, x), dtype=float))
    return _out(value, x)


def segment_slopes(support: SupportSet) -> np.ndarray:
    """Tangent slope used for each segment (left point), ``NaN`` coerced to 0."""
    return np.nan_to_num(support.h_primes[:-1], nan=0.0, posinf=0.0, neginf=0.0)


def segment_log_areas(support: SupportSet) -> np.ndarray:
    """Exact log-integral of ``exp(h_i + b (x - x_i))`` over each segment.

    Closed form ``(exp(h_2) - exp(h_1)) / b``, or ``dx * exp(h_1)`` when the
    slope is numerically zero, evaluated in log space to avoid overflow.
    """
    xs, hs = support.xs, support.hs
    b = segment_slopes(support)
    dx = np.diff(xs)
    h1 = hs[:-1]
    bdx = b * dx
    flat = np.abs(b) < _SLOPE_TOL
    safe_b = np.where(flat, 1.0, np.abs(b))
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        rising = h1 + bdx + np.log(-np.expm1(-np.abs(bdx))) - np.log(safe_b)
        falling = h1 + np.log(-np.expm1(-np.abs(bdx))) - np.log(safe_b)
        log_area = np.where(flat, h1 + np.log(dx), np.where(b > 0, rising, falling))
    return log_area


def segment_areas(support: SupportSet) -> np.ndarray:
    """Segment areas rescaled so the largest is 1, floored at a small epsilon.

    The common scale factor cancels on normalisation. Floors keep every
    segment selectable even when its area underflows.
    """
    log_area = segment_log_areas(support)
    finite = np.isfinite(log_area)
    areas = np.zeros_like(log_area)
    if np.any(finite):
        areas[finite] = np.exp(log_area[finite] - np.max(log_area[finite]))
    return np.maximum(areas, _AREA_EPS)


def segment_probabilities(support: SupportSet) -> np.ndarray:
    areas = segment_areas(support)
    return areas / areas.sum()


def envelope_gap(support: SupportSet, grid) -> float:
    """Largest vertical distance ``exp(upper) - lower`` over ``grid`` (density space)."""
    g = np.asarray(grid, dtype=float)
    with np.errstate(over="ignore"):
        upper = np.exp(np.asarray(upper_bound(support, g), dtype=float))
    lower = np.asarray(lower_bound(support, g), dtype=float)
    return float(np.max(upper - lower))
