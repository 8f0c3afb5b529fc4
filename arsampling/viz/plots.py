"""Plots for sampling runs: histogram vs. target, envelope/squeeze, acceptance trend."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
from scipy.integrate import trapezoid

from arsampling.inference.envelope import lower_bound, upper_bound
from arsampling.inference.support import SupportSet
from arsampling.targets.densities import TargetDensity


def _normalised_density(target: TargetDensity, grid: np.ndarray) -> np.ndarray:
    """Target density on ``grid`` rescaled to integrate to one over the grid."""
    with np.errstate(over="ignore", invalid="ignore"):
        log_f = np.asarray(target.log_density(grid), dtype=float)
    log_f = np.where(np.isfinite(log_f), log_f, -np.inf)
    dens = np.exp(log_f - np.max(log_f))
    area = trapezoid(dens, grid)
    return dens / area if area > 0 else dens


def plot_histogram(
    samples: Sequence[float],
    target: Optional[TargetDensity] = None,
    *,
    bins: int = 60,
    ax: Optional[plt.Axes] = None,
    title: Optional[str] = None,
) -> plt.Axes:
    """Density histogram of the samples, overlaid with the (normalised) target."""
    arr = np.asarray(samples, dtype=float)
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 4))
    ax.hist(arr, bins=bins, density=True, alpha=0.5, color="tab:blue", label="samples")
    if target is not None and arr.size:
        grid = np.linspace(arr.min(), arr.max(), 512)
        ax.plot(grid, _normalised_density(target, grid), color="black", lw=1.5, label="target")
    ax.set_xlabel("x")
    ax.set_ylabel("density")
    if title:
        ax.set_title(title)
    ax.legend(frameon=False)
    return ax


def plot_envelope(
    support: SupportSet,
    *,
    grid: Optional[np.ndarray] = None,
    ax: Optional[plt.Axes] = None,
    max_points: int = 200,
    title: Optional[str] = None,
) -> plt.Axes:
    """Unnormalised target, tangent envelope and secant squeeze over the support hull."""
    lo, hi = support.bounds
    if grid is None:
        pad = 0.05 * (hi - lo)
        grid = np.linspace(lo - pad, hi + pad, 800)
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 4))
    with np.errstate(over="ignore", invalid="ignore"):
        target_vals = np.exp(np.asarray(support.target.log_density(grid), dtype=float))
        upper_vals = np.exp(np.asarray(upper_bound(support, grid), dtype=float))
    lower_vals = np.asarray(lower_bound(support, grid), dtype=float)
    ax.plot(grid, target_vals, color="black", lw=1.5, label="exp(h)")
    ax.plot(grid, upper_vals, color="tab:red", lw=1.0, label="envelope")
    ax.plot(grid, lower_vals, color="tab:green", lw=1.0, label="squeeze")
    xs = support.xs
    if xs.size > max_points:
        xs = xs[np.linspace(0, xs.size - 1, max_points).astype(int)]
    with np.errstate(over="ignore"):
        ax.plot(xs, np.exp(np.asarray(support.target.log_density(xs), dtype=float)), "k.", ms=3, label="support")
    finite = upper_vals[np.isfinite(upper_vals)]
    if finite.size:
        ax.set_ylim(0.0, 1.1 * min(finite.max(), 3.0 * np.nanmax(target_vals)))
    ax.set_xlabel("x")
    if title:
        ax.set_title(title)
    ax.legend(frameon=False)
    return ax


def plot_acceptance_trend(rates: Sequence[float], *, ax: Optional[plt.Axes] = None, title: Optional[str] = None) -> plt.Axes:
    r = np.asarray(rates, dtype=float)
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 3))
    ax.plot(np.arange(1, r.size + 1), r, marker="o", ms=3)
    ax.set_xlabel("batch")
    ax.set_ylabel("acceptance rate")
    ax.set_ylim(0.0, 1.05)
    if title:
        ax.set_title(title)
    return ax


def save_figure(ax: plt.Axes, path: Path, dpi: int = 150) -> Path:
    fig = ax.figure
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=dpi)
    plt.close(fig)
    return path
