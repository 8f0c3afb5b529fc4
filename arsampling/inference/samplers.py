"""Slice sampling routines used as an MCMC baseline for ARS."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np
from numpy.random import Generator, default_rng

from arsampling.errors import validate_sample_count
from arsampling.targets.densities import TargetDensity


@dataclass
class SliceSampler1D:
    """Simple 1-D slice sampler with optional stepping-out."""

    log_density: Callable[[float], float]
    width: float = 1.0
    max_steps: int = 1000
    max_step_out: int = 10
    step_out: bool = True
    rng: Generator = field(default_factory=default_rng)

    def step(self, state: float, rng: Generator | None = None) -> float:
        return slice_sample_1d(
            self.log_density,
            state,
            rng or self.rng,
            width=self.width,
            max_steps=self.max_steps,
            max_step_out=self.max_step_out,
            step_out=self.step_out,
        )


def slice_sample_1d(
    log_density: Callable[[float], float],
    x0: float,
    rng: Generator,
    *,
    width: float = 1.0,
    max_steps: int = 1000,
    max_step_out: int = 10,
    step_out: bool = True,
) -> float:
    """Neal-style slice sampler for a scalar log-density."""

    if width <= 0:
        raise ValueError("Slice sampling width must be positive.")

    log_y = log_density(x0) - rng.exponential(1.0)

    u = rng.uniform(0.0, 1.0)
    L = x0 - u * width
    R = L + width

    if step_out:
        j = int(rng.integers(0, max_step_out))
        k = (max_step_out - 1) - j
        while j > 0 and log_density(L) > log_y:
            L -= width
            j -= 1
        while k > 0 and log_density(R) > log_y:
            R += width
            k -= 1

    for _ in range(max_steps):
        x1 = rng.uniform(L, R)
        if log_density(x1) >= log_y:
            return float(x1)
        if x1 < x0:
            L = x1
        else:
            R = x1

    return float(x0)


@dataclass
class SliceResult:
    samples: np.ndarray
    evaluations: int
    elapsed: float
    burn_in: int
    thin: int

    def to_dict(self) -> dict:
        return {
            "n_samples": int(self.samples.size),
            "evaluations": self.evaluations,
            "elapsed": self.elapsed,
            "burn_in": self.burn_in,
            "thin": self.thin,
        }


class _CountingDensity:
    def __init__(self, fn: Callable[[float], float]) -> None:
        self.fn = fn
        self.calls = 0

    def __call__(self, x: float) -> float:
        self.calls += 1
        return float(self.fn(x))


def run_slice_chain(
    target: TargetDensity,
    x0: float,
    n: int,
    rng: Optional[Generator] = None,
    *,
    seed: Optional[int] = None,
    width: float = 1.0,
    burn_in: int = 100,
    thin: int = 1,
    max_steps: int = 1000,
) -> SliceResult:
    """Run a slice-sampling chain and keep ``n`` draws after burn-in and thinning.

    Draws are autocorrelated; use ``effective_sample_size`` before comparing
    them with independent samplers.
    """
    n = validate_sample_count(n)
    thin = max(1, int(thin))
    burn_in = max(0, int(burn_in))
    if rng is None:
        rng = default_rng(seed)
    counted = _CountingDensity(target.log_density)
    sampler = SliceSampler1D(counted, width=width, max_steps=max_steps, rng=rng)
    if not np.isfinite(counted(x0)):
        raise ValueError(f"Slice chain start x0={x0} has non-finite log-density.")

    start = time.perf_counter()
    x = float(x0)
    out = np.empty(n, dtype=float)
    for _ in range(burn_in):
        x = sampler.step(x)
    for i in range(n):
        for _ in range(thin):
            x = sampler.step(x)
        out[i] = x
    return SliceResult(
        samples=out,
        evaluations=counted.calls,
        elapsed=time.perf_counter() - start,
        burn_in=burn_in,
        thin=thin,
    )
