"""Plain acceptance-rejection sampling with a fixed Gaussian proposal.

Serves as the non-adaptive baseline for ARS. Proposals are drawn in batches
sized from the running acceptance estimate, so the number of Python-level
loop iterations stays small even for poor envelopes.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import numpy as np
from numpy.random import Generator
from scipy import stats

from arsampling.errors import IterationLimitError, validate_sample_count
from arsampling.targets.densities import TargetDensity
from arsampling.utils.seed import make_rng

logger = logging.getLogger(__name__)


@dataclass
class RejectionResult:
    samples: np.ndarray
    acceptance_rate: float
    total_iterations: int
    total_accepted: int
    elapsed: float
    log_bound: float
    bound_violations: int = 0

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload.pop("samples")
        payload["n_samples"] = int(self.samples.size)
        return payload


def estimate_log_bound(
    target: TargetDensity,
    loc: float,
    scale: float,
    *,
    width: float = 8.0,
    n_grid: int = 4001,
    margin: float = 0.1,
) -> float:
    """Grid estimate of ``log M`` with ``f(x) <= M q(x)`` over ``loc ± width * scale``."""
    grid = np.linspace(loc - width * scale, loc + width * scale, n_grid)
    with np.errstate(invalid="ignore", divide="ignore"):
        ratio = np.asarray(target.log_density(grid), dtype=float) - stats.norm.logpdf(grid, loc, scale)
    ratio = ratio[np.isfinite(ratio)]
    if ratio.size == 0:
        raise ValueError("Target log-density is not finite anywhere on the proposal grid.")
    return float(ratio.max() + margin)


def rejection_sample(
    target: TargetDensity,
    n: int,
    *,
    loc: float = 0.0,
    scale: float = 1.0,
    log_bound: Optional[float] = None,
    rng: Optional[Generator] = None,
    seed: Optional[int] = None,
    max_iterations: Optional[int] = None,
) -> RejectionResult:
    """Draw ``n`` samples from ``target`` using a ``Normal(loc, scale)`` proposal."""
    n = validate_sample_count(n)
    if not scale > 0:
        raise ValueError("Proposal scale must be positive.")
    rng = make_rng(seed, rng)
    if log_bound is None:
        log_bound = estimate_log_bound(target, loc, scale)
        logger.debug("Estimated rejection bound log M = %.4f", log_bound)

    start = time.perf_counter()
    out = np.empty(n, dtype=float)
    filled = 0
    iterations = 0
    violations = 0
    accepted = 0
    rate = 1.0
    while filled < n:
        needed = n - filled
        draw = int(math.ceil(needed / max(rate, 1e-3)))
        if max_iterations is not None:
            draw = min(draw, int(max_iterations) - iterations)
            if draw <= 0:
                raise IterationLimitError(
                    f"Rejection sampling stopped after {iterations} proposals with {filled}/{n} samples."
                )
        x = rng.normal(loc, scale, size=draw)
        log_u = np.log(rng.random(draw))
        with np.errstate(invalid="ignore", divide="ignore"):
            log_ratio = np.asarray(target.log_density(x), dtype=float) - stats.norm.logpdf(x, loc, scale) - log_bound
        violations += int(np.sum(log_ratio > 0))
        keep = x[log_u <= log_ratio]
        accepted += int(keep.size)
        take = min(keep.size, needed)
        out[filled:filled + take] = keep[:take]
        filled += take
        iterations += draw
        rate = max(accepted, 1) / iterations

    elapsed = time.perf_counter() - start
    if violations:
        logger.warning("Proposal bound was exceeded %d times; samples are biased. Increase log_bound.", violations)
    return RejectionResult(
        samples=out,
        acceptance_rate=accepted / iterations,
        total_iterations=iterations,
        total_accepted=accepted,
        elapsed=elapsed,
        log_bound=float(log_bound),
        bound_violations=violations,
    )
