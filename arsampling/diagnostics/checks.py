"""Sample-quality diagnostics: goodness of fit, moments, acceptance trend, ESS."""
from __future__ import annotations

from typing import Callable, Dict, Optional

import numpy as np
from scipy import stats

Array = np.ndarray


def ks_statistic(samples: Array, cdf: Callable) -> Dict[str, float]:
    """One-sample Kolmogorov-Smirnov test against a reference CDF."""
    arr = np.asarray(samples, dtype=float)
    if arr.size == 0:
        raise ValueError("KS test needs at least one sample.")
    result = stats.kstest(arr, cdf)
    return {"ks_statistic": float(result.statistic), "ks_pvalue": float(result.pvalue)}


def moment_summary(samples: Array) -> Dict[str, float]:
    arr = np.asarray(samples, dtype=float)
    if arr.size < 2:
        raise ValueError("Moment summary needs at least two samples.")
    q05, q50, q95 = np.quantile(arr, [0.05, 0.5, 0.95])
    return {
        "mean": float(arr.mean()),
        "variance": float(arr.var(ddof=1)),
        "skewness": float(stats.skew(arr)),
        "q05": float(q05),
        "median": float(q50),
        "q95": float(q95),
        "min": float(arr.min()),
        "max": float(arr.max()),
    }


def batch_acceptance_rates(slot_iterations: Array, batch_size: int) -> Array:
    """Acceptance rate per consecutive batch of output slots.

    Each slot consumed ``slot_iterations[k]`` proposals for one accepted draw,
    so a batch's rate is ``len(batch) / sum(batch)``. A trailing partial batch
    is kept.
    """
    iters = np.asarray(slot_iterations, dtype=float)
    if batch_size <= 0:
        raise ValueError("batch_size must be positive.")
    if iters.size == 0:
        return np.zeros(0, dtype=float)
    edges = np.arange(0, iters.size, int(batch_size))
    totals = np.add.reduceat(iters, edges)
    counts = np.diff(np.append(edges, iters.size))
    return counts / totals


def acceptance_trend(rates: Array) -> float:
    """Least-squares slope of batch acceptance rates against batch index."""
    r = np.asarray(rates, dtype=float)
    if r.size < 2:
        return 0.0
    slope, _ = np.polyfit(np.arange(r.size, dtype=float), r, 1)
    return float(slope)


def boundary_mass(samples: Array, lower: float, upper: float, frac: float = 0.1) -> Dict[str, float]:
    """Share of samples within ``frac`` of either end of ``[lower, upper]`` vs. the central band."""
    arr = np.asarray(samples, dtype=float)
    width = upper - lower
    edge = np.mean((arr <= lower + frac * width) | (arr >= upper - frac * width))
    centre_lo = lower + (0.5 - frac) * width
    centre_hi = lower + (0.5 + frac) * width
    centre = np.mean((arr >= centre_lo) & (arr <= centre_hi))
    return {"edge_fraction": float(edge), "centre_fraction": float(centre)}


def _autocorrelation(chain: Array) -> Array:
    x = np.asarray(chain, dtype=float)
    n = x.size
    centered = x - x.mean()
    var0 = np.dot(centered, centered) / n
    if var0 <= 1e-12:
        ac = np.zeros(n, dtype=float)
        ac[0] = 1.0
        return ac
    size = 1 << (2 * n - 1).bit_length()
    spectrum = np.fft.rfft(centered, size)
    acov = np.fft.irfft(spectrum * np.conjugate(spectrum), size)[:n] / n
    return acov / var0


def effective_sample_size(chain: Array) -> float:
    """Single-chain ESS with Geyer's initial positive sequence truncation."""
    x = np.asarray(chain, dtype=float).ravel()
    n = x.size
    if n < 4:
        raise ValueError("need at least 4 draws for an effective sample size")
    rho = _autocorrelation(x)[1:]
    total = 0.0
    for k in range(0, len(rho), 2):
        pair = rho[k]
        if k + 1 < len(rho):
            pair += rho[k + 1]
        if pair < 0:
            break
        total += pair
    ess = n / max(1.0, 1.0 + 2.0 * total)
    return float(min(ess, n))


def summarize_samples(samples: Array, cdf: Optional[Callable] = None) -> Dict[str, float]:
    """Moments plus, when a CDF is supplied, the KS statistic."""
    summary = moment_summary(samples)
    if cdf is not None:
        summary.update(ks_statistic(samples, cdf))
    return summary
