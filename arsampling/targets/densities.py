"""Target densities exposed through a common log-density interface.

Each target is a small frozen dataclass so it can be handed to worker
processes unchanged. Only ``log_density`` and ``d_log_density`` are required by
the samplers; ``cdf``/``ppf`` are used by diagnostics and quantile grids when a
target provides them.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np
from scipy import stats
from scipy.optimize import brentq
from scipy.special import logsumexp

from arsampling.errors import TargetConfigError

_LOG_SQRT_2PI = 0.5 * math.log(2.0 * math.pi)


@runtime_checkable
class TargetDensity(Protocol):
    """Univariate target known through its (unnormalised) log-density."""

    def log_density(self, x):  # pragma: no cover - protocol
        ...

    def d_log_density(self, x):  # pragma: no cover - protocol
        ...


def _scalar_or_array(value, x):
    if np.ndim(x) == 0:
        return float(value)
    return np.asarray(value, dtype=float)


def numerical_derivative(fn: Callable, x, step: float = 1e-5):
    """Central finite-difference derivative of ``fn`` at ``x``."""
    if step <= 0:
        raise ValueError("Finite-difference step must be positive.")
    xa = np.asarray(x, dtype=float)
    with np.errstate(invalid="ignore"):
        diff = (np.asarray(fn(xa + step), dtype=float) - np.asarray(fn(xa - step), dtype=float)) / (2.0 * step)
    return _scalar_or_array(diff, x)


@dataclass(frozen=True)
class NormalTarget:
    mu: float = 0.0
    sigma: float = 1.0

    def __post_init__(self) -> None:
        if not self.sigma > 0:
            raise TargetConfigError("Normal target requires sigma > 0.")

    def log_density(self, x):
        z = (np.asarray(x, dtype=float) - self.mu) / self.sigma
        return _scalar_or_array(-0.5 * z * z - math.log(self.sigma) - _LOG_SQRT_2PI, x)

    def d_log_density(self, x):
        return _scalar_or_array(-(np.asarray(x, dtype=float) - self.mu) / (self.sigma ** 2), x)

    def cdf(self, x):
        return stats.norm.cdf(x, loc=self.mu, scale=self.sigma)

    def ppf(self, q):
        return stats.norm.ppf(q, loc=self.mu, scale=self.sigma)


@dataclass(frozen=True)
class NormalMixtureTarget:
    """Finite Gaussian mixture; log-concave only when components overlap enough.

    The derivative is taken numerically, exercising the finite-difference path.
    """

    weights: Tuple[float, ...] = (0.5, 0.5)
    means: Tuple[float, ...] = (-1.0, 1.0)
    sds: Tuple[float, ...] = (1.0, 1.0)
    step: float = 1e-5
    _log_w: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        w = np.asarray(self.weights, dtype=float)
        mu = np.asarray(self.means, dtype=float)
        sd = np.asarray(self.sds, dtype=float)
        if not (w.shape == mu.shape == sd.shape) or w.ndim != 1 or w.size == 0:
            raise TargetConfigError("Mixture weights, means and sds must be equal-length sequences.")
        if np.any(w <= 0) or np.any(sd <= 0):
            raise TargetConfigError("Mixture weights and sds must be positive.")
        object.__setattr__(self, "weights", tuple(float(v) for v in w / w.sum()))
        object.__setattr__(self, "means", tuple(float(v) for v in mu))
        object.__setattr__(self, "sds", tuple(float(v) for v in sd))
        object.__setattr__(self, "_log_w", np.log(np.asarray(self.weights)))

    def log_density(self, x):
        xa = np.asarray(x, dtype=float)[..., None]
        comp = stats.norm.logpdf(xa, loc=np.asarray(self.means), scale=np.asarray(self.sds))
        return _scalar_or_array(logsumexp(self._log_w + comp, axis=-1), x)

    def d_log_density(self, x):
        return numerical_derivative(self.log_density, x, self.step)

    def cdf(self, x):
        xa = np.asarray(x, dtype=float)[..., None]
        parts = stats.norm.cdf(xa, loc=np.asarray(self.means), scale=np.asarray(self.sds))
        return _scalar_or_array(parts @ np.asarray(self.weights), x)

    def ppf(self, q):
        """Quantiles by root-finding on the mixture CDF."""
        lo = min(m - 12.0 * s for m, s in zip(self.means, self.sds))
        hi = max(m + 12.0 * s for m, s in zip(self.means, self.sds))
        qa = np.atleast_1d(np.asarray(q, dtype=float))
        out = np.empty_like(qa)
        for i, qi in enumerate(qa):
            if not 0.0 < qi < 1.0:
                raise TargetConfigError("Quantile levels must lie strictly inside (0, 1).")
            out[i] = brentq(lambda t: self.cdf(t) - qi, lo, hi)
        return float(out[0]) if np.ndim(q) == 0 else out


@dataclass(frozen=True)
class BetaTarget:
    """Beta(a, b) on (0, 1); log-concave only when ``a >= 1`` and ``b >= 1``."""

    a: float = 2.0
    b: float = 2.0

    def __post_init__(self) -> None:
        if not (self.a > 0 and self.b > 0):
            raise TargetConfigError("Beta target requires a > 0 and b > 0.")

    @property
    def is_log_concave(self) -> bool:
        return self.a >= 1.0 and self.b >= 1.0

    def log_density(self, x):
        return _scalar_or_array(stats.beta.logpdf(x, self.a, self.b), x)

    def d_log_density(self, x):
        xa = np.asarray(x, dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            grad = np.where((xa > 0) & (xa < 1), (self.a - 1.0) / xa - (self.b - 1.0) / (1.0 - xa), np.nan)
        return _scalar_or_array(grad, x)

    def cdf(self, x):
        return stats.beta.cdf(x, self.a, self.b)

    def ppf(self, q):
        return stats.beta.ppf(q, self.a, self.b)


@dataclass(frozen=True)
class GammaTarget:
    """Gamma(shape, rate); log-concave for ``shape >= 1``."""

    shape: float = 2.0
    rate: float = 1.0

    def __post_init__(self) -> None:
        if not (self.shape > 0 and self.rate > 0):
            raise TargetConfigError("Gamma target requires shape > 0 and rate > 0.")

    def log_density(self, x):
        return _scalar_or_array(stats.gamma.logpdf(x, self.shape, scale=1.0 / self.rate), x)

    def d_log_density(self, x):
        xa = np.asarray(x, dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            grad = np.where(xa > 0, (self.shape - 1.0) / xa - self.rate, np.nan)
        return _scalar_or_array(grad, x)

    def cdf(self, x):
        return stats.gamma.cdf(x, self.shape, scale=1.0 / self.rate)

    def ppf(self, q):
        return stats.gamma.ppf(q, self.shape, scale=1.0 / self.rate)


@dataclass(frozen=True)
class CallableTarget:
    """Adapter for user-supplied callables.

    When ``grad`` is omitted the derivative is a central finite difference with
    step ``step``. Lambdas are not picklable; use the thread backend for
    parallel runs with such targets.
    """

    log_fn: Callable[[float], float]
    grad: Optional[Callable[[float], float]] = None
    step: float = 1e-5
    cdf_fn: Optional[Callable] = None

    def log_density(self, x):
        if np.ndim(x) == 0:
            return float(self.log_fn(float(x)))
        return np.array([self.log_fn(float(v)) for v in np.ravel(x)], dtype=float).reshape(np.shape(x))

    def d_log_density(self, x):
        if self.grad is not None:
            if np.ndim(x) == 0:
                return float(self.grad(float(x)))
            return np.array([self.grad(float(v)) for v in np.ravel(x)], dtype=float).reshape(np.shape(x))
        return numerical_derivative(self.log_density, x, self.step)

    def cdf(self, x):
        if self.cdf_fn is None:
            raise AttributeError("CallableTarget has no CDF; pass cdf_fn to enable KS diagnostics.")
        return self.cdf_fn(x)


def has_cdf(target: TargetDensity) -> bool:
    if isinstance(target, CallableTarget):
        return target.cdf_fn is not None
    return callable(getattr(target, "cdf", None))


def as_tuple(values: Sequence[float] | float) -> Tuple[float, ...]:
    if np.ndim(values) == 0:
        return (float(values),)
    return tuple(float(v) for v in values)
