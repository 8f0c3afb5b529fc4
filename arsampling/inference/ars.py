"""Adaptive rejection sampling (ARS) for univariate log-concave targets.

The sampler keeps a growing :class:`~arsampling.inference.support.SupportSet`.
Each proposal is drawn from the piecewise distribution implied by the tangent
envelope, tested first against the secant squeeze and, only if that fails,
against the true log-density. Every evaluated proposal is inserted into the
support set, so the bounds tighten and the acceptance rate climbs over a run.

Within-segment proposals are uniform on ``[x_i, x_{i+1}]`` by default. The
``"tangent"`` mode instead inverts the truncated exponential of the left
tangent and tests against that same tangent, which makes the draws exact on
the support hull at the cost of a few more transcendental calls per step.

Proposals never leave the hull of the initial support, so the initial range
must cover the region where the target has non-negligible mass.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, Optional

import numpy as np
from numpy.random import Generator

from arsampling.errors import InsufficientSupportError, IterationLimitError, validate_sample_count
from arsampling.inference.envelope import (
    log_lower_bound,
    segment_areas,
    segment_slopes,
    upper_bound,
)
from arsampling.inference.support import SupportSet
from arsampling.targets.densities import TargetDensity
from arsampling.utils.logging_utils import progress
from arsampling.utils.seed import make_rng

logger = logging.getLogger(__name__)

_WITHIN_SEGMENT_MODES = ("uniform", "tangent")
_FLAT_SEGMENT_TOL = 1e-12


# ------------------------------
# Reporting containers
# ------------------------------
@dataclass
class SamplerState:
    """Per-run counters; read-only from the caller's point of view."""

    iterations: int = 0
    accepted: int = 0
    squeeze_accepts: int = 0
    discarded: int = 0            # proposals with non-finite bounds
    envelope_violations: int = 0  # evaluated log-density above the envelope
    elapsed: float = 0.0

    @property
    def acceptance_rate(self) -> float:
        return self.accepted / self.iterations if self.iterations else 0.0


@dataclass
class ARSResult:
    samples: np.ndarray
    acceptance_rate: float
    total_iterations: int
    total_accepted: int
    elapsed: float
    squeeze_accepts: int = 0
    discarded: int = 0
    envelope_violations: int = 0
    support_size: int = 0
    slot_iterations: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready summary without the sample arrays."""
        payload = asdict(self)
        payload.pop("samples")
        payload.pop("slot_iterations")
        payload["n_samples"] = int(self.samples.size)
        return payload


@dataclass(frozen=True)
class Proposal:
    x: float
    segment: int
    log_envelope: float


# ------------------------------
# Envelope sampler
# ------------------------------
def _truncated_exponential(a: float, c: float, slope: float, u: float) -> float:
    """Inverse CDF of a density proportional to ``exp(slope * (x - a))`` on ``[a, c]``."""
    width = c - a
    bdx = slope * width
    if abs(bdx) < _FLAT_SEGMENT_TOL:
        return a + u * width
    if slope > 0:
        x = c + math.log(u + (1.0 - u) * math.exp(-bdx)) / slope
    else:
        x = a + math.log1p(u * math.expm1(bdx)) / slope
    return min(max(x, a), c)


class EnvelopeSampler:
    """Draw proposals from the envelope implied by a support set.

    Segments are picked with probability proportional to their envelope area
    (inverse CDF over the cumulative areas); the abscissa is then placed inside
    the chosen ``[x_i, x_{i+1}]``.
    """

    def __init__(self, rng: Generator, within_segment: str = "uniform") -> None:
        mode = str(within_segment).lower()
        if mode not in _WITHIN_SEGMENT_MODES:
            raise ValueError(f"within_segment must be one of {_WITHIN_SEGMENT_MODES}, got '{within_segment}'.")
        self.rng = rng
        self.within_segment = mode

    def choose_segment(self, support: SupportSet) -> int:
        cumulative = np.cumsum(segment_areas(support))
        u = self.rng.random() * cumulative[-1]
        i = int(np.searchsorted(cumulative, u, side="right"))
        return min(i, cumulative.size - 1)

    def propose(self, support: SupportSet) -> Proposal:
        i = self.choose_segment(support)
        xs, hs = support.xs, support.hs
        x0, x1 = float(xs[i]), float(xs[i + 1])
        if self.within_segment == "uniform":
            x = float(self.rng.uniform(x0, x1))
            return Proposal(x, i, float(upper_bound(support, x)))
        slope = float(segment_slopes(support)[i])
        x = _truncated_exponential(x0, x1, slope, float(self.rng.random()))
        # Envelope is the same NaN-coerced tangent the draw used.
        return Proposal(x, i, float(hs[i] + slope * (x - x0)))


# ------------------------------
# Accept/reject driver
# ------------------------------
class AdaptiveRejectionSampler:
    """Two-stage (squeeze, exact) rejection sampler with an adaptive envelope.

    Parameters
    ----------
    target
        Object exposing ``log_density`` and ``d_log_density``; log-concavity is
        the caller's precondition. A non-log-concave target still runs but
        shows up as ``envelope_violations`` and a biased sample.
    initial_support
        At least two abscissae spanning the target's effective support.
    rng, seed
        Explicit random source; ``rng`` wins over ``seed``.
    within_segment
        ``"uniform"`` (default) or ``"tangent"``; see module docstring.
    max_iterations
        Optional cap on proposals per :meth:`sample` call. ``None`` means no
        cap, in which case a pathological target can spin indefinitely.
    min_tail_drop
        A boundary where the log-density still rises inward must sit at least
        this far below the largest initial log-density, otherwise the range is
        judged too narrow. Boundaries the density falls away from (a mode at
        the domain edge) are exempt. ``None`` disables the check.
    violation_tol
        Slack before an evaluated log-density counts as above the envelope.
    stall_warning_every
        Warn each time one output slot has used this many proposals without
        an acceptance. ``None`` or ``0`` silences it.
    """

    def __init__(
        self,
        target: TargetDensity,
        initial_support: Iterable[float],
        *,
        rng: Optional[Generator] = None,
        seed: Optional[int] = None,
        within_segment: str = "uniform",
        max_iterations: Optional[int] = None,
        min_tail_drop: Optional[float] = 3.0,
        violation_tol: float = 1e-8,
        stall_warning_every: Optional[int] = 10_000,
    ) -> None:
        if max_iterations is not None and int(max_iterations) <= 0:
            raise ValueError("max_iterations must be positive when given.")
        self.target = target
        self.support = SupportSet(target, initial_support)
        self.min_tail_drop = min_tail_drop
        self._check_tails()
        self.rng = make_rng(seed, rng)
        self.proposer = EnvelopeSampler(self.rng, within_segment)
        self.max_iterations = None if max_iterations is None else int(max_iterations)
        self.violation_tol = float(violation_tol)
        self.stall_warning_every = None if not stall_warning_every else max(1, int(stall_warning_every))
        self.state = SamplerState()

    def _check_tails(self) -> None:
        """Reject an initial range that cuts off a tail the density still has.

        A boundary only needs to sit ``min_tail_drop`` below the peak when the
        log-density is still rising inward there (``h' > 0`` on the left,
        ``h' < 0`` on the right). A boundary the density falls away from, e.g.
        the left end of an exponential, is a mode at the domain edge and is
        not checked.
        """
        if self.min_tail_drop is None:
            return
        hs, hps = self.support.hs, self.support.h_primes
        peak = float(np.max(hs))
        drop_left = peak - float(hs[0])
        drop_right = peak - float(hs[-1])
        need = float(self.min_tail_drop)
        left_open = not float(hps[0]) < 0.0
        right_open = not float(hps[-1]) > 0.0
        if (left_open and drop_left < need) or (right_open and drop_right < need):
            lo, hi = self.support.bounds
            raise InsufficientSupportError(
                f"Initial support [{lo:g}, {hi:g}] looks too narrow: boundary log-density drops "
                f"{drop_left:.3g} (left) and {drop_right:.3g} (right) below the peak, "
                f"need at least {need:.3g}. Widen the range or set min_tail_drop=None."
            )

    # ------------------------------
    # One PROPOSE -> SQUEEZE_TEST -> EXACT_TEST pass
    # ------------------------------
    def _step(self, state: SamplerState) -> Optional[float]:
        proposal = self.proposer.propose(self.support)
        w = self.rng.random()
        x = proposal.x
        u_x = proposal.log_envelope
        log_l = float(log_lower_bound(self.support, x))
        if not math.isfinite(u_x) or math.isnan(log_l) or log_l == math.inf:
            state.discarded += 1
            # No test is possible, but the point still refines the support.
            self.support.insert(x)
            return None

        log_w = math.log(w) if w > 0.0 else -math.inf
        h_x: Optional[float] = None
        if log_w <= log_l - u_x:
            state.squeeze_accepts += 1
            accepted = True
        else:
            h_x = float(self.target.log_density(x))
            accepted = math.isfinite(h_x) and log_w <= h_x - u_x

        point = self.support.insert(x, h_x)
        if point is not None and point.h > u_x + self.violation_tol * (1.0 + abs(u_x)):
            state.envelope_violations += 1

        if accepted:
            state.accepted += 1
            return x
        return None

    def sample(self, n: int, progress_bar: bool = False, log_every: Optional[int] = None) -> ARSResult:
        """Draw exactly ``n`` samples; the support set keeps growing across calls."""
        n = validate_sample_count(n)
        state = SamplerState()
        self.state = state
        samples = np.empty(n, dtype=float)
        slot_iterations = np.zeros(n, dtype=np.int64)
        every = max(1, n // 10) if log_every is None else max(1, int(log_every))
        start = time.perf_counter()

        for k in progress(range(n), total=n, desc="ARS", enabled=progress_bar):
            while True:
                if self.max_iterations is not None and state.iterations >= self.max_iterations:
                    state.elapsed = time.perf_counter() - start
                    raise IterationLimitError(
                        f"ARS stopped after {state.iterations} iterations with {state.accepted}/{n} samples "
                        f"(acceptance {state.acceptance_rate:.3f}); target may not be log-concave "
                        f"or the support range is too narrow.",
                        state=state,
                    )
                state.iterations += 1
                slot_iterations[k] += 1
                value = self._step(state)
                if value is not None:
                    samples[k] = value
                    break
                if self.stall_warning_every and slot_iterations[k] % self.stall_warning_every == 0:
                    logger.warning(
                        "ARS slot %d/%d still unfilled after %d proposals | acceptance %.3f | support %d | discarded %d",
                        k + 1, n, int(slot_iterations[k]), state.acceptance_rate, len(self.support), state.discarded,
                    )
            if (k + 1) % every == 0:
                logger.debug(
                    "ARS %d/%d samples | acceptance %.3f | support %d | discarded %d",
                    k + 1, n, state.acceptance_rate, len(self.support), state.discarded,
                )

        state.elapsed = time.perf_counter() - start
        if state.envelope_violations:
            logger.warning(
                "Log-density exceeded the envelope at %d points; the target is probably not log-concave.",
                state.envelope_violations,
            )
        if state.discarded:
            logger.warning("%d proposals had no usable envelope and were discarded.", state.discarded)
        return ARSResult(
            samples=samples,
            acceptance_rate=state.acceptance_rate,
            total_iterations=state.iterations,
            total_accepted=state.accepted,
            elapsed=state.elapsed,
            squeeze_accepts=state.squeeze_accepts,
            discarded=state.discarded,
            envelope_violations=state.envelope_violations,
            support_size=len(self.support),
            slot_iterations=slot_iterations,
        )


def adaptive_rejection_sample(
    target: TargetDensity,
    n: int,
    initial_support: Iterable[float],
    *,
    rng: Optional[Generator] = None,
    seed: Optional[int] = None,
    progress_bar: bool = False,
    **kwargs: Any,
) -> ARSResult:
    """Convenience wrapper: build a fresh sampler and draw ``n`` samples."""
    sampler = AdaptiveRejectionSampler(target, initial_support, rng=rng, seed=seed, **kwargs)
    return sampler.sample(n, progress_bar=progress_bar)
