"""Ordered support set of evaluated abscissae for adaptive rejection sampling."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

from arsampling.errors import InsufficientSupportError
from arsampling.targets.densities import TargetDensity


@dataclass(frozen=True)
class SupportPoint:
    x: float
    h: float        # log_density(x)
    h_prime: float  # d_log_density(x)


class SupportSet:
    """Sorted, grow-only collection of ``(x, h, h')`` triples.

    Owned by a single sampler; not safe for concurrent inserts.
    """

    def __init__(self, target: TargetDensity, xs: Iterable[float]) -> None:
        self.target = target
        raw = np.asarray(list(xs), dtype=float).ravel()
        if raw.size and not np.all(np.isfinite(raw)):
            raise InsufficientSupportError("Initial support points must be finite.")
        x = np.unique(raw)
        if x.size < 2:
            raise InsufficientSupportError(
                f"Initial support needs at least 2 distinct points, got {x.size}."
            )
        h = np.array([target.log_density(float(v)) for v in x], dtype=float)
        hp = np.array([target.d_log_density(float(v)) for v in x], dtype=float)
        bad = ~(np.isfinite(h) & np.isfinite(hp))
        if np.any(bad):
            raise InsufficientSupportError(
                f"Target log-density or derivative is not finite at initial points {x[bad].tolist()}."
            )
        self._x = x
        self._h = h
        self._hp = hp

    # ------------------------------
    # Accessors
    # ------------------------------
    @property
    def xs(self) -> np.ndarray:
        return self._x

    @property
    def hs(self) -> np.ndarray:
        return self._h

    @property
    def h_primes(self) -> np.ndarray:
        return self._hp

    @property
    def bounds(self) -> Tuple[float, float]:
        return float(self._x[0]), float(self._x[-1])

    def __len__(self) -> int:
        return int(self._x.size)

    def __getitem__(self, i: int) -> SupportPoint:
        return SupportPoint(float(self._x[i]), float(self._h[i]), float(self._hp[i]))

    def points(self) -> List[SupportPoint]:
        return [self[i] for i in range(len(self))]

    # ------------------------------
    # Mutation / lookup
    # ------------------------------
    def insert(self, x: float, h: Optional[float] = None) -> Optional[SupportPoint]:
        """Evaluate the target at ``x`` and insert it in order.

        ``h`` may be passed when the log-density is already known. Returns the
        new point, or ``None`` when ``x`` is already in the set or the
        log-density there is not finite. A non-finite derivative is kept; the
        envelope ignores that tangent.
        """
        x = float(x)
        if not np.isfinite(x):
            return None
        idx = int(np.searchsorted(self._x, x, side="left"))
        if idx < self._x.size and self._x[idx] == x:
            return None
        h_val = float(self.target.log_density(x)) if h is None else float(h)
        if not np.isfinite(h_val):
            return None
        hp_val = float(self.target.d_log_density(x))
        self._x = np.insert(self._x, idx, x)
        self._h = np.insert(self._h, idx, h_val)
        self._hp = np.insert(self._hp, idx, hp_val)
        return SupportPoint(x, h_val, hp_val)

    def locate_interval(self, x):
        """Index ``i`` with ``x_i <= x < x_{i+1}``, clamped to ``[0, len - 2]``."""
        idx = np.searchsorted(self._x, x, side="right") - 1
        idx = np.clip(idx, 0, self._x.size - 2)
        if np.ndim(idx) == 0:
            return int(idx)
        return idx
