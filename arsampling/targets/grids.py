"""Initial support grids.

The grid must span the region where the target carries non-negligible mass;
proposals never leave ``[grid[0], grid[-1]]``, so a grid that is too narrow
truncates the tails. Width is a tuning parameter of the caller.
"""
from __future__ import annotations

from typing import Any, Dict, Sequence

import numpy as np

from arsampling.errors import InsufficientSupportError, TargetConfigError
from arsampling.targets.densities import TargetDensity


def linear_grid(n: int, lower: float, upper: float) -> np.ndarray:
    """``n`` evenly spaced abscissae on ``[lower, upper]``."""
    if int(n) < 2:
        raise InsufficientSupportError("A support grid needs at least 2 points.")
    if not (np.isfinite(lower) and np.isfinite(upper)) or not lower < upper:
        raise InsufficientSupportError(f"Invalid grid range [{lower}, {upper}].")
    return np.linspace(float(lower), float(upper), int(n))


def quantile_grid(target: TargetDensity, n: int, tail: float = 1e-3) -> np.ndarray:
    """Grid placed at evenly spaced quantiles so each gap holds similar mass."""
    if int(n) < 2:
        raise InsufficientSupportError("A support grid needs at least 2 points.")
    if not 0.0 < tail < 0.5:
        raise TargetConfigError("Quantile grid tail must lie in (0, 0.5).")
    ppf = getattr(target, "ppf", None)
    if not callable(ppf):
        raise TargetConfigError(f"{type(target).__name__} has no quantile function; use a linear grid.")
    levels = np.linspace(tail, 1.0 - tail, int(n))
    return np.unique(np.asarray(ppf(levels), dtype=float))


def support_from_config(target: TargetDensity, cfg: Dict[str, Any]) -> np.ndarray:
    """Resolve the ``support`` config section into initial abscissae.

    Either explicit ``points`` or ``grid: linear|quantile`` with ``n`` and the
    range (``lower``/``upper``) or ``tail`` level.
    """
    points: Sequence[float] | None = cfg.get("points")
    if points is not None:
        return np.asarray(points, dtype=float)
    grid = str(cfg.get("grid", "linear")).lower()
    n = int(cfg.get("n", 10))
    if grid == "linear":
        if "lower" not in cfg or "upper" not in cfg:
            raise InsufficientSupportError("Linear support grid requires 'lower' and 'upper'.")
        return linear_grid(n, float(cfg["lower"]), float(cfg["upper"]))
    if grid == "quantile":
        return quantile_grid(target, n, float(cfg.get("tail", 1e-3)))
    raise InsufficientSupportError(f"Unknown support grid '{grid}'. Use linear|quantile or explicit points.")
