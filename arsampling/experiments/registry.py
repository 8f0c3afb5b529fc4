"""Sampler registry and builders for experiments.

Each builder turns the config dict into a runner with the signature
``run(target, support, n, seed) -> SamplerOutcome`` so the experiment runner
can treat ARS, plain rejection sampling and slice sampling uniformly.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import numpy as np

from arsampling.inference.ars import AdaptiveRejectionSampler
from arsampling.inference.rejection import rejection_sample
from arsampling.inference.samplers import run_slice_chain
from arsampling.inference.support import SupportSet
from arsampling.experiments.parallel import run_parallel
from arsampling.targets.densities import TargetDensity


@dataclass
class SamplerOutcome:
    samples: np.ndarray
    report: Dict[str, Any]
    extras: Dict[str, np.ndarray] = field(default_factory=dict)
    support: Optional[SupportSet] = None


SamplerRunner = Callable[[TargetDensity, np.ndarray, int, Optional[int]], SamplerOutcome]

# ------------------------------
# Registry and decorator
# ------------------------------
REGISTRY: Dict[str, Callable[[Dict[str, Any]], SamplerRunner]] = {}


def register(name: str) -> Callable[[Callable[[Dict[str, Any]], SamplerRunner]], Callable[[Dict[str, Any]], SamplerRunner]]:
    """Register a builder via @register('sampler_name')."""

    def deco(fn: Callable[[Dict[str, Any]], SamplerRunner]) -> Callable[[Dict[str, Any]], SamplerRunner]:
        key = name.strip().lower()
        if key in REGISTRY:
            raise ValueError(f"Sampler '{key}' already registered.")
        REGISTRY[key] = fn
        return fn

    return deco


def _get(cfg: Dict[str, Any], path: str, default: Any = None) -> Any:
    """Safe getter: _get(cfg, 'sampler.width', 1.0)."""
    cur: Any = cfg
    for seg in path.split("."):
        if not isinstance(cur, dict) or seg not in cur:
            return default
        cur = cur[seg]
    return cur


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


# ------------------------------
# Builders
# ------------------------------


@register("ars")
@register("adaptive_rejection")
def _build_ars(cfg: Dict[str, Any]) -> SamplerRunner:
    sampler_kwargs = {
        "within_segment": str(_get(cfg, "sampler.within_segment", "uniform")),
        "max_iterations": _optional_int(_get(cfg, "sampler.max_iterations", None)),
        "min_tail_drop": _optional_float(_get(cfg, "sampler.min_tail_drop", 3.0)),
        "stall_warning_every": _optional_int(_get(cfg, "sampler.stall_warning_every", 10_000)),
    }
    workers = max(1, int(_get(cfg, "parallel.workers", 1)))
    backend = str(_get(cfg, "parallel.backend", "process"))
    progress_bar = bool(_get(cfg, "runtime.progress_bar", False))

    def run(target: TargetDensity, support: np.ndarray, n: int, seed: Optional[int]) -> SamplerOutcome:
        if workers > 1:
            result = run_parallel(target, support, n, workers, seed=seed, backend=backend, **sampler_kwargs)
            slots = np.concatenate([r.slot_iterations for r in result.worker_results])
            return SamplerOutcome(result.samples, result.to_dict(), {"slot_iterations": slots})
        sampler = AdaptiveRejectionSampler(target, support, seed=seed, **sampler_kwargs)
        result = sampler.sample(n, progress_bar=progress_bar)
        return SamplerOutcome(
            result.samples,
            result.to_dict(),
            {"slot_iterations": result.slot_iterations, "support_x": sampler.support.xs.copy()},
            support=sampler.support,
        )

    return run


@register("rejection")
@register("gaussian_rejection")
def _build_rejection(cfg: Dict[str, Any]) -> SamplerRunner:
    loc = float(_get(cfg, "sampler.loc", 0.0))
    scale = float(_get(cfg, "sampler.scale", 1.0))
    log_bound = _optional_float(_get(cfg, "sampler.log_bound", None))
    max_iterations = _optional_int(_get(cfg, "sampler.max_iterations", None))

    def run(target: TargetDensity, support: np.ndarray, n: int, seed: Optional[int]) -> SamplerOutcome:
        result = rejection_sample(
            target, n, loc=loc, scale=scale, log_bound=log_bound, seed=seed, max_iterations=max_iterations,
        )
        return SamplerOutcome(result.samples, result.to_dict())

    return run


@register("slice")
def _build_slice(cfg: Dict[str, Any]) -> SamplerRunner:
    width = float(_get(cfg, "sampler.width", 1.0))
    burn_in = int(_get(cfg, "sampler.burn_in", 100))
    thin = max(1, int(_get(cfg, "sampler.thin", 1)))
    x0_cfg = _get(cfg, "sampler.x0", None)

    def run(target: TargetDensity, support: np.ndarray, n: int, seed: Optional[int]) -> SamplerOutcome:
        # Default start: the best initial support point.
        if x0_cfg is None:
            hs = np.asarray(target.log_density(np.asarray(support, dtype=float)), dtype=float)
            x0 = float(np.asarray(support, dtype=float)[int(np.nanargmax(hs))])
        else:
            x0 = float(x0_cfg)
        result = run_slice_chain(target, x0, n, seed=seed, width=width, burn_in=burn_in, thin=thin)
        return SamplerOutcome(result.samples, result.to_dict())

    return run


# ------------------------------
# Public API
# ------------------------------


def get_available_samplers() -> Dict[str, Callable[[Dict[str, Any]], SamplerRunner]]:
    """Return a copy of registered sampler builder mapping."""
    return dict(REGISTRY)


def get_builder(name: str) -> Callable[[Dict[str, Any]], SamplerRunner]:
    """Get builder by name (case-insensitive, supports aliases)."""
    key = (name or "").strip().lower()
    if key not in REGISTRY:
        raise KeyError(f"Unknown sampler '{name}'. Available: {sorted(REGISTRY.keys())}")
    return REGISTRY[key]


def get_sampler_name_from_config(cfg: Dict[str, Any]) -> str:
    """Support both 'sampler.name' and 'sampler.type' keys; default is ARS."""
    name = _get(cfg, "sampler.name", None)
    if name is None:
        name = _get(cfg, "sampler.type", "ars")
    return str(name)


def build_from_config(cfg: Dict[str, Any]) -> SamplerRunner:
    """Instantiate a sampler runner from a config dict."""
    return get_builder(get_sampler_name_from_config(cfg))(cfg)
