"""Target registry: build target densities from config dicts.

Config shape::

    target:
      name: normal_mixture
      weights: [0.3, 0.7]
      means: [-1.0, 1.5]
      sds: [1.0, 0.8]
"""
from __future__ import annotations

from typing import Any, Callable, Dict

from arsampling.errors import TargetConfigError
from arsampling.targets.densities import (
    BetaTarget,
    GammaTarget,
    NormalMixtureTarget,
    NormalTarget,
    TargetDensity,
    as_tuple,
)

REGISTRY: Dict[str, Callable[[Dict[str, Any]], TargetDensity]] = {}


def register_target(name: str) -> Callable[[Callable[[Dict[str, Any]], TargetDensity]], Callable[[Dict[str, Any]], TargetDensity]]:
    """Register a builder via @register_target('target_name')."""

    def deco(fn: Callable[[Dict[str, Any]], TargetDensity]) -> Callable[[Dict[str, Any]], TargetDensity]:
        key = name.strip().lower()
        if key in REGISTRY:
            raise ValueError(f"Target '{key}' already registered.")
        REGISTRY[key] = fn
        return fn

    return deco


@register_target("normal")
@register_target("gaussian")
def _build_normal(cfg: Dict[str, Any]) -> TargetDensity:
    return NormalTarget(mu=float(cfg.get("mu", 0.0)), sigma=float(cfg.get("sigma", 1.0)))


@register_target("normal_mixture")
@register_target("mixture")
def _build_mixture(cfg: Dict[str, Any]) -> TargetDensity:
    return NormalMixtureTarget(
        weights=as_tuple(cfg.get("weights", (0.5, 0.5))),
        means=as_tuple(cfg.get("means", (-1.0, 1.0))),
        sds=as_tuple(cfg.get("sds", (1.0, 1.0))),
        step=float(cfg.get("step", 1e-5)),
    )


@register_target("beta")
def _build_beta(cfg: Dict[str, Any]) -> TargetDensity:
    return BetaTarget(a=float(cfg.get("a", 2.0)), b=float(cfg.get("b", 2.0)))


@register_target("gamma")
def _build_gamma(cfg: Dict[str, Any]) -> TargetDensity:
    return GammaTarget(shape=float(cfg.get("shape", 2.0)), rate=float(cfg.get("rate", 1.0)))


def get_available_targets() -> Dict[str, Callable[[Dict[str, Any]], TargetDensity]]:
    """Return a copy of the registered target builders."""
    return dict(REGISTRY)


def build_target(cfg: Dict[str, Any]) -> TargetDensity:
    """Instantiate a target from its config section (``name`` plus parameters)."""
    if not isinstance(cfg, dict):
        raise TargetConfigError("Target config must be a mapping with a 'name' key.")
    name = cfg.get("name", cfg.get("type"))
    if name is None:
        raise TargetConfigError("Target config requires 'name' (or 'type').")
    key = str(name).strip().lower()
    if key not in REGISTRY:
        raise TargetConfigError(f"Unknown target '{name}'. Available: {sorted(REGISTRY.keys())}")
    params = {k: v for k, v in cfg.items() if k not in {"name", "type"}}
    return REGISTRY[key](params)
