"""Run configuration: YAML files with ``defaults`` inheritance and CLI overrides.

A run config is a mapping with the sections below; anything else at the top
level is kept but logged, since it is most likely a typo::

    seed: 20240601
    name: normal
    target:      {name: normal, mu: 0.0, sigma: 1.0}
    support:     {points: [-4, -2, 0, 2, 4]}      # or grid: linear|quantile
    sampler:     {name: ars, within_segment: uniform}
    parallel:    {workers: 1, backend: process}
    experiments: {n_samples: 10000, batch_size: 500, plots: true}
    runtime:     {progress_bar: false}

``defaults: base.yaml`` (or a list) pulls parent files in first, resolved
relative to the child file. Overrides use dotted paths with YAML values, so
``support.points=[-3,0,3]`` and ``sampler.min_tail_drop=null`` both work.
"""
from __future__ import annotations

import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence, Tuple

import yaml

from arsampling.errors import validate_sample_count

logger = logging.getLogger(__name__)

SECTIONS = ("seed", "name", "target", "support", "sampler", "parallel", "experiments", "runtime", "io")


class ConfigError(ValueError):
    """Raised when a run configuration cannot be loaded or is incomplete."""


def _cast(raw: str) -> Any:
    if not raw.strip():
        return None
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    if isinstance(value, str):
        # PyYAML reads "1e-3" as a string.
        try:
            return float(value)
        except ValueError:
            return value
    return value


def parse_overrides(pairs: Iterable[str]) -> Dict[str, Any]:
    """Turn ``["sampler.within_segment=tangent", "seed=3"]`` into a nested dict."""
    nested: Dict[str, Any] = {}
    for item in pairs:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise ConfigError(f"Override must look like section.key=value, got '{item}'.")
        *parents, leaf = key.strip().split(".")
        node = nested
        for part in parents:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise ConfigError(f"Override '{key}' conflicts with an earlier scalar override.")
            node = child
        node[leaf] = _cast(raw)
    return nested


def merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Recursive merge; ``update`` wins and neither input is modified."""
    out = deepcopy(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = merge(out[key], value)
        else:
            out[key] = deepcopy(value)
    return out


def _parents(defaults: Any, owner: Path) -> List[Path]:
    if defaults is None:
        return []
    items = [defaults] if isinstance(defaults, (str, Path)) else defaults
    if not isinstance(items, list):
        raise ConfigError(f"'defaults' in {owner} must be a file name or a list of them.")
    resolved = []
    for item in items:
        ref = Path(item).expanduser()
        if not ref.is_absolute():
            ref = owner.parent / ref
        if not ref.exists():
            raise ConfigError(f"Default config '{item}' referenced from {owner} not found.")
        resolved.append(ref.resolve())
    return resolved


def load_config(path: Path | str, _chain: Tuple[Path, ...] = ()) -> Dict[str, Any]:
    """Load one YAML file, merging its ``defaults`` parents underneath it."""
    path = Path(path).expanduser().resolve()
    if path in _chain:
        cycle = " -> ".join(str(p) for p in (*_chain, path))
        raise ConfigError(f"Config defaults cycle detected: {cycle}")
    if not path.exists():
        raise ConfigError(f"Config not found: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a YAML mapping at top level.")

    cfg: Dict[str, Any] = {}
    for parent in _parents(data.pop("defaults", None), path):
        cfg = merge(cfg, load_config(parent, (*_chain, path)))
    return merge(cfg, data)


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Check the sections a sampling run cannot do without."""
    unknown = sorted(set(cfg) - set(SECTIONS))
    if unknown:
        logger.warning("Ignoring unknown config sections: %s", ", ".join(unknown))
    target = cfg.get("target")
    if not isinstance(target, dict) or not (target.get("name") or target.get("type")):
        raise ConfigError("Config needs a 'target' section with a 'name'.")
    support = cfg.get("support")
    if not isinstance(support, dict) or not ("points" in support or "grid" in support):
        raise ConfigError("Config needs a 'support' section with 'points' or a 'grid'.")
    n = (cfg.get("experiments") or {}).get("n_samples")
    if n is not None:
        validate_sample_count(n)
    return cfg


def resolve_config(paths: Sequence[Path | str], overrides: Iterable[str] = ()) -> Dict[str, Any]:
    """Load ``paths`` left to right, apply overrides and validate the result."""
    if not paths:
        raise ConfigError("At least one config file is required.")
    cfg: Dict[str, Any] = {}
    for p in paths:
        cfg = merge(cfg, load_config(p))
    cfg = merge(cfg, parse_overrides(overrides))
    return validate_config(cfg)


def save_resolved(cfg: Dict[str, Any], out_dir: Path) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / "resolved_config.yaml"
    with path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(cfg, fh, sort_keys=False, allow_unicode=True)
    return path
