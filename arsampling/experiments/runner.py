"""
Experiment orchestration for sampling runs.

:func:`run_experiment` takes a fully merged configuration dictionary and an
output directory. It builds the target and the initial support, runs the
configured sampler (ARS, optionally fanned out over workers; plain rejection;
or slice sampling), evaluates the draws against the target and writes:

* ``samples.npz``  - the draws plus per-sampler extras (e.g. ``slot_iterations``)
* ``metrics.json`` - timing, acceptance counters, moments, KS statistic, trend
* ``histogram.png`` / ``envelope.png`` / ``acceptance.png`` when plots are enabled

It is the entry point invoked by ``python -m arsampling.cli.run_experiment``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from arsampling.diagnostics.checks import (
    acceptance_trend,
    batch_acceptance_rates,
    effective_sample_size,
    summarize_samples,
)
from arsampling.errors import InsufficientSupportError, TargetConfigError, validate_sample_count
from arsampling.experiments.registry import SamplerOutcome, build_from_config, get_sampler_name_from_config
from arsampling.targets import build_target, has_cdf, support_from_config
from arsampling.targets.densities import TargetDensity
from arsampling.utils.io import ensure_dir, save_json, save_samples
from arsampling.utils.logging_utils import Timer

logger = logging.getLogger(__name__)


class ExperimentError(RuntimeError):
    """Raised when a configuration-driven experiment cannot be executed."""


def _get(cfg: Dict[str, Any], path: str, default: Any = None) -> Any:
    cur: Any = cfg
    for seg in path.split("."):
        if not isinstance(cur, dict) or seg not in cur:
            return default
        cur = cur[seg]
    return cur


def _resolve_inputs(cfg: Dict[str, Any]) -> tuple[TargetDensity, np.ndarray, int]:
    target_cfg = cfg.get("target")
    if not isinstance(target_cfg, dict):
        raise ExperimentError("Config requires a 'target' section with a 'name'.")
    try:
        target = build_target(dict(target_cfg))
        support = support_from_config(target, dict(cfg.get("support") or {}))
    except (TargetConfigError, InsufficientSupportError) as exc:
        raise ExperimentError(str(exc)) from exc
    n = validate_sample_count(_get(cfg, "experiments.n_samples", 1000))
    return target, support, n


def _diagnostics(
    cfg: Dict[str, Any],
    target: TargetDensity,
    outcome: SamplerOutcome,
    sampler_name: str,
) -> Dict[str, Any]:
    diag: Dict[str, Any] = dict(summarize_samples(outcome.samples, target.cdf if has_cdf(target) else None))
    slots = outcome.extras.get("slot_iterations")
    if slots is not None and slots.size:
        batch_size = int(_get(cfg, "experiments.batch_size", max(1, slots.size // 20)))
        rates = batch_acceptance_rates(slots, batch_size)
        diag["batch_size"] = batch_size
        diag["batch_acceptance"] = rates.tolist()
        diag["acceptance_trend"] = acceptance_trend(rates)
    if sampler_name.lower() == "slice" and outcome.samples.size >= 4:
        diag["ess"] = effective_sample_size(outcome.samples)
    return diag


def _write_plots(out_dir: Path, target: TargetDensity, outcome: SamplerOutcome, diag: Dict[str, Any]) -> Dict[str, str]:
    from arsampling.viz.plots import plot_acceptance_trend, plot_envelope, plot_histogram, save_figure

    written: Dict[str, str] = {}
    ax = plot_histogram(outcome.samples, target, title="Samples vs. target")
    written["histogram"] = str(save_figure(ax, out_dir / "histogram.png"))
    if outcome.support is not None:
        ax = plot_envelope(outcome.support, title="Final envelope and squeeze")
        written["envelope"] = str(save_figure(ax, out_dir / "envelope.png"))
    if diag.get("batch_acceptance"):
        ax = plot_acceptance_trend(diag["batch_acceptance"], title="Acceptance by batch")
        written["acceptance"] = str(save_figure(ax, out_dir / "acceptance.png"))
    return written


def run_experiment(config: Dict[str, Any], out_dir: Path | str, *, seed: Optional[int] = None) -> Dict[str, Any]:
    """Run one configured sampling experiment and persist its artifacts."""
    out_dir = ensure_dir(Path(out_dir))
    cfg = dict(config)
    run_seed = seed if seed is not None else _get(cfg, "seed", None)
    run_seed = None if run_seed is None else int(run_seed)

    target, support, n = _resolve_inputs(cfg)
    sampler_name = get_sampler_name_from_config(cfg)
    try:
        runner = build_from_config(cfg)
    except KeyError as exc:
        raise ExperimentError(str(exc)) from exc

    logger.info("Running %s on %s: %d samples, %d initial support points", sampler_name, type(target).__name__, n, support.size)
    with Timer(name=f"{sampler_name} sampling", logger=logger) as timer:
        outcome = runner(target, support, n, run_seed)

    diag = _diagnostics(cfg, target, outcome, sampler_name)
    save_samples(out_dir / "samples.npz", samples=outcome.samples, **outcome.extras)

    metrics: Dict[str, Any] = {
        "status": "OK",
        "name": cfg.get("name"),
        "sampler": sampler_name,
        "target": type(target).__name__,
        "seed": run_seed,
        "n_samples": int(outcome.samples.size),
        "wall_time": timer.elapsed,
        "sampler_report": outcome.report,
        "diagnostics": diag,
    }
    if bool(_get(cfg, "experiments.plots", False)):
        metrics["plots"] = _write_plots(out_dir, target, outcome, diag)
    save_json(metrics, out_dir / "metrics.json")
    return metrics
