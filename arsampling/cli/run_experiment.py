# arsampling/cli/run_experiment.py
from __future__ import annotations

import argparse
import datetime as _dt
import logging
import sys
import traceback
from pathlib import Path
from typing import List

from arsampling.experiments.config import resolve_config, save_resolved
from arsampling.experiments.runner import run_experiment
from arsampling.utils.logging_utils import log_config, setup_logging, verbosity_to_level


def _timestamp() -> str:
    return _dt.datetime.now().strftime("%Y%m%d-%H%M%S")


def _derive_run_dir(base_out: Path, exp_name: str | None) -> Path:
    tag = exp_name if exp_name else "ars"
    return base_out / f"{tag}-{_timestamp()}"


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run a single sampling experiment from YAML config.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config",
        "-c",
        nargs="+",
        type=str,
        required=True,
        help="One or more YAML config files (merged from left to right).",
    )
    parser.add_argument(
        "--override",
        "-o",
        nargs="*",
        default=[],
        help="Override config keys: e.g., seed=42 sampler.within_segment=tangent support.points=[-3,0,3]",
    )
    parser.add_argument(
        "--outdir",
        type=str,
        default="outputs/runs",
        help="Base output directory for this run.",
    )
    parser.add_argument(
        "--name",
        type=str,
        default=None,
        help="Experiment name tag used in run directory naming.",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional log file path.",
    )
    parser.add_argument(
        "--verbosity",
        "-v",
        action="count",
        default=0,
        help="Increase logging verbosity (-v INFO, -vv DEBUG).",
    )

    args = parser.parse_args(argv)
    logger = setup_logging(verbosity_to_level(args.verbosity), args.log_file)

    try:
        resolved_cfg = resolve_config(args.config, args.override or [])

        base_out = Path(args.outdir).expanduser().resolve()
        run_dir = _derive_run_dir(base_out, args.name or resolved_cfg.get("name"))
        resolved_cfg.setdefault("io", {})
        resolved_cfg["io"]["run_dir"] = str(run_dir)

        save_resolved(resolved_cfg, run_dir)
        if logger.isEnabledFor(logging.INFO):
            log_config(logger, resolved_cfg)

        metrics = run_experiment(resolved_cfg, run_dir)
        report = metrics.get("sampler_report", {})
        print(
            f"[OK] {metrics['n_samples']} samples, acceptance "
            f"{report.get('acceptance_rate', float('nan')):.4f}. Artifacts in: {run_dir}"
        )
        return 0
    except Exception:  # pragma: no cover
        print("[FATAL] Experiment failed:\n", file=sys.stderr)
        traceback.print_exc()
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
