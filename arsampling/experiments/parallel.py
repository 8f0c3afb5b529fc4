"""Embarrassingly parallel fan-out of independent ARS runs.

Each worker builds its own sampler (own support set, own generator spawned
from a shared ``SeedSequence``) and draws ``total // workers`` samples. Results
are concatenated in completion order, so the merged sequence is exchangeable
but not a single ordered chain. A run that fails in any worker fails as a
whole; partial results are discarded.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from numpy.random import SeedSequence, default_rng

from arsampling.errors import InvalidSampleCountError, validate_sample_count
from arsampling.inference.ars import ARSResult, AdaptiveRejectionSampler
from arsampling.targets.densities import TargetDensity
from arsampling.utils.seed import spawn_seeds

logger = logging.getLogger(__name__)

_BACKENDS = {"process", "thread", "serial"}


@dataclass(frozen=True)
class _WorkerTask:
    index: int
    target: TargetDensity
    initial_support: Tuple[float, ...]
    n: int
    seed: SeedSequence
    sampler_kwargs: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ParallelResult:
    samples: np.ndarray
    worker_results: List[ARSResult]
    completion_order: List[int]
    elapsed: float

    @property
    def total_iterations(self) -> int:
        return int(sum(r.total_iterations for r in self.worker_results))

    @property
    def total_accepted(self) -> int:
        return int(sum(r.total_accepted for r in self.worker_results))

    @property
    def acceptance_rate(self) -> float:
        iters = self.total_iterations
        return self.total_accepted / iters if iters else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_samples": int(self.samples.size),
            "workers": len(self.worker_results),
            "completion_order": list(self.completion_order),
            "acceptance_rate": self.acceptance_rate,
            "total_iterations": self.total_iterations,
            "total_accepted": self.total_accepted,
            "discarded": int(sum(r.discarded for r in self.worker_results)),
            "envelope_violations": int(sum(r.envelope_violations for r in self.worker_results)),
            "elapsed": self.elapsed,
            "worker_elapsed": [r.elapsed for r in self.worker_results],
        }


def _run_worker(task: _WorkerTask) -> Tuple[int, ARSResult]:
    sampler = AdaptiveRejectionSampler(
        task.target,
        task.initial_support,
        rng=default_rng(task.seed),
        **task.sampler_kwargs,
    )
    return task.index, sampler.sample(task.n)


def run_parallel(
    target: TargetDensity,
    initial_support: Sequence[float],
    total_samples: int,
    workers: int,
    *,
    seed: Optional[int] = None,
    backend: str = "process",
    **sampler_kwargs: Any,
) -> ParallelResult:
    """Split ``total_samples`` across ``workers`` independent ARS runs.

    Each worker draws ``total_samples // workers``; a remainder is not drawn
    and is left for the caller to handle.
    """
    total = validate_sample_count(total_samples)
    workers = int(workers)
    if workers <= 0:
        raise ValueError("workers must be positive.")
    backend = str(backend).lower()
    if backend not in _BACKENDS:
        raise ValueError(f"Unknown backend '{backend}'. Use one of {sorted(_BACKENDS)}.")
    per_worker = total // workers
    if per_worker == 0:
        raise InvalidSampleCountError(
            f"total_samples={total} is smaller than workers={workers}; no worker would draw a sample."
        )
    remainder = total - per_worker * workers
    if remainder:
        logger.warning("%d samples not assigned (total %d over %d workers).", remainder, total, workers)

    support = tuple(float(x) for x in initial_support)
    tasks = [
        _WorkerTask(i, target, support, per_worker, child, dict(sampler_kwargs))
        for i, child in enumerate(spawn_seeds(seed, workers))
    ]

    start = time.perf_counter()
    collected: List[Tuple[int, ARSResult]] = []
    if backend == "serial" or workers == 1:
        for task in tasks:
            collected.append(_run_worker(task))
    else:
        pool_cls = ProcessPoolExecutor if backend == "process" else ThreadPoolExecutor
        with pool_cls(max_workers=workers) as executor:
            futures = {executor.submit(_run_worker, task): task.index for task in tasks}
            for future in as_completed(futures):
                collected.append(future.result())
                logger.debug("Worker %d finished.", futures[future])
    elapsed = time.perf_counter() - start

    order = [idx for idx, _ in collected]
    results = [res for _, res in collected]
    samples = np.concatenate([r.samples for r in results])
    logger.info(
        "Parallel ARS: %d samples from %d workers in %.3fs (acceptance %.3f)",
        samples.size, workers, elapsed, sum(r.total_accepted for r in results) / max(1, sum(r.total_iterations for r in results)),
    )
    return ParallelResult(samples=samples, worker_results=results, completion_order=order, elapsed=elapsed)
