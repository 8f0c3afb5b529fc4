"""Tests for the parallel ARS fan-out."""
from __future__ import annotations

import numpy as np
import pytest

from arsampling.errors import InsufficientSupportError, InvalidSampleCountError
from arsampling.experiments.parallel import run_parallel
from arsampling.targets import NormalTarget

SUPPORT = [-4.0, -2.0, 0.0, 2.0, 4.0]


def _by_worker(result):
    return {idx: res.samples for idx, res in zip(result.completion_order, result.worker_results)}


def test_thread_backend_merges_all_workers():
    result = run_parallel(NormalTarget(), SUPPORT, 1000, 4, seed=11, backend="thread")
    assert result.samples.shape == (1000,)
    assert sorted(result.completion_order) == [0, 1, 2, 3]
    assert all(r.samples.size == 250 for r in result.worker_results)
    assert result.total_accepted == 1000
    assert 0.0 < result.acceptance_rate <= 1.0
    payload = result.to_dict()
    assert payload["workers"] == 4
    assert payload["n_samples"] == 1000


def test_workers_use_independent_streams():
    result = run_parallel(NormalTarget(), SUPPORT, 400, 4, seed=5, backend="serial")
    streams = list(_by_worker(result).values())
    for i in range(len(streams)):
        for j in range(i + 1, len(streams)):
            assert not np.array_equal(streams[i], streams[j])


def test_per_worker_streams_reproducible_across_backends():
    serial = _by_worker(run_parallel(NormalTarget(), SUPPORT, 300, 3, seed=21, backend="serial"))
    threaded = _by_worker(run_parallel(NormalTarget(), SUPPORT, 300, 3, seed=21, backend="thread"))
    for idx in range(3):
        np.testing.assert_array_equal(serial[idx], threaded[idx])


def test_remainder_is_not_drawn():
    result = run_parallel(NormalTarget(), SUPPORT, 1003, 4, seed=1, backend="serial")
    assert result.samples.size == 1000


def test_invalid_fan_out_arguments():
    with pytest.raises(InvalidSampleCountError):
        run_parallel(NormalTarget(), SUPPORT, 3, 4, seed=0, backend="serial")
    with pytest.raises(InvalidSampleCountError):
        run_parallel(NormalTarget(), SUPPORT, 0, 2, seed=0)
    with pytest.raises(ValueError):
        run_parallel(NormalTarget(), SUPPORT, 100, 0, seed=0)
    with pytest.raises(ValueError):
        run_parallel(NormalTarget(), SUPPORT, 100, 2, seed=0, backend="mpi")


def test_worker_failure_fails_whole_run():
    with pytest.raises(InsufficientSupportError):
        run_parallel(NormalTarget(), [0.0], 100, 2, seed=0, backend="thread")


@pytest.mark.slow
def test_process_backend():
    result = run_parallel(NormalTarget(), SUPPORT, 400, 2, seed=3, backend="process")
    assert result.samples.size == 400
    assert abs(result.samples.mean()) < 0.2
