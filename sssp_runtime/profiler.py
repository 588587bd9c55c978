"""Profiler: measure end-to-end solve time on a session."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from sssp_runtime.session import ComputeSession


@dataclass
class ProfileResult:
    """Profiling result with timing and iteration count.

    ``total_ms`` is the mean wall time of one solve, buffer allocation and
    readback included. ``rounds`` is the number of relaxation rounds of the
    last measured solve.
    """
    total_ms: float
    iterations: int
    rounds: int


def profile(
    session: ComputeSession,
    matrix: np.ndarray | Sequence[float],
    vertex_count: int,
    warmup: int = 3,
    iterations: int = 10,
) -> ProfileResult:
    """Profile solves of one matrix.

    Runs warmup iterations then measures average execution time.
    """
    if iterations <= 0:
        raise ValueError("iterations must be positive")

    # Warmup
    for _ in range(warmup):
        session.run(matrix, vertex_count)

    # Measure
    rounds = 0
    start = time.perf_counter()
    for _ in range(iterations):
        rounds = session.run(matrix, vertex_count).rounds
    end = time.perf_counter()

    total_ms = (end - start) / iterations * 1000

    return ProfileResult(
        total_ms=total_ms,
        iterations=iterations,
        rounds=rounds,
    )
