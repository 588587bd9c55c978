"""Compute session: the one shared device + queue + program of the process.

A ComputeSession is built once at startup (ComputeSession.create) and handed
to every request handler. Construction failures are DeviceInitError and are
fatal for the service. Per-request work happens in run()/solve(), which
allocates a BufferSet, drives the IterationController and extracts the path
table.

Requests share one backend queue, so run() holds a mutex for the whole solve:
exactly one compute job is in flight; other callers wait in line on the lock.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from sssp_runtime.backend import Backend
from sssp_runtime.buffer_set import BufferSet
from sssp_runtime.controller import IterationController
from sssp_runtime.errors import DeviceFailure, DeviceInitError
from sssp_runtime.extractor import PathEntry, extract_path
from sssp_runtime.pipeline import KernelPipeline

logger = logging.getLogger(__name__)

BACKEND_NAMES = ("opencl", "cuda", "metal", "cpu", "auto")

# Accelerators tried, in order, by backend="auto" before falling back to cpu.
_AUTO_ORDER = ("opencl", "cuda", "metal")


@dataclass
class SolveResult:
    """Path table plus execution statistics for one solve."""
    path: list[PathEntry]
    rounds: int
    elapsed_ms: float


def create_backend(name: str = "opencl", platform_index: int = 0, device_index: int = 0) -> Backend:
    """Construct a backend by name.

    Raises:
        DeviceInitError: the backend's library or device is unavailable, or
            its context/queue/program could not be built.
        ValueError: unknown backend name.
    """
    if name == "auto":
        for candidate in _AUTO_ORDER:
            try:
                return create_backend(candidate, platform_index, device_index)
            except DeviceInitError as e:
                logger.warning("Backend %s unavailable: %s", candidate, e)
        logger.warning("No accelerator found, falling back to the cpu backend")
        return create_backend("cpu")

    if name == "opencl":
        from opencl_runtime.opencl_backend import OpenCLBackend

        return OpenCLBackend(platform_index=platform_index, device_index=device_index)
    if name == "cuda":
        from cuda_runtime.cuda_backend import CUDABackend

        return CUDABackend(device_id=device_index)
    if name == "metal":
        try:
            from sssp_runtime.metal_backend import MetalBackend
        except ImportError as e:
            raise DeviceInitError(f"Metal is not available: {e}") from e
        return MetalBackend()
    if name == "cpu":
        from sssp_runtime.cpu_backend import CPUBackend

        return CPUBackend()
    raise ValueError(f"Unknown backend: {name!r} (expected one of {', '.join(BACKEND_NAMES)})")


class ComputeSession:
    """Shared compute context: backend, pipeline and the job mutex."""

    def __init__(self, backend: Backend, early_exit: bool = False):
        self._backend = backend
        self._controller = IterationController(KernelPipeline(backend), early_exit=early_exit)
        self._lock = threading.Lock()
        self._closed = False

    @classmethod
    def create(
        cls,
        backend: str = "opencl",
        platform_index: int = 0,
        device_index: int = 0,
        early_exit: bool = False,
    ) -> ComputeSession:
        """Build the backend and wrap it in a session."""
        impl = create_backend(backend, platform_index=platform_index, device_index=device_index)
        logger.info("Compute session ready on %s (%s)", impl.device_name, impl.name)
        return cls(impl, early_exit=early_exit)

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def early_exit(self) -> bool:
        return self._controller.early_exit

    def run(self, matrix: np.ndarray | Sequence[float], vertex_count: int) -> SolveResult:
        """Solve single-source shortest paths from vertex 0.

        Args:
            matrix: Row-major ``vertex_count x vertex_count`` weights, already validated.
            vertex_count: Number of vertices.

        Raises:
            DeviceFailure: a dispatch, allocation or readback failed. Nothing
                partial is returned; all buffers are released.
        """
        if self._closed:
            raise DeviceInitError("Compute session is closed")

        with self._lock:
            start = time.perf_counter()
            try:
                with BufferSet(self._backend, matrix, vertex_count) as buffers:
                    rounds = self._controller.run(buffers)
                    path = extract_path(buffers)
            except DeviceFailure as e:
                logger.error("Critical error occurred in kernel: %s", e)
                raise
            elapsed_ms = (time.perf_counter() - start) * 1000

        logger.debug("Solved %d vertices in %d rounds (%.3f ms)", vertex_count, rounds, elapsed_ms)
        return SolveResult(path=path, rounds=rounds, elapsed_ms=elapsed_ms)

    def solve(self, matrix: np.ndarray | Sequence[float], vertex_count: int) -> list[PathEntry]:
        """Return only the path table of run()."""
        return self.run(matrix, vertex_count).path

    def close(self) -> None:
        if self._closed:
            return
        with self._lock:
            self._backend.close()
            self._closed = True
        logger.debug("Compute session closed")

    def __enter__(self) -> ComputeSession:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
