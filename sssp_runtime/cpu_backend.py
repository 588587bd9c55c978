"""CPU backend: numpy interpretation of the three stage kernels.

Each stage is evaluated for all lanes at once. Within a stage every lane
reads the shared buffers and writes only its own index, so evaluating the
reads for all lanes before any write gives exactly the result of a parallel
dispatch. The relax stage keeps the serial-scan tie break of the device
kernels: the lowest-index neighbour wins among equal candidates (argmin
returns the first minimum).

Used as the reference device in tests and as the ``cpu`` backend when no
accelerator is present.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

import numpy as np

from sssp_kernels.stage_program import (
    INF_DISTANCE,
    INIT_KERNEL,
    MERGE_KERNEL,
    RELAX_KERNEL,
    build_stage_program,
)
from sssp_kernels.target_config import NUMPY_CPU, TargetConfig
from sssp_runtime.backend import Backend, DeviceBuffer, KernelArg
from sssp_runtime.errors import BufferAllocationError, DeviceFailure

logger = logging.getLogger(__name__)

_INF = np.float32(INF_DISTANCE)


class CPUBuffer(DeviceBuffer):
    """Host-memory buffer backed by a numpy array."""

    def __init__(self, data: np.ndarray, read_only: bool = False):
        self._data = data
        self._data.flags.writeable = not read_only
        self._released = False

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self._data.shape)

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def size_bytes(self) -> int:
        return self._data.nbytes

    @property
    def native_handle(self) -> np.ndarray:
        if self._released:
            raise DeviceFailure("buffer already released", operation="access")
        return self._data

    @property
    def released(self) -> bool:
        return self._released

    def to_numpy(self) -> np.ndarray:
        return self.native_handle.copy()

    def release(self) -> None:
        self._released = True


# ---------------------------------------------------------------------------
# Stage interpreters (argument order matches sssp_kernels.stage_program)
# ---------------------------------------------------------------------------

def _init_stage(result, distance, visited, predecessor, candidate_predecessor, vertex_count):
    result[:vertex_count] = _INF
    result[0] = 0.0
    visited[:vertex_count] = 0
    visited[0] = 1
    distance[:vertex_count] = 0.0
    predecessor[:vertex_count] = 0
    candidate_predecessor[:vertex_count] = 0


def _relax_stage(result, matrix, distance, visited, candidate_predecessor, vertex_count):
    lanes = np.flatnonzero(visited[:vertex_count] != 1)
    if lanes.size == 0:
        return
    visited[lanes] = 1

    weights = matrix.reshape(vertex_count, vertex_count)[lanes]
    valid = (weights != 0.0) & np.isfinite(weights) & (weights != _INF)
    with np.errstate(over="ignore", invalid="ignore"):
        candidates = result[:vertex_count][np.newaxis, :] + weights
    candidates = np.where(valid, candidates, np.float32(np.inf)).astype(np.float32)

    best_edge = np.argmin(candidates, axis=1)
    best = candidates[np.arange(lanes.size), best_edge]
    improved = best < _INF

    distance[lanes] = np.where(improved, best, _INF)
    candidate_predecessor[lanes] = np.where(improved, best_edge, 0).astype(np.int32)


def _merge_stage(result, distance, visited, predecessor, candidate_predecessor, changed, vertex_count):
    commit = distance[:vertex_count] < result[:vertex_count]
    if commit.any():
        result[:vertex_count][commit] = distance[:vertex_count][commit]
        predecessor[:vertex_count][commit] = candidate_predecessor[:vertex_count][commit]
        changed[0] = 1
    visited[1:vertex_count] = 0


_STAGES: dict[str, Callable[..., None]] = {
    INIT_KERNEL: _init_stage,
    RELAX_KERNEL: _relax_stage,
    MERGE_KERNEL: _merge_stage,
}


class CPUBackend(Backend):
    """numpy execution backend; always available."""

    def __init__(self, config: TargetConfig | None = None):
        self._config = config or NUMPY_CPU
        self._program = build_stage_program("numpy")
        self._kernels = {name: _STAGES[name] for name in self._program.kernel_names}
        logger.debug("CPU backend ready with kernels: %s", ", ".join(self._kernels))

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def device_name(self) -> str:
        return "numpy"

    def allocate_buffer(self, data: np.ndarray) -> CPUBuffer:
        try:
            return CPUBuffer(np.array(data, copy=True), read_only=True)
        except MemoryError as e:
            raise BufferAllocationError(f"host allocation of {data.nbytes} bytes failed", "allocate") from e

    def allocate_zeros(self, shape: tuple[int, ...], dtype: np.dtype) -> CPUBuffer:
        try:
            return CPUBuffer(np.zeros(shape, dtype=dtype))
        except MemoryError as e:
            raise BufferAllocationError(f"host allocation of shape {shape} failed", "allocate") from e

    def write_buffer(self, buffer: DeviceBuffer, data: np.ndarray) -> None:
        target = buffer.native_handle
        target[...] = np.asarray(data, dtype=target.dtype).reshape(target.shape)

    def dispatch(self, kernel_name: str, lanes: int, args: Sequence[KernelArg]) -> None:
        kernel = self._kernels.get(kernel_name)
        if kernel is None:
            raise DeviceFailure(f"kernel '{kernel_name}' not found", operation="dispatch")
        native: list[Any] = [a.native_handle if isinstance(a, DeviceBuffer) else int(a) for a in args]
        kernel(*native)

    def synchronize(self):
        pass  # numpy stages complete before dispatch() returns
