"""Per-request device buffers for one shortest-path solve.

A BufferSet owns every device array a solve touches. It is a context
manager: buffers are allocated on entry and released on exit, including
when the solve fails or when allocation itself fails part-way through.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from sssp_kernels.stage_program import BUFFER_PLAN, DISTANCE_DTYPE, BufferAllocation, KernelSignature
from sssp_runtime.backend import Backend, DeviceBuffer, KernelArg

logger = logging.getLogger(__name__)


class BufferSet:
    """Matrix, result, distance, visited, predecessor, candidate predecessor and changed flag.

    Args:
        backend: Backend the buffers live on.
        matrix: Row-major adjacency weights, ``vertex_count ** 2`` values.
        vertex_count: Number of vertices (lanes per stage).
        plan: Buffer layout; defaults to the stage program's plan.
    """

    def __init__(
        self,
        backend: Backend,
        matrix: np.ndarray | Sequence[float],
        vertex_count: int,
        plan: Sequence[BufferAllocation] = BUFFER_PLAN,
    ):
        host = np.ascontiguousarray(matrix, dtype=DISTANCE_DTYPE).ravel()
        if vertex_count <= 0 or host.size != vertex_count * vertex_count:
            raise ValueError(
                f"matrix holds {host.size} values, expected {vertex_count} x {vertex_count}"
            )
        self._backend = backend
        self._matrix = host
        self._vertex_count = vertex_count
        self._plan = tuple(plan)
        self._buffers: dict[str, DeviceBuffer] = {}

    @property
    def vertex_count(self) -> int:
        return self._vertex_count

    @property
    def allocated(self) -> bool:
        return bool(self._buffers)

    def __getitem__(self, name: str) -> DeviceBuffer:
        return self._buffers[name]

    def __contains__(self, name: str) -> bool:
        return name in self._buffers

    def allocate(self) -> BufferSet:
        """Allocate and populate every buffer in the plan."""
        try:
            for alloc in self._plan:
                if alloc.read_only:
                    buf = self._backend.allocate_buffer(self._matrix)
                else:
                    buf = self._backend.allocate_zeros((alloc.length(self._vertex_count),), alloc.dtype)
                self._buffers[alloc.name] = buf
        except BaseException:
            self.release()
            raise
        total = sum(b.size_bytes for b in self._buffers.values())
        logger.debug("Allocated %d buffers (%d bytes) for %d vertices", len(self._buffers), total, self._vertex_count)
        return self

    def release(self) -> None:
        """Release every allocated buffer. Idempotent."""
        while self._buffers:
            _, buf = self._buffers.popitem()
            buf.release()

    def bind(self, signature: KernelSignature) -> list[KernelArg]:
        """Resolve a kernel signature into its ordered argument list."""
        args: list[KernelArg] = []
        for arg_name in signature.arguments:
            if arg_name == "vertex_count":
                args.append(self._vertex_count)
            else:
                args.append(self._buffers[arg_name])
        return args

    def read(self, name: str) -> np.ndarray:
        """Blocking readback of one buffer."""
        return self._buffers[name].to_numpy()

    def __enter__(self) -> BufferSet:
        return self.allocate()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
