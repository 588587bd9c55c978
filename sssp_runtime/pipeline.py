"""Kernel pipeline: the three stage dispatches of one relaxation solve."""

from __future__ import annotations

import logging

from sssp_kernels.stage_program import INIT_KERNEL, MERGE_KERNEL, RELAX_KERNEL, SIGNATURES
from sssp_runtime.backend import Backend
from sssp_runtime.buffer_set import BufferSet

logger = logging.getLogger(__name__)


class KernelPipeline:
    """Dispatches init / relax / merge on a backend.

    Every call blocks until the device has completed the stage, so the next
    stage always observes all lanes' writes.
    """

    def __init__(self, backend: Backend):
        self._backend = backend

    @property
    def backend(self) -> Backend:
        return self._backend

    def _run(self, kernel_name: str, buffers: BufferSet) -> None:
        args = buffers.bind(SIGNATURES[kernel_name])
        self._backend.dispatch(kernel_name, buffers.vertex_count, args)

    def init(self, buffers: BufferSet) -> None:
        """Seed result/visited and clear candidates and predecessors."""
        self._run(INIT_KERNEL, buffers)

    def relax(self, buffers: BufferSet) -> None:
        """Each unvisited lane computes its best candidate over its matrix row."""
        self._run(RELAX_KERNEL, buffers)

    def merge(self, buffers: BufferSet) -> None:
        """Commit improved candidates and re-arm every vertex except the source."""
        self._run(MERGE_KERNEL, buffers)
