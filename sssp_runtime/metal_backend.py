"""Metal GPU backend implementation."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from sssp_kernels.stage_program import build_stage_program
from sssp_kernels.target_config import METAL_GPU, TargetConfig, dispatch_groups
from sssp_runtime.backend import Backend, DeviceBuffer, KernelArg
from sssp_runtime.buffer import MetalBuffer
from sssp_runtime.device import Device

logger = logging.getLogger(__name__)


class MetalBackend(Backend):
    """Backend implementation using Apple Metal GPU."""

    def __init__(self, config: TargetConfig | None = None):
        self._config = config or METAL_GPU
        self._device = Device()
        self._program = build_stage_program("metal")
        # All stage pipelines exist before the first request
        self._device.build_pipelines(self._program.source_code, self._program.kernel_names)
        logger.info("Using device: %s", self._device.name)

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def device_name(self) -> str:
        return self._device.name

    @property
    def device(self) -> Device:
        return self._device

    def allocate_buffer(self, data: np.ndarray) -> MetalBuffer:
        return MetalBuffer.from_numpy(data, self._device)

    def allocate_zeros(self, shape: tuple[int, ...], dtype: np.dtype) -> MetalBuffer:
        return MetalBuffer.zeros(shape, self._device, dtype=dtype)

    def write_buffer(self, buffer: DeviceBuffer, data: np.ndarray) -> None:
        buffer.write_from_numpy(data)

    def dispatch(self, kernel_name: str, lanes: int, args: Sequence[KernelArg]) -> None:
        pipeline = self._device.pipeline(kernel_name)
        mtl_buffers = [
            arg.native_handle if isinstance(arg, DeviceBuffer) else self._device.scalar_buffer(int(arg))
            for arg in args
        ]
        config = TargetConfig(
            name=self._config.name,
            threads_per_group=min(self._config.threads_per_group, pipeline.maxTotalThreadsPerThreadgroup()),
        )
        groups, tpg = dispatch_groups(lanes, config)
        self._device.run_1d(kernel_name, mtl_buffers, groups, tpg)

    def synchronize(self):
        pass  # run_1d blocks on waitUntilCompleted
