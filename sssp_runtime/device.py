"""Metal device: one MTLDevice, one command queue, the stage library."""

from __future__ import annotations

import struct

import Metal  # pyobjc-framework-Metal

from sssp_runtime.errors import DeviceFailure, DeviceInitError

_MTL_COMMAND_BUFFER_STATUS_ERROR = 5  # MTLCommandBufferStatusError


class Device:
    """System default Metal device with its queue and compiled stage pipelines."""

    def __init__(self):
        self._device = Metal.MTLCreateSystemDefaultDevice()
        if self._device is None:
            raise DeviceInitError("No Metal device found")
        self._command_queue = self._device.newCommandQueue()
        if self._command_queue is None:
            raise DeviceInitError(f"Failed to create a command queue on {self._device.name()}")
        self._pipelines: dict[str, Metal.MTLComputePipelineState] = {}

    @property
    def name(self) -> str:
        return str(self._device.name())

    @property
    def mtl_device(self):
        return self._device

    def build_pipelines(self, source: str, function_names: tuple[str, ...]) -> None:
        """Compile MSL source and create one compute pipeline per stage function."""
        library, error = self._device.newLibraryWithSource_options_error_(source, None, None)
        if library is None:
            raise DeviceInitError(f"Metal program compilation failed: {error}")

        for name in function_names:
            function = library.newFunctionWithName_(name)
            if function is None:
                raise DeviceInitError(f"Function '{name}' not found in stage library")
            pipeline, error = self._device.newComputePipelineStateWithFunction_error_(function, None)
            if pipeline is None:
                raise DeviceInitError(f"Pipeline creation failed for '{name}': {error}")
            self._pipelines[name] = pipeline

    def pipeline(self, name: str):
        pipeline = self._pipelines.get(name)
        if pipeline is None:
            raise DeviceFailure(f"Function '{name}' not found", operation="dispatch")
        return pipeline

    def scalar_buffer(self, value: int):
        """Shared-storage buffer holding one int32, bound as ``constant int&``."""
        data = struct.pack("i", value)
        return self._device.newBufferWithBytes_length_options_(data, len(data), 0)

    def run_1d(self, name: str, mtl_buffers: list, groups: int, threads_per_group: int) -> None:
        """Encode one 1D dispatch, commit it and block until the GPU finishes."""
        cmd_buf = self._command_queue.commandBuffer()
        encoder = cmd_buf.computeCommandEncoder()
        encoder.setComputePipelineState_(self.pipeline(name))
        for idx, buf in enumerate(mtl_buffers):
            encoder.setBuffer_offset_atIndex_(buf, 0, idx)
        encoder.dispatchThreadgroups_threadsPerThreadgroup_((groups, 1, 1), (threads_per_group, 1, 1))
        encoder.endEncoding()
        cmd_buf.commit()
        cmd_buf.waitUntilCompleted()

        if cmd_buf.status() == _MTL_COMMAND_BUFFER_STATUS_ERROR:
            error = cmd_buf.error()
            status = str(error.localizedDescription()) if error is not None else "MTLCommandBufferStatusError"
            raise DeviceFailure(status, operation=name)
