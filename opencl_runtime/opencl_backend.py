"""OpenCL backend: pyopencl-based Backend and DeviceBuffer implementations.

Device selection follows the platform order reported by the ICD loader:
``platform_index`` picks the platform (0 = default), ``device_index`` the
device on it (0 = first). One context, one in-order command queue and one
program holding all three stages are built at construction.

Every dispatch waits on its event before returning, which is the stage
barrier the pipeline relies on.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import numpy as np

from sssp_kernels.stage_program import build_stage_program
from sssp_kernels.target_config import OPENCL_DEVICE, TargetConfig
from sssp_runtime.backend import Backend, DeviceBuffer, KernelArg
from sssp_runtime.errors import BufferAllocationError, DeviceFailure, DeviceInitError

try:
    import pyopencl as cl

    HAS_PYOPENCL = True
except ImportError:
    cl = None
    HAS_PYOPENCL = False

logger = logging.getLogger(__name__)


def status_string(error: BaseException) -> str:
    """Map a pyopencl error to its CL status name (e.g. ``CL_OUT_OF_RESOURCES``)."""
    code = getattr(error, "code", None)
    if code is None and error.args:
        code = getattr(error.args[0], "code", None)
    if isinstance(code, int):
        name = cl.status_code.to_string(code, "<unknown {}>")
        return name if name.startswith("CL_") else f"CL_{name}"
    return str(error)


class OpenCLBuffer(DeviceBuffer):
    """OpenCL device buffer backed by cl.Buffer."""

    def __init__(self, buffer: cl.Buffer, shape: tuple[int, ...], dtype: np.dtype, queue: cl.CommandQueue):
        self._buffer = buffer
        self._shape = shape
        self._dtype = np.dtype(dtype)
        self._queue = queue

    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def size_bytes(self) -> int:
        return int(np.prod(self._shape)) * self._dtype.itemsize

    @property
    def native_handle(self) -> Any:
        if self._buffer is None:
            raise DeviceFailure("buffer already released", operation="access")
        return self._buffer

    def to_numpy(self) -> np.ndarray:
        """Blocking device-to-host copy."""
        out = np.empty(self._shape, dtype=self._dtype)
        try:
            cl.enqueue_copy(self._queue, out, self.native_handle).wait()
        except cl.Error as e:
            raise DeviceFailure(status_string(e), operation="read") from e
        return out

    def write_from_numpy(self, data: np.ndarray) -> None:
        host = np.ascontiguousarray(data, dtype=self._dtype).reshape(self._shape)
        try:
            cl.enqueue_copy(self._queue, self.native_handle, host).wait()
        except cl.Error as e:
            raise DeviceFailure(status_string(e), operation="write") from e

    def release(self) -> None:
        if self._buffer is not None:
            self._buffer.release()
            self._buffer = None


class OpenCLBackend(Backend):
    """OpenCL execution backend using pyopencl."""

    def __init__(self, platform_index: int = 0, device_index: int = 0, config: TargetConfig | None = None):
        if not HAS_PYOPENCL:
            raise DeviceInitError("pyopencl is not installed. Install with: pip install 'path-walker[opencl]'")
        self._config = config or OPENCL_DEVICE

        logger.debug("Initializing OpenCL components before operations...")
        try:
            platforms = cl.get_platforms()
        except cl.Error as e:
            raise DeviceInitError(f"No OpenCL platform available ({status_string(e)})") from e
        if platform_index >= len(platforms):
            raise DeviceInitError(f"OpenCL platform {platform_index} not found ({len(platforms)} available)")
        platform = platforms[platform_index]
        logger.info("Using platform: %s", platform.name)

        try:
            devices = platform.get_devices()
        except cl.Error as e:
            raise DeviceInitError(f"Platform {platform.name} reports no devices ({status_string(e)})") from e
        if device_index >= len(devices):
            raise DeviceInitError(f"OpenCL device {device_index} not found on {platform.name}")
        self._device = devices[device_index]

        self._stage_program = build_stage_program("opencl")
        try:
            self._context = cl.Context(devices=[self._device])
            self._queue = cl.CommandQueue(self._context, self._device)
            self._program = cl.Program(self._context, self._stage_program.source_code).build()
            self._kernels = {name: cl.Kernel(self._program, name) for name in self._stage_program.kernel_names}
        except cl.Error as e:
            raise DeviceInitError(f"OpenCL context/program construction failed: {status_string(e)}") from e

        logger.info("Using device: %s", self._device.name)

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def device_name(self) -> str:
        return self._device.name

    @property
    def queue(self) -> Any:
        return self._queue

    def allocate_buffer(self, data: np.ndarray) -> OpenCLBuffer:
        host = np.ascontiguousarray(data)
        mf = cl.mem_flags
        try:
            buf = cl.Buffer(self._context, mf.READ_ONLY | mf.COPY_HOST_PTR, hostbuf=host)
        except cl.Error as e:
            raise BufferAllocationError(status_string(e), "allocate") from e
        return OpenCLBuffer(buf, tuple(host.shape), host.dtype, self._queue)

    def allocate_zeros(self, shape: tuple[int, ...], dtype: np.dtype) -> OpenCLBuffer:
        host = np.zeros(tuple(shape), dtype=dtype)
        mf = cl.mem_flags
        try:
            buf = cl.Buffer(self._context, mf.READ_WRITE | mf.COPY_HOST_PTR, hostbuf=host)
        except cl.Error as e:
            raise BufferAllocationError(status_string(e), "allocate") from e
        return OpenCLBuffer(buf, tuple(host.shape), host.dtype, self._queue)

    def write_buffer(self, buffer: DeviceBuffer, data: np.ndarray) -> None:
        buffer.write_from_numpy(data)

    def dispatch(self, kernel_name: str, lanes: int, args: Sequence[KernelArg]) -> None:
        kernel = self._kernels.get(kernel_name)
        if kernel is None:
            raise DeviceFailure(f"kernel '{kernel_name}' not found", operation="dispatch")
        native = [a.native_handle if isinstance(a, DeviceBuffer) else np.int32(a) for a in args]
        try:
            kernel.set_args(*native)
            event = cl.enqueue_nd_range_kernel(self._queue, kernel, (lanes,), None)
            event.wait()
        except cl.Error as e:
            raise DeviceFailure(status_string(e), operation=kernel_name) from e

    def synchronize(self):
        self._queue.finish()

    def close(self) -> None:
        self._queue.finish()
