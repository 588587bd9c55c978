"""CUDA backend: CuPy-based Backend and DeviceBuffer implementations.

Implements the Backend ABC from sssp_runtime.backend using CuPy for
CUDA GPU memory management and NVRTC for the stage kernels.

Architecture:
    - NVRTC compilation of all three stages at __init__ time (one RawModule)
    - Module-level module cache (source hash -> RawModule) avoids re-NVRTC
      when several sessions are built in one process (tests, benchmarks)
    - One non-blocking stream per backend acts as the command queue
    - dispatch() synchronizes the stream before returning (stage barrier)
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Sequence

import numpy as np

from sssp_kernels.stage_program import build_stage_program
from sssp_kernels.target_config import CUDA_GPU, TargetConfig, dispatch_groups
from sssp_runtime.backend import Backend, DeviceBuffer, KernelArg
from sssp_runtime.errors import BufferAllocationError, DeviceFailure, DeviceInitError

try:
    import cupy as cp

    HAS_CUPY = True
except ImportError:
    cp = None
    HAS_CUPY = False

logger = logging.getLogger(__name__)

# Module-level NVRTC compilation cache: source_hash -> RawModule
_MODULE_CACHE: dict[str, "cp.RawModule"] = {}


def _get_or_compile_module(source_code: str) -> "cp.RawModule":
    """Get a compiled module from cache or compile via NVRTC."""
    key = hashlib.md5(source_code.encode()).hexdigest()
    cached = _MODULE_CACHE.get(key)
    if cached is not None:
        return cached
    module = cp.RawModule(code=source_code)
    _MODULE_CACHE[key] = module
    return module


def _cuda_errors() -> tuple[type[BaseException], ...]:
    return (cp.cuda.runtime.CUDARuntimeError, cp.cuda.driver.CUDADriverError)


class CUDABuffer(DeviceBuffer):
    """CUDA GPU buffer backed by cupy.ndarray."""

    def __init__(self, data: cp.ndarray, stream: cp.cuda.Stream | None = None):
        self._data = data
        self._stream = stream

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
    def native_handle(self) -> Any:
        """Return the underlying cupy.ndarray."""
        if self._data is None:
            raise DeviceFailure("buffer already released", operation="access")
        return self._data

    def to_numpy(self) -> np.ndarray:
        """Download to CPU as numpy array (blocking)."""
        try:
            return cp.asnumpy(self.native_handle, stream=self._stream, blocking=True)
        except _cuda_errors() as e:
            raise DeviceFailure(str(e), operation="read") from e

    @classmethod
    def from_numpy(cls, data: np.ndarray, stream: cp.cuda.Stream | None = None) -> CUDABuffer:
        """Upload numpy array to CUDA GPU."""
        try:
            return cls(cp.asarray(data), stream)
        except cp.cuda.memory.OutOfMemoryError as e:
            raise BufferAllocationError(str(e), "allocate") from e

    @classmethod
    def zeros(cls, shape: tuple[int, ...], dtype: np.dtype, stream: cp.cuda.Stream | None = None) -> CUDABuffer:
        """Allocate zero-filled CUDA buffer."""
        try:
            return cls(cp.zeros(shape, dtype=dtype), stream)
        except cp.cuda.memory.OutOfMemoryError as e:
            raise BufferAllocationError(str(e), "allocate") from e

    def write_from_numpy(self, data: np.ndarray) -> None:
        """Write numpy data into existing CUDA buffer (in-place update)."""
        target = self.native_handle
        target.set(np.ascontiguousarray(data, dtype=target.dtype).reshape(target.shape), stream=self._stream)
        if self._stream is not None:
            self._stream.synchronize()

    def release(self) -> None:
        # Memory returns to CuPy's pool once the last reference is dropped
        self._data = None


class CUDABackend(Backend):
    """CUDA GPU execution backend using CuPy."""

    def __init__(self, device_id: int = 0, config: TargetConfig | None = None):
        if not HAS_CUPY:
            raise DeviceInitError("CuPy is not installed. Install with: pip install 'path-walker[cuda]'")
        self._config = config or CUDA_GPU
        self._device_id = device_id
        try:
            if device_id >= cp.cuda.runtime.getDeviceCount():
                raise DeviceInitError(f"CUDA device {device_id} not found")
            self._cp_device = cp.cuda.Device(device_id)
            self._cp_device.use()
            self._stream = cp.cuda.Stream(non_blocking=True)
            self._program = build_stage_program("cuda")
            module = _get_or_compile_module(self._program.source_code)
            self._kernels = {name: module.get_function(name) for name in self._program.kernel_names}
            props = cp.cuda.runtime.getDeviceProperties(device_id)
        except _cuda_errors() + (cp.cuda.compiler.CompileException,) as e:
            raise DeviceInitError(f"Failed to initialize CUDA device {device_id}: {e}") from e

        name = props.get("name", b"")
        self._device_name = name.decode() if isinstance(name, bytes) else str(name)
        logger.info("Using device: %s (CUDA device %d)", self._device_name, device_id)

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def device_name(self) -> str:
        return self._device_name or f"CUDA Device {self._device_id}"

    @property
    def device(self) -> Any:
        """Return CuPy device object."""
        return self._cp_device

    def allocate_buffer(self, data: np.ndarray) -> CUDABuffer:
        with self._cp_device:
            return CUDABuffer.from_numpy(data, stream=self._stream)

    def allocate_zeros(self, shape: tuple[int, ...], dtype: np.dtype) -> CUDABuffer:
        with self._cp_device:
            return CUDABuffer.zeros(tuple(shape), dtype, stream=self._stream)

    def write_buffer(self, buffer: DeviceBuffer, data: np.ndarray) -> None:
        try:
            buffer.write_from_numpy(data)
        except _cuda_errors() as e:
            raise DeviceFailure(str(e), operation="write") from e

    def dispatch(self, kernel_name: str, lanes: int, args: Sequence[KernelArg]) -> None:
        kernel = self._kernels.get(kernel_name)
        if kernel is None:
            raise DeviceFailure(f"kernel '{kernel_name}' not found", operation="dispatch")
        native = tuple(a.native_handle if isinstance(a, DeviceBuffer) else np.int32(a) for a in args)
        groups, tpg = dispatch_groups(lanes, self._config)
        try:
            with self._cp_device, self._stream:
                kernel((groups,), (tpg,), native)
            self._stream.synchronize()
        except _cuda_errors() as e:
            raise DeviceFailure(str(e), operation=kernel_name) from e

    def synchronize(self):
        """Synchronize the backend stream."""
        self._stream.synchronize()
