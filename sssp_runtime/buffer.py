"""Metal buffer wrapper with numpy interop."""

from __future__ import annotations

import numpy as np

from sssp_runtime.backend import DeviceBuffer
from sssp_runtime.device import Device
from sssp_runtime.errors import BufferAllocationError, DeviceFailure

# MTLResourceStorageModeShared: CPU and GPU can both access the buffer without
# explicit copies. Needed for matrix upload (CPU writes) and result readback.
_STORAGE_MODE_SHARED = 0  # MTLResourceStorageModeShared


class MetalBuffer(DeviceBuffer):
    """Metal-backed buffer holding float32 distances or int32 indices/flags.

    Storage is kept in the host dtype; no conversion happens on upload or
    readback. Shared storage means to_numpy() is a plain copy of the
    buffer contents once the last command buffer has completed.
    """

    def __init__(self, mtl_buffer, shape: tuple[int, ...], dtype: np.dtype, device: Device):
        self._buffer = mtl_buffer
        self._shape = shape
        self._dtype = dtype
        self._device = device

    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def mtl_buffer(self):
        if self._buffer is None:
            raise DeviceFailure("buffer already released", operation="access")
        return self._buffer

    @property
    def native_handle(self):
        return self.mtl_buffer

    @property
    def size_bytes(self) -> int:
        return int(np.prod(self._shape)) * self._dtype.itemsize

    @staticmethod
    def from_numpy(data: np.ndarray, device: Device) -> MetalBuffer:
        """Create a Metal buffer holding a copy of ``data``."""
        contiguous = np.ascontiguousarray(data)
        raw_bytes = contiguous.tobytes()
        mtl_buffer = device.mtl_device.newBufferWithBytes_length_options_(
            raw_bytes,
            len(raw_bytes),
            _STORAGE_MODE_SHARED,
        )
        if mtl_buffer is None:
            raise BufferAllocationError(f"Failed to allocate Metal buffer ({len(raw_bytes)} bytes)", "allocate")
        return MetalBuffer(mtl_buffer, tuple(contiguous.shape), contiguous.dtype, device)

    @staticmethod
    def zeros(shape: tuple[int, ...], device: Device, dtype: np.dtype = np.dtype(np.float32)) -> MetalBuffer:
        """Create a zero-initialized Metal buffer."""
        shape = tuple(shape)
        size_bytes = int(np.prod(shape)) * np.dtype(dtype).itemsize

        # Metal cannot allocate 0-byte buffers; use 1-byte placeholder
        alloc_bytes = max(size_bytes, 1)
        mtl_buffer = device.mtl_device.newBufferWithBytes_length_options_(
            b"\x00" * alloc_bytes, alloc_bytes, _STORAGE_MODE_SHARED,
        )
        if mtl_buffer is None:
            raise BufferAllocationError(f"Failed to allocate Metal buffer ({alloc_bytes} bytes)", "allocate")
        return MetalBuffer(mtl_buffer, shape, np.dtype(dtype), device)

    def write_from_numpy(self, data: np.ndarray) -> None:
        """Write numpy data into the existing Metal buffer in-place (no allocation)."""
        contiguous = np.ascontiguousarray(data, dtype=self._dtype).reshape(self._shape)
        raw = contiguous.tobytes()
        buf = self.mtl_buffer.contents().as_buffer(len(raw))
        buf[:] = raw

    def to_numpy(self) -> np.ndarray:
        """Read buffer contents back as a numpy array in the storage dtype."""
        nbytes = self.size_bytes
        if nbytes == 0:
            return np.zeros(self._shape, dtype=self._dtype)

        mv = self.mtl_buffer.contents().as_buffer(nbytes)
        return np.frombuffer(mv, dtype=self._dtype).copy().reshape(self._shape)

    def release(self) -> None:
        # pyobjc releases the MTLBuffer once the last reference is dropped
        self._buffer = None
