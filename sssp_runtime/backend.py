"""Abstract backend interfaces for the shortest-path runtime."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence, Union

import numpy as np


class DeviceBuffer(ABC):
    """Abstract device buffer with numpy interop."""

    @property
    @abstractmethod
    def shape(self) -> tuple[int, ...]:
        ...

    @property
    @abstractmethod
    def dtype(self) -> np.dtype:
        ...

    @property
    @abstractmethod
    def size_bytes(self) -> int:
        ...

    @property
    @abstractmethod
    def native_handle(self) -> Any:
        """Backend-native buffer object (e.g. cl.Buffer, cupy.ndarray, MTLBuffer)."""
        ...

    @abstractmethod
    def to_numpy(self) -> np.ndarray:
        """Blocking read of the buffer contents back to the host."""
        ...

    @abstractmethod
    def release(self) -> None:
        """Free the device memory. Safe to call more than once."""
        ...


KernelArg = Union[DeviceBuffer, int]


class Backend(ABC):
    """Abstract compute backend: one device, one queue, one compiled stage program."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def device_name(self) -> str:
        ...

    @abstractmethod
    def allocate_buffer(self, data: np.ndarray) -> DeviceBuffer:
        """Upload host data into a new read-only device buffer."""
        ...

    @abstractmethod
    def allocate_zeros(self, shape: tuple[int, ...], dtype: np.dtype) -> DeviceBuffer:
        """Allocate a zero-filled writable device buffer."""
        ...

    @abstractmethod
    def write_buffer(self, buffer: DeviceBuffer, data: np.ndarray) -> None:
        """Blocking host-to-device overwrite of an existing buffer."""
        ...

    @abstractmethod
    def dispatch(self, kernel_name: str, lanes: int, args: Sequence[KernelArg]) -> None:
        """Run one stage kernel over ``lanes`` lanes and wait for completion."""
        ...

    @abstractmethod
    def synchronize(self):
        ...

    def close(self) -> None:
        """Release device-side resources held by the backend."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
