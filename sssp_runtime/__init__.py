from sssp_runtime.backend import Backend, DeviceBuffer
from sssp_runtime.buffer_set import BufferSet
from sssp_runtime.controller import IterationController
from sssp_runtime.cpu_backend import CPUBackend, CPUBuffer
from sssp_runtime.errors import (
    BufferAllocationError,
    DeviceFailure,
    DeviceInitError,
    MatrixValidationError,
    PathWalkerError,
)
from sssp_runtime.extractor import PathEntry, extract_path
from sssp_runtime.pipeline import KernelPipeline
from sssp_runtime.profiler import ProfileResult, profile
from sssp_runtime.session import ComputeSession, SolveResult, create_backend

__all__ = [
    "Backend",
    "DeviceBuffer",
    "BufferSet",
    "CPUBackend",
    "CPUBuffer",
    "ComputeSession",
    "SolveResult",
    "create_backend",
    "IterationController",
    "KernelPipeline",
    "PathEntry",
    "extract_path",
    "ProfileResult",
    "profile",
    "PathWalkerError",
    "MatrixValidationError",
    "DeviceFailure",
    "DeviceInitError",
    "BufferAllocationError",
]

try:
    from sssp_runtime.buffer import MetalBuffer
    from sssp_runtime.device import Device
    from sssp_runtime.metal_backend import MetalBackend

    __all__ += [
        "MetalBackend",
        "Device",
        "MetalBuffer",
    ]
except ImportError:
    pass
