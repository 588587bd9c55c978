"""CUDA runtime: CuPy-based GPU execution backend."""

from cuda_runtime.cuda_backend import HAS_CUPY as HAS_CUPY
from cuda_runtime.cuda_backend import CUDABackend as CUDABackend
from cuda_runtime.cuda_backend import CUDABuffer as CUDABuffer
