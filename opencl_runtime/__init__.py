"""OpenCL runtime: pyopencl-based execution backend."""

from opencl_runtime.opencl_backend import HAS_PYOPENCL as HAS_PYOPENCL
from opencl_runtime.opencl_backend import OpenCLBackend as OpenCLBackend
from opencl_runtime.opencl_backend import OpenCLBuffer as OpenCLBuffer
