"""OpenCL backend: program build and dispatch against the numpy reference.

Skipped automatically if pyopencl or an OpenCL device is not available.
"""

import numpy as np
import numpy.testing as npt
import pytest

from opencl_runtime.opencl_backend import HAS_PYOPENCL
from sssp_runtime.errors import DeviceInitError
from sssp_runtime.session import ComputeSession
from tests.conftest import SAMPLE_PATH, random_matrix

pytestmark = pytest.mark.skipif(not HAS_PYOPENCL, reason="pyopencl not available")


@pytest.fixture(scope="module")
def opencl_backend():
    from opencl_runtime.opencl_backend import OpenCLBackend

    try:
        backend = OpenCLBackend()
    except DeviceInitError as e:
        pytest.skip(f"No usable OpenCL device: {e}")
    yield backend
    backend.close()


# ---------------------------------------------------------------------------
# 1. OpenCLBuffer
# ---------------------------------------------------------------------------


class TestOpenCLBuffer:
    def test_roundtrip(self, opencl_backend):
        data = np.arange(16, dtype=np.float32)
        buf = opencl_backend.allocate_buffer(data)
        npt.assert_array_equal(buf.to_numpy(), data)
        assert buf.size_bytes == 64
        buf.release()

    def test_zeros_and_write(self, opencl_backend):
        buf = opencl_backend.allocate_zeros((4,), np.int32)
        npt.assert_array_equal(buf.to_numpy(), np.zeros(4, dtype=np.int32))
        opencl_backend.write_buffer(buf, np.array([1, 2, 3, 4], dtype=np.int32))
        npt.assert_array_equal(buf.to_numpy(), [1, 2, 3, 4])
        buf.release()


# ---------------------------------------------------------------------------
# 2. Solves
# ---------------------------------------------------------------------------


class TestOpenCLSolve:
    def test_sample_graph(self, opencl_backend, sample_matrix):
        path = ComputeSession(opencl_backend).solve(sample_matrix, 6)
        assert [(p, d) for p, d in path] == SAMPLE_PATH

    @pytest.mark.parametrize("n", [1, 7, 64, 128])
    def test_matches_cpu(self, opencl_backend, cpu_session, n):
        matrix = random_matrix(n, seed=n, density=0.3)
        assert ComputeSession(opencl_backend).solve(matrix, n) == cpu_session.solve(matrix, n)

    def test_early_exit(self, opencl_backend, cpu_session):
        matrix = random_matrix(50, seed=9, density=0.3)
        result = ComputeSession(opencl_backend, early_exit=True).run(matrix, 50)
        assert result.path == cpu_session.solve(matrix, 50)
        assert result.rounds <= 50


def test_missing_platform():
    from opencl_runtime.opencl_backend import OpenCLBackend

    with pytest.raises(DeviceInitError):
        OpenCLBackend(platform_index=1000)
