"""Shared fixtures and helpers for the shortest-path tests."""

import logging

import numpy as np
import numpy.testing as npt
import pytest

from path_walker.logging_utils import LOG_FORMAT
from sssp_kernels.stage_program import INF_DISTANCE, RELAX_KERNEL
from sssp_runtime.cpu_backend import CPUBackend
from sssp_runtime.errors import DeviceFailure
from sssp_runtime.session import ComputeSession

# Rows hold the weights of the edges entering that vertex.
SAMPLE_ROWS = [
    [1, 4, 2, 0, 0, 0],
    [4, 1, 1, 5, 0, 0],
    [2, 1, 1, 8, 10, 0],
    [0, 5, 8, 1, 2, 6],
    [0, 0, 10, 2, 1, 2],
    [0, 0, 0, 6, 2, 1],
]

SAMPLE_PATH = [(0, 0.0), (2, 3.0), (0, 2.0), (1, 8.0), (3, 10.0), (4, 12.0)]


class FailingBackend(CPUBackend):
    """Reports a device failure on the n-th relax dispatch."""

    def __init__(self, fail_on=1, status="CL_OUT_OF_RESOURCES"):
        super().__init__()
        self.fail_on = fail_on
        self.status = status
        self.relax_calls = 0
        self.buffers = []

    def allocate_buffer(self, data):
        buf = super().allocate_buffer(data)
        self.buffers.append(buf)
        return buf

    def allocate_zeros(self, shape, dtype):
        buf = super().allocate_zeros(shape, dtype)
        self.buffers.append(buf)
        return buf

    def dispatch(self, kernel_name, lanes, args):
        if kernel_name == RELAX_KERNEL:
            self.relax_calls += 1
            if self.relax_calls == self.fail_on:
                raise DeviceFailure(self.status, operation=kernel_name)
        super().dispatch(kernel_name, lanes, args)


@pytest.fixture(scope="session")
def cpu_backend():
    """Session-scoped numpy backend."""
    return CPUBackend()


@pytest.fixture(scope="session")
def cpu_session(cpu_backend):
    """Session-scoped compute session on the numpy backend."""
    return ComputeSession(cpu_backend)


@pytest.fixture
def sample_matrix():
    """The 6x6 reference graph, row-major float32."""
    return np.array(SAMPLE_ROWS, dtype=np.float32).ravel()


@pytest.fixture
def restore_logging():
    """Undo setup_logging() changes to the root logger."""
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler.formatter is not None and handler.formatter._fmt == LOG_FORMAT:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    logging.getLogger("werkzeug").setLevel(logging.NOTSET)


def random_matrix(n, seed=0, density=0.4, max_weight=9):
    """Random non-negative integer-weighted graph with some missing edges."""
    rng = np.random.default_rng(seed)
    weights = rng.integers(1, max_weight + 1, size=(n, n)).astype(np.float32)
    mask = rng.random((n, n)) < density
    return np.where(mask, weights, 0.0).astype(np.float32).ravel()


def reference_distances(matrix, n):
    """Distances from vertex 0 computed by scipy, unreachable mapped to the sentinel.

    Row ``v`` of the matrix holds the edges entering ``v``, so scipy (which
    reads ``graph[i, j]`` as edge i -> j) gets the transpose.
    """
    from scipy.sparse.csgraph import shortest_path

    graph = matrix.reshape(n, n).astype(np.float64).T
    np.fill_diagonal(graph, 0.0)
    dist = shortest_path(graph, method="BF", directed=True, indices=0)
    return np.where(np.isinf(dist), INF_DISTANCE, dist)


def assert_matches_reference(path, matrix, n):
    """Distances equal the reference and every predecessor explains its distance."""
    distances = np.array([d for _, d in path], dtype=np.float64)
    npt.assert_array_equal(distances, reference_distances(matrix, n).astype(np.float32))

    weights = matrix.reshape(n, n)
    for v, (pred, dist) in enumerate(path):
        if v == 0 or dist == INF_DISTANCE:
            continue
        assert dist == distances[pred] + float(weights[v, pred])
