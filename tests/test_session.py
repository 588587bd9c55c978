"""ComputeSession end-to-end on the numpy device, plus backend selection."""

import threading
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from sssp_kernels.stage_program import INF_DISTANCE
from sssp_runtime.backend import Backend
from sssp_runtime.cpu_backend import CPUBackend
from sssp_runtime.errors import DeviceFailure, DeviceInitError
from sssp_runtime.extractor import PathEntry
from sssp_runtime.session import ComputeSession, SolveResult, create_backend
from tests.conftest import SAMPLE_PATH, FailingBackend, assert_matches_reference, random_matrix


class TestSolve:
    def test_sample_graph(self, cpu_session, sample_matrix):
        path = cpu_session.solve(sample_matrix, 6)
        assert [(p, d) for p, d in path] == SAMPLE_PATH

    def test_run_reports_rounds(self, cpu_session, sample_matrix):
        result = cpu_session.run(sample_matrix, 6)
        assert isinstance(result, SolveResult)
        assert result.rounds == 6
        assert result.elapsed_ms >= 0

    def test_deterministic(self, cpu_session):
        matrix = random_matrix(30, seed=11)
        first = cpu_session.solve(matrix, 30)
        for _ in range(3):
            assert cpu_session.solve(matrix, 30) == first

    def test_source_distance_is_zero(self, cpu_session):
        for seed in range(5):
            path = cpu_session.solve(random_matrix(10, seed=seed), 10)
            assert path[0] == PathEntry(0, 0.0)

    def test_unreachable_vertex(self, cpu_session):
        matrix = np.array([
            [0, 0, 0],
            [3, 0, 0],
            [0, 0, 0],
        ], dtype=np.float32).ravel()
        path = cpu_session.solve(matrix, 3)
        assert path[1] == PathEntry(0, 3.0)
        assert path[2] == PathEntry(0, INF_DISTANCE)

    def test_entry_types(self, cpu_session, sample_matrix):
        for entry in cpu_session.solve(sample_matrix, 6):
            assert type(entry.predecessor) is int
            assert type(entry.distance) is float

    @pytest.mark.parametrize("n,seed", [(2, 0), (8, 1), (33, 2), (64, 3), (128, 4)])
    def test_matches_scipy(self, cpu_session, n, seed):
        pytest.importorskip("scipy")
        matrix = random_matrix(n, seed=seed, density=0.15)
        assert_matches_reference(cpu_session.solve(matrix, n), matrix, n)


class TestFailures:
    def test_device_failure_propagates(self, sample_matrix):
        backend = FailingBackend(fail_on=3)
        session = ComputeSession(backend)
        with pytest.raises(DeviceFailure) as excinfo:
            session.run(sample_matrix, 6)
        assert excinfo.value.status == "CL_OUT_OF_RESOURCES"
        assert all(buf.released for buf in backend.buffers)

    def test_device_failure_is_logged(self, sample_matrix, caplog):
        session = ComputeSession(FailingBackend())
        with caplog.at_level("ERROR", logger="sssp_runtime.session"):
            with pytest.raises(DeviceFailure):
                session.run(sample_matrix, 6)
        assert "Critical error occurred in kernel" in caplog.text
        assert "CL_OUT_OF_RESOURCES" in caplog.text

    def test_session_usable_after_failure(self, sample_matrix):
        session = ComputeSession(FailingBackend(fail_on=1))
        with pytest.raises(DeviceFailure):
            session.solve(sample_matrix, 6)
        assert [(p, d) for p, d in session.solve(sample_matrix, 6)] == SAMPLE_PATH

    def test_closed_session_rejects_work(self, sample_matrix):
        session = ComputeSession(CPUBackend())
        with session:
            pass
        with pytest.raises(DeviceInitError):
            session.solve(sample_matrix, 6)
        session.close()


class TestConcurrency:
    def test_parallel_requests_match_sequential(self, cpu_session):
        matrices = [(random_matrix(n, seed=n), n) for n in (5, 9, 16, 24, 40, 7, 12, 31)]
        expected = [cpu_session.solve(m, n) for m, n in matrices]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda args: cpu_session.solve(*args), matrices * 3))

        assert results == expected * 3

    def test_one_job_in_flight(self, sample_matrix):
        in_flight = 0
        peak = 0
        guard = threading.Lock()

        class CountingBackend(CPUBackend):
            def dispatch(self, kernel_name, lanes, args):
                nonlocal in_flight, peak
                with guard:
                    in_flight += 1
                    peak = max(peak, in_flight)
                try:
                    super().dispatch(kernel_name, lanes, args)
                finally:
                    with guard:
                        in_flight -= 1

        session = ComputeSession(CountingBackend())
        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(lambda _: session.solve(sample_matrix, 6), range(16)))
        assert peak == 1


class TestCreateBackend:
    def test_cpu(self):
        backend = create_backend("cpu")
        assert isinstance(backend, CPUBackend)
        assert backend.name == "cpu"

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown backend"):
            create_backend("vulkan")

    def test_auto_always_yields_a_backend(self):
        backend = create_backend("auto")
        try:
            assert isinstance(backend, Backend)
        finally:
            backend.close()

    def test_session_create(self):
        with ComputeSession.create(backend="cpu", early_exit=True) as session:
            assert session.backend.name == "cpu"
            assert session.early_exit
