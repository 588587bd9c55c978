"""HTTP layer: POST /sortest through Flask's test client, and the CLI."""

import json

import pytest
from flask import Flask

from path_walker import cli
from path_walker.app import SESSION_KEY, create_app
from path_walker.config import ServerConfig
from path_walker.validation import EMPTY, MALFORMED, NOT_SQUARE, SIZE_MISMATCH, TOO_BIG
from sssp_kernels.stage_program import INF_DISTANCE
from sssp_runtime.errors import DeviceInitError
from sssp_runtime.session import ComputeSession
from tests.conftest import SAMPLE_PATH, SAMPLE_ROWS, FailingBackend

SAMPLE_BODY = {"width": 6, "height": 6, "data": [w for row in SAMPLE_ROWS for w in row]}


@pytest.fixture
def client(cpu_session):
    app = create_app(ServerConfig(backend="cpu"), session=cpu_session)
    app.testing = True
    return app.test_client()


class TestSortest:
    def test_sample_graph(self, client):
        resp = client.post("/sortest", json=SAMPLE_BODY)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "ok"
        assert [tuple(entry) for entry in body["path"]] == SAMPLE_PATH

    def test_unreachable_distance_is_sentinel(self, client):
        resp = client.post("/sortest", json={"width": 2, "height": 2, "data": [0, 0, 0, 0]})
        assert resp.status_code == 200
        assert resp.get_json()["path"] == [[0, 0.0], [0, INF_DISTANCE]]

    def test_body_without_json_content_type(self, client):
        resp = client.post("/sortest", data=json.dumps(SAMPLE_BODY))
        assert resp.status_code == 200

    @pytest.mark.parametrize("body,message", [
        ({"width": 3, "height": 3, "data": []}, EMPTY),
        ({"width": 2, "height": 3, "data": [1] * 6}, NOT_SQUARE),
        ({"width": 129, "height": 129, "data": [1]}, TOO_BIG),
        ({"width": 2, "height": 2, "data": [1, 2, 3]}, SIZE_MISMATCH),
        ({"width": 2, "height": 2}, MALFORMED),
    ])
    def test_validation_errors(self, client, body, message):
        resp = client.post("/sortest", json=body)
        assert resp.status_code == 400
        assert resp.get_json() == {"status": "error", "message": message}

    def test_invalid_json(self, client):
        resp = client.post("/sortest", data="{not json", content_type="application/json")
        assert resp.status_code == 400
        assert resp.get_json()["message"] == MALFORMED

    def test_payload_too_large(self, cpu_session):
        app = create_app(ServerConfig(backend="cpu", max_content_length=64), session=cpu_session)
        resp = app.test_client().post("/sortest", json=SAMPLE_BODY)
        assert resp.status_code == 413
        assert resp.get_json() == {"status": "error", "message": "The request payload is too large"}

    def test_get_not_allowed(self, client):
        assert client.get("/sortest").status_code == 405

    def test_device_failure(self):
        app = create_app(ServerConfig(backend="cpu"), session=ComputeSession(FailingBackend()))
        resp = app.test_client().post("/sortest", json=SAMPLE_BODY)
        assert resp.status_code == 502
        assert resp.get_json() == {"status": "error", "message": "CL_OUT_OF_RESOURCES"}


class TestCreateApp:
    def test_session_from_config(self):
        app = create_app(ServerConfig(backend="cpu", early_exit=True))
        session = app.extensions[SESSION_KEY]
        try:
            assert session.backend.name == "cpu"
            assert session.early_exit
            assert app.config["MAX_CONTENT_LENGTH"] == 16 * 1024 * 1024
        finally:
            session.close()

    def test_injected_session(self, cpu_session):
        app = create_app(session=cpu_session)
        assert app.extensions[SESSION_KEY] is cpu_session


class TestCli:
    def test_serves_with_selected_backend(self, monkeypatch, restore_logging):
        calls = {}

        def fake_run(self, host=None, port=None, **kwargs):
            calls.update(host=host, port=port, session=self.extensions[SESSION_KEY])

        monkeypatch.setattr(Flask, "run", fake_run)
        assert cli.main(["--backend", "cpu", "--port", "9090", "--log-level", "WARNING"]) == 0
        assert calls["host"] == "127.0.0.1"
        assert calls["port"] == 9090
        assert calls["session"].backend.name == "cpu"

    def test_env_is_overridden_by_flags(self, monkeypatch, restore_logging):
        calls = {}
        monkeypatch.setattr(Flask, "run", lambda self, host=None, port=None, **kw: calls.update(port=port))
        monkeypatch.setenv("PATH_WALKER_PORT", "7000")
        monkeypatch.setenv("PATH_WALKER_BACKEND", "cpu")
        assert cli.main([]) == 0
        assert calls["port"] == 7000
        assert cli.main(["--port", "7001"]) == 0
        assert calls["port"] == 7001

    def test_device_init_failure_exits_nonzero(self, monkeypatch, restore_logging):
        def broken_app(config):
            raise DeviceInitError("No OpenCL platform available")

        monkeypatch.setattr(cli, "create_app", broken_app)
        assert cli.main(["--backend", "cpu"]) == 1

    def test_invalid_env(self, monkeypatch):
        monkeypatch.setenv("PATH_WALKER_PORT", "http")
        assert cli.main([]) == 2
