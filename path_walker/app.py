"""Flask application exposing the shortest-path solver.

POST /sortest
    body: {"width": int, "height": int, "data": [float, ...]}
    200:  {"status": "ok", "path": [[predecessor, distance], ...]}
    400:  validation failure
    413:  body larger than the configured limit
    502:  device failure while solving
"""

from __future__ import annotations

import logging

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge

from path_walker.config import ServerConfig
from path_walker.validation import validate_payload
from sssp_runtime.errors import DeviceFailure, MatrixValidationError
from sssp_runtime.session import ComputeSession

logger = logging.getLogger(__name__)

SESSION_KEY = "path_walker.session"

PAYLOAD_TOO_LARGE = "The request payload is too large"


def create_app(config: ServerConfig | None = None, session: ComputeSession | None = None) -> Flask:
    """Build the application around one compute session.

    When ``session`` is None the session is created from ``config`` here, so a
    DeviceInitError surfaces before the server starts listening.
    """
    config = config or ServerConfig()
    if session is None:
        session = ComputeSession.create(
            backend=config.backend,
            platform_index=config.platform_index,
            device_index=config.device_index,
            early_exit=config.early_exit,
        )

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.max_content_length
    app.extensions[SESSION_KEY] = session

    @app.errorhandler(RequestEntityTooLarge)
    def payload_too_large(e):
        return jsonify({"status": "error", "message": PAYLOAD_TOO_LARGE}), 413

    @app.route("/sortest", methods=["POST"])
    def sortest():
        """Shortest paths from vertex 0 of the submitted matrix."""
        payload = request.get_json(force=True, silent=True)
        try:
            matrix = validate_payload(payload)
        except MatrixValidationError as e:
            logger.info("Rejected matrix: %s", e.message)
            return jsonify(e.to_dict()), 400

        try:
            path = get_session().solve(matrix.to_numpy(), matrix.vertex_count)
        except DeviceFailure as e:
            return jsonify(e.to_dict()), 502

        return jsonify({
            "status": "ok",
            "path": [[entry.predecessor, entry.distance] for entry in path],
        })

    return app


def get_session() -> ComputeSession:
    """Session of the application handling the current request."""
    return current_app.extensions[SESSION_KEY]
