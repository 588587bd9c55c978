"""HTTP service around the GPU shortest-path engine."""

from path_walker.app import create_app, get_session
from path_walker.config import ServerConfig
from path_walker.models import Matrix
from path_walker.validation import parse_matrix, validate_matrix, validate_payload

__all__ = [
    "create_app",
    "get_session",
    "ServerConfig",
    "Matrix",
    "parse_matrix",
    "validate_matrix",
    "validate_payload",
]
