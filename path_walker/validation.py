"""Validation boundary between the HTTP layer and the compute engine.

The core trusts its input, so every structural check happens here, in a
fixed order, each with a fixed client-facing message.
"""

from __future__ import annotations

import numbers
from typing import Any

from path_walker.models import Matrix
from sssp_kernels.target_config import OPENCL_DEVICE
from sssp_runtime.errors import MatrixValidationError

MAX_VERTICES = OPENCL_DEVICE.max_vertices

MALFORMED = "The matrix payload is malformed"
EMPTY = "The matrix is empty"
NOT_SQUARE = "The matrix is not square"
TOO_BIG = "The matrix is too big"
SIZE_MISMATCH = "The matrix size and dimensions are not the same"


def _is_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def parse_matrix(payload: Any) -> Matrix:
    """Turn a decoded JSON body into a Matrix, or reject it as malformed."""
    if not isinstance(payload, dict):
        raise MatrixValidationError(MALFORMED)

    width = payload.get("width")
    height = payload.get("height")
    data = payload.get("data")
    if not (_is_int(width) and _is_int(height) and isinstance(data, list)):
        raise MatrixValidationError(MALFORMED)
    if width < 0 or height < 0:
        raise MatrixValidationError(MALFORMED)
    if not all(_is_number(v) for v in data):
        raise MatrixValidationError(MALFORMED)

    return Matrix(width=int(width), height=int(height), data=[float(v) for v in data])


def validate_matrix(matrix: Matrix, max_vertices: int = MAX_VERTICES) -> Matrix:
    """Check the matrix shape, in order: empty, square, size limit, data length."""
    if len(matrix.data) == 0:
        raise MatrixValidationError(EMPTY)
    if matrix.width != matrix.height:
        raise MatrixValidationError(NOT_SQUARE)
    if matrix.width > max_vertices:
        raise MatrixValidationError(TOO_BIG)
    if matrix.width * matrix.height != len(matrix.data):
        raise MatrixValidationError(SIZE_MISMATCH)
    return matrix


def validate_payload(payload: Any, max_vertices: int = MAX_VERTICES) -> Matrix:
    """parse_matrix followed by validate_matrix."""
    return validate_matrix(parse_matrix(payload), max_vertices=max_vertices)
