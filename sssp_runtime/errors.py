"""Error taxonomy for the shortest-path service.

Every error carries a ``kind`` tag so callers at the HTTP boundary can map it
to a response without isinstance ladders:

    ValidationFailure  caller input shape, HTTP 400
    DeviceFailure      stage enqueue / buffer read failed mid-request, HTTP 502
    DeviceInitError    no device or program build failure, fatal at startup
"""

from __future__ import annotations


class PathWalkerError(Exception):
    """Base exception for the shortest-path service."""

    kind = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"status": "error", "message": self.message}


class MatrixValidationError(PathWalkerError):
    """Request matrix rejected before it reaches the compute engine."""

    kind = "ValidationFailure"


class DeviceFailure(PathWalkerError):
    """A device operation failed; ``status`` is the device-reported status string."""

    kind = "DeviceFailure"

    def __init__(self, status: str, operation: str | None = None):
        super().__init__(status)
        self.status = status
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.status}"
        return self.status


class BufferAllocationError(DeviceFailure):
    """Device buffer allocation failed for one request."""


class DeviceInitError(PathWalkerError):
    """The compute device, queue or program could not be constructed."""

    kind = "DeviceInitError"
