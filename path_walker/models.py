"""Request model for the shortest-path endpoint."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from sssp_kernels.stage_program import DISTANCE_DTYPE


@dataclass
class Matrix:
    """Adjacency matrix as submitted by a client: ``{width, height, data}``."""
    width: int
    height: int
    data: list[float] = field(default_factory=list)

    @property
    def vertex_count(self) -> int:
        return self.width

    def to_numpy(self) -> np.ndarray:
        """Row-major float32 weights, ``width * height`` values."""
        return np.asarray(self.data, dtype=DISTANCE_DTYPE)
