"""Result extraction: device buffers -> ordered path table."""

from __future__ import annotations

from typing import NamedTuple

from sssp_runtime.buffer_set import BufferSet


class PathEntry(NamedTuple):
    """Best known route to one vertex: predecessor id and distance from vertex 0."""
    predecessor: int
    distance: float


def extract_path(buffers: BufferSet) -> list[PathEntry]:
    """Read back committed distances and predecessors, indexed by vertex id."""
    distances = buffers.read("result")
    predecessors = buffers.read("predecessor")
    return [PathEntry(int(p), float(d)) for p, d in zip(predecessors.tolist(), distances.tolist())]
