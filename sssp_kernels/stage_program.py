"""Stage program data model: kernel names, argument layout, buffer plan.

A StageProgram is what every backend compiles once at session start. It
bundles the source for one device language with the fixed kernel signatures
and the per-request buffer plan, so the host pipeline can bind arguments by
name without knowing which device it is talking to.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from sssp_kernels.templates import CUDA_SOURCE, METAL_SOURCE, OPENCL_SOURCE

# Largest finite float32. Marks unreached vertices and explicit "no edge" weights.
INF_DISTANCE = float(np.finfo(np.float32).max)

DISTANCE_DTYPE = np.dtype(np.float32)
INDEX_DTYPE = np.dtype(np.int32)

INIT_KERNEL = "initialize_algorithm_buffers"
RELAX_KERNEL = "shortest_path_algorithm"
MERGE_KERNEL = "merge_shortest_path"

STAGE_KERNELS = (INIT_KERNEL, RELAX_KERNEL, MERGE_KERNEL)


@dataclass(frozen=True)
class BufferAllocation:
    """Per-request device buffer. ``length`` is a multiple of the vertex count."""

    name: str
    dtype: np.dtype
    scale: str = "vertices"  # "vertices", "matrix" (N*N) or "flag" (1)
    read_only: bool = False

    def length(self, vertex_count: int) -> int:
        if self.scale == "matrix":
            return vertex_count * vertex_count
        if self.scale == "flag":
            return 1
        return vertex_count


@dataclass(frozen=True)
class KernelSignature:
    """Ordered argument names of one stage kernel.

    Names refer to BufferAllocation.name, except "vertex_count" which is the
    scalar lane count passed as int32.
    """

    kernel_name: str
    arguments: tuple[str, ...]


BUFFER_PLAN: tuple[BufferAllocation, ...] = (
    BufferAllocation("matrix", DISTANCE_DTYPE, scale="matrix", read_only=True),
    BufferAllocation("result", DISTANCE_DTYPE),
    BufferAllocation("distance", DISTANCE_DTYPE),
    BufferAllocation("visited", INDEX_DTYPE),
    BufferAllocation("predecessor", INDEX_DTYPE),
    BufferAllocation("candidate_predecessor", INDEX_DTYPE),
    BufferAllocation("changed", INDEX_DTYPE, scale="flag"),
)

SIGNATURES: dict[str, KernelSignature] = {
    INIT_KERNEL: KernelSignature(
        INIT_KERNEL,
        ("result", "distance", "visited", "predecessor", "candidate_predecessor", "vertex_count"),
    ),
    RELAX_KERNEL: KernelSignature(
        RELAX_KERNEL,
        ("result", "matrix", "distance", "visited", "candidate_predecessor", "vertex_count"),
    ),
    MERGE_KERNEL: KernelSignature(
        MERGE_KERNEL,
        ("result", "distance", "visited", "predecessor", "candidate_predecessor", "changed", "vertex_count"),
    ),
}


@dataclass(frozen=True)
class StageProgram:
    """Source for one device language plus the shared kernel layout."""

    language: str
    source_code: str
    kernel_names: tuple[str, ...] = STAGE_KERNELS
    signatures: dict[str, KernelSignature] = field(default_factory=lambda: dict(SIGNATURES))
    buffer_plan: tuple[BufferAllocation, ...] = BUFFER_PLAN


_SOURCES = {
    "opencl": OPENCL_SOURCE,
    "cuda": CUDA_SOURCE,
    "metal": METAL_SOURCE,
    # The numpy device interprets the stages directly; there is no source to build.
    "numpy": "",
}


def build_stage_program(language: str) -> StageProgram:
    """Return the StageProgram for a device language.

    Args:
        language: "opencl", "cuda", "metal" or "numpy".
    """
    if language not in _SOURCES:
        raise ValueError(f"Unknown kernel language: {language!r} (expected one of {sorted(_SOURCES)})")
    return StageProgram(language=language, source_code=_SOURCES[language])
