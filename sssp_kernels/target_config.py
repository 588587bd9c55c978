"""Hardware target configuration for the shortest-path backends."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TargetConfig:
    """Hardware-specific constants for a target backend."""
    name: str
    threads_per_group: int = 128
    max_vertices: int = 128


OPENCL_DEVICE = TargetConfig(name="opencl")
CUDA_GPU = TargetConfig(name="cuda", threads_per_group=128)
METAL_GPU = TargetConfig(name="metal", threads_per_group=64)
NUMPY_CPU = TargetConfig(name="cpu", threads_per_group=1)


def dispatch_groups(lanes: int, config: TargetConfig) -> tuple[int, int]:
    """Return (groups, threads_per_group) covering ``lanes`` 1D lanes.

    Trailing lanes in the last group fall outside the vertex range and are
    expected to exit immediately inside the kernel.
    """
    tpg = max(1, min(config.threads_per_group, lanes))
    groups = (lanes + tpg - 1) // tpg
    return groups, tpg
