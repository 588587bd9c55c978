"""Shortest-path stage kernels: per-language sources and the shared layout.

Entry point: build_stage_program(language) -> StageProgram

The three stages (init, relax, merge) are written once per device language.
Every backend compiles the same StageProgram layout, so argument binding and
buffer planning stay backend-independent.
"""

from __future__ import annotations

from sssp_kernels.stage_program import BUFFER_PLAN as BUFFER_PLAN
from sssp_kernels.stage_program import INF_DISTANCE as INF_DISTANCE
from sssp_kernels.stage_program import INIT_KERNEL as INIT_KERNEL
from sssp_kernels.stage_program import MERGE_KERNEL as MERGE_KERNEL
from sssp_kernels.stage_program import RELAX_KERNEL as RELAX_KERNEL
from sssp_kernels.stage_program import BufferAllocation as BufferAllocation
from sssp_kernels.stage_program import KernelSignature as KernelSignature
from sssp_kernels.stage_program import StageProgram as StageProgram
from sssp_kernels.stage_program import build_stage_program as build_stage_program
from sssp_kernels.target_config import TargetConfig as TargetConfig
