"""Stage kernel sources for every device language.

Each constant holds the complete source of the three pipeline stages for one
backend. The algorithm is the same everywhere; only the dialect differs:

    initialize_algorithm_buffers  one lane per vertex, seeds result/visited
    shortest_path_algorithm       pull-relaxation over the vertex's matrix row
    merge_shortest_path           commits improved candidates, re-arms visited

Argument order is fixed (see sssp_kernels.stage_program) so the host side can
bind buffers identically on every backend.
"""

from __future__ import annotations

OPENCL_SOURCE = r"""
#define INF_DISTANCE 3.402823466e+38f

__kernel void initialize_algorithm_buffers(__global float *result, __global float *distance,
                                           __global int *visited, __global int *predecessor,
                                           __global int *candidate_predecessor, int vertex_count) {
    int gid = get_global_id(0);
    if (gid >= vertex_count) return;

    if (gid == 0) {
        result[gid] = 0.0f;
        visited[gid] = 1;
    } else {
        result[gid] = INF_DISTANCE;
        visited[gid] = 0;
    }
    distance[gid] = 0.0f;
    predecessor[gid] = 0;
    candidate_predecessor[gid] = 0;
}

__kernel void shortest_path_algorithm(__global const float *result, __global const float *matrix,
                                      __global float *distance, __global int *visited,
                                      __global int *candidate_predecessor, int vertex_count) {
    int gid = get_global_id(0);
    if (gid >= vertex_count) return;

    // A visited lane keeps whatever candidate it produced last time
    if (visited[gid] == 1) return;
    visited[gid] = 1;

    float best = INF_DISTANCE;
    int best_edge = 0;
    for (int edge = 0; edge < vertex_count; edge++) {
        float weight = matrix[gid * vertex_count + edge];
        if (weight != 0.0f && isfinite(weight) && weight != INF_DISTANCE) {
            float dist = result[edge] + weight;
            if (dist < best) {
                best = dist;
                best_edge = edge;
            }
        }
    }
    distance[gid] = best;
    candidate_predecessor[gid] = best_edge;
}

__kernel void merge_shortest_path(__global float *result, __global const float *distance,
                                  __global int *visited, __global int *predecessor,
                                  __global const int *candidate_predecessor, __global int *changed,
                                  int vertex_count) {
    int gid = get_global_id(0);
    if (gid >= vertex_count) return;

    if (distance[gid] < result[gid]) {
        result[gid] = distance[gid];
        predecessor[gid] = candidate_predecessor[gid];
        changed[0] = 1;
    }

    if (gid != 0) {
        visited[gid] = 0;
    }
}
"""

CUDA_SOURCE = r"""
#define INF_DISTANCE 3.402823466e+38f

extern "C" {
__global__ void initialize_algorithm_buffers(float* result, float* distance, int* visited,
                                             int* predecessor, int* candidate_predecessor,
                                             int vertex_count) {
    int gid = blockIdx.x * blockDim.x + threadIdx.x;
    if (gid >= vertex_count) return;

    if (gid == 0) {
        result[gid] = 0.0f;
        visited[gid] = 1;
    } else {
        result[gid] = INF_DISTANCE;
        visited[gid] = 0;
    }
    distance[gid] = 0.0f;
    predecessor[gid] = 0;
    candidate_predecessor[gid] = 0;
}

__global__ void shortest_path_algorithm(const float* result, const float* matrix, float* distance,
                                        int* visited, int* candidate_predecessor, int vertex_count) {
    int gid = blockIdx.x * blockDim.x + threadIdx.x;
    if (gid >= vertex_count) return;

    if (visited[gid] == 1) return;
    visited[gid] = 1;

    float best = INF_DISTANCE;
    int best_edge = 0;
    for (int edge = 0; edge < vertex_count; edge++) {
        float weight = matrix[gid * vertex_count + edge];
        if (weight != 0.0f && isfinite(weight) && weight != INF_DISTANCE) {
            float dist = result[edge] + weight;
            if (dist < best) {
                best = dist;
                best_edge = edge;
            }
        }
    }
    distance[gid] = best;
    candidate_predecessor[gid] = best_edge;
}

__global__ void merge_shortest_path(float* result, const float* distance, int* visited,
                                    int* predecessor, const int* candidate_predecessor,
                                    int* changed, int vertex_count) {
    int gid = blockIdx.x * blockDim.x + threadIdx.x;
    if (gid >= vertex_count) return;

    if (distance[gid] < result[gid]) {
        result[gid] = distance[gid];
        predecessor[gid] = candidate_predecessor[gid];
        changed[0] = 1;
    }

    if (gid != 0) {
        visited[gid] = 0;
    }
}
}
"""

METAL_SOURCE = r"""
#include <metal_stdlib>
using namespace metal;

constant float INF_DISTANCE = 3.402823466e+38f;

kernel void initialize_algorithm_buffers(device float* result [[buffer(0)]],
                                         device float* distance [[buffer(1)]],
                                         device int* visited [[buffer(2)]],
                                         device int* predecessor [[buffer(3)]],
                                         device int* candidate_predecessor [[buffer(4)]],
                                         constant int& vertex_count [[buffer(5)]],
                                         uint gid [[thread_position_in_grid]]) {
    if (int(gid) >= vertex_count) return;

    if (gid == 0) {
        result[gid] = 0.0f;
        visited[gid] = 1;
    } else {
        result[gid] = INF_DISTANCE;
        visited[gid] = 0;
    }
    distance[gid] = 0.0f;
    predecessor[gid] = 0;
    candidate_predecessor[gid] = 0;
}

kernel void shortest_path_algorithm(device const float* result [[buffer(0)]],
                                    device const float* matrix [[buffer(1)]],
                                    device float* distance [[buffer(2)]],
                                    device int* visited [[buffer(3)]],
                                    device int* candidate_predecessor [[buffer(4)]],
                                    constant int& vertex_count [[buffer(5)]],
                                    uint gid [[thread_position_in_grid]]) {
    if (int(gid) >= vertex_count) return;

    if (visited[gid] == 1) return;
    visited[gid] = 1;

    float best = INF_DISTANCE;
    int best_edge = 0;
    for (int edge = 0; edge < vertex_count; edge++) {
        float weight = matrix[int(gid) * vertex_count + edge];
        if (weight != 0.0f && isfinite(weight) && weight != INF_DISTANCE) {
            float dist = result[edge] + weight;
            if (dist < best) {
                best = dist;
                best_edge = edge;
            }
        }
    }
    distance[gid] = best;
    candidate_predecessor[gid] = best_edge;
}

kernel void merge_shortest_path(device float* result [[buffer(0)]],
                                device const float* distance [[buffer(1)]],
                                device int* visited [[buffer(2)]],
                                device int* predecessor [[buffer(3)]],
                                device const int* candidate_predecessor [[buffer(4)]],
                                device int* changed [[buffer(5)]],
                                constant int& vertex_count [[buffer(6)]],
                                uint gid [[thread_position_in_grid]]) {
    if (int(gid) >= vertex_count) return;

    if (distance[gid] < result[gid]) {
        result[gid] = distance[gid];
        predecessor[gid] = candidate_predecessor[gid];
        changed[0] = 1;
    }

    if (gid != 0) {
        visited[gid] = 0;
    }
}
"""
