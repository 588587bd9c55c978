"""Shortest-path solve benchmark across backends and graph sizes.

Times one full solve (buffer allocation, Init + N x (Relax, Merge), readback)
on random graphs of growing vertex count, with and without early exit.

Prerequisites:
    pip install -e '.[opencl,bench]'   # or [cuda,bench] / [metal,bench]

Usage:
    python benchmarks/benchmark_sssp.py
    python benchmarks/benchmark_sssp.py --backend cpu opencl
    python benchmarks/benchmark_sssp.py --sizes 16 64 128 --iterations 20
    python benchmarks/benchmark_sssp.py --density 0.05      # sparse graphs
    python benchmarks/benchmark_sssp.py --chart sssp.png --json sssp.json
"""

from __future__ import annotations

import argparse
import json
import os
import platform
import sys
from dataclasses import dataclass, field

import numpy as np

# Allow running from project root or benchmarks/
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sssp_runtime.errors import DeviceInitError  # noqa: E402
from sssp_runtime.profiler import profile  # noqa: E402
from sssp_runtime.session import ComputeSession  # noqa: E402

DEFAULT_SIZES = [8, 16, 32, 64, 128]


@dataclass
class BenchPoint:
    backend: str
    vertices: int
    early_exit: bool
    solve_ms: float
    rounds: int


@dataclass
class BenchReport:
    environment: dict
    density: float
    iterations: int
    devices: dict[str, str] = field(default_factory=dict)
    points: list[BenchPoint] = field(default_factory=list)


def get_environment_info() -> dict:
    """Collect execution environment details."""
    return {
        "platform": platform.platform(),
        "machine": platform.machine(),
        "python": platform.python_version(),
        "processor": platform.processor() or "unknown",
    }


def random_graph(n: int, density: float, seed: int) -> np.ndarray:
    """Row-major random graph with integer weights 1..9 and ~density edges."""
    rng = np.random.default_rng(seed)
    weights = rng.integers(1, 10, size=(n, n)).astype(np.float32)
    mask = rng.random((n, n)) < density
    return np.where(mask, weights, 0.0).astype(np.float32).ravel()


def benchmark_backend(name: str, sizes: list[int], density: float, warmup: int, iterations: int,
                      report: BenchReport):
    """Profile one backend over every size, full schedule and early exit."""
    try:
        session = ComputeSession.create(backend=name)
    except DeviceInitError as e:
        print(f"  [SKIP] {name}: {e}")
        return

    with session:
        report.devices[name] = session.backend.device_name
        for n in sizes:
            matrix = random_graph(n, density, seed=n)
            for early_exit in (False, True):
                bench_session = ComputeSession(session.backend, early_exit=early_exit)
                result = profile(bench_session, matrix, n, warmup=warmup, iterations=iterations)
                report.points.append(BenchPoint(
                    backend=name,
                    vertices=n,
                    early_exit=early_exit,
                    solve_ms=result.total_ms,
                    rounds=result.rounds,
                ))
                mode = "early-exit" if early_exit else "full"
                print(f"  {name:>7} N={n:<4} {mode:<10} {result.total_ms:8.3f} ms  ({result.rounds} rounds)")


def print_report(report: BenchReport):
    """Print formatted benchmark report."""
    env = report.environment

    print("\n" + "=" * 72)
    print("Shortest-Path Solve Benchmark")
    print("=" * 72)

    print("\nEnvironment:")
    print(f"  Platform:   {env.get('platform', 'N/A')}")
    print(f"  Processor:  {env.get('processor', 'N/A')}")
    for name, device in report.devices.items():
        print(f"  {name + ':':<11} {device}")

    print("\nConfiguration:")
    print(f"  Edge density: {report.density:.2f}")
    print(f"  Iterations:   {report.iterations}")

    print(f"\n  {'Backend':>8} {'N':>5} {'Full(ms)':>10} {'Early(ms)':>10} {'Rounds':>8} {'Speedup':>8}")
    print("  " + "-" * 56)
    early = {(p.backend, p.vertices): p for p in report.points if p.early_exit}
    for p in report.points:
        if p.early_exit:
            continue
        e = early.get((p.backend, p.vertices))
        if e is None:
            continue
        speedup = p.solve_ms / e.solve_ms if e.solve_ms > 0 else 0
        print(f"  {p.backend:>8} {p.vertices:>5} {p.solve_ms:>10.3f} {e.solve_ms:>10.3f} "
              f"{e.rounds:>4}/{p.rounds:<3} {speedup:>7.2f}x")
    print()


def save_chart(report: BenchReport, output_path: str):
    """Generate solve time vs vertex count chart (log-x scale)."""
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        print("  [WARN] matplotlib not installed, skipping chart generation")
        return

    fig, ax = plt.subplots(figsize=(9, 6))
    for backend in report.devices:
        for early_exit, marker, style in ((False, "o", "-"), (True, "s", "--")):
            points = [p for p in report.points if p.backend == backend and p.early_exit == early_exit]
            if not points:
                continue
            label = f"{backend} ({'early exit' if early_exit else 'full'})"
            ax.plot([p.vertices for p in points], [p.solve_ms for p in points],
                    marker=marker, linestyle=style, label=label)
    ax.set_xscale("log", base=2)
    ax.set_xlabel("Vertices (log2)")
    ax.set_ylabel("Solve Time (ms)")
    ax.set_title(f"Shortest-Path Solve Time, density={report.density:.2f}")
    ax.legend()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    print(f"  Chart saved to {output_path}")
    plt.close()


def save_json(report: BenchReport, output_path: str):
    """Save benchmark results as JSON."""
    data = {
        "environment": report.environment,
        "density": report.density,
        "iterations": report.iterations,
        "devices": report.devices,
        "points": [
            {
                "backend": p.backend,
                "vertices": p.vertices,
                "early_exit": p.early_exit,
                "solve_ms": p.solve_ms,
                "rounds": p.rounds,
            }
            for p in report.points
        ],
    }
    with open(output_path, "w") as f:
        json.dump(data, f, indent=2)
    print(f"  JSON results saved to {output_path}")


def main():
    parser = argparse.ArgumentParser(description="Shortest-path solve benchmark across backends")
    parser.add_argument(
        "--backend",
        nargs="+",
        choices=["opencl", "cuda", "metal", "cpu"],
        default=["cpu", "opencl"],
        help="Backends to benchmark (default: cpu opencl)",
    )
    parser.add_argument("--sizes", type=int, nargs="+", default=DEFAULT_SIZES,
                        help="Vertex counts, at most 128 (default: 8 16 32 64 128)")
    parser.add_argument("--density", type=float, default=0.3, help="Edge probability (default: 0.3)")
    parser.add_argument("--warmup", type=int, default=3, help="Warmup solves per point (default: 3)")
    parser.add_argument("--iterations", type=int, default=10, help="Measured solves per point (default: 10)")
    parser.add_argument("--chart", type=str, default=None, help="Save chart to file (PNG)")
    parser.add_argument("--json", type=str, default=None, help="Save results as JSON")
    args = parser.parse_args()

    report = BenchReport(
        environment=get_environment_info(),
        density=args.density,
        iterations=args.iterations,
    )

    print("Benchmarking...")
    for name in args.backend:
        benchmark_backend(name, args.sizes, args.density, args.warmup, args.iterations, report)

    print_report(report)
    if args.chart:
        save_chart(report, args.chart)
    if args.json:
        save_json(report, args.json)


if __name__ == "__main__":
    main()
