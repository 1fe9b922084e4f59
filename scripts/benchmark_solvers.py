#!/usr/bin/env python3
"""
Benchmark the exact and Barnes-Hut force solvers on random bodies.

Usage:
    python scripts/benchmark_solvers.py [--sizes N,...] [--thetas T,...]

Examples:
    python scripts/benchmark_solvers.py
    python scripts/benchmark_solvers.py --sizes 100,500,1000
    python scripts/benchmark_solvers.py --thetas 0.3,0.5,1.0 --ticks 5
    python scripts/benchmark_solvers.py --workers 4 --output results.json
"""

from __future__ import annotations

import argparse
import json
import logging
import time
from typing import Any

import numpy as np

from nbody_forces import (
    BarnesHutSolver,
    ExactSolver,
    ForceSolver,
    ParallelEvaluator,
    random_bodies,
    relative_force_error,
)


def benchmark_solver(solver: ForceSolver, points: list, ticks: int) -> dict[str, Any]:
    """
    Time a solver over several ticks on the same snapshot.

    Returns:
        Dict with timing, interaction count and the last deltas
    """
    start = time.perf_counter()
    for _ in range(ticks):
        result = solver.compute(points)
    elapsed = (time.perf_counter() - start) / ticks

    return {
        "time_seconds": elapsed,
        "interaction_count": result.interaction_count,
        "deltas": result.velocity_deltas,
    }


def run_benchmarks(
    sizes: list[int],
    thetas: list[float],
    ticks: int = 3,
    max_workers: int | None = None,
    seed: int = 42,
    exact_limit: int = 3000,
) -> list[dict]:
    """Run every solver on every body count."""
    results = []

    print(f"\nBenchmarking exact and Barnes-Hut (theta={thetas}) on sizes {sizes}")
    print(f"Ticks: {ticks}, Workers: {max_workers or 'default'}")
    print("=" * 80)

    with ParallelEvaluator(max_workers=max_workers) as evaluator:
        for n in sizes:
            points = [body.snapshot() for body in random_bodies(n, seed=seed)]
            print(f"\n{n} bodies")
            print("-" * 60)

            exact_deltas = None
            if n <= exact_limit:
                solver = ExactSolver(gravitational_constant=1.0, evaluator=evaluator)
                exact = benchmark_solver(solver, points, ticks)
                exact_deltas = exact["deltas"]
                print(
                    f"  {'exact':14s}: {exact['time_seconds']:.4f}s "
                    f"({exact['interaction_count']} interactions)"
                )
                results.append(
                    {
                        "bodies": n,
                        "algorithm": "exact",
                        "theta": None,
                        "time_seconds": exact["time_seconds"],
                        "interaction_count": exact["interaction_count"],
                        "median_error": 0.0,
                    }
                )
            else:
                print(f"  {'exact':14s}: SKIPPED (O(n^2) too slow)")

            for theta in thetas:
                name = f"bh(theta={theta})"
                solver = BarnesHutSolver(
                    gravitational_constant=1.0, barnes_hut_theta=theta, evaluator=evaluator
                )
                approx = benchmark_solver(solver, points, ticks)

                error = None
                if exact_deltas is not None:
                    error = float(np.median(relative_force_error(approx["deltas"], exact_deltas)))

                error_text = f", median error {error:.2e}" if error is not None else ""
                print(
                    f"  {name:14s}: {approx['time_seconds']:.4f}s "
                    f"({approx['interaction_count']} interactions{error_text})"
                )
                results.append(
                    {
                        "bodies": n,
                        "algorithm": "barnes_hut",
                        "theta": theta,
                        "time_seconds": approx["time_seconds"],
                        "interaction_count": approx["interaction_count"],
                        "median_error": error,
                    }
                )

    # Summary
    print("\n" + "=" * 80)
    print("SUMMARY (seconds per tick)")
    print("=" * 80)

    columns = ["exact"] + [f"bh({t})" for t in thetas]
    print(f"{'Bodies':<10s}", end="")
    for column in columns:
        print(f"{column:>12s}", end="")
    print()
    print("-" * (10 + 12 * len(columns)))

    for n in sizes:
        print(f"{n:<10d}", end="")
        row = [r for r in results if r["bodies"] == n]
        exact_rows = [r for r in row if r["algorithm"] == "exact"]
        cells = [exact_rows[0]["time_seconds"] if exact_rows else None]
        for theta in thetas:
            matching = [r for r in row if r["theta"] == theta]
            cells.append(matching[0]["time_seconds"] if matching else None)
        for cell in cells:
            if cell is None:
                print(f"{'--':>12s}", end="")
            else:
                print(f"{cell:>12.4f}", end="")
        print()

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark N-body force solvers")
    parser.add_argument("--sizes", default="100,500,1000", help="Comma-separated body counts")
    parser.add_argument("--thetas", default="0.5,1.5", help="Comma-separated Barnes-Hut thetas")
    parser.add_argument("--ticks", type=int, default=3, help="Ticks to average per solver")
    parser.add_argument("--workers", type=int, help="Evaluation worker threads")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for the bodies")
    parser.add_argument("--verbose", action="store_true", help="Log solver internals")
    parser.add_argument("--output", help="Output JSON file for results")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s"
        )

    results = run_benchmarks(
        sizes=[int(s) for s in args.sizes.split(",")],
        thetas=[float(t) for t in args.thetas.split(",")],
        ticks=args.ticks,
        max_workers=args.workers,
        seed=args.seed,
    )

    if args.output and results:
        with open(args.output, "w") as f:
            json.dump(results, f, indent=2)
        print(f"\nResults saved to {args.output}")


if __name__ == "__main__":
    main()
