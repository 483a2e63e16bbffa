"""Example demonstrating logging and progress callbacks during MODI optimization."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from transport_solver import ProgressInfo, SolverOptions, build_problem, optimize, solve  # noqa: E402


def main() -> None:
    """Show the solver's log output and per-test progress updates."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    # 4 plants, 5 markets; cost grows with distance
    supply = [60, 45, 80, 35]
    demand = [40, 50, 30, 55, 45]
    costs = [[abs(i - j) * 3 + (i + j) % 4 + 1 for j in range(5)] for i in range(4)]
    problem = build_problem(costs=costs, supply=supply, demand=demand)

    def progress_callback(info: ProgressInfo) -> None:
        print(
            f"  test {info.iteration} (cap {info.max_iterations} pivots): "
            f"state={info.state}, cost={info.objective_estimate:g}, "
            f"elapsed={info.elapsed_time * 1000:.2f} ms"
        )

    solution = solve(problem, "north_west")
    print(f"North-West corner cost: {solution.total_cost:g}")

    result = optimize(
        solution,
        options=SolverOptions(max_iterations=20),
        progress_callback=progress_callback,
    )
    print(f"Status: {result.status}, final cost: {result.final_cost:g}")


if __name__ == "__main__":
    main()
