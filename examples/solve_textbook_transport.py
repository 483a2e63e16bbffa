"""Solve the textbook transportation example with every strategy and store the result."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from transport_solver import load_problem, optimize, save_solution, solve  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Solve the textbook transportation example")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Cap on MODI pivots (default: 10)",
    )
    args = parser.parse_args()

    # Configure logging based on verbosity
    if args.verbose >= 2:
        level = logging.DEBUG
    elif args.verbose >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(levelname)-8s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    base_dir = Path(__file__).resolve().parent
    problem_path = base_dir / "textbook_transport_problem.json"
    output_path = base_dir / "textbook_transport_solution.json"

    problem = load_problem(problem_path)

    for strategy in ("north_west", "greedy", "vogel"):
        solution = solve(problem, strategy)
        print(
            f"{strategy}: cost={solution.total_cost:g}, steps={len(solution.steps)}, "
            f"final_method={solution.final_method}"
        )

    solution = solve(problem, "north_west")
    result = optimize(solution, max_iterations=args.max_iterations)
    save_solution(output_path, solution, result)
    print(
        f"Solved {problem_path.name}: status={result.status}, "
        f"objective={result.final_cost:g}, pivots={result.iterations}"
    )


if __name__ == "__main__":
    main()
