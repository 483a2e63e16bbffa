"""Example script walking through the step trace of a maximization problem."""

from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from transport_solver import VogelStep, load_problem, optimize, solve  # noqa: E402


def main() -> None:
    base_dir = Path(__file__).resolve().parent
    problem_path = base_dir / "profit_problem.json"

    problem = load_problem(problem_path)
    solution = solve(problem, "vogel")

    print(f"Vogel ({problem.objective.value}) on {problem_path.name}:")
    for step in solution.steps:
        print(f"  Step {step.step}: {step.explanation}")
        if isinstance(step, VogelStep) and step.penalties is not None:
            print(f"    row penalties: {list(step.penalties.rows)}")
            print(f"    col penalties: {list(step.penalties.cols)}")
    print(f"  Allocation: {solution.allocation.tolist()} -> {solution.total_cost:g}")

    result = optimize(solution)
    for step in result.steps:
        print(f"  MODI test {step.iteration}: u={list(step.u)} v={list(step.v)} [{step.state}]")

    print(f"Solved {problem_path.name}: status={result.status}, objective={result.final_cost:g}")


if __name__ == "__main__":
    main()
