"""Public solver entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path

from .data import (
    Objective,
    OptimizationResult,
    ProblemInstance,
    ProgressCallback,
    SolverOptions,
    TransportSolution,
)
from .io import load_problem as load_problem_file
from .io import save_solution as save_solution_file
from .modi import ModiEngine
from .strategies import InitialSolutionStrategy, get_strategy

logger = logging.getLogger(__name__)


def solve(
    problem: ProblemInstance,
    strategy: str | InitialSolutionStrategy = "north_west",
) -> TransportSolution:
    """Build an initial feasible allocation with the chosen heuristic.

    Args:
        problem: Balanced transportation problem.
        strategy: "north_west", "greedy" (minimum cost / maximum profit) or
                  "vogel", one of their aliases, or a strategy instance.

    Returns:
        TransportSolution with the allocation, its total cost and the step
        trace that produced it.

    Raises:
        UnbalancedProblemError: If total supply differs from total demand.
                                Nothing is allocated in that case.
        NoAvailableCellError: If the heuristic runs out of candidate cells.
        SolverConfigurationError: If the strategy name is unknown.

    Examples:
        >>> from transport_solver import build_problem, solve
        >>> problem = build_problem(
        ...     costs=[[4, 6, 8], [3, 5, 2], [9, 1, 7]],
        ...     supply=[20, 30, 25],
        ...     demand=[10, 25, 40],
        ... )
        >>> solution = solve(problem, "north_west")
        >>> solution.allocation.tolist()
        [[10.0, 10.0, 0.0], [0.0, 15.0, 15.0], [0.0, 0.0, 25.0]]
        >>> solution.total_cost
        380.0

    See Also:
        - optimize(): Improve the initial plan with MODI.
        - check_balance(): Check supply/demand balance before solving.
    """
    runner = get_strategy(strategy)
    logger.info(
        f"Solving {problem.rows}x{problem.cols} transportation problem",
        extra={"method": runner.name, "objective": problem.objective.value},
    )
    solution = runner.run(problem)
    logger.info(
        f"Initial solution found with {runner.name}",
        extra={
            "method": solution.method,
            "final_method": solution.final_method,
            "total_cost": solution.total_cost,
            "steps": len(solution.steps),
        },
    )
    return solution


def optimize(
    solution: TransportSolution,
    objective: Objective | str | None = None,
    options: SolverOptions | None = None,
    max_iterations: int | None = None,
    progress_callback: ProgressCallback | None = None,
) -> OptimizationResult:
    """Refine an initial solution with the MODI method.

    Args:
        solution: Result of solve().
        objective: Direction of the optimality test. Defaults to the
                   objective of the solution's problem.
        options: Solver configuration. If None, uses defaults
                 (10 pivots, tolerance 1e-9, cycling detection on).
        max_iterations: Pivot cap. Overrides options.max_iterations if provided.
        progress_callback: Optional callback receiving ProgressInfo after
                           every optimality test.

    Returns:
        OptimizationResult containing:
        - status: 'optimal', 'degenerate', 'iteration_limit' or 'cycling'.
          'optimal' requires every non-basic cell to be tested; a degenerate
          basis that leaves duals undetermined ends in 'degenerate'
        - steps: one ModiStep per test (duals, opportunity costs, loop, θ)
        - final_allocation / final_cost: last plan computed, a best-effort
          result when the status is not 'optimal'

    Note:
        A non-optimal status is reported, not raised. Call
        result.raise_for_status() to turn it into NoCircuitFoundError or
        IterationCapExceededError.
    """
    engine = ModiEngine(solution, objective=objective, options=options)
    return engine.optimize(max_iterations=max_iterations, progress_callback=progress_callback)


def load_problem(path: str | Path) -> ProblemInstance:
    """Load a transportation problem from a JSON file.

    Raises:
        FileNotFoundError: If file does not exist.
        InvalidProblemError: If JSON is malformed or the problem is invalid.
    """
    return load_problem_file(path)


def save_solution(
    path: str | Path,
    solution: TransportSolution,
    result: OptimizationResult | None = None,
) -> None:
    """Save an initial solution, and optionally its MODI result, to JSON."""
    save_solution_file(path, solution, result)
