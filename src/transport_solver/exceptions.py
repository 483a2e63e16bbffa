"""Custom exceptions for the transport solver library."""

from __future__ import annotations


class TransportSolverError(Exception):
    """Base exception for all transport solver errors.

    All custom exceptions in the transport_solver package inherit from this class,
    allowing users to catch all solver-related errors with a single except clause.

    Example:
        try:
            solution = solve(problem, "vogel")
        except TransportSolverError as e:
            print(f"Solver error: {e}")
    """


class InvalidProblemError(TransportSolverError):
    """Raised when a problem definition is invalid or malformed.

    This includes:
    - Ragged or empty cost matrices
    - Supply/demand vectors whose lengths do not match the cost matrix
    - Negative or non-finite supply, demand or cost values
    - Unknown objective names
    - Malformed JSON input

    Example:
        InvalidProblemError("Cost matrix row 2 has 3 entries, expected 4")
    """


class UnbalancedProblemError(InvalidProblemError):
    """Raised when total supply differs from total demand.

    Every heuristic requires an exactly balanced instance, so the check runs
    before any allocation is made and no partial plan is produced.

    Example:
        UnbalancedProblemError(
            "Problem is unbalanced: total supply 75.0 != total demand 70.0",
            total_supply=75.0,
            total_demand=70.0,
        )
    """

    def __init__(self, message: str, total_supply: float = 0.0, total_demand: float = 0.0):
        """Initialize with message and the two totals."""
        super().__init__(message)
        self.total_supply = total_supply
        self.total_demand = total_demand


class NoAvailableCellError(TransportSolverError):
    """Raised when a heuristic runs out of candidate cells too early.

    The search space was exhausted while some supply or demand was still
    left to allocate. On validated, balanced input this signals malformed
    data rather than a solvable instance.
    """

    def __init__(
        self,
        message: str,
        remaining_supply: tuple[float, ...] = (),
        remaining_demand: tuple[float, ...] = (),
    ):
        """Initialize with message and the remaining quantities."""
        super().__init__(message)
        self.remaining_supply = remaining_supply
        self.remaining_demand = remaining_demand


class NoCircuitFoundError(TransportSolverError):
    """Raised when MODI cannot close a loop through the entering cell.

    This happens when the basis is degenerate (fewer than rows + cols - 1
    positive allocations) or otherwise irregular. The condition is reported,
    never retried.

    Example:
        NoCircuitFoundError(
            "No closed loop through entering cell (1, 2)",
            entering_cell=(1, 2),
        )
    """

    def __init__(self, message: str, entering_cell: tuple[int, int] | None = None):
        """Initialize with message and the entering cell."""
        super().__init__(message)
        self.entering_cell = entering_cell


class IterationCapExceededError(TransportSolverError):
    """Raised when MODI stops on its safety bound before proving optimality.

    Note: By default, optimize() returns an OptimizationResult with
    status="iteration_limit" (or "cycling") and the last computed allocation
    rather than raising. Call OptimizationResult.raise_for_status() to treat
    the inconclusive outcome as an error.
    """

    def __init__(
        self,
        message: str,
        iterations: int = 0,
        objective: float | None = None,
        status: str = "iteration_limit",
    ):
        """Initialize with message and solution state."""
        super().__init__(message)
        self.iterations = iterations
        self.objective = objective
        self.status = status


class SolverConfigurationError(TransportSolverError):
    """Raised when solver configuration or options are invalid.

    This includes:
    - Invalid parameter values (non-positive iteration cap or tolerance)
    - Unknown initial-solution strategy names

    Example:
        SolverConfigurationError("max_iterations must be positive, got -1")
    """
