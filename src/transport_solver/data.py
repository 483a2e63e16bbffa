"""Core data structures for transportation problems."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .exceptions import (
    InvalidProblemError,
    IterationCapExceededError,
    NoCircuitFoundError,
    SolverConfigurationError,
    UnbalancedProblemError,
)
from .trace import ModiStep, StepRecord


class Objective(str, Enum):
    """Optimization direction.

    The objective flips every comparison (cell selection, penalty ranking,
    the opportunity-cost sign test) but never the arithmetic used to
    accumulate the total.
    """

    MINIMIZE = "minimize"
    MAXIMIZE = "maximize"

    @classmethod
    def parse(cls, value: Objective | str) -> Objective:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidProblemError(
                f"Unknown objective '{value}'. Must be 'minimize' or 'maximize'."
            ) from None

    def prefers(self, candidate: float, incumbent: float) -> bool:
        """Return True when candidate is strictly better than incumbent."""
        if self is Objective.MINIMIZE:
            return candidate < incumbent
        return candidate > incumbent

    def worst_value(self) -> float:
        return math.inf if self is Objective.MINIMIZE else -math.inf


@dataclass(frozen=True)
class BalanceCheck:
    """Result of comparing total supply with total demand.

    Attributes:
        total_supply: Sum of the supply vector.
        total_demand: Sum of the demand vector.
        balanced: True only when both totals are exactly equal.
    """

    total_supply: float
    total_demand: float
    balanced: bool


def check_balance(supply: Sequence[float], demand: Sequence[float]) -> BalanceCheck:
    """Compare total supply and total demand without any tolerance.

    Transportation problems must be exactly balanced before a heuristic runs,
    so the two plain left-to-right sums are compared with ``==``.

    Examples:
        >>> check_balance([20, 30, 25], [10, 25, 40])
        BalanceCheck(total_supply=75.0, total_demand=75.0, balanced=True)
    """
    total_supply = float(sum(float(value) for value in supply))
    total_demand = float(sum(float(value) for value in demand))
    return BalanceCheck(
        total_supply=total_supply,
        total_demand=total_demand,
        balanced=total_supply == total_demand,
    )


def _read_only(values: np.ndarray) -> np.ndarray:
    values = np.array(values, dtype=float, copy=True)
    values.flags.writeable = False
    return values


@dataclass(frozen=True, eq=False)
class ProblemInstance:
    """Immutable snapshot of a transportation problem.

    Attributes:
        costs: rows x cols unit costs (profits when maximizing).
        supply: Non-negative supply per origin (row).
        demand: Non-negative demand per destination (column).
        objective: Optimization direction.

    All arrays are copied on construction and marked read-only, so a
    strategy run can never leak changes back into the instance. The instance
    may be unbalanced; validate() (called by every solve) rejects it then.

    Examples:
        >>> problem = ProblemInstance(
        ...     costs=[[4, 6, 8], [3, 5, 2], [9, 1, 7]],
        ...     supply=[20, 30, 25],
        ...     demand=[10, 25, 40],
        ... )
        >>> problem.shape
        (3, 3)
    """

    costs: np.ndarray
    supply: np.ndarray
    demand: np.ndarray
    objective: Objective = Objective.MINIMIZE

    def __post_init__(self) -> None:
        try:
            costs = np.asarray(self.costs, dtype=float)
            supply = np.asarray(self.supply, dtype=float)
            demand = np.asarray(self.demand, dtype=float)
        except (TypeError, ValueError) as exc:
            raise InvalidProblemError(
                f"Problem data must be numeric and rectangular: {exc}"
            ) from exc

        if costs.ndim != 2 or costs.shape[0] == 0 or costs.shape[1] == 0:
            raise InvalidProblemError(
                f"Cost matrix must be a non-empty rows x cols grid, got shape {costs.shape}."
            )
        rows, cols = costs.shape
        if supply.shape != (rows,):
            raise InvalidProblemError(
                f"Supply vector has shape {supply.shape}, expected ({rows},) to match the "
                f"cost matrix rows."
            )
        if demand.shape != (cols,):
            raise InvalidProblemError(
                f"Demand vector has shape {demand.shape}, expected ({cols},) to match the "
                f"cost matrix columns."
            )
        if not np.all(np.isfinite(costs)):
            raise InvalidProblemError("Cost matrix contains non-finite values.")
        for name, values in (("supply", supply), ("demand", demand)):
            if not np.all(np.isfinite(values)):
                raise InvalidProblemError(f"The {name} vector contains non-finite values.")
            if np.any(values < 0):
                raise InvalidProblemError(
                    f"The {name} vector contains negative values: {values.tolist()}. "
                    f"Supply and demand must be non-negative."
                )

        object.__setattr__(self, "costs", _read_only(costs))
        object.__setattr__(self, "supply", _read_only(supply))
        object.__setattr__(self, "demand", _read_only(demand))
        object.__setattr__(self, "objective", Objective.parse(self.objective))

    @property
    def rows(self) -> int:
        return int(self.costs.shape[0])

    @property
    def cols(self) -> int:
        return int(self.costs.shape[1])

    @property
    def shape(self) -> tuple[int, int]:
        return (self.rows, self.cols)

    def check_balance(self) -> BalanceCheck:
        return check_balance(self.supply.tolist(), self.demand.tolist())

    def validate(self) -> None:
        """Fail fast on an unbalanced instance, before anything is allocated."""
        balance = self.check_balance()
        if not balance.balanced:
            raise UnbalancedProblemError(
                f"Problem is unbalanced: total supply {balance.total_supply} != total demand "
                f"{balance.total_demand}. Total supply must equal total demand before an "
                f"initial solution can be built.",
                total_supply=balance.total_supply,
                total_demand=balance.total_demand,
            )

    def total_cost(self, allocation: np.ndarray) -> float:
        """Return the sum of allocation * cost over all cells."""
        return float(np.sum(np.asarray(allocation, dtype=float) * self.costs))


@dataclass(frozen=True, eq=False)
class TransportSolution:
    """An allocation produced by an initial-solution strategy.

    Attributes:
        instance: Problem the allocation belongs to.
        allocation: Read-only rows x cols shipment plan.
        total_cost: Sum of allocation * cost (profit when maximizing).
        steps: Ordered step records explaining how the plan was built.
        method: Strategy name ("north_west", "greedy" or "vogel").
        final_method: Procedure that finished the allocation. Equals method
                      except for Vogel, where it names the greedy fallback
                      phase ("minimum_cost" or "maximum_profit") once that
                      phase recorded a step.
    """

    instance: ProblemInstance
    allocation: np.ndarray
    total_cost: float
    steps: tuple[StepRecord, ...] = ()
    method: str = ""
    final_method: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "allocation", _read_only(self.allocation))
        if not self.final_method:
            object.__setattr__(self, "final_method", self.method)


@dataclass(frozen=True)
class ProgressInfo:
    """Progress information provided after each MODI optimality test.

    Attributes:
        iteration: Number of tests performed so far (1-based).
        max_iterations: Pivot cap in force.
        state: State reached by the test ("pivoting", "optimal", ...).
        objective_estimate: Total cost of the allocation that was tested.
        elapsed_time: Elapsed time in seconds since optimize() started.
    """

    iteration: int
    max_iterations: int
    state: str
    objective_estimate: float
    elapsed_time: float


# Type alias for progress callback function
ProgressCallback = Callable[[ProgressInfo], None]


@dataclass
class SolverOptions:
    """Configuration options for the MODI optimality engine.

    Attributes:
        max_iterations: Maximum number of MODI pivots (default: 10). The engine
                        stops with status "iteration_limit" when the cap is hit
                        without proving optimality.
        tolerance: Tolerance for the opportunity-cost sign test (default: 1e-9).
                   Opportunity costs within +/- tolerance of zero count as
                   non-improving. The balance check never uses it.
        detect_cycling: Stop with status "cycling" when a pivot reproduces an
                        allocation already visited (default: True).

    Examples:
        >>> options = SolverOptions()
        >>> options = SolverOptions(max_iterations=25, tolerance=1e-6)
    """

    max_iterations: int = 10
    tolerance: float = 1e-9
    detect_cycling: bool = True

    def __post_init__(self) -> None:
        if self.max_iterations <= 0:
            raise SolverConfigurationError(
                f"max_iterations must be positive, got {self.max_iterations}. "
                f"It bounds the number of MODI pivots."
            )
        if self.tolerance <= 0:
            raise SolverConfigurationError(
                f"Tolerance must be positive, got {self.tolerance}. "
                f"Tolerance controls the opportunity-cost optimality test."
            )


@dataclass(eq=False)
class OptimizationResult:
    """Outcome of running the MODI engine on an initial solution.

    Attributes:
        status: 'optimal' (every non-basic cell tested, none improves),
                'degenerate' (no closed loop, or cells left untested because
                the basis leaves duals undetermined), 'iteration_limit' or
                'cycling'.
        steps: One ModiStep per optimality test, in order.
        final_allocation: Last allocation computed (best effort when not optimal).
        final_cost: Total cost (profit) of final_allocation.
        initial_cost: Total cost (profit) of the starting allocation.
        iterations: Number of pivots performed.
        objective: Direction used for the optimality test.
        elapsed_time: Wall-clock seconds spent in the MODI loop.
    """

    status: str
    steps: tuple[ModiStep, ...]
    final_allocation: np.ndarray
    final_cost: float
    initial_cost: float
    iterations: int = 0
    objective: Objective = Objective.MINIMIZE
    elapsed_time: float = 0.0

    @property
    def is_optimal(self) -> bool:
        return self.status == "optimal"

    @property
    def improvement(self) -> float:
        """Absolute change of the objective achieved by the pivots."""
        return abs(self.initial_cost - self.final_cost)

    def raise_for_status(self) -> None:
        """Raise the matching exception when the outcome is not optimal."""
        if self.status == "optimal":
            return
        if self.status == "degenerate":
            entering = self.steps[-1].entering_cell if self.steps else None
            if entering is None:
                raise NoCircuitFoundError(
                    "Optimality cannot be established: the basis is degenerate and leaves "
                    "some dual variables undetermined."
                )
            raise NoCircuitFoundError(
                f"No closed loop through entering cell {entering}; the basis is degenerate "
                f"or irregular.",
                entering_cell=entering,
            )
        raise IterationCapExceededError(
            f"Optimization inconclusive after {self.iterations} pivots (status "
            f"'{self.status}'); best-effort objective {self.final_cost}.",
            iterations=self.iterations,
            objective=self.final_cost,
            status=self.status,
        )


def build_problem(
    costs: Sequence[Sequence[float]],
    supply: Sequence[float],
    demand: Sequence[float],
    objective: Objective | str = Objective.MINIMIZE,
) -> ProblemInstance:
    """Factory helper used by the IO layer and callers to assemble a ProblemInstance."""
    rows = [list(row) for row in costs]
    if rows:
        width = len(rows[0])
        # Report ragged input with row context before numpy sees it.
        for index, row in enumerate(rows):
            if len(row) != width:
                raise InvalidProblemError(
                    f"Cost matrix row {index} has {len(row)} entries, expected {width}. "
                    f"All rows must have the same length."
                )
    return ProblemInstance(
        costs=rows,
        supply=list(supply),
        demand=list(demand),
        objective=Objective.parse(objective),
    )
