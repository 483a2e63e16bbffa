"""Initial-solution strategies for the transportation problem.

Each strategy turns a balanced ProblemInstance into a first feasible
allocation plus the step trace that explains it. Strategies share a single
``run(instance)`` entry point so callers (and the MODI engine) never depend
on which heuristic produced a solution.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import numpy as np

from .data import Objective, ProblemInstance, TransportSolution
from .exceptions import NoAvailableCellError, SolverConfigurationError
from .trace import (
    AllocationStep,
    CandidateCell,
    Penalties,
    PenaltyChoice,
    StepRecorder,
    VogelStep,
    as_vector,
)

logger = logging.getLogger(__name__)

# Remaining quantities within this fraction of the line's original quantity
# count as exhausted.
RESIDUAL_RTOL = 1e-9


def _fmt(value: float) -> str:
    return f"{value:g}"


def _snap_residual(remaining: np.ndarray, index: int, original: float) -> None:
    # Decimal quantities leave float noise behind after repeated subtraction.
    if abs(remaining[index]) <= RESIDUAL_RTOL * original:
        remaining[index] = 0.0


@dataclass
class _AllocationState:
    """Working copies mutated by a single strategy run."""

    instance: ProblemInstance
    allocation: np.ndarray
    remaining_supply: np.ndarray
    remaining_demand: np.ndarray
    eliminated_rows: list[bool]
    eliminated_cols: list[bool]
    recorder: StepRecorder = field(default_factory=StepRecorder)

    @classmethod
    def start(cls, instance: ProblemInstance) -> _AllocationState:
        return cls(
            instance=instance,
            allocation=np.zeros(instance.shape, dtype=float),
            remaining_supply=np.array(instance.supply, dtype=float),
            remaining_demand=np.array(instance.demand, dtype=float),
            eliminated_rows=[False] * instance.rows,
            eliminated_cols=[False] * instance.cols,
        )

    def allocate(self, row: int, col: int, quantity: float) -> None:
        self.allocation[row, col] += quantity
        self.remaining_supply[row] -= quantity
        self.remaining_demand[col] -= quantity
        _snap_residual(self.remaining_supply, row, float(self.instance.supply[row]))
        _snap_residual(self.remaining_demand, col, float(self.instance.demand[col]))
        # A row and a column may both be crossed out by the same allocation.
        if self.remaining_supply[row] == 0:
            self.eliminated_rows[row] = True
        if self.remaining_demand[col] == 0:
            self.eliminated_cols[col] = True

    def has_remaining(self) -> bool:
        return bool(np.any(self.remaining_supply > 0) and np.any(self.remaining_demand > 0))

    def is_exhausted(self) -> bool:
        return not np.any(self.remaining_supply > 0) and not np.any(self.remaining_demand > 0)

    def active_rows(self) -> int:
        return self.eliminated_rows.count(False)

    def active_cols(self) -> int:
        return self.eliminated_cols.count(False)

    def available_cells(self) -> list[CandidateCell]:
        """Cells whose row and column are open and still have quantity left."""
        cells: list[CandidateCell] = []
        costs = self.instance.costs
        for row in range(self.instance.rows):
            if self.eliminated_rows[row] or self.remaining_supply[row] <= 0:
                continue
            for col in range(self.instance.cols):
                if self.eliminated_cols[col] or self.remaining_demand[col] <= 0:
                    continue
                cells.append(
                    CandidateCell(
                        row=row,
                        col=col,
                        cost=float(costs[row, col]),
                        max_allocation=float(
                            min(self.remaining_supply[row], self.remaining_demand[col])
                        ),
                    )
                )
        return cells

    def snapshot(self) -> dict[str, tuple]:
        return {
            "remaining_supply": as_vector(self.remaining_supply),
            "remaining_demand": as_vector(self.remaining_demand),
            "eliminated_rows": tuple(self.eliminated_rows),
            "eliminated_cols": tuple(self.eliminated_cols),
        }

    def ensure_complete(self, method: str) -> None:
        if not self.is_exhausted():
            raise NoAvailableCellError(
                f"{method}: no available cell left while supply "
                f"{self.remaining_supply.tolist()} and demand "
                f"{self.remaining_demand.tolist()} remain unallocated.",
                remaining_supply=as_vector(self.remaining_supply),
                remaining_demand=as_vector(self.remaining_demand),
            )

    def finish(self, method: str, final_method: str = "") -> TransportSolution:
        return TransportSolution(
            instance=self.instance,
            allocation=self.allocation,
            total_cost=self.instance.total_cost(self.allocation),
            steps=self.recorder.freeze(),
            method=method,
            final_method=final_method or method,
        )


class InitialSolutionStrategy(ABC):
    """Abstract base class for initial-solution heuristics.

    A strategy builds a complete feasible allocation for a balanced instance.
    Implementations must not keep state between runs: every call to run()
    works on fresh copies of the instance data.
    """

    name: str = ""

    def run(self, instance: ProblemInstance) -> TransportSolution:
        """Validate the instance and build an initial solution.

        Raises:
            UnbalancedProblemError: If total supply differs from total demand.
            NoAvailableCellError: If candidate cells run out before all supply
                                  and demand are allocated.
        """
        # Fail before any allocation so an unbalanced instance leaves no trace.
        instance.validate()
        state = _AllocationState.start(instance)
        solution = self._allocate(state)
        logger.debug(
            "Initial solution built",
            extra={
                "method": solution.method,
                "final_method": solution.final_method,
                "steps": len(solution.steps),
                "total_cost": solution.total_cost,
            },
        )
        return solution

    @abstractmethod
    def _allocate(self, state: _AllocationState) -> TransportSolution:
        """Fill the allocation held by state and return the finished solution."""
        pass


class NorthWestCorner(InitialSolutionStrategy):
    """North-West Corner rule.

    Walks a cursor from the top-left cell, always allocating as much as the
    current row and column allow. Costs are ignored, so the plan is feasible
    but generally far from optimal.
    """

    name = "north_west"

    def _allocate(self, state: _AllocationState) -> TransportSolution:
        instance = state.instance
        supply = state.remaining_supply
        demand = state.remaining_demand
        row = col = 0

        while row < instance.rows and col < instance.cols:
            quantity = float(min(supply[row], demand[col]))
            if quantity > 0:
                state.allocate(row, col, quantity)
                state.recorder.record(
                    AllocationStep(
                        step=state.recorder.next_step,
                        row=row,
                        col=col,
                        cost=float(instance.costs[row, col]),
                        allocation=quantity,
                        explanation=(
                            f"Allocate {_fmt(quantity)} units to cell ({row + 1}, {col + 1})"
                        ),
                        phase=self.name,
                        **state.snapshot(),
                    )
                )

            # Rule order decides the path: both exhausted, then supply, then demand.
            if supply[row] == 0 and demand[col] == 0:
                row += 1
                col += 1
            elif supply[row] == 0:
                row += 1
            elif demand[col] == 0:
                col += 1

        return state.finish(self.name)


def _greedy_phase(objective: Objective) -> str:
    return "minimum_cost" if objective is Objective.MINIMIZE else "maximum_profit"


def fill_greedily(state: _AllocationState, phase: str, label: str) -> int:
    """Allocate to the best available cell until nothing is left.

    Shared by GreedyCell and the fallback phase of Vogel's approximation.
    Returns the number of steps recorded.
    """
    instance = state.instance
    objective = instance.objective
    recorded = 0

    while state.has_remaining():
        candidates = state.available_cells()
        if not candidates:
            break

        # Row-major scan with a strict comparison keeps the first tied cell.
        best = candidates[0]
        for candidate in candidates[1:]:
            if objective.prefers(candidate.cost, best.cost):
                best = candidate

        quantity = best.max_allocation
        state.allocate(best.row, best.col, quantity)
        state.recorder.record(
            AllocationStep(
                step=state.recorder.next_step,
                row=best.row,
                col=best.col,
                cost=best.cost,
                allocation=quantity,
                explanation=(
                    f"{label}: {_fmt(best.cost)} at cell ({best.row + 1}, {best.col + 1}). "
                    f"Allocate {_fmt(quantity)} units."
                ),
                phase=phase,
                candidates=tuple(candidates),
                **state.snapshot(),
            )
        )
        recorded += 1

        if state.is_exhausted():
            break

    return recorded


class GreedyCell(InitialSolutionStrategy):
    """Minimum-Cost (or Maximum-Profit) cell method.

    Repeatedly allocates to the cheapest (most profitable) open cell, crossing
    out every row and column it exhausts. Ties go to the first cell in
    row-major order.
    """

    name = "greedy"

    def _allocate(self, state: _AllocationState) -> TransportSolution:
        objective = state.instance.objective
        label = "Minimum cost" if objective is Objective.MINIMIZE else "Maximum profit"
        fill_greedily(state, _greedy_phase(objective), label)
        state.ensure_complete(self.name)
        return state.finish(self.name)


def compute_penalties(
    costs: np.ndarray,
    eliminated_rows: list[bool],
    eliminated_cols: list[bool],
    objective: Objective,
) -> Penalties:
    """Compute Vogel penalties for every open row and column.

    A penalty is the absolute gap between the two best open values of the
    line (two lowest when minimizing, two highest when maximizing); 0 when
    only one value is open and None when none is.
    """
    reverse = objective is Objective.MAXIMIZE

    def penalty(values: list[float]) -> float | None:
        if not values:
            return None
        if len(values) == 1:
            return 0.0
        ranked = sorted(values, reverse=reverse)
        return abs(ranked[0] - ranked[1])

    rows, cols = costs.shape
    row_penalties: list[float | None] = []
    for row in range(rows):
        if eliminated_rows[row]:
            row_penalties.append(None)
            continue
        row_penalties.append(
            penalty([float(costs[row, col]) for col in range(cols) if not eliminated_cols[col]])
        )

    col_penalties: list[float | None] = []
    for col in range(cols):
        if eliminated_cols[col]:
            col_penalties.append(None)
            continue
        col_penalties.append(
            penalty([float(costs[row, col]) for row in range(rows) if not eliminated_rows[row]])
        )

    return Penalties(rows=tuple(row_penalties), cols=tuple(col_penalties))


def select_penalty(penalties: Penalties, objective: Objective) -> PenaltyChoice | None:
    """Pick the winning penalty line.

    Minimizing selects the largest penalty, maximizing the smallest one.
    Ties go to the first occurrence, rows scanned before columns.
    """
    best: PenaltyChoice | None = None
    for side, values in (("row", penalties.rows), ("col", penalties.cols)):
        for index, value in enumerate(values):
            if value is None:
                continue
            if best is None:
                best = PenaltyChoice(side=side, index=index, value=value)
            elif objective is Objective.MINIMIZE and value > best.value:
                best = PenaltyChoice(side=side, index=index, value=value)
            elif objective is Objective.MAXIMIZE and value < best.value:
                best = PenaltyChoice(side=side, index=index, value=value)
    return best


def best_cell_in_line(
    state: _AllocationState, choice: PenaltyChoice
) -> tuple[int, int] | None:
    """Best open cell along the selected row or column, first on ties."""
    instance = state.instance
    objective = instance.objective
    best_cost = objective.worst_value()
    best: tuple[int, int] | None = None

    if choice.side == "row":
        row = choice.index
        for col in range(instance.cols):
            if state.eliminated_cols[col] or state.remaining_demand[col] <= 0:
                continue
            cost = float(instance.costs[row, col])
            if objective.prefers(cost, best_cost):
                best, best_cost = (row, col), cost
    else:
        col = choice.index
        for row in range(instance.rows):
            if state.eliminated_rows[row] or state.remaining_supply[row] <= 0:
                continue
            cost = float(instance.costs[row, col])
            if objective.prefers(cost, best_cost):
                best, best_cost = (row, col), cost

    return best


class VogelApproximation(InitialSolutionStrategy):
    """Vogel's Approximation Method.

    Allocates along the line with the most telling penalty until a single
    row or column is left open, then finishes the remaining sub-matrix with
    the greedy cell rule. The solution's final_method records whether that
    fallback phase allocated anything.

    Note:
        Under Maximize the smallest penalty wins, not the largest.
    """

    name = "vogel"

    def _allocate(self, state: _AllocationState) -> TransportSolution:
        instance = state.instance
        objective = instance.objective
        fallback_phase = _greedy_phase(objective)
        fallback_steps = 0

        while not state.is_exhausted():
            if state.active_rows() <= 1 or state.active_cols() <= 1:
                label = (
                    "Minimum cost method" if objective is Objective.MINIMIZE
                    else "Maximum profit method"
                )
                fallback_steps = fill_greedily(state, fallback_phase, label)
                break

            penalties = compute_penalties(
                instance.costs, state.eliminated_rows, state.eliminated_cols, objective
            )
            choice = select_penalty(penalties, objective)
            if choice is None:
                break
            cell = best_cell_in_line(state, choice)
            if cell is None:
                break

            row, col = cell
            quantity = float(min(state.remaining_supply[row], state.remaining_demand[col]))
            state.allocate(row, col, quantity)
            side = "Row" if choice.side == "row" else "Column"
            state.recorder.record(
                VogelStep(
                    step=state.recorder.next_step,
                    row=row,
                    col=col,
                    cost=float(instance.costs[row, col]),
                    allocation=quantity,
                    explanation=(
                        f"{side} {choice.index + 1} penalty = {_fmt(choice.value)}. "
                        f"Allocate {_fmt(quantity)} units to cell ({row + 1}, {col + 1})"
                    ),
                    phase=self.name,
                    penalties=penalties,
                    choice=choice,
                    **state.snapshot(),
                )
            )

        state.ensure_complete(self.name)
        return state.finish(self.name, fallback_phase if fallback_steps else self.name)


_STRATEGIES: dict[str, type[InitialSolutionStrategy]] = {
    "north_west": NorthWestCorner,
    "northwest": NorthWestCorner,
    "north_west_corner": NorthWestCorner,
    "nw": NorthWestCorner,
    "greedy": GreedyCell,
    "greedy_cell": GreedyCell,
    "minimum_cost": GreedyCell,
    "least_cost": GreedyCell,
    "maximum_profit": GreedyCell,
    "vogel": VogelApproximation,
    "vam": VogelApproximation,
}


def get_strategy(strategy: str | InitialSolutionStrategy) -> InitialSolutionStrategy:
    """Resolve a strategy name (or pass an instance through)."""
    if isinstance(strategy, InitialSolutionStrategy):
        return strategy
    key = str(strategy).strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return _STRATEGIES[key]()
    except KeyError:
        raise SolverConfigurationError(
            f"Unknown initial-solution strategy '{strategy}'. "
            f"Available: {', '.join(sorted(set(_STRATEGIES)))}."
        ) from None
