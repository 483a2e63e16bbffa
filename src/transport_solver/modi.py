"""MODI (modified distribution) optimality test and stepping-stone pivoting.

The engine repeatedly tests a transportation plan for optimality using dual
variables (u for rows, v for columns) and, while an improving cell exists,
moves θ units around the closed loop through that cell. Each test is
recorded as a ModiStep; allocations are never modified in place, so callers
can replay the full history.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Sequence

import numpy as np

from .data import (
    Objective,
    OptimizationResult,
    ProgressCallback,
    ProgressInfo,
    SolverOptions,
    TransportSolution,
)
from .diagnostics import AllocationHistory
from .exceptions import NoCircuitFoundError
from .trace import (
    Cell,
    LoopCell,
    ModiStep,
    as_grid,
    as_optional_grid,
    as_optional_vector,
)
from .utils import basic_cells


def compute_duals(
    costs: np.ndarray,
    basis: Sequence[Cell],
    max_sweeps: int | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Propagate dual variables over the basic cells.

    Fixes u[0] = 0 and sweeps the basic cells, deriving the unknown side of
    cost = u[row] + v[col] whenever exactly one side is known. Stops when a
    sweep changes nothing or after max_sweeps sweeps (default rows + cols).

    Returns:
        (u, v) float arrays; NaN marks a dual that could not be determined,
        which happens when the basis does not connect every row and column.
    """
    rows, cols = costs.shape
    u = np.full(rows, np.nan)
    v = np.full(cols, np.nan)
    u[0] = 0.0
    sweeps = max_sweeps if max_sweeps is not None else rows + cols

    for _ in range(sweeps):
        changed = False
        for row, col in basis:
            known_u = not math.isnan(u[row])
            known_v = not math.isnan(v[col])
            if known_u and not known_v:
                v[col] = costs[row, col] - u[row]
                changed = True
            elif known_v and not known_u:
                u[row] = costs[row, col] - v[col]
                changed = True
        if not changed:
            break

    return u, v


def compute_opportunity_costs(
    costs: np.ndarray,
    u: np.ndarray,
    v: np.ndarray,
    basis: Sequence[Cell],
) -> np.ndarray:
    """Return cost - u - v for every non-basic cell.

    Basic cells and cells with an undetermined dual hold NaN.
    """
    opportunity = costs - u[:, np.newaxis] - v[np.newaxis, :]
    for row, col in basis:
        opportunity[row, col] = np.nan
    return opportunity


def undetermined_cells(opportunity: np.ndarray, basis: Sequence[Cell]) -> list[Cell]:
    """Non-basic cells whose opportunity cost could not be computed, row-major."""
    basic = set(basis)
    rows, cols = np.nonzero(np.isnan(opportunity))
    return [
        (int(row), int(col)) for row, col in zip(rows, cols) if (int(row), int(col)) not in basic
    ]


def select_entering_cell(
    opportunity: np.ndarray,
    objective: Objective,
    tolerance: float,
) -> tuple[Cell, float] | None:
    """Pick the most improving non-basic cell, first in row-major order on ties.

    Improving means an opportunity cost below -tolerance when minimizing or
    above +tolerance when maximizing. Returns None when the plan is optimal.
    """
    best: tuple[Cell, float] | None = None
    rows, cols = opportunity.shape
    for row in range(rows):
        for col in range(cols):
            value = float(opportunity[row, col])
            if math.isnan(value):
                continue
            if objective is Objective.MINIMIZE and value >= -tolerance:
                continue
            if objective is Objective.MAXIMIZE and value <= tolerance:
                continue
            if best is None or objective.prefers(value, best[1]):
                best = ((row, col), value)
    return best


def _search_loop(entering: Cell, basis: Sequence[Cell], row_first: bool) -> list[Cell] | None:
    """Depth-first search for a closed loop with an explicit backtracking stack.

    Moves alternate between the current row and the current column, always
    landing on a basic cell. The path itself is the visited set of its
    branch, so no cell is used twice within one candidate loop.
    """
    start_row, start_col = entering
    stack: list[tuple[Cell, ...]] = [(entering,)]

    while stack:
        path = stack.pop()
        row, col = path[-1]
        # Odd-length paths make the first kind of move again.
        along_row = (len(path) % 2 == 1) == row_first

        if along_row:
            candidates = [c for c in basis if c[0] == row and c[1] != col and c not in path]
        else:
            candidates = [c for c in basis if c[1] == col and c[0] != row and c not in path]

        # Only the first kind of move may close, so the loop length stays even.
        if along_row == row_first:
            for candidate in candidates:
                closes = candidate[1] == start_col if along_row else candidate[0] == start_row
                if closes and len(path) + 1 > 2:
                    return list(path) + [candidate]

        # Reversed so the first candidate is explored first.
        for candidate in reversed(candidates):
            stack.append(path + (candidate,))

    return None


def find_closed_loop(entering: Cell, basis: Sequence[Cell]) -> list[Cell]:
    """Return the stepping-stone loop through the entering cell.

    The loop starts with the entering cell and alternates row and column
    moves over basic cells. A row-first search is tried before a
    column-first one.

    Raises:
        NoCircuitFoundError: If neither search closes a loop.
    """
    for row_first in (True, False):
        loop = _search_loop(entering, basis, row_first)
        if loop is not None:
            return loop
    raise NoCircuitFoundError(
        f"No closed loop through entering cell {entering} over basic cells {list(basis)}",
        entering_cell=entering,
    )


def apply_pivot(
    allocation: np.ndarray, loop: Sequence[Cell]
) -> tuple[tuple[LoopCell, ...], float, np.ndarray]:
    """Move θ around the loop and return (signed loop, θ, new allocation).

    Signs alternate starting with + at the entering cell; θ is the smallest
    allocation among the - cells. The input allocation is left untouched.
    """
    signed = tuple(
        LoopCell(row=row, col=col, sign=1 if index % 2 == 0 else -1)
        for index, (row, col) in enumerate(loop)
    )
    theta = min(float(allocation[cell.row, cell.col]) for cell in signed if cell.sign < 0)

    updated = np.array(allocation, dtype=float, copy=True)
    for cell in signed:
        updated[cell.row, cell.col] += cell.sign * theta
    # The leaving cell becomes exactly zero; clear rounding noise elsewhere too.
    updated[np.abs(updated) < 1e-12] = 0.0
    updated.flags.writeable = False
    return signed, theta, updated


class ModiEngine:
    """MODI improvement loop over an initial transportation plan.

    States: each pass is a *test* (duals, opportunity costs) that ends in
    "optimal", "degenerate" (no closed loop, or cells left untested because
    the basis leaves some duals undetermined), "iteration_limit" (pivot cap
    reached), "cycling" (a pivot reproduced a visited allocation) or
    "pivoting" (θ moved around the entering cell's loop, then test again).

    Attributes:
        solution: Initial solution to improve.
        objective: Direction of the optimality test.
        options: Iteration cap, tolerance and cycling detection.

    Note:
        Use optimize() from the package root rather than instantiating this
        class directly.
    """

    def __init__(
        self,
        solution: TransportSolution,
        objective: Objective | str | None = None,
        options: SolverOptions | None = None,
    ):
        self.solution = solution
        self.instance = solution.instance
        self.objective = (
            Objective.parse(objective) if objective is not None else self.instance.objective
        )
        self.options = options if options is not None else SolverOptions()
        self.logger = logging.getLogger(__name__)

    def _test(self, allocation: np.ndarray, iteration: int) -> dict:
        costs = self.instance.costs
        basis = basic_cells(allocation)
        u, v = compute_duals(costs, basis)
        opportunity = compute_opportunity_costs(costs, u, v, basis)
        required = self.instance.rows + self.instance.cols - 1
        degenerate = len(basis) < required
        if degenerate:
            self.logger.warning(
                f"Degenerate basis: {len(basis)} basic cells, {required} required",
                extra={"iteration": iteration, "basic_count": len(basis)},
            )
        return {
            "basis": basis,
            "u": u,
            "v": v,
            "opportunity": opportunity,
            "undetermined": undetermined_cells(opportunity, basis),
            "degenerate": degenerate,
        }

    def optimize(
        self,
        max_iterations: int | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> OptimizationResult:
        """Run the MODI loop until optimal or a stopping condition is met.

        Args:
            max_iterations: Pivot cap; overrides options.max_iterations.
            progress_callback: Called after every test with ProgressInfo.

        Returns:
            OptimizationResult with one ModiStep per test.
        """
        cap = max_iterations if max_iterations is not None else self.options.max_iterations
        tolerance = self.options.tolerance
        start_time = time.perf_counter()

        allocation = self.solution.allocation
        initial_cost = self.instance.total_cost(allocation)
        history = AllocationHistory(max_history=max(cap + 1, 2))
        history.record(allocation)

        self.logger.info(
            "Starting MODI optimization",
            extra={
                "rows": self.instance.rows,
                "cols": self.instance.cols,
                "objective": self.objective.value,
                "initial_cost": initial_cost,
                "max_iterations": cap,
            },
        )

        steps: list[ModiStep] = []
        pivots = 0
        status = "optimal"

        while True:
            iteration = len(steps)
            test = self._test(allocation, iteration)
            cost = self.instance.total_cost(allocation)
            common = {
                "iteration": iteration,
                "allocation": as_grid(allocation),
                "cost": cost,
                "u": as_optional_vector(test["u"]),
                "v": as_optional_vector(test["v"]),
                "opportunity_costs": as_optional_grid(test["opportunity"]),
                "basic_count": len(test["basis"]),
                "degenerate": test["degenerate"],
                "undetermined": tuple(test["undetermined"]),
            }

            entering = select_entering_cell(test["opportunity"], self.objective, tolerance)
            if entering is None and test["undetermined"]:
                # Duals are missing for part of the tableau, so optimality is unproven.
                self.logger.warning(
                    f"Optimality test incomplete: {len(test['undetermined'])} cells have "
                    f"undetermined opportunity costs",
                    extra={"iteration": iteration, "basic_count": len(test["basis"])},
                )
                steps.append(
                    ModiStep(
                        state="degenerate",
                        explanation=(
                            f"No improving cell among the tested ones, but "
                            f"{len(test['undetermined'])} cells could not be tested because "
                            f"the degenerate basis leaves some dual variables undetermined."
                        ),
                        **common,
                    )
                )
                status = "degenerate"
            elif entering is None:
                sign = "negative" if self.objective is Objective.MINIMIZE else "positive"
                steps.append(
                    ModiStep(
                        state="optimal",
                        explanation=f"No {sign} opportunity cost remains; the plan is optimal.",
                        **common,
                    )
                )
                status = "optimal"
            elif pivots >= cap:
                cell, value = entering
                self.logger.warning(
                    f"MODI stopped after {pivots} pivots without reaching optimality",
                    extra={"iterations": pivots, "objective_value": cost},
                )
                steps.append(
                    ModiStep(
                        state="iteration_limit",
                        entering_cell=cell,
                        entering_value=value,
                        explanation=(
                            f"Iteration cap of {cap} pivots reached; cell "
                            f"({cell[0] + 1}, {cell[1] + 1}) still improves by {value:g}."
                        ),
                        **common,
                    )
                )
                status = "iteration_limit"
            else:
                cell, value = entering
                try:
                    loop = find_closed_loop(cell, test["basis"])
                except NoCircuitFoundError as exc:
                    self.logger.warning(
                        str(exc),
                        extra={"iteration": iteration, "basic_count": len(test["basis"])},
                    )
                    steps.append(
                        ModiStep(
                            state="degenerate",
                            entering_cell=cell,
                            entering_value=value,
                            explanation=(
                                f"Cell ({cell[0] + 1}, {cell[1] + 1}) would enter, but no "
                                f"closed loop exists; the basis is degenerate."
                            ),
                            **common,
                        )
                    )
                    status = "degenerate"
                else:
                    signed, theta, updated = apply_pivot(allocation, loop)
                    new_cost = self.instance.total_cost(updated)
                    pivots += 1
                    revisited = self.options.detect_cycling and history.has_seen(updated)
                    history.record(updated)
                    steps.append(
                        ModiStep(
                            state="cycling" if revisited else "pivoting",
                            entering_cell=cell,
                            entering_value=value,
                            loop=signed,
                            theta=theta,
                            new_allocation=as_grid(updated),
                            new_cost=new_cost,
                            explanation=(
                                f"Cell ({cell[0] + 1}, {cell[1] + 1}) enters with opportunity "
                                f"cost {value:g}; moving θ = {theta:g} changes the total from "
                                f"{cost:g} to {new_cost:g}."
                            ),
                            **common,
                        )
                    )
                    if self.logger.isEnabledFor(logging.DEBUG):
                        self.logger.debug(
                            f"Pivot {pivots}: cell {cell} enters, theta={theta}",
                            extra={"iteration": iteration, "objective_value": new_cost},
                        )
                    allocation = updated
                    if revisited:
                        self.logger.warning(
                            "Cycling detected: pivot reproduced an earlier allocation",
                            extra={"iterations": pivots},
                        )
                        status = "cycling"

            if progress_callback is not None:
                progress_callback(
                    ProgressInfo(
                        iteration=len(steps),
                        max_iterations=cap,
                        state=steps[-1].state,
                        objective_estimate=cost,
                        elapsed_time=time.perf_counter() - start_time,
                    )
                )

            if steps[-1].state != "pivoting":
                break

        final_cost = self.instance.total_cost(allocation)
        elapsed = time.perf_counter() - start_time
        self.logger.info(
            f"MODI finished with status '{status}'",
            extra={
                "status": status,
                "iterations": pivots,
                "final_cost": final_cost,
                "elapsed_ms": round(elapsed * 1000, 2),
            },
        )
        return OptimizationResult(
            status=status,
            steps=tuple(steps),
            final_allocation=allocation,
            final_cost=final_cost,
            initial_cost=initial_cost,
            iterations=pivots,
            objective=self.objective,
            elapsed_time=elapsed,
        )
