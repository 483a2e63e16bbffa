"""Replayable step records shared by the heuristics and the MODI engine.

Every decision an algorithm makes is captured as a frozen dataclass holding
plain tuples, so a trace can be rendered, compared or serialized long after
the solve finished without any risk of later iterations mutating it.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Union

import numpy as np

Cell = tuple[int, int]
Grid = tuple[tuple[float, ...], ...]
OptionalGrid = tuple[tuple[Union[float, None], ...], ...]


@dataclass(frozen=True)
class CandidateCell:
    """A cell that was eligible at a greedy decision point.

    Attributes:
        row: Origin index.
        col: Destination index.
        cost: Unit cost (or profit) of the cell.
        max_allocation: Quantity the cell could take at that moment.
    """

    row: int
    col: int
    cost: float
    max_allocation: float


@dataclass(frozen=True)
class AllocationStep:
    """One allocation made by an initial-solution heuristic.

    Attributes:
        step: 1-based position in the trace.
        row: Origin index of the selected cell.
        col: Destination index of the selected cell.
        cost: Unit cost (or profit) of the selected cell.
        allocation: Quantity shipped through the cell on this step.
        remaining_supply: Supply left per origin after the allocation.
        remaining_demand: Demand left per destination after the allocation.
        eliminated_rows: Origins crossed out after the allocation.
        eliminated_cols: Destinations crossed out after the allocation.
        explanation: Human-readable description of the decision.
        phase: Procedure that produced the step ("north_west", "minimum_cost",
               "maximum_profit" or "vogel").
        candidates: Cells that were available when the choice was made
                    (greedy steps only).
    """

    step: int
    row: int
    col: int
    cost: float
    allocation: float
    remaining_supply: tuple[float, ...]
    remaining_demand: tuple[float, ...]
    eliminated_rows: tuple[bool, ...]
    eliminated_cols: tuple[bool, ...]
    explanation: str
    phase: str = "north_west"
    candidates: tuple[CandidateCell, ...] = ()

    @property
    def cell(self) -> Cell:
        return (self.row, self.col)


@dataclass(frozen=True)
class Penalties:
    """Row and column penalty snapshot; None marks an undefined penalty."""

    rows: tuple[float | None, ...]
    cols: tuple[float | None, ...]


@dataclass(frozen=True)
class PenaltyChoice:
    """The penalty line Vogel's method selected.

    Attributes:
        side: "row" or "col".
        index: Index of the selected row or column.
        value: Penalty value that won the comparison.
    """

    side: str
    index: int
    value: float


@dataclass(frozen=True)
class VogelStep(AllocationStep):
    """Allocation step of the penalty phase of Vogel's approximation."""

    penalties: Penalties | None = None
    choice: PenaltyChoice | None = None


@dataclass(frozen=True)
class LoopCell:
    """A corner of a stepping-stone loop; sign is +1 (add θ) or -1 (subtract θ)."""

    row: int
    col: int
    sign: int

    @property
    def cell(self) -> Cell:
        return (self.row, self.col)


@dataclass(frozen=True)
class ModiStep:
    """One optimality test of the MODI engine, plus the pivot it triggered.

    Attributes:
        iteration: 0-based test number.
        allocation: Allocation that was tested.
        cost: Total cost (or profit) of the tested allocation.
        u: Row duals; None where propagation could not determine a value.
        v: Column duals; None where propagation could not determine a value.
        opportunity_costs: cost - u - v per non-basic cell; None for basic cells
                           and cells with an undetermined dual.
        basic_count: Number of positive allocations in the tested plan.
        degenerate: True when basic_count < rows + cols - 1.
        state: State reached after this test ("pivoting", "optimal",
               "degenerate", "iteration_limit" or "cycling").
        undetermined: Non-basic cells left untested because a dual is undetermined.
        entering_cell: Cell selected to enter the basis, if any.
        entering_value: Opportunity cost of the entering cell.
        loop: Closed loop through the entering cell, starting with it.
        theta: Quantity moved around the loop.
        new_allocation: Allocation after the pivot.
        new_cost: Total cost (or profit) after the pivot.
        explanation: Human-readable summary.
    """

    iteration: int
    allocation: Grid
    cost: float
    u: tuple[float | None, ...]
    v: tuple[float | None, ...]
    opportunity_costs: OptionalGrid
    basic_count: int
    degenerate: bool
    state: str
    undetermined: tuple[Cell, ...] = ()
    entering_cell: Cell | None = None
    entering_value: float | None = None
    loop: tuple[LoopCell, ...] = ()
    theta: float | None = None
    new_allocation: Grid | None = None
    new_cost: float | None = None
    explanation: str = ""


StepRecord = Union[AllocationStep, VogelStep, ModiStep]


@dataclass
class StepRecorder:
    """Append-only collector used while an algorithm runs."""

    steps: list[StepRecord] = field(default_factory=list)

    @property
    def next_step(self) -> int:
        return len(self.steps) + 1

    def record(self, step: StepRecord) -> None:
        self.steps.append(step)

    def freeze(self) -> tuple[StepRecord, ...]:
        return tuple(self.steps)


def as_vector(values: Iterable[float]) -> tuple[float, ...]:
    return tuple(float(value) for value in values)


def as_grid(matrix: np.ndarray) -> Grid:
    return tuple(tuple(float(value) for value in row) for row in matrix)


def as_optional_vector(values: Iterable[float]) -> tuple[float | None, ...]:
    # NaN is the in-array marker for "undetermined".
    return tuple(None if math.isnan(value) else float(value) for value in values)


def as_optional_grid(matrix: np.ndarray) -> OptionalGrid:
    return tuple(as_optional_vector(row) for row in matrix)
