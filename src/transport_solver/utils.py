"""Utility functions for analyzing and validating transportation plans."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .data import ProblemInstance
from .trace import Cell


@dataclass
class ValidationResult:
    """Results from validating an allocation against its problem.

    Attributes:
        is_valid: True if the allocation satisfies all constraints.
        errors: List of validation error messages (empty if valid).
        row_sums: Quantity shipped from each origin.
        col_sums: Quantity received by each destination.
        negative_cells: Cells holding a negative allocation.
    """

    is_valid: bool
    errors: list[str]
    row_sums: list[float]
    col_sums: list[float]
    negative_cells: list[Cell]


def basic_cells(allocation: np.ndarray) -> list[Cell]:
    """Return cells with a positive allocation, in row-major order."""
    rows, cols = np.nonzero(np.asarray(allocation) > 0)
    return [(int(row), int(col)) for row, col in zip(rows, cols)]


def is_degenerate(allocation: np.ndarray) -> bool:
    """True when fewer than rows + cols - 1 cells carry a positive allocation."""
    rows, cols = np.asarray(allocation).shape
    return len(basic_cells(allocation)) < rows + cols - 1


def allocation_cost(costs: np.ndarray, allocation: np.ndarray) -> float:
    """Recompute the total cost cell by cell in row-major order."""
    costs = np.asarray(costs, dtype=float)
    allocation = np.asarray(allocation, dtype=float)
    total = 0.0
    for row in range(costs.shape[0]):
        for col in range(costs.shape[1]):
            total += float(allocation[row, col]) * float(costs[row, col])
    return total


def validate_allocation(
    problem: ProblemInstance,
    allocation: np.ndarray,
    tolerance: float = 0.0,
) -> ValidationResult:
    """Validate that an allocation is a complete, feasible shipment plan.

    Checks:
    - Shape matches the problem
    - No negative allocations
    - Each row sum equals the origin's supply
    - Each column sum equals the destination's demand

    Args:
        problem: Problem definition with supply and demand.
        allocation: rows x cols plan to validate.
        tolerance: Allowed deviation of a sum (default: 0.0, exact).

    Returns:
        ValidationResult with detailed information about any violations.
    """
    allocation = np.asarray(allocation, dtype=float)
    errors: list[str] = []

    if allocation.shape != problem.shape:
        return ValidationResult(
            is_valid=False,
            errors=[f"Allocation shape {allocation.shape} does not match problem {problem.shape}"],
            row_sums=[],
            col_sums=[],
            negative_cells=[],
        )

    negative_cells = [
        (int(row), int(col)) for row, col in zip(*np.nonzero(allocation < 0))
    ]
    for row, col in negative_cells:
        errors.append(f"Cell ({row}, {col}) has negative allocation {allocation[row, col]}")

    row_sums = [float(sum(allocation[row].tolist())) for row in range(problem.rows)]
    col_sums = [float(sum(allocation[:, col].tolist())) for col in range(problem.cols)]

    for row, (shipped, supply) in enumerate(zip(row_sums, problem.supply.tolist())):
        if abs(shipped - supply) > tolerance:
            errors.append(f"Origin {row}: shipped {shipped} but supply is {supply}")
    for col, (received, demand) in enumerate(zip(col_sums, problem.demand.tolist())):
        if abs(received - demand) > tolerance:
            errors.append(f"Destination {col}: received {received} but demand is {demand}")

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        row_sums=row_sums,
        col_sums=col_sums,
        negative_cells=negative_cells,
    )
