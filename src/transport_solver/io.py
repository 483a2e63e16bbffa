"""File I/O helpers for transportation problems."""

from __future__ import annotations

import json
from collections.abc import MutableMapping
from dataclasses import asdict
from pathlib import Path
from typing import Any

from .data import OptimizationResult, ProblemInstance, TransportSolution, build_problem
from .exceptions import InvalidProblemError


def load_problem(path: str | Path) -> ProblemInstance:
    """Load a transportation instance from a JSON file.

    Expected payload::

        {"costs": [[...], ...], "supply": [...], "demand": [...],
         "objective": "minimize"}
    """
    with Path(path).open("r", encoding="utf-8") as fh:
        payload: MutableMapping[str, Any] = json.load(fh)
    costs = payload.get("costs")
    supply = payload.get("supply")
    demand = payload.get("demand")
    if not isinstance(costs, list) or not isinstance(supply, list) or not isinstance(demand, list):
        raise InvalidProblemError(
            "Invalid problem format: JSON must include 'costs' (list of rows), 'supply' and "
            f"'demand' arrays. Got costs type: {type(costs).__name__}, supply type: "
            f"{type(supply).__name__}, demand type: {type(demand).__name__}"
        )
    return build_problem(
        costs=costs,
        supply=supply,
        demand=demand,
        objective=payload.get("objective", "minimize"),
    )


def _steps_payload(steps: tuple) -> list[dict[str, Any]]:
    return [{"type": type(step).__name__, **asdict(step)} for step in steps]


def save_solution(
    path: str | Path,
    solution: TransportSolution,
    result: OptimizationResult | None = None,
) -> None:
    """Persist a solution (and optional MODI result) with its full trace to JSON."""
    data: dict[str, Any] = {
        "method": solution.method,
        "final_method": solution.final_method,
        "objective": solution.instance.objective.value,
        "total_cost": solution.total_cost,
        "allocation": solution.allocation.tolist(),
        "steps": _steps_payload(solution.steps),
    }
    if result is not None:
        data["optimization"] = {
            "status": result.status,
            "is_optimal": result.is_optimal,
            "iterations": result.iterations,
            "initial_cost": result.initial_cost,
            "final_cost": result.final_cost,
            "final_allocation": result.final_allocation.tolist(),
            "steps": _steps_payload(result.steps),
        }
    with Path(path).open("w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2, sort_keys=False)
