"""Tests for problem construction, validation and the balance check."""

import sys
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from transport_solver import (  # noqa: E402
    BalanceCheck,
    InvalidProblemError,
    Objective,
    ProblemInstance,
    TransportSolution,
    UnbalancedProblemError,
    build_problem,
    check_balance,
)


def test_check_balance_balanced():
    balance = check_balance([20, 30, 25], [10, 25, 40])

    assert balance == BalanceCheck(total_supply=75.0, total_demand=75.0, balanced=True)


def test_check_balance_unbalanced():
    balance = check_balance([20, 30, 25], [10, 25, 35])

    assert balance.total_supply == 75.0
    assert balance.total_demand == 70.0
    assert balance.balanced is False


def test_check_balance_is_exact():
    # No tolerance: a tiny difference is still unbalanced.
    balance = check_balance([10.0], [10.0 + 1e-9])

    assert balance.balanced is False


def test_check_balance_empty_vectors():
    balance = check_balance([], [])

    assert balance.balanced is True
    assert balance.total_supply == 0.0


def test_problem_instance_shape_and_readonly_arrays():
    problem = build_problem(costs=[[4, 6, 8], [3, 5, 2]], supply=[20, 30], demand=[10, 25, 15])

    assert problem.shape == (2, 3)
    assert problem.rows == 2
    assert problem.cols == 3
    assert problem.costs.dtype == float
    with pytest.raises(ValueError):
        problem.costs[0, 0] = 99.0
    with pytest.raises(ValueError):
        problem.supply[0] = 99.0


def test_problem_instance_copies_inputs():
    costs = np.array([[1.0, 2.0], [3.0, 4.0]])
    problem = ProblemInstance(costs=costs, supply=[1, 1], demand=[1, 1])

    costs[0, 0] = 100.0

    assert problem.costs[0, 0] == 1.0


def test_unbalanced_instance_can_be_built_but_not_validated():
    problem = build_problem(costs=[[1, 2]], supply=[5], demand=[2, 2])

    assert problem.check_balance().balanced is False
    with pytest.raises(UnbalancedProblemError):
        problem.validate()


@pytest.mark.parametrize(
    "costs,supply,demand,fragment",
    [
        ([], [], [], "non-empty"),
        ([[1, 2]], [1, 1], [1, 1], "Supply vector"),
        ([[1, 2]], [2], [1], "Demand vector"),
        ([[1, float("nan")]], [2], [1, 1], "non-finite"),
        ([[1, 2]], [-2], [-1, -1], "negative"),
        ([[1, 2]], [2], [float("inf"), 1], "non-finite"),
    ],
)
def test_invalid_problem_shapes_and_values(costs, supply, demand, fragment):
    with pytest.raises(InvalidProblemError) as exc_info:
        build_problem(costs=costs, supply=supply, demand=demand)

    assert fragment in str(exc_info.value)


def test_non_numeric_costs_rejected():
    with pytest.raises(InvalidProblemError):
        build_problem(costs=[["a", "b"]], supply=[1], demand=[1, 0])


def test_objective_parse():
    assert Objective.parse("minimize") is Objective.MINIMIZE
    assert Objective.parse(" MAXIMIZE ") is Objective.MAXIMIZE
    assert Objective.parse(Objective.MAXIMIZE) is Objective.MAXIMIZE
    with pytest.raises(InvalidProblemError):
        Objective.parse("sideways")


def test_objective_prefers_is_strict():
    assert Objective.MINIMIZE.prefers(1.0, 2.0)
    assert not Objective.MINIMIZE.prefers(2.0, 2.0)
    assert Objective.MAXIMIZE.prefers(3.0, 2.0)
    assert not Objective.MAXIMIZE.prefers(2.0, 2.0)


def test_objective_worst_value():
    assert Objective.MINIMIZE.worst_value() == float("inf")
    assert Objective.MAXIMIZE.worst_value() == float("-inf")


def test_build_problem_accepts_objective_string():
    problem = build_problem(costs=[[1]], supply=[1], demand=[1], objective="maximize")

    assert problem.objective is Objective.MAXIMIZE


def test_total_cost():
    problem = build_problem(costs=[[4, 6], [3, 5]], supply=[10, 10], demand=[10, 10])

    assert problem.total_cost(np.array([[10, 0], [0, 10]])) == 90.0


def test_transport_solution_defaults_final_method():
    problem = build_problem(costs=[[1]], supply=[1], demand=[1])
    solution = TransportSolution(
        instance=problem, allocation=np.array([[1.0]]), total_cost=1.0, method="north_west"
    )

    assert solution.final_method == "north_west"
    assert solution.allocation.flags.writeable is False
