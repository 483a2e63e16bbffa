"""Tests for the North-West Corner, Greedy-Cell and Vogel heuristics."""

import sys
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from transport_solver import (  # noqa: E402
    AllocationStep,
    GreedyCell,
    NorthWestCorner,
    Objective,
    SolverConfigurationError,
    UnbalancedProblemError,
    VogelApproximation,
    VogelStep,
    build_problem,
    get_strategy,
    solve,
)
from transport_solver.utils import validate_allocation  # noqa: E402
from transport_solver.strategies import (  # noqa: E402
    Penalties,
    compute_penalties,
    select_penalty,
)


@pytest.fixture
def textbook_problem():
    return build_problem(
        costs=[[4, 6, 8], [3, 5, 2], [9, 1, 7]],
        supply=[20, 30, 25],
        demand=[10, 25, 40],
    )


@pytest.fixture
def profit_problem():
    return build_problem(
        costs=[[2, 5], [4, 1]],
        supply=[10, 5],
        demand=[5, 10],
        objective="maximize",
    )


# ---------------------------------------------------------------------------
# North-West Corner
# ---------------------------------------------------------------------------


def test_north_west_textbook_allocation(textbook_problem):
    solution = solve(textbook_problem, "north_west")

    assert solution.allocation.tolist() == [
        [10.0, 10.0, 0.0],
        [0.0, 15.0, 15.0],
        [0.0, 0.0, 25.0],
    ]
    assert solution.total_cost == pytest.approx(380.0)
    assert solution.method == "north_west"
    assert solution.final_method == "north_west"


def test_north_west_step_trace(textbook_problem):
    solution = solve(textbook_problem, "north_west")

    assert [step.cell for step in solution.steps] == [(0, 0), (0, 1), (1, 1), (1, 2), (2, 2)]
    assert [step.allocation for step in solution.steps] == [10.0, 10.0, 15.0, 15.0, 25.0]
    assert [step.step for step in solution.steps] == [1, 2, 3, 4, 5]

    first = solution.steps[0]
    assert isinstance(first, AllocationStep)
    assert first.phase == "north_west"
    assert first.remaining_supply == (10.0, 30.0, 25.0)
    assert first.remaining_demand == (0.0, 25.0, 40.0)
    assert first.eliminated_rows == (False, False, False)
    assert first.eliminated_cols == (True, False, False)
    assert first.explanation == "Allocate 10 units to cell (1, 1)"

    last = solution.steps[-1]
    assert last.remaining_supply == (0.0, 0.0, 0.0)
    assert last.remaining_demand == (0.0, 0.0, 0.0)


def test_north_west_simultaneous_exhaustion_moves_diagonally():
    problem = build_problem(costs=[[1, 2], [3, 4]], supply=[10, 10], demand=[10, 10])
    solution = solve(problem, "north_west")

    assert [step.cell for step in solution.steps] == [(0, 0), (1, 1)]
    assert solution.steps[0].eliminated_rows == (True, False)
    assert solution.steps[0].eliminated_cols == (True, False)


def test_north_west_skips_zero_quantities():
    problem = build_problem(costs=[[1, 2], [3, 4]], supply=[0, 5], demand=[5, 0])
    solution = solve(problem, "north_west")

    assert len(solution.steps) == 1
    assert solution.steps[0].cell == (1, 0)
    assert solution.allocation.tolist() == [[0.0, 0.0], [5.0, 0.0]]


def test_north_west_single_cell():
    problem = build_problem(costs=[[3]], supply=[5], demand=[5])
    solution = solve(problem, NorthWestCorner())

    assert solution.allocation.tolist() == [[5.0]]
    assert solution.total_cost == 15.0
    assert len(solution.steps) == 1


# ---------------------------------------------------------------------------
# Greedy cell (minimum cost / maximum profit)
# ---------------------------------------------------------------------------


def test_greedy_minimum_cost_textbook(textbook_problem):
    solution = solve(textbook_problem, "greedy")

    assert [step.cell for step in solution.steps] == [(2, 1), (1, 2), (0, 0), (0, 2)]
    assert [step.allocation for step in solution.steps] == [25.0, 30.0, 10.0, 10.0]
    assert solution.total_cost == pytest.approx(205.0)
    assert all(step.phase == "minimum_cost" for step in solution.steps)
    assert solution.final_method == "greedy"


def test_greedy_records_candidates(textbook_problem):
    solution = solve(textbook_problem, "greedy")

    first = solution.steps[0]
    assert len(first.candidates) == 9
    assert first.candidates[0].cost == 4.0
    assert first.candidates[0].max_allocation == 10.0
    # After (3, 2) takes 25 units, row 3 and column 2 are both crossed out.
    second = solution.steps[1]
    assert {(c.row, c.col) for c in second.candidates} == {(0, 0), (0, 2), (1, 0), (1, 2)}
    assert first.explanation == "Minimum cost: 1 at cell (3, 2). Allocate 25 units."


def test_greedy_ties_pick_first_in_row_major_order():
    problem = build_problem(costs=[[1, 1], [1, 1]], supply=[5, 5], demand=[5, 5])
    solution = solve(problem, "minimum_cost")

    assert [step.cell for step in solution.steps] == [(0, 0), (1, 1)]


def test_greedy_maximum_profit(profit_problem):
    solution = solve(profit_problem, "greedy")

    assert solution.allocation.tolist() == [[0.0, 10.0], [5.0, 0.0]]
    assert solution.total_cost == pytest.approx(70.0)
    assert all(step.phase == "maximum_profit" for step in solution.steps)
    assert solution.steps[0].explanation.startswith("Maximum profit: 5")


# ---------------------------------------------------------------------------
# Vogel's approximation
# ---------------------------------------------------------------------------


def test_vogel_textbook_penalty_phase(textbook_problem):
    solution = solve(textbook_problem, "vogel")

    vogel_steps = [step for step in solution.steps if isinstance(step, VogelStep)]
    assert len(vogel_steps) == 2

    first = vogel_steps[0]
    assert first.penalties == Penalties(rows=(2.0, 1.0, 6.0), cols=(1.0, 4.0, 5.0))
    assert (first.choice.side, first.choice.index, first.choice.value) == ("row", 2, 6.0)
    assert first.cell == (2, 1)
    assert first.allocation == 25.0
    assert first.explanation == "Row 3 penalty = 6. Allocate 25 units to cell (3, 2)"

    second = vogel_steps[1]
    assert second.penalties == Penalties(rows=(4.0, 1.0, None), cols=(1.0, None, 6.0))
    assert (second.choice.side, second.choice.index) == ("col", 2)
    assert second.cell == (1, 2)
    assert second.allocation == 30.0


def test_vogel_textbook_fallback_phase(textbook_problem):
    solution = solve(textbook_problem, "vogel")

    fallback = solution.steps[2:]
    assert [step.cell for step in fallback] == [(0, 0), (0, 2)]
    assert all(step.phase == "minimum_cost" for step in fallback)
    assert not any(isinstance(step, VogelStep) for step in fallback)
    assert solution.method == "vogel"
    assert solution.final_method == "minimum_cost"
    assert solution.total_cost == pytest.approx(205.0)
    assert [step.step for step in solution.steps] == [1, 2, 3, 4]


def test_vogel_maximize_selects_smallest_penalty(profit_problem):
    solution = solve(profit_problem, "vogel")

    first = solution.steps[0]
    assert isinstance(first, VogelStep)
    assert first.penalties == Penalties(rows=(3.0, 3.0), cols=(2.0, 4.0))
    assert (first.choice.side, first.choice.index, first.choice.value) == ("col", 0, 2.0)
    assert first.cell == (1, 0)
    assert solution.final_method == "maximum_profit"
    assert solution.allocation.tolist() == [[0.0, 10.0], [5.0, 0.0]]


def test_vogel_single_row_goes_straight_to_fallback():
    problem = build_problem(costs=[[3, 1, 2]], supply=[6], demand=[1, 2, 3])
    solution = solve(problem, VogelApproximation())

    assert not any(isinstance(step, VogelStep) for step in solution.steps)
    assert [step.cell for step in solution.steps] == [(0, 1), (0, 2), (0, 0)]
    assert solution.final_method == "minimum_cost"


def test_compute_penalties_single_open_value_is_zero():
    costs = np.array([[4.0, 6.0], [3.0, 5.0]])
    penalties = compute_penalties(costs, [False, False], [False, True], Objective.MINIMIZE)

    assert penalties.rows == (0.0, 0.0)
    assert penalties.cols == (1.0, None)


def test_select_penalty_prefers_rows_on_ties():
    penalties = Penalties(rows=(None, 3.0), cols=(3.0, 1.0))

    minimize = select_penalty(penalties, Objective.MINIMIZE)
    maximize = select_penalty(penalties, Objective.MAXIMIZE)

    assert (minimize.side, minimize.index) == ("row", 1)
    assert (maximize.side, maximize.index) == ("col", 1)
    assert select_penalty(Penalties(rows=(None,), cols=(None,)), Objective.MINIMIZE) is None


# ---------------------------------------------------------------------------
# Shared behaviour
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("strategy", ["north_west", "greedy", "vogel"])
def test_unbalanced_problem_rejected_before_allocation(strategy):
    problem = build_problem(costs=[[1, 2], [3, 4]], supply=[10, 5], demand=[5, 5])

    with pytest.raises(UnbalancedProblemError):
        solve(problem, strategy)


@pytest.mark.parametrize("strategy", ["north_west", "greedy", "vogel"])
def test_strategies_are_repeatable(textbook_problem, strategy):
    first = solve(textbook_problem, strategy)
    second = solve(textbook_problem, strategy)

    assert np.array_equal(first.allocation, second.allocation)
    assert first.steps == second.steps
    # The instance itself is never touched.
    assert textbook_problem.supply.tolist() == [20.0, 30.0, 25.0]


@pytest.mark.parametrize("strategy", ["north_west", "greedy", "vogel"])
def test_row_and_column_sums_match(textbook_problem, strategy):
    solution = solve(textbook_problem, strategy)

    assert solution.allocation.sum(axis=1).tolist() == [20.0, 30.0, 25.0]
    assert solution.allocation.sum(axis=0).tolist() == [10.0, 25.0, 40.0]


@pytest.mark.parametrize(
    "name,expected",
    [
        ("north_west", NorthWestCorner),
        ("North-West Corner", NorthWestCorner),
        ("nw", NorthWestCorner),
        ("least_cost", GreedyCell),
        ("maximum_profit", GreedyCell),
        ("VAM", VogelApproximation),
    ],
)
def test_get_strategy_aliases(name, expected):
    assert isinstance(get_strategy(name), expected)


def test_get_strategy_passes_instances_through():
    strategy = GreedyCell()

    assert get_strategy(strategy) is strategy


def test_get_strategy_unknown_name():
    with pytest.raises(SolverConfigurationError) as exc_info:
        get_strategy("simplex")

    assert "simplex" in str(exc_info.value)


# ---------------------------------------------------------------------------
# Boundary instances
# ---------------------------------------------------------------------------


@pytest.fixture
def cross_problem():
    return build_problem(costs=[[9, 1], [1, 9]], supply=[5, 5], demand=[5, 5])


def test_north_west_ignores_costs_on_cross_problem(cross_problem):
    solution = solve(cross_problem, "north_west")

    assert solution.allocation.tolist() == [[5.0, 0.0], [0.0, 5.0]]
    assert solution.total_cost == pytest.approx(90.0)


@pytest.mark.parametrize("strategy", ["greedy", "vogel"])
def test_cost_aware_strategies_take_off_diagonal_when_minimizing(cross_problem, strategy):
    solution = solve(cross_problem, strategy)

    assert solution.allocation.tolist() == [[0.0, 5.0], [5.0, 0.0]]
    assert solution.total_cost == pytest.approx(10.0)


def test_vogel_cross_problem_first_choice(cross_problem):
    solution = solve(cross_problem, "vogel")

    first = solution.steps[0]
    assert isinstance(first, VogelStep)
    # All four penalties are 8; rows win ties and row 0 comes first.
    assert first.choice.side == "row"
    assert first.choice.index == 0
    assert first.choice.value == pytest.approx(8.0)
    assert first.cell == (0, 1)


@pytest.mark.parametrize("strategy", ["greedy", "vogel"])
def test_cost_aware_strategies_take_diagonal_when_maximizing(strategy):
    problem = build_problem(
        costs=[[9, 1], [1, 9]], supply=[5, 5], demand=[5, 5], objective="maximize"
    )

    solution = solve(problem, strategy)

    assert solution.allocation.tolist() == [[5.0, 0.0], [0.0, 5.0]]
    assert solution.total_cost == pytest.approx(90.0)


def test_greedy_decimal_quantities_are_fully_allocated():
    # 0.3 - 0.05 leaves float noise that must not count as unmet demand.
    problem = build_problem(costs=[[1, 2], [3, 4]], supply=[0.3, 0.05], demand=[0.05, 0.3])

    solution = solve(problem, "greedy")

    last = solution.steps[-1]
    assert last.remaining_supply == (0.0, 0.0)
    assert last.remaining_demand == (0.0, 0.0)
    assert validate_allocation(problem, solution.allocation, tolerance=1e-9).is_valid


def test_north_west_decimal_quantities_are_fully_allocated():
    problem = build_problem(costs=[[1, 2], [3, 4]], supply=[0.2, 1.1], demand=[1.1, 0.2])

    solution = solve(problem, "north_west")

    assert [step.cell for step in solution.steps] == [(0, 0), (1, 0), (1, 1)]
    last = solution.steps[-1]
    assert last.remaining_supply == (0.0, 0.0)
    assert last.remaining_demand == (0.0, 0.0)
    assert solution.allocation.sum(axis=1) == pytest.approx([0.2, 1.1])
    assert solution.allocation.sum(axis=0) == pytest.approx([1.1, 0.2])
