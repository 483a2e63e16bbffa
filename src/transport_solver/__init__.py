"""High-level entrypoints for the transportation problem solver library."""

from .data import (
    BalanceCheck,
    Objective,
    OptimizationResult,
    ProblemInstance,
    ProgressCallback,
    ProgressInfo,
    SolverOptions,
    TransportSolution,
    build_problem,
    check_balance,
)
from .diagnostics import AllocationHistory
from .exceptions import (
    InvalidProblemError,
    IterationCapExceededError,
    NoAvailableCellError,
    NoCircuitFoundError,
    SolverConfigurationError,
    TransportSolverError,
    UnbalancedProblemError,
)
from .modi import ModiEngine, find_closed_loop
from .solver import load_problem, optimize, save_solution, solve
from .strategies import (
    GreedyCell,
    InitialSolutionStrategy,
    NorthWestCorner,
    VogelApproximation,
    get_strategy,
)
from .trace import (
    AllocationStep,
    CandidateCell,
    LoopCell,
    ModiStep,
    Penalties,
    PenaltyChoice,
    StepRecorder,
    VogelStep,
)
from .utils import ValidationResult, allocation_cost, basic_cells, is_degenerate, validate_allocation

__version__ = "0.1.0"

__all__ = [
    # Main API
    "build_problem",
    "check_balance",
    "solve",
    "optimize",
    "load_problem",
    "save_solution",
    # Problem and results
    "Objective",
    "ProblemInstance",
    "BalanceCheck",
    "TransportSolution",
    "OptimizationResult",
    # Configuration
    "SolverOptions",
    # Progress tracking
    "ProgressCallback",
    "ProgressInfo",
    # Strategies
    "InitialSolutionStrategy",
    "NorthWestCorner",
    "GreedyCell",
    "VogelApproximation",
    "get_strategy",
    # MODI
    "ModiEngine",
    "find_closed_loop",
    # Step trace
    "StepRecorder",
    "AllocationStep",
    "VogelStep",
    "ModiStep",
    "CandidateCell",
    "Penalties",
    "PenaltyChoice",
    "LoopCell",
    # Utilities
    "validate_allocation",
    "allocation_cost",
    "basic_cells",
    "is_degenerate",
    "ValidationResult",
    # Diagnostics
    "AllocationHistory",
    # Exceptions
    "TransportSolverError",
    "InvalidProblemError",
    "UnbalancedProblemError",
    "NoAvailableCellError",
    "NoCircuitFoundError",
    "IterationCapExceededError",
    "SolverConfigurationError",
]
