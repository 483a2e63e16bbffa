"""Cycling detection for the MODI improvement loop.

MODI stops after a fixed number of pivots; this module adds a direct check
for the failure mode that bound guards against, a pivot sequence that comes
back to an allocation it has already produced.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

import numpy as np

from .trace import Grid, as_grid


@dataclass
class AllocationHistory:
    """Sliding window of allocations produced by MODI.

    Allocations are stored as nested tuples and compared by value, so two
    plans only match when every cell holds the same quantity.

    Attributes:
        max_history: Number of most recent allocations kept.

    Examples:
        >>> history = AllocationHistory(max_history=11)
        >>> history.record(solution.allocation)
        >>> if history.has_seen(new_allocation):
        ...     print("Warning: cycling detected")
    """

    max_history: int = 100
    states: deque[Grid] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.states = deque(maxlen=self.max_history)

    def record(self, allocation: np.ndarray) -> None:
        self.states.append(as_grid(np.asarray(allocation, dtype=float)))

    def has_seen(self, allocation: np.ndarray) -> bool:
        """True if an equal allocation is still inside the window."""
        return as_grid(np.asarray(allocation, dtype=float)) in self.states
