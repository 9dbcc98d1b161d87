"""
Stopping rules for the two nested estimation loops.

Both loops stop when the largest absolute change of β between two
iterates falls below the caller's tolerance, or when they reach their
iteration cap. Hitting the cap is not an error: the loop ends with the
last computed values and the caller reports the condition.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


class ConvergenceController:
    """Iteration bookkeeping for one loop.

    Usage:
        control = ConvergenceController(tol=1e-4, max_iter=100, name='inner')
        while control.running:
            beta_new = step(beta)
            control.update(beta, beta_new)
            beta = beta_new
        if control.exhausted:
            ...
    """

    def __init__(self, tol: float, max_iter: int, name: str = 'loop'):
        self.tol = tol
        self.max_iter = max_iter
        self.name = name
        self.n_iter = 0
        self.converged = False
        self.last_change = float('inf')

    @property
    def running(self) -> bool:
        """True while neither the tolerance nor the cap has been reached."""
        return not self.converged and self.n_iter < self.max_iter

    @property
    def exhausted(self) -> bool:
        """True if the loop stopped at the cap without converging."""
        return not self.converged and self.n_iter >= self.max_iter

    def update(self, previous: NDArray, current: NDArray) -> bool:
        """Record one iteration; return True when the loop should stop."""
        self.n_iter += 1
        diff = np.abs(np.asarray(previous) - np.asarray(current))
        self.last_change = float(np.max(diff)) if diff.size else 0.0
        if self.last_change < self.tol:
            self.converged = True
        return not self.running

    def message(self) -> str:
        """Human-readable non-convergence message."""
        return (
            f"{self.name} loop did not converge after {self.n_iter} iterations "
            f"(final max |change in beta|: {self.last_change:.2e}, tol: {self.tol:.2e})"
        )
