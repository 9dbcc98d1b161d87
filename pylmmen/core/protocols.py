"""
Core protocols for pylmmen.

The penalised fit depends on two numerical capabilities it does not
implement itself: a quadratic-program solver and a Gaussian log density.
Both are expressed as structural interfaces so a caller can bind any
implementation; the defaults live in ``pylmmen.core.compute``.

Design Principles:
    - Minimal contracts: one call each
    - Protocol (structural typing) rather than ABC
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable, TYPE_CHECKING

from numpy.typing import NDArray

if TYPE_CHECKING:
    from pylmmen.core.compute.qp import QPSolution


@runtime_checkable
class QPSolver(Protocol):
    """
    Solver for  min ½ xᵀGx − aᵀx  subject to  Cᵀx ≥ b.

    Implementations return a QPSolution for a computed optimum and raise
    QPInfeasibleError when the constraint set is empty.
    """

    def __call__(
        self,
        quadratic: NDArray,
        linear: NDArray,
        constraints: NDArray,
        bounds: NDArray,
    ) -> 'QPSolution':
        ...


@runtime_checkable
class LogDensity(Protocol):
    """Log density of x under a multivariate normal (mean, covariance)."""

    def __call__(
        self,
        x: NDArray,
        mean: NDArray,
        covariance: NDArray,
    ) -> float:
        ...
