"""
Generic result container for pylmmen computations.

Result is the envelope every fit returns. The domain payload P lives in
``params``; convergence details, timing and non-fatal warnings travel
alongside it so a caller scanning many penalty settings can inspect each
fit the same way.

Design decisions:
    - Generic over parameter payload P
    - info dict for flexible metadata (iterations, final change, solver)
    - timing is optional (unit tests build Results by hand)
    - Immutable (frozen=True): one record per fit, never updated
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for a single fit.

    Attributes:
        params: Domain-specific parameters (coefficients, estimates, etc.)
        info: Structured metadata (method, convergence, diagnostics)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the routine that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=LMMENParams(...),
        ...     info={'method': 'lmmen', 'converged': True, 'n_outer_iter': 4},
        ...     timing={'total_seconds': 0.8, 'optimization': 0.7},
        ...     backend_name='cpu_lmmen',
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
