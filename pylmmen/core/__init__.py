"""
Core infrastructure for pylmmen.

Key components:
    protocols: QPSolver, LogDensity interfaces
    result: Generic Result[P] envelope
    exceptions: Exception and warning hierarchy
    validation: Input validators
    compute: Timing, QP solver, Gaussian log density
"""

from pylmmen.core.protocols import QPSolver, LogDensity
from pylmmen.core.result import Result
from pylmmen.core.exceptions import (
    PyLmmenError,
    ValidationError,
    DimensionError,
    ConfigurationError,
    RankDeficiencyError,
    NumericalError,
    QPInfeasibleError,
    NonConvergenceWarning,
)

__all__ = [
    # Protocols
    "QPSolver",
    "LogDensity",
    # Result
    "Result",
    # Exceptions
    "PyLmmenError",
    "ValidationError",
    "DimensionError",
    "ConfigurationError",
    "RankDeficiencyError",
    "NumericalError",
    "QPInfeasibleError",
    "NonConvergenceWarning",
]
