# errors.py
"""
Exception taxonomy for metalogpipe.

- `InvalidArgument`: malformed input detected before any numerical work.
- `ModelInvalid`: a model is queried where its quantile function is not
  increasing (Q'(p) <= 0).
- `FitInfeasible`: the constrained fit has no feasible coefficient vector.
- `SolverError` and subclasses: failures reported by the numerical
  back ends in `metalogpipe.linalg.solvers`.
"""
from __future__ import annotations

import numpy as np

__all__ = [
    "MetalogError",
    "InvalidArgument",
    "ModelInvalid",
    "FitInfeasible",
    "SolverError",
    "QPInfeasibleError",
    "QPUnboundedError",
    "RankDeficiencyError",
]


class MetalogError(Exception):
    """Base class for all errors raised by metalogpipe."""


class InvalidArgument(MetalogError, ValueError):
    """Raised for malformed probabilities, values, term counts or bounds."""


class ModelInvalid(MetalogError, ArithmeticError):
    """Raised when the quantile slope Q'(p) is not positive at a queried p.

    Attributes:
        p: The offending probabilities.
        slope: The quantile slope at those probabilities.
    """

    def __init__(self, message: str, *, p=None, slope=None):
        super().__init__(message)
        self.p = p
        self.slope = slope


class FitInfeasible(MetalogError, RuntimeError):
    """Raised when no coefficient vector satisfies the fit constraints.

    Attributes:
        epsilon: Monotonicity floor that was requested.
        grid_size: Number of constraint grid points.
    """

    def __init__(self, epsilon: float, grid_size: int, detail: str = ""):
        msg = (
            f"Constrained metalog fit is infeasible (epsilon={epsilon:g}, "
            f"grid_size={grid_size}). Try a smaller epsilon, a coarser grid, "
            f"or wider bounds."
        )
        if detail:
            msg = f"{msg} {detail}"
        super().__init__(msg)
        self.epsilon = epsilon
        self.grid_size = grid_size


class SolverError(MetalogError, RuntimeError):
    """Raised when a numerical solver fails to return a usable solution."""


class QPInfeasibleError(SolverError):
    """The quadratic program has no feasible point."""


class QPUnboundedError(SolverError):
    """The quadratic program is unbounded below."""


class RankDeficiencyError(MetalogError, np.linalg.LinAlgError):
    """A design matrix does not have full column rank."""
