# fitting/constrained.py
"""
Monotonicity-constrained metalog fitting.

The fit is the convex quadratic program

    minimize    1/2 a^T (Y^T Y) a - (Y^T x)^T a      (= 1/2 ||Y a - x||^2 + const)
    subject to  D a >= epsilon                        (monotonicity)
                T a >= L                              (optional lower bound)
                T a <= U                              (optional upper bound)

with Y[i, j] = T_j(p_i) at the data points and D[k, j] = T_j'(g_k),
T[k, j] = T_j(g_k) at the grid points g_k. Y^T Y is a Gram matrix, hence
positive semi-definite, and the constraints are linear, so the problem is
convex and any local optimum is global. Without active constraints the
solution coincides with ordinary least squares.

Bounds are normally handled by a support transform instead (see
`metalogpipe.distributions.bounds`): the data are mapped to z-space, only
the monotonicity constraints are imposed there, and the transform keeps the
result inside the support by construction.
"""
from __future__ import annotations

import logging
from typing import Any

from ..custom_types import Array, ArrayLike, Ordering
from ..basis import MAX_TERMS, basis_matrix, derivative_matrix, validate_terms
from ..errors import FitInfeasible, QPInfeasibleError
from ..linalg.solvers import LinearConstraint, solve_qp
from ..linalg.utils import gram
from ..distributions.metalog import BoundedMetalog, Metalog
from .least_squares import LeastSquaresFitter
from .request import DEFAULT_EPSILON, FitRequest

__all__ = [
    "ConstrainedFitter",
    "fit_metalog",
]

logger = logging.getLogger(__name__)


class ConstrainedFitter:
    """Least-squares metalog fit with Q'(p) >= epsilon on a grid.

    Args:
        max_terms: Largest admissible number of terms.
        solver: cvxpy solver name; None lets cvxpy choose.
        polish: Refine the solver's point on its active constraint set.
        fallback_to_least_squares: Return an unconstrained least-squares
            model instead of raising `FitInfeasible`. Off by default; the
            fallback is logged as a warning.
        solver_options: Extra keyword arguments for `cvxpy.Problem.solve`.
    """

    def __init__(
        self,
        *,
        max_terms: int = MAX_TERMS,
        solver: str | None = None,
        polish: bool = True,
        fallback_to_least_squares: bool = False,
        solver_options: dict[str, Any] | None = None,
    ):
        self.max_terms = int(max_terms)
        self.solver = solver
        self.polish = polish
        self.fallback_to_least_squares = fallback_to_least_squares
        self.solver_options = dict(solver_options or {})

    def build_problem(self, request: FitRequest, values: Array | None = None) -> tuple[Array, Array, list[LinearConstraint]]:
        """Assemble (P, q, constraints) for `request`.

        `values` overrides the targets (used for transformed data).
        """
        terms = validate_terms(request.terms, self.max_terms)
        x = request.values if values is None else values
        kw = dict(ordering=request.ordering, max_terms=self.max_terms)

        Y = basis_matrix(request.probabilities, terms, **kw)
        P = gram(Y)
        q = -(Y.T @ x)

        D = derivative_matrix(request.grid, terms, **kw)
        constraints = [LinearConstraint(D, ">=", request.epsilon, name="monotonicity")]

        if request.lower_constraint is not None or request.upper_constraint is not None:
            T = basis_matrix(request.grid, terms, **kw)
            if request.lower_constraint is not None:
                constraints.append(LinearConstraint(T, ">=", request.lower_constraint, name="lower bound"))
            if request.upper_constraint is not None:
                constraints.append(LinearConstraint(T, "<=", request.upper_constraint, name="upper bound"))
        return P, q, constraints

    def _solve(self, request: FitRequest, values: Array | None = None) -> Array:
        P, q, constraints = self.build_problem(request, values)
        logger.debug(
            "constrained fit: %d points, %d terms, grid=%d, epsilon=%g, %d constraint blocks",
            request.probabilities.shape[0], request.terms, request.grid_size, request.epsilon, len(constraints),
        )
        try:
            return solve_qp(P, q, constraints, solver=self.solver, polish=self.polish, **self.solver_options)
        except QPInfeasibleError as e:
            raise FitInfeasible(request.epsilon, request.grid_size, detail=str(e)) from e

    def fit_coefficients(
        self,
        probabilities: ArrayLike,
        values: ArrayLike,
        terms: int,
        *,
        epsilon: float = DEFAULT_EPSILON,
        grid: ArrayLike | None = None,
        lower: float | None = None,
        upper: float | None = None,
        ordering: Ordering = "centered",
    ) -> Array:
        """Solve the QP directly on (p_i, x_i), with optional linear bounds.

        Raises:
            InvalidArgument: for malformed inputs, before any solver call.
            FitInfeasible: if no coefficient vector satisfies the constraints.
        """
        request = FitRequest(
            probabilities, values, terms, epsilon=epsilon, grid=grid,
            lower_constraint=lower, upper_constraint=upper, ordering=ordering,
        )
        return self._solve(request)

    def fit(self, request: FitRequest) -> Metalog | BoundedMetalog:
        """Fit the metalog described by `request`.

        Observed values are mapped through ``request.bound.inverse`` and the
        monotonicity QP is solved in that space. Bounded requests return a
        `BoundedMetalog`, unbounded ones a plain `Metalog`.

        Raises:
            InvalidArgument: for malformed requests.
            FitInfeasible: if the QP has no feasible point and the fallback
                is disabled.
        """
        validate_terms(request.terms, self.max_terms)
        z = request.transformed_values()
        try:
            a = self._solve(request, z)
        except FitInfeasible as e:
            if not self.fallback_to_least_squares:
                raise
            logger.warning("%s Falling back to an unconstrained least-squares fit.", e)
            a = LeastSquaresFitter(max_terms=self.max_terms)._solve(request, z)

        model = Metalog(a, ordering=request.ordering, max_terms=self.max_terms)
        if request.bound.is_bounded:
            return BoundedMetalog(model, request.bound)
        return model


def fit_metalog(
    probabilities: ArrayLike,
    values: ArrayLike,
    terms: int,
    *,
    lower: float | None = None,
    upper: float | None = None,
    epsilon: float = DEFAULT_EPSILON,
    grid: ArrayLike | None = None,
    ordering: Ordering = "centered",
    **fitter_kwargs: Any,
) -> Metalog | BoundedMetalog:
    """Fit a metalog through the support transform implied by `lower` / `upper`.

    Shorthand for ``ConstrainedFitter(**fitter_kwargs).fit(FitRequest(...).with_bounds(lower, upper))``.

    With the default "centered" ordering a three-term fit need not pass
    through its three points: unbounded, the data of the example below give
    Q(0.5) ≈ 25.333 instead of 24. Use the Keelin ordering for that.

    Example:
        >>> m = fit_metalog([0.1, 0.5, 0.9], [17.0, 24.0, 35.0], 3,
        ...                 lower=16.0, upper=40.0, ordering="keelin")
        >>> round(m.quantile(0.5), 6)
        24.0
    """
    request = FitRequest(
        probabilities, values, terms, epsilon=epsilon, grid=grid, ordering=ordering,
    ).with_bounds(lower, upper)
    return ConstrainedFitter(**fitter_kwargs).fit(request)
