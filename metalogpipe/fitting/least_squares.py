# fitting/least_squares.py
from __future__ import annotations

import logging

from ..custom_types import Array, ArrayLike, Ordering
from ..basis import MAX_TERMS, basis_matrix, validate_terms
from ..linalg.solvers import LSTSQ_METHODS, lstsq
from ..errors import InvalidArgument
from ..distributions.bounds import BoundTransform, Unbounded
from ..distributions.metalog import BoundedMetalog, Metalog
from .request import FitRequest

__all__ = [
    "LeastSquaresFitter",
]

logger = logging.getLogger(__name__)


class LeastSquaresFitter:
    """Ordinary least-squares metalog fit.

    Solves min_a ||Y a - x||_2 with Y[i, j] = T_j(p_i). Nothing constrains
    the result to be increasing; check `is_feasible()` on the returned model
    or use `ConstrainedFitter` when that matters.

    Args:
        method: "qr", "svd" or "auto" (see `metalogpipe.linalg.solvers.lstsq`).
        max_terms: Largest admissible number of terms.
        rcond: Singular-value cutoff for the SVD path.
    """

    def __init__(self, method: str = "auto", *, max_terms: int = MAX_TERMS, rcond: float | None = None):
        if method not in LSTSQ_METHODS:
            raise InvalidArgument(f"Unknown least-squares method {method!r}; expected one of {LSTSQ_METHODS}.")
        self.method = method
        self.max_terms = int(max_terms)
        self.rcond = rcond

    def design_matrix(self, probabilities: ArrayLike, terms: int, *, ordering: Ordering = "centered") -> Array:
        """Y with Y[i, j] = T_j(p_i), shape (K, n)."""
        return basis_matrix(probabilities, terms, ordering=ordering, max_terms=self.max_terms)

    def fit_coefficients(self, probabilities: ArrayLike, values: ArrayLike, terms: int,
                         *, ordering: Ordering = "centered") -> Array:
        """Least-squares coefficients for (p_i, x_i) without any transform.

        Raises:
            InvalidArgument: on mismatched lengths, p outside (0, 1) or a bad term count.
        """
        request = FitRequest(probabilities, values, terms, ordering=ordering)
        return self._solve(request)

    def _solve(self, request: FitRequest, values: Array | None = None) -> Array:
        terms = validate_terms(request.terms, self.max_terms)
        target = request.values if values is None else values
        Y = self.design_matrix(request.probabilities, terms, ordering=request.ordering)
        logger.debug("least squares: %d points, %d terms, method=%s", Y.shape[0], terms, self.method)
        return lstsq(Y, target, method=self.method, rcond=self.rcond)

    def fit(self, probabilities: ArrayLike, values: ArrayLike, terms: int, *,
            bound: BoundTransform | None = None, ordering: Ordering = "centered") -> Metalog | BoundedMetalog:
        """Fit a (possibly bounded) metalog by least squares.

        With a bounded transform the observed values are first mapped into
        the unconstrained space (e.g. z = ln(x - L)) and the fit happens there.
        """
        request = FitRequest(probabilities, values, terms, bound=bound or Unbounded(), ordering=ordering)
        return self.fit_request(request)

    def fit_request(self, request: FitRequest) -> Metalog | BoundedMetalog:
        """Fit using the data, bound and ordering of `request`; epsilon and grid are ignored."""
        if request.lower_constraint is not None or request.upper_constraint is not None:
            raise InvalidArgument("least-squares fitting cannot enforce linear bound constraints.")
        a = self._solve(request, request.transformed_values())
        model = Metalog(a, ordering=request.ordering, max_terms=self.max_terms)
        if not model.is_feasible(request.grid):
            logger.debug("least squares: fitted quantile function is not increasing on the grid")
        if request.bound.is_bounded:
            return BoundedMetalog(model, request.bound)
        return model
