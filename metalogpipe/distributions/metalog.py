# distributions/metalog.py
"""
Metalog distributions.

`Metalog` holds a coefficient vector a and evaluates

    Q(p) = sum_j a_j T_j(p),     f(Q(p)) = 1 / sum_j a_j T_j'(p)

with the basis of `metalogpipe.basis`. `BoundedMetalog` composes a `Metalog`
fitted in the unconstrained space z with a `BoundTransform` that carries it
onto a bounded support.
"""
from __future__ import annotations

import numpy as np

from ..custom_types import Array, ArrayLike, Ordering, PRNG
from ..errors import InvalidArgument
from ..basis import MAX_TERMS, basis_matrix, derivative_matrix, validate_ordering, validate_terms
from ..array_backend.utils import _as_array, _ensure_finite_vector, _ensure_probabilities, _readonly
from .bounds import BoundTransform, Unbounded
from .quantile import QuantileDistribution, _check_slope

__all__ = [
    "Metalog",
    "BoundedMetalog",
]


class Metalog(QuantileDistribution):
    """Unbounded metalog distribution.

    Args:
        coefficients: Expansion coefficients a_0 ... a_{n-1}, 2 <= n <= max_terms.
        ordering: Basis ordering the coefficients refer to, "centered"
            (default) or "keelin".
        max_terms: Largest admissible number of terms.
        rng: Random generator used by `sample`.

    Raises:
        InvalidArgument: for a bad coefficient vector or ordering.
    """

    def __init__(
        self,
        coefficients: ArrayLike,
        *,
        ordering: Ordering = "centered",
        max_terms: int = MAX_TERMS,
        rng: PRNG | None = None,
    ):
        a = _ensure_finite_vector(coefficients, name="coefficients")
        self._terms = validate_terms(a.shape[0], max_terms)
        self._ordering = validate_ordering(ordering)
        self._max_terms = int(max_terms)
        self._a = _readonly(a)
        self._rng = rng or np.random.default_rng()

    @property
    def coefficients(self) -> Array:
        """A copy of the coefficient vector, shape (n,)."""
        return self._a.copy()

    @property
    def terms(self) -> int:
        return self._terms

    @property
    def ordering(self) -> str:
        return self._ordering

    @property
    def max_terms(self) -> int:
        return self._max_terms

    def _evaluate(self, builder, p: ArrayLike):
        parr = _ensure_probabilities(p)
        M = builder(parr.reshape(-1), self._terms, ordering=self._ordering, max_terms=self._max_terms)
        out = M @ self._a
        return float(out[0]) if parr.ndim == 0 else out.reshape(parr.shape)

    def quantile(self, p: ArrayLike):
        """Q(p) = sum_j a_j T_j(p).

        Raises:
            InvalidArgument: if any p is outside (0, 1).
        """
        return self._evaluate(basis_matrix, p)

    def quantile_derivative(self, p: ArrayLike):
        """Q'(p) = sum_j a_j T_j'(p)."""
        return self._evaluate(derivative_matrix, p)

    def __repr__(self) -> str:
        coeffs = np.array2string(self._a, precision=6, separator=", ")
        return f"Metalog(coefficients={coeffs}, ordering={self._ordering!r})"


class BoundedMetalog(QuantileDistribution):
    """Metalog mapped onto a bounded support.

    ``quantile(p) = transform.forward(inner.quantile(p))`` and the density
    follows from the chain rule,
    ``density(p) = 1 / (transform.derivative(z) * inner.quantile_derivative(p))``
    with z = inner.quantile(p).

    Args:
        inner: Metalog fitted in the unconstrained space.
        transform: Support transform.
        rng: Random generator used by `sample`; defaults to the inner model's.
    """

    def __init__(self, inner: Metalog, transform: BoundTransform, *, rng: PRNG | None = None):
        if not isinstance(inner, Metalog):
            raise InvalidArgument(f"inner must be a Metalog; got {type(inner).__name__}.")
        if not isinstance(transform, BoundTransform):
            raise InvalidArgument(f"transform must be a BoundTransform; got {type(transform).__name__}.")
        self._inner = inner
        self._transform = transform
        self._rng = rng or inner._rng

    @classmethod
    def from_coefficients(cls, coefficients: ArrayLike, transform: BoundTransform | None = None,
                          **metalog_kwargs) -> BoundedMetalog:
        """Build from a z-space coefficient vector and a transform."""
        return cls(Metalog(coefficients, **metalog_kwargs), transform or Unbounded())

    @property
    def inner(self) -> Metalog:
        return self._inner

    @property
    def transform(self) -> BoundTransform:
        return self._transform

    @property
    def coefficients(self) -> Array:
        """z-space coefficients of the inner metalog."""
        return self._inner.coefficients

    @property
    def terms(self) -> int:
        return self._inner.terms

    @property
    def ordering(self) -> str:
        return self._inner.ordering

    @property
    def lower(self) -> float | None:
        return self._transform.lower

    @property
    def upper(self) -> float | None:
        return self._transform.upper

    def quantile(self, p: ArrayLike):
        return self._transform.forward(self._inner.quantile(p))

    def quantile_derivative(self, p: ArrayLike):
        z = self._inner.quantile(p)
        return self._transform.derivative(z) * self._inner.quantile_derivative(p)

    def density(self, p: ArrayLike):
        """Density at x = Q(p), f = 1 / (dx/dz * Q_z'(p)).

        Raises:
            InvalidArgument: if p is outside (0, 1).
            ModelInvalid: if the inner slope Q_z'(p) <= 0.
        """
        parr = _ensure_probabilities(p)
        slope = _as_array(self._inner.quantile_derivative(parr))
        _check_slope(parr, slope)
        dxdz = _as_array(self._transform.derivative(self._inner.quantile(parr)))
        out = 1.0 / (dxdz * slope)
        return float(out) if parr.ndim == 0 else out

    def __repr__(self) -> str:
        return f"BoundedMetalog(inner={self._inner!r}, transform={self._transform!r})"
