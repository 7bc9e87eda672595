# basis.py
"""
Metalog basis functions and their analytic derivatives.

With φ = p - 1/2 and ℓ = ln(p / (1 - p)), the "centered" ordering is

    T_0 = 1,  T_1 = ℓ,
    T_j = φ^(j/2)           for even j >= 2,
    T_j = φ^((j-1)/2) · ℓ   for odd  j >= 3,

and the "keelin" ordering (Keelin 2016, Eq. 6) is the same family with
positions 2 and 3 exchanged, i.e. T_2 = φ·ℓ and T_3 = φ. The two orderings
are not interchangeable: a coefficient vector is only meaningful together
with the ordering it was fitted under, which is why models carry it.

The derivative formulas below must stay exact complements of the basis
formulas; the monotonicity constraints of the constrained fitter and every
density evaluation rely on it.
"""
from __future__ import annotations

import numpy as np
from scipy.special import expit, logit

from .custom_types import Array, ArrayLike, Ordering
from .errors import InvalidArgument
from .array_backend.utils import _ensure_probabilities, _ensure_vector, _clip_unit_interval

__all__ = [
    "MAX_TERMS",
    "DEFAULT_GRID_SIZE",
    "DEFAULT_GRID_MARGIN",
    "DEFAULT_TAIL_STEP",
    "ORDERINGS",
    "validate_terms",
    "validate_ordering",
    "basis",
    "basis_derivative",
    "basis_matrix",
    "derivative_matrix",
    "default_grid",
    "clip_probabilities",
]

MAX_TERMS = 20
DEFAULT_GRID_SIZE = 101
DEFAULT_GRID_MARGIN = 1e-12
# logit-space spacing of the tail refinement in default_grid
DEFAULT_TAIL_STEP = 0.2
ORDERINGS = ("centered", "keelin")


def validate_terms(terms: int, max_terms: int = MAX_TERMS) -> int:
    """Check 2 <= terms <= max_terms and return `terms` as an int."""
    if isinstance(terms, bool) or not isinstance(terms, (int, np.integer)):
        raise InvalidArgument(f"terms must be an integer; got {terms!r}.")
    if max_terms < 2:
        raise InvalidArgument(f"max_terms must be at least 2; got {max_terms}.")
    if terms < 2 or terms > max_terms:
        raise InvalidArgument(f"terms must be in [2,{max_terms}], got {terms}.")
    return int(terms)


def validate_ordering(ordering: str) -> str:
    if ordering not in ORDERINGS:
        raise InvalidArgument(f"Unknown basis ordering {ordering!r}; expected one of {ORDERINGS}.")
    return ordering


def _column_order(terms: int, ordering: str) -> list[int]:
    """Map ordering positions to centered-ordering columns."""
    order = list(range(max(terms, 4)))
    if ordering == "keelin":
        order[2], order[3] = order[3], order[2]
    return order[:terms]


def _centered_columns(p: Array, ncols: int) -> Array:
    phi = p - 0.5
    ell = logit(p)
    T = np.empty((p.shape[0], ncols), dtype=float)
    T[:, 0] = 1.0
    T[:, 1] = ell
    for j in range(2, ncols):
        k = j // 2
        if j % 2 == 0:
            T[:, j] = phi ** k
        else:
            T[:, j] = phi ** k * ell
    return T


def _centered_derivative_columns(p: Array, ncols: int) -> Array:
    phi = p - 0.5
    ell = logit(p)
    inv = 1.0 / (p * (1.0 - p))
    D = np.empty((p.shape[0], ncols), dtype=float)
    D[:, 0] = 0.0
    D[:, 1] = inv
    for j in range(2, ncols):
        k = j // 2
        if j % 2 == 0:
            # d[φ^k] = k φ^(k-1)
            D[:, j] = k * phi ** (k - 1)
        else:
            # d[φ^k ℓ] = k φ^(k-1) ℓ + φ^k / (p(1-p)),  k >= 1
            D[:, j] = k * phi ** (k - 1) * ell + phi ** k * inv
    return D


def _matrix(builder, ps: ArrayLike, terms: int, ordering: str, max_terms: int) -> Array:
    terms = validate_terms(terms, max_terms)
    validate_ordering(ordering)
    p = _ensure_probabilities(_ensure_vector(ps, name="p"))
    order = _column_order(terms, ordering)
    full = builder(p, max(order) + 1)
    return full[:, order]


def basis_matrix(ps: ArrayLike, terms: int, *, ordering: Ordering = "centered",
                 max_terms: int = MAX_TERMS) -> Array:
    """Evaluate the basis at several probabilities.

    Args:
        ps: Probabilities, each strictly inside (0, 1).
        terms: Number of basis functions n.
        ordering: "centered" (default) or "keelin".
        max_terms: Largest admissible n.

    Returns:
        Array of shape (K, n) with entry [i, j] = T_j(ps[i]).

    Raises:
        InvalidArgument: for probabilities outside (0, 1), a bad term count
            or an unknown ordering.
    """
    return _matrix(_centered_columns, ps, terms, ordering, max_terms)


def derivative_matrix(ps: ArrayLike, terms: int, *, ordering: Ordering = "centered",
                      max_terms: int = MAX_TERMS) -> Array:
    """Evaluate dT_j/dp at several probabilities; shape (K, n)."""
    return _matrix(_centered_derivative_columns, ps, terms, ordering, max_terms)


def basis(p: float, terms: int, *, ordering: Ordering = "centered",
          max_terms: int = MAX_TERMS) -> Array:
    """Basis vector T(p) = [T_0(p), ..., T_{n-1}(p)] for a single p."""
    return basis_matrix(p, terms, ordering=ordering, max_terms=max_terms)[0]


def basis_derivative(p: float, terms: int, *, ordering: Ordering = "centered",
                     max_terms: int = MAX_TERMS) -> Array:
    """Derivative vector T'(p) for a single p."""
    return derivative_matrix(p, terms, ordering=ordering, max_terms=max_terms)[0]


def default_grid(size: int = DEFAULT_GRID_SIZE, margin: float = DEFAULT_GRID_MARGIN,
                 tail_step: float | None = DEFAULT_TAIL_STEP) -> Array:
    """Constraint grid on [margin, 1 - margin], endpoints included.

    `size` evenly spaced probabilities, merged with probabilities evenly
    spaced in logit space (step `tail_step`) so that the tails, where the
    1/[p(1-p)] terms dominate Q', are sampled as densely as the middle.
    Pass ``tail_step=None`` for the uniform part alone.
    """
    if isinstance(size, bool) or not isinstance(size, (int, np.integer)) or size < 2:
        raise InvalidArgument(f"grid size must be an integer >= 2; got {size!r}.")
    if not 0.0 < margin < 0.5:
        raise InvalidArgument(f"grid margin must lie in (0, 0.5); got {margin}.")
    uniform = np.linspace(margin, 1.0 - margin, int(size))
    if tail_step is None:
        return uniform
    if not tail_step > 0.0:
        raise InvalidArgument(f"tail_step must be positive; got {tail_step}.")

    zmax = float(logit(1.0 - margin))
    z = np.linspace(-zmax, zmax, int(np.ceil(2.0 * zmax / tail_step)) + 1)
    tail = expit(z)
    tail = tail[(tail > margin) & (tail < 1.0 - margin)]
    return np.union1d(uniform, tail)


def clip_probabilities(p: ArrayLike, eps: float = 1e-12) -> Array:
    """Clamp probabilities into [eps, 1 - eps].

    Near 0 and 1 the logit and 1/[p(1-p)] overflow, so callers that draw
    uniforms on the closed interval should pass them through this first.
    """
    if not 0.0 < eps < 0.5:
        raise InvalidArgument(f"eps must lie in (0, 0.5); got {eps}.")
    return _clip_unit_interval(p, eps)
