# fitting/request.py
from __future__ import annotations

from dataclasses import dataclass, field, replace

import numpy as np

from ..custom_types import Array, ArrayLike, Ordering
from ..errors import InvalidArgument
from ..basis import default_grid, validate_ordering
from ..array_backend.utils import (
    _ensure_finite_vector,
    _ensure_probabilities,
    _ensure_real_scalar,
    _ensure_vector,
    _readonly,
)
from ..distributions.bounds import BoundTransform, Unbounded, bound_transform

__all__ = [
    "DEFAULT_EPSILON",
    "FitRequest",
]

DEFAULT_EPSILON = 1e-6


@dataclass(frozen=True, eq=False)
class FitRequest:
    """Immutable description of one metalog fit.

    Every field is validated on construction, so a request that exists is
    well formed apart from the term ceiling, which depends on the fitter.
    The ``with_*`` helpers return modified copies.

    Attributes:
        probabilities: Cumulative probabilities p_i, strictly inside (0, 1).
        values: Observed quantiles x_i, same length as `probabilities`.
        terms: Number of metalog terms n (>= 2).
        epsilon: Monotonicity floor, Q'(p) >= epsilon on the grid (> 0).
        grid: Probabilities at which the constraints are enforced; defaults
            to `basis.default_grid()`: 101 evenly spaced points on
            [1e-12, 1 - 1e-12] plus a logit-spaced tail refinement.
        bound: Support transform applied to `values` before fitting.
        lower_constraint: Optional Q(p) >= L enforced as linear constraints
            on the grid (only with an `Unbounded` transform).
        upper_constraint: Optional Q(p) <= U, likewise.
        ordering: Basis ordering, "centered" or "keelin".
    """
    probabilities: Array
    values: Array
    terms: int
    epsilon: float = DEFAULT_EPSILON
    grid: Array | None = None
    bound: BoundTransform = field(default_factory=Unbounded)
    lower_constraint: float | None = None
    upper_constraint: float | None = None
    ordering: Ordering = "centered"

    def __post_init__(self):
        p = _ensure_probabilities(_ensure_vector(self.probabilities, name="probabilities"), name="probabilities")
        x = _ensure_finite_vector(self.values, name="values")
        if p.shape[0] == 0:
            raise InvalidArgument("at least one (p, x) pair is required.")
        if p.shape[0] != x.shape[0]:
            raise InvalidArgument(
                f"probabilities and values must have the same length; got {p.shape[0]} and {x.shape[0]}."
            )

        if isinstance(self.terms, bool) or not isinstance(self.terms, (int, np.integer)) or self.terms < 2:
            raise InvalidArgument(f"terms must be an integer >= 2; got {self.terms!r}.")

        epsilon = _ensure_real_scalar(self.epsilon, name="epsilon")
        if epsilon <= 0.0:
            raise InvalidArgument(f"epsilon must be positive; got {epsilon}.")

        grid = default_grid() if self.grid is None else _ensure_vector(self.grid, name="grid")
        if grid.shape[0] == 0:
            raise InvalidArgument("constraint grid must not be empty.")
        grid = _ensure_probabilities(grid, name="grid")

        if not isinstance(self.bound, BoundTransform):
            raise InvalidArgument(f"bound must be a BoundTransform; got {type(self.bound).__name__}.")
        self.bound.validate(x)

        lower = None if self.lower_constraint is None else _ensure_real_scalar(self.lower_constraint, name="lower constraint")
        upper = None if self.upper_constraint is None else _ensure_real_scalar(self.upper_constraint, name="upper constraint")
        if lower is not None and upper is not None and not upper > lower:
            raise InvalidArgument(f"upper constraint must exceed lower constraint; got L={lower}, U={upper}.")
        if (lower is not None or upper is not None) and self.bound.is_bounded:
            raise InvalidArgument(
                "linear bound constraints cannot be combined with a bound transform; use one or the other."
            )

        validate_ordering(self.ordering)

        object.__setattr__(self, "probabilities", _readonly(p))
        object.__setattr__(self, "values", _readonly(x))
        object.__setattr__(self, "terms", int(self.terms))
        object.__setattr__(self, "epsilon", epsilon)
        object.__setattr__(self, "grid", _readonly(grid))
        object.__setattr__(self, "lower_constraint", lower)
        object.__setattr__(self, "upper_constraint", upper)

    @property
    def grid_size(self) -> int:
        return int(self.grid.shape[0])

    def transformed_values(self) -> Array:
        """Observed values mapped into the unconstrained fitting space."""
        return np.asarray(self.bound.inverse(self.values), dtype=float)

    # --------- Fluent, non-mutating helpers ---------

    def with_epsilon(self, epsilon: float) -> FitRequest:
        return replace(self, epsilon=epsilon)

    def with_grid(self, grid: ArrayLike) -> FitRequest:
        return replace(self, grid=grid)

    def with_bounds(self, lower: float | None = None, upper: float | None = None) -> FitRequest:
        """Fit through the support transform matching `lower` / `upper`."""
        return replace(self, bound=bound_transform(lower, upper))

    def with_constraints(self, lower: float | None = None, upper: float | None = None) -> FitRequest:
        """Enforce L <= Q(p) <= U as linear constraints on the grid instead."""
        return replace(self, lower_constraint=lower, upper_constraint=upper)

    def with_ordering(self, ordering: Ordering) -> FitRequest:
        return replace(self, ordering=ordering)
